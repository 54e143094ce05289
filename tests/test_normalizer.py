import json
from datetime import date
from decimal import Decimal

import pytest

from invoice_archive.models import InvoiceStatus
from invoice_archive.ocr_engine import (
    AmountNormalizer,
    DateNormalizer,
    ItemNameNormalizer,
    OCRResultNormalizer,
    extract_words,
    first_word,
)
from invoice_archive.utils.exceptions import MalformedResponseError


def _payload(**words_result):
    return json.dumps({"words_result": words_result}, ensure_ascii=False)


class TestExtractWords:

    def test_scalar(self):
        assert extract_words("打印纸") == ["打印纸"]

    def test_word_object(self):
        assert extract_words({"word": "打印纸"}) == ["打印纸"]

    def test_mixed_array_keeps_positions(self):
        value = [{"row": "1", "word": "打印纸"}, "墨盒", {"row": "3"}, None]
        assert extract_words(value) == ["打印纸", "墨盒", "", ""]

    def test_missing(self):
        assert extract_words(None) == []

    def test_numbers_become_text(self):
        assert extract_words(1234.5) == ["1234.5"]

    def test_first_word_skips_blanks(self):
        payload = {"InvoiceNum": [{"word": ""}, {"word": "0123"}]}
        assert first_word(payload, "InvoiceNum") == "0123"
        assert first_word(payload, "SellerName") == ""


class TestFieldNormalizers:

    @pytest.mark.parametrize("text", ["20240115", "2024年01月15日", "2024-01-15", "2024/01/15"])
    def test_date_formats(self, text):
        assert DateNormalizer().parse(text) == date(2024, 1, 15)

    def test_unreadable_date(self):
        assert DateNormalizer().parse("notadate") is None
        assert DateNormalizer().parse("") is None

    @pytest.mark.parametrize("text,expected", [
        ("¥1,234.56", Decimal("1234.56")),
        ("￥ 88", Decimal("88")),
        ("0.10", Decimal("0.10")),
    ])
    def test_amounts(self, text, expected):
        assert AmountNormalizer().parse(text) == expected

    @pytest.mark.parametrize("text", ["abc", "-5", "NaN", "Infinity", ""])
    def test_rejected_amounts(self, text):
        assert AmountNormalizer().parse(text) is None

    def test_item_merge_prefers_specification(self):
        merged = ItemNameNormalizer().merge(["*办公用品*纸", "笔", ""], ["A4", "", ""])
        assert merged == "A4, 笔"

    def test_item_clean(self):
        assert ItemNameNormalizer().clean("*文具*#签字笔_0.5") == "文具签字笔0.5"


class TestOCRResultNormalizer:

    def test_reference_payload(self):
        raw = (
            '{"words_result":{"InvoiceDate":"20240115",'
            '"AmountInFiguers":"¥1,234.56","CommodityName":[{"word":"打印纸"}]}}'
        )

        record = OCRResultNormalizer().normalize(raw, "scan.pdf", file_path="/tmp/scan.pdf")

        assert record.invoice_date == date(2024, 1, 15)
        assert record.amount == Decimal("1234.56")
        assert record.item_name == "打印纸"
        assert record.status == InvoiceStatus.REVIEW
        assert record.file_name == "scan.pdf"
        assert record.file_path == "/tmp/scan.pdf"
        assert record.payment_method == "公务卡"
        assert record.raw_ocr_data == raw

    def test_bytes_payload(self):
        raw = _payload(InvoiceDate="20240115", AmountInFiguers="88").encode("utf-8")
        assert OCRResultNormalizer().normalize(raw, "a.jpg").amount == Decimal("88")

    def test_optional_fields(self):
        raw = _payload(
            InvoiceNum={"word": "044001900111"},
            SellerName=[{"word": "某某文具有限公司"}],
            SellerRegisterNum="91440300MA5XXXXX",
            CommodityName=[{"word": "*办公用品*纸"}, {"word": "笔"}],
            CommodityType=[{"word": "A4"}, {"word": ""}],
        )

        record = OCRResultNormalizer().normalize(raw, "a.jpg")

        assert record.invoice_number == "044001900111"
        assert record.seller_name == "某某文具有限公司"
        assert record.seller_tax_id == "91440300MA5XXXXX"
        assert record.item_name == "A4, 笔"

    def test_total_amount_used_when_primary_missing(self):
        raw = _payload(TotalAmount="¥50.00")
        assert OCRResultNormalizer().normalize(raw, "a.jpg").amount == Decimal("50.00")

    def test_unreadable_fields_keep_defaults(self):
        raw = _payload(InvoiceDate="soon", AmountInFiguers="-12")

        record = OCRResultNormalizer().normalize(raw, "a.jpg", default_date=date(2024, 2, 1))

        assert record.invoice_date == date(2024, 2, 1)
        assert record.amount == Decimal("0")
        assert record.item_name == ""

    def test_missing_date_defaults_to_today(self):
        record = OCRResultNormalizer().normalize(_payload(), "a.jpg")
        assert record.invoice_date == date.today()

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"log_id": 1}', '{"words_result": []}'])
    def test_malformed_payloads(self, raw):
        with pytest.raises(MalformedResponseError) as exc_info:
            OCRResultNormalizer().normalize(raw, "a.jpg")
        assert exc_info.value.payload == raw

    def test_provider_error_reported(self):
        raw = '{"error_code": 110, "error_msg": "Access token invalid or no longer valid"}'
        with pytest.raises(MalformedResponseError) as exc_info:
            OCRResultNormalizer().normalize(raw, "a.jpg")
        assert "110" in exc_info.value.reason

    def test_usage_counted(self, config):
        normalizer = OCRResultNormalizer(config)

        normalizer.normalize(_payload(), "a.jpg")
        normalizer.normalize(_payload(), "b.jpg")

        assert config.get("ocr.monthly_usage") == 2
        assert config.config_path.exists()
