"""
OCR Result Normalizer Module.

Turns a VAT invoice recognition payload into an InvoiceRecord. Only a
missing or unreadable ``words_result`` object is fatal; every individual
field falls back to its default when it cannot be read.

Usage:
    normalizer = OCRResultNormalizer(config)
    record = normalizer.normalize(raw_json, "scan.pdf", file_path="temp/scan.pdf")
"""

import json
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from config import ConfigurationManager
from invoice_archive.models import InvoiceRecord, InvoiceStatus, StatusEvent, advance
from invoice_archive.utils.exceptions import MalformedResponseError
from invoice_archive.utils.logger import get_logger
from .normalizers import (
    AmountNormalizer,
    DateNormalizer,
    ItemNameNormalizer,
    extract_words,
    first_word,
)

logger = get_logger(__name__)


class OCRResultNormalizer:
    """
    Normalizer for vendor OCR payloads.

    Attributes:
        config: Settings record; also receives the monthly usage count
        date_normalizer: DateNormalizer instance
        amount_normalizer: AmountNormalizer instance
        item_normalizer: ItemNameNormalizer instance

    Example:
        >>> normalizer = OCRResultNormalizer()
        >>> record = normalizer.normalize(
        ...     '{"words_result": {"InvoiceDate": "20240115", '
        ...     '"AmountInFiguers": "¥1,234.56"}}', "scan.pdf")
        >>> record.amount
        Decimal('1234.56')
    """

    RESULT_KEY = "words_result"
    DATE_FIELD = "InvoiceDate"
    NAME_FIELD = "CommodityName"
    SPEC_FIELD = "CommodityType"
    INVOICE_NUMBER_FIELD = "InvoiceNum"
    SELLER_NAME_FIELD = "SellerName"
    SELLER_TAX_ID_FIELD = "SellerRegisterNum"

    def __init__(self, config: Optional[ConfigurationManager] = None) -> None:
        """
        Initialize the normalizer.

        Args:
            config: Settings record. When given, each successful
                normalization increments its monthly OCR usage counter.
        """
        self.config = config
        settings = config or ConfigurationManager(autoload=False)

        self.date_normalizer = DateNormalizer(settings)
        self.amount_normalizer = AmountNormalizer(settings)
        self.item_normalizer = ItemNameNormalizer()
        self.amount_fields = settings.get(
            "postprocessing.amount.fields",
            ["AmountInFiguers", "TotalAmount"]
        )
        self.default_payment_method = settings.get("archive.default_payment_method", "公务卡")

    def normalize(
        self,
        raw_json: Union[bytes, str],
        file_name: str,
        file_path: str = "",
        default_date: Optional[date] = None
    ) -> InvoiceRecord:
        """
        Build a record under review from a raw OCR payload.

        Args:
            raw_json: Payload returned by the provider.
            file_name: Name of the recognized file.
            file_path: Location of the recognized file.
            default_date: Date kept when the payload's date is unreadable.
                Defaults to today.

        Returns:
            InvoiceRecord in REVIEW status.

        Raises:
            MalformedResponseError: If the payload is not JSON or has no
                ``words_result`` object.
        """
        text = raw_json.decode("utf-8", errors="replace") if isinstance(raw_json, bytes) else raw_json
        words_result = self._load_result(text)

        invoice_date = self._extract_date(words_result) or default_date or date.today()
        amount = self._extract_amount(words_result)
        item_name = self.item_normalizer.merge(
            extract_words(words_result.get(self.NAME_FIELD)),
            extract_words(words_result.get(self.SPEC_FIELD))
        )

        record = InvoiceRecord(
            file_name=file_name,
            file_path=file_path,
            status=InvoiceStatus.PROCESSING,
            invoice_date=invoice_date,
            amount=amount,
            item_name=item_name,
            payment_method=self.default_payment_method,
            invoice_number=first_word(words_result, self.INVOICE_NUMBER_FIELD),
            seller_name=first_word(words_result, self.SELLER_NAME_FIELD),
            seller_tax_id=first_word(words_result, self.SELLER_TAX_ID_FIELD),
            raw_ocr_data=text,
        )
        record = advance(record, StatusEvent.RECOGNITION_SUCCEEDED)

        logger.info(
            f"Normalized OCR result for {file_name}: "
            f"date={record.invoice_date}, amount={record.amount}, item='{record.item_name}'"
        )

        self._count_usage()
        return record

    def _load_result(self, text: str) -> dict:
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise MalformedResponseError(f"payload is not valid JSON ({e})", text)

        if not isinstance(payload, dict):
            raise MalformedResponseError("payload is not a JSON object", text)

        words_result = payload.get(self.RESULT_KEY)
        if not isinstance(words_result, dict):
            if "error_code" in payload:
                reason = (
                    f"provider error {payload.get('error_code')}: "
                    f"{payload.get('error_msg', '')}"
                )
            else:
                reason = f"missing '{self.RESULT_KEY}' object"
            raise MalformedResponseError(reason, text)

        return words_result

    def _extract_date(self, words_result: dict) -> Optional[date]:
        raw = first_word(words_result, self.DATE_FIELD)
        if not raw:
            return None

        parsed = self.date_normalizer.parse(raw)
        if parsed is None:
            logger.warning(f"Unreadable invoice date '{raw}', keeping default")
        return parsed

    def _extract_amount(self, words_result: dict) -> Decimal:
        for field_name in self.amount_fields:
            raw = first_word(words_result, field_name)
            if not raw:
                continue

            parsed = self.amount_normalizer.parse(raw)
            if parsed is None:
                logger.warning(f"Unreadable amount '{raw}' in {field_name}, keeping 0")
                return Decimal("0")
            return parsed

        return Decimal("0")

    def _count_usage(self) -> None:
        if self.config is None:
            return

        try:
            self.config.increment_ocr_usage()
        except Exception as e:
            logger.error(f"Failed to update monthly OCR usage: {e}")
