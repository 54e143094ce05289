import io
import zipfile
from datetime import date
from decimal import Decimal

import openpyxl
import pytest

from invoice_archive.archive import BundleExporter, bundle_name_for_group
from invoice_archive.models import (
    UNKNOWN_DATE,
    ArchiveEntry,
    ArchiveGroup,
    InvoiceRecord,
    InvoiceStatus,
)

HEADER = ["日期", "金额", "项目名称", "支付方式", "发票号码", "销售方名称", "销售方税号"]


@pytest.fixture
def exporter(tmp_path):
    return BundleExporter(tmp_path / "export_data")


def _rows(summary_bytes):
    workbook = openpyxl.load_workbook(io.BytesIO(summary_bytes))
    sheet = workbook.active
    return [list(row) for row in sheet.iter_rows(values_only=True)]


def _group(day, *methods):
    entries = tuple(
        ArchiveEntry(
            year_month=day[:7],
            day=day,
            file_name=f"{i}.pdf",
            file_path=f"/archive/{i}.pdf",
            record=InvoiceRecord(status=InvoiceStatus.ARCHIVED, payment_method=method),
        )
        for i, method in enumerate(methods)
    )
    return ArchiveGroup(day=day, entries=entries)


class TestSummary:

    def test_empty_selection_has_header_only(self, exporter):
        rows = _rows(exporter.build_summary([]))
        assert rows == [HEADER]

    def test_rows(self, exporter):
        record = InvoiceRecord(
            invoice_date=date(2024, 3, 2),
            amount=Decimal("88.50"),
            item_name="办公用品",
            payment_method="现金",
            invoice_number="0123",
        )

        rows = _rows(exporter.build_summary([record]))

        assert rows[0] == HEADER
        assert rows[1][0].date() == date(2024, 3, 2)
        assert rows[1][1] == 88.5
        assert rows[1][2:5] == ["办公用品", "现金", "0123"]

    def test_unknown_date_left_blank(self, exporter):
        rows = _rows(exporter.build_summary([InvoiceRecord(invoice_date=UNKNOWN_DATE)]))
        assert rows[1][0] is None


class TestExport:

    def test_bundle_contents(self, exporter, tmp_path):
        scan = tmp_path / "20240302-办公用品-现金-88元.pdf"
        scan.write_bytes(b"%PDF-1.4")

        bundle_path = exporter.export([scan], [InvoiceRecord()], "bundle.zip")

        with zipfile.ZipFile(bundle_path) as bundle:
            assert sorted(bundle.namelist()) == sorted([scan.name, "发票明细.xlsx"])
            assert bundle.read(scan.name) == b"%PDF-1.4"
        assert exporter.list_entries(bundle_path) == [scan.name, "发票明细.xlsx"]

    def test_missing_files_skipped(self, exporter, tmp_path):
        bundle_path = exporter.export([tmp_path / "missing.pdf"], [], "bundle.zip")

        with zipfile.ZipFile(bundle_path) as bundle:
            assert bundle.namelist() == ["发票明细.xlsx"]
            assert _rows(bundle.read("发票明细.xlsx")) == [HEADER]

    def test_existing_bundle_replaced(self, exporter, tmp_path):
        first = tmp_path / "a.pdf"
        first.write_bytes(b"a")
        exporter.export([first], [], "bundle.zip")

        bundle_path = exporter.export([], [], "bundle.zip")

        assert exporter.list_entries(bundle_path) == ["发票明细.xlsx"]

    def test_generated_name(self, exporter):
        bundle_path = exporter.export([], [])
        assert bundle_path.endswith(".zip")


class TestBundleName:

    def test_single_payment_method(self):
        assert bundle_name_for_group(_group("2024-03-02", "现金", "现金")) == "20240302+现金.zip"

    def test_mixed_payment_methods(self):
        assert bundle_name_for_group(_group("2024-03-02", "现金", "公务卡")) == "20240302_发票.zip"

    def test_blank_methods_ignored(self):
        assert bundle_name_for_group(_group("2024-03-02", "公务卡", " ")) == "20240302+公务卡.zip"
