"""Shared fixtures for the invoice archive tests."""

import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Project root on the path so `config` and `main` import from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import ConfigurationManager
from invoice_archive.archive import ArchiveStore, BundleExporter
from invoice_archive.models import InvoiceRecord, InvoiceStatus


@pytest.fixture
def config(tmp_path):
    """Configuration bound to a settings file inside tmp_path."""
    config = ConfigurationManager(str(tmp_path / "settings.yaml"))
    config.set("paths.archive_dir", "archive_data")
    config.set("paths.temp_upload_dir", "temp_uploads")
    config.set("paths.export_dir", "export_data")
    config.set("paths.activity_log", "logs/activity_log.json")
    return config


@pytest.fixture
def archive_root(tmp_path):
    return tmp_path / "archive_data"


@pytest.fixture
def store(tmp_path, archive_root):
    return ArchiveStore(archive_root, exporter=BundleExporter(tmp_path / "export_data"))


@pytest.fixture
def make_record(tmp_path):
    """Factory for REVIEW records backed by a real file under tmp_path/uploads."""
    upload_dir = tmp_path / "uploads"

    def _make(file_name="scan.pdf", content=b"%PDF-1.4 test", **fields):
        upload_dir.mkdir(parents=True, exist_ok=True)
        source = upload_dir / file_name
        source.write_bytes(content)

        values = {
            "invoice_date": date(2024, 3, 2),
            "amount": Decimal("88"),
            "item_name": "办公用品",
            "payment_method": "现金",
        }
        values.update(fields)
        return InvoiceRecord(
            file_name=file_name,
            file_path=str(source),
            status=InvoiceStatus.REVIEW,
            **values
        )

    return _make
