from decimal import Decimal

from invoice_archive.archive import ActivityLog


def test_newest_entry_first(tmp_path):
    log = ActivityLog(tmp_path / "logs" / "activity.json")

    log.log_upload("scan.pdf", Decimal("88"))
    log.log_archive("20240302-办公用品-现金-88元.pdf")

    entries = log.entries()
    assert [e.action for e in entries] == ["archive", "upload"]
    assert "88" in entries[1].details


def test_persisted(tmp_path):
    path = tmp_path / "activity.json"
    ActivityLog(path).log_export("Exported 2 invoices")

    reloaded = ActivityLog(path)
    assert reloaded.entries()[0].action == "export"
    assert reloaded.entries()[0].details == "Exported 2 invoices"


def test_clear(tmp_path):
    path = tmp_path / "activity.json"
    log = ActivityLog(path)
    log.log_delete("Deleted 1/1 files")

    log.clear()

    assert log.entries() == []
    assert ActivityLog(path).entries() == []


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "activity.json"
    path.write_text("{broken", encoding="utf-8")

    log = ActivityLog(path)

    assert log.entries() == []
    log.log_archive("a.pdf")
    assert ActivityLog(path).entries()[0].details == "Archived a.pdf"
