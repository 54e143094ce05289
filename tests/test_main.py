import json
import logging
import zipfile
from pathlib import Path

import pytest

import main
from invoice_archive.utils.logger import ROOT_LOGGER_NAME

SETTINGS = """\
paths:
  archive_dir: archive_data
  temp_upload_dir: temp_uploads
  export_dir: export_data
  activity_log: logs/activity_log.json
logging:
  level: ERROR
  console:
    colorize: false
"""


@pytest.fixture
def settings_path(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS, encoding="utf-8")
    yield str(path)

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.propagate = True


@pytest.fixture
def receipt(tmp_path):
    path = tmp_path / "receipt.pdf"
    path.write_bytes(b"%PDF-1.4 receipt")
    return path


def _archive(settings_path, receipt):
    return main.main([
        "--config", settings_path,
        "archive", str(receipt),
        "--item", "办公用品",
        "--amount", "88",
        "--method", "现金",
        "--date", "2024-03-02",
    ])


def test_archive_command(settings_path, receipt, tmp_path, capsys):
    assert _archive(settings_path, receipt) == 0

    target = tmp_path / "archive_data" / "2024-03" / "20240302-办公用品-现金-88元.pdf"
    assert target.exists()
    assert not receipt.exists()
    assert json.loads(capsys.readouterr().out)["status"] == "archived"


def test_archive_command_rejects_zero_amount(settings_path, receipt, capsys):
    code = main.main(["--config", settings_path, "archive", str(receipt), "--item", "笔", "--amount", "0"])

    assert code == 1
    assert receipt.exists()
    assert "amount" in capsys.readouterr().err


def test_stats_command(settings_path, receipt, capsys):
    _archive(settings_path, receipt)
    capsys.readouterr()

    assert main.main(["--config", settings_path, "stats", "--heatmap"]) == 0

    stats = json.loads(capsys.readouterr().out)
    assert stats["count"] == 1
    assert stats["total_amount"] == "88"
    assert stats["monthly_amounts"] == {"2024-03": "88"}
    assert stats["payment_method_counts"] == {"现金": 1}


def test_list_and_export_commands(settings_path, receipt, tmp_path, capsys):
    _archive(settings_path, receipt)
    capsys.readouterr()

    assert main.main(["--config", settings_path, "list"]) == 0
    assert "2024-03-02" in capsys.readouterr().out

    assert main.main(["--config", settings_path, "export", "2024-03-02"]) == 0
    bundle_path = capsys.readouterr().out.strip()
    assert Path(bundle_path).name == "20240302+现金.zip"
    with zipfile.ZipFile(bundle_path) as bundle:
        assert "发票明细.xlsx" in bundle.namelist()

    assert main.main(["--config", settings_path, "export", "2023-01-01"]) == 1


def test_delete_and_history_commands(settings_path, receipt, tmp_path, capsys):
    _archive(settings_path, receipt)
    target = tmp_path / "archive_data" / "2024-03" / "20240302-办公用品-现金-88元.pdf"

    assert main.main(["--config", settings_path, "delete", str(target)]) == 0
    assert not target.exists()
    assert not target.parent.exists()

    capsys.readouterr()
    assert main.main(["--config", settings_path, "history"]) == 0
    history = capsys.readouterr().out
    assert "delete" in history
    assert "archive" in history
