from datetime import date

import pytest
import yaml

from config import DEFAULT_SETTINGS, ConfigurationManager
from invoice_archive.utils.exceptions import ConfigurationError


def test_missing_file_uses_defaults(tmp_path):
    config = ConfigurationManager(str(tmp_path / "missing.yaml"))
    assert config.get("ocr.timeout") == DEFAULT_SETTINGS["ocr"]["timeout"]
    assert config.get("archive.default_payment_method") == "公务卡"


def test_file_merged_over_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("ocr:\n  timeout: 5\n", encoding="utf-8")

    config = ConfigurationManager(str(path))

    assert config.get("ocr.timeout") == 5
    assert config.get("ocr.monthly_quota") == DEFAULT_SETTINGS["ocr"]["monthly_quota"]


def test_invalid_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("ocr: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigurationManager(str(path))


def test_get_default_and_set(config):
    assert config.get("no.such.key", "fallback") == "fallback"
    config.set("archive.extra.value", 3)
    assert config.get("archive.extra.value") == 3


def test_save_and_reload(config):
    config.set("ocr.api_key", "key")
    config.save()

    reloaded = ConfigurationManager(str(config.config_path))
    assert reloaded.get("ocr.api_key") == "key"

    with open(config.config_path, encoding="utf-8") as f:
        assert yaml.safe_load(f)["archive"]["default_payment_method"] == "公务卡"


def test_paths_resolve_against_config_directory(config, tmp_path):
    assert config.archive_dir == tmp_path / "archive_data"
    assert config.activity_log_path == tmp_path / "logs" / "activity_log.json"

    config.ensure_directories()
    assert (tmp_path / "archive_data").is_dir()
    assert (tmp_path / "temp_uploads").is_dir()
    assert (tmp_path / "export_data").is_dir()


def test_absolute_path_kept(config, tmp_path):
    config.set("paths.export_dir", str(tmp_path / "elsewhere"))
    assert config.export_dir == tmp_path / "elsewhere"


def test_missing_path_entry(config):
    config.set("paths.archive_dir", "")
    with pytest.raises(ConfigurationError):
        config.archive_dir


def test_ocr_usage_resets_each_month(config):
    assert config.increment_ocr_usage(date(2024, 3, 1)) == 1
    assert config.increment_ocr_usage(date(2024, 3, 20)) == 2
    assert config.increment_ocr_usage(date(2024, 4, 1)) == 1
    assert config.get("ocr.usage_month") == "2024-04"

    reloaded = ConfigurationManager(str(config.config_path))
    assert reloaded.get("ocr.monthly_usage") == 1


def test_defaults_not_shared_between_instances(tmp_path):
    first = ConfigurationManager(str(tmp_path / "a.yaml"))
    first.set("ocr.timeout", 1)
    second = ConfigurationManager(str(tmp_path / "b.yaml"))
    assert second.get("ocr.timeout") == DEFAULT_SETTINGS["ocr"]["timeout"]
