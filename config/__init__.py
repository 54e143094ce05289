"""
Configuration Module for Invoice Archive System.

This module provides configuration management using YAML files. The
settings record holds directory paths, OCR credentials and the monthly
OCR usage counter. A ConfigurationManager is constructed explicitly and
passed to the components that need it; there is no global instance.
"""

from copy import deepcopy
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from invoice_archive.utils.exceptions import ConfigurationError
from invoice_archive.utils.helpers import ensure_directory, merge_dicts
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)


DEFAULT_CONFIG_PATH = Path(__file__).parent / "settings.yaml"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "project": {
        "name": "invoice-archive",
        "version": "1.0.0",
    },
    "paths": {
        "archive_dir": "archive_data",
        "temp_upload_dir": "temp_uploads",
        "export_dir": "export_data",
        "activity_log": "logs/activity_log.json",
    },
    "ocr": {
        "provider": "baidu",
        "app_id": "",
        "api_key": "",
        "secret_key": "",
        "token_url": "https://aip.baidubce.com/oauth/2.0/token",
        "invoice_url": "https://aip.baidubce.com/rest/2.0/ocr/v1/vat_invoice",
        "timeout": 30,
        "monthly_quota": 1000,
        "monthly_usage": 0,
        "usage_month": "",
    },
    "input": {
        "pdf": {
            "dpi": 300,
        },
        "image": {
            "max_side": 4096,
            "min_side": 15,
            "max_base64_bytes": 4194304,
            "jpeg_quality": 90,
        },
    },
    "postprocessing": {
        "date": {
            "input_formats": ["%Y%m%d", "%Y年%m月%d日", "%Y-%m-%d", "%Y/%m/%d"],
        },
        "amount": {
            "fields": ["AmountInFiguers", "TotalAmount"],
            "currency_symbols": ["¥", "￥"],
            "thousands_separator": ",",
        },
    },
    "archive": {
        "default_payment_method": "公务卡",
        "payment_methods": ["公务卡", "现金"],
    },
    "output": {
        "summary_filename": "发票明细.xlsx",
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        "date_format": "%Y-%m-%d %H:%M:%S",
        "console": {"colorize": True},
        "file": {
            "enabled": False,
            "path": "logs/invoice_archive.log",
            "max_bytes": 10485760,
            "backup_count": 5,
        },
    },
}


class ConfigurationManager:
    """
    Settings record for the invoice archive system.

    Values are read with dot notation. Relative entries under ``paths``
    resolve against the directory holding the configuration file.

    Attributes:
        config_path (Path): Path to the YAML settings file.

    Example:
        >>> config = ConfigurationManager("settings.yaml")
        >>> config.get("ocr.timeout")
        30
        >>> config.increment_ocr_usage()
        >>> config.save()
    """

    def __init__(self, config_path: Optional[str] = None, autoload: bool = True) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the YAML file. Defaults to config/settings.yaml.
            autoload: Whether to read the file immediately.
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config: Dict[str, Any] = deepcopy(DEFAULT_SETTINGS)

        if autoload:
            self.load()

    def load(self) -> None:
        """
        Load settings from the YAML file, merged over the defaults.

        A missing file leaves the defaults in place.

        Raises:
            ConfigurationError: If the file exists but is not valid YAML.
        """
        self._config = deepcopy(DEFAULT_SETTINGS)

        if not self.config_path.exists():
            logger.debug(f"Configuration file not found, using defaults: {self.config_path}")
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(str(self.config_path), str(e))

        if not isinstance(loaded, dict):
            raise ConfigurationError(str(self.config_path), "top level must be a mapping")

        self._config = merge_dicts(self._config, loaded)

    def save(self) -> None:
        """
        Write the current settings back to the YAML file.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        try:
            ensure_directory(self.config_path.parent)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self._config, f, allow_unicode=True, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(str(self.config_path), str(e))

        logger.debug(f"Configuration saved: {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "ocr.timeout").
            default: Default value if key doesn't exist.

        Returns:
            Configuration value or default.
        """
        value = self._config

        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value using dot notation.

        Intermediate sections are created as needed.
        """
        keys = key.split('.')
        section = self._config

        for k in keys[:-1]:
            if not isinstance(section.get(k), dict):
                section[k] = {}
            section = section[k]

        section[keys[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get a copy of the complete configuration dictionary."""
        return deepcopy(self._config)

    def resolve_path(self, key: str) -> Path:
        """
        Resolve a ``paths.*`` entry to a filesystem path.

        Args:
            key: Name under the ``paths`` section (e.g., "archive_dir").

        Returns:
            Absolute path, relative entries anchored at the config directory.
        """
        value = self.get(f"paths.{key}")
        if not value:
            raise ConfigurationError(str(self.config_path), f"paths.{key} is not set")

        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.config_path.parent / path
        return path

    @property
    def archive_dir(self) -> Path:
        return self.resolve_path("archive_dir")

    @property
    def temp_upload_dir(self) -> Path:
        return self.resolve_path("temp_upload_dir")

    @property
    def export_dir(self) -> Path:
        return self.resolve_path("export_dir")

    @property
    def activity_log_path(self) -> Path:
        return self.resolve_path("activity_log")

    def ensure_directories(self) -> None:
        """Create the archive, temp upload and export directories."""
        for key in ("archive_dir", "temp_upload_dir", "export_dir"):
            try:
                ensure_directory(self.resolve_path(key))
            except (OSError, ConfigurationError) as e:
                logger.error(f"Could not create directory for paths.{key}: {e}")

    def increment_ocr_usage(self, today: Optional[date] = None) -> int:
        """
        Count one OCR call against the current month and persist it.

        The counter resets to zero when the stored month tag differs from
        the current month.

        Args:
            today: Reference date, defaults to the current date.

        Returns:
            Usage count for the current month after the increment.
        """
        current_month = (today or date.today()).strftime("%Y-%m")

        if self.get("ocr.usage_month") != current_month:
            self.set("ocr.usage_month", current_month)
            self.set("ocr.monthly_usage", 0)

        usage = int(self.get("ocr.monthly_usage", 0)) + 1
        self.set("ocr.monthly_usage", usage)
        self.save()

        quota = self.get("ocr.monthly_quota")
        if quota and usage >= int(quota):
            logger.warning(f"OCR monthly usage {usage} has reached the quota of {quota}")

        return usage


__all__ = ['ConfigurationManager', 'DEFAULT_SETTINGS', 'DEFAULT_CONFIG_PATH']
