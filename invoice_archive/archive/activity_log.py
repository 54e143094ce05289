"""
Activity Log Module.

Keeps a user-facing history of uploads, archivals, deletions and exports
in a JSON file, newest entry first. This is separate from diagnostic
logging: it records what happened to the archive, not how.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Union

from invoice_archive.utils.helpers import ensure_directory
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActivityEntry:
    timestamp: str
    action: str
    details: str


class ActivityLog:
    """
    Persistent list of archive activity.

    Load and save failures are logged and never raised, so a broken log
    file cannot block archival.

    Example:
        >>> log = ActivityLog("logs/activity_log.json")
        >>> log.log_archive("20240302-办公用品-现金-88元.pdf")
        >>> log.entries()[0].action
        "archive"
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._entries: List[ActivityEntry] = self._load()

    def log_upload(self, file_name: str, amount: Decimal) -> None:
        self._add("upload", f"Uploaded {file_name}, amount {amount}元")

    def log_archive(self, file_name: str) -> None:
        self._add("archive", f"Archived {file_name}")

    def log_delete(self, details: str) -> None:
        self._add("delete", details)

    def log_export(self, details: str) -> None:
        self._add("export", details)

    def entries(self) -> List[ActivityEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._save()

    def _add(self, action: str, details: str) -> None:
        entry = ActivityEntry(
            timestamp=datetime.now().isoformat(timespec="seconds"),
            action=action,
            details=details,
        )
        self._entries.insert(0, entry)
        self._save()

    def _load(self) -> List[ActivityEntry]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw_entries = json.load(f)
            return [
                ActivityEntry(
                    timestamp=item.get("timestamp", ""),
                    action=item.get("action", ""),
                    details=item.get("details", ""),
                )
                for item in raw_entries
            ]
        except (OSError, ValueError, AttributeError, TypeError) as e:
            logger.error(f"Failed to load activity log {self.path}: {e}")
            return []

    def _save(self) -> None:
        try:
            ensure_directory(self.path.parent)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump([asdict(e) for e in self._entries], f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"Failed to save activity log {self.path}: {e}")
