"""
Archive listing views.

ArchiveEntry tags a decoded record with where it was found; ArchiveGroup
collects the entries of one calendar day. Neither is persisted.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Tuple

from .invoice_record import InvoiceRecord


@dataclass(frozen=True)
class ArchiveEntry:
    """
    One archived file as seen by a listing.

    Attributes:
        year_month: YYYY-MM directory the file was found in
        day: Decoded invoice date as YYYY-MM-DD
        file_name: Base name of the archived file
        file_path: Full path of the archived file
        record: Decoded invoice record
    """
    year_month: str
    day: str
    file_name: str
    file_path: str
    record: InvoiceRecord

    @property
    def amount(self) -> Decimal:
        return self.record.amount


@dataclass(frozen=True)
class ArchiveGroup:
    """All entries sharing one calendar day."""
    day: str
    entries: Tuple[ArchiveEntry, ...] = field(default_factory=tuple)

    @property
    def total_count(self) -> int:
        return len(self.entries)

    @property
    def total_amount(self) -> Decimal:
        return sum((e.amount for e in self.entries), Decimal("0"))

    @property
    def file_paths(self) -> List[str]:
        return [e.file_path for e in self.entries]

    @property
    def records(self) -> List[InvoiceRecord]:
        return [e.record for e in self.entries]
