"""
Data models for the invoice archive system.
"""

from .invoice_record import (
    DEFAULT_PAYMENT_METHOD,
    UNKNOWN_DATE,
    InvoiceRecord,
    InvoiceStatus,
    StatusEvent,
    advance,
    apply_edits,
    can_advance,
    validate_for_archive,
)
from .archive_entry import ArchiveEntry, ArchiveGroup
from .statistics_snapshot import HeatmapDay, StatisticsSnapshot

__all__ = [
    'DEFAULT_PAYMENT_METHOD',
    'UNKNOWN_DATE',
    'InvoiceRecord',
    'InvoiceStatus',
    'StatusEvent',
    'advance',
    'apply_edits',
    'can_advance',
    'validate_for_archive',
    'ArchiveEntry',
    'ArchiveGroup',
    'HeatmapDay',
    'StatisticsSnapshot',
]
