"""
Invoice Record Data Class.

This module defines the canonical structured representation of one
invoice and the status state machine it moves through:

    PENDING -> PROCESSING -> REVIEW -> ARCHIVED

Status only changes through advance(), which returns a new record.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from invoice_archive.utils.exceptions import (
    InvalidStatusTransitionError,
    ValidationError,
)

# Placeholder for a date that could not be decoded
UNKNOWN_DATE = date.min

DEFAULT_PAYMENT_METHOD = "公务卡"


class InvoiceStatus(str, Enum):
    """Lifecycle status of an invoice record."""
    PENDING = "pending"
    PROCESSING = "processing"
    REVIEW = "review"
    ARCHIVED = "archived"


class StatusEvent(str, Enum):
    """Events that move a record between statuses."""
    START_RECOGNITION = "start_recognition"
    RECOGNITION_SUCCEEDED = "recognition_succeeded"
    RECOGNITION_FAILED = "recognition_failed"
    ARCHIVE = "archive"


TRANSITIONS = {
    (InvoiceStatus.PENDING, StatusEvent.START_RECOGNITION): InvoiceStatus.PROCESSING,
    (InvoiceStatus.PROCESSING, StatusEvent.RECOGNITION_SUCCEEDED): InvoiceStatus.REVIEW,
    (InvoiceStatus.PROCESSING, StatusEvent.RECOGNITION_FAILED): InvoiceStatus.REVIEW,
    (InvoiceStatus.REVIEW, StatusEvent.ARCHIVE): InvoiceStatus.ARCHIVED,
}

EDITABLE_FIELDS = (
    'invoice_date',
    'amount',
    'item_name',
    'payment_method',
    'invoice_number',
    'seller_name',
    'seller_tax_id',
)


@dataclass(frozen=True)
class InvoiceRecord:
    """
    Structured representation of one receipt/invoice.

    Records are immutable; edits and status changes produce new records
    through apply_edits() and advance().

    Attributes:
        file_name: Display name of the underlying file
        invoice_date: Issue date, day granularity
        amount: Non-negative amount in CNY
        item_name: Item description, may be a ", "-joined list
        payment_method: Free-form, conventionally "公务卡" or "现金"
        file_path: Location of the underlying file
        status: Lifecycle status
        invoice_number: Invoice number, "" when unknown
        seller_name: Seller name, "" when unknown
        seller_tax_id: Seller tax id, "" when unknown
        raw_ocr_data: OCR payload or error note, kept for audit only

    Example:
        >>> record = InvoiceRecord(file_name="scan.pdf", amount=Decimal("88"))
        >>> record = advance(record, StatusEvent.START_RECOGNITION)
        >>> record.status
        <InvoiceStatus.PROCESSING: 'processing'>
    """
    file_name: str = ""
    invoice_date: date = field(default_factory=date.today)
    amount: Decimal = Decimal("0")
    item_name: str = ""
    payment_method: str = DEFAULT_PAYMENT_METHOD
    file_path: str = ""
    status: InvoiceStatus = InvoiceStatus.PENDING
    invoice_number: str = ""
    seller_name: str = ""
    seller_tax_id: str = ""
    raw_ocr_data: str = field(default="", repr=False, compare=False)

    @property
    def year_month(self) -> str:
        """Archive sub-directory name for this record (YYYY-MM)."""
        return self.invoice_date.strftime("%Y-%m")

    @property
    def has_known_date(self) -> bool:
        return self.invoice_date != UNKNOWN_DATE

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a JSON-friendly dictionary.

        Returns:
            Dictionary with dates as ISO strings and the amount as a string.
        """
        return {
            'file_name': self.file_name,
            'invoice_date': self.invoice_date.isoformat(),
            'amount': format(self.amount, 'f'),
            'item_name': self.item_name,
            'payment_method': self.payment_method,
            'file_path': self.file_path,
            'status': self.status.value,
            'invoice_number': self.invoice_number,
            'seller_name': self.seller_name,
            'seller_tax_id': self.seller_tax_id,
        }

    def __repr__(self) -> str:
        return (
            f"InvoiceRecord("
            f"date={self.invoice_date}, "
            f"item={self.item_name!r}, "
            f"amount={self.amount}, "
            f"status={self.status.value})"
        )


def can_advance(record: InvoiceRecord, event: StatusEvent) -> bool:
    """Check whether ``event`` is a valid transition from the record's status."""
    return (record.status, event) in TRANSITIONS


def advance(record: InvoiceRecord, event: StatusEvent, **changes) -> InvoiceRecord:
    """
    Apply a status event to a record.

    Args:
        record: Record to transition.
        event: Event to apply.
        **changes: Other fields to set on the new record (e.g., file_path).

    Returns:
        New record in the target status.

    Raises:
        InvalidStatusTransitionError: If the event does not apply, such as
            ARCHIVED -> PROCESSING.
    """
    target = TRANSITIONS.get((record.status, event))
    if target is None:
        raise InvalidStatusTransitionError(record.status.value, event.value)

    return replace(record, status=target, **changes)


def apply_edits(record: InvoiceRecord, **changes) -> InvoiceRecord:
    """
    Apply user corrections to a record under review.

    Only the editable fields may change; status, file location and the
    raw OCR payload are owned by the pipeline and the archive store.

    Raises:
        InvalidStatusTransitionError: If the record is not in REVIEW.
        ValueError: If a non-editable field is passed.
    """
    if record.status != InvoiceStatus.REVIEW:
        raise InvalidStatusTransitionError(record.status.value, "edit")

    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields cannot be edited: {sorted(unknown)}")

    if 'amount' in changes and not isinstance(changes['amount'], Decimal):
        changes['amount'] = Decimal(str(changes['amount']))

    return replace(record, **changes)


def validate_for_archive(record: InvoiceRecord) -> None:
    """
    Check the fields archival depends on.

    Raises:
        ValidationError: If the amount is not positive or the item name
            is blank.
    """
    if record.amount is None or record.amount <= 0:
        raise ValidationError("amount", record.amount, "amount must be greater than 0")

    if not record.item_name or not record.item_name.strip():
        raise ValidationError("item_name", record.item_name, "item name is required")
