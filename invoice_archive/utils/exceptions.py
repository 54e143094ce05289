"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the invoice
archive system. Filesystem and network failures surface as these typed
errors carrying the offending path or provider response.

Exception Hierarchy:
    InvoiceArchiveError (base)
    ├── ConfigurationError
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   ├── EmptyInputError
    │   ├── InvalidFormatError
    │   └── CorruptedFileError
    ├── OCRError
    │   ├── OCRAuthenticationError
    │   ├── OCRRequestError
    │   └── MalformedResponseError
    ├── RecordError
    │   ├── ValidationError
    │   └── InvalidStatusTransitionError
    ├── ArchiveError
    │   ├── SourceMissingError
    │   └── PartialBatchFailure
    └── ExportError
"""

from typing import List, Optional


class InvoiceArchiveError(Exception):
    """
    Base exception for all invoice archive errors.

    Attributes:
        message: Human-readable error message.
        details: Dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(InvoiceArchiveError):
    """Raised when the settings file cannot be read or written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Configuration error in: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(InvoiceArchiveError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an unsupported file type is provided.

    Example:
        >>> raise UnsupportedFileTypeError(".doc", [".pdf", ".jpg"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class EmptyInputError(InputError):
    """Raised when a document has zero length."""

    def __init__(self, source: str = None):
        message = f"Input is empty (0 bytes): {source}" if source else "Input is empty (0 bytes)"
        super().__init__(message, {"source": source})


class InvalidFormatError(InputError):
    """Raised when a document does not carry the expected signature or shape."""

    def __init__(self, expected: str, reason: str = None, source: str = None):
        message = f"Input is not a valid {expected}"
        details = {"expected": expected, "reason": reason, "source": source}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when a file appears to be corrupted or unreadable."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Corrupted or unreadable file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# OCR ERRORS
# =============================================================================

class OCRError(InvoiceArchiveError):
    """Base exception for OCR-related errors."""
    pass


class OCRAuthenticationError(OCRError):
    """Raised when the provider refuses the credential exchange."""

    def __init__(self, provider: str, reason: str = None):
        message = f"Failed to obtain access token from {provider}"
        details = {"provider": provider, "reason": reason}
        super().__init__(message, details)


class OCRRequestError(OCRError):
    """Raised when the recognition request fails or times out."""

    def __init__(self, reason: str, status_code: Optional[int] = None, body: str = None):
        message = f"OCR request failed: {reason}"
        details = {"status_code": status_code, "body": body}
        super().__init__(message, details)
        self.status_code = status_code
        self.body = body


class MalformedResponseError(OCRError):
    """Raised when an OCR payload cannot be turned into an invoice record."""

    def __init__(self, reason: str, payload: str = None):
        message = f"Malformed OCR response: {reason}"
        super().__init__(message)
        self.reason = reason
        self.payload = payload


# =============================================================================
# RECORD ERRORS
# =============================================================================

class RecordError(InvoiceArchiveError):
    """Base exception for invoice record errors."""
    pass


class ValidationError(RecordError):
    """Raised when a record is missing data required for archival."""

    def __init__(self, field: str, value, reason: str = None):
        message = f"Validation failed for field '{field}'"
        details = {"field": field, "value": str(value), "reason": reason}
        super().__init__(message, details)
        self.field = field


class InvalidStatusTransitionError(RecordError):
    """Raised when a status event does not apply to the record's status."""

    def __init__(self, status: str, event: str):
        message = f"Cannot apply '{event}' to a record in status '{status}'"
        details = {"status": status, "event": event}
        super().__init__(message, details)
        self.status = status
        self.event = event


# =============================================================================
# ARCHIVE ERRORS
# =============================================================================

class ArchiveError(InvoiceArchiveError):
    """Base exception for archive store errors."""
    pass


class SourceMissingError(ArchiveError):
    """Raised when the file to archive or delete does not exist."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        super().__init__(message, {"filepath": filepath})
        self.filepath = filepath


class PartialBatchFailure(ArchiveError):
    """
    Raised when some items of a bulk operation failed.

    The remaining items are still processed; the error reports how many
    succeeded and why each failure happened.

    Attributes:
        success_count: Number of items that succeeded.
        total: Number of items attempted.
        failures: One "name: reason" string per failed item.
        succeeded: Results of the successful items, when the operation has any.
    """

    def __init__(
        self,
        operation: str,
        success_count: int,
        total: int,
        failures: List[str],
        succeeded: Optional[list] = None
    ):
        message = (
            f"{operation}: {success_count}/{total} succeeded. "
            f"Errors: {', '.join(failures)}"
        )
        super().__init__(message)
        self.operation = operation
        self.success_count = success_count
        self.total = total
        self.failures = failures
        self.succeeded = succeeded or []


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class ExportError(InvoiceArchiveError):
    """Raised when an export bundle cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export bundle: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'InvoiceArchiveError',
    'ConfigurationError',
    'InputError',
    'UnsupportedFileTypeError',
    'EmptyInputError',
    'InvalidFormatError',
    'CorruptedFileError',
    'OCRError',
    'OCRAuthenticationError',
    'OCRRequestError',
    'MalformedResponseError',
    'RecordError',
    'ValidationError',
    'InvalidStatusTransitionError',
    'ArchiveError',
    'SourceMissingError',
    'PartialBatchFailure',
    'ExportError',
]
