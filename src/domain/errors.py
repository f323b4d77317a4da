from __future__ import annotations

from decimal import Decimal


class QuotationError(Exception):
    """Base class for every error raised by the quotation engine."""


class ValidationError(QuotationError, ValueError):
    def __init__(self, message: str, *, field: str | None = None, value: object | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class NotFoundError(QuotationError, LookupError):
    def __init__(
        self,
        message: str,
        *,
        quotation_id: str | None = None,
        version_number: int | None = None,
    ) -> None:
        super().__init__(message)
        self.quotation_id = quotation_id
        self.version_number = version_number


class LockedVersionError(QuotationError):
    def __init__(self, *, quotation_id: str, version_number: int, locked_by: str | None = None) -> None:
        self.quotation_id = quotation_id
        self.version_number = version_number
        self.locked_by = locked_by
        message = f"Version {version_number} of quotation {quotation_id} is locked"
        if locked_by:
            message = f"{message} by {locked_by}"
        super().__init__(message)


class AlreadyLockedError(QuotationError):
    def __init__(self, *, quotation_id: str, version_number: int) -> None:
        self.quotation_id = quotation_id
        self.version_number = version_number
        super().__init__(f"Version {version_number} of quotation {quotation_id} is already locked")


class ConflictError(QuotationError):
    def __init__(self, *, quotation_id: str, expected_revision: int, actual_revision: int | None) -> None:
        self.quotation_id = quotation_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Quotation {quotation_id} was modified concurrently "
            f"(expected revision={expected_revision} actual={actual_revision})"
        )


class ConversionError(QuotationError):
    def __init__(
        self,
        message: str,
        *,
        currency: str,
        amount: Decimal | None = None,
    ) -> None:
        super().__init__(message)
        self.currency = currency
        self.amount = amount


__all__ = [
    "AlreadyLockedError",
    "ConflictError",
    "ConversionError",
    "LockedVersionError",
    "NotFoundError",
    "QuotationError",
    "ValidationError",
]
