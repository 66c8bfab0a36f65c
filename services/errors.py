"""
Orders Error Types
Version: 1.0

Shared exceptions raised by the booking engine.
NO DEPENDENCIES on other services.
"""

from typing import Optional


class OrdersError(Exception):
    """Base class for booking engine errors."""
    pass


class MalformedRecord(OrdersError):
    """Raised when a raw booking record lacks a required field."""

    def __init__(self, message: str, source_type: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.source_type = source_type
        self.field = field


class InvalidTransition(OrdersError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot change status from '{from_status}' to '{to_status}'")


class BookingNotFound(OrdersError):
    """Raised when no loaded booking has the requested id."""

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class AdapterUnavailable(OrdersError):
    """Raised when a booking source cannot be read or written."""

    def __init__(
        self,
        source: str,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = True
    ):
        self.source = source
        self.operation = operation
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(f"{source} {operation} failed: {message}")
