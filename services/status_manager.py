"""
Status Transition Manager
Version: 1.0

Validates booking status changes and routes the write to the adapter that
owns the booking's source. Updates are optimistic: the local status moves
first and is rolled back when the write fails.
DEPENDS ON: source_adapters.py, normalizer.py
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional, Union

from schemas import Booking, BookingStatus, SourceType
from services.booking_contracts import ALLOWED_TRANSITIONS, TERMINAL_STATUSES
from services.errors import AdapterUnavailable, InvalidTransition, MalformedRecord, OrdersError
from services.metrics import record_transition
from services.normalizer import normalize
from services.source_adapters import BookingSourceAdapter

logger = logging.getLogger(__name__)

StatusLike = Union[BookingStatus, str]


def _value(status: StatusLike) -> str:
    return status.value if isinstance(status, BookingStatus) else str(status)


def allowed_targets(status: StatusLike) -> FrozenSet[str]:
    """Statuses reachable from the given one; empty for terminal statuses."""
    return ALLOWED_TRANSITIONS.get(_value(status), frozenset())


def is_terminal(status: StatusLike) -> bool:
    return _value(status) in TERMINAL_STATUSES


def check_transition(from_status: StatusLike, to_status: StatusLike) -> None:
    """
    Raises:
        InvalidTransition: If from_status is terminal or to_status is not reachable from it
    """
    if _value(to_status) not in allowed_targets(from_status):
        raise InvalidTransition(_value(from_status), _value(to_status))


@dataclass
class TransitionResult:
    """
    Outcome of one transition attempt.

    On success `booking` is the confirmed remote state. On failure it is the
    local booking with its original status, and `error` says why.
    """
    booking: Booking
    from_status: BookingStatus
    to_status: BookingStatus
    error: Optional[OrdersError] = None
    rolled_back: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        return isinstance(self.error, AdapterUnavailable) and self.error.retryable


class StatusTransitionManager:
    """
    Single owner of the source -> adapter routing rule for status writes.

    Usage:
        manager = StatusTransitionManager(build_adapters(gateway, breaker))
        result = await manager.transition(booking, BookingStatus.CONFIRMED)
        if not result.ok:
            ...
    """

    def __init__(self, adapters: Mapping[SourceType, BookingSourceAdapter]):
        self.adapters = adapters

    async def transition(
        self,
        booking: Booking,
        target: StatusLike,
        notes: Optional[str] = None
    ) -> TransitionResult:
        """
        Move a booking to a new status.

        Args:
            booking: Booking from the in-memory collection (mutated optimistically)
            target: Requested status
            notes: Optional provider note, forwarded where the source accepts it

        Returns:
            TransitionResult

        Raises:
            InvalidTransition: If target is not a known status at all
        """
        original = booking.status
        try:
            target_status = BookingStatus(_value(target))
        except ValueError:
            raise InvalidTransition(original.value, _value(target))

        try:
            check_transition(original, target_status)
        except InvalidTransition as e:
            logger.info(f"Rejected transition for {booking.id}: {e}")
            record_transition(original.value, target_status.value, "rejected")
            return TransitionResult(booking, original, target_status, error=e)

        adapter = self.adapters.get(booking.source_type)
        if adapter is None:
            error = AdapterUnavailable(
                booking.source_type.value, "update_status",
                "no adapter registered", retryable=False
            )
            record_transition(original.value, target_status.value, "rejected")
            return TransitionResult(booking, original, target_status, error=error)

        booking.status = target_status
        logger.info(
            f"Booking {booking.id} ({booking.source_type.value}): "
            f"{original.value} -> {target_status.value} (optimistic)"
        )

        try:
            echoed = await adapter.update_status(booking.id, target_status.value, notes=notes)
        except AdapterUnavailable as e:
            booking.status = original
            logger.warning(f"Status write failed for {booking.id}, rolled back to {original.value}: {e}")
            record_transition(original.value, target_status.value, "rolled_back")
            return TransitionResult(booking, original, target_status, error=e, rolled_back=True)

        confirmed = self._reconcile(booking, echoed)
        record_transition(original.value, target_status.value, "confirmed")
        return TransitionResult(confirmed, original, target_status)

    def _reconcile(self, booking: Booking, echoed: Optional[dict]) -> Booking:
        """Prefer the server's echoed record; keep the optimistic copy if it cannot be read."""
        if echoed is None:
            return booking
        try:
            return normalize(echoed, booking.source_type)
        except MalformedRecord as e:
            logger.warning(f"Echo for {booking.id} unreadable, keeping optimistic state: {e}")
            return booking
