"""
Booking Service
Version: 1.0

Read and write entry points for the orders views.

The merged collection is recomputed from both sources on every call and
handed back to the caller; nothing is kept between requests.
DEPENDS ON: source_adapters.py, normalizer.py, query_engine.py, status_manager.py
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

from schemas import Booking, MergeResult, QueryParams, QueryResult, SourceType
from services.errors import AdapterUnavailable, BookingNotFound
from services.logging_config import LogTimer, get_logger
from services.metrics import record_merge
from services.normalizer import merge_sources
from services.query_engine import query
from services.source_adapters import BookingSourceAdapter
from services.status_manager import StatusLike, StatusTransitionManager, TransitionResult

logger = get_logger(__name__)


def find_booking(bookings: List[Booking], booking_id: str) -> Optional[Booking]:
    for booking in bookings:
        if booking.id == booking_id:
            return booking
    return None


class BookingService:
    """
    Facade used by the HTTP layer.

    Usage:
        service = BookingService(build_adapters(gateway, breaker))
        page, merged = await service.list_orders(QueryParams(status="pending"))
        result = await service.change_status(booking_id, "confirmed")
    """

    def __init__(
        self,
        adapters: Mapping[SourceType, BookingSourceAdapter],
        manager: Optional[StatusTransitionManager] = None
    ):
        self.adapters = adapters
        self.manager = manager or StatusTransitionManager(adapters)

    async def load(self) -> MergeResult:
        """
        Read both sources concurrently and merge them.

        A failing source is reported in failed_sources and contributes no
        bookings; the other source's data is still returned.
        """
        sources = [SourceType.REGULAR, SourceType.HOUSEKEEPING]

        with LogTimer(logger, "Load bookings") as timer:
            results = await asyncio.gather(
                *(self._fetch(source) for source in sources),
                return_exceptions=True
            )

            raw: Dict[SourceType, list] = {}
            failed: List[SourceType] = []
            for source, result in zip(sources, results):
                if isinstance(result, AdapterUnavailable):
                    logger.warning("Source unavailable", source=source.value, error=str(result))
                    failed.append(source)
                    raw[source] = []
                elif isinstance(result, BaseException):
                    raise result
                else:
                    raw[source] = result

            merged = merge_sources(raw[SourceType.REGULAR], raw[SourceType.HOUSEKEEPING], failed)

        loaded = {source.value: 0 for source in sources}
        for booking in merged.bookings:
            loaded[booking.source_type.value] += 1
        record_merge(loaded, merged.dropped_count)

        logger.info(
            "Bookings merged",
            count=len(merged.bookings),
            dropped=merged.dropped_count,
            failed_sources=[s.value for s in failed],
            duration_ms=timer.duration_ms
        )
        return merged

    async def _fetch(self, source: SourceType) -> list:
        adapter = self.adapters.get(source)
        if adapter is None:
            raise AdapterUnavailable(source.value, "fetch", "no adapter registered", retryable=False)
        return await adapter.fetch_all()

    async def list_orders(
        self,
        params: QueryParams,
        now: Optional[datetime] = None
    ) -> Tuple[QueryResult, MergeResult]:
        """Load, then filter/sort/paginate. Returns the page and the merge report."""
        merged = await self.load()
        return query(merged.bookings, params, now=now), merged

    async def get_booking(self, booking_id: str) -> Booking:
        """
        Raises:
            BookingNotFound: If no source holds the booking
            AdapterUnavailable: If it was not found and a source could not be read
        """
        merged = await self.load()
        return self._require(merged, booking_id)

    async def change_status(
        self,
        booking_id: str,
        target: StatusLike,
        notes: Optional[str] = None
    ) -> TransitionResult:
        """Look the booking up in a fresh merge and hand it to the transition manager."""
        merged = await self.load()
        booking = self._require(merged, booking_id)
        return await self.manager.transition(booking, target, notes=notes)

    def _require(self, merged: MergeResult, booking_id: str) -> Booking:
        booking = find_booking(merged.bookings, booking_id)
        if booking is not None:
            return booking
        if merged.partial:
            failed = ", ".join(s.value for s in merged.failed_sources)
            raise AdapterUnavailable(failed, "fetch", f"booking {booking_id} may be in an unreadable source")
        raise BookingNotFound(booking_id)
