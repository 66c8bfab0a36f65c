"""
Query Engine
Version: 1.0

Filter, sort and paginate a merged booking collection.

Stateless: every call is a pure function of (bookings, params, now).
Callers must send page=1 again whenever a filter or the sort key changes.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from pydantic import BaseModel

from schemas import Booking, DateWindow, QueryParams, QueryResult, SortDirection
from services.normalizer import parse_timestamp

logger = logging.getLogger(__name__)


# Column keys used by the dashboard table, mapped to canonical paths
SORT_KEY_ALIASES = {
    "createdAt": "created_at",
    "orderId": "display_number",
    "bookingNumber": "display_number",
    "serviceDetails.name": "service_name",
    "serviceName": "service_name",
    "hotel.name": "hotel_ref.name",
    "hotelName": "hotel_ref.name",
    "guestName": "guest_ref.name",
    "totalAmount": "pricing.total_amount",
    "pricing.totalAmount": "pricing.total_amount",
    "schedule.preferredDate": "schedule.preferred_date",
}


def get_nested(obj: Any, path: str) -> Any:
    """Resolve a dotted path through models and dicts; None when any hop is missing."""
    if not path:
        return obj
    current = obj
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, BaseModel):
            current = getattr(current, part, None)
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            return None
    if isinstance(current, Enum):
        return current.value
    return current


# =============================================================================
# FILTERS
# =============================================================================

def _matches_status(booking: Booking, status: str) -> bool:
    return status == "all" or booking.status.value == status


def _matches_service_type(booking: Booking, service_type: str) -> bool:
    if service_type == "all":
        return True
    return service_type in (booking.source_type.value, booking.service_category)


def _matches_date(booking: Booking, window: DateWindow, now: datetime) -> bool:
    if window == DateWindow.ALL:
        return True

    created = booking.created_at.astimezone(now.tzinfo)
    if window == DateWindow.TODAY:
        return created.date() == now.date()
    if window == DateWindow.YESTERDAY:
        return created.date() == (now - timedelta(days=1)).date()
    if window == DateWindow.WEEK:
        return created >= now - timedelta(days=7)
    if window == DateWindow.MONTH:
        return created >= now - timedelta(days=30)
    return True


def filter_bookings(bookings: Sequence[Booking], params: QueryParams, now: datetime) -> List[Booking]:
    """Keep bookings that satisfy every filter dimension."""
    return [
        b for b in bookings
        if _matches_status(b, params.status)
        and _matches_date(b, params.date, now)
        and _matches_service_type(b, params.service_type)
    ]


# =============================================================================
# SORTING
# =============================================================================

def _is_date_key(path: str) -> bool:
    return "date" in path.lower() or path == "created_at"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _sort_key_for(path: str, values: List[Any]) -> Callable[[Any], Any]:
    """Pick the comparison class for a key: dates, numbers, else case-insensitive strings."""
    if _is_date_key(path):
        return lambda v: v.timestamp()
    if values and all(_is_number(v) for v in values):
        return float
    return lambda v: str(v).lower()


def sort_bookings(bookings: Sequence[Booking], sort_key: str, direction: SortDirection) -> List[Booking]:
    """
    Stable sort by a dotted path.

    Missing values go first ascending and last descending. Equal keys keep
    their input order in both directions.
    """
    path = SORT_KEY_ALIASES.get(sort_key, sort_key)
    descending = direction == SortDirection.DESC

    keyed = []
    missing = []
    for booking in bookings:
        value = get_nested(booking, path)
        if value is not None and _is_date_key(path):
            value = parse_timestamp(value)
        if value is None:
            missing.append(booking)
        else:
            keyed.append((value, booking))

    key_fn = _sort_key_for(path, [v for v, _ in keyed])
    keyed.sort(key=lambda pair: key_fn(pair[0]), reverse=descending)
    present = [b for _, b in keyed]

    return present + missing if descending else missing + present


# =============================================================================
# PAGINATION
# =============================================================================

def paginate(items: Sequence[Booking], page: int, page_size: int) -> QueryResult:
    """Slice one page; page is clamped into [1, total_pages]."""
    page_size = max(1, page_size)
    total_count = len(items)
    total_pages = max(1, math.ceil(total_count / page_size))
    current = min(max(1, page), total_pages)

    start = (current - 1) * page_size
    return QueryResult(
        items=list(items[start:start + page_size]),
        total_count=total_count,
        total_pages=total_pages,
        page=current,
        page_size=page_size
    )


def query(
    bookings: Sequence[Booking],
    params: Optional[QueryParams] = None,
    now: Optional[datetime] = None
) -> QueryResult:
    """
    Run filter -> sort -> paginate over the merged collection.

    Args:
        bookings: Normalized bookings, in merge order
        params: Filter/sort/page selection (defaults: everything, newest first, page 1)
        now: Reference time for date windows (defaults to current UTC time)

    Returns:
        QueryResult with the page items and totals
    """
    params = params or QueryParams()
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    filtered = filter_bookings(bookings, params, now)
    ordered = sort_bookings(filtered, params.sort, params.direction)
    result = paginate(ordered, params.page, params.page_size)

    logger.debug(
        f"Query status={params.status} date={params.date.value} type={params.service_type} "
        f"sort={params.sort}:{params.direction.value} -> {result.total_count} match(es), "
        f"page {result.page}/{result.total_pages}"
    )
    return result
