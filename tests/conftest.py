"""
Test Configuration and Fixtures
Version: 1.0
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from schemas import SourceType
from services.normalizer import normalize


# ============================================================================
# REFERENCE TIME
# ============================================================================

@pytest.fixture
def now() -> datetime:
    """Fixed 'now' for date-window tests."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# RAW RECORD FIXTURES
# ============================================================================

@pytest.fixture
def raw_regular_order() -> Dict[str, Any]:
    """Regular order as returned by GET /orders."""
    return {
        "_id": "65f1c0ffee0000000000abcd",
        "bookingNumber": "BK-1001",
        "serviceType": "laundry",
        "serviceDetails": {"name": "Express Laundry", "category": "laundry"},
        "hotelId": {"_id": "hotel-1", "name": "Grand Nile Hotel"},
        "guestDetails": {
            "firstName": "Mona",
            "lastName": "Hassan",
            "email": "mona@example.com",
            "phone": "+201000000000",
            "roomNumber": "412"
        },
        "status": "pending",
        "schedule": {"preferredDate": "2024-06-16T00:00:00.000Z", "preferredTime": "14:30"},
        "pricing": {"basePrice": 40, "totalAmount": 55, "currency": "EGP"},
        "bookingConfig": {
            "quantity": 3,
            "isExpressService": True,
            "laundryItems": [
                {
                    "itemName": "Shirt",
                    "itemCategory": "clothing",
                    "quantity": 2,
                    "serviceType": {"id": "wash_iron", "name": "Wash + Iron"},
                    "basePrice": 10,
                    "finalPrice": 12
                }
            ],
            "specialRequests": "Fold, do not hang"
        },
        "location": {
            "pickup": {"address": "Room 412", "instructions": "Knock twice"},
            "delivery": {"address": "Room 412"}
        },
        "payment": {"paymentMethod": "credit-card"},
        "createdAt": "2024-06-15T09:00:00.000Z"
    }


@pytest.fixture
def raw_housekeeping_booking() -> Dict[str, Any]:
    """Housekeeping booking as returned by GET /housekeeping-bookings."""
    return {
        "_id": "77aa00000000000000000001",
        "serviceName": "Housekeeping",
        "serviceDetails": {
            "category": "maintenance",
            "specificCategory": "plumbing_issues",
            "subcategory": "Leaking tap"
        },
        "hotel": {"name": "Grand Nile Hotel"},
        "guestInfo": {"name": "Omar Said", "roomNumber": "305"},
        "status": "confirmed",
        "createdAt": "2024-06-14T18:30:00Z"
    }


@pytest.fixture
def make_raw(raw_regular_order):
    """Factory for regular records with overrides."""
    def _make(**overrides) -> Dict[str, Any]:
        record = copy.deepcopy(raw_regular_order)
        record.update(overrides)
        return record
    return _make


# ============================================================================
# BOOKING FIXTURES
# ============================================================================

@pytest.fixture
def regular_booking(raw_regular_order):
    return normalize(raw_regular_order, SourceType.REGULAR)


@pytest.fixture
def housekeeping_booking(raw_housekeeping_booking):
    return normalize(raw_housekeeping_booking, SourceType.HOUSEKEEPING)


@pytest.fixture
def booking_set(make_raw) -> List:
    """Six regular bookings with spread-out dates, statuses and amounts."""
    specs = [
        ("b1", "pending", "2024-06-15T08:00:00Z", 30, "Alpha Hotel"),
        ("b2", "completed", "2024-06-14T10:00:00Z", 55, "beta hotel"),
        ("b3", "pending", "2024-06-10T10:00:00Z", 55, "Gamma Hotel"),
        ("b4", "cancelled", "2024-05-25T10:00:00Z", 10, "alpha hotel"),
        ("b5", "confirmed", "2024-04-01T10:00:00Z", 80, "Delta Hotel"),
        ("b6", "pending", "2024-06-15T11:00:00Z", 55, "Beta Hotel"),
    ]
    bookings = []
    for booking_id, status, created, total, hotel in specs:
        raw = make_raw(
            _id=booking_id,
            bookingNumber=None,
            status=status,
            createdAt=created,
            pricing={"basePrice": 5, "totalAmount": total},
            hotelId={"name": hotel}
        )
        bookings.append(normalize(raw, SourceType.REGULAR))
    return bookings


# ============================================================================
# MOCK FIXTURES
# ============================================================================

@pytest.fixture
def mock_adapters():
    """Adapter map with AsyncMock reads and writes."""
    adapters = {}
    for source in SourceType:
        adapter = MagicMock()
        adapter.source_type = source
        adapter.name = source.value
        adapter.fetch_all = AsyncMock(return_value=[])
        adapter.update_status = AsyncMock(return_value=None)
        adapters[source] = adapter
    return adapters


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set mock environment variables."""
    env_vars = {
        "APP_ENV": "testing",
        "ORDERS_API_URL": "https://orders.example.com/api/service/",
        "ORDERS_API_TOKEN": "test-token",
        "DEFAULT_PAGE_SIZE": "5",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars
