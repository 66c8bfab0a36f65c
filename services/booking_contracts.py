"""
Booking API Contract Constants
Version: 1.0

Centralized booking-related constants to avoid magic strings
scattered across the codebase.

These values come from the upstream booking API and the provider dashboard.
"""

from typing import Dict, FrozenSet


class SourcePaths:
    """
    Upstream endpoints per booking source.

    Status paths take the booking id as the only placeholder.
    """
    ORDERS = "/orders"
    ORDER_STATUS = "/orders/{booking_id}/status"
    HOUSEKEEPING = "/housekeeping-bookings"
    HOUSEKEEPING_STATUS = "/housekeeping-bookings/{booking_id}/status"


class Defaults:
    """Values used when an upstream record leaves a field empty."""
    GUEST_NAME = "Unknown Guest"
    ROOM_NUMBER = "N/A"
    HOTEL_NAME = "Hotel Service"
    SERVICE_NAME = "Service"
    SERVICE_CATEGORY = "general"
    PREFERRED_TIME = "09:00"
    CURRENCY = "USD"
    DISPLAY_NUMBER_LENGTH = 8


# Allowed status moves. Statuses missing as keys are terminal.
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"confirmed", "in-progress", "completed", "cancelled"}),
    "confirmed": frozenset({"in-progress", "completed", "cancelled"}),
    "in-progress": frozenset({"completed", "cancelled"}),
}

TERMINAL_STATUSES = frozenset({"completed", "cancelled"})

# Upstream statuses outside the dashboard lifecycle, folded onto it
STATUS_ALIASES: Dict[str, str] = {
    "in_progress": "in-progress",
    "assigned": "confirmed",
    "pickup-scheduled": "in-progress",
    "picked-up": "in-progress",
    "in-service": "in-progress",
    "delivery-scheduled": "in-progress",
    "refunded": "cancelled",
}


# Category -> booking_config variant kind
CATEGORY_VARIANTS: Dict[str, str] = {
    "laundry": "laundry",
    "restaurant": "menu",
    "dining": "menu",
    "transportation": "transportation",
    "housekeeping": "housekeeping",
    "cleaning": "housekeeping",
    "amenities": "housekeeping",
    "maintenance": "housekeeping",
}


HOUSEKEEPING_ISSUE_NAMES: Dict[str, str] = {
    # Maintenance
    "electrical_issues": "Electrical Issues",
    "plumbing_issues": "Plumbing Issues",
    "ac_heating": "AC & Heating",
    "furniture_repair": "Furniture Repair",
    "electronics_issues": "Electronics Issues",
    # Room cleaning
    "general_cleaning": "General Room Cleaning",
    "deep_cleaning": "Deep Cleaning",
    "stain_removal": "Stain Removal",
    # Amenities
    "bathroom_amenities": "Bathroom Amenities",
    "room_supplies": "Room Supplies",
    "cleaning_supplies": "Cleaning Supplies",
}

HOUSEKEEPING_DISPLAY_NAMES: Dict[str, str] = {
    "cleaning": "Room Cleaning",
    "room cleaning": "Room Cleaning",
    "amenities": "Amenities Request",
    "maintenance": "Maintenance Request",
}


LAUNDRY_SERVICE_TYPES: Dict[str, Dict] = {
    "wash_only": {
        "name": "Wash Only",
        "description": "Machine wash with appropriate detergent",
        "duration": {"value": 24, "unit": "hours"},
    },
    "iron_only": {
        "name": "Iron Only",
        "description": "Professional ironing and pressing",
        "duration": {"value": 12, "unit": "hours"},
    },
    "wash_iron": {
        "name": "Wash + Iron",
        "description": "Complete wash and iron service",
        "duration": {"value": 24, "unit": "hours"},
        "is_popular": True,
    },
    "dry_cleaning": {
        "name": "Dry Cleaning",
        "description": "Professional dry cleaning service",
        "duration": {"value": 48, "unit": "hours"},
    },
}
