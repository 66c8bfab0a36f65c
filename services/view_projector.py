"""
View Projector
Version: 1.0

Turns canonical bookings into the list rows and detail documents the
provider dashboard renders. No I/O.
"""

from typing import Any, Dict, List, Optional

from schemas import Booking, LaundryConfig, MenuConfig, SourceType, TransportationConfig, HousekeepingConfig
from services.booking_contracts import (
    HOUSEKEEPING_DISPLAY_NAMES,
    HOUSEKEEPING_ISSUE_NAMES,
    LAUNDRY_SERVICE_TYPES,
)
from services.pricing import resolve_pricing
from services.status_manager import allowed_targets


def service_display_name(booking: Booking) -> str:
    """
    Name shown in the service column.

    Housekeeping shows the request kind, cash orders show the service type,
    everything else shows the booked service's own name.
    """
    config = booking.booking_config
    if isinstance(config, HousekeepingConfig):
        return HOUSEKEEPING_DISPLAY_NAMES.get(config.category, "Housekeeping Service")

    if booking.payment_method == "cash":
        category = booking.service_category or SourceType.REGULAR.value
        return f"{category.capitalize()} Service"

    return booking.service_name


def housekeeping_issue_name(specific_category: Optional[str]) -> str:
    if not specific_category:
        return "Not specified"
    if specific_category in HOUSEKEEPING_ISSUE_NAMES:
        return HOUSEKEEPING_ISSUE_NAMES[specific_category]
    return specific_category.replace("_", " ").title()


def laundry_service_type(service_type_id: Optional[str], service_type_name: Optional[str]) -> Optional[Dict[str, Any]]:
    """Merge an item's service type with the template table; the item's own name wins."""
    if not service_type_id and not service_type_name:
        return None
    info = dict(LAUNDRY_SERVICE_TYPES.get(service_type_id or "", {}))
    info["id"] = service_type_id
    if service_type_name:
        info["name"] = service_type_name
    info.setdefault("name", "Service Type Not Specified")
    return info


def payment_label(booking: Booking) -> str:
    return "Cash" if booking.payment_method == "cash" else "Visa/Card"


def next_statuses(booking: Booking) -> List[str]:
    """Statuses the dashboard may offer for this booking, in lifecycle order."""
    order = ["pending", "confirmed", "in-progress", "completed", "cancelled"]
    targets = allowed_targets(booking.status)
    return [s for s in order if s in targets]


def project_row(booking: Booking) -> Dict[str, Any]:
    """One row of the orders table."""
    config = booking.booking_config
    return {
        "id": booking.id,
        "display_number": booking.display_number,
        "source_type": booking.source_type.value,
        "service": service_display_name(booking),
        "issue": (
            housekeeping_issue_name(config.specific_category)
            if isinstance(config, HousekeepingConfig) and config.specific_category else None
        ),
        "hotel": booking.hotel_ref.name,
        "guest": booking.guest_ref.name,
        "total_amount": booking.pricing.total_amount,
        "currency": booking.pricing.currency,
        "payment": payment_label(booking),
        "status": booking.status.value,
        "created_at": booking.created_at.isoformat(),
        "actions": next_statuses(booking),
    }


def _category_detail(booking: Booking) -> Dict[str, Any]:
    config = booking.booking_config

    if isinstance(config, LaundryConfig):
        return {
            "kind": "laundry",
            "items": [
                {
                    **item.model_dump(exclude={"service_type_id", "service_type_name"}),
                    "service_type": laundry_service_type(item.service_type_id, item.service_type_name),
                }
                for item in config.items
            ],
            "itemized": bool(config.items),
        }

    if isinstance(config, MenuConfig):
        return {"kind": "menu", "items": [item.model_dump() for item in config.items]}

    if isinstance(config, TransportationConfig):
        return {
            "kind": "transportation",
            "vehicle": config.vehicle.model_dump() if config.vehicle else None,
            "passenger_count": config.passenger_count,
            "destination": config.destination,
        }

    if isinstance(config, HousekeepingConfig):
        return {
            "kind": "housekeeping",
            "category": config.category,
            "issue": housekeeping_issue_name(config.specific_category),
            "subcategory": config.subcategory,
            "room_number": booking.guest_ref.room_number,
        }

    return {"kind": "generic"}


def project_detail(booking: Booking) -> Dict[str, Any]:
    """Full detail document for one booking."""
    config = booking.booking_config
    detail = project_row(booking)
    detail.update({
        "service_name": booking.service_name,
        "service_category": booking.service_category,
        "hotel_ref": booking.hotel_ref.model_dump(),
        "guest_ref": booking.guest_ref.model_dump(),
        "schedule": booking.schedule.model_dump(mode="json") if booking.schedule else None,
        "location": booking.location.model_dump() if booking.location else None,
        "pricing": resolve_pricing(booking).model_dump(),
        "category_detail": _category_detail(booking),
        "options": [o.model_dump() for o in config.selected_options],
        "additional_services": [s.model_dump() for s in config.additional_services],
        "express": config.is_express,
        "special_requests": config.special_requests or booking.notes or "No special requests",
    })
    return detail
