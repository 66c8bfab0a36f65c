"""
Booking Normalizer
Version: 1.0

Maps raw records from both booking sources onto the canonical Booking model.

Pure mapping: no I/O, no shared state. Missing optional fields get the
defaults from booking_contracts.Defaults; a record without an identifier
raises MalformedRecord and is dropped by merge_sources().
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from schemas import (
    AdditionalService,
    Address,
    Booking,
    BookingStatus,
    Duration,
    GenericConfig,
    GuestRef,
    HotelRef,
    HousekeepingConfig,
    LaundryConfig,
    LaundryItem,
    Location,
    MenuConfig,
    MenuItem,
    MergeResult,
    Pricing,
    Schedule,
    SelectedOption,
    SourceType,
    TransportationConfig,
    VehicleDetail,
)
from services.booking_contracts import CATEGORY_VARIANTS, STATUS_ALIASES, Defaults
from services.errors import MalformedRecord

logger = logging.getLogger(__name__)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _dict(value: Any) -> Dict[str, Any]:
    """Return value if it is a mapping, else an empty dict (populated refs vs bare ids)."""
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    """Item collections: missing means empty, any other non-list is a broken record."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {type(value).__name__}")
    return value


def _first(*values: Any) -> Any:
    """First value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _to_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    Accepts datetime objects, ISO-8601 strings (with or without "Z") and
    epoch milliseconds. Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _full_name(person: Dict[str, Any]) -> Optional[str]:
    first = (person.get("firstName") or "").strip()
    last = (person.get("lastName") or "").strip()
    name = f"{first} {last}".strip()
    return name or None


# =============================================================================
# SECTION EXTRACTORS
# =============================================================================

def _extract_id(raw: Dict[str, Any], source_type: SourceType) -> str:
    record_id = _first(raw.get("_id"), raw.get("id"))
    if isinstance(record_id, dict):
        # Extended JSON ObjectId: {"$oid": "..."}
        record_id = record_id.get("$oid")
    record_id = _to_str(record_id)
    if not record_id or not record_id.strip():
        raise MalformedRecord(
            f"{source_type.value} record has no identifier",
            source_type=source_type.value,
            field="_id"
        )
    return record_id.strip()


def _extract_status(raw: Dict[str, Any], record_id: str) -> BookingStatus:
    status = str(raw.get("status") or "").strip().lower()
    status = STATUS_ALIASES.get(status, status)
    try:
        return BookingStatus(status)
    except ValueError:
        if status:
            logger.warning(f"Unknown status '{status}' on booking {record_id}, treating as pending")
        return BookingStatus.PENDING


def _extract_category(raw: Dict[str, Any], source_type: SourceType) -> str:
    if source_type == SourceType.HOUSEKEEPING:
        return "housekeeping"
    details = _dict(raw.get("serviceDetails"))
    category = _first(
        details.get("category"),
        raw.get("category"),
        raw.get("serviceType"),
        Defaults.SERVICE_CATEGORY
    )
    return str(category).strip().lower()


def _extract_service_name(raw: Dict[str, Any]) -> str:
    return str(_first(
        raw.get("serviceName"),
        _dict(raw.get("serviceDetails")).get("name"),
        _dict(raw.get("serviceId")).get("name"),
        Defaults.SERVICE_NAME
    ))


def _extract_hotel(raw: Dict[str, Any]) -> HotelRef:
    hotel = _dict(raw.get("hotel")) or _dict(raw.get("hotelId"))
    hotel_id = _first(hotel.get("_id"), hotel.get("id"))
    if hotel_id is None and isinstance(raw.get("hotelId"), str):
        hotel_id = raw["hotelId"]
    return HotelRef(
        id=_to_str(hotel_id),
        name=str(_first(hotel.get("name"), raw.get("hotelName"), Defaults.HOTEL_NAME))
    )


def _extract_guest(raw: Dict[str, Any]) -> GuestRef:
    details = _dict(raw.get("guestDetails"))
    info = _dict(raw.get("guestInfo"))
    guest = _dict(raw.get("guestId"))

    name = _first(
        _full_name(details),
        info.get("name"),
        _full_name(guest),
        Defaults.GUEST_NAME
    )
    return GuestRef(
        name=str(name),
        email=_to_str(_first(details.get("email"), info.get("email"), guest.get("email"))),
        phone=_to_str(_first(details.get("phone"), info.get("phone"), guest.get("phone"))),
        room_number=str(_first(details.get("roomNumber"), info.get("roomNumber"), Defaults.ROOM_NUMBER))
    )


def _extract_schedule(raw: Dict[str, Any]) -> Optional[Schedule]:
    schedule = _dict(raw.get("schedule"))
    preferred_date = parse_timestamp(_first(
        schedule.get("preferredDate"),
        raw.get("scheduledDateTime"),
        _dict(raw.get("tripDetails")).get("scheduledDateTime"),
        raw.get("bookingDate")
    ))
    preferred_time = _first(schedule.get("preferredTime"), raw.get("preferredTime"))

    duration = None
    raw_duration = _dict(schedule.get("estimatedDuration"))
    if raw_duration.get("value") is not None:
        duration = Duration(
            value=_to_float(raw_duration.get("value")),
            unit=str(raw_duration.get("unit") or "hours")
        )

    if preferred_date is None and preferred_time is None and duration is None:
        return None

    return Schedule(
        preferred_date=preferred_date,
        preferred_time=str(preferred_time or Defaults.PREFERRED_TIME),
        estimated_duration=duration
    )


def _extract_pricing(raw: Dict[str, Any], record_id: str) -> Pricing:
    pricing = _dict(raw.get("pricing"))
    base_price = max(0.0, _to_float(_first(pricing.get("basePrice"), raw.get("basePrice"))))
    total_amount = max(0.0, _to_float(_first(pricing.get("totalAmount"), raw.get("totalAmount"))))

    if total_amount < base_price:
        logger.warning(
            f"Booking {record_id}: totalAmount {total_amount} below basePrice {base_price}, "
            f"raising total to base"
        )
        total_amount = base_price

    surcharge = pricing.get("expressSurcharge")
    express_surcharge = _to_float(surcharge) if surcharge is not None else None
    if express_surcharge is not None and express_surcharge <= 0:
        express_surcharge = None

    return Pricing(
        base_price=base_price,
        total_amount=total_amount,
        express_surcharge=express_surcharge,
        currency=str(_first(pricing.get("currency"), Defaults.CURRENCY))
    )


def _extract_address(section: Dict[str, Any], flat_address: Any, flat_instructions: Any) -> Optional[Address]:
    address = _to_str(_first(section.get("address"), flat_address))
    instructions = _to_str(_first(section.get("instructions"), flat_instructions))
    if address is None and instructions is None:
        return None
    return Address(address=address, instructions=instructions)


def _extract_location(raw: Dict[str, Any]) -> Optional[Location]:
    location = _dict(raw.get("location"))
    trip = _dict(raw.get("tripDetails"))

    pickup = _extract_address(
        _dict(location.get("pickup")),
        _first(location.get("pickupLocation"), trip.get("pickupLocation")),
        location.get("pickupInstructions")
    )
    delivery = _extract_address(
        _dict(location.get("delivery")),
        _first(location.get("deliveryLocation"), trip.get("destination")),
        location.get("deliveryInstructions")
    )
    if pickup is None and delivery is None:
        return None
    return Location(pickup=pickup, delivery=delivery)


def _extract_notes(raw: Dict[str, Any]) -> Optional[str]:
    config = _dict(raw.get("bookingConfig"))
    return _to_str(_first(
        _dict(raw.get("bookingDetails")).get("specialRequests"),
        config.get("notes"),
        raw.get("notes"),
        raw.get("specialRequests")
    ))


# =============================================================================
# BOOKING CONFIG VARIANTS
# =============================================================================

def _common_config(config: Dict[str, Any]) -> Dict[str, Any]:
    options = [
        SelectedOption(
            name=str(option.get("name") or "Option"),
            value=_to_str(option.get("value")),
            price_modifier=_to_float(option.get("priceModifier"))
        )
        for option in _list(config.get("selectedOptions"))
        if isinstance(option, dict)
    ]
    extras = [
        AdditionalService(
            name=str(extra.get("name") or "Service"),
            price=_to_float(extra.get("price"))
        )
        for extra in _list(config.get("additionalServices"))
        if isinstance(extra, dict)
    ]
    return {
        "quantity": _to_int(config.get("quantity")),
        "is_express": bool(config.get("isExpressService")),
        "special_requests": _to_str(config.get("specialRequests")),
        "selected_options": options,
        "additional_services": extras,
    }


def _laundry_config(raw: Dict[str, Any], config: Dict[str, Any]) -> LaundryConfig:
    items = []
    for item in _list(config.get("laundryItems")):
        if not isinstance(item, dict):
            continue
        service_type = _dict(item.get("serviceType"))
        items.append(LaundryItem(
            item_name=str(_first(item.get("itemName"), "Item")),
            item_category=_to_str(item.get("itemCategory")),
            quantity=_to_int(item.get("quantity")) or 1,
            service_type_id=_to_str(service_type.get("id")),
            service_type_name=_to_str(service_type.get("name")),
            base_price=_to_float(item.get("basePrice")),
            final_price=_to_float(item.get("finalPrice"))
        ))
    return LaundryConfig(items=items, **_common_config(config))


def _menu_config(raw: Dict[str, Any], config: Dict[str, Any]) -> MenuConfig:
    items = []
    for item in _list(config.get("menuItems")):
        if not isinstance(item, dict):
            continue
        items.append(MenuItem(
            name=str(_first(item.get("itemName"), item.get("name"), "Item")),
            item_category=_to_str(item.get("itemCategory")),
            quantity=_to_int(item.get("quantity")) or 1,
            price=_to_float(item.get("price")),
            total_price=_to_float(item.get("totalPrice")),
            is_vegetarian=bool(item.get("isVegetarian")),
            is_vegan=bool(item.get("isVegan")),
            spicy_level=str(item.get("spicyLevel") or "mild"),
            allergens=[str(a) for a in _list(item.get("allergens"))],
            preparation_time=_to_int(item.get("preparationTime")) or 15,
            special_instructions=_to_str(item.get("specialInstructions"))
        ))
    return MenuConfig(items=items, **_common_config(config))


def _transportation_config(raw: Dict[str, Any], config: Dict[str, Any]) -> TransportationConfig:
    vehicle_details = _dict(raw.get("vehicleDetails")) or _dict(_dict(raw.get("resources")).get("vehicle"))
    driver = _dict(_dict(raw.get("providerResponse")).get("driverDetails"))
    trip = _dict(raw.get("tripDetails"))

    vehicle = None
    if vehicle_details or driver:
        vehicle = VehicleDetail(
            vehicle_type=_to_str(_first(vehicle_details.get("vehicleType"), vehicle_details.get("type"))),
            comfort_level=_to_str(vehicle_details.get("comfortLevel")),
            passenger_capacity=_to_int(vehicle_details.get("passengerCapacity")),
            model=_to_str(_first(vehicle_details.get("model"), driver.get("vehicleModel"))),
            plate=_to_str(_first(vehicle_details.get("plate"), driver.get("vehiclePlate"))),
            driver_name=_to_str(driver.get("name"))
        )

    return TransportationConfig(
        vehicle=vehicle,
        passenger_count=_to_int(trip.get("passengerCount")),
        destination=_to_str(trip.get("destination")),
        **_common_config(config)
    )


def _housekeeping_config(raw: Dict[str, Any], config: Dict[str, Any]) -> HousekeepingConfig:
    details = _dict(raw.get("serviceDetails"))
    return HousekeepingConfig(
        category=str(_first(details.get("category"), raw.get("category"), "housekeeping")).lower(),
        specific_category=_to_str(details.get("specificCategory")),
        subcategory=_to_str(details.get("subcategory")),
        **_common_config(config)
    )


def _generic_config(raw: Dict[str, Any], config: Dict[str, Any]) -> GenericConfig:
    return GenericConfig(**_common_config(config))


_VARIANT_BUILDERS = {
    "laundry": _laundry_config,
    "menu": _menu_config,
    "transportation": _transportation_config,
    "housekeeping": _housekeeping_config,
}


def build_booking_config(raw: Dict[str, Any], category: str):
    """Populate the config variant that matches the category; unknown ones get the generic variant."""
    config = _dict(raw.get("bookingConfig"))
    kind = CATEGORY_VARIANTS.get(category)
    builder = _VARIANT_BUILDERS.get(kind, _generic_config)
    return builder(raw, config)


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize(raw: Any, source_type: SourceType) -> Booking:
    """
    Map one raw record onto the canonical Booking.

    Args:
        raw: Record as returned by the owning source
        source_type: Which source produced the record

    Returns:
        Booking

    Raises:
        MalformedRecord: If the record has no identifier or cannot be mapped
    """
    source_type = SourceType(source_type)
    if not isinstance(raw, dict):
        raise MalformedRecord(
            f"{source_type.value} record is {type(raw).__name__}, expected an object",
            source_type=source_type.value
        )

    record_id = _extract_id(raw, source_type)

    try:
        category = _extract_category(raw, source_type)
        schedule = _extract_schedule(raw)

        created_at = parse_timestamp(_first(
            raw.get("createdAt"),
            schedule.preferred_date if schedule else None,
            raw.get("bookingDate")
        )) or datetime.now(timezone.utc)

        return Booking(
            id=record_id,
            source_type=source_type,
            display_number=str(_first(raw.get("bookingNumber"), record_id[-Defaults.DISPLAY_NUMBER_LENGTH:])),
            service_name=_extract_service_name(raw),
            service_category=category,
            hotel_ref=_extract_hotel(raw),
            guest_ref=_extract_guest(raw),
            status=_extract_status(raw, record_id),
            schedule=schedule,
            pricing=_extract_pricing(raw, record_id),
            booking_config=build_booking_config(raw, category),
            location=_extract_location(raw),
            payment_method=_to_str(_dict(raw.get("payment")).get("paymentMethod")),
            notes=_extract_notes(raw),
            created_at=created_at
        )
    except ValidationError as e:
        raise MalformedRecord(
            f"{source_type.value} record {record_id} failed validation: {e.error_count()} error(s)",
            source_type=source_type.value
        ) from e
    except (TypeError, AttributeError, ValueError) as e:
        raise MalformedRecord(
            f"{source_type.value} record {record_id} has a wrongly typed field: {e}",
            source_type=source_type.value
        ) from e


def normalize_many(records: Iterable[Any], source_type: SourceType) -> Tuple[List[Booking], int]:
    """Normalize a batch, dropping malformed records. Returns (bookings, dropped_count)."""
    bookings: List[Booking] = []
    dropped = 0
    for raw in records:
        try:
            bookings.append(normalize(raw, source_type))
        except MalformedRecord as e:
            dropped += 1
            logger.warning(f"Dropping malformed record: {e}")
    return bookings, dropped


def merge_sources(
    regular_records: Iterable[Any],
    housekeeping_records: Iterable[Any],
    failed_sources: Optional[List[SourceType]] = None
) -> MergeResult:
    """
    Merge both sources into one collection.

    Regular bookings come first, then housekeeping, each in source order.
    A booking id repeated within one source keeps its first occurrence.
    """
    regular, regular_dropped = normalize_many(regular_records, SourceType.REGULAR)
    housekeeping, housekeeping_dropped = normalize_many(housekeeping_records, SourceType.HOUSEKEEPING)

    seen = set()
    merged: List[Booking] = []
    for booking in regular + housekeeping:
        key = (booking.source_type, booking.id)
        if key in seen:
            logger.debug(f"Skipping duplicate booking {booking.id}")
            continue
        seen.add(key)
        merged.append(booking)

    return MergeResult(
        bookings=merged,
        dropped_count=regular_dropped + housekeeping_dropped,
        failed_sources=list(failed_sources or [])
    )
