"""
Tests for the booking normalizer
Version: 1.0
"""

from datetime import datetime, timezone

import pytest

from schemas import (
    BookingStatus,
    GenericConfig,
    HousekeepingConfig,
    LaundryConfig,
    MenuConfig,
    SourceType,
    TransportationConfig,
)
from services.errors import MalformedRecord
from services.normalizer import merge_sources, normalize, normalize_many, parse_timestamp


class TestNormalizeRegular:
    """Regular order records."""

    def test_core_fields(self, raw_regular_order):
        booking = normalize(raw_regular_order, SourceType.REGULAR)

        assert booking.id == "65f1c0ffee0000000000abcd"
        assert booking.source_type == SourceType.REGULAR
        assert booking.display_number == "BK-1001"
        assert booking.service_name == "Express Laundry"
        assert booking.service_category == "laundry"
        assert booking.status == BookingStatus.PENDING
        assert booking.created_at == datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc)

    def test_snapshots(self, raw_regular_order):
        booking = normalize(raw_regular_order, SourceType.REGULAR)

        assert booking.hotel_ref.name == "Grand Nile Hotel"
        assert booking.hotel_ref.id == "hotel-1"
        assert booking.guest_ref.name == "Mona Hassan"
        assert booking.guest_ref.room_number == "412"
        assert booking.guest_ref.email == "mona@example.com"

    def test_pricing_and_schedule(self, raw_regular_order):
        booking = normalize(raw_regular_order, SourceType.REGULAR)

        assert booking.pricing.base_price == 40.0
        assert booking.pricing.total_amount == 55.0
        assert booking.pricing.currency == "EGP"
        assert booking.schedule.preferred_time == "14:30"
        assert booking.schedule.preferred_date.day == 16

    def test_laundry_variant(self, raw_regular_order):
        booking = normalize(raw_regular_order, SourceType.REGULAR)
        config = booking.booking_config

        assert isinstance(config, LaundryConfig)
        assert config.is_express is True
        assert config.quantity == 3
        assert len(config.items) == 1
        assert config.items[0].service_type_id == "wash_iron"
        assert config.items[0].final_price == 12.0

    def test_location(self, raw_regular_order):
        booking = normalize(raw_regular_order, SourceType.REGULAR)

        assert booking.location.pickup.address == "Room 412"
        assert booking.location.pickup.instructions == "Knock twice"
        assert booking.location.delivery.address == "Room 412"

    # ========================================================================
    # DEFAULTS
    # ========================================================================

    def test_minimal_record_gets_defaults(self):
        booking = normalize({"_id": "abcdef0123456789"}, SourceType.REGULAR)

        assert booking.display_number == "23456789"
        assert booking.guest_ref.name == "Unknown Guest"
        assert booking.guest_ref.room_number == "N/A"
        assert booking.hotel_ref.name == "Hotel Service"
        assert booking.service_name == "Service"
        assert booking.service_category == "general"
        assert booking.location is None
        assert booking.schedule is None
        assert booking.status == BookingStatus.PENDING
        assert isinstance(booking.booking_config, GenericConfig)
        assert booking.created_at.tzinfo is not None

    def test_schedule_time_defaults_to_sentinel(self, make_raw):
        raw = make_raw(schedule={"preferredDate": "2024-06-20"})
        booking = normalize(raw, SourceType.REGULAR)

        assert booking.schedule.preferred_time == "09:00"

    def test_created_at_falls_back_to_preferred_date(self, make_raw):
        raw = make_raw(createdAt=None)
        booking = normalize(raw, SourceType.REGULAR)

        assert booking.created_at == datetime(2024, 6, 16, tzinfo=timezone.utc)

    def test_guest_name_from_populated_guest_ref(self):
        raw = {"_id": "x1", "guestId": {"firstName": "Ali", "lastName": "Kamal"}}
        booking = normalize(raw, SourceType.REGULAR)

        assert booking.guest_ref.name == "Ali Kamal"

    def test_flat_pricing_fields(self):
        raw = {"_id": "x2", "basePrice": "20", "totalAmount": 26.5}
        booking = normalize(raw, SourceType.REGULAR)

        assert booking.pricing.base_price == 20.0
        assert booking.pricing.total_amount == 26.5

    def test_total_below_base_is_raised_to_base(self, make_raw):
        raw = make_raw(pricing={"basePrice": 50, "totalAmount": 45})
        booking = normalize(raw, SourceType.REGULAR)

        assert booking.pricing.total_amount == booking.pricing.base_price == 50.0

    def test_non_numeric_price_becomes_zero(self, make_raw):
        raw = make_raw(pricing={"basePrice": "n/a", "totalAmount": None})
        booking = normalize(raw, SourceType.REGULAR)

        assert booking.pricing.base_price == 0.0
        assert booking.pricing.total_amount == 0.0

    # ========================================================================
    # STATUS
    # ========================================================================

    def test_upstream_status_aliases(self, make_raw):
        assert normalize(make_raw(status="picked-up"), SourceType.REGULAR).status == BookingStatus.IN_PROGRESS
        assert normalize(make_raw(status="refunded"), SourceType.REGULAR).status == BookingStatus.CANCELLED
        assert normalize(make_raw(status="Confirmed"), SourceType.REGULAR).status == BookingStatus.CONFIRMED

    def test_unknown_status_is_pending(self, make_raw):
        booking = normalize(make_raw(status="disputed"), SourceType.REGULAR)

        assert booking.status == BookingStatus.PENDING


class TestCategoryDispatch:
    """booking_config variant selection."""

    @pytest.mark.parametrize("category,variant", [
        ("laundry", LaundryConfig),
        ("restaurant", MenuConfig),
        ("dining", MenuConfig),
        ("transportation", TransportationConfig),
        ("cleaning", HousekeepingConfig),
        ("maintenance", HousekeepingConfig),
        ("tours", GenericConfig),
        ("spa", GenericConfig),
    ])
    def test_variant_per_category(self, make_raw, category, variant):
        raw = make_raw(serviceDetails={"name": "Svc", "category": category})
        booking = normalize(raw, SourceType.REGULAR)

        assert isinstance(booking.booking_config, variant)
        assert booking.booking_config.kind == variant.model_fields["kind"].default

    def test_menu_items(self):
        raw = {
            "_id": "m1",
            "serviceType": "dining",
            "bookingConfig": {
                "menuItems": [
                    {"itemName": "Koshari", "quantity": 2, "price": 4, "totalPrice": 8,
                     "isVegetarian": True, "allergens": ["gluten"]}
                ]
            }
        }
        booking = normalize(raw, SourceType.REGULAR)
        item = booking.booking_config.items[0]

        assert item.name == "Koshari"
        assert item.total_price == 8.0
        assert item.is_vegetarian is True
        assert item.preparation_time == 15

    def test_transportation_vehicle(self):
        raw = {
            "_id": "t1",
            "serviceType": "transportation",
            "vehicleDetails": {"vehicleType": "sedan", "comfortLevel": "premium", "passengerCapacity": 4},
            "tripDetails": {"pickupLocation": "Lobby", "destination": "Airport", "passengerCount": 2},
            "providerResponse": {"driverDetails": {"name": "Karim", "vehiclePlate": "ABC 123"}}
        }
        booking = normalize(raw, SourceType.REGULAR)
        config = booking.booking_config

        assert config.vehicle.vehicle_type == "sedan"
        assert config.vehicle.plate == "ABC 123"
        assert config.vehicle.driver_name == "Karim"
        assert config.passenger_count == 2
        assert booking.location.pickup.address == "Lobby"
        assert booking.location.delivery.address == "Airport"


class TestNormalizeHousekeeping:
    """Housekeeping booking records."""

    def test_housekeeping_variant(self, raw_housekeeping_booking):
        booking = normalize(raw_housekeeping_booking, SourceType.HOUSEKEEPING)

        assert booking.source_type == SourceType.HOUSEKEEPING
        assert booking.service_category == "housekeeping"
        assert isinstance(booking.booking_config, HousekeepingConfig)
        assert booking.booking_config.category == "maintenance"
        assert booking.booking_config.specific_category == "plumbing_issues"

    def test_guest_info_shape(self, raw_housekeeping_booking):
        booking = normalize(raw_housekeeping_booking, SourceType.HOUSEKEEPING)

        assert booking.guest_ref.name == "Omar Said"
        assert booking.guest_ref.room_number == "305"
        assert booking.status == BookingStatus.CONFIRMED

    def test_accepts_plain_id_field(self):
        booking = normalize({"id": "hk-9"}, "housekeeping")

        assert booking.id == "hk-9"
        assert booking.source_type == SourceType.HOUSEKEEPING


class TestMalformedRecords:
    """Records that must be rejected."""

    @pytest.mark.parametrize("raw", [
        {},
        {"_id": ""},
        {"_id": "   "},
        {"id": None, "status": "pending"},
    ])
    def test_missing_identifier(self, raw):
        with pytest.raises(MalformedRecord):
            normalize(raw, SourceType.REGULAR)

    def test_non_mapping_record(self):
        with pytest.raises(MalformedRecord):
            normalize(["not", "a", "record"], SourceType.HOUSEKEEPING)

    @pytest.mark.parametrize("overrides", [
        {"guestDetails": {"firstName": 5, "lastName": "X"}},
        {"serviceType": "laundry", "bookingConfig": {"laundryItems": 3}},
        {"serviceType": "dining", "bookingConfig": {"menuItems": "soup"}},
        {"serviceType": "dining", "bookingConfig": {"menuItems": [{"itemName": "Soup", "allergens": 7}]}},
        {"bookingConfig": {"selectedOptions": {"name": "Starch"}}},
        {"bookingConfig": {"additionalServices": 2}},
    ])
    def test_wrongly_typed_field(self, overrides):
        raw = dict({"_id": "bad1"}, **overrides)

        with pytest.raises(MalformedRecord):
            normalize(raw, SourceType.REGULAR)

    def test_wrongly_typed_record_is_dropped_from_merge(self):
        regular = [
            {"_id": "good1"},
            {"_id": "bad1", "guestDetails": {"firstName": 5, "lastName": "X"}},
            {"_id": "bad2", "serviceType": "laundry", "bookingConfig": {"laundryItems": 3}},
        ]

        result = merge_sources(regular, [])

        assert [b.id for b in result.bookings] == ["good1"]
        assert result.dropped_count == 2

    def test_object_id_wrapper(self):
        booking = normalize({"_id": {"$oid": "abc123"}}, SourceType.REGULAR)

        assert booking.id == "abc123"


class TestMerge:
    """merge_sources()"""

    def test_three_regular_two_housekeeping_one_malformed(self, make_raw, raw_housekeeping_booking):
        regular = [make_raw(_id="r1"), make_raw(_id="r2"), make_raw(_id=None)]
        housekeeping = [
            dict(raw_housekeeping_booking, _id="h1"),
            dict(raw_housekeeping_booking, _id="h2"),
        ]

        result = merge_sources(regular, housekeeping)

        assert len(result.bookings) == 4
        assert result.dropped_count == 1
        assert [b.id for b in result.bookings] == ["r1", "r2", "h1", "h2"]
        assert result.partial is False

    def test_failed_sources_are_reported(self, make_raw):
        result = merge_sources([make_raw(_id="r1")], [], failed_sources=[SourceType.HOUSEKEEPING])

        assert result.partial is True
        assert result.failed_sources == [SourceType.HOUSEKEEPING]

    def test_duplicate_ids_within_source_keep_first(self, make_raw):
        result = merge_sources([make_raw(_id="r1", status="pending"), make_raw(_id="r1", status="completed")], [])

        assert len(result.bookings) == 1
        assert result.bookings[0].status == BookingStatus.PENDING

    def test_normalize_many_counts_drops(self, make_raw):
        bookings, dropped = normalize_many([make_raw(_id="a"), "junk", {}], SourceType.REGULAR)

        assert [b.id for b in bookings] == ["a"]
        assert dropped == 2


class TestNormalizationTotality:
    """Every well-formed record yields a booking satisfying the invariants."""

    @pytest.mark.parametrize("pricing", [
        {"basePrice": 0, "totalAmount": 0},
        {"basePrice": 10, "totalAmount": 9.99},
        {"basePrice": -5, "totalAmount": 3},
        {"totalAmount": 12},
        {},
    ])
    @pytest.mark.parametrize("source", list(SourceType))
    def test_invariants_hold(self, make_raw, pricing, source):
        booking = normalize(make_raw(pricing=pricing), source)

        assert booking.id
        assert booking.pricing.total_amount >= booking.pricing.base_price
        assert booking.booking_config.kind in {"laundry", "menu", "transportation", "housekeeping", "generic"}


class TestParseTimestamp:

    def test_iso_with_z(self):
        assert parse_timestamp("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-02T03:04:05").tzinfo == timezone.utc

    def test_epoch_millis(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday", object()])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None
