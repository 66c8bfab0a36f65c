"""
Pydantic Schemas
Version: 1.0

Canonical booking model, booking config variants, query and pricing schemas.
NO DEPENDENCIES on services.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


# === ENUMS ===

class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SourceType(str, Enum):
    REGULAR = "regular"
    HOUSEKEEPING = "housekeeping"


class DateWindow(str, Enum):
    ALL = "all"
    TODAY = "today"
    YESTERDAY = "yesterday"
    WEEK = "week"
    MONTH = "month"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# === SNAPSHOTS ===

class HotelRef(BaseModel):
    """Hotel snapshot captured when the booking was placed."""
    id: Optional[str] = None
    name: str


class GuestRef(BaseModel):
    """Guest snapshot captured when the booking was placed."""
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    room_number: str


class Duration(BaseModel):
    value: float
    unit: str = "hours"


class Schedule(BaseModel):
    preferred_date: Optional[datetime] = None
    preferred_time: str
    estimated_duration: Optional[Duration] = None


class Address(BaseModel):
    address: Optional[str] = None
    instructions: Optional[str] = None


class Location(BaseModel):
    pickup: Optional[Address] = None
    delivery: Optional[Address] = None


class Pricing(BaseModel):
    """Raw pricing as stored upstream. Markup is derived, never stored."""
    base_price: float = 0.0
    total_amount: float = 0.0
    express_surcharge: Optional[float] = None
    currency: str = "USD"

    @model_validator(mode='after')
    def check_total_covers_base(self) -> 'Pricing':
        if self.total_amount < self.base_price:
            raise ValueError(
                f"total_amount {self.total_amount} is below base_price {self.base_price}"
            )
        return self


# === BOOKING CONFIG VARIANTS ===

class SelectedOption(BaseModel):
    name: str
    value: Optional[str] = None
    price_modifier: float = 0.0


class AdditionalService(BaseModel):
    name: str
    price: float = 0.0


class _ConfigBase(BaseModel):
    """Fields every booking config variant carries."""
    quantity: Optional[int] = None
    is_express: bool = False
    special_requests: Optional[str] = None
    selected_options: List[SelectedOption] = []
    additional_services: List[AdditionalService] = []


class LaundryItem(BaseModel):
    item_name: str
    item_category: Optional[str] = None
    quantity: int = 1
    service_type_id: Optional[str] = None
    service_type_name: Optional[str] = None
    base_price: float = 0.0
    final_price: float = 0.0


class LaundryConfig(_ConfigBase):
    kind: Literal["laundry"] = "laundry"
    items: List[LaundryItem] = []


class MenuItem(BaseModel):
    name: str
    item_category: Optional[str] = None
    quantity: int = 1
    price: float = 0.0
    total_price: float = 0.0
    is_vegetarian: bool = False
    is_vegan: bool = False
    spicy_level: str = "mild"
    allergens: List[str] = []
    preparation_time: int = 15
    special_instructions: Optional[str] = None


class MenuConfig(_ConfigBase):
    kind: Literal["menu"] = "menu"
    items: List[MenuItem] = []


class VehicleDetail(BaseModel):
    vehicle_type: Optional[str] = None
    comfort_level: Optional[str] = None
    passenger_capacity: Optional[int] = None
    model: Optional[str] = None
    plate: Optional[str] = None
    driver_name: Optional[str] = None


class TransportationConfig(_ConfigBase):
    kind: Literal["transportation"] = "transportation"
    vehicle: Optional[VehicleDetail] = None
    passenger_count: Optional[int] = None
    destination: Optional[str] = None


class HousekeepingConfig(_ConfigBase):
    kind: Literal["housekeeping"] = "housekeeping"
    category: str = "housekeeping"
    specific_category: Optional[str] = None
    subcategory: Optional[str] = None


class GenericConfig(_ConfigBase):
    kind: Literal["generic"] = "generic"


BookingConfig = Annotated[
    Union[LaundryConfig, MenuConfig, TransportationConfig, HousekeepingConfig, GenericConfig],
    Field(discriminator="kind")
]


# === CANONICAL BOOKING ===

class Booking(BaseModel):
    """One guest service request, merged from either booking source."""
    id: str = Field(..., min_length=1, frozen=True)
    source_type: SourceType
    display_number: str
    service_name: str
    service_category: str
    hotel_ref: HotelRef
    guest_ref: GuestRef
    status: BookingStatus = BookingStatus.PENDING
    schedule: Optional[Schedule] = None
    pricing: Pricing = Field(default_factory=Pricing)
    booking_config: BookingConfig = Field(default_factory=GenericConfig)
    location: Optional[Location] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


# === DERIVED VIEWS ===

class PricingBreakdown(BaseModel):
    base_price: float
    markup: float
    total_amount: float
    express_surcharge: Optional[float] = None
    express_requested: bool = False
    currency: str = "USD"


class QueryParams(BaseModel):
    """Filter, sort and page selection for the orders view."""
    status: str = "all"
    date: DateWindow = DateWindow.ALL
    service_type: str = "all"
    sort: str = "created_at"
    direction: SortDirection = SortDirection.DESC
    page: int = 1
    page_size: int = Field(default=10, ge=1)


class QueryResult(BaseModel):
    items: List[Booking]
    total_count: int
    total_pages: int
    page: int
    page_size: int


class MergeResult(BaseModel):
    """Merged booking collection plus what went wrong while building it."""
    bookings: List[Booking] = []
    dropped_count: int = 0
    failed_sources: List[SourceType] = []

    @property
    def partial(self) -> bool:
        return bool(self.failed_sources)


# === HTTP SCHEMAS ===

class StatusUpdateRequest(BaseModel):
    status: BookingStatus
    notes: Optional[str] = None


class OrdersPage(BaseModel):
    items: List[Dict[str, Any]]
    total_count: int
    total_pages: int
    page: int
    page_size: int
    dropped_count: int = 0
    partial: bool = False
    failed_sources: List[str] = []
