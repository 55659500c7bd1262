# models/domain.py
"""
Carpool domain models (pydantic).

These are the shapes the stores return and the API serialises. Money fields
hold Decimal internally and render as 2-decimal strings in JSON.
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Annotated, List, Optional
import re
import uuid

from pydantic import BaseModel, Field, PlainSerializer, field_validator, model_validator

from services.weekdays import normalize_weekdays, weekday_name

CENTS = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    """Display rounding: 2 places, half-up."""
    return str(Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP))


Money = Annotated[Decimal, PlainSerializer(format_amount, return_type=str, when_used="json")]

HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def new_id() -> str:
    return uuid.uuid4().hex


class PointType(str, Enum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"


class PaymentMethod(str, Enum):
    ONLINE = "online"   # wallet debit at purchase
    CASH = "cash"       # paid to the driver, no upfront debit


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PENDING_CANCELLATION = "pending_cancellation"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class Route(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    from_location: str
    to_location: str
    from_latitude: Optional[float] = None
    from_longitude: Optional[float] = None
    to_latitude: Optional[float] = None
    to_longitude: Optional[float] = None
    # None means pricing is not configured; the calculator reports "unknown"
    price_per_seat: Optional[Money] = Field(None, ge=0)
    weekdays: List[int] = Field(default_factory=list)
    estimated_distance: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("weekdays", mode="before")
    @classmethod
    def _normalize_weekdays(cls, v):
        return list(normalize_weekdays(v or []))


class PickupPoint(BaseModel):
    id: str = Field(default_factory=new_id)
    route_id: str
    name: str
    point_type: PointType = PointType.PICKUP
    sequence_order: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_visible: bool = True


class TimeSlot(BaseModel):
    id: str = Field(default_factory=new_id)
    route_id: str
    departure_time: str
    is_active: bool = True

    @field_validator("departure_time")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        if not HHMM.match(v):
            raise ValueError("departure_time must be HH:MM (24h)")
        return v


class BlackoutDate(BaseModel):
    """Inclusive date range with no service. route_id=None applies to all routes."""
    id: str = Field(default_factory=new_id)
    name: str
    start_date: date
    end_date: date
    route_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def applies_to(self, route_id: str) -> bool:
        return self.route_id is None or self.route_id == route_id

    def covers(self, day: date, route_id: str) -> bool:
        return self.applies_to(route_id) and self.start_date <= day <= self.end_date


class Subscription(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    route_id: str
    weekdays: List[int]
    time_slot_id: str
    pickup_point_id: str
    drop_off_point_id: str
    monthly_fee: Money
    payment_method: PaymentMethod
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    start_date: date
    end_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def weekday_names(self) -> List[str]:
        return [weekday_name(d) for d in self.weekdays]


class Wallet(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    balance: Money = Decimal("0")


class WalletTransaction(BaseModel):
    id: str = Field(default_factory=new_id)
    wallet_id: str
    amount: Money
    type: TransactionType
    description: str
    reference_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PurchaseOrder(BaseModel):
    """A validated purchase request bound to a customer."""
    user_id: str
    route_id: str
    weekdays: List[int]
    time_slot_id: str
    pickup_point_id: str
    drop_off_point_id: str
    start_date: date
    payment_method: PaymentMethod = PaymentMethod.ONLINE

    @field_validator("weekdays", mode="before")
    @classmethod
    def _normalize_weekdays(cls, v):
        return list(normalize_weekdays(v or []))
