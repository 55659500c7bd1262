from datetime import date
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from models.domain import HHMM, PaymentMethod, PointType
from services.weekdays import normalize_weekdays

WeekdayInput = Union[int, str]


class _WeekdaySelection(BaseModel):
    weekdays: List[WeekdayInput] = Field(default_factory=list)

    @field_validator("weekdays", mode="after")
    @classmethod
    def _normalize(cls, v):
        return list(normalize_weekdays(v))


class CostQuoteRequest(_WeekdaySelection):
    route_id: str = Field(..., min_length=1)
    # billing window starts here; defaults to the first day of next month
    start_date: Optional[date] = None


class PurchaseRequest(_WeekdaySelection):
    route_id: str = Field(..., min_length=1)
    time_slot_id: Optional[str] = None
    pickup_point_id: Optional[str] = None
    drop_off_point_id: Optional[str] = None
    start_date: Optional[date] = None
    payment_method: PaymentMethod = PaymentMethod.ONLINE


class TopUpRequest(BaseModel):
    amount: Decimal


class RouteUpsert(_WeekdaySelection):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    from_location: str = Field(..., min_length=1)
    to_location: str = Field(..., min_length=1)
    from_latitude: Optional[float] = None
    from_longitude: Optional[float] = None
    to_latitude: Optional[float] = None
    to_longitude: Optional[float] = None
    price_per_seat: Optional[Decimal] = Field(None, ge=0)
    estimated_distance: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True


class PickupPointCreate(BaseModel):
    name: str = Field(..., min_length=1)
    point_type: PointType = PointType.PICKUP
    sequence_order: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_visible: bool = True


class TimeSlotCreate(BaseModel):
    departure_time: str
    is_active: bool = True

    @field_validator("departure_time")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        if not HHMM.match(v):
            raise ValueError("departure_time must be HH:MM (24h)")
        return v


class BlackoutCreate(BaseModel):
    name: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    route_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
