"""
SQLAlchemy ORM models for the carpool database.

Purpose:
- Define route catalog (routes, pickup points, time slots, blackout dates),
  subscriptions, wallets and wallet transactions
- Use SQLAlchemy async-compatible models
- Support migrations via Alembic

Production notes:
- Money columns are NUMERIC(12, 2); never FLOAT
- wallets.user_id is unique: one wallet per customer
- The one-live-subscription-per-(route, weekday) rule spans a JSON column, so it
  is enforced by the store inside the purchase transaction, not by a constraint
"""

from sqlalchemy import Column, String, Text, Integer, Numeric, Date, DateTime, JSON, Boolean, Float, ForeignKey
from core.db import Base
from datetime import datetime
import uuid


def _uuid() -> str:
    return uuid.uuid4().hex


class CarpoolRoute(Base):
    """
    A fixed origin-destination shuttle path.

    Columns:
    - price_per_seat: per-trip price; NULL means pricing not configured
    - weekdays: JSON list of operating weekdays, 0 = Sunday
    """
    __tablename__ = "carpool_routes"

    id = Column(String(64), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    from_latitude = Column(Float, nullable=True)
    from_longitude = Column(Float, nullable=True)
    to_latitude = Column(Float, nullable=True)
    to_longitude = Column(Float, nullable=True)
    price_per_seat = Column(Numeric(12, 2), nullable=True)
    weekdays = Column(JSON, nullable=False, default=list)
    estimated_distance = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CarpoolPickupPoint(Base):
    """Pickup or drop-off stop on a route, shown in sequence_order."""
    __tablename__ = "carpool_pickup_points"

    id = Column(String(64), primary_key=True, default=_uuid)
    route_id = Column(String(64), ForeignKey("carpool_routes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    point_type = Column(String(20), nullable=False, default="pickup", index=True)  # pickup, dropoff
    sequence_order = Column(Integer, nullable=False, default=0)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_visible = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CarpoolTimeSlot(Base):
    __tablename__ = "carpool_time_slots"

    id = Column(String(64), primary_key=True, default=_uuid)
    route_id = Column(String(64), ForeignKey("carpool_routes.id"), nullable=False, index=True)
    departure_time = Column(String(5), nullable=False)  # HH:MM local
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class BlackoutDate(Base):
    """
    Inclusive date range with no service.
    route_id NULL means the blackout applies to every route.
    """
    __tablename__ = "blackout_dates"

    id = Column(String(64), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    route_id = Column(String(64), ForeignKey("carpool_routes.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Subscription(Base):
    """
    Monthly carpool subscription.

    Columns:
    - weekdays: JSON list of subscribed weekdays, 0 = Sunday
    - payment_method: online (wallet debit) or cash (paid to driver)
    - status: active, pending_cancellation, cancelled, expired
    - end_date: last day of the paid billing period
    """
    __tablename__ = "subscriptions"

    id = Column(String(64), primary_key=True, default=_uuid)
    user_id = Column(String(100), index=True, nullable=False)
    route_id = Column(String(64), ForeignKey("carpool_routes.id"), nullable=False, index=True)
    weekdays = Column(JSON, nullable=False)
    time_slot_id = Column(String(64), ForeignKey("carpool_time_slots.id"), nullable=False)
    pickup_point_id = Column(String(64), ForeignKey("carpool_pickup_points.id"), nullable=False)
    drop_off_point_id = Column(String(64), ForeignKey("carpool_pickup_points.id"), nullable=False)
    monthly_fee = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default="online")
    status = Column(String(30), nullable=False, default="active", index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(String(64), primary_key=True, default=_uuid)
    user_id = Column(String(100), unique=True, index=True, nullable=False)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class WalletTransaction(Base):
    """Ledger row: credit (top-up) or debit (subscription purchase)."""
    __tablename__ = "wallet_transactions"

    id = Column(String(64), primary_key=True, default=_uuid)
    wallet_id = Column(String(64), ForeignKey("wallets.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(10), nullable=False)  # credit, debit
    description = Column(String(255), nullable=False)
    reference_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
