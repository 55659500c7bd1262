"""
DB-backed carpool store using async SQLAlchemy.

It is *only* used when:
- USE_DB=true
- MYSQL_ASYNC_URL is not "disabled"
- an AsyncSession is available

Purchase runs as one transaction. The wallet row is locked first (SELECT ...
FOR UPDATE), so one customer's purchases run one at a time; only then are the
live subscriptions on the route read and the balance checked. The debit, its
ledger row and the subscription are committed together. Any failure rolls
the whole unit back.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import SubscriptionNotFound, WeekdayAlreadySubscribed
from models import db_models as orm
from models.domain import (
    BlackoutDate,
    PickupPoint,
    PointType,
    PurchaseOrder,
    Route,
    Subscription,
    SubscriptionStatus,
    TimeSlot,
    TransactionType,
    Wallet,
    WalletTransaction,
    new_id,
)
from services.carpool_store import CarpoolStore
from services.funding import PurchaseOutcome, check_funding
from services.pricing import CostQuote

logger = logging.getLogger(__name__)

LIVE_STATUSES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PENDING_CANCELLATION.value)


class CarpoolDBStore(CarpoolStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------- CATALOG -------------
    async def list_routes(self, include_inactive: bool = False) -> List[Route]:
        stmt = select(orm.CarpoolRoute).order_by(orm.CarpoolRoute.name)
        if not include_inactive:
            stmt = stmt.where(orm.CarpoolRoute.is_active == True)  # noqa: E712
        result = await self.session.execute(stmt)
        return [self._route_to_domain(r) for r in result.scalars().all()]

    async def get_route(self, route_id: str) -> Optional[Route]:
        row = await self.session.get(orm.CarpoolRoute, route_id)
        return self._route_to_domain(row) if row else None

    async def list_pickup_points(self, route_id: str, point_type: Optional[PointType] = None,
                                 include_hidden: bool = False) -> List[PickupPoint]:
        stmt = select(orm.CarpoolPickupPoint).where(orm.CarpoolPickupPoint.route_id == route_id)
        if point_type is not None:
            stmt = stmt.where(orm.CarpoolPickupPoint.point_type == PointType(point_type).value)
        if not include_hidden:
            stmt = stmt.where(orm.CarpoolPickupPoint.is_visible == True)  # noqa: E712
        stmt = stmt.order_by(orm.CarpoolPickupPoint.sequence_order)
        result = await self.session.execute(stmt)
        return [self._point_to_domain(p) for p in result.scalars().all()]

    async def list_time_slots(self, route_id: str) -> List[TimeSlot]:
        stmt = (
            select(orm.CarpoolTimeSlot)
            .where(orm.CarpoolTimeSlot.route_id == route_id)
            .where(orm.CarpoolTimeSlot.is_active == True)  # noqa: E712
            .order_by(orm.CarpoolTimeSlot.departure_time)
        )
        result = await self.session.execute(stmt)
        return [self._slot_to_domain(s) for s in result.scalars().all()]

    async def list_blackout_dates(self, route_id: Optional[str] = None, start: Optional[date] = None,
                                  end: Optional[date] = None) -> List[BlackoutDate]:
        stmt = select(orm.BlackoutDate)
        if route_id is not None:
            stmt = stmt.where(or_(orm.BlackoutDate.route_id == route_id, orm.BlackoutDate.route_id.is_(None)))
        if start is not None:
            stmt = stmt.where(orm.BlackoutDate.end_date >= start)
        if end is not None:
            stmt = stmt.where(orm.BlackoutDate.start_date <= end)
        result = await self.session.execute(stmt.order_by(orm.BlackoutDate.start_date))
        return [self._blackout_to_domain(b) for b in result.scalars().all()]

    # ------------- SUBSCRIPTIONS -------------
    async def list_subscriptions(self, user_id: Optional[str] = None, active_only: bool = False) -> List[Subscription]:
        stmt = select(orm.Subscription)
        if user_id is not None:
            stmt = stmt.where(orm.Subscription.user_id == user_id)
        if active_only:
            stmt = stmt.where(orm.Subscription.status == SubscriptionStatus.ACTIVE.value)
        result = await self.session.execute(stmt.order_by(orm.Subscription.created_at.desc()))
        return [self._sub_to_domain(s) for s in result.scalars().all()]

    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        row = await self.session.get(orm.Subscription, subscription_id)
        return self._sub_to_domain(row) if row else None

    async def _set_status(self, subscription_id: str, status: SubscriptionStatus) -> Subscription:
        try:
            result = await self.session.execute(
                select(orm.Subscription).where(orm.Subscription.id == subscription_id).with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise SubscriptionNotFound(f"Subscription {subscription_id} not found")
            row.status = SubscriptionStatus(status).value
            row.updated_at = datetime.utcnow()
            await self.session.flush()
            sub = self._sub_to_domain(row)
            await self.session.commit()
            return sub
        except Exception:
            await self.session.rollback()
            raise

    async def _commit_purchase(self, order: PurchaseOrder, quote: CostQuote, end_date: date) -> PurchaseOutcome:
        fee = quote.require_total()
        try:
            wallet = await self._wallet_row(order.user_id, lock=True)
            result = await self.session.execute(
                select(orm.Subscription)
                .where(orm.Subscription.user_id == order.user_id)
                .where(orm.Subscription.route_id == order.route_id)
                .where(orm.Subscription.status.in_(LIVE_STATUSES))
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            held = set()
            for row in result.scalars().all():
                held.update(row.weekdays or [])
            overlap = sorted(held.intersection(order.weekdays))
            if overlap:
                raise WeekdayAlreadySubscribed("Already subscribed on this route for the selected weekdays",
                                               data={"weekdays": overlap})

            decision = check_funding(order.payment_method, fee, Decimal(wallet.balance))
            if not decision.proceed:
                await self.session.rollback()
                return PurchaseOutcome(quote=quote, funding=decision)

            sub_row = orm.Subscription(
                id=new_id(),
                user_id=order.user_id,
                route_id=order.route_id,
                weekdays=list(order.weekdays),
                time_slot_id=order.time_slot_id,
                pickup_point_id=order.pickup_point_id,
                drop_off_point_id=order.drop_off_point_id,
                monthly_fee=fee,
                payment_method=order.payment_method.value,
                status=SubscriptionStatus.ACTIVE.value,
                start_date=order.start_date,
                end_date=end_date,
            )
            self.session.add(sub_row)
            if decision.requires_debit and fee > 0:
                wallet.balance = Decimal(wallet.balance) - fee
                wallet.updated_at = datetime.utcnow()
                self.session.add(orm.WalletTransaction(
                    id=new_id(),
                    wallet_id=wallet.id,
                    amount=fee,
                    type=TransactionType.DEBIT.value,
                    description="Carpool subscription purchase",
                    reference_id=sub_row.id,
                ))
            await self.session.flush()
            sub = self._sub_to_domain(sub_row)
            await self.session.commit()
            return PurchaseOutcome(quote=quote, subscription=sub, funding=decision)
        except Exception:
            await self.session.rollback()
            raise

    # ------------- WALLET -------------
    async def _ensure_wallet(self, user_id: str) -> None:
        """
        Create the zero-balance wallet in its own short transaction.

        Must run before anything else is written in the current transaction.
        Losing an insert race to another request hits the unique user_id
        index; that wallet is then used as is.
        """
        result = await self.session.execute(select(orm.Wallet.id).where(orm.Wallet.user_id == user_id))
        if result.scalar_one_or_none() is not None:
            return
        self.session.add(orm.Wallet(id=new_id(), user_id=user_id, balance=Decimal("0")))
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Wallet for user=%s created concurrently; reusing it", user_id)

    async def _wallet_row(self, user_id: str, lock: bool = False) -> orm.Wallet:
        """Fetch (optionally locking) the customer's wallet, creating it at zero balance."""
        await self._ensure_wallet(user_id)
        stmt = select(orm.Wallet).where(orm.Wallet.user_id == user_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def get_wallet(self, user_id: str) -> Wallet:
        row = await self._wallet_row(user_id)
        wallet = self._wallet_to_domain(row)
        await self.session.commit()
        return wallet

    async def wallet_transactions(self, user_id: str) -> List[WalletTransaction]:
        stmt = (
            select(orm.WalletTransaction)
            .join(orm.Wallet, orm.Wallet.id == orm.WalletTransaction.wallet_id)
            .where(orm.Wallet.user_id == user_id)
            .order_by(orm.WalletTransaction.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [self._txn_to_domain(t) for t in result.scalars().all()]

    async def _credit(self, user_id: str, amount: Decimal, description: str) -> WalletTransaction:
        try:
            wallet = await self._wallet_row(user_id, lock=True)
            wallet.balance = Decimal(wallet.balance) + amount
            wallet.updated_at = datetime.utcnow()
            txn = orm.WalletTransaction(
                id=new_id(),
                wallet_id=wallet.id,
                amount=amount,
                type=TransactionType.CREDIT.value,
                description=description,
            )
            self.session.add(txn)
            await self.session.flush()
            result = self._txn_to_domain(txn)
            await self.session.commit()
            return result
        except Exception:
            await self.session.rollback()
            raise

    # ------------- ADMIN -------------
    async def upsert_route(self, route: Route) -> Route:
        try:
            row = await self.session.get(orm.CarpoolRoute, route.id)
            if row is None:
                row = orm.CarpoolRoute(id=route.id)
                self.session.add(row)
            for field in ("name", "from_location", "to_location", "from_latitude", "from_longitude",
                          "to_latitude", "to_longitude", "price_per_seat", "estimated_distance",
                          "description", "is_active"):
                setattr(row, field, getattr(route, field))
            row.weekdays = list(route.weekdays)
            row.updated_at = datetime.utcnow()
            await self.session.flush()
            saved = self._route_to_domain(row)
            await self.session.commit()
            logger.info("Upserted route %s", route.id)
            return saved
        except Exception:
            await self.session.rollback()
            raise

    async def add_pickup_point(self, point: PickupPoint) -> PickupPoint:
        await self.require_route(point.route_id)
        await self.session.merge(orm.CarpoolPickupPoint(
            id=point.id, route_id=point.route_id, name=point.name, point_type=point.point_type.value,
            sequence_order=point.sequence_order, latitude=point.latitude, longitude=point.longitude,
            is_visible=point.is_visible,
        ))
        await self._commit()
        return point

    async def add_time_slot(self, slot: TimeSlot) -> TimeSlot:
        await self.require_route(slot.route_id)
        await self.session.merge(orm.CarpoolTimeSlot(
            id=slot.id, route_id=slot.route_id, departure_time=slot.departure_time, is_active=slot.is_active,
        ))
        await self._commit()
        return slot

    async def add_blackout_date(self, blackout: BlackoutDate) -> BlackoutDate:
        if blackout.route_id is not None:
            await self.require_route(blackout.route_id)
        await self.session.merge(orm.BlackoutDate(
            id=blackout.id, name=blackout.name, start_date=blackout.start_date,
            end_date=blackout.end_date, route_id=blackout.route_id,
        ))
        await self._commit()
        return blackout

    async def delete_blackout_date(self, blackout_id: str) -> bool:
        row = await self.session.get(orm.BlackoutDate, blackout_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self._commit()
        return True

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    # ------------- MAPPERS -------------
    @staticmethod
    def _route_to_domain(row: orm.CarpoolRoute) -> Route:
        return Route(
            id=row.id,
            name=row.name,
            from_location=row.from_location,
            to_location=row.to_location,
            from_latitude=row.from_latitude,
            from_longitude=row.from_longitude,
            to_latitude=row.to_latitude,
            to_longitude=row.to_longitude,
            price_per_seat=Decimal(row.price_per_seat) if row.price_per_seat is not None else None,
            weekdays=row.weekdays or [],
            estimated_distance=row.estimated_distance,
            description=row.description,
            is_active=bool(row.is_active),
        )

    @staticmethod
    def _point_to_domain(row: orm.CarpoolPickupPoint) -> PickupPoint:
        return PickupPoint(
            id=row.id,
            route_id=row.route_id,
            name=row.name,
            point_type=row.point_type,
            sequence_order=row.sequence_order or 0,
            latitude=row.latitude,
            longitude=row.longitude,
            is_visible=bool(row.is_visible),
        )

    @staticmethod
    def _slot_to_domain(row: orm.CarpoolTimeSlot) -> TimeSlot:
        return TimeSlot(id=row.id, route_id=row.route_id, departure_time=row.departure_time,
                        is_active=bool(row.is_active))

    @staticmethod
    def _blackout_to_domain(row: orm.BlackoutDate) -> BlackoutDate:
        return BlackoutDate(id=row.id, name=row.name, start_date=row.start_date,
                            end_date=row.end_date, route_id=row.route_id)

    @staticmethod
    def _sub_to_domain(row: orm.Subscription) -> Subscription:
        return Subscription(
            id=row.id,
            user_id=row.user_id,
            route_id=row.route_id,
            weekdays=list(row.weekdays or []),
            time_slot_id=row.time_slot_id,
            pickup_point_id=row.pickup_point_id,
            drop_off_point_id=row.drop_off_point_id,
            monthly_fee=Decimal(row.monthly_fee),
            payment_method=row.payment_method,
            status=row.status,
            start_date=row.start_date,
            end_date=row.end_date,
            created_at=row.created_at or datetime.utcnow(),
            updated_at=row.updated_at or datetime.utcnow(),
        )

    @staticmethod
    def _wallet_to_domain(row: orm.Wallet) -> Wallet:
        return Wallet(id=row.id, user_id=row.user_id, balance=Decimal(row.balance or 0))

    @staticmethod
    def _txn_to_domain(row: orm.WalletTransaction) -> WalletTransaction:
        return WalletTransaction(
            id=row.id,
            wallet_id=row.wallet_id,
            amount=Decimal(row.amount),
            type=row.type,
            description=row.description,
            reference_id=row.reference_id,
            created_at=row.created_at or datetime.utcnow(),
        )
