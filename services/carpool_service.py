# services/carpool_service.py
"""
In-memory carpool store.

Used when the DB is disabled (local dev, tests). Catalog data is seeded from a
JSON file shaped like:

    {"routes": [...], "pickup_points": [...], "time_slots": [...], "blackout_dates": [...]}

All mutations run under one asyncio.Lock so a purchase checks the weekday
invariant, checks the balance, debits and creates in a single critical section.
"""
import asyncio
import json
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from config.settings import settings
from core.errors import SubscriptionNotFound, WeekdayAlreadySubscribed
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
)
from services import lifecycle
from services.carpool_store import CarpoolStore
from services.funding import PurchaseOutcome, check_funding
from services.pricing import CostQuote

logger = logging.getLogger(__name__)


class InMemoryCarpoolStore(CarpoolStore):
    def __init__(self, catalog: Optional[dict] = None):
        self.routes: Dict[str, Route] = {}
        self.pickup_points: Dict[str, PickupPoint] = {}
        self.time_slots: Dict[str, TimeSlot] = {}
        self.blackout_dates: Dict[str, BlackoutDate] = {}
        self.subscriptions: Dict[str, Subscription] = {}
        self.wallets: Dict[str, Wallet] = {}  # user_id -> wallet
        self.transactions: List[WalletTransaction] = []
        self._lock = asyncio.Lock()
        if catalog:
            self.load_catalog(catalog)

    @classmethod
    def from_file(cls, path: str) -> "InMemoryCarpoolStore":
        store = cls()
        if not os.path.exists(path):
            logger.warning("Catalog file %s not found; starting with an empty catalog", path)
            return store
        with open(path, "r", encoding="utf-8") as f:
            store.load_catalog(json.load(f))
        logger.info("Loaded %d routes from %s", len(store.routes), path)
        return store

    def load_catalog(self, catalog: dict) -> None:
        for raw in catalog.get("routes", []):
            route = Route(**raw)
            self.routes[route.id] = route
        for raw in catalog.get("pickup_points", []):
            point = PickupPoint(**raw)
            self.pickup_points[point.id] = point
        for raw in catalog.get("time_slots", []):
            slot = TimeSlot(**raw)
            self.time_slots[slot.id] = slot
        for raw in catalog.get("blackout_dates", []):
            blackout = BlackoutDate(**raw)
            self.blackout_dates[blackout.id] = blackout

    # ------------- CATALOG -------------
    async def list_routes(self, include_inactive: bool = False) -> List[Route]:
        routes = [r for r in self.routes.values() if include_inactive or r.is_active]
        return sorted(routes, key=lambda r: r.name)

    async def get_route(self, route_id: str) -> Optional[Route]:
        return self.routes.get(route_id)

    async def list_pickup_points(self, route_id: str, point_type: Optional[PointType] = None,
                                 include_hidden: bool = False) -> List[PickupPoint]:
        points = [
            p for p in self.pickup_points.values()
            if p.route_id == route_id
            and (point_type is None or p.point_type == point_type)
            and (include_hidden or p.is_visible)
        ]
        return sorted(points, key=lambda p: p.sequence_order)

    async def list_time_slots(self, route_id: str) -> List[TimeSlot]:
        slots = [s for s in self.time_slots.values() if s.route_id == route_id and s.is_active]
        return sorted(slots, key=lambda s: s.departure_time)

    async def list_blackout_dates(self, route_id: Optional[str] = None, start: Optional[date] = None,
                                  end: Optional[date] = None) -> List[BlackoutDate]:
        result = []
        for b in self.blackout_dates.values():
            if route_id is not None and not b.applies_to(route_id):
                continue
            if start is not None and b.end_date < start:
                continue
            if end is not None and b.start_date > end:
                continue
            result.append(b)
        return sorted(result, key=lambda b: b.start_date)

    # ------------- SUBSCRIPTIONS -------------
    async def list_subscriptions(self, user_id: Optional[str] = None, active_only: bool = False) -> List[Subscription]:
        subs = [
            s for s in self.subscriptions.values()
            if (user_id is None or s.user_id == user_id)
            and (not active_only or s.status == SubscriptionStatus.ACTIVE)
        ]
        return sorted(subs, key=lambda s: s.created_at, reverse=True)

    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        return self.subscriptions.get(subscription_id)

    async def _set_status(self, subscription_id: str, status: SubscriptionStatus) -> Subscription:
        async with self._lock:
            sub = self.subscriptions.get(subscription_id)
            if sub is None:
                raise SubscriptionNotFound(f"Subscription {subscription_id} not found")
            sub = sub.model_copy(update={"status": status, "updated_at": datetime.utcnow()})
            self.subscriptions[subscription_id] = sub
            return sub

    async def _commit_purchase(self, order: PurchaseOrder, quote: CostQuote, end_date: date) -> PurchaseOutcome:
        fee = quote.require_total()
        async with self._lock:
            held = set()
            for s in self.subscriptions.values():
                if s.user_id == order.user_id and s.route_id == order.route_id and lifecycle.holds_weekdays(s.status):
                    held.update(s.weekdays)
            overlap = sorted(held.intersection(order.weekdays))
            if overlap:
                raise WeekdayAlreadySubscribed("Already subscribed on this route for the selected weekdays",
                                               data={"weekdays": overlap})

            wallet = self._wallet(order.user_id)
            decision = check_funding(order.payment_method, fee, Decimal(wallet.balance))
            if not decision.proceed:
                return PurchaseOutcome(quote=quote, funding=decision)

            sub = Subscription(
                user_id=order.user_id,
                route_id=order.route_id,
                weekdays=list(order.weekdays),
                time_slot_id=order.time_slot_id,
                pickup_point_id=order.pickup_point_id,
                drop_off_point_id=order.drop_off_point_id,
                monthly_fee=fee,
                payment_method=order.payment_method,
                start_date=order.start_date,
                end_date=end_date,
            )
            if decision.requires_debit and fee > 0:
                self.wallets[order.user_id] = wallet.model_copy(update={"balance": Decimal(wallet.balance) - fee})
                self.transactions.append(WalletTransaction(
                    wallet_id=wallet.id,
                    amount=fee,
                    type=TransactionType.DEBIT,
                    description="Carpool subscription purchase",
                    reference_id=sub.id,
                ))
            self.subscriptions[sub.id] = sub
            return PurchaseOutcome(quote=quote, subscription=sub, funding=decision)

    # ------------- WALLET -------------
    def _wallet(self, user_id: str) -> Wallet:
        wallet = self.wallets.get(user_id)
        if wallet is None:
            wallet = Wallet(user_id=user_id)
            self.wallets[user_id] = wallet
        return wallet

    async def get_wallet(self, user_id: str) -> Wallet:
        return self._wallet(user_id)

    async def wallet_transactions(self, user_id: str) -> List[WalletTransaction]:
        wallet = self._wallet(user_id)
        txns = [t for t in self.transactions if t.wallet_id == wallet.id]
        return sorted(txns, key=lambda t: t.created_at, reverse=True)

    async def _credit(self, user_id: str, amount: Decimal, description: str) -> WalletTransaction:
        async with self._lock:
            wallet = self._wallet(user_id)
            self.wallets[user_id] = wallet.model_copy(update={"balance": Decimal(wallet.balance) + amount})
            txn = WalletTransaction(wallet_id=wallet.id, amount=amount, type=TransactionType.CREDIT, description=description)
            self.transactions.append(txn)
            return txn

    # ------------- ADMIN -------------
    async def upsert_route(self, route: Route) -> Route:
        async with self._lock:
            self.routes[route.id] = route
        return route

    async def add_pickup_point(self, point: PickupPoint) -> PickupPoint:
        async with self._lock:
            await self.require_route(point.route_id)
            self.pickup_points[point.id] = point
        return point

    async def add_time_slot(self, slot: TimeSlot) -> TimeSlot:
        async with self._lock:
            await self.require_route(slot.route_id)
            self.time_slots[slot.id] = slot
        return slot

    async def add_blackout_date(self, blackout: BlackoutDate) -> BlackoutDate:
        async with self._lock:
            if blackout.route_id is not None:
                await self.require_route(blackout.route_id)
            self.blackout_dates[blackout.id] = blackout
        return blackout

    async def delete_blackout_date(self, blackout_id: str) -> bool:
        async with self._lock:
            return self.blackout_dates.pop(blackout_id, None) is not None


# singleton used when the DB is disabled
carpool_store = InMemoryCarpoolStore.from_file(settings.CATALOG_DATA_FILE)
