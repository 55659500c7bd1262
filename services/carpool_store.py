"""
Carpool store interface.

Both backends (in-memory for dev/tests, async SQLAlchemy for MySQL) implement
the storage primitives; the business rules that sit on top of them (quotes,
eligibility, purchase validation, cancellation) live here once.

Purchase contract:
- validation (route, slot, points, weekdays, cost) happens before any write
- _commit_purchase must re-check the weekday invariant and the wallet balance
  and then debit + record + create atomically, or change nothing
"""
import abc
import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from core.errors import (
    RouteNotFound,
    SubscriptionNotFound,
    ValidationFailed,
)
from models.domain import (
    BlackoutDate,
    PickupPoint,
    PointType,
    PurchaseOrder,
    Route,
    Subscription,
    SubscriptionStatus,
    TimeSlot,
    Wallet,
    WalletTransaction,
)
from services import lifecycle
from services.eligibility import WeekdayOptions, validate_selection, weekday_options
from services.funding import PurchaseOutcome, validate_top_up
from services.pricing import BillingWindow, CostQuote, calculate_cost

logger = logging.getLogger(__name__)


def billing_period_end(start_date: date) -> date:
    return start_date.replace(day=calendar.monthrange(start_date.year, start_date.month)[1])


class CarpoolStore(abc.ABC):

    # ------------- CATALOG -------------
    @abc.abstractmethod
    async def list_routes(self, include_inactive: bool = False) -> List[Route]: ...

    @abc.abstractmethod
    async def get_route(self, route_id: str) -> Optional[Route]: ...

    @abc.abstractmethod
    async def list_pickup_points(self, route_id: str, point_type: Optional[PointType] = None,
                                 include_hidden: bool = False) -> List[PickupPoint]: ...

    @abc.abstractmethod
    async def list_time_slots(self, route_id: str) -> List[TimeSlot]: ...

    @abc.abstractmethod
    async def list_blackout_dates(self, route_id: Optional[str] = None, start: Optional[date] = None,
                                  end: Optional[date] = None) -> List[BlackoutDate]: ...

    # ------------- SUBSCRIPTIONS -------------
    @abc.abstractmethod
    async def list_subscriptions(self, user_id: Optional[str] = None, active_only: bool = False) -> List[Subscription]: ...

    @abc.abstractmethod
    async def get_subscription(self, subscription_id: str) -> Optional[Subscription]: ...

    @abc.abstractmethod
    async def _set_status(self, subscription_id: str, status: SubscriptionStatus) -> Subscription: ...

    @abc.abstractmethod
    async def _commit_purchase(self, order: PurchaseOrder, quote: CostQuote, end_date: date) -> PurchaseOutcome: ...

    # ------------- WALLET -------------
    @abc.abstractmethod
    async def get_wallet(self, user_id: str) -> Wallet: ...

    @abc.abstractmethod
    async def wallet_transactions(self, user_id: str) -> List[WalletTransaction]: ...

    @abc.abstractmethod
    async def _credit(self, user_id: str, amount: Decimal, description: str) -> WalletTransaction: ...

    # ------------- ADMIN -------------
    @abc.abstractmethod
    async def upsert_route(self, route: Route) -> Route: ...

    @abc.abstractmethod
    async def add_pickup_point(self, point: PickupPoint) -> PickupPoint: ...

    @abc.abstractmethod
    async def add_time_slot(self, slot: TimeSlot) -> TimeSlot: ...

    @abc.abstractmethod
    async def add_blackout_date(self, blackout: BlackoutDate) -> BlackoutDate: ...

    @abc.abstractmethod
    async def delete_blackout_date(self, blackout_id: str) -> bool: ...

    # ------------- SHARED RULES -------------
    async def require_route(self, route_id: str) -> Route:
        route = await self.get_route(route_id)
        if route is None:
            raise RouteNotFound(f"Route {route_id} not found")
        return route

    async def require_active_route(self, route_id: str) -> Route:
        """Customer-facing lookup: a retired route is reported as not found."""
        route = await self.get_route(route_id)
        if route is None or not route.is_active:
            raise RouteNotFound(f"Route {route_id} not found")
        return route

    async def quote(self, route_id: str, weekdays, window: BillingWindow) -> CostQuote:
        route = await self.get_route(route_id)
        blackouts = await self.list_blackout_dates(route_id, window.start, window.end) if route else []
        return calculate_cost(route, weekdays, blackouts, window, route_id=route_id)

    async def subscribed_weekdays(self, user_id: str) -> Dict[str, List[int]]:
        """Weekdays held by live subscriptions, keyed by route id."""
        held: Dict[str, set] = {}
        for sub in await self.list_subscriptions(user_id):
            if lifecycle.holds_weekdays(sub.status):
                held.setdefault(sub.route_id, set()).update(sub.weekdays)
        return {route_id: sorted(days) for route_id, days in held.items()}

    async def weekday_options(self, user_id: Optional[str], route_id: str) -> Tuple[Route, WeekdayOptions]:
        route = await self.require_active_route(route_id)
        taken = (await self.subscribed_weekdays(user_id)).get(route_id, []) if user_id else []
        return route, weekday_options(route.weekdays, taken)

    async def top_up(self, user_id: str, amount) -> WalletTransaction:
        value = validate_top_up(amount)
        txn = await self._credit(user_id, value, "Wallet top-up")
        logger.info("Wallet top-up user=%s amount=%s", user_id, value)
        return txn

    async def _validate_order(self, order: PurchaseOrder, today: date) -> CostQuote:
        if not order.time_slot_id:
            raise ValidationFailed("Please select a time slot")
        if not order.pickup_point_id or not order.drop_off_point_id:
            raise ValidationFailed("Please select both pickup and drop-off points")
        if order.start_date < today:
            raise ValidationFailed("Start date must not be in the past")

        _, options = await self.weekday_options(order.user_id, order.route_id)
        validate_selection(options, order.weekdays)

        slots = {s.id for s in await self.list_time_slots(order.route_id)}
        if order.time_slot_id not in slots:
            raise ValidationFailed("Time slot does not belong to this route")
        pickups = {p.id for p in await self.list_pickup_points(order.route_id, PointType.PICKUP)}
        if order.pickup_point_id not in pickups:
            raise ValidationFailed("Pickup point does not belong to this route")
        dropoffs = {p.id for p in await self.list_pickup_points(order.route_id, PointType.DROPOFF)}
        if order.drop_off_point_id not in dropoffs:
            raise ValidationFailed("Drop-off point does not belong to this route")

        return await self.quote(order.route_id, order.weekdays, BillingWindow.starting(order.start_date))

    async def purchase(self, order: PurchaseOrder, today: date) -> PurchaseOutcome:
        quote = await self._validate_order(order, today)
        fee = quote.require_total()
        outcome = await self._commit_purchase(order, quote, billing_period_end(order.start_date))
        if outcome.insufficient_balance:
            logger.info("Purchase blocked for user=%s: balance %s < fee %s",
                        order.user_id, outcome.funding.balance, fee)
        else:
            logger.info("Subscription %s created for user=%s route=%s fee=%s method=%s",
                        outcome.subscription.id, order.user_id, order.route_id, fee, order.payment_method.value)
        return outcome

    async def cancel_subscription(self, user_id: str, subscription_id: str) -> Tuple[Subscription, bool]:
        sub = await self.get_subscription(subscription_id)
        if sub is None or sub.user_id != user_id:
            raise SubscriptionNotFound(f"Subscription {subscription_id} not found")
        new_status, changed = lifecycle.request_cancellation(sub.status)
        if changed:
            sub = await self._set_status(subscription_id, new_status)
            logger.info("Subscription %s moved to %s", subscription_id, new_status.value)
        return sub, changed
