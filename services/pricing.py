# services/pricing.py
"""
Monthly cost calculator.

For each selected weekday, count its occurrences inside the billing window,
drop the ones that fall on a blackout date for the route, and charge the
remaining serviceable days at the route's price per seat.

Occurrences are counted on the real calendar (a month has 4 or 5 of each
weekday), not with a weeks-per-month approximation.
"""
import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from core.errors import CostUnavailable
from models.domain import BlackoutDate, Route
from services.weekdays import normalize_weekdays, weekday_name, weekday_of

logger = logging.getLogger(__name__)


def _month_end(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


@dataclass(frozen=True)
class BillingWindow:
    """Inclusive [start, end] date range billed as one month."""
    start: date
    end: date

    @classmethod
    def next_month(cls, today: date) -> "BillingWindow":
        first = _month_end(today) + timedelta(days=1)
        return cls(first, _month_end(first))

    @classmethod
    def starting(cls, start_date: date) -> "BillingWindow":
        """From start_date to the end of its month (remaining occurrences only)."""
        return cls(start_date, _month_end(start_date))

    def days(self) -> Iterable[date]:
        d = self.start
        while d <= self.end:
            yield d
            d += timedelta(days=1)


@dataclass(frozen=True)
class WeekdayCost:
    weekday: int
    occurrences: int
    blackout_days: int
    amount: Decimal

    @property
    def serviceable_days(self) -> int:
        return self.occurrences - self.blackout_days


@dataclass(frozen=True)
class CostQuote:
    route_id: str
    weekdays: Tuple[int, ...]
    window: BillingWindow
    price_per_seat: Optional[Decimal]
    monthly_total: Optional[Decimal]
    serviceable_days: int = 0
    blackout_days_excluded: int = 0
    breakdown: Tuple[WeekdayCost, ...] = field(default_factory=tuple)
    reason: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.monthly_total is not None

    @classmethod
    def unavailable(cls, route_id: str, weekdays: Sequence[int], window: BillingWindow, reason: str) -> "CostQuote":
        return cls(route_id=route_id, weekdays=tuple(weekdays), window=window,
                   price_per_seat=None, monthly_total=None, reason=reason)

    def require_total(self) -> Decimal:
        if self.monthly_total is None:
            raise CostUnavailable(self.reason or "Cost unavailable", data={"route_id": self.route_id})
        return self.monthly_total


def occurrences(window: BillingWindow, weekday: int) -> List[date]:
    return [d for d in window.days() if weekday_of(d) == weekday]


def calculate_cost(
    route: Optional[Route],
    weekdays: Iterable,
    blackouts: Iterable[BlackoutDate],
    window: BillingWindow,
    route_id: Optional[str] = None,
) -> CostQuote:
    """
    Quote the fee for `weekdays` on `route` within `window`.

    Returns an unavailable quote (monthly_total=None) when the route is
    missing or retired, does not run on one of the selected weekdays, or has
    no price, so callers can never mistake it for a free subscription.
    """
    days = normalize_weekdays(weekdays)
    rid = route.id if route is not None else (route_id or "")
    if route is None:
        return CostQuote.unavailable(rid, days, window, "Route not found")
    if not route.is_active:
        return CostQuote.unavailable(rid, days, window, "Route is not active")
    idle = [d for d in days if d not in route.weekdays]
    if idle:
        names = ", ".join(weekday_name(d) for d in idle)
        return CostQuote.unavailable(rid, days, window, f"Route does not operate on {names}")
    if route.price_per_seat is None:
        logger.warning("Route %s has no price configured; cost unavailable", rid)
        return CostQuote.unavailable(rid, days, window, "Route price not configured")

    price = Decimal(route.price_per_seat)
    relevant = [b for b in blackouts if b.applies_to(rid)]

    breakdown = []
    total = Decimal("0")
    for day in days:
        dates = occurrences(window, day)
        blacked = sum(1 for d in dates if any(b.covers(d, rid) for b in relevant))
        amount = price * (len(dates) - blacked)
        total += amount
        breakdown.append(WeekdayCost(weekday=day, occurrences=len(dates), blackout_days=blacked, amount=amount))

    return CostQuote(
        route_id=rid,
        weekdays=days,
        window=window,
        price_per_seat=price,
        monthly_total=total,
        serviceable_days=sum(c.serviceable_days for c in breakdown),
        blackout_days_excluded=sum(c.blackout_days for c in breakdown),
        breakdown=tuple(breakdown),
    )
