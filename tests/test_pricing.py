from datetime import date
from decimal import Decimal

import pytest

from core.errors import CostUnavailable
from models.domain import BlackoutDate, Route, format_amount
from services.pricing import BillingWindow, calculate_cost, occurrences

FEB_2026 = BillingWindow(date(2026, 2, 1), date(2026, 2, 28))  # every weekday occurs 4 times


def _route(price="50", weekdays=(0, 1, 2, 3, 4), route_id="r1"):
    return Route(id=route_id, name="R1", from_location="A", to_location="B",
                 price_per_seat=Decimal(price) if price is not None else None, weekdays=list(weekdays))


def test_documented_example_two_weekdays_one_blackout():
    blackout = BlackoutDate(name="Holiday", start_date=date(2026, 2, 11), end_date=date(2026, 2, 11), route_id="r1")
    quote = calculate_cost(_route(), ["monday", "wednesday"], [blackout], FEB_2026)
    assert quote.monthly_total == Decimal("350")
    assert quote.serviceable_days == 7
    assert quote.blackout_days_excluded == 1
    by_day = {c.weekday: c for c in quote.breakdown}
    assert by_day[1].occurrences == 4 and by_day[1].blackout_days == 0
    assert by_day[3].occurrences == 4 and by_day[3].blackout_days == 1


def test_exact_calendar_counting():
    nov = BillingWindow.next_month(date(2026, 10, 18))
    assert nov == BillingWindow(date(2026, 11, 1), date(2026, 11, 30))
    assert len(occurrences(nov, 0)) == 5  # Sundays
    assert len(occurrences(nov, 1)) == 5  # Mondays
    assert len(occurrences(nov, 2)) == 4
    quote = calculate_cost(_route(price="120"), [1, 3], [], nov)
    assert quote.monthly_total == Decimal("1080")


def test_single_weekday_fee_is_serviceable_days_times_price():
    blackout = BlackoutDate(name="Week off", start_date=date(2026, 2, 1), end_date=date(2026, 2, 28))
    quote = calculate_cost(_route(price="75.50"), [2], [blackout], FEB_2026)
    # every Tuesday blacked out: fee is zero, never negative
    assert quote.monthly_total == Decimal("0")
    assert quote.serviceable_days == 0
    assert quote.blackout_days_excluded == 4


def test_blackout_for_other_route_is_ignored():
    other = BlackoutDate(name="Other", start_date=date(2026, 2, 2), end_date=date(2026, 2, 2), route_id="r2")
    network_wide = BlackoutDate(name="All", start_date=date(2026, 2, 9), end_date=date(2026, 2, 9))
    quote = calculate_cost(_route(), [1], [other, network_wide], FEB_2026)
    assert quote.serviceable_days == 3
    assert quote.monthly_total == Decimal("150")


def test_zero_weekdays_costs_exactly_zero():
    quote = calculate_cost(_route(), [], [], FEB_2026)
    assert quote.available
    assert quote.monthly_total == Decimal("0")
    assert quote.serviceable_days == 0


def test_missing_price_is_unavailable_not_zero():
    quote = calculate_cost(_route(price=None), [1], [], FEB_2026)
    assert not quote.available
    assert quote.monthly_total is None
    with pytest.raises(CostUnavailable):
        quote.require_total()


def test_missing_route_is_unavailable():
    quote = calculate_cost(None, [1], [], FEB_2026, route_id="ghost")
    assert quote.monthly_total is None
    assert quote.route_id == "ghost"
    assert quote.reason == "Route not found"


def test_partial_window_from_start_date():
    window = BillingWindow.starting(date(2026, 2, 20))
    assert window.end == date(2026, 2, 28)
    quote = calculate_cost(_route(), [1], [], window)  # Mondays 23
    assert quote.serviceable_days == 1


def test_next_month_rolls_over_year():
    assert BillingWindow.next_month(date(2026, 12, 31)) == BillingWindow(date(2027, 1, 1), date(2027, 1, 31))


def test_format_amount_rounds_half_up():
    assert format_amount(Decimal("10.005")) == "10.01"
    assert format_amount(Decimal("350")) == "350.00"


def test_weekday_route_does_not_run_on_is_unavailable():
    quote = calculate_cost(_route(), [1, 6], [], FEB_2026)
    assert not quote.available
    assert quote.monthly_total is None
    assert quote.reason == "Route does not operate on saturday"


def test_retired_route_is_unavailable():
    retired = _route().model_copy(update={"is_active": False})
    quote = calculate_cost(retired, [1], [], FEB_2026)
    assert not quote.available
    with pytest.raises(CostUnavailable):
        quote.require_total()
