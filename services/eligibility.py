# services/eligibility.py
"""
Weekday eligibility: a weekday is selectable only if the route operates on it
and the customer does not already hold a live subscription for it on that route.
"""
from dataclasses import dataclass
from typing import Iterable, Tuple

from core.errors import ValidationFailed, WeekdayAlreadySubscribed, WeekdayNotSelectable
from services.weekdays import ALL_WEEKDAYS, normalize_weekdays, weekday_name


@dataclass(frozen=True)
class WeekdayOption:
    day: int
    name: str
    operates: bool
    already_subscribed: bool

    @property
    def selectable(self) -> bool:
        return self.operates and not self.already_subscribed


@dataclass(frozen=True)
class WeekdayOptions:
    options: Tuple[WeekdayOption, ...]

    @property
    def no_operating_days(self) -> bool:
        return not any(o.operates for o in self.options)

    @property
    def selectable_days(self) -> Tuple[int, ...]:
        return tuple(o.day for o in self.options if o.selectable)


def weekday_options(route_weekdays: Iterable, subscribed_weekdays: Iterable = ()) -> WeekdayOptions:
    operating = set(normalize_weekdays(route_weekdays))
    taken = set(normalize_weekdays(subscribed_weekdays))
    return WeekdayOptions(tuple(
        WeekdayOption(day=d, name=weekday_name(d), operates=d in operating, already_subscribed=d in taken)
        for d in ALL_WEEKDAYS
    ))


def validate_selection(options: WeekdayOptions, selected: Iterable) -> Tuple[int, ...]:
    days = normalize_weekdays(selected)
    if not days:
        raise ValidationFailed("Please select at least one weekday")
    by_day = {o.day: o for o in options.options}
    closed = [d for d in days if not by_day[d].operates]
    if closed:
        names = ", ".join(weekday_name(d) for d in closed)
        raise WeekdayNotSelectable(f"Route does not operate on: {names}", data={"weekdays": closed})
    taken = [d for d in days if by_day[d].already_subscribed]
    if taken:
        names = ", ".join(weekday_name(d) for d in taken)
        raise WeekdayAlreadySubscribed(f"Already subscribed on this route for: {names}", data={"weekdays": taken})
    return days
