# api/serializers.py
"""JSON shapes for domain results. Amounts are rendered as 2-decimal strings."""
from typing import Optional

from config.settings import settings
from models.domain import Route, Subscription, format_amount
from services.eligibility import WeekdayOptions
from services.pricing import CostQuote
from services.weekdays import weekday_name


def _amount(value) -> Optional[str]:
    return format_amount(value) if value is not None else None


def quote_payload(quote: CostQuote) -> dict:
    return {
        "route_id": quote.route_id,
        "weekdays": list(quote.weekdays),
        "available": quote.available,
        "reason": quote.reason,
        "currency": settings.CURRENCY,
        "price_per_seat": _amount(quote.price_per_seat),
        # null (never "0.00") when the price is unknown
        "monthly_total": _amount(quote.monthly_total),
        "billing_period": {"start": quote.window.start.isoformat(), "end": quote.window.end.isoformat()},
        "serviceable_days": quote.serviceable_days,
        "blackout_days_excluded": quote.blackout_days_excluded,
        "breakdown": [
            {
                "weekday": c.weekday,
                "name": weekday_name(c.weekday),
                "occurrences": c.occurrences,
                "blackout_days": c.blackout_days,
                "serviceable_days": c.serviceable_days,
                "amount": format_amount(c.amount),
            }
            for c in quote.breakdown
        ],
    }


def weekday_options_payload(route: Route, options: WeekdayOptions) -> dict:
    return {
        "route_id": route.id,
        "no_operating_days": options.no_operating_days,
        "selectable": list(options.selectable_days),
        "options": [
            {
                "weekday": o.day,
                "name": o.name,
                "operates": o.operates,
                "already_subscribed": o.already_subscribed,
                "selectable": o.selectable,
            }
            for o in options.options
        ],
    }


def subscription_payload(sub: Subscription) -> dict:
    data = sub.model_dump(mode="json")
    data["weekday_names"] = sub.weekday_names
    return data
