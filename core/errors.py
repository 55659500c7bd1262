"""
Domain error hierarchy.

Every error carries a machine-readable `code` and the HTTP status the
centralized handlers in core.exception_handlers map it to.
"""
from typing import Any, Optional


class CarpoolError(Exception):
    code = "carpool_error"
    status_code = 400

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationFailed(CarpoolError):
    """Client-side style validation: missing selections, bad amounts."""
    code = "validation_failed"
    status_code = 422


class NotFound(CarpoolError):
    code = "not_found"
    status_code = 404


class RouteNotFound(NotFound):
    code = "route_not_found"


class SubscriptionNotFound(NotFound):
    code = "subscription_not_found"


class WeekdayNotSelectable(CarpoolError):
    code = "weekday_not_selectable"
    status_code = 422


class WeekdayAlreadySubscribed(CarpoolError):
    code = "weekday_already_subscribed"
    status_code = 409


class CostUnavailable(CarpoolError):
    """Pricing data missing; never coerced to a zero fee."""
    code = "cost_unavailable"
    status_code = 409


class InvalidTransition(CarpoolError):
    code = "invalid_transition"
    status_code = 409


class Forbidden(CarpoolError):
    code = "forbidden"
    status_code = 403


class InsufficientBalance(CarpoolError):
    """Online purchase with wallet balance below the fee. `data` carries the shortfall."""
    code = "insufficient_balance"
    status_code = 402
