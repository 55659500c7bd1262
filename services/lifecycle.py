# services/lifecycle.py
"""
Subscription lifecycle state machine.

    active --cancel_requested--> pending_cancellation (usable until end date)
    pending_cancellation --cancel_requested--> pending_cancellation (no-op)
    pending_cancellation --period_elapsed--> cancelled
    active --period_elapsed--> expired

Only cancel_requested is triggered by this service; period_elapsed belongs to
the renewal scheduler.
"""
from enum import Enum
from typing import Tuple

from core.errors import InvalidTransition
from models.domain import SubscriptionStatus


class LifecycleEvent(str, Enum):
    CANCEL_REQUESTED = "cancel_requested"
    PERIOD_ELAPSED = "period_elapsed"


TRANSITIONS = {
    (SubscriptionStatus.ACTIVE, LifecycleEvent.CANCEL_REQUESTED): SubscriptionStatus.PENDING_CANCELLATION,
    (SubscriptionStatus.PENDING_CANCELLATION, LifecycleEvent.CANCEL_REQUESTED): SubscriptionStatus.PENDING_CANCELLATION,
    (SubscriptionStatus.PENDING_CANCELLATION, LifecycleEvent.PERIOD_ELAPSED): SubscriptionStatus.CANCELLED,
    (SubscriptionStatus.ACTIVE, LifecycleEvent.PERIOD_ELAPSED): SubscriptionStatus.EXPIRED,
}

TERMINAL = frozenset({SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED})


def transition(status: SubscriptionStatus, event: LifecycleEvent) -> SubscriptionStatus:
    status = SubscriptionStatus(status)
    try:
        return TRANSITIONS[(status, LifecycleEvent(event))]
    except KeyError:
        raise InvalidTransition(
            f"Cannot apply {LifecycleEvent(event).value} to a {status.value} subscription",
            data={"status": status.value},
        )


def request_cancellation(status: SubscriptionStatus) -> Tuple[SubscriptionStatus, bool]:
    """Returns (new_status, changed). Re-cancelling a pending subscription is a no-op."""
    new_status = transition(status, LifecycleEvent.CANCEL_REQUESTED)
    return new_status, new_status != SubscriptionStatus(status)


def holds_weekdays(status: SubscriptionStatus) -> bool:
    """Live subscriptions block the same (route, weekday) for the customer."""
    return SubscriptionStatus(status) in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING_CANCELLATION)
