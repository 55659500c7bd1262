# api/routes_subscriptions.py
from datetime import date

from fastapi import APIRouter, Depends

from api.deps import get_carpool_store, get_today
from api.serializers import quote_payload, subscription_payload
from core.auth import get_current_user
from core.errors import InsufficientBalance
from core.response import ok
from models.domain import PurchaseOrder, format_amount
from models.schemas import CostQuoteRequest, PurchaseRequest
from services.carpool_store import CarpoolStore
from services.pricing import BillingWindow
from services.weekdays import WEEKDAY_NAMES

router = APIRouter()


@router.post("/calculate-cost")
async def calculate_cost(
    req: CostQuoteRequest,
    user: dict = Depends(get_current_user),
    store: CarpoolStore = Depends(get_carpool_store),
    today: date = Depends(get_today),
):
    """
    Quote the monthly fee for a weekday selection.

    An unknown route or unpriced route still answers 200 with
    available=false and monthly_total=null so the client can show "unknown".
    """
    window = BillingWindow.starting(req.start_date) if req.start_date else BillingWindow.next_month(today)
    quote = await store.quote(req.route_id, req.weekdays, window)
    return ok(quote_payload(quote))


@router.get("/weekdays")
async def subscribed_weekdays(user: dict = Depends(get_current_user), store: CarpoolStore = Depends(get_carpool_store)):
    held = await store.subscribed_weekdays(user["user_id"])
    return ok({
        route_id: {"weekdays": days, "names": [WEEKDAY_NAMES[d] for d in days]}
        for route_id, days in held.items()
    })


@router.post("/purchase", status_code=201)
async def purchase(
    req: PurchaseRequest,
    user: dict = Depends(get_current_user),
    store: CarpoolStore = Depends(get_carpool_store),
    today: date = Depends(get_today),
):
    order = PurchaseOrder(
        user_id=user["user_id"],
        route_id=req.route_id,
        weekdays=req.weekdays,
        time_slot_id=req.time_slot_id or "",
        pickup_point_id=req.pickup_point_id or "",
        drop_off_point_id=req.drop_off_point_id or "",
        start_date=req.start_date or BillingWindow.next_month(today).start,
        payment_method=req.payment_method,
    )
    outcome = await store.purchase(order, today)
    if outcome.insufficient_balance:
        funding = outcome.funding
        raise InsufficientBalance(
            "Insufficient wallet balance",
            data={
                "required": format_amount(funding.fee),
                "balance": format_amount(funding.balance),
                "shortfall": format_amount(funding.shortfall),
            },
        )
    return ok({
        "subscription": subscription_payload(outcome.subscription),
        "quote": quote_payload(outcome.quote),
    })


@router.get("")
async def list_subscriptions(user: dict = Depends(get_current_user), store: CarpoolStore = Depends(get_carpool_store)):
    subs = await store.list_subscriptions(user["user_id"])
    return ok([subscription_payload(s) for s in subs])


@router.get("/active")
async def list_active_subscriptions(user: dict = Depends(get_current_user),
                                    store: CarpoolStore = Depends(get_carpool_store)):
    subs = await store.list_subscriptions(user["user_id"], active_only=True)
    return ok([subscription_payload(s) for s in subs])


@router.post("/{subscription_id}/cancel")
async def cancel_subscription(
    subscription_id: str,
    user: dict = Depends(get_current_user),
    store: CarpoolStore = Depends(get_carpool_store),
):
    """Moves an active subscription to pending_cancellation. Repeating the call is a no-op."""
    sub, changed = await store.cancel_subscription(user["user_id"], subscription_id)
    return ok({"subscription": subscription_payload(sub), "changed": changed})
