# api/routes_admin.py
"""
Admin catalog management: routes, stops, time slots, blackout dates, and the
all-customers subscription view. Every endpoint requires role=admin.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from api.deps import get_carpool_store
from api.serializers import subscription_payload
from core.auth import require_admin
from core.errors import NotFound
from core.response import ok
from models.domain import BlackoutDate, PickupPoint, Route, TimeSlot, new_id
from models.schemas import BlackoutCreate, PickupPointCreate, RouteUpsert, TimeSlotCreate
from services.carpool_store import CarpoolStore

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/carpool/routes")
async def upsert_route(req: RouteUpsert, store: CarpoolStore = Depends(get_carpool_store)):
    """
    Create a route, or replace it when `id` names an existing one.

    Request JSON:
    {
      "name": "Uttara - Motijheel Express",
      "from_location": "Uttara Sector 7",
      "to_location": "Motijheel C/A",
      "price_per_seat": "120.00",
      "weekdays": [0, 1, 2, 3, 4]
    }

    Omitting price_per_seat leaves the route unpriced; quotes for it report
    the cost as unavailable.
    """
    data = req.model_dump()
    data["id"] = req.id or new_id()
    route = await store.upsert_route(Route(**data))
    return ok(route.model_dump(mode="json"))


@router.post("/carpool/routes/{route_id}/pickup-points")
async def add_pickup_point(route_id: str, req: PickupPointCreate, store: CarpoolStore = Depends(get_carpool_store)):
    point = await store.add_pickup_point(PickupPoint(route_id=route_id, **req.model_dump()))
    return ok(point.model_dump(mode="json"))


@router.post("/carpool/routes/{route_id}/time-slots")
async def add_time_slot(route_id: str, req: TimeSlotCreate, store: CarpoolStore = Depends(get_carpool_store)):
    slot = await store.add_time_slot(TimeSlot(route_id=route_id, **req.model_dump()))
    return ok(slot.model_dump(mode="json"))


@router.get("/blackout-dates")
async def list_blackout_dates(
    route_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: CarpoolStore = Depends(get_carpool_store),
):
    blackouts = await store.list_blackout_dates(route_id, start, end)
    return ok([b.model_dump(mode="json") for b in blackouts])


@router.post("/blackout-dates")
async def add_blackout_date(req: BlackoutCreate, store: CarpoolStore = Depends(get_carpool_store)):
    """route_id omitted means the blackout applies to every route."""
    blackout = await store.add_blackout_date(BlackoutDate(**req.model_dump()))
    return ok(blackout.model_dump(mode="json"))


@router.delete("/blackout-dates/{blackout_id}")
async def delete_blackout_date(blackout_id: str, store: CarpoolStore = Depends(get_carpool_store)):
    if not await store.delete_blackout_date(blackout_id):
        raise NotFound(f"Blackout date {blackout_id} not found")
    return ok({"deleted": blackout_id})


@router.get("/subscriptions")
async def list_all_subscriptions(store: CarpoolStore = Depends(get_carpool_store)):
    subs = await store.list_subscriptions()
    return ok([subscription_payload(s) for s in subs])
