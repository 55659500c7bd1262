# api/routes_carpool.py
"""Customer-facing catalog: routes, stops, time slots and weekday eligibility."""
from typing import Optional

from fastapi import APIRouter, Depends

from api.deps import get_carpool_store
from api.serializers import weekday_options_payload
from core.auth import get_current_user
from core.response import ok
from models.domain import PointType
from services.carpool_store import CarpoolStore

router = APIRouter()


@router.get("/routes")
async def list_routes(store: CarpoolStore = Depends(get_carpool_store)):
    routes = await store.list_routes()
    return ok([r.model_dump(mode="json") for r in routes])


@router.get("/routes/{route_id}")
async def get_route(route_id: str, store: CarpoolStore = Depends(get_carpool_store)):
    route = await store.require_active_route(route_id)
    return ok(route.model_dump(mode="json"))


@router.get("/routes/{route_id}/pickup-points")
async def list_pickup_points(
    route_id: str,
    point_type: Optional[PointType] = None,
    store: CarpoolStore = Depends(get_carpool_store),
):
    """Visible stops ordered by sequence. ?point_type=pickup|dropoff narrows the list."""
    await store.require_active_route(route_id)
    points = await store.list_pickup_points(route_id, point_type)
    return ok([p.model_dump(mode="json") for p in points])


@router.get("/routes/{route_id}/time-slots")
async def list_time_slots(route_id: str, store: CarpoolStore = Depends(get_carpool_store)):
    await store.require_active_route(route_id)
    slots = await store.list_time_slots(route_id)
    return ok([s.model_dump(mode="json") for s in slots])


@router.get("/routes/{route_id}/weekday-options")
async def weekday_options(
    route_id: str,
    user: dict = Depends(get_current_user),
    store: CarpoolStore = Depends(get_carpool_store),
):
    """
    All seven weekdays for the route, each flagged with whether the route
    operates on it and whether the caller already holds it.
    """
    route, options = await store.weekday_options(user["user_id"], route_id)
    return ok(weekday_options_payload(route, options))
