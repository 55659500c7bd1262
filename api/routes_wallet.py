# api/routes_wallet.py
from fastapi import APIRouter, Depends

from api.deps import get_carpool_store
from config.settings import settings
from core.auth import get_current_user
from core.response import ok
from models.schemas import TopUpRequest
from services.carpool_store import CarpoolStore

router = APIRouter()


@router.get("")
async def get_wallet(user: dict = Depends(get_current_user), store: CarpoolStore = Depends(get_carpool_store)):
    wallet = await store.get_wallet(user["user_id"])
    data = wallet.model_dump(mode="json")
    data["currency"] = settings.CURRENCY
    return ok(data)


@router.get("/transactions")
async def wallet_transactions(user: dict = Depends(get_current_user), store: CarpoolStore = Depends(get_carpool_store)):
    txns = await store.wallet_transactions(user["user_id"])
    return ok([t.model_dump(mode="json") for t in txns])


@router.post("/topup")
async def top_up(req: TopUpRequest, user: dict = Depends(get_current_user),
                 store: CarpoolStore = Depends(get_carpool_store)):
    """Mocked instant credit; no payment gateway is involved."""
    txn = await store.top_up(user["user_id"], req.amount)
    wallet = await store.get_wallet(user["user_id"])
    return ok({"transaction": txn.model_dump(mode="json"), "wallet": wallet.model_dump(mode="json")})
