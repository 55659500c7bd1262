# client/api_client.py
"""
Async client for the carpool API.

Wraps an httpx.AsyncClient, unwraps the {"ok", "data", "error"} envelope and
raises ApiError for anything that is not a success. The one expected
non-success is purchase with insufficient wallet balance (HTTP 402), which
comes back as a PurchaseResult so the caller can offer a top-up.

No retries: a failed call surfaces immediately and nothing is assumed to
have changed on the server.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import httpx

from config.settings import settings
from client.base_url import default_base_url

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, data: Any = None):
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.data = data


def _decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


@dataclass(frozen=True)
class CostEstimate:
    available: bool
    monthly_total: Optional[Decimal]
    serviceable_days: int
    blackout_days_excluded: int
    reason: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CostEstimate":
        return cls(
            available=bool(data.get("available")),
            monthly_total=_decimal(data.get("monthly_total")),
            serviceable_days=int(data.get("serviceable_days") or 0),
            blackout_days_excluded=int(data.get("blackout_days_excluded") or 0),
            reason=data.get("reason"),
            raw=data,
        )


class PurchaseOutcomeKind(str, Enum):
    CREATED = "created"
    INSUFFICIENT_BALANCE = "insufficient_balance"


@dataclass(frozen=True)
class PurchaseResult:
    outcome: PurchaseOutcomeKind
    subscription: Optional[Dict[str, Any]] = None
    required: Optional[Decimal] = None
    balance: Optional[Decimal] = None
    shortfall: Optional[Decimal] = None


class CarpoolApiClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str = "", token: Optional[str] = None):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.token = token

    @classmethod
    def create(cls, token: Optional[str] = None, base_url: Optional[str] = None, **http_kwargs) -> "CarpoolApiClient":
        """Build a client with its own AsyncClient, using settings for URL and timeout."""
        http_kwargs.setdefault("timeout", settings.REQUEST_TIMEOUT_SEC)
        base = default_base_url() if base_url is None else base_url
        return cls(httpx.AsyncClient(**http_kwargs), base_url=base, token=token)

    async def aclose(self) -> None:
        await self.http.aclose()

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.http.request(method, url, json=json, params=params, headers=self._headers())
        except httpx.RequestError as e:
            logger.error("Request %s %s failed: %s", method, url, e)
            raise ApiError(0, "network_error", str(e)) from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if resp.is_success and body.get("ok"):
            return body.get("data")
        err = body.get("error") or {}
        raise ApiError(
            resp.status_code,
            err.get("code") or "http_error",
            err.get("message") or resp.reason_phrase,
            data=body.get("data"),
        )

    # ------------- CATALOG -------------
    async def list_routes(self) -> List[dict]:
        return await self._request("GET", "/api/carpool/routes")

    async def get_route(self, route_id: str) -> dict:
        return await self._request("GET", f"/api/carpool/routes/{route_id}")

    async def pickup_points(self, route_id: str, point_type: Optional[str] = None) -> List[dict]:
        params = {"point_type": point_type} if point_type else None
        return await self._request("GET", f"/api/carpool/routes/{route_id}/pickup-points", params=params)

    async def time_slots(self, route_id: str) -> List[dict]:
        return await self._request("GET", f"/api/carpool/routes/{route_id}/time-slots")

    async def weekday_options(self, route_id: str) -> dict:
        return await self._request("GET", f"/api/carpool/routes/{route_id}/weekday-options")

    # ------------- SUBSCRIPTIONS -------------
    async def calculate_cost(self, route_id: str, weekdays: Iterable[int],
                             start_date: Optional[date] = None) -> CostEstimate:
        payload = {"route_id": route_id, "weekdays": list(weekdays)}
        if start_date is not None:
            payload["start_date"] = start_date.isoformat()
        data = await self._request("POST", "/api/subscriptions/calculate-cost", json=payload)
        return CostEstimate.from_payload(data)

    async def subscribed_weekdays(self) -> Dict[str, List[int]]:
        data = await self._request("GET", "/api/subscriptions/weekdays")
        return {route_id: entry["weekdays"] for route_id, entry in data.items()}

    async def purchase(
        self,
        route_id: str,
        weekdays: Iterable[int],
        time_slot_id: str,
        pickup_point_id: str,
        drop_off_point_id: str,
        payment_method: str = "online",
        start_date: Optional[date] = None,
    ) -> PurchaseResult:
        payload = {
            "route_id": route_id,
            "weekdays": list(weekdays),
            "time_slot_id": time_slot_id,
            "pickup_point_id": pickup_point_id,
            "drop_off_point_id": drop_off_point_id,
            "payment_method": payment_method,
        }
        if start_date is not None:
            payload["start_date"] = start_date.isoformat()
        try:
            data = await self._request("POST", "/api/subscriptions/purchase", json=payload)
        except ApiError as e:
            if e.status_code != 402:
                raise
            info = e.data or {}
            return PurchaseResult(
                outcome=PurchaseOutcomeKind.INSUFFICIENT_BALANCE,
                required=_decimal(info.get("required")),
                balance=_decimal(info.get("balance")),
                shortfall=_decimal(info.get("shortfall")),
            )
        return PurchaseResult(outcome=PurchaseOutcomeKind.CREATED, subscription=data["subscription"])

    async def list_subscriptions(self, active_only: bool = False) -> List[dict]:
        path = "/api/subscriptions/active" if active_only else "/api/subscriptions"
        return await self._request("GET", path)

    async def cancel_subscription(self, subscription_id: str) -> dict:
        data = await self._request("POST", f"/api/subscriptions/{subscription_id}/cancel")
        return data["subscription"]

    # ------------- WALLET -------------
    async def get_wallet(self) -> dict:
        return await self._request("GET", "/api/wallet")

    async def wallet_transactions(self) -> List[dict]:
        return await self._request("GET", "/api/wallet/transactions")

    async def top_up(self, amount) -> dict:
        data = await self._request("POST", "/api/wallet/topup", json={"amount": str(amount)})
        return data["wallet"]
