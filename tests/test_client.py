from decimal import Decimal

import httpx
import pytest

from client.api_client import ApiError, CarpoolApiClient, PurchaseOutcomeKind
from client.base_url import resolve_base_url
from core.auth import issue_token


@pytest.mark.parametrize("env,configured,origin,expected", [
    ("development", "https://api.example.com", "https://app.example.com", ""),
    ("production", "https://api.example.com/", "https://app.example.com", "https://api.example.com"),
    ("production", None, "https://app.example.com/", "https://app.example.com"),
    ("production", "", "https://app.example.com", "https://app.example.com"),
    ("production", None, None, ""),
])
def test_resolve_base_url(env, configured, origin, expected):
    assert resolve_base_url(env, configured, origin) == expected


@pytest.fixture()
def carpool(api_client):
    return CarpoolApiClient(api_client, base_url="", token=issue_token("cust-1"))


@pytest.mark.asyncio
async def test_client_reads_catalog_and_quotes(carpool):
    routes = await carpool.list_routes()
    assert {r["id"] for r in routes} == {"uttara-motijheel", "mirpur-gulshan"}
    estimate = await carpool.calculate_cost("uttara-motijheel", [1, 3])
    assert estimate.available
    assert estimate.monthly_total == Decimal("1080.00")
    assert estimate.serviceable_days == 9


@pytest.mark.asyncio
async def test_client_maps_402_to_insufficient_balance(carpool):
    result = await carpool.purchase("uttara-motijheel", [1], "um-t1", "um-p1", "um-d1")
    assert result.outcome == PurchaseOutcomeKind.INSUFFICIENT_BALANCE
    assert result.shortfall == Decimal("600.00")
    assert result.subscription is None


@pytest.mark.asyncio
async def test_client_raises_api_error_with_envelope_code(carpool):
    with pytest.raises(ApiError) as exc:
        await carpool.get_route("ghost")
    assert exc.value.status_code == 404
    assert exc.value.code == "route_not_found"


@pytest.mark.asyncio
async def test_client_purchase_and_cancel(carpool):
    await carpool.top_up("700")
    result = await carpool.purchase("uttara-motijheel", [1], "um-t1", "um-p1", "um-d1")
    assert result.outcome == PurchaseOutcomeKind.CREATED
    assert (await carpool.get_wallet())["balance"] == "100.00"
    sub = await carpool.cancel_subscription(result.subscription["id"])
    assert sub["status"] == "pending_cancellation"
    assert await carpool.list_subscriptions(active_only=True) == []
    assert await carpool.subscribed_weekdays() == {"uttara-motijheel": [1]}


@pytest.mark.asyncio
async def test_network_failure_is_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api.invalid") as http:
        client = CarpoolApiClient(http)
        with pytest.raises(ApiError) as exc:
            await client.cancel_subscription("abc")
    assert exc.value.code == "network_error"
    assert exc.value.status_code == 0
