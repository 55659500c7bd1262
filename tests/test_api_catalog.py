import pytest

from conftest import auth_headers


@pytest.mark.asyncio
async def test_health(api_client):
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "data": {"status": "ok"}, "error": None}
    assert resp.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client):
    resp = await api_client.get("/health", headers={"X-Request-ID": "req-42"})
    assert resp.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_ready_without_db(api_client):
    resp = await api_client.get("/ready")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"ready": True, "db": False}


@pytest.mark.asyncio
async def test_list_routes_renders_price_as_string(api_client):
    resp = await api_client.get("/api/carpool/routes")
    assert resp.status_code == 200
    routes = resp.json()["data"]
    assert [r["id"] for r in routes] == ["mirpur-gulshan", "uttara-motijheel"]
    uttara = routes[1]
    assert uttara["price_per_seat"] == "120.00"
    assert uttara["weekdays"] == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_unknown_route_is_404(api_client):
    resp = await api_client.get("/api/carpool/routes/nowhere")
    assert resp.status_code == 404
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "route_not_found"


@pytest.mark.asyncio
async def test_pickup_points_filtered_and_hidden_excluded(api_client):
    resp = await api_client.get("/api/carpool/routes/uttara-motijheel/pickup-points",
                                params={"point_type": "dropoff"})
    assert [p["id"] for p in resp.json()["data"]] == ["um-d1", "um-d2"]

    resp = await api_client.get("/api/carpool/routes/mirpur-gulshan/pickup-points")
    assert [p["id"] for p in resp.json()["data"]] == ["mg-p1", "mg-d1"]


@pytest.mark.asyncio
async def test_time_slots_ordered(api_client):
    resp = await api_client.get("/api/carpool/routes/uttara-motijheel/time-slots")
    assert [s["departure_time"] for s in resp.json()["data"]] == ["07:30", "08:15"]


@pytest.mark.asyncio
async def test_weekday_options_require_auth(api_client):
    resp = await api_client.get("/api/carpool/routes/uttara-motijheel/weekday-options")
    assert resp.status_code == 401
    assert resp.json()["ok"] is False


@pytest.mark.asyncio
async def test_weekday_options_for_new_customer(api_client):
    resp = await api_client.get("/api/carpool/routes/uttara-motijheel/weekday-options", headers=auth_headers())
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["no_operating_days"] is False
    assert data["selectable"] == [0, 1, 2, 3, 4]
    saturday = data["options"][6]
    assert saturday == {"weekday": 6, "name": "saturday", "operates": False,
                        "already_subscribed": False, "selectable": False}


@pytest.mark.asyncio
async def test_route_without_weekdays_reports_flag(api_client, store):
    from models.domain import Route

    await store.upsert_route(Route(id="dormant", name="Dormant", from_location="A", to_location="B"))
    resp = await api_client.get("/api/carpool/routes/dormant/weekday-options", headers=auth_headers())
    data = resp.json()["data"]
    assert data["no_operating_days"] is True
    assert data["selectable"] == []
