import json
import os
import sys
from datetime import date
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `api.*` / `services.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

CATALOG_FILE = ROOT_DIR / "data" / "carpool_catalog.json"

# Run against the in-memory store; must be set before settings are imported
os.environ["USE_DB"] = "false"
os.environ["MYSQL_ASYNC_URL"] = "disabled"
os.environ["APP_ENV"] = "development"
os.environ["CATALOG_DATA_FILE"] = str(CATALOG_FILE)


from main import app  # noqa: E402
from api.deps import get_carpool_store, get_today  # noqa: E402
from core.auth import issue_token  # noqa: E402
from services.carpool_service import InMemoryCarpoolStore  # noqa: E402

# A Sunday; the default billing window is November 2026
TODAY = date(2026, 10, 18)


def auth_headers(user_id: str = "cust-1", role: str = "user") -> dict:
    return {"Authorization": f"Bearer {issue_token(user_id, role)}"}


@pytest.fixture()
def catalog() -> dict:
    with open(CATALOG_FILE, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture()
def store(catalog) -> InMemoryCarpoolStore:
    """Fresh in-memory store per test, seeded from the catalog file."""
    return InMemoryCarpoolStore(catalog)


@pytest_asyncio.fixture()
async def api_client(store):
    """Async test client for the carpool API, wired to the per-test store."""
    app.dependency_overrides[get_carpool_store] = lambda: store
    app.dependency_overrides[get_today] = lambda: TODAY
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
