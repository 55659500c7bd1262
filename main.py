"""
Main FastAPI application (entrypoint).

Responsibilities:
- Wire API routers (carpool catalog, subscriptions, wallet, admin)
- Register centralized exception handlers
- Provide middleware: request-id logging
- Add health / readiness endpoints
- Initialize DB tables on startup when the DB is enabled
Notes:
- With USE_DB=false (or MYSQL_ASYNC_URL=disabled) every request is served by
  the in-memory store seeded from CATALOG_DATA_FILE.
- Production schema changes go through Alembic; create_all is a dev convenience.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import uvicorn

from api import routes_admin, routes_carpool, routes_subscriptions, routes_wallet
from config.settings import settings
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging, request_logging_middleware
from core.response import ok, error

# DB scaffolding (async SQLAlchemy)
from core.db import engine, Base
import models.db_models  # noqa: F401  (register tables on Base.metadata)

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)

# CORS - adjust origins for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes_carpool.router, prefix="/api/carpool", tags=["carpool"])
app.include_router(routes_subscriptions.router, prefix="/api/subscriptions", tags=["subscriptions"])
app.include_router(routes_wallet.router, prefix="/api/wallet", tags=["wallet"])
app.include_router(routes_admin.router, prefix="/api/admin", tags=["admin"])

register_exception_handlers(app)

# Add request logging middleware (adds X-Request-ID header and logs)
app.middleware("http")(request_logging_middleware)


@app.get("/health")
async def health():
    """Simple health endpoint used by load balancers and orchestrators."""
    return ok({"status": "ok"})


@app.get("/ready")
async def ready():
    """Readiness: check DB connectivity if configured."""
    try:
        if engine is not None:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        return ok({"ready": True, "db": engine is not None})
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content=error(code="db_unreachable", message="DB unavailable"))


@app.on_event("startup")
async def on_startup():
    """Create DB tables when the DB is enabled (development convenience)."""
    if engine is None:
        logger.info("DB disabled; serving from the in-memory carpool store")
        return
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception:
        # keep serving; /ready reports the DB as unreachable
        logger.exception("DB initialization failed on startup")


if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with workers.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
