"""
Copy the seed catalog (CATALOG_DATA_FILE) into the configured database.

Routes, pickup points, time slots and blackout dates are upserted by id, so
the script can be re-run after editing the JSON file.

Usage:
    USE_DB=true MYSQL_ASYNC_URL=mysql+aiomysql://... python bootstrap_import_catalog_to_db.py
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config.settings import settings
from core.db import Base
from core.logging import configure_logging
from models import db_models  # noqa: F401 ensure models are imported so tables are registered
from services.carpool_db_service import CarpoolDBStore
from services.carpool_service import InMemoryCarpoolStore

logger = logging.getLogger("bootstrap")


async def import_catalog(source: InMemoryCarpoolStore, target: CarpoolDBStore) -> None:
    routes = await source.list_routes(include_inactive=True)
    for route in routes:
        await target.upsert_route(route)
        points = await source.list_pickup_points(route.id, include_hidden=True)
        for point in points:
            await target.add_pickup_point(point)
        slots = await source.list_time_slots(route.id)
        for slot in slots:
            await target.add_time_slot(slot)
        logger.info("Imported route %s with %d points and %d time slots", route.id, len(points), len(slots))

    for blackout in await source.list_blackout_dates():
        await target.add_blackout_date(blackout)
        logger.info("Imported blackout %s (%s..%s)", blackout.name, blackout.start_date, blackout.end_date)


async def main():
    db_url = settings.MYSQL_ASYNC_URL
    if not db_url or db_url.startswith("disabled"):
        raise RuntimeError(f"MYSQL_ASYNC_URL is not configured correctly: {db_url}")

    source = InMemoryCarpoolStore.from_file(settings.CATALOG_DATA_FILE)
    engine = create_async_engine(db_url, echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with session_maker() as session:
        await import_catalog(source, CarpoolDBStore(session))
    await engine.dispose()
    logger.info("Catalog import finished")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
