import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine

from config.settings import settings
from core.db import Base
from core.logging import configure_logging
from models import db_models  # noqa: F401 ensure models are imported so tables are registered

logger = logging.getLogger("create_db_schema")


async def main():
    """
    One-time script to create the carpool tables in the configured database.
    Uses a temporary async engine built from settings.MYSQL_ASYNC_URL.
    Production deployments run `alembic upgrade head` instead.
    """
    db_url = settings.MYSQL_ASYNC_URL
    if not db_url or db_url.startswith("disabled"):
        raise RuntimeError(f"MYSQL_ASYNC_URL is not configured correctly: {db_url}")

    engine = create_async_engine(db_url, echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database schema created/updated: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
