"""
Async MySQL database engine and session management.

Purpose:
- Create SQLAlchemy async engine for MySQL with aiomysql driver
- Provide async session factory for dependency injection
- Provide Base declarative class for ORM models

Production notes:
- Use connection pooling with appropriate pool_size and max_overflow
- Purchases lock the wallet row; keep transactions short
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config.settings import settings
import logging
from typing import AsyncGenerator, Optional

logger = logging.getLogger(__name__)

Base = declarative_base()

# When MYSQL_ASYNC_URL is "disabled", do not create an engine at all.
engine = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None

def db_enabled() -> bool:
    return bool(settings.USE_DB and settings.MYSQL_ASYNC_URL and not settings.MYSQL_ASYNC_URL.startswith("disabled"))

if db_enabled():
    engine = create_async_engine(
        settings.MYSQL_ASYNC_URL,
        echo=settings.DEBUG,
        future=True,
    )
    async_session_maker = async_sessionmaker(
        engine, expire_on_commit=False, class_=AsyncSession
    )
    logger.info("Async DB engine created")
else:
    logger.warning("DB disabled (USE_DB=false or MYSQL_ASYNC_URL='disabled'); using the in-memory carpool store.")

async def get_db_session() -> AsyncGenerator[Optional[AsyncSession], None]:
    """
    Yield an AsyncSession when DB is enabled; otherwise yield None so callers can
    fall back to the in-memory store.
    """
    if async_session_maker is None:
        yield None
        return

    async with async_session_maker() as session:
        yield session
