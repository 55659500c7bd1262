# api/deps.py
"""
Shared FastAPI dependencies.

get_carpool_store picks the backend per request: the SQLAlchemy store when the
DB is enabled and a session was opened, the in-memory singleton otherwise.
Tests override both dependencies through app.dependency_overrides.
"""
from datetime import date
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from core import clock
from core.db import get_db_session
from services.carpool_db_service import CarpoolDBStore
from services.carpool_service import carpool_store
from services.carpool_store import CarpoolStore


async def get_carpool_store(session: Optional[AsyncSession] = Depends(get_db_session)) -> CarpoolStore:
    if settings.USE_DB and session is not None:
        return CarpoolDBStore(session)
    return carpool_store


def get_today() -> date:
    return clock.today()
