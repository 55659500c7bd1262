# core/clock.py
from datetime import date, datetime
from zoneinfo import ZoneInfo

from config.settings import settings


def today() -> date:
    """Current calendar date in the service timezone (billing is date-based)."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
