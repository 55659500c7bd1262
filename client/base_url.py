# client/base_url.py
"""
Where the client sends API calls.

development: "" so calls stay relative and go through the local dev proxy.
production:  the configured API URL, else the origin the client was served
             from, without a trailing slash.
"""
import logging
from typing import Optional

from config.settings import settings

logger = logging.getLogger(__name__)


def resolve_base_url(app_env: str, configured_url: Optional[str] = None, origin: Optional[str] = None) -> str:
    if (app_env or "development").strip().lower() == "development":
        return ""
    base = (configured_url or "").strip() or (origin or "").strip()
    if not base:
        logger.warning("No API_BASE_URL or APP_ORIGIN configured for %s; using relative URLs", app_env)
    return base.rstrip("/")


def default_base_url() -> str:
    return resolve_base_url(settings.APP_ENV, settings.API_BASE_URL, settings.APP_ORIGIN)
