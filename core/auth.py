import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config.settings import settings
from core.errors import Forbidden

logger = logging.getLogger(__name__)

# Define security scheme for Swagger UI (auto_error=False allows us to handle missing tokens gracefully)
security = HTTPBearer(auto_error=False)

def _extract_token(header_val: str) -> Optional[str]:
    """Helper to strip 'Bearer ' prefix if present."""
    if not header_val:
        return None
    hv = header_val.strip()
    if hv.lower().startswith("bearer "):
        return hv.split(None, 1)[1].strip()
    return hv  # accept raw token

def issue_token(user_id: str, role: str = "user") -> str:
    """Sign a token for a customer id. Used by tests and local tooling."""
    return jwt.encode({"sub": user_id, "role": role}, settings.JWT_SECRET, algorithm="HS256")

async def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
    authorization: Optional[str] = Header(None),
):
    """
    Async JWT auth dependency.
    Returns {"user_id": <sub>, "role": <role>} for the bearer of the token.
    """
    token_value = None

    # 1. HTTPBearer (Standard Swagger/FastAPI way)
    if creds and creds.credentials:
        token_value = creds.credentials

    # 2. Raw Authorization header without the Bearer scheme
    if not token_value and authorization:
        token_value = _extract_token(authorization)

    if not token_value:
        logger.warning("Authentication failed: no bearer token on %s", request.url.path)
        raise HTTPException(status_code=401, detail="Missing Authorization token")

    try:
        payload = jwt.decode(token_value, settings.JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Token decode error: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = {"user_id": str(user_id), "role": payload.get("role", "user")}
    request.state.user = user
    return user

async def require_admin(user: dict = Depends(get_current_user)):
    if user.get("role") != "admin":
        raise Forbidden("Admin role required")
    return user
