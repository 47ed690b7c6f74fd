from fastapi import Security, HTTPException, status, Request, Header
from fastapi.security import APIKeyHeader
from typing import Optional
from app.core.config import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

class AppStartupFailedException(Exception):
    def __init__(self, message: str):
        self.message = message

class AppStartupLoadingException(Exception):
    pass


async def get_api_key(request: Request, api_key_header: str = Security(api_key_header)):
    # Check Header (for programmatic API use)
    if not settings.API_ACCESS_KEY:
        return True

    if api_key_header == settings.API_ACCESS_KEY:
        return api_key_header

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Could not validate credentials",
    )


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    User id resolved by the identity provider in front of this service.
    The id is opaque here; it only scopes saved bets and profiles.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id.strip()


async def check_startup(request: Request):
    status_value = getattr(request.app.state, "startup_status", "ready")
    if status_value == "starting":
        raise AppStartupLoadingException()
    elif status_value == "failed":
        error_msg = getattr(request.app.state, "startup_error", None) or "Unknown error"
        raise AppStartupFailedException(error_msg)
