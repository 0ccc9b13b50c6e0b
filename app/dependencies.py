from typing import Optional

from fastapi import Header, Request

from app.config import get_settings
from app.core.clock import Clock, system_clock
from app.core.security import Principal, authenticate_request
from app.core.session_auth import session_user
from app.database.session import get_db


def require_auth(
    request: Request,
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
    api_key_alt: Optional[str] = Header(None, alias="api-key"),
    authorization: Optional[str] = Header(None),
) -> Principal:
    api_key_value = api_key or api_key_alt or request.headers.get(get_settings().API_KEY_HEADER)
    return authenticate_request(
        api_key=api_key_value,
        authorization=authorization,
        session_user=session_user(request),
    )


def get_clock() -> Clock:
    return system_clock


__all__ = ["get_clock", "get_db", "require_auth"]
