"""Session login for the dashboard.

Credentials come from settings: ``DASHBOARD_USERNAME`` with either a plain
``DASHBOARD_PASSWORD`` or a PBKDF2-SHA256 ``DASHBOARD_PASSWORD_HASH`` plus
``DASHBOARD_PASSWORD_SALT``. A login stores the configured username in the
session, and that name is the actor recorded for writes made from it.
"""
import hashlib
import hmac
from typing import Optional

from fastapi import Request

from app.config import Settings, get_settings
from app.core.errors import InventoryError, Unauthorized

SESSION_USER_KEY = "user"


def login_enabled(settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.DASHBOARD_USERNAME and (settings.DASHBOARD_PASSWORD or settings.DASHBOARD_PASSWORD_HASH))


def hash_password(password: str, salt: str, rounds: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), rounds).hex()


def _password_matches(password: str, settings: Settings) -> bool:
    if settings.DASHBOARD_PASSWORD_HASH:
        if not settings.DASHBOARD_PASSWORD_SALT:
            raise InventoryError("Password salt is not configured.", status_code=500)
        candidate = hash_password(password, settings.DASHBOARD_PASSWORD_SALT, settings.DASHBOARD_PBKDF2_ROUNDS)
        return hmac.compare_digest(candidate, settings.DASHBOARD_PASSWORD_HASH)
    return hmac.compare_digest(password.encode("utf-8"), settings.DASHBOARD_PASSWORD.strip().encode("utf-8"))


def login(request: Request, username: str, password: str) -> str:
    """Open a session for valid credentials and return the recorded username."""
    settings = get_settings()
    if not login_enabled(settings):
        raise InventoryError(
            "Login is not configured. Set dashboard credentials in the environment.",
            status_code=400,
        )

    expected = settings.DASHBOARD_USERNAME.strip()
    username_ok = hmac.compare_digest(
        username.strip().casefold().encode("utf-8"),
        expected.casefold().encode("utf-8"),
    )
    # Both checks always run.
    password_ok = _password_matches(password.strip(), settings)
    if not (username_ok and password_ok):
        raise Unauthorized("Invalid login ID or password.")

    request.session.clear()
    request.session[SESSION_USER_KEY] = expected
    return expected


def logout(request: Request) -> None:
    request.session.clear()


def session_user(request: Request) -> Optional[str]:
    session = request.scope.get("session") or {}
    return session.get(SESSION_USER_KEY)


def require_login(request: Request) -> Optional[str]:
    if not login_enabled():
        return None
    user = session_user(request)
    if not user:
        raise Unauthorized("Not authenticated")
    return user


__all__ = [
    "SESSION_USER_KEY",
    "hash_password",
    "login",
    "login_enabled",
    "logout",
    "require_login",
    "session_user",
]
