"""Authentication for routes that change inventory.

A request may present an API key header, a bearer JWT or the session cookie
set by ``/login``. Whatever it presents resolves to a :class:`Principal`
whose ``actor`` is stamped on the notifications the request writes. Nothing
is enforced until API keys or a JWT secret are configured.
"""
import hmac
from dataclasses import dataclass
from typing import Optional

import jwt

from app.config import Settings, get_settings
from app.core.errors import Unauthorized

FOUNDER_LABEL = "founder"
DEFAULT_KEY_LABEL = "api-key"


@dataclass(frozen=True)
class Principal:
    method: str
    actor: Optional[str] = None


def configured_api_keys(settings: Settings) -> dict[str, str]:
    """Map every accepted key to the label recorded for it.

    ``API_KEYS`` is comma separated; an entry is ``label=key`` or a bare key.
    """
    keys = {}
    founder_key = (settings.FOUNDER_API_KEY or "").strip()
    if founder_key:
        keys[founder_key] = FOUNDER_LABEL
    for entry in (settings.API_KEYS or "").split(","):
        label, separator, key = entry.partition("=")
        if not separator:
            label, key = DEFAULT_KEY_LABEL, label
        key = key.strip()
        if key:
            keys[key] = label.strip() or DEFAULT_KEY_LABEL
    return keys


def auth_required(settings: Settings) -> bool:
    return bool(configured_api_keys(settings) or settings.JWT_SECRET or settings.JWT_REQUIRED)


def _match_api_key(candidate: str, keys: dict[str, str]) -> Optional[str]:
    for key, label in keys.items():
        if hmac.compare_digest(candidate.encode("utf-8"), key.encode("utf-8")):
            return label
    return None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    scheme, _, token = (authorization or "").strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def _jwt_principal(token: str, settings: Settings) -> Principal:
    if not settings.JWT_SECRET:
        raise Unauthorized("Bearer tokens are not accepted by this server.")
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_aud": bool(settings.JWT_AUDIENCE)},
        )
    except jwt.PyJWTError as exc:
        raise Unauthorized("Invalid bearer token.") from exc
    return Principal(method="jwt", actor=claims.get("sub") or "jwt")


def authenticate_request(
    api_key: Optional[str],
    authorization: Optional[str],
    *,
    session_user: Optional[str] = None,
) -> Principal:
    settings = get_settings()
    if not auth_required(settings):
        return Principal(method="open", actor=session_user)

    token = _bearer_token(authorization)
    if token:
        return _jwt_principal(token, settings)
    if settings.JWT_REQUIRED:
        raise Unauthorized("A bearer token is required.")

    if api_key:
        label = _match_api_key(api_key.strip(), configured_api_keys(settings))
        if label is None:
            raise Unauthorized("Unknown API key.")
        return Principal(method="api_key", actor=label)

    if session_user:
        return Principal(method="session", actor=session_user)
    raise Unauthorized("Not authenticated")


__all__ = ["Principal", "auth_required", "authenticate_request", "configured_api_keys"]
