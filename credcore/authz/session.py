"""Resolve the request principal from a signed session token."""

from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Depends, Request

from credcore.authz.types import Principal
from credcore.core.settings import ServiceSettings

SESSION_COOKIE = "session"
SESSION_TTL_SECONDS = 3600
SESSION_ALGORITHM = "HS256"


def _load_settings() -> ServiceSettings:
    return ServiceSettings()


def issue_session_token(
    principal: Principal, secret: str, ttl_seconds: int = SESSION_TTL_SECONDS
) -> str:
    """Sign a session token for the principal."""
    now = datetime.now(UTC)
    payload = {
        "sub": principal.id,
        "login": principal.login,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=SESSION_ALGORITHM)


def principal_from_token(token: str, secret: str) -> Principal | None:
    """Decode a session token; invalid or expired tokens yield None."""
    if not secret:
        return None
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[SESSION_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None
    login = claims.get("login")
    if not isinstance(login, str) or not login:
        return None
    return Principal(id=str(claims["sub"]), login=login)


def _extract_token(request: Request) -> str | None:
    """Bearer header first, then the session cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer ") :]
    return request.cookies.get(SESSION_COOKIE)


async def current_principal(
    request: Request,
    settings: Annotated[ServiceSettings, Depends(_load_settings)],
) -> Principal | None:
    """FastAPI dependency: the authenticated principal, or None."""
    token = _extract_token(request)
    if not token:
        return None
    return principal_from_token(token, settings.session_secret)
