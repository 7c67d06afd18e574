"""FastAPI dependencies authenticating registry callers."""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.core.errors import NotFoundError, Unauthorized
from credcore.core.settings import ServiceSettings
from credcore.crypto.assertion import unverified_client_id, verify_client_assertion
from credcore.db.engine import get_session
from credcore.registry.clients import get_client

_security = HTTPBearer(auto_error=False)

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(_security)]


def _load_settings() -> ServiceSettings:
    return ServiceSettings()


async def require_internal_token(
    credentials: Credentials,
    settings: Annotated[ServiceSettings, Depends(_load_settings)],
) -> str:
    """Verify the CRED_INTERNAL_TOKEN admin Bearer token."""
    expected = settings.internal_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), expected.encode()
    ):
        raise Unauthorized("invalid admin token")
    return credentials.credentials


async def require_client_identity(
    credentials: Credentials,
    db: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[ServiceSettings, Depends(_load_settings)],
) -> str:
    """Authenticate a registered client by its signed assertion."""
    if credentials is None:
        raise Unauthorized("client assertion required")
    token = credentials.credentials
    claimed_id = unverified_client_id(token)
    try:
        client = await get_client(db, claimed_id)
    except NotFoundError as exc:
        raise Unauthorized("unknown client") from exc
    return verify_client_assertion(token, client.jwks, settings.issuer_url)
