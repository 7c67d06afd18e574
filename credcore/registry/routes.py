"""HTTP surface of the registered-client registry."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.core.settings import ServiceSettings
from credcore.db.engine import get_session
from credcore.registry.clients import (
    create_client,
    delete_client,
    get_client,
    get_current_client,
    list_clients,
    update_client,
)
from credcore.registry.deps import require_client_identity, require_internal_token
from credcore.registry.types import (
    ClientCursor,
    ClientDraft,
    ClientPage,
    ClientPatch,
    RegisteredClient,
)

router = APIRouter(prefix="/registered-clients", tags=["registered-clients"])

DbSession = Annotated[AsyncSession, Depends(get_session)]
AdminToken = Annotated[str, Depends(require_internal_token)]
CallerID = Annotated[str, Depends(require_client_identity)]


def _load_settings() -> ServiceSettings:
    return ServiceSettings()


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_client(
    draft: ClientDraft,
    db: DbSession,
    _token: AdminToken,
) -> RegisteredClient:
    """POST /registered-clients -- register a new API client."""
    return await create_client(db, draft)


@router.get("")
async def list_registered_clients(
    db: DbSession,
    _token: AdminToken,
    settings: Annotated[ServiceSettings, Depends(_load_settings)],
    page: Annotated[int, Query()] = 1,
    per_page: Annotated[int | None, Query()] = None,
) -> ClientPage:
    """GET /registered-clients?page=&per_page= -- one page of clients."""
    if per_page is None:
        per_page = settings.default_per_page
    cursor = ClientCursor(page=page, per_page=per_page)
    return await list_clients(db, cursor, max_per_page=settings.max_per_page)


@router.get("/current")
async def current_client(db: DbSession, caller_id: CallerID) -> RegisteredClient:
    """GET /registered-clients/current -- the client presenting the assertion."""
    return await get_current_client(db, caller_id)


@router.get("/{client_id}")
async def get_registered_client(
    client_id: str,
    db: DbSession,
    _token: AdminToken,
) -> RegisteredClient:
    """GET /registered-clients/{id}."""
    return await get_client(db, client_id)


@router.patch("/{client_id}")
async def update_registered_client(
    client_id: str,
    patch: ClientPatch,
    db: DbSession,
    _token: AdminToken,
) -> RegisteredClient:
    """PATCH /registered-clients/{id} -- partial update."""
    return await update_client(db, client_id, patch)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_registered_client(
    client_id: str,
    db: DbSession,
    _token: AdminToken,
) -> Response:
    """DELETE /registered-clients/{id} -- hard delete."""
    await delete_client(db, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
