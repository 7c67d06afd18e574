"""Registered-client registry operations.

Every operation takes the store (an AsyncSession) explicitly. Failures are
raised as credcore errors; nothing is coerced to a default.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.core.errors import (
    DuplicateIDError,
    InvalidCursorError,
    MalformedKeyError,
    NotFoundError,
)
from credcore.core.logging import get_logger
from credcore.core.settings import PER_PAGE_MAX
from credcore.crypto.idkey import bind_jwks
from credcore.db.models_clients import RegisteredClientEntity
from credcore.registry.types import (
    ALLOW_LOGINS_KEY,
    ClientCursor,
    ClientDraft,
    ClientPage,
    ClientPatch,
    LoginPolicy,
    RegisteredClient,
    parse_client_type,
    parse_login_policy,
)

log = get_logger(__name__)

PageFetcher = Callable[[ClientCursor], Awaitable[ClientPage]]


def _as_utc(value: datetime) -> datetime:
    """Stores without time zone support hand back naive UTC datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_registered_client(entity: RegisteredClientEntity) -> RegisteredClient:
    """Convert a RegisteredClientEntity to the registry schema."""
    return RegisteredClient(
        id=entity.id,
        client_name=entity.client_name or "",
        client_uri=entity.client_uri or "",
        redirect_uris=list(entity.redirect_uris or []),
        description=entity.description or "",
        type=parse_client_type(entity.client_type),
        jwks=entity.jwks or "",
        metadata=dict(entity.client_metadata or {}),
        created_at=_as_utc(entity.created_at),
    )


def login_policy(client: RegisteredClient) -> LoginPolicy:
    """Effective login policy; absent or unrecognized reads as restricted."""
    try:
        return LoginPolicy(client.metadata.get(ALLOW_LOGINS_KEY, ""))
    except ValueError:
        return LoginPolicy.RESTRICTED


def _metadata_writes(
    metadata: dict[str, str] | None, allow_logins: str | None
) -> dict[str, str]:
    """Metadata entries to write, with the policy key validated if present."""
    result = dict(metadata or {})
    if allow_logins:
        result[ALLOW_LOGINS_KEY] = allow_logins
    if ALLOW_LOGINS_KEY in result:
        result[ALLOW_LOGINS_KEY] = parse_login_policy(result[ALLOW_LOGINS_KEY]).value
    return result


async def _get_entity(session: AsyncSession, client_id: str) -> RegisteredClientEntity:
    entity = await session.get(RegisteredClientEntity, client_id)
    if entity is None:
        raise NotFoundError(f"registered client {client_id!r} not found")
    return entity


async def create_client(session: AsyncSession, draft: ClientDraft) -> RegisteredClient:
    """Register a new client. The ID must not already be registered."""
    client_type = parse_client_type(draft.type)
    metadata = _metadata_writes(draft.metadata, draft.allow_logins)
    if not draft.jwks:
        raise MalformedKeyError("a JWK set for the client ID key is required")
    bind_jwks(draft.jwks, draft.id)

    if await session.get(RegisteredClientEntity, draft.id) is not None:
        raise DuplicateIDError(f"registered client {draft.id!r} already exists")

    entity = RegisteredClientEntity(
        id=draft.id,
        client_name=draft.client_name,
        client_uri=draft.client_uri,
        redirect_uris=list(draft.redirect_uris),
        description=draft.description,
        client_type=client_type.value,
        jwks=draft.jwks,
        client_metadata=metadata,
        created_at=datetime.now(UTC),
    )
    session.add(entity)
    try:
        await session.flush()
    except IntegrityError as exc:
        message = f"registered client {draft.id!r} already exists"
        raise DuplicateIDError(message) from exc

    log.info(
        "registered_client.created",
        client_id=entity.id,
        client_type=client_type.value,
    )
    return to_registered_client(entity)


async def get_client(session: AsyncSession, client_id: str) -> RegisteredClient:
    """Look up a registered client by ID."""
    return to_registered_client(await _get_entity(session, client_id))


async def get_current_client(session: AsyncSession, caller_id: str) -> RegisteredClient:
    """Return the registry entry for the identity the caller presented."""
    entity = await session.get(RegisteredClientEntity, caller_id)
    if entity is None:
        raise NotFoundError("no registered client for the presented identity")
    return to_registered_client(entity)


async def list_clients(
    session: AsyncSession,
    cursor: ClientCursor,
    *,
    max_per_page: int = PER_PAGE_MAX,
) -> ClientPage:
    """Return one page of clients in creation order."""
    if cursor.page < 1:
        raise InvalidCursorError("page must be >= 1")
    if cursor.per_page < 1 or cursor.per_page > max_per_page:
        raise InvalidCursorError(f"per_page must be between 1 and {max_per_page}")

    stmt = (
        select(RegisteredClientEntity)
        .order_by(RegisteredClientEntity.created_at, RegisteredClientEntity.id)
        .offset((cursor.page - 1) * cursor.per_page)
        .limit(cursor.per_page + 1)
    )
    result = await session.execute(stmt)
    rows = list(result.scalars().all())
    has_more = len(rows) > cursor.per_page
    return ClientPage(
        clients=[to_registered_client(e) for e in rows[: cursor.per_page]],
        page=cursor.page,
        per_page=cursor.per_page,
        has_more=has_more,
        next_page=cursor.page + 1 if has_more else None,
    )


async def iter_clients(
    fetch_page: PageFetcher, per_page: int | None = None
) -> AsyncIterator[RegisteredClient]:
    """Yield every client, fetching pages until has_more is false."""
    cursor = ClientCursor() if per_page is None else ClientCursor(per_page=per_page)
    while True:
        page = await fetch_page(cursor)
        for client in page.clients:
            yield client
        if not page.has_more:
            return
        cursor = cursor.model_copy(update={"page": cursor.page + 1})


async def update_client(
    session: AsyncSession, client_id: str, patch: ClientPatch
) -> RegisteredClient:
    """Apply a partial update; metadata is merged key by key."""
    entity = await _get_entity(session, client_id)

    merged = dict(entity.client_metadata or {})
    merged.update(_metadata_writes(patch.metadata, patch.allow_logins))

    if patch.client_name:
        entity.client_name = patch.client_name
    if patch.client_uri:
        entity.client_uri = patch.client_uri
    if patch.redirect_uris:
        entity.redirect_uris = list(patch.redirect_uris)
    if patch.description:
        entity.description = patch.description
    entity.client_metadata = merged
    await session.flush()

    log.info("registered_client.updated", client_id=client_id)
    return to_registered_client(entity)


async def delete_client(session: AsyncSession, client_id: str) -> None:
    """Hard-delete a client. Unknown IDs raise NotFoundError."""
    entity = await _get_entity(session, client_id)
    await session.delete(entity)
    await session.flush()
    log.info("registered_client.deleted", client_id=client_id)
