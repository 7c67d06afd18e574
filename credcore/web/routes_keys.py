"""SSH key settings, guarded like every other settings route."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.authz.guard import guarded_mutation, guarded_view
from credcore.authz.session import current_principal
from credcore.authz.types import Principal
from credcore.core.errors import NotFoundError
from credcore.db.engine import get_session
from credcore.db.models_sshkeys import SSHKeyEntity
from credcore.db.models_user import UserEntity
from credcore.db.repo_sshkeys import add_key, delete_key, list_keys

router = APIRouter(tags=["settings"])

DbSession = Annotated[AsyncSession, Depends(get_session)]
CurrentPrincipal = Annotated[Principal | None, Depends(current_principal)]


class SSHKeyPayload(BaseModel):
    """Request body for adding a key."""

    name: str = ""
    key: str = Field(min_length=1)


class SSHKeyResult(BaseModel):
    id: str
    name: str
    key: str


class SSHKeyList(BaseModel):
    results: list[SSHKeyResult] = Field(default_factory=list)


def _key_list(keys: list[SSHKeyEntity]) -> SSHKeyList:
    return SSHKeyList(
        results=[SSHKeyResult(id=k.id, name=k.name, key=k.key) for k in keys]
    )


@router.get("/{login}/.settings/keys", name="user_settings_keys")
async def view_keys(
    login: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> SSHKeyList:
    """GET /{login}/.settings/keys -- the subject's SSH keys."""
    context = await guarded_view(db, principal, login)
    return _key_list(await list_keys(db, context.subject.id))


@router.post(
    "/{login}/.settings/keys",
    name="user_settings_keys_add",
    status_code=status.HTTP_201_CREATED,
)
async def add_user_key(
    login: str,
    payload: SSHKeyPayload,
    db: DbSession,
    principal: CurrentPrincipal,
) -> SSHKeyList:
    """POST /{login}/.settings/keys -- add a key, return the new list."""

    async def _add(user: UserEntity) -> None:
        await add_key(db, user.id, name=payload.name, key=payload.key)

    subject = await guarded_mutation(db, principal, login, _add)
    return _key_list(await list_keys(db, subject.id))


@router.delete("/{login}/.settings/keys/{key_id}", name="user_settings_keys_delete")
async def delete_user_key(
    login: str,
    key_id: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> SSHKeyList:
    """DELETE /{login}/.settings/keys/{key_id} -- remove a key."""

    async def _delete(user: UserEntity) -> None:
        if not await delete_key(db, user.id, key_id):
            raise NotFoundError(f"key {key_id!r} not found")

    subject = await guarded_mutation(db, principal, login, _delete)
    return _key_list(await list_keys(db, subject.id))
