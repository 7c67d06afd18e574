"""Database operations for users' SSH public keys."""

import uuid_utils
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.db.models_sshkeys import SSHKeyEntity


async def list_keys(session: AsyncSession, user_id: str) -> list[SSHKeyEntity]:
    """Return a user's SSH keys, oldest first."""
    stmt = (
        select(SSHKeyEntity)
        .where(SSHKeyEntity.user_id == user_id)
        .order_by(SSHKeyEntity.created_at, SSHKeyEntity.id)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def add_key(
    session: AsyncSession, user_id: str, *, name: str, key: str
) -> SSHKeyEntity:
    """Attach a new SSH public key to a user."""
    entity = SSHKeyEntity(
        id=str(uuid_utils.uuid7()),
        user_id=user_id,
        name=name,
        key=key.strip(),
    )
    session.add(entity)
    await session.flush()
    return entity


async def delete_key(session: AsyncSession, user_id: str, key_id: str) -> bool:
    """Delete one of the user's keys. Returns False if it does not exist."""
    stmt = select(SSHKeyEntity).where(
        SSHKeyEntity.id == key_id,
        SSHKeyEntity.user_id == user_id,
    )
    result = await session.execute(stmt)
    entity = result.scalar_one_or_none()
    if entity is None:
        return False
    await session.delete(entity)
    await session.flush()
    return True
