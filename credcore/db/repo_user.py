"""User and organization repository for database CRUD operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.db.models_user import OrgMemberEntity, UserEmailEntity, UserEntity


async def get_user_by_login(session: AsyncSession, login: str) -> UserEntity | None:
    """Look up a user or organization by login."""
    stmt = select(UserEntity).where(UserEntity.login == login)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str) -> UserEntity | None:
    """Look up a user or organization by primary key."""
    stmt = select(UserEntity).where(UserEntity.id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_member_orgs(
    session: AsyncSession, user_id: str
) -> list[tuple[UserEntity, bool]]:
    """Return (organization, is_admin) for every org the user belongs to."""
    stmt = (
        select(UserEntity, OrgMemberEntity.is_admin)
        .join(OrgMemberEntity, OrgMemberEntity.org_id == UserEntity.id)
        .where(
            OrgMemberEntity.user_id == user_id,
            UserEntity.is_organization.is_(True),
        )
        .order_by(UserEntity.login)
    )
    result = await session.execute(stmt)
    return [(org, bool(is_admin)) for org, is_admin in result.all()]


async def list_emails(session: AsyncSession, user_id: str) -> list[UserEmailEntity]:
    """Return a user's email addresses, primary first."""
    stmt = (
        select(UserEmailEntity)
        .where(UserEmailEntity.user_id == user_id)
        .order_by(UserEmailEntity.is_primary.desc(), UserEmailEntity.email)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
