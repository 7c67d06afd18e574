"""Sources of organization membership data."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from credcore.authz.types import OrgMembership, SettingsSubject
from credcore.db.models_user import UserEntity
from credcore.db.repo_user import list_member_orgs


class MembershipSource(Protocol):
    """Looks up the organizations a user belongs to."""

    async def list_orgs(self, member_id: str) -> list[OrgMembership]: ...


def to_subject(entity: UserEntity) -> SettingsSubject:
    """Convert a UserEntity to a SettingsSubject."""
    return SettingsSubject(
        id=entity.id,
        login=entity.login,
        name=entity.name or "",
        avatar_url=entity.avatar_url or "",
        is_organization=bool(entity.is_organization),
    )


class DatabaseMembershipSource:
    """Reads memberships from the org_members table on every call."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_orgs(self, member_id: str) -> list[OrgMembership]:
        rows = await list_member_orgs(self._session, member_id)
        return [
            OrgMembership(org=to_subject(org), is_admin=is_admin)
            for org, is_admin in rows
        ]
