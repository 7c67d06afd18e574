"""Tests for user and organization repository operations."""

from sqlalchemy.ext.asyncio import AsyncSession

from credcore.db.models_user import OrgMemberEntity, UserEntity
from credcore.db.repo_user import (
    get_user_by_id,
    get_user_by_login,
    list_emails,
    list_member_orgs,
)


class TestGetUser:
    """Tests for get_user_by_login / get_user_by_id."""

    async def test_by_login(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        result = await get_user_by_login(db_session, "alice")
        assert result is not None
        assert result.id == "u-alice"

    async def test_by_id(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        result = await get_user_by_id(db_session, "o-acme")
        assert result is not None
        assert result.is_organization is True

    async def test_missing(self, db_session: AsyncSession) -> None:
        assert await get_user_by_login(db_session, "nobody") is None
        assert await get_user_by_id(db_session, "u-nobody") is None


class TestListMemberOrgs:
    """Tests for list_member_orgs."""

    async def test_admin_flag(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        alice = await list_member_orgs(db_session, "u-alice")
        bob = await list_member_orgs(db_session, "u-bob")
        assert [(org.login, admin) for org, admin in alice] == [("acme", True)]
        assert [(org.login, admin) for org, admin in bob] == [("acme", False)]

    async def test_ordered_by_login(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        db_session.add(OrgMemberEntity(org_id="o-globex", user_id="u-bob"))
        await db_session.flush()
        rows = await list_member_orgs(db_session, "u-bob")
        assert [org.login for org, _ in rows] == ["acme", "globex"]

    async def test_user_rows_are_not_orgs(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        db_session.add(OrgMemberEntity(org_id="u-bob", user_id="u-alice"))
        await db_session.flush()
        rows = await list_member_orgs(db_session, "u-alice")
        assert [org.login for org, _ in rows] == ["acme"]

    async def test_no_memberships(self, db_session: AsyncSession) -> None:
        assert await list_member_orgs(db_session, "u-nobody") == []


class TestListEmails:
    """Tests for list_emails."""

    async def test_primary_first(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        emails = await list_emails(db_session, "u-alice")
        assert [(e.email, e.is_primary) for e in emails] == [
            ("me@alice.test", True),
            ("work@alice.test", False),
        ]

    async def test_none(
        self, db_session: AsyncSession, people: dict[str, UserEntity]
    ) -> None:
        assert await list_emails(db_session, "u-bob") == []
