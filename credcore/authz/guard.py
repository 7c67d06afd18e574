"""Single choke point for viewing and mutating settings."""

from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from credcore.authz.membership import MembershipSource, to_subject
from credcore.authz.resolver import authorize_settings
from credcore.authz.types import Principal, SettingsContext, SettingsSubject
from credcore.core.errors import NotFoundError
from credcore.core.logging import get_logger
from credcore.db.models_user import UserEntity
from credcore.db.repo_user import get_user_by_id

log = get_logger(__name__)

Mutation = Callable[[UserEntity], Awaitable[None]]


async def guarded_view(
    session: AsyncSession,
    principal: Principal | None,
    login: str,
    memberships: MembershipSource | None = None,
) -> SettingsContext:
    """Authorize read access to a subject's settings."""
    return await authorize_settings(session, principal, login, memberships)


async def guarded_mutation(
    session: AsyncSession,
    principal: Principal | None,
    login: str,
    mutate: Mutation,
    memberships: MembershipSource | None = None,
) -> SettingsSubject:
    """Authorize, then apply ``mutate`` to the subject and return its new state.

    Denials raise before ``mutate`` is called.
    """
    context = await authorize_settings(session, principal, login, memberships)
    entity = await get_user_by_id(session, context.subject.id)
    if entity is None:
        raise NotFoundError(f"user {login!r} not found")

    await mutate(entity)
    await session.flush()
    log.info(
        "settings.mutated",
        principal=context.principal.login,
        subject=entity.login,
    )
    return to_subject(entity)
