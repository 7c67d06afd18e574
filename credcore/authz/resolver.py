"""Authorization resolver for user and organization settings.

A principal may view or edit its own settings, and those of organizations it
administers. Membership is fetched from its source on every call; nothing
here is cached between requests.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from credcore.authz.membership import (
    DatabaseMembershipSource,
    MembershipSource,
    to_subject,
)
from credcore.authz.types import (
    ME_ALIAS,
    AuthorizationResult,
    OrgMembership,
    Principal,
    SettingsContext,
    SettingsSubject,
)
from credcore.core.errors import (
    AuthenticationRequired,
    Forbidden,
    NotFoundError,
    SelfAliasRedirect,
    TransportError,
    Unauthorized,
)
from credcore.core.logging import get_logger
from credcore.db.repo_user import get_user_by_login

log = get_logger(__name__)


def me_redirect(login: str, principal: Principal | None) -> str | None:
    """Return the principal's concrete login if ``login`` is the .me alias."""
    if principal is None or login != ME_ALIAS:
        return None
    return principal.login


async def fetch_memberships(
    source: MembershipSource, principal: Principal
) -> list[OrgMembership]:
    """Fetch memberships, treating an unsupported backend as zero orgs."""
    try:
        return await source.list_orgs(principal.id)
    except TransportError as exc:
        if not exc.unimplemented:
            raise
        log.info("settings.orgs_unsupported", principal=principal.login)
        return []


def orgs_and_self(
    subject: SettingsSubject, memberships: list[OrgMembership]
) -> list[SettingsSubject]:
    """The subject followed by each organization the principal belongs to."""
    result = [subject]
    seen = {subject.id}
    for membership in memberships:
        if membership.org.id not in seen:
            seen.add(membership.org.id)
            result.append(membership.org)
    return result


def decide(
    principal: Principal,
    subject: SettingsSubject,
    memberships: list[OrgMembership],
) -> AuthorizationResult:
    """Decide whether the principal may view or edit the subject."""
    if principal.id == subject.id:
        return AuthorizationResult(subject=subject, allowed=True, reason="self")
    if not subject.is_organization:
        return AuthorizationResult(
            subject=subject,
            allowed=False,
            reason="must be logged in as the requested user",
        )
    for membership in memberships:
        if membership.org.id != subject.id:
            continue
        if membership.is_admin:
            return AuthorizationResult(
                subject=subject, allowed=True, reason="organization admin"
            )
        return AuthorizationResult(
            subject=subject,
            allowed=False,
            reason="only an organization admin can view or edit its profile",
        )
    return AuthorizationResult(
        subject=subject,
        allowed=False,
        reason="not a member of the organization",
    )


def require_allowed(result: AuthorizationResult) -> None:
    """Raise the matching error for a denied decision.

    A different user as target means the caller is logged in as the wrong
    identity (Unauthorized); an organization means missing privilege
    (Forbidden).
    """
    if result.allowed:
        return
    if result.subject.is_organization:
        raise Forbidden(result.reason)
    raise Unauthorized(result.reason)


async def authorize_settings(
    session: AsyncSession,
    principal: Principal | None,
    login: str,
    memberships: MembershipSource | None = None,
) -> SettingsContext:
    """Resolve and authorize access to the settings of ``login``.

    Order matters: authentication first, then the .me alias (which changes
    the subject), then the subject lookup and the decision.
    """
    if principal is None:
        raise AuthenticationRequired("log in to view settings")

    concrete = me_redirect(login, principal)
    if concrete is not None:
        raise SelfAliasRedirect(concrete)

    entity = await get_user_by_login(session, login)
    if entity is None:
        raise NotFoundError(f"user {login!r} not found")
    subject = to_subject(entity)

    source = memberships
    if source is None:
        source = DatabaseMembershipSource(session)
    member_orgs = await fetch_memberships(source, principal)
    result = decide(principal, subject, member_orgs)
    log.info(
        "settings.authorization",
        principal=principal.login,
        subject=subject.login,
        allowed=result.allowed,
        reason=result.reason,
    )
    require_allowed(result)

    return SettingsContext(
        principal=principal,
        subject=subject,
        orgs_and_self=orgs_and_self(subject, member_orgs),
        result=result,
    )
