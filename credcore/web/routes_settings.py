"""User and organization settings: profile and avatar."""

import hashlib
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from credcore.authz.guard import guarded_mutation, guarded_view
from credcore.authz.session import current_principal
from credcore.authz.types import Principal, SettingsContext
from credcore.db.engine import get_session
from credcore.db.models_user import UserEntity
from credcore.db.repo_user import list_emails

router = APIRouter(tags=["settings"])

DbSession = Annotated[AsyncSession, Depends(get_session)]
CurrentPrincipal = Annotated[Principal | None, Depends(current_principal)]

PROFILE_ROUTE = "user_settings_profile"


class EmailAddress(BaseModel):
    email: str
    verified: bool = False
    primary: bool = False


class ProfileView(SettingsContext):
    """Profile panel data: the settings context plus the subject's emails."""

    emails: list[EmailAddress] = Field(default_factory=list)


def gravatar_url(email: str) -> str:
    """Gravatar image URL for an email; append '&s=128' to pick a size."""
    normalized = email.strip().lower()
    digest = hashlib.md5(normalized.encode(), usedforsecurity=False).hexdigest()
    return f"https://secure.gravatar.com/avatar/{digest}?d=mm"


def _profile_redirect(request: Request, login: str) -> RedirectResponse:
    return RedirectResponse(
        url=str(request.url_for(PROFILE_ROUTE, login=login)),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/{login}/.settings/profile", name=PROFILE_ROUTE)
async def view_profile(
    login: str,
    db: DbSession,
    principal: CurrentPrincipal,
) -> ProfileView:
    """GET /{login}/.settings/profile -- the settings panel data.

    Organizations have no email addresses; their list is always empty.
    """
    context = await guarded_view(db, principal, login)
    emails: list[EmailAddress] = []
    if not context.subject.is_organization:
        emails = [
            EmailAddress(email=e.email, verified=e.verified, primary=e.is_primary)
            for e in await list_emails(db, context.subject.id)
        ]
    return ProfileView(**context.model_dump(), emails=emails)


@router.post("/{login}/.settings/profile", name="user_settings_profile_update")
async def update_profile(
    request: Request,
    login: str,
    db: DbSession,
    principal: CurrentPrincipal,
    name: Annotated[str, Form(alias="Name")] = "",
) -> RedirectResponse:
    """POST /{login}/.settings/profile -- change the display name."""

    async def _set_name(user: UserEntity) -> None:
        user.name = name

    subject = await guarded_mutation(db, principal, login, _set_name)
    return _profile_redirect(request, subject.login)


@router.post("/{login}/.settings/profile/avatar", name="user_settings_avatar")
async def update_avatar(
    request: Request,
    login: str,
    db: DbSession,
    principal: CurrentPrincipal,
    gravatar_email: Annotated[str, Form(alias="GravatarEmail")] = "",
) -> RedirectResponse:
    """POST /{login}/.settings/profile/avatar -- set the Gravatar avatar."""

    async def _set_avatar(user: UserEntity) -> None:
        user.avatar_url = gravatar_url(gravatar_email)

    subject = await guarded_mutation(db, principal, login, _set_avatar)
    return _profile_redirect(request, subject.login)
