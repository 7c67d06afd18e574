"""Types for settings authorization decisions."""

from pydantic import BaseModel, ConfigDict, Field

ME_ALIAS = ".me"


class Principal(BaseModel):
    """The authenticated actor issuing a request."""

    model_config = ConfigDict(frozen=True)

    id: str
    login: str


class SettingsSubject(BaseModel):
    """A user or organization whose settings are viewed or edited."""

    id: str
    login: str
    name: str = ""
    avatar_url: str = ""
    is_organization: bool = False


class OrgMembership(BaseModel):
    """A principal's membership in one organization."""

    org: SettingsSubject
    is_admin: bool = False


class AuthorizationResult(BaseModel):
    """Outcome of one authorization decision. Never cached."""

    subject: SettingsSubject
    allowed: bool
    reason: str


class SettingsContext(BaseModel):
    """Everything a settings handler needs after access was granted."""

    principal: Principal
    subject: SettingsSubject
    orgs_and_self: list[SettingsSubject] = Field(default_factory=list)
    result: AuthorizationResult
