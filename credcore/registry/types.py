"""Types for the registered-client registry."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from credcore.core.errors import InvalidLoginPolicyError, InvalidTypeError
from credcore.core.settings import PER_PAGE_DEFAULT

ALLOW_LOGINS_KEY = "allow-logins"


class ClientType(StrEnum):
    """Kinds of registered API client."""

    SERVER = "Server"
    AGENT = "Agent"
    OTHER = "Other"


class LoginPolicy(StrEnum):
    """Who may log in through a registered client."""

    RESTRICTED = "restricted"
    ALL = "all"


def parse_client_type(value: str) -> ClientType:
    """Parse a client type, rejecting anything that is not a known value."""
    try:
        return ClientType(value)
    except ValueError as exc:
        choices = ", ".join(t.value for t in ClientType)
        raise InvalidTypeError(
            f"invalid client type {value!r}; choices are {choices}"
        ) from exc


def parse_login_policy(value: str) -> LoginPolicy:
    """Parse an allow-logins value for writing; unknown values are rejected."""
    try:
        return LoginPolicy(value)
    except ValueError as exc:
        raise InvalidLoginPolicyError(
            f"invalid allow-logins {value!r}; must be 'restricted' or 'all'"
        ) from exc


class RegisteredClient(BaseModel):
    """A registered API client as returned by the registry."""

    id: str
    client_name: str = ""
    client_uri: str = ""
    redirect_uris: list[str] = Field(default_factory=list)
    description: str = ""
    type: ClientType
    jwks: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)
    created_at: datetime


class ClientDraft(BaseModel):
    """Parameters for registering a new client.

    ``type`` stays a plain string here so that unknown values reach
    parse_client_type and fail with InvalidTypeError.
    """

    id: str = Field(min_length=1)
    client_name: str = ""
    client_uri: str = ""
    redirect_uris: list[str] = Field(default_factory=list)
    description: str = ""
    type: str = ClientType.SERVER.value
    jwks: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)
    allow_logins: str | None = None


class ClientPatch(BaseModel):
    """Partial update; None or empty fields leave the stored value alone."""

    client_name: str | None = None
    client_uri: str | None = None
    redirect_uris: list[str] | None = None
    description: str | None = None
    metadata: dict[str, str] | None = None
    allow_logins: str | None = None


class ClientCursor(BaseModel):
    """Page-number cursor for listing clients."""

    page: int = 1
    per_page: int = PER_PAGE_DEFAULT


class ClientPage(BaseModel):
    """One page of registered clients."""

    clients: list[RegisteredClient] = Field(default_factory=list)
    page: int
    per_page: int
    has_more: bool = False
    next_page: int | None = None
