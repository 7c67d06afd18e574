"""Error taxonomy shared by the registry, the resolver, and the CLI.

Every error carries a stable ``code``. Callers (and the HTTP client on the
other side of the wire) branch on the class or the code, never on the
message text.
"""

HTTP_FOUND = 302
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_BAD_GATEWAY = 502


class CredcoreError(Exception):
    """Base class for all credcore errors."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class AuthenticationRequired(CredcoreError):
    """No authenticated principal; the caller should log in first."""

    code = "authentication_required"
    status_code = HTTP_FOUND


class Unauthorized(CredcoreError):
    """Authenticated as the wrong identity for the requested target."""

    code = "unauthorized"
    status_code = HTTP_UNAUTHORIZED


class Forbidden(CredcoreError):
    """Authenticated correctly but lacking the required privilege."""

    code = "forbidden"
    status_code = HTTP_FORBIDDEN


class NotFoundError(CredcoreError):
    """No such registered client, user, or organization."""

    code = "not_found"
    status_code = HTTP_NOT_FOUND


class DuplicateIDError(CredcoreError):
    """A registered client with this ID already exists."""

    code = "duplicate_id"
    status_code = HTTP_CONFLICT


class InvalidRequestError(CredcoreError):
    """Request body, path or query failed validation."""

    code = "invalid_request"
    status_code = HTTP_BAD_REQUEST


class InvalidTypeError(CredcoreError):
    """Client type is not one of the known values."""

    code = "invalid_type"
    status_code = HTTP_BAD_REQUEST


class InvalidLoginPolicyError(CredcoreError):
    """allow-logins value is neither 'restricted' nor 'all'."""

    code = "invalid_login_policy"
    status_code = HTTP_BAD_REQUEST


class InvalidCursorError(CredcoreError):
    """Page or per-page value out of range."""

    code = "invalid_cursor"
    status_code = HTTP_BAD_REQUEST


class MalformedKeyError(CredcoreError):
    """Key material could not be parsed."""

    code = "malformed_key"
    status_code = HTTP_BAD_REQUEST


class UnsupportedKeyTypeError(CredcoreError):
    """Key algorithm or size is outside the supported set."""

    code = "unsupported_key_type"
    status_code = HTTP_BAD_REQUEST


class TransportError(CredcoreError):
    """The backing service is unreachable or returned an error.

    ``unimplemented`` marks an operation the backend does not support at
    all; callers may degrade gracefully on it.
    """

    code = "transport_error"
    status_code = HTTP_BAD_GATEWAY

    def __init__(self, message: str = "", *, unimplemented: bool = False) -> None:
        super().__init__(message)
        self.unimplemented = unimplemented


ERRORS_BY_CODE: dict[str, type[CredcoreError]] = {
    cls.code: cls
    for cls in (
        AuthenticationRequired,
        Unauthorized,
        Forbidden,
        NotFoundError,
        DuplicateIDError,
        InvalidRequestError,
        InvalidTypeError,
        InvalidLoginPolicyError,
        InvalidCursorError,
        MalformedKeyError,
        UnsupportedKeyTypeError,
        TransportError,
    )
}


class SelfAliasRedirect(CredcoreError):
    """The request addressed the '.me' alias; redirect to the concrete login.

    Raised before any authorization decision. The HTTP layer answers with a
    redirect to the same route for ``login`` and handles nothing else.
    """

    code = "self_alias_redirect"
    status_code = HTTP_FOUND

    def __init__(self, login: str) -> None:
        super().__init__(f"redirect to {login}")
        self.login = login
