"""Signed client assertions: how a registered client proves its identity.

The client signs a short-lived JWT with its identity key. The header ``kid``
names the registered client, and the signature is checked against the JWK
Set stored for that client at registration time.
"""

import secrets
from datetime import UTC, datetime, timedelta

import jwt

from credcore.core.errors import MalformedKeyError, Unauthorized
from credcore.crypto.idkey import IdentityKey, load_jwks

ASSERTION_TTL_SECONDS = 300
REQUIRED_CLAIMS = ["exp", "iat", "iss", "sub", "aud"]


def create_client_assertion(
    key: IdentityKey, audience: str, ttl_seconds: int = ASSERTION_TTL_SECONDS
) -> str:
    """Create a JWT asserting the identity of the key's client."""
    now = datetime.now(UTC)
    payload = {
        "iss": key.id,
        "sub": key.id,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(
        payload,
        key.private_key,
        algorithm=key.algorithm,
        headers={"kid": key.id},
    )


def unverified_client_id(token: str) -> str:
    """Read the claimed client ID from the assertion header."""
    try:
        header = jwt.get_unverified_header(token)
    except jwt.PyJWTError as exc:
        raise Unauthorized("malformed client assertion") from exc
    kid = header.get("kid")
    if not isinstance(kid, str) or not kid:
        raise Unauthorized("client assertion has no kid")
    return kid


def verify_client_assertion(token: str, jwks_text: str, audience: str) -> str:
    """Verify an assertion against a stored JWK Set; return the client ID."""
    try:
        document = load_jwks(jwks_text)
    except MalformedKeyError as exc:
        raise Unauthorized("client has no usable public key") from exc
    entry = document.keys[0]
    try:
        signing_key = jwt.PyJWK(entry.model_dump(), algorithm=entry.alg)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=[entry.alg],
            audience=audience,
            options={"require": REQUIRED_CLAIMS},
        )
    except (jwt.PyJWTError, ValueError) as exc:
        raise Unauthorized("invalid client assertion") from exc
    if claims["iss"] != entry.kid or claims["sub"] != entry.kid:
        raise Unauthorized("client assertion subject does not match key")
    return entry.kid
