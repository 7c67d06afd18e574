"""Tests for signed client assertions."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from credcore.core.errors import Unauthorized
from credcore.crypto.assertion import (
    create_client_assertion,
    unverified_client_id,
    verify_client_assertion,
)
from credcore.crypto.idkey import IdentityKey, generate_identity_key

AUDIENCE = "http://localhost:8000"


@pytest.fixture(scope="module")
def rsa_key() -> IdentityKey:
    return generate_identity_key("rsa")


@pytest.fixture
def ec_key() -> IdentityKey:
    return generate_identity_key("ec")


class TestClientAssertion:
    """Tests for create_client_assertion / verify_client_assertion."""

    def test_rsa_roundtrip(self, rsa_key: IdentityKey) -> None:
        token = create_client_assertion(rsa_key, AUDIENCE)
        assert verify_client_assertion(token, rsa_key.marshal_jwks(), AUDIENCE) == (
            rsa_key.id
        )

    def test_ec_roundtrip(self, ec_key: IdentityKey) -> None:
        token = create_client_assertion(ec_key, AUDIENCE)
        assert verify_client_assertion(token, ec_key.marshal_jwks(), AUDIENCE) == (
            ec_key.id
        )

    def test_kid_names_the_client(self, ec_key: IdentityKey) -> None:
        token = create_client_assertion(ec_key, AUDIENCE)
        assert unverified_client_id(token) == ec_key.id

    def test_wrong_audience(self, ec_key: IdentityKey) -> None:
        token = create_client_assertion(ec_key, "http://elsewhere")
        with pytest.raises(Unauthorized):
            verify_client_assertion(token, ec_key.marshal_jwks(), AUDIENCE)

    def test_expired(self, ec_key: IdentityKey) -> None:
        token = create_client_assertion(ec_key, AUDIENCE, ttl_seconds=-60)
        with pytest.raises(Unauthorized):
            verify_client_assertion(token, ec_key.marshal_jwks(), AUDIENCE)

    def test_signed_by_another_key(self, ec_key: IdentityKey) -> None:
        impostor = generate_identity_key("ec")
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "iss": ec_key.id,
                "sub": ec_key.id,
                "aud": AUDIENCE,
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            impostor.private_key,
            algorithm="ES256",
            headers={"kid": ec_key.id},
        )
        assert unverified_client_id(token) == ec_key.id
        with pytest.raises(Unauthorized):
            verify_client_assertion(token, ec_key.marshal_jwks(), AUDIENCE)

    def test_subject_must_match_key(self, ec_key: IdentityKey) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "iss": "someone-else",
                "sub": "someone-else",
                "aud": AUDIENCE,
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            ec_key.private_key,
            algorithm="ES256",
            headers={"kid": ec_key.id},
        )
        with pytest.raises(Unauthorized):
            verify_client_assertion(token, ec_key.marshal_jwks(), AUDIENCE)

    def test_client_without_key(self, ec_key: IdentityKey) -> None:
        token = create_client_assertion(ec_key, AUDIENCE)
        with pytest.raises(Unauthorized):
            verify_client_assertion(token, "", AUDIENCE)

    def test_garbage_token(self) -> None:
        with pytest.raises(Unauthorized):
            unverified_client_id("not-a-jwt")

    def test_token_without_kid(self, ec_key: IdentityKey) -> None:
        token = jwt.encode({"sub": "x"}, ec_key.private_key, algorithm="ES256")
        with pytest.raises(Unauthorized):
            unverified_client_id(token)
