"""Identity keys: ID derivation and public-key (JWKS) publication.

An identity key is an asymmetric keypair whose public half becomes a
registered client's identity. The client ID is a fingerprint of the public
key, so anyone holding the published document can recompute it.
"""

import base64
import hashlib
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)
from pydantic import ValidationError

from credcore.core.errors import MalformedKeyError, UnsupportedKeyTypeError
from credcore.crypto.types import ECJWK, RSAJWK, JWKSDocument

RSA_KEY_SIZE = 2048
RSA_MIN_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537

# curve name -> (JWK crv, JWS alg)
EC_CURVES = {
    "secp256r1": ("P-256", "ES256"),
    "secp384r1": ("P-384", "ES384"),
}

_PRIVATE_KEY_CLASSES = (
    rsa.RSAPrivateKey,
    ec.EllipticCurvePrivateKey,
    ed25519.Ed25519PrivateKey,
    ed448.Ed448PrivateKey,
    dsa.DSAPrivateKey,
)

_PUBLIC_KEY_CLASSES = (
    rsa.RSAPublicKey,
    ec.EllipticCurvePublicKey,
    ed25519.Ed25519PublicKey,
    ed448.Ed448PublicKey,
    dsa.DSAPublicKey,
)

# JWK crv -> curve
JWK_CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
}

KeyMaterial = str | bytes | PublicKeyTypes | PrivateKeyTypes


def _int_to_base64url(value: int, length: int | None = None) -> str:
    """Encode an integer as base64url without padding."""
    byte_length = length or (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _base64url_to_int(value: str) -> int:
    """Decode an unpadded base64url string to an integer."""
    raw = base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    return int.from_bytes(raw, byteorder="big")


def _parse_public_key(data: bytes) -> PublicKeyTypes:
    """Parse PEM (public or private) or DER public key bytes."""
    try:
        if data.lstrip().startswith(b"-----BEGIN"):
            if b"PRIVATE KEY-----" in data:
                return serialization.load_pem_private_key(
                    data, password=None
                ).public_key()
            return serialization.load_pem_public_key(data)
        return serialization.load_der_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise MalformedKeyError(f"cannot parse key material: {exc}") from exc


def load_public_key(material: KeyMaterial) -> PublicKeyTypes:
    """Return the public key for PEM/DER bytes or a loaded key object."""
    if isinstance(material, str):
        material = material.encode()
    if isinstance(material, bytes):
        return _parse_public_key(material)
    if isinstance(material, _PRIVATE_KEY_CLASSES):
        return material.public_key()
    if isinstance(material, _PUBLIC_KEY_CLASSES):
        return material
    raise MalformedKeyError(f"not key material: {type(material).__name__}")


def derive_id(material: KeyMaterial) -> str:
    """Derive the stable client ID from public key material.

    The ID is the unpadded base64url SHA-256 digest of the DER-encoded
    SubjectPublicKeyInfo. It depends on the public key only.
    """
    public_key = load_public_key(material)
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashlib.sha256(der).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def publishable_document(material: KeyMaterial) -> JWKSDocument:
    """Build the public-only JWK Set for a key; kid is the derived ID."""
    public_key = load_public_key(material)
    kid = derive_id(public_key)

    if isinstance(public_key, rsa.RSAPublicKey):
        if public_key.key_size < RSA_MIN_KEY_SIZE:
            raise UnsupportedKeyTypeError(
                f"RSA keys must be at least {RSA_MIN_KEY_SIZE} bits"
            )
        numbers = public_key.public_numbers()
        entry: RSAJWK | ECJWK = RSAJWK(
            kid=kid,
            n=_int_to_base64url(numbers.n),
            e=_int_to_base64url(numbers.e),
        )
        return JWKSDocument(keys=[entry])

    if isinstance(public_key, ec.EllipticCurvePublicKey):
        curve = EC_CURVES.get(public_key.curve.name)
        if curve is None:
            raise UnsupportedKeyTypeError(
                f"unsupported elliptic curve {public_key.curve.name}"
            )
        crv, alg = curve
        coord_length = (public_key.curve.key_size + 7) // 8
        ec_numbers = public_key.public_numbers()
        entry = ECJWK(
            kid=kid,
            alg=alg,
            crv=crv,
            x=_int_to_base64url(ec_numbers.x, coord_length),
            y=_int_to_base64url(ec_numbers.y, coord_length),
        )
        return JWKSDocument(keys=[entry])

    raise UnsupportedKeyTypeError(f"unsupported key type {type(public_key).__name__}")


def load_jwks(text: str) -> JWKSDocument:
    """Parse a stored JWK Set, rejecting anything but public parameters."""
    try:
        return JWKSDocument.model_validate_json(text)
    except ValidationError as exc:
        raise MalformedKeyError(f"invalid JWK set: {exc}") from exc


def public_key_from_jwk(entry: RSAJWK | ECJWK) -> PublicKeyTypes:
    """Rebuild the public key described by a JWK."""
    try:
        if isinstance(entry, RSAJWK):
            return rsa.RSAPublicNumbers(
                e=_base64url_to_int(entry.e),
                n=_base64url_to_int(entry.n),
            ).public_key()
        curve = JWK_CURVES.get(entry.crv)
        if curve is None:
            raise UnsupportedKeyTypeError(f"unsupported elliptic curve {entry.crv}")
        return ec.EllipticCurvePublicNumbers(
            x=_base64url_to_int(entry.x),
            y=_base64url_to_int(entry.y),
            curve=curve(),
        ).public_key()
    except ValueError as exc:
        raise MalformedKeyError(f"invalid JWK parameters: {exc}") from exc


def bind_jwks(text: str, client_id: str) -> JWKSDocument:
    """Parse a JWK Set and check that it publishes the key behind client_id.

    The ID is recomputed from the key parameters; the ``kid`` label alone
    proves nothing.
    """
    document = load_jwks(text)
    if len(document.keys) != 1:
        raise MalformedKeyError("JWK set must hold exactly one key")
    expected = publishable_document(public_key_from_jwk(document.keys[0]))
    if expected.kid != client_id:
        raise MalformedKeyError("JWK set key does not derive to the client ID")
    if document != expected:
        raise MalformedKeyError("JWK set does not match its key")
    return document


class IdentityKey:
    """A private identity key and the identity derived from it."""

    def __init__(self, private_key: PrivateKeyTypes) -> None:
        if not isinstance(private_key, _PRIVATE_KEY_CLASSES):
            raise UnsupportedKeyTypeError(
                f"unsupported key type {type(private_key).__name__}"
            )
        self._private_key = private_key
        self.id = derive_id(private_key.public_key())

    @classmethod
    def from_pem(
        cls, data: bytes | str, password: bytes | None = None
    ) -> "IdentityKey":
        """Load an identity key from a PEM-encoded private key."""
        if isinstance(data, str):
            data = data.encode()
        try:
            private_key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise MalformedKeyError(f"cannot parse ID key: {exc}") from exc
        return cls(private_key)

    @classmethod
    def from_file(cls, path: str | Path) -> "IdentityKey":
        """Load an identity key from a PEM file."""
        return cls.from_pem(Path(path).read_bytes())

    @property
    def private_key(self) -> PrivateKeyTypes:
        return self._private_key

    @property
    def public_key_pem(self) -> str:
        return (
            self._private_key.public_key()
            .public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode()
        )

    @property
    def algorithm(self) -> str:
        """JWS algorithm used when signing with this key."""
        return self.public_document().keys[0].alg

    def public_document(self) -> JWKSDocument:
        return publishable_document(self._private_key.public_key())

    def marshal_jwks(self) -> str:
        """Serialize the public JWK Set as compact JSON."""
        return self.public_document().model_dump_json()

    def private_key_pem(self) -> str:
        """PKCS#8 PEM of the private key, for writing the key file."""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()


def generate_identity_key(kind: str = "rsa") -> IdentityKey:
    """Generate a new RSA-2048 or EC P-256 identity key."""
    if kind == "rsa":
        private_key: PrivateKeyTypes = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=RSA_KEY_SIZE,
        )
    elif kind == "ec":
        private_key = ec.generate_private_key(ec.SECP256R1())
    else:
        raise UnsupportedKeyTypeError(f"unknown key kind {kind!r}")
    return IdentityKey(private_key)
