"""Type definitions for identity-key publication documents."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class RSAJWK(BaseModel):
    """Public RSA key in JWK form."""

    model_config = ConfigDict(extra="forbid")

    kty: Literal["RSA"] = "RSA"
    use: str = "sig"
    alg: str = "RS256"
    kid: str
    n: str
    e: str


class ECJWK(BaseModel):
    """Public elliptic-curve key in JWK form."""

    model_config = ConfigDict(extra="forbid")

    kty: Literal["EC"] = "EC"
    use: str = "sig"
    alg: str
    kid: str
    crv: str
    x: str
    y: str


JWK = Annotated[RSAJWK | ECJWK, Field(discriminator="kty")]


class JWKSDocument(BaseModel):
    """JSON Web Key Set holding only public parameters."""

    model_config = ConfigDict(extra="forbid")

    keys: list[JWK] = Field(min_length=1)

    @property
    def kid(self) -> str:
        """Key ID of the first (and normally only) key."""
        return self.keys[0].kid
