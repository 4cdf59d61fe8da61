"""Type definitions for signing keys, key sets and verified token claims."""

from typing import Any

from jwt import PyJWK
from pydantic import BaseModel, ConfigDict, Field, field_validator

CHARACTER_SUBJECT_PREFIX = "CHARACTER:EVE:"


class JWKSDocument(BaseModel):
    """JSON Web Key Set response; entries stay raw for PyJWT to parse."""

    keys: list[dict[str, Any]]


class SigningKeyEntry(BaseModel):
    """A cached public key and the window during which it is trusted."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    key_id: str
    public_key: PyJWK
    fetched_at: float
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class UnverifiedToken(BaseModel):
    """A decoded token whose signature and claims have not been checked yet."""

    model_config = ConfigDict(frozen=True)

    raw: str
    header: dict[str, Any]
    payload: dict[str, Any]

    @property
    def key_id(self) -> str:
        return str(self.header.get("kid") or "")

    @property
    def algorithm(self) -> str | None:
        return self.header.get("alg")


class AccessTokenClaims(BaseModel):
    """Identity claims of an access token whose signature and claims verified."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    subject: str = Field(alias="sub", min_length=1)
    scopes: tuple[str, ...] = Field(default=(), alias="scp")
    token_id: str = Field(default="", alias="jti")
    key_id: str = Field(default="", alias="kid")
    authorized_party: str = Field(default="", alias="azp")
    character_name: str = Field(default="", alias="name")
    owner: str = ""
    expires_at: int = Field(alias="exp")
    issuer: str = Field(alias="iss")

    @field_validator("scopes", mode="before")
    @classmethod
    def _single_scope(cls, value: object) -> object:
        # A lone scope arrives as a bare string
        if isinstance(value, str):
            return (value,) if value else ()
        return value

    @property
    def character_id(self) -> int | None:
        """Numeric character id for ``CHARACTER:EVE:<id>`` subjects."""
        if not self.subject.startswith(CHARACTER_SUBJECT_PREFIX):
            return None
        tail = self.subject.removeprefix(CHARACTER_SUBJECT_PREFIX)
        return int(tail) if tail.isdigit() else None
