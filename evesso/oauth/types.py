"""Type definitions for client credentials, grants and token responses."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from evesso.crypto.types import AccessTokenClaims


class ClientCredentials(BaseModel):
    """Registered application identity, fixed for the client's lifetime."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    secret_key: SecretStr
    callback_uri: str = Field(min_length=1)

    @field_validator("secret_key")
    @classmethod
    def _require_secret(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("secret_key must not be empty")
        return value


class AuthorizationCodeGrant(BaseModel):
    """Exchange of an authorization code from the redirect callback."""

    model_config = ConfigDict(frozen=True)

    grant_type: Literal["authorization_code"] = "authorization_code"
    code: str = Field(min_length=1)


class RefreshTokenGrant(BaseModel):
    """Exchange of a refresh token, optionally narrowed to fewer scopes."""

    model_config = ConfigDict(frozen=True)

    grant_type: Literal["refresh_token"] = "refresh_token"
    refresh_token: str = Field(min_length=1)
    scopes: tuple[str, ...] = ()

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(value.split())
        return value


GrantRequest = Annotated[
    AuthorizationCodeGrant | RefreshTokenGrant,
    Field(discriminator="grant_type"),
]


class TokenRequest(BaseModel):
    """Form fields and headers for one token endpoint call."""

    model_config = ConfigDict(frozen=True)

    form: dict[str, str]
    headers: dict[str, str]


class TokenResponse(BaseModel):
    """Token endpoint reply, passed through as the provider sent it."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str | None = None


class VerifiedToken(BaseModel):
    """A token endpoint reply together with its verified access token claims."""

    response: TokenResponse
    claims: AccessTokenClaims
