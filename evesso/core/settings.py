"""Client settings loaded from constructor arguments or environment variables."""

import platform
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from evesso import __homepage__, __version__

DEFAULT_ENDPOINT = "https://login.eveonline.com"
KEY_CACHE_TTL_DEFAULT = 600
KEY_CACHE_TTL_MIN = 60
NEGATIVE_CACHE_TTL_DEFAULT = 5
HTTP_TIMEOUT_DEFAULT = 10.0

ASYMMETRIC_ALGORITHMS = frozenset(
    {
        "RS256",
        "RS384",
        "RS512",
        "PS256",
        "PS384",
        "PS512",
        "ES256",
        "ES384",
        "ES512",
        "EdDSA",
    }
)


def default_user_agent() -> str:
    """Build the User-Agent sent to the identity provider."""
    return (
        f"evesso@{__version__} - python@{platform.python_version()}"
        f" - {__homepage__}"
    )


class SSOSettings(BaseSettings):
    """Identity provider endpoints, key cache and transport settings."""

    model_config = SettingsConfigDict(env_prefix="EVESSO_", frozen=True)

    endpoint: str = DEFAULT_ENDPOINT
    user_agent: str = Field(default_factory=default_user_agent)
    default_scopes: str = ""
    key_cache_ttl: int = Field(default=KEY_CACHE_TTL_DEFAULT, ge=KEY_CACHE_TTL_MIN)
    negative_cache_ttl: float = Field(default=NEGATIVE_CACHE_TTL_DEFAULT, ge=0)
    http_timeout: float = Field(default=HTTP_TIMEOUT_DEFAULT, gt=0)
    signing_algorithm: str = "RS256"
    leeway: int = Field(default=0, ge=0)

    @field_validator("endpoint")
    @classmethod
    def _strip_endpoint(cls, value: str) -> str:
        endpoint = value.rstrip("/")
        if not urlsplit(endpoint).hostname:
            raise ValueError(f"endpoint has no host: {value!r}")
        return endpoint

    @field_validator("default_scopes", mode="before")
    @classmethod
    def _join_scopes(cls, value: object) -> object:
        if isinstance(value, list | tuple):
            return " ".join(value)
        return value

    @field_validator("signing_algorithm")
    @classmethod
    def _require_asymmetric(cls, value: str) -> str:
        if value not in ASYMMETRIC_ALGORITHMS:
            raise ValueError(f"unsupported signing algorithm: {value}")
        return value

    @property
    def host(self) -> str:
        """Hostname of the identity provider endpoint."""
        return urlsplit(self.endpoint).hostname or ""

    @property
    def authorize_url(self) -> str:
        return f"{self.endpoint}/v2/oauth/authorize"

    @property
    def token_url(self) -> str:
        return f"{self.endpoint}/v2/oauth/token"

    @property
    def jwks_uri(self) -> str:
        return f"{self.endpoint}/oauth/jwks"

    @property
    def accepted_issuers(self) -> tuple[str, str]:
        """Issuer values the provider is known to emit."""
        return (self.endpoint, self.host)

    def get_scope_list(self) -> list[str]:
        """Parse space-separated default scopes."""
        return self.default_scopes.split()
