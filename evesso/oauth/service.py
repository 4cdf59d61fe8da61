"""Single sign-on client: redirect URLs, token exchange and verification."""

import asyncio
from collections.abc import Iterable
from types import TracebackType
from typing import Self

import httpx

from evesso.core.errors import TokenEndpointError, TransportTimeoutError
from evesso.core.logging import get_logger
from evesso.core.settings import SSOSettings
from evesso.crypto.key_resolver import SigningKeyResolver
from evesso.crypto.types import AccessTokenClaims
from evesso.crypto.verifier import TokenVerifier
from evesso.oauth.authorize import build_authorize_url, normalize_scopes
from evesso.oauth.grants import build_token_request, encode_form
from evesso.oauth.types import (
    AuthorizationCodeGrant,
    ClientCredentials,
    GrantRequest,
    RefreshTokenGrant,
    TokenResponse,
    VerifiedToken,
)

logger = get_logger("evesso.sso")


class SingleSignOnService:
    """OAuth2 client for one registered application at one identity provider.

    Use as an async context manager, or call :meth:`aclose`, to release the
    HTTP client when the service created it.
    """

    def __init__(
        self,
        client_id: str,
        secret_key: str,
        callback_uri: str,
        *,
        settings: SSOSettings | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or SSOSettings()
        self.credentials = ClientCredentials(
            client_id=client_id, secret_key=secret_key, callback_uri=callback_uri
        )
        self._owns_http = http is None
        self._http = (
            http
            if http is not None
            else httpx.AsyncClient(timeout=self.settings.http_timeout)
        )
        self.resolver = SigningKeyResolver(
            self.settings.jwks_uri,
            self._http,
            ttl=self.settings.key_cache_ttl,
            negative_ttl=self.settings.negative_cache_ttl,
            timeout=self.settings.http_timeout,
            user_agent=self.settings.user_agent,
        )
        self.verifier = TokenVerifier(
            self.resolver,
            self.settings.accepted_issuers,
            algorithm=self.settings.signing_algorithm,
            leeway=self.settings.leeway,
        )

    @property
    def client_id(self) -> str:
        return self.credentials.client_id

    @property
    def callback_uri(self) -> str:
        return self.credentials.callback_uri

    @property
    def scopes(self) -> list[str]:
        """Default scopes requested when a redirect names none."""
        return self.settings.get_scope_list()

    def build_redirect_url(
        self, state: str, scopes: str | Iterable[str] | None = None
    ) -> str:
        """Authorization URL for the user agent; ``state`` guards against CSRF."""
        requested = self.scopes if scopes is None else normalize_scopes(scopes)
        return build_authorize_url(
            self.settings.authorize_url,
            client_id=self.client_id,
            redirect_uri=self.callback_uri,
            scopes=requested,
            state=state,
        )

    async def exchange_token(self, grant: GrantRequest) -> VerifiedToken:
        """Redeem a grant at the token endpoint and verify the access token."""
        request = build_token_request(
            grant,
            self.credentials,
            host=self.settings.host,
            user_agent=self.settings.user_agent,
        )
        url = self.settings.token_url
        try:
            async with asyncio.timeout(self.settings.http_timeout):
                response = await self._http.post(
                    url,
                    content=encode_form(request),
                    headers=request.headers,
                    timeout=self.settings.http_timeout,
                )
        except (httpx.TimeoutException, TimeoutError) as exc:
            logger.warning("Token request timed out", url=url)
            raise TransportTimeoutError(url, self.settings.http_timeout) from exc
        except httpx.HTTPError as exc:
            logger.error("Token request failed", url=url, error=str(exc))
            raise TokenEndpointError(f"Token request failed: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "Token endpoint rejected grant",
                grant_type=grant.grant_type,
                status_code=response.status_code,
            )
            raise TokenEndpointError(
                f"Token endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            reply = TokenResponse.model_validate(response.json())
        except ValueError as exc:  # bad JSON or ValidationError
            raise TokenEndpointError(
                f"Unusable token endpoint reply: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        claims = await self.verifier.verify(reply.access_token)
        logger.info(
            "Token exchanged",
            grant_type=grant.grant_type,
            sub=claims.subject,
        )
        return VerifiedToken(response=reply, claims=claims)

    async def exchange_code(self, code: str) -> VerifiedToken:
        """Exchange the authorization code delivered to the callback URI."""
        return await self.exchange_token(AuthorizationCodeGrant(code=code))

    async def refresh_access_token(
        self, refresh_token: str, scopes: str | Iterable[str] | None = None
    ) -> VerifiedToken:
        """Obtain a fresh access token, optionally for a subset of scopes."""
        grant = RefreshTokenGrant(
            refresh_token=refresh_token,
            scopes=tuple(normalize_scopes(scopes or ())),
        )
        return await self.exchange_token(grant)

    async def verify_token(self, token: str) -> AccessTokenClaims:
        """Verify a previously obtained access token."""
        return await self.verifier.verify(token)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
