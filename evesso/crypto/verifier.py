"""Access token verification against the provider's signing keys."""

import time
from collections.abc import Callable, Iterable
from typing import Any

import jwt
from jwt import PyJWK, PyJWS, PyJWTError
from pydantic import ValidationError

from evesso.core.errors import (
    IssuerMismatchError,
    MalformedTokenError,
    SignatureInvalidError,
    TokenExpiredError,
    TokenVerificationError,
)
from evesso.core.logging import get_logger
from evesso.crypto.key_resolver import SigningKeyResolver
from evesso.crypto.types import AccessTokenClaims, UnverifiedToken

logger = get_logger("evesso.verifier")

DEFAULT_ALGORITHM = "RS256"


class TokenVerifier:
    """Verifies RS256 (or another configured asymmetric alg) access tokens.

    Each call runs decode, key resolution, signature check and claim
    validation in that order and stops at the first failure. Nothing is
    retried here.
    """

    def __init__(
        self,
        resolver: SigningKeyResolver,
        issuers: Iterable[str],
        *,
        algorithm: str = DEFAULT_ALGORITHM,
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._resolver = resolver
        self._issuers = tuple(issuers)
        self._algorithm = algorithm
        self._leeway = leeway
        self._clock = clock
        self._jws = PyJWS()

    async def verify(self, token: str) -> AccessTokenClaims:
        """Verify a compact JWT and return its claims."""
        try:
            unverified = self.decode(token)
            key = await self._resolver.resolve(unverified.key_id)
            self.check_signature(unverified, key)
            claims = self.validate_claims(unverified)
        except TokenVerificationError as exc:
            logger.warning(
                "Token verification failed",
                error=type(exc).__name__,
                detail=str(exc),
            )
            raise
        logger.debug("Token verified", sub=claims.subject, kid=claims.key_id)
        return claims

    def decode(self, token: str) -> UnverifiedToken:
        """Split and decode a token without trusting any of it."""
        try:
            decoded = jwt.decode_complete(
                token, options={"verify_signature": False}
            )
        except PyJWTError as exc:
            raise MalformedTokenError(f"Token is not a valid JWT: {exc}") from exc

        unverified = UnverifiedToken(
            raw=token, header=decoded["header"], payload=decoded["payload"]
        )
        if not unverified.key_id:
            raise MalformedTokenError("Token header has no key id (kid)")
        return unverified

    def check_signature(self, unverified: UnverifiedToken, key: PyJWK) -> None:
        """Verify the signature, accepting only the configured algorithm."""
        alg = unverified.algorithm
        kid = unverified.key_id
        if alg != self._algorithm:
            raise SignatureInvalidError(
                f"Token algorithm {alg!r} is not allowed, expected {self._algorithm}",
                key_id=kid,
                algorithm=alg,
            )
        if key.algorithm_name != alg:
            raise SignatureInvalidError(
                f"Key {kid} is a {key.algorithm_name} key, token declares {alg}",
                key_id=kid,
                algorithm=alg,
            )
        try:
            self._jws.decode(unverified.raw, key.key, algorithms=[self._algorithm])
        except PyJWTError as exc:
            raise SignatureInvalidError(
                f"Signature verification failed for key {kid}: {exc}",
                key_id=kid,
                algorithm=alg,
            ) from exc

    def validate_claims(self, unverified: UnverifiedToken) -> AccessTokenClaims:
        """Check issuer and expiry, then build the claim set."""
        payload: dict[str, Any] = unverified.payload

        issuer = payload.get("iss")
        if issuer not in self._issuers:
            raise IssuerMismatchError(issuer, self._issuers)

        expires_at = payload.get("exp")
        if isinstance(expires_at, bool) or not isinstance(expires_at, int | float):
            raise MalformedTokenError("Token has no numeric expiry (exp)")
        now = self._clock()
        if expires_at <= now - self._leeway:
            raise TokenExpiredError(int(expires_at), now)

        try:
            return AccessTokenClaims.model_validate(
                {**payload, "kid": unverified.key_id}
            )
        except ValidationError as exc:
            raise MalformedTokenError(f"Token claims are invalid: {exc}") from exc
