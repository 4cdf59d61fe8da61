"""Exception hierarchy for token exchange and verification."""


class SSOError(Exception):
    """Base class for every error raised by evesso."""


class TokenVerificationError(SSOError):
    """The token cannot be trusted."""


class MalformedTokenError(TokenVerificationError):
    """The token is not a well-formed signed JWT with the expected claims."""


class UnknownKeyError(TokenVerificationError):
    """The token names a key id absent from the provider's key set."""

    def __init__(self, key_id: str) -> None:
        super().__init__(f"Signing key not found in key set: {key_id}")
        self.key_id = key_id


class SignatureInvalidError(TokenVerificationError):
    """The signature does not verify, or uses a rejected algorithm."""

    def __init__(self, message: str, *, key_id: str, algorithm: str | None) -> None:
        super().__init__(message)
        self.key_id = key_id
        self.algorithm = algorithm


class IssuerMismatchError(TokenVerificationError):
    """The token was issued by an unexpected party."""

    def __init__(self, issuer: str | None, expected: tuple[str, ...]) -> None:
        super().__init__(
            f"Token issuer {issuer!r} is not one of {', '.join(expected)}"
        )
        self.issuer = issuer
        self.expected = expected


class TokenExpiredError(TokenVerificationError):
    """The token's expiry time has passed."""

    def __init__(self, expires_at: int, now: float) -> None:
        super().__init__(f"Token expired at {expires_at} (now {int(now)})")
        self.expires_at = expires_at
        self.now = now


class KeySetUnavailableError(SSOError):
    """The key set could not be fetched or parsed. Retrying later may help."""

    def __init__(
        self, message: str, *, url: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TokenEndpointError(SSOError):
    """The token endpoint rejected the grant or returned an unusable reply."""

    def __init__(
        self, message: str, *, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransportTimeoutError(SSOError):
    """A request to the identity provider timed out."""

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(f"Request to {url} timed out after {timeout}s")
        self.url = url
        self.timeout = timeout
