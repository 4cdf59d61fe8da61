"""Shared test fixtures for evesso."""

import asyncio
import json
import os
import time
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

ENDPOINT = "https://login.example.com"
HOST = "login.example.com"
CLIENT_ID = "client-abc"
RSA_KID = "JWT-Signature-Key"
RSA_PUBLIC_EXPONENT = 65537
RSA_KEY_SIZE = 2048


class TestKey:
    """A private signing key and the public JWK the provider publishes for it."""

    __test__ = False

    def __init__(self, kid: str, private_key: Any, algorithm: str) -> None:
        self.kid = kid
        self.private_key = private_key
        self.algorithm = algorithm
        if algorithm.startswith("ES"):
            raw = ECAlgorithm.to_jwk(private_key.public_key())
        else:
            raw = RSAAlgorithm.to_jwk(private_key.public_key())
        self.jwk: dict[str, Any] = {
            **json.loads(raw),
            "kid": kid,
            "alg": algorithm,
            "use": "sig",
        }

    def sign(
        self,
        claims: dict[str, Any],
        *,
        kid: str | None = None,
        algorithm: str | None = None,
    ) -> str:
        return jwt.encode(
            claims,
            self.private_key,
            algorithm=algorithm or self.algorithm,
            headers={"kid": kid or self.kid},
        )


def make_rsa_key(kid: str) -> TestKey:
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT, key_size=RSA_KEY_SIZE
    )
    return TestKey(kid, private_key, "RS256")


def make_ec_key(kid: str) -> TestKey:
    return TestKey(kid, ec.generate_private_key(ec.SECP256R1()), "ES256")


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """In-memory identity provider serving JWKS and token endpoint replies."""

    def __init__(self) -> None:
        self.keys: list[dict[str, Any]] = []
        self.jwks_status = 200
        self.jwks_body: Any = None
        self.jwks_error: Exception | None = None
        self.jwks_delay = 0.01
        self.jwks_calls = 0
        self.jwks_requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_reply: Any = {}
        self.token_error: Exception | None = None
        self.token_delay = 0.0
        self.token_requests: list[httpx.Request] = []

    def publish(self, *keys: TestKey) -> None:
        self.keys = [k.jwk for k in keys]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/jwks":
            return await self._jwks(request)
        if request.url.path == "/v2/oauth/token":
            return await self._token(request)
        return httpx.Response(404)

    async def _jwks(self, request: httpx.Request) -> httpx.Response:
        self.jwks_calls += 1
        self.jwks_requests.append(request)
        await asyncio.sleep(self.jwks_delay)
        if self.jwks_error is not None:
            raise self.jwks_error
        if self.jwks_body is not None:
            return httpx.Response(self.jwks_status, content=self.jwks_body)
        return httpx.Response(self.jwks_status, json={"keys": self.keys})

    async def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_requests.append(request)
        if self.token_delay:
            await asyncio.sleep(self.token_delay)
        if self.token_error is not None:
            raise self.token_error
        if isinstance(self.token_reply, str | bytes):
            return httpx.Response(self.token_status, content=self.token_reply)
        return httpx.Response(self.token_status, json=self.token_reply)


def build_claims(**overrides: Any) -> dict[str, Any]:
    """Claims shaped like the provider's access tokens, valid for 20 minutes."""
    now = int(time.time())
    claims: dict[str, Any] = {
        "scp": ["esi-skills.read_skills.v1", "esi-wallet.read_character_wallet.v1"],
        "jti": "998e12c7-3241-43c5-8355-2c48822e0a1b",
        "kid": RSA_KID,
        "sub": "CHARACTER:EVE:2112625428",
        "azp": CLIENT_ID,
        "tenant": "tranquility",
        "tier": "live",
        "region": "world",
        "aud": [CLIENT_ID, "EVE Online"],
        "name": "Pilot One",
        "owner": "8PmzCeTKb4VFUDrHLc/AeZXDSWM=",
        "exp": now + 1200,
        "iat": now,
        "iss": HOST,
    }
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep EVESSO_* variables from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("EVESSO_"):
            monkeypatch.delenv(name)


@pytest.fixture(scope="session")
def rsa_key() -> TestKey:
    return make_rsa_key(RSA_KID)


@pytest.fixture(scope="session")
def impostor_key() -> TestKey:
    """Unpublished key material reusing the published key's kid."""
    return make_rsa_key(RSA_KID)


@pytest.fixture(scope="session")
def rotated_key() -> TestKey:
    return make_rsa_key("JWT-Signature-Key-2")


@pytest.fixture(scope="session")
def ec_key() -> TestKey:
    return make_ec_key("JWT-Signature-Key-EC")


@pytest.fixture
def make_claims() -> Callable[..., dict[str, Any]]:
    return build_claims


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider(rsa_key: TestKey) -> FakeProvider:
    fake = FakeProvider()
    fake.publish(rsa_key)
    return fake


@pytest.fixture
async def http(provider: FakeProvider) -> AsyncIterator[httpx.AsyncClient]:
    """httpx client whose requests are answered by the fake provider."""
    transport = httpx.MockTransport(provider.handle)
    async with httpx.AsyncClient(transport=transport) as client:
        yield client
