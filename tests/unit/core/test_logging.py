"""Tests for structured logging setup."""

import logging
from collections.abc import Iterator
from typing import Any

import httpx
import pytest
import structlog

from evesso.core.errors import UnknownKeyError
from evesso.core.logging import configure_logging, get_logger
from evesso.crypto.key_resolver import SigningKeyResolver

JWKS_URI = "https://login.example.com/oauth/jwks"


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_console_renderer(self) -> None:
        configure_logging("debug")
        assert structlog.is_configured()
        get_logger("evesso.test").info("Configured", renderer="console")

    def test_json_renderer(self) -> None:
        configure_logging("warning", json=True)
        assert structlog.is_configured()
        get_logger("evesso.test").warning("Configured", renderer="json")


class TestUnconfigured:
    """Tests for library logging when the host configures nothing."""

    async def test_stdout_stays_quiet(
        self,
        http: httpx.AsyncClient,
        provider: Any,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        resolver = SigningKeyResolver(JWKS_URI, http)
        with pytest.raises(UnknownKeyError):
            await resolver.resolve("nope")
        assert capsys.readouterr().out == ""

    async def test_events_reach_stdlib_logger(
        self,
        http: httpx.AsyncClient,
        provider: Any,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.INFO, logger="evesso")
        resolver = SigningKeyResolver(JWKS_URI, http)
        with pytest.raises(UnknownKeyError):
            await resolver.resolve("nope")
        records = [r for r in caplog.records if r.name == "evesso.keys"]
        assert [r.levelno for r in records] == [logging.INFO, logging.WARNING]
        assert "Signing key not in key set" in records[-1].getMessage()
