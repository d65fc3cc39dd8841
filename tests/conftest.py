"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
No test talks to a real network: every transport is backed by httpx.MockTransport.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

import httpx
import pytest
import structlog

from search_admin.config import Settings
from search_admin.logging_config import NOISY_LOGGERS, PACKAGE_LOGGER
from search_admin.models import ClientConfig
from search_admin.transport import RetryableTransport


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with fast retries and no .env lookup.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.RETRY_MAX_ATTEMPTS = 1
    """
    return Settings(
        _env_file=None,
        APP_NAME="Search Admin Client (Test)",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        SEARCH_BASE_URL="https://search.test:9200",
        SEARCH_USERNAME="admin",
        SEARCH_PASSWORD="secret",
        RETRY_MAX_ATTEMPTS=3,
        RETRY_WAIT_MIN=0.0,
        RETRY_WAIT_MAX=0.0,
        EXECUTOR_MAX_WORKERS=4,
        PROMETHEUS_ENABLED=False,
    )


@pytest.fixture
def restore_logging():
    """Undo configure_logging: package handler, third-party levels, structlog defaults."""
    loggers = [logging.getLogger(name) for name in (PACKAGE_LOGGER, *NOISY_LOGGERS)]
    saved = [(lg, list(lg.handlers), lg.level, lg.propagate) for lg in loggers]

    yield

    for lg, handlers, level, propagate in saved:
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate
    structlog.reset_defaults()


@pytest.fixture
def client_config() -> ClientConfig:
    """Cluster config with credentials."""
    return ClientConfig(
        base_url="https://search.test:9200",
        username="admin",
        password="secret",
    )


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    """Factory fixture to build a JSON httpx.Response.

    Usage:
        def test_something(json_response):
            response = json_response(400, {"error": {"type": "x"}})
    """
    def _create(
        status: int,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        return httpx.Response(
            status,
            content=content,
            headers={"Content-Type": "application/json", **(headers or {})},
        )

    return _create


@pytest.fixture
def make_transport():
    """Factory fixture building RetryableTransports over a mock handler.

    Retries never sleep unless the test passes its own `sleep`.

    Usage:
        def test_something(make_transport):
            transport = make_transport(handler, max_attempts=2)
    """
    created: list[RetryableTransport] = []

    def _create(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> RetryableTransport:
        kwargs.setdefault("max_attempts", 3)
        kwargs.setdefault("retry_wait_min", 0.0)
        kwargs.setdefault("retry_wait_max", 0.0)
        kwargs.setdefault("sleep", lambda _: None)
        transport = RetryableTransport(transport=httpx.MockTransport(handler), **kwargs)
        created.append(transport)
        return transport

    yield _create

    for transport in created:
        transport.close()
