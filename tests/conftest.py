"""
Pytest configuration and shared fixtures.
"""
import asyncio
from typing import Callable

import httpx
import pytest


@pytest.fixture
def valid_params() -> dict:
    """A candidate query that passes every validation rule."""
    return {
        "technology": "gsm",
        "start_date": "2024-01-01",
        "end_date": "2024-01-31",
        "site": "CAI",
        "kpi": ["erlang", "dcr"],
    }


@pytest.fixture
def mock_kpi_api() -> Callable[..., httpx.AsyncClient]:
    """
    Build an AsyncClient whose requests are answered by `handler`.

    Usage:
        client = mock_kpi_api(lambda request: httpx.Response(200, json=[]))
    """
    def factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def cancel_event() -> asyncio.Event:
    """Caller-owned cancellation token."""
    return asyncio.Event()
