"""
Shared fixtures for backend_transport tests.
"""
from typing import Any, List, Optional

import httpx
import pytest

from backend_transport import ApiTransport, deep_merge

from support import FAST_RETRY, FakeClock, ScriptedBackend


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def make_transport(clock):
    """Build transports against a ScriptedBackend; destroyed after the test."""
    created: List[ApiTransport] = []
    clients: List[httpx.AsyncClient] = []

    def _make(backend: ScriptedBackend, config: Optional[dict] = None, **kwargs: Any) -> ApiTransport:
        client = backend.client()
        clients.append(client)
        transport = ApiTransport(
            "https://api.example.com",
            api_key="test-key",
            config=deep_merge(FAST_RETRY, config),
            httpx_client=client,
            clock=clock,
            **kwargs,
        )
        created.append(transport)
        return transport

    yield _make

    for transport in created:
        await transport.destroy()
    for client in clients:
        await client.aclose()
