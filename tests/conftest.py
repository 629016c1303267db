"""Pytest configuration and shared fixtures."""

import pytest

from cogsocket.transport import MemoryTransport


@pytest.fixture(scope="module")
def anyio_backend():
    """Run anyio tests on asyncio, the engine's event loop."""
    return "asyncio"


@pytest.fixture
def memory_pair() -> tuple[MemoryTransport, MemoryTransport]:
    """Two in-process transports wired to each other."""
    return MemoryTransport.pair()
