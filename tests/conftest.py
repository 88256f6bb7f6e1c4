"""Shared pytest fixtures and configuration."""

import asyncio

import pytest

from happy_reconnect.config import ReconnectConfig
from happy_reconnect.offline_state import OfflineState


@pytest.fixture
def fast_config():
    """Reconnect config with millisecond delays so retries happen quickly."""
    return ReconnectConfig(
        initial_delay_ms=1,
        min_delay_ms=1,
        max_delay_ms=5,
        max_failure_count=10,
    )


@pytest.fixture
def printed():
    """Collect lines written by an OfflineState."""
    return []


@pytest.fixture
def offline_state(printed):
    """Create a fresh offline state that writes into ``printed``."""
    return OfflineState(output=printed.append)


async def _wait_until(predicate, timeout: float = 2.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.005)
    return predicate()


@pytest.fixture
def wait_until():
    """Poll a predicate until it returns True or the timeout passes."""
    return _wait_until
