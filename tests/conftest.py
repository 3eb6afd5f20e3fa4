"""pytest configuration for Dojo tests."""

import time

import pytest

from dojo.tokens import TokenTable

SECRET = "test-secret"


def wait_for(predicate, timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll *predicate* until it returns truthy or *timeout* expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def tokens():
    return TokenTable(SECRET, 20)


@pytest.fixture
def wait():
    return wait_for
