"""Shared pytest fixtures for the threadsmith test suite."""

import pytest

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced POSIX clock"""

    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0, hours: float = 0) -> float:
        self.now += seconds + minutes * 60 + hours * 3600
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """Isolated context store driven by the fake clock."""
    from threadsmith.context.store import ContextStore
    return ContextStore(clock=clock)


@pytest.fixture
def engine(clock):
    """Isolated context engine driven by the fake clock."""
    from threadsmith.context.engine import ContextEngine
    return ContextEngine(clock=clock)
