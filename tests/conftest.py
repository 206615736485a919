"""Shared fixtures: fake clocks and sleeps so timed behaviour runs instantly."""

import asyncio

import pytest


class FakeSleep:
    """Records requested delays and yields to the loop instead of waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def notices():
    """Collects user-visible notices."""
    return []
