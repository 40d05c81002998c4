"""Tests for bounded waits."""

import pytest

from dashcheck.interaction.waits import await_condition, settle


class Clock:
    def __init__(self):
        self.elapsed = 0
        self.sleeps: list[int] = []

    async def sleep(self, ms: int) -> None:
        self.elapsed += ms
        self.sleeps.append(ms)


@pytest.mark.asyncio
class TestAwaitCondition:
    async def test_immediately_true(self):
        clock = Clock()

        async def ready() -> bool:
            return True

        assert await await_condition(ready, 1000, 100, clock.sleep) is True
        assert clock.sleeps == []

    async def test_becomes_true(self):
        clock = Clock()

        async def ready() -> bool:
            return clock.elapsed >= 300

        assert await await_condition(ready, 1000, 100, clock.sleep) is True
        assert clock.elapsed == 300

    async def test_times_out(self):
        clock = Clock()
        calls = []

        async def never() -> bool:
            calls.append(1)
            return False

        assert await await_condition(never, 500, 250, clock.sleep) is False
        assert clock.elapsed == 500
        assert len(calls) == 3

    async def test_zero_timeout_checks_once(self):
        clock = Clock()
        calls = []

        async def never() -> bool:
            calls.append(1)
            return False

        assert await await_condition(never, 0, 100, clock.sleep) is False
        assert calls == [1]


@pytest.mark.asyncio
class TestSettle:
    async def test_sleeps(self):
        clock = Clock()
        await settle(clock.sleep, 1200)
        assert clock.sleeps == [1200]

    async def test_zero_is_noop(self):
        clock = Clock()
        await settle(clock.sleep, 0)
        assert clock.sleeps == []
