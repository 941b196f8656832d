"""
Tests for countdown helpers and the asyncio tick emitter.
"""

import asyncio

import pytest

from proctored_cbt.services.countdown import (
    CountdownTimer,
    format_remaining,
    is_low_time,
)


class TestRemainingTime:
    """남은 시간 계산."""

    @pytest.mark.parametrize("seconds,text", [
        (0, "00:00"),
        (59, "00:59"),
        (61, "01:01"),
        (5400, "90:00"),
        (-5, "00:00"),
    ])
    def test_format_remaining(self, seconds, text):
        assert format_remaining(seconds) == text

    def test_low_time_threshold(self):
        assert is_low_time(299) is True
        assert is_low_time(300) is False


class TestCountdownTimer:
    """CountdownTimer 시작/정지."""

    def test_emits_ticks_while_running(self):
        ticks = []

        async def scenario():
            async def on_tick():
                ticks.append(1)

            timer = CountdownTimer(on_tick, interval=0.01)
            timer.sync(started=True, finished=False)
            await asyncio.sleep(0.1)
            timer.sync(started=True, finished=True)
            count = len(ticks)
            await asyncio.sleep(0.05)
            return count

        count_at_stop = asyncio.run(scenario())
        assert count_at_stop >= 2
        assert len(ticks) == count_at_stop

    def test_not_started_never_ticks(self):
        ticks = []

        async def scenario():
            async def on_tick():
                ticks.append(1)

            timer = CountdownTimer(on_tick, interval=0.01)
            timer.sync(started=False, finished=False)
            await asyncio.sleep(0.05)
            return timer.running

        assert asyncio.run(scenario()) is False
        assert ticks == []

    def test_start_is_idempotent(self):
        ticks = []

        async def scenario():
            async def on_tick():
                ticks.append(1)

            timer = CountdownTimer(on_tick, interval=0.1)
            timer.start()
            timer.start()
            await asyncio.sleep(0.15)
            timer.stop()

        asyncio.run(scenario())
        assert len(ticks) == 1

    def test_stop_from_inside_tick(self):
        """틱 콜백 안에서 정지해도 콜백은 끝까지 실행되고 이후 틱은 없다."""
        events = []

        async def scenario():
            timer = None

            async def on_tick():
                events.append("tick")
                timer.stop()
                await asyncio.sleep(0.01)
                events.append("after-stop")

            timer = CountdownTimer(on_tick, interval=0.01)
            timer.start()
            await asyncio.sleep(0.1)
            return timer.running

        assert asyncio.run(scenario()) is False
        assert events == ["tick", "after-stop"]
