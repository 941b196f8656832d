"""
services/countdown.py

시험 남은 시간 계산 + 1초 단위 틱 발생기.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config import LOW_TIME_SECONDS, TICK_INTERVAL

logger = logging.getLogger(__name__)


def format_remaining(seconds: int) -> str:
    """남은 초 → 'MM:SS'."""
    seconds = max(0, seconds)
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def is_low_time(seconds: int) -> bool:
    """5분 미만이면 True (타이머 경고 표시용)."""
    return seconds < LOW_TIME_SECONDS


class CountdownTimer:
    """
    실행 중인 동안 interval 마다 on_tick 을 한 번씩 await 한다.

    - 한 번에 최대 하나의 대기 중인 틱만 존재한다 (밀린 틱은 쌓지 않음).
    - stop() 이후에는 어떤 틱도 발생하지 않는다.
    - on_tick 내부에서 stop() 이 호출되면 진행 중인 콜백은 취소하지 않고
      루프만 종료한다.
    """

    def __init__(
        self,
        on_tick: Callable[[], Awaitable[None]],
        interval: float = TICK_INTERVAL,
    ) -> None:
        self._on_tick = on_tick
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def sync(self, started: bool, finished: bool) -> None:
        """세션 플래그에 맞춰 타이머를 켜거나 끈다."""
        if started and not finished:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        if self._task is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run())
        logger.info("카운트다운 타이머 시작")

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if _running_loop() is self._loop:
            if task is not asyncio.current_task():
                task.cancel()
        elif not self._loop.is_closed():
            # 다른 스레드(세션 정리 등)에서 호출된 경우
            self._loop.call_soon_threadsafe(task.cancel)
        logger.info("카운트다운 타이머 정지")

    async def _run(self) -> None:
        me = asyncio.current_task()
        # stop()/재시작 후에는 self._task 가 바뀌므로 이전 루프는 즉시 빠져나간다
        while self._task is me:
            await asyncio.sleep(self._interval)
            if self._task is not me:
                break
            await self._on_tick()


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
