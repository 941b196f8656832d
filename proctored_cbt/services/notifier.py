"""
services/notifier.py — 사용자 알림 (토스트) 큐

fire-and-forget. 코어는 확인 응답을 기다리지 않는다.
브라우저는 /api/notices 폴링으로 쌓인 알림을 가져간다.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_MAX_PENDING = 50

Variant = Literal["default", "destructive"]


class Notice(BaseModel):
    title: str
    description: str = ""
    variant: Variant = "default"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: deque[Notice] = deque(maxlen=_MAX_PENDING)

    def notify(self, title: str, description: str = "", variant: Variant = "default") -> None:
        notice = Notice(title=title, description=description, variant=variant)
        with self._lock:
            self._pending.append(notice)
        log = logger.warning if variant == "destructive" else logger.info
        log(f"알림: {title} ({description})")

    def drain(self) -> List[Notice]:
        """쌓인 알림을 모두 꺼내 반환."""
        with self._lock:
            notices = list(self._pending)
            self._pending.clear()
        return notices
