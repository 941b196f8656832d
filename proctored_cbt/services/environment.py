"""
services/environment.py

전체 화면 / 탭 가시성 신호를 감싸는 capability 인터페이스.

감독 모니터는 SecureEnvironment 프로토콜에만 의존한다.
BrowserEnvironment 는 브라우저가 API 로 보고한 값을 보관하는 서버 측 구현.
"""

import logging
import threading
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[bool, bool], None]   # (fullscreen, visible)
Unsubscribe = Callable[[], None]


class SecureRequestError(RuntimeError):
    """전체 화면 진입 요청이 거부됨."""


class SecureEnvironment(Protocol):
    def is_secure(self) -> bool: ...

    def on_change(self, callback: ChangeCallback) -> Unsubscribe: ...

    def request_secure(self) -> None: ...


class BrowserEnvironment:
    """
    브라우저 측 신호의 서버 사본.

    - update(): fullscreenchange / visibilitychange 이벤트 보고를 반영하고
      값이 바뀌었으면 구독자에게 알린다.
    - request_secure(): 다음 폴링 때 브라우저가 requestFullscreen() 을
      호출하도록 요청 플래그를 세운다. 브라우저가 전체 화면 API 를
      지원하지 않는다고 보고했다면 SecureRequestError.
    - 진입 실패는 비동기로 도착하므로 report_request_failure() 로 받는다.
    """

    def __init__(
        self,
        fullscreen: bool = False,
        visible: bool = True,
        supported: bool = True,
    ) -> None:
        self._lock = threading.Lock()
        self._fullscreen = fullscreen
        self._visible = visible
        self._subscribers: List[ChangeCallback] = []
        self.supported = supported
        self.fullscreen_requested = False
        self.last_error: Optional[str] = None

    @property
    def fullscreen(self) -> bool:
        return self._fullscreen

    @property
    def visible(self) -> bool:
        return self._visible

    def is_secure(self) -> bool:
        return self._fullscreen and self._visible

    def on_change(self, callback: ChangeCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def update(self, fullscreen: Optional[bool] = None, visible: Optional[bool] = None) -> None:
        with self._lock:
            new_fullscreen = self._fullscreen if fullscreen is None else fullscreen
            new_visible = self._visible if visible is None else visible
            changed = (new_fullscreen, new_visible) != (self._fullscreen, self._visible)
            self._fullscreen, self._visible = new_fullscreen, new_visible
            if new_fullscreen:
                self.fullscreen_requested = False
                self.last_error = None
            subscribers = list(self._subscribers)

        if not changed:
            return
        logger.info(f"환경 신호 변경: fullscreen={new_fullscreen}, visible={new_visible}")
        for callback in subscribers:
            callback(new_fullscreen, new_visible)

    def request_secure(self) -> None:
        if not self.supported:
            raise SecureRequestError("이 브라우저는 전체 화면 모드를 지원하지 않습니다.")
        self.last_error = None
        self.fullscreen_requested = True

    def report_request_failure(self, reason: str) -> None:
        """브라우저가 requestFullscreen() 거부를 보고."""
        self.fullscreen_requested = False
        self.last_error = reason
