"""
services/proctoring.py

전체 화면 이탈 감독 (Proctoring Monitor).

구성:
  - ViolationStore  : 시험별 이탈 횟수 저장소 (새로고침 후에도 유지)
  - step()          : (이전 상태, 새 신호, 래치, 횟수) -> (새 상태, 판정) 순수 함수
  - ProctoringMonitor : SecureEnvironment 구독 어댑터. 정책은 step() 에 위임.

secure = fullscreen AND visible.
secure 에서 벗어나는 "진입 모서리" 한 번당 한 번만 카운트한다 (래치).
횟수가 MAX_EXITS 이하면 경고, 초과하면 강제 제출.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, MutableMapping, Optional

from config import EXIT_COUNT_KEY_PREFIX, MAX_EXITS
from proctored_cbt.services.environment import SecureEnvironment, Unsubscribe

logger = logging.getLogger(__name__)

WARNING_MESSAGES = (
    "Please stay in full-screen mode.",
    "You will be auto-submitted if you leave again.",
    "Next exit will auto-submit your exam.",
)
FALLBACK_WARNING = "You must remain in fullscreen."


# ── 이탈 횟수 저장소 ─────────────────────────────────────────────────────────

class ViolationStore:
    """
    {fullscreenExitCount_<examId>: 횟수} 형태로 임의의 매핑에 저장.
    API 계층에서는 쿠키 세션의 dict 를 넘겨 브라우저 단위로 유지한다.
    """

    def __init__(self, backing: Optional[MutableMapping[str, Any]] = None) -> None:
        self._backing = backing if backing is not None else {}

    @staticmethod
    def key(exam_id: str) -> str:
        return f"{EXIT_COUNT_KEY_PREFIX}{exam_id}"

    def read(self, exam_id: str) -> int:
        raw = self._backing.get(self.key(exam_id), 0)
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            logger.warning(f"잘못된 이탈 횟수 값 무시: {raw!r} (exam={exam_id})")
            return 0

    def write(self, exam_id: str, count: int) -> None:
        self._backing[self.key(exam_id)] = count

    def clear(self, exam_id: str) -> None:
        self._backing.pop(self.key(exam_id), None)


# ── 순수 정책 ────────────────────────────────────────────────────────────────

class VerdictKind(str, Enum):
    NONE = "none"
    WARNING = "warning"
    FORCED_SUBMIT = "forced-submit"


@dataclass(frozen=True)
class MonitorState:
    fullscreen: bool = True
    visible: bool = True
    warning_issued: bool = False   # 이번 이탈에 대해 이미 카운트했는지 (래치)

    @property
    def secure(self) -> bool:
        return self.fullscreen and self.visible


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    exit_count: int
    title: str = ""
    message: str = ""


def warning_for(count: int, max_exits: int = MAX_EXITS) -> Verdict:
    """count 번째 이탈에 대한 판정 (경고 또는 강제 제출)."""
    if count > max_exits:
        return Verdict(
            kind=VerdictKind.FORCED_SUBMIT,
            exit_count=count,
            title="Auto-Submitting Exam",
            message=f"You have exited full-screen mode more than {max_exits} times.",
        )
    message = WARNING_MESSAGES[count - 1] if 0 < count <= len(WARNING_MESSAGES) else FALLBACK_WARNING
    return Verdict(
        kind=VerdictKind.WARNING,
        exit_count=count,
        title=f"Full-Screen Exit Detected (Warning {count}/{max_exits})",
        message=message,
    )


def step(
    state: MonitorState,
    fullscreen: bool,
    visible: bool,
    exit_count: int,
    active: bool,
    max_exits: int = MAX_EXITS,
) -> tuple[MonitorState, Verdict]:
    """
    감독 상태 전이.

    Args:
        state:      이전 MonitorState (신호 2비트 + 래치 1비트).
        fullscreen: 새 전체 화면 신호.
        visible:    새 탭 가시성 신호.
        exit_count: 현재까지 누적된 이탈 횟수.
        active:     시험이 진행 중인지 (started and not finished).

    Returns:
        (새 MonitorState, Verdict). 판정이 NONE 이 아니면 Verdict.exit_count 가
        새 누적 횟수다.
    """
    latch = state.warning_issued
    next_state = MonitorState(fullscreen=fullscreen, visible=visible, warning_issued=latch)
    none = Verdict(kind=VerdictKind.NONE, exit_count=exit_count)

    # 시험 진행 중이 아니면 신호만 기록
    if not active:
        return next_state, none

    if next_state.secure:
        return MonitorState(fullscreen, visible, warning_issued=False), none

    if latch:
        return next_state, none

    new_count = exit_count + 1
    return MonitorState(fullscreen, visible, warning_issued=True), warning_for(new_count, max_exits)


# ── 어댑터 ───────────────────────────────────────────────────────────────────

class ProctoringMonitor:
    """SecureEnvironment 이벤트를 step() 에 흘려 보내고 판정을 콜백으로 전달."""

    def __init__(
        self,
        exam_id: str,
        environment: SecureEnvironment,
        store: ViolationStore,
        on_warning: Callable[[Verdict], None],
        on_forced_submit: Callable[[Verdict], None],
        max_exits: int = MAX_EXITS,
    ) -> None:
        self.exam_id = exam_id
        self.max_exits = max_exits
        self._environment = environment
        self._store = store
        self._on_warning = on_warning
        self._on_forced_submit = on_forced_submit
        self._active = False
        self._exit_count = store.read(exam_id)
        secure = environment.is_secure()
        self._state = MonitorState(fullscreen=secure, visible=secure)
        self._unsubscribe: Optional[Unsubscribe] = environment.on_change(self._handle_change)
        logger.info(f"감독 시작: exam={exam_id}, 기존 이탈 횟수={self._exit_count}")

    @property
    def exit_count(self) -> int:
        return self._exit_count

    @property
    def warnings_left(self) -> int:
        return max(0, self.max_exits - self._exit_count)

    @property
    def is_secure(self) -> bool:
        return self._environment.is_secure()

    @property
    def active(self) -> bool:
        return self._active

    def activate(self, started: bool, finished: bool) -> None:
        """세션 플래그 반영. 활성화되는 순간 현재 신호를 다시 평가한다."""
        was_active = self._active
        self._active = started and not finished
        if self._active and not was_active:
            self._evaluate(self._state.fullscreen, self._state.visible)

    def reset_count(self) -> None:
        """세션 종료 시 누적 횟수 삭제."""
        self._exit_count = 0
        self._store.clear(self.exam_id)
        logger.info(f"이탈 횟수 초기화: exam={self.exam_id}")

    def close(self) -> None:
        self._active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_change(self, fullscreen: bool, visible: bool) -> None:
        if self._unsubscribe is None:
            return
        self._evaluate(fullscreen, visible)

    def _evaluate(self, fullscreen: bool, visible: bool) -> None:
        self._state, verdict = step(
            self._state, fullscreen, visible, self._exit_count, self._active, self.max_exits
        )
        if verdict.kind is VerdictKind.NONE:
            return

        self._exit_count = verdict.exit_count
        self._store.write(self.exam_id, verdict.exit_count)
        logger.warning(
            f"전체 화면 이탈 감지: exam={self.exam_id}, "
            f"횟수={verdict.exit_count}/{self.max_exits}, 판정={verdict.kind.value}"
        )
        if verdict.kind is VerdictKind.FORCED_SUBMIT:
            self._on_forced_submit(verdict)
        else:
            self._on_warning(verdict)
