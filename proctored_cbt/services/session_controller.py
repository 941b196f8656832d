"""
services/session_controller.py

시험 세션 오케스트레이션. 부수 효과(저장소 I/O, 전체 화면 요청,
이탈 횟수 저장, 이동 경로 지정)는 이 모듈에서만 일어난다.

흐름:
  load() → Initialize → start() → (사용자 액션 / 타이머 틱 / 감독 판정) → submit()

모든 상태 변경은 dispatch() 한 곳을 거치며 reduce() 로 계산된다.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from config import DASHBOARD_PATH, MAX_EXITS, TICK_INTERVAL
from proctored_cbt.models.question_model import Exam, ExamForStudent
from proctored_cbt.models.session_state import Finish, Initialize, SessionState, Start, Tick
from proctored_cbt.models.submission_model import ForcedSubmission, SubmissionResult
from proctored_cbt.services.countdown import CountdownTimer, format_remaining, is_low_time
from proctored_cbt.services.document_store import (
    ExamNotFoundError,
    ExamRepository,
    StoreError,
    SubmissionRepository,
)
from proctored_cbt.services.environment import BrowserEnvironment, SecureRequestError
from proctored_cbt.services.exam_service import SubmissionGuard, build_submission
from proctored_cbt.services.notifier import Notifier
from proctored_cbt.services.proctoring import ProctoringMonitor, Verdict, ViolationStore
from proctored_cbt.services.session_reducer import reduce

logger = logging.getLogger(__name__)


class ExamLoadError(RuntimeError):
    """시험 문서를 불러올 수 없음. 세션을 시작하지 않는다."""


class SessionNotReadyError(RuntimeError):
    """시험이 로드되기 전에 세션 조작을 시도함."""


class SubmissionFailedError(RuntimeError):
    """제출 결과 저장 실패. 재시도 가능."""


class ExamSessionController:
    def __init__(
        self,
        exam_id: str,
        student_id: str,
        exams: ExamRepository,
        submissions: SubmissionRepository,
        environment: BrowserEnvironment,
        violation_store: ViolationStore,
        notifier: Optional[Notifier] = None,
        tick_interval: float = TICK_INTERVAL,
        max_exits: int = MAX_EXITS,
    ) -> None:
        self.exam_id = exam_id
        self.student_id = student_id
        self.environment = environment
        self.notifier = notifier or Notifier()
        self.max_exits = max_exits
        self._exams = exams
        self._submissions = submissions
        self._violation_store = violation_store

        self.exam: Optional[Exam] = None
        self.state: Optional[SessionState] = None
        self.monitor: Optional[ProctoringMonitor] = None
        self.timer = CountdownTimer(self.tick, interval=tick_interval)
        self.guard = SubmissionGuard()
        self.result: Optional[SubmissionResult] = None
        self.redirect_to: Optional[str] = None
        self.load_error: Optional[str] = None
        self._pending_forced: Optional[Verdict] = None
        # 저장에 성공할 때까지 유지. 재시도(forced=None)도 강제 제출로 기록된다.
        self._forced: Optional[ForcedSubmission] = None

    # ── 로드 / 시작 ──────────────────────────────────────────────────────────

    async def load(self) -> ExamForStudent:
        """
        시험 문서를 불러와 세션 상태와 감독 모니터를 초기화한다.

        Raises:
            ExamNotFoundError: 시험 문서 없음.
            ExamLoadError:     저장소 오류 (부분 세션은 만들지 않음).
        """
        try:
            exam = await asyncio.to_thread(self._exams.get_exam, self.exam_id)
        except ExamNotFoundError as e:
            self.load_error = str(e)
            raise
        except StoreError as e:
            self.load_error = "There was a problem fetching the exam data."
            logger.error(f"시험 로드 실패 ({self.exam_id}): {e}")
            raise ExamLoadError(self.load_error) from e

        if self.monitor is not None:
            self.monitor.close()
        self.exam = exam
        self.load_error = None
        self.state = reduce(SessionState(), Initialize(state=SessionState.initial(exam)))
        self.monitor = ProctoringMonitor(
            exam_id=self.exam_id,
            environment=self.environment,
            store=self._violation_store,
            on_warning=self._on_warning,
            on_forced_submit=self._on_forced_submit,
            max_exits=self.max_exits,
        )
        logger.info(
            f"시험 로드 완료: exam={exam.id}, type={exam.exam_type.value}, "
            f"문항={len(exam.questions)}, 시간={exam.duration}분"
        )
        return exam.for_student()

    @property
    def loaded(self) -> bool:
        return self.exam is not None and self.state is not None

    def student_exam(self) -> ExamForStudent:
        self._require_loaded()
        return self.exam.for_student()

    async def start(self) -> SessionState:
        """시험 시작. 보안 상태가 아니면 전체 화면을 요청한다 (실패해도 진행)."""
        state = await self.dispatch(Start())
        if not self.environment.is_secure():
            self.request_secure()
        return state

    def request_secure(self) -> bool:
        try:
            self.environment.request_secure()
        except SecureRequestError as e:
            logger.warning(f"전체 화면 요청 실패: {e}")
            self._notify_secure_failure()
            return False
        return True

    def report_secure_failure(self, reason: str) -> None:
        """브라우저의 requestFullscreen() 거부 보고. 시험은 계속 진행된다."""
        logger.warning(f"브라우저 전체 화면 진입 실패: {reason}")
        self.environment.report_request_failure(reason)
        self._notify_secure_failure()

    def _notify_secure_failure(self) -> None:
        self.notifier.notify(
            "Could not enter full-screen",
            "Please enable full-screen mode in your browser to start the exam.",
            variant="destructive",
        )

    # ── 상태 전이 ────────────────────────────────────────────────────────────

    async def dispatch(self, action) -> SessionState:
        self._require_loaded()
        previous = self.state
        self.state = reduce(previous, action)
        await self._after_transition(previous)
        return self.state

    async def tick(self) -> None:
        if self.state is None or self.state.exam_finished:
            return
        await self.dispatch(Tick())

    async def report_environment(
        self,
        fullscreen: Optional[bool] = None,
        visible: Optional[bool] = None,
    ) -> None:
        """브라우저의 fullscreenchange / visibilitychange 보고를 반영."""
        self.environment.update(fullscreen=fullscreen, visible=visible)
        await self._process_forced()

    async def _after_transition(self, previous: SessionState) -> None:
        state = self.state
        self.timer.sync(state.exam_started, state.exam_finished)
        if self.monitor is not None:
            self.monitor.activate(state.exam_started, state.exam_finished)

        if state.exam_finished and not previous.exam_finished:
            if self.monitor is not None:
                self.monitor.reset_count()
            # 시간 만료 등 submit() 밖에서 종료된 경우
            if not self.guard.in_flight and not self.guard.done:
                logger.info(f"시험 종료 감지, 자동 제출: exam={self.exam_id}")
                await self._submit_logged()

        await self._process_forced()

    # ── 감독 콜백 ────────────────────────────────────────────────────────────

    def _on_warning(self, verdict: Verdict) -> None:
        self.notifier.notify(verdict.title, verdict.message, variant="destructive")

    def _on_forced_submit(self, verdict: Verdict) -> None:
        self.notifier.notify(verdict.title, verdict.message, variant="destructive")
        self._pending_forced = verdict

    async def _process_forced(self) -> None:
        verdict, self._pending_forced = self._pending_forced, None
        if verdict is None:
            return
        await self._submit_logged(ForcedSubmission(auto_submitted=True, exit_count=verdict.exit_count))

    async def _submit_logged(self, forced: Optional[ForcedSubmission] = None) -> None:
        try:
            await self.submit(forced)
        except SubmissionFailedError as e:
            # 알림은 submit() 에서 이미 발송됨
            logger.error(f"자동 제출 실패: {e}")

    # ── 제출 ─────────────────────────────────────────────────────────────────

    async def submit(self, forced: Optional[ForcedSubmission] = None) -> Optional[SubmissionResult]:
        """
        제출 결과를 만들어 저장한다. 세션당 한 번만 수행.

        Returns:
            저장된 SubmissionResult. 이미 제출 중이거나 완료된 경우 None.

        Raises:
            SubmissionFailedError: 저장 실패. 가드가 풀려 재시도할 수 있다.
        """
        self._require_loaded()
        if not self.guard.try_acquire():
            logger.info(f"중복 제출 무시: exam={self.exam_id}, guard={self.guard.state.value}")
            return None

        if forced is not None:
            self._forced = forced
        forced = self._forced
        self.notifier.notify("Submitting exam...", "Please wait.")
        result = build_submission(self.exam, self.state, self.student_id, forced)
        try:
            await asyncio.to_thread(self._submissions.upsert, result)
        except StoreError as e:
            self.guard.release(succeeded=False)
            self.notifier.notify(
                "Submission Failed",
                "There was an error submitting your exam. Please try again.",
                variant="destructive",
            )
            raise SubmissionFailedError(str(e)) from e

        self.guard.release(succeeded=True)
        self.result = result
        await self.dispatch(Finish())
        self.redirect_to = DASHBOARD_PATH
        self.notifier.notify("Exam Submitted!", "Your responses have been recorded.")
        self.close()
        return result

    # ── 정리 / 조회 ──────────────────────────────────────────────────────────

    def close(self) -> None:
        """타이머와 이벤트 구독 해제. 이후 어떤 틱/판정도 발생하지 않는다."""
        self.timer.stop()
        if self.monitor is not None:
            self.monitor.close()

    def snapshot(self) -> Dict[str, Any]:
        self._require_loaded()
        state = self.state
        monitor = self.monitor
        return {
            "exam_id": self.exam_id,
            **state.model_dump(mode="json"),
            "answered_count": state.answered_count,
            "time_display": format_remaining(state.time_left),
            "low_time": is_low_time(state.time_left),
            "proctoring": {
                "is_fullscreen": self.environment.is_secure(),
                "exit_count": monitor.exit_count,
                "max_exits": monitor.max_exits,
                "warnings_left": monitor.warnings_left,
                "fullscreen_requested": self.environment.fullscreen_requested,
            },
            "submission": self.guard.state.value,
            "redirect_to": self.redirect_to,
        }

    def _require_loaded(self) -> None:
        if not self.loaded:
            raise SessionNotReadyError("시험이 아직 로드되지 않았습니다.")
