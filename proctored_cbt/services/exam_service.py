"""
services/exam_service.py

시험 제출 결과 생성 및 자동 채점 비즈니스 로직.
순수 Python 함수로 구성 — UI 코드, 전역 상태 변경 없음.
SubmissionGuard 만이 "한 세션당 한 번 제출" 상태를 가진다.
"""

import threading
from enum import Enum
from typing import Dict, List, Optional

from config import MARKS_PER_QUESTION
from proctored_cbt.models.question_model import Exam, Question
from proctored_cbt.models.session_state import AnswerStatus, AnswerValue, SessionState
from proctored_cbt.models.submission_model import (
    ForcedSubmission,
    StudentAnswer,
    SubmissionResult,
    SubmissionStatus,
)


def is_correct(question: Question, selected: Optional[AnswerValue]) -> bool:
    """보기 인덱스가 정답 인덱스와 정확히 일치하면 True. bool/str 답안은 오답."""
    return (
        isinstance(selected, int)
        and not isinstance(selected, bool)
        and question.correct_option is not None
        and selected == question.correct_option
    )


def calculate_score(
    questions: List[Question],
    user_answers: Dict[str, Optional[AnswerValue]],
) -> float:
    """
    사용자 답안을 채점하여 100점 만점 환산 점수를 반환한다.

    정답 판정 기준: user_answers.get(question.id) == question.correct_option
    응답하지 않은 문제(값 없음)는 오답으로 처리.

    Args:
        questions:    채점 대상 Question 리스트 (정답 포함).
        user_answers: 사용자 답안지. {question.id: 선택한 보기 인덱스}

    Returns:
        0.0 ~ 100.0 범위의 점수 (반올림하지 않음, 표시 단계에서 처리).
        questions가 빈 리스트이면 0.0 반환.
    """
    if not questions:
        return 0.0

    correct_count = sum(1 for q in questions if is_correct(q, user_answers.get(q.id)))

    return correct_count * 100 / len(questions)


def _answer_record(exam: Exam, question: Question, state: SessionState) -> StudentAnswer:
    value = state.answers.get(question.id)
    record = StudentAnswer(
        question_id=question.id,
        question_text=question.text,
        status=state.statuses.get(question.id, AnswerStatus.NOT_VISITED),
    )
    if exam.is_objective:
        record.selected_option = value if isinstance(value, int) and not isinstance(value, bool) else None
        record.correct_option = question.correct_option
        record.options = list(question.options or [])
        record.marks = MARKS_PER_QUESTION if is_correct(question, value) else 0
    else:
        record.text_answer = value if isinstance(value, str) else ""
    return record


def build_submission(
    exam: Exam,
    state: SessionState,
    student_id: str,
    forced: Optional[ForcedSubmission] = None,
) -> SubmissionResult:
    """
    최종 세션 상태 + 원본 문제(정답 포함) → 제출 결과.

    - 문제 순서는 시험 문서의 순서를 따른다.
    - 객관식(mcq): 문항별 10점/0점, 전체 점수는 정답 수 / 문항 수 × 100. status=graded
    - 주관식/코딩: 자동 채점 없음, marks 비움. status=completed
    - 강제 제출이면 status=auto-submitted 및 이탈 횟수 기록.
    """
    answers = [_answer_record(exam, q, state) for q in exam.questions]

    if exam.is_objective:
        score: Optional[float] = calculate_score(exam.questions, state.answers)
        status = SubmissionStatus.GRADED
    else:
        score = None
        status = SubmissionStatus.COMPLETED

    if forced is not None and forced.auto_submitted:
        status = SubmissionStatus.AUTO_SUBMITTED

    return SubmissionResult(
        student_id=student_id,
        exam_id=exam.id,
        exam_title=exam.title,
        status=status,
        answers=answers,
        score=score,
        auto_submitted=forced.auto_submitted if forced else None,
        exit_count=forced.exit_count if forced else None,
    )


class GuardState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in-flight"
    DONE = "done"


class SubmissionGuard:
    """
    제출 중복 방지.

    idle → in-flight (acquire 성공) → done (성공) / idle (실패, 재시도 허용).
    in-flight 또는 done 상태에서의 acquire 는 False.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = GuardState.IDLE

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._state is GuardState.IN_FLIGHT

    @property
    def done(self) -> bool:
        return self._state is GuardState.DONE

    def try_acquire(self) -> bool:
        with self._lock:
            if self._state is not GuardState.IDLE:
                return False
            self._state = GuardState.IN_FLIGHT
            return True

    def release(self, succeeded: bool) -> None:
        with self._lock:
            if self._state is GuardState.IN_FLIGHT:
                self._state = GuardState.DONE if succeeded else GuardState.IDLE
