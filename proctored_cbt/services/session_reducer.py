"""
services/session_reducer.py

시험 세션 상태 전이 함수.
순수 Python 함수로 구성 — I/O, 타이머, 전역 상태 변경 없음.

    reduce(state, action) -> 새 SessionState

모든 전이는 전함수(total function)다. 알 수 없는 액션이나
범위를 벗어난 인덱스는 오류 없이 기존 상태를 그대로 돌려준다.
"""

from typing import Callable, Dict

from proctored_cbt.models.session_state import (
    Answer,
    AnswerStatus,
    Initialize,
    JumpTo,
    SessionState,
    ToggleMarkForReview,
)


def _visit(state: SessionState, index: int) -> SessionState:
    """index 위치로 이동. not-visited 문제는 not-answered 로 승격."""
    statuses = dict(state.statuses)
    question_id = state.question_ids[index]
    if statuses[question_id] is AnswerStatus.NOT_VISITED:
        statuses[question_id] = AnswerStatus.NOT_ANSWERED
    return state.model_copy(update={"current_question_index": index, "statuses": statuses})


def _initialize(state: SessionState, action: Initialize) -> SessionState:
    return action.state


def _start(state: SessionState, action) -> SessionState:
    if not state.statuses:
        return state.model_copy(update={"exam_started": True})
    statuses = dict(state.statuses)
    first_id = state.question_ids[0]
    if statuses[first_id] is AnswerStatus.NOT_VISITED:
        statuses[first_id] = AnswerStatus.NOT_ANSWERED
    return state.model_copy(update={"exam_started": True, "statuses": statuses})


def _next(state: SessionState, action) -> SessionState:
    if state.total_questions == 0:
        return state
    return _visit(state, min(state.current_question_index + 1, state.total_questions - 1))


def _prev(state: SessionState, action) -> SessionState:
    if state.total_questions == 0:
        return state
    return _visit(state, max(state.current_question_index - 1, 0))


def _jump_to(state: SessionState, action: JumpTo) -> SessionState:
    if not 0 <= action.index < state.total_questions:
        return state
    return _visit(state, action.index)


def _answer(state: SessionState, action: Answer) -> SessionState:
    if action.question_id not in state.statuses:
        return state
    answers = dict(state.answers)
    answers[action.question_id] = action.value

    statuses = dict(state.statuses)
    # 검토 표시는 답을 입력해도 유지
    if statuses[action.question_id] is not AnswerStatus.MARKED_FOR_REVIEW:
        statuses[action.question_id] = AnswerStatus.ANSWERED
    return state.model_copy(update={"answers": answers, "statuses": statuses})


def _toggle_mark_for_review(state: SessionState, action: ToggleMarkForReview) -> SessionState:
    question_id = action.question_id
    if question_id not in state.statuses:
        return state
    statuses = dict(state.statuses)
    if statuses[question_id] is AnswerStatus.MARKED_FOR_REVIEW:
        has_answer = state.answers.get(question_id) is not None
        statuses[question_id] = AnswerStatus.ANSWERED if has_answer else AnswerStatus.NOT_ANSWERED
    else:
        statuses[question_id] = AnswerStatus.MARKED_FOR_REVIEW
    return state.model_copy(update={"statuses": statuses})


def _tick(state: SessionState, action) -> SessionState:
    # 1초 남았을 때 바로 종료. 종료와 time_left == 0 은 같은 전이에서 관측된다
    if state.time_left <= 1:
        return state.model_copy(update={"time_left": 0, "exam_finished": True})
    return state.model_copy(update={"time_left": state.time_left - 1})


def _finish(state: SessionState, action) -> SessionState:
    return state.model_copy(update={"exam_finished": True, "time_left": 0})


_HANDLERS: Dict[str, Callable[[SessionState, object], SessionState]] = {
    "initialize": _initialize,
    "start": _start,
    "next": _next,
    "prev": _prev,
    "jump-to": _jump_to,
    "answer": _answer,
    "toggle-mark-for-review": _toggle_mark_for_review,
    "tick": _tick,
    "finish": _finish,
}


def reduce(state: SessionState, action) -> SessionState:
    """
    (state, action) -> 새 상태.

    Args:
        state:  현재 SessionState (변경되지 않음).
        action: models.session_state 의 액션 모델.

    Returns:
        새 SessionState. 처리할 수 없는 액션이면 state 그대로.
    """
    handler = _HANDLERS.get(getattr(action, "type", None))
    if handler is None:
        return state
    return handler(state, action)
