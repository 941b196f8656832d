"""
Tests for the session state transition function.

- navigation clamping and not-visited promotion
- answer / mark-for-review interplay
- tick / finish terminal behaviour
"""

import random

import pytest

from conftest import make_mcq_exam
from proctored_cbt.models.session_state import (
    Answer,
    AnswerStatus,
    Finish,
    Initialize,
    JumpTo,
    Next,
    Prev,
    SessionState,
    Start,
    Tick,
    ToggleMarkForReview,
)
from proctored_cbt.services.session_reducer import reduce


def _started(n: int = 3, duration: int = 5) -> SessionState:
    state = SessionState.initial(make_mcq_exam(n, duration=duration))
    return reduce(state, Start())


class TestInitialState:
    """초기 상태 구성."""

    def test_initial_state_all_not_visited(self):
        state = SessionState.initial(make_mcq_exam(3, duration=2))
        assert list(state.statuses.values()) == [AnswerStatus.NOT_VISITED] * 3
        assert state.answers == {"q1": None, "q2": None, "q3": None}
        assert state.time_left == 120
        assert state.total_questions == 3
        assert not state.exam_started and not state.exam_finished

    def test_initialize_replaces_whole_state(self):
        target = SessionState.initial(make_mcq_exam(2))
        assert reduce(SessionState(), Initialize(state=target)) == target

    def test_start_marks_first_question_seen(self):
        state = _started()
        assert state.exam_started is True
        assert state.statuses["q1"] is AnswerStatus.NOT_ANSWERED
        assert state.statuses["q2"] is AnswerStatus.NOT_VISITED

    def test_start_on_empty_exam(self):
        state = reduce(SessionState(), Start())
        assert state.exam_started is True
        assert state.statuses == {}

    def test_reduce_does_not_mutate_input(self):
        state = SessionState.initial(make_mcq_exam(3))
        reduce(state, Start())
        assert state.exam_started is False
        assert state.statuses["q1"] is AnswerStatus.NOT_VISITED


class TestNavigation:
    """Next / Prev / JumpTo."""

    def test_next_promotes_not_visited(self):
        state = reduce(_started(), Next())
        assert state.current_question_index == 1
        assert state.statuses["q2"] is AnswerStatus.NOT_ANSWERED

    def test_next_clamped_at_last(self):
        state = _started(2)
        for _ in range(5):
            state = reduce(state, Next())
        assert state.current_question_index == 1

    def test_prev_clamped_at_first(self):
        state = reduce(_started(), Prev())
        assert state.current_question_index == 0

    def test_jump_to_promotes(self):
        state = reduce(_started(), JumpTo(index=2))
        assert state.current_question_index == 2
        assert state.statuses["q3"] is AnswerStatus.NOT_ANSWERED

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_jump_out_of_range_is_noop(self, index):
        state = _started()
        assert reduce(state, JumpTo(index=index)) == state

    def test_navigation_on_empty_exam_is_noop(self):
        state = reduce(SessionState(), Start())
        assert reduce(state, Next()) == state
        assert reduce(state, Prev()) == state

    def test_navigation_does_not_downgrade_answered(self):
        state = reduce(_started(), Answer(question_id="q1", value=0))
        state = reduce(reduce(state, Next()), Prev())
        assert state.statuses["q1"] is AnswerStatus.ANSWERED


class TestAnswerAndReview:
    """Answer / ToggleMarkForReview."""

    def test_answer_sets_answered(self):
        state = reduce(_started(), Answer(question_id="q1", value=2))
        assert state.answers["q1"] == 2
        assert state.statuses["q1"] is AnswerStatus.ANSWERED

    def test_answer_keeps_marked_for_review(self):
        state = reduce(_started(), ToggleMarkForReview(question_id="q1"))
        state = reduce(state, Answer(question_id="q1", value=1))
        assert state.statuses["q1"] is AnswerStatus.MARKED_FOR_REVIEW
        assert state.answers["q1"] == 1

    def test_answer_text_value(self):
        state = reduce(_started(), Answer(question_id="q2", value="free text"))
        assert state.answers["q2"] == "free text"
        assert state.statuses["q2"] is AnswerStatus.ANSWERED

    def test_answer_unknown_question_is_noop(self):
        state = _started()
        assert reduce(state, Answer(question_id="nope", value=1)) == state

    def test_unmark_with_answer_reverts_to_answered(self):
        state = reduce(_started(), Answer(question_id="q1", value=0))
        state = reduce(state, ToggleMarkForReview(question_id="q1"))
        state = reduce(state, ToggleMarkForReview(question_id="q1"))
        assert state.statuses["q1"] is AnswerStatus.ANSWERED

    def test_unmark_without_answer_reverts_to_not_answered(self):
        state = reduce(_started(), ToggleMarkForReview(question_id="q1"))
        state = reduce(state, ToggleMarkForReview(question_id="q1"))
        assert state.statuses["q1"] is AnswerStatus.NOT_ANSWERED

    def test_mark_not_visited_question(self):
        state = reduce(_started(), ToggleMarkForReview(question_id="q3"))
        assert state.statuses["q3"] is AnswerStatus.MARKED_FOR_REVIEW

    def test_review_scenario(self):
        """Q1 응답, Q2 검토 표시(미응답), Q3 미방문 → 이동 시 not-answered."""
        state = _started()
        state = reduce(state, Answer(question_id="q1", value=0))
        state = reduce(state, Next())
        state = reduce(state, ToggleMarkForReview(question_id="q2"))
        assert list(state.statuses.values()) == [
            AnswerStatus.ANSWERED,
            AnswerStatus.MARKED_FOR_REVIEW,
            AnswerStatus.NOT_VISITED,
        ]
        state = reduce(state, Next())
        assert state.statuses["q3"] is AnswerStatus.NOT_ANSWERED


class TestTimerActions:
    """Tick / Finish."""

    def test_tick_decrements(self):
        state = reduce(_started(duration=1), Tick())
        assert state.time_left == 59
        assert state.exam_finished is False

    def test_tick_at_one_finishes_in_one_step(self):
        state = _started().model_copy(update={"time_left": 1})
        state = reduce(state, Tick())
        assert state.time_left == 0
        assert state.exam_finished is True

    def test_tick_at_two_does_not_finish(self):
        state = _started().model_copy(update={"time_left": 2})
        state = reduce(state, Tick())
        assert state.time_left == 1
        assert state.exam_finished is False

    def test_finish_zeroes_time(self):
        state = reduce(_started(), Finish())
        assert state.exam_finished is True
        assert state.time_left == 0

    def test_unknown_action_is_noop(self):
        state = _started()

        class Unknown:
            type = "teleport"

        assert reduce(state, Unknown()) is state
        assert reduce(state, object()) is state


class TestRandomSequences:
    """임의 액션 시퀀스에서 불변식 유지."""

    @pytest.mark.parametrize("seed", range(5))
    def test_invariants_hold(self, seed):
        rng = random.Random(seed)
        state = _started(n=6, duration=1)
        ids = state.question_ids
        for _ in range(300):
            choice = rng.randrange(6)
            if choice == 0:
                action = Next()
            elif choice == 1:
                action = Prev()
            elif choice == 2:
                action = JumpTo(index=rng.randint(-2, 8))
            elif choice == 3:
                action = Answer(question_id=rng.choice(ids), value=rng.randint(0, 3))
            elif choice == 4:
                action = ToggleMarkForReview(question_id=rng.choice(ids))
            else:
                action = Tick()
            before = state.statuses
            state = reduce(state, action)

            assert 0 <= state.current_question_index <= state.total_questions - 1
            assert all(isinstance(s, AnswerStatus) for s in state.statuses.values())
            assert list(state.statuses) == ids
            assert list(state.answers) == ids
            if state.exam_finished:
                assert state.time_left == 0
            if isinstance(action, Answer):
                expected = (
                    AnswerStatus.MARKED_FOR_REVIEW
                    if before[action.question_id] is AnswerStatus.MARKED_FOR_REVIEW
                    else AnswerStatus.ANSWERED
                )
                assert state.statuses[action.question_id] is expected
