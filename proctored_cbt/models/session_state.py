"""
models/session_state.py

시험 진행 상태(OMR 카드)와 상태 전이 액션 모델.
Pydantic BaseModel 기반 — 직렬화/역직렬화 및 타입 안전성 확보.
상태는 불변(frozen)이며 services/session_reducer.reduce() 로만 새 상태가 만들어진다.
"""

from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from proctored_cbt.models.question_model import Exam

# 객관식은 보기 인덱스(int), 주관식/코딩은 텍스트(str)
AnswerValue = Union[int, str]


class AnswerStatus(str, Enum):
    NOT_VISITED = "not-visited"
    NOT_ANSWERED = "not-answered"
    ANSWERED = "answered"
    MARKED_FOR_REVIEW = "marked-for-review"


class SessionState(BaseModel):
    """
    사용자의 시험 세션 전체 상태를 표현하는 모델.

    Attributes:
        current_question_index: 현재 풀고 있는 문제의 인덱스 (0-based).
        statuses:               {question.id: AnswerStatus}. 삽입 순서 = 문제 순서.
        answers:                {question.id: 답안 값}. 미응답이면 None.
        time_left:              남은 시간 (초).
        exam_started:           시작 여부.
        exam_finished:          종료 여부. True이면 time_left == 0.
        total_questions:        전체 문제 수 (생성 시 고정).
    """

    model_config = ConfigDict(frozen=True)

    current_question_index: int = Field(
        default=0,
        ge=0,
        description="현재 풀고 있는 문제 인덱스 (0-based)"
    )
    statuses: Dict[str, AnswerStatus] = Field(default_factory=dict)
    answers: Dict[str, Optional[AnswerValue]] = Field(default_factory=dict)
    time_left: int = Field(default=0, ge=0, description="남은 시간 (초)")
    exam_started: bool = False
    exam_finished: bool = False
    total_questions: int = Field(default=0, ge=0)

    @classmethod
    def initial(cls, exam: Exam) -> "SessionState":
        """시작 전 상태: 모든 문제 not-visited, 답안 없음, 남은 시간 = duration × 60."""
        return cls(
            current_question_index=0,
            statuses={q.id: AnswerStatus.NOT_VISITED for q in exam.questions},
            answers={q.id: None for q in exam.questions},
            time_left=exam.duration * 60,
            exam_started=False,
            exam_finished=False,
            total_questions=len(exam.questions),
        )

    @property
    def question_ids(self) -> list[str]:
        return list(self.statuses)

    @property
    def answered_count(self) -> int:
        return sum(1 for v in self.answers.values() if v is not None)


# ── 액션 (type 필드로 구분되는 태그드 유니온) ────────────────────────────────

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class Initialize(_Action):
    type: Literal["initialize"] = "initialize"
    state: SessionState


class Start(_Action):
    type: Literal["start"] = "start"


class Next(_Action):
    type: Literal["next"] = "next"


class Prev(_Action):
    type: Literal["prev"] = "prev"


class JumpTo(_Action):
    type: Literal["jump-to"] = "jump-to"
    index: int


class Answer(_Action):
    type: Literal["answer"] = "answer"
    question_id: str
    value: AnswerValue


class ToggleMarkForReview(_Action):
    type: Literal["toggle-mark-for-review"] = "toggle-mark-for-review"
    question_id: str


class Tick(_Action):
    type: Literal["tick"] = "tick"


class Finish(_Action):
    type: Literal["finish"] = "finish"


Action = Annotated[
    Union[Initialize, Start, Next, Prev, JumpTo, Answer, ToggleMarkForReview, Tick, Finish],
    Field(discriminator="type"),
]
