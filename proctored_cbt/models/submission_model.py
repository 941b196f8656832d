"""
models/submission_model.py

제출 결과(studentExams 문서) 모델.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from proctored_cbt.models.session_state import AnswerStatus


class SubmissionStatus(str, Enum):
    COMPLETED = "completed"            # 주관식, 수동 채점 대기
    GRADED = "graded"                  # 자동 채점 또는 수동 채점 완료
    AUTO_SUBMITTED = "auto-submitted"  # 감독 위반으로 강제 제출


class ForcedSubmission(BaseModel):
    """감독 모니터가 강제 제출할 때 함께 기록하는 메타데이터."""
    auto_submitted: bool = True
    exit_count: int = Field(..., ge=0)


class StudentAnswer(BaseModel):
    question_id: str
    question_text: str = ""     # 채점 시 참고용 발문 사본
    status: AnswerStatus = AnswerStatus.NOT_VISITED
    marks: Optional[int] = None
    # 객관식
    selected_option: Optional[int] = None
    correct_option: Optional[int] = None
    options: Optional[List[str]] = None
    # 주관식 / 코딩
    text_answer: Optional[str] = None


class SubmissionResult(BaseModel):
    """
    한 응시자의 한 시험 제출 결과.

    score는 100점 만점 환산 점수 (객관식만 자동 계산),
    answers[*].marks 는 문항당 10점 만점 점수. 두 척도를 함께 저장한다.
    """
    student_id: str
    exam_id: str
    exam_title: str = ""
    status: SubmissionStatus
    answers: List[StudentAnswer] = Field(default_factory=list)
    score: Optional[float] = None
    time_finished: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    auto_submitted: Optional[bool] = None
    exit_count: Optional[int] = None

    @property
    def doc_id(self) -> str:
        return submission_doc_id(self.student_id, self.exam_id)


def submission_doc_id(student_id: str, exam_id: str) -> str:
    return f"{student_id}_{exam_id}"
