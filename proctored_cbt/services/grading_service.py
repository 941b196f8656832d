"""
services/grading_service.py

교수 수동 채점 반영. 문항당 0~10점, 범위를 벗어나면 저장하지 않고 거부.
"""

from typing import Dict, Optional, Union

from config import MAX_MARKS, MIN_MARKS
from proctored_cbt.models.submission_model import SubmissionResult, SubmissionStatus


class InvalidMarksError(ValueError):
    """0~10 범위를 벗어난 점수 입력."""


def validate_marks(value: Union[int, str, None]) -> Optional[int]:
    """
    입력 경계에서의 점수 검증.

    빈 문자열/None 은 "미채점"(None). 정수로 해석할 수 없거나
    0~10 범위를 벗어나면 InvalidMarksError. 잘라내기(clamp) 하지 않는다.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidMarksError("Marks must be between 0 and 10.")
    try:
        marks = int(value.strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise InvalidMarksError("Marks must be between 0 and 10.")
    if not MIN_MARKS <= marks <= MAX_MARKS:
        raise InvalidMarksError("Marks must be between 0 and 10.")
    return marks


def total_percentage(result: SubmissionResult) -> float:
    """채점된 점수 합 / (문항 수 × 10) × 100. 문항이 없으면 0.0."""
    max_score = len(result.answers) * MAX_MARKS
    if max_score == 0:
        return 0.0
    obtained = sum(a.marks for a in result.answers if a.marks is not None)
    return obtained / max_score * 100


def apply_grades(
    result: SubmissionResult,
    marks: Dict[str, Union[int, str, None]],
) -> SubmissionResult:
    """
    문항별 점수를 반영한 새 SubmissionResult 를 반환한다 (원본 불변).

    모든 입력을 먼저 검증한 뒤 반영하므로 일부만 저장되는 일은 없다.

    Raises:
        InvalidMarksError: 범위 밖 점수, 또는 존재하지 않는 문항 ID.
    """
    known_ids = {a.question_id for a in result.answers}
    unknown = set(marks) - known_ids
    if unknown:
        raise InvalidMarksError(f"존재하지 않는 문항입니다: {sorted(unknown)}")

    validated = {qid: validate_marks(v) for qid, v in marks.items()}

    answers = [
        a.model_copy(update={"marks": validated[a.question_id]}) if a.question_id in validated else a
        for a in result.answers
    ]
    graded = result.model_copy(update={"answers": answers})
    return graded.model_copy(
        update={"score": total_percentage(graded), "status": SubmissionStatus.GRADED}
    )
