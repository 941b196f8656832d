from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator


class ExamType(str, Enum):
    MCQ = "mcq"
    LONG_ANSWER = "long-answer"
    CODING = "coding"

    @property
    def is_objective(self) -> bool:
        """객관식(자동 채점 대상) 여부."""
        return self is ExamType.MCQ


class StudentQuestion(BaseModel):
    """
    응시자에게 노출되는 문제 모델.
    정답 필드(correct_option)가 아예 존재하지 않는다.
    """
    id: str = Field(
        ...,
        min_length=1,
        description="문제 식별자"
    )
    text: str = Field(
        ...,
        description="발문/문제 내용"
    )
    options: Optional[List[str]] = Field(
        None,
        description="보기 리스트 (객관식만 해당)"
    )


class Question(StudentQuestion):
    """
    시험 문서에 저장된 원본 문제 모델 (정답 포함).
    Pydantic v2 적용
    """
    correct_option: Optional[int] = Field(
        None,
        ge=0,
        description="정답 보기 인덱스 (0-based). 주관식이면 None"
    )

    @field_validator('options')
    @classmethod
    def validate_options_length(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """
        검증 로직 1: 보기가 있다면 최소 2개 이상이어야 한다.
        """
        if v is not None and len(v) < 2:
            raise ValueError("보기(options)는 최소 2개 이상의 항목이 필요합니다.")
        return v

    @model_validator(mode='after')
    def validate_correct_option_in_range(self) -> 'Question':
        """
        검증 로직 2: 정답 인덱스가 존재하는 경우, 반드시 보기 범위 안에 있어야 한다.
        """
        if self.correct_option is None:
            return self
        if not self.options or self.correct_option >= len(self.options):
            raise ValueError(
                f"정답 인덱스({self.correct_option})가 보기 범위를 벗어났습니다."
            )
        return self

    def for_student(self) -> StudentQuestion:
        return StudentQuestion(id=self.id, text=self.text, options=self.options)


class ExamForStudent(BaseModel):
    """응시자용 시험 문서. 문제 목록은 정답이 제거된 StudentQuestion."""
    id: str
    title: str
    description: str = ""
    duration: int = Field(..., ge=0, description="시험 시간 (분)")
    exam_type: ExamType
    questions: List[StudentQuestion] = Field(default_factory=list)
    problem_statement: Optional[str] = None
    language: Optional[str] = None
    default_code: Optional[str] = None


class Exam(BaseModel):
    """
    문서 저장소의 시험 문서 모델.

    Attributes:
        id:          시험 식별자.
        title:       시험 제목.
        description: 시험 설명.
        faculty_id:  출제 교수 식별자 (조회 전용).
        duration:    시험 시간 (분 단위).
        exam_type:   mcq / long-answer / coding.
        questions:   문제 순서가 곧 응시 순서.
    """
    id: str
    title: str
    description: str = ""
    faculty_id: Optional[str] = None
    duration: int = Field(..., ge=0, description="시험 시간 (분)")
    exam_type: ExamType
    questions: List[Question] = Field(default_factory=list)
    # coding 유형 전용 필드
    problem_statement: Optional[str] = None
    language: Optional[str] = None
    default_code: Optional[str] = None

    @model_validator(mode='after')
    def validate_unique_question_ids(self) -> 'Exam':
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("문제 식별자(id)가 중복되었습니다.")
        return self

    @property
    def is_objective(self) -> bool:
        return self.exam_type.is_objective

    def for_student(self) -> ExamForStudent:
        """정답(correct_option)을 제거한 응시자용 문서를 만든다."""
        return ExamForStudent(
            id=self.id,
            title=self.title,
            description=self.description,
            duration=self.duration,
            exam_type=self.exam_type,
            questions=[q.for_student() for q in self.questions],
            problem_statement=self.problem_statement,
            language=self.language,
            default_code=self.default_code,
        )
