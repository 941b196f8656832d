"""
공용 fixture — 샘플 시험 문서, 메모리 저장소, 컨트롤러 팩토리.
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctored_cbt.models.question_model import Exam, ExamType, Question
from proctored_cbt.services.document_store import DocumentStore, ExamRepository, SubmissionRepository
from proctored_cbt.services.environment import BrowserEnvironment
from proctored_cbt.services.proctoring import ViolationStore
from proctored_cbt.services.session_controller import ExamSessionController


def make_mcq_exam(n: int = 3, exam_id: str = "exam-1", duration: int = 5) -> Exam:
    return Exam(
        id=exam_id,
        title="Sample MCQ",
        duration=duration,
        exam_type=ExamType.MCQ,
        questions=[
            Question(id=f"q{i + 1}", text=f"Question {i + 1}", options=["a", "b", "c", "d"], correct_option=i % 4)
            for i in range(n)
        ],
    )


def make_essay_exam(exam_id: str = "essay-1") -> Exam:
    return Exam(
        id=exam_id,
        title="Essay",
        duration=10,
        exam_type=ExamType.LONG_ANSWER,
        questions=[Question(id="e1", text="Explain."), Question(id="e2", text="Describe.")],
    )


@pytest.fixture
def mcq_exam():
    return make_mcq_exam()


@pytest.fixture
def store(mcq_exam):
    s = DocumentStore()
    ExamRepository(s).save_exam(mcq_exam)
    ExamRepository(s).save_exam(make_essay_exam())
    return s


@pytest.fixture
def make_controller(store):
    """컨트롤러 팩토리. (controller, environment, violation_backing) 반환."""

    def _make(exam_id="exam-1", fullscreen=True, visible=True, backing=None, submissions=None):
        env = BrowserEnvironment(fullscreen=fullscreen, visible=visible)
        backing = backing if backing is not None else {}
        controller = ExamSessionController(
            exam_id=exam_id,
            student_id="student-1",
            exams=ExamRepository(store),
            submissions=submissions or SubmissionRepository(store),
            environment=env,
            violation_store=ViolationStore(backing),
            tick_interval=3600,
        )
        return controller, env, backing

    return _make
