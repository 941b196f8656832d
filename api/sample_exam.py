"""
api/sample_exam.py — 저장소가 비어 있을 때 넣어 두는 샘플 시험
"""

from proctored_cbt.models.question_model import Exam, ExamType, Question

SAMPLE_EXAM = Exam(
    id="sample-mcq",
    title="Python Basics (Sample)",
    description="파이썬 기초 객관식 샘플 시험입니다.",
    faculty_id="sample-faculty",
    duration=10,
    exam_type=ExamType.MCQ,
    questions=[
        Question(
            id="q1",
            text="What is the output of len([1, 2, 3])?",
            options=["2", "3", "4", "Error"],
            correct_option=1,
        ),
        Question(
            id="q2",
            text="Which keyword defines a function?",
            options=["func", "def", "lambda", "fn"],
            correct_option=1,
        ),
        Question(
            id="q3",
            text="Which type is immutable?",
            options=["list", "dict", "set", "tuple"],
            correct_option=3,
        ),
    ],
)

SAMPLE_ESSAY_EXAM = Exam(
    id="sample-essay",
    title="Short Essay (Sample)",
    description="서술형 샘플 시험입니다. 교수 수동 채점 대상.",
    faculty_id="sample-faculty",
    duration=15,
    exam_type=ExamType.LONG_ANSWER,
    questions=[
        Question(id="e1", text="Explain the difference between a list and a tuple."),
        Question(id="e2", text="Describe what a Python generator is."),
    ],
)

SAMPLE_EXAMS = [SAMPLE_EXAM, SAMPLE_ESSAY_EXAM]
