"""
Tests for the JSON document store and its repositories.
"""

import json
import shutil

import pytest

from conftest import make_mcq_exam
from proctored_cbt.models.session_state import Answer, SessionState, Start
from proctored_cbt.models.submission_model import ForcedSubmission
from proctored_cbt.services.document_store import (
    STUDENT_EXAMS,
    DocumentStore,
    ExamNotFoundError,
    ExamRepository,
    StoreError,
    SubmissionRepository,
)
from proctored_cbt.services.exam_service import build_submission
from proctored_cbt.services.session_reducer import reduce


class TestDocumentStore:
    """컬렉션 단위 저장."""

    def test_set_and_get_copy(self):
        store = DocumentStore()
        store.set("c", "d", {"a": 1})
        doc = store.get("c", "d")
        doc["a"] = 2
        assert store.get("c", "d") == {"a": 1}

    def test_merge_keeps_other_fields(self):
        store = DocumentStore()
        store.set("c", "d", {"a": 1, "b": 2})
        store.set("c", "d", {"b": 3}, merge=True)
        assert store.get("c", "d") == {"a": 1, "b": 3}

    def test_update_missing_document_fails(self):
        with pytest.raises(StoreError):
            DocumentStore().update("c", "missing", {"a": 1})

    def test_persists_to_file(self, tmp_path):
        path = tmp_path / "store.json"
        DocumentStore(str(path)).set("c", "d", {"a": 1})
        assert json.loads(path.read_text(encoding="utf-8")) == {"c": {"d": {"a": 1}}}
        assert DocumentStore(str(path)).get("c", "d") == {"a": 1}

    def test_failed_write_leaves_memory_untouched(self, tmp_path):
        store = DocumentStore(str(tmp_path / "missing_dir" / "store.json"))
        with pytest.raises(StoreError):
            store.set("c", "d", {"a": 1})
        assert store.get("c", "d") is None
        assert store.list("c") == []

    def test_failed_update_keeps_previous_document(self, tmp_path):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        store = DocumentStore(str(data_dir / "store.json"))
        store.set("c", "d", {"a": 1})
        shutil.rmtree(data_dir)
        with pytest.raises(StoreError):
            store.update("c", "d", {"a": 2})
        assert store.get("c", "d") == {"a": 1}

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError):
            DocumentStore(str(path))


class TestExamRepository:
    """시험 문서 조회."""

    def test_round_trip(self):
        store = DocumentStore()
        repo = ExamRepository(store)
        repo.save_exam(make_mcq_exam(2))
        exam = repo.get_exam("exam-1")
        assert [q.correct_option for q in exam.questions] == [0, 1]

    def test_missing_exam(self):
        with pytest.raises(ExamNotFoundError):
            ExamRepository(DocumentStore()).get_exam("nope")

    def test_malformed_exam_document(self):
        store = DocumentStore()
        store.set("exams", "bad", {"title": "no duration"})
        with pytest.raises(StoreError):
            ExamRepository(store).get_exam("bad")


class TestSubmissionRepository:
    """(studentId, examId) 단위 멱등 upsert."""

    def test_second_write_overwrites_single_record(self):
        store = DocumentStore()
        repo = SubmissionRepository(store)
        exam = make_mcq_exam(2)
        state = reduce(SessionState.initial(exam), Start())

        repo.upsert(build_submission(exam, state, "stu"))
        state = reduce(state, Answer(question_id="q1", value=0))
        repo.upsert(build_submission(exam, state, "stu"))

        assert len(store.list(STUDENT_EXAMS)) == 1
        stored = repo.get("stu", "exam-1")
        assert stored.score == 50.0
        assert stored.answers[0].selected_option == 0

    def test_merge_preserves_forced_metadata(self):
        store = DocumentStore()
        repo = SubmissionRepository(store)
        exam = make_mcq_exam(1)
        state = SessionState.initial(exam)

        repo.upsert(build_submission(exam, state, "stu", ForcedSubmission(exit_count=4)))
        repo.upsert(build_submission(exam, state, "stu"))

        stored = repo.get("stu", "exam-1")
        assert stored.exit_count == 4
        assert stored.auto_submitted is True

    def test_get_missing(self):
        assert SubmissionRepository(DocumentStore()).get("a", "b") is None
