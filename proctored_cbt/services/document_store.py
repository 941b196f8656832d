"""
services/document_store.py

외부 문서 DB 대역. 컬렉션/문서 ID 단위의 JSON 문서 저장소.
  - exams        : 시험 문서 (읽기 전용으로 사용)
  - studentExams : 제출 결과, 문서 ID = <studentId>_<examId>

path 가 None 이면 메모리에만 보관, 있으면 쓰기마다 JSON 파일로 flush.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from proctored_cbt.models.question_model import Exam
from proctored_cbt.models.submission_model import SubmissionResult, submission_doc_id

logger = logging.getLogger(__name__)

EXAMS = "exams"
STUDENT_EXAMS = "studentExams"


class StoreError(RuntimeError):
    """저장소 읽기/쓰기 실패."""


class ExamNotFoundError(LookupError):
    """해당 ID의 시험 문서가 없음."""


class DocumentStore:
    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        if path and os.path.exists(path):
            self._load()

    def _load(self) -> None:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                self._collections = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"저장소 파일을 읽을 수 없습니다: {e}") from e
        logger.info(f"저장소 로드: {self._path}")

    def _flush(self, collections: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        if not self._path:
            return
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(collections, f, ensure_ascii=False, indent=2, default=str)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StoreError(f"저장소 파일에 쓸 수 없습니다: {e}") from e

    def _commit(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        """파일 flush 가 성공한 뒤에만 메모리에 반영한다."""
        staged = {name: dict(docs) for name, docs in self._collections.items()}
        staged.setdefault(collection, {})[doc_id] = doc
        self._flush(staged)
        self._collections = staged

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return json.loads(json.dumps(doc)) if doc is not None else None

    def list(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(d) for d in self._collections.get(collection, {}).values()]

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        """문서 쓰기. merge=True 이면 최상위 필드 단위로 병합."""
        with self._lock:
            docs = self._collections.get(collection, {})
            if merge and doc_id in docs:
                doc = {**docs[doc_id], **data}
            else:
                doc = dict(data)
            self._commit(collection, doc_id, doc)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """기존 문서의 일부 필드만 갱신. 문서가 없으면 StoreError."""
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise StoreError(f"문서가 없습니다: {collection}/{doc_id}")
            self._commit(collection, doc_id, {**docs[doc_id], **data})


class ExamRepository:
    """시험 문서 조회 (exam source)."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get_exam(self, exam_id: str) -> Exam:
        doc = self._store.get(EXAMS, exam_id)
        if doc is None:
            raise ExamNotFoundError(f"시험을 찾을 수 없습니다: {exam_id}")
        try:
            return Exam.model_validate({"id": exam_id, **doc})
        except ValidationError as e:
            raise StoreError(f"시험 문서 형식이 올바르지 않습니다 ({exam_id}): {e}") from e

    def save_exam(self, exam: Exam) -> None:
        self._store.set(EXAMS, exam.id, exam.model_dump(mode="json"))


class SubmissionRepository:
    """제출 결과 저장 (submission sink). (studentId, examId) 단위 멱등 upsert."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def upsert(self, result: SubmissionResult) -> None:
        self._store.set(
            STUDENT_EXAMS,
            result.doc_id,
            result.model_dump(mode="json", exclude_none=True),
            merge=True,
        )
        logger.info(f"제출 결과 저장: {result.doc_id} (status={result.status.value})")

    def get(self, student_id: str, exam_id: str) -> Optional[SubmissionResult]:
        doc = self._store.get(STUDENT_EXAMS, submission_doc_id(student_id, exam_id))
        if doc is None:
            return None
        return SubmissionResult.model_validate(doc)

    def update_grades(self, result: SubmissionResult) -> None:
        """수동 채점 결과 반영 (answers / score / status 만 갱신)."""
        payload = result.model_dump(mode="json", include={"answers", "score", "status"})
        self._store.update(STUDENT_EXAMS, result.doc_id, payload)
