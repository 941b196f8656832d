"""
api/routes.py — FastAPI 엔드포인트
"""

import logging
from typing import Dict, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

import api.session as session
from proctored_cbt.models.session_state import Action
from proctored_cbt.services.document_store import (
    ExamNotFoundError,
    ExamRepository,
    StoreError,
    SubmissionRepository,
)
from proctored_cbt.services.environment import BrowserEnvironment
from proctored_cbt.services.grading_service import InvalidMarksError, apply_grades
from proctored_cbt.services.proctoring import ViolationStore
from proctored_cbt.services.session_controller import (
    ExamLoadError,
    ExamSessionController,
    SubmissionFailedError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# 브라우저가 보낼 수 있는 액션. start 는 /api/start, tick 은 서버 타이머 전용.
CLIENT_ACTIONS = {"next", "prev", "jump-to", "answer", "toggle-mark-for-review", "finish"}

# ── Pydantic request bodies ──────────────────────────────────────────────────

class OpenExamBody(BaseModel):
    student_id: str = Field(..., min_length=1)
    fullscreen: bool = False
    visible: bool = True
    fullscreen_supported: bool = True

class ActionBody(BaseModel):
    action: Action

class EnvironmentBody(BaseModel):
    fullscreen: Optional[bool] = None
    visible: Optional[bool] = None

class FullscreenErrorBody(BaseModel):
    reason: str = ""

class GradesBody(BaseModel):
    marks: Dict[str, Union[int, str, None]]


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _sid(request: Request) -> str:
    return request.state.session_id


def _controller(request: Request) -> ExamSessionController:
    controller: ExamSessionController | None = session.get(_sid(request), "controller")
    if controller is None or not controller.loaded:
        raise HTTPException(status_code=404, detail="시험 세션이 없습니다.")
    return controller


def _store(request: Request):
    return request.app.state.store


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/api/exams/{exam_id}/open")
async def open_exam(exam_id: str, body: OpenExamBody, request: Request):
    sid = _sid(request)
    old: ExamSessionController | None = session.get(sid, "controller")
    if old is not None:
        old.close()

    store = _store(request)
    controller = ExamSessionController(
        exam_id=exam_id,
        student_id=body.student_id,
        exams=ExamRepository(store),
        submissions=SubmissionRepository(store),
        environment=BrowserEnvironment(
            fullscreen=body.fullscreen,
            visible=body.visible,
            supported=body.fullscreen_supported,
        ),
        violation_store=ViolationStore(session.get(sid, "violation_counts")),
    )
    try:
        exam = await controller.load()
    except ExamNotFoundError:
        raise HTTPException(status_code=404, detail="The exam you are looking for does not exist or has been removed.")
    except ExamLoadError as e:
        raise HTTPException(status_code=503, detail=str(e))

    session.put(sid, "student_id", body.student_id)
    session.put(sid, "controller", controller)
    return {"exam": exam.model_dump(mode="json"), "ok": True}


@router.get("/api/exam")
async def get_exam(request: Request):
    controller = _controller(request)
    return controller.student_exam().model_dump(mode="json")


@router.get("/api/exam-state")
async def get_exam_state(request: Request):
    return _controller(request).snapshot()


@router.post("/api/start")
async def start_exam(request: Request):
    controller = _controller(request)
    if controller.state.exam_finished:
        raise HTTPException(status_code=400, detail="이미 종료된 시험입니다.")
    await controller.start()
    return controller.snapshot()


@router.post("/api/action")
async def apply_action(body: ActionBody, request: Request):
    controller = _controller(request)
    if body.action.type not in CLIENT_ACTIONS:
        raise HTTPException(status_code=400, detail=f"{body.action.type} 액션은 외부에서 보낼 수 없습니다.")
    if controller.state.exam_finished or controller.guard.done:
        raise HTTPException(status_code=400, detail="이미 제출된 시험입니다.")
    if not controller.state.exam_started:
        raise HTTPException(status_code=400, detail="시험이 아직 시작되지 않았습니다.")
    await controller.dispatch(body.action)
    return controller.snapshot()


@router.post("/api/environment")
async def report_environment(body: EnvironmentBody, request: Request):
    controller = _controller(request)
    await controller.report_environment(fullscreen=body.fullscreen, visible=body.visible)
    return controller.snapshot()


@router.post("/api/enter-fullscreen")
async def enter_fullscreen(request: Request):
    controller = _controller(request)
    return {"ok": controller.request_secure()}


@router.post("/api/fullscreen-error")
async def fullscreen_error(body: FullscreenErrorBody, request: Request):
    controller = _controller(request)
    controller.report_secure_failure(body.reason or "requestFullscreen rejected")
    return {"ok": True}


@router.post("/api/submit")
async def submit_exam(request: Request):
    controller = _controller(request)
    try:
        result = await controller.submit()
    except SubmissionFailedError:
        raise HTTPException(
            status_code=503,
            detail="There was an error submitting your exam. Please try again.",
        )
    if result is None:
        return {"ok": True, "duplicate": True, "redirect_to": controller.redirect_to}
    return {
        "ok": True,
        "duplicate": False,
        "status": result.status.value,
        "score": result.score,
        "redirect_to": controller.redirect_to,
    }


@router.get("/api/notices")
async def get_notices(request: Request):
    controller: ExamSessionController | None = session.get(_sid(request), "controller")
    if controller is None:
        return {"notices": []}
    return {"notices": [n.model_dump(mode="json") for n in controller.notifier.drain()]}


@router.post("/api/submissions/{student_id}/{exam_id}/grades")
async def grade_submission(student_id: str, exam_id: str, body: GradesBody, request: Request):
    submissions = SubmissionRepository(_store(request))
    submission = submissions.get(student_id, exam_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="제출 기록이 없습니다.")
    try:
        graded = apply_grades(submission, body.marks)
    except InvalidMarksError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        submissions.update_grades(graded)
    except StoreError as e:
        logger.error(f"채점 저장 실패 ({graded.doc_id}): {e}")
        raise HTTPException(
            status_code=503,
            detail="Could not save the grades. Please check permissions and try again.",
        )
    return {"ok": True, "score": graded.score, "status": graded.status.value}


@router.post("/api/reset")
async def reset_session(request: Request):
    session.reset(_sid(request))
    return {"ok": True}
