"""
api/routes.py — FastAPI 엔드포인트
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

import api.session as session
from api.sample_questions import SAMPLE_POOL
from leadership_assessment.models.question_model import ChunkResult, ChunkSubmission, StartedSession
from leadership_assessment.models.session_state import AssessmentVersion, SessionDescriptor
from leadership_assessment.services.assessment_service import (
    InvalidSubmissionError,
    SessionError,
    SessionNotFoundError,
    SessionStateError,
    resume_assessment,
    start_assessment,
    start_upgrade_assessment,
    submit_chunk,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class StartBody(BaseModel):
    version: AssessmentVersion = AssessmentVersion.QUICK

class UpgradeBody(BaseModel):
    upgrade_from: str = Field(..., min_length=1)

class SubmitChunkBody(BaseModel):
    responses: list[ChunkSubmission] = Field(..., min_length=1)


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _http_error(e: SessionError) -> HTTPException:
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidSubmissionError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, SessionStateError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.get("/api/health")
async def health():
    return {"ok": True}


@router.post("/api/assessment/start", response_model=StartedSession)
async def api_start(body: StartBody):
    try:
        record, started = start_assessment(body.version, SAMPLE_POOL)
    except SessionError as e:
        raise _http_error(e)
    session.save(record)
    return started


@router.post("/api/assessment/upgrade", response_model=StartedSession)
async def api_upgrade(body: UpgradeBody):
    quick = session.get_by_token(body.upgrade_from)
    try:
        record, started = start_upgrade_assessment(quick, SAMPLE_POOL)
    except SessionError as e:
        raise _http_error(e)
    session.save(record)
    return started


@router.post("/api/assessment/{session_id}/chunk", response_model=ChunkResult)
async def api_submit_chunk(session_id: str, body: SubmitChunkBody):
    record = session.get_by_id(session_id)
    try:
        result = submit_chunk(record, body.responses, SAMPLE_POOL)
    except SessionError as e:
        logger.info(f"청크 제출 거절 ({type(e).__name__}): {e}")
        raise _http_error(e)
    session.save(record)
    return result


@router.get("/api/assessment/resume/{token}", response_model=SessionDescriptor)
async def api_resume(token: str):
    descriptor = resume_assessment(session.get_by_token(token), SAMPLE_POOL)
    if descriptor is None:
        # 없음/만료/완료를 구분하지 않는다
        raise HTTPException(status_code=404, detail="재개할 수 있는 세션이 없습니다.")
    return descriptor
