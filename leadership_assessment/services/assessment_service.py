"""
services/assessment_service.py

서버측 진단 세션 비즈니스 로직.
순수 Python 함수로 구성 — 저장소 접근, 전역 상태 변경 없음.
세션 레코드를 만들거나 갱신해서 돌려주고, 보관은 호출측(api/session.py)이 맡는다.

문항 선정은 고정 규칙이다: 버전에서 쓸 수 있는 문항 중 아직 답하지 않은 것을
풀 순서대로 고르고, 부족하면 이미 답한 문항으로 채운다.
"""

import logging
import secrets
import time
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from config import CHUNKS_PER_VERSION, QUESTIONS_PER_CHUNK, UPGRADE_TOTAL_CHUNKS
from leadership_assessment.models.question_model import (
    ChunkResult,
    ChunkSubmission,
    PoolQuestion,
    StartedSession,
)
from leadership_assessment.models.session_state import (
    AssessmentSession,
    AssessmentVersion,
    SessionDescriptor,
    SessionStatus,
)

logger = logging.getLogger(__name__)


class SessionError(Exception):
    pass


class SessionNotFoundError(SessionError):
    pass


class SessionStateError(SessionError):
    pass


class InvalidSubmissionError(SessionError):
    pass


def mint_token() -> str:
    """URL에 싣는 12자 불투명 토큰."""
    return secrets.token_urlsafe(9)


def version_pool(pool: Sequence[PoolQuestion], version: AssessmentVersion) -> List[PoolQuestion]:
    v = AssessmentVersion(version).value
    return [q for q in pool if v in q.version_availability]


def select_chunk(
    pool: Sequence[PoolQuestion],
    version: AssessmentVersion,
    answered_ids: Sequence[str] = (),
    size: int = QUESTIONS_PER_CHUNK,
) -> List[PoolQuestion]:
    """
    다음 청크 문항을 고른다.

    Raises:
        SessionStateError: 해당 버전에 쓸 수 있는 문항이 하나도 없는 경우
    """
    available = version_pool(pool, version)
    if not available:
        raise SessionStateError(f"'{AssessmentVersion(version).value}' 버전 문항이 없습니다.")
    answered = set(answered_ids)
    unanswered = [q for q in available if q.id not in answered]
    # 최근에 답한 문항일수록 나중에 재사용
    order = {qid: i for i, qid in enumerate(answered_ids)}
    reused = sorted((q for q in available if q.id in answered), key=lambda q: order[q.id])
    return (unanswered + reused)[:size]


def _started(record: AssessmentSession, chunk: List[PoolQuestion]) -> StartedSession:
    return StartedSession(
        session_id=record.id,
        token=record.token,
        questions=[q.to_client() for q in chunk],
        total_chunks=record.total_chunks,
    )


def start_assessment(
    version: AssessmentVersion,
    pool: Sequence[PoolQuestion],
) -> Tuple[AssessmentSession, StartedSession]:
    """새 세션 레코드와 첫 청크를 만든다."""
    version = AssessmentVersion(version)
    chunk = select_chunk(pool, version)
    record = AssessmentSession(
        id=uuid.uuid4().hex,
        token=mint_token(),
        version=version,
        total_chunks=CHUNKS_PER_VERSION[version.value],
        current_chunk_question_ids=[q.id for q in chunk],
    )
    logger.info(f"세션 생성: version={version.value}, chunks={record.total_chunks}")
    return record, _started(record, chunk)


def start_upgrade_assessment(
    quick_session: Optional[AssessmentSession],
    pool: Sequence[PoolQuestion],
) -> Tuple[AssessmentSession, StartedSession]:
    """
    완료된 quick 세션을 바탕으로 deep 세션을 만든다.
    deep 문항 풀은 독립적이라 quick에서 답한 문항을 제외하지 않는다.

    Raises:
        SessionNotFoundError: 원본 세션이 없는 경우
        SessionStateError:    원본이 quick이 아니거나 아직 완료되지 않은 경우
    """
    if quick_session is None:
        raise SessionNotFoundError("업그레이드할 quick 세션을 찾을 수 없습니다.")
    if quick_session.version is not AssessmentVersion.QUICK:
        raise SessionStateError("원본 세션이 quick 진단이 아닙니다.")
    if quick_session.status is not SessionStatus.COMPLETED:
        raise SessionStateError("quick 진단이 아직 완료되지 않았습니다.")

    chunk = select_chunk(pool, AssessmentVersion.DEEP)
    record = AssessmentSession(
        id=uuid.uuid4().hex,
        token=mint_token(),
        version=AssessmentVersion.DEEP,
        total_chunks=UPGRADE_TOTAL_CHUNKS,
        current_chunk_question_ids=[q.id for q in chunk],
        upgrade_from_token=quick_session.token,
    )
    logger.info(f"업그레이드 세션 생성: chunks={record.total_chunks}")
    return record, _started(record, chunk)


def _validate_responses(
    record: AssessmentSession,
    responses: Sequence[ChunkSubmission],
    by_id: Dict[str, PoolQuestion],
) -> None:
    expected = record.current_chunk_question_ids
    got = [r.question_id for r in responses]
    if len(set(got)) != len(got):
        raise InvalidSubmissionError("같은 문항에 대한 응답이 중복되었습니다.")
    if set(got) != set(expected):
        missing = sorted(set(expected) - set(got))
        extra = sorted(set(got) - set(expected))
        raise InvalidSubmissionError(f"현재 청크 문항과 응답이 일치하지 않습니다 (누락={missing}, 초과={extra})")
    for r in responses:
        q = by_id.get(r.question_id)
        if q is None or not q.accepts(r.answer_value):
            raise InvalidSubmissionError(f"문항 {r.question_id}의 응답값이 올바르지 않습니다: {r.answer_value!r}")


def submit_chunk(
    record: Optional[AssessmentSession],
    responses: Sequence[ChunkSubmission],
    pool: Sequence[PoolQuestion],
) -> ChunkResult:
    """
    현재 청크 응답을 기록하고 다음 청크로 넘긴다 (record를 직접 갱신).
    마지막 청크이면 세션을 completed로 표시하고 complete=True를 반환.

    Raises:
        SessionNotFoundError:   세션이 없는 경우
        SessionStateError:      진행 중인 세션이 아닌 경우
        InvalidSubmissionError: 응답이 현재 청크와 맞지 않는 경우
    """
    if record is None:
        raise SessionNotFoundError("세션을 찾을 수 없습니다.")
    if record.status is not SessionStatus.IN_PROGRESS:
        raise SessionStateError("진행 중인 세션이 아닙니다.")

    by_id = {q.id: q for q in pool}
    _validate_responses(record, responses, by_id)
    order = {qid: i for i, qid in enumerate(record.current_chunk_question_ids)}
    record.responses.extend(sorted(responses, key=lambda r: order[r.question_id]))

    if record.current_chunk >= record.total_chunks:
        record.status = SessionStatus.COMPLETED
        record.completed_at = time.time()
        record.current_chunk_question_ids = []
        return ChunkResult(
            complete=True,
            current_chunk=record.current_chunk,
            total_chunks=record.total_chunks,
        )

    chunk = select_chunk(pool, record.version, record.answered_ids)
    record.current_chunk += 1
    record.current_chunk_question_ids = [q.id for q in chunk]
    return ChunkResult(
        complete=False,
        questions=[q.to_client() for q in chunk],
        current_chunk=record.current_chunk,
        total_chunks=record.total_chunks,
    )


def resume_assessment(
    record: Optional[AssessmentSession],
    pool: Sequence[PoolQuestion],
) -> Optional[SessionDescriptor]:
    """
    토큰으로 찾은 세션의 재개 정보를 만든다. 매 호출마다 다시 검증한다.

    Returns:
        진행 중이고 현재 청크 문항을 복원할 수 있으면 SessionDescriptor, 아니면 None.
    """
    if record is None or record.status is not SessionStatus.IN_PROGRESS:
        return None
    if not record.current_chunk_question_ids:
        return None

    by_id = {q.id: q for q in version_pool(pool, record.version)}
    questions = [by_id[qid].to_client() for qid in record.current_chunk_question_ids if qid in by_id]
    if not questions:
        return None

    return SessionDescriptor(
        session_id=record.id,
        token=record.token,
        version=record.version,
        questions=questions,
        current_chunk=record.current_chunk,
        total_chunks=record.total_chunks,
    )
