"""Shared fakes for the assessment tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

import api.session as session_store
from api.routes import _http_error
from api.sample_questions import SAMPLE_POOL
from leadership_assessment.models.question_model import (
    ChunkResult,
    ChunkSubmission,
    ClientQuestion,
    StartedSession,
)
from leadership_assessment.models.session_state import AssessmentVersion, SessionDescriptor
from leadership_assessment.services import assessment_service
from leadership_assessment.services.draft_store import DraftStore, KeyValueStorage, MemoryStorage
from leadership_assessment.services.location import MemoryLocation
from leadership_assessment.services.resume_gateway import AssessmentGateway, GatewayRejectedError


def likert(qid: str) -> ClientQuestion:
    return ClientQuestion(id=qid, type="likert", text=f"Statement {qid}")


def make_descriptor(
    version: str = "deep",
    current_chunk: int = 2,
    total_chunks: int = 4,
    token: str = "abc123",
    session_id: str = "s1",
    question_ids: tuple = ("q1", "q2", "q3"),
) -> SessionDescriptor:
    return SessionDescriptor(
        session_id=session_id,
        token=token,
        version=version,
        questions=[likert(qid) for qid in question_ids],
        current_chunk=current_chunk,
        total_chunks=total_chunks,
    )


class FakeGateway(AssessmentGateway):
    """Scripted gateway. `gate` holds resume() until it is set."""

    def __init__(
        self,
        descriptor: Optional[SessionDescriptor] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.descriptor = descriptor
        self.error = error
        self.gate = gate
        self.resume_calls: List[str] = []
        self.started: List[str] = []
        self.upgrades: List[str] = []
        self.submissions: List[List[ChunkSubmission]] = []
        self.start_error: Optional[Exception] = None
        self.submit_results: List[object] = []
        self.start_questions = [likert("n1"), likert("n2")]

    async def resume(self, token: str) -> Optional[SessionDescriptor]:
        self.resume_calls.append(token)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.descriptor

    async def start(self, version: AssessmentVersion) -> StartedSession:
        self.started.append(AssessmentVersion(version).value)
        if self.start_error is not None:
            raise self.start_error
        return StartedSession(
            session_id="new-session",
            token="newtoken0001",
            questions=self.start_questions,
            total_chunks=3,
        )

    async def start_upgrade(self, quick_token: str) -> StartedSession:
        self.upgrades.append(quick_token)
        return StartedSession(
            session_id="upgrade-session",
            token="upgradetok01",
            questions=self.start_questions,
            total_chunks=7,
        )

    async def submit_chunk(self, session_id: str, responses: List[ChunkSubmission]) -> ChunkResult:
        self.submissions.append(list(responses))
        result = self.submit_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class ServiceGateway(AssessmentGateway):
    """Calls the session service in-process against the shared in-memory store.

    Service errors surface as GatewayRejectedError with the status the HTTP API would send.
    """

    async def resume(self, token: str) -> Optional[SessionDescriptor]:
        return assessment_service.resume_assessment(session_store.get_by_token(token), SAMPLE_POOL)

    async def start(self, version: AssessmentVersion) -> StartedSession:
        record, started = assessment_service.start_assessment(version, SAMPLE_POOL)
        session_store.save(record)
        return started

    async def start_upgrade(self, quick_token: str) -> StartedSession:
        try:
            record, started = assessment_service.start_upgrade_assessment(
                session_store.get_by_token(quick_token), SAMPLE_POOL
            )
        except assessment_service.SessionError as e:
            raise _rejected(e)
        session_store.save(record)
        return started

    async def submit_chunk(self, session_id: str, responses: List[ChunkSubmission]) -> ChunkResult:
        record = session_store.get_by_id(session_id)
        try:
            result = assessment_service.submit_chunk(record, responses, SAMPLE_POOL)
        except assessment_service.SessionError as e:
            raise _rejected(e)
        session_store.save(record)
        return result


def _rejected(e: Exception) -> GatewayRejectedError:
    http = _http_error(e)
    return GatewayRejectedError(http.status_code, http.detail)


class BrokenStorage(KeyValueStorage):
    """Device storage that is unavailable."""

    def keys(self) -> List[str]:
        raise OSError("storage unavailable")

    def get_item(self, key: str) -> Optional[str]:
        raise OSError("storage unavailable")

    def set_item(self, key: str, value: str) -> None:
        raise OSError("storage unavailable")

    def remove_item(self, key: str) -> None:
        raise OSError("storage unavailable")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def drafts(storage) -> DraftStore:
    return DraftStore(storage, namespace="ops_assessment")


@pytest.fixture
def location_factory():
    def _make(query: str) -> MemoryLocation:
        return MemoryLocation(f"/tools/leadership/assess{query}")
    return _make


@pytest.fixture(autouse=True)
def clean_session_store():
    session_store.reset()
    yield
    session_store.reset()


def answer_all(questions, value: int = 4, choice: str = "a") -> Dict[str, object]:
    return {q.id: (value if q.type == "likert" else choice) for q in questions}
