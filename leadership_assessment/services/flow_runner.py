"""
services/flow_runner.py

진단 진행기. 확정된 세션(새 시작 또는 재개)을 받아 청크 단위로 문항을 진행한다.

    starting → questioning → submitting_chunk → questioning (반복) → complete
                    ▲                │
                    └──── error ◀────┘   (retry 로 복구)

재개 컨트롤러와의 계약:
  - resume_data 가 있으면 서버 descriptor의 청크/문항과 일치하는 드래프트로 이어서 시작
  - upgrade_from_token 이 있으면 업그레이드 세션을 새로 시작
  - 드래프트 저장소에 쓰는 것은 이 클래스뿐이다 (항상 청크 전체 답안)
  - URL은 건드리지 않는다

제출이 4xx로 거절되면 resume으로 서버 진행 상태를 다시 읽어 맞춘다 (_resync).
"""

import logging
import time
from enum import Enum
from typing import Dict, List, Optional

from leadership_assessment.models.question_model import (
    AnswerValue,
    ChunkSubmission,
    ClientQuestion,
    DraftAnswers,
)
from leadership_assessment.models.session_state import AssessmentVersion, ResumeData
from leadership_assessment.services.draft_store import DraftStore
from leadership_assessment.services.resume_gateway import (
    AssessmentGateway,
    GatewayError,
    GatewayRejectedError,
)

logger = logging.getLogger(__name__)


class FlowPhase(str, Enum):
    STARTING = "starting"
    QUESTIONING = "questioning"
    SUBMITTING_CHUNK = "submitting_chunk"
    COMPLETE = "complete"
    ERROR = "error"


class AssessmentFlowRunner:
    """
    Args:
        version:            진단 버전
        gateway:            진단 서비스
        drafts:             드래프트 저장소
        resume_data:        재개 시 컨트롤러가 넘긴 데이터
        upgrade_from_token: deep 업그레이드 원본 quick 토큰
    """

    def __init__(
        self,
        version: AssessmentVersion,
        gateway: AssessmentGateway,
        drafts: DraftStore,
        resume_data: Optional[ResumeData] = None,
        upgrade_from_token: Optional[str] = None,
    ):
        if resume_data is not None and resume_data.descriptor.version != version:
            raise ValueError("재개 세션의 버전이 요청 버전과 다릅니다.")
        self.version = AssessmentVersion(version)
        self.gateway = gateway
        self.drafts = drafts
        self.resume_data = resume_data
        self.upgrade_from_token = upgrade_from_token

        self.phase = FlowPhase.STARTING
        self.session_id: Optional[str] = None
        self.token: Optional[str] = None
        self.current_chunk = 0
        self.total_chunks = 0
        self.questions: List[ClientQuestion] = []
        self.question_index = 0
        self.answers: Dict[str, AnswerValue] = {}
        self.response_times: Dict[str, int] = {}
        self.error: Optional[str] = None
        self._question_started = time.monotonic()

    # ── 조회 ──────────────────────────────────────────────────────────────

    @property
    def current_question(self) -> Optional[ClientQuestion]:
        if not self.questions:
            return None
        return self.questions[self.question_index]

    @property
    def chunk_complete(self) -> bool:
        return bool(self.questions) and all(q.id in self.answers for q in self.questions)

    # ── 시작 ──────────────────────────────────────────────────────────────

    async def start(self) -> FlowPhase:
        if self.phase is not FlowPhase.STARTING:
            return self.phase

        if self.resume_data is not None:
            self._load_resumed(self.resume_data)
            return self.phase

        try:
            if self.upgrade_from_token and self.version is AssessmentVersion.DEEP:
                started = await self.gateway.start_upgrade(self.upgrade_from_token)
            else:
                started = await self.gateway.start(self.version)
        except GatewayError as e:
            return self._fail(f"진단을 시작하지 못했습니다: {e}")

        self.session_id = started.session_id
        self.token = started.token
        self.questions = started.questions
        self.total_chunks = started.total_chunks
        self.current_chunk = 1
        self._reset_chunk()
        # 이전 세션의 드래프트가 새 세션에 섞이지 않게 한다
        self.drafts.clear()
        logger.info(f"진단 시작: version={self.version.value}, chunks={self.total_chunks}")
        self.phase = FlowPhase.QUESTIONING
        return self.phase

    def _load_resumed(self, data: ResumeData) -> None:
        d = data.descriptor
        self.session_id = d.session_id
        self.token = d.token
        self.questions = list(d.questions)
        self.current_chunk = d.current_chunk
        self.total_chunks = d.total_chunks
        self._reset_chunk()

        by_id = {q.id: q for q in self.questions}
        for qid, value in (data.draft_answers or {}).items():
            q = by_id.get(qid)
            if q is not None and q.accepts(value):
                self.answers[qid] = value

        # 첫 미응답 문항부터 (모두 응답했으면 마지막 문항)
        unanswered = [i for i, q in enumerate(self.questions) if q.id not in self.answers]
        self.question_index = unanswered[0] if unanswered else len(self.questions) - 1
        logger.info(
            f"진단 재개: chunk {self.current_chunk}/{self.total_chunks}, "
            f"드래프트 {len(self.answers)}개 복원"
        )
        self.phase = FlowPhase.QUESTIONING

    def _reset_chunk(self) -> None:
        self.question_index = 0
        self.answers = {}
        self.response_times = {}
        self._question_started = time.monotonic()

    # ── 응답 / 이동 ───────────────────────────────────────────────────────

    def select_answer(
        self,
        question_id: str,
        value: AnswerValue,
        response_time_ms: Optional[int] = None,
    ) -> None:
        """
        현재 청크 문항에 답하고, 청크 전체 답안을 드래프트로 저장한다.

        Raises:
            ValueError: 진행 중이 아니거나, 현재 청크에 없는 문항이거나, 유효하지 않은 응답값
        """
        if self.phase is not FlowPhase.QUESTIONING:
            raise ValueError(f"응답할 수 없는 단계입니다: {self.phase.value}")
        question = next((q for q in self.questions if q.id == question_id), None)
        if question is None:
            raise ValueError(f"현재 청크에 없는 문항입니다: {question_id}")
        if not question.accepts(value):
            raise ValueError(f"문항 {question_id}에 유효하지 않은 응답입니다: {value!r}")

        if response_time_ms is None:
            response_time_ms = int((time.monotonic() - self._question_started) * 1000)
        self.answers[question_id] = value
        self.response_times[question_id] = max(0, response_time_ms)
        self.drafts.set(DraftAnswers(
            answers=dict(self.answers),
            chunk=self.current_chunk,
            token=self.token,
        ))

    def navigate_to(self, index: int) -> bool:
        if self.phase is not FlowPhase.QUESTIONING:
            return False
        if index == self.question_index or not (0 <= index < len(self.questions)):
            return False
        self.question_index = index
        self._question_started = time.monotonic()
        return True

    def advance(self) -> bool:
        """현재 문항에 답했을 때만 다음 문항으로."""
        question = self.current_question
        if question is None or question.id not in self.answers:
            return False
        return self.navigate_to(self.question_index + 1)

    def go_back(self) -> bool:
        return self.navigate_to(self.question_index - 1)

    # ── 청크 제출 ─────────────────────────────────────────────────────────

    def _responses(self) -> List[ChunkSubmission]:
        return [
            ChunkSubmission(
                question_id=q.id,
                answer_value=self.answers[q.id],
                response_time_ms=self.response_times.get(q.id, 0),
            )
            for q in self.questions
        ]

    async def submit_chunk(self) -> FlowPhase:
        """
        현재 청크를 제출한다. 모든 문항에 답하지 않았으면 아무것도 하지 않는다.
        성공하면 드래프트를 지우고 다음 청크(또는 완료)로 이동.
        실패하면 error 단계로 가며 답안은 유지된다. 거절(4xx)이면 먼저 서버 상태로 재동기화한다.
        """
        if self.phase is not FlowPhase.QUESTIONING or not self.chunk_complete:
            return self.phase

        self.phase = FlowPhase.SUBMITTING_CHUNK
        try:
            result = await self.gateway.submit_chunk(self.session_id, self._responses())
        except GatewayRejectedError as e:
            return await self._resync(f"응답을 제출하지 못했습니다: {e}")
        except GatewayError as e:
            return self._fail(f"응답을 제출하지 못했습니다: {e}")

        self.drafts.clear()
        self.total_chunks = result.total_chunks
        self.current_chunk = result.current_chunk
        if result.complete:
            logger.info(f"진단 완료: session={self.session_id}")
            self.phase = FlowPhase.COMPLETE
            return self.phase

        self.questions = list(result.questions or [])
        self._reset_chunk()
        logger.info(f"다음 청크: {self.current_chunk}/{self.total_chunks}")
        self.phase = FlowPhase.QUESTIONING
        return self.phase

    async def _resync(self, message: str) -> FlowPhase:
        """
        제출이 거절되면 서버의 진행 상태를 다시 읽어 맞춘다.
        이전 제출이 서버에는 반영됐지만 응답을 잃은 경우, 같은 청크를 다시 보내면 계속 거절된다.

        - 재개 불가(None): 세션이 이미 끝난 것으로 보고 complete
        - 서버가 다른 청크/문항에 있음: 그 청크를 불러와 이어서 진행
        - 서버도 같은 청크: 응답 자체가 거절된 것이므로 error
        """
        try:
            descriptor = await self.gateway.resume(self.token)
        except GatewayError as e:
            return self._fail(f"{message} (진행 상태 확인 실패: {e})")

        if descriptor is None:
            logger.info(f"제출 거절 후 재개 불가 → 완료로 처리: session={self.session_id}")
            self.drafts.clear()
            self.current_chunk = self.total_chunks
            self.phase = FlowPhase.COMPLETE
            return self.phase

        same_chunk = (
            descriptor.current_chunk == self.current_chunk
            and [q.id for q in descriptor.questions] == [q.id for q in self.questions]
        )
        if same_chunk:
            return self._fail(message)

        logger.info(
            f"서버 진행 상태로 동기화: chunk {self.current_chunk} → {descriptor.current_chunk}"
        )
        self.drafts.clear()
        self._load_resumed(ResumeData(descriptor=descriptor))
        return self.phase

    # ── 오류 / 재시도 ─────────────────────────────────────────────────────

    def _fail(self, message: str) -> FlowPhase:
        logger.error(message)
        self.error = message
        self.phase = FlowPhase.ERROR
        return self.phase

    async def retry(self) -> FlowPhase:
        if self.phase is not FlowPhase.ERROR:
            return self.phase
        self.error = None
        if self.session_id is None:
            self.phase = FlowPhase.STARTING
            return await self.start()
        self.phase = FlowPhase.QUESTIONING
        if self.chunk_complete:
            return await self.submit_chunk()
        return self.phase
