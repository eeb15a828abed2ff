"""
services/resume_controller.py

재개 상태 기계. URL 상태, 로컬 드래프트, 서버 확인 상태를 하나의 렌더링 모드로 정리한다.

    checking ──resume 성공(버전 일치)──▶ prompt ──Continue──▶ resuming
       │                                   │
       └──없음/버전 불일치/오류/타임아웃──▶ fresh ◀──Start Fresh──┘

- 초기 상태: upgrade_from 있음 → fresh, token 있음 → checking, 그 외 → fresh
- resuming / fresh 는 종단 상태. 이후 checking 으로 돌아가지 않는다.
- 모든 실패는 토큰 제거 + 드래프트 삭제 + fresh 로 수렴한다. 오류 상태는 없다.
- 진행 중인 resume 응답은 세대(generation) 번호로 가드한다.
  teardown 이후나 더 새로운 호출이 있는 경우 결과를 버리고 아무것도 바꾸지 않는다.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from leadership_assessment.models.question_model import AnswerValue
from leadership_assessment.models.session_state import (
    Checking,
    EntryMode,
    Fresh,
    Prompt,
    ResumeData,
    ResumeState,
    Resuming,
    SessionDescriptor,
)
from leadership_assessment.services.draft_store import DraftStore
from leadership_assessment.services.location import Location
from leadership_assessment.services.resume_gateway import AssessmentGateway, GatewayError
from leadership_assessment.services.session_identity import SessionIdentity

logger = logging.getLogger(__name__)

StateListener = Callable[[ResumeState], None]


def initial_state(identity: SessionIdentity) -> ResumeState:
    """마운트 시점의 동기 초기 상태. 상태 기계의 유일한 진입점."""
    if identity.upgrade_from_token:
        return Fresh()
    if identity.token:
        return Checking()
    return Fresh()


class ResumeController:
    """
    한 번의 페이지 뷰 동안 ResumeState를 소유한다.

    Args:
        identity: URL에서 해석한 세션 식별 정보
        gateway:  resume 호출 대상
        drafts:   드래프트 저장소 (읽기 + 삭제만 한다)
        location: 토큰 제거용 주소창
        timeout:  resume 호출 제한 시간 (초). 초과하면 실패와 동일하게 fresh.
    """

    def __init__(
        self,
        identity: SessionIdentity,
        gateway: AssessmentGateway,
        drafts: DraftStore,
        location: Location,
        timeout: float = 5.0,
    ):
        self.identity = identity
        self.gateway = gateway
        self.drafts = drafts
        self.location = location
        self.timeout = timeout
        self._state: ResumeState = initial_state(identity)
        self._generation = 0
        self._torn_down = False
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[StateListener] = []

    # ── 조회 ──────────────────────────────────────────────────────────────

    @property
    def state(self) -> ResumeState:
        return self._state

    @property
    def mode(self) -> EntryMode:
        if isinstance(self._state, Resuming):
            return EntryMode.RESUMING
        if isinstance(self._state, (Checking, Prompt)):
            return EntryMode.RESUME_CHECK
        if self.identity.upgrade_from_token:
            return EntryMode.UPGRADING
        return EntryMode.FRESH

    @property
    def render_target(self) -> str:
        """UI 분기: loading | prompt | flow"""
        if isinstance(self._state, Checking):
            return "loading"
        if isinstance(self._state, Prompt):
            return "prompt"
        return "flow"

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """상태 변경 리스너 등록. 해제 함수를 반환."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, state: ResumeState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"상태 리스너 오류 (무시): status={state.status}")

    # ── 마운트 / 해제 ─────────────────────────────────────────────────────

    def mount(self) -> Optional[asyncio.Task]:
        """
        checking 상태이면 resume 확인을 태스크로 예약한다 (실행 중인 이벤트 루프 필요).
        이미 예약됐거나 checking이 아니면 기존 태스크(또는 None)를 반환.
        """
        if self._task is None and isinstance(self._state, Checking) and not self._torn_down:
            self._task = asyncio.ensure_future(self.check())
        return self._task

    def teardown(self) -> None:
        """이 인스턴스를 해제. 진행 중인 resume 결과는 도착해도 버려진다."""
        self._torn_down = True
        self._generation += 1
        self._listeners.clear()

    # ── checking → prompt | fresh ────────────────────────────────────────

    async def check(self) -> ResumeState:
        """
        URL 토큰으로 resume을 한 번 호출하고 결과에 따라 전이한다.
        checking 상태가 아니면 아무것도 하지 않고 현재 상태를 반환.
        """
        if not isinstance(self._state, Checking) or self._torn_down:
            return self._state

        token = self.identity.token
        self._generation += 1
        generation = self._generation

        descriptor: Optional[SessionDescriptor] = None
        reason = "not_found"
        try:
            descriptor = await asyncio.wait_for(self.gateway.resume(token), timeout=self.timeout)
        except asyncio.TimeoutError:
            reason = "timeout"
        except GatewayError as e:
            reason = e.kind
            logger.warning(f"resume 실패 ({e.kind}): {e}")
        except Exception:
            reason = "unexpected"
            logger.exception("resume 중 예상하지 못한 오류")

        if generation != self._generation or self._torn_down:
            logger.debug(f"resume 응답 폐기 (generation={generation}, torn_down={self._torn_down})")
            return self._state

        if descriptor is not None and descriptor.version != self.identity.version:
            reason = "version_mismatch"
            logger.info(
                f"세션 버전 불일치: URL={self.identity.version.value}, "
                f"세션={descriptor.version.value}"
            )
            descriptor = None

        if descriptor is None:
            logger.info(f"재개 불가 ({reason}) → 토큰 제거 후 새로 시작")
            self.location.strip_token()
            self.drafts.clear()
            self._set_state(Fresh())
            return self._state

        logger.info(
            f"재개 가능 세션 확인: chunk {descriptor.current_chunk}/{descriptor.total_chunks}"
        )
        self._set_state(Prompt(data=ResumeData(
            descriptor=descriptor,
            draft_answers=self._matching_drafts(descriptor),
        )))
        return self._state

    def _matching_drafts(self, descriptor: SessionDescriptor) -> Optional[Dict[str, AnswerValue]]:
        """현재 청크(및 같은 세션)에 속한 드래프트만 반환. 그 외는 오래된 것으로 본다."""
        draft = self.drafts.get()
        if draft is None or not draft.answers:
            return None
        if draft.chunk != descriptor.current_chunk:
            logger.info(f"드래프트 청크({draft.chunk}) ≠ 현재 청크({descriptor.current_chunk}) → 무시")
            return None
        if draft.token is not None and draft.token != descriptor.token:
            logger.info("다른 세션의 드래프트 → 무시")
            return None
        question_ids = {q.id for q in descriptor.questions}
        answers = {qid: v for qid, v in draft.answers.items() if qid in question_ids}
        return answers or None

    # ── 사용자 동작 ───────────────────────────────────────────────────────

    def continue_session(self) -> ResumeState:
        """prompt → resuming. 명시적 Continue로만 일어난다."""
        if isinstance(self._state, Prompt) and not self._torn_down:
            self._set_state(Resuming(data=self._state.data))
        return self._state

    def start_fresh(self) -> ResumeState:
        """
        prompt → fresh.
        순서: 네임스페이스 전체 드래프트 삭제 → URL에서 토큰 제거 (리로드 없음) → fresh.
        """
        if not isinstance(self._state, Prompt) or self._torn_down:
            return self._state
        self.drafts.clear_all()
        self.location.strip_token()
        logger.info("사용자가 새로 시작을 선택했습니다.")
        self._set_state(Fresh())
        return self._state
