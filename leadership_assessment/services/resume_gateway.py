"""
services/resume_gateway.py

외부 진단 서비스 클라이언트.
Public API:
  - resume(token)                      -> SessionDescriptor | None : 토큰 검증 + 진행 상태 조회
  - start(version)                     -> StartedSession           : 새 세션 시작
  - start_upgrade(quick_token)         -> StartedSession           : quick → deep 업그레이드 세션 시작
  - submit_chunk(session_id, responses)-> ChunkResult              : 청크 제출 + 다음 청크

오류 분류:
  - resume의 "토큰 없음/만료/완료"는 예외가 아니라 None
  - 네트워크/타임아웃/5xx → GatewayTransportError
  - 응답 형식 오류/예상 밖 상태 코드 → GatewayProtocolError
  - start/submit의 4xx 업무 거절 → GatewayRejectedError
재개 컨트롤러의 전이는 이 종류와 무관하게 동일하고, 로그에서만 구분한다.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, ValidationError

from leadership_assessment.models.question_model import ChunkResult, ChunkSubmission, StartedSession
from leadership_assessment.models.session_state import AssessmentVersion, SessionDescriptor

logger = logging.getLogger(__name__)


# ── 오류 ─────────────────────────────────────────────────────────────────────

class GatewayError(Exception):
    kind = "gateway"


class GatewayTransportError(GatewayError):
    kind = "transport"


class GatewayProtocolError(GatewayError):
    kind = "protocol"


class GatewayRejectedError(GatewayError):
    kind = "rejected"

    def __init__(self, status: int, detail: str):
        super().__init__(f"{status}: {detail}")
        self.status = status
        self.detail = detail


# ── 인터페이스 ────────────────────────────────────────────────────────────────

class AssessmentGateway(ABC):
    """진단 서비스 계약."""

    @abstractmethod
    async def resume(self, token: str) -> Optional[SessionDescriptor]:
        """토큰이 진행 중 세션을 가리키면 descriptor, 아니면 None."""

    @abstractmethod
    async def start(self, version: AssessmentVersion) -> StartedSession:
        pass

    @abstractmethod
    async def start_upgrade(self, quick_token: str) -> StartedSession:
        pass

    @abstractmethod
    async def submit_chunk(self, session_id: str, responses: List[ChunkSubmission]) -> ChunkResult:
        pass


# ── HTTP 구현 (aiohttp) ───────────────────────────────────────────────────────

class HttpAssessmentGateway(AssessmentGateway):
    """
    api/routes.py 의 HTTP API를 호출하는 게이트웨이.

    Args:
        base_url: API 서버 주소 (예: http://127.0.0.1:8000)
        session:  재사용할 aiohttp.ClientSession. None이면 요청마다 새로 연다.
        timeout:  요청당 전체 제한 시간 (초)
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 15.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    async def _request(self, method: str, path: str, payload: Any = None) -> Tuple[int, Any]:
        url = f"{self.base_url}{path}"
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            if self._session is not None:
                return await self._send(self._session, method, url, payload, client_timeout)
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                return await self._send(session, method, url, payload, client_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GatewayTransportError(f"{method} {path} 실패: {e!r}") from e

    @staticmethod
    async def _send(session, method: str, url: str, payload: Any, client_timeout) -> Tuple[int, Any]:
        async with session.request(method, url, json=payload, timeout=client_timeout) as resp:
            if resp.status >= 500:
                raise GatewayTransportError(f"{method} {url} 서버 오류 ({resp.status})")
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None
            return resp.status, body

    @staticmethod
    def _parse(model: type, body: Any, what: str) -> Any:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise GatewayProtocolError(f"{what} 응답 형식 오류: {e.error_count()}개 항목") from e

    @staticmethod
    def _detail(body: Any) -> str:
        if isinstance(body, dict) and "detail" in body:
            return str(body["detail"])
        return ""

    def _expect(self, status: int, body: Any, model: type, what: str) -> BaseModel:
        if status == 200:
            return self._parse(model, body, what)
        if 400 <= status < 500:
            raise GatewayRejectedError(status, self._detail(body))
        raise GatewayProtocolError(f"{what}: 예상하지 못한 상태 코드 {status}")

    async def resume(self, token: str) -> Optional[SessionDescriptor]:
        status, body = await self._request("GET", f"/api/assessment/resume/{quote(token, safe='')}")
        if status == 404:
            return None
        if status != 200:
            raise GatewayProtocolError(f"resume: 예상하지 못한 상태 코드 {status}")
        return self._parse(SessionDescriptor, body, "resume")

    async def start(self, version: AssessmentVersion) -> StartedSession:
        status, body = await self._request(
            "POST", "/api/assessment/start", {"version": AssessmentVersion(version).value}
        )
        return self._expect(status, body, StartedSession, "start")

    async def start_upgrade(self, quick_token: str) -> StartedSession:
        status, body = await self._request(
            "POST", "/api/assessment/upgrade", {"upgrade_from": quick_token}
        )
        return self._expect(status, body, StartedSession, "start_upgrade")

    async def submit_chunk(self, session_id: str, responses: List[ChunkSubmission]) -> ChunkResult:
        payload = {"responses": [r.model_dump() for r in responses]}
        status, body = await self._request(
            "POST", f"/api/assessment/{quote(session_id, safe='')}/chunk", payload
        )
        return self._expect(status, body, ChunkResult, "submit_chunk")
