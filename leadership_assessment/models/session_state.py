"""
models/session_state.py

진단 세션의 식별/진행 상태 모델.
Pydantic BaseModel 기반 — 직렬화/역직렬화 및 타입 안전성 확보.
UI 코드 없음.

ResumeState는 status 필드로 구분되는 닫힌 합 타입이다.
Checking / Prompt / Resuming / Fresh 중 정확히 하나만 활성화되며,
"descriptor 없는 prompt" 같은 불가능한 조합은 표현 자체가 불가능하다.
"""

import time
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from leadership_assessment.models.question_model import AnswerValue, ChunkSubmission, ClientQuestion


class AssessmentVersion(str, Enum):
    """진단 버전. 세션 수명 동안 바뀌지 않는다."""

    QUICK = "quick"
    DEEP = "deep"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class EntryMode(str, Enum):
    """페이지 진입 모드."""

    FRESH = "fresh"
    RESUME_CHECK = "resume_check"
    RESUMING = "resuming"
    UPGRADING = "upgrading"


class SessionDescriptor(BaseModel):
    """
    서버가 확인한 진행 상태. resume 성공 시에만 만들어지며 클라이언트에서 조립하지 않는다.

    Attributes:
        session_id:    서버 세션 ID.
        token:         URL에 실리는 불투명 세션 토큰.
        version:       진단 버전.
        questions:     현재 청크의 문항 (순서 유지).
        current_chunk: 현재 청크 번호 (1-based).
        total_chunks:  전체 청크 수.
    """

    session_id: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    version: AssessmentVersion
    questions: List[ClientQuestion] = Field(default_factory=list)
    current_chunk: int = Field(..., ge=1)
    total_chunks: int = Field(..., ge=1)

    @model_validator(mode='after')
    def validate_chunk_range(self) -> 'SessionDescriptor':
        if self.current_chunk > self.total_chunks:
            raise ValueError(
                f"current_chunk({self.current_chunk})가 total_chunks({self.total_chunks})를 초과합니다."
            )
        return self


class ResumeData(BaseModel):
    """재개 프롬프트/재개 흐름에 넘기는 데이터 (descriptor + 일치하는 드래프트)."""

    descriptor: SessionDescriptor
    draft_answers: Optional[Dict[str, AnswerValue]] = None


class Checking(BaseModel):
    status: Literal["checking"] = "checking"


class Prompt(BaseModel):
    status: Literal["prompt"] = "prompt"
    data: ResumeData


class Resuming(BaseModel):
    status: Literal["resuming"] = "resuming"
    data: ResumeData


class Fresh(BaseModel):
    status: Literal["fresh"] = "fresh"


ResumeState = Annotated[Union[Checking, Prompt, Resuming, Fresh], Field(discriminator="status")]


class AssessmentSession(BaseModel):
    """
    서버측 세션 레코드 (세션 저장소에 보관).

    Attributes:
        current_chunk_question_ids: 현재 청크로 선정된 문항 ID. resume 시 이 목록으로 문항을 복원.
        responses:                  지금까지 제출된 모든 응답 (청크 순).
        upgrade_from_token:         업그레이드 세션이면 원본 quick 세션 토큰.
    """

    id: str
    token: str
    version: AssessmentVersion
    status: SessionStatus = SessionStatus.IN_PROGRESS
    current_chunk: int = Field(default=1, ge=1)
    total_chunks: int = Field(..., ge=1)
    current_chunk_question_ids: List[str] = Field(default_factory=list)
    responses: List[ChunkSubmission] = Field(default_factory=list)
    upgrade_from_token: Optional[str] = None
    started_at: float = Field(default_factory=time.time)
    completed_at: Optional[float] = None

    @property
    def answered_ids(self) -> List[str]:
        return [r.question_id for r in self.responses]
