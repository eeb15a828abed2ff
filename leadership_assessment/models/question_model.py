from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

QuestionType = Literal["likert", "situational", "forced_choice"]
Dimension = Literal["drive", "resilience", "vision", "connection", "adaptability", "integrity"]

AnswerValue = Union[int, str]


class QuestionOption(BaseModel):
    """보기 하나. 점수 가중치는 서버 밖으로 나가지 않는다."""
    key: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class ClientQuestion(BaseModel):
    """
    클라이언트(UI)가 받는 문항 모델.
    likert 문항은 options 없이 1~5 척도로 응답한다.
    """
    id: str = Field(
        ...,
        min_length=1,
        description="문항 ID (문항 풀 내 고유 식별자)"
    )
    type: QuestionType = Field(
        ...,
        description="문항 유형 (likert | situational | forced_choice)"
    )
    text: str = Field(
        ...,
        min_length=1,
        description="문항 본문"
    )
    options: Optional[List[QuestionOption]] = Field(
        None,
        description="보기 리스트 (likert 문항은 None)"
    )

    @model_validator(mode='after')
    def validate_options_for_type(self) -> 'ClientQuestion':
        """
        선택형 문항(situational, forced_choice)은 보기가 2개 이상이어야 한다.
        """
        if self.type != "likert" and (not self.options or len(self.options) < 2):
            raise ValueError(f"'{self.type}' 문항({self.id})은 최소 2개의 보기가 필요합니다.")
        return self

    def accepts(self, value: AnswerValue) -> bool:
        """value가 이 문항의 유효한 응답인지 판정."""
        if self.type == "likert":
            return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5
        return isinstance(value, str) and any(o.key == value for o in self.options or [])


class PoolQuestion(ClientQuestion):
    """문항 풀에 저장되는 서버측 문항. 측정 차원과 제공 버전 정보를 가진다."""
    dimension: Dimension
    version_availability: List[Literal["quick", "deep"]] = Field(
        default_factory=lambda: ["quick", "deep"]
    )

    def to_client(self) -> ClientQuestion:
        return ClientQuestion(id=self.id, type=self.type, text=self.text, options=self.options)


class ChunkSubmission(BaseModel):
    """청크 제출 시 문항 하나에 대한 응답."""
    question_id: str = Field(..., min_length=1)
    answer_value: AnswerValue
    response_time_ms: int = Field(default=0, ge=0)


class StartedSession(BaseModel):
    """세션 시작(일반/업그레이드) 응답."""
    session_id: str
    token: str
    questions: List[ClientQuestion]
    total_chunks: int = Field(..., ge=1)


class ChunkResult(BaseModel):
    """
    청크 제출 결과.
    complete=False 이면 questions에 다음 청크 문항이 담긴다.
    """
    complete: bool
    questions: Optional[List[ClientQuestion]] = None
    current_chunk: int = Field(..., ge=1)
    total_chunks: int = Field(..., ge=1)

    @model_validator(mode='after')
    def validate_next_questions(self) -> 'ChunkResult':
        if not self.complete and not self.questions:
            raise ValueError("완료되지 않은 청크 결과에는 다음 문항이 필요합니다.")
        return self


class DraftAnswers(BaseModel):
    """
    현재 청크의 작성 중 답안 (기기 로컬 저장용).

    Attributes:
        answers: {question_id: 응답값}. 청크 전체 답안 집합 (부분 패치 아님).
        chunk:   답안이 속한 청크 번호 (1-based).
        token:   답안이 속한 세션 토큰 (세션 시작 전이면 None).
    """
    answers: Dict[str, AnswerValue] = Field(default_factory=dict)
    chunk: int = Field(default=1, ge=1)
    token: Optional[str] = None

    @field_validator('answers')
    @classmethod
    def validate_keys(cls, v: Dict[str, AnswerValue]) -> Dict[str, AnswerValue]:
        if any(not k for k in v):
            raise ValueError("답안 키(question_id)는 비어 있을 수 없습니다.")
        return v
