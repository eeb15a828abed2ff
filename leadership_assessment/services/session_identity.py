"""
services/session_identity.py

URL 쿼리 파라미터 → 세션 식별 정보 (순수 함수, I/O 없음).

  ?version=      quick | deep  (그 외 값은 조용히 quick)
  ?token=        재개할 세션 토큰
  ?upgrade_from= deep으로 확장할 quick 세션 토큰 (token보다 우선)
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from leadership_assessment.models.session_state import AssessmentVersion, EntryMode

VERSION_PARAM = "version"
TOKEN_PARAM = "token"
UPGRADE_FROM_PARAM = "upgrade_from"


@dataclass(frozen=True)
class SessionIdentity:
    version: AssessmentVersion
    token: Optional[str] = None
    upgrade_from_token: Optional[str] = None

    @property
    def entry_mode(self) -> EntryMode:
        """
        URL만으로 결정되는 진입 모드.
        RESUMING은 사용자가 Continue를 누른 뒤 컨트롤러가 보고하는 모드라 여기서는 나오지 않는다.
        """
        if self.upgrade_from_token:
            return EntryMode.UPGRADING
        if self.token:
            return EntryMode.RESUME_CHECK
        return EntryMode.FRESH

    @property
    def flow_upgrade_token(self) -> Optional[str]:
        """진단 흐름에 넘길 업그레이드 토큰. deep 버전에서만 유효."""
        if self.version is AssessmentVersion.DEEP:
            return self.upgrade_from_token
        return None


def _first(value: Any) -> Optional[str]:
    """쿼리 값이 리스트(parse_qs 결과)이면 첫 값을 사용. 빈 문자열은 None."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    return str(value) or None


def resolve_version(raw: Any) -> AssessmentVersion:
    return AssessmentVersion.DEEP if _first(raw) == "deep" else AssessmentVersion.QUICK


def resolve_identity(query: Mapping[str, Any]) -> SessionIdentity:
    """
    쿼리 파라미터에서 버전/토큰/업그레이드 토큰을 추출한다.

    upgrade_from이 있으면 token은 버린다. 업그레이드는 더 큰 버전으로의
    확장이라 기존 세션으로 재개하지 않고 항상 새로 시작한다.

    Args:
        query: {파라미터명: 값 또는 값 리스트}

    Returns:
        SessionIdentity. 잘못된 입력에도 예외를 던지지 않는다.
    """
    version = resolve_version(query.get(VERSION_PARAM))
    upgrade_from = _first(query.get(UPGRADE_FROM_PARAM))
    if upgrade_from:
        return SessionIdentity(version=version, upgrade_from_token=upgrade_from)
    return SessionIdentity(version=version, token=_first(query.get(TOKEN_PARAM)))
