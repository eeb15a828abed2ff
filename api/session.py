"""
api/session.py — 인메모리 진단 세션 저장소 (토큰 기반)

세션 레코드는 토큰으로 찾고, 청크 제출은 세션 ID로 찾는다.
마지막 접근 후 TTL이 지나면 만료된다.
"""

import threading
import time
from typing import Optional

from config import SESSION_TTL
from leadership_assessment.models.session_state import AssessmentSession

_lock = threading.Lock()
_sessions: dict[str, AssessmentSession] = {}   # token → record
_ids: dict[str, str] = {}                      # session id → token
_timestamps: dict[str, float] = {}             # token → last access


def _expired(token: str, now: float) -> bool:
    return now - _timestamps[token] > SESSION_TTL


def _drop(token: str) -> None:
    record = _sessions.pop(token)
    _ids.pop(record.id, None)
    del _timestamps[token]


def save(record: AssessmentSession) -> None:
    """세션 레코드를 저장(또는 갱신)."""
    with _lock:
        _sessions[record.token] = record
        _ids[record.id] = record.token
        _timestamps[record.token] = time.time()


def get_by_token(token: str) -> Optional[AssessmentSession]:
    """토큰으로 세션을 가져옴. 만료되었거나 없으면 None."""
    with _lock:
        if token not in _sessions:
            return None
        if _expired(token, time.time()):
            _drop(token)
            return None
        _timestamps[token] = time.time()  # 접근 시 갱신
        return _sessions[token]


def get_by_id(session_id: str) -> Optional[AssessmentSession]:
    """세션 ID로 세션을 가져옴."""
    with _lock:
        token = _ids.get(session_id)
    if token is None:
        return None
    return get_by_token(token)


def reset() -> None:
    """모든 세션 삭제 (테스트용)."""
    with _lock:
        _sessions.clear()
        _ids.clear()
        _timestamps.clear()


def cleanup_expired() -> int:
    """만료된 세션을 정리. 제거된 수 반환."""
    now = time.time()
    with _lock:
        expired = [token for token in _timestamps if _expired(token, now)]
        for token in expired:
            _drop(token)
    return len(expired)
