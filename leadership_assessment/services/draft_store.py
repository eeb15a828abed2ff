"""
services/draft_store.py

작성 중 답안(드래프트)의 기기 로컬 저장소.

- 세션 식별의 근거로 쓰지 않는다. 리로드 시 현재 청크 입력을 잃지 않게 하는 용도뿐.
- last-write-wins. 호출측(진단 흐름)이 항상 청크 전체 답안을 쓴다.
- 만료 없음. clear()/clear_all() 호출로만 지워진다.
- best-effort: 저장소 오류는 로그만 남기고 삼킨다. 실패 시 "드래프트 없음"처럼 동작.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import ValidationError

from leadership_assessment.models.question_model import DraftAnswers

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# 키-값 저장소 (localStorage 대응)
# ══════════════════════════════════════════════════════════════════════════════

class KeyValueStorage(ABC):
    """문자열 키-값 저장소 인터페이스."""

    @abstractmethod
    def keys(self) -> List[str]:
        pass

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemoryStorage(KeyValueStorage):
    """프로세스 메모리 저장소 (테스트/임시 사용)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def keys(self) -> List[str]:
        return list(self._data)

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


_path_locks: Dict[str, threading.Lock] = {}   # 절대 경로 → 잠금
_path_locks_guard = threading.Lock()


def _lock_for(path: str) -> threading.Lock:
    """같은 파일을 여는 모든 인스턴스가 하나의 잠금을 공유한다."""
    key = os.path.abspath(path)
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.Lock()
        return _path_locks[key]


class JsonFileStorage(KeyValueStorage):
    """
    JSON 파일 하나에 키-값을 보관하는 기기 로컬 저장소.
    쓰기는 임시 파일 → os.replace 로 원자적으로 교체한다.
    읽기-수정-쓰기는 경로별 잠금으로 직렬화한다 (Streamlit 세션마다 인스턴스가 따로 생겨도 동일).
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = _lock_for(path)

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"저장소 파일 형식이 올바르지 않습니다: {self.path}")
        return {str(k): str(v) for k, v in data.items()}

    def _dump(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load())

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._dump(data)


# ══════════════════════════════════════════════════════════════════════════════
# 드래프트 저장소
# ══════════════════════════════════════════════════════════════════════════════

class DraftStore:
    """
    네임스페이스 접두사 아래에 드래프트 답안을 보관한다.

    Args:
        storage:   실제 키-값 저장소.
        namespace: 진단 전용 키 접두사. clear_all()은 이 접두사의 키만 지운다.
    """

    def __init__(self, storage: KeyValueStorage, namespace: str = "ops_assessment"):
        self.storage = storage
        self.namespace = namespace

    @property
    def draft_key(self) -> str:
        return f"{self.namespace}_draft"

    def get(self) -> Optional[DraftAnswers]:
        try:
            raw = self.storage.get_item(self.draft_key)
            if not raw:
                return None
            return DraftAnswers.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"드래프트 형식 오류 → 무시: {e.error_count()}개 항목")
            return None
        except Exception as e:
            logger.warning(f"드래프트 읽기 실패 → 없음으로 처리: {e}")
            return None

    def set(self, draft: DraftAnswers) -> None:
        try:
            self.storage.set_item(self.draft_key, draft.model_dump_json())
        except Exception as e:
            logger.warning(f"드래프트 저장 실패 (무시): {e}")

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.draft_key)
        except Exception as e:
            logger.warning(f"드래프트 삭제 실패 (무시): {e}")

    def clear_all(self) -> int:
        """
        네임스페이스 접두사 아래 모든 키를 지운다 (다른 버전/중단된 업그레이드 잔여물 포함).

        Returns:
            삭제한 키 수. 저장소 오류 시 그때까지 지운 수.
        """
        removed = 0
        try:
            for key in self.storage.keys():
                if key.startswith(self.namespace):
                    self.storage.remove_item(key)
                    removed += 1
        except Exception as e:
            logger.warning(f"드래프트 전체 삭제 중 오류 (무시): {e}")
        if removed:
            logger.info(f"드래프트 키 {removed}개 삭제 (namespace={self.namespace})")
        return removed
