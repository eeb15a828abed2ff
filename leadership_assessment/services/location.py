"""
services/location.py

주소창(URL) 추상화.
토큰 제거는 페이지 리로드나 라우팅 이벤트 없이 주소창만 제자리에서 바꾼다 (history.replaceState 대응).
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class Location(ABC):
    """현재 페이지 URL의 쿼리 파라미터에 대한 읽기/제자리 수정 인터페이스."""

    @abstractmethod
    def query_params(self) -> Dict[str, str]:
        """현재 쿼리 파라미터 (파라미터당 첫 값)."""

    @abstractmethod
    def remove_param(self, name: str) -> None:
        """파라미터 하나를 제자리에서 제거 (리로드/내비게이션 없음)."""

    @abstractmethod
    def set_param(self, name: str, value: str) -> None:
        """파라미터 하나를 제자리에서 설정 (리로드/내비게이션 없음)."""

    def strip_token(self) -> None:
        self.remove_param("token")


class MemoryLocation(Location):
    """
    URL 문자열을 보관하는 Location.
    replace 이력을 남겨 테스트에서 '내비게이션 없이 교체됐는지' 확인할 수 있다.
    """

    def __init__(self, url: str = "/"):
        self._url = url
        self.replaced: List[str] = []

    @property
    def url(self) -> str:
        return self._url

    def query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for key, value in parse_qsl(urlsplit(self._url).query, keep_blank_values=True):
            params.setdefault(key, value)
        return params

    def _rewrite(self, name: str, value: Optional[str]) -> None:
        parts = urlsplit(self._url)
        pairs = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
        if value is not None:
            pairs.append((name, value))
        new_url = urlunsplit(parts._replace(query=urlencode(pairs)))
        if new_url != self._url:
            self._url = new_url
            self.replaced.append(new_url)

    def remove_param(self, name: str) -> None:
        self._rewrite(name, None)

    def set_param(self, name: str, value: str) -> None:
        self._rewrite(name, value)
