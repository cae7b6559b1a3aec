"""KuCoin 클라이언트 예외 계층 - 설정, 전송, HTTP, 파싱, 프로토콜, API 오류"""

from __future__ import annotations

from typing import Any


class KucoinError(Exception):
    """모든 클라이언트 예외의 기반 클래스"""


class ConfigurationError(KucoinError):
    """자격증명/설정 누락 - 네트워크 호출 전에 즉시 실패"""


class NetworkError(KucoinError):
    """전송 계층 실패 (타임아웃, DNS, 연결 거부). 재시도 대상."""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message)


class HttpError(KucoinError):
    """2xx 가 아닌 HTTP 상태"""

    def __init__(self, status: int, content: str, url: str | None = None):
        self.status = status
        self.content = content
        self.url = url
        super().__init__(
            f"HTTP request failed with status code {status} for URL: {url}: {content}"
        )

    @property
    def is_transient(self) -> bool:
        """429 / 5xx 는 일시적 실패로 간주"""
        return self.status == 429 or self.status >= 500


class ParseError(KucoinError):
    """응답 본문이 JSON 이 아님"""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(f"{message} (URL: {url})")


class ProtocolError(KucoinError):
    """응답 envelope 구조가 예상과 다름 (code/data 누락 등)"""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(f"{message} (URL: {url})")


class ApiError(KucoinError):
    """전송은 성공했지만 거래소가 code != "200000" 을 반환"""

    def __init__(self, code: Any, msg: str | None = None, url: str | None = None):
        self.code = str(code)
        self.msg = msg or "No error message provided."
        self.url = url
        super().__init__(f"KuCoin API returned an error: {self.code} - {self.msg}")


class PaginationCancelled(KucoinError):
    """페이지 사이에서 협조적 취소가 요청됨"""

    def __init__(self, pages_fetched: int):
        self.pages_fetched = pages_fetched
        super().__init__(f"Pagination cancelled after {pages_fetched} page(s)")
