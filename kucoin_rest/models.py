"""데이터 모델 정의 - 요청 디스크립터, 서명 헤더, 응답 envelope, 페이지네이션 상태"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from kucoin_rest.utils import build_query

SUCCESS_CODE = "200000"


# ── 요청 관련 ──

@dataclass(frozen=True)
class RequestDescriptor:
    """엔드포인트 요청 기술자 - 서명 문자열을 완전히 결정"""
    method: str                  # GET / POST / DELETE
    path: str                    # 쿼리스트링 포함 경로
    body: str = ""               # 전송되는 JSON 문자열 그대로 (없으면 "")

    @classmethod
    def build(cls, method: str, endpoint: str, query: dict | None = None,
              body: dict | list | None = None) -> "RequestDescriptor":
        """쿼리 딕셔너리와 바디 객체로부터 디스크립터 생성"""
        path = endpoint + build_query(query or {})
        body_str = "" if body is None else json.dumps(body, separators=(",", ":"))
        return cls(method=method.upper(), path=path, body=body_str)


@dataclass(frozen=True)
class SignedHeaders:
    """서명된 인증 헤더"""
    api_key: str
    signature: str
    timestamp: str               # 밀리초 문자열
    passphrase: str
    key_version: str
    content_type: str = "application/json"

    def as_dict(self) -> dict[str, str]:
        return {
            "KC-API-KEY": self.api_key,
            "KC-API-SIGN": self.signature,
            "KC-API-TIMESTAMP": self.timestamp,
            "KC-API-PASSPHRASE": self.passphrase,
            "KC-API-KEY-VERSION": self.key_version,
            "Content-Type": self.content_type,
        }


# ── 응답 관련 ──

@dataclass
class ResponseEnvelope:
    """거래소 공통 응답 래퍼 {code, data, msg}"""
    code: str
    data: Any = None
    msg: str | None = None
    has_data: bool = True

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE


# ── 페이지네이션 관련 ──

@dataclass(frozen=True)
class PageFields:
    """엔드포인트별 페이지 필드 이름. cursor 가 있으면 커서 방식."""
    items: str = "items"
    current_page: str = "currentPage"
    total_page: str = "totalPage"
    page_size: str = "pageSize"
    total_num: str = "totalNum"
    cursor: str | None = None    # 예: "lastId"

    @property
    def cursor_style(self) -> bool:
        return self.cursor is not None


CURSOR_FIELDS = PageFields(cursor="lastId")


@dataclass
class PaginationState:
    """단일 페이지네이션 호출의 가변 상태"""
    query: dict[str, Any]
    accumulated_items: list[Any] = field(default_factory=list)
    pages_fetched: int = 0
    last_page_number: int | None = None
    seen_cursors: set = field(default_factory=set)


@dataclass
class PaginatedResult:
    """집계 결과 + 마지막 페이지 메타데이터"""
    data: Any
    pagination: dict[str, Any]
    pages_fetched: int
