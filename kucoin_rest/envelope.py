"""응답 envelope 검증 모듈 - HTTP 상태, JSON 파싱, code/data 확인"""

from __future__ import annotations

import json
import logging
from typing import Any

from kucoin_rest.exceptions import ApiError, HttpError, ParseError, ProtocolError
from kucoin_rest.models import ResponseEnvelope
from kucoin_rest.transport import HttpResponse

logger = logging.getLogger(__name__)

MAX_ERROR_CONTENT = 2000  # HttpError 에 담을 본문 최대 길이


def parse_envelope(response: HttpResponse, url: str | None = None) -> ResponseEnvelope:
    """HTTP 상태 확인 후 JSON 본문을 ResponseEnvelope 로 변환 (code 판정 전 단계)"""
    url = url or response.url
    if not 200 <= response.status < 300:
        content = (response.text or "")[:MAX_ERROR_CONTENT]
        logger.warning(f"[응답] HTTP {response.status} {url}")
        raise HttpError(response.status, content, url)

    try:
        parsed = json.loads(response.text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Failed to parse JSON response: {e}", url) from e

    if not isinstance(parsed, dict) or "code" not in parsed:
        raise ProtocolError("Invalid API response structure: missing 'code' field.", url)

    return ResponseEnvelope(
        code=str(parsed["code"]),
        data=parsed.get("data"),
        msg=parsed.get("msg"),
        has_data="data" in parsed,
    )


def validate_response(response: HttpResponse, url: str | None = None) -> Any:
    """모든 엔드포인트 공용 검증기. 성공 시 data 를 그대로 반환."""
    url = url or response.url
    envelope = parse_envelope(response, url)
    if not envelope.ok:
        logger.warning(f"[응답] API 오류 {envelope.code} {url}: {envelope.msg}")
        raise ApiError(envelope.code, envelope.msg, url)
    if not envelope.has_data:
        raise ProtocolError("Invalid API response structure: missing 'data' field.", url)
    return envelope.data
