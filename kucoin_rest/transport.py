"""HTTP 실행 모듈 - aiohttp 기반 요청 전송, 전송 실패 분류"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import aiohttp
from yarl import URL

from kucoin_rest.exceptions import NetworkError

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """전송 결과 (상태, 본문 텍스트, 요청 URL)"""
    status: int
    text: str
    url: str


class HttpExecutor(Protocol):
    async def send(self, method: str, url: str, headers: dict[str, str] | None = None,
                   body: str = "", timeout: float = 3.0) -> HttpResponse: ...


class AiohttpExecutor:
    """aiohttp 요청 실행기. 세션을 주입하지 않으면 호출마다 세션 생성."""

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self.session = session

    async def send(self, method: str, url: str, headers: dict[str, str] | None = None,
                   body: str = "", timeout: float = 3.0) -> HttpResponse:
        """요청 1회 전송. 전송 계층 실패는 NetworkError 로 변환."""
        try:
            if self.session is not None:
                return await self._request(self.session, method, url, headers, body, timeout)
            async with aiohttp.ClientSession() as session:
                return await self._request(session, method, url, headers, body, timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Request timed out after {timeout}s: {method} {url}", url) from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Transport failure: {method} {url}: {e}", url) from e

    @staticmethod
    async def _request(session: aiohttp.ClientSession, method: str, url: str,
                       headers: dict[str, str] | None, body: str,
                       timeout: float) -> HttpResponse:
        # 서명된 쿼리스트링이 재인코딩되지 않도록 encoded=True
        async with session.request(
            method,
            URL(url, encoded=True),
            headers=headers,
            data=body.encode("utf-8") if body else None,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            raw = await resp.read()
            logger.debug(f"[요청] {method} {url} → HTTP {resp.status}")
            return HttpResponse(
                status=resp.status,
                text=raw.decode("utf-8", errors="replace"),
                url=url,
            )
