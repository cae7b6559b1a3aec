"""KuCoin REST 클라이언트 코어 - 서명, 재시도, 응답 검증, 페이지네이션 조합"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from kucoin_rest.config import Config
from kucoin_rest.credentials import Credential
from kucoin_rest.envelope import validate_response
from kucoin_rest.exceptions import ConfigurationError, NetworkError
from kucoin_rest.models import PageFields, PaginatedResult, RequestDescriptor, SignedHeaders
from kucoin_rest.paginator import flatten_items, paginate
from kucoin_rest.server_time import ServerTimeSource
from kucoin_rest.signer import sign_request
from kucoin_rest.transport import AiohttpExecutor, HttpExecutor

logger = logging.getLogger(__name__)

PUBLIC_HEADERS = {"Content-Type": "application/json"}

DescriptorBuilder = Callable[[dict[str, Any]], RequestDescriptor]


class KucoinClient:
    """엔드포인트 래퍼가 공유하는 실행 코어.

    Credential 과 Config 는 생성 후 변경되지 않으므로 동시 호출 간 잠금이 필요 없다.
    재시도 횟수/지연은 호출 단위 값이다.
    """

    def __init__(self, config: Config | None = None,
                 credential: Credential | None = None,
                 executor: HttpExecutor | None = None,
                 server_time: ServerTimeSource | None = None):
        self.config = config or Config()
        self.credential = credential
        self.executor = executor or AiohttpExecutor()
        self.server_time = server_time or ServerTimeSource(
            base_url=self.config.base_url,
            executor=self.executor,
            timeout=self.config.server_time_timeout,
            max_age=self.config.server_time_max_age,
            skew_warning_ms=self.config.skew_warning_ms,
        )

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def url_for(self, descriptor: RequestDescriptor) -> str:
        return f"{self.base_url}{descriptor.path}"

    def require_credential(self) -> Credential:
        """서명 요청 전 자격증명 확인"""
        if self.credential is None:
            raise ConfigurationError("Signed endpoint called without API credentials")
        self.credential.validate()
        return self.credential

    async def build_headers(self, descriptor: RequestDescriptor) -> SignedHeaders:
        """서버 시각을 얻어 인증 헤더 생성"""
        credential = self.require_credential()
        try:
            timestamp = await self.server_time.now()
            return sign_request(descriptor, credential, timestamp)
        except Exception as e:
            e.add_note(f"Failed to build request headers for {descriptor.method} {descriptor.path}")
            raise

    async def _execute(self, descriptor: RequestDescriptor, signed: bool,
                       timeout: float | None = None, retries: int | None = None) -> Any:
        """전송 실패(NetworkError)만 지수 백오프로 재시도. 재시도마다 새로 서명."""
        if signed:
            self.require_credential()
        timeout = self.config.request_timeout if timeout is None else timeout
        attempts = max(1, self.config.retries if retries is None else retries)
        url = self.url_for(descriptor)

        for attempt in range(attempts):
            try:
                if signed:
                    headers = (await self.build_headers(descriptor)).as_dict()
                else:
                    headers = dict(PUBLIC_HEADERS)
                response = await self.executor.send(
                    descriptor.method, url, headers=headers,
                    body=descriptor.body, timeout=timeout,
                )
                return validate_response(response, url)
            except NetworkError as e:
                if attempt >= attempts - 1:
                    raise
                delay = self.config.retry_delay * (2 ** attempt)
                logger.warning(
                    f"[요청] {descriptor.method} {descriptor.path} 전송 실패 "
                    f"(시도 {attempt+1}/{attempts}): {e}, {delay}초 후 재시도"
                )
                await asyncio.sleep(delay)

    async def execute_public(self, descriptor: RequestDescriptor,
                             timeout: float | None = None,
                             retries: int | None = None) -> Any:
        """인증 없는 요청 실행 → 검증된 data"""
        return await self._execute(descriptor, signed=False, timeout=timeout, retries=retries)

    async def execute_signed(self, descriptor: RequestDescriptor,
                             timeout: float | None = None,
                             retries: int | None = None) -> Any:
        """서명 요청 실행 → 검증된 data"""
        return await self._execute(descriptor, signed=True, timeout=timeout, retries=retries)

    async def paginate(self, build_descriptor: DescriptorBuilder,
                       initial_query: dict[str, Any],
                       signed: bool = True,
                       fields: PageFields = PageFields(),
                       aggregate: Callable[[list[Any]], Any] = flatten_items,
                       max_pages: int | None = None,
                       cancel_event: asyncio.Event | None = None,
                       timeout: float | None = None) -> PaginatedResult:
        """build_descriptor(query) 로 페이지 요청을 만들고 자동 페이지네이션. timeout 은 페이지 요청마다 적용."""
        if signed:
            self.require_credential()

        async def fetch_page(query: dict[str, Any]) -> Any:
            return await self._execute(build_descriptor(query), signed=signed, timeout=timeout)

        result = await paginate(
            fetch_page,
            initial_query=initial_query,
            fields=fields,
            aggregate=aggregate,
            max_pages=max_pages,
            page_ceiling=self.config.page_ceiling,
            cancel_event=cancel_event,
        )
        logger.info(
            f"[페이지] {build_descriptor(initial_query).path.split('?')[0]} "
            f"{result.pages_fetched}페이지 집계 완료 {result.pagination}"
        )
        return result

    async def execute_signed_paginated(self, build_descriptor: DescriptorBuilder,
                                       initial_query: dict[str, Any],
                                       fields: PageFields = PageFields(),
                                       max_pages: int | None = None,
                                       aggregate: Callable[[list[Any]], Any] = flatten_items,
                                       cancel_event: asyncio.Event | None = None,
                                       timeout: float | None = None) -> Any:
        """서명 페이지네이션 실행 → 집계 결과"""
        result = await self.paginate(build_descriptor, initial_query, signed=True,
                                     fields=fields, aggregate=aggregate,
                                     max_pages=max_pages, cancel_event=cancel_event,
                                     timeout=timeout)
        return result.data

    async def execute_public_paginated(self, build_descriptor: DescriptorBuilder,
                                       initial_query: dict[str, Any],
                                       fields: PageFields = PageFields(),
                                       max_pages: int | None = None,
                                       aggregate: Callable[[list[Any]], Any] = flatten_items,
                                       cancel_event: asyncio.Event | None = None,
                                       timeout: float | None = None) -> Any:
        """인증 없는 페이지네이션 실행 → 집계 결과"""
        result = await self.paginate(build_descriptor, initial_query, signed=False,
                                     fields=fields, aggregate=aggregate,
                                     max_pages=max_pages, cancel_event=cancel_event,
                                     timeout=timeout)
        return result.data
