"""서버 시간 모듈 - KuCoin 서버 시각 조회, 로컬 시계 오프셋 및 RTT 측정"""

from __future__ import annotations

import logging
import time
from typing import Callable

from kucoin_rest.config import DEFAULT_BASE_URL
from kucoin_rest.envelope import validate_response
from kucoin_rest.exceptions import ProtocolError
from kucoin_rest.transport import AiohttpExecutor, HttpExecutor

logger = logging.getLogger(__name__)

TIME_ENDPOINT = "/api/v1/timestamp"
SERVER_TIME_TIMEOUT = 3.0  # 초


async def fetch_server_time(base_url: str = DEFAULT_BASE_URL,
                            executor: HttpExecutor | None = None,
                            timeout: float = SERVER_TIME_TIMEOUT) -> int:
    """인증 없는 GET /api/v1/timestamp → 서버 시각 (ms).

    실패 시 로컬 시계로 대체하지 않고 분류된 예외를 그대로 올린다.
    """
    executor = executor or AiohttpExecutor()
    url = f"{base_url}{TIME_ENDPOINT}"
    response = await executor.send("GET", url, timeout=timeout)
    data = validate_response(response, url)
    if isinstance(data, bool) or not isinstance(data, (int, float)):
        raise ProtocolError(f"Server time is not numeric: {data!r}", url)
    return int(data)


class ServerTimeSource:
    """서명용 서버 시각 공급자.

    max_age 가 0 이면 매 호출마다 서버 시각을 조회한다. 양수이면 마지막 측정의
    오프셋(서버 - 로컬 중간값)을 max_age 초 동안 재사용해 로컬 시계로 근사한다.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL,
                 executor: HttpExecutor | None = None,
                 timeout: float = SERVER_TIME_TIMEOUT,
                 max_age: float = 0.0,
                 skew_warning_ms: int = 5000,
                 clock: Callable[[], float] = time.time):
        self.base_url = base_url
        self.executor = executor or AiohttpExecutor()
        self.timeout = timeout
        self.max_age = max_age
        self.skew_warning_ms = skew_warning_ms
        self.clock = clock
        self.offset_ms: float | None = None
        self.rtt: float | None = None
        self._measured_at: float | None = None

    async def measure(self) -> int:
        """서버 시각 조회 및 오프셋/RTT 갱신. 서버 시각(ms) 반환."""
        t1 = self.clock()
        server_ms = await fetch_server_time(self.base_url, self.executor, self.timeout)
        t2 = self.clock()

        local_mid_ms = (t1 + t2) / 2.0 * 1000.0
        self.offset_ms = server_ms - local_mid_ms
        self.rtt = t2 - t1
        self._measured_at = t2

        if abs(self.offset_ms) > self.skew_warning_ms:
            logger.warning(
                f"[서버시간] 로컬 시계 오프셋 경고: {self.offset_ms:.0f}ms "
                f"(허용 {self.skew_warning_ms}ms)"
            )
        logger.debug(f"[서버시간] {server_ms} offset={self.offset_ms:.1f}ms rtt={self.rtt*1000:.1f}ms")
        return server_ms

    def is_fresh(self) -> bool:
        """캐시된 오프셋이 max_age 이내인지"""
        if self.max_age <= 0 or self._measured_at is None or self.offset_ms is None:
            return False
        return (self.clock() - self._measured_at) < self.max_age

    async def now(self) -> int:
        """서명에 사용할 서버 시각 (ms)"""
        if self.is_fresh():
            return int(self.clock() * 1000.0 + self.offset_ms)
        return await self.measure()

    def invalidate(self) -> None:
        """캐시된 오프셋 폐기"""
        self.offset_ms = None
        self.rtt = None
        self._measured_at = None
