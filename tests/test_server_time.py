"""서버 시간 테스트
서버 시각 조회, 오프셋/RTT 측정, 캐시 재사용, 실패 시 예외 전파
"""

import asyncio
import logging

import pytest

from kucoin_rest.exceptions import ApiError, HttpError, NetworkError, ProtocolError
from kucoin_rest.server_time import TIME_ENDPOINT, ServerTimeSource, fetch_server_time
from kucoin_rest.transport import HttpResponse

from conftest import SERVER_TIME_MS, FakeExecutor, ok


class FakeClock:
    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestFetchServerTime:

    def test_returns_server_ms(self, executor):
        result = asyncio.run(fetch_server_time("https://api.kucoin.com", executor))
        assert result == SERVER_TIME_MS
        call = executor.calls[0]
        assert call.method == "GET"
        assert call.url == f"https://api.kucoin.com{TIME_ENDPOINT}"
        assert call.timeout == 3.0
        assert "KC-API-KEY" not in call.headers

    def test_non_numeric_data(self):
        executor = FakeExecutor().add(TIME_ENDPOINT, ok("soon"))
        with pytest.raises(ProtocolError):
            asyncio.run(fetch_server_time(executor=executor))

    def test_api_error_propagates(self):
        executor = FakeExecutor().add(TIME_ENDPOINT, {"code": "500000", "msg": "down"})
        with pytest.raises(ApiError):
            asyncio.run(fetch_server_time(executor=executor))

    def test_network_failure_not_replaced_by_local_clock(self):
        executor = FakeExecutor().add(TIME_ENDPOINT, NetworkError("boom"))
        with pytest.raises(NetworkError):
            asyncio.run(fetch_server_time(executor=executor))

    def test_http_failure(self):
        executor = FakeExecutor().add(TIME_ENDPOINT, HttpResponse(502, "bad gateway", ""))
        with pytest.raises(HttpError) as exc:
            asyncio.run(fetch_server_time(executor=executor))
        assert exc.value.status == 502


class TestServerTimeSource:

    def test_measure_sets_offset_and_rtt(self, executor):
        clock = FakeClock(1_699_999_999.0)
        source = ServerTimeSource(executor=executor, clock=clock)
        server_ms = asyncio.run(source.measure())
        assert server_ms == SERVER_TIME_MS
        assert source.offset_ms == pytest.approx(1000.0)
        assert source.rtt == 0

    def test_zero_max_age_fetches_every_time(self, executor):
        source = ServerTimeSource(executor=executor, max_age=0)

        async def run():
            return [await source.now() for _ in range(3)]

        assert asyncio.run(run()) == [SERVER_TIME_MS] * 3
        assert len(executor.calls) == 3

    def test_fresh_offset_is_reused(self, executor):
        clock = FakeClock(1_700_000_000.0)
        source = ServerTimeSource(executor=executor, max_age=30, clock=clock)

        async def run():
            first = await source.now()
            clock.now += 5
            second = await source.now()
            return first, second

        first, second = asyncio.run(run())
        assert first == SERVER_TIME_MS
        assert second == SERVER_TIME_MS + 5000
        assert len(executor.calls) == 1

    def test_stale_offset_remeasures(self, executor):
        clock = FakeClock(1_700_000_000.0)
        source = ServerTimeSource(executor=executor, max_age=30, clock=clock)

        async def run():
            await source.now()
            clock.now += 31
            await source.now()

        asyncio.run(run())
        assert len(executor.calls) == 2

    def test_invalidate(self, executor):
        source = ServerTimeSource(executor=executor, max_age=30)
        asyncio.run(source.measure())
        assert source.is_fresh()
        source.invalidate()
        assert not source.is_fresh()
        assert source.offset_ms is None

    def test_skew_warning(self, executor, caplog):
        clock = FakeClock(1_600_000_000.0)
        source = ServerTimeSource(executor=executor, clock=clock, skew_warning_ms=5000)
        with caplog.at_level(logging.WARNING):
            asyncio.run(source.measure())
        assert "[서버시간]" in caplog.text
