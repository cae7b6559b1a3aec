"""캔들 조회 테스트
구간 분할, 세그먼트 병합/중복 제거, 재시도, 동시 조회
"""

import asyncio
import random
from dataclasses import dataclass

import pandas as pd
import pytest
from hypothesis import given, strategies as st, settings

from kucoin_rest.client import KucoinClient
from kucoin_rest.exceptions import ApiError, HttpError
from kucoin_rest.klines import (
    CANDLES_ENDPOINT,
    FREQ_TO_SECONDS,
    fetch_klines_segment,
    frequency_to_seconds,
    get_klines,
    klines_to_frame,
    merge_kline_segments,
    split_time_range_by_candles,
)
from kucoin_rest.transport import HttpResponse

from conftest import FakeExecutor, ok

START = pd.Timestamp("2024-01-01", tz="UTC")
START_S = 1704067200


def candle_rows(start_s: int, count: int, step: int = 60) -> list[list[str]]:
    """KuCoin 형식 캔들 (최신 → 과거 순)"""
    rows = []
    for i in range(count):
        t = start_s + i * step
        rows.append([str(t), "1.0", str(1.0 + i), "2.0", "0.5", "10", "10.5"])
    return list(reversed(rows))


def candles_server(step: int = 60):
    """startAt/endAt 범위의 캔들을 돌려주는 응답 함수"""
    def respond(call):
        query = dict(part.split("=") for part in call.path.split("?", 1)[1].split("&"))
        start, end = int(query["startAt"]), int(query["endAt"])
        count = (end - start) // step
        return ok(candle_rows(start, count, step))
    return respond


# ── 구간 분할 ──

class TestSplitTimeRange:

    def test_single_segment(self):
        segments = split_time_range_by_candles(START, START + pd.Timedelta(hours=1), 60)
        assert segments == [(START_S, START_S + 3600)]

    def test_multiple_segments_with_overlap(self):
        end = START + pd.Timedelta(seconds=60 * 3000)
        segments = split_time_range_by_candles(START, end, 60, max_candles=1500)
        assert segments == [
            (START_S, START_S + 90001),
            (START_S + 90000, START_S + 180000),
        ]

    def test_last_segment_truncated(self):
        end = START + pd.Timedelta(seconds=60 * 3100)
        segments = split_time_range_by_candles(START, end, 60, max_candles=1500)
        assert len(segments) == 3
        assert segments[0] == (START_S, START_S + 90001)
        assert segments[-1] == (START_S + 180000, START_S + 186000)

    def test_invalid_duration(self):
        with pytest.raises(ValueError):
            split_time_range_by_candles(START, START + pd.Timedelta(hours=1), 61)

    def test_start_not_before_end(self):
        with pytest.raises(ValueError):
            split_time_range_by_candles(START, START, 60)

    @given(minutes=st.integers(min_value=1, max_value=20000),
           freq=st.sampled_from(list(FREQ_TO_SECONDS)),
           max_candles=st.integers(min_value=1, max_value=1500))
    @settings(max_examples=100)
    def test_segments_cover_range(self, minutes, freq, max_candles):
        candle_s = FREQ_TO_SECONDS[freq]
        end = START + pd.Timedelta(minutes=minutes)
        segments = split_time_range_by_candles(START, end, candle_s, max_candles=max_candles)
        end_s = START_S + minutes * 60
        assert segments[0][0] == START_S
        assert segments[-1][1] == end_s
        for (s1, e1), (s2, _) in zip(segments, segments[1:]):
            assert s2 <= e1
        for s, e in segments:
            assert s < e <= end_s
            assert e - s <= max_candles * candle_s + 1


class TestFrequency:

    def test_known(self):
        assert frequency_to_seconds("1hour") == 3600
        assert frequency_to_seconds("1month") == 2592000

    def test_unknown(self):
        with pytest.raises(ValueError, match="Invalid frequency"):
            frequency_to_seconds("2min")


# ── 변환 / 병합 ──

class TestKlineFrames:

    def test_columns_and_sorting(self):
        df = klines_to_frame(candle_rows(START_S, 3))
        assert list(df.columns) == ["datetime", "timestamp", "open", "close", "high", "low", "volume", "turnover"]
        assert df["timestamp"].tolist() == [START_S, START_S + 60, START_S + 120]
        assert df["datetime"].iloc[0] == START
        assert df["close"].dtype == "float64"

    def test_empty(self):
        df = klines_to_frame([])
        assert df.empty
        assert "datetime" in df.columns

    def test_merge_drops_duplicates_and_sorts(self):
        a = klines_to_frame(candle_rows(START_S, 3))
        b = klines_to_frame(candle_rows(START_S + 120, 3))
        merged = merge_kline_segments([b, a])
        assert merged["timestamp"].tolist() == [START_S + i * 60 for i in range(5)]
        assert merged.index.tolist() == list(range(5))

    @given(seed=st.integers(min_value=0, max_value=10_000))
    @settings(max_examples=30)
    def test_merge_independent_of_completion_order(self, seed):
        segments = [klines_to_frame(candle_rows(START_S + i * 240, 5)) for i in range(4)]
        shuffled = list(segments)
        random.Random(seed).shuffle(shuffled)
        pd.testing.assert_frame_equal(merge_kline_segments(segments), merge_kline_segments(shuffled))

    def test_merge_all_empty(self):
        assert merge_kline_segments([klines_to_frame([]), klines_to_frame(None)]).empty


# ── 조회 ──

class TestFetchSegment:

    def test_public_request_query(self, client, executor):
        executor.add(CANDLES_ENDPOINT, ok(candle_rows(START_S, 2)))
        df = asyncio.run(fetch_klines_segment(client, "BTC-USDT", "1min", START_S, START_S + 120))
        assert len(df) == 2
        call = executor.calls[0]
        assert call.path == f"{CANDLES_ENDPOINT}?symbol=BTC-USDT&type=1min&startAt={START_S}&endAt={START_S + 120}"
        assert call.timeout == 10.0
        assert "KC-API-SIGN" not in call.headers

    def test_transient_http_error_retried(self, client, executor):
        executor.add(CANDLES_ENDPOINT, HttpResponse(429, "slow down", ""), ok(candle_rows(START_S, 1)))
        df = asyncio.run(fetch_klines_segment(client, "BTC-USDT", "1min", START_S, START_S + 60))
        assert len(df) == 1
        assert len(executor.calls_to(CANDLES_ENDPOINT)) == 2

    def test_client_http_error_not_retried(self, client, executor):
        executor.add(CANDLES_ENDPOINT, HttpResponse(400, "bad", ""))
        with pytest.raises(HttpError):
            asyncio.run(fetch_klines_segment(client, "BTC-USDT", "1min", START_S, START_S + 60))
        assert len(executor.calls_to(CANDLES_ENDPOINT)) == 1

    def test_api_error_not_retried(self, client, executor):
        executor.add(CANDLES_ENDPOINT, {"code": "400100", "msg": "bad symbol"})
        with pytest.raises(ApiError):
            asyncio.run(fetch_klines_segment(client, "BTC-USDT", "1min", START_S, START_S + 60))
        assert len(executor.calls_to(CANDLES_ENDPOINT)) == 1


class TestGetKlines:

    @pytest.mark.parametrize("concurrent", [True, False])
    def test_multi_segment_merge(self, client, executor, concurrent):
        client.config.kline_max_candles = 10
        executor.add(CANDLES_ENDPOINT, candles_server(60))
        end = START + pd.Timedelta(minutes=35)
        df = asyncio.run(get_klines(client, "BTC-USDT", "1min", START, end, concurrent=concurrent))
        assert len(executor.calls_to(CANDLES_ENDPOINT)) == 4
        assert df["timestamp"].tolist() == [START_S + i * 60 for i in range(35)]
        assert df["timestamp"].is_unique

    def test_invalid_symbol(self, client):
        with pytest.raises(ValueError):
            asyncio.run(get_klines(client, "btcusdt", "1min", START, START + pd.Timedelta(hours=1)))

    def test_invalid_frequency(self, client):
        with pytest.raises(ValueError):
            asyncio.run(get_klines(client, "BTC-USDT", "7min", START, START + pd.Timedelta(hours=1)))

    def test_start_after_end(self, client):
        with pytest.raises(ValueError):
            asyncio.run(get_klines(client, "BTC-USDT", "1min", START, START - pd.Timedelta(hours=1)))


@dataclass
class SlowSegmentExecutor(FakeExecutor):
    """첫 구간을 제외한 캔들 요청은 50ms 지연 후 응답, 완료 수를 기록"""
    first_start: int = START_S
    started: int = 0
    completed_after_delay: int = 0

    async def send(self, method, url, headers=None, body="", timeout=3.0):
        if f"startAt={self.first_start}&" not in url:
            self.started += 1
            await asyncio.sleep(0.05)
            response = await super().send(method, url, headers, body, timeout)
            self.completed_after_delay += 1
            return response
        return await super().send(method, url, headers, body, timeout)


class TestSegmentFailure:

    def test_failure_cancels_remaining_segments(self, config):
        config.kline_max_candles = 10
        executor = SlowSegmentExecutor()

        def respond(call):
            if f"startAt={START_S}&" in call.path:
                return {"code": "400100", "msg": "bad request"}
            return candles_server(60)(call)

        executor.add(CANDLES_ENDPOINT, respond)
        client = KucoinClient(config, executor=executor)

        async def scenario():
            with pytest.raises(ApiError):
                await get_klines(client, "BTC-USDT", "1min", START, START + pd.Timedelta(minutes=35))
            # 취소되지 않은 구간이 있다면 이 사이에 완료됨
            await asyncio.sleep(0.2)

        asyncio.run(scenario())
        assert executor.started == 3
        assert executor.completed_after_delay == 0
        assert len(executor.calls_to(CANDLES_ENDPOINT)) == 1
