"""캔들(kline) 조회 모듈 - 시간 구간 분할, 구간별 동시 조회, 병합/중복 제거/정렬"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import pandas as pd

from kucoin_rest.exceptions import HttpError, NetworkError
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.utils import time_convert_to_kucoin, to_utc_timestamp, verify_symbol

if TYPE_CHECKING:
    from kucoin_rest.client import KucoinClient

logger = logging.getLogger(__name__)

CANDLES_ENDPOINT = "/api/v1/market/candles"

FREQ_TO_SECONDS = {
    "1min": 60,
    "3min": 180,
    "5min": 300,
    "15min": 900,
    "30min": 1800,
    "1hour": 3600,
    "2hour": 7200,
    "4hour": 14400,
    "6hour": 21600,
    "8hour": 28800,
    "12hour": 43200,
    "1day": 86400,
    "1week": 604800,
    "1month": 2592000,
}

KLINE_COLUMNS = ["timestamp", "open", "close", "high", "low", "volume", "turnover"]


def frequency_to_seconds(freq: str) -> int:
    """캔들 주기 문자열 → 초"""
    if freq not in FREQ_TO_SECONDS:
        raise ValueError(
            f"Invalid frequency {freq!r}. Allowed values are: {', '.join(FREQ_TO_SECONDS)}"
        )
    return FREQ_TO_SECONDS[freq]


def split_time_range_by_candles(start: Any, end: Any, candle_duration_s: int,
                                max_candles: int = 1500,
                                overlap: int = 1) -> list[tuple[int, int]]:
    """[start, end] 를 요청당 max_candles 개 이하가 되도록 (from_s, to_s) 구간으로 분할.

    각 구간 끝은 overlap 초만큼 늘리되 전체 end 를 넘지 않는다.
    """
    if candle_duration_s not in FREQ_TO_SECONDS.values():
        raise ValueError(
            f"Invalid frequency in seconds {candle_duration_s}. "
            f"Allowed values are: {', '.join(map(str, FREQ_TO_SECONDS.values()))}"
        )
    from_s = time_convert_to_kucoin(start, "s")
    to_s = time_convert_to_kucoin(end, "s")
    if from_s >= to_s:
        raise ValueError('"start" must be earlier than "end".')

    segment_seconds = max_candles * candle_duration_s
    if to_s - from_s <= segment_seconds:
        return [(from_s, to_s)]
    return [
        (seg_start, min(seg_start + segment_seconds + overlap, to_s))
        for seg_start in range(from_s, to_s, segment_seconds)
    ]


def empty_klines() -> pd.DataFrame:
    columns = {"datetime": pd.Series(dtype="datetime64[ns, UTC]")}
    columns.update({c: pd.Series(dtype="float64") for c in KLINE_COLUMNS})
    return pd.DataFrame(columns)


def klines_to_frame(rows: list[list[Any]] | None) -> pd.DataFrame:
    """[[time, open, close, high, low, volume, turnover], ...] → 시간 오름차순 DataFrame"""
    if not rows:
        return empty_klines()
    df = pd.DataFrame([row[:len(KLINE_COLUMNS)] for row in rows], columns=KLINE_COLUMNS)
    for col in KLINE_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
    df.insert(0, "datetime", pd.to_datetime(df["timestamp"], unit="s", utc=True))
    return df.sort_values("timestamp").reset_index(drop=True)


def merge_kline_segments(frames: list[pd.DataFrame]) -> pd.DataFrame:
    """구간 결과 병합: timestamp 기준 중복 제거 후 오름차순 정렬 (완료 순서 무관)"""
    non_empty = [f for f in frames if f is not None and not f.empty]
    if not non_empty:
        return empty_klines()
    combined = pd.concat(non_empty, ignore_index=True)
    combined = combined.drop_duplicates(subset="timestamp", keep="first")
    return combined.sort_values("timestamp").reset_index(drop=True)


def _is_transient(error: Exception) -> bool:
    if isinstance(error, NetworkError):
        return True
    return isinstance(error, HttpError) and error.is_transient


async def fetch_klines_segment(client: KucoinClient, symbol: str, freq: str,
                               from_s: int, to_s: int, retries: int = 3,
                               delay_ms: int = 0) -> pd.DataFrame:
    """단일 구간 캔들 조회 (공개 엔드포인트, 일시적 실패만 재시도)"""
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)

    descriptor = RequestDescriptor.build("GET", CANDLES_ENDPOINT, {
        "symbol": symbol,
        "type": freq,
        "startAt": from_s,
        "endAt": to_s,
    })
    attempts = max(1, retries)
    for attempt in range(attempts):
        try:
            rows = await client.execute_public(
                descriptor, timeout=client.config.kline_timeout, retries=1,
            )
            return klines_to_frame(rows)
        except (NetworkError, HttpError) as e:
            if not _is_transient(e) or attempt >= attempts - 1:
                raise
            delay = client.config.retry_delay * (2 ** attempt)
            logger.warning(
                f"[캔들] {symbol} {from_s}~{to_s} 조회 실패 "
                f"(시도 {attempt+1}/{attempts}): {e}, {delay}초 후 재시도"
            )
            await asyncio.sleep(delay)


async def get_klines(client: KucoinClient, symbol: str = "BTC-USDT", freq: str = "15min",
                     start: Any = None, end: Any = None, concurrent: bool = True,
                     delay_ms: int = 0, retries: int = 3) -> pd.DataFrame:
    """기간 전체 캔들 조회. 구간 분할 후 동시(또는 순차) 조회하고 병합.

    start/end 기본값은 최근 24시간.
    """
    if not verify_symbol(symbol):
        raise ValueError(f"Invalid symbol {symbol!r}; expected format like 'BTC-USDT'")
    end_ts = to_utc_timestamp(end) if end is not None else pd.Timestamp.now(tz="UTC")
    start_ts = to_utc_timestamp(start) if start is not None else end_ts - pd.Timedelta(hours=24)
    if start_ts >= end_ts:
        raise ValueError('"start" must be earlier than "end".')

    candle_s = frequency_to_seconds(freq)
    segments = split_time_range_by_candles(
        start_ts, end_ts, candle_s, max_candles=client.config.kline_max_candles,
    )
    logger.info(f"[캔들] {symbol} {freq} {start_ts} ~ {end_ts}: {len(segments)}개 구간")

    if concurrent:
        semaphore = asyncio.Semaphore(client.config.kline_max_concurrency)

        async def bounded(seg: tuple[int, int]) -> pd.DataFrame:
            async with semaphore:
                return await fetch_klines_segment(
                    client, symbol, freq, seg[0], seg[1], retries, delay_ms,
                )

        tasks = [asyncio.create_task(bounded(seg)) for seg in segments]
        try:
            frames = await asyncio.gather(*tasks)
        except BaseException:
            # 한 구간이라도 실패하면 나머지 구간 요청/재시도 중단
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            if pending:
                logger.warning(f"[캔들] {symbol} 구간 조회 실패, 남은 {len(pending)}개 구간 취소")
            raise
    else:
        frames = []
        for seg in segments:
            frames.append(await fetch_klines_segment(
                client, symbol, freq, seg[0], seg[1], retries, delay_ms,
            ))

    result = merge_kline_segments(list(frames))
    logger.info(f"[캔들] {symbol} {freq} {len(result)}건 병합 완료")
    return result
