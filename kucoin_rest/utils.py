"""공용 유틸리티 - 쿼리스트링 생성, 심볼 검증, KuCoin 시간 변환"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any
from urllib.parse import quote

import pandas as pd

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]+-[A-Z0-9]+$")
# URL 경로 세그먼트로 들어가는 식별자 (주문 ID, clientOid, 계정 ID 등)
PATH_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

_UNIT_DIVISORS = {"ms": 1_000, "ns": 1_000_000_000, "s": 1}


def _format_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_format_query_value(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_query(params: dict[str, Any]) -> str:
    """쿼리스트링 생성: None 제거, 삽입 순서 유지, "?a=1&b=2" 또는 "" 반환.

    서명 대상 경로와 실제 전송 URL 이 동일한 문자열을 쓰도록
    헤더 생성 전에 호출해야 한다.
    """
    parts = [
        f"{key}={quote(_format_query_value(value), safe=',-_.~:')}"
        for key, value in params.items()
        if value is not None
    ]
    if not parts:
        return ""
    return "?" + "&".join(parts)


def require_path_id(name: str, value: Any) -> str:
    """경로 식별자 검증. "?", "/" 등이 섞이면 서명 경로와 전송 URL 이 깨진다."""
    if not isinstance(value, str) or not PATH_ID_PATTERN.match(value):
        raise ValueError(f"{name} must be 1-64 letters, digits, underscores or hyphens")
    return value


def verify_symbol(symbol: str) -> bool:
    """"BTC-USDT" 형식 심볼 여부"""
    return isinstance(symbol, str) and bool(SYMBOL_PATTERN.match(symbol))


def as_int(value: Any) -> int | None:
    """정수 변환 (float 을 거치지 않음). 변환 불가면 None."""
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _ns_series_to_datetime(series: pd.Series) -> pd.Series:
    # 1.7e18 근처 나노초는 float64 로 변환하면 하위 자릿수가 깨짐
    ints = series.astype("object").map(as_int, na_action="ignore").astype("Int64")
    result = pd.Series(pd.NaT, index=series.index, dtype="datetime64[ns, UTC]")
    mask = ints.notna()
    if mask.any():
        result[mask] = pd.to_datetime(ints[mask].astype("int64"), unit="ns", utc=True)
    return result


def time_convert_from_kucoin(value: Any, unit: str = "ms") -> Any:
    """KuCoin 유닉스 타임스탬프(ms/ns/s) → UTC pandas Timestamp (Series 도 지원)"""
    if unit not in _UNIT_DIVISORS:
        raise ValueError(f"Invalid unit {unit!r}; expected one of {sorted(_UNIT_DIVISORS)}")
    if isinstance(value, pd.Series):
        if unit == "ns":
            return _ns_series_to_datetime(value)
        return pd.to_datetime(pd.to_numeric(value, errors="coerce"), unit=unit, utc=True)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Input must be a numeric value.")
    return pd.Timestamp(value, unit=unit, tz="UTC")


def time_convert_to_kucoin(dt: datetime | pd.Timestamp | str, unit: str = "ms") -> int:
    """datetime → KuCoin 유닉스 타임스탬프 (tz 없는 값은 UTC 로 간주)"""
    if unit not in _UNIT_DIVISORS:
        raise ValueError(f"Invalid unit {unit!r}; expected one of {sorted(_UNIT_DIVISORS)}")
    ts = to_utc_timestamp(dt)
    if unit == "ns":
        return int(ts.value)
    if unit == "ms":
        return int(ts.value // 1_000_000)
    return int(ts.value // 1_000_000_000)


def to_utc_timestamp(dt: datetime | pd.Timestamp | str) -> pd.Timestamp:
    """입력을 UTC pandas Timestamp 로 정규화"""
    ts = pd.Timestamp(dt)
    if ts is pd.NaT:
        raise ValueError(f"Invalid datetime: {dt!r}")
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def convert_datetime_range_to_ms(start: Any = None, end: Any = None) -> dict[str, int]:
    """시작/종료 시각을 {"startAt", "endAt"} 밀리초로 변환. 한쪽이 없으면 24시간 창."""
    window = pd.Timedelta(hours=24)
    if start is None and end is None:
        end_ts = pd.Timestamp.now(tz="UTC")
        start_ts = end_ts - window
    elif start is None:
        end_ts = to_utc_timestamp(end)
        start_ts = end_ts - window
    elif end is None:
        start_ts = to_utc_timestamp(start)
        end_ts = start_ts + window
    else:
        start_ts, end_ts = to_utc_timestamp(start), to_utc_timestamp(end)

    if start_ts > end_ts:
        raise ValueError("start must be before end.")
    return {
        "startAt": time_convert_to_kucoin(start_ts, "ms"),
        "endAt": time_convert_to_kucoin(end_ts, "ms"),
    }
