"""응답 → DataFrame 변환 모듈 - 스키마 컬럼 보장, 타입 변환, datetime 컬럼 추가"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import pandas as pd

from kucoin_rest.utils import as_int, time_convert_from_kucoin

# 스키마 타입 → pandas dtype
DTYPES = {
    "str": "string",
    "float": "float64",
    "int": "Int64",
    "bool": "boolean",
    "object": "object",
}


def _to_bool(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _coerce(series: pd.Series, kind: str) -> pd.Series:
    if kind == "float":
        return pd.to_numeric(series, errors="coerce").astype("float64")
    if kind == "int":
        return series.astype("object").map(as_int, na_action="ignore").astype("Int64")
    if kind == "bool":
        return series.map(_to_bool, na_action="ignore").astype("boolean")
    if kind == "str":
        return series.astype("string")
    return series.astype("object")


def empty_frame(schema: Mapping[str, str],
                datetime_columns: Mapping[str, str] | None = None) -> pd.DataFrame:
    """스키마 타입이 지정된 빈 DataFrame"""
    columns = {name: pd.Series(dtype=DTYPES[kind]) for name, kind in schema.items()}
    for col in (datetime_columns or {}):
        columns[f"{col}_datetime"] = pd.Series(dtype="datetime64[ns, UTC]")
    return pd.DataFrame(columns)


def frame_from_records(records: Iterable[Mapping[str, Any]] | None,
                       schema: Mapping[str, str],
                       datetime_columns: Mapping[str, str] | None = None) -> pd.DataFrame:
    """레코드 목록을 스키마에 맞춘 DataFrame 으로 변환.

    Args:
        records: dict 레코드 목록 (None/빈 목록이면 타입이 지정된 빈 프레임)
        schema: {컬럼명: "str"|"float"|"int"|"bool"|"object"}. 누락 컬럼은 NA.
        datetime_columns: {원본 컬럼: 단위("ms"|"s"|"ns")} → "<컬럼>_datetime" 추가

    스키마 밖의 컬럼은 버리지 않고 스키마 컬럼 뒤에 둔다.
    """
    records = list(records or [])
    if not records:
        return empty_frame(schema, datetime_columns)

    # object 로 받아 큰 정수(나노초)가 float64 로 추론되지 않게 함
    df = pd.DataFrame(records, dtype="object")
    for name, kind in schema.items():
        if name not in df.columns:
            df[name] = None
        df[name] = _coerce(df[name], kind)

    extras = [c for c in df.columns if c not in schema]
    df = df[list(schema) + extras].copy()
    if extras:
        df[extras] = df[extras].infer_objects()

    for col, unit in (datetime_columns or {}).items():
        if col in df.columns:
            df[f"{col}_datetime"] = time_convert_from_kucoin(
                df[col] if unit == "ns" else df[col].astype("float64"), unit)
    return df.reset_index(drop=True)


def frame_from_record(record: Mapping[str, Any] | None,
                      schema: Mapping[str, str],
                      datetime_columns: Mapping[str, str] | None = None) -> pd.DataFrame:
    """단일 객체 응답 → 1행 DataFrame (빈 응답은 빈 프레임)"""
    return frame_from_records([record] if record else [], schema, datetime_columns)


def prefix_keys(record: Mapping[str, Any] | None, prefix: str) -> dict[str, Any]:
    """중첩 객체를 평탄화할 때 컬럼 접두어 부여"""
    return {f"{prefix}{k}": v for k, v in (record or {}).items()}


def records_with_parent(parent: Mapping[str, Any], children: Iterable[Mapping[str, Any]] | None,
                        child_key: str) -> list[dict[str, Any]]:
    """부모 필드를 자식 배열 각 행에 복제해 평탄화 (예: 통화 → 체인 목록)"""
    base = {k: v for k, v in parent.items() if k != child_key}
    children = list(children or [])
    if not children:
        return [dict(base)]
    return [{**base, **child} for child in children]
