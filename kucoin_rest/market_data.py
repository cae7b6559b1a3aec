"""현물 시장 데이터 엔드포인트 - 공지, 통화/심볼, 티커, 체결, 호가, 통계, 캔들"""

from __future__ import annotations

from typing import Any

import pandas as pd

from kucoin_rest import klines
from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import empty_frame, frame_from_record, frame_from_records, records_with_parent
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.utils import (
    require_path_id,
    time_convert_from_kucoin,
    time_convert_to_kucoin,
    verify_symbol,
)

MARKET_DATA_TIMEOUT = 10.0  # 초

ANNOUNCEMENT_SCHEMA = {
    "annId": "float",
    "annTitle": "str",
    "annType": "object",
    "annDesc": "str",
    "cTime": "float",
    "language": "str",
    "annUrl": "str",
}

CURRENCY_SCHEMA = {
    "currency": "str",
    "name": "str",
    "fullName": "str",
    "precision": "float",
    "confirms": "float",
    "contractAddress": "str",
    "isMarginEnabled": "bool",
    "isDebitEnabled": "bool",
    "chainName": "str",
    "withdrawalMinSize": "float",
    "depositMinSize": "float",
    "withdrawFeeRate": "float",
    "withdrawalMinFee": "float",
    "isWithdrawEnabled": "bool",
    "isDepositEnabled": "bool",
    "preConfirms": "float",
    "withdrawPrecision": "float",
    "maxWithdraw": "float",
    "maxDeposit": "float",
    "needTag": "bool",
    "chainId": "str",
}

SYMBOL_SCHEMA = {
    "symbol": "str",
    "name": "str",
    "baseCurrency": "str",
    "quoteCurrency": "str",
    "feeCurrency": "str",
    "market": "str",
    "baseMinSize": "float",
    "quoteMinSize": "float",
    "baseMaxSize": "float",
    "quoteMaxSize": "float",
    "baseIncrement": "float",
    "quoteIncrement": "float",
    "priceIncrement": "float",
    "priceLimitRate": "float",
    "minFunds": "float",
    "isMarginEnabled": "bool",
    "enableTrading": "bool",
    "feeCategory": "float",
    "makerFeeCoefficient": "float",
    "takerFeeCoefficient": "float",
    "st": "bool",
}

TICKER_SCHEMA = {
    "symbol": "str",
    "time": "float",
    "sequence": "str",
    "price": "float",
    "size": "float",
    "bestBid": "float",
    "bestBidSize": "float",
    "bestAsk": "float",
    "bestAskSize": "float",
}

ALL_TICKERS_SCHEMA = {
    "time": "float",
    "symbol": "str",
    "symbolName": "str",
    "buy": "str",
    "bestBidSize": "str",
    "sell": "str",
    "bestAskSize": "str",
    "changeRate": "str",
    "changePrice": "str",
    "high": "str",
    "low": "str",
    "vol": "str",
    "volValue": "str",
    "last": "str",
    "averagePrice": "str",
    "takerFeeRate": "str",
    "makerFeeRate": "str",
    "takerCoefficient": "str",
    "makerCoefficient": "str",
}

TRADE_HISTORY_SCHEMA = {
    "sequence": "str",
    "price": "float",
    "size": "float",
    "side": "str",
    "time": "int",
}

STATS_SCHEMA = {
    "time": "float",
    "symbol": "str",
    "buy": "float",
    "sell": "float",
    "changeRate": "float",
    "changePrice": "float",
    "high": "float",
    "low": "float",
    "vol": "float",
    "volValue": "float",
    "last": "float",
    "averagePrice": "float",
    "takerFeeRate": "float",
    "makerFeeRate": "float",
    "takerCoefficient": "float",
    "makerCoefficient": "float",
}

ORDERBOOK_COLUMNS = ["time_datetime", "time", "sequence", "side", "price", "size"]


def _require_symbol(symbol: str) -> None:
    if not verify_symbol(symbol):
        raise ValueError(f"Invalid symbol {symbol!r}; expected format like 'BTC-USDT'")


def orderbook_to_frame(data: dict[str, Any] | None) -> pd.DataFrame:
    """{time, sequence, bids, asks} → 행 단위 호가 프레임 (bid 가격 내림차순, ask 오름차순)"""
    data = data or {}
    sides = []
    for side, key, ascending in (("bid", "bids", False), ("ask", "asks", True)):
        levels = data.get(key) or []
        frame = pd.DataFrame(
            [level[:2] for level in levels], columns=["price", "size"], dtype="object"
        ).apply(pd.to_numeric, errors="coerce").astype("float64")
        frame["side"] = side
        sides.append(frame.sort_values("price", ascending=ascending))

    book = pd.concat(sides, ignore_index=True)
    book["side"] = book["side"].astype("string")
    book["time"] = float(data["time"]) if data.get("time") is not None else float("nan")
    book["sequence"] = float(data["sequence"]) if data.get("sequence") is not None else float("nan")
    book["time_datetime"] = time_convert_from_kucoin(book["time"], "ms")
    return book[ORDERBOOK_COLUMNS]


class SpotMarketData:
    """현물 시장 데이터 조회. get_full_orderbook 만 서명 요청."""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def _public(self, endpoint: str, query: dict[str, Any] | None = None) -> Any:
        return await self.client.execute_public(
            RequestDescriptor.build("GET", endpoint, query), timeout=MARKET_DATA_TIMEOUT)

    async def get_announcements(self, ann_type: str = "latest-announcements",
                                lang: str = "en_US", start: Any = None, end: Any = None,
                                page_size: int = 50,
                                max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v3/announcements (인증 없음, 페이지 방식)"""
        query = {
            "currentPage": 1,
            "pageSize": page_size,
            "annType": ann_type,
            "lang": lang,
            "startTime": time_convert_to_kucoin(start, "ms") if start is not None else None,
            "endTime": time_convert_to_kucoin(end, "ms") if end is not None else None,
        }
        return await self.client.execute_public_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v3/announcements", q),
            query,
            max_pages=max_pages,
            timeout=MARKET_DATA_TIMEOUT,
            aggregate=lambda items: frame_from_records(items, ANNOUNCEMENT_SCHEMA, {"cTime": "ms"}),
        )

    async def get_currency(self, currency: str, chain: str | None = None) -> pd.DataFrame:
        """단일 통화: 체인별 1행씩"""
        require_path_id("currency", currency)
        data = await self._public(f"/api/v3/currencies/{currency}", {"chain": chain})
        if not data:
            return empty_frame(CURRENCY_SCHEMA)
        return frame_from_records(records_with_parent(data, data.get("chains"), "chains"),
                                  CURRENCY_SCHEMA)

    async def get_all_currencies(self) -> pd.DataFrame:
        data = await self._public("/api/v3/currencies")
        rows = []
        for currency in data or []:
            rows.extend(records_with_parent(currency, currency.get("chains"), "chains"))
        return frame_from_records(rows, CURRENCY_SCHEMA)

    async def get_symbol(self, symbol: str) -> pd.DataFrame:
        _require_symbol(symbol)
        data = await self._public(f"/api/v2/symbols/{symbol}")
        return frame_from_record(data, SYMBOL_SCHEMA)

    async def get_all_symbols(self, market: str | None = None) -> pd.DataFrame:
        data = await self._public("/api/v2/symbols", {"market": market})
        return frame_from_records(data, SYMBOL_SCHEMA)

    async def get_ticker(self, symbol: str) -> pd.DataFrame:
        """레벨1 티커 1행"""
        _require_symbol(symbol)
        data = await self._public("/api/v1/market/orderbook/level1", {"symbol": symbol})
        record = {**data, "symbol": symbol} if data else None
        return frame_from_record(record, TICKER_SCHEMA, {"time": "ms"})

    async def get_all_tickers(self) -> pd.DataFrame:
        """전체 티커 스냅샷. 응답 최상위 time 을 각 행에 복제."""
        data = await self._public("/api/v1/market/allTickers") or {}
        rows = [{**ticker, "time": data.get("time")} for ticker in data.get("ticker") or []]
        return frame_from_records(rows, ALL_TICKERS_SCHEMA, {"time": "ms"})

    async def get_trade_history(self, symbol: str) -> pd.DataFrame:
        """최근 체결 내역 (time 은 나노초)"""
        _require_symbol(symbol)
        data = await self._public("/api/v1/market/histories", {"symbol": symbol})
        return frame_from_records(data, TRADE_HISTORY_SCHEMA, {"time": "ns"})

    async def get_part_orderbook(self, symbol: str, size: int = 20) -> pd.DataFrame:
        """부분 호가 (20 또는 100 레벨)"""
        _require_symbol(symbol)
        if int(size) not in (20, 100):
            raise ValueError("size must be 20 or 100")
        data = await self._public(f"/api/v1/market/orderbook/level2_{int(size)}", {"symbol": symbol})
        return orderbook_to_frame(data)

    async def get_full_orderbook(self, symbol: str) -> pd.DataFrame:
        """전체 호가 (서명 요청)"""
        _require_symbol(symbol)
        data = await self.client.execute_signed(
            RequestDescriptor.build("GET", "/api/v3/market/orderbook/level2", {"symbol": symbol}),
            timeout=MARKET_DATA_TIMEOUT,
        )
        return orderbook_to_frame(data)

    async def get_24hr_stats(self, symbol: str) -> pd.DataFrame:
        _require_symbol(symbol)
        data = await self._public("/api/v1/market/stats", {"symbol": symbol})
        return frame_from_record(data, STATS_SCHEMA, {"time": "ms"})

    async def get_market_list(self) -> list[str]:
        data = await self._public("/api/v1/markets")
        return [str(m) for m in data or []]

    async def get_klines(self, symbol: str = "BTC-USDT", freq: str = "15min",
                         start: Any = None, end: Any = None, concurrent: bool = True,
                         delay_ms: int = 0, retries: int = 3) -> pd.DataFrame:
        """기간 캔들 (구간 분할 조회 후 병합)"""
        return await klines.get_klines(
            self.client, symbol=symbol, freq=freq, start=start, end=end,
            concurrent=concurrent, delay_ms=delay_ms, retries=retries,
        )
