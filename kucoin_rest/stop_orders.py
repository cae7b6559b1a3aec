"""스탑 주문 엔드포인트"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import frame_from_record, frame_from_records
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.orders import validate_order
from kucoin_rest.utils import require_path_id, time_convert_to_kucoin, verify_symbol

logger = logging.getLogger(__name__)

STOP_TYPES = ("loss", "entry")

STOP_ORDER_SCHEMA = {
    "id": "str",
    "clientOid": "str",
    "symbol": "str",
    "userId": "str",
    "status": "str",
    "type": "str",
    "side": "str",
    "price": "float",
    "size": "float",
    "funds": "float",
    "stop": "str",
    "stopPrice": "float",
    "timeInForce": "str",
    "postOnly": "bool",
    "hidden": "bool",
    "iceberg": "bool",
    "visibleSize": "float",
    "cancelAfter": "float",
    "channel": "str",
    "remark": "str",
    "tags": "str",
    "tradeType": "str",
    "feeCurrency": "str",
    "takerFeeRate": "float",
    "makerFeeRate": "float",
    "orderTime": "int",
    "createdAt": "float",
    "stopTriggerTime": "float",
}

STOP_ORDER_DATETIMES = {"createdAt": "ms", "orderTime": "ns"}


class StopOrders:
    """스탑 주문 (모두 서명 요청)"""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def _signed(self, method: str, endpoint: str, query: dict[str, Any] | None = None,
                      body: Any = None) -> Any:
        return await self.client.execute_signed(
            RequestDescriptor.build(method, endpoint, query, body))

    async def add_stop_order(self, type: str, symbol: str, side: str, stop_price: str,
                             stop: str | None = None, **params: Any) -> pd.DataFrame:
        """POST /api/v1/stop-order → orderId, clientOid"""
        if stop is not None and stop not in STOP_TYPES:
            raise ValueError(f"stop must be one of {STOP_TYPES}")
        if stop_price is None:
            raise ValueError("stop_price is required")
        body = validate_order({"type": type, "symbol": symbol, "side": side, **params})
        body["stopPrice"] = str(stop_price)
        if stop is not None:
            body["stop"] = stop
        data = await self._signed("POST", "/api/v1/stop-order", body=body)
        logger.info(f"[스탑주문] {symbol} {side} stopPrice={stop_price} 접수")
        return frame_from_record(data, {"orderId": "str", "clientOid": "str"})

    async def cancel_stop_order_by_order_id(self, order_id: str) -> list[str]:
        require_path_id("order_id", order_id)
        data = await self._signed("DELETE", f"/api/v1/stop-order/{order_id}") or {}
        return list(data.get("cancelledOrderIds") or [])

    async def cancel_stop_order_by_client_oid(self, client_oid: str,
                                              symbol: str | None = None) -> pd.DataFrame:
        require_path_id("client_oid", client_oid)
        if symbol is not None and not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", "/api/v1/stop-order/cancelOrderByClientOid",
                                  {"clientOid": client_oid, "symbol": symbol})
        return frame_from_record(data, {"cancelledOrderId": "str", "clientOid": "str"})

    async def cancel_stop_order_batch(self, symbol: str | None = None,
                                      trade_type: str | None = None,
                                      order_ids: list[str] | None = None) -> list[str]:
        """DELETE /api/v1/stop-order/cancel → 취소된 주문 ID 목록"""
        if symbol is not None and not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", "/api/v1/stop-order/cancel",
                                  {"symbol": symbol, "tradeType": trade_type,
                                   "orderIds": order_ids or None}) or {}
        return list(data.get("cancelledOrderIds") or [])

    async def get_stop_order_by_order_id(self, order_id: str) -> pd.DataFrame:
        require_path_id("order_id", order_id)
        data = await self._signed("GET", f"/api/v1/stop-order/{order_id}")
        return frame_from_record(data, STOP_ORDER_SCHEMA, STOP_ORDER_DATETIMES)

    async def get_stop_order_by_client_oid(self, client_oid: str,
                                           symbol: str | None = None) -> pd.DataFrame:
        require_path_id("client_oid", client_oid)
        if symbol is not None and not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("GET", "/api/v1/stop-order/queryOrderByClientOid",
                                  {"clientOid": client_oid, "symbol": symbol})
        return frame_from_records(data, STOP_ORDER_SCHEMA, STOP_ORDER_DATETIMES)

    async def get_stop_order_list(self, symbol: str | None = None, side: str | None = None,
                                  type: str | None = None, trade_type: str | None = None,
                                  start: Any = None, end: Any = None,
                                  order_ids: list[str] | None = None,
                                  page_size: int = 50,
                                  max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v1/stop-order (페이지 방식)"""
        if symbol is not None and not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        if not 10 <= page_size <= 500:
            raise ValueError("page_size must be between 10 and 500")
        query = {
            "currentPage": 1,
            "pageSize": page_size,
            "symbol": symbol,
            "side": side,
            "type": type,
            "tradeType": trade_type,
            "startAt": time_convert_to_kucoin(start, "ms") if start is not None else None,
            "endAt": time_convert_to_kucoin(end, "ms") if end is not None else None,
            "orderIds": order_ids or None,
        }
        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v1/stop-order", q),
            query,
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(items, STOP_ORDER_SCHEMA, STOP_ORDER_DATETIMES),
        )
