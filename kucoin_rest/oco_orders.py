"""OCO(One-Cancels-the-Other) 주문 엔드포인트"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import frame_from_record, frame_from_records, records_with_parent
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.orders import ORDER_SIDES, new_client_oid
from kucoin_rest.utils import require_path_id, time_convert_to_kucoin, verify_symbol

logger = logging.getLogger(__name__)

OCO_ORDER_SCHEMA = {
    "orderId": "str",
    "symbol": "str",
    "clientOid": "str",
    "orderTime": "float",
    "status": "str",
}

OCO_DETAIL_SCHEMA = {
    **OCO_ORDER_SCHEMA,
    "id": "str",
    "side": "str",
    "price": "float",
    "stopPrice": "float",
    "size": "float",
}


class OcoOrders:
    """OCO 주문 (모두 서명 요청)"""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def _signed(self, method: str, endpoint: str, query: dict[str, Any] | None = None,
                      body: Any = None) -> Any:
        return await self.client.execute_signed(
            RequestDescriptor.build(method, endpoint, query, body))

    async def add_oco_order(self, symbol: str, side: str, price: str, size: str,
                            stop_price: str, limit_price: str, client_oid: str | None = None,
                            remark: str | None = None,
                            trade_type: str = "TRADE") -> pd.DataFrame:
        """POST /api/v3/oco/order → orderId"""
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        if side not in ORDER_SIDES:
            raise ValueError(f"side must be one of {ORDER_SIDES}")
        for name, value in (("price", price), ("size", size),
                            ("stop_price", stop_price), ("limit_price", limit_price)):
            if value is None:
                raise ValueError(f"{name} is required")
        body: dict[str, Any] = {
            "symbol": symbol,
            "side": side,
            "price": str(price),
            "size": str(size),
            "clientOid": client_oid or new_client_oid(),
            "stopPrice": str(stop_price),
            "limitPrice": str(limit_price),
            "tradeType": trade_type,
        }
        if remark is not None:
            body["remark"] = remark
        data = await self._signed("POST", "/api/v3/oco/order", body=body)
        logger.info(f"[OCO] {symbol} {side} 접수 (clientOid={body['clientOid']})")
        return frame_from_record(data, {"orderId": "str"})

    async def cancel_oco_order_by_order_id(self, order_id: str) -> list[str]:
        require_path_id("order_id", order_id)
        data = await self._signed("DELETE", f"/api/v3/oco/order/{order_id}") or {}
        return list(data.get("cancelledOrderIds") or [])

    async def cancel_oco_order_by_client_oid(self, client_oid: str) -> list[str]:
        require_path_id("client_oid", client_oid)
        data = await self._signed("DELETE", f"/api/v3/oco/client-order/{client_oid}") or {}
        return list(data.get("cancelledOrderIds") or [])

    async def cancel_oco_order_batch(self, order_ids: list[str] | None = None,
                                     symbol: str | None = None) -> list[str]:
        """DELETE /api/v3/oco/orders (order_ids/symbol 없으면 전체)"""
        if symbol is not None and not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", "/api/v3/oco/orders",
                                  {"orderIds": order_ids or None, "symbol": symbol}) or {}
        return list(data.get("cancelledOrderIds") or [])

    async def get_oco_order_by_order_id(self, order_id: str) -> pd.DataFrame:
        require_path_id("order_id", order_id)
        data = await self._signed("GET", f"/api/v3/oco/order/{order_id}")
        return frame_from_record(data, OCO_ORDER_SCHEMA, {"orderTime": "ms"})

    async def get_oco_order_by_client_oid(self, client_oid: str) -> pd.DataFrame:
        require_path_id("client_oid", client_oid)
        data = await self._signed("GET", f"/api/v3/oco/client-order/{client_oid}")
        return frame_from_record(data, OCO_ORDER_SCHEMA, {"orderTime": "ms"})

    async def get_oco_order_detail_by_order_id(self, order_id: str) -> pd.DataFrame:
        """OCO 상세: 하위 주문(orders) 배열을 행으로 평탄화"""
        require_path_id("order_id", order_id)
        data = await self._signed("GET", f"/api/v3/oco/order/details/{order_id}")
        rows = records_with_parent(data, data.get("orders"), "orders") if data else []
        return frame_from_records(rows, OCO_DETAIL_SCHEMA, {"orderTime": "ms"})

    async def get_oco_order_list(self, symbol: str | None = None, start: Any = None,
                                 end: Any = None, order_ids: list[str] | None = None,
                                 page_size: int = 50,
                                 max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v3/oco/orders (페이지 방식)"""
        if symbol is not None and not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        if not 10 <= page_size <= 500:
            raise ValueError("page_size must be between 10 and 500")
        query = {
            "currentPage": 1,
            "pageSize": page_size,
            "symbol": symbol,
            "startAt": time_convert_to_kucoin(start, "ms") if start is not None else None,
            "endAt": time_convert_to_kucoin(end, "ms") if end is not None else None,
            "orderIds": order_ids or None,
        }
        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v3/oco/orders", q),
            query,
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(items, OCO_ORDER_SCHEMA, {"orderTime": "ms"}),
        )
