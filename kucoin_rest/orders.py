"""현물(HF) 주문 엔드포인트 - 주문 생성/취소/조회, 체결 내역"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import frame_from_record, frame_from_records
from kucoin_rest.models import CURSOR_FIELDS, RequestDescriptor
from kucoin_rest.utils import require_path_id, time_convert_to_kucoin, verify_symbol

logger = logging.getLogger(__name__)

ORDER_TYPES = ("limit", "market")
ORDER_SIDES = ("buy", "sell")
STP_VALUES = ("CN", "CO", "CB", "DC")
TIME_IN_FORCE = ("GTC", "GTT", "IOC", "FOK")
MAX_BATCH_ORDERS = 20

_CLIENT_OID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,40}$")

ORDER_RESULT_SCHEMA = {
    "orderId": "str",
    "clientOid": "str",
}

BATCH_RESULT_SCHEMA = {
    "orderId": "str",
    "clientOid": "str",
    "success": "bool",
    "failMsg": "str",
}

ORDER_SCHEMA = {
    "id": "str",
    "clientOid": "str",
    "symbol": "str",
    "opType": "str",
    "type": "str",
    "side": "str",
    "price": "float",
    "size": "float",
    "funds": "float",
    "dealSize": "float",
    "dealFunds": "float",
    "fee": "float",
    "feeCurrency": "str",
    "stp": "str",
    "timeInForce": "str",
    "postOnly": "bool",
    "hidden": "bool",
    "iceberg": "bool",
    "visibleSize": "float",
    "cancelAfter": "float",
    "channel": "str",
    "remark": "str",
    "tags": "str",
    "cancelExist": "bool",
    "tradeType": "str",
    "inOrderBook": "bool",
    "cancelledSize": "float",
    "cancelledFunds": "float",
    "remainSize": "float",
    "remainFunds": "float",
    "active": "bool",
    "createdAt": "float",
    "lastUpdatedAt": "float",
}

FILL_SCHEMA = {
    "id": "str",
    "orderId": "str",
    "counterOrderId": "str",
    "tradeId": "str",
    "symbol": "str",
    "side": "str",
    "liquidity": "str",
    "type": "str",
    "forceTaker": "bool",
    "price": "float",
    "size": "float",
    "funds": "float",
    "fee": "float",
    "feeRate": "float",
    "feeCurrency": "str",
    "stop": "str",
    "tradeType": "str",
    "createdAt": "float",
}

ORDER_DATETIMES = {"createdAt": "ms", "lastUpdatedAt": "ms"}


def new_client_oid() -> str:
    return uuid.uuid4().hex


def _check_ascii(name: str, value: Any, max_len: int) -> None:
    if not isinstance(value, str) or len(value) > max_len or not value.isascii():
        raise ValueError(f"{name} must be ASCII and at most {max_len} characters")


def validate_order(order: dict[str, Any]) -> dict[str, Any]:
    """주문 파라미터 검증 및 정규화 → 전송 바디.

    clientOid 가 없으면 uuid4 hex 를 생성한다.
    """
    for name in ("symbol", "type", "side"):
        if order.get(name) is None:
            raise ValueError(f"Missing required field {name!r} in order")
    order_type, side, symbol = order["type"], order["side"], order["symbol"]
    if order_type not in ORDER_TYPES:
        raise ValueError(f"type must be one of {ORDER_TYPES}")
    if side not in ORDER_SIDES:
        raise ValueError(f"side must be one of {ORDER_SIDES}")
    if not verify_symbol(symbol):
        raise ValueError(f"Invalid symbol {symbol!r} in order")

    body: dict[str, Any] = {"clientOid": order.get("clientOid") or new_client_oid(),
                            "symbol": symbol, "type": order_type, "side": side}
    if not _CLIENT_OID_PATTERN.match(body["clientOid"]):
        raise ValueError("clientOid must be at most 40 letters, digits, underscores or hyphens")

    price, size, funds = order.get("price"), order.get("size"), order.get("funds")
    if order_type == "limit":
        if price is None or size is None:
            raise ValueError("price and size are required for limit orders")
        if funds is not None:
            raise ValueError("funds is not applicable for limit orders")
        body["price"], body["size"] = str(price), str(size)
    else:
        if price is not None:
            raise ValueError("price is not applicable for market orders")
        if (size is None) == (funds is None):
            raise ValueError("Exactly one of size or funds must be specified for market orders")
        if size is not None:
            body["size"] = str(size)
        else:
            body["funds"] = str(funds)

    if order.get("stp") is not None:
        if order["stp"] not in STP_VALUES:
            raise ValueError(f"stp must be one of {STP_VALUES}")
        body["stp"] = order["stp"]
    for name in ("tags", "remark"):
        if order.get(name) is not None:
            _check_ascii(name, order[name], 20)
            body[name] = order[name]

    if order_type == "limit":
        time_in_force = order.get("timeInForce") or "GTC"
        if time_in_force not in TIME_IN_FORCE:
            raise ValueError(f"timeInForce must be one of {TIME_IN_FORCE}")
        body["timeInForce"] = time_in_force

        cancel_after = order.get("cancelAfter")
        if cancel_after is not None:
            try:
                cancel_after = int(cancel_after)
            except (TypeError, ValueError) as e:
                raise ValueError(f"cancelAfter must be a whole number of seconds, got {cancel_after!r}") from e
            if cancel_after <= 0:
                raise ValueError("cancelAfter must be a positive number")
            body["cancelAfter"] = cancel_after
        elif time_in_force == "GTT":
            raise ValueError("cancelAfter is required when timeInForce is GTT")

        post_only = bool(order.get("postOnly", False))
        hidden = bool(order.get("hidden", False))
        iceberg = bool(order.get("iceberg", False))
        if post_only and time_in_force in ("IOC", "FOK"):
            raise ValueError("postOnly cannot be used with IOC or FOK")
        if iceberg and hidden:
            raise ValueError("iceberg and hidden cannot both be set")
        body.update(postOnly=post_only, hidden=hidden, iceberg=iceberg)

        if order.get("visibleSize") is not None:
            if not iceberg:
                raise ValueError("visibleSize is only applicable to iceberg orders")
            body["visibleSize"] = str(order["visibleSize"])
    return body


class SpotOrders:
    """고빈도(HF) 현물 주문 (모두 서명 요청)"""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def _signed(self, method: str, endpoint: str, query: dict[str, Any] | None = None,
                      body: Any = None) -> Any:
        return await self.client.execute_signed(
            RequestDescriptor.build(method, endpoint, query, body))

    async def add_order(self, type: str, symbol: str, side: str, **params: Any) -> pd.DataFrame:
        """POST /api/v1/hf/orders → orderId, clientOid"""
        body = validate_order({"type": type, "symbol": symbol, "side": side, **params})
        data = await self._signed("POST", "/api/v1/hf/orders", body=body)
        logger.info(f"[주문] {symbol} {side} {type} 접수 (clientOid={body['clientOid']})")
        return frame_from_record(data, ORDER_RESULT_SCHEMA)

    async def add_order_test(self, type: str, symbol: str, side: str, **params: Any) -> pd.DataFrame:
        """POST /api/v1/hf/orders/test (체결되지 않는 검증용 주문)"""
        body = validate_order({"type": type, "symbol": symbol, "side": side, **params})
        data = await self._signed("POST", "/api/v1/hf/orders/test", body=body)
        return frame_from_record(data, ORDER_RESULT_SCHEMA)

    async def add_order_batch(self, order_list: list[dict[str, Any]]) -> pd.DataFrame:
        """POST /api/v1/hf/orders/multi (1~20건)"""
        if not order_list or len(order_list) > MAX_BATCH_ORDERS:
            raise ValueError(f"order_list must contain 1 to {MAX_BATCH_ORDERS} orders")
        orders = [validate_order(order) for order in order_list]
        data = await self._signed("POST", "/api/v1/hf/orders/multi", body={"orderList": orders})
        return frame_from_records(data, BATCH_RESULT_SCHEMA)

    async def cancel_order_by_order_id(self, order_id: str, symbol: str) -> pd.DataFrame:
        require_path_id("order_id", order_id)
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", f"/api/v1/hf/orders/{order_id}", {"symbol": symbol})
        return frame_from_record(data, {"orderId": "str"})

    async def cancel_order_by_client_oid(self, client_oid: str, symbol: str) -> pd.DataFrame:
        require_path_id("client_oid", client_oid)
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", f"/api/v1/hf/orders/client-order/{client_oid}",
                                  {"symbol": symbol})
        return frame_from_record(data, {"clientOid": "str"})

    async def cancel_partial_order(self, order_id: str, symbol: str,
                                   cancel_size: str) -> pd.DataFrame:
        """주문 일부 수량 취소"""
        require_path_id("order_id", order_id)
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", f"/api/v1/hf/orders/cancel/{order_id}",
                                  {"symbol": symbol, "cancelSize": str(cancel_size)})
        return frame_from_record(data, {"orderId": "str", "cancelSize": "float"})

    async def cancel_all_orders_by_symbol(self, symbol: str) -> str:
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("DELETE", "/api/v1/hf/orders", {"symbol": symbol})
        logger.info(f"[주문] {symbol} 전체 취소: {data}")
        return str(data)

    async def cancel_all_orders(self) -> dict[str, list[str]]:
        """전 심볼 주문 취소 → {succeedSymbols, failedSymbols}"""
        data = await self._signed("DELETE", "/api/v1/hf/orders/cancelAll") or {}
        failed = data.get("failedSymbols") or []
        if failed:
            logger.warning(f"[주문] 전체 취소 실패 심볼: {failed}")
        return {
            "succeedSymbols": list(data.get("succeedSymbols") or []),
            "failedSymbols": list(failed),
        }

    async def get_order_by_order_id(self, order_id: str, symbol: str) -> pd.DataFrame:
        require_path_id("order_id", order_id)
        data = await self._signed("GET", f"/api/v1/hf/orders/{order_id}", {"symbol": symbol})
        return frame_from_record(data, ORDER_SCHEMA, ORDER_DATETIMES)

    async def get_order_by_client_oid(self, client_oid: str, symbol: str) -> pd.DataFrame:
        require_path_id("client_oid", client_oid)
        data = await self._signed("GET", f"/api/v1/hf/orders/client-order/{client_oid}",
                                  {"symbol": symbol})
        return frame_from_record(data, ORDER_SCHEMA, ORDER_DATETIMES)

    async def get_trade_history(self, symbol: str, order_id: str | None = None,
                                side: str | None = None, type: str | None = None,
                                start: Any = None, end: Any = None, limit: int = 100,
                                max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v1/hf/fills (lastId 커서 방식)"""
        query = self._history_query(symbol, side, type, start, end, limit)
        query["orderId"] = order_id
        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v1/hf/fills", q),
            query,
            fields=CURSOR_FIELDS,
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(items, FILL_SCHEMA, {"createdAt": "ms"}),
        )

    async def get_symbols_with_open_orders(self) -> list[str]:
        data = await self._signed("GET", "/api/v1/hf/orders/active/symbols") or {}
        return [str(s) for s in data.get("symbols") or []]

    async def get_open_orders(self, symbol: str) -> pd.DataFrame:
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        data = await self._signed("GET", "/api/v1/hf/orders/active", {"symbol": symbol})
        return frame_from_records(data, ORDER_SCHEMA, ORDER_DATETIMES)

    async def get_closed_orders(self, symbol: str, side: str | None = None,
                                type: str | None = None, start: Any = None, end: Any = None,
                                limit: int = 100, max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v1/hf/orders/done (lastId 커서 방식)"""
        query = self._history_query(symbol, side, type, start, end, limit)
        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v1/hf/orders/done", q),
            query,
            fields=CURSOR_FIELDS,
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(items, ORDER_SCHEMA, ORDER_DATETIMES),
        )

    @staticmethod
    def _history_query(symbol: str, side: str | None, type: str | None,
                       start: Any, end: Any, limit: int) -> dict[str, Any]:
        if not verify_symbol(symbol):
            raise ValueError(f"Invalid symbol {symbol!r}")
        if side is not None and side not in ORDER_SIDES:
            raise ValueError(f"side must be one of {ORDER_SIDES}")
        if type is not None and type not in ORDER_TYPES:
            raise ValueError(f"type must be one of {ORDER_TYPES}")
        if not 1 <= limit <= 100:
            raise ValueError("limit must be between 1 and 100")
        return {
            "symbol": symbol,
            "side": side,
            "type": type,
            "startAt": time_convert_to_kucoin(start, "ms") if start is not None else None,
            "endAt": time_convert_to_kucoin(end, "ms") if end is not None else None,
            "limit": limit,
        }
