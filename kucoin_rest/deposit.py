"""입금 엔드포인트 - 입금 주소 생성/조회, 입금 내역"""

from __future__ import annotations

from typing import Any

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import frame_from_record, frame_from_records
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.utils import time_convert_to_kucoin

DEPOSIT_STATUSES = ("PROCESSING", "SUCCESS", "FAILURE")

DEPOSIT_ADDRESS_SCHEMA = {
    "address": "str",
    "memo": "str",
    "chainId": "str",
    "to": "str",
    "expirationDate": "float",
    "currency": "str",
    "contractAddress": "str",
    "chainName": "str",
}

DEPOSIT_HISTORY_SCHEMA = {
    "currency": "str",
    "chain": "str",
    "status": "str",
    "address": "str",
    "memo": "str",
    "isInner": "bool",
    "amount": "float",
    "fee": "float",
    "walletTxId": "str",
    "createdAt": "float",
    "updatedAt": "float",
    "remark": "str",
    "arrears": "bool",
}


def _require_currency(currency: str) -> None:
    if not isinstance(currency, str) or not currency:
        raise ValueError("currency must be a non-empty string")


class Deposit:
    """입금 관련 서명 요청"""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def add_deposit_address(self, currency: str, chain: str | None = None,
                                  to: str | None = None,
                                  amount: str | None = None) -> pd.DataFrame:
        """POST /api/v3/deposit-address/create → 생성된 주소 1행"""
        _require_currency(currency)
        if to is not None and to not in ("main", "trade"):
            raise ValueError('to must be "main" or "trade"')
        body = {k: v for k, v in
                {"currency": currency, "chain": chain, "to": to, "amount": amount}.items()
                if v is not None}
        data = await self.client.execute_signed(
            RequestDescriptor.build("POST", "/api/v3/deposit-address/create", body=body))
        return frame_from_record(data, DEPOSIT_ADDRESS_SCHEMA)

    async def get_deposit_addresses(self, currency: str, amount: str | None = None,
                                    chain: str | None = None) -> pd.DataFrame:
        """GET /api/v3/deposit-addresses → 통화의 체인별 주소 목록"""
        _require_currency(currency)
        data = await self.client.execute_signed(RequestDescriptor.build(
            "GET", "/api/v3/deposit-addresses",
            {"currency": currency, "amount": amount, "chain": chain}))
        return frame_from_records(data, DEPOSIT_ADDRESS_SCHEMA)

    async def get_deposit_history(self, currency: str, status: str | None = None,
                                  start: Any = None, end: Any = None,
                                  page_size: int = 50,
                                  max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v1/deposits (페이지 방식)"""
        _require_currency(currency)
        if status is not None and status not in DEPOSIT_STATUSES:
            raise ValueError(f"status must be one of {DEPOSIT_STATUSES}")
        if not 10 <= page_size <= 500:
            raise ValueError("page_size must be between 10 and 500")

        query: dict[str, Any] = {
            "currency": currency,
            "currentPage": 1,
            "pageSize": page_size,
            "status": status,
            "startAt": time_convert_to_kucoin(start, "ms") if start is not None else None,
            "endAt": time_convert_to_kucoin(end, "ms") if end is not None else None,
        }
        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v1/deposits", q),
            query,
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(
                items, DEPOSIT_HISTORY_SCHEMA, {"createdAt": "ms", "updatedAt": "ms"}),
        )
