"""계정/자금 엔드포인트 - 계정 요약, API 키 정보, 현물/마진 계정, 원장"""

from __future__ import annotations

from typing import Any

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import empty_frame, frame_from_record, frame_from_records, prefix_keys
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.utils import convert_datetime_range_to_ms, require_path_id

SUMMARY_SCHEMA = {
    "level": "float",
    "subQuantity": "float",
    "spotSubQuantity": "float",
    "marginSubQuantity": "float",
    "futuresSubQuantity": "float",
    "optionSubQuantity": "float",
    "maxSubQuantity": "float",
    "maxDefaultSubQuantity": "float",
    "maxSpotSubQuantity": "float",
    "maxMarginSubQuantity": "float",
    "maxFuturesSubQuantity": "float",
    "maxOptionSubQuantity": "float",
}

APIKEY_SCHEMA = {
    "uid": "float",
    "subName": "str",
    "remark": "str",
    "apiKey": "str",
    "apiVersion": "float",
    "permission": "str",
    "ipWhitelist": "str",
    "isMaster": "bool",
    "createdAt": "float",
}

ACCOUNT_SCHEMA = {
    "id": "str",
    "currency": "str",
    "type": "str",
    "balance": "float",
    "available": "float",
    "holds": "float",
}

ACCOUNT_DETAIL_SCHEMA = {
    "currency": "str",
    "balance": "float",
    "available": "float",
    "holds": "float",
}

CROSS_MARGIN_SCHEMA = {
    "totalAssetOfQuoteCurrency": "float",
    "totalLiabilityOfQuoteCurrency": "float",
    "debtRatio": "float",
    "status": "str",
    "currency": "str",
    "total": "float",
    "available": "float",
    "hold": "float",
    "liability": "float",
    "maxBorrowSize": "float",
    "borrowEnabled": "bool",
    "transferInEnabled": "bool",
}

_ASSET_FIELDS = {
    "currency": "str",
    "borrowEnabled": "bool",
    "transferInEnabled": "bool",
    "liability": "str",
    "total": "str",
    "available": "str",
    "hold": "str",
    "maxBorrowSize": "str",
}

ISOLATED_MARGIN_SCHEMA = {
    "totalAssetOfQuoteCurrency": "str",
    "totalLiabilityOfQuoteCurrency": "str",
    "timestamp": "float",
    "symbol": "str",
    "status": "str",
    "debtRatio": "str",
    **{f"base_{k}": v for k, v in _ASSET_FIELDS.items()},
    **{f"quote_{k}": v for k, v in _ASSET_FIELDS.items()},
}

LEDGER_SCHEMA = {
    "id": "str",
    "currency": "str",
    "amount": "str",
    "fee": "str",
    "balance": "str",
    "accountType": "str",
    "bizType": "str",
    "direction": "str",
    "context": "str",
    "createdAt": "float",
}

LEDGER_ENDPOINT = "/api/v1/accounts/ledgers"


class AccountAndFunding:
    """계정 및 자금 조회 (모두 서명 요청)"""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def get_account_summary_info(self) -> pd.DataFrame:
        """GET /api/v2/user-info → 서브계정 수량/한도 1행"""
        data = await self.client.execute_signed(
            RequestDescriptor.build("GET", "/api/v2/user-info"))
        return frame_from_record(data, SUMMARY_SCHEMA)

    async def get_apikey_info(self) -> pd.DataFrame:
        """GET /api/v1/user/api-key → API 키 메타데이터 1행"""
        data = await self.client.execute_signed(
            RequestDescriptor.build("GET", "/api/v1/user/api-key"))
        return frame_from_record(data, APIKEY_SCHEMA, {"createdAt": "ms"})

    async def get_spot_account_type(self) -> bool:
        """고빈도(HF) 현물 계정 여부"""
        data = await self.client.execute_signed(
            RequestDescriptor.build("GET", "/api/v1/hf/accounts/opened"))
        if isinstance(data, str):
            return data.strip().lower() == "true"
        return bool(data)

    async def get_spot_account_list(self, currency: str | None = None,
                                    account_type: str | None = None) -> pd.DataFrame:
        data = await self.client.execute_signed(RequestDescriptor.build(
            "GET", "/api/v1/accounts", {"currency": currency, "type": account_type}))
        return frame_from_records(data, ACCOUNT_SCHEMA)

    async def get_spot_account_detail(self, account_id: str) -> pd.DataFrame:
        require_path_id("account_id", account_id)
        data = await self.client.execute_signed(
            RequestDescriptor.build("GET", f"/api/v1/accounts/{account_id}"))
        return frame_from_record(data, ACCOUNT_DETAIL_SCHEMA)

    async def get_cross_margin_account(self, quote_currency: str | None = None,
                                       query_type: str | None = None) -> pd.DataFrame:
        """교차 마진 계정: 계정 요약 필드를 통화별 행에 복제"""
        data = await self.client.execute_signed(RequestDescriptor.build(
            "GET", "/api/v3/margin/accounts",
            {"quoteCurrency": quote_currency, "queryType": query_type}))
        if not data or not data.get("accounts"):
            return empty_frame(CROSS_MARGIN_SCHEMA)
        summary = {k: data.get(k) for k in
                   ("totalAssetOfQuoteCurrency", "totalLiabilityOfQuoteCurrency", "debtRatio", "status")}
        rows = [{**summary, **account} for account in data["accounts"]]
        return frame_from_records(rows, CROSS_MARGIN_SCHEMA)

    async def get_isolated_margin_account(self, symbol: str | None = None,
                                          quote_currency: str | None = None,
                                          query_type: str | None = None) -> pd.DataFrame:
        """격리 마진 계정: baseAsset/quoteAsset 를 base_/quote_ 접두 컬럼으로 평탄화"""
        data = await self.client.execute_signed(RequestDescriptor.build(
            "GET", "/api/v3/isolated/accounts",
            {"symbol": symbol, "quoteCurrency": quote_currency, "queryType": query_type}))
        datetime_columns = {"timestamp": "ms"}
        if not data or not data.get("assets"):
            return empty_frame(ISOLATED_MARGIN_SCHEMA, datetime_columns)

        summary = {k: data.get(k) for k in
                   ("totalAssetOfQuoteCurrency", "totalLiabilityOfQuoteCurrency", "timestamp")}
        rows = []
        for asset in data["assets"]:
            top = {k: v for k, v in asset.items() if k not in ("baseAsset", "quoteAsset")}
            rows.append({
                **summary,
                **top,
                **prefix_keys(asset.get("baseAsset"), "base_"),
                **prefix_keys(asset.get("quoteAsset"), "quote_"),
            })
        return frame_from_records(rows, ISOLATED_MARGIN_SCHEMA, datetime_columns)

    async def get_spot_ledger(self, currencies: list[str] | str | None = None,
                              direction: str | None = None,
                              biz_type: str | None = None,
                              start: Any = None, end: Any = None,
                              page_size: int | None = None,
                              max_pages: int | None = None) -> pd.DataFrame:
        """계정 원장 (페이지 방식 자동 페이지네이션).

        currencies 는 최대 10개, 쉼표로 합쳐 전송된다.
        """
        if isinstance(currencies, str):
            currencies = [currencies]
        if currencies is not None and len(currencies) > 10:
            raise ValueError("currencies accepts at most 10 entries")
        if direction is not None and direction not in ("in", "out"):
            raise ValueError('direction must be "in" or "out"')

        query: dict[str, Any] = {
            "currentPage": 1,
            "pageSize": page_size or self.client.config.page_size,
            "currency": ",".join(currencies) if currencies else None,
            "direction": direction,
            "bizType": biz_type,
        }
        if start is not None or end is not None:
            query.update(convert_datetime_range_to_ms(start, end))

        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", LEDGER_ENDPOINT, q),
            query,
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(items, LEDGER_SCHEMA, {"createdAt": "ms"}),
        )
