"""서브계정 엔드포인트 - 생성, 목록 요약, 계정별 잔고 상세"""

from __future__ import annotations

import logging
import re
from typing import Any

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.frames import frame_from_record, frame_from_records
from kucoin_rest.models import RequestDescriptor
from kucoin_rest.utils import require_path_id

logger = logging.getLogger(__name__)

SUBACCOUNT_ACCESS = ("Spot", "Futures", "Margin")
SUBACCOUNT_BALANCE_GROUPS = ("mainAccounts", "tradeAccounts", "marginAccounts", "tradeHFAccounts")

# 7~32자, 숫자와 영문자 모두 포함
_SUBNAME_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d]{7,32}$")
# 7~24자, 숫자와 영문자 모두 포함, 공백 불가
_PASSWORD_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)\S{7,24}$")

ADD_SUBACCOUNT_SCHEMA = {
    "uid": "float",
    "subName": "str",
    "remarks": "str",
    "access": "str",
}

SUBACCOUNT_SUMMARY_SCHEMA = {
    "userId": "str",
    "uid": "float",
    "subName": "str",
    "status": "float",
    "type": "float",
    "access": "str",
    "createdAt": "float",
    "remarks": "str",
    "tradeTypes": "str",
    "openTradeTypes": "str",
}

SUBACCOUNT_BALANCE_SCHEMA = {
    "accountType": "str",
    "subUserId": "str",
    "subName": "str",
    "currency": "str",
    "balance": "float",
    "available": "float",
    "holds": "float",
    "baseCurrency": "str",
    "baseCurrencyPrice": "float",
    "baseAmount": "float",
}


def _join_types(record: dict[str, Any]) -> dict[str, Any]:
    """tradeTypes/openTradeTypes 배열을 ';' 문자열로"""
    row = dict(record)
    for key in ("tradeTypes", "openTradeTypes"):
        value = row.get(key)
        if isinstance(value, list):
            row[key] = ";".join(str(v) for v in value)
    return row


class SubAccount:
    """서브계정 관리 (모두 서명 요청)"""

    def __init__(self, client: KucoinClient):
        self.client = client

    async def add_subaccount(self, password: str, sub_name: str, access: str,
                             remarks: str | None = None) -> pd.DataFrame:
        """POST /api/v2/sub/user/created"""
        if not _SUBNAME_PATTERN.match(sub_name or ""):
            raise ValueError("sub_name must be 7-32 characters with both letters and numbers")
        if not _PASSWORD_PATTERN.match(password or ""):
            raise ValueError("password must be 7-24 characters with both letters and numbers")
        if access not in SUBACCOUNT_ACCESS:
            raise ValueError(f"access must be one of {SUBACCOUNT_ACCESS}")
        if remarks is not None and not 1 <= len(remarks) <= 24:
            raise ValueError("remarks must be 1-24 characters")

        body: dict[str, Any] = {"password": password, "subName": sub_name, "access": access}
        if remarks is not None:
            body["remarks"] = remarks
        data = await self.client.execute_signed(
            RequestDescriptor.build("POST", "/api/v2/sub/user/created", body=body))
        logger.info(f"[서브계정] {sub_name} 생성 완료")
        return frame_from_record(data, ADD_SUBACCOUNT_SCHEMA)

    async def get_subaccount_list_summary(self, page_size: int = 100,
                                          max_pages: int | None = None) -> pd.DataFrame:
        """GET /api/v2/sub/user (페이지 방식)"""
        if not 1 <= page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")
        return await self.client.execute_signed_paginated(
            lambda q: RequestDescriptor.build("GET", "/api/v2/sub/user", q),
            {"currentPage": 1, "pageSize": page_size},
            max_pages=max_pages,
            aggregate=lambda items: frame_from_records(
                [_join_types(item) for item in items],
                SUBACCOUNT_SUMMARY_SCHEMA, {"createdAt": "ms"},
            ),
        )

    async def get_subaccount_detail_balance(self, sub_user_id: str,
                                            include_base_amount: bool = False) -> pd.DataFrame:
        """서브계정 잔고: 계정 그룹별 배열을 accountType 컬럼으로 구분해 한 프레임으로"""
        require_path_id("sub_user_id", sub_user_id)
        data = await self.client.execute_signed(RequestDescriptor.build(
            "GET", f"/api/v1/sub-accounts/{sub_user_id}",
            {"includeBaseAmount": include_base_amount}))
        data = data or {}

        rows = []
        for group in SUBACCOUNT_BALANCE_GROUPS:
            for entry in data.get(group) or []:
                rows.append({
                    **entry,
                    "accountType": group,
                    "subUserId": data.get("subUserId"),
                    "subName": data.get("subName"),
                })
        return frame_from_records(rows, SUBACCOUNT_BALANCE_SCHEMA)
