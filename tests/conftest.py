"""공용 테스트 픽스처 - 응답을 순서대로 돌려주는 가짜 HTTP 실행기"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import pytest

from kucoin_rest.client import KucoinClient
from kucoin_rest.config import Config
from kucoin_rest.credentials import Credential
from kucoin_rest.exceptions import NetworkError
from kucoin_rest.server_time import TIME_ENDPOINT
from kucoin_rest.transport import HttpResponse

SERVER_TIME_MS = 1700000000000


def ok(data: Any) -> dict:
    return {"code": "200000", "data": data}


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    body: str
    timeout: float

    @property
    def path(self) -> str:
        """경로 + 쿼리스트링 (서명 대상과 같은 형태)"""
        parts = urlsplit(self.url)
        return parts.path + (f"?{parts.query}" if parts.query else "")


@dataclass
class FakeExecutor:
    """경로별로 준비된 응답을 순서대로 반환하고 모든 호출을 기록.

    응답 값은 dict(JSON 본문), HttpResponse, 예외, 또는 RecordedCall 을 받는 함수.
    /api/v1/timestamp 는 별도 지정이 없으면 항상 server_time 을 반환한다.
    """
    server_time: int = SERVER_TIME_MS
    routes: dict[str, list[Any]] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)

    def add(self, endpoint: str, *responses: Any) -> "FakeExecutor":
        self.routes.setdefault(endpoint, []).extend(responses)
        return self

    def calls_to(self, endpoint: str) -> list[RecordedCall]:
        return [c for c in self.calls if urlsplit(c.url).path == endpoint]

    async def send(self, method: str, url: str, headers: dict[str, str] | None = None,
                   body: str = "", timeout: float = 3.0) -> HttpResponse:
        call = RecordedCall(method, url, dict(headers or {}), body, timeout)
        self.calls.append(call)
        endpoint = urlsplit(url).path

        queue = self.routes.get(endpoint)
        if not queue:
            if endpoint == TIME_ENDPOINT:
                return HttpResponse(200, json.dumps(ok(self.server_time)), url)
            raise NetworkError(f"No scripted response for {method} {endpoint}", url)

        # 마지막 응답은 계속 재사용
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            response = response(call)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, HttpResponse):
            return response
        return HttpResponse(200, json.dumps(response), url)


@pytest.fixture
def credential():
    return Credential(key="k", secret="s", passphrase="p", key_version="2")


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def config(tmp_path):
    return Config(retry_delay=0.0, log_dir=str(tmp_path / "logs"))


@pytest.fixture
def client(config, credential, executor):
    return KucoinClient(config, credential=credential, executor=executor)
