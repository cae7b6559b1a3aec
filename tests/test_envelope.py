"""응답 envelope 검증 테스트
HTTP 상태 → JSON → code → data 순서의 오류 분류
"""

import json

import pytest

from kucoin_rest.envelope import MAX_ERROR_CONTENT, parse_envelope, validate_response
from kucoin_rest.exceptions import ApiError, HttpError, ParseError, ProtocolError
from kucoin_rest.transport import HttpResponse

URL = "https://api.kucoin.com/api/v1/accounts"


def resp(body, status=200):
    text = body if isinstance(body, str) else json.dumps(body)
    return HttpResponse(status=status, text=text, url=URL)


class TestValidateResponse:

    def test_success_returns_data(self):
        assert validate_response(resp({"code": "200000", "data": [1, 2]})) == [1, 2]

    def test_numeric_success_code(self):
        assert validate_response(resp({"code": 200000, "data": {"a": 1}})) == {"a": 1}

    def test_null_data_is_returned(self):
        assert validate_response(resp({"code": "200000", "data": None})) is None

    def test_api_error_without_data(self):
        with pytest.raises(ApiError) as exc:
            validate_response(resp({"code": "400100", "msg": "Bad Request"}))
        assert exc.value.code == "400100"
        assert exc.value.msg == "Bad Request"
        assert str(exc.value) == "KuCoin API returned an error: 400100 - Bad Request"

    def test_api_error_default_message(self):
        with pytest.raises(ApiError, match="No error message provided."):
            validate_response(resp({"code": "400001"}))

    def test_missing_data_on_success(self):
        with pytest.raises(ProtocolError, match="data"):
            validate_response(resp({"code": "200000"}))

    def test_missing_code(self):
        with pytest.raises(ProtocolError, match="code"):
            validate_response(resp({"data": 1}))

    def test_non_object_body(self):
        with pytest.raises(ProtocolError):
            validate_response(resp([1, 2, 3]))

    def test_invalid_json(self):
        with pytest.raises(ParseError):
            validate_response(resp("<html>gateway</html>"))

    def test_http_error_checked_before_json(self):
        with pytest.raises(HttpError) as exc:
            validate_response(resp("not json", status=503))
        assert exc.value.status == 503
        assert exc.value.is_transient
        assert URL in str(exc.value)

    def test_http_error_with_api_body(self):
        """HTTP 4xx 는 본문에 code 가 있어도 HttpError"""
        with pytest.raises(HttpError) as exc:
            validate_response(resp({"code": "400005", "msg": "Invalid KC-API-SIGN"}, status=401))
        assert not exc.value.is_transient
        assert "400005" in exc.value.content

    def test_http_error_content_truncated(self):
        with pytest.raises(HttpError) as exc:
            validate_response(resp("x" * (MAX_ERROR_CONTENT + 500), status=500))
        assert len(exc.value.content) == MAX_ERROR_CONTENT

    def test_rate_limit_is_transient(self):
        with pytest.raises(HttpError) as exc:
            validate_response(resp("", status=429))
        assert exc.value.is_transient


class TestParseEnvelope:

    def test_has_data_flag(self):
        env = parse_envelope(resp({"code": "200000"}))
        assert env.ok
        assert env.has_data is False

    def test_error_envelope(self):
        env = parse_envelope(resp({"code": "400100", "msg": "m", "data": None}))
        assert not env.ok
        assert env.msg == "m"
        assert env.has_data
