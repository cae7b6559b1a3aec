"""요청 서명 모듈 - KuCoin HMAC-SHA256 / base64 인증 헤더 생성"""

from __future__ import annotations

import base64
import hashlib
import hmac

from kucoin_rest.credentials import Credential
from kucoin_rest.models import RequestDescriptor, SignedHeaders

PLAINTEXT_PASSPHRASE_VERSIONS = {"1"}


def build_prehash(timestamp: int | str, method: str, path: str, body: str = "") -> str:
    """prehash = timestamp + METHOD + path + body"""
    return f"{timestamp}{method.upper()}{path}{body}"


def hmac_base64(secret: str, message: str) -> str:
    """base64(HMAC-SHA256(secret, message))"""
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def encode_passphrase(credential: Credential) -> str:
    """키 버전 2 이상은 HMAC 서명된 passphrase, 버전 1 은 평문"""
    if str(credential.key_version) in PLAINTEXT_PASSPHRASE_VERSIONS:
        return credential.passphrase
    return hmac_base64(credential.secret, credential.passphrase)


def sign(method: str, path: str, body: str, credential: Credential,
         timestamp: int | str) -> SignedHeaders:
    """순수 함수: 주어진 타임스탬프로 인증 헤더 생성.

    path 는 전송 URL 의 경로+쿼리스트링과 바이트 단위로 같아야 하고,
    body 는 바디가 없는 요청에서도 "" 로 전달해야 한다.
    """
    credential.validate()
    if body is None:
        body = ""
    ts = str(timestamp)
    signature = hmac_base64(credential.secret, build_prehash(ts, method, path, body))
    return SignedHeaders(
        api_key=credential.key,
        signature=signature,
        timestamp=ts,
        passphrase=encode_passphrase(credential),
        key_version=str(credential.key_version),
    )


def sign_request(descriptor: RequestDescriptor, credential: Credential,
                 timestamp: int | str) -> SignedHeaders:
    """RequestDescriptor 편의 래퍼"""
    return sign(descriptor.method, descriptor.path, descriptor.body, credential, timestamp)
