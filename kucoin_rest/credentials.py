"""API 자격증명 모듈 - Credential 데이터클래스 및 환경변수 제공자"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from kucoin_rest.config import Config
from kucoin_rest.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """KuCoin API 자격증명. secret/passphrase 는 repr 에 노출되지 않음."""
    key: str
    secret: str = field(repr=False)
    passphrase: str = field(repr=False)
    key_version: str = "2"

    REQUIRED_FIELDS = ("key", "secret", "passphrase", "key_version")

    def validate(self) -> None:
        """서명 전 필수 필드 확인 - 비어 있으면 ConfigurationError"""
        missing = [name for name in self.REQUIRED_FIELDS if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing API credential field(s): {', '.join(missing)}"
            )

    def masked(self) -> dict:
        """로그 출력용 마스킹 딕셔너리"""
        key = self.key
        return {
            "key": f"{key[:4]}***" if key else "",
            "secret": "***" if self.secret else "",
            "passphrase": "***" if self.passphrase else "",
            "key_version": self.key_version,
        }


class EnvCredentialProvider:
    """환경변수(또는 주입된 매핑)에서 Credential 구성"""

    KEY_VAR = "KC_API_KEY"
    SECRET_VAR = "KC_API_SECRET"
    PASSPHRASE_VAR = "KC_API_PASSPHRASE"
    KEY_VERSION_VAR = "KC_API_KEY_VERSION"

    def __init__(self, environ: Mapping[str, str] | None = None,
                 default_key_version: str = "2"):
        self.environ = os.environ if environ is None else environ
        self.default_key_version = default_key_version

    @classmethod
    def from_config(cls, config: Config,
                    environ: Mapping[str, str] | None = None) -> "EnvCredentialProvider":
        """Config.key_version 을 기본 키 버전으로 사용"""
        return cls(environ, default_key_version=config.key_version)

    def load(self) -> Credential:
        """환경변수에서 Credential 생성 (누락 시 ConfigurationError)"""
        credential = Credential(
            key=self.environ.get(self.KEY_VAR, ""),
            secret=self.environ.get(self.SECRET_VAR, ""),
            passphrase=self.environ.get(self.PASSPHRASE_VAR, ""),
            key_version=self.environ.get(self.KEY_VERSION_VAR, "") or self.default_key_version,
        )
        credential.validate()
        logger.info(f"[자격증명] 환경변수에서 로드: {credential.masked()}")
        return credential
