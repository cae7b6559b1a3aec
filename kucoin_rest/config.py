"""클라이언트 설정 모듈 - config.yaml 로드 및 Config 데이터클래스"""

from dataclasses import dataclass, asdict
from pathlib import Path

import yaml

DEFAULT_BASE_URL = "https://api.kucoin.com"


@dataclass
class Config:
    """클라이언트 설정 (config.yaml에서 로드, 자격증명 제외)"""
    base_url: str = DEFAULT_BASE_URL
    key_version: str = "2"
    request_timeout: float = 3.0
    server_time_timeout: float = 3.0
    kline_timeout: float = 10.0
    retries: int = 3
    retry_delay: float = 1.0
    server_time_max_age: float = 0.0    # 0 = 서명 요청마다 서버 시간 조회
    skew_warning_ms: int = 5000
    page_size: int = 50
    page_ceiling: int = 1000            # 페이지네이션 하드 상한
    kline_max_candles: int = 1500
    kline_max_concurrency: int = 5
    log_dir: str = "./logs"
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """YAML 파일에서 Config 객체 생성"""
        p = Path(path)
        if not p.exists():
            return cls()
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_yaml(self, path: str) -> None:
        """Config 객체를 YAML 파일로 저장"""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, allow_unicode=True)

    def to_dict(self) -> dict:
        """Config를 딕셔너리로 변환"""
        return asdict(self)
