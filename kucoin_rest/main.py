"""CLI 진입점 - 서버 시간/오프셋 확인 및 캔들 다운로드 요약"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import pandas as pd

from kucoin_rest.client import KucoinClient
from kucoin_rest.config import Config
from kucoin_rest.klines import FREQ_TO_SECONDS
from kucoin_rest.market_data import SpotMarketData

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(config: Config) -> None:
    """stdout + log_dir/kucoin_rest.log 핸들러 구성"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # 디렉토리 생성 후 파일 핸들러 추가
    Path(config.log_dir).mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(
        Path(config.log_dir) / "kucoin_rest.log", encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(file_handler)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="KuCoin REST 서버 시간 확인 및 캔들 다운로드")
    parser.add_argument("config", nargs="?", default="config.yaml", help="설정 YAML 경로")
    parser.add_argument("--symbol", default="BTC-USDT")
    parser.add_argument("--freq", default="1hour", choices=list(FREQ_TO_SECONDS))
    parser.add_argument("--hours", type=float, default=24.0, help="조회 기간 (시간)")
    return parser.parse_args(argv)


async def main(config_path: str = "config.yaml", symbol: str = "BTC-USDT",
               freq: str = "1hour", hours: float = 24.0) -> pd.DataFrame:
    """서버 시간 측정 후 최근 hours 시간 캔들을 받아 요약 출력"""
    config = Config.from_yaml(config_path)
    setup_logging(config)

    client = KucoinClient(config)
    server_ms = await client.server_time.measure()
    logger.info("=== KuCoin REST 클라이언트 ===")
    logger.info(f"서버 시각: {pd.Timestamp(server_ms, unit='ms', tz='UTC')} ({server_ms})")
    logger.info(
        f"로컬 시계 오프셋: {client.server_time.offset_ms:.1f}ms, "
        f"RTT: {client.server_time.rtt * 1000:.1f}ms"
    )

    end = pd.Timestamp(server_ms, unit="ms", tz="UTC")
    start = end - pd.Timedelta(hours=hours)
    candles = await SpotMarketData(client).get_klines(symbol=symbol, freq=freq, start=start, end=end)

    if candles.empty:
        logger.warning(f"[캔들] {symbol} {freq}: 데이터 없음")
    else:
        logger.info(
            f"[캔들] {symbol} {freq}: {len(candles)}건 "
            f"{candles['datetime'].iloc[0]} ~ {candles['datetime'].iloc[-1]}, "
            f"종가 {candles['close'].iloc[-1]}, 거래량 합계 {candles['volume'].sum():.4f}"
        )
    return candles


def run(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    asyncio.run(main(args.config, args.symbol, args.freq, args.hours))


if __name__ == "__main__":
    run()
