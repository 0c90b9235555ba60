"""Logging setup.

構造化ログ（structlog + JSON）の初期化を一元化する。Store や CSV アダプタは
`logger` をインポートしてイベント名＋キーワード引数で記録する。
"""

import logging

import structlog
from structlog import contextvars as structlog_contextvars

from .config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for application-wide logging.

    アプリ全体のロギング設定を行う。標準 logging をメッセージのみの形式で
    初期化し、structlog で ISO タイムスタンプと JSON 形式の出力を有効化する。
    """
    resolved = (level or settings.log_level or "INFO").upper()
    # stdlib 側の出力に "INFO:logger:" などのプレフィックスを付けない。
    # force=True で既存ハンドラ（uvicorn 等）を上書きして一貫化。
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger()
