"""
File: app/core/logging.py
Description: 全局日志配置模块 (Loguru)

本模块负责：
1. 接管标准库 logging (Uvicorn / FastAPI / SQLAlchemy)，统一走 Loguru
2. 开发环境彩色文本，生产环境 JSON (serialize)
3. 可选的按时间轮转文件 Sink
4. patcher 兜底：extra 中的令牌类字段一律替换为掩码

注意：
httpx 在 INFO 级别会打印完整请求 URL，而 Google tokeninfo 的 id_token
以 query 参数传递，因此 httpx/httpcore 日志被压到 WARNING。

Author: jinmozhe
Created: 2025-11-24
Updated: 2026-10-19 (Token redaction patcher)
"""

import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from app.core.config import settings
from app.utils.masking import MASK

QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

SECRET_EXTRA_KEYS: frozenset[str] = frozenset(
    {"id_token", "access_token", "refresh_token", "authorization", "password"}
)


class InterceptHandler(logging.Handler):
    """标准库 LogRecord -> Loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 跳过 logging 模块自身的栈帧，行号才指向真实调用方
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def redact_secrets(record: dict[str, Any]) -> None:
    """Loguru patcher：掩盖 extra 中的令牌 / 口令"""
    extra = record["extra"]
    for key in SECRET_EXTRA_KEYS.intersection(extra):
        extra[key] = MASK


def format_record(record: dict[str, Any]) -> str:
    line = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    if record["extra"].get("request_id"):
        line += " | <magenta>req_id={extra[request_id]}</magenta>"
    return line + "\n{exception}"


def _sink_options(*, colorize: bool) -> dict[str, Any]:
    options: dict[str, Any] = {
        "level": settings.LOG_LEVEL,
        "enqueue": True,
        "backtrace": True,
        "diagnose": settings.LOG_DIAGNOSE,
    }
    if settings.LOG_JSON_FORMAT:
        options["serialize"] = True
    else:
        options["format"] = format_record
        options["colorize"] = colorize
    return options


def _intercept_stdlib() -> None:
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(settings.LOG_LEVEL)

    for name in list(logging.root.manager.loggerDict):
        if name.startswith(("uvicorn.", "fastapi.")):
            std_logger = logging.getLogger(name)
            std_logger.handlers = []
            std_logger.propagate = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging() -> None:
    """应用启动 (lifespan) 时调用一次"""
    _intercept_stdlib()

    logger.remove()
    logger.configure(patcher=redact_secrets)

    logger.add(sys.stdout, **_sink_options(colorize=True))

    if settings.LOG_FILE_ENABLED:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "app_{time:YYYY-MM-DD_HH}.log"),
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            compression=settings.LOG_COMPRESSION,
            **_sink_options(colorize=False),
        )

    logger.info("Logging configured successfully")
