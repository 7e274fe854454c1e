"""Application logging with Loguru.

Records go to stdout and a rotating file. When ALERT_WEBHOOK_URL is set,
ERROR records and listing alerts (mutation rollbacks, tagged with
``alert=True``) are also posted to the webhook.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

import httpx
from loguru import logger

from vanguard.core.config import settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[name]}:{function}:{line} | {message}"

LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}

# Track if logging is already configured to prevent duplicates
_logging_configured = False


class InterceptHandler(logging.Handler):
    """Redirect stdlib logs (uvicorn, httpx, sqlalchemy) to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(name=record.name).log(level, record.getMessage())


def resolve_level(raw: str | None, default: str = "INFO") -> str:
    """Normalize a level name; unknown names fall back to default."""
    level = (raw or default).strip().upper()
    level = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(level, level)
    return level if level in LEVELS else default


def is_alert(record: Dict[str, Any]) -> bool:
    """Records worth a webhook post: errors, or anything tagged as a listing alert."""
    return record["level"].no >= logger.level("ERROR").no or bool(record["extra"].get("alert"))


def alert_text(record: Dict[str, Any]) -> str:
    name = record["extra"].get("name") or record.get("name", "vanguard")
    text = f"[{record['level'].name}] {name}:{record['function']}:{record['line']}\n{record['message']}"
    item_id = record["extra"].get("item_id")
    if item_id:
        text += f"\nlisting: {item_id}"
    return text


def _alert_sink(message: Any) -> None:
    if not settings.ALERT_WEBHOOK_URL:
        return
    try:
        httpx.post(settings.ALERT_WEBHOOK_URL, json={"text": alert_text(message.record)}, timeout=5.0)
    except httpx.HTTPError:
        # Logging the failure here would recurse into this sink
        pass


def configure_logging() -> None:
    global _logging_configured

    if _logging_configured:
        return
    _logging_configured = True

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    level = resolve_level(settings.effective_log_level)

    logger.remove()
    logger.configure(extra={"name": "vanguard"})
    logger.add(sys.stdout, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)
    logger.add(
        log_dir / "vanguard.log",
        level=level,
        format=LOG_FORMAT,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

    if settings.ALERT_WEBHOOK_URL:
        logger.add(_alert_sink, level="WARNING", filter=is_alert, enqueue=True)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logging.getLogger(logger_name).handlers = [InterceptHandler()]
        logging.getLogger(logger_name).propagate = False

    # Listing loads and message polling would otherwise log one line per request
    http_level = resolve_level(settings.HTTP_CLIENT_LOG_LEVEL, default="WARNING")
    for logger_name in ["httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(http_level)


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)


configure_logging()
