"""Structured logging configuration using loguru.

Two sinks are installed:
- a colorized, human-readable console sink on stderr
- a rotating JSON-lines file sink for later inspection of crawl runs

Modules obtain a bound logger through `get_logger(__name__)` and pass
context as keyword arguments (`log.info("Scraped", count=3)`). Records
emitted inside `log_context(group_id=...)` carry that context too, so the
lines of one group's scrape can be filtered out of a run log.

File timestamps are written in the crawl timezone (Asia/Tokyo by
default), matching the dates the service shows.
"""

import json
import sys
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo

from loguru import logger

from config.settings import CrawlerConfig, get_config
from mfcrawler.exceptions import LoggingInitializationError


def _json_serializer(record: dict[str, Any], tz: ZoneInfo) -> str:
    """Render a loguru record as a single JSON line.

    Args:
        record: Loguru record dictionary containing log metadata.
        tz: Timezone of the written timestamp.

    Returns:
        JSON-formatted string representation of the log record.
    """
    subset = {
        "timestamp": record["time"].astimezone(tz).isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if record["exception"] is not None:
        subset["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
            "traceback": record["exception"].traceback is not None,
        }

    if record["extra"]:
        subset["context"] = {k: v for k, v in record["extra"].items() if k != "serialized"}

    # ensure_ascii=False keeps Japanese account names readable in the file
    return json.dumps(subset, default=str, ensure_ascii=False) + "\n"


def _serializing_filter(tz: ZoneInfo) -> Callable[[dict[str, Any]], bool]:
    """Build a sink filter that stores the JSON line on the record."""

    def _filter(record: dict[str, Any]) -> bool:
        record["extra"]["serialized"] = _json_serializer(record, tz)
        return True

    return _filter


def _validate_log_directory(log_dir: Path) -> None:
    """Create the log directory and verify it is writable.

    Raises:
        LoggingInitializationError: If directory creation or write test fails.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)

        test_file = log_dir / ".write_test"
        test_file.write_text("write_test")
        test_file.unlink()

    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"Permission denied: {exc}",
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"OS error during directory validation: {exc}",
        ) from exc


def configure_logging(config: CrawlerConfig | None = None) -> None:
    """Initialize the logging sinks.

    Call once during bootstrap, before any crawl work starts.

    Args:
        config: Optional CrawlerConfig instance. Uses the cached one if None.

    Raises:
        LoggingInitializationError: If log directory validation fails.
    """
    if config is None:
        config = get_config()

    logger.remove()

    _validate_log_directory(config.log_dir)

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=console_format,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    log_file_path = config.log_dir / "mfcrawler_{time:YYYY-MM-DD}.json"

    logger.add(
        str(log_file_path),
        format="{extra[serialized]}",
        level=config.log_level,
        rotation=config.log_rotation,
        retention=config.log_retention,
        compression="gz",
        serialize=False,
        filter=_serializing_filter(ZoneInfo(config.timezone_id)),
    )

    logger.info(
        "Logging infrastructure initialized",
        app_name=config.app_name,
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
    )


def get_logger(name: str) -> "logger":
    """Get a logger bound with the module name.

    Args:
        name: Module or component name for log attribution.

    Returns:
        Loguru logger instance bound with the provided name context.
    """
    return logger.bind(module=name)


def log_context(**context: Any) -> AbstractContextManager[None]:
    """Attach context to every record logged inside the block.

    Example:
        with log_context(group_id="abc123"):
            log.info("Scraping group")  # record carries group_id
    """
    return logger.contextualize(**context)
