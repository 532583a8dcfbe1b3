"""mfcrawler entry point.

This module is the bootstrap layer. It contains no scraping logic; all
functional code resides in the mfcrawler package.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Run the crawl against the persisted session
    4. Write the result as camelCase JSON for the persistence layer
    5. Map fatal errors to exit codes

Usage:
    python main.py
"""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn

from loguru import logger

from config.settings import CrawlerConfig, get_config
from mfcrawler.credentials import CredentialProvider, KeyringSecretResolver
from mfcrawler.exceptions import (
    ConfigValidationError,
    ConsistencyError,
    CrawlerError,
    LoggingInitializationError,
)
from mfcrawler.logger import configure_logging


def _validate_startup_requirements(config: CrawlerConfig) -> None:
    """Pre-flight checks before the browser starts.

    Without a persisted session the external login flow has to run first,
    and it cannot without secret configuration. A missing configuration is
    fatal here rather than after the browser has started.

    Raises:
        SystemExit: If the output directory cannot be created.
        CredentialConfigurationError: If there is no session and no secret
            configuration to log in with.
    """
    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.critical(
            "Failed to create output directory",
            output_dir=str(config.output_dir),
            error=str(exc),
        )
        sys.exit(1)

    if not config.has_auth_state():
        CredentialProvider.from_config(config, KeyringSecretResolver(config))
        logger.warning(
            "No persisted session found; run the login flow to create it",
            auth_state_path=str(config.auth_state_path),
        )

    logger.debug(
        "Startup validation complete",
        output_dir=str(config.output_dir),
        base_url=config.base_url,
    )


def _write_result(config: CrawlerConfig, payload: str) -> Path:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    target = config.output_dir / f"scrape_{stamp}.json"
    target.write_text(payload, encoding="utf-8")
    return target


async def _run_pipeline(config: CrawlerConfig) -> int:
    """Execute the crawl and persist its result.

    Returns:
        Exit code (0 for success).
    """
    from mfcrawler.browser import BrowserManager
    from mfcrawler.scraper import scrape_all_groups

    logger.info(
        "Pipeline execution started",
        app_name=config.app_name,
        environment=config.environment,
        base_url=config.base_url,
    )

    async with BrowserManager.create(config, use_auth_state=True) as browser:
        page = await browser.new_page()
        async with browser.capture_on_error(page, "scrape-error"):
            result = await scrape_all_groups(page, config)

    output_path = _write_result(config, result.model_dump_json(by_alias=True, indent=2))

    refresh = result.global_data.refresh_result
    logger.info(
        "Pipeline execution completed successfully",
        output=str(output_path),
        groups=len(result.group_data_list),
        accounts=len(result.global_data.registered_accounts.accounts),
        refresh_completed=refresh.completed if refresh else None,
    )
    return 0


def _handle_fatal_error(exc: Exception) -> NoReturn:
    """Log a fatal error and exit with the matching code."""
    if isinstance(exc, ConsistencyError):
        logger.critical(
            "CRITICAL: Scrape result failed consistency checks",
            findings=exc.findings,
        )
        sys.exit(2)

    if isinstance(exc, CrawlerError):
        logger.critical(
            "Fatal application error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        sys.exit(1)

    logger.exception("Unexpected fatal error", error=str(exc))
    sys.exit(1)


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # Step 1: Load configuration (validates via Pydantic)
    try:
        config = get_config()
    except Exception as exc:
        # Cannot log yet - print to stderr
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    # Step 2: Initialize logging (fail-fast)
    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    # Step 3: Validate startup requirements
    try:
        _validate_startup_requirements(config)
    except ConfigValidationError as exc:
        logger.critical("Startup configuration invalid", message=exc.message, context=exc.context)
        return 1

    # Step 4: Execute async pipeline
    try:
        return asyncio.run(_run_pipeline(config))
    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return 130
    except Exception as exc:
        _handle_fatal_error(exc)


if __name__ == "__main__":
    sys.exit(main())
