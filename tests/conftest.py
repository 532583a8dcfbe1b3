"""Pytest configuration and shared fixtures for the mfcrawler test suite.

This module provides hermetic test infrastructure:
- No network or real browser (Playwright is replaced by doubles)
- Isolated configuration (environment overrides, cache cleared per test)
- All file output under tmp_path
"""

from pathlib import Path
from typing import Any, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_mock import MockerFixture

from config.settings import CrawlerConfig


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[CrawlerConfig]:
    """Provide an isolated CrawlerConfig with fast test defaults.

    Clears the lru_cache around the test so environment overrides take
    effect and do not leak into other tests.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    output_dir = tmp_path / "output"
    data_dir = tmp_path / "data"
    log_dir.mkdir()
    output_dir.mkdir()
    data_dir.mkdir()

    test_env = {
        "APP_NAME": "mfcrawler-test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "HEADLESS": "true",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "BASE_URL": "https://test.example.com/",
        "DATA_DIR": str(data_dir),
        "OUTPUT_DIR": str(output_dir),
        "SCREENSHOT_DIR": str(tmp_path / "screenshots"),
        "DEFAULT_TIMEOUT_MS": "1000",
        "NAVIGATION_TIMEOUT_MS": "5000",
        "GROUP_SWITCH_TIMEOUT_MS": "2000",
        "REFRESH_POLL_INTERVAL_SEC": "0",
        "REFRESH_TIMEOUT_SEC": "30",
        "DEGRADED_PARSE_THRESHOLD": "0.30",
        "STRICT_CONSISTENCY": "false",
        "SECRET_VAULT": "test-vault",
        "SECRET_ITEM": "test-item",
        "SECRET_TOTP_FIELD": "totp",
        "KEYRING_SERVICE": "mfcrawler-test",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def storage_state(tmp_path: Path) -> Path:
    """A valid persisted session artifact."""
    path = tmp_path / "state.json"
    path.write_text('{"cookies": [], "origins": []}', encoding="utf-8")
    return path


@pytest.fixture
def mock_browser_context(mocker: MockerFixture) -> MagicMock:
    """Provide mocked Playwright BrowserContext."""
    context = mocker.MagicMock()
    context.new_page = mocker.AsyncMock()
    context.close = mocker.AsyncMock()
    context.add_init_script = mocker.AsyncMock()
    return context


@pytest.fixture
def mock_browser(mocker: MockerFixture, mock_browser_context: MagicMock) -> MagicMock:
    """Provide mocked Playwright Browser."""
    browser = mocker.MagicMock()
    browser.new_context = mocker.AsyncMock(return_value=mock_browser_context)
    browser.close = mocker.AsyncMock()
    return browser


@pytest.fixture
def mock_playwright(mocker: MockerFixture, mock_browser: MagicMock) -> MagicMock:
    """Patch ``async_playwright()`` and return the Playwright double."""
    playwright = mocker.MagicMock()
    playwright.chromium.launch = mocker.AsyncMock(return_value=mock_browser)
    playwright.stop = mocker.AsyncMock()

    starter = mocker.MagicMock()
    starter.start = AsyncMock(return_value=playwright)
    mocker.patch("mfcrawler.browser.async_playwright", return_value=starter)
    return playwright


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
