"""Tests for configuration management and validation.

Validates CrawlerConfig behavior including:
- Environment variable loading
- Pydantic validation rules
- Path normalization and the session artifact location
- Cache behavior of get_config()
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.settings import AUTH_STATE_FILENAME, CrawlerConfig


class TestCrawlerConfigValidation:
    """Test suite for CrawlerConfig validation rules."""

    def test_default_values_are_sane(self, mock_config: CrawlerConfig) -> None:
        assert mock_config.headless is True
        assert mock_config.locale == "ja-JP"
        assert mock_config.timezone_id == "Asia/Tokyo"
        assert 0.0 <= mock_config.degraded_parse_threshold <= 1.0

    def test_production_timeout_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("DEFAULT_TIMEOUT_MS", "NAVIGATION_TIMEOUT_MS", "REFRESH_POLL_INTERVAL_SEC"):
            monkeypatch.delenv(name, raising=False)

        config = CrawlerConfig(_env_file=None)

        assert config.default_timeout_ms == 5000
        assert config.navigation_timeout_ms == 30000
        assert config.refresh_poll_interval_sec == 5.0
        assert config.refresh_timeout_sec == 300.0

    def test_navigation_timeout_bounds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from config.settings import get_config

        get_config.cache_clear()
        monkeypatch.setenv("NAVIGATION_TIMEOUT_MS", "100")

        with pytest.raises(ValidationError):
            get_config()

        get_config.cache_clear()

    def test_threshold_must_be_ratio(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from config.settings import get_config

        get_config.cache_clear()
        monkeypatch.setenv("DEGRADED_PARSE_THRESHOLD", "1.5")

        with pytest.raises(ValidationError):
            get_config()

        get_config.cache_clear()

    def test_invalid_environment_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from config.settings import get_config

        get_config.cache_clear()
        monkeypatch.setenv("ENVIRONMENT", "qa")

        with pytest.raises(ValidationError):
            get_config()

        get_config.cache_clear()


class TestPathsAndUrls:
    """Test suite for path and URL normalization."""

    def test_base_url_gets_trailing_slash(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from config.settings import get_config

        get_config.cache_clear()
        monkeypatch.setenv("BASE_URL", "https://moneyforward.example.com")

        assert get_config().base_url == "https://moneyforward.example.com/"

        get_config.cache_clear()

    def test_paths_are_path_objects(self, mock_config: CrawlerConfig) -> None:
        assert isinstance(mock_config.log_dir, Path)
        assert isinstance(mock_config.data_dir, Path)
        assert isinstance(mock_config.screenshot_dir, Path)

    def test_auth_state_path_under_data_dir(self, mock_config: CrawlerConfig) -> None:
        path = mock_config.auth_state_path

        assert path.is_absolute()
        assert path.name == AUTH_STATE_FILENAME
        assert path.parent == mock_config.data_dir.resolve()

    def test_has_auth_state_follows_file(self, mock_config: CrawlerConfig) -> None:
        assert mock_config.has_auth_state() is False

        mock_config.auth_state_path.write_text('{"cookies": [], "origins": []}')

        assert mock_config.has_auth_state() is True


class TestConfigCache:
    """Test suite for get_config() caching."""

    def test_get_config_returns_same_instance(self, mock_config: CrawlerConfig) -> None:
        from config.settings import get_config

        assert get_config() is get_config()

    def test_cache_clear_picks_up_environment(
        self, mock_config: CrawlerConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from config.settings import get_config

        monkeypatch.setenv("STRICT_CONSISTENCY", "true")
        assert get_config().strict_consistency is False

        get_config.cache_clear()
        assert get_config().strict_consistency is True
