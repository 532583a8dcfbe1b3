"""Crawler configuration using pydantic-settings.

Values are read from environment variables (and an optional `.env` file)
with strict type validation. `get_config()` caches a single instance for
the process; tests clear the cache to get a fresh one.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

AUTH_STATE_FILENAME = "auth-state.json"


class CrawlerConfig(BaseSettings):
    """Runtime configuration for the crawler.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment.
        debug: Enable verbose tracebacks in log output.
        headless: Run the browser without a visible window.
        log_level: Minimum log level.
        log_dir: Directory for JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        base_url: Root URL of the finance service.
        data_dir: Directory holding the persisted session artifact.
        output_dir: Directory the entry point writes result dumps to.
        screenshot_dir: Directory for error screenshots.
        locale: Browser locale.
        timezone_id: Browser timezone.
        user_agent: Fixed desktop user agent.
        viewport_width: Browser viewport width.
        viewport_height: Browser viewport height.
        default_timeout_ms: Default timeout for element actions.
        navigation_timeout_ms: Timeout for page navigations.
        group_switch_timeout_ms: Timeout for a group switch to show up in the selector.
        refresh_poll_interval_sec: Delay between refresh status reads.
        refresh_timeout_sec: Deadline for accounts to leave the updating state.
        degraded_parse_threshold: Maximum ratio of numeric cells that fell back to zero.
        strict_consistency: Raise instead of logging on consistency findings.
        secret_vault: Vault holding the login item.
        secret_item: Item holding username, password and one-time code.
        secret_totp_field: Field name of the one-time code.
        keyring_service: Service prefix for the keyring secret backend.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = Field(default="mfcrawler", description="Application identifier")
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Browser Configuration
    headless: bool = Field(default=True, description="Run browser in headless mode")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Target Configuration
    base_url: str = Field(
        default="https://moneyforward.com/",
        description="Finance service base URL",
    )

    # Paths
    data_dir: Path = Field(default=Path("data"), description="Session artifact directory")
    output_dir: Path = Field(default=Path("output"), description="Result dump directory")
    screenshot_dir: Path = Field(
        default=Path("data/screenshots"), description="Error screenshot directory"
    )

    # Browser fingerprint
    locale: str = Field(default="ja-JP", description="Browser locale")
    timezone_id: str = Field(default="Asia/Tokyo", description="Browser timezone")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="Fixed desktop user agent",
    )
    viewport_width: int = Field(default=1440, ge=800, le=3840)
    viewport_height: int = Field(default=900, ge=600, le=2160)

    # Timeouts
    default_timeout_ms: int = Field(
        default=5000, ge=1000, le=60000, description="Default action timeout"
    )
    navigation_timeout_ms: int = Field(
        default=30000, ge=5000, le=120000, description="Navigation timeout"
    )
    group_switch_timeout_ms: int = Field(
        default=15000, ge=1000, le=120000, description="Group switch confirmation timeout"
    )

    # Refresh polling
    refresh_poll_interval_sec: float = Field(
        default=5.0, ge=0.0, le=60.0, description="Refresh status poll interval"
    )
    refresh_timeout_sec: float = Field(
        default=300.0, ge=0.0, le=1800.0, description="Refresh completion deadline"
    )

    # Consistency monitoring
    degraded_parse_threshold: float = Field(
        default=0.30, ge=0.0, le=1.0, description="Degraded parse ratio threshold"
    )
    strict_consistency: bool = Field(
        default=False, description="Raise on consistency findings"
    )

    # Secret references
    secret_vault: str = Field(default="", description="Secret vault name")
    secret_item: str = Field(default="", description="Secret item name")
    secret_totp_field: str = Field(default="", description="One-time code field name")
    keyring_service: str = Field(default="mfcrawler", description="Keyring service prefix")

    @field_validator("log_dir", "data_dir", "output_dir", "screenshot_dir", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Ensure base_url ends with trailing slash for consistent URL joining."""
        return value if value.endswith("/") else f"{value}/"

    @property
    def auth_state_path(self) -> Path:
        """Absolute path of the persisted session artifact."""
        return (self.data_dir / AUTH_STATE_FILENAME).resolve()

    def has_auth_state(self) -> bool:
        """Check whether a persisted session artifact exists."""
        return self.auth_state_path.exists()


@lru_cache(maxsize=1)
def get_config() -> CrawlerConfig:
    """Retrieve the cached CrawlerConfig instance.

    Returns:
        CrawlerConfig: The validated configuration instance.
    """
    return CrawlerConfig()
