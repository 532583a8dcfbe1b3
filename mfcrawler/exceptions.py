"""Custom exception hierarchy for mfcrawler.

Every exception carries a human-readable message plus a context dictionary
so log records and post-mortem output show which URL, group or field was
involved.

Error classes map onto how the run reacts:
    - Configuration and credential errors are fatal and stop the process.
    - Navigation and group-switch errors propagate out of the phase that
      detected them.
    - Refresh incompleteness and unparsable cells are not errors; they are
      reported in the returned data.
"""

from datetime import UTC, datetime
from typing import Any


class CrawlerError(Exception):
    """Base exception for all mfcrawler errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class ConfigValidationError(CrawlerError):
    """Raised when a required configuration value is missing or invalid."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(
            message=f"Configuration validation failed for '{field}': {reason}",
            context={"field": field, "value": value, "reason": reason},
        )


class CredentialConfigurationError(ConfigValidationError):
    """Raised when the secret provider is not configured.

    Fatal: the entry point exits without producing a partial result.
    """


class CredentialError(CrawlerError):
    """Raised when a secret reference resolves to nothing usable."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to resolve secret '{reference}': {reason}",
            context={"reference": reference, "reason": reason},
        )


class BrowserInitializationError(CrawlerError):
    """Raised when the browser or its context fails to start."""

    def __init__(self, reason: str, browser_type: str = "chromium") -> None:
        super().__init__(
            message=f"Failed to initialize {browser_type} browser: {reason}",
            context={"browser_type": browser_type, "reason": reason},
        )


class NavigationError(CrawlerError):
    """Raised when a page does not reach the expected state in time."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Navigation to '{url}' failed: {reason}",
            context={"url": url, "reason": reason, "status_code": status_code},
        )
        self.status_code = status_code


class SessionStateError(CrawlerError):
    """Raised when an explicitly requested session artifact cannot be used."""

    def __init__(self, state_path: str, reason: str) -> None:
        super().__init__(
            message=f"Session state at '{state_path}' is unusable: {reason}",
            context={"state_path": state_path, "reason": reason},
        )


class ExtractionError(CrawlerError):
    """Raised when an expected page structure is missing."""

    def __init__(self, selector: str, url: str, reason: str) -> None:
        super().__init__(
            message=f"Extraction failed for selector '{selector}': {reason}",
            context={"selector": selector, "url": url, "reason": reason},
        )


class SelectorNotFoundError(ExtractionError):
    """Raised when a selector matches no elements."""

    def __init__(self, selector: str, url: str) -> None:
        super().__init__(
            selector=selector,
            url=url,
            reason="Selector matched zero elements - possible layout change",
        )


class GroupSwitchError(CrawlerError):
    """Raised when the live session cannot be moved to (or back to) a group."""

    def __init__(self, group_id: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to switch to group '{group_id}': {reason}",
            context={"group_id": group_id, "reason": reason},
        )
        self.group_id = group_id


class ConsistencyError(CrawlerError):
    """Raised in strict mode when a finished scrape breaks a consistency check.

    Attributes:
        findings: Human-readable descriptions of every failed check.
    """

    def __init__(self, findings: list[str]) -> None:
        super().__init__(
            message=f"Scrape result failed {len(findings)} consistency check(s)",
            context={"findings": "; ".join(findings)},
        )
        self.findings = findings


class LoggingInitializationError(CrawlerError):
    """Raised when the logging system fails to initialize."""

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
