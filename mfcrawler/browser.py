"""Browser session management.

Wraps Playwright so the rest of the crawler only ever sees a page bound to
a fixed locale, timezone, user agent and timeout policy, optionally loaded
with a previously persisted authenticated session.

The manager only consumes session state. Producing it (logging in and
saving the storage state) belongs to the external login flow.

Example:
    async with BrowserManager.create(config, use_auth_state=True) as browser:
        page = await browser.new_page()
        async with browser.capture_on_error(page, "scrape"):
            result = await scrape_all_groups(page, config)
"""

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, AsyncIterator, Self

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.settings import CrawlerConfig, get_config
from mfcrawler.exceptions import (
    BrowserInitializationError,
    NavigationError,
    SessionStateError,
)
from mfcrawler.logger import get_logger

log = get_logger(__name__)

_WEBDRIVER_MASK_JS = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined,
});
Object.defineProperty(navigator, 'languages', {
    get: () => ['ja-JP', 'ja', 'en-US'],
});
"""


class BrowserManager:
    """Owns the Playwright browser, its single context and the session state.

    Attributes:
        config: CrawlerConfig with fingerprint and timeout settings.
        storage_state_path: Session artifact loaded into the context, if any.

    Note:
        Use the `create()` factory; it guarantees cleanup.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        storage_state_path: Path | None = None,
        use_auth_state: bool = False,
    ) -> None:
        self.config = config
        self.storage_state_path = self._resolve_state_path(storage_state_path, use_auth_state)
        self._explicit_state = storage_state_path is not None
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        config: CrawlerConfig | None = None,
        storage_state_path: Path | str | None = None,
        use_auth_state: bool = False,
    ) -> AsyncGenerator[Self, None]:
        """Launch a browser and yield a ready manager.

        Args:
            config: Optional CrawlerConfig. Uses the cached one if not provided.
            storage_state_path: Explicit session artifact to load.
            use_auth_state: Load the last persisted session when it exists.
                Ignored when `storage_state_path` is given.

        Yields:
            Initialized BrowserManager instance.

        Raises:
            BrowserInitializationError: If browser launch fails.
            SessionStateError: If an explicit session artifact is unusable.
        """
        if config is None:
            config = get_config()

        path = Path(storage_state_path) if storage_state_path is not None else None
        instance = cls(config, storage_state_path=path, use_auth_state=use_auth_state)
        try:
            await instance._initialize()
            yield instance
        finally:
            await instance._cleanup()

    def _resolve_state_path(self, explicit: Path | None, use_auth_state: bool) -> Path | None:
        if explicit is not None:
            return explicit
        if use_auth_state and self.config.has_auth_state():
            return self.config.auth_state_path
        return None

    async def _initialize(self) -> None:
        """Start Playwright, launch Chromium and open the context.

        Raises:
            BrowserInitializationError: If any initialization step fails.
        """
        log.info(
            "Initializing browser",
            headless=self.config.headless,
            session_state=str(self.storage_state_path) if self.storage_state_path else None,
        )

        # Session problems are reported as such, not as launch failures
        storage_state = self._load_state()

        try:
            self._playwright = await async_playwright().start()

            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )

            await self._create_context(storage_state)

            log.info("Browser initialized successfully")

        except Exception as exc:
            await self._cleanup()
            raise BrowserInitializationError(
                reason=str(exc), browser_type="chromium"
            ) from exc

    async def _create_context(self, storage_state: dict[str, Any] | None) -> None:
        """Open the browser context with the fixed fingerprint and timeouts."""
        if self._browser is None:
            raise BrowserInitializationError(
                reason="Browser not initialized", browser_type="chromium"
            )

        context_options: dict[str, Any] = {
            "viewport": {
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            "user_agent": self.config.user_agent,
            "locale": self.config.locale,
            "timezone_id": self.config.timezone_id,
        }

        if storage_state is not None:
            context_options["storage_state"] = storage_state
            log.info("Loaded persisted session state")

        self._context = await self._browser.new_context(**context_options)
        self._context.set_default_timeout(self.config.default_timeout_ms)
        self._context.set_default_navigation_timeout(self.config.navigation_timeout_ms)

        await self._context.add_init_script(_WEBDRIVER_MASK_JS)

    def _load_state(self) -> dict[str, Any] | None:
        """Read and sanity-check the session artifact.

        Returns:
            Storage state dictionary, or None to start without a session.

        Raises:
            SessionStateError: If an explicitly requested artifact is missing
                or malformed. A malformed last-known session is skipped with
                a warning instead.
        """
        state_path = self.storage_state_path
        if state_path is None:
            log.debug("No session state requested")
            return None

        try:
            state_data = json.loads(state_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            return self._reject_state(state_path, "file not found", exc)
        except json.JSONDecodeError as exc:
            return self._reject_state(state_path, f"invalid JSON: {exc}", exc)
        except OSError as exc:
            return self._reject_state(state_path, f"unreadable: {exc}", exc)

        if not isinstance(state_data, dict) or "cookies" not in state_data or "origins" not in state_data:
            return self._reject_state(state_path, "missing cookies/origins", None)

        return state_data

    def _reject_state(self, state_path: Path, reason: str, exc: Exception | None) -> None:
        if self._explicit_state:
            raise SessionStateError(state_path=str(state_path), reason=reason) from exc
        log.warning(
            "Persisted session state unusable, starting without it",
            path=str(state_path),
            reason=reason,
        )
        return None

    async def new_page(self) -> Page:
        """Create a new page within the current browser context.

        Raises:
            BrowserInitializationError: If context is not initialized.
        """
        if self._context is None:
            raise BrowserInitializationError(
                reason="Browser context not initialized", browser_type="chromium"
            )

        page = await self._context.new_page()
        log.debug("New page created")
        return page

    async def navigate(
        self,
        page: Page,
        url: str,
        wait_until: str = "domcontentloaded",
    ) -> None:
        """Navigate to a URL and check the response.

        Raises:
            NavigationError: If navigation fails, times out or returns HTTP >= 400.
        """
        await navigate(page, url, wait_until=wait_until, timeout_ms=self.config.navigation_timeout_ms)

    async def save_screenshot(self, page: Page, name: str) -> Path | None:
        """Save a full-page screenshot for post-mortem debugging.

        Returns:
            Path of the written file, or None when capturing failed.
        """
        target = self.config.screenshot_dir / f"{name}.png"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(target), full_page=True)
        except Exception as exc:
            log.warning("Failed to capture screenshot", path=str(target), error=str(exc))
            return None

        log.info("Screenshot saved", path=str(target), url=page.url)
        return target

    @asynccontextmanager
    async def capture_on_error(self, page: Page, name: str) -> AsyncIterator[Page]:
        """Screenshot the page if the wrapped block raises, then re-raise.

        The page is still open when the screenshot is taken because the
        block's exception reaches this manager before any cleanup runs.
        """
        try:
            yield page
        except Exception:
            await self.save_screenshot(page, name)
            raise

    async def _cleanup(self) -> None:
        """Clean up browser resources in reverse initialization order."""
        if self._context is not None:
            try:
                await self._context.close()
            except Exception as exc:
                log.warning("Error closing context", error=str(exc))
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                log.warning("Error closing browser", error=str(exc))
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.warning("Error stopping playwright", error=str(exc))
            self._playwright = None

        log.info("Browser resources cleaned up")

    @property
    def context(self) -> BrowserContext | None:
        """Access the current browser context."""
        return self._context

    @property
    def is_initialized(self) -> bool:
        """Check if browser is fully initialized and ready."""
        return all([
            self._playwright is not None,
            self._browser is not None,
            self._context is not None,
        ])


async def navigate(
    page: Page,
    url: str,
    wait_until: str = "domcontentloaded",
    timeout_ms: int | None = None,
) -> None:
    """Navigate a page and translate failures into NavigationError.

    Scrapers call this directly; they receive a page, not the manager.

    Raises:
        NavigationError: If navigation fails, times out or returns HTTP >= 400.
    """
    log.debug("Navigating to URL", url=url, wait_until=wait_until)

    try:
        if timeout_ms is None:
            response = await page.goto(url, wait_until=wait_until)
        else:
            response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)

        if response is None:
            raise NavigationError(url=url, reason="No response received")

        status_code = response.status
        if status_code >= 400:
            raise NavigationError(
                url=url,
                reason=f"HTTP {status_code}",
                status_code=status_code,
            )

        log.info("Navigation successful", url=url, status_code=status_code)

    except NavigationError:
        raise
    except (TimeoutError, PlaywrightTimeoutError) as exc:
        raise NavigationError(url=url, reason=f"Navigation timeout: {exc}") from exc
    except Exception as exc:
        raise NavigationError(url=url, reason=str(exc)) from exc
