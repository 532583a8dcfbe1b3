"""Backend account refresh: trigger and wait.

Clicking "一括更新" makes the service re-fetch every linked account in the
background. Rows show ``更新中`` while that is in flight. The poller
re-reads the status column until nothing is updating or its deadline
passes; a timeout is reported in the returned data, never raised.

Only the exact label ``更新中`` counts as updating. Compound labels such as
``更新中 → 一時停止中`` are terminal states of the service and must not keep
the poller waiting.
"""

import asyncio
import time
from typing import Iterable

from playwright.async_api import Page

from config.settings import CrawlerConfig, get_config
from mfcrawler.browser import navigate
from mfcrawler.extractor import ROWS_JS, RowSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import AccountIssue, AccountState, RefreshResult
from mfcrawler.selectors import NORMAL_STATUS, UPDATING_STATUS, PageSelectors, SiteUrls

log = get_logger(__name__)

# Column positions in the registered-accounts table
NAME_COLUMN = 0
STATUS_COLUMN = 3


def classify_status(text: str | None) -> AccountState:
    """Map a status cell to an account state by exact label."""
    value = (text or "").strip()
    if value == NORMAL_STATUS:
        return "normal"
    if value == UPDATING_STATUS:
        return "updating"
    return "error"


def count_updating(status_texts: Iterable[str | None]) -> int:
    """Count status cells whose stripped text is exactly ``更新中``."""
    return sum(1 for text in status_texts if (text or "").strip() == UPDATING_STATUS)


def collect_issues(rows: Iterable[tuple[str, str]]) -> list[AccountIssue]:
    """Build issues for every (name, status text) pair that is not normal."""
    issues = []
    for name, status_text in rows:
        state = classify_status(status_text)
        if state == "normal":
            continue
        issues.append(
            AccountIssue(
                name=name,
                status=state,
                error_message=status_text.strip() if state == "error" else None,
            )
        )
    return issues


class RefreshPoller:
    """Waits for backend refresh of registered accounts to settle.

    Args:
        config: Supplies the poll interval and deadline.
        selectors: DOM hooks of the accounts table.
        reload: Reload the page before each re-read. The accounts table is
            rendered server side, so a fresh read needs a reload.
    """

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        selectors: PageSelectors | None = None,
        reload: bool = True,
    ) -> None:
        self.config = config or get_config()
        self.selectors = selectors or PageSelectors()
        self.reload = reload
        self.poll_interval_sec = self.config.refresh_poll_interval_sec
        self.timeout_sec = self.config.refresh_timeout_sec
        self.clock = time.monotonic
        self.sleep = asyncio.sleep

    async def read_statuses(self, page: Page) -> list[tuple[str, str]]:
        """Read (account name, status text) for every account row."""
        raw = await page.locator(self.selectors.account_rows).evaluate_all(ROWS_JS)
        rows = [RowSnapshot.from_dict(r) for r in raw or []]
        return [
            (row.cell(NAME_COLUMN), row.cell(STATUS_COLUMN))
            for row in rows
            if len(row.cells) > STATUS_COLUMN
        ]

    async def wait(self, page: Page) -> RefreshResult:
        """Poll until no account is updating or the deadline passes."""
        statuses = await self.read_statuses(page)
        updating = count_updating(text for _, text in statuses)
        if updating == 0:
            log.info("No accounts updating", accounts=len(statuses))
            return RefreshResult(completed=True)

        deadline = self.clock() + self.timeout_sec
        log.info(
            "Waiting for account refresh",
            updating=updating,
            timeout_sec=self.timeout_sec,
            poll_interval_sec=self.poll_interval_sec,
        )

        while self.clock() < deadline:
            await self.sleep(self.poll_interval_sec)
            if self.reload:
                await page.reload(wait_until="domcontentloaded")

            statuses = await self.read_statuses(page)
            updating = count_updating(text for _, text in statuses)
            log.debug("Refresh poll", updating=updating)
            if updating == 0:
                log.info("Account refresh settled")
                return RefreshResult(completed=True)

        issues = collect_issues(statuses)
        log.warning(
            "Account refresh did not settle before deadline",
            updating=updating,
            issues=[issue.name for issue in issues],
        )
        return RefreshResult(
            completed=False,
            incomplete_accounts=[issue.name for issue in issues],
            issues=issues,
        )


async def refresh_all_accounts(
    page: Page,
    config: CrawlerConfig | None = None,
    poller: RefreshPoller | None = None,
) -> RefreshResult:
    """Trigger "一括更新" on the accounts page and wait for it to settle."""
    config = config or get_config()
    poller = poller or RefreshPoller(config)
    urls = SiteUrls(config.base_url)

    await navigate(page, urls.accounts, timeout_ms=config.navigation_timeout_ms)

    button = page.locator(poller.selectors.refresh_all_button).first
    if await button.count() == 0:
        log.warning("Refresh control not found, checking current statuses only")
    else:
        await button.click()
        await page.wait_for_load_state("domcontentloaded")
        log.info("Account refresh triggered")

    return await poller.wait(page)
