"""Registered accounts and their institution categories.

The accounts table lists every account visible under the selected group.
Institution categories (銀行, 証券, カード ...) are not part of that table;
they come from the account lists on the home view, where a category
heading precedes the accounts filed under it.
"""

import re
from typing import Any

from playwright.async_api import Page

from mfcrawler.exceptions import SelectorNotFoundError
from mfcrawler.extractor import BaseScraper, RowSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import AccountStatus, RegisteredAccounts
from mfcrawler.parsers import parse_large_unit_integer
from mfcrawler.refresh import NAME_COLUMN, STATUS_COLUMN, classify_status
from mfcrawler.selectors import SiteUrls

log = get_logger(__name__)

ACCOUNT_LINK_RE = re.compile(r"/accounts/(show|show_manual|edit)/([^/?#]+)")

LINKED_TYPE = "自動連携"
MANUAL_TYPE = "手動"

BALANCE_COLUMN = 1
LAST_UPDATED_COLUMN = 2

_ACCOUNT_LISTS_JS = """
(lists) => lists.map((list) =>
  Array.from(list.children)
    .filter((li) => li.tagName === "LI")
    .map((li) => ({
      heading: li.classList.contains("heading-category-name"),
      account: li.classList.contains("account"),
      text: (li.textContent || "").trim(),
      links: Array.from(li.querySelectorAll("a[href]")).map((a) => a.getAttribute("href") || ""),
    }))
)
"""


def account_id_from_links(links: tuple[str, ...] | list[str]) -> tuple[str, str] | None:
    """Return (link kind, account id) from the first account link found."""
    for href in links:
        match = ACCOUNT_LINK_RE.search(href)
        if match:
            return match.group(1), match.group(2)
    return None


def parse_account_row(row: RowSnapshot, urls: SiteUrls) -> AccountStatus | None:
    """Build an account from a row of the accounts table.

    Returns None for rows without an account link (headers, spacer rows).
    """
    found = account_id_from_links(row.links)
    if found is None:
        return None
    kind, mf_id = found

    manual = kind == "show_manual"
    name_lines = [line.strip() for line in row.cell(NAME_COLUMN).splitlines() if line.strip()]
    status_text = row.cell(STATUS_COLUMN)
    status = classify_status(status_text)

    return AccountStatus(
        mf_id=mf_id,
        name=name_lines[0] if name_lines else mf_id,
        type=MANUAL_TYPE if manual else LINKED_TYPE,
        status=status,
        last_updated=row.cell(LAST_UPDATED_COLUMN),
        url=urls.account_detail(mf_id, manual=manual),
        total_assets=parse_large_unit_integer(row.cell(BALANCE_COLUMN)),
        error_message=status_text.strip() if status == "error" else None,
    )


def parse_institution_entries(lists: list[list[dict[str, Any]]]) -> dict[str, str]:
    """Map account ids to the category heading listed above them.

    Accounts that appear before any heading in their list are ignored.
    """
    categories: dict[str, str] = {}
    for entries in lists:
        current: str | None = None
        for entry in entries:
            if entry.get("heading"):
                current = str(entry.get("text", "")).strip() or None
                continue
            if not entry.get("account") or current is None:
                continue
            found = account_id_from_links(entry.get("links", []))
            if found is not None:
                categories[found[1]] = current
    return categories


def attach_categories(
    accounts: RegisteredAccounts, categories: dict[str, str]
) -> RegisteredAccounts:
    """Return a copy of the registry with institution categories filled in."""
    if not categories:
        return accounts
    return RegisteredAccounts(
        accounts=[
            account.model_copy(update={"category": categories[account.mf_id]})
            if account.mf_id in categories
            else account
            for account in accounts.accounts
        ]
    )


class AccountsScraper(BaseScraper[RegisteredAccounts]):
    """Reads the registered-accounts table (``/accounts``)."""

    @property
    def name(self) -> str:
        return "registered_accounts"

    @property
    def url(self) -> str:
        return self.urls.accounts

    async def parse(self, page: Page) -> RegisteredAccounts:
        """Parse every account row.

        Raises:
            SelectorNotFoundError: If the accounts table never renders,
                which usually means the session was not authenticated.
        """
        if not await self.wait_for_content(page, self.selectors.account_table):
            raise SelectorNotFoundError(selector=self.selectors.account_table, url=page.url)

        rows = await self.read_rows(page, self.selectors.account_rows)
        accounts = []
        for row in rows:
            account = parse_account_row(row, self.urls)
            if account is not None:
                accounts.append(account)

        log.info(
            "Registered accounts parsed",
            count=len(accounts),
            skipped_rows=len(rows) - len(accounts),
        )
        return RegisteredAccounts(accounts=accounts)


class InstitutionCategoriesScraper(BaseScraper[dict[str, str]]):
    """Reads account id to institution category from the home view."""

    @property
    def name(self) -> str:
        return "institution_categories"

    @property
    def url(self) -> str:
        return self.urls.home

    async def parse(self, page: Page) -> dict[str, str]:
        raw = await page.locator(self.selectors.account_lists).evaluate_all(_ACCOUNT_LISTS_JS)
        categories = parse_institution_entries(raw or [])
        log.info("Institution categories parsed", count=len(categories))
        return categories
