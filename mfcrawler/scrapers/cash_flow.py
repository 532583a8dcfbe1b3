"""Cash flow transactions (``/cf``).

The view shows one month at a time. Transaction dates are printed without
a year (``01/22(水)``); the year comes from the range shown in the page
header, advanced by one for dates that fall in January of a range that
starts in December.
"""

import calendar
import re
from datetime import date

from playwright.async_api import Page

from mfcrawler.browser import navigate
from mfcrawler.extractor import BaseScraper, RowSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import CashFlowItem, CashFlowSummary
from mfcrawler.parsers import (
    normalize_date_to_iso,
    parse_large_unit_integer,
    resolve_year,
)

log = get_logger(__name__)

RANGE_DATE_RE = re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})")
ROW_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})")

TRANSACTION_ID_FIELD = "user_asset_act[id]"
TRANSACTION_ROW_PREFIX = "js-transaction-"
EXCLUDED_ROW_CLASS = "mf-grayout"
TRANSFER_MARKER = "振替"

# Fallback cell positions when a cell carries no identifying class
DATE_COLUMN = 1
CONTENT_COLUMN = 2
AMOUNT_COLUMN = 3
ACCOUNT_COLUMN = 4
LARGE_CATEGORY_COLUMN = 5
MIDDLE_CATEGORY_COLUMN = 6


def parse_range_start(title: str) -> tuple[int, int] | None:
    """Return (year, month) of the first date in the header range."""
    match = RANGE_DATE_RE.search(title)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _cell(row: RowSnapshot, css_class: str, fallback_index: int) -> str:
    value = row.cell_with_class(css_class)
    if value is None:
        value = row.cell(fallback_index)
    return value.strip()


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def parse_transaction_row(
    row: RowSnapshot, start_year: int, start_month: int
) -> CashFlowItem | None:
    """Build a transaction from one row, None when it carries no id."""
    mf_id = row.inputs.get(TRANSACTION_ID_FIELD) or row.id.removeprefix(TRANSACTION_ROW_PREFIX)
    if not mf_id:
        return None

    date_text = _cell(row, "date", DATE_COLUMN)
    match = ROW_DATE_RE.search(date_text)
    year = resolve_year(int(match.group(1)), start_year, start_month) if match else start_year

    amount_text = _cell(row, "amount", AMOUNT_COLUMN)
    amount = parse_large_unit_integer(amount_text)
    is_transfer = TRANSFER_MARKER in amount_text or any(
        "transfer" in classes.split() for classes in row.cell_classes
    )

    if is_transfer:
        tx_type = "transfer"
    elif amount < 0:
        tx_type = "expense"
    else:
        tx_type = "income"

    return CashFlowItem(
        mf_id=mf_id,
        date=normalize_date_to_iso(date_text, year),
        description=_first_line(_cell(row, "content", CONTENT_COLUMN)),
        amount=amount,
        type=tx_type,
        category=_cell(row, "lctg", LARGE_CATEGORY_COLUMN) or None,
        sub_category=_cell(row, "mctg", MIDDLE_CATEGORY_COLUMN) or None,
        is_transfer=is_transfer,
        is_excluded_from_calculation=row.has_class(EXCLUDED_ROW_CLASS),
        account_name=_first_line(_cell(row, "note", ACCOUNT_COLUMN)) or None,
    )


def build_summary(
    year: int,
    month: int,
    items: list[CashFlowItem],
    total_cells: list[str],
) -> CashFlowSummary:
    """Assemble the month's summary.

    Totals are read from the page's total cells (income, expense, balance)
    when present, otherwise summed from the counted transactions.
    """
    if len(total_cells) >= 2:
        income = abs(parse_large_unit_integer(total_cells[0]))
        expense = abs(parse_large_unit_integer(total_cells[1]))
        balance = (
            parse_large_unit_integer(total_cells[2]) if len(total_cells) >= 3 else income - expense
        )
    else:
        counted = [i for i in items if not i.is_transfer and not i.is_excluded_from_calculation]
        income = sum(i.amount for i in counted if i.type == "income")
        expense = -sum(i.amount for i in counted if i.type == "expense")
        balance = income - expense

    return CashFlowSummary(
        month=f"{year}-{month:02d}",
        total_income=income,
        total_expense=expense,
        balance=balance,
        items=items,
    )


class CashFlowScraper(BaseScraper[CashFlowSummary]):
    """Reads the cash flow view of one month."""

    @property
    def name(self) -> str:
        return "cash_flow"

    @property
    def url(self) -> str:
        return self.urls.cash_flow

    async def parse(self, page: Page) -> CashFlowSummary:
        return await self.parse_month(page)

    async def parse_month(
        self, page: Page, expected: tuple[int, int] | None = None
    ) -> CashFlowSummary:
        """Parse the month the page shows.

        Args:
            page: Page showing a cash flow view.
            expected: (year, month) the page was asked for. Takes precedence
                over the header range so month keys follow the request.
        """
        start = expected
        if start is None:
            title_locator = page.locator(self.selectors.cf_range_title)
            title = await title_locator.first.inner_text() if await title_locator.count() else ""
            start = parse_range_start(title)
        if start is None:
            today = self.today()
            start = (today.year, today.month)
            log.warning("Cash flow range not found, assuming current month", month=start)

        year, month = start
        rows = await self.read_rows(page, self.selectors.cf_transaction_rows)
        items = [
            item
            for item in (parse_transaction_row(row, year, month) for row in rows)
            if item is not None
        ]
        total_cells = await page.locator(self.selectors.cf_summary_cells).all_inner_texts()

        summary = build_summary(year, month, items, total_cells)
        log.info(
            "Cash flow parsed",
            month=summary.month,
            items=len(items),
            total_income=summary.total_income,
            total_expense=summary.total_expense,
        )
        return summary

    async def scrape_month(self, page: Page, year: int, month: int) -> CashFlowSummary:
        """Navigate to a given month and parse it."""
        last_day = calendar.monthrange(year, month)[1]
        url = self.urls.cash_flow_range(
            f"{year}/{month:02d}/01", f"{year}/{month:02d}/{last_day:02d}"
        )
        await navigate(page, url, timeout_ms=self.config.navigation_timeout_ms)
        return await self.parse_month(page, expected=(year, month))


async def scrape_cash_flow_history(
    page: Page,
    months: int,
    scraper: CashFlowScraper | None = None,
    today: date | None = None,
) -> list[CashFlowSummary]:
    """Scrape the current month and the ``months - 1`` before it, newest first."""
    scraper = scraper or CashFlowScraper()
    today = today or scraper.today()

    results: list[CashFlowSummary] = []
    for offset in range(months):
        year, month = shift_month(today.year, today.month, -offset)
        results.append(await scraper.scrape_month(page, year, month))

    log.info("Cash flow history scraped", months=[r.month for r in results])
    return results
