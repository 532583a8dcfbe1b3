"""Six-month income/expense summary (``/cf/monthly``).

A single page load lists up to six months as columns. The header row
labels each month as ``YYYY/MM/DD〜``; the totals are in the rows labelled
``収入合計`` and ``支出合計``.
"""

import re

from playwright.async_api import Page

from mfcrawler.exceptions import SelectorNotFoundError
from mfcrawler.extractor import BaseScraper, RowSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import MonthlySummaryItem
from mfcrawler.parsers import parse_large_unit_integer

log = get_logger(__name__)

MONTH_HEADER_RE = re.compile(r"^(\d{4})/(\d{2})/\d{2}〜$")
INCOME_LABEL = "収入合計"
EXPENSE_LABEL = "支出合計"


def _find_row(rows: list[RowSnapshot], label: str) -> RowSnapshot | None:
    for row in rows:
        if any(label in cell for cell in row.cells):
            return row
    return None


def parse_monthly_rows(rows: list[RowSnapshot]) -> list[MonthlySummaryItem]:
    """Build one item per month column.

    The first column holds row labels and is skipped. Missing total cells
    count as zero.
    """
    if not rows:
        return []

    month_columns = []
    for idx, text in enumerate(rows[0].cells):
        if idx == 0:
            continue
        match = MONTH_HEADER_RE.match(text.strip())
        if match:
            month_columns.append((idx, f"{match.group(1)}-{match.group(2)}"))

    income_row = _find_row(rows, INCOME_LABEL)
    expense_row = _find_row(rows, EXPENSE_LABEL)

    items = []
    for idx, month in month_columns:
        income = parse_large_unit_integer(income_row.cell(idx, "0")) if income_row else 0
        expense = parse_large_unit_integer(expense_row.cell(idx, "0")) if expense_row else 0
        items.append(MonthlySummaryItem(month=month, total_income=income, total_expense=expense))
    return items


class MonthlySummaryScraper(BaseScraper[list[MonthlySummaryItem]]):
    @property
    def name(self) -> str:
        return "monthly_summary"

    @property
    def url(self) -> str:
        return self.urls.monthly_summary

    async def parse(self, page: Page) -> list[MonthlySummaryItem]:
        if not await self.wait_for_content(page, self.selectors.monthly_table, timeout_ms=10_000):
            raise SelectorNotFoundError(selector=self.selectors.monthly_table, url=page.url)

        rows = await self.read_rows(page, self.selectors.monthly_rows)
        items = parse_monthly_rows(rows)
        log.info("Monthly summary parsed", months=[item.month for item in items])
        return items
