"""Asset history (``/bs/history``) and the figures derived from it.

The history table has one row per day, newest first, with the total and
one column per asset category. The group summary (daily and monthly
change) and the per-category balances are computed from these points so
that every group is described from the same source.
"""

import re
from datetime import date

from playwright.async_api import Page

from mfcrawler.extractor import BaseScraper, TableSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import AssetHistory, AssetHistoryPoint, AssetSummary, CategoryBalance
from mfcrawler.parsers import (
    format_signed_delta,
    format_yen,
    normalize_date_to_iso,
    parse_large_unit_integer,
)

log = get_logger(__name__)

FULL_DATE_RE = re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})")
SHORT_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})")

DATE_HEADERS = ("日付",)
TOTAL_HEADERS = ("合計", "資産総額")
# Columns that are neither the date, the total nor a category
IGNORED_HEADERS = frozenset({"", "詳細", "変更", "削除"})


def _history_date(text: str, year_hint: int, previous_month: int | None) -> tuple[str, int]:
    """Return (ISO date, year used) for a history row.

    Rows run newest first, so a short date whose month is later than the
    row above it belongs to the previous year.
    """
    full = FULL_DATE_RE.search(text)
    if full:
        year, month, day = (int(g) for g in full.groups())
        return f"{year}-{month:02d}-{day:02d}", year

    short = SHORT_DATE_RE.search(text)
    if short and previous_month is not None and int(short.group(1)) > previous_month:
        year_hint -= 1
    return normalize_date_to_iso(text, year_hint), year_hint


def parse_history_table(table: TableSnapshot, today: date) -> AssetHistory:
    date_idx = table.column(*DATE_HEADERS)
    total_idx = table.column(*TOTAL_HEADERS)
    if date_idx is None:
        date_idx = 0
    if total_idx is None:
        total_idx = 1

    category_columns = [
        (idx, header)
        for idx, header in enumerate(table.headers)
        if idx not in (date_idx, total_idx) and header not in IGNORED_HEADERS
    ]

    raw_points: list[tuple[str, int, dict[str, int]]] = []
    year = today.year
    previous_month: int | None = None
    for row in table.rows:
        date_text = row.cell(date_idx)
        if not date_text:
            continue
        iso, year = _history_date(date_text, year, previous_month)
        if len(iso) >= 7 and iso[5:7].isdigit():
            previous_month = int(iso[5:7])
        categories = {
            header: parse_large_unit_integer(row.cell(idx)) for idx, header in category_columns
        }
        raw_points.append((iso, parse_large_unit_integer(row.cell(total_idx)), categories))

    points = []
    for i, (iso, total, categories) in enumerate(raw_points):
        older = raw_points[i + 1][1] if i + 1 < len(raw_points) else total
        points.append(
            AssetHistoryPoint(date=iso, total_assets=total, change=total - older, categories=categories)
        )
    return AssetHistory(points=points)


def _percent(diff: int, base: int) -> str:
    ratio = diff / base * 100 if base else 0.0
    return f"{ratio:+.2f}%"


def _month_before(iso: str) -> str:
    """ISO date one calendar month earlier, day clamped to 28."""
    try:
        year, month, day = int(iso[0:4]), int(iso[5:7]), int(iso[8:10])
    except ValueError:
        return iso
    month -= 1
    if month == 0:
        year, month = year - 1, 12
    return f"{year}-{month:02d}-{min(day, 28):02d}"


def summarize_history(history: AssetHistory) -> AssetSummary:
    """Derive total, daily and monthly change from the history points.

    The daily change compares the two newest points. The monthly change
    compares against the newest point at least one month older than the
    latest, or the oldest point when history is shorter than a month.
    """
    points = history.points
    if not points:
        return AssetSummary(
            total_assets=format_yen(0),
            daily_change=format_signed_delta("0", "0"),
            daily_change_percent=_percent(0, 0),
            monthly_change=format_signed_delta("0", "0"),
            monthly_change_percent=_percent(0, 0),
        )

    latest = points[0]
    previous_day = points[1] if len(points) > 1 else latest

    cutoff = _month_before(latest.date)
    previous_month = next((p for p in points[1:] if p.date <= cutoff), points[-1])

    current = str(latest.total_assets)
    return AssetSummary(
        total_assets=format_yen(latest.total_assets),
        daily_change=format_signed_delta(current, str(previous_day.total_assets)),
        daily_change_percent=_percent(
            latest.total_assets - previous_day.total_assets, previous_day.total_assets
        ),
        monthly_change=format_signed_delta(current, str(previous_month.total_assets)),
        monthly_change_percent=_percent(
            latest.total_assets - previous_month.total_assets, previous_month.total_assets
        ),
    )


def category_balances(history: AssetHistory) -> list[CategoryBalance]:
    """Per-category balance of the newest point against the point before it."""
    if not history.points:
        return []

    latest = history.points[0]
    previous = history.points[1] if len(history.points) > 1 else latest

    items = []
    for name, amount in latest.categories.items():
        balance = format_yen(amount)
        previous_balance = format_yen(previous.categories.get(name, 0))
        items.append(
            CategoryBalance(
                name=name,
                balance=balance,
                previous_balance=previous_balance,
                change=format_signed_delta(balance, previous_balance),
            )
        )
    return items


class AssetHistoryScraper(BaseScraper[AssetHistory]):
    @property
    def name(self) -> str:
        return "asset_history"

    @property
    def url(self) -> str:
        return self.urls.asset_history

    async def parse(self, page: Page) -> AssetHistory:
        tables = await self.read_tables(page, self.selectors.history_table)
        if not tables:
            log.warning("Asset history table not found", url=page.url)
            return AssetHistory()

        history = parse_history_table(tables[0], self.today())
        log.info("Asset history parsed", points=len(history.points))
        return history
