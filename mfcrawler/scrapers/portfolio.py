"""Portfolio holdings (``/bs/portfolio``).

Holdings are listed in one table per asset class. The class is taken from
the section title above the table, and columns are located by their header
labels because each asset class has a different column set.
"""

from typing import Callable, TypeVar

from playwright.async_api import Page

from mfcrawler.extractor import BaseScraper, RowSnapshot, TableSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import UNKNOWN_CATEGORY, AssetItem, Portfolio
from mfcrawler.parsers import parse_decimal, parse_large_unit_integer, parse_percentage

log = get_logger(__name__)

N = TypeVar("N", int, float)

KNOWN_ASSET_CATEGORIES = (
    "預金・現金・暗号資産",
    "株式(現物)",
    "投資信託",
    "年金",
    "保険",
    "ポイント・マイル",
)

# Header labels per field, most specific first
NAME_HEADERS = ("銘柄名", "種類・名称", "名称")
CODE_HEADERS = ("銘柄コード",)
INSTITUTION_HEADERS = ("保有金融機関",)
BALANCE_HEADERS = ("評価額", "残高", "現在価値", "現在の価値", "解約返戻金額")
QUANTITY_HEADERS = ("保有数", "ポイント・マイル数")
AVG_COST_HEADERS = ("平均取得単価",)
UNIT_PRICE_HEADERS = ("現在値", "基準価額", "換算レート")
DAILY_CHANGE_HEADERS = ("前日比",)
GAIN_HEADERS = ("評価損益",)
GAIN_PCT_HEADERS = ("評価損益率",)


def identify_table_type_from_title(title: str) -> str:
    """Return the asset category for a section title.

    Only exact titles are recognised; anything else, including near misses
    such as ``"ポイント"``, maps to ``"不明"``.
    """
    value = title.strip()
    if value in KNOWN_ASSET_CATEGORIES:
        return value
    return UNKNOWN_CATEGORY


def _optional(value: str | None, parser: Callable[[str], N]) -> N | None:
    if value is None:
        return None
    return parser(value)


def parse_holding(table: TableSnapshot, row: RowSnapshot, category: str) -> AssetItem | None:
    """Build a holding from one row, None when the row has no name."""
    name = table.value(row, *NAME_HEADERS)
    if not name:
        return None

    return AssetItem(
        name=name.strip(),
        category=category,
        institution=(table.value(row, *INSTITUTION_HEADERS) or "").strip(),
        balance=parse_large_unit_integer(table.value(row, *BALANCE_HEADERS)),
        code=(table.value(row, *CODE_HEADERS) or "").strip() or None,
        quantity=_optional(table.value(row, *QUANTITY_HEADERS), parse_decimal),
        unit_price=_optional(table.value(row, *UNIT_PRICE_HEADERS), parse_decimal),
        avg_cost_price=_optional(table.value(row, *AVG_COST_HEADERS), parse_decimal),
        daily_change=_optional(table.value(row, *DAILY_CHANGE_HEADERS), parse_large_unit_integer),
        unrealized_gain=_optional(table.value(row, *GAIN_HEADERS), parse_large_unit_integer),
        unrealized_gain_pct=parse_percentage(table.value(row, *GAIN_PCT_HEADERS)),
    )


def parse_portfolio_tables(tables: list[TableSnapshot]) -> Portfolio:
    items: list[AssetItem] = []
    for table in tables:
        category = identify_table_type_from_title(table.title)
        if category == UNKNOWN_CATEGORY:
            log.warning("Unrecognised portfolio section", title=table.title)
        for row in table.rows:
            item = parse_holding(table, row, category)
            if item is not None:
                items.append(item)

    return Portfolio(items=items, total_assets=sum(item.balance for item in items))


class PortfolioScraper(BaseScraper[Portfolio]):
    """Reads holdings of every asset class."""

    @property
    def name(self) -> str:
        return "portfolio"

    @property
    def url(self) -> str:
        return self.urls.portfolio

    async def parse(self, page: Page) -> Portfolio:
        tables = await self.read_tables(page, self.selectors.portfolio_tables)
        portfolio = parse_portfolio_tables(tables)
        log.info(
            "Portfolio parsed",
            tables=len(tables),
            items=len(portfolio.items),
            total_assets=portfolio.total_assets,
        )
        return portfolio
