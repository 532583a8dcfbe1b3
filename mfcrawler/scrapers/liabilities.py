"""Liabilities (``/bs/liability``)."""

from playwright.async_api import Page

from mfcrawler.extractor import BaseScraper, TableSnapshot
from mfcrawler.logger import get_logger
from mfcrawler.models import UNKNOWN_CATEGORY, Liabilities, LiabilityItem
from mfcrawler.parsers import parse_large_unit_integer

log = get_logger(__name__)

CATEGORY_HEADERS = ("種類",)
NAME_HEADERS = ("名称", "種類・名称")
BALANCE_HEADERS = ("残高",)
INSTITUTION_HEADERS = ("保有金融機関", "金融機関")


def parse_liability_tables(tables: list[TableSnapshot]) -> Liabilities:
    items: list[LiabilityItem] = []
    for table in tables:
        for row in table.rows:
            name = (table.value(row, *NAME_HEADERS) or "").strip()
            balance_text = table.value(row, *BALANCE_HEADERS)
            if not name and not balance_text:
                continue
            category = (table.value(row, *CATEGORY_HEADERS) or "").strip()
            items.append(
                LiabilityItem(
                    name=name or category or UNKNOWN_CATEGORY,
                    category=category or UNKNOWN_CATEGORY,
                    institution=(table.value(row, *INSTITUTION_HEADERS) or "").strip(),
                    balance=parse_large_unit_integer(balance_text),
                )
            )

    return Liabilities(items=items, total_liabilities=sum(item.balance for item in items))


class LiabilitiesScraper(BaseScraper[Liabilities]):
    @property
    def name(self) -> str:
        return "liabilities"

    @property
    def url(self) -> str:
        return self.urls.liability

    async def parse(self, page: Page) -> Liabilities:
        tables = await self.read_tables(page, self.selectors.liability_tables)
        liabilities = parse_liability_tables(tables)
        log.info(
            "Liabilities parsed",
            items=len(liabilities.items),
            total_liabilities=liabilities.total_liabilities,
        )
        return liabilities
