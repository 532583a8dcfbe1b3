"""One scraper per service view."""

from mfcrawler.scrapers.accounts import (
    AccountsScraper,
    InstitutionCategoriesScraper,
    attach_categories,
)
from mfcrawler.scrapers.asset_history import (
    AssetHistoryScraper,
    category_balances,
    summarize_history,
)
from mfcrawler.scrapers.cash_flow import CashFlowScraper, scrape_cash_flow_history
from mfcrawler.scrapers.liabilities import LiabilitiesScraper
from mfcrawler.scrapers.monthly_summary import MonthlySummaryScraper
from mfcrawler.scrapers.portfolio import (
    KNOWN_ASSET_CATEGORIES,
    PortfolioScraper,
    identify_table_type_from_title,
)

__all__ = [
    "KNOWN_ASSET_CATEGORIES",
    "AccountsScraper",
    "AssetHistoryScraper",
    "CashFlowScraper",
    "InstitutionCategoriesScraper",
    "LiabilitiesScraper",
    "MonthlySummaryScraper",
    "PortfolioScraper",
    "attach_categories",
    "category_balances",
    "identify_table_type_from_title",
    "scrape_cash_flow_history",
    "summarize_history",
]
