"""Crawl orchestration: global phase, then every group.

Phase 1 selects the "no group" view and reads the global views (account
registry, portfolio, liabilities, current cash flow) after optionally
triggering a backend refresh. Phase 2 selects each group in
turn, including the "no group" pseudo-group, and reads the group-scoped
views inside a GroupScope so the original selection is restored after
every group.

Everything runs sequentially on the one page: the selected group is
session state, and interleaving switches would corrupt the data.

Example:
    async with BrowserManager.create(config, use_auth_state=True) as browser:
        page = await browser.new_page()
        result = await scrape_all_groups(page, config)
"""

from dataclasses import dataclass

from playwright.async_api import Page

from config.settings import CrawlerConfig, get_config
from mfcrawler.browser import navigate
from mfcrawler.groups import GroupScope, list_groups
from mfcrawler.logger import get_logger, log_context
from mfcrawler.models import NO_GROUP_ID, GlobalData, Group, GroupData, ScrapeResult
from mfcrawler.parsers import track_parses
from mfcrawler.refresh import refresh_all_accounts
from mfcrawler.scrapers import (
    AccountsScraper,
    AssetHistoryScraper,
    CashFlowScraper,
    InstitutionCategoriesScraper,
    LiabilitiesScraper,
    MonthlySummaryScraper,
    PortfolioScraper,
    attach_categories,
    category_balances,
    summarize_history,
)
from mfcrawler.validator import ConsistencyMonitor

log = get_logger(__name__)


@dataclass(frozen=True)
class ScrapeOptions:
    """Switches for one crawl run.

    Attributes:
        skip_refresh: Do not trigger the backend account refresh.
            ``GlobalData.refresh_result`` is None when set.
        include_monthly_summary: Also read the six-month summary.
        include_categories: Attach institution categories to accounts.
    """

    skip_refresh: bool = False
    include_monthly_summary: bool = False
    include_categories: bool = True


async def scrape_global_data(
    page: Page,
    config: CrawlerConfig | None = None,
    options: ScrapeOptions | None = None,
) -> GlobalData:
    """Phase 1: read the global views. The "no group" view must be selected.

    Errors propagate; a partial global record is never returned.
    """
    config = config or get_config()
    options = options or ScrapeOptions()

    refresh_result = None
    if options.skip_refresh:
        log.info("Account refresh skipped")
    else:
        refresh_result = await refresh_all_accounts(page, config)

    categories: dict[str, str] = {}
    if options.include_categories:
        categories = await InstitutionCategoriesScraper(config).scrape(page)

    registered_accounts = attach_categories(await AccountsScraper(config).scrape(page), categories)
    portfolio = await PortfolioScraper(config).scrape(page)
    liabilities = await LiabilitiesScraper(config).scrape(page)
    cash_flow = await CashFlowScraper(config).scrape(page)

    monthly_summary = None
    if options.include_monthly_summary:
        monthly_summary = await MonthlySummaryScraper(config).scrape(page)

    return GlobalData(
        registered_accounts=registered_accounts,
        portfolio=portfolio,
        liabilities=liabilities,
        cash_flow=cash_flow,
        refresh_result=refresh_result,
        monthly_summary=monthly_summary,
    )


async def scrape_group_data(
    page: Page,
    group: Group,
    config: CrawlerConfig | None = None,
) -> GroupData:
    """Read the group-scoped views. The group must already be selected."""
    config = config or get_config()

    registered_accounts = await AccountsScraper(config).scrape(page)
    history = await AssetHistoryScraper(config).scrape(page)

    return GroupData(
        group=group,
        registered_accounts=registered_accounts,
        asset_history=history,
        summary=summarize_history(history),
        items=category_balances(history),
    )


async def scrape_all_groups(
    page: Page,
    config: CrawlerConfig | None = None,
    options: ScrapeOptions | None = None,
    monitor: ConsistencyMonitor | None = None,
) -> ScrapeResult:
    """Run both phases and check the assembled result.

    Args:
        page: An authenticated page.
        config: Optional CrawlerConfig. Uses the cached one if not provided.
        options: Run switches.
        monitor: Consistency checker; one is built from ``config`` if omitted.

    Returns:
        The complete ScrapeResult.

    Raises:
        NavigationError: If any view fails to load.
        GroupSwitchError: If a group cannot be selected or restored.
        ConsistencyError: If strict consistency is enabled and the result
            breaks an invariant.
    """
    config = config or get_config()
    options = options or ScrapeOptions()
    monitor = monitor or ConsistencyMonitor(config)

    with track_parses() as stats:
        await navigate(page, config.base_url, timeout_ms=config.navigation_timeout_ms)
        groups = await list_groups(page)
        default_group = next((g for g in groups if g.is_current), None)

        log.info(
            "Crawl started",
            groups=[g.id for g in groups],
            default_group=default_group.id if default_group else None,
        )

        async with GroupScope(page, NO_GROUP_ID, config):
            global_data = await scrape_global_data(page, config, options)

        group_data_list = []
        for group in groups:
            with log_context(group_id=group.id):
                log.info("Scraping group", group_name=group.name)
                async with GroupScope(page, group.id, config):
                    group_data_list.append(await scrape_group_data(page, group, config))

    result = ScrapeResult(
        global_data=global_data,
        group_data_list=group_data_list,
        default_group=default_group,
    )

    monitor.evaluate(result, stats)

    log.info(
        "Crawl finished",
        groups=len(group_data_list),
        accounts=len(global_data.registered_accounts.accounts),
        parsed_cells=stats.total,
        degraded_cells=stats.degraded,
    )
    return result
