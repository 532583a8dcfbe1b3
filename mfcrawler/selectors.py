"""Page URLs and DOM hooks for the finance service.

The service's markup changes over time. Keep every selector, label and URL
path here so a layout change is a one-file fix.
"""

from dataclasses import dataclass
from urllib.parse import quote, urljoin

UPDATING_STATUS = "更新中"
NORMAL_STATUS = "正常"


@dataclass(frozen=True)
class PageSelectors:
    # Group selector (present in the page header on every view)
    group_select: str = "select#group_id_hash"
    group_option: str = "select#group_id_hash option"

    # Registered accounts (/accounts)
    account_table: str = "#account-table"
    account_rows: str = "#account-table tbody tr"
    refresh_all_button: str = "input[value='一括更新'], a:has-text('一括更新')"

    # Institution category lists (home sidebar)
    account_lists: str = "section.accounts ul.accounts-list"

    # Portfolio (/bs/portfolio) and liabilities (/bs/liability)
    portfolio_tables: str = "section[id^='portfolio_det'] table"
    liability_tables: str = "section[id^='liability_det'] table"

    # Asset history (/bs/history)
    history_table: str = "#bs-history table"

    # Cash flow (/cf)
    cf_range_title: str = ".fc-header-title, .transaction-range-display"
    cf_summary_cells: str = "#monthly_total_table td"
    cf_transaction_rows: str = "#cf-detail-table tbody tr[id^='js-transaction-']"
    cf_transaction_id_input: str = "input[name='user_asset_act[id]']"

    # Monthly summary (/cf/monthly)
    monthly_table: str = "#monthly_list"
    monthly_rows: str = "#monthly_list tr"

    # Mutation
    csrf_meta: str = "meta[name='csrf-token']"


class SiteUrls:
    """Absolute URLs derived from the configured base URL."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path)

    @property
    def home(self) -> str:
        return self.base_url

    @property
    def accounts(self) -> str:
        return self._url("accounts")

    @property
    def portfolio(self) -> str:
        return self._url("bs/portfolio")

    @property
    def liability(self) -> str:
        return self._url("bs/liability")

    @property
    def asset_history(self) -> str:
        return self._url("bs/history")

    @property
    def cash_flow(self) -> str:
        return self._url("cf")

    @property
    def monthly_summary(self) -> str:
        return self._url("cf/monthly")

    def account_detail(self, mf_id: str, manual: bool = False) -> str:
        kind = "show_manual" if manual else "show"
        return self._url(f"accounts/{kind}/{mf_id}")

    def cash_flow_range(self, start: str, end: str) -> str:
        """Cash flow view for a date range given as ``YYYY/MM/DD`` strings."""
        return f"{self.cash_flow}?from={quote(start, safe='')}&to={quote(end, safe='')}"
