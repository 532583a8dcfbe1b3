"""Pydantic models for everything a crawl run returns.

Models are frozen: they are built once by the scrapers and never mutated
afterwards. Python attributes are snake_case; serialization with
``by_alias=True`` produces the camelCase keys the persistence layer reads
(``globalData``, ``groupDataList``, ``defaultGroup`` ...).
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

NO_GROUP_ID = "0"
NO_GROUP_NAME = "グループ選択なし"
UNKNOWN_CATEGORY = "不明"

AccountState = Literal["normal", "updating", "error"]
TransactionType = Literal["income", "expense", "transfer"]


def is_no_group(group_id: str) -> bool:
    """Check whether a group id is the "no group" pseudo-group."""
    return group_id == NO_GROUP_ID


class CrawlerModel(BaseModel):
    """Base for all result models: frozen, camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Group(CrawlerModel):
    id: str
    name: str
    is_current: bool = False


class AccountStatus(CrawlerModel):
    """One row of the registered-accounts table."""

    mf_id: str
    name: str
    type: str
    status: AccountState
    last_updated: str = ""
    url: str = ""
    total_assets: int = 0
    error_message: str | None = None
    category: str | None = None


class RegisteredAccounts(CrawlerModel):
    accounts: list[AccountStatus] = Field(default_factory=list)


class AccountIssue(CrawlerModel):
    """An account that did not finish its backend refresh."""

    name: str
    status: Literal["updating", "error"]
    error_message: str | None = None


class RefreshResult(CrawlerModel):
    completed: bool
    incomplete_accounts: list[str] = Field(default_factory=list)
    issues: list[AccountIssue] = Field(default_factory=list)


class AssetItem(CrawlerModel):
    """A single holding from the portfolio page.

    ``category`` is the title of the table the holding was listed under, or
    the unknown sentinel when the title is not a known category.
    """

    name: str
    category: str
    institution: str = ""
    balance: int = 0
    code: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    avg_cost_price: float | None = None
    daily_change: int | None = None
    unrealized_gain: int | None = None
    unrealized_gain_pct: float | None = None

    @field_validator("category")
    @classmethod
    def category_never_empty(cls, value: str) -> str:
        return value.strip() or UNKNOWN_CATEGORY


class Portfolio(CrawlerModel):
    items: list[AssetItem] = Field(default_factory=list)
    total_assets: int = 0


class LiabilityItem(CrawlerModel):
    name: str
    category: str
    institution: str = ""
    balance: int = 0


class Liabilities(CrawlerModel):
    items: list[LiabilityItem] = Field(default_factory=list)
    total_liabilities: int = 0


class CashFlowItem(CrawlerModel):
    mf_id: str
    date: str
    description: str
    amount: int
    type: TransactionType
    category: str | None = None
    sub_category: str | None = None
    is_transfer: bool = False
    is_excluded_from_calculation: bool = False
    account_name: str | None = None


class CashFlowSummary(CrawlerModel):
    month: str
    total_income: int = 0
    total_expense: int = 0
    balance: int = 0
    items: list[CashFlowItem] = Field(default_factory=list)


class MonthlySummaryItem(CrawlerModel):
    month: str
    total_income: int = 0
    total_expense: int = 0


class AssetHistoryPoint(CrawlerModel):
    date: str
    total_assets: int
    change: int = 0
    categories: dict[str, int] = Field(default_factory=dict)


class AssetHistory(CrawlerModel):
    points: list[AssetHistoryPoint] = Field(default_factory=list)


class AssetSummary(CrawlerModel):
    total_assets: str
    daily_change: str
    daily_change_percent: str
    monthly_change: str
    monthly_change_percent: str


class CategoryBalance(CrawlerModel):
    """Balance of one asset category today versus the previous day."""

    name: str
    balance: str
    previous_balance: str
    change: str


class GlobalData(CrawlerModel):
    registered_accounts: RegisteredAccounts
    portfolio: Portfolio
    liabilities: Liabilities
    cash_flow: CashFlowSummary
    refresh_result: RefreshResult | None = None
    monthly_summary: list[MonthlySummaryItem] | None = None


class GroupData(CrawlerModel):
    group: Group
    registered_accounts: RegisteredAccounts
    asset_history: AssetHistory
    summary: AssetSummary
    items: list[CategoryBalance] = Field(default_factory=list)


class ScrapeResult(CrawlerModel):
    global_data: GlobalData
    group_data_list: list[GroupData]
    default_group: Group | None = None
