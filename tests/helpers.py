"""Builders for Playwright page doubles, DOM snapshots and result models.

Scrapers read the DOM through a handful of locator calls
(``evaluate_all``, ``count``, ``inner_text``, ``get_attribute`` ...). The
page double answers those calls from a mapping of selector to canned
values, so tests describe a view as data instead of HTML.
"""

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

from mfcrawler.models import (
    NO_GROUP_ID,
    NO_GROUP_NAME,
    AccountStatus,
    AssetHistory,
    CashFlowSummary,
    GlobalData,
    Group,
    GroupData,
    Liabilities,
    Portfolio,
    RegisteredAccounts,
    ScrapeResult,
)
from mfcrawler.scrapers.asset_history import summarize_history


def make_row(
    cells: list[str],
    *,
    id: str = "",
    class_name: str = "",
    cell_classes: list[str] | None = None,
    links: list[str] | None = None,
    inputs: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Row snapshot in the shape the page-side script returns."""
    return {
        "id": id,
        "className": class_name,
        "cells": cells,
        "cellClasses": cell_classes if cell_classes is not None else [""] * len(cells),
        "links": links or [],
        "inputs": inputs or {},
    }


def make_table(title: str, headers: list[str], rows: list[dict[str, Any]]) -> dict[str, Any]:
    return {"title": title, "headers": headers, "rows": rows}


def _value(answers: dict[str, Any], key: str, default: Any) -> AsyncMock:
    value = answers.get(key, default)
    if callable(value):
        return AsyncMock(side_effect=lambda *args, **kwargs: value())
    return AsyncMock(return_value=value)


def make_locator(answers: dict[str, Any] | None = None) -> MagicMock:
    """Locator double.

    Recognised keys: ``evaluate_all``, ``count``, ``inner_text``,
    ``all_inner_texts``, ``get_attribute``, ``input_value`` and ``children``
    (a selector mapping for nested ``locator()`` calls). A value may be a
    zero-argument callable to compute it at call time.
    """
    answers = answers or {}
    locator = MagicMock()
    locator.evaluate_all = _value(answers, "evaluate_all", [])
    locator.count = _value(answers, "count", 1 if answers else 0)
    locator.inner_text = _value(answers, "inner_text", "")
    locator.all_inner_texts = _value(answers, "all_inner_texts", [])
    locator.get_attribute = _value(answers, "get_attribute", None)
    locator.input_value = _value(answers, "input_value", "")
    locator.select_option = AsyncMock(side_effect=answers.get("select_option"))
    locator.click = AsyncMock()
    locator.first = locator

    children = answers.get("children", {})
    locator.locator = MagicMock(side_effect=lambda selector: make_locator(children.get(selector)))
    return locator


def make_page(
    locators: dict[str, dict[str, Any]] | None = None,
    url: str = "https://test.example.com/",
) -> MagicMock:
    """Page double whose ``locator()`` answers from ``locators``.

    Unknown selectors yield an empty locator (count 0, no rows).
    """
    locators = locators or {}
    page = MagicMock()
    page.url = url
    page.locator = MagicMock(side_effect=lambda selector: make_locator(locators.get(selector)))
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.reload = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.evaluate = AsyncMock()
    page.screenshot = AsyncMock()

    navigation = MagicMock()
    navigation.__aenter__ = AsyncMock(return_value=None)
    navigation.__aexit__ = AsyncMock(return_value=False)
    page.expect_navigation = MagicMock(return_value=navigation)
    return page


def sequence(values: list[Any]) -> Callable[[], Any]:
    """Callable returning successive values, repeating the last one."""
    remaining = list(values)

    def _next() -> Any:
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return _next


def make_account(mf_id: str, status: str = "normal") -> AccountStatus:
    return AccountStatus(mf_id=mf_id, name=f"口座{mf_id}", type="自動連携", status=status)


def make_group_data(group_id: str, account_ids: list[str], is_current: bool = False) -> GroupData:
    name = NO_GROUP_NAME if group_id == NO_GROUP_ID else f"グループ{group_id}"
    history = AssetHistory()
    return GroupData(
        group=Group(id=group_id, name=name, is_current=is_current),
        registered_accounts=RegisteredAccounts(accounts=[make_account(i) for i in account_ids]),
        asset_history=history,
        summary=summarize_history(history),
    )


def make_result(
    groups: list[GroupData],
    global_account_ids: list[str] | None = None,
) -> ScrapeResult:
    """Scrape result whose global registry defaults to the "no group" view."""
    if global_account_ids is None:
        no_group = next((g for g in groups if g.group.id == NO_GROUP_ID), None)
        accounts = no_group.registered_accounts.accounts if no_group else []
    else:
        accounts = [make_account(i) for i in global_account_ids]

    return ScrapeResult(
        global_data=GlobalData(
            registered_accounts=RegisteredAccounts(accounts=accounts),
            portfolio=Portfolio(),
            liabilities=Liabilities(),
            cash_flow=CashFlowSummary(month="2026-01"),
        ),
        group_data_list=groups,
        default_group=next((g.group for g in groups if g.group.is_current), None),
    )
