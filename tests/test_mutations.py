"""Tests for transaction category updates."""

import pytest

from mfcrawler.mutations import (
    UPDATE_ENDPOINT,
    UpdateResult,
    build_update_form,
    get_csrf_token,
    transaction_id,
    update_transaction_category,
)
from mfcrawler.selectors import PageSelectors
from tests.helpers import make_locator, make_page

SELECTORS = PageSelectors()


class TestBuildUpdateForm:
    """Test suite for the update form body."""

    def test_fields_in_service_order(self) -> None:
        form = build_update_form("123", "10", "101")

        assert form == [
            ("user_asset_act[id]", "123"),
            ("user_asset_act[large_category_id]", "10"),
            ("user_asset_act[middle_category_id]", "101"),
            ("user_asset_act[is_income]", "0"),
            ("user_asset_act[is_target]", "1"),
            ("user_asset_act[table_name]", "user_asset_act"),
        ]

    def test_income_and_excluded_flags(self) -> None:
        form = dict(build_update_form("1", "2", "3", is_income=True, is_target=False))

        assert form["user_asset_act[is_income]"] == "1"
        assert form["user_asset_act[is_target]"] == "0"


class TestCsrfToken:
    """Test suite for reading the CSRF meta tag."""

    @pytest.mark.asyncio
    async def test_reads_content_attribute(self) -> None:
        page = make_page({SELECTORS.csrf_meta: {"get_attribute": "token-abc"}})

        assert await get_csrf_token(page) == "token-abc"

    @pytest.mark.asyncio
    async def test_absent_meta_returns_none(self) -> None:
        page = make_page()

        assert await get_csrf_token(page) is None

    @pytest.mark.asyncio
    async def test_empty_content_returns_none(self) -> None:
        page = make_page({SELECTORS.csrf_meta: {"get_attribute": ""}})

        assert await get_csrf_token(page) is None


class TestUpdateTransactionCategory:
    """Test suite for issuing the update request."""

    @pytest.mark.asyncio
    async def test_sends_form_through_page(self) -> None:
        page = make_page()
        page.evaluate.return_value = {"ok": True, "status": 200}

        result = await update_transaction_category(
            page, "token-abc", "123", large_category_id="10", middle_category_id="101"
        )

        assert result == UpdateResult(ok=True, status=200)
        payload = page.evaluate.call_args[0][1]
        assert payload["endpoint"] == UPDATE_ENDPOINT
        assert payload["csrf"] == "token-abc"
        assert payload["form"][0] == ("user_asset_act[id]", "123")

    @pytest.mark.asyncio
    async def test_rejected_update_reported_not_raised(self) -> None:
        page = make_page()
        page.evaluate.return_value = {"ok": False, "status": 422}

        result = await update_transaction_category(
            page, "token-abc", "123", large_category_id="10", middle_category_id="101"
        )

        assert result.ok is False
        assert result.status == 422


class TestTransactionId:
    """Test suite for reading ids from transaction rows."""

    @pytest.mark.asyncio
    async def test_reads_hidden_input(self) -> None:
        row = make_locator(
            {"children": {SELECTORS.cf_transaction_id_input: {"get_attribute": "98765"}}}
        )

        assert await transaction_id(row) == "98765"

    @pytest.mark.asyncio
    async def test_row_without_input_returns_none(self) -> None:
        row = make_locator({"children": {}})

        assert await transaction_id(row) is None
