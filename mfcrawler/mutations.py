"""Transaction category updates against the service's own endpoint.

The request is issued with ``fetch`` from inside the page, so it carries
the session cookies and the CSRF token the page was rendered with. Nothing
here retries; callers decide what to do with a failed ``UpdateResult``.
"""

from dataclasses import dataclass

from playwright.async_api import Locator, Page

from mfcrawler.logger import get_logger
from mfcrawler.selectors import PageSelectors

log = get_logger(__name__)

UPDATE_ENDPOINT = "/cf/update"
FORM_PREFIX = "user_asset_act"

_UPDATE_JS = """
async ({ endpoint, csrf, form }) => {
  const body = new URLSearchParams();
  for (const [key, value] of form) {
    body.append(key, value);
  }
  const res = await fetch(endpoint, {
    method: "PUT",
    headers: {
      "Content-Type": "application/x-www-form-urlencoded",
      "X-CSRF-Token": csrf,
      "X-Requested-With": "XMLHttpRequest",
    },
    body: body.toString(),
  });
  return { ok: res.ok, status: res.status };
}
"""


@dataclass(frozen=True)
class UpdateResult:
    ok: bool
    status: int


def build_update_form(
    transaction_id: str,
    large_category_id: str,
    middle_category_id: str,
    is_income: bool = False,
    is_target: bool = True,
) -> list[tuple[str, str]]:
    """Form fields of a category update, in the order the service sends them."""
    return [
        (f"{FORM_PREFIX}[id]", transaction_id),
        (f"{FORM_PREFIX}[large_category_id]", large_category_id),
        (f"{FORM_PREFIX}[middle_category_id]", middle_category_id),
        (f"{FORM_PREFIX}[is_income]", "1" if is_income else "0"),
        (f"{FORM_PREFIX}[is_target]", "1" if is_target else "0"),
        (f"{FORM_PREFIX}[table_name]", FORM_PREFIX),
    ]


async def get_csrf_token(page: Page, selectors: PageSelectors | None = None) -> str | None:
    """Read the CSRF token from the page's meta tag, None when absent."""
    selectors = selectors or PageSelectors()
    meta = page.locator(selectors.csrf_meta)
    if await meta.count() == 0:
        return None
    token = await meta.first.get_attribute("content")
    return token or None


async def update_transaction_category(
    page: Page,
    csrf_token: str,
    transaction_id: str,
    *,
    large_category_id: str,
    middle_category_id: str,
    is_income: bool = False,
    is_target: bool = True,
) -> UpdateResult:
    """Change the category of one transaction.

    The page must be on the service's origin. Returns the raw HTTP outcome.
    """
    form = build_update_form(
        transaction_id,
        large_category_id,
        middle_category_id,
        is_income=is_income,
        is_target=is_target,
    )
    raw = await page.evaluate(
        _UPDATE_JS,
        {"endpoint": UPDATE_ENDPOINT, "csrf": csrf_token, "form": form},
    )
    result = UpdateResult(ok=bool(raw.get("ok")), status=int(raw.get("status", 0)))

    if result.ok:
        log.info("Transaction category updated", transaction_id=transaction_id)
    else:
        log.warning(
            "Transaction category update rejected",
            transaction_id=transaction_id,
            status=result.status,
        )
    return result


def transaction_rows(page: Page, selectors: PageSelectors | None = None) -> Locator:
    """Transaction rows of the cash flow view the page is showing."""
    selectors = selectors or PageSelectors()
    return page.locator(selectors.cf_transaction_rows)


async def transaction_id(row: Locator, selectors: PageSelectors | None = None) -> str | None:
    """Read the transaction id from a row's hidden form input."""
    selectors = selectors or PageSelectors()
    field = row.locator(selectors.cf_transaction_id_input)
    if await field.count() == 0:
        return None
    value = await field.first.get_attribute("value")
    return value or None
