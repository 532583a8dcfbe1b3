"""Group listing and scoped group switching.

The selected group is server-side session state: every view renders only
the accounts of the group chosen in the header selector. ``GroupScope``
switches to a group for the duration of a block and always switches back,
so callers observe the same selection after the block as before it.

Example:
    async with GroupScope(page, "abc123", config):
        accounts = await AccountsScraper(config).scrape(page)
"""

from types import TracebackType
from typing import Self

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.settings import CrawlerConfig, get_config
from mfcrawler.exceptions import GroupSwitchError
from mfcrawler.logger import get_logger
from mfcrawler.models import NO_GROUP_ID, NO_GROUP_NAME, Group
from mfcrawler.selectors import PageSelectors

log = get_logger(__name__)

_OPTIONS_JS = """
(options) => options.map((o) => ({
  value: o.value,
  text: (o.textContent || "").trim(),
  selected: o.selected,
}))
"""


async def list_groups(page: Page, selectors: PageSelectors | None = None) -> list[Group]:
    """Read the groups offered by the header selector.

    When no option is selected the "no group" pseudo-group is reported as
    current, because that is what the service shows. An account without
    any groups has no selector at all; the pseudo-group is then the only,
    current, entry.

    Raises:
        GroupSwitchError: If real groups are offered but the "no group"
            option is not, since the ungrouped view would be unreachable.
    """
    selectors = selectors or PageSelectors()
    raw = await page.locator(selectors.group_option).evaluate_all(_OPTIONS_JS)

    groups: list[Group] = []
    seen: set[str] = set()
    for option in raw or []:
        group_id = str(option.get("value", "")).strip()
        if not group_id or group_id in seen:
            continue
        seen.add(group_id)
        groups.append(
            Group(
                id=group_id,
                name=str(option.get("text", "")).strip() or group_id,
                is_current=bool(option.get("selected", False)),
            )
        )

    has_current = any(group.is_current for group in groups)

    if NO_GROUP_ID not in seen:
        if groups:
            raise GroupSwitchError(
                group_id=NO_GROUP_ID,
                reason=f"selector offers {sorted(seen)} but no 'no group' option",
            )
        groups.append(Group(id=NO_GROUP_ID, name=NO_GROUP_NAME, is_current=True))
    elif not has_current:
        groups = [
            group.model_copy(update={"is_current": True}) if group.id == NO_GROUP_ID else group
            for group in groups
        ]

    log.info(
        "Groups listed",
        count=len(groups),
        current=next((g.id for g in groups if g.is_current), None),
    )
    return groups


async def current_group_id(page: Page, selectors: PageSelectors | None = None) -> str | None:
    """Return the selected group id, or None when nothing is selected."""
    selectors = selectors or PageSelectors()
    select = page.locator(selectors.group_select)
    if await select.count() == 0:
        return None
    value = await select.input_value()
    return value.strip() or None


async def switch_group(
    page: Page,
    group_id: str,
    config: CrawlerConfig | None = None,
    selectors: PageSelectors | None = None,
) -> None:
    """Select a group and wait until the reloaded page shows it selected.

    Raises:
        GroupSwitchError: If the page does not settle on the group in time.
    """
    config = config or get_config()
    selectors = selectors or PageSelectors()
    timeout_ms = config.group_switch_timeout_ms

    log.info("Switching group", group_id=group_id)

    try:
        # Changing the selection submits the header form and reloads the view
        async with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout_ms):
            await page.locator(selectors.group_select).select_option(value=group_id)
        await page.wait_for_selector(
            f"{selectors.group_select} option[value='{group_id}']:checked",
            state="attached",
            timeout=timeout_ms,
        )
    except PlaywrightTimeoutError as exc:
        raise GroupSwitchError(group_id=group_id, reason=f"timeout: {exc}") from exc

    selected = await current_group_id(page, selectors)
    if selected != group_id:
        raise GroupSwitchError(
            group_id=group_id,
            reason=f"selector shows {selected!r} after switching",
        )


class GroupScope:
    """Async context manager selecting a group and restoring the previous one.

    Args:
        page: The single crawl page.
        target_group_id: Group to select. None scopes the current group,
            which makes the block a no-op switch.
        config: Supplies the switch timeout.
        selectors: DOM hooks of the group selector.

    An empty selection shows the ungrouped view, so it is treated as the
    "no group" pseudo-group on entry and restored as such.

    The restore step runs on every exit path and is skipped when the page
    still shows the original group. If restoring fails while the block is
    already raising, the failure is logged and the block's own exception
    propagates. If restoring fails after a clean block,
    ``GroupSwitchError`` is raised.
    """

    def __init__(
        self,
        page: Page,
        target_group_id: str | None = None,
        config: CrawlerConfig | None = None,
        selectors: PageSelectors | None = None,
    ) -> None:
        self.page = page
        self.target_group_id = target_group_id
        self.config = config or get_config()
        self.selectors = selectors or PageSelectors()
        self.original_group_id: str | None = None
        self._switched = False

    async def __aenter__(self) -> Self:
        self.original_group_id = await self._selected()

        target = self.target_group_id
        if target is None or target == self.original_group_id:
            return self

        self._switched = True
        try:
            await switch_group(self.page, target, self.config, self.selectors)
        except Exception as exc:
            await self._restore(exc)
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        await self._restore(exc)
        return False

    async def _selected(self) -> str:
        return await current_group_id(self.page, self.selectors) or NO_GROUP_ID

    async def _restore(self, in_flight: BaseException | None) -> None:
        if not self._switched:
            return
        self._switched = False

        original = self.original_group_id or NO_GROUP_ID
        try:
            if await self._selected() == original:
                log.debug("Selection unchanged, nothing to restore", group_id=original)
                return
            await switch_group(self.page, original, self.config, self.selectors)
        except Exception as revert_exc:
            if in_flight is not None:
                log.error(
                    "Failed to restore group after error",
                    group_id=original,
                    error=str(revert_exc),
                    original_error=str(in_flight),
                )
                return
            raise GroupSwitchError(
                group_id=original,
                reason=f"failed to restore selection: {revert_exc}",
            ) from revert_exc

        log.debug("Group restored", group_id=original)
