"""Shared base for page scrapers.

Every scraper follows the same shape: navigate to one view under the
currently selected group, snapshot the relevant rows or tables in a single
``evaluate_all`` round-trip, then turn the snapshot into models in Python
with the parsers. Keeping DOM access to snapshots makes the parsing logic
testable with plain dictionaries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Generic, TypeVar
from zoneinfo import ZoneInfo

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.settings import CrawlerConfig, get_config
from mfcrawler.browser import navigate
from mfcrawler.logger import get_logger
from mfcrawler.selectors import PageSelectors, SiteUrls

log = get_logger(__name__)

T = TypeVar("T")

_SNAPSHOT_ROW_FN = """
const cellsOf = (row) => Array.from(row.children).filter(
  (c) => c.tagName === "TD" || c.tagName === "TH"
);
const snapshotRow = (row) => ({
  id: row.id || "",
  className: row.className || "",
  cells: cellsOf(row).map((c) => (c.innerText || "").trim()),
  cellClasses: cellsOf(row).map((c) => c.className || ""),
  links: Array.from(row.querySelectorAll("a[href]")).map((a) => a.getAttribute("href") || ""),
  inputs: Object.fromEntries(
    Array.from(row.querySelectorAll("input[name]")).map((i) => [i.name, i.value || ""])
  ),
});
"""

ROWS_JS = "(rows) => {" + _SNAPSHOT_ROW_FN + "return rows.map(snapshotRow); }"

TABLES_JS = (
    "(tables) => {"
    + _SNAPSHOT_ROW_FN
    + """
const headingBefore = (table) => {
  const section = table.closest("section");
  const sectionHeading = section ? section.querySelector("h1, h2") : null;
  if (sectionHeading) return (sectionHeading.innerText || "").trim();
  let node = table;
  while (node && node.tagName !== "BODY") {
    let sibling = node.previousElementSibling;
    while (sibling) {
      if (/^H[1-4]$/.test(sibling.tagName)) return (sibling.innerText || "").trim();
      const nested = sibling.querySelectorAll ? sibling.querySelectorAll("h1, h2, h3, h4") : [];
      if (nested.length) return (nested[nested.length - 1].innerText || "").trim();
      sibling = sibling.previousElementSibling;
    }
    node = node.parentElement;
  }
  return "";
};
return tables.map((table) => {
  const headerRow = table.querySelector("thead tr") || table.querySelector("tr");
  const headers = headerRow ? cellsOf(headerRow).map((c) => (c.innerText || "").trim()) : [];
  const rows = Array.from(table.querySelectorAll("tr")).filter(
    (r) => r !== headerRow && r.closest("table") === table
  );
  return { title: headingBefore(table), headers, rows: rows.map(snapshotRow) };
});
}"""
)


@dataclass(frozen=True)
class RowSnapshot:
    """Text content of one table row as captured in the page."""

    cells: tuple[str, ...] = ()
    id: str = ""
    class_name: str = ""
    cell_classes: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    inputs: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RowSnapshot":
        return cls(
            cells=tuple(str(c).strip() for c in raw.get("cells", [])),
            id=str(raw.get("id", "")),
            class_name=str(raw.get("className", "")),
            cell_classes=tuple(str(c) for c in raw.get("cellClasses", [])),
            links=tuple(str(h) for h in raw.get("links", [])),
            inputs=dict(raw.get("inputs", {})),
        )

    def cell(self, index: int, default: str = "") -> str:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return default

    def has_class(self, name: str) -> bool:
        return name in self.class_name.split()

    def cell_with_class(self, name: str) -> str | None:
        """Text of the first cell carrying the given CSS class."""
        for text, classes in zip(self.cells, self.cell_classes):
            if name in classes.split():
                return text
        return None


@dataclass(frozen=True)
class TableSnapshot:
    """A table with its header labels and the heading shown above it."""

    title: str
    headers: tuple[str, ...]
    rows: tuple[RowSnapshot, ...]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TableSnapshot":
        return cls(
            title=str(raw.get("title", "")).strip(),
            headers=tuple(str(h).strip() for h in raw.get("headers", [])),
            rows=tuple(RowSnapshot.from_dict(r) for r in raw.get("rows", [])),
        )

    def column(self, *labels: str) -> int | None:
        """Index of the first header equal to one of the labels."""
        for label in labels:
            for idx, header in enumerate(self.headers):
                if header == label:
                    return idx
        return None

    def value(self, row: RowSnapshot, *labels: str) -> str | None:
        """Cell text under the first matching header, None when absent."""
        idx = self.column(*labels)
        if idx is None or idx >= len(row.cells):
            return None
        return row.cells[idx]


class BaseScraper(ABC, Generic[T]):
    """Base class for one-view scrapers.

    Subclasses name the view's URL and implement ``parse``; ``scrape``
    navigates and parses. Navigation errors propagate unchanged.

    Attributes:
        config: CrawlerConfig instance.
        selectors: DOM hooks for the service.
        urls: Absolute URLs built from ``config.base_url``.
    """

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        selectors: PageSelectors | None = None,
    ) -> None:
        self.config = config or get_config()
        self.selectors = selectors or PageSelectors()
        self.urls = SiteUrls(self.config.base_url)

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable scraper name for logging."""
        ...

    @property
    @abstractmethod
    def url(self) -> str:
        """URL of the view this scraper reads."""
        ...

    @abstractmethod
    async def parse(self, page: Page) -> T:
        """Extract the result from a page already showing ``url``."""
        ...

    async def scrape(self, page: Page) -> T:
        """Navigate to the view and parse it."""
        log.info("Scraping view", scraper=self.name, url=self.url)
        await navigate(page, self.url, timeout_ms=self.config.navigation_timeout_ms)
        result = await self.parse(page)
        log.debug("View scraped", scraper=self.name)
        return result

    def today(self) -> date:
        """Current date in the crawl timezone, the reference for year inference."""
        return datetime.now(ZoneInfo(self.config.timezone_id)).date()

    async def read_rows(self, page: Page, selector: str) -> list[RowSnapshot]:
        """Snapshot every row matching the selector."""
        raw = await page.locator(selector).evaluate_all(ROWS_JS)
        return [RowSnapshot.from_dict(r) for r in raw or []]

    async def read_tables(self, page: Page, selector: str) -> list[TableSnapshot]:
        """Snapshot every table matching the selector."""
        raw = await page.locator(selector).evaluate_all(TABLES_JS)
        return [TableSnapshot.from_dict(t) for t in raw or []]

    async def wait_for_content(
        self,
        page: Page,
        selector: str,
        timeout_ms: int | None = None,
    ) -> bool:
        """Wait for a selector to appear.

        Returns:
            True if the element appeared, False if the wait timed out.
        """
        timeout = timeout_ms or self.config.default_timeout_ms

        try:
            await page.wait_for_selector(selector, timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            log.warning(
                "Timeout waiting for selector",
                selector=selector,
                timeout_ms=timeout,
            )
            return False
