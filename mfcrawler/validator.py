"""Consistency monitoring of a finished crawl.

Scrapers never fail on a single odd cell: unparsable amounts degrade to
zero and a group that rendered half its accounts still produces data. The
ConsistencyMonitor looks at the assembled ScrapeResult as a whole and
reports what cannot be right:

- more or fewer than one group marked current,
- a real group holding more accounts than the "no group" view,
- the "no group" view disagreeing with the global account registry,
- too many numeric cells that fell back to zero.

By default findings are logged as warnings. With ``strict_consistency``
enabled they raise ConsistencyError so the run exits non-zero.
"""

from typing import Any

from config.settings import CrawlerConfig, get_config
from mfcrawler.exceptions import ConsistencyError
from mfcrawler.logger import get_logger
from mfcrawler.models import ScrapeResult, is_no_group
from mfcrawler.parsers import ParseStats

log = get_logger(__name__)


class ConsistencyMonitor:
    """Watchdog for cross-group invariants and silent parse degradation.

    Attributes:
        config: CrawlerConfig with the threshold and strictness settings.
        findings: Findings of the last evaluation.

    Example:
        with track_parses() as stats:
            result = await scrape_all_groups(page, config)
        ConsistencyMonitor(config).evaluate(result, stats)
    """

    def __init__(self, config: CrawlerConfig | None = None) -> None:
        self.config = config or get_config()
        self.findings: list[str] = []

    def check_current_group(self, result: ScrapeResult) -> list[str]:
        """Exactly one group entry must be marked current."""
        current = [data.group.id for data in result.group_data_list if data.group.is_current]
        if len(current) != 1:
            return [f"expected exactly one current group, found {len(current)}: {current}"]
        return []

    def check_no_group_superset(self, result: ScrapeResult) -> list[str]:
        """The "no group" view must hold at least as many accounts as any group."""
        no_group = next(
            (data for data in result.group_data_list if is_no_group(data.group.id)), None
        )
        if no_group is None:
            return ["'no group' entry missing from group data"]

        findings = []
        baseline = len(no_group.registered_accounts.accounts)
        for data in result.group_data_list:
            count = len(data.registered_accounts.accounts)
            if count > baseline:
                findings.append(
                    f"group {data.group.id!r} has {count} accounts, "
                    f"more than the {baseline} of the 'no group' view"
                )

        global_count = len(result.global_data.registered_accounts.accounts)
        if baseline != global_count:
            findings.append(
                f"'no group' view has {baseline} accounts, "
                f"global registry has {global_count}"
            )
        return findings

    def check_parse_degradation(self, stats: ParseStats | None) -> list[str]:
        """Too many zero-fallback parses point to a changed page layout."""
        if stats is None or stats.total == 0:
            return []

        threshold = self.config.degraded_parse_threshold
        # Use epsilon for floating point comparison to handle precision issues
        if stats.degraded_ratio > threshold + 1e-9:
            return [
                f"{stats.degraded} of {stats.total} numeric cells degraded to zero "
                f"({stats.degraded_ratio:.1%} > {threshold:.1%}), samples: {stats.samples[:5]}"
            ]
        return []

    def evaluate(self, result: ScrapeResult, stats: ParseStats | None = None) -> list[str]:
        """Run every check and report the findings.

        Returns:
            The findings, empty when the result is consistent.

        Raises:
            ConsistencyError: In strict mode, if there is any finding.
        """
        self.findings = [
            *self.check_current_group(result),
            *self.check_no_group_superset(result),
            *self.check_parse_degradation(stats),
        ]

        log.info(
            "Consistency evaluated",
            groups=len(result.group_data_list),
            findings=len(self.findings),
            parsed_cells=stats.total if stats else None,
            degraded_cells=stats.degraded if stats else None,
        )

        for finding in self.findings:
            log.warning("Consistency finding", finding=finding)

        if self.findings and self.config.strict_consistency:
            raise ConsistencyError(self.findings)

        return self.findings

    def get_summary(self) -> dict[str, Any]:
        """Summary of the last evaluation for the run log."""
        return {
            "consistent": not self.findings,
            "findings": len(self.findings),
            "strict": self.config.strict_consistency,
        }
