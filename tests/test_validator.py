"""Tests for consistency monitoring of a finished crawl.

Validates ConsistencyMonitor checks using:
- Hand-built results for each cross-group invariant
- Boundary conditions of the degraded-parse threshold
- Strict versus lenient reporting
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from config.settings import CrawlerConfig
from mfcrawler.exceptions import ConsistencyError
from mfcrawler.models import NO_GROUP_ID
from mfcrawler.parsers import ParseStats
from mfcrawler.validator import ConsistencyMonitor
from tests.helpers import make_group_data, make_result


def consistent_result():
    return make_result(
        [
            make_group_data(NO_GROUP_ID, ["a1", "a2", "c1"], is_current=True),
            make_group_data("g1", ["a1", "c1"]),
            make_group_data("g2", []),
        ]
    )


class TestCurrentGroupCheck:
    """Test suite for the single current group invariant."""

    def test_one_current_group_passes(self, mock_config: CrawlerConfig) -> None:
        assert ConsistencyMonitor(mock_config).check_current_group(consistent_result()) == []

    def test_no_current_group_reported(self, mock_config: CrawlerConfig) -> None:
        result = make_result(
            [make_group_data(NO_GROUP_ID, ["a1"]), make_group_data("g1", ["a1"])]
        )

        findings = ConsistencyMonitor(mock_config).check_current_group(result)

        assert len(findings) == 1
        assert "found 0" in findings[0]

    def test_two_current_groups_reported(self, mock_config: CrawlerConfig) -> None:
        result = make_result(
            [
                make_group_data(NO_GROUP_ID, ["a1"], is_current=True),
                make_group_data("g1", ["a1"], is_current=True),
            ]
        )

        assert len(ConsistencyMonitor(mock_config).check_current_group(result)) == 1


class TestNoGroupSupersetCheck:
    """Test suite for the "no group" account count invariants."""

    def test_groups_within_no_group_view_pass(self, mock_config: CrawlerConfig) -> None:
        assert ConsistencyMonitor(mock_config).check_no_group_superset(consistent_result()) == []

    def test_group_larger_than_no_group_view_reported(self, mock_config: CrawlerConfig) -> None:
        result = make_result(
            [
                make_group_data(NO_GROUP_ID, ["a1"], is_current=True),
                make_group_data("g1", ["a1", "a2"]),
            ]
        )

        findings = ConsistencyMonitor(mock_config).check_no_group_superset(result)

        assert len(findings) == 1
        assert "'g1'" in findings[0]

    def test_global_registry_mismatch_reported(self, mock_config: CrawlerConfig) -> None:
        result = make_result(
            [make_group_data(NO_GROUP_ID, ["a1", "a2"], is_current=True)],
            global_account_ids=["a1", "a2", "a3"],
        )

        findings = ConsistencyMonitor(mock_config).check_no_group_superset(result)

        assert findings == ["'no group' view has 2 accounts, global registry has 3"]

    def test_missing_no_group_entry_reported(self, mock_config: CrawlerConfig) -> None:
        result = make_result([make_group_data("g1", ["a1"], is_current=True)])

        findings = ConsistencyMonitor(mock_config).check_no_group_superset(result)

        assert findings == ["'no group' entry missing from group data"]


class TestParseDegradationCheck:
    """Test suite for the degraded-parse threshold."""

    @pytest.mark.parametrize(
        ("degraded", "total", "reported"),
        [
            (29, 100, False),
            (30, 100, False),
            (31, 100, True),
            (10, 10, True),
            (0, 0, False),
        ],
    )
    def test_threshold_is_exclusive(
        self, mock_config: CrawlerConfig, degraded: int, total: int, reported: bool
    ) -> None:
        # mock_config threshold is 0.30
        stats = ParseStats(total=total, degraded=degraded, samples=["abc"] * min(degraded, 20))

        findings = ConsistencyMonitor(mock_config).check_parse_degradation(stats)

        assert bool(findings) is reported

    def test_no_stats_passes(self, mock_config: CrawlerConfig) -> None:
        assert ConsistencyMonitor(mock_config).check_parse_degradation(None) == []

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        total=st.integers(min_value=1, max_value=1000),
        data=st.data(),
    )
    def test_reported_iff_ratio_exceeds_threshold(
        self, mock_config: CrawlerConfig, total: int, data: st.DataObject
    ) -> None:
        degraded = data.draw(st.integers(min_value=0, max_value=total))
        stats = ParseStats(total=total, degraded=degraded)

        findings = ConsistencyMonitor(mock_config).check_parse_degradation(stats)

        expected = degraded / total > mock_config.degraded_parse_threshold + 1e-9
        assert bool(findings) is expected


class TestEvaluate:
    """Test suite for strict and lenient evaluation."""

    def test_consistent_result_has_no_findings(self, mock_config: CrawlerConfig) -> None:
        monitor = ConsistencyMonitor(mock_config)

        assert monitor.evaluate(consistent_result(), ParseStats(total=10)) == []
        assert monitor.get_summary() == {"consistent": True, "findings": 0, "strict": False}

    def test_lenient_mode_returns_findings(self, mock_config: CrawlerConfig) -> None:
        monitor = ConsistencyMonitor(mock_config)
        result = make_result([make_group_data("g1", ["a1"])])

        findings = monitor.evaluate(result)

        # No current group and no "no group" entry
        assert len(findings) == 2
        assert monitor.get_summary()["consistent"] is False

    def test_strict_mode_raises(
        self, mock_config: CrawlerConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from config.settings import get_config

        monkeypatch.setenv("STRICT_CONSISTENCY", "true")
        get_config.cache_clear()
        monitor = ConsistencyMonitor(get_config())

        with pytest.raises(ConsistencyError) as exc_info:
            monitor.evaluate(consistent_result(), ParseStats(total=10, degraded=10))

        assert len(exc_info.value.findings) == 1
        assert "degraded to zero" in exc_info.value.findings[0]

    def test_strict_mode_passes_consistent_result(
        self, mock_config: CrawlerConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from config.settings import get_config

        monkeypatch.setenv("STRICT_CONSISTENCY", "true")
        get_config.cache_clear()

        assert ConsistencyMonitor(get_config()).evaluate(consistent_result()) == []
