"""Tests for finding aggregation."""

import pytest

from spoofscout.constants import SEVERITY_TIERS, IndicatorType, SeverityTier
from spoofscout.pipeline.findings import Finding, FindingAggregator, Indicator, empty_severity_counts


def _finding(url: str, score: float, *, indicators=None) -> Finding:
    if indicators is None:
        indicators = (Indicator(IndicatorType.DOMAIN_SIMILARITY, score, {"confidence": score * 10}),)
    return Finding(
        url=url,
        domain=url,
        indicators=tuple(indicators),
        severity_score=score,
        severity=SeverityTier.from_score(score),
        was_crawled=False,
    )


@pytest.mark.parametrize(
    "score,tier",
    [
        (0, "low"),
        (3.9, "low"),
        (4, "medium"),
        (6.9, "medium"),
        (7, "high"),
        (8.9, "high"),
        (9, "critical"),
        (13, "critical"),
    ],
)
def test_severity_from_score(score, tier):
    assert str(SeverityTier.from_score(score)) == tier


def test_summary_sorts_by_severity_and_is_stable():
    aggregator = FindingAggregator()
    low_a = _finding("low-a", 1)
    crit_a = _finding("crit-a", 10)
    low_b = _finding("low-b", 2)
    crit_b = _finding("crit-b", 9.5)
    medium = _finding("medium", 5)
    for finding in (low_a, crit_a, low_b, crit_b, medium):
        aggregator.add(finding)

    summary = aggregator.summary()

    assert [f.url for f in summary.findings] == ["crit-a", "crit-b", "medium", "low-a", "low-b"]
    assert summary.severity_counts == {"critical": 2, "high": 0, "medium": 1, "low": 2}
    assert summary.total_findings == 5


def test_findings_without_indicators_are_ignored():
    aggregator = FindingAggregator([_finding("empty", 0, indicators=())])
    assert len(aggregator) == 0
    assert aggregator.summary().severity_counts == {"critical": 0, "high": 0, "medium": 0, "low": 0}


def test_finding_to_dict_flattens_indicator_details():
    payload = _finding("http://x.onion", 9.5).to_dict()
    assert payload["severity"] == "critical"
    assert payload["indicators"] == [{"type": "domain_similarity", "points": 9.5, "confidence": 95.0}]
    assert payload["found_at"] is None


def test_severity_counts_list_tiers_worst_first():
    assert SEVERITY_TIERS == ("critical", "high", "medium", "low")
    assert list(empty_severity_counts()) == list(SEVERITY_TIERS)
    assert list(FindingAggregator([_finding("x", 5)]).summary().severity_counts) == list(SEVERITY_TIERS)
