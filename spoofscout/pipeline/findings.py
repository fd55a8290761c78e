"""Finding records and the aggregator that ranks them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from ..constants import SEVERITY_TIERS, IndicatorType, SeverityTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Indicator:
    """One piece of impersonation evidence and the score it contributed."""

    type: IndicatorType
    points: float
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "points": self.points, **self.details}


@dataclass(frozen=True)
class Finding:
    """Scored analysis result for one candidate site."""

    url: str
    domain: str
    indicators: tuple[Indicator, ...]
    severity_score: float
    severity: SeverityTier
    was_crawled: bool
    crawl_error: Optional[str] = None
    crawl_reason: Optional[str] = None
    title: str = ""
    description: str = ""
    source_backend: str = ""
    found_at: Optional[datetime] = None
    analyzed_at: Optional[datetime] = None

    def has(self, indicator_type: IndicatorType) -> bool:
        return any(i.type is indicator_type for i in self.indicators)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "title": self.title,
            "description": self.description,
            "source_backend": self.source_backend,
            "found_at": self.found_at.isoformat() if self.found_at else None,
            "analyzed_at": self.analyzed_at.isoformat() if self.analyzed_at else None,
            "indicators": [i.to_dict() for i in self.indicators],
            "severity": str(self.severity),
            "severity_score": self.severity_score,
            "was_crawled": self.was_crawled,
            "crawl_error": self.crawl_error,
            "crawl_reason": self.crawl_reason,
        }


def empty_severity_counts() -> dict[str, int]:
    return {tier: 0 for tier in SEVERITY_TIERS}


@dataclass
class FindingSummary:
    findings: list[Finding]
    severity_counts: dict[str, int]

    @property
    def total_findings(self) -> int:
        return len(self.findings)

    def to_dict(self) -> dict:
        return {
            "total_findings": self.total_findings,
            "findings": [f.to_dict() for f in self.findings],
            "severity_counts": dict(self.severity_counts),
        }


class FindingAggregator:
    """Collects findings in completion order and ranks them by severity."""

    def __init__(self, findings: Iterable[Finding] | None = None):
        self._findings: list[Finding] = []
        for finding in findings or ():
            self.add(finding)

    def add(self, finding: Finding) -> None:
        if not finding.indicators:
            logger.debug("Ignoring finding without indicators: %s", finding.url)
            return
        self._findings.append(finding)

    def __len__(self) -> int:
        return len(self._findings)

    def summary(self) -> FindingSummary:
        """Findings sorted critical -> low (stable within a tier) plus per-tier counts."""
        counts = empty_severity_counts()
        for finding in self._findings:
            counts[str(finding.severity)] += 1
        ranked = sorted(self._findings, key=lambda f: f.severity.sort_rank)
        return FindingSummary(findings=ranked, severity_counts=counts)
