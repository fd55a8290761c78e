"""Analysis pipeline for SpoofScout."""

from .analysis import AnalysisEngine, AnalysisSettings, CandidateSite, ReferencePage
from .findings import Finding, FindingAggregator, FindingSummary, Indicator
from .runner import ScanMetadata, ScanReport, ScanRunner

__all__ = [
    "AnalysisEngine",
    "AnalysisSettings",
    "CandidateSite",
    "ReferencePage",
    "Finding",
    "FindingAggregator",
    "FindingSummary",
    "Indicator",
    "ScanMetadata",
    "ScanReport",
    "ScanRunner",
]
