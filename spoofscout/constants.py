"""Centralized constants for SpoofScout.

Enums shared by the detectors, the analysis pipeline and the finding
aggregator live here so that string values stay consistent in the output
payload.
"""

from enum import Enum, IntEnum


class SeverityTier(IntEnum):
    """Severity tiers with ranking for comparison (higher is worse)."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @classmethod
    def from_score(cls, score: float) -> "SeverityTier":
        """Map an accumulated indicator score to a tier."""
        if score >= 9:
            return cls.CRITICAL
        if score >= 7:
            return cls.HIGH
        if score >= 4:
            return cls.MEDIUM
        return cls.LOW

    @property
    def sort_rank(self) -> int:
        """Output ordering: critical first, low last."""
        return SeverityTier.CRITICAL - self

    def __str__(self) -> str:
        return self.name.lower()


class MatchType(str, Enum):
    """Typosquatting rule that matched a candidate domain."""

    DIRECT = "direct"
    CHARACTER_OMISSION = "character_omission"
    CHARACTER_ADDITION = "character_addition"
    CHARACTER_SWAP = "character_swap"
    HOMOGLYPH = "homoglyph"
    HIGH_SIMILARITY = "high_similarity"
    NONE = "none"


class IndicatorType(str, Enum):
    """Kinds of evidence accumulated for a candidate."""

    DOMAIN_SIMILARITY = "domain_similarity"
    KEYWORD_IN_METADATA = "keyword_in_metadata"
    KEYWORD_MATCH = "keyword_match"
    LOGIN_FORM_DETECTED = "login_form_detected"
    HTML_SIMILARITY = "html_similarity"
    CREDENTIALS_FOUND = "credentials_found"
    COMPANY_DOMAIN_MENTIONED = "company_domain_mentioned"


SEVERITY_TIERS = tuple(str(t) for t in sorted(SeverityTier, reverse=True))

SKIPPED_CRAWL_REASON = "low similarity - skipped for efficiency"
