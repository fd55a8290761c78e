"""Analyzer data models."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..constants import MatchType


@dataclass(frozen=True)
class DomainMatch:
    """Outcome of a typosquatting check of one domain against one keyword."""

    keyword: str
    match_type: MatchType = MatchType.NONE
    confidence: float = 0.0

    @property
    def matched(self) -> bool:
        return self.match_type is not MatchType.NONE

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "match_type": self.match_type.value,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class InputDescriptor:
    """One ``<input>`` element as seen by the structural comparator."""

    type: str = "text"
    name: str = ""
    id: str = ""


@dataclass
class StructuralFingerprint:
    """Structural features extracted from an HTML document."""

    title: str = ""
    form_count: int = 0
    input_fields: list[InputDescriptor] = field(default_factory=list)
    css_classes: list[str] = field(default_factory=list)
    ids: set[str] = field(default_factory=set)
    links: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SimilarityScore:
    """Weighted structural similarity, every field an integer in [0, 100]."""

    overall: int
    input_fields: int
    css_classes: int
    ids: int
    title: int

    def to_dict(self) -> dict:
        return {
            "overall": self.overall,
            "input_fields": self.input_fields,
            "css_classes": self.css_classes,
            "ids": self.ids,
            "title": self.title,
        }


@dataclass(frozen=True)
class KeywordHit:
    keyword: str
    count: int
    contexts: tuple[str, ...] = ()


@dataclass
class ExtractedContent:
    """What the content extractor found in a fetched page."""

    keyword_hits: list[KeywordHit] = field(default_factory=list)
    credential_like_strings: list[str] = field(default_factory=list)
    outbound_links: list[str] = field(default_factory=list)
