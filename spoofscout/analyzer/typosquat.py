"""Typosquatting and look-alike domain detection."""

from __future__ import annotations

import logging
import string
from typing import Iterable

import idna
from rapidfuzz.distance import Levenshtein

from ..constants import MatchType
from .models import DomainMatch

logger = logging.getLogger(__name__)

# Latin character -> visually similar replacements (Cyrillic, Greek, digits).
HOMOGLYPHS: dict[str, tuple[str, ...]] = {
    "a": ("а", "ɑ", "α"),  # Cyrillic а, Latin alpha, Greek alpha
    "e": ("е", "ė", "ē"),  # Cyrillic е
    "i": ("і", "ı", "l", "1"),  # Cyrillic і, dotless i
    "o": ("о", "0", "ο"),  # Cyrillic о, zero, Greek omicron
    "p": ("р", "ρ"),  # Cyrillic р, Greek rho
    "c": ("с", "ϲ"),  # Cyrillic с, Greek lunate sigma
    "x": ("х", "×"),  # Cyrillic х
    "y": ("у", "ү"),  # Cyrillic у
    "n": ("ո", "ռ"),  # Armenian
    "m": ("м", "ṃ"),  # Cyrillic м
}

CONFIDENCE_DIRECT = 100
CONFIDENCE_OMISSION = 95
CONFIDENCE_ADDITION = 90
CONFIDENCE_SWAP = 95
CONFIDENCE_HOMOGLYPH = 85
HIGH_SIMILARITY_THRESHOLD = 80


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insertions, deletions, substitutions)."""
    return Levenshtein.distance(a, b)


def similarity_percent(a: str, b: str) -> float:
    """Edit-distance similarity scaled to 0-100."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 100.0
    return (max_len - levenshtein_distance(a, b)) / max_len * 100


def _decode_idn(domain: str) -> str:
    # Punycode labels (xn--) hide homoglyphs; decode so the table can see them.
    if "xn--" not in domain:
        return domain
    labels = []
    for label in domain.split("."):
        if label.startswith("xn--"):
            try:
                label = idna.decode(label)
            except (idna.IDNAError, UnicodeError):
                logger.debug("Could not decode IDN label %r", label)
        labels.append(label)
    return ".".join(labels)


def _prepare_candidate(domain: str) -> str:
    candidate = (domain or "").strip().lower()
    if candidate.endswith(".onion"):
        candidate = candidate[: -len(".onion")]
    return _decode_idn(candidate)


def _is_omission(candidate: str, keyword: str) -> bool:
    if len(candidate) != len(keyword) - 1:
        return False
    return any(keyword[:i] + keyword[i + 1:] == candidate for i in range(len(keyword)))


def _is_addition(candidate: str, keyword: str) -> bool:
    if len(candidate) != len(keyword) + 1:
        return False
    for i in range(len(keyword) + 1):
        for letter in string.ascii_lowercase:
            if keyword[:i] + letter + keyword[i:] == candidate:
                return True
    return False


def _is_swap(candidate: str, keyword: str) -> bool:
    if len(candidate) != len(keyword):
        return False
    for i in range(len(keyword) - 1):
        variant = keyword[:i] + keyword[i + 1] + keyword[i] + keyword[i + 2:]
        if variant == candidate:
            return True
    return False


def has_homoglyph_variant(candidate: str, keyword: str) -> bool:
    """
    True if the candidate contains the keyword with look-alike substitutions.

    Every substituted position must use a glyph from ``HOMOGLYPHS`` for the
    keyword character at that position, and at least one position must be
    substituted. A single substitution ("g0ogle") and repeated ones
    ("g00gle") both qualify.
    """
    size = len(keyword)
    for start in range(len(candidate) - size + 1):
        window = candidate[start:start + size]
        substituted = False
        for seen, expected in zip(window, keyword):
            if seen == expected:
                continue
            if seen in HOMOGLYPHS.get(expected, ()):
                substituted = True
                continue
            break
        else:
            if substituted:
                return True
    return False


def detect(candidate_domain: str, keyword: str) -> DomainMatch:
    """
    Classify how ``candidate_domain`` imitates ``keyword``.

    Rules are tried in a fixed order and the first one that holds wins, even
    when a later rule would report a higher confidence.
    """
    candidate = _prepare_candidate(candidate_domain)
    brand = (keyword or "").strip().lower()
    if not brand or not candidate:
        return DomainMatch(keyword=keyword)

    if brand in candidate:
        return DomainMatch(keyword, MatchType.DIRECT, CONFIDENCE_DIRECT)
    if _is_omission(candidate, brand):
        return DomainMatch(keyword, MatchType.CHARACTER_OMISSION, CONFIDENCE_OMISSION)
    if _is_addition(candidate, brand):
        return DomainMatch(keyword, MatchType.CHARACTER_ADDITION, CONFIDENCE_ADDITION)
    if _is_swap(candidate, brand):
        return DomainMatch(keyword, MatchType.CHARACTER_SWAP, CONFIDENCE_SWAP)
    if has_homoglyph_variant(candidate, brand):
        return DomainMatch(keyword, MatchType.HOMOGLYPH, CONFIDENCE_HOMOGLYPH)

    similarity = similarity_percent(candidate, brand)
    if similarity > HIGH_SIMILARITY_THRESHOLD:
        return DomainMatch(keyword, MatchType.HIGH_SIMILARITY, similarity)

    return DomainMatch(keyword=keyword)


def best_brand_match(candidate_domain: str, keywords: Iterable[str]) -> DomainMatch | None:
    """Highest-confidence match across all brand keywords (first keyword wins ties)."""
    best: DomainMatch | None = None
    for keyword in keywords:
        match = detect(candidate_domain, keyword)
        if not match.matched:
            continue
        if best is None or match.confidence > best.confidence:
            best = match
    return best
