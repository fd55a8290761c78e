"""Analyzer modules for SpoofScout."""

from .extractor import ContentExtractor, Extractor
from .html_similarity import compare, compare_html, extract_fingerprint, has_login_form, jaccard
from .models import DomainMatch, ExtractedContent, KeywordHit, SimilarityScore, StructuralFingerprint
from .typosquat import best_brand_match, detect, levenshtein_distance

__all__ = [
    "ContentExtractor",
    "Extractor",
    "compare",
    "compare_html",
    "extract_fingerprint",
    "has_login_form",
    "jaccard",
    "DomainMatch",
    "ExtractedContent",
    "KeywordHit",
    "SimilarityScore",
    "StructuralFingerprint",
    "best_brand_match",
    "detect",
    "levenshtein_distance",
]
