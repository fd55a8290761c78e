"""Tests for typosquatting detection."""

import pytest

from spoofscout.analyzer.typosquat import (
    best_brand_match,
    detect,
    has_homoglyph_variant,
    levenshtein_distance,
    similarity_percent,
)
from spoofscout.constants import MatchType


def test_levenshtein_basics():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("google", "google") == 0
    assert levenshtein_distance("", "abc") == 3


@pytest.mark.parametrize("a,b", [("google", "gogle"), ("paypal", "paypa1"), ("", "x")])
def test_levenshtein_is_symmetric(a, b):
    assert levenshtein_distance(a, b) == levenshtein_distance(b, a)


def test_similarity_percent():
    assert similarity_percent("google", "google") == 100.0
    assert similarity_percent("", "") == 100.0
    assert similarity_percent("gooqle", "google") == pytest.approx(5 / 6 * 100)


@pytest.mark.parametrize(
    "candidate,match_type,confidence",
    [
        ("mygoogle-login", MatchType.DIRECT, 100),
        ("gogle", MatchType.CHARACTER_OMISSION, 95),
        ("gooogle", MatchType.CHARACTER_ADDITION, 90),
        ("googel", MatchType.CHARACTER_SWAP, 95),
        ("g00gle", MatchType.HOMOGLYPH, 85),
        ("g0ogle", MatchType.HOMOGLYPH, 85),
    ],
)
def test_detect_rules(candidate, match_type, confidence):
    match = detect(candidate, "google")
    assert match.match_type is match_type
    assert match.confidence == confidence
    assert match.keyword == "google"


def test_detect_high_similarity_uses_edit_distance_score():
    match = detect("gooqle", "google")
    assert match.match_type is MatchType.HIGH_SIMILARITY
    assert match.confidence == pytest.approx(83.333, abs=0.01)


def test_detect_no_match():
    match = detect("amazon", "google")
    assert match.match_type is MatchType.NONE
    assert match.confidence == 0
    assert not match.matched


def test_detect_is_case_insensitive_and_strips_onion():
    assert detect("GOOGLEsupport.onion", "Google").match_type is MatchType.DIRECT
    assert detect("googel.onion", "google").match_type is MatchType.CHARACTER_SWAP


def test_detect_empty_inputs():
    assert not detect("", "google").matched
    assert not detect("google", "").matched


def test_detect_decodes_punycode_homoglyphs():
    # "google" spelled with two Cyrillic "о"
    label = "xn--" + "gооgle".encode("punycode").decode("ascii")
    match = detect(f"{label}.com", "google")
    assert match.match_type is MatchType.HOMOGLYPH


def test_first_matching_rule_wins_over_higher_confidence():
    # Addition (90) is checked before swap/homoglyph.
    assert detect("googlle", "google").match_type is MatchType.CHARACTER_ADDITION


def test_homoglyph_requires_a_substitution():
    assert has_homoglyph_variant("g00gle", "google")
    assert not has_homoglyph_variant("google", "google")
    assert not has_homoglyph_variant("gxxgle", "google")


def test_best_brand_match_picks_highest_confidence():
    best = best_brand_match("googel", ["amazon", "google", "googel"])
    assert best is not None
    assert best.keyword == "googel"
    assert best.match_type is MatchType.DIRECT


def test_best_brand_match_first_keyword_wins_ties():
    best = best_brand_match("googlepay", ["google", "pay"])
    assert best is not None
    assert best.keyword == "google"


def test_best_brand_match_none_when_nothing_matches():
    assert best_brand_match("randomsite", ["google", "paypal"]) is None
