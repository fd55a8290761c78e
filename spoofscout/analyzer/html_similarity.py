"""Structural HTML comparison for spotting cloned login pages."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Union

from bs4 import BeautifulSoup, Tag

from .models import InputDescriptor, SimilarityScore, StructuralFingerprint

Document = Union[str, bytes, BeautifulSoup]

TOP_CSS_CLASSES = 20

INPUT_WEIGHTS = {"type": 0.4, "name": 0.3, "id": 0.3}
OVERALL_WEIGHTS = {"inputs": 0.4, "css": 0.3, "ids": 0.2, "title": 0.1}

LOGIN_TEXT_RE = re.compile(r"login|sign in|log in|signin|authenticate", re.IGNORECASE)


def parse_html(document: Document) -> BeautifulSoup:
    """Return a parsed document, passing already-parsed soups through."""
    if isinstance(document, BeautifulSoup):
        return document
    return BeautifulSoup(document or "", "html.parser")


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _input_type(tag: Tag) -> str:
    return _attr(tag, "type").strip().lower()


def jaccard(a: Iterable, b: Iterable) -> float:
    """|A ∩ B| / |A ∪ B|, or 0.0 when both are empty."""
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def _ranked_classes(soup: BeautifulSoup, limit: int = TOP_CSS_CLASSES) -> list[str]:
    counts: Counter[str] = Counter()
    for tag in soup.find_all(class_=True):
        # html.parser already splits class into whitespace-separated tokens
        for token in tag.get("class") or []:
            if token:
                counts[token] += 1
    # sorted() is stable, so equal counts keep first-occurrence order
    return sorted(counts, key=lambda token: -counts[token])[:limit]


def extract_fingerprint(document: Document) -> StructuralFingerprint:
    """Extract the structural features compared by :func:`compare`."""
    soup = parse_html(document)

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if title_tag else ""

    inputs = [
        InputDescriptor(
            type=_attr(tag, "type") or "text",
            name=_attr(tag, "name"),
            id=_attr(tag, "id"),
        )
        for tag in soup.find_all("input")
    ]

    ids = {_attr(tag, "id") for tag in soup.find_all(id=True)}
    ids.discard("")

    return StructuralFingerprint(
        title=title,
        form_count=len(soup.find_all("form")),
        input_fields=inputs,
        css_classes=_ranked_classes(soup),
        ids=ids,
        links=[_attr(tag, "href") for tag in soup.find_all("a", href=True)],
        images=[_attr(tag, "src") for tag in soup.find_all("img", src=True)],
    )


def input_similarity(a: list[InputDescriptor], b: list[InputDescriptor]) -> float:
    """Blend of type, name and id overlap. No inputs on either side scores 0."""
    if not a and not b:
        return 0.0

    types = jaccard(sorted(i.type for i in a), sorted(i.type for i in b))
    names = jaccard([i.name for i in a if i.name], [i.name for i in b if i.name])
    ids = jaccard([i.id for i in a if i.id], [i.id for i in b if i.id])

    return (
        types * INPUT_WEIGHTS["type"]
        + names * INPUT_WEIGHTS["name"]
        + ids * INPUT_WEIGHTS["id"]
    )


def title_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if (a and a in b) or (b and b in a):
        return 0.5
    return 0.0


def compare(a: StructuralFingerprint, b: StructuralFingerprint) -> SimilarityScore:
    """Weighted structural similarity between two fingerprints."""
    inputs = input_similarity(a.input_fields, b.input_fields)
    css = jaccard(a.css_classes, b.css_classes)
    ids = jaccard(a.ids, b.ids)
    title = title_similarity(a.title, b.title)

    overall = (
        inputs * OVERALL_WEIGHTS["inputs"]
        + css * OVERALL_WEIGHTS["css"]
        + ids * OVERALL_WEIGHTS["ids"]
        + title * OVERALL_WEIGHTS["title"]
    )

    return SimilarityScore(
        overall=round(overall * 100),
        input_fields=round(inputs * 100),
        css_classes=round(css * 100),
        ids=round(ids * 100),
        title=round(title * 100),
    )


def compare_html(html_a: Document, html_b: Document) -> SimilarityScore:
    return compare(extract_fingerprint(html_a), extract_fingerprint(html_b))


def has_login_form(document: Document) -> bool:
    """
    Detect a credential-harvesting form.

    Requires a password input plus either login wording in the body text or
    a username/email style input.
    """
    soup = parse_html(document)
    inputs = soup.find_all("input")

    if not any(_input_type(tag) == "password" for tag in inputs):
        return False

    body = soup.body or soup
    if LOGIN_TEXT_RE.search(body.get_text(" ")):
        return True

    for tag in inputs:
        if _input_type(tag) == "email":
            return True
        name = _attr(tag, "name").lower()
        if "user" in name or "email" in name:
            return True
    return False
