"""Content extraction from fetched pages: keyword hits, credential dumps, outbound links."""

from __future__ import annotations

import re
from typing import Iterable, Protocol

from .html_similarity import parse_html
from .models import ExtractedContent, KeywordHit

CREDENTIAL_LINE_RE = re.compile(r"^([a-zA-Z0-9._-]{3,30}):([^\s:]{4,50})$")
CLEARNET_LINK_RE = re.compile(
    r"https?://(?![^\s\"'<>]*\.onion)[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}[^\s\"'<>]*",
    re.IGNORECASE,
)

MAX_CONTEXTS = 3
MAX_CREDENTIALS = 50
MAX_OUTBOUND_LINKS = 20


class Extractor(Protocol):
    """Pulls brand-relevant content out of a fetched page."""

    def extract(self, html: str, url: str, keywords: list[str]) -> ExtractedContent:
        raise NotImplementedError


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def find_keywords(text: str, keywords: Iterable[str]) -> list[KeywordHit]:
    """Count case-insensitive keyword occurrences with a little surrounding context."""
    hits: list[KeywordHit] = []
    for keyword in keywords:
        needle = (keyword or "").strip()
        if not needle:
            continue
        pattern = re.escape(needle)
        count = len(re.findall(pattern, text, re.IGNORECASE))
        if not count:
            continue
        contexts = tuple(
            m.group(0).strip()
            for m in re.finditer(rf".{{0,50}}{pattern}.{{0,50}}", text, re.IGNORECASE)
        )[:MAX_CONTEXTS]
        hits.append(KeywordHit(keyword=keyword, count=count, contexts=contexts))
    return hits


def find_credentials(text: str) -> list[str]:
    """Lines shaped like ``user:password`` (URLs excluded)."""
    found: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(("http://", "https://")):
            continue
        if CREDENTIAL_LINE_RE.match(stripped):
            found.append(stripped)
    return found[:MAX_CREDENTIALS]


def find_clearnet_links(html: str) -> list[str]:
    return _unique(CLEARNET_LINK_RE.findall(html or ""))[:MAX_OUTBOUND_LINKS]


class ContentExtractor:
    """Default extractor backed by BeautifulSoup text extraction and regex."""

    def extract(self, html: str, url: str, keywords: list[str]) -> ExtractedContent:
        soup = parse_html(html)
        for tag in soup(["script", "style"]):
            tag.decompose()
        body = soup.body or soup
        text = body.get_text("\n")

        return ExtractedContent(
            keyword_hits=find_keywords(text, keywords),
            credential_like_strings=find_credentials(text),
            outbound_links=find_clearnet_links(html),
        )

