"""Per-candidate analysis: metadata scoring, crawl gate, page checks, severity."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ..analyzer.extractor import ContentExtractor, Extractor
from ..analyzer.html_similarity import compare, extract_fingerprint, has_login_form, parse_html
from ..analyzer.models import DomainMatch, StructuralFingerprint
from ..analyzer.typosquat import best_brand_match
from ..config import BrandProfile
from ..constants import SKIPPED_CRAWL_REASON, IndicatorType, SeverityTier
from ..discovery.federated_search import SearchResult
from ..errors import FetchError
from ..fetcher import Fetcher
from ..utils.domains import candidate_domain
from .findings import Finding, Indicator

logger = logging.getLogger(__name__)

HTML_SIMILARITY_MIN_OVERALL = 60
LOGIN_FORM_CONFIDENCE = 90

POINTS_KEYWORD_IN_METADATA = 1
POINTS_KEYWORD_MATCH = 2
POINTS_LOGIN_FORM = 3
POINTS_CREDENTIALS = 5
POINTS_COMPANY_DOMAIN = 2


@dataclass
class CandidateSite:
    """A deduplicated search hit queued for analysis."""

    result: SearchResult
    domain: str
    html: Optional[str] = None

    @classmethod
    def from_result(cls, result: SearchResult) -> "CandidateSite":
        return cls(result=result, domain=candidate_domain(result.url))

    @property
    def url(self) -> str:
        return self.result.url


@dataclass(frozen=True)
class ReferencePage:
    """The brand's genuine login page, fetched once per scan and shared read-only."""

    url: str
    html: str
    fingerprint: StructuralFingerprint

    @classmethod
    def from_html(cls, url: str, html: str) -> "ReferencePage":
        return cls(url=url, html=html, fingerprint=extract_fingerprint(html))


@dataclass(frozen=True)
class AnalysisSettings:
    similarity_threshold: float = 70.0
    enable_structural_check: bool = True
    fetch_timeout: float = 10.0


@dataclass
class _Draft:
    indicators: list[Indicator] = field(default_factory=list)
    score: float = 0.0
    was_crawled: bool = False
    crawl_error: Optional[str] = None
    crawl_reason: Optional[str] = None

    def add(self, indicator_type: IndicatorType, points: float, **details) -> None:
        self.indicators.append(Indicator(type=indicator_type, points=points, details=details))
        self.score += points


class AnalysisEngine:
    """Turns one candidate into a scored :class:`Finding`, fetching the page only when worthwhile."""

    def __init__(
        self,
        *,
        brand: BrandProfile,
        fetcher: Fetcher,
        extractor: Extractor | None = None,
        settings: AnalysisSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.brand = brand
        self.fetcher = fetcher
        self.extractor = extractor or ContentExtractor()
        self.settings = settings or AnalysisSettings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def score_metadata(self, candidate: CandidateSite, draft: _Draft) -> DomainMatch | None:
        """Domain similarity and title/description keywords; never fetches."""
        best = best_brand_match(candidate.domain, self.brand.keywords)
        if best is not None:
            draft.add(
                IndicatorType.DOMAIN_SIMILARITY,
                best.confidence / 10,
                confidence=best.confidence,
                matched_keyword=best.keyword,
                similarity_type=best.match_type.value,
            )

        text = f"{candidate.result.title} {candidate.result.description}".lower()
        in_metadata = [k for k in self.brand.keywords if k.lower() in text]
        if in_metadata:
            draft.add(
                IndicatorType.KEYWORD_IN_METADATA,
                POINTS_KEYWORD_IN_METADATA,
                keywords=in_metadata,
                location="title_or_description",
            )
        return best

    def should_crawl(self, best: DomainMatch | None, reference: ReferencePage | None) -> bool:
        if best is not None and best.confidence >= self.settings.similarity_threshold:
            return True
        return bool(self.settings.enable_structural_check and reference is not None)

    def _score_page(
        self,
        candidate: CandidateSite,
        html: str,
        reference: ReferencePage | None,
        draft: _Draft,
    ) -> None:
        extracted = self.extractor.extract(html, candidate.url, self.brand.keywords)
        soup = parse_html(html)

        if extracted.keyword_hits:
            draft.add(
                IndicatorType.KEYWORD_MATCH,
                POINTS_KEYWORD_MATCH,
                keywords=[hit.keyword for hit in extracted.keyword_hits],
                total_matches=sum(hit.count for hit in extracted.keyword_hits),
            )

        login_form = has_login_form(soup)
        if login_form:
            draft.add(IndicatorType.LOGIN_FORM_DETECTED, POINTS_LOGIN_FORM, confidence=LOGIN_FORM_CONFIDENCE)

        if self.settings.enable_structural_check and reference is not None and login_form:
            similarity = compare(extract_fingerprint(soup), reference.fingerprint)
            if similarity.overall > HTML_SIMILARITY_MIN_OVERALL:
                draft.add(
                    IndicatorType.HTML_SIMILARITY,
                    similarity.overall / 10,
                    similarity_score=similarity.overall,
                    details=similarity.to_dict(),
                )

        if extracted.credential_like_strings:
            draft.add(
                IndicatorType.CREDENTIALS_FOUND,
                POINTS_CREDENTIALS,
                count=len(extracted.credential_like_strings),
            )

        brand_domains = [d.lower() for d in self.brand.domains]
        mentions = [
            link for link in extracted.outbound_links if any(d in link.lower() for d in brand_domains)
        ]
        if mentions:
            draft.add(IndicatorType.COMPANY_DOMAIN_MENTIONED, POINTS_COMPANY_DOMAIN, links=mentions)

    async def _crawl(
        self,
        candidate: CandidateSite,
        reference: ReferencePage | None,
        draft: _Draft,
    ) -> None:
        try:
            logger.info("Crawling candidate: %s", candidate.url)
            html = await self.fetcher.fetch(candidate.url, self.settings.fetch_timeout)
            candidate.html = html
            self._score_page(candidate, html, reference, draft)
            draft.was_crawled = True
        except FetchError as exc:
            draft.crawl_error = str(exc) or exc.category.value
            logger.info("Crawl failed for %s: %s", candidate.url, draft.crawl_error)
        except Exception as exc:
            draft.crawl_error = str(exc) or exc.__class__.__name__
            logger.error("Page analysis failed for %s: %s", candidate.url, exc)

    def _finding(self, result: SearchResult, domain: str, draft: _Draft) -> Finding:
        return Finding(
            url=result.url,
            domain=domain,
            indicators=tuple(draft.indicators),
            severity_score=draft.score,
            severity=SeverityTier.from_score(draft.score),
            was_crawled=draft.was_crawled,
            crawl_error=draft.crawl_error,
            crawl_reason=draft.crawl_reason,
            title=result.title,
            description=result.description,
            source_backend=result.source_backend,
            found_at=result.found_at,
            analyzed_at=self._clock(),
        )

    def failed(self, result: SearchResult, exc: BaseException) -> Finding:
        """Finding for a candidate that could not be analyzed at all."""
        draft = _Draft(crawl_error=str(exc) or exc.__class__.__name__)
        return self._finding(result, "", draft)

    async def evaluate(self, candidate: CandidateSite, reference: ReferencePage | None = None) -> Finding:
        """
        Run every stage and return the finding, even when it carries no indicators.

        Errors in any stage end up in ``crawl_error``; indicators scored
        before the error are kept.
        """
        draft = _Draft()
        try:
            best = self.score_metadata(candidate, draft)
            crawl = self.should_crawl(best, reference)
        except Exception as exc:
            draft.crawl_error = str(exc) or exc.__class__.__name__
            logger.error("Metadata scoring failed for %s: %s", candidate.url, exc)
            return self._finding(candidate.result, candidate.domain, draft)

        if not crawl:
            draft.crawl_reason = SKIPPED_CRAWL_REASON
            logger.debug("Skipping crawl of %s (%s)", candidate.url, SKIPPED_CRAWL_REASON)
        else:
            await self._crawl(candidate, reference, draft)

        return self._finding(candidate.result, candidate.domain, draft)

    async def analyze(self, candidate: CandidateSite, reference: ReferencePage | None = None) -> Finding | None:
        """Finding for the candidate, or None when nothing suspicious was found."""
        finding = await self.evaluate(candidate, reference)
        return finding if finding.indicators else None
