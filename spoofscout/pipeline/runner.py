"""One end-to-end brand scan: search, gated analysis, ranked findings."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from ..analyzer.extractor import ContentExtractor, Extractor
from ..config import BrandProfile, Config
from ..discovery.federated_search import AggregatedSearch, FederatedSearch, SearchResult
from ..errors import FetchError
from ..fetcher import Fetcher, HttpFetcher
from .analysis import AnalysisEngine, AnalysisSettings, CandidateSite, ReferencePage
from .findings import Finding, FindingAggregator, FindingSummary

logger = logging.getLogger(__name__)


@dataclass
class ScanMetadata:
    """Operational counters, kept apart from severity counts."""

    backends_queried: int = 0
    backend_failures: int = 0
    backend_errors: list[dict] = field(default_factory=list)
    candidates_crawled: int = 0
    candidates_skipped: int = 0
    crawl_failures: int = 0
    candidates_dropped: int = 0
    reference_page_loaded: bool = False

    def to_dict(self) -> dict:
        return {
            "backends_queried": self.backends_queried,
            "backend_failures": self.backend_failures,
            "backend_errors": list(self.backend_errors),
            "candidates_crawled": self.candidates_crawled,
            "candidates_skipped": self.candidates_skipped,
            "crawl_failures": self.crawl_failures,
            "candidates_dropped": self.candidates_dropped,
            "reference_page_loaded": self.reference_page_loaded,
        }


@dataclass
class ScanReport:
    company_name: str
    query: str
    analyzed_at: datetime
    total_analyzed: int
    summary: FindingSummary
    metadata: ScanMetadata

    def to_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "query": self.query,
            "analyzed_at": self.analyzed_at.isoformat(),
            "total_analyzed": self.total_analyzed,
            "total_findings": self.summary.total_findings,
            "findings": [f.to_dict() for f in self.summary.findings],
            "severity_counts": dict(self.summary.severity_counts),
            "metadata": self.metadata.to_dict(),
        }


class ScanRunner:
    """Coordinates a single scan for one brand profile."""

    def __init__(
        self,
        *,
        brand: BrandProfile,
        search: FederatedSearch,
        engine: AnalysisEngine,
        fetcher: Fetcher,
        backend_ids: Iterable[str] | None = None,
        max_results_per_backend: int = 20,
        search_timeout: float = 30.0,
        max_concurrent_analyses: int = 5,
        download_reference_page: bool = True,
        reference_timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self.brand = brand
        self.search = search
        self.engine = engine
        self.fetcher = fetcher
        self.backend_ids = list(backend_ids) if backend_ids is not None else None
        self.max_results_per_backend = max_results_per_backend
        self.search_timeout = search_timeout
        self.max_concurrent_analyses = max(1, int(max_concurrent_analyses))
        self.download_reference_page = download_reference_page
        self.reference_timeout = reference_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        fetcher: Fetcher | None = None,
        extractor: Extractor | None = None,
    ) -> "ScanRunner":
        fetcher = fetcher or HttpFetcher(
            onion_proxy=config.fetch_onion_proxy,
            retries=config.fetch_retries,
        )
        search = FederatedSearch(
            fetcher,
            backends=config.backends,
            onion_only=config.search_onion_only,
            exclude_domains=config.brand.domains,
        )
        engine = AnalysisEngine(
            brand=config.brand,
            fetcher=fetcher,
            extractor=extractor or ContentExtractor(),
            settings=AnalysisSettings(
                similarity_threshold=config.similarity_threshold,
                enable_structural_check=config.enable_structural_check,
                fetch_timeout=config.fetch_timeout,
            ),
        )
        return cls(
            brand=config.brand,
            search=search,
            engine=engine,
            fetcher=fetcher,
            backend_ids=config.search_backends,
            max_results_per_backend=config.search_max_results_per_backend,
            search_timeout=config.search_timeout,
            max_concurrent_analyses=config.max_concurrent_analyses,
            download_reference_page=config.download_reference_page,
            reference_timeout=config.reference_timeout,
        )

    async def load_reference(self) -> Optional[ReferencePage]:
        """Fetch the brand's real login page once; a failure just disables HTML comparison."""
        url = self.brand.real_login_url
        if not (self.download_reference_page and url):
            return None
        logger.info("Downloading real site for comparison: %s", url)
        try:
            html = await self.fetcher.fetch(url, self.reference_timeout)
        except FetchError as exc:
            logger.warning("Could not download real site %s: %s", url, exc)
            return None
        return ReferencePage.from_html(url, html)

    async def _analyze_one(
        self,
        sem: asyncio.Semaphore,
        result: SearchResult,
        reference: Optional[ReferencePage],
    ) -> Finding:
        async with sem:
            try:
                candidate = CandidateSite.from_result(result)
                return await self.engine.evaluate(candidate, reference)
            except Exception as exc:
                logger.error("Error analyzing %s: %s", result.url, exc)
                return self.engine.failed(result, exc)

    async def analyze_results(
        self,
        results: list[SearchResult],
        reference: Optional[ReferencePage],
        metadata: ScanMetadata,
    ) -> FindingSummary:
        sem = asyncio.Semaphore(self.max_concurrent_analyses)
        aggregator = FindingAggregator()

        evaluated = await asyncio.gather(
            *(self._analyze_one(sem, r, reference) for r in results)
        )
        for finding in evaluated:
            if finding.was_crawled:
                metadata.candidates_crawled += 1
            elif finding.crawl_error:
                metadata.crawl_failures += 1
            else:
                metadata.candidates_skipped += 1

            if finding.indicators:
                aggregator.add(finding)
            else:
                metadata.candidates_dropped += 1

        return aggregator.summary()

    async def run(self, query: str | None = None) -> ScanReport:
        """Run the full scan. Raises ConfigError before any network access if the brand is incomplete."""
        self.brand.validate()
        query = (query or "").strip() or self.brand.company_name

        logger.info("Brand monitoring scan for %s (query %r)", self.brand.company_name, query)
        metadata = ScanMetadata()

        reference = await self.load_reference()
        metadata.reference_page_loaded = reference is not None

        search: AggregatedSearch = await self.search.search(
            query,
            self.backend_ids,
            max_results_per_backend=self.max_results_per_backend,
            timeout=self.search_timeout,
        )
        metadata.backends_queried = len(search.backends_used)
        metadata.backend_failures = len(search.errors)
        metadata.backend_errors = [e.to_dict() for e in search.errors]

        summary = await self.analyze_results(search.results, reference, metadata)

        counts = summary.severity_counts
        logger.info(
            "Analysis complete: %d findings (critical=%d high=%d medium=%d low=%d)",
            summary.total_findings,
            counts["critical"],
            counts["high"],
            counts["medium"],
            counts["low"],
        )
        return ScanReport(
            company_name=self.brand.company_name,
            query=query,
            analyzed_at=self._clock(),
            total_analyzed=len(search.results),
            summary=summary,
            metadata=metadata,
        )

    async def close(self) -> None:
        await self.fetcher.close()
