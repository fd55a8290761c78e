"""Tests for candidate analysis and severity scoring."""

from datetime import datetime, timezone

import pytest

from spoofscout.analyzer.models import DomainMatch, ExtractedContent
from spoofscout.config import BrandProfile
from spoofscout.constants import SKIPPED_CRAWL_REASON, IndicatorType, MatchType, SeverityTier
from spoofscout.discovery.federated_search import SearchResult
from spoofscout.errors import FetchError, FetchErrorCategory
from spoofscout.pipeline.analysis import AnalysisEngine, AnalysisSettings, CandidateSite, ReferencePage
from spoofscout.utils.domains import normalize_result_url

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

LOGIN_PAGE = """
<html><head><title>Secure Portal</title></head><body>
  <div id="wrap" class="page">
    <form id="signin" class="login-form">
      <input type="text" name="username" id="user" class="field">
      <input type="password" name="password" id="pass" class="field">
      <button class="btn">Sign in</button>
    </form>
  </div>
</body></html>
"""


class _StubFetcher:
    def __init__(self, pages: dict[str, object] | None = None):
        self.pages = pages or {}
        self.calls: list[str] = []

    async def fetch(self, url: str, timeout: float = 10.0) -> str:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError("Host not found", url=url, category=FetchErrorCategory.HOST_NOT_FOUND)
        if isinstance(page, BaseException):
            raise page
        return page

    async def close(self) -> None:
        return


class _ExplodingExtractor:
    def extract(self, html: str, url: str, keywords: list[str]) -> ExtractedContent:
        raise RuntimeError("boom")


def _brand() -> BrandProfile:
    return BrandProfile(
        company_name="Google",
        domains=["google.com"],
        keywords=["google"],
        real_login_url="https://accounts.google.com/login",
    )


def _candidate(url: str, title: str = "", description: str = "") -> CandidateSite:
    result = SearchResult(
        url=url,
        normalized_url=normalize_result_url(url),
        title=title,
        description=description,
        source_backend="one",
        found_at=FIXED_NOW,
    )
    return CandidateSite.from_result(result)


def _engine(fetcher, **settings) -> AnalysisEngine:
    return AnalysisEngine(
        brand=_brand(),
        fetcher=fetcher,
        settings=AnalysisSettings(**settings),
        clock=lambda: FIXED_NOW,
    )


def test_should_crawl_gate():
    engine = _engine(_StubFetcher())
    weak = DomainMatch("google", MatchType.HIGH_SIMILARITY, 60)
    strong = DomainMatch("google", MatchType.DIRECT, 100)
    reference = ReferencePage.from_html("https://accounts.google.com/login", LOGIN_PAGE)

    assert not engine.should_crawl(weak, None)
    assert not engine.should_crawl(None, None)
    assert engine.should_crawl(strong, None)
    assert engine.should_crawl(weak, reference)
    assert not _engine(_StubFetcher(), enable_structural_check=False).should_crawl(weak, reference)


@pytest.mark.asyncio
async def test_low_similarity_candidate_is_not_crawled():
    fetcher = _StubFetcher()
    engine = _engine(fetcher, similarity_threshold=90)

    finding = await engine.evaluate(_candidate("http://gooqle.onion/"))

    assert fetcher.calls == []
    assert not finding.was_crawled
    assert finding.crawl_reason == SKIPPED_CRAWL_REASON
    assert finding.has(IndicatorType.DOMAIN_SIMILARITY)
    assert finding.indicators[0].details["similarity_type"] == "high_similarity"


@pytest.mark.asyncio
async def test_direct_match_with_login_form_is_critical():
    url = "http://google-login.onion/"
    engine = _engine(_StubFetcher({url: LOGIN_PAGE}))

    finding = await engine.analyze(_candidate(url))

    assert finding is not None
    assert finding.was_crawled
    assert [i.type for i in finding.indicators] == [
        IndicatorType.DOMAIN_SIMILARITY,
        IndicatorType.LOGIN_FORM_DETECTED,
    ]
    assert finding.severity_score == 13
    assert finding.severity is SeverityTier.CRITICAL
    assert finding.indicators[0].details == {
        "confidence": 100,
        "matched_keyword": "google",
        "similarity_type": "direct",
    }


@pytest.mark.asyncio
async def test_fetch_failure_keeps_metadata_indicators():
    engine = _engine(_StubFetcher())

    finding = await engine.evaluate(_candidate("http://googel.onion/", title="Google sign in"))

    assert not finding.was_crawled
    assert finding.crawl_error == "Host not found"
    assert finding.crawl_reason is None
    assert [i.type for i in finding.indicators] == [
        IndicatorType.DOMAIN_SIMILARITY,
        IndicatorType.KEYWORD_IN_METADATA,
    ]
    assert finding.severity_score == pytest.approx(10.5)
    assert finding.severity is SeverityTier.CRITICAL


@pytest.mark.asyncio
async def test_page_analysis_error_becomes_crawl_error():
    url = "http://google-help.onion/"
    engine = AnalysisEngine(
        brand=_brand(),
        fetcher=_StubFetcher({url: LOGIN_PAGE}),
        extractor=_ExplodingExtractor(),
    )

    finding = await engine.evaluate(_candidate(url))

    assert not finding.was_crawled
    assert finding.crawl_error == "boom"
    assert finding.has(IndicatorType.DOMAIN_SIMILARITY)


@pytest.mark.asyncio
async def test_structural_clone_is_crawled_via_reference():
    url = "http://abcxyz.onion/"
    fetcher = _StubFetcher({url: LOGIN_PAGE})
    reference = ReferencePage.from_html("https://accounts.google.com/login", LOGIN_PAGE)

    finding = await _engine(fetcher).analyze(_candidate(url), reference)

    assert finding is not None
    assert fetcher.calls == [url]
    html_indicator = next(i for i in finding.indicators if i.type is IndicatorType.HTML_SIMILARITY)
    assert html_indicator.points == 10
    assert html_indicator.details["similarity_score"] == 100
    assert html_indicator.details["details"]["input_fields"] == 100
    assert finding.severity_score == 13
    assert finding.severity is SeverityTier.CRITICAL


@pytest.mark.asyncio
async def test_unrelated_page_scores_nothing():
    url = "http://abcxyz.onion/"
    reference = ReferencePage.from_html("https://accounts.google.com/login", LOGIN_PAGE)
    engine = _engine(_StubFetcher({url: "<html><body><p>Cooking recipes</p></body></html>"}))

    assert await engine.analyze(_candidate(url), reference) is None


@pytest.mark.asyncio
async def test_no_match_and_no_reference_is_dropped_without_fetch():
    fetcher = _StubFetcher()
    engine = _engine(fetcher)

    assert await engine.analyze(_candidate("http://randomxyz.onion/", title="market")) is None
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_page_content_indicators():
    url = "http://google-dump.onion/"
    page = """
    <html><body>
      <h1>Google accounts</h1>
      <pre>alice:hunter22
bob:qwerty123</pre>
      <a href="https://google.com/account">original</a>
      <a href="https://unrelated.org/">other</a>
    </body></html>
    """
    finding = await _engine(_StubFetcher({url: page})).analyze(_candidate(url))

    assert finding is not None
    by_type = {i.type: i for i in finding.indicators}
    assert by_type[IndicatorType.KEYWORD_MATCH].details == {"keywords": ["google"], "total_matches": 1}
    assert by_type[IndicatorType.CREDENTIALS_FOUND].details == {"count": 2}
    assert by_type[IndicatorType.COMPANY_DOMAIN_MENTIONED].details == {
        "links": ["https://google.com/account"]
    }
    assert IndicatorType.LOGIN_FORM_DETECTED not in by_type
    assert finding.severity_score == 10 + 2 + 5 + 2


def test_candidate_site_domain_from_url():
    assert _candidate("https://www.googel.com/login").domain == "googel"


class _MetadataFailureEngine(AnalysisEngine):
    def score_metadata(self, candidate, draft):
        super().score_metadata(candidate, draft)
        raise ValueError("bad metadata")


@pytest.mark.asyncio
async def test_metadata_error_keeps_earlier_indicators():
    url = "http://google-login.onion/"
    fetcher = _StubFetcher({url: LOGIN_PAGE})
    engine = _MetadataFailureEngine(brand=_brand(), fetcher=fetcher, clock=lambda: FIXED_NOW)

    finding = await engine.evaluate(_candidate(url, title="Google"))

    assert fetcher.calls == []
    assert not finding.was_crawled
    assert finding.crawl_error == "bad metadata"
    assert [i.type for i in finding.indicators] == [
        IndicatorType.DOMAIN_SIMILARITY,
        IndicatorType.KEYWORD_IN_METADATA,
    ]
    assert finding.severity is SeverityTier.CRITICAL


def test_failed_finding_records_error_without_indicators():
    engine = _engine(_StubFetcher())
    result = _candidate("http://abc.onion/", title="Market").result

    finding = engine.failed(result, RuntimeError())

    assert finding.url == "http://abc.onion/"
    assert finding.title == "Market"
    assert finding.indicators == ()
    assert finding.crawl_error == "RuntimeError"
    assert finding.severity is SeverityTier.LOW
