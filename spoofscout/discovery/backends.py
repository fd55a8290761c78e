"""Search backend registry and per-kind query/parse strategies."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union
from urllib.parse import quote, unquote, urljoin

from bs4 import BeautifulSoup, Tag

from ..errors import ParseError
from ..fetcher import Fetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorSpec:
    """Where result links and their descriptions live on a results page."""

    anchor: str = "a[href]"
    container: str = ".result, .search-result, .item"
    description: str = "p, .description, .snippet"


@dataclass(frozen=True)
class StandardKind:
    """Single request built from a URL template, parsed with CSS selectors."""

    url_template: str = "{base}/search?q={query}"
    selectors: SelectorSpec = field(default_factory=SelectorSpec)


@dataclass(frozen=True)
class TokenKind:
    """Two-step protocol: read a hidden form token from the home page, then search with it."""

    token_input: str = '#searchForm input[type="hidden"]'
    search_template: str = "{base}/search/?q={query}&{token_name}={token_value}"
    selectors: SelectorSpec = field(
        default_factory=lambda: SelectorSpec(anchor="li.result a", container="li.result", description="p")
    )


BackendKind = Union[StandardKind, TokenKind]


@dataclass(frozen=True)
class SearchBackend:
    id: str
    base_url: str
    kind: BackendKind = field(default_factory=StandardKind)

    @property
    def base(self) -> str:
        return self.base_url.rstrip("/")


@dataclass(frozen=True)
class ParsedHit:
    """One result row as parsed from a backend page, before normalization."""

    url: str
    title: str = ""
    description: str = ""


_REDIRECT_RE = re.compile(r"redirect_url=(http[^&]+)")
_ADDRESS_RE = re.compile(r"/address/([a-z0-9]+\.onion)")


def resolve_wrapped_url(href: str) -> str | None:
    """Unwrap result links that point through a backend redirector."""
    if "redirect_url=" in href:
        match = _REDIRECT_RE.search(href)
        return unquote(match.group(1)) if match else None
    if "/address/" in href:
        match = _ADDRESS_RE.search(href)
        return f"http://{match.group(1)}" if match else None
    if ".onion" in href:
        return href
    return None


def build_query_url(template: str, base: str, query: str, **extra: str) -> str:
    return template.format(base=base, query=quote(query, safe=""), **extra)


def _closest(tag: Tag, selector: str) -> Tag | None:
    if not selector:
        return None
    return tag.css.closest(selector)


def parse_results(
    html: str,
    selectors: SelectorSpec,
    *,
    base_url: str,
    unwrap: Callable[[str], str | None] | None = None,
) -> list[ParsedHit]:
    """Parse result anchors and their nearby description text."""
    soup = BeautifulSoup(html or "", "html.parser")
    hits: list[ParsedHit] = []
    for anchor in soup.select(selectors.anchor):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue
        url = unwrap(href) if unwrap else href
        if not url:
            continue
        url = urljoin(f"{base_url}/", url)

        description = ""
        container = _closest(anchor, selectors.container)
        if container is not None:
            node = container.select_one(selectors.description)
            if node is not None:
                description = node.get_text().strip()

        hits.append(ParsedHit(url=url, title=anchor.get_text().strip(), description=description))
    return hits


def extract_search_token(html: str, selector: str) -> tuple[str, str]:
    """Return (name, value) of the hidden anti-automation input or raise ParseError."""
    soup = BeautifulSoup(html or "", "html.parser")
    hidden = soup.select_one(selector)
    name = (hidden.get("name") or "").strip() if hidden is not None else ""
    value = (hidden.get("value") or "").strip() if hidden is not None else ""
    if not name or not value:
        raise ParseError("Could not find search token")
    return name, value


async def _query_standard(
    backend: SearchBackend, query: str, fetcher: Fetcher, timeout: float
) -> list[ParsedHit]:
    kind = backend.kind
    url = build_query_url(kind.url_template, backend.base, query)
    html = await fetcher.fetch(url, timeout)
    return parse_results(html, kind.selectors, base_url=backend.base)


async def _query_token(
    backend: SearchBackend, query: str, fetcher: Fetcher, timeout: float
) -> list[ParsedHit]:
    kind = backend.kind
    home = await fetcher.fetch(f"{backend.base}/", timeout)
    token_name, token_value = extract_search_token(home, kind.token_input)
    logger.debug("%s: got search token %s", backend.id, token_name)

    url = build_query_url(
        kind.search_template,
        backend.base,
        query,
        token_name=quote(token_name, safe=""),
        token_value=quote(token_value, safe=""),
    )
    html = await fetcher.fetch(url, timeout)
    return parse_results(html, kind.selectors, base_url=backend.base, unwrap=resolve_wrapped_url)


QueryStrategy = Callable[[SearchBackend, str, Fetcher, float], Awaitable[list[ParsedHit]]]

QUERY_STRATEGIES: dict[type, QueryStrategy] = {
    StandardKind: _query_standard,
    TokenKind: _query_token,
}


async def query_backend(
    backend: SearchBackend, query: str, fetcher: Fetcher, timeout: float
) -> list[ParsedHit]:
    """Run ``query`` against one backend using the strategy for its kind."""
    strategy = QUERY_STRATEGIES.get(type(backend.kind))
    if strategy is None:
        raise ValueError(f"unknown backend kind: {type(backend.kind).__name__}")
    return await strategy(backend, query, fetcher, timeout)


def _standard(template: str, anchor: str = "a[href]") -> StandardKind:
    return StandardKind(url_template=template, selectors=SelectorSpec(anchor=anchor))


DEFAULT_BACKENDS: tuple[SearchBackend, ...] = (
    SearchBackend(
        "ahmia",
        "http://juhanurmihxlp77nkq76byazcldy2hlmovfu2epvl5ankdibsot4csyd.onion",
        TokenKind(),
    ),
    SearchBackend(
        "onionland",
        "http://3bbad7fauom4d6sgppalyqddsqbf5u5p56b5k5uk2zxsy3d6ey2jobad.onion",
        _standard("{base}/search?q={query}", ".title a"),
    ),
    SearchBackend(
        "darksearchengine",
        "http://l4rsciqnpzdndt2llgjx3luvnxip7vbyj6k6nmdy4xs77tx6gkd24ead.onion",
    ),
    SearchBackend(
        "phobos",
        "http://phobosxilamwcg75xt22id7aywkzol6q6rfl2flipcqoc4e4ahima5id.onion",
        _standard("{base}/search?query={query}"),
    ),
    SearchBackend(
        "onionsearchserver",
        "http://3fzh7yuupdfyjhwt3ugzqqof6ulbcl27ecev33knxe3u7goi3vfn2qqd.onion",
    ),
    SearchBackend(
        "torgle",
        "http://no6m4wzdexe3auiupv2zwif7rm6qwxcyhslkcnzisxgeiw6pvjsgafad.onion",
    ),
    SearchBackend(
        "tor66",
        "http://tor66sewebgixwhcqfnp5inzp5x5uohhdy3kvtnyfxc2e5mxiuh34iid.onion",
    ),
    SearchBackend(
        "haystak",
        "http://haystak5njsmn2hqkewecpaxetahtwhsbsa64jom2k22z5afxhnpxfid.onion",
        _standard("{base}/?q={query}", ".result a.title"),
    ),
    SearchBackend(
        "torch",
        "http://xmh57jrknzkhv6y3ls3ubitzfqnkrwxhopf5aygthi7d6rplyvk3noyd.onion",
        _standard("{base}/search?query={query}&action=search", ".result-block a"),
    ),
    SearchBackend(
        "ahmia_clearnet",
        "https://ahmia.fi",
        _standard("{base}/search/?q={query}", "li.result a"),
    ),
    SearchBackend(
        "bobby",
        "http://bobby64o755x3gsuznts6hf6agxqjcz5bop6hs7ejorekbm7omes34ad.onion",
        _standard("{base}?q={query}"),
    ),
    SearchBackend(
        "sentor",
        "http://e27slbec2ykiyo26gfuovaehuzsydffbit5nlxid53kigw3pvz6uosqd.onion",
    ),
    SearchBackend(
        "gdark",
        "http://zb2jtkhnbvhkya3d46twv3g7lkobi4s62tjffqmafjibixk6pmq75did.onion",
        _standard("{base}/search.php?query={query}"),
    ),
    SearchBackend(
        "kraken",
        "http://krakenai2gmgwwqyo7bcklv2lzcvhe7cxzzva2xpygyax5f33oqnxpad.onion",
    ),
    SearchBackend(
        "deepsearch",
        "http://search7tdrcvri22rieiwgi5g46qnwsesvnubqav2xakhezv4hjzkkad.onion",
    ),
    SearchBackend(
        "demon",
        "http://srcdemonm74icqjvejew6fprssuolyoc2usjdwflevbdpqoetw4x3ead.onion",
    ),
    SearchBackend(
        "visitor",
        "http://uzowkytjk4da724giztttfly4rugfnbqkexecotfp5wjc2uhpykrpryd.onion",
        _standard("{base}/?q={query}"),
    ),
    SearchBackend(
        "venus",
        "http://venusoseaqnafjvzfmrcpcq6g47rhd7sa6nmzvaa4bj5rp6nm5jl7gad.onion",
    ),
    SearchBackend(
        "danex",
        "http://danexio627wiswvlpt6ejyhpxl5gla5nt2tgvgm2apj2ofrgxtyxrhokfqd.onion",
    ),
)


def backends_from_config(entries: list[dict]) -> list[SearchBackend]:
    """Build backends from YAML-style dicts, skipping malformed entries."""
    backends: list[SearchBackend] = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        backend_id = str(entry.get("id") or "").strip().lower()
        base_url = str(entry.get("base_url") or "").strip()
        if not backend_id or not base_url:
            logger.warning("Skipping backend entry without id/base_url: %r", entry)
            continue

        kind_name = str(entry.get("kind") or "standard").strip().lower()
        selectors = SelectorSpec(
            anchor=str(entry.get("anchor") or SelectorSpec.anchor),
            container=str(entry.get("container") or SelectorSpec.container),
            description=str(entry.get("description") or SelectorSpec.description),
        )
        if kind_name == "token":
            token_defaults = TokenKind()
            kind: BackendKind = TokenKind(
                token_input=str(entry.get("token_input") or token_defaults.token_input),
                search_template=str(entry.get("url_template") or token_defaults.search_template),
                selectors=selectors if entry.get("anchor") else token_defaults.selectors,
            )
        elif kind_name == "standard":
            kind = StandardKind(
                url_template=str(entry.get("url_template") or StandardKind.url_template),
                selectors=selectors,
            )
        else:
            logger.warning("Skipping backend %s with unknown kind %r", backend_id, kind_name)
            continue

        backends.append(SearchBackend(backend_id, base_url, kind))
    return backends
