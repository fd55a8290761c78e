"""Concurrent search across several engines with shared URL deduplication."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable

from ..errors import BackendError
from ..fetcher import Fetcher
from ..utils.domains import canonicalize_domain, is_onion_url, normalize_result_url, registered_domain
from .backends import DEFAULT_BACKENDS, ParsedHit, SearchBackend, query_backend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """Single search result entry."""

    url: str
    normalized_url: str
    title: str
    description: str
    source_backend: str
    found_at: datetime

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "normalized_url": self.normalized_url,
            "title": self.title,
            "description": self.description,
            "source_backend": self.source_backend,
            "found_at": self.found_at.isoformat(),
        }


@dataclass(frozen=True)
class BackendFailure:
    backend: str
    error: str

    def to_dict(self) -> dict:
        return {"backend": self.backend, "error": self.error}


@dataclass
class AggregatedSearch:
    """Everything one federated search produced."""

    query: str
    searched_at: datetime
    backends_used: list[str]
    results: list[SearchResult] = field(default_factory=list)
    errors: list[BackendFailure] = field(default_factory=list)

    @property
    def total_results(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "searched_at": self.searched_at.isoformat(),
            "backends_used": list(self.backends_used),
            "total_backends": len(self.backends_used),
            "total_results": self.total_results,
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
        }


class SeenUrls:
    """
    Normalized URLs already recorded during one search.

    ``claim`` checks and inserts without suspending, so concurrent backend
    tasks on the same event loop can share one instance.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def claim(self, normalized_url: str) -> bool:
        if normalized_url in self._seen:
            return False
        self._seen.add(normalized_url)
        return True

    def __contains__(self, normalized_url: str) -> bool:
        return normalized_url in self._seen

    def __len__(self) -> int:
        return len(self._seen)


class FederatedSearch:
    """Fan a query out to every configured backend and merge the unique hits."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        backends: Iterable[SearchBackend] | None = None,
        onion_only: bool = True,
        exclude_domains: Iterable[str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.fetcher = fetcher
        registry = list(backends) if backends is not None else list(DEFAULT_BACKENDS)
        self.backends: dict[str, SearchBackend] = {b.id: b for b in registry}
        self.onion_only = bool(onion_only)
        self.exclude_domains = {registered_domain(d) or d.lower() for d in (exclude_domains or ())}
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def available_backends(self) -> list[dict[str, str]]:
        return [{"name": b.id, "url": b.base_url} for b in self.backends.values()]

    def _select_backends(self, backend_ids: Iterable[str] | None) -> list[SearchBackend]:
        if backend_ids is None:
            return list(self.backends.values())
        selected: list[SearchBackend] = []
        for backend_id in backend_ids:
            backend = self.backends.get(backend_id.strip().lower())
            if backend is None:
                logger.warning("Unknown search backend ignored: %s", backend_id)
                continue
            if backend not in selected:
                selected.append(backend)
        return selected

    def _accept(self, backend: SearchBackend, url: str) -> bool:
        if not url.lower().startswith(("http://", "https://")):
            return False
        host = canonicalize_domain(url)
        if not host or host == canonicalize_domain(backend.base_url):
            return False
        if self.onion_only and not is_onion_url(url):
            return False
        if self.exclude_domains and registered_domain(url) in self.exclude_domains:
            return False
        return True

    def _record(
        self,
        backend: SearchBackend,
        hits: list[ParsedHit],
        seen: SeenUrls,
        results: list[SearchResult],
        max_results: int,
    ) -> int:
        # No awaits in here: claim + append happen atomically w.r.t. sibling tasks.
        added = 0
        for hit in hits:
            if added >= max_results:
                break
            if not self._accept(backend, hit.url):
                continue
            normalized = normalize_result_url(hit.url)
            if not normalized or not seen.claim(normalized):
                continue
            results.append(
                SearchResult(
                    url=hit.url,
                    normalized_url=normalized,
                    title=hit.title or normalized,
                    description=hit.description,
                    source_backend=backend.id,
                    found_at=self._clock(),
                )
            )
            added += 1
        return added

    async def _search_backend(
        self,
        backend: SearchBackend,
        query: str,
        max_results: int,
        timeout: float,
        seen: SeenUrls,
        results: list[SearchResult],
    ) -> int:
        try:
            hits = await query_backend(backend, query, self.fetcher, timeout)
        except Exception as exc:
            raise BackendError(backend.id, exc) from exc
        return self._record(backend, hits, seen, results, max_results)

    async def search(
        self,
        query: str,
        backend_ids: Iterable[str] | None = None,
        *,
        max_results_per_backend: int = 20,
        timeout: float = 30.0,
    ) -> AggregatedSearch:
        """
        Query the selected backends concurrently.

        A failing backend never cancels the others; its error is reported in
        ``errors`` and the results of every other backend are kept.
        """
        selected = self._select_backends(backend_ids)
        outcome = AggregatedSearch(
            query=query,
            searched_at=self._clock(),
            backends_used=[b.id for b in selected],
        )
        logger.info("Searching %r across %d backends", query, len(selected))
        if not selected:
            return outcome

        seen = SeenUrls()
        max_results = max(0, int(max_results_per_backend))
        settled = await asyncio.gather(
            *(
                self._search_backend(backend, query, max_results, timeout, seen, outcome.results)
                for backend in selected
            ),
            return_exceptions=True,
        )

        for backend, result in zip(selected, settled):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                cause = result.cause if isinstance(result, BackendError) else result
                message = str(cause) or cause.__class__.__name__
                outcome.errors.append(BackendFailure(backend=backend.id, error=message))
                logger.warning("%s: search failed: %s", backend.id, message)
            else:
                logger.info("%s: found %d unique results", backend.id, result)

        logger.info(
            "Search %r complete: %d unique results, %d backend errors",
            query,
            outcome.total_results,
            len(outcome.errors),
        )
        return outcome
