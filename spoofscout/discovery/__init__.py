"""Discovery modules for SpoofScout."""

from .backends import (
    DEFAULT_BACKENDS,
    SearchBackend,
    SelectorSpec,
    StandardKind,
    TokenKind,
    backends_from_config,
)
from .federated_search import AggregatedSearch, BackendFailure, FederatedSearch, SearchResult, SeenUrls

__all__ = [
    "DEFAULT_BACKENDS",
    "SearchBackend",
    "SelectorSpec",
    "StandardKind",
    "TokenKind",
    "backends_from_config",
    "AggregatedSearch",
    "BackendFailure",
    "FederatedSearch",
    "SearchResult",
    "SeenUrls",
]
