"""Exception types shared across SpoofScout."""

from __future__ import annotations

from enum import Enum


class SpoofScoutError(Exception):
    """Base class for SpoofScout errors."""


class ConfigError(SpoofScoutError):
    """Required configuration is missing or invalid. Aborts the scan."""


class ParseError(SpoofScoutError):
    """A page could not be parsed into the expected structure."""


class FetchErrorCategory(str, Enum):
    """Coarse classification of network failures."""

    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    HOST_NOT_FOUND = "host_not_found"
    HTTP_STATUS = "http_status"
    TLS_ERROR = "tls_error"
    OTHER = "other"


class FetchError(SpoofScoutError):
    """Retrieving a single URL failed."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        category: FetchErrorCategory = FetchErrorCategory.OTHER,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.category = category
        self.status_code = status_code


class BackendError(SpoofScoutError):
    """One search backend failed (network or parse)."""

    def __init__(self, backend_id: str, cause: BaseException | str):
        self.backend_id = backend_id
        self.cause = cause
        super().__init__(f"{backend_id}: {cause}")
