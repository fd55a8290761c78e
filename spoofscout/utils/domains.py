"""Domain and URL normalization utilities."""

from __future__ import annotations

import re
from urllib.parse import urlparse

import tldextract

# Bundled public suffix snapshot only; scans must not depend on fetching the list.
_extract = tldextract.TLDExtract(suffix_list_urls=())

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

ONION_SUFFIX = ".onion"


def canonicalize_domain(value: str) -> str:
    """
    Normalize a domain/URL to a canonical host key.

    - Lowercase
    - Strip leading "www."
    - Preserve port (if present)
    - Ignore path/query/fragment
    """
    raw = (value or "").strip()
    if not raw:
        return ""

    candidate = raw if "://" in raw else f"http://{raw}"
    try:
        parsed = urlparse(candidate)
        port = parsed.port
    except ValueError:
        return ""
    host = (parsed.hostname or raw.split("/")[0]).strip().lower().strip(".")
    if not host:
        return ""

    if host.startswith("www.") and len(host) > 4:
        host = host[4:]

    if port:
        host = f"{host}:{port}"

    return host


def _strip_port(host: str) -> str:
    if not host:
        return ""
    if host.count(":") == 1:
        return host.split(":", 1)[0]
    return host


def registered_domain(value: str) -> str:
    """Return the registrable domain for a host or URL (best-effort)."""
    host = _strip_port(canonicalize_domain(value))
    if not host:
        return ""
    if host.endswith(ONION_SUFFIX):
        return ".".join(host.split(".")[-2:])
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host.lower()


def is_onion_url(url: str) -> bool:
    """True when the URL's host is a Tor hidden service."""
    host = _strip_port(canonicalize_domain(url))
    return host.endswith(ONION_SUFFIX)


def normalize_result_url(url: str) -> str:
    """
    Canonical form used to deduplicate search hits.

    The scheme is dropped and replaced with ``http://``, the host is
    lowercased without ``www.``, trailing slashes are removed from the path
    and the fragment is discarded. Path and query keep their case.
    """
    raw = (url or "").strip()
    if not raw:
        return ""

    rest = _SCHEME_RE.sub("", raw)
    if not rest:
        return ""
    try:
        parsed = urlparse(f"http://{rest}")
        port = parsed.port
    except ValueError:
        return ""

    host = (parsed.hostname or "").strip(".")
    if not host:
        return ""
    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    if port:
        host = f"{host}:{port}"

    path = (parsed.path or "").rstrip("/")
    query = f"?{parsed.query}" if parsed.query else ""
    return f"http://{host}{path}{query}"


def candidate_domain(url: str) -> str:
    """
    Host label used for typosquatting checks.

    ``www.``, the port and the public suffix are removed while subdomains
    are kept: ``https://googel.com/x`` -> ``googel`` and
    ``login.google.evil.com`` -> ``login.google.evil``. Onion hosts drop the
    ``.onion`` suffix.
    """
    host = _strip_port(canonicalize_domain(url))
    if not host:
        return ""
    if host.endswith(ONION_SUFFIX):
        return host[: -len(ONION_SUFFIX)]

    extracted = _extract(host)
    if not extracted.domain:
        return host
    if not extracted.suffix:
        return host
    return ".".join(part for part in (extracted.subdomain, extracted.domain) if part)
