"""Configuration management for SpoofScout."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .discovery.backends import DEFAULT_BACKENDS, SearchBackend, backends_from_config
from .errors import ConfigError
from .utils.domains import canonicalize_domain

logger = logging.getLogger(__name__)


@dataclass
class BrandProfile:
    """The brand being protected."""

    company_name: str
    domains: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    real_login_url: Optional[str] = None

    def __post_init__(self):
        self.company_name = (self.company_name or "").strip()
        self.domains = [d for d in (canonicalize_domain(x) for x in self.domains or []) if d]
        self.keywords = [k.strip() for k in self.keywords or [] if k and k.strip()]
        self.real_login_url = (self.real_login_url or "").strip() or None

    def validate(self) -> None:
        """Raise :class:`ConfigError` when the profile cannot drive a scan."""
        errors = []
        if not self.company_name:
            errors.append("brand company name is required")
        if not self.keywords:
            errors.append("at least one brand keyword is required")
        if errors:
            raise ConfigError("; ".join(errors))


@dataclass
class Config:
    """Application configuration loaded from environment and YAML."""

    brand: BrandProfile

    # Search
    search_query: str = ""
    search_backends: list[str] | None = None  # None = every registered backend
    search_max_results_per_backend: int = 20
    search_timeout: float = 30.0
    search_onion_only: bool = True
    backends: list[SearchBackend] = field(default_factory=lambda: list(DEFAULT_BACKENDS))

    # Fetching
    fetch_timeout: float = 10.0
    fetch_retries: int = 1
    fetch_onion_proxy: str = "socks5://127.0.0.1:9050"
    reference_timeout: float = 10.0

    # Analysis
    similarity_threshold: float = 70.0
    enable_structural_check: bool = True
    download_reference_page: bool = True
    max_concurrent_analyses: int = 5

    # Paths / logging
    config_dir: Path = field(default_factory=lambda: Path("./config"))
    output_dir: Path = field(default_factory=lambda: Path("./data/reports"))
    log_level: str = "INFO"

    def __post_init__(self):
        self.config_dir = Path(self.config_dir)
        self.output_dir = Path(self.output_dir)

    @property
    def effective_query(self) -> str:
        return (self.search_query or "").strip() or self.brand.company_name


def _split_list(value: str, sep: str = ",") -> list[str]:
    return [item.strip() for item in (value or "").split(sep) if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _load_yaml(path: Path) -> dict:
    """Load an optional YAML mapping; malformed files log a warning and count as empty."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to parse %s: %s", path.name, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping at top level", path.name)
        return {}
    return data


def _as_str_list(raw) -> list[str]:
    if isinstance(raw, str):
        return _split_list(raw)
    if isinstance(raw, (list, tuple, set)):
        return [str(item).strip() for item in raw if str(item).strip()]
    return []


def load_brand_profile(config_dir: Path) -> BrandProfile:
    """Brand profile from ``brand.yaml``, overridden field by field by BRAND_* env vars."""
    data = _load_yaml(Path(config_dir) / "brand.yaml")
    brand_cfg = data.get("brand", data)
    if not isinstance(brand_cfg, dict):
        brand_cfg = {}

    company_name = os.getenv("BRAND_COMPANY_NAME") or str(brand_cfg.get("company_name") or "")
    domains = _split_list(os.getenv("BRAND_DOMAINS", "")) or _as_str_list(brand_cfg.get("domains"))
    keywords = _split_list(os.getenv("BRAND_KEYWORDS", "")) or _as_str_list(brand_cfg.get("keywords"))
    real_login_url = os.getenv("BRAND_REAL_LOGIN_URL") or brand_cfg.get("real_login_url")

    return BrandProfile(
        company_name=company_name,
        domains=domains,
        keywords=keywords,
        real_login_url=str(real_login_url) if real_login_url else None,
    )


def load_backends(config_dir: Path) -> list[SearchBackend]:
    """Backend registry: ``backends.yaml`` when it defines any, otherwise the built-in list."""
    data = _load_yaml(Path(config_dir) / "backends.yaml")
    entries = data.get("backends")
    if not isinstance(entries, list):
        return list(DEFAULT_BACKENDS)
    backends = backends_from_config(entries)
    if not backends:
        logger.warning("backends.yaml defines no usable backends; using built-in registry")
        return list(DEFAULT_BACKENDS)
    return backends


def load_config() -> Config:
    """Load configuration from environment variables and CONFIG_DIR YAML files."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    backends_str = os.getenv("SEARCH_BACKENDS", "")
    backend_ids = [b.lower() for b in _split_list(backends_str)] or None
    if backends_str.strip().lower() in {"all", "*"}:
        backend_ids = None

    return Config(
        brand=load_brand_profile(config_dir),
        search_query=os.getenv("SEARCH_QUERY", ""),
        search_backends=backend_ids,
        search_max_results_per_backend=int(os.getenv("SEARCH_MAX_RESULTS_PER_BACKEND", "20")),
        search_timeout=float(os.getenv("SEARCH_TIMEOUT", "30")),
        search_onion_only=_env_bool("SEARCH_ONION_ONLY", True),
        backends=load_backends(config_dir),
        fetch_timeout=float(os.getenv("FETCH_TIMEOUT", "10")),
        fetch_retries=int(os.getenv("FETCH_RETRIES", "1")),
        fetch_onion_proxy=os.getenv("FETCH_ONION_PROXY", "socks5://127.0.0.1:9050"),
        reference_timeout=float(os.getenv("REFERENCE_TIMEOUT", "10")),
        similarity_threshold=float(os.getenv("SIMILARITY_THRESHOLD", "70")),
        enable_structural_check=_env_bool("ENABLE_STRUCTURAL_CHECK", True),
        download_reference_page=_env_bool("DOWNLOAD_REFERENCE_PAGE", True),
        max_concurrent_analyses=int(os.getenv("MAX_CONCURRENT_ANALYSES", "5")),
        config_dir=config_dir,
        output_dir=Path(os.getenv("OUTPUT_DIR", "./data/reports")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def validate_config(config: Config) -> list[str]:
    """Validate required configuration and return list of error messages."""
    errors: list[str] = []
    try:
        config.brand.validate()
    except ConfigError as exc:
        errors.extend(str(exc).split("; "))

    if config.search_max_results_per_backend < 1:
        errors.append("SEARCH_MAX_RESULTS_PER_BACKEND must be at least 1")
    if config.max_concurrent_analyses < 1:
        errors.append("MAX_CONCURRENT_ANALYSES must be at least 1")
    if not 0 <= config.similarity_threshold <= 100:
        errors.append("SIMILARITY_THRESHOLD must be between 0 and 100")

    known = {b.id for b in config.backends}
    for backend_id in config.search_backends or []:
        if backend_id not in known:
            logger.warning("SEARCH_BACKENDS names unknown backend %r; it will be ignored", backend_id)

    if not config.brand.domains:
        logger.info("No brand domains configured; company_domain_mentioned checks are disabled")

    return errors
