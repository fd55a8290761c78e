"""Report file helpers."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path


def safe_filename_component(
    value: str,
    *,
    max_length: int | None = None,
    default: str = "unknown",
    lower: bool = False,
) -> str:
    """Convert a string into a filesystem-friendly filename component."""
    raw = (value or "").strip()
    if not raw:
        return default
    if lower:
        raw = raw.lower()
    safe = "".join(c if c.isalnum() or c in "._-" else "_" for c in raw)
    if max_length:
        safe = safe[:max_length]
    return safe


def report_path(output_dir: Path, company_name: str, when: datetime) -> Path:
    """``<output_dir>/brand_report_<company>_<UTC timestamp>.json``."""
    company = safe_filename_component(company_name, lower=True, max_length=64, default="brand")
    stamp = when.strftime("%Y%m%dT%H%M%SZ")
    return Path(output_dir) / f"brand_report_{company}_{stamp}.json"


def write_json_report(path: Path, payload: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path
