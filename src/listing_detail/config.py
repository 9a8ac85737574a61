from __future__ import annotations

import os
from dataclasses import dataclass

MIN_FETCH_TIMEOUT_MS = 800


@dataclass(frozen=True)
class DetailConfig:
    fetch_timeout_ms: int = 3500
    memory_ttl_seconds: float = 300.0
    fresh_seconds: float = 24 * 60 * 60.0
    headless: bool = False
    headless_timeout_ms: int = 30000
    proxy_url: str | None = None
    log_enabled: bool = True


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_detail_config() -> DetailConfig:
    return DetailConfig(
        fetch_timeout_ms=max(MIN_FETCH_TIMEOUT_MS, int(_env_float("DETAIL_FETCH_TIMEOUT_MS", 3500))),
        memory_ttl_seconds=_env_float("DETAIL_MEMORY_TTL_SECONDS", 300.0),
        fresh_seconds=_env_float("DETAIL_FRESH_SECONDS", 24 * 60 * 60.0),
        headless=os.getenv("SCRAPE_HEADLESS", "").strip() == "1",
        headless_timeout_ms=int(_env_float("SCRAPE_HEADLESS_TIMEOUT_MS", 30000)),
        proxy_url=os.getenv("PROXY_URL", "").strip() or None,
        log_enabled=os.getenv("DETAIL_LOG", "1").strip() != "0",
    )
