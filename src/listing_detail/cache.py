from __future__ import annotations

import sys
import threading
from typing import Any, Callable

from .browser import BrowserAutomation
from .config import DetailConfig
from .http_client import HttpClient
from .models import CacheEntry, ListingRecord, NormalizedDetail, ProductDetail
from .normalize import normalize_detail
from .parsers.registry import get_parser_for_url
from .quality import classify, is_bad, is_weak_detail
from .store import ListingStore
from .timeutil import iso_to_ms, ms_to_iso, now_ms


def _warn(msg: str) -> None:
    print(f"[detail] {msg}", file=sys.stderr)


class MemoryCache:
    """Per-URL memo of raw extractor output. Entries older than the TTL read as misses."""

    def __init__(self, ttl_seconds: float = 300.0, *, clock: Callable[[], int] = now_ms) -> None:
        self._ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}

    def get(self, url: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(url)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at_ms >= self._ttl_ms:
            return None
        return entry

    def set(self, url: str, value: ProductDetail | None) -> CacheEntry:
        entry = CacheEntry(value=value, fetched_at_ms=self._clock())
        with self._lock:
            self._entries[url] = entry
        return entry

    def evict(self, url: str) -> None:
        with self._lock:
            self._entries.pop(url, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DetailService:
    """
    Cache-aware front for the extractors.

    Reads go memory -> persisted blob (within the freshness window and of OK
    quality) -> live fetch. A live fetch always persists the normalized projection
    and memoizes the raw result, even when extraction came back empty.
    """

    def __init__(
        self,
        store: ListingStore | None,
        *,
        client: HttpClient | None = None,
        cache: MemoryCache | None = None,
        browser: BrowserAutomation | None = None,
        config: DetailConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config or DetailConfig()
        self._store = store
        self._client = client or HttpClient(
            timeout_seconds=self._config.fetch_timeout_ms / 1000.0,
            proxy_url=self._config.proxy_url,
        )
        self._clock = clock
        self._cache = cache if cache is not None else MemoryCache(self._config.memory_ttl_seconds, clock=clock)
        self._browser = browser

    @property
    def cache(self) -> MemoryCache:
        return self._cache

    @property
    def config(self) -> DetailConfig:
        return self._config

    def fetch_product_detail(self, url: str | None) -> ProductDetail | None:
        parser = get_parser_for_url(url, browser=self._browser, headless_timeout_ms=self._config.headless_timeout_ms)
        if parser is None or not url:
            return None
        html = self._client.fetch_html(url, timeout_ms=self._config.fetch_timeout_ms)
        if not html:
            return None
        try:
            return parser.parse(html, url=url)
        except Exception as e:
            _warn(f"{parser.platform} parse failed for {url}: {type(e).__name__}: {e}")
            return None

    def fetch_product_detail_cached(self, listing: ListingRecord) -> ProductDetail | None:
        url = listing.url
        if not url:
            if not listing.detail_json:
                return None
            try:
                return ProductDetail.from_dict(listing.detail_json)
            except Exception as e:
                _warn(f"stored detail unreadable for {listing.id}: {type(e).__name__}: {e}")
                return None

        entry = self._cache.get(url)
        if entry is not None:
            return entry.value

        stored = self._fresh_stored_detail(listing)
        if stored is not None:
            self._cache.set(url, stored)
            return stored

        return self._live(listing, url)

    def refresh_product_detail(self, listing: ListingRecord) -> ProductDetail | None:
        url = listing.url
        if not url:
            return None
        self._cache.evict(url)
        return self._live(listing, url)

    def normalized_for(self, listing: ListingRecord, detail: Any) -> NormalizedDetail:
        return normalize_detail(detail, listing.fallback())

    def _fresh_stored_detail(self, listing: ListingRecord) -> ProductDetail | None:
        if not listing.detail_json:
            return None
        updated_ms = iso_to_ms(listing.detail_updated_at)
        if updated_ms is None:
            return None
        if self._clock() - updated_ms >= int(self._config.fresh_seconds * 1000):
            return None
        try:
            detail = ProductDetail.from_dict(listing.detail_json)
            normalized = normalize_detail(listing.detail_json, listing.fallback())
        except Exception:
            return None
        if is_bad(normalized) or is_weak_detail(normalized):
            return None
        return detail

    def _live(self, listing: ListingRecord, url: str) -> ProductDetail | None:
        live = self.fetch_product_detail(url)
        self._cache.set(url, live)
        normalized = normalize_detail(live, listing.fallback())
        self._persist(listing, normalized)
        if self._config.log_enabled:
            status = classify(normalized)
            source = live.debug_source if live is not None else "none"
            print(f"[detail] {listing.id} {status} source={source}", flush=True)
        return live

    def _persist(self, listing: ListingRecord, normalized: NormalizedDetail) -> None:
        if self._store is None:
            return
        fields: dict[str, Any] = {
            "detail_json": normalized.to_dict(),
            "detail_updated_at": ms_to_iso(self._clock()),
            "last_scrape_status": classify(normalized),
        }
        try:
            self._store.update(listing.id, fields)
            return
        except Exception as e:
            first_error = e
        # Stores that predate the status column still get the detail itself.
        fields.pop("last_scrape_status", None)
        try:
            self._store.update(listing.id, fields)
        except Exception as e:
            _warn(f"persist failed for {listing.id}: {type(first_error).__name__}: {first_error}; retry: {type(e).__name__}: {e}")
