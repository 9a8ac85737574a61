from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from .cache import DetailService
from .models import ListingRecord
from .normalize import normalize_detail
from .parsers.registry import platform_for_url
from .quality import BAD, OK, classify
from .store import ListingStore


@dataclass
class HealSummary:
    total: int
    healed: int
    failed: int
    statuses: dict[str, str] = field(default_factory=dict)


def _warn(msg: str) -> None:
    print(f"[heal] {msg}", file=sys.stderr)


def _platform_of(listing: ListingRecord) -> str | None:
    return (listing.platform or "").strip().lower() or platform_for_url(listing.url)


def find_weak_listings(store: ListingStore, platform: str | None = None) -> list[ListingRecord]:
    """Listings with a URL whose stored detail is missing or does not classify as OK."""
    wanted = (platform or "").strip().lower() or None
    out: list[ListingRecord] = []
    for listing in store.listings():
        if not listing.url:
            continue
        if wanted and _platform_of(listing) != wanted:
            continue
        if not listing.detail_json:
            out.append(listing)
            continue
        if classify(normalize_detail(listing.detail_json, listing.fallback())) != OK:
            out.append(listing)
    return out


def _heal_one(service: DetailService, listing: ListingRecord) -> str:
    live = service.refresh_product_detail(listing)
    return classify(service.normalized_for(listing, live))


def heal_listings(
    service: DetailService,
    listings: list[ListingRecord],
    *,
    limit: int = 200,
    max_workers: int = 4,
) -> HealSummary:
    batch = listings[: max(0, limit)]
    summary = HealSummary(total=len(batch), healed=0, failed=0)
    if not batch:
        return summary

    log_enabled = service.config.log_enabled
    done = 0
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as ex:
        futures = {ex.submit(_heal_one, service, listing): listing for listing in batch}
        for fut in as_completed(futures):
            listing = futures[fut]
            done += 1
            try:
                status = fut.result()
            except Exception as e:
                _warn(f"{listing.id} failed: {type(e).__name__}: {e}")
                summary.failed += 1
                summary.statuses[listing.id] = "ERROR"
                continue
            summary.statuses[listing.id] = status
            if status == OK:
                summary.healed += 1
            elif status == BAD:
                summary.failed += 1
            if log_enabled:
                print(f"[heal] progress {done}/{summary.total} {listing.id} {status}", flush=True)
    return summary
