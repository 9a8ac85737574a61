from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from .browser import browser_from_env
from .cache import DetailService
from .config import DetailConfig, load_detail_config
from .heal import find_weak_listings, heal_listings
from .http_client import HttpClient
from .models import NormalizedDetail, ProductDetail
from .normalize import normalize_detail
from .quality import classify
from .store import JsonListingStore, ListingStore


def _build_service(store: ListingStore | None, config: DetailConfig) -> DetailService:
    client = HttpClient(timeout_seconds=config.fetch_timeout_ms / 1000.0, proxy_url=config.proxy_url)
    return DetailService(store, client=client, browser=browser_from_env(config), config=config)


def _print_summary(detail: ProductDetail | None, normalized: NormalizedDetail) -> None:
    print(f"status: {classify(normalized)}")
    print(f"source: {detail.debug_source if detail is not None else 'none'}")
    print(f"title: {normalized.title}")
    print(f"price: {normalized.price_text or '-'}")
    print(f"moq: {normalized.moq} ({normalized.moq_text or 'default'})")
    for tier in normalized.price_tiers:
        print(f"  tier: {tier.range or '-'} => {tier.price}")
    print(f"attributes: {len(normalized.attributes)}  packaging: {len(normalized.packaging)}  protections: {len(normalized.protections)}")
    if normalized.sold_count is not None:
        print(f"sold: {normalized.sold_count}")
    print(f"supplier: {normalized.supplier.name or '-'}")
    print(f"hero: {normalized.hero_image or '-'}")


def _emit(detail: ProductDetail | None, normalized: NormalizedDetail, *, as_json: bool) -> None:
    if as_json:
        payload = {"raw": detail.to_dict() if detail is not None else None, "normalized": normalized.to_dict()}
        print(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True))
        return
    _print_summary(detail, normalized)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="listing-detail")
    parser.add_argument("--timeout-ms", type=int, default=None, help="HTML fetch timeout; overrides DETAIL_FETCH_TIMEOUT_MS.")
    parser.add_argument("--headless", action="store_true", help="Enable the headless SKU hint (same as SCRAPE_HEADLESS=1).")
    sub = parser.add_subparsers(dest="command", required=True)

    p_fetch = sub.add_parser("fetch", help="Live-extract a single product URL.")
    p_fetch.add_argument("url")
    p_fetch.add_argument("--json", action="store_true")

    for name, help_text in (("show", "Cache-aware read of a stored listing."), ("refresh", "Force a live refresh of a stored listing.")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--store", required=True)
        p.add_argument("--id", required=True)
        p.add_argument("--json", action="store_true")

    p_heal = sub.add_parser("heal", help="Refresh listings whose stored detail is missing, weak or bad.")
    p_heal.add_argument("--store", required=True)
    p_heal.add_argument("--platform", default=None)
    p_heal.add_argument("--limit", type=int, default=200)
    p_heal.add_argument("--max-workers", type=int, default=4)

    args = parser.parse_args(argv)

    config = load_detail_config()
    if args.timeout_ms is not None:
        config = replace(config, fetch_timeout_ms=args.timeout_ms)
    if args.headless:
        config = replace(config, headless=True)

    if args.command == "fetch":
        service = _build_service(None, config)
        detail = service.fetch_product_detail(args.url)
        _emit(detail, normalize_detail(detail), as_json=args.json)
        return 0 if detail is not None else 1

    store = JsonListingStore(Path(args.store))
    service = _build_service(store, config)

    if args.command in {"show", "refresh"}:
        listing = store.get(args.id)
        if listing is None:
            print(f"listing not found: {args.id}", file=sys.stderr)
            return 2
        if args.command == "show":
            detail = service.fetch_product_detail_cached(listing)
        else:
            detail = service.refresh_product_detail(listing)
        _emit(detail, service.normalized_for(listing, detail), as_json=args.json)
        return 0

    candidates = find_weak_listings(store, args.platform)
    summary = heal_listings(service, candidates, limit=args.limit, max_workers=args.max_workers)
    print(f"healed {summary.healed}/{summary.total} failed={summary.failed}", flush=True)
    return 0
