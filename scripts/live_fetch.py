from __future__ import annotations

import os
import sys

from listing_detail.browser import browser_from_env
from listing_detail.cache import DetailService
from listing_detail.config import load_detail_config
from listing_detail.normalize import normalize_detail
from listing_detail.quality import classify
from listing_detail.targets import LIVE_URLS


def main() -> int:
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    except Exception:
        pass

    urls_env = os.getenv("LIVE_URLS", "").strip()
    urls = [u.strip() for u in urls_env.split(",") if u.strip()] if urls_env else list(LIVE_URLS)

    config = load_detail_config()
    service = DetailService(None, browser=browser_from_env(config), config=config)

    counts: dict[str, int] = {}
    for url in urls:
        detail = service.fetch_product_detail(url)
        normalized = normalize_detail(detail)
        status = classify(normalized)
        counts[status] = counts.get(status, 0) + 1

        print(f"\n== {url}", flush=True)
        print(f"status={status} source={detail.debug_source if detail else 'none'}", flush=True)
        print(f"- title: {normalized.title or '-'}", flush=True)
        print(f"- price: {normalized.price_text or '-'} | moq={normalized.moq} ({normalized.moq_text or 'default'})", flush=True)
        for tier in normalized.price_tiers[:6]:
            print(f"  {tier.range or '-'} => {tier.price}", flush=True)
        attrs = ", ".join(f"{k}:{v}" for k, v in normalized.attributes[:4])
        print(f"- attributes={len(normalized.attributes)} {attrs}", flush=True)
        print(f"- hero: {normalized.hero_image or '-'}", flush=True)
        if detail is not None and detail.debug:
            print(f"- debug: {' '.join(detail.debug)}", flush=True)

    print(f"\n{'='*60}", flush=True)
    for status in ("OK", "WEAK", "BAD"):
        print(f"{status}: {counts.get(status, 0)}", flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
