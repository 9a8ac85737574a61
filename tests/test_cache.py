from __future__ import annotations

import io
import unittest
from contextlib import redirect_stderr
from unittest.mock import patch

from listing_detail.cache import DetailService, MemoryCache
from listing_detail.config import DetailConfig
from listing_detail.models import Attribute, ListingRecord, ProductDetail
from listing_detail.normalize import normalize_detail
from listing_detail.quality import OK, WEAK, classify
from listing_detail.store import StoreError
from listing_detail.timeutil import ms_to_iso


NOW = 1_760_000_000_000
HOUR_MS = 60 * 60 * 1000
URL = "https://www.alibaba.com/product-detail/Steel-Mug_1600000000001.html"

GOOD_HTML = """
<html><body>
  <h1>Steel Mug - Buy Mug on Alibaba.com</h1>
  <div class="module_price"><div>1 - 99 pieces US$2.50</div></div>
  <table><tr><td>Material</td><td>Steel</td></tr></table>
</body></html>
"""


class _FakeClient:
    def __init__(self, html: str = "") -> None:
        self.html = html
        self.calls: list[tuple[str, int | None]] = []

    def fetch_html(self, url: str, timeout_ms: int | None = None) -> str:
        self.calls.append((url, timeout_ms))
        return self.html


class _FakeStore:
    def __init__(self, reject: set[str] | None = None, fail_all: bool = False) -> None:
        self.reject = reject or set()
        self.fail_all = fail_all
        self.updates: list[tuple[str, dict]] = []

    def get(self, listing_id: str) -> ListingRecord | None:
        return None

    def listings(self) -> list[ListingRecord]:
        return []

    def update(self, listing_id: str, fields) -> None:
        if self.fail_all or set(fields) & self.reject:
            raise StoreError("column missing")
        self.updates.append((listing_id, dict(fields)))


def _ok_blob() -> dict:
    return normalize_detail(
        ProductDetail(title="Stored Mug", price_text="US$2.00", attributes=[Attribute(label="Material", value="Steel")])
    ).to_dict()


def _weak_blob() -> dict:
    return normalize_detail(ProductDetail(title="Stored Mug", price_text="US$2.00")).to_dict()


class TestMemoryCache(unittest.TestCase):
    def test_ttl_and_eviction(self) -> None:
        now = [NOW]
        cache = MemoryCache(10, clock=lambda: now[0])
        detail = ProductDetail(title="Mug")

        self.assertIsNone(cache.get(URL))
        entry = cache.set(URL, detail)
        self.assertEqual(entry.fetched_at_ms, NOW)
        self.assertIs(cache.get(URL).value, detail)

        now[0] = NOW + 9_999
        self.assertIsNotNone(cache.get(URL))
        now[0] = NOW + 10_000
        self.assertIsNone(cache.get(URL))

        cache.set(URL, None)
        self.assertIsNone(cache.get(URL).value)
        self.assertEqual(len(cache), 1)
        cache.evict(URL)
        self.assertEqual(len(cache), 0)
        cache.set("a", None)
        cache.set("b", None)
        cache.clear()
        self.assertEqual(len(cache), 0)


class TestDetailService(unittest.TestCase):
    def setUp(self) -> None:
        self.now = NOW
        self.client = _FakeClient(GOOD_HTML)
        self.store = _FakeStore()
        self.config = DetailConfig(log_enabled=False)

    def _service(self, store=None) -> DetailService:
        return DetailService(
            store if store is not None else self.store,
            client=self.client,
            config=self.config,
            clock=lambda: self.now,
        )

    def test_fresh_ok_blob_skips_network(self) -> None:
        listing = ListingRecord(id="1", url=URL, detail_json=_ok_blob(), detail_updated_at=ms_to_iso(NOW - HOUR_MS))
        service = self._service()

        detail = service.fetch_product_detail_cached(listing)
        assert detail is not None
        self.assertEqual(detail.title, "Stored Mug")
        self.assertEqual(self.client.calls, [])
        self.assertEqual(self.store.updates, [])

        self.assertIs(service.fetch_product_detail_cached(listing), detail)
        self.assertEqual(len(service.cache), 1)

    def test_fresh_weak_blob_triggers_live_fetch(self) -> None:
        listing = ListingRecord(id="1", url=URL, detail_json=_weak_blob(), detail_updated_at=ms_to_iso(NOW - HOUR_MS))
        service = self._service()

        detail = service.fetch_product_detail_cached(listing)
        assert detail is not None
        self.assertEqual(detail.title, "Steel Mug")
        self.assertEqual(self.client.calls, [(URL, 3500)])

        self.assertEqual(len(self.store.updates), 1)
        listing_id, fields = self.store.updates[0]
        self.assertEqual(listing_id, "1")
        self.assertEqual(fields["last_scrape_status"], OK)
        self.assertEqual(fields["detail_updated_at"], ms_to_iso(NOW))
        self.assertEqual(fields["detail_json"]["title"], "Steel Mug")

    def test_stale_blob_triggers_live_fetch(self) -> None:
        listing = ListingRecord(id="1", url=URL, detail_json=_ok_blob(), detail_updated_at=ms_to_iso(NOW - 25 * HOUR_MS))
        self._service().fetch_product_detail_cached(listing)
        self.assertEqual(len(self.client.calls), 1)

    def test_unparseable_timestamp_triggers_live_fetch(self) -> None:
        listing = ListingRecord(id="1", url=URL, detail_json=_ok_blob(), detail_updated_at="yesterday")
        self._service().fetch_product_detail_cached(listing)
        self.assertEqual(len(self.client.calls), 1)

    def test_failed_fetch_persists_listing_fallback(self) -> None:
        self.client.html = ""
        listing = ListingRecord(id="7", url=URL, title="Mug from listing", price_raw="US$3.00")
        service = self._service()

        self.assertIsNone(service.fetch_product_detail_cached(listing))

        _listing_id, fields = self.store.updates[0]
        self.assertEqual(fields["last_scrape_status"], WEAK)
        blob = fields["detail_json"]
        self.assertEqual(blob["title"], "Mug from listing")
        self.assertEqual(blob["price_tiers"], [{"range": "≥ 1", "price": "US$3.00"}])

        # The empty result is memoized too.
        self.assertIsNone(service.fetch_product_detail_cached(listing))
        self.assertEqual(len(self.client.calls), 1)

    def test_store_without_status_column(self) -> None:
        store = _FakeStore(reject={"last_scrape_status"})
        listing = ListingRecord(id="1", url=URL)

        self._service(store).fetch_product_detail_cached(listing)

        self.assertEqual(len(store.updates), 1)
        _listing_id, fields = store.updates[0]
        self.assertNotIn("last_scrape_status", fields)
        self.assertIn("detail_json", fields)

    def test_persist_failure_is_not_raised(self) -> None:
        store = _FakeStore(fail_all=True)
        listing = ListingRecord(id="1", url=URL)
        err = io.StringIO()

        with redirect_stderr(err):
            detail = self._service(store).fetch_product_detail_cached(listing)

        self.assertIsNotNone(detail)
        self.assertIn("[detail] persist failed for 1", err.getvalue())

    def test_unexpected_store_error_keeps_memo(self) -> None:
        attempts: list[dict] = []

        class _DownStore(_FakeStore):
            def update(self, listing_id: str, fields) -> None:
                attempts.append(dict(fields))
                raise ConnectionError("db unreachable")

        listing = ListingRecord(id="1", url=URL)
        service = self._service(_DownStore())
        err = io.StringIO()

        with redirect_stderr(err):
            detail = service.fetch_product_detail_cached(listing)
            again = service.fetch_product_detail_cached(listing)

        assert detail is not None
        self.assertEqual(detail.title, "Steel Mug")
        self.assertIs(again, detail)
        self.assertEqual(len(service.cache), 1)
        self.assertEqual(len(self.client.calls), 1)
        self.assertEqual(len(attempts), 2)
        self.assertIn("last_scrape_status", attempts[0])
        self.assertNotIn("last_scrape_status", attempts[1])
        self.assertIn("[detail] persist failed for 1: ConnectionError: db unreachable", err.getvalue())

    def test_memory_entry_expires(self) -> None:
        listing = ListingRecord(id="1", url=URL)
        service = self._service()

        service.fetch_product_detail_cached(listing)
        self.now = NOW + 299_000
        service.fetch_product_detail_cached(listing)
        self.assertEqual(len(self.client.calls), 1)

        self.now = NOW + 300_000
        service.fetch_product_detail_cached(listing)
        self.assertEqual(len(self.client.calls), 2)

    def test_refresh_bypasses_memory(self) -> None:
        listing = ListingRecord(id="1", url=URL)
        service = self._service()

        service.fetch_product_detail_cached(listing)
        refreshed = service.refresh_product_detail(listing)

        assert refreshed is not None
        self.assertEqual(refreshed.title, "Steel Mug")
        self.assertEqual(len(self.client.calls), 2)
        self.assertEqual(len(self.store.updates), 2)

    def test_listing_without_url(self) -> None:
        service = self._service()

        stored = service.fetch_product_detail_cached(ListingRecord(id="1", detail_json={"title": "Stored"}))
        assert stored is not None
        self.assertEqual(stored.title, "Stored")
        self.assertIsNone(service.fetch_product_detail_cached(ListingRecord(id="2")))
        self.assertIsNone(service.refresh_product_detail(ListingRecord(id="3")))
        self.assertEqual(self.client.calls, [])
        self.assertEqual(self.store.updates, [])

    def test_listing_without_url_and_unreadable_blob(self) -> None:
        service = self._service()
        blob = {**_ok_blob(), "sold_count": float("inf")}

        stored = service.fetch_product_detail_cached(ListingRecord(id="1", detail_json=blob))
        assert stored is not None
        self.assertEqual(stored.title, "Stored Mug")
        self.assertIsNone(stored.sold_count)

        err = io.StringIO()
        with patch.object(ProductDetail, "from_dict", side_effect=ValueError("bad blob")), redirect_stderr(err):
            self.assertIsNone(service.fetch_product_detail_cached(ListingRecord(id="2", detail_json={"title": "x"})))
        self.assertIn("[detail] stored detail unreadable for 2", err.getvalue())

    def test_unsupported_domain_does_not_fetch(self) -> None:
        service = self._service()
        self.assertIsNone(service.fetch_product_detail("https://example.com/product/1"))
        self.assertIsNone(service.fetch_product_detail(None))
        self.assertEqual(self.client.calls, [])

    def test_one_off_fetch_without_store(self) -> None:
        service = DetailService(None, client=self.client, config=self.config, clock=lambda: self.now)
        detail = service.fetch_product_detail_cached(ListingRecord(id="1", url=URL))
        assert detail is not None
        self.assertEqual(detail.title, "Steel Mug")
        self.assertEqual(classify(service.normalized_for(ListingRecord(id="1", url=URL), detail)), OK)


if __name__ == "__main__":
    unittest.main()
