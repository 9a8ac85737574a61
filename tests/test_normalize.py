from __future__ import annotations

import unittest

from listing_detail.models import (
    Attribute,
    ListingFallback,
    NormalizedSupplier,
    PackagingEntry,
    PriceTier,
    ProductDetail,
    Protection,
    Supplier,
)
from listing_detail.normalize import SYNTH_TIER_DEBUG, currency_symbol, format_range, normalize_detail, parse_orders


def _rich_detail() -> ProductDetail:
    return ProductDetail(
        title="Custom Logo Cotton Tote Bag - Buy Tote Bag on Alibaba.com",
        price_text="US$1.20",
        moq_text="100 PIECES",
        price_tiers=[
            PriceTier(range="2 - 99 pieces", price="US$1.20"),
            PriceTier(range=">= 100 pieces", price="US$0.95"),
        ],
        attributes=[Attribute(label="Material", value="Cotton")],
        packaging=[PackagingEntry(name="Selling Units", value="Single item")],
        protections=[Protection(header="Secure payments", body="Every payment is protected.")],
        hero_image="https://s.alicdn.com/kf/Hhero_720x720.jpg",
        sold_count=1234,
        supplier=Supplier(name="Yiwu Acme Bags Co., Ltd.", type="Custom manufacturer", logo="https://s.alicdn.com/acme.png"),
        debug=["price:range-price"],
    )


class TestFormatting(unittest.TestCase):
    def test_currency_symbol(self) -> None:
        self.assertEqual(currency_symbol(None), "US$")
        self.assertEqual(currency_symbol("usd"), "US$")
        self.assertEqual(currency_symbol("RMB"), "¥")
        self.assertEqual(currency_symbol("INR"), "₹")
        self.assertEqual(currency_symbol("EUR"), "EUR")

    def test_format_range(self) -> None:
        self.assertEqual(format_range(1.5, 3, "USD"), "US$1.50 - US$3")
        self.assertEqual(format_range(2, 2, "CNY"), "¥2")
        self.assertEqual(format_range(1200, None, "INR"), "₹1,200")
        self.assertEqual(format_range(None, 4.25, None), "US$4.25")
        self.assertIsNone(format_range(None, None, "USD"))
        self.assertIsNone(format_range("n/a", True, "USD"))

    def test_parse_orders(self) -> None:
        self.assertEqual(parse_orders("1,234 sold"), 1234)
        self.assertEqual(parse_orders("56 orders"), 56)
        self.assertIsNone(parse_orders("new arrival"))
        self.assertIsNone(parse_orders(None))


class TestNormalizeDetail(unittest.TestCase):
    def test_total_on_missing_or_malformed_input(self) -> None:
        for raw in (None, 42, "garbage", {"price_tiers": "oops", "attributes": [1, 2], "supplier": "x"}):
            n = normalize_detail(raw)
            self.assertEqual(n.title, "")
            self.assertIsNone(n.price_text)
            self.assertEqual(n.price_tiers, [])
            self.assertEqual(n.moq, 1)
            self.assertEqual(n.attributes, [])
            self.assertEqual(n.packaging, [])
            self.assertEqual(n.protections, [])
            self.assertEqual(n.supplier, NormalizedSupplier())
            self.assertIsNone(n.sold_count)
            self.assertIsNone(n.hero_image)

    def test_rich_detail(self) -> None:
        n = normalize_detail(_rich_detail())

        self.assertEqual(n.title, "Custom Logo Cotton Tote Bag")
        self.assertEqual(n.price_text, "US$1.20")
        self.assertEqual(n.moq, 100)
        self.assertEqual(n.moq_text, "100 PIECES")
        self.assertEqual(len(n.price_tiers), 2)
        self.assertNotIn(SYNTH_TIER_DEBUG, n.debug)
        self.assertEqual(n.attributes, [("Material", "Cotton")])
        self.assertEqual(n.packaging, [("Selling Units", "Single item")])
        self.assertEqual(n.protections, ["Secure payments: Every payment is protected."])
        self.assertEqual(n.supplier, NormalizedSupplier(name="Yiwu Acme Bags Co., Ltd.", logo="https://s.alicdn.com/acme.png"))
        self.assertEqual(n.sold_count, 1234)

    def test_listing_fallback_fills_gaps(self) -> None:
        fb = ListingFallback(
            title="Steel Mug - Buy Mug on Alibaba.com",
            price_min=1.5,
            price_max=3,
            currency="USD",
            orders_raw="1,234 sold",
            image="https://s.alicdn.com/kf/Hmug_350x350.jpg",
        )
        n = normalize_detail(None, fb)

        self.assertEqual(n.title, "Steel Mug")
        self.assertEqual(n.price_text, "US$1.50 - US$3")
        self.assertEqual(n.price_tiers, [PriceTier(range="≥ 1", price="US$1.50 - US$3")])
        self.assertIn(SYNTH_TIER_DEBUG, n.debug)
        self.assertEqual(n.sold_count, 1234)
        self.assertEqual(n.hero_image, "https://s.alicdn.com/kf/Hmug_350x350.jpg")

    def test_raw_price_text_beats_listing_price(self) -> None:
        fb = ListingFallback(price_raw="US$9.99")
        n = normalize_detail(ProductDetail(title="Cap", price_text="US$2.00", moq_text="500 PIECES"), fb)
        self.assertEqual(n.price_text, "US$2.00")
        self.assertEqual(n.price_tiers, [PriceTier(range="≥ 500", price="US$2.00")])

        n = normalize_detail(ProductDetail(title="Cap"), fb)
        self.assertEqual(n.price_text, "US$9.99")

    def test_no_synthetic_tier_without_price(self) -> None:
        n = normalize_detail(ProductDetail(title="Cap"))
        self.assertEqual(n.price_tiers, [])
        self.assertNotIn(SYNTH_TIER_DEBUG, n.debug)

    def test_dedup_and_cleaning(self) -> None:
        raw = ProductDetail(
            title="Cap",
            price_tiers=[
                PriceTier(range="1-9 pcs", price="US$2"),
                PriceTier(range="1-9 PCS", price="us$2"),
                PriceTier(range="10+", price="  "),
            ],
            attributes=[
                Attribute(label=" Material ", value="Cotton"),
                Attribute(label="material", value="cotton"),
                Attribute(label="Color", value=""),
            ],
            protections=[
                Protection(header="Secure payments", body="Protected."),
                Protection(header=None, body="Refunds"),
                Protection(header="Header only", body=None),
                Protection(header=None, body=None),
                Protection(header=None, body="refunds"),
            ],
        )
        n = normalize_detail(raw)

        self.assertEqual(n.price_tiers, [PriceTier(range="1-9 pcs", price="US$2")])
        self.assertEqual(n.attributes, [("Material", "Cotton")])
        self.assertEqual(n.protections, ["Secure payments: Protected.", "Refunds", "Header only"])

    def test_explicit_moq_in_stored_blob(self) -> None:
        n = normalize_detail({"title": "Cap", "price_text": "US$1", "moq": 250})
        self.assertEqual(n.moq, 250)
        self.assertEqual(n.price_tiers, [PriceTier(range="≥ 250", price="US$1")])

        n = normalize_detail({"title": "Cap", "moq": 0})
        self.assertEqual(n.moq, 1)

    def test_non_finite_numbers_in_stored_blob(self) -> None:
        blob = normalize_detail(
            ProductDetail(title="Stored Mug", price_text="US$2", attributes=[Attribute(label="Material", value="Steel")])
        ).to_dict()
        for bad in (float("inf"), float("-inf"), float("nan"), "inf", 1e400):
            n = normalize_detail({**blob, "sold_count": bad})
            self.assertEqual(n.title, "Stored Mug")
            self.assertEqual(n.price_text, "US$2")
            self.assertEqual(n.attributes, [("Material", "Steel")])
            self.assertIsNone(n.sold_count)

        detail = ProductDetail.from_dict({"title": "Cap", "rating": {"value": float("nan"), "count": float("inf")}})
        assert detail.rating is not None
        self.assertIsNone(detail.rating.value)
        self.assertIsNone(detail.rating.count)
        self.assertEqual(ProductDetail.from_dict({"rating": {"value": "4.5", "count": 12.0}}).rating.count, 12)

    def test_idempotent(self) -> None:
        fb = ListingFallback(title="Listing title", price_raw="US$3.00", orders_raw="12 sold")
        for raw in (_rich_detail(), ProductDetail(title="Cap", moq_text="50 SETS"), None):
            once = normalize_detail(raw, fb)
            self.assertEqual(normalize_detail(once, fb), once)
            self.assertEqual(normalize_detail(once.to_dict(), fb), once)
            self.assertEqual(once.to_dict()["attributes"], [list(p) for p in once.attributes])


if __name__ == "__main__":
    unittest.main()
