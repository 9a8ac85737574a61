from __future__ import annotations

import unittest

from listing_detail.parsers.made_in_china import MadeInChinaParser


URL = "https://ningbopack.en.made-in-china.com/product/abc123/China-Plastic-Bottle.html"
PRODUCT_IMAGE = "https://image.made-in-china.com/2f0j00abc/Bottle.jpg"

HTML = f"""
<html>
<head><meta property="og:image" content="https://image.made-in-china.com/og/Bottle-og.jpg"></head>
<body>
  <h1 class="sr-proMainInfo-baseInfoH1">PET Plastic Bottle 500ml - Buy Bottle on Made-in-China.com</h1>
  <div class="sr-proMainInfo-baseInfo-propertyPrice">US$ 2.30 - 3.10 / Piece</div>
  <div class="sr-proMainInfo-baseInfo-propertyAttr">
    <table>
      <tr><th>Min. Order:</th><td>500 Pieces</td></tr>
      <tr><th>Material:</th><td>PET</td></tr>
      <tr><th>Material:</th><td>PET</td></tr>
    </table>
  </div>
  <img data-original="//image.made-in-china.com/2f0j00abc/Bottle.jpg" src="//www.micstatic.com/lazy.gif" alt="Bottle">
  <img src="{PRODUCT_IMAGE}" alt="Bottle side">
  <img src="https://www.micstatic.com/athena/img/logo.png" alt="company logo">
  <img src="https://example.test/unrelated.jpg" alt="Bottle">
  <div class="sr-comInfo-title"><div class="title-txt"><a href="#">Ningbo Pack Co., Ltd.</a></div></div>
  <div class="info-businessType">Manufacturer/Factory</div>
  <div class="company-location">Zhejiang, China</div>
  <span class="txt-year">5 yrs</span>
  <span class="sign-item">Audited Supplier</span>
  <span class="sign-item">ISO 9001</span>
</body>
</html>
"""


class TestMadeInChinaParser(unittest.TestCase):
    def test_empty_html_returns_none(self) -> None:
        self.assertIsNone(MadeInChinaParser().parse("", url=URL))

    def test_product_page(self) -> None:
        d = MadeInChinaParser().parse(HTML, url=URL)
        assert d is not None

        self.assertEqual(d.title, "PET Plastic Bottle 500ml")
        self.assertEqual(d.price_text, "US$ 2.30 - 3.10")
        self.assertEqual(d.moq_text, "500 PIECES")
        self.assertEqual(d.debug, ["price:scoped", "moq:scoped"])
        self.assertEqual(d.debug_source, "made-in-china:html")

        self.assertEqual([(a.label, a.value) for a in d.attributes], [("Min. Order", "500 Pieces"), ("Material", "PET")])
        self.assertEqual(d.gallery, [PRODUCT_IMAGE])
        self.assertEqual(d.hero_image, PRODUCT_IMAGE)
        self.assertEqual(d.price_tiers, [])

        assert d.supplier is not None
        self.assertEqual(d.supplier.name, "Ningbo Pack Co., Ltd.")
        self.assertEqual(d.supplier.type, "Manufacturer/Factory")
        self.assertEqual(d.supplier.location, "Zhejiang, China")
        self.assertEqual(d.supplier.member_since, "5 yrs")
        self.assertEqual(d.supplier.badges, ["Audited Supplier", "ISO 9001"])

    def test_body_fallbacks_and_og_hero(self) -> None:
        html = """
        <html>
        <head><meta property="og:image" content="//image.made-in-china.com/og/Widget.jpg"></head>
        <body><h1>Widget</h1><p>Price: USD 4.50 per set. MOQ: 20 sets.</p></body>
        </html>
        """
        d = MadeInChinaParser().parse(html, url=URL)
        assert d is not None
        self.assertEqual(d.title, "Widget")
        self.assertEqual(d.price_text, "USD 4.50")
        self.assertEqual(d.moq_text, "20 SETS")
        self.assertEqual(d.debug, ["price:body", "moq:body"])
        self.assertEqual(d.gallery, [])
        self.assertEqual(d.hero_image, "https://image.made-in-china.com/og/Widget.jpg")


if __name__ == "__main__":
    unittest.main()
