from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from ..models import Attribute, ProductDetail, Supplier
from .common import (
    abs_url,
    extract_moq_like,
    extract_price_like,
    first_text,
    is_http_url,
    strip_title_suffix,
    tag_text,
    uniq_by,
)


_IMAGE_HOST_RE = re.compile(r"made-in-china|micstatic|image\.", re.IGNORECASE)
_NON_PRODUCT_ALT_RE = re.compile(r"logo|icon|sprite|qr|avatar", re.IGNORECASE)


@dataclass(frozen=True)
class MadeInChinaParserConfig:
    platform: str = "made-in-china"
    max_gallery: int = 8


class MadeInChinaParser:
    def __init__(self, cfg: MadeInChinaParserConfig | None = None) -> None:
        self._cfg = cfg or MadeInChinaParserConfig()

    @property
    def platform(self) -> str:
        return self._cfg.platform

    def parse(self, html: str, *, url: str) -> ProductDetail | None:
        if not html:
            return None
        soup = BeautifulSoup(html, "lxml")
        body_text = tag_text(soup.body or soup)
        debug: list[str] = []

        price_text = extract_price_like(first_text(soup, ".sr-proMainInfo-baseInfo-propertyPrice, .price, .only-one-priceNum"))
        if price_text:
            debug.append("price:scoped")
        else:
            price_text = extract_price_like(body_text)
            if price_text:
                debug.append("price:body")

        moq_scope = " ".join(tag_text(el) for el in soup.select(".sr-proMainInfo-baseInfo-propertyAttr, .baseInfo-price-related"))
        moq_text = extract_moq_like(moq_scope)
        if moq_text:
            debug.append("moq:scoped")
        else:
            moq_text = extract_moq_like(body_text)
            if moq_text:
                debug.append("moq:body")

        gallery = self._gallery(soup)
        og = soup.find("meta", attrs={"property": "og:image"})
        og_image = abs_url(og.get("content")) if og is not None else ""

        return ProductDetail(
            title=strip_title_suffix(first_text(soup, ".sr-proMainInfo-baseInfoH1, h1")) or None,
            price_text=price_text or None,
            moq_text=moq_text,
            attributes=self._attributes(soup),
            gallery=gallery,
            hero_image=(gallery[0] if gallery else og_image) or None,
            supplier=Supplier(
                name=first_text(soup, ".sr-comInfo-title .title-txt a, .sr-comInfo-title a") or None,
                type=first_text(soup, ".info-businessType") or None,
                location=first_text(soup, ".company-location .gold-content .tip-con, .company-location, .J-location") or None,
                member_since=first_text(soup, ".txt-year") or None,
                badges=[t for t in (tag_text(el) for el in soup.select(".sign-item, .verified-item")) if t],
            ),
            debug=debug,
            debug_source=f"{self.platform}:html",
        )

    @staticmethod
    def _attributes(soup: BeautifulSoup) -> list[Attribute]:
        out: list[Attribute] = []
        for tr in soup.select(".sr-proMainInfo-baseInfo-propertyAttr table tr"):
            label = first_text(tr, "th, .th-label").rstrip(":").strip()
            value = first_text(tr, "td")
            if label and value:
                out.append(Attribute(label=label, value=value))
        return uniq_by(out, lambda a: f"{a.label}|{a.value}")

    def _gallery(self, soup: BeautifulSoup) -> list[str]:
        out: list[str] = []
        for img in soup.find_all("img"):
            src = str(img.get("data-original") or img.get("src") or "")
            alt = str(img.get("alt") or "")
            if not src or not _IMAGE_HOST_RE.search(src) or _NON_PRODUCT_ALT_RE.search(alt):
                continue
            s = abs_url(src)
            if is_http_url(s) or s.startswith("/"):
                out.append(s)
        return list(dict.fromkeys(out))[: self._cfg.max_gallery]
