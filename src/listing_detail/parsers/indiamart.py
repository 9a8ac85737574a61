from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup

from ..models import Attribute, ProductDetail, Supplier
from .common import abs_url, extract_moq_like, extract_price_like, first_text, strip_title_suffix, tag_text


@dataclass(frozen=True)
class IndiaMartParserConfig:
    platform: str = "indiamart"
    max_attributes: int = 6


class IndiaMartParser:
    """IndiaMART pages are thin: scoped selectors first, then the page body."""

    def __init__(self, cfg: IndiaMartParserConfig | None = None) -> None:
        self._cfg = cfg or IndiaMartParserConfig()

    @property
    def platform(self) -> str:
        return self._cfg.platform

    def parse(self, html: str, *, url: str) -> ProductDetail | None:
        if not html:
            return None
        soup = BeautifulSoup(html, "lxml")
        body_text = tag_text(soup.body or soup)
        debug: list[str] = []

        price_text = extract_price_like(first_text(soup, ".p_price, .price, .pdp-price, .r_price"))
        if price_text:
            debug.append("price:scoped")
        else:
            price_text = extract_price_like(body_text)
            if price_text:
                debug.append("price:body")

        moq_text = extract_moq_like(first_text(soup, ".moq, .min-order, .order-qty"))
        if moq_text:
            debug.append("moq:scoped")
        else:
            moq_text = extract_moq_like(body_text)
            if moq_text:
                debug.append("moq:body")

        og = soup.find("meta", attrs={"property": "og:image"})
        hero = abs_url(og.get("content")) if og is not None else ""

        return ProductDetail(
            title=strip_title_suffix(first_text(soup, "h1, .prd-title, .productTitle")) or None,
            price_text=price_text or None,
            moq_text=moq_text,
            attributes=self._attributes(soup)[: self._cfg.max_attributes],
            hero_image=hero or None,
            supplier=Supplier(
                name=first_text(soup, ".cmp-name, .company-name, .seller-name") or None,
                location=first_text(soup, ".loc, .location, .cmp-loc") or None,
            ),
            debug=debug,
            debug_source=f"{self.platform}:html",
        )

    @staticmethod
    def _attributes(soup: BeautifulSoup) -> list[Attribute]:
        out: list[Attribute] = []
        for row in soup.select(".specs table tr, .specs li"):
            label = first_text(row, "th") or first_text(row, ".label")
            value = first_text(row, "td") or first_text(row, ".value")
            label = label.rstrip(":").strip()
            if label and value:
                out.append(Attribute(label=label, value=value))
        return out
