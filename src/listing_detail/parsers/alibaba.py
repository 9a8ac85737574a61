from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from bs4 import BeautifulSoup

from ..browser import BrowserAutomation
from ..models import (
    ActionLabels,
    Attribute,
    CustomizationOption,
    PackagingEntry,
    PriceTier,
    ProductDetail,
    Protection,
    Rating,
    Supplier,
    Variation,
)
from .common import (
    PRICE_AMOUNT_RE,
    PRICE_TOKEN_RE,
    QTY_RANGE_RE,
    abs_url,
    cell_text,
    clean_text,
    dig,
    extract_moq_like,
    extract_moq_loose,
    extract_price_like,
    first_text,
    is_bad_image_url,
    is_http_url,
    is_placeholder,
    load_embedded_json,
    looks_like_attribute_key,
    parse_count,
    strip_title_suffix,
    tag_text,
    uniq_by,
)


@dataclass(frozen=True)
class AlibabaParserConfig:
    platform: str = "alibaba"
    max_attributes: int = 24
    max_gallery: int = 10
    headless_timeout_ms: int = 30000
    # Upper bounds for whole-document scans.
    max_sold_scan_elements: int = 800
    max_script_chars: int = 800_000


@dataclass
class _PriceHit:
    tag: str
    price_text: str = ""
    tiers: list[PriceTier] = field(default_factory=list)
    moq_text: str | None = None


_PRICING_CONTAINERS = '.module_price, [data-testid="range-price"], [data-testid="ladder-price"], [data-testid="product-price"]'
_MIN_ORDER_LABEL_RE = re.compile(r"Minimum\s+order\s+quantity", re.IGNORECASE)
_PRODUCT_IMAGE_HOST_RE = re.compile(r"alicdn|alibaba|aliimg", re.IGNORECASE)
_NON_PRODUCT_ALT_RE = re.compile(r"logo|icon|sprite|qr|avatar", re.IGNORECASE)
_SCRIPT_IMAGE_RE = re.compile(r"\bhttps?:[^\s\"'\\]+\.(?:jpg|jpeg|png|webp)\b", re.IGNORECASE)
_BG_URL_RE = re.compile(r"url\(([\'\"]?)(.*?)\1\)", re.IGNORECASE)
_POOR_LABEL_RE = re.compile(r"^(?:thumb|thumbnail|image\s*\d+|lightcustom_|custom_)", re.IGNORECASE)
_VARIATION_NAME_FIRST_RE = re.compile(
    r'"(?:name|propertyValueName)"\s*:\s*"([^"]{1,80})"[\s\S]{0,200}?"(?:imageUrl|image|imgUrl|imagePath)"\s*:\s*"([^"]{6,400})"'
)
_VARIATION_IMAGE_FIRST_RE = re.compile(
    r'"(?:imageUrl|image|imgUrl|imagePath)"\s*:\s*"([^"]{6,400})"[\s\S]{0,200}?"(?:name|propertyValueName)"\s*:\s*"([^"]{1,80})"'
)
_SOLD_RE = re.compile(r"(\d[\d,]*)\s*\+?\s*sold\b", re.IGNORECASE)
_SCRIPT_SOLD_RES = (
    re.compile(r'"tradeCount"\s*:\s*"?(\d[\d,+]*)"?', re.IGNORECASE),
    re.compile(r'"sold"\s*:\s*(\d[\d,]*)', re.IGNORECASE),
    re.compile(r'"salesCount"\s*:\s*(\d[\d,]*)', re.IGNORECASE),
    re.compile(r'"dealCount"\s*:\s*(\d[\d,]*)', re.IGNORECASE),
)


class AlibabaParser:
    """
    Alibaba product pages ship several generations of markup at once: data-testid
    driven price modules, older SSR tables, and JSON state in inline scripts.

    Each field is resolved through an ordered list of strategies; the first one that
    yields something wins, and a miss in one field never blocks the others.
    """

    def __init__(self, cfg: AlibabaParserConfig | None = None, *, browser: BrowserAutomation | None = None) -> None:
        self._cfg = cfg or AlibabaParserConfig()
        self._browser = browser

    @property
    def platform(self) -> str:
        return self._cfg.platform

    def parse(self, html: str, *, url: str) -> ProductDetail | None:
        if not html:
            return None
        soup = BeautifulSoup(html, "lxml")
        scripts = [self._script_text(s) for s in soup.find_all("script")]
        body_text = tag_text(soup.body or soup)
        debug: list[str] = []
        fired: list[str] = []

        title = self._title(soup)

        price_text, tiers, moq_text = self._resolve_price(soup, scripts, body_text, debug=debug, fired=fired)
        if not moq_text:
            moq_text = self._resolve_moq(soup, body_text, debug=debug)
        sample_price = self._sample_price(soup, debug=debug)

        gallery = self._gallery(soup, scripts)
        bg_candidates = self._background_images(soup)
        og_image = self._meta(soup, property="og:image")

        variations = self._variations(soup, scripts, url=url, gallery=gallery, og_image=og_image, debug=debug)
        attributes, packaging = self._attributes(soup, debug=debug)
        protections = self._protections(soup, debug=debug)
        rating, sold_count = self._social_proof(soup, scripts, debug=debug)
        hero = self._hero(bg_candidates, og_image, gallery)
        if hero:
            debug.append("hero:resolved")

        return ProductDetail(
            title=title or None,
            price_text=price_text or None,
            moq_text=moq_text,
            price_tiers=uniq_by(
                [PriceTier(range=clean_text(t.range), price=clean_text(t.price)) for t in tiers if clean_text(t.price)],
                lambda t: f"{t.price}|{t.range}",
            ),
            sample_price=sample_price,
            variations=uniq_by(
                [
                    Variation(label=clean_text(v.label), image=abs_url(v.image) or None)
                    for v in variations
                    if v.image and not is_placeholder(v.label)
                ],
                lambda v: v.image or "",
            ),
            customization_options=self._customization_options(soup),
            supplier_abilities=uniq_by(
                [a for a in (tag_text(el) for el in soup.select(".module_supplier_customization .id-flex.id-items-center")) if not is_placeholder(a)],
                lambda a: a,
            ),
            shipping_note=first_text(soup, '[data-testid="logistics-no-result-text"]') or None,
            actions=self._actions(soup),
            attributes=attributes[: self._cfg.max_attributes],
            packaging=packaging,
            protections=protections,
            gallery=list(dict.fromkeys(gallery))[: self._cfg.max_gallery],
            hero_image=hero,
            rating=rating,
            sold_count=sold_count,
            supplier=self._supplier(soup),
            debug=debug,
            debug_source=f"alibaba:{'+'.join(fired) if fired else 'fallback-json/meta'}",
        )

    # ---------- generic helpers ----------

    @staticmethod
    def _script_text(script) -> str:
        try:
            return script.string or script.get_text() or ""
        except Exception:
            return ""

    @staticmethod
    def _meta(soup: BeautifulSoup, **attrs: str) -> str:
        tag = soup.find("meta", attrs=attrs)
        if tag is None:
            return ""
        return clean_text(tag.get("content") or "")

    def _title(self, soup: BeautifulSoup) -> str:
        for sel in ("h1.product-title", "h1.title", "h1", "h2"):
            t = first_text(soup, sel)
            if t:
                return strip_title_suffix(t)
        return strip_title_suffix(self._meta(soup, property="og:title"))

    @staticmethod
    def _price_items(root) -> list[PriceTier]:
        tiers: list[PriceTier] = []
        for el in root.select(".price-item"):
            text = tag_text(el)
            price = extract_price_like(text)
            if not price:
                continue
            tiers.append(PriceTier(range=clean_text(text.replace(price, "")), price=price))
        return tiers

    # ---------- price ----------

    def _tier_strategies(self) -> list[tuple[str, Callable[[BeautifulSoup], _PriceHit | None]]]:
        return [
            ("range-price", self._price_range_block),
            ("ladder-price", self._price_ladder_block),
            ("promotion-fixed-price", self._price_promotion_block),
            ("product-price", self._price_product_block),
            ("ssr-table", self._price_ssr_table),
            ("text-scan", self._price_text_scan),
        ]

    def _scalar_price_strategies(self) -> list[tuple[str, Callable[[BeautifulSoup, list[str], str], str]]]:
        return [
            ("json-ld", self._price_from_json_ld),
            ("embedded-json", self._price_from_globals),
            ("meta", self._price_from_meta),
            ("price-box", self._price_from_price_box),
            ("body", lambda _soup, _scripts, body: extract_price_like(body)),
        ]

    def _resolve_price(
        self,
        soup: BeautifulSoup,
        scripts: list[str],
        body_text: str,
        *,
        debug: list[str],
        fired: list[str],
    ) -> tuple[str, list[PriceTier], str | None]:
        price_text = ""
        tiers: list[PriceTier] = []
        moq_text: str | None = None

        for name, strategy in self._tier_strategies():
            if price_text and tiers:
                break
            try:
                hit = strategy(soup)
            except Exception:
                hit = None
            if hit is None:
                continue
            contributed = False
            if hit.tiers and not tiers:
                tiers = hit.tiers
                contributed = True
            if hit.price_text and not price_text:
                price_text = hit.price_text
                contributed = True
            if hit.moq_text and not moq_text:
                moq_text = hit.moq_text
            if contributed:
                fired.append(name)
                debug.append(f"price:{hit.tag}")

        if not price_text and tiers:
            price_text = tiers[0].price

        if not price_text:
            for name, strategy in self._scalar_price_strategies():
                try:
                    found = strategy(soup, scripts, body_text)
                except Exception:
                    found = ""
                if found:
                    price_text = found
                    debug.append(f"price:{name}")
                    break

        return price_text, tiers, moq_text

    def _price_range_block(self, soup: BeautifulSoup) -> _PriceHit | None:
        rp = soup.select_one('[data-testid="range-price"]')
        if rp is None:
            return None
        hit = _PriceHit(tag="range-price", tiers=self._price_items(rp))
        # Pick the innermost element carrying the MOQ label so tier rows don't shadow it.
        labelled = [el for el in rp.find_all(True) if _MIN_ORDER_LABEL_RE.search(tag_text(el))]
        if labelled:
            hit.moq_text = extract_moq_like(tag_text(min(labelled, key=lambda el: len(tag_text(el)))))
        for el in rp.select("span, div"):
            if el.select(".price-item"):
                continue
            text = tag_text(el)
            if PRICE_TOKEN_RE.search(text):
                hit.price_text = extract_price_like(text)
                if hit.price_text:
                    break
        if not hit.price_text and hit.tiers:
            hit.price_text = hit.tiers[0].price
        return hit

    def _price_ladder_block(self, soup: BeautifulSoup) -> _PriceHit | None:
        lp = soup.select_one('[data-testid="ladder-price"]')
        if lp is None:
            return None
        tiers = self._price_items(lp)
        text = tag_text(lp)
        return _PriceHit(
            tag="ladder-price",
            tiers=tiers,
            price_text=tiers[0].price if tiers else "",
            moq_text=extract_moq_like(text) or extract_moq_loose(text),
        )

    def _price_promotion_block(self, soup: BeautifulSoup) -> _PriceHit | None:
        pf = soup.select_one('[data-testid="promotion-fixed-price"], [data-testid="presentation-fixed-price"]')
        if pf is None:
            return None
        text = tag_text(pf)
        strong = first_text(pf, "strong")
        return _PriceHit(
            tag="promotion-fixed-price",
            price_text=extract_price_like(strong or text) or extract_price_like(text),
            moq_text=extract_moq_like(text) or extract_moq_loose(text),
        )

    def _price_product_block(self, soup: BeautifulSoup) -> _PriceHit | None:
        pp = soup.select_one('[data-testid="product-price"]')
        if pp is None:
            return None
        text = tag_text(pp)
        strong = first_text(pp, "strong")
        price = extract_price_like(strong) if strong else extract_price_like(text)
        moq = extract_moq_like(text)
        hit = _PriceHit(tag="product-price", price_text=price, moq_text=moq)
        if price:
            hit.tiers = [PriceTier(range=f"{moq} and up" if moq else "", price=price)]
        return hit

    def _price_ssr_table(self, soup: BeautifulSoup) -> _PriceHit | None:
        cells = soup.select(".sr-proMainInfo-baseInfo-propertyPrice .only-one-priceNum-tr td")
        pairs: list[PriceTier] = []
        for td in cells:
            price = extract_price_like(first_text(td, ".only-one-priceNum-td-left"))
            rng = first_text(td, ".only-one-priceNum-price")
            if price and rng:
                pairs.append(PriceTier(range=rng, price=price))
        if not pairs:
            return None
        return _PriceHit(tag=f"ssr-table:{len(pairs)}", tiers=pairs, price_text=pairs[0].price)

    def _price_text_scan(self, soup: BeautifulSoup) -> _PriceHit | None:
        tiers: list[PriceTier] = []
        for el in soup.select(_PRICING_CONTAINERS):
            lines = [clean_text(x) for x in el.get_text("\n").split("\n")]
            for line in [x for x in lines if x][:60]:
                if not (PRICE_AMOUNT_RE.search(line) and QTY_RANGE_RE.search(line)):
                    continue
                price = extract_price_like(line)
                if not price:
                    continue
                rng = clean_text(line.replace(price, ""))
                tiers.append(PriceTier(range=rng or line, price=price))
        if not tiers:
            return None
        return _PriceHit(tag=f"text-scan hit {len(tiers)}", tiers=tiers, price_text=tiers[0].price)

    @staticmethod
    def _price_from_json_ld(soup: BeautifulSoup, _scripts: list[str], _body: str) -> str:
        for script in soup.select('script[type="application/ld+json"]'):
            try:
                data = json.loads(script.string or script.get_text() or "{}")
            except ValueError:
                continue
            for node in data if isinstance(data, list) else [data]:
                offers = node.get("offers") if isinstance(node, dict) else None
                if isinstance(offers, list):
                    offers = offers[0] if offers else None
                if not isinstance(offers, dict):
                    continue
                price = offers.get("price") or offers.get("lowPrice")
                if price:
                    return f"{offers.get('priceCurrency') or 'USD'} {price}"
        return ""

    @staticmethod
    def _offer_price(offer: Any, currency_default: str = "USD") -> str:
        if not isinstance(offer, dict):
            return ""
        cur = offer.get("currency") or offer.get("priceCurrency") or currency_default
        low = offer.get("price") or offer.get("lowPrice") or offer.get("minPrice")
        high = offer.get("highPrice") or offer.get("maxPrice")
        if isinstance(low, (dict, list)) or not low:
            return ""
        if high and not isinstance(high, (dict, list)) and str(high) != str(low):
            try:
                if float(high) != float(low):
                    return f"{cur} {low} - {high}"
            except (TypeError, ValueError):
                return f"{cur} {low} - {high}"
        return f"{cur} {low}"

    def _price_from_globals(self, _soup: BeautifulSoup, scripts: list[str], _body: str) -> str:
        for txt in scripts:
            run_params = load_embedded_json(txt, "runParams")
            if run_params:
                price = None
                for path in (
                    ("price",),
                    ("priceModule", "price"),
                    ("skuModule", "skuPriceList", 0, "price"),
                    ("skuModule", "skuPriceList", 0, "discountPrice"),
                ):
                    v = dig(run_params, *path)
                    if isinstance(v, (str, int, float)) and not isinstance(v, bool) and str(v).strip():
                        price = v
                        break
                if price is not None:
                    cur = run_params.get("currency") or dig(run_params, "priceModule", "currency") or "USD"
                    return f"{cur} {price}"

            global_data = load_embedded_json(txt, "__GLOBAL_DATA__")
            if global_data:
                found = self._offer_price(dig(global_data, "data", "offer") or global_data.get("offer"))
                if found:
                    return found

            aui_state = load_embedded_json(txt, "__AUI_INITIAL_STATE__")
            if aui_state:
                found = self._offer_price(aui_state.get("offer"))
                if found:
                    return found
        return ""

    def _price_from_meta(self, soup: BeautifulSoup, _scripts: list[str], _body: str) -> str:
        price = self._meta(soup, itemprop="price") or self._meta(soup, property="og:price:amount")
        if not price:
            return ""
        cur = self._meta(soup, itemprop="priceCurrency") or self._meta(soup, property="og:price:currency") or "USD"
        return f"{cur} {price}"

    @staticmethod
    def _price_from_price_box(soup: BeautifulSoup, _scripts: list[str], _body: str) -> str:
        return extract_price_like(first_text(soup, ".price, .offer-price, .product-price, .price-box"))

    def _sample_price(self, soup: BeautifulSoup, *, debug: list[str]) -> str | None:
        price = extract_price_like(first_text(soup, '[data-testid="fortifiedSample"]'))
        if price:
            debug.append("sample:fortified")
        return price or None

    # ---------- MOQ ----------

    @staticmethod
    def _moq_from_dt_pairs(soup: BeautifulSoup, _body: str) -> str | None:
        values: list[str] = []
        for dt in soup.find_all("dt"):
            if not re.search(r"Min\.?\s*Order", tag_text(dt), re.IGNORECASE):
                continue
            dd = dt.find_next_sibling("dd")
            if dd is not None:
                values.append(tag_text(dd))
        if not values:
            return None
        return extract_moq_like(f"MOQ {' '.join(values)}")

    def _moq_strategies(self) -> list[tuple[str, Callable[[BeautifulSoup, str], str | None]]]:
        return [
            ("labeled", lambda soup, _b: extract_moq_like(first_text(soup, ".min-order, .moq, .order-quantity, .sku-min-order, .min-order-quantity"))),
            ("spec-list", lambda soup, _b: extract_moq_like(" ".join(tag_text(el) for el in soup.select(".specification, .key-attributes, .trade-details, .list-unstyled")))),
            ("dl", self._moq_from_dt_pairs),
            ("body", lambda _soup, body: extract_moq_like(body)),
            ("loose", lambda soup, body: extract_moq_loose(first_text(soup, f".product-price, {_PRICING_CONTAINERS}")) or extract_moq_loose(body)),
        ]

    def _resolve_moq(self, soup: BeautifulSoup, body_text: str, *, debug: list[str]) -> str | None:
        for name, strategy in self._moq_strategies():
            try:
                found = strategy(soup, body_text)
            except Exception:
                found = None
            if found:
                debug.append(f"moq:{name}")
                return found
        return None

    # ---------- variations ----------

    def _variations(
        self,
        soup: BeautifulSoup,
        scripts: list[str],
        *,
        url: str,
        gallery: list[str],
        og_image: str,
        debug: list[str],
    ) -> list[Variation]:
        variations = self._variations_from_thumbs(soup)
        if variations:
            debug.append(f"var:thumbs {len(variations)}")

        if self._browser is not None and (not variations or _POOR_LABEL_RE.match(variations[0].label or "")):
            debug.append("var:headless-hint")
            try:
                hint = self._browser.selected_sku(url, timeout_ms=self._cfg.headless_timeout_ms)
            except Exception:
                hint = None
            if hint is not None and hint.label:
                img = abs_url(hint.hero_url)
                if img.startswith("/"):
                    img = ""
                if not variations:
                    variations.append(Variation(label=hint.label, image=img or None))
                else:
                    if _POOR_LABEL_RE.match(variations[0].label or ""):
                        variations[0].label = hint.label
                    if not variations[0].image and img:
                        variations[0].image = img
                debug.append(f"var:selected={hint.label}")

        if not variations:
            variations = self._variations_from_scripts(scripts)
            if variations:
                debug.append(f"var:script {len(variations)}")

        chip = soup.select_one('[data-testid="last-sku-first-item"]')
        if chip is not None:
            label = first_text(chip, "span") or tag_text(chip)
            if label:
                picked = gallery[0] if gallery else abs_url(og_image)
                if picked.startswith("/"):
                    picked = ""
                existing = next((v for v in variations if (v.label or "").lower() == label.lower()), None)
                if existing is not None:
                    if picked and not existing.image:
                        existing.image = picked
                else:
                    variations.insert(0, Variation(label=label, image=picked or None))
                debug.append(f"var:selected={label}")
        return variations

    @staticmethod
    def _variations_from_thumbs(soup: BeautifulSoup) -> list[Variation]:
        out: list[Variation] = []
        seen: set[str] = set()
        for img in soup.select('[data-testid="sku-list"] img'):
            src = abs_url(img.get("src") or img.get("data-src") or "")
            if not src or src in seen:
                continue
            seen.add(src)
            alt = clean_text(img.get("alt") or "")
            label = alt if alt and not is_placeholder(alt) else f"Image {len(out) + 1}"
            out.append(Variation(label=label, image=src))
        return out

    def _variations_from_scripts(self, scripts: list[str]) -> list[Variation]:
        out: list[Variation] = []

        def push(label: str, src: str) -> None:
            img = abs_url(clean_text(src).replace("\\/", "/"))
            if not img or not _PRODUCT_IMAGE_HOST_RE.search(img):
                return
            out.append(Variation(label=clean_text(label) or "Variant", image=img))

        for txt in scripts:
            txt = txt[: self._cfg.max_script_chars]
            if not re.search("sku", txt, re.IGNORECASE) or not re.search("image", txt, re.IGNORECASE):
                continue
            for m in _VARIATION_NAME_FIRST_RE.finditer(txt):
                push(m.group(1), m.group(2))
            for m in _VARIATION_IMAGE_FIRST_RE.finditer(txt):
                push(m.group(2), m.group(1))
        return out

    # ---------- merchandising blocks ----------

    @staticmethod
    def _customization_options(soup: BeautifulSoup) -> list[CustomizationOption]:
        out: list[CustomizationOption] = []
        for row in soup.select(".module_sku_summary_other_customization .id-flex.id-items-center"):
            line = tag_text(row)
            if not line:
                continue
            name = clean_text(line.split("+")[0])
            add_on = re.search(r"\+\$?\s*[\d.,]+(?:/\w+)?", line)
            moq = re.search(r"\(.*?(?:Min\.?\s*order|MOQ).*?\)", line, re.IGNORECASE)
            if not name or is_placeholder(name):
                continue
            out.append(
                CustomizationOption(
                    name=name,
                    add_on=clean_text(add_on.group(0).lstrip("+")) if add_on else None,
                    moq=clean_text(moq.group(0).strip("()")) if moq else None,
                )
            )
        return uniq_by(out, lambda c: f"{c.name}|{c.add_on or ''}|{c.moq or ''}")

    @staticmethod
    def _actions(soup: BeautifulSoup) -> ActionLabels | None:
        inquiry = first_text(soup, '[data-testid="customizationSkuSummary-INQUIRY"]')
        chat = first_text(soup, '[data-testid="customizationSkuSummary-CHAT"]')
        if not inquiry and not chat:
            return None
        return ActionLabels(inquiry_label=inquiry or None, chat_label=chat or None)

    @staticmethod
    def _protections(soup: BeautifulSoup, *, debug: list[str]) -> list[Protection]:
        out: list[Protection] = []
        root = soup.select_one(".module_ta_plus")
        if root is not None:
            for block in root.select(".id-flex.id-flex-col.id-gap-2"):
                header = first_text(block, "h4")
                body = first_text(block, "p")
                if header or body:
                    out.append(Protection(header=header or None, body=body or None))
            if out:
                debug.append(f"prot:module_ta_plus {len(out)}")
        widget_count = 0
        for widget in soup.select('[data-widget="tradeAssurance"]'):
            for card in widget.select("li, .item, .card"):
                header = first_text(card, "h3, .title, .name")
                body = first_text(card, "p, .desc, .content")
                if header or body:
                    out.append(Protection(header=header or None, body=body or None))
                    widget_count += 1
        if widget_count:
            debug.append(f"prot:widget {widget_count}")
        return uniq_by(out, lambda p: f"{p.header or ''}|{p.body or ''}")

    # ---------- attributes ----------

    @staticmethod
    def _has_bg(el) -> bool:
        return any("id-bg" in c for c in (el.get("class") or []))

    def _rows_from_grid(self, grid) -> list[tuple[str, str]]:
        rows: list[tuple[str, str]] = []
        for row in grid.select('[class*="id-grid-cols-[2fr_3fr]"]'):
            cells = row.select(".id-text-sm.id-p-4")
            if not cells:
                continue
            left = next((c for c in cells if self._has_bg(c)), cells[0])
            right = next((c for c in cells if not self._has_bg(c) and c is not left), None)
            name, value = cell_text(left), cell_text(right)
            if name and value:
                rows.append((name, value))
        return rows

    def _module_attribute_grid(self, soup: BeautifulSoup) -> tuple[list[tuple[str, str]], list[tuple[str, str]]]:
        attrs: list[tuple[str, str]] = []
        packs: list[tuple[str, str]] = []
        modules = soup.select('[data-module-name="module_attribute"] [data-testid="module-attribute"], .module_attribute, .sr-attribute')
        for mod in modules:
            grids = mod.select(".id-grid.id-grid-cols-2")
            if grids:
                attrs.extend(self._rows_from_grid(grids[0]))
            pack_header = next((h for h in mod.find_all("h3") if re.search("packaging", tag_text(h), re.IGNORECASE)), None)
            if pack_header is not None:
                pack_grid = next(
                    (
                        sib
                        for sib in pack_header.find_next_siblings()
                        if {"id-grid", "id-grid-cols-2"} <= set(sib.get("class") or [])
                    ),
                    None,
                )
                if pack_grid is not None:
                    packs.extend(self._rows_from_grid(pack_grid))
            elif len(grids) > 1:
                packs.extend(self._rows_from_grid(grids[1]))
        return attrs, packs

    @staticmethod
    def _attributes_from_tables(soup: BeautifulSoup) -> list[tuple[str, str]]:
        out: list[tuple[str, str]] = []
        for tr in soup.select("table tr"):
            cells = tr.find_all(["th", "td"], recursive=False)
            if len(cells) < 2:
                continue
            key = tag_text(cells[0]).rstrip(":").strip()
            value = tag_text(cells[1])
            if key and value and looks_like_attribute_key(key):
                out.append((key, value))
        return out

    @staticmethod
    def _attributes_from_dl(soup: BeautifulSoup) -> list[tuple[str, str]]:
        out: list[tuple[str, str]] = []
        for dl in soup.find_all("dl"):
            for dt in dl.find_all("dt"):
                dd = dt.find_next_sibling("dd")
                key = tag_text(dt).rstrip(":").strip()
                value = tag_text(dd)
                if key and value and looks_like_attribute_key(key):
                    out.append((key, value))
        return out

    def _attributes(self, soup: BeautifulSoup, *, debug: list[str]) -> tuple[list[Attribute], list[PackagingEntry]]:
        pairs: list[tuple[str, str]] = []
        packs: list[tuple[str, str]] = []
        try:
            grid_attrs, packs = self._module_attribute_grid(soup)
            if grid_attrs:
                debug.append(f"attrs:module {len(grid_attrs)}")
            if packs:
                debug.append(f"pack:module {len(packs)}")
            pairs.extend(grid_attrs)
        except Exception:
            packs = []
        for strategy in (self._attributes_from_tables, self._attributes_from_dl):
            try:
                pairs.extend(strategy(soup))
            except Exception:
                continue

        def norm(items: list[tuple[str, str]]) -> list[tuple[str, str]]:
            cleaned = [(clean_text(a), clean_text(b)) for a, b in items]
            return uniq_by([(a, b) for a, b in cleaned if a and b], lambda p: f"{p[0]}|{p[1]}")

        return (
            [Attribute(label=a, value=b) for a, b in norm(pairs)],
            [PackagingEntry(name=a, value=b) for a, b in norm(packs)],
        )

    # ---------- images ----------

    def _gallery(self, soup: BeautifulSoup, scripts: list[str]) -> list[str]:
        gallery: list[str] = []

        def push(src: str | None) -> None:
            s = abs_url(src)
            if is_http_url(s) or s.startswith("/"):
                gallery.append(s)

        for txt in scripts:
            for m in _SCRIPT_IMAGE_RE.finditer(txt[: self._cfg.max_script_chars].replace("\\/", "/")):
                push(m.group(0))
        for img in soup.find_all("img"):
            src = img.get("data-src") or img.get("src")
            alt = str(img.get("alt") or "")
            if src and _PRODUCT_IMAGE_HOST_RE.search(str(src)) and not _NON_PRODUCT_ALT_RE.search(alt):
                push(str(src))
        return gallery

    @staticmethod
    def _background_images(soup: BeautifulSoup) -> list[str]:
        out: list[str] = []
        for el in soup.select('[style*="background"]'):
            m = _BG_URL_RE.search(str(el.get("style") or ""))
            if not m or not m.group(2):
                continue
            u = abs_url(m.group(2))
            if not is_bad_image_url(u):
                out.append(u)
        return out

    @staticmethod
    def _hero(bg_candidates: list[str], og_image: str, gallery: list[str]) -> str | None:
        og = abs_url(og_image)
        candidates = [*bg_candidates, og, *gallery]
        pick = next((c for c in candidates if c and not is_bad_image_url(c)), "")
        return pick or None

    # ---------- rating / sold ----------

    def _social_proof(self, soup: BeautifulSoup, scripts: list[str], *, debug: list[str]) -> tuple[Rating | None, int | None]:
        rating_value: float | None = None
        rating_count: int | None = None
        sold: int | None = None

        cluster = soup.select_one(".detail-product-comment")
        if cluster is not None:
            star_text = first_text(cluster, ".detail-review-item.detail-star")
            m = re.search(r"(\d+(?:\.\d+)?)", star_text)
            if m:
                rating_value = float(m.group(1))
            review_text = first_text(cluster, ".detail-review-item.detail-review") or star_text
            m = re.search(r"(\d[\d,]*)\s*review", review_text, re.IGNORECASE)
            if m:
                rating_count = parse_count(m.group(1))
            sold_text = ""
            for item in cluster.select(".detail-review-item"):
                t = tag_text(item)
                if re.search("sold", t, re.IGNORECASE):
                    sold_text = t
            m = _SOLD_RE.search(sold_text)
            if m:
                sold = parse_count(m.group(1))
                debug.append("sold:review-cluster")

        if sold is None:
            sold = self._sold_from_text(soup)
            if sold is not None:
                debug.append("sold:text-scan")
        if sold is None:
            sold = self._sold_from_scripts(scripts)
            if sold is not None:
                debug.append("sold:script")

        rating = Rating(value=rating_value, count=rating_count) if (rating_value or rating_count) else None
        return rating, sold

    def _sold_from_text(self, soup: BeautifulSoup) -> int | None:
        best: int | None = None
        root = soup.body or soup
        for i, el in enumerate(root.find_all(True)):
            if i >= self._cfg.max_sold_scan_elements:
                break
            t = tag_text(el)
            if not t or len(t) > 120:
                continue
            low = t.lower()
            if "sold" not in low or re.search(r"sold\s+by", low):
                continue
            m = _SOLD_RE.search(t)
            n = parse_count(m.group(1)) if m else None
            if n is not None and (best is None or n > best):
                best = n
        return best

    def _sold_from_scripts(self, scripts: list[str]) -> int | None:
        best: int | None = None
        for txt in scripts:
            txt = txt[: self._cfg.max_script_chars]
            for rx in _SCRIPT_SOLD_RES:
                m = rx.search(txt)
                n = parse_count(m.group(1)) if m else None
                if n is not None and (best is None or n > best):
                    best = n
        return best

    # ---------- supplier ----------

    @staticmethod
    def _supplier(soup: BeautifulSoup) -> Supplier:
        profile = soup.select_one("a.company-name, a.store-name, .company-name-wrapper a")
        logo = soup.select_one('img[alt*="logo" i], .company-logo img, .shop-logo img, .sr-com-logo img')
        contact = soup.select_one('a:-soup-contains("Contact Supplier")')
        chat = soup.select_one('a:-soup-contains("Chat now"), [data-role*="chat"]')
        return Supplier(
            name=first_text(soup, '.company-name, .store-name, .seller-name, a[title*="Company"], .title-txt a, .company-name-wrapper a') or None,
            type=first_text(soup, ".business-type, .info-businessType, .supplier-type, .seller-type, .company-type") or None,
            location=first_text(soup, ".location, .company-location, .supplier-address, .company-address, .J-offerdetail-shop-address") or None,
            profile_link=(profile.get("href") if profile is not None else None) or None,
            logo=abs_url(logo.get("src")) if logo is not None and logo.get("src") else None,
            contact_link=(contact.get("href") if contact is not None else None) or None,
            chat_enabled=chat is not None,
        )
