from __future__ import annotations

import re
from typing import Any, Mapping

from .models import (
    ListingFallback,
    NormalizedDetail,
    NormalizedSupplier,
    PriceTier,
    ProductDetail,
    Protection,
    Supplier,
)
from .parsers.common import clean_text, moq_quantity, strip_title_suffix, uniq_by


SYNTH_TIER_DEBUG = "normalize:synth-tier"


def currency_symbol(currency: str | None) -> str:
    c = (currency or "").strip().upper()
    if not c or c == "USD":
        return "US$"
    if c in {"CNY", "RMB"}:
        return "¥"
    if c == "INR":
        return "₹"
    return c


def _format_amount(n: Any) -> str | None:
    if n is None or isinstance(n, bool):
        return None
    try:
        v = float(n)
    except (TypeError, ValueError):
        return None
    if v != v or v in (float("inf"), float("-inf")):
        return None
    if v.is_integer():
        return f"{int(v):,}"
    return f"{v:,.2f}"


def format_range(price_min: Any, price_max: Any, currency: str | None) -> str | None:
    """`US$1 - US$2`, `US$1` or None when neither bound is usable."""
    sym = currency_symbol(currency)
    lo = _format_amount(price_min)
    hi = _format_amount(price_max)
    if lo and hi and lo != hi:
        return f"{sym}{lo} - {sym}{hi}"
    if lo:
        return f"{sym}{lo}"
    if hi:
        return f"{sym}{hi}"
    return None


_ORDERS_RE = re.compile(r"(\d[\d,.]*?)\s*(?:sold|orders)", re.IGNORECASE)


def parse_orders(raw: str | None) -> int | None:
    if not raw:
        return None
    m = _ORDERS_RE.search(raw)
    if not m:
        return None
    digits = re.sub(r"[,.]", "", m.group(1))
    return int(digits) if digits.isdigit() else None


def _as_detail(raw: Any) -> tuple[ProductDetail, int | None]:
    """Coerce any accepted input into a ProductDetail plus its explicit numeric MOQ, if any."""
    if isinstance(raw, NormalizedDetail):
        # Flattened protection strings come back as body-only entries and flatten to themselves.
        raw = raw.to_dict()
    if isinstance(raw, ProductDetail):
        return raw, None
    if isinstance(raw, Mapping):
        moq = raw.get("moq")
        explicit = moq if isinstance(moq, int) and not isinstance(moq, bool) else None
        return ProductDetail.from_dict(raw), explicit
    return ProductDetail(), None


def _flatten_protection(p: Protection) -> str:
    header = clean_text(p.header)
    body = clean_text(p.body)
    if header and body:
        return f"{header}: {body}"
    return body or header


def _clean_pairs(pairs: list[tuple[str, str]]) -> list[tuple[str, str]]:
    cleaned = [(clean_text(a), clean_text(b)) for a, b in pairs]
    return uniq_by([(a, b) for a, b in cleaned if a and b], lambda p: f"{p[0]}|{p[1]}")


def normalize_detail(raw: Any, fallback: ListingFallback | None = None) -> NormalizedDetail:
    """
    Project a raw (or already normalized) detail onto the canonical shape.

    Total: malformed input degrades to empty containers. Idempotent: feeding the
    output back in yields an equal result.
    """
    fb = fallback or ListingFallback()
    try:
        detail, explicit_moq = _as_detail(raw)
    except Exception:
        detail, explicit_moq = ProductDetail(), None

    title = strip_title_suffix(detail.title) or strip_title_suffix(fb.title)

    price_text = clean_text(detail.price_text) or clean_text(fb.price_raw) or format_range(fb.price_min, fb.price_max, fb.currency) or None

    moq_text = clean_text(detail.moq_text) or None
    moq = explicit_moq if explicit_moq is not None and explicit_moq >= 1 else (moq_quantity(moq_text) or 1)

    debug = [d for d in (detail.debug or []) if isinstance(d, str)]

    tiers = uniq_by(
        [
            PriceTier(range=clean_text(t.range), price=clean_text(t.price))
            for t in (detail.price_tiers or [])
            if isinstance(t, PriceTier) and clean_text(t.price)
        ],
        lambda t: f"{t.price}|{t.range}",
    )
    if not tiers and price_text:
        tiers = [PriceTier(range=f"≥ {moq}", price=price_text)]
        if SYNTH_TIER_DEBUG not in debug:
            debug.append(SYNTH_TIER_DEBUG)

    protections = uniq_by([p for p in (_flatten_protection(p) for p in (detail.protections or [])) if p], lambda p: p)

    supplier = detail.supplier or Supplier()
    sold = detail.sold_count if detail.sold_count is not None else parse_orders(fb.orders_raw)

    return NormalizedDetail(
        title=title,
        price_text=price_text,
        price_tiers=tiers,
        sold_count=sold,
        moq=moq,
        moq_text=moq_text,
        hero_image=clean_text(detail.hero_image) or clean_text(fb.image) or None,
        attributes=_clean_pairs([(a.label, a.value) for a in (detail.attributes or [])]),
        packaging=_clean_pairs([(p.name, p.value) for p in (detail.packaging or [])]),
        protections=protections,
        supplier=NormalizedSupplier(name=clean_text(supplier.name) or None, logo=clean_text(supplier.logo) or None),
        debug=debug,
    )
