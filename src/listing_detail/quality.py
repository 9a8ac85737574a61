from __future__ import annotations

from .models import NormalizedDetail

BAD = "BAD"
WEAK = "WEAK"
OK = "OK"


def has_price_signal(d: NormalizedDetail | None) -> bool:
    if d is None:
        return False
    return bool((d.price_text or "").strip()) or bool(d.price_tiers)


def _has_rich_content(d: NormalizedDetail) -> bool:
    return bool(d.attributes) or bool(d.packaging) or bool(d.protections)


def is_bad(d: NormalizedDetail | None) -> bool:
    """Unusable: nothing to title the card with and nothing to price it with."""
    if d is None:
        return True
    return not (d.title or "").strip() and not has_price_signal(d)


def is_correct(d: NormalizedDetail | None) -> bool:
    if d is None:
        return False
    return bool((d.title or "").strip()) and has_price_signal(d) and _has_rich_content(d)


def is_weak_detail(d: NormalizedDetail | None) -> bool:
    # Usable but incomplete; typically a partially blocked scrape.
    return not is_bad(d) and not is_correct(d)


def classify(d: NormalizedDetail | None) -> str:
    if is_bad(d):
        return BAD
    if is_correct(d):
        return OK
    return WEAK
