from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


_WS_RE = re.compile(r"\s+")
_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")


def clean_text(s: str | None) -> str:
    if not s:
        return ""
    t = _ZERO_WIDTH_RE.sub("", str(s)).replace("\u00a0", " ")
    return _WS_RE.sub(" ", t).strip()


def tag_text(tag) -> str:
    if tag is None:
        return ""
    try:
        return clean_text(tag.get_text(" ", strip=True))
    except Exception:
        return ""


def cell_text(tag) -> str:
    """Prefer a cell's title attribute (used for truncated values) over its text."""
    if tag is None:
        return ""
    title = tag.get("title") if hasattr(tag, "get") else None
    if isinstance(title, str) and title.strip():
        return clean_text(title)
    return tag_text(tag)


def first_text(root, selector: str) -> str:
    try:
        return tag_text(root.select_one(selector))
    except Exception:
        return ""


_AMOUNT_RE = r"\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d{1,6}(?:[.,]\d{1,2})?"
_CURRENCY_RE = r"(?:US\$|\$|¥|￥|₹|\b(?:USD|RMB|CNY|INR|Rs\.?))"

PRICE_LIKE_RE = re.compile(
    rf"{_CURRENCY_RE}\s*:?\s*(?:{_AMOUNT_RE})(?:\s*[-~–]\s*(?:{_CURRENCY_RE}\s*:?\s*)?(?:{_AMOUNT_RE}))?",
    re.IGNORECASE,
)
PRICE_TOKEN_RE = re.compile(r"(?:US\$|\bUSD\b|\$|¥|￥|₹|\bINR\b|\bRs\.)", re.IGNORECASE)
PRICE_AMOUNT_RE = re.compile(r"(?:US\$|\bUSD\b|\$|¥|￥|₹|\bINR\b|\bRs\.)\s*\d", re.IGNORECASE)
QTY_RANGE_RE = re.compile(r"(?:≥|>=)\s*\d|\d\s*[–-]\s*\d")


def extract_price_like(text: str | None) -> str:
    m = PRICE_LIKE_RE.search(clean_text(text))
    return m.group(0) if m else ""


_UNIT_RE = r"pcs?|pieces?|units?|bags?|sets?"
_MOQ_RE = re.compile(
    rf"(?:MOQ|Min(?:imum)?\.?\s*Order(?:\s*Quantity)?|≥)\s*:?\s*([\d,]{{1,7}})(?:\s*({_UNIT_RE})\b)?",
    re.IGNORECASE,
)
_MOQ_PAREN_RE = re.compile(
    rf"([≥>]?\s*[\d,]{{1,7}})\s*({_UNIT_RE})\b[^\S\r\n]*\(\s*MOQ\s*\)",
    re.IGNORECASE,
)
_MOQ_GTE_RE = re.compile(rf"≥\s*([\d,]{{1,7}})\s*({_UNIT_RE})\b", re.IGNORECASE)


def _format_moq(qty_raw: str, unit: str | None) -> str | None:
    digits = re.sub(r"[^\d]", "", qty_raw or "")
    if not digits:
        return None
    qty = int(digits)
    if qty <= 0:
        return None
    return f"{qty:,} {(unit or 'PCS').upper()}"


def extract_moq_like(text: str | None) -> str | None:
    m = _MOQ_RE.search(clean_text(text))
    if not m:
        return None
    return _format_moq(m.group(1), m.group(2))


def extract_moq_loose(text: str | None) -> str | None:
    t = clean_text(text)
    m = _MOQ_PAREN_RE.search(t) or _MOQ_GTE_RE.search(t)
    if not m:
        return None
    return _format_moq(m.group(1), m.group(2))


_FIRST_INT_RE = re.compile(r"(\d[\d,]*)")


def moq_quantity(text: str | None) -> int | None:
    m = _FIRST_INT_RE.search(text or "")
    if not m:
        return None
    digits = m.group(1).replace(",", "")
    if not digits:
        return None
    n = int(digits)
    return n if n > 0 else None


def parse_count(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    digits = re.sub(r"[,+\s]", "", str(raw))
    if not digits.isdigit():
        return None
    return int(digits)


def uniq_by(items: Iterable[T], key: Callable[[T], str]) -> list[T]:
    seen: set[str] = set()
    out: list[T] = []
    for item in items:
        k = (key(item) or "").strip().lower()
        if not k or k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out


_PLACEHOLDER_LABELS = {
    "",
    "customization options",
    "supplier’s customization ability",
    "supplier's customization ability",
    "secure payments",
    "easy return & refund",
    "protections",
    "thumb",
    "thumbnail",
    "default",
}
_PLACEHOLDER_RE = re.compile(r"^(?:lightcustom_.*|no[_\s-]?sku|-{2,})$", re.IGNORECASE)


def is_placeholder(label: str | None) -> bool:
    t = clean_text(label).lower()
    if t in _PLACEHOLDER_LABELS:
        return True
    return bool(_PLACEHOLDER_RE.match(t))


_BAD_IMAGE_RE = re.compile(
    r"@img|sprite|logo|favicon|badge|watermark|trademark|assurance|verified|(?:^|[^a-z])icons?(?:[^a-z]|$)",
    re.IGNORECASE,
)
_TPS_RE = re.compile(r"tps-\d+-\d+\.png$", re.IGNORECASE)
_HASHED_KF_RE = re.compile(r"/kf/h[a-z0-9]{16,}[a-z]?\.(?:png|jpe?g)(?:$|\?)", re.IGNORECASE)
_SIZE_SUFFIX_RE = re.compile(r"_\d{2,4}x\d{2,4}")


def is_bad_image_url(url: str | None) -> bool:
    """Badges, sprites, logos and hashed CDN placeholders that are never product photos."""
    x = (url or "").strip().lower()
    if not x:
        return True
    if _BAD_IMAGE_RE.search(x):
        return True
    if _TPS_RE.search(x):
        return True
    has_size = bool(_SIZE_SUFFIX_RE.search(x))
    if _HASHED_KF_RE.search(x) and not has_size:
        return True
    if "alicdn.com" in x and x.split("?", 1)[0].endswith(".png") and not has_size:
        return True
    return False


def abs_url(src: str | None) -> str:
    s = (src or "").strip()
    if s.startswith("//"):
        return f"https:{s}"
    return s


def is_http_url(src: str | None) -> bool:
    return bool(re.match(r"^https?:", src or "", re.IGNORECASE))


_TITLE_SUFFIX_RE = re.compile(r"\s*-\s*Buy\b.*$", re.IGNORECASE)


def strip_title_suffix(title: str | None) -> str:
    t = clean_text(title)
    stripped = _TITLE_SUFFIX_RE.sub("", t).strip()
    return stripped or t


_NON_ATTRIBUTE_KEY_RE = re.compile(r"price|usd|\$|moq|min\.?\s*order|order|sold|review", re.IGNORECASE)


def looks_like_attribute_key(key: str | None) -> bool:
    t = clean_text(key)
    if not t or len(t) > 64:
        return False
    return not _NON_ATTRIBUTE_KEY_RE.search(t)


_DECODER = json.JSONDecoder()


def load_embedded_json(script: str, name: str) -> dict[str, Any] | None:
    """Decode `name = {...}` from inline script text without evaluating it."""
    if not script or name not in script:
        return None
    for m in re.finditer(rf"{re.escape(name)}\s*=\s*\{{", script):
        try:
            obj, _end = _DECODER.raw_decode(script, m.end() - 1)
        except ValueError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def dig(obj: Any, *path: Any) -> Any:
    cur = obj
    for key in path:
        if isinstance(key, int):
            if not isinstance(cur, list) or len(cur) <= key:
                return None
            cur = cur[key]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(key)
        if cur is None:
            return None
    return cur
