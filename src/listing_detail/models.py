from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class PriceTier:
    range: str
    price: str


@dataclass
class Variation:
    label: str
    image: str | None = None


@dataclass(frozen=True)
class CustomizationOption:
    name: str
    add_on: str | None = None
    moq: str | None = None


@dataclass(frozen=True)
class Attribute:
    label: str
    value: str


@dataclass(frozen=True)
class PackagingEntry:
    name: str
    value: str


@dataclass(frozen=True)
class Protection:
    header: str | None = None
    body: str | None = None


@dataclass(frozen=True)
class Rating:
    value: float | None = None
    count: int | None = None


@dataclass(frozen=True)
class ActionLabels:
    inquiry_label: str | None = None
    chat_label: str | None = None


@dataclass
class Supplier:
    name: str | None = None
    type: str | None = None
    location: str | None = None
    member_since: str | None = None
    badges: list[str] = field(default_factory=list)
    profile_link: str | None = None
    logo: str | None = None
    contact_link: str | None = None
    chat_enabled: bool | None = None


@dataclass
class ProductDetail:
    """Raw extractor output. Every field is optional; lists default to empty."""

    title: str | None = None
    price_text: str | None = None
    moq_text: str | None = None
    price_tiers: list[PriceTier] = field(default_factory=list)
    sample_price: str | None = None
    variations: list[Variation] = field(default_factory=list)
    customization_options: list[CustomizationOption] = field(default_factory=list)
    supplier_abilities: list[str] = field(default_factory=list)
    shipping_note: str | None = None
    actions: ActionLabels | None = None
    attributes: list[Attribute] = field(default_factory=list)
    packaging: list[PackagingEntry] = field(default_factory=list)
    protections: list[Protection] = field(default_factory=list)
    gallery: list[str] = field(default_factory=list)
    hero_image: str | None = None
    rating: Rating | None = None
    sold_count: int | None = None
    supplier: Supplier | None = None
    debug: list[str] = field(default_factory=list)
    debug_source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ProductDetail":
        # Stored blobs come in two shapes: the raw one written by this package and the
        # normalized projection (pairs + flattened protections). Both are accepted.
        if not isinstance(data, Mapping):
            return cls()

        def get(*keys: str) -> Any:
            for k in keys:
                if k in data and data[k] is not None:
                    return data[k]
            return None

        def as_list(*keys: str) -> list:
            v = get(*keys)
            return list(v) if isinstance(v, (list, tuple)) else []

        tiers: list[PriceTier] = []
        for t in as_list("price_tiers", "priceTiers"):
            if isinstance(t, Mapping):
                tiers.append(PriceTier(range=_s(t.get("range")), price=_s(t.get("price"))))
            elif isinstance(t, PriceTier):
                tiers.append(t)

        attributes = [Attribute(label=a, value=b) for a, b in _pairs(as_list("attributes"), ("label", "name"))]
        packaging = [PackagingEntry(name=a, value=b) for a, b in _pairs(as_list("packaging"), ("name", "label"))]

        protections: list[Protection] = []
        for p in as_list("protections"):
            if isinstance(p, Mapping):
                protections.append(Protection(header=_opt(p.get("header")), body=_opt(p.get("body"))))
            elif isinstance(p, str) and p.strip():
                protections.append(Protection(header=None, body=p))

        variations: list[Variation] = []
        for v in as_list("variations"):
            if isinstance(v, Mapping):
                variations.append(Variation(label=_s(v.get("label")), image=_opt(v.get("image") or v.get("img"))))

        options: list[CustomizationOption] = []
        for c in as_list("customization_options", "customizationOptions"):
            if isinstance(c, Mapping):
                options.append(
                    CustomizationOption(
                        name=_s(c.get("name")),
                        add_on=_opt(c.get("add_on") or c.get("addOn")),
                        moq=_opt(c.get("moq")),
                    )
                )

        rating = None
        raw_rating = get("rating")
        if isinstance(raw_rating, Mapping):
            rating = Rating(value=_num(raw_rating.get("value"), float), count=_num(raw_rating.get("count"), int))

        actions = None
        raw_actions = get("actions")
        if isinstance(raw_actions, Mapping):
            actions = ActionLabels(
                inquiry_label=_opt(raw_actions.get("inquiry_label") or raw_actions.get("inquiryLabel")),
                chat_label=_opt(raw_actions.get("chat_label") or raw_actions.get("chatLabel")),
            )

        supplier = None
        raw_supplier = get("supplier")
        if isinstance(raw_supplier, Mapping):
            badges = raw_supplier.get("badges")
            supplier = Supplier(
                name=_opt(raw_supplier.get("name")),
                type=_opt(raw_supplier.get("type")),
                location=_opt(raw_supplier.get("location")),
                member_since=_opt(raw_supplier.get("member_since") or raw_supplier.get("memberSince")),
                badges=[str(b) for b in badges if isinstance(b, str)] if isinstance(badges, list) else [],
                profile_link=_opt(raw_supplier.get("profile_link") or raw_supplier.get("profileLink")),
                logo=_opt(raw_supplier.get("logo")),
                contact_link=_opt(raw_supplier.get("contact_link") or raw_supplier.get("contactLink")),
                chat_enabled=raw_supplier.get("chat_enabled", raw_supplier.get("chatEnabled")),
            )

        return cls(
            title=_opt(get("title")),
            price_text=_opt(get("price_text", "priceText")),
            moq_text=_opt(get("moq_text", "moqText")),
            price_tiers=tiers,
            sample_price=_opt(get("sample_price", "samplePrice")),
            variations=variations,
            customization_options=options,
            supplier_abilities=[str(a) for a in as_list("supplier_abilities", "supplierAbilities") if isinstance(a, str)],
            shipping_note=_opt(get("shipping_note", "shippingNote")),
            actions=actions,
            attributes=attributes,
            packaging=packaging,
            protections=protections,
            gallery=[str(g) for g in as_list("gallery") if isinstance(g, str)],
            hero_image=_opt(get("hero_image", "heroImage")),
            rating=rating,
            sold_count=_num(get("sold_count", "soldCount"), int),
            supplier=supplier,
            debug=[str(d) for d in as_list("debug") if isinstance(d, str)],
            debug_source=_opt(get("debug_source", "debugSource")),
        )


@dataclass(frozen=True)
class ListingFallback:
    title: str | None = None
    price_raw: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    currency: str | None = None
    orders_raw: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class NormalizedSupplier:
    name: str | None = None
    logo: str | None = None


@dataclass
class NormalizedDetail:
    title: str
    price_text: str | None
    price_tiers: list[PriceTier]
    sold_count: int | None
    moq: int
    moq_text: str | None
    hero_image: str | None
    attributes: list[tuple[str, str]]
    packaging: list[tuple[str, str]]
    protections: list[str]
    supplier: NormalizedSupplier
    debug: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["attributes"] = [list(p) for p in self.attributes]
        out["packaging"] = [list(p) for p in self.packaging]
        return out


@dataclass
class ListingRecord:
    id: str
    url: str | None = None
    title: str | None = None
    price_raw: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    currency: str | None = None
    orders_raw: str | None = None
    image: str | None = None
    platform: str | None = None
    detail_json: dict[str, Any] | None = None
    detail_updated_at: str | None = None
    last_scrape_status: str | None = None

    def fallback(self) -> ListingFallback:
        return ListingFallback(
            title=self.title,
            price_raw=self.price_raw,
            price_min=self.price_min,
            price_max=self.price_max,
            currency=self.currency,
            orders_raw=self.orders_raw,
            image=self.image,
        )


@dataclass(frozen=True)
class CacheEntry:
    value: ProductDetail | None
    fetched_at_ms: int


def _s(value: Any) -> str:
    return "" if value is None else str(value)


def _opt(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


def _num(value: Any, kind):
    if value is None or isinstance(value, bool):
        return None
    try:
        out = kind(value)
    except (TypeError, ValueError, OverflowError):
        return None
    # Blobs can carry inf/nan from lenient JSON writers.
    if isinstance(out, float) and not math.isfinite(out):
        return None
    return out


def _pairs(items: list, label_keys: tuple[str, str]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for item in items:
        if isinstance(item, Mapping):
            label = item.get(label_keys[0])
            if label is None:
                label = item.get(label_keys[1])
            out.append((_s(label), _s(item.get("value"))))
        elif isinstance(item, (list, tuple)) and len(item) >= 2:
            out.append((_s(item[0]), _s(item[1])))
        elif isinstance(item, (Attribute, PackagingEntry)):
            out.append((item.label if isinstance(item, Attribute) else item.name, item.value))
    return out
