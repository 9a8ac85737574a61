from __future__ import annotations

import json
import threading
from dataclasses import asdict, fields as dataclass_fields
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from .models import ListingRecord
from .timeutil import utc_now_iso


SCHEMA_VERSION = 1

LISTING_FIELDS = frozenset(f.name for f in dataclass_fields(ListingRecord) if f.name != "id")


class StoreError(Exception):
    pass


class ListingStore(Protocol):
    def get(self, listing_id: str) -> ListingRecord | None: ...

    def update(self, listing_id: str, fields: Mapping[str, Any]) -> None: ...

    def listings(self) -> list[ListingRecord]: ...


def _empty_state() -> dict[str, Any]:
    return {"schema_version": SCHEMA_VERSION, "updated_at": utc_now_iso(), "listings": {}}


def load_state(path: Path) -> dict[str, Any]:
    if not path.exists():
        return _empty_state()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return _empty_state()
    if not isinstance(data, dict):
        return _empty_state()
    listings = data.get("listings")
    if data.get("schema_version") != SCHEMA_VERSION:
        migrated = _empty_state()
        migrated["listings"] = listings if isinstance(listings, dict) else {}
        return migrated
    if not isinstance(listings, dict):
        data["listings"] = {}
    return data


def save_state(path: Path, state: dict[str, Any]) -> None:
    out = {**state, "schema_version": SCHEMA_VERSION, "updated_at": utc_now_iso()}
    path.write_text(json.dumps(out, ensure_ascii=False, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def _record(listing_id: str, rec: Mapping[str, Any]) -> ListingRecord:
    known = {k: v for k, v in rec.items() if k in LISTING_FIELDS}
    detail_json = known.get("detail_json")
    if detail_json is not None and not isinstance(detail_json, dict):
        known["detail_json"] = None
    return ListingRecord(id=str(listing_id), **known)


class JsonListingStore:
    """
    Listings kept in a single JSON file, keyed by id.

    `writable_fields` limits which columns `update` accepts; anything else raises
    StoreError, the same way a backing table without that column would.
    """

    def __init__(self, path: Path, *, writable_fields: Iterable[str] | None = None) -> None:
        self._path = Path(path)
        self._writable = frozenset(writable_fields) if writable_fields is not None else LISTING_FIELDS
        self._lock = threading.Lock()
        self._state = load_state(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, listing_id: str) -> ListingRecord | None:
        with self._lock:
            rec = self._state["listings"].get(str(listing_id))
            if not isinstance(rec, dict):
                return None
            return _record(listing_id, rec)

    def listings(self) -> list[ListingRecord]:
        with self._lock:
            items = list(self._state["listings"].items())
        return [_record(lid, rec) for lid, rec in items if isinstance(rec, dict)]

    def update(self, listing_id: str, fields: Mapping[str, Any]) -> None:
        unknown = sorted(set(fields) - self._writable)
        if unknown:
            raise StoreError(f"unknown field(s): {', '.join(unknown)}")
        with self._lock:
            rec = self._state["listings"].get(str(listing_id))
            if not isinstance(rec, dict):
                raise StoreError(f"listing not found: {listing_id}")
            rec.update(dict(fields))
            self._save()

    def upsert(self, record: ListingRecord) -> None:
        data = asdict(record)
        listing_id = str(data.pop("id"))
        with self._lock:
            self._state["listings"][listing_id] = data
            self._save()

    def _save(self) -> None:
        try:
            save_state(self._path, self._state)
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"write failed: {type(e).__name__}: {e}") from e
