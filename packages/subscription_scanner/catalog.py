"""Merchant knowledge-base snapshot and its JSON loader.

The knowledge base is a JSON list of merchant objects::

    [{"id": "netflix", "name": "Netflix", "regex_keywords": ["NETFLIX"],
      "cancel_url": "https://www.netflix.com/cancelplan"}, ...]

Entries are validated with Pydantic and frozen into a :class:`MerchantCatalog`
ordered by ``(priority, position in file)``. The catalog never changes after
construction; callers pass it explicitly to the matcher.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .logging_setup import get_logger
from .models import MerchantRecord

_log = get_logger("subscription_scanner.catalog")

MERCHANTS_ENV = "SUBSCRIPTION_SCANNER_MERCHANTS"


class CatalogError(ValueError):
    """Raised when a merchant knowledge-base file cannot be used."""


class _MerchantEntry(BaseModel):
    """Typed view of one knowledge-base entry. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str
    name: str
    regex_keywords: list[str] | None = None
    priority: int = 0
    cancel_url: str | None = None
    logo: str | None = None
    instructions: str | None = None

    @field_validator("id", "name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("regex_keywords")
    @classmethod
    def _clean_keywords(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return [k.strip() for k in v if isinstance(k, str) and k.strip()]

    @field_validator("cancel_url", "logo", "instructions")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return v or None

    def to_record(self) -> MerchantRecord:
        return MerchantRecord(
            id=self.id,
            name=self.name,
            keywords=tuple(self.regex_keywords or ()),
            priority=self.priority,
            cancel_url=self.cancel_url,
            logo=self.logo,
            instructions=self.instructions,
        )


class MerchantCatalog:
    """Immutable, ordered snapshot of merchant records.

    Iteration yields records by ascending ``priority``; records with equal
    priority keep the order they were supplied in.
    """

    __slots__ = ("_records", "_by_id")

    def __init__(self, records: Iterable[MerchantRecord] = ()) -> None:
        indexed = list(enumerate(records))
        indexed.sort(key=lambda pair: (pair[1].priority, pair[0]))
        self._records: tuple[MerchantRecord, ...] = tuple(r for _, r in indexed)
        by_id: dict[str, MerchantRecord] = {}
        for r in self._records:
            # first occurrence wins for lookups, mirroring match order
            by_id.setdefault(r.id, r)
        self._by_id = by_id

    def __iter__(self) -> Iterator[MerchantRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> MerchantRecord:
        return self._records[index]

    def __contains__(self, merchant_id: object) -> bool:
        return merchant_id in self._by_id

    def __repr__(self) -> str:
        return f"MerchantCatalog({len(self._records)} merchants)"

    @property
    def records(self) -> tuple[MerchantRecord, ...]:
        return self._records

    def get(self, merchant_id: str) -> MerchantRecord | None:
        return self._by_id.get(merchant_id)


def catalog_from_entries(entries: Iterable[Mapping[str, Any]]) -> MerchantCatalog:
    """Validate raw knowledge-base entries and build a catalog.

    Raises
    ------
    CatalogError
        When an entry is not an object or misses ``id``/``name``. The message
        names the offending entry index.
    """

    if entries is None:
        raise ValueError("entries is required")

    records: list[MerchantRecord] = []
    for i, raw in enumerate(entries):
        if not isinstance(raw, Mapping):
            raise CatalogError(f"merchant entry {i}: expected an object, got {type(raw).__name__}")
        try:
            entry = _MerchantEntry.model_validate(raw)
        except ValidationError as exc:
            raise CatalogError(f"merchant entry {i}: {exc.errors()[0]['msg']}") from exc
        records.append(entry.to_record())
    return MerchantCatalog(records)


def load_catalog(path: str | os.PathLike[str]) -> MerchantCatalog:
    """Read a knowledge-base JSON file into a :class:`MerchantCatalog`."""

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"cannot read merchant file {os.fspath(p)}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"invalid JSON in {os.fspath(p)}: {exc}") from exc
    if not isinstance(data, list):
        raise CatalogError(f"{os.fspath(p)}: expected a JSON list of merchants")

    catalog = catalog_from_entries(data)
    _log.info("loaded %d merchants from %s", len(catalog), os.fspath(p))
    return catalog


__all__ = [
    "MERCHANTS_ENV",
    "CatalogError",
    "MerchantCatalog",
    "catalog_from_entries",
    "load_catalog",
]
