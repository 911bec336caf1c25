"""Tiered merchant matching.

For every merchant, in catalog order, the first tier that hits wins:

1. **Name** - the description contains the merchant's canonical name.
2. **Keyword** - the description contains one of the merchant's aliases.
   ``*`` inside an alias matches any run of characters. Aliases of five
   characters or fewer must stand alone (no letter or digit on either side),
   so ``"TGT"`` does not fire inside ``"TARGETCIRCLE"``; longer aliases match
   anywhere.

Matching is binary: the result is one merchant or ``None``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from .catalog import MerchantCatalog
from .models import MatchResult, MerchantRecord

# Aliases at or below this length need word isolation.
SHORT_KEYWORD_MAX = 5

WILDCARD = "*"


class MatchTier(StrEnum):
    NAME = "name"
    KEYWORD = "keyword"


@dataclass(frozen=True, slots=True)
class MatchDetail:
    merchant: MerchantRecord
    tier: MatchTier
    keyword: str | None = None


def keyword_pattern(keyword: str) -> re.Pattern[str] | None:
    """Compile an alias into its matching regex; ``None`` for unusable aliases."""

    kw = keyword.strip().upper()
    if not kw.replace(WILDCARD, ""):
        return None
    body = ".*".join(re.escape(part) for part in kw.split(WILDCARD))
    if len(kw) <= SHORT_KEYWORD_MAX:
        body = r"(?<![A-Z0-9])" + body + r"(?![A-Z0-9])"
    return re.compile(body)


def keyword_matches(keyword: str, description: str) -> bool:
    pattern = keyword_pattern(keyword)
    return pattern is not None and pattern.search(description.upper()) is not None


def _ordered(merchants: Iterable[MerchantRecord]) -> Sequence[MerchantRecord]:
    if isinstance(merchants, MerchantCatalog):
        return merchants.records
    # sorted() is stable, so equal priorities keep their input order
    return sorted(merchants, key=lambda m: m.priority)


def match_details(
    normalized: str, merchants: Iterable[MerchantRecord]
) -> MatchDetail | None:
    """Like :func:`match`, but report which tier and alias produced the hit."""

    if normalized is None:
        raise ValueError("normalized is required")
    if merchants is None:
        raise ValueError("merchants is required")

    text = normalized.upper()
    for merchant in _ordered(merchants):
        name = merchant.name.strip().upper()
        if name and name in text:
            return MatchDetail(merchant, MatchTier.NAME)
        for kw in merchant.keywords:
            pattern = keyword_pattern(kw)
            if pattern is not None and pattern.search(text):
                return MatchDetail(merchant, MatchTier.KEYWORD, kw)
    return None


def match(normalized: str, merchants: Iterable[MerchantRecord]) -> MatchResult:
    """Return the first merchant matching ``normalized``, or ``None``."""

    detail = match_details(normalized, merchants)
    return detail.merchant if detail is not None else None


__all__ = [
    "SHORT_KEYWORD_MAX",
    "WILDCARD",
    "MatchDetail",
    "MatchTier",
    "keyword_matches",
    "keyword_pattern",
    "match",
    "match_details",
]
