"""Ranked date and amount pattern rules used by the extractor.

Rules are plain records evaluated in list order; the first rule that yields a
usable value wins. Keeping them as data makes each rule testable on its own
and keeps the cascade auditable.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_MONTHS = {
    "JAN": 1,
    "FEB": 2,
    "MAR": 3,
    "APR": 4,
    "MAY": 5,
    "JUN": 6,
    "JUL": 7,
    "AUG": 8,
    "SEP": 9,
    "OCT": 10,
    "NOV": 11,
    "DEC": 12,
}


@dataclass(frozen=True, slots=True)
class DateMatch:
    value: date
    year_inferred: bool
    start: int
    end: int
    text: str


@dataclass(frozen=True, slots=True)
class DateRule:
    """A date pattern and the builder turning a regex match into a date.

    ``build`` receives the match and the reference year used for year-less
    dates; it returns ``None`` when the text is not a real calendar date.
    """

    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str], int], tuple[date, bool] | None]

    def find(self, text: str, reference_year: int) -> DateMatch | None:
        for m in self.pattern.finditer(text):
            built = self.build(m, reference_year)
            if built is None:
                continue
            value, inferred = built
            return DateMatch(value, inferred, m.start(), m.end(), m.group(0))
        return None


def expand_year(raw: str) -> int:
    """Expand a 2-digit year: ``00``–``50`` → 2000s, ``51``–``99`` → 1900s."""

    yy = int(raw)
    if len(raw) == 4:
        return yy
    return 2000 + yy if yy <= 50 else 1900 + yy


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _build_slash(m: re.Match[str], reference_year: int) -> tuple[date, bool] | None:
    raw_year = m.group("y")
    year = expand_year(raw_year) if raw_year else reference_year
    value = _safe_date(year, int(m.group("m")), int(m.group("d")))
    return (value, raw_year is None) if value else None


def _build_iso(m: re.Match[str], reference_year: int) -> tuple[date, bool] | None:
    value = _safe_date(int(m.group("y")), int(m.group("m")), int(m.group("d")))
    return (value, False) if value else None


def _build_month_name(m: re.Match[str], reference_year: int) -> tuple[date, bool] | None:
    month = _MONTHS[m.group("mon")[:3].upper()]
    raw_year = m.group("y")
    year = int(raw_year) if raw_year else reference_year
    value = _safe_date(year, month, int(m.group("d")))
    return (value, raw_year is None) if value else None


_DAY = r"(?P<d>3[01]|[12]\d|0?[1-9])"

SLASH_DATE = DateRule(
    name="slash",
    pattern=re.compile(r"(?<![\d/])(?P<m>1[0-2]|0?[1-9])/" + _DAY + r"(?:/(?P<y>\d{4}|\d{2}))?(?![\d/])"),
    build=_build_slash,
)

ISO_DATE = DateRule(
    name="iso",
    pattern=re.compile(r"(?<!\d)(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})(?!\d)"),
    build=_build_iso,
)

MONTH_NAME_DATE = DateRule(
    name="month_name",
    pattern=re.compile(
        r"\b(?P<mon>JAN(?:UARY)?|FEB(?:RUARY)?|MAR(?:CH)?|APR(?:IL)?|MAY|JUNE?|JULY?"
        r"|AUG(?:UST)?|SEP(?:T(?:EMBER)?)?|OCT(?:OBER)?|NOV(?:EMBER)?|DEC(?:EMBER)?)\.?"
        r"\s+" + _DAY + r"\b(?:,?\s+(?P<y>(?:19|20)\d{2})\b)?(?!\.\d)",
        re.IGNORECASE,
    ),
    build=_build_month_name,
)

# Evaluated in this order; the first rule producing a valid date wins.
DATE_RULES: tuple[DateRule, ...] = (SLASH_DATE, ISO_DATE, MONTH_NAME_DATE)

# Any leftover date-looking text (e.g. a posting date next to the transaction
# date) that must not end up in descriptions.
RESIDUAL_DATE_RE = re.compile(r"(?<!\d)\d{1,2}/\d{1,2}(?:/\d{2,4})?(?!\d)|(?<!\d)\d{4}-\d{2}-\d{2}(?!\d)")


def find_date(text: str, reference_year: int, rules: tuple[DateRule, ...] = DATE_RULES) -> DateMatch | None:
    for rule in rules:
        found = rule.find(text, reference_year)
        if found is not None:
            return found
    return None


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AmountMatch:
    value: Decimal
    negative: bool
    start: int
    end: int
    text: str


@dataclass(frozen=True, slots=True)
class AmountRule:
    """An amount pattern. ``num`` holds the digits; ``neg`` a leading minus."""

    name: str
    pattern: re.Pattern[str]

    def finditer(self, text: str) -> Iterator[AmountMatch]:
        for m in self.pattern.finditer(text):
            value = Decimal(m.group("num").replace(",", ""))
            yield AmountMatch(value, m.group("neg") is not None, m.start(), m.end(), m.group(0))

    def find(self, text: str) -> AmountMatch | None:
        return next(self.finditer(text), None)


MONEY = AmountRule(
    name="money",
    pattern=re.compile(r"(?P<neg>-)?\$?(?P<num>\d{1,3}(?:,?\d{3})*\.\d{2})(?!\d)"),
)

AMOUNT_RULES: tuple[AmountRule, ...] = (MONEY,)


def find_amount(text: str, rules: tuple[AmountRule, ...] = AMOUNT_RULES) -> AmountMatch | None:
    for rule in rules:
        found = rule.find(text)
        if found is not None:
            return found
    return None


__all__ = [
    "AMOUNT_RULES",
    "DATE_RULES",
    "ISO_DATE",
    "MONEY",
    "MONTH_NAME_DATE",
    "RESIDUAL_DATE_RE",
    "SLASH_DATE",
    "AmountMatch",
    "AmountRule",
    "DateMatch",
    "DateRule",
    "expand_year",
    "find_amount",
    "find_date",
]
