"""Transaction candidates from bank CSV exports.

Banks disagree on column names, so columns are picked by keyword rather
than by exact header:

- date: the first header containing ``date``
- description: the first header containing ``description``, ``merchant`` or ``name``
- amount: the first header containing ``amount`` or ``debit``

Exports with split Debit/Credit columns leave the debit cell empty on
credit rows; those rows take their value from the first ``credit`` column.
Rows without a usable date, description or amount are skipped.
"""

from __future__ import annotations

import csv
import os
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path

from .extract import MIN_DESCRIPTION_LENGTH
from .logging_setup import get_logger
from .models import Direction, TransactionCandidate
from .rules import find_date

_log = get_logger("subscription_scanner.csv_source")

DATE_KEYWORDS = ("date",)
DESCRIPTION_KEYWORDS = ("description", "merchant", "name")
AMOUNT_KEYWORDS = ("amount", "debit")
CREDIT_KEYWORDS = ("credit",)

_CENT = Decimal("0.01")
_MARKER_RE = re.compile(r"(?<![A-Z])(CR|DR)(?![A-Z])")
_NOT_NUMERIC_RE = re.compile(r"[^0-9,.\-]")


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = re.sub(r"\s+", " ", value).strip()
    return cleaned or None


def _separators(s: str) -> str:
    """Resolve thousands and decimal separators to a plain ``1234.56`` form."""

    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            return s.replace(".", "").replace(",", ".")
        return s.replace(",", "")
    if "," in s:
        # "12,50" is a European decimal; "1,250" groups thousands
        if s.count(",") == 1 and len(s.rsplit(",", 1)[1]) == 2:
            return s.replace(",", ".")
        return s.replace(",", "")
    return s


def parse_amount(raw: str | None) -> tuple[Decimal, Direction] | None:
    """Parse an exported amount cell into ``(absolute value, direction)``.

    Sign rules:
    - ``CR`` marks a credit (``"$50.00 CR"``, ``"23.29CR"``)
    - ``DR``, parentheses or a trailing minus mark a debit and win over ``CR``
    - everything else is a debit, since most exports list charges as plain
      positive numbers; a leading minus only loses to ``CR``

    Returns ``None`` when no number can be read.
    """

    if raw is None:
        return None
    s = raw.strip().upper()
    markers = set(_MARKER_RE.findall(s))
    s = _MARKER_RE.sub("", s).strip()

    negative = False
    if len(s) > 2 and s.startswith("(") and s.endswith(")"):
        s, negative = s[1:-1].strip(), True
    if len(s) > 1 and s.endswith("-") and not s.startswith("-"):
        s, negative = s[:-1], True

    s = _separators(_NOT_NUMERIC_RE.sub("", s)).lstrip("-")
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None

    if negative or "DR" in markers:
        direction = Direction.DEBIT
    elif "CR" in markers:
        direction = Direction.CREDIT
    else:
        direction = Direction.DEBIT
    return abs(value).quantize(_CENT, rounding=ROUND_HALF_UP), direction


def find_column(
    headers: Sequence[str], keywords: Iterable[str], *, exclude: str | None = None
) -> str | None:
    """Return the first header containing any of ``keywords`` (case-insensitive)."""

    words = tuple(keywords)
    for h in headers:
        if h == exclude:
            continue
        lowered = h.lower()
        if any(w in lowered for w in words):
            return h
    return None


def rows_to_candidates(
    rows: Iterable[Mapping[str, str | None]],
    headers: Sequence[str],
    *,
    reference_year: int | None = None,
) -> Iterator[TransactionCandidate]:
    """Yield a candidate for every usable row of a keyed CSV export."""

    date_key = find_column(headers, DATE_KEYWORDS)
    desc_key = find_column(headers, DESCRIPTION_KEYWORDS)
    amount_key = find_column(headers, AMOUNT_KEYWORDS)
    credit_key = find_column(headers, CREDIT_KEYWORDS, exclude=amount_key)
    if date_key is None or desc_key is None or amount_key is None:
        return

    year = reference_year if reference_year is not None else date.today().year
    skipped = 0
    for idx, row in enumerate(rows):
        date_raw = _clean_text(row.get(date_key))
        found_date = find_date(date_raw, year) if date_raw else None
        description = _clean_text(row.get(desc_key))

        amount = parse_amount(row.get(amount_key)) if _clean_text(row.get(amount_key)) else None
        if amount is None and credit_key is not None:
            credit = parse_amount(row.get(credit_key))
            if credit is not None:
                amount = (credit[0], Direction.CREDIT)

        if found_date is None or amount is None or len(description or "") < MIN_DESCRIPTION_LENGTH:
            skipped += 1
            continue

        value, direction = amount
        yield TransactionCandidate(
            date=found_date.value,
            description=description,
            amount=value,
            direction=direction,
            year_inferred=found_date.year_inferred,
            page=0,
            line=",".join(v for v in (date_raw, description, row.get(amount_key) or "") if v),
        )
        _log.debug("row %d: %s %s", idx, found_date.value.isoformat(), description)

    if skipped:
        _log.info("skipped %d CSV rows without a date, description or amount", skipped)


def load_csv_transactions(
    path: str | os.PathLike[str], *, reference_year: int | None = None
) -> list[TransactionCandidate]:
    """Read a bank CSV export at ``path`` into transaction candidates.

    Raises ``FileNotFoundError`` for a missing file and ``csv.Error`` when the
    file has no header row or no date, description or amount column.
    """

    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(str(p))

    # utf-8-sig drops the byte-order mark some banks prepend
    with p.open(encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        headers = [h for h in (reader.fieldnames or []) if h and h.strip()]
        if not headers:
            raise csv.Error(f"CSV appears to have no header row: {path}")
        missing = [
            label
            for label, keywords in (
                ("date", DATE_KEYWORDS),
                ("description", DESCRIPTION_KEYWORDS),
                ("amount", AMOUNT_KEYWORDS),
            )
            if find_column(headers, keywords) is None
        ]
        if missing:
            raise csv.Error("CSV header has no column for: " + ", ".join(missing))
        out = list(rows_to_candidates(reader, headers, reference_year=reference_year))

    _log.info("read %d transactions from %s", len(out), p.name)
    return out


__all__ = [
    "find_column",
    "load_csv_transactions",
    "parse_amount",
    "rows_to_candidates",
]
