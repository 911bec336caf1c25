"""Turn reconstructed statement lines into transaction candidates.

A line becomes a candidate only when it carries both a date and a money
amount. Everything else (headers, balances, legal text) is silently dropped,
except wrapped description rows on layouts that continue descriptions;
the extractor never raises for noisy input.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import replace
from datetime import date

from .formats import SignRule, StatementFormat
from .logging_setup import get_logger
from .models import Direction, ReconstructedLine, TransactionCandidate
from .rules import RESIDUAL_DATE_RE, AmountMatch, DateMatch, find_amount, find_date

_log = get_logger("subscription_scanner.extract")

# Descriptions this short are mis-detected fragments, not merchants.
MIN_DESCRIPTION_LENGTH = 3

# Wrapped descriptions (USAA) rarely span more than a few extra rows.
MAX_CONTINUATION_LINES = 3

_MARKER_RE = re.compile(r"\s*(?P<mark>CR|DR)\b", re.IGNORECASE)
_LEADING_DASHES_RE = re.compile(r"^(?:\s*-)+\s*")
_WS_RE = re.compile(r"\s+")


def _amount_span(text: str, amount: AmountMatch) -> tuple[int, int, bool, str | None]:
    """Widen the amount span over sign markers and report what was found.

    Returns ``(start, end, negative, marker)`` where ``marker`` is ``"CR"``,
    ``"DR"`` or ``None``. Parentheses and a trailing minus count as a minus.
    """

    start, end, negative = amount.start, amount.end, amount.negative
    if start > 0 and text[start - 1] == "(" and text[end : end + 1] == ")":
        start, end, negative = start - 1, end + 1, True

    marker = None
    m = _MARKER_RE.match(text, end)
    if m:
        marker = m.group("mark").upper()
        end = m.end()
    elif text[end : end + 1] == "-" and not text[end + 1 : end + 2].isdigit():
        end, negative = end + 1, True
    return start, end, negative, marker


def _direction(
    line: ReconstructedLine,
    amount: AmountMatch,
    negative: bool,
    marker: str | None,
    fmt: StatementFormat,
) -> Direction:
    if marker == "CR":
        return Direction.CREDIT
    if marker == "DR":
        return Direction.DEBIT

    rule = fmt.sign_rule
    if rule is SignRule.COLUMN and fmt.column_hints is not None:
        frag = line.fragment_at(amount.end - 1)
        if frag is not None:
            hints = fmt.column_hints
            if abs(frag.x - hints.credit_x) < abs(frag.x - hints.debit_x):
                return Direction.CREDIT
            return Direction.DEBIT
    if rule is SignRule.MINUS_IS_DEBIT:
        return Direction.DEBIT if negative else Direction.CREDIT
    if rule is SignRule.MINUS_IS_CREDIT:
        return Direction.CREDIT if negative else Direction.DEBIT
    return Direction.DEBIT


def clean_description(text: str, spans: Sequence[tuple[int, int]]) -> str:
    """Cut ``spans`` out of ``text`` and strip separator noise."""

    out = text
    for start, end in sorted(spans, reverse=True):
        out = out[:start] + " " + out[end:]
    out = RESIDUAL_DATE_RE.sub(" ", out)
    out = out.replace("|", " ")
    out = _LEADING_DASHES_RE.sub("", out)
    return _WS_RE.sub(" ", out).strip()


def extract_line(
    line: ReconstructedLine, fmt: StatementFormat, reference_year: int
) -> TransactionCandidate | None:
    """Return the candidate carried by ``line``, or ``None``."""

    text = line.text
    found_date: DateMatch | None = find_date(text, reference_year)
    if found_date is None:
        return None
    found_amount = find_amount(text)
    if found_amount is None:
        return None

    if fmt.skip_phrases:
        upper = text.upper()
        if any(phrase in upper for phrase in fmt.skip_phrases):
            return None
    if fmt.drop_zero_amounts and found_amount.value == 0:
        return None

    start, end, negative, marker = _amount_span(text, found_amount)
    description = clean_description(text, [(found_date.start, found_date.end), (start, end)])
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return None

    return TransactionCandidate(
        date=found_date.value,
        description=description,
        amount=found_amount.value,
        direction=_direction(line, found_amount, negative, marker, fmt),
        year_inferred=found_date.year_inferred,
        page=line.page,
        line=text,
    )


def _is_continuation(
    line: ReconstructedLine,
    previous: TransactionCandidate,
    fmt: StatementFormat,
    reference_year: int,
) -> bool:
    """A wrapped description row: same page, no date, no amount, some text."""

    text = line.text
    if line.page != previous.page or not clean_description(text, []):
        return False
    if find_date(text, reference_year) is not None or find_amount(text) is not None:
        return False
    upper = text.upper()
    return not any(phrase in upper for phrase in fmt.skip_phrases)


def extract(
    lines: Sequence[ReconstructedLine],
    fmt: StatementFormat,
    *,
    reference_year: int | None = None,
) -> list[TransactionCandidate]:
    """Extract candidates from ``lines`` starting at the format's table page.

    ``reference_year`` fills in year-less dates (``MM/DD``). It defaults to
    the current calendar year, so statements spanning a year boundary or
    processed a year late can be misdated.

    Formats with ``merge_continuations`` (USAA) append rows carrying neither
    a date nor an amount to the candidate directly above them, so merchant
    names wrapped onto a second row are kept. Such rows never become
    candidates on their own.
    """

    if lines is None:
        raise ValueError("lines is required")
    if fmt is None:
        raise ValueError("fmt is required")

    year = reference_year if reference_year is not None else date.today().year
    out: list[TransactionCandidate] = []
    merged = 0
    open_candidate = False
    for line in lines:
        if line.page < fmt.table_start_page:
            continue
        candidate = extract_line(line, fmt, year)
        if candidate is not None:
            out.append(candidate)
            open_candidate, merged = True, 0
            continue
        if (
            fmt.merge_continuations
            and open_candidate
            and merged < MAX_CONTINUATION_LINES
            and _is_continuation(line, out[-1], fmt, year)
        ):
            previous = out[-1]
            extra = clean_description(line.text, [])
            out[-1] = replace(previous, description=f"{previous.description} {extra}")
            merged += 1
            continue
        open_candidate = False

    _log.debug("extracted %d candidates from %d lines (%s)", len(out), len(lines), fmt.kind)
    return out


__all__ = [
    "MAX_CONTINUATION_LINES",
    "MIN_DESCRIPTION_LENGTH",
    "clean_description",
    "extract",
    "extract_line",
]
