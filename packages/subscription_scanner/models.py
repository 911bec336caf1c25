"""Records shared by the extraction pipeline and the merchant matcher.

Every record here is a frozen ``dataclass``: fragments and lines live for one
parse pass, candidates are produced once per matched line, and merchant
records are read-only snapshots owned by the knowledge base.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import TypeAlias

# ---------------------------------------------------------------------------
# Document geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PositionedTextFragment:
    """A run of text at an ``(x, y)`` position on a page.

    ``y`` follows PDF user space: it grows upward, so the top of a page has
    the largest value.
    """

    text: str
    x: float
    y: float
    page: int = 0


@dataclass(frozen=True, slots=True)
class ReconstructedLine:
    """Fragments sharing a visual row, ordered left to right.

    ``y`` is the rounded row coordinate. It is only used for ordering and is
    never shown to users.
    """

    page: int
    y: int
    fragments: tuple[PositionedTextFragment, ...]
    text: str = field(init=False)
    _offsets: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        offsets: list[int] = []
        pos = 0
        for frag in self.fragments:
            offsets.append(pos)
            pos += len(frag.text) + 1
        # frozen dataclass: assign derived fields through object.__setattr__
        object.__setattr__(self, "text", " ".join(f.text for f in self.fragments))
        object.__setattr__(self, "_offsets", tuple(offsets))

    def fragment_at(self, char_index: int) -> PositionedTextFragment | None:
        """Return the fragment that contributed the character at ``char_index``."""

        if not self.fragments or char_index < 0 or char_index >= len(self.text):
            return None
        i = bisect.bisect_right(self._offsets, char_index) - 1
        return self.fragments[max(i, 0)]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True, slots=True)
class TransactionCandidate:
    """A date/description/amount triple extracted from one statement line.

    Attributes
    ----------
    date:
        Calendar date of the transaction. When the source showed only
        month/day, the year comes from the extraction reference year and
        ``year_inferred`` is ``True``.
    description:
        Raw merchant description with the date and amount text removed.
    amount:
        Absolute value of the amount, two decimal places.
    direction:
        Debit (outgoing charge) or credit, decided by the statement format's
        sign rule. Undetermined signs are debits.
    page, line:
        Source page index and the reconstructed line text, for tracing.
    """

    date: date
    description: str
    amount: Decimal
    direction: Direction = Direction.DEBIT
    year_inferred: bool = False
    page: int = 0
    line: str = ""

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.direction is Direction.DEBIT else self.amount


# ---------------------------------------------------------------------------
# Merchants and match output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MerchantRecord:
    """A curated recurring-charge merchant.

    ``keywords`` are literal aliases; a ``*`` inside a keyword matches any run
    of characters. ``priority`` orders merchants when several could match the
    same text (lower wins; ties keep knowledge-base order).
    """

    id: str
    name: str
    keywords: tuple[str, ...] = ()
    priority: int = 0
    cancel_url: str | None = None
    logo: str | None = None
    instructions: str | None = None


MatchResult: TypeAlias = MerchantRecord | None
"""Binary outcome of matching: one merchant, or ``None`` for no match."""


@dataclass(frozen=True, slots=True)
class MatchedTransaction:
    """A transaction candidate paired with its (optional) merchant."""

    candidate: TransactionCandidate
    normalized: str
    merchant: MatchResult = None

    @property
    def is_subscription(self) -> bool:
        return self.merchant is not None


__all__ = [
    "Direction",
    "MatchResult",
    "MatchedTransaction",
    "MerchantRecord",
    "PositionedTextFragment",
    "ReconstructedLine",
    "TransactionCandidate",
]
