"""Statement layout profiles and issuer detection.

Each known issuer layout is a :class:`FormatKind` member with a matching
:class:`FormatProfile` row in :data:`PROFILES`. Detection walks the profiles
in their fixed priority order and picks the first whose marker text appears
on the first pages of the document; nothing matching means ``GENERIC``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .logging_setup import get_logger
from .models import ReconstructedLine

_log = get_logger("subscription_scanner.formats")

# Lines from this many leading pages are inspected for issuer markers.
DETECTION_PAGES = 2


class FormatKind(StrEnum):
    USAA = "usaa"
    SOFI = "sofi"
    CITI = "citi"
    CHASE = "chase"
    AMEX = "amex"
    GENERIC = "generic"


class SignRule(StrEnum):
    """How a format tells debits from credits."""

    COLUMN = "column"  # separate Debits / Credits columns
    MINUS_IS_DEBIT = "minus_is_debit"  # checking: withdrawals printed negative
    MINUS_IS_CREDIT = "minus_is_credit"  # card: payments/refunds printed negative
    NONE = "none"


@dataclass(frozen=True, slots=True)
class ColumnHints:
    """Horizontal positions of the debit and credit column headers."""

    debit_x: float
    credit_x: float


@dataclass(frozen=True, slots=True)
class FormatProfile:
    kind: FormatKind
    markers: tuple[str, ...]
    table_start_page: int = 0
    sign_rule: SignRule = SignRule.NONE
    debit_labels: tuple[str, ...] = ()
    credit_labels: tuple[str, ...] = ()
    skip_phrases: tuple[str, ...] = ()
    drop_zero_amounts: bool = False
    merge_continuations: bool = False


@dataclass(frozen=True, slots=True)
class StatementFormat:
    """The layout selected for one document.

    Attributes
    ----------
    kind:
        Detected layout, or ``FormatKind.GENERIC``.
    table_start_page:
        0-based page index where transaction rows begin.
    sign_rule:
        Debit/credit rule applied by the extractor.
    column_hints:
        Header positions for ``SignRule.COLUMN`` layouts, when the header row
        was found; ``None`` otherwise.
    skip_phrases:
        Uppercase phrases marking non-transaction rows (balance sweeps and
        the like) that must be discarded.
    drop_zero_amounts:
        Discard ``0.00`` rows.
    merge_continuations:
        Rows with neither a date nor an amount continue the previous
        transaction's description (wrapped merchant names).
    """

    kind: FormatKind
    table_start_page: int = 0
    sign_rule: SignRule = SignRule.NONE
    column_hints: ColumnHints | None = None
    skip_phrases: tuple[str, ...] = ()
    drop_zero_amounts: bool = False
    merge_continuations: bool = False

    @property
    def is_generic(self) -> bool:
        return self.kind is FormatKind.GENERIC


# Priority order matters: a document that mentions several issuers resolves to
# the first profile listed here.
PROFILES: tuple[FormatProfile, ...] = (
    FormatProfile(
        kind=FormatKind.USAA,
        markers=("USAA FEDERAL SAVINGS BANK", "USAA.COM"),
        table_start_page=1,
        sign_rule=SignRule.COLUMN,
        debit_labels=("DEBITS", "WITHDRAWALS"),
        credit_labels=("CREDITS", "DEPOSITS"),
        merge_continuations=True,
    ),
    FormatProfile(
        kind=FormatKind.SOFI,
        markers=("SOFI BANK", "SOFI.COM", "SOFI MONEY"),
        sign_rule=SignRule.MINUS_IS_DEBIT,
        skip_phrases=("MOVED BALANCES", "PARTICIPATING BANKS", "SOFI REWARDS REDEMPTION"),
        drop_zero_amounts=True,
    ),
    FormatProfile(
        kind=FormatKind.CITI,
        markers=("CITIBANK", "CITICARDS", "CITI CARDS", "CITI.COM"),
        table_start_page=2,
        sign_rule=SignRule.MINUS_IS_CREDIT,
    ),
    FormatProfile(
        kind=FormatKind.CHASE,
        markers=("JPMORGAN CHASE", "CHASE.COM"),
        sign_rule=SignRule.MINUS_IS_CREDIT,
    ),
    FormatProfile(
        kind=FormatKind.AMEX,
        markers=("AMERICAN EXPRESS", "AMERICANEXPRESS.COM"),
        sign_rule=SignRule.MINUS_IS_CREDIT,
    ),
)

GENERIC = StatementFormat(kind=FormatKind.GENERIC)


def profile_for(kind: FormatKind) -> FormatProfile | None:
    for profile in PROFILES:
        if profile.kind is kind:
            return profile
    return None


def _find_column_hints(
    lines: Sequence[ReconstructedLine], profile: FormatProfile
) -> ColumnHints | None:
    debit_labels = set(profile.debit_labels)
    credit_labels = set(profile.credit_labels)
    for line in lines:
        debit_x: float | None = None
        credit_x: float | None = None
        for frag in line.fragments:
            label = frag.text.strip().upper()
            if debit_x is None and label in debit_labels:
                debit_x = frag.x
            elif credit_x is None and label in credit_labels:
                credit_x = frag.x
        if debit_x is not None and credit_x is not None:
            return ColumnHints(debit_x=debit_x, credit_x=credit_x)
    return None


def build_format(profile: FormatProfile, lines: Sequence[ReconstructedLine] = ()) -> StatementFormat:
    """Materialize ``profile`` into a :class:`StatementFormat` for a document."""

    hints = None
    if profile.sign_rule is SignRule.COLUMN:
        hints = _find_column_hints(lines, profile)
    return StatementFormat(
        kind=profile.kind,
        table_start_page=profile.table_start_page,
        sign_rule=profile.sign_rule,
        column_hints=hints,
        skip_phrases=profile.skip_phrases,
        drop_zero_amounts=profile.drop_zero_amounts,
        merge_continuations=profile.merge_continuations,
    )


def detect(lines: Sequence[ReconstructedLine]) -> StatementFormat:
    """Classify the statement layout from its first pages.

    Unknown layouts are not an error: they resolve to the generic format,
    which applies the loosest extraction rules.
    """

    if lines is None:
        raise ValueError("lines is required")

    window = [ln for ln in lines if ln.page < DETECTION_PAGES]
    haystack = "\n".join(ln.text.upper() for ln in window)

    for profile in PROFILES:
        if any(marker in haystack for marker in profile.markers):
            fmt = build_format(profile, window)
            _log.info(
                "detected statement format %s (table from page %d)",
                fmt.kind,
                fmt.table_start_page,
            )
            if fmt.sign_rule is SignRule.COLUMN and fmt.column_hints is None:
                _log.info("no debit/credit header row found for %s", fmt.kind)
            return fmt

    _log.info("no issuer marker found; using generic statement format")
    return GENERIC


__all__ = [
    "DETECTION_PAGES",
    "GENERIC",
    "PROFILES",
    "ColumnHints",
    "FormatKind",
    "FormatProfile",
    "SignRule",
    "StatementFormat",
    "build_format",
    "detect",
    "profile_for",
]
