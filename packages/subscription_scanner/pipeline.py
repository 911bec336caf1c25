"""End-to-end statement scan: pages of fragments in, matched transactions out.

Stages run in a fixed order::

    reconstruct (per page) -> detect -> extract -> normalize -> match

Only page reconstruction may run concurrently; pages are re-assembled by
index before anything downstream sees them, so the output is identical for
every ``concurrency`` value.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .catalog import MerchantCatalog
from .extract import extract
from .formats import StatementFormat, detect
from .layout import reconstruct
from .logging_setup import get_logger
from .matcher import match
from .models import (
    MatchedTransaction,
    MerchantRecord,
    PositionedTextFragment,
    ReconstructedLine,
    TransactionCandidate,
)
from .normalizer import normalize
from .workers import map_ordered

_log = get_logger("subscription_scanner.pipeline")


@dataclass(frozen=True, slots=True)
class PageDiagnostic:
    """A page that yielded nothing usable, and why."""

    page: int
    reason: str


@dataclass(frozen=True, slots=True)
class StatementScan:
    format: StatementFormat
    matches: tuple[MatchedTransaction, ...]
    diagnostics: tuple[PageDiagnostic, ...] = ()
    page_count: int = 0
    line_count: int = 0

    @property
    def is_empty(self) -> bool:
        """True when no transaction candidate was extracted at all."""
        return not self.matches

    @property
    def subscriptions(self) -> tuple[MatchedTransaction, ...]:
        return tuple(m for m in self.matches if m.is_subscription)

    @property
    def candidates(self) -> tuple[TransactionCandidate, ...]:
        return tuple(m.candidate for m in self.matches)


def _reconstruct_page(item: tuple[int, Sequence[PositionedTextFragment]]) -> list[ReconstructedLine]:
    page, fragments = item
    if fragments is None:
        raise ValueError(f"page {page}: fragments is required")
    # the page's position in the document is authoritative
    tagged = [f if f.page == page else replace(f, page=page) for f in fragments]
    return reconstruct(tagged)


def reconstruct_pages(
    pages: Sequence[Sequence[PositionedTextFragment]], *, concurrency: int = 1
) -> tuple[list[ReconstructedLine], list[PageDiagnostic]]:
    """Reconstruct every page; report pages that produced no lines."""

    if pages is None:
        raise ValueError("pages is required")

    per_page = map_ordered(list(enumerate(pages)), _reconstruct_page, concurrency=concurrency)

    lines: list[ReconstructedLine] = []
    diagnostics: list[PageDiagnostic] = []
    for page, page_lines in enumerate(per_page):
        if not page_lines:
            diagnostics.append(PageDiagnostic(page, "no text lines reconstructed"))
            _log.warning("page %d: no text lines reconstructed; skipping", page)
            continue
        lines.extend(page_lines)
    return lines, diagnostics


def match_candidates(
    candidates: Iterable[TransactionCandidate], merchants: Iterable[MerchantRecord]
) -> list[MatchedTransaction]:
    """Normalize and match each candidate, preserving order."""

    if merchants is None:
        raise ValueError("merchants is required")
    merchant_list = merchants if isinstance(merchants, (Sequence, MerchantCatalog)) else tuple(merchants)
    out: list[MatchedTransaction] = []
    for c in candidates:
        key = normalize(c.description)
        out.append(MatchedTransaction(candidate=c, normalized=key, merchant=match(key, merchant_list)))
    return out


def scan_statement(
    pages: Sequence[Sequence[PositionedTextFragment]],
    merchants: Iterable[MerchantRecord],
    *,
    concurrency: int = 1,
    reference_year: int | None = None,
) -> StatementScan:
    """Run the whole pipeline over one statement document.

    Parameters
    ----------
    pages:
        One fragment sequence per page, in page order.
    merchants:
        Merchant snapshot, usually a :class:`~subscription_scanner.catalog.MerchantCatalog`.
    concurrency:
        Number of pages reconstructed in parallel (``1`` = sequential).
    reference_year:
        Year given to dates printed without one; defaults to the current year.

    Returns
    -------
    StatementScan
        Never raises for unreadable content. Pages without text are listed in
        ``diagnostics``; a document without transactions has ``is_empty``.
    """

    if pages is None:
        raise ValueError("pages is required")
    if merchants is None:
        raise ValueError("merchants is required")

    lines, diagnostics = reconstruct_pages(pages, concurrency=concurrency)
    fmt = detect(lines)
    candidates = extract(lines, fmt, reference_year=reference_year)
    matches = match_candidates(candidates, merchants)

    if not matches:
        _log.warning(
            "no transactions extracted from %d pages (%d lines, format %s)",
            len(pages),
            len(lines),
            fmt.kind,
        )
    else:
        _log.info(
            "extracted %d transactions, %d matched a known merchant (format %s)",
            len(matches),
            sum(1 for m in matches if m.is_subscription),
            fmt.kind,
        )

    return StatementScan(
        format=fmt,
        matches=tuple(matches),
        diagnostics=tuple(diagnostics),
        page_count=len(pages),
        line_count=len(lines),
    )


__all__ = [
    "PageDiagnostic",
    "StatementScan",
    "match_candidates",
    "reconstruct_pages",
    "scan_statement",
]
