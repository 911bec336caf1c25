"""Rebuild visual text lines from absolutely positioned fragments.

Statement PDFs carry no logical structure, only text runs with coordinates.
Runs that share a rounded vertical coordinate on the same page form one line;
within a line they are ordered by horizontal position.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace
from itertools import groupby

from .logging_setup import get_logger
from .models import PositionedTextFragment, ReconstructedLine

_log = get_logger("subscription_scanner.layout")


def row_key(y: float) -> int:
    """Round ``y`` half-up to the nearest integer coordinate unit.

    Python's ``round`` rounds half to even, which would split rows whose
    fragments straddle ``.5`` differently depending on parity.
    """

    return math.floor(y + 0.5)


def reconstruct(fragments: Iterable[PositionedTextFragment]) -> list[ReconstructedLine]:
    """Group ``fragments`` into lines ordered top-to-bottom, page by page.

    - Empty or whitespace-only fragments are dropped before grouping.
    - Lines are ordered by ascending page, then descending row coordinate.
    - Fragments inside a line are ordered by ascending ``x`` (stable on ties).
    """

    if fragments is None:
        raise ValueError("fragments is required")

    kept = [
        f if f.text == f.text.strip() else replace(f, text=f.text.strip())
        for f in fragments
        if f.text and f.text.strip()
    ]
    if not kept:
        return []

    def _key(f: PositionedTextFragment) -> tuple[int, int]:
        return (f.page, -row_key(f.y))

    lines: list[ReconstructedLine] = []
    for (page, neg_y), group in groupby(sorted(kept, key=_key), key=_key):
        row = sorted(group, key=lambda f: f.x)
        lines.append(ReconstructedLine(page=page, y=-neg_y, fragments=tuple(row)))

    _log.debug("reconstructed %d lines from %d fragments", len(lines), len(kept))
    return lines


__all__ = ["reconstruct", "row_key"]
