"""pdfplumber-backed source of positioned text fragments.

pdfplumber reports word boxes with ``top``/``bottom`` measured from the top of
the page. Fragments use PDF user space instead (``y`` grows upward), so each
word's baseline is converted with ``y = page.height - bottom``.
"""

from __future__ import annotations

import os
import re
from datetime import date
from pathlib import Path

import pdfplumber

from .logging_setup import get_logger
from .models import PositionedTextFragment

_log = get_logger("subscription_scanner.pdf_source")

_YEAR_RE = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")
_EARLIEST_YEAR = 1970


def page_fragments(page, page_index: int) -> list[PositionedTextFragment]:
    """Convert one pdfplumber page into fragments tagged with ``page_index``."""

    words = page.extract_words(
        x_tolerance=3,
        y_tolerance=3,
        keep_blank_chars=False,
        use_text_flow=False,
    )
    height = float(page.height)
    out: list[PositionedTextFragment] = []
    for w in words:
        text = w["text"].strip()
        if not text:
            continue
        out.append(
            PositionedTextFragment(
                text=text,
                x=round(float(w["x0"]), 2),
                y=round(height - float(w["bottom"]), 2),
                page=page_index,
            )
        )
    return out


def load_pdf_pages(path: str | os.PathLike[str]) -> list[list[PositionedTextFragment]]:
    """Return one fragment list per page of the PDF at ``path``.

    Decoding errors from pdfplumber propagate unchanged; a missing file raises
    ``FileNotFoundError`` before pdfplumber is involved.
    """

    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"PDF not found: {os.fspath(p)}")

    pages: list[list[PositionedTextFragment]] = []
    with pdfplumber.open(p) as pdf:
        for idx, page in enumerate(pdf.pages):
            pages.append(page_fragments(page, idx))
    _log.debug("loaded %d pages from %s", len(pages), os.fspath(p))
    return pages


def year_from_filename(name: str | os.PathLike[str]) -> int | None:
    """Return the earliest plausible year embedded in a statement file name.

    >>> year_from_filename("usaa_2023-12_to_2024-01.pdf")
    2023
    >>> year_from_filename("statement.pdf") is None
    True
    """

    stem = Path(name).name
    latest = date.today().year + 1
    years = [int(y) for y in _YEAR_RE.findall(stem) if _EARLIEST_YEAR <= int(y) <= latest]
    return min(years) if years else None


__all__ = ["load_pdf_pages", "page_fragments", "year_from_filename"]
