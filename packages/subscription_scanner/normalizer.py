"""Merchant description normalization.

``normalize`` turns a raw statement description such as
``"POS NETFLIX.COM *8329 CA"`` into a stable grouping/matching key. The
cleaning pass is applied repeatedly until its output stops changing, so the
result is always a fixed point and ``normalize(normalize(s)) == normalize(s)``.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

# High-volume merchants collapsed straight to one token. Checked in order, so
# "AMAZON PRIME" must precede "AMAZON".
SHORTCUTS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("NETFLIX", re.compile(r"NETFLIX")),
    ("SPOTIFY", re.compile(r"SPOTIFY")),
    ("AMAZON PRIME", re.compile(r"AMAZON PRIME|AMZN PRIME|PRIME VIDEO")),
    ("AMAZON", re.compile(r"AMZN|AMAZON")),
    ("VISIBLE", re.compile(r"VISIBLE")),
    ("YOUTUBE TV", re.compile(r"YOUTUBE TV")),
    ("SIRIUSXM", re.compile(r"SIRIUSXM|\bSXM\b")),
    ("HULU", re.compile(r"HULU")),
    ("DISNEY PLUS", re.compile(r"DISNEY")),
    ("MCDONALDS", re.compile(r"MCDONALD'?S")),
)

NOISE_WORDS: tuple[str, ...] = (
    "POS",
    "ACH",
    "DEBIT",
    "CREDIT",
    "RECURRING",
    "PAYMENT",
    "WITHDRAWAL",
    "TRANS",
    "PURCHASE",
    "PENDING",
    "CHECKCARD",
    "POSTING",
    "AUTH HOLD",
    "TEMP AUTH",
)

PROCESSOR_PREFIXES: tuple[str, ...] = ("SQ", "TST", "PAYPAL", "PYPL", "SP", "SQUARE", "TOAST")

US_STATES = frozenset(
    "AL AK AZ AR CA CO CT DE FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS MO MT NE NV "
    "NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY DC".split()
)

# Fewer characters than this after cleaning means the cleaning ate the name.
MIN_KEY_LENGTH = 3

_NOISE_RE = re.compile(
    r"\b(?:" + "|".join(w.replace(" ", r"\s+") for w in NOISE_WORDS) + r")\b"
)
# Only a prefix followed by "*" is a processor marker; "TOAST CAFE" stays.
_PROCESSOR_RE = re.compile(
    r"^\s*(?:(?:" + "|".join(PROCESSOR_PREFIXES) + r")\s*)+\*\s*"
)
_FULL_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
_SHORT_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}\b")
_MONTH_YEAR_RE = re.compile(r"\b(?:JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC)\s*\d{2,4}\b")
_PHONE_RE = re.compile(r"(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
# Running-balance columns end up in descriptions on checking statements.
_MONEY_RE = re.compile(r"(?<![\w.,])-?\$?(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}(?![\w.])")
# Store numbers and ZIP codes; the text after one is branch location noise.
_STORE_NUMBER_RE = re.compile(r"\b\d{4,6}\b")
_CITY_WORD_RE = re.compile(r"[A-Z]+")
_REFERENCE_RE = re.compile(r"[*#]\s*\d+")
_DIGIT_RUN_RE = re.compile(r"\d{4,}")
_PUNCT_RE = re.compile(r"[^\w\s&+']|_")
_WS_RE = re.compile(r"\s+")


def _squash(s: str) -> str:
    return _WS_RE.sub(" ", s.upper()).strip()


def shortcut_for(text: str) -> str | None:
    """Return the fixed token for a high-volume merchant, if ``text`` names one."""

    for token, pattern in SHORTCUTS:
        if pattern.search(text):
            return token
    return None


def _clean_once(raw: str) -> str:
    s = _squash(raw)

    token = shortcut_for(s)
    if token is not None:
        return token

    s = _NOISE_RE.sub(" ", s)
    s = _PROCESSOR_RE.sub("", s)
    s = _FULL_DATE_RE.sub(" ", s)
    s = _SHORT_DATE_RE.sub(" ", s)
    s = _MONTH_YEAR_RE.sub(" ", s)
    s = _MONEY_RE.sub(" ", s)
    s = _PHONE_RE.sub(" ", s)
    s = _truncate_at_store_number(s)
    s = _REFERENCE_RE.sub(" ", s)
    s = _DIGIT_RUN_RE.sub(" ", s)
    s = _PUNCT_RE.sub(" ", s)
    s = _WS_RE.sub(" ", s).strip()

    return " ".join(_strip_location(s.split(" ")))


def _truncate_at_store_number(s: str) -> str:
    """Cut ``s`` at the first 4-6 digit number that follows merchant text."""

    for m in _STORE_NUMBER_RE.finditer(s):
        if any(ch.isalpha() for ch in s[: m.start()]):
            return s[: m.start()]
    return s


def _strip_location(words: list[str]) -> list[str]:
    """Drop a trailing "CITY STATE" (up to three city words) or a bare state.

    At least one word is always kept, so ``"UBER CA"`` becomes ``"UBER"``
    while a lone ``"TX"`` is left alone.
    """

    if len(words) < 2 or words[-1] not in US_STATES:
        return words
    for n in (3, 2, 1):
        if len(words) > n + 1 and all(_CITY_WORD_RE.fullmatch(w) for w in words[-n - 1 : -1]):
            return words[: -n - 1]
    return words[:-1]


def normalize(raw: str) -> str:
    """Return the canonical comparison key for a merchant description.

    Examples
    --------
    >>> normalize("NETFLIX.COM *8329")
    'NETFLIX'
    >>> normalize("SQ *BLUE BOTTLE COFFEE 12/03 #4471 OAKLAND CA")
    'BLUE BOTTLE COFFEE'
    >>> normalize("STARBUCKS NEW YORK NY")
    'STARBUCKS'

    When cleaning leaves fewer than three characters, the uppercased input
    (whitespace collapsed) is returned instead so the key is never empty.
    """

    if raw is None:
        raise ValueError("raw is required")

    s = raw
    while True:
        cleaned = _clean_once(s)
        if cleaned == s:
            break
        s = cleaned

    if len(s) < MIN_KEY_LENGTH:
        return _squash(raw)
    return s


__all__ = [
    "MIN_KEY_LENGTH",
    "NOISE_WORDS",
    "PROCESSOR_PREFIXES",
    "SHORTCUTS",
    "US_STATES",
    "normalize",
    "shortcut_for",
]
