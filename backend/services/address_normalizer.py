"""
Address text canonicalization for comparing formatted addresses.

Formatted addresses for the same spot differ between providers and lookups:
full-width vs ASCII digits, assorted dash glyphs, a leading country name and
postal code, spacing, building names tacked on the end. ``normalize`` folds
those differences away and ``similar`` compares the results by containment.
"""
from __future__ import annotations

import re
from typing import Optional

COUNTRY_TOKEN = "日本"

_FULLWIDTH_DIGITS = str.maketrans("０１２３４５６７８９", "0123456789")
_DASHES = str.maketrans({
    "‐": "-",
    "‑": "-",
    "‒": "-",
    "–": "-",
    "—": "-",
    "―": "-",
    "−": "-",
    "－": "-",
    "﹣": "-",
})
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[,，、。]")
_POSTAL_RE = re.compile(r"〒?\d{3}-?\d{4}")


def one_line(s: Optional[str]) -> str:
    """Collapse any run of whitespace (line breaks included) to one space and trim."""
    return _WHITESPACE_RE.sub(" ", s or "").strip()


def _strip_tokens(s: str) -> str:
    # Removing a token can splice its neighbours into a new match, so repeat until stable.
    while True:
        stripped = _POSTAL_RE.sub("", s.replace(COUNTRY_TOKEN, ""))
        if stripped == s:
            return s
        s = stripped


def normalize(s: Optional[str]) -> str:
    """Canonicalize address text for comparison. Idempotent."""
    if not s:
        return ""
    out = s.translate(_FULLWIDTH_DIGITS).translate(_DASHES)
    out = _WHITESPACE_RE.sub("", out)
    out = _PUNCT_RE.sub("", out)
    out = _strip_tokens(out)
    return out.lower()


def similar(a: Optional[str], b: Optional[str]) -> bool:
    """True when one normalized address contains the other."""
    if not a or not b:
        return False
    na = normalize(a)
    nb = normalize(b)
    if not na or not nb:
        return False
    return na in nb or nb in na
