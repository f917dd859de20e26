"""Normalization functions for tournament sheet ingestion.

All functions accept loosely-typed cell values (str, int, float or None)
coming from either the CSV export or the JSON API.
"""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime
from typing import Any

from dateutil import parser as date_parser

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TRAILING_NOTE_RE = re.compile(r"\s+-\s+.*$")
_LEADING_ORDINAL_RE = re.compile(r"^(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)

# Two distinct fill-in values; any component missing from the cell shows up
# as a disagreement between the two parses.
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)

_PLACE_RE = re.compile(r"^\d+(st|nd|rd|th)\s+place$")
_SEED_RE = re.compile(r"^[ab][1-4]$")


# ---------------------------------------------------------------------------
# Rule 1: text / trim
# ---------------------------------------------------------------------------

def text(value: Any) -> str:
    """Return the cell as a stripped string; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()


def trim(value: Any) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    v = text(value)
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: slug_name
# ---------------------------------------------------------------------------

def slug_name(value: Any) -> str | None:
    """Lowercase alnum with '-' separators, accents folded to ASCII."""
    v = trim(value)
    if v is None:
        return None
    v = unicodedata.normalize("NFKD", v)
    v = "".join(c for c in v if not unicodedata.combining(c))
    v = v.lower()
    v = re.sub(r"[^a-z0-9]+", "-", v)
    v = v.strip("-")
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 3: normalize_date
# ---------------------------------------------------------------------------

def normalize_date(value: Any) -> str:
    """Return an ISO 'YYYY-MM-DD' date, or '' when the value cannot be parsed.

    - '2025-06-01'                 → passed through unchanged
    - 'Sat 7 June 2025 - Day 2'    → trailing ' - ...' annotation dropped
    - '1st June 2025'              → leading ordinal suffix dropped
    - anything else                → generic date parsing

    Partial values ('Saturday', '10:00', 'June') are rejected: year, month
    and day must all come from the cell, never from the clock.
    """
    raw = text(value)
    if not raw:
        return ""
    if _ISO_DATE_RE.match(raw):
        try:
            return date.fromisoformat(raw).isoformat()
        except ValueError:
            return ""
    cleaned = _TRAILING_NOTE_RE.sub("", raw)
    cleaned = _LEADING_ORDINAL_RE.sub(r"\1", cleaned)
    try:
        first = date_parser.parse(cleaned, default=_DEFAULT_A)
        second = date_parser.parse(cleaned, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return ""
    if first.date() != second.date():
        return ""
    return first.date().isoformat()


# ---------------------------------------------------------------------------
# Rule 4: normalize_score
# ---------------------------------------------------------------------------

def normalize_score(value: Any) -> int | float | str:
    """Return a numeric score, or '' for blank / non-numeric input.

    Integral values come back as int so '2' and '2.0' hash identically.
    """
    if isinstance(value, bool):
        return ""
    raw = text(value)
    if not raw:
        return ""
    try:
        num = float(raw)
    except ValueError:
        return ""
    if not math.isfinite(num):
        return ""
    return int(num) if num.is_integer() else num


# ---------------------------------------------------------------------------
# Rule 5: is_placeholder_team
# ---------------------------------------------------------------------------

def is_placeholder_team(name: Any) -> bool:
    """True for bracket-progression names such as 'Winner QF1' or '3rd Place'."""
    n = text(name).lower()
    if not n:
        return False
    if _PLACE_RE.match(n):
        return True
    if n.startswith("winner ") or n.startswith("loser "):
        return True
    if _SEED_RE.match(n):
        return True
    return "runner up" in n
