"""City-name canonicalization used to match names across inconsistent sources.

Directory rows, user input and geocoder payloads spell the same place in
different ways ("Ft. Wayne Mkt", "Fort Wayne", "FORT WAYNE"). Two names refer to
the same place iff their normalized forms are equal.
"""

from __future__ import annotations

import re
from typing import Any

# A trailing market token needs a word before it so a bare "Market" survives.
_MARKET_SUFFIX = re.compile(r"(?<=\w)[\s\W_]*\b(?:market|mkt)\b\W*$")

# Abbreviations expand at any word boundary; the expanded words never match again.
_ABBREVIATIONS = (
    (re.compile(r"\bft\b\.?\s*"), "fort "),
    (re.compile(r"\bst\b\.?\s*"), "saint "),
    (re.compile(r"\bmt\b\.?\s*"), "mount "),
)
_ABBREVIATION_WORDS = frozenset({"ft", "fort", "st", "saint", "mt", "mount"})
# Punctuated forms such as "f.t." only collapse to a bare abbreviation after stripping.
_BARE_ABBREVIATIONS = {"ft": "fort", "st": "saint", "mt": "mount"}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_city_name(raw: Any) -> str:
    """Return the canonical matching form of a city name.

    Never raises; ``None`` and empty input yield an empty string. The result is
    idempotent: normalizing an already normalized name returns it unchanged.
    """

    if raw is None:
        return ""
    value = str(raw).lower().strip()
    if not value:
        return ""
    value = _MARKET_SUFFIX.sub("", value)
    for pattern, replacement in _ABBREVIATIONS:
        value = pattern.sub(replacement, value)
    value = _NON_ALNUM.sub("", value)
    return _BARE_ABBREVIATIONS.get(value, value)


def names_match(left: Any, right: Any) -> bool:
    return normalize_city_name(left) == normalize_city_name(right)


def city_state_key(city: Any, state: Any) -> str:
    """Composite lookup key, e.g. ``fortwayne|IN``."""
    state_code = "" if state is None else str(state).strip().upper()
    return f"{normalize_city_name(city)}|{state_code}"


def name_search_pattern(raw: Any) -> str:
    """Loose SQL ``ILIKE`` pattern that every spelling of ``raw`` matches.

    Abbreviation words are dropped since directories spell them either way, so
    "Ft. Wayne" becomes ``%wayne%``. Callers still compare normalized names.
    """

    value = _MARKET_SUFFIX.sub("", "" if raw is None else str(raw).lower().strip())
    words = [word for word in _NON_ALNUM.split(value) if word and word not in _ABBREVIATION_WORDS]
    return "%" + "%".join(words) + "%" if words else "%"
