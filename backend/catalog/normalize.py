"""Name normalization shared by the merge engine, sync and highlights filtering."""
from __future__ import annotations

import re
from typing import Any, Optional

_DISALLOWED_RE = re.compile(r"[^a-z0-9 -]")
_WHITESPACE_RE = re.compile(r"\s+")
_DASHES_RE = re.compile(r"-{2,}")

SOCCER = "soccer"

# Matched against the normalized sport name when a sport is first minted.
POPULAR_SPORTS: frozenset[str] = frozenset({
    "soccer",
    "basketball",
    "american football",
    "baseball",
    "ice hockey",
    "tennis",
    "cricket",
    "rugby",
    "golf",
    "motorsport",
})


def normalize_name(name: Optional[str]) -> str:
    """
    Comparison key for a display name.

    Lowercase, drop everything outside ``[a-z0-9 -]``, collapse whitespace, trim.

    Examples:
        >>> normalize_name("  Manchester   United F.C. ")
        'manchester united fc'
        >>> normalize_name("Paris Saint-Germain")
        'paris saint-germain'
    """
    if not name:
        return ""
    lowered = _DISALLOWED_RE.sub("", name.lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def slugify(name: Optional[str]) -> str:
    """URL slug derived from the normalized name."""
    slug = normalize_name(name).replace(" ", "-")
    slug = _DASHES_RE.sub("-", slug).strip("-")
    return slug or "item"


def is_popular_sport(name: Optional[str]) -> bool:
    return normalize_name(name) in POPULAR_SPORTS


def clean_external_id(value: Any) -> Optional[str]:
    """Provider ids arrive as strings or numbers; blanks mean no id."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def clean_name(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())
