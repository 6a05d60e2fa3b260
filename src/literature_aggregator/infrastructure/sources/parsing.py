"""Helpers for turning loosely typed provider payloads into RawRecord fields."""

from __future__ import annotations

import html
import re
from typing import Any

_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_YEAR = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")


def clean_text(value: Any) -> str:
    """Strip markup (JATS/HTML tags, entities) and collapse whitespace."""
    if not value:
        return ""
    if isinstance(value, list):
        value = " ".join(str(v) for v in value if v)
    text = html.unescape(_TAG.sub(" ", str(value)))
    return _WHITESPACE.sub(" ", text).strip()


def coerce_year(value: Any) -> int | None:
    """Extract a four-digit year from an int, '2021', '2021-05-03' or 'Spring 2021'."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1800 <= value <= 2100 else None
    match = _YEAR.search(str(value))
    return int(match.group(1)) if match else None


def coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
