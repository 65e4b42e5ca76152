# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Display-name repair for scraped TASE instruments."""

from __future__ import annotations

import html
import re
from typing import Final

_SITE_NOISE_RE: Final[re.Pattern[str]] = re.compile(
    r"–\s*Funder|–\s*פאנדר|פאנדר|קרן נאמנות:|תעודת סל:", re.I
)
_TAG_RE: Final[re.Pattern[str]] = re.compile(r"<[^>]+>")
_SPACE_RE: Final[re.Pattern[str]] = re.compile(r"\s+")

MAX_NAME_LENGTH: Final[int] = 60


def clean_display_name(raw: str | None) -> str:
    """Strip markup, entities and site boilerplate from a scraped title."""
    if not raw:
        return ""
    text = html.unescape(_TAG_RE.sub(" ", raw))
    text = _SITE_NOISE_RE.sub(" ", text)
    text = _SPACE_RE.sub(" ", text).strip()
    return text.strip("|").strip()


def is_generic_name(name: str | None) -> bool:
    """Return True for names that describe the site, not the instrument."""
    if not name:
        return True
    return "פורטל" in name or name.startswith("-") or len(name) > MAX_NAME_LENGTH


def repair_name(*candidates: str | None) -> str | None:
    """Return the first candidate that survives cleaning and is not generic."""
    for candidate in candidates:
        name = clean_display_name(candidate)
        if not is_generic_name(name):
            return name
    return None
