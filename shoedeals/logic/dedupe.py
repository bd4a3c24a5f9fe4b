"""Duplicate removal across and within sources."""

from __future__ import annotations

import os
from typing import Sequence

from shoedeals.logic.schema import CanonicalDeal

DEDUPE_STRICT = os.environ.get("DEDUPE_STRICT", "false").lower() == "true"


def dedupe_key(deal: CanonicalDeal, *, strict: bool = False) -> str | None:
    store = (deal.store or "Unknown").strip()
    url = (deal.listing_url or "").strip()
    if url:
        return f"{store}|{url}"
    if strict:
        return f"{store}|{deal.listing_name.strip().lower()}|{(deal.image_url or '').strip()}"
    # no URL: never collapsed
    return None


def dedupe_deals(deals: Sequence[CanonicalDeal], *, strict: bool | None = None) -> list[CanonicalDeal]:
    """Keep the first deal per ``store|url`` key, preserving input order."""
    strict = DEDUPE_STRICT if strict is None else strict
    seen: set[str] = set()
    unique: list[CanonicalDeal] = []
    for deal in deals:
        key = dedupe_key(deal, strict=strict)
        if key is None:
            unique.append(deal)
            continue
        if key in seen:
            continue
        seen.add(key)
        unique.append(deal)
    return unique
