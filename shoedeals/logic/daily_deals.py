"""Day-seeded selection of the featured daily deals.

The same UTC date and the same catalog always yield the same picks in the
same order, so the pipeline can run several times a day without the featured
set changing under readers.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

from shoedeals.logic.normalize import round_half_up
from shoedeals.logic.schema import CanonicalDeal

DAILY_DEAL_COUNT = 12
PER_GROUP = 4
TOP_SUBSET = 20
SHUFFLE_SALT = "-shuffle"
_PLACEHOLDER_MARKERS = ("no-image", "placeholder", "noimage", "image-coming-soon")


def date_seed(value: str) -> int:
    return sum(ord(ch) for ch in value)


class SeededRandom:
    """Sine-based generator; each draw advances the seed by one."""

    def __init__(self, seed: int) -> None:
        self.seed = seed

    def random(self) -> float:
        x = math.sin(self.seed) * 10000
        self.seed += 1
        return x - math.floor(x)

    def index(self, length: int) -> int:
        return min(int(math.floor(self.random() * length)), length - 1)


def has_usable_image(deal: CanonicalDeal) -> bool:
    image = (deal.image_url or "").strip()
    if not image.lower().startswith(("http://", "https://")):
        return False
    lowered = image.lower()
    return not any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


def sample(deals: Sequence[CanonicalDeal], count: int, rng: SeededRandom) -> list[CanonicalDeal]:
    """Pick up to ``count`` deals without replacement, leaving ``deals`` untouched."""
    remaining = list(deals)
    picked = []
    for _ in range(min(count, len(remaining))):
        picked.append(remaining.pop(rng.index(len(remaining))))
    return picked


def shuffle(deals: Sequence[CanonicalDeal], rng: SeededRandom) -> list[CanonicalDeal]:
    items = list(deals)
    for i in range(len(items) - 1, 0, -1):
        j = rng.index(i + 1)
        items[i], items[j] = items[j], items[i]
    return items


def _display(deal: CanonicalDeal) -> dict[str, Any]:
    discount = deal.effective_discount
    return {
        "listingName": deal.listing_name,
        "brand": deal.brand,
        "model": deal.model,
        "salePrice": deal.effective_sale_price,
        "originalPrice": deal.effective_original_price,
        "discountPercent": round_half_up(discount) if discount is not None else None,
        "isRange": deal.is_range,
        "store": deal.store,
        "listingURL": deal.listing_url,
        "imageURL": deal.image_url,
        "gender": deal.gender,
        "shoeType": deal.shoe_type,
    }


def _identity(deal: CanonicalDeal) -> tuple[str, str]:
    return deal.store, deal.listing_url.strip()


def _top(pool: Sequence[CanonicalDeal], key, exclude: set[tuple[str, str]]) -> list[CanonicalDeal]:
    ranked = sorted(pool, key=key, reverse=True)[:TOP_SUBSET]
    return [deal for deal in ranked if _identity(deal) not in exclude]


def select_daily_deals(day: str, deals: Sequence[CanonicalDeal]) -> dict[str, Any]:
    """Featured deals for ``day`` (``YYYY-MM-DD``, UTC)."""
    with_images = [d for d in deals if has_usable_image(d)]
    pool = [d for d in with_images if d.has_markdown]
    if len(pool) < DAILY_DEAL_COUNT:
        pool = with_images

    rng = SeededRandom(date_seed(day))
    if len(pool) < DAILY_DEAL_COUNT:
        picks = sample(pool, len(pool), rng)
    else:
        chosen: set[tuple[str, str]] = set()
        picks = []
        groups = (
            lambda: _top(pool, lambda d: d.effective_discount or 0, chosen),
            lambda: _top(pool, lambda d: d.dollar_savings, chosen),
            lambda: [d for d in pool if _identity(d) not in chosen],
        )
        for group in groups:
            for deal in sample(group(), PER_GROUP, rng):
                chosen.add(_identity(deal))
                picks.append(deal)

    ordered = shuffle(picks, SeededRandom(date_seed(day + SHUFFLE_SALT)))
    return {
        "daySeedUTC": day,
        "totalDeals": len(deals),
        "poolSize": len(pool),
        "deals": [_display(deal) for deal in ordered],
    }
