"""Validity gates applied to normalized deals."""

from __future__ import annotations

import os
import re
from collections import Counter
from typing import Iterable

from shoedeals.logic.schema import CanonicalDeal

MIN_SALE_PRICE = float(os.environ.get("MIN_SALE_PRICE", 10))
MAX_SALE_PRICE = float(os.environ.get("MAX_SALE_PRICE", 1000))
MIN_DISCOUNT = int(os.environ.get("MIN_DISCOUNT", 5))
MAX_DISCOUNT = int(os.environ.get("MAX_DISCOUNT", 95))

EXCLUDED_TERMS = (
    "sock", "socks",
    "apparel", "shirt", "shorts", "tights", "pants",
    "hat", "cap", "beanie",
    "insole", "insoles",
    "laces", "lace",
    "accessories", "accessory",
    "hydration", "bottle", "flask",
    "watch", "watches",
    "gear", "equipment",
    "bag", "bags", "pack", "backpack",
    "vest", "vests",
    "jacket", "jackets",
    "bra", "bras",
    "underwear", "brief",
    "glove", "gloves", "mitt",
    "compression sleeve",
    "arm warmer", "leg warmer",
    "headband", "wristband",
    "sunglasses", "eyewear",
    "sleeve", "sleeves",
    "throw",
    "out of stock",
    "kids", "kid",
    "youth",
    "junior", "juniors",
)
EXCLUDED_RE = re.compile(r"\b(?:" + "|".join(re.escape(term) for term in EXCLUDED_TERMS) + r")\b")

MISSING_URL = "missing_url"
MISSING_NAME = "missing_name"
PRICE_OUT_OF_RANGE = "price_out_of_range"
DISCOUNT_OUT_OF_RANGE = "discount_out_of_range"
EXCLUDED_TITLE = "excluded_title"


def rejection_reason(deal: CanonicalDeal) -> str | None:
    """Name of the first gate the deal fails, or None when it passes them all."""
    if not deal.listing_url.strip():
        return MISSING_URL
    if not deal.listing_name.strip():
        return MISSING_NAME
    sale = deal.effective_sale_price
    if sale is None or not MIN_SALE_PRICE <= sale <= MAX_SALE_PRICE:
        return PRICE_OUT_OF_RANGE
    discount = deal.effective_discount
    if discount is None or not MIN_DISCOUNT <= discount <= MAX_DISCOUNT:
        return DISCOUNT_OUT_OF_RANGE
    if EXCLUDED_RE.search(deal.listing_name.lower()):
        return EXCLUDED_TITLE
    return None


def is_valid_deal(deal: CanonicalDeal) -> bool:
    return rejection_reason(deal) is None


def filter_valid(deals: Iterable[CanonicalDeal]) -> tuple[list[CanonicalDeal], Counter[str]]:
    kept: list[CanonicalDeal] = []
    dropped: Counter[str] = Counter()
    for deal in deals:
        reason = rejection_reason(deal)
        if reason:
            dropped[reason] += 1
            continue
        kept.append(deal)
    return kept, dropped
