"""Canonical deal record and its published schema."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

GENDERS = ("mens", "womens", "unisex", "unknown")
SHOE_TYPES = ("road", "trail", "track", "unknown")

REQUIRED_KEYS = (
    "listingName",
    "brand",
    "model",
    "salePrice",
    "originalPrice",
    "discountPercent",
    "store",
    "listingURL",
    "imageURL",
    "gender",
    "shoeType",
)
RANGE_KEYS = (
    "salePriceLow",
    "salePriceHigh",
    "originalPriceLow",
    "originalPriceHigh",
    "discountPercentUpTo",
)


@dataclass(frozen=True, slots=True)
class CanonicalDeal:
    listing_name: str
    brand: str
    model: str
    store: str
    listing_url: str
    image_url: str | None
    gender: str
    shoe_type: str
    sale_price: float | None = None
    original_price: float | None = None
    discount_percent: int | None = None
    sale_price_low: float | None = None
    sale_price_high: float | None = None
    original_price_low: float | None = None
    original_price_high: float | None = None
    discount_percent_up_to: int | None = None

    @property
    def is_range(self) -> bool:
        return self.sale_price_low is not None

    @property
    def effective_discount(self) -> int | None:
        if self.discount_percent is not None:
            return self.discount_percent
        return self.discount_percent_up_to

    @property
    def effective_sale_price(self) -> float | None:
        """Sale price, or the low end of the sale range."""
        return self.sale_price_low if self.is_range else self.sale_price

    @property
    def effective_original_price(self) -> float | None:
        """Original price, or the high end of the original range."""
        return self.original_price_high if self.is_range else self.original_price

    @property
    def max_sale_price(self) -> float | None:
        return self.sale_price_high if self.is_range else self.sale_price

    @property
    def dollar_savings(self) -> float:
        sale = self.effective_sale_price
        original = self.effective_original_price
        if sale is None or original is None or sale >= original:
            return 0.0
        return round(original - sale, 2)

    @property
    def has_markdown(self) -> bool:
        sale = self.effective_sale_price
        original = self.effective_original_price
        return sale is not None and original is not None and sale < original

    def to_dict(self) -> dict[str, Any]:
        return {
            "listingName": self.listing_name,
            "brand": self.brand,
            "model": self.model,
            "salePrice": self.sale_price,
            "originalPrice": self.original_price,
            "discountPercent": self.discount_percent,
            "salePriceLow": self.sale_price_low,
            "salePriceHigh": self.sale_price_high,
            "originalPriceLow": self.original_price_low,
            "originalPriceHigh": self.original_price_high,
            "discountPercentUpTo": self.discount_percent_up_to,
            "store": self.store,
            "listingURL": self.listing_url,
            "imageURL": self.image_url,
            "gender": self.gender,
            "shoeType": self.shoe_type,
        }


def _is_num_or_none(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def assert_deal_schema(deal: Mapping[str, Any]) -> list[str]:
    """Return the schema violations of a serialized deal (empty when valid)."""
    if not isinstance(deal, Mapping):
        return ["deal is not an object"]
    errors = [f"missing key: {key}" for key in REQUIRED_KEYS if key not in deal]

    for key in ("listingName", "brand", "model", "store"):
        if not isinstance(deal.get(key), str):
            errors.append(f"{key} must be string")
    for key in ("salePrice", "originalPrice", "discountPercent", *RANGE_KEYS):
        if not _is_num_or_none(deal.get(key)):
            errors.append(f"{key} must be number|null")
    for key in ("listingURL", "imageURL"):
        value = deal.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"{key} must be string|null")
    if deal.get("gender") not in GENDERS:
        errors.append("gender must be mens|womens|unisex|unknown")
    if deal.get("shoeType") not in SHOE_TYPES:
        errors.append("shoeType must be road|trail|track|unknown")

    has_single = deal.get("discountPercent") is not None
    has_range = deal.get("discountPercentUpTo") is not None
    if has_single and has_range:
        errors.append("discountPercent and discountPercentUpTo are mutually exclusive")
    if deal.get("salePriceLow") is not None and deal.get("salePrice") is not None:
        errors.append("single and range pricing are mutually exclusive")
    return errors
