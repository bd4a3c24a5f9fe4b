"""Normalization of per-source raw listings into canonical deals.

Every source publishes its own field names for the same concept. Each
canonical field is resolved through a priority-ordered alias table; the first
alias holding a usable value wins. Pricing is then reconciled into exactly one
of two shapes:

* single: ``salePrice``/``originalPrice`` with ``discountPercent``
* range: ``salePriceLow/High``/``originalPriceLow/High`` with
  ``discountPercentUpTo``

A listing that ends up without a title, without both price signals, or whose
sale price is not below its original price yields ``None``.
"""

from __future__ import annotations

import html
import math
import re
from typing import Any, Mapping

from shoedeals.logic.schema import CanonicalDeal
from shoedeals.utils.urls import absolutize_url

MAX_DISCOUNT = 95

TITLE_ALIASES = ("listingName", "title", "name", "productName", "product_name")
BRAND_ALIASES = ("brand", "vendor", "brandName")
MODEL_ALIASES = ("model", "modelName")
STORE_ALIASES = ("store", "retailer", "storeName")
URL_ALIASES = ("listingURL", "listingUrl", "url", "productUrl", "productURL", "link", "href")
IMAGE_ALIASES = ("imageURL", "imageUrl", "image", "img", "thumbnail", "imageSrc")
GENDER_ALIASES = ("gender", "sex")
SHOE_TYPE_ALIASES = ("shoeType", "type", "terrain", "category")

SALE_ALIASES = ("salePrice", "price", "currentPrice", "sale_price", "finalPrice", "priceSale")
ORIGINAL_ALIASES = (
    "originalPrice",
    "msrp",
    "compareAtPrice",
    "compare_at_price",
    "listPrice",
    "regularPrice",
    "wasPrice",
    "original_price",
    "fullPrice",
)
SALE_LOW_ALIASES = ("salePriceLow", "priceLow", "salePriceMin", "minPrice")
SALE_HIGH_ALIASES = ("salePriceHigh", "priceHigh", "salePriceMax", "maxPrice")
ORIGINAL_LOW_ALIASES = ("originalPriceLow", "msrpLow", "originalPriceMin")
ORIGINAL_HIGH_ALIASES = ("originalPriceHigh", "msrpHigh", "originalPriceMax")

GENDER_VALUES = {
    "mens": "mens",
    "men": "mens",
    "men's": "mens",
    "male": "mens",
    "m": "mens",
    "womens": "womens",
    "women": "womens",
    "women's": "womens",
    "female": "womens",
    "ladies": "womens",
    "w": "womens",
    "unisex": "unisex",
    "unknown": "unknown",
}
SHOE_TYPE_VALUES = {
    "road": "road",
    "road running": "road",
    "trail": "trail",
    "trail running": "trail",
    "track": "track",
    "spikes": "track",
    "track & field": "track",
    "unknown": "unknown",
}

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_TAG_RE = re.compile(r"<[^>]*>")
_PROMO_PREFIX_RE = re.compile(
    r"^\s*(?:extra\s+\d+(?:\.\d+)?\s*%\s*off|sale|clearance)\b[\s:|!\-–—]*",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")
_CSS_BLOCK_RE = re.compile(r"\{[^{}]*\}")
_LEADING_ID_RE = re.compile(r"^#[A-Za-z_][\w-]*")
_WOMENS_RE = re.compile(r"\b(women'?s?|female|ladies)\b", re.IGNORECASE)
_MENS_RE = re.compile(r"\b(men'?s?|male)\b", re.IGNORECASE)
_UNISEX_RE = re.compile(r"\bunisex\b", re.IGNORECASE)
_TRAIL_RE = re.compile(r"\btrail\b", re.IGNORECASE)
_TRACK_RE = re.compile(r"\b(track|spikes?|xc)\b", re.IGNORECASE)
_ROAD_RE = re.compile(r"\broad\b", re.IGNORECASE)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_price(value: Any) -> float | None:
    """Coerce a loosely typed price (``89.95``, ``"$1,299.00"``) to a positive float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def clamp_discount(sale: float, original: float) -> int | None:
    if sale >= original or original <= 0:
        return None
    percent = round_half_up(100 * (original - sale) / original)
    return max(0, min(MAX_DISCOUNT, percent))


def clean_title(value: Any) -> str:
    """Strip markup and promo prefixes; return "" for CSS or markup debris."""
    if not isinstance(value, str):
        return ""
    # unescape first so entity-encoded tags are stripped too
    text = _TAG_RE.sub(" ", html.unescape(value))
    text = _WHITESPACE_RE.sub(" ", text).strip()
    previous = None
    while previous != text:
        previous = text
        text = _PROMO_PREFIX_RE.sub("", text).strip()
    if _looks_like_debris(text):
        return ""
    return text


def _looks_like_debris(text: str) -> bool:
    if len(text) < 3:
        return True
    lowered = text.lower()
    if lowered.startswith(("@media", ":root")):
        return True
    if _CSS_BLOCK_RE.search(text):
        return True
    return bool(_LEADING_ID_RE.match(text))


def _first(raw: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _first_price(raw: Mapping[str, Any], aliases: tuple[str, ...]) -> float | None:
    for key in aliases:
        price = parse_price(raw.get(key))
        if price is not None:
            return price
    return None


def _text(raw: Mapping[str, Any], aliases: tuple[str, ...]) -> str:
    value = _first(raw, aliases)
    return value.strip() if isinstance(value, str) else ""


def _resolve_side(
    single: float | None, low: float | None, high: float | None
) -> tuple[float | None, tuple[float, float] | None]:
    """Reconcile one pricing side into a single value or a (low, high) range."""
    if (low is None) != (high is None):
        low = high = None
    if low is not None and high is not None:
        if low > high:
            low, high = high, low
        if low < high:
            return single, (low, high)
        if single is None:
            single = low
    return single, None


def _resolve_gender(raw: Mapping[str, Any], title: str, url: str) -> str:
    value = _first(raw, GENDER_ALIASES)
    if isinstance(value, str):
        resolved = GENDER_VALUES.get(value.strip().lower())
        if resolved and resolved != "unknown":
            return resolved
    combined = f"{title} {url}"
    if _WOMENS_RE.search(combined):
        return "womens"
    if _MENS_RE.search(combined):
        return "mens"
    if _UNISEX_RE.search(combined):
        return "unisex"
    return "unknown"


def _resolve_shoe_type(raw: Mapping[str, Any], title: str, url: str) -> str:
    value = _first(raw, SHOE_TYPE_ALIASES)
    if isinstance(value, str):
        resolved = SHOE_TYPE_VALUES.get(value.strip().lower())
        if resolved and resolved != "unknown":
            return resolved
    combined = f"{title} {url}"
    if _TRAIL_RE.search(combined):
        return "trail"
    if _TRACK_RE.search(combined):
        return "track"
    if _ROAD_RE.search(combined):
        return "road"
    return "unknown"


def normalize_listing(raw: Mapping[str, Any], source_name: str = "") -> CanonicalDeal | None:
    if not isinstance(raw, Mapping):
        return None
    title = clean_title(_first(raw, TITLE_ALIASES))
    if not title:
        return None

    sale, sale_range = _resolve_side(
        _first_price(raw, SALE_ALIASES),
        _first_price(raw, SALE_LOW_ALIASES),
        _first_price(raw, SALE_HIGH_ALIASES),
    )
    original, original_range = _resolve_side(
        _first_price(raw, ORIGINAL_ALIASES),
        _first_price(raw, ORIGINAL_LOW_ALIASES),
        _first_price(raw, ORIGINAL_HIGH_ALIASES),
    )
    if sale_range is None and sale is None:
        return None
    if original_range is None and original is None:
        return None

    store = source_name.strip() or _text(raw, STORE_ALIASES) or "Unknown"
    listing_url = absolutize_url(_text(raw, URL_ALIASES), store)
    image_url = absolutize_url(_text(raw, IMAGE_ALIASES), store) or None
    common = {
        "listing_name": title,
        "brand": _text(raw, BRAND_ALIASES) or "Unknown",
        "model": _text(raw, MODEL_ALIASES),
        "store": store,
        "listing_url": listing_url,
        "image_url": image_url,
        "gender": _resolve_gender(raw, title, listing_url),
        "shoe_type": _resolve_shoe_type(raw, title, listing_url),
    }

    if sale_range is not None or original_range is not None:
        sale_low, sale_high = sale_range or (sale, sale)
        original_low, original_high = original_range or (original, original)
        discount = clamp_discount(sale_low, original_high)
        if discount is None:
            return None
        return CanonicalDeal(
            **common,
            sale_price_low=sale_low,
            sale_price_high=sale_high,
            original_price_low=original_low,
            original_price_high=original_high,
            discount_percent_up_to=discount,
        )

    discount = clamp_discount(sale, original)
    if discount is None:
        return None
    return CanonicalDeal(
        **common,
        sale_price=sale,
        original_price=original,
        discount_percent=discount,
    )
