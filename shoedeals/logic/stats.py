"""Aggregate statistics over the published catalog."""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from shoedeals.ingest.models import SourceMetadata
from shoedeals.logic.schema import CanonicalDeal

HEALTHY = "healthy"
WARNING = "warning"
CRITICAL = "critical"
_SEVERITY = {HEALTHY: 0, WARNING: 1, CRITICAL: 2}

UNKNOWN_BRAND_CRITICAL = float(os.environ.get("UNKNOWN_BRAND_CRITICAL", 0.50))
UNKNOWN_BRAND_WARNING = float(os.environ.get("UNKNOWN_BRAND_WARNING", 0.20))
MISSING_IMAGE_WARNING = float(os.environ.get("MISSING_IMAGE_WARNING", 0.30))
MISSING_URL_CRITICAL = float(os.environ.get("MISSING_URL_CRITICAL", 0.10))
MISSING_MODEL_WARNING = float(os.environ.get("MISSING_MODEL_WARNING", 0.30))
LOW_COUNT_WARNING = int(os.environ.get("LOW_COUNT_WARNING", 5))

TOP_BRANDS = 25
PRICE_BUCKET_EDGES = (50, 75, 100, 125, 150)
PRICE_BUCKET_LABELS = ("<50", "50-74", "75-99", "100-124", "125-149", "150+")


@dataclass(slots=True)
class StoreHealth:
    store: str
    count: int = 0
    avg_discount: float | None = None
    avg_savings: float | None = None
    pct_unknown_brand: float = 0.0
    pct_missing_image: float = 0.0
    pct_missing_url: float = 0.0
    pct_missing_model: float = 0.0
    status: str = HEALTHY
    issues: list[str] = field(default_factory=list)

    def escalate(self, level: str, issue: str) -> None:
        """Raise the status to ``level``; a status is never lowered."""
        self.issues.append(issue)
        if _SEVERITY[level] > _SEVERITY[self.status]:
            self.status = level


def _mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return round(float(np.mean(values)), 1)


def _pct(part: int, whole: int) -> float:
    return part / whole if whole else 0.0


def store_health(store: str, deals: Sequence[CanonicalDeal]) -> StoreHealth:
    health = StoreHealth(store=store, count=len(deals))
    if not deals:
        health.escalate(CRITICAL, "no deals")
        return health

    count = len(deals)
    health.avg_discount = _mean([d.effective_discount for d in deals if d.effective_discount is not None])
    health.avg_savings = _mean([d.dollar_savings for d in deals])
    health.pct_unknown_brand = _pct(sum(1 for d in deals if d.brand.strip().lower() in ("", "unknown")), count)
    health.pct_missing_image = _pct(sum(1 for d in deals if not (d.image_url or "").strip()), count)
    health.pct_missing_url = _pct(sum(1 for d in deals if not d.listing_url.strip()), count)
    health.pct_missing_model = _pct(sum(1 for d in deals if not d.model.strip()), count)

    if health.pct_unknown_brand > UNKNOWN_BRAND_CRITICAL:
        health.escalate(CRITICAL, "unknown brand above 50%")
    elif health.pct_unknown_brand > UNKNOWN_BRAND_WARNING:
        health.escalate(WARNING, "unknown brand above 20%")
    if health.pct_missing_image > MISSING_IMAGE_WARNING:
        health.escalate(WARNING, "missing image above 30%")
    if health.pct_missing_url > MISSING_URL_CRITICAL:
        health.escalate(CRITICAL, "missing URL above 10%")
    if health.pct_missing_model > MISSING_MODEL_WARNING:
        health.escalate(WARNING, "missing model above 30%")
    if count < LOW_COUNT_WARNING:
        health.escalate(WARNING, f"fewer than {LOW_COUNT_WARNING} deals")
    return health


def brand_rollups(deals: Sequence[CanonicalDeal], limit: int = TOP_BRANDS) -> list[dict[str, Any]]:
    grouped: dict[str, list[CanonicalDeal]] = {}
    for deal in deals:
        brand = deal.brand.strip()
        if not brand or brand.lower() == "unknown":
            continue
        grouped.setdefault(brand, []).append(deal)
    rows = []
    for brand, items in grouped.items():
        low_prices = [d.effective_sale_price for d in items if d.effective_sale_price is not None]
        high_prices = [d.max_sale_price for d in items if d.max_sale_price is not None]
        rows.append(
            {
                "brand": brand,
                "count": len(items),
                "avgDiscount": _mean([d.effective_discount for d in items if d.effective_discount is not None]),
                "minPrice": min(low_prices) if low_prices else None,
                "maxPrice": max(high_prices) if high_prices else None,
            }
        )
    rows.sort(key=lambda row: row["count"], reverse=True)
    return rows[:limit]


def _running_best(
    deals: Sequence[CanonicalDeal], score: Callable[[CanonicalDeal], float | None]
) -> CanonicalDeal | None:
    best: CanonicalDeal | None = None
    best_score: float | None = None
    for deal in deals:
        value = score(deal)
        if value is None:
            continue
        if best_score is None or value > best_score:
            best, best_score = deal, value
    return best


def _lowest_price(deal: CanonicalDeal) -> float | None:
    price = deal.effective_sale_price
    return -price if price is not None else None


def _best_value(deal: CanonicalDeal) -> float:
    return (deal.effective_discount or 0) + 0.5 * deal.dollar_savings


def top_picks(deals: Sequence[CanonicalDeal]) -> dict[str, dict[str, Any] | None]:
    picks = {
        "bestPercent": _running_best(deals, lambda d: d.effective_discount),
        "bestDollar": _running_best(deals, lambda d: d.dollar_savings),
        "lowestPrice": _running_best(deals, _lowest_price),
        "bestValue": _running_best(deals, _best_value),
    }
    return {name: _pick_view(deal) if deal else None for name, deal in picks.items()}


def _pick_view(deal: CanonicalDeal) -> dict[str, Any]:
    return {
        **deal.to_dict(),
        "effectiveDiscount": deal.effective_discount,
        "dollarSavings": deal.dollar_savings,
    }


def price_buckets(deals: Sequence[CanonicalDeal]) -> list[dict[str, Any]]:
    prices = [d.effective_sale_price for d in deals if d.effective_sale_price is not None]
    counts = Counter(np.digitize(prices, PRICE_BUCKET_EDGES).tolist()) if prices else Counter()
    return [{"label": label, "count": counts.get(idx, 0)} for idx, label in enumerate(PRICE_BUCKET_LABELS)]


def compute_stats(
    deals: Sequence[CanonicalDeal],
    metadata: Mapping[str, SourceMetadata],
    *,
    generated_at: str | None = None,
) -> dict[str, Any]:
    by_store: dict[str, list[CanonicalDeal]] = {}
    for meta in metadata.values():
        by_store.setdefault(meta.store, [])
    for deal in deals:
        by_store.setdefault(deal.store, []).append(deal)

    meta_by_store = {meta.store: meta for meta in metadata.values()}
    stores_table = []
    summary = Counter({HEALTHY: 0, WARNING: 0, CRITICAL: 0})
    for store, items in by_store.items():
        health = store_health(store, items)
        summary[health.status] += 1
        meta = meta_by_store.get(store)
        stores_table.append(
            {
                "store": store,
                "count": health.count,
                "avgDiscount": health.avg_discount,
                "avgSavings": health.avg_savings,
                "pctUnknownBrand": round(health.pct_unknown_brand * 100, 1),
                "pctMissingImage": round(health.pct_missing_image * 100, 1),
                "pctMissingUrl": round(health.pct_missing_url * 100, 1),
                "pctMissingModel": round(health.pct_missing_model * 100, 1),
                "status": health.status,
                "issues": health.issues,
                "ok": meta.ok if meta else None,
                "staleExcluded": meta.stale_excluded if meta else False,
                "freshData": meta.fresh_data if meta else None,
                "ageDays": round(meta.age_days, 2) if meta and meta.age_days is not None else None,
            }
        )
    stores_table.sort(key=lambda row: row["count"], reverse=True)

    return {
        "generatedAt": generated_at,
        "totalDeals": len(deals),
        "storesTable": stores_table,
        "health": {
            "summary": dict(summary),
            "critical": [row["store"] for row in stores_table if row["status"] == CRITICAL],
            "warning": [row["store"] for row in stores_table if row["status"] == WARNING],
        },
        "brands": brand_rollups(deals),
        "topDeals": top_picks(deals),
        "priceBuckets": price_buckets(deals),
    }
