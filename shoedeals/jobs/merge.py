"""Merge job: fetch every source snapshot and publish the catalog artifacts."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import pendulum
from dotenv import load_dotenv

from shoedeals.ingest import load_sources
from shoedeals.ingest.models import SourceDescriptor, SourceMetadata
from shoedeals.ingest.snapshots import SnapshotClient, merge_results
from shoedeals.logic.daily_deals import select_daily_deals
from shoedeals.logic.dedupe import dedupe_deals
from shoedeals.logic.normalize import normalize_listing
from shoedeals.logic.schema import CanonicalDeal, assert_deal_schema
from shoedeals.logic.scraper_log import build_day_entry, update_scraper_log
from shoedeals.logic.stats import compute_stats
from shoedeals.logic.validate import filter_valid
from shoedeals.utils.blob import BlobStore, BlobStoreError, create_blob_store, dumps_json
from shoedeals.utils.dates import day_utc, isoformat, now_utc

logger = logging.getLogger(__name__)

DEALS_KEY = "deals.json"
UNALTERED_KEY = "unaltered-deals.json"
STATS_KEY = "deals-stats.json"
DAILY_DEALS_KEY = "daily-deals.json"
SCRAPER_LOG_KEY = "scraper-data.json"
# the catalog goes last so it only changes once every derived artifact is in place
PUBLISH_ORDER = (UNALTERED_KEY, STATS_KEY, DAILY_DEALS_KEY, SCRAPER_LOG_KEY, DEALS_KEY)


@dataclass(slots=True)
class MergeSummary:
    total_deals: int
    deals_by_store: dict[str, int]
    scraper_results: dict[str, dict[str, Any]]
    source_freshness: list[dict[str, Any]]
    dropped: dict[str, int]
    timestamp: str
    duration_ms: int
    locations: dict[str, str] = field(default_factory=dict)


def build_catalog(
    pools: Mapping[str, Sequence[Mapping[str, Any]]],
    metadata: Mapping[str, SourceMetadata],
) -> tuple[list[CanonicalDeal], Counter[str]]:
    """Normalize, validate and dedupe the raw pool into the published deal list."""
    dropped: Counter[str] = Counter()
    normalized: list[CanonicalDeal] = []
    for source_id, listings in pools.items():
        store = metadata[source_id].store
        for raw in listings:
            deal = normalize_listing(raw, store)
            if deal is None:
                dropped["unnormalizable"] += 1
                continue
            normalized.append(deal)

    valid, rejected = filter_valid(normalized)
    dropped.update(rejected)
    unique = dedupe_deals(valid)
    if len(unique) < len(valid):
        dropped["duplicate"] += len(valid) - len(unique)
    unique.sort(key=lambda d: d.effective_discount or 0, reverse=True)
    return unique, dropped


def _deals_by_store(deals: Sequence[CanonicalDeal]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for deal in deals:
        counts[deal.store] = counts.get(deal.store, 0) + 1
    return counts


def _read_previous_log(store: BlobStore) -> Any:
    try:
        return store.get_json(SCRAPER_LOG_KEY)
    except BlobStoreError as exc:
        logger.warning("Could not read previous scraper log; starting fresh: %s", exc)
        return None


async def run_merge(
    *,
    sources: Sequence[SourceDescriptor] | None = None,
    client: SnapshotClient | None = None,
    store: BlobStore | None = None,
    now: pendulum.DateTime | None = None,
) -> MergeSummary:
    load_dotenv()
    started = time.monotonic()
    sources = list(sources) if sources is not None else load_sources()
    store = store or create_blob_store()
    owns_client = client is None
    client = client or SnapshotClient()
    logger.info("Starting merge of %s snapshots", len(sources))

    try:
        results = await client.fetch_all(sources)
    finally:
        if owns_client:
            await client.close()

    now = now or now_utc()
    generated_at = isoformat(now)
    today = day_utc(now)
    pools, metadata = merge_results(results, now=now)

    deals, dropped = build_catalog(pools, metadata)
    for meta in metadata.values():
        if meta.stale_excluded:
            dropped["stale_excluded"] += meta.accumulated_count

    serialized = [deal.to_dict() for deal in deals]
    for payload in serialized:
        errors = assert_deal_schema(payload)
        if errors:
            raise ValueError(f"Deal failed schema check ({payload['listingURL']}): {errors}")

    scraper_results = {source_id: meta.to_result() for source_id, meta in metadata.items()}
    source_freshness = [meta.to_freshness() for meta in metadata.values()]
    deals_by_store = _deals_by_store(deals)
    raw_pool = [raw for listings in pools.values() for raw in listings]

    artifacts = {
        DEALS_KEY: {
            "lastUpdated": generated_at,
            "totalDeals": len(deals),
            "dealsByStore": deals_by_store,
            "scraperResults": scraper_results,
            "sourceFreshness": source_freshness,
            "deals": serialized,
        },
        UNALTERED_KEY: {
            "lastUpdated": generated_at,
            "totalDeals": len(raw_pool),
            "scraperResults": scraper_results,
            "deals": raw_pool,
        },
        STATS_KEY: compute_stats(deals, metadata, generated_at=generated_at),
        DAILY_DEALS_KEY: {"generatedAt": generated_at, **select_daily_deals(today, deals)},
        SCRAPER_LOG_KEY: update_scraper_log(
            _read_previous_log(store),
            build_day_entry(today, generated_at, metadata),
            generated_at=generated_at,
        ),
    }

    bodies = {key: dumps_json(artifacts[key]) for key in PUBLISH_ORDER}
    locations: dict[str, str] = {}
    for key in PUBLISH_ORDER:
        try:
            locations[key] = store.put_text(key, bodies[key])
        except BlobStoreError:
            logger.error("Publish stopped at %s; already written: %s", key, list(locations) or "none")
            raise
        logger.info("Published %s", locations[key])

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info("Merge complete in %sms; totalDeals=%s dropped=%s", duration_ms, len(deals), dict(dropped))
    return MergeSummary(
        total_deals=len(deals),
        deals_by_store=deals_by_store,
        scraper_results=scraper_results,
        source_freshness=source_freshness,
        dropped=dict(dropped),
        timestamp=generated_at,
        duration_ms=duration_ms,
        locations=locations,
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    summary = asyncio.run(run_merge())
    print(f"Published {summary.total_deals} deals in {summary.duration_ms}ms")
