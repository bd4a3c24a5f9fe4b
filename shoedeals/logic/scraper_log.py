"""Rolling per-day history of scraper run outcomes."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from shoedeals.ingest.models import SourceMetadata

logger = logging.getLogger(__name__)

RETENTION_DAYS = 30


def build_day_entry(day: str, generated_at: str, metadata: Mapping[str, SourceMetadata]) -> dict[str, Any]:
    scrapers = []
    for source_id, meta in metadata.items():
        scrapers.append(
            {
                "id": source_id,
                "store": meta.store,
                "ok": meta.ok,
                "count": meta.accumulated_count,
                "durationMs": meta.duration_ms,
                "via": meta.via,
                "error": meta.error,
                "staleExcluded": meta.stale_excluded,
                "ageDays": round(meta.age_days, 2) if meta.age_days is not None else None,
            }
        )
    return {"dayUTC": day, "generatedAt": generated_at, "scrapers": scrapers}


def coerce_log(previous: Any) -> dict[str, Any]:
    """Accept a previously persisted log, or start over if its shape is unusable."""
    if not isinstance(previous, Mapping) or not isinstance(previous.get("days"), list):
        if previous is not None:
            logger.warning("Ignoring scraper log with unexpected shape")
        return {"days": []}
    days = [day for day in previous["days"] if isinstance(day, Mapping) and isinstance(day.get("dayUTC"), str)]
    return {**previous, "days": days}


def update_scraper_log(
    previous: Any,
    entry: Mapping[str, Any],
    *,
    generated_at: str,
    retention: int = RETENTION_DAYS,
) -> dict[str, Any]:
    """Insert or replace ``entry`` for its day and keep the newest ``retention`` days."""
    log = coerce_log(previous)
    by_day: dict[str, Mapping[str, Any]] = {}
    for day in log["days"]:
        by_day[day["dayUTC"]] = day
    by_day[entry["dayUTC"]] = entry
    days = [by_day[key] for key in sorted(by_day)]
    return {**log, "lastUpdated": generated_at, "days": days[-retention:]}


def prune_scraper_log(log: Any, predicate: Callable[[Mapping[str, Any]], bool]) -> tuple[dict[str, Any], int]:
    """Drop every scraper record matching ``predicate``; return the log and the removed count."""
    cleaned = coerce_log(log)
    removed = 0
    days = []
    for day in cleaned["days"]:
        scrapers = day.get("scrapers") if isinstance(day.get("scrapers"), list) else []
        kept = [s for s in scrapers if not (isinstance(s, Mapping) and predicate(s))]
        removed += len(scrapers) - len(kept)
        days.append({**day, "scrapers": kept})
    return {**cleaned, "days": days}, removed
