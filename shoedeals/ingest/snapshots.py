"""Concurrent snapshot fan-out across all retail sources."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Iterable, Mapping, Sequence

import httpx
import pendulum

from shoedeals.ingest.models import FetchResult, SourceDescriptor, SourceMetadata
from shoedeals.utils.dates import age_in_days, now_utc, parse_timestamp
from shoedeals.utils.retry import retry_async
from shoedeals.utils.urls import cache_bust_params

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.environ.get("SNAPSHOT_TIMEOUT", 30.0))
STALE_AFTER_DAYS = float(os.environ.get("STALE_AFTER_DAYS", 7))
FRESH_WITHIN_HOURS = float(os.environ.get("FRESH_WITHIN_HOURS", 26))

TIMESTAMP_KEYS = ("lastUpdated", "timestamp", "generatedAt", "scrapedAt")
DURATION_KEYS = ("scrapeDurationMs", "durationMs", "elapsedMs")
USER_AGENT = "ShoeDealsMerger/1.0"


def extract_listings(payload: Any) -> list[Mapping[str, Any]]:
    """Pull the listing array out of any of the snapshot shapes sources publish."""
    if isinstance(payload, list):
        listings = payload
    elif isinstance(payload, Mapping):
        listings = None
        for key in ("deals", "items"):
            if isinstance(payload.get(key), list):
                listings = payload[key]
                break
        else:
            for key in ("output", "data"):
                nested = payload.get(key)
                if isinstance(nested, Mapping) and isinstance(nested.get("deals"), list):
                    listings = nested["deals"]
                    break
        if listings is None:
            return []
    else:
        raise TypeError(f"Unexpected snapshot payload type: {type(payload).__name__}")
    return [item for item in listings if isinstance(item, Mapping)]


def _snapshot_timestamp(payload: Any) -> pendulum.DateTime | None:
    if not isinstance(payload, Mapping):
        return None
    for key in TIMESTAMP_KEYS:
        parsed = parse_timestamp(payload.get(key))
        if parsed is not None:
            return parsed
    return None


def _duration_hint(payload: Any) -> int | None:
    if not isinstance(payload, Mapping):
        return None
    for key in DURATION_KEYS:
        value = payload.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
            return int(value)
    return None


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"Request failed with status code {exc.response.status_code}"
    message = str(exc).strip()
    return f"{exc.__class__.__name__}: {message}" if message else exc.__class__.__name__


class SnapshotClient:
    def __init__(
        self,
        *,
        session: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache_bust: bool = True,
    ) -> None:
        self._session = session or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json,text/plain,*/*"},
        )
        self._cache_bust = cache_bust

    async def close(self) -> None:
        await self._session.aclose()

    async def fetch(self, descriptor: SourceDescriptor) -> FetchResult:
        try:
            payload = await self._get_json(descriptor.snapshot_url)
            listings = extract_listings(payload)
            via = payload.get("via") if isinstance(payload, Mapping) else None
            if not listings and isinstance(payload, Mapping) and isinstance(payload.get("blobUrl"), str):
                logger.info("Following blobUrl for %s", descriptor.display_name)
                payload = await self._get_json(payload["blobUrl"])
                listings = extract_listings(payload)
                via = "endpoint"
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            message = _error_message(exc)
            logger.warning("Snapshot fetch failed for %s (%s): %s", descriptor.id, descriptor.snapshot_url, message)
            return FetchResult.failure(descriptor, message)
        logger.info("Fetched %s listings for %s", len(listings), descriptor.display_name)
        return FetchResult.success(
            descriptor,
            listings,
            snapshot_timestamp=_snapshot_timestamp(payload),
            duration_ms=_duration_hint(payload),
            via=via if isinstance(via, str) and via else "blob",
        )

    async def fetch_all(self, descriptors: Sequence[SourceDescriptor]) -> list[FetchResult]:
        """Fetch every snapshot at once; one source failing never affects another."""
        settled = await asyncio.gather(*(self.fetch(d) for d in descriptors), return_exceptions=True)
        results: list[FetchResult] = []
        for descriptor, outcome in zip(descriptors, settled):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Snapshot fetch crashed for %s: %r", descriptor.id, outcome)
                outcome = FetchResult.failure(descriptor, _error_message(outcome))
            results.append(outcome)
        return results

    async def _get_json(self, url: str) -> Any:
        params = cache_bust_params() if self._cache_bust else None
        response = await retry_async(self._session.get)(url, params=params)
        response.raise_for_status()
        return response.json()


def apply_staleness(meta: SourceMetadata, now: pendulum.DateTime) -> None:
    if meta.snapshot_timestamp is None:
        meta.age_days = None
        meta.stale_excluded = False
        meta.fresh_data = False
        return
    meta.age_days = age_in_days(meta.snapshot_timestamp, now)
    meta.stale_excluded = meta.age_days > STALE_AFTER_DAYS
    meta.fresh_data = meta.age_days * 24 <= FRESH_WITHIN_HOURS


def merge_results(
    results: Iterable[FetchResult], *, now: pendulum.DateTime | None = None
) -> tuple[dict[str, list[Mapping[str, Any]]], dict[str, SourceMetadata]]:
    """Group fetched listings by source id and apply the staleness gate.

    Returns the raw listing pool per source id (stale sources removed) and the
    run metadata for every source id, including failed and stale ones.
    """
    now = now or now_utc()
    pools: dict[str, list[Mapping[str, Any]]] = {}
    metadata: dict[str, SourceMetadata] = {}
    for result in results:
        source_id = result.descriptor.id
        meta = metadata.get(source_id)
        if meta is None:
            meta = metadata[source_id] = SourceMetadata(source_id=source_id, store=result.descriptor.display_name)
        meta.merge(result)
        if result.ok:
            pools.setdefault(source_id, []).extend(result.listings)

    for source_id, meta in metadata.items():
        apply_staleness(meta, now)
        if meta.stale_excluded:
            excluded = pools.pop(source_id, [])
            logger.info(
                "Excluding %s stale listings from %s (age %.1f days)",
                len(excluded),
                meta.store,
                meta.age_days,
            )
    return pools, metadata
