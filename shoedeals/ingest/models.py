"""Ingestion data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import pendulum

from shoedeals.utils.dates import isoformat


@dataclass(slots=True)
class SourceDescriptor:
    id: str
    display_name: str
    snapshot_url: str
    segment: str | None = None


@dataclass(slots=True)
class FetchResult:
    descriptor: SourceDescriptor
    ok: bool
    listings: list[Mapping[str, Any]] = field(default_factory=list)
    snapshot_timestamp: pendulum.DateTime | None = None
    duration_ms: int | None = None
    via: str | None = None
    error: str | None = None

    @classmethod
    def success(
        cls,
        descriptor: SourceDescriptor,
        listings: list[Mapping[str, Any]],
        *,
        snapshot_timestamp: pendulum.DateTime | None,
        duration_ms: int | None,
        via: str,
    ) -> "FetchResult":
        return cls(
            descriptor=descriptor,
            ok=True,
            listings=listings,
            snapshot_timestamp=snapshot_timestamp,
            duration_ms=duration_ms,
            via=via,
        )

    @classmethod
    def failure(cls, descriptor: SourceDescriptor, error: str) -> "FetchResult":
        return cls(descriptor=descriptor, ok=False, error=error)


@dataclass(slots=True)
class SourceMetadata:
    """Run metadata for one source id, accumulated over its snapshot segments."""

    source_id: str
    store: str
    snapshot_timestamp: pendulum.DateTime | None = None
    duration_ms: int | None = None
    accumulated_count: int = 0
    age_days: float | None = None
    stale_excluded: bool = False
    fresh_data: bool = False
    segments: int = 0
    failed_segments: int = 0
    via: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed_segments == 0 and self.segments > 0

    @property
    def error(self) -> str | None:
        return "; ".join(self.errors) if self.errors else None

    def merge(self, result: FetchResult) -> None:
        self.segments += 1
        if not result.ok:
            self.failed_segments += 1
            self.errors.append(result.error or "unknown error")
            return
        self.accumulated_count += len(result.listings)
        if result.duration_ms is not None:
            self.duration_ms = (self.duration_ms or 0) + result.duration_ms
        if result.snapshot_timestamp is not None and (
            self.snapshot_timestamp is None or result.snapshot_timestamp > self.snapshot_timestamp
        ):
            self.snapshot_timestamp = result.snapshot_timestamp
        self.via = self.via or result.via

    def to_result(self) -> dict[str, Any]:
        return {
            "store": self.store,
            "ok": self.ok,
            "via": self.via,
            "count": self.accumulated_count,
            "durationMs": self.duration_ms,
            "lastUpdated": isoformat(self.snapshot_timestamp) if self.snapshot_timestamp else None,
            "ageDays": round(self.age_days, 2) if self.age_days is not None else None,
            "staleExcluded": self.stale_excluded,
            "freshData": self.fresh_data,
            "error": self.error,
        }

    def to_freshness(self) -> dict[str, Any]:
        return {
            "store": self.store,
            "storeLastUpdated": isoformat(self.snapshot_timestamp) if self.snapshot_timestamp else None,
            "freshData": self.fresh_data,
        }
