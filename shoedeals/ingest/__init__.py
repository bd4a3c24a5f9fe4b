"""Ingestion helpers."""

from __future__ import annotations

import os
import pathlib

import yaml

from shoedeals.ingest.models import SourceDescriptor

SOURCES_PATH = pathlib.Path(__file__).with_name("sources.yml")
DEFAULT_SNAPSHOT_BASE_URL = "https://snapshots.shoedeals.example"


def load_sources(path: pathlib.Path = SOURCES_PATH, *, base_url: str | None = None) -> list[SourceDescriptor]:
    data = yaml.safe_load(path.read_text()) or []
    base = (base_url or os.environ.get("SNAPSHOT_BASE_URL", DEFAULT_SNAPSHOT_BASE_URL)).rstrip("/")
    sources = []
    for item in data:
        snapshot = item["snapshot"]
        if not snapshot.startswith(("http://", "https://")):
            snapshot = f"{base}/{snapshot.lstrip('/')}"
        sources.append(
            SourceDescriptor(
                id=item["id"],
                display_name=item["name"],
                snapshot_url=snapshot,
                segment=item.get("segment"),
            )
        )
    return sources
