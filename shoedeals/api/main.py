"""FastAPI application for triggering merges and reading published artifacts."""

from __future__ import annotations

import hmac
import logging
import os
import traceback
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shoedeals.jobs.merge import DAILY_DEALS_KEY, STATS_KEY, run_merge
from shoedeals.utils.blob import BlobStore, BlobStoreError, create_blob_store

logger = logging.getLogger(__name__)

load_dotenv()

app = FastAPI(title="Shoe Deals Merge API")


class MergeResponse(BaseModel):
    success: bool
    totalDeals: int
    dealsByStore: dict[str, int]
    scraperResults: dict[str, dict[str, Any]]
    sourceFreshness: list[dict[str, Any]]
    droppedCounts: dict[str, int]
    duration: str
    timestamp: str


def get_blob_store() -> BlobStore:
    return create_blob_store()


def require_cron_secret(x_cron_secret: str | None = Header(default=None)) -> None:
    secret = os.environ.get("CRON_SECRET")
    if secret and not hmac.compare_digest(x_cron_secret or "", secret):
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.get("/merge-deals", response_model=MergeResponse, dependencies=[Depends(require_cron_secret)])
async def merge_deals(store: BlobStore = Depends(get_blob_store)) -> Any:
    try:
        summary = await run_merge(store=store)
    except Exception as exc:
        logger.exception("Merge failed")
        payload: dict[str, Any] = {"success": False, "error": str(exc) or exc.__class__.__name__}
        if os.environ.get("APP_ENV", "development") != "production":
            payload["stack"] = traceback.format_exc()
        return JSONResponse(payload, status_code=500)
    return MergeResponse(
        success=True,
        totalDeals=summary.total_deals,
        dealsByStore=summary.deals_by_store,
        scraperResults=summary.scraper_results,
        sourceFreshness=summary.source_freshness,
        droppedCounts=summary.dropped,
        duration=f"{summary.duration_ms}ms",
        timestamp=summary.timestamp,
    )


def _read_artifact(store: BlobStore, key: str) -> JSONResponse:
    try:
        payload = store.get_json(key)
    except BlobStoreError as exc:
        logger.warning("Artifact %s unavailable: %s", key, exc)
        raise HTTPException(status_code=503, detail=f"{key} not available") from exc
    return JSONResponse(payload, headers={"Cache-Control": "no-store, max-age=0"})


@app.get("/daily-deals")
async def daily_deals(store: BlobStore = Depends(get_blob_store)) -> JSONResponse:
    return _read_artifact(store, DAILY_DEALS_KEY)


@app.get("/deals-stats")
async def deals_stats(store: BlobStore = Depends(get_blob_store)) -> JSONResponse:
    return _read_artifact(store, STATS_KEY)
