"""Celery configuration for the scheduled merge."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab
from dotenv import load_dotenv

# must run before shoedeals.jobs.merge is imported; its modules read thresholds at import time
load_dotenv()

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery("shoedeals", broker=broker_url, backend=backend_url, include=["shoedeals.jobs.merge"])
celery_app.conf.timezone = "UTC"
celery_app.conf.beat_schedule = {
    "merge-deals": {
        "task": "shoedeals.jobs.merge.run_merge",
        "schedule": crontab(hour=int(os.environ.get("MERGE_HOUR", "9")), minute=int(os.environ.get("MERGE_MINUTE", "0"))),
    },
}


@celery_app.task(name="shoedeals.jobs.merge.run_merge")
def run_merge_task():  # pragma: no cover - executed by worker
    import asyncio

    from shoedeals.jobs.merge import run_merge

    summary = asyncio.run(run_merge())
    return {"totalDeals": summary.total_deals, "timestamp": summary.timestamp}
