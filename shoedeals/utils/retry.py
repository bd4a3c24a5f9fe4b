"""Retry helpers for snapshot requests."""

from __future__ import annotations

import asyncio
import functools
import os
import random
from collections.abc import Awaitable, Callable

import httpx

RETRY_EXCEPTIONS = (httpx.TimeoutException, httpx.RemoteProtocolError, asyncio.TimeoutError)
DEFAULT_ATTEMPTS = int(os.environ.get("SNAPSHOT_RETRIES", 3))


def retry_async(func: Callable[..., Awaitable], *, attempts: int = DEFAULT_ATTEMPTS, base_delay: float = 1.0):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        delay = base_delay
        for attempt in range(attempts):
            try:
                return await func(*args, **kwargs)
            except RETRY_EXCEPTIONS:
                if attempt >= attempts - 1:
                    raise
                await asyncio.sleep(delay + random.random() * base_delay)
                delay *= 2
    return wrapper
