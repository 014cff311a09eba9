"""
Sequential pagination over rate-limited directory endpoints.

Cognito allows roughly five admin requests per second per pool, so a throttled
page is retried with the same token after a fixed cooldown until it succeeds.
"""
import os
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Tuple, Any

from client import DirectoryError, ErrorKind

logger = logging.getLogger("user_management")

PAGINATION_CONFIG = {
    "cooldownMs": int(os.environ.get("THROTTLE_COOLDOWN_MS", "200")),
}

PageFetcher = Callable[[Optional[str]], Awaitable[Tuple[List[Any], Optional[str]]]]


async def iterate_pages(fetch_page: PageFetcher, cooldown_ms: int = None) -> AsyncIterator[Any]:
    """
    Yield every item from every page, starting with a null token.

    Stops when a page returns no continuation token. Only a throttled error is
    retried; anything else propagates to the caller.
    """
    cooldown_ms = PAGINATION_CONFIG["cooldownMs"] if cooldown_ms is None else cooldown_ms
    token = None

    while True:
        try:
            items, next_token = await fetch_page(token)
        except DirectoryError as e:
            if e.kind is not ErrorKind.THROTTLED:
                raise
            logger.warning(f"[THROTTLE] Directory requests have exceeded the limit, retrying in {cooldown_ms}ms")
            await asyncio.sleep(cooldown_ms / 1000.0)
            continue

        for item in items:
            yield item

        if not next_token:
            return
        token = next_token


async def paginate(fetch_page: PageFetcher, consume: Callable[[Any], None], cooldown_ms: int = None) -> int:
    """Drive fetch_page to exhaustion, handing each item to consume. Returns the item count."""
    count = 0
    async for item in iterate_pages(fetch_page, cooldown_ms):
        consume(item)
        count += 1
    return count
