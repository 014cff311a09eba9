"""
TTL-gated index of person ID to directory account IDs.
"""
import os
import time
import asyncio
import logging
from typing import Callable, Dict, Set

from client import ATTRIBUTE_PERSON_ID, ATTRIBUTE_SUB, attribute_map
from paginator import paginate

logger = logging.getLogger("user_management")

CACHE_CONFIG = {
    "ttlSeconds": int(os.environ.get("ACCOUNT_CACHE_TTL_MINUTES", "15")) * 60,
}


class DirectoryCache:
    """
    Maps person IDs to the set of account IDs tagged with them.

    The whole directory is scanned at most once per TTL window; a person that
    is missing after a scan stays missing until the window elapses. Scans merge
    into the existing map, so previously indexed accounts are kept.
    """

    def __init__(self, client, ttl_seconds: float = None, clock: Callable[[], float] = time.time):
        self.client = client
        self.ttl_seconds = CACHE_CONFIG["ttlSeconds"] if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self.last_rebuild = None
        self._accounts: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    def is_stale(self) -> bool:
        if self.last_rebuild is None:
            return True
        return self.clock() - self.last_rebuild > self.ttl_seconds

    async def get_accounts_for_person(self, person_id: str) -> Set[str]:
        async with self._lock:
            if self.is_stale():
                await self._rebuild()
                self.last_rebuild = self.clock()
            else:
                logger.debug(f"[CACHE] Skipping rebuild, last built at {self.last_rebuild}")

            return set(self._accounts.get(person_id, ()))

    async def _rebuild(self):
        logger.info("[CACHE] Caching all user account ids from the directory.")
        start_ts = time.time()
        scanned: Dict[str, Set[str]] = {}

        def index_account(user):
            attributes = attribute_map(user.get("Attributes"))
            person_id = attributes.get(ATTRIBUTE_PERSON_ID)
            account_id = attributes.get(ATTRIBUTE_SUB)
            if person_id and account_id:
                scanned.setdefault(person_id, set()).add(account_id)

        async def fetch_page(token):
            return await self.client.list_accounts(token=token)

        count = await paginate(fetch_page, index_account)

        for person_id, account_ids in scanned.items():
            self._accounts.setdefault(person_id, set()).update(account_ids)

        duration_s = time.time() - start_ts
        logger.info(f"[CACHE] Indexed {count} accounts for {len(scanned)} people in {duration_s:.2f}s")

    def snapshot(self) -> Dict[str, Set[str]]:
        return {person_id: set(ids) for person_id, ids in self._accounts.items()}
