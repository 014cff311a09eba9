"""
Selection of the authoritative account among duplicates for one person.
"""
import logging
import datetime
from contextlib import aclosing
from typing import Iterable, Optional

from client import AccountNotFound
from paginator import iterate_pages
from accounts.details import AccountDetailResolver
from accounts.models import DuplicateResolution

logger = logging.getLogger("user_management")

EVENT_TYPE_SIGN_IN = "SignIn"
EVENT_RESPONSE_PASS = "Pass"


class DuplicateResolver:
    def __init__(self, client, details: AccountDetailResolver = None):
        self.client = client
        self.details = details or AccountDetailResolver(client)

    async def resolve(self, person_id: str, candidate_ids: Iterable[str], current_email: str) -> DuplicateResolution:
        """
        Identify the main account out of multiple duplicates.

        The account holding the person's current email wins. Otherwise the last
        successful sign-in of each candidate is gathered, but no rule picks a
        winner from it yet, so the result is undecided.
        """
        candidates = sorted(set(candidate_ids))
        resolution = DuplicateResolution(person_id=person_id, candidates=candidates)

        try:
            current = await self.details.resolve_details(current_email)
        except AccountNotFound:
            logger.info(f"[DUPLICATES] No account found for current email '{current_email}' of {person_id}.")
            current = None

        if current and current.id in candidates:
            logger.info(f"[DUPLICATES] Found existing account {current.id} for {person_id} "
                        f"matching current email '{current_email}'.")
            resolution.survivor = current.id
            return resolution

        for account_id in candidates:
            last_sign_in = await self.last_successful_sign_in(account_id)
            resolution.last_sign_ins[account_id] = last_sign_in

            if last_sign_in is None:
                logger.info(f"[DUPLICATES] Found successless account {account_id} for {person_id}.")

        # TODO: choose between candidates using last_sign_ins once the product rule is agreed.
        return resolution

    async def last_successful_sign_in(self, username: str) -> Optional[datetime.datetime]:
        """The newest passing sign-in for the account, or None if it never signed in."""
        async def fetch_page(token):
            return await self.client.list_auth_events(username, token=token)

        async with aclosing(iterate_pages(fetch_page)) as events:
            async for event in events:
                if event.get("EventType") == EVENT_TYPE_SIGN_IN and event.get("EventResponse") == EVENT_RESPONSE_PASS:
                    return event.get("CreationDate")
        return None
