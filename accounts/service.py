"""
User account administration built on the directory cache and resolvers.
"""
import os
import logging
from typing import Iterable, List, Optional, Set

from client import (
    ATTRIBUTE_EMAIL,
    ATTRIBUTE_EMAIL_VERIFIED,
    ATTRIBUTE_MFA_TYPE,
    ATTRIBUTE_SUB,
    AccountNotFound,
    attribute_map,
)
from accounts.cache import DirectoryCache
from accounts.details import AccountDetailResolver
from accounts.duplicates import DuplicateResolver
from accounts.mfa import MfaType
from accounts.models import AccountDetail, AuthEvent, DuplicateResolution

logger = logging.getLogger("user_management")

MAX_LOGIN_EVENTS = int(os.environ.get("MAX_LOGIN_EVENTS", "10"))


class EmailInUse(ValueError):
    pass


class DuplicateAccounts(ValueError):
    pass


class UserAccountService:
    def __init__(self, client, cache: DirectoryCache = None):
        self.client = client
        self.cache = cache or DirectoryCache(client)
        self.details = AccountDetailResolver(client)
        self.duplicates = DuplicateResolver(client, self.details)

    async def get_account_ids(self, person_id: str) -> Set[str]:
        return await self.cache.get_accounts_for_person(person_id)

    async def get_account_details(self, username: str) -> AccountDetail:
        """Account details, or a NO_ACCOUNT placeholder when the user does not exist."""
        try:
            return await self.details.resolve_details(username)
        except AccountNotFound:
            logger.info(f"User '{username}' not found.")
            return AccountDetail.no_account()

    async def get_login_details(self, username: str) -> List[AuthEvent]:
        """The most recent auth events for the account, newest first."""
        logger.info(f"Retrieving login events for user with username '{username}'.")
        try:
            events, _ = await self.client.list_auth_events(username, max_results=MAX_LOGIN_EVENTS)
        except AccountNotFound:
            logger.info(f"User '{username}' not found.")
            return []
        return [AuthEvent.from_cognito(e) for e in events]

    async def delete_duplicate_accounts(self, person_id: str, account_ids: Iterable[str],
                                        current_email: str) -> DuplicateResolution:
        """
        Delete duplicate accounts for a person, leaving a single account.

        Deletion only happens when the main account could be determined.
        """
        account_ids = set(account_ids)
        logger.info(f"[DUPLICATES] {len(account_ids)} accounts found for {person_id}, deleting duplicates. "
                    f"Found: [{','.join(sorted(account_ids))}]")
        resolution = await self.duplicates.resolve(person_id, account_ids, current_email)

        if not resolution.decided:
            logger.info(f"[DUPLICATES] Could not determine the main account for {person_id}, "
                        f"skipping de-duplication.")
            return resolution

        for account_id in resolution.candidates:
            if account_id != resolution.survivor:
                await self.delete_account(account_id)
                resolution.deleted.append(account_id)
        return resolution

    async def delete_account(self, username: str):
        logger.info(f"Deleting the account for user '{username}'.")
        await self.client.delete_account(username)
        logger.info(f"Deleted account for user '{username}'.")

    async def enroll_to_group(self, username: str, group_name: str):
        logger.info(f"Enrolling user '{username}' to the '{group_name}' group.")
        await self.client.add_account_to_group(username, group_name)
        logger.info(f"User '{username}' has been enrolled to the {group_name} group.")

    async def withdraw_from_group(self, username: str, group_name: str):
        logger.info(f"Withdrawing user '{username}' from the '{group_name}' group.")
        await self.client.remove_account_from_group(username, group_name)
        logger.info(f"User '{username}' has been withdrawn from the {group_name} group.")

    async def reset_mfa(self, username: str):
        logger.info(f"Resetting MFA for user '{username}'.")
        await self.client.set_mfa_preference(username, sms_enabled=False, software_token_enabled=False)
        await self.client.update_account_attributes(username, {ATTRIBUTE_MFA_TYPE: MfaType.NO_MFA.value})
        logger.info(f"MFA reset for user '{username}'.")

    async def update_contact_details(self, user_id: str, new_email: str, forenames: str, surname: str):
        """
        Update the names and email of an account.

        Raises EmailInUse if the email already belongs to a different account.
        """
        logger.info(f"Updating email to '{new_email}' for user '{user_id}'.")
        names = {"family_name": surname, "given_name": forenames}
        attributes = {name: value for name, value in names.items() if value is not None}

        try:
            existing = await self.details.find_account(new_email)
        except AccountNotFound:
            existing = None

        if existing is not None:
            existing_id = existing.get("Username")
            existing_sub = attribute_map(existing.get("Attributes")).get(ATTRIBUTE_SUB)
            if user_id not in (existing_id, existing_sub):
                raise EmailInUse(f"The email '{new_email}' is already in use by user '{existing_id}'.")

            logger.info("The email for this user has not changed, skipping email update.")
            if attributes:
                await self.client.update_account_attributes(user_id, attributes)
            return

        attributes[ATTRIBUTE_EMAIL] = new_email
        attributes[ATTRIBUTE_EMAIL_VERIFIED] = "true"
        await self.client.update_account_attributes(user_id, attributes)
        logger.info(f"Successfully updated email to '{new_email}' for user '{user_id}'.")

    async def update_email_for_person(self, person_id: str, new_email: str) -> Optional[str]:
        """
        Update the email of the single account belonging to a person.

        Returns the updated account ID, or None when the person has no account.
        Raises DuplicateAccounts when more than one account is indexed for them.
        """
        account_ids = await self.get_account_ids(person_id)

        if not account_ids:
            logger.info(f"No account exists for {person_id}, skipping username update.")
            return None
        if len(account_ids) > 1:
            raise DuplicateAccounts(f"{len(account_ids)} accounts found for {person_id}, unable to update email.")

        account_id = next(iter(account_ids))
        await self.update_contact_details(account_id, new_email, None, None)
        return account_id
