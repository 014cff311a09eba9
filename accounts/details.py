"""
Account detail resolution, preferring the bulk listing over AdminGetUser.
"""
import logging
from typing import Any, Dict

from botocore.exceptions import BotoCoreError

from client import (
    ATTRIBUTE_EMAIL,
    ATTRIBUTE_MFA_TYPE,
    ATTRIBUTE_PERSON_ID,
    ATTRIBUTE_SUB,
    AccountNotFound,
    DirectoryError,
    attribute_map,
)
from accounts.mfa import MfaType
from accounts.models import AccountDetail

logger = logging.getLogger("user_management")


class AccountDetailResolver:
    def __init__(self, client):
        self.client = client

    async def find_account(self, username: str) -> Dict[str, Any]:
        """
        Get the listed account for a username, which should be an email or sub.

        Raises AccountNotFound if the directory has no match.
        """
        attribute = ATTRIBUTE_EMAIL if "@" in username else ATTRIBUTE_SUB
        users, _ = await self.client.list_accounts(filter_attribute=attribute, filter_value=username)

        if not users:
            raise AccountNotFound(
                f"User not found in user pool '{self.client.user_pool_id}' with the username '{username}'.",
                "list_users",
            )
        return users[0]

    async def resolve_details(self, username: str) -> AccountDetail:
        """
        Resolve the full details for an account.

        When the custom MFA attribute is missing or NO_MFA the AdminGetUser
        fallback is used, which counts towards billable active users, and the
        resolved MFA type is written back for next time.
        """
        logger.info(f"Getting user details for username {username}.")
        user = await self.find_account(username)
        account_username = user.get("Username") or username
        groups = await self.client.list_groups_for_account(account_username)

        attributes = attribute_map(user.get("Attributes"))
        stored_mfa = attributes.get(ATTRIBUTE_MFA_TYPE)

        # NO_MFA is not trusted, the attribute is not guaranteed to be updated when MFA is set up.
        if stored_mfa and stored_mfa != MfaType.NO_MFA.value:
            return AccountDetail(
                id=attributes.get(ATTRIBUTE_SUB),
                email=attributes.get(ATTRIBUTE_EMAIL),
                mfa_status=MfaType.from_attribute(stored_mfa),
                user_status=user.get("UserStatus"),
                groups=groups,
                created_at=user.get("UserCreateDate"),
                person_id=attributes.get(ATTRIBUTE_PERSON_ID),
            )

        logger.info("[MFA] MFA details not available via attributes, calling AdminGetUser endpoint.")
        result = await self.client.get_account(account_username)
        mfa_type = MfaType.from_preferred_mfa(result.get("PreferredMfaSetting"))
        await self._write_back_mfa(account_username, mfa_type)

        result_attributes = attribute_map(result.get("UserAttributes"))
        return AccountDetail(
            id=result_attributes.get(ATTRIBUTE_SUB),
            email=result_attributes.get(ATTRIBUTE_EMAIL),
            mfa_status=mfa_type,
            user_status=result.get("UserStatus"),
            groups=groups,
            created_at=result.get("UserCreateDate"),
            person_id=result_attributes.get(ATTRIBUTE_PERSON_ID),
        )

    async def _write_back_mfa(self, username: str, mfa_type: MfaType):
        try:
            await self.client.update_account_attributes(username, {ATTRIBUTE_MFA_TYPE: mfa_type.value})
        except (DirectoryError, BotoCoreError) as e:
            logger.warning(f"[MFA] Failed to store MFA type {mfa_type} for user '{username}': {e}")
