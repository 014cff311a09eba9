"""
Cognito directory client with request tracking and error translation.
"""
import os
import time
import logging
import datetime
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple
from pathlib import Path

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

# Load .env from project root (same directory as this file)
PROJECT_ROOT = Path(__file__).resolve().parent
load_dotenv(PROJECT_ROOT / ".env")

# Logger setup
logger = logging.getLogger("user_management")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    logger.addHandler(handler)

# -- CONFIGURATION --
DIRECTORY_CONFIG = {
    "userPoolId": os.environ.get("COGNITO_USER_POOL_ID"),
    "region": os.environ.get("AWS_REGION", "eu-west-2"),
}

ATTRIBUTE_EMAIL = "email"
ATTRIBUTE_EMAIL_VERIFIED = "email_verified"
ATTRIBUTE_SUB = "sub"
ATTRIBUTE_PERSON_ID = "custom:tisId"
ATTRIBUTE_MFA_TYPE = "custom:mfaType"

THROTTLE_CODES = {"TooManyRequestsException", "ThrottlingException"}
NOT_FOUND_CODES = {"UserNotFoundException"}


class ErrorKind(Enum):
    THROTTLED = "THROTTLED"
    NOT_FOUND = "NOT_FOUND"
    OTHER = "OTHER"


class DirectoryError(Exception):
    """A failed directory call, tagged with the kind of failure."""

    kind = ErrorKind.OTHER

    def __init__(self, message: str, operation: str = None, code: str = None):
        super().__init__(message)
        self.operation = operation
        self.code = code


class Throttled(DirectoryError):
    kind = ErrorKind.THROTTLED


class AccountNotFound(DirectoryError):
    kind = ErrorKind.NOT_FOUND


def translate_client_error(e: ClientError, operation: str) -> DirectoryError:
    """Map a botocore ClientError onto the directory error taxonomy."""
    error = e.response.get("Error", {})
    code = error.get("Code")
    message = error.get("Message") or str(e)

    if code in THROTTLE_CODES:
        return Throttled(message, operation, code)
    if code in NOT_FOUND_CODES:
        return AccountNotFound(message, operation, code)
    return DirectoryError(message, operation, code)


def attribute_map(attributes: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Flatten a Cognito [{'Name': .., 'Value': ..}] list into a dict."""
    if not attributes:
        return {}
    return {a["Name"]: a.get("Value") for a in attributes if "Name" in a}


class RequestTracker:
    def __init__(self):
        self.operations: Dict[str, Dict[str, Any]] = {}
        self.active_requests = 0
        self.request_history = []
        self.stats = {
            "totalRequests": 0,
            "throttledRequests": 0,
            "notFoundResponses": 0,
            "lastReset": time.time() * 1000
        }

    def _operation(self, operation: str) -> Dict[str, Any]:
        return self.operations.setdefault(operation, {"requests": 0, "throttled": 0, "lastThrottled": None})

    def request_started(self, operation: str):
        self.active_requests += 1
        self.stats["totalRequests"] += 1
        self._operation(operation)["requests"] += 1
        self.request_history.append(time.time() * 1000)
        cutoff = (time.time() * 1000) - 60000
        self.request_history = [t for t in self.request_history if t > cutoff]

    def request_completed(self):
        self.active_requests = max(0, self.active_requests - 1)

    def record_throttle(self, operation: str):
        self.stats["throttledRequests"] += 1
        info = self._operation(operation)
        info["throttled"] += 1
        info["lastThrottled"] = time.time() * 1000

    def record_not_found(self):
        self.stats["notFoundResponses"] += 1

    def get_status(self):
        operation_status = {}

        for op, info in self.operations.items():
            last = info["lastThrottled"]
            operation_status[op] = {
                "requests": info["requests"],
                "throttled": info["throttled"],
                "lastThrottled": datetime_iso(last) if last else None,
            }

        return {
            "active": self.active_requests,
            "requestsLastMinute": len(self.request_history),
            "operations": operation_status,
            "stats": self.stats,
        }


def datetime_iso(ts_ms):
    return datetime.datetime.fromtimestamp(ts_ms/1000, datetime.timezone.utc).isoformat()

# Global Tracker
tracker = RequestTracker()


class CognitoDirectoryClient:
    """Narrow async wrapper over the Cognito user pool admin endpoints."""

    def __init__(self, user_pool_id: str = None, region: str = None, session=None):
        self.user_pool_id = user_pool_id or DIRECTORY_CONFIG["userPoolId"]
        self.region = region or DIRECTORY_CONFIG["region"]
        if not self.user_pool_id:
            logger.error("COGNITO_USER_POOL_ID not set!")

        # Create session for aioboto3 (client created per-request)
        self.session = session or aioboto3.Session()

    async def _call(self, operation: str, **params) -> Dict[str, Any]:
        tracker.request_started(operation)
        try:
            async with self.session.client('cognito-idp', region_name=self.region) as client:
                logger.debug(f"[DEBUG] {operation} {params.get('Username') or params.get('Filter') or ''}")
                method = getattr(client, operation)
                return await method(UserPoolId=self.user_pool_id, **params)
        except ClientError as e:
            error = translate_client_error(e, operation)
            if error.kind is ErrorKind.THROTTLED:
                tracker.record_throttle(operation)
            elif error.kind is ErrorKind.NOT_FOUND:
                tracker.record_not_found()
            else:
                logger.error(f"[ERROR] {operation} failed: {error.code} {error}")
            raise error from e
        except BotoCoreError as e:
            logger.error(f"[ERROR] {operation} failed: {e}")
            raise DirectoryError(str(e), operation, type(e).__name__) from e
        finally:
            tracker.request_completed()

    async def list_accounts(self, filter_attribute: str = None, filter_value: str = None,
                            token: str = None, limit: int = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """
        Bulk listing of accounts, optionally filtered on a single attribute.

        Cheap and does not count towards billable active users, but shares the
        pool's per-second request quota.
        """
        params: Dict[str, Any] = {}
        if filter_attribute:
            value = (filter_value or "").replace('"', '\\"')
            params["Filter"] = f'{filter_attribute} = "{value}"'
        if token:
            params["PaginationToken"] = token
        if limit:
            params["Limit"] = limit

        response = await self._call("list_users", **params)
        return response.get("Users", []), response.get("PaginationToken")

    async def get_account(self, username: str) -> Dict[str, Any]:
        """
        Single account lookup via AdminGetUser.

        Warning: this contributes to the monthly active user count for billing.
        """
        return await self._call("admin_get_user", Username=username)

    async def update_account_attributes(self, username: str, attributes: Dict[str, str]):
        await self._call(
            "admin_update_user_attributes",
            Username=username,
            UserAttributes=[{"Name": name, "Value": value} for name, value in attributes.items()]
        )
        logger.info(f"Attributes updated for user '{username}'. Updated [{', '.join(attributes)}]")

    async def list_groups_for_account(self, username: str) -> List[str]:
        try:
            response = await self._call("admin_list_groups_for_user", Username=username)
        except AccountNotFound:
            logger.info(f"User '{username}' not found while retrieving groups.")
            return []
        return [g["GroupName"] for g in response.get("Groups", [])]

    async def list_auth_events(self, username: str, token: str = None,
                               max_results: int = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Auth events for an account, newest first."""
        params: Dict[str, Any] = {"Username": username}
        if token:
            params["NextToken"] = token
        if max_results:
            params["MaxResults"] = max_results

        response = await self._call("admin_list_user_auth_events", **params)
        return response.get("AuthEvents", []), response.get("NextToken")

    async def set_mfa_preference(self, username: str, sms_enabled: bool, software_token_enabled: bool):
        await self._call(
            "admin_set_user_mfa_preference",
            Username=username,
            SMSMfaSettings={"Enabled": sms_enabled},
            SoftwareTokenMfaSettings={"Enabled": software_token_enabled}
        )

    async def delete_account(self, username: str):
        await self._call("admin_delete_user", Username=username)

    async def add_account_to_group(self, username: str, group_name: str):
        await self._call("admin_add_user_to_group", Username=username, GroupName=group_name)

    async def remove_account_from_group(self, username: str, group_name: str):
        await self._call("admin_remove_user_from_group", Username=username, GroupName=group_name)


directory_client = CognitoDirectoryClient()
