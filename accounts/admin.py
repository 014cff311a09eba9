"""
Account administration tools returning JSON for the MCP server.
"""
import json
import logging
from typing import Dict, Any

from client import DirectoryError, tracker
from accounts.mfa import InvalidMfaType
from accounts.service import EmailInUse, UserAccountService

logger = logging.getLogger("user_management")


def _error(message: str, **extra) -> str:
    return json.dumps({"success": False, "error": message, **extra}, indent=2)


def _directory_error(e: DirectoryError) -> str:
    return _error(str(e), kind=e.kind.value, code=e.code, operation=e.operation)


async def get_account_ids(service: UserAccountService, args: Dict[str, Any]) -> str:
    person_id = args.get("personId")
    if not person_id:
        return _error("personId is required")

    try:
        account_ids = await service.get_account_ids(person_id)
    except DirectoryError as e:
        return _directory_error(e)

    return json.dumps({
        "success": True,
        "personId": person_id,
        "accountIds": sorted(account_ids),
        "duplicated": len(account_ids) > 1
    }, indent=2)


async def get_account_details(service: UserAccountService, args: Dict[str, Any]) -> str:
    username = args.get("username")
    if not username:
        return _error("username is required")

    try:
        details = await service.get_account_details(username)
    except DirectoryError as e:
        return _directory_error(e)
    except InvalidMfaType as e:
        logger.error(f"[ERROR] Could not resolve details for '{username}': {e}")
        return _error(str(e))

    return json.dumps({"success": True, "account": details.to_dict()}, indent=2)


async def get_login_details(service: UserAccountService, args: Dict[str, Any]) -> str:
    username = args.get("username")
    if not username:
        return _error("username is required")

    try:
        events = await service.get_login_details(username)
    except DirectoryError as e:
        return _directory_error(e)

    return json.dumps({
        "success": True,
        "username": username,
        "events": [e.to_dict() for e in events]
    }, indent=2)


async def delete_duplicate_accounts(service: UserAccountService, args: Dict[str, Any]) -> str:
    person_id = args.get("personId")
    current_email = args.get("currentEmail")
    if not person_id or not current_email:
        return _error("personId and currentEmail are required")

    account_ids = args.get("accountIds")
    try:
        if not account_ids:
            account_ids = await service.get_account_ids(person_id)
        if len(account_ids) < 2:
            return json.dumps({
                "success": True,
                "personId": person_id,
                "message": "No duplicate accounts found",
                "accountIds": sorted(account_ids)
            }, indent=2)

        resolution = await service.delete_duplicate_accounts(person_id, account_ids, current_email)
    except DirectoryError as e:
        return _directory_error(e)
    except InvalidMfaType as e:
        logger.error(f"[ERROR] Could not resolve the main account for {person_id}: {e}")
        return _error(str(e))

    return json.dumps({"success": True, **resolution.to_dict()}, indent=2)


async def update_group_membership(service: UserAccountService, args: Dict[str, Any]) -> str:
    username = args.get("username")
    group_name = args.get("groupName")
    action = args.get("action", "enroll")
    if not username or not group_name:
        return _error("username and groupName are required")
    if action not in ("enroll", "withdraw"):
        return _error(f"Unknown action '{action}', expected 'enroll' or 'withdraw'")

    try:
        if action == "enroll":
            await service.enroll_to_group(username, group_name)
        else:
            await service.withdraw_from_group(username, group_name)
    except DirectoryError as e:
        return _directory_error(e)

    return json.dumps({"success": True, "username": username, "groupName": group_name, "action": action}, indent=2)


async def reset_mfa(service: UserAccountService, args: Dict[str, Any]) -> str:
    username = args.get("username")
    if not username:
        return _error("username is required")

    try:
        await service.reset_mfa(username)
    except DirectoryError as e:
        return _directory_error(e)

    return json.dumps({"success": True, "username": username, "mfaStatus": "NO_MFA"}, indent=2)


async def delete_account(service: UserAccountService, args: Dict[str, Any]) -> str:
    username = args.get("username")
    if not username:
        return _error("username is required")

    try:
        await service.delete_account(username)
    except DirectoryError as e:
        return _directory_error(e)

    return json.dumps({"success": True, "username": username, "deleted": True}, indent=2)


async def update_contact_details(service: UserAccountService, args: Dict[str, Any]) -> str:
    user_id = args.get("userId")
    email = args.get("email")
    if not user_id or not email:
        return _error("userId and email are required")

    try:
        await service.update_contact_details(user_id, email, args.get("forenames"), args.get("surname"))
    except EmailInUse as e:
        return _error(str(e), httpCode="400")
    except DirectoryError as e:
        return _directory_error(e)

    return json.dumps({"success": True, "userId": user_id, "email": email}, indent=2)


async def directory_status(service: UserAccountService, args: Dict[str, Any]) -> str:
    cache = service.cache
    return json.dumps({
        "requests": tracker.get_status(),
        "cache": {
            "people": len(cache.snapshot()),
            "lastRebuild": cache.last_rebuild,
            "stale": cache.is_stale(),
            "ttlSeconds": cache.ttl_seconds
        }
    }, indent=2)
