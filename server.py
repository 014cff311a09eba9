"""
User Management MCP Server - Model Context Protocol server for Cognito account support tooling

This is the main entry point for the MCP server.
"""
import sys
import os
from pathlib import Path
from typing import List

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel

# Ensure the project root is in sys.path for imports
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from client import directory_client
from accounts import admin
from accounts.cache import DirectoryCache
from accounts.service import UserAccountService

def validate_environment_variables() -> None:
    """
    Validate required environment variables before MCP server starts.
    Exits with code 1 if validation fails.
    """
    import logging
    logger = logging.getLogger("user_management")

    user_pool_id = os.environ.get("COGNITO_USER_POOL_ID")

    if not user_pool_id:
        logger.error("CRITICAL: COGNITO_USER_POOL_ID environment variable is not set")
        print("❌ ERROR: COGNITO_USER_POOL_ID environment variable is required")
        print("Create a .env file with: COGNITO_USER_POOL_ID=eu-west-2_XXXXXXXXX")
        sys.exit(1)

    logger.info(f"Environment validation passed: COGNITO_USER_POOL_ID={user_pool_id}")

validate_environment_variables()

# Initialize FastMCP
mcp = FastMCP("user-management-mcp")

# One cache per process, shared by every tool call
account_cache = DirectoryCache(directory_client)
account_service = UserAccountService(directory_client, account_cache)

# --- INPUT MODELS ---
class ContactDetails(BaseModel):
    email: str
    forenames: str = None
    surname: str = None

# ===========================================
# ACCOUNT LOOKUP TOOLS
# ===========================================

@mcp.tool()
async def get_account_ids(personId: str) -> str:
    """Get all Cognito account IDs (subs) tagged with the given person ID.

    Uses an in-memory index of the whole user pool, rebuilt at most every 15 minutes.
    More than one ID means the person has duplicate accounts.
    """
    return await admin.get_account_ids(account_service, {"personId": personId})

@mcp.tool()
async def get_account_details(username: str) -> str:
    """Get account details (id, email, MFA status, user status, groups) for an email or sub.

    Returns mfaStatus/userStatus NO_ACCOUNT when the user does not exist.
    """
    return await admin.get_account_details(account_service, {"username": username})

@mcp.tool()
async def get_login_details(username: str) -> str:
    """Get the 10 most recent authentication events for an account, newest first."""
    return await admin.get_login_details(account_service, {"username": username})

# ===========================================
# ACCOUNT MAINTENANCE TOOLS
# ===========================================

@mcp.tool()
async def delete_duplicate_accounts(personId: str, currentEmail: str, accountIds: List[str] = None) -> str:
    """
    Delete duplicate accounts for a person, keeping the account that holds their current email.

    Args:
        personId: Required. The person ID shared by the duplicate accounts.
        currentEmail: Required. The person's current email from the system of record.
        accountIds: Optional. Candidate account IDs, looked up from the account index if omitted.

    Nothing is deleted when the main account cannot be determined.
    """
    return await admin.delete_duplicate_accounts(account_service, {
        "personId": personId,
        "currentEmail": currentEmail,
        "accountIds": accountIds
    })

@mcp.tool()
async def delete_account(username: str) -> str:
    """Delete a single Cognito account. This cannot be undone."""
    return await admin.delete_account(account_service, {"username": username})

@mcp.tool()
async def update_group_membership(username: str, groupName: str, action: str = "enroll") -> str:
    """Enroll a user into, or withdraw a user from, a user group.

    action can be 'enroll' or 'withdraw'.
    """
    return await admin.update_group_membership(account_service, {
        "username": username,
        "groupName": groupName,
        "action": action
    })

@mcp.tool()
async def reset_mfa(username: str) -> str:
    """Disable SMS and authenticator app MFA for a user so they can set it up again."""
    return await admin.reset_mfa(account_service, {"username": username})

@mcp.tool()
async def update_contact_details(userId: str, details: ContactDetails) -> str:
    """Update the email and names of an account. Fails if the email belongs to another account."""
    return await admin.update_contact_details(account_service, {
        "userId": userId,
        "email": details.email,
        "forenames": details.forenames,
        "surname": details.surname
    })

@mcp.tool()
async def directory_status() -> str:
    """Get directory request statistics and the state of the account index."""
    return await admin.directory_status(account_service, {})


def main():
    mcp.run()

if __name__ == "__main__":
    main()
