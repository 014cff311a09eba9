# Accounts package
"""
Cognito user account administration

Modules:
- mfa: MFA type resolution from attributes and preferences
- models: Account details, auth events, duplicate resolution results
- cache: TTL-gated person ID to account ID index
- details: Account detail resolution with AdminGetUser fallback
- duplicates: Main account selection among duplicates
- service: Account administration operations
- admin: JSON tool functions for the MCP server
"""

from . import mfa, models, cache, details, duplicates, service, admin

__all__ = ["mfa", "models", "cache", "details", "duplicates", "service", "admin"]
