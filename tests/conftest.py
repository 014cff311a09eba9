"""Shared fixtures for the account administration tests."""
import datetime
from unittest.mock import AsyncMock

import pytest

from client import CognitoDirectoryClient
import paginator

USER_POOL_ID = "eu-west-2_userpool"
CREATED = datetime.datetime(2024, 3, 1, 9, 30, tzinfo=datetime.timezone.utc)


@pytest.fixture
def directory():
    """A directory client double whose endpoints are all AsyncMocks."""
    client = AsyncMock(spec=CognitoDirectoryClient)
    client.user_pool_id = USER_POOL_ID
    client.list_groups_for_account.return_value = []
    return client


@pytest.fixture
def no_cooldown(monkeypatch):
    monkeypatch.setitem(paginator.PAGINATION_CONFIG, "cooldownMs", 0)


@pytest.fixture
def make_user():
    """Build a ListUsers entry the way Cognito returns it."""
    def _make_user(sub, person_id=None, email=None, mfa_type=None, username=None, status="CONFIRMED"):
        attributes = [{"Name": "sub", "Value": sub}]
        if person_id is not None:
            attributes.append({"Name": "custom:tisId", "Value": person_id})
        if email is not None:
            attributes.append({"Name": "email", "Value": email})
        if mfa_type is not None:
            attributes.append({"Name": "custom:mfaType", "Value": mfa_type})
        return {
            "Username": username or sub,
            "Attributes": attributes,
            "UserStatus": status,
            "UserCreateDate": CREATED,
            "Enabled": True,
        }
    return _make_user


@pytest.fixture
def make_auth_event():
    def _make_auth_event(event_id, minutes_ago=0, event_type="SignIn", response="Pass"):
        return {
            "EventId": event_id,
            "EventType": event_type,
            "EventResponse": response,
            "CreationDate": CREATED - datetime.timedelta(minutes=minutes_ago),
            "EventContextData": {"DeviceName": "Chrome, Windows 10"},
            "ChallengeResponses": [
                {"ChallengeName": "Password", "ChallengeResponse": "Success"},
            ],
        }
    return _make_auth_event


def pages_by_token(pages):
    """Side effect returning pages[token] for list_accounts/list_auth_events doubles."""
    def _fetch(*args, token=None, **kwargs):
        result = pages[token]
        if isinstance(result, Exception):
            raise result
        return result
    return _fetch
