"""Tests for the Cognito directory client and error translation in client."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError

from client import (
    AccountNotFound,
    CognitoDirectoryClient,
    DirectoryError,
    ErrorKind,
    RequestTracker,
    Throttled,
    attribute_map,
    tracker,
    translate_client_error,
)

USER_POOL_ID = "eu-west-2_userpool"


def client_error(code, operation="ListUsers", message="error"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def idp():
    return AsyncMock()


@pytest.fixture
def client(idp):
    session = MagicMock()
    session.client.return_value.__aenter__.return_value = idp
    return CognitoDirectoryClient(user_pool_id=USER_POOL_ID, region="eu-west-2", session=session)


class TestErrorTranslation:
    @pytest.mark.parametrize("code,error_type,kind", [
        ("TooManyRequestsException", Throttled, ErrorKind.THROTTLED),
        ("UserNotFoundException", AccountNotFound, ErrorKind.NOT_FOUND),
        ("InternalErrorException", DirectoryError, ErrorKind.OTHER),
    ])
    def test_codes(self, code, error_type, kind):
        error = translate_client_error(client_error(code, message="details"), "list_users")

        assert type(error) is error_type
        assert error.kind is kind
        assert error.code == code
        assert error.operation == "list_users"
        assert str(error) == "details"

    def test_attribute_map(self):
        assert attribute_map([{"Name": "sub", "Value": "1"}, {"Name": "email", "Value": "a@b.c"}]) == {
            "sub": "1", "email": "a@b.c"
        }
        assert attribute_map(None) == {}


class TestListAccounts:
    @pytest.mark.asyncio
    async def test_filters_on_attribute(self, client, idp):
        idp.list_users.return_value = {"Users": [{"Username": "u1"}], "PaginationToken": "next"}

        users, token = await client.list_accounts(filter_attribute="email", filter_value="a@example.com")

        assert users == [{"Username": "u1"}]
        assert token == "next"
        idp.list_users.assert_awaited_once_with(UserPoolId=USER_POOL_ID, Filter='email = "a@example.com"')

    @pytest.mark.asyncio
    async def test_passes_pagination_token(self, client, idp):
        idp.list_users.return_value = {"Users": []}

        users, token = await client.list_accounts(token="abc")

        assert users == []
        assert token is None
        idp.list_users.assert_awaited_once_with(UserPoolId=USER_POOL_ID, PaginationToken="abc")

    @pytest.mark.asyncio
    async def test_throttling_raises_and_is_tracked(self, client, idp):
        idp.list_users.side_effect = client_error("TooManyRequestsException")
        before = tracker.stats["throttledRequests"]

        with pytest.raises(Throttled):
            await client.list_accounts()

        assert tracker.stats["throttledRequests"] == before + 1
        assert tracker.active_requests == 0


class TestAccountEndpoints:
    @pytest.mark.asyncio
    async def test_get_account(self, client, idp):
        idp.admin_get_user.return_value = {"Username": "u1", "PreferredMfaSetting": "SMS_MFA"}

        result = await client.get_account("u1")

        assert result["PreferredMfaSetting"] == "SMS_MFA"
        idp.admin_get_user.assert_awaited_once_with(UserPoolId=USER_POOL_ID, Username="u1")

    @pytest.mark.asyncio
    async def test_get_account_not_found(self, client, idp):
        idp.admin_get_user.side_effect = client_error("UserNotFoundException", "AdminGetUser")

        with pytest.raises(AccountNotFound):
            await client.get_account("missing")

    @pytest.mark.asyncio
    async def test_update_account_attributes(self, client, idp):
        await client.update_account_attributes("u1", {"custom:mfaType": "SMS_MFA"})

        idp.admin_update_user_attributes.assert_awaited_once_with(
            UserPoolId=USER_POOL_ID,
            Username="u1",
            UserAttributes=[{"Name": "custom:mfaType", "Value": "SMS_MFA"}]
        )

    @pytest.mark.asyncio
    async def test_groups(self, client, idp):
        idp.admin_list_groups_for_user.return_value = {"Groups": [{"GroupName": "a"}, {"GroupName": "b"}]}

        assert await client.list_groups_for_account("u1") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_no_groups_when_user_unknown(self, client, idp):
        idp.admin_list_groups_for_user.side_effect = client_error("UserNotFoundException")

        assert await client.list_groups_for_account("u1") == []

    @pytest.mark.asyncio
    async def test_list_auth_events(self, client, idp):
        idp.admin_list_user_auth_events.return_value = {"AuthEvents": [{"EventId": "e1"}], "NextToken": "t2"}

        events, token = await client.list_auth_events("u1", token="t1", max_results=10)

        assert events == [{"EventId": "e1"}]
        assert token == "t2"
        idp.admin_list_user_auth_events.assert_awaited_once_with(
            UserPoolId=USER_POOL_ID, Username="u1", NextToken="t1", MaxResults=10
        )

    @pytest.mark.asyncio
    async def test_set_mfa_preference(self, client, idp):
        await client.set_mfa_preference("u1", sms_enabled=False, software_token_enabled=False)

        idp.admin_set_user_mfa_preference.assert_awaited_once_with(
            UserPoolId=USER_POOL_ID,
            Username="u1",
            SMSMfaSettings={"Enabled": False},
            SoftwareTokenMfaSettings={"Enabled": False}
        )

    @pytest.mark.asyncio
    async def test_group_membership_and_delete(self, client, idp):
        await client.add_account_to_group("u1", "g")
        await client.remove_account_from_group("u1", "g")
        await client.delete_account("u1")

        idp.admin_add_user_to_group.assert_awaited_once_with(UserPoolId=USER_POOL_ID, Username="u1", GroupName="g")
        idp.admin_remove_user_from_group.assert_awaited_once_with(UserPoolId=USER_POOL_ID, Username="u1", GroupName="g")
        idp.admin_delete_user.assert_awaited_once_with(UserPoolId=USER_POOL_ID, Username="u1")

    @pytest.mark.asyncio
    async def test_other_errors_raise_directory_error(self, client, idp):
        idp.admin_delete_user.side_effect = client_error("NotAuthorizedException", "AdminDeleteUser")

        with pytest.raises(DirectoryError) as exc_info:
            await client.delete_account("u1")

        assert exc_info.value.kind is ErrorKind.OTHER
        assert isinstance(exc_info.value.__cause__, ClientError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [
        EndpointConnectionError(endpoint_url="https://cognito-idp.eu-west-2.amazonaws.com/"),
        ReadTimeoutError(endpoint_url="https://cognito-idp.eu-west-2.amazonaws.com/"),
    ])
    async def test_transport_errors_raise_directory_error(self, client, idp, failure):
        idp.admin_update_user_attributes.side_effect = failure

        with pytest.raises(DirectoryError) as exc_info:
            await client.update_account_attributes("u1", {"custom:mfaType": "SMS_MFA"})

        assert exc_info.value.kind is ErrorKind.OTHER
        assert exc_info.value.code == type(failure).__name__
        assert exc_info.value.operation == "admin_update_user_attributes"
        assert exc_info.value.__cause__ is failure
        assert tracker.active_requests == 0


class TestRequestTracker:
    def test_counts_requests_and_throttles(self):
        request_tracker = RequestTracker()

        request_tracker.request_started("list_users")
        request_tracker.record_throttle("list_users")
        request_tracker.request_completed()
        status = request_tracker.get_status()

        assert status["active"] == 0
        assert status["requestsLastMinute"] == 1
        assert status["stats"]["totalRequests"] == 1
        assert status["stats"]["throttledRequests"] == 1
        assert status["operations"]["list_users"]["requests"] == 1
        assert status["operations"]["list_users"]["throttled"] == 1
        assert status["operations"]["list_users"]["lastThrottled"] is not None
