# -*- coding: utf-8 -*-
"""Test direct API Gateway access."""
from unittest.mock import MagicMock

import pytest

from botocore.exceptions import ClientError

from apigw_authorizer_conformance.authorizer import AUTHORIZER_TYPE_NAME
from apigw_authorizer_conformance.exceptions import RemoteNotFoundError, StateInconsistencyError
from apigw_authorizer_conformance.remote import AuthorizerResourceType, RemoteAuthorizer, is_not_found
from apigw_authorizer_conformance.state import TrackedResource

GET_AUTHORIZER_RESPONSE = {
    "id": "abc123",
    "name": "acctest-igw-authorizer-1",
    "type": "COGNITO_USER_POOLS",
    "providerARNs": ["arn:aws:cognito-idp:eu-west-1:123456789012:userpool/eu-west-1_a"],
    "identitySource": "method.request.header.Authorization",
    "authorizerResultTtlInSeconds": 300,
}


def client_error(code: str, operation: str = "GetAuthorizer") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


@pytest.fixture
def tracked() -> TrackedResource:
    """Returns a tracked authorizer."""
    return TrackedResource("acctest", AUTHORIZER_TYPE_NAME, "abc123", {"rest_api_id": "api123"})


def test_from_response():
    """Test if the GetAuthorizer response is mapped to attributes."""
    authorizer = RemoteAuthorizer.from_response(GET_AUTHORIZER_RESPONSE)

    assert authorizer.attribute("id") == "abc123"
    assert authorizer.attribute("provider_arns") == ("arn:aws:cognito-idp:eu-west-1:123456789012:userpool/eu-west-1_a",)
    assert authorizer.attribute("authorizer_result_ttl_in_seconds") == 300
    assert authorizer.attribute("authorizer_uri") is None
    assert authorizer.attribute("identity_validation_expression") is None


def test_is_not_found():
    """Test if only the exact not-found code is recognized."""
    assert is_not_found(client_error("NotFoundException"))
    assert not is_not_found(client_error("TooManyRequestsException"))


# pylint: disable=redefined-outer-name
def test_fetch(tracked):
    """Test if fetch reads the authorizer by REST API id and authorizer id."""
    client = MagicMock()
    client.get_authorizer.return_value = GET_AUTHORIZER_RESPONSE

    authorizer = AuthorizerResourceType(client).fetch(tracked)

    client.get_authorizer.assert_called_once_with(restApiId="api123", authorizerId="abc123")
    assert authorizer.name == "acctest-igw-authorizer-1"


# pylint: disable=redefined-outer-name
def test_fetch_not_found(tracked):
    """Test if a not-found error is raised as RemoteNotFoundError."""
    client = MagicMock()
    client.get_authorizer.side_effect = client_error("NotFoundException")

    with pytest.raises(RemoteNotFoundError, match="api123/abc123 not found"):
        AuthorizerResourceType(client).fetch(tracked)


# pylint: disable=redefined-outer-name
def test_fetch_other_error(tracked):
    """Test if any other error is raised unchanged."""
    client = MagicMock()
    client.get_authorizer.side_effect = client_error("TooManyRequestsException")

    with pytest.raises(ClientError):
        AuthorizerResourceType(client).fetch(tracked)


# pylint: disable=redefined-outer-name
def test_delete(tracked):
    """Test if delete removes the authorizer directly."""
    client = MagicMock()

    AuthorizerResourceType(client).delete(tracked)

    client.delete_authorizer.assert_called_once_with(restApiId="api123", authorizerId="abc123")


# pylint: disable=redefined-outer-name
def test_import_id(tracked):
    """Test the composite import id."""
    assert AuthorizerResourceType(MagicMock()).import_id(tracked) == "api123/abc123"


def test_missing_id():
    """Test if a tracked authorizer without id is rejected."""
    tracked = TrackedResource("acctest", AUTHORIZER_TYPE_NAME, "", {"rest_api_id": "api123"})

    with pytest.raises(StateInconsistencyError, match="No AWS::ApiGateway::Authorizer ID is set for acctest"):
        AuthorizerResourceType(MagicMock()).fetch(tracked)


def test_missing_rest_api_id():
    """Test if a tracked authorizer without REST API id is rejected."""
    tracked = TrackedResource("acctest", AUTHORIZER_TYPE_NAME, "abc123")

    with pytest.raises(StateInconsistencyError, match="No rest_api_id is set for acctest"):
        AuthorizerResourceType(MagicMock()).import_id(tracked)
