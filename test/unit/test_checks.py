# -*- coding: utf-8 -*-
"""Test step checks and resource specs."""
import pytest

from apigw_authorizer_conformance.authorizer import AUTHORIZER_TYPE_NAME
from apigw_authorizer_conformance.checks import (
    StepContext,
    check_attr,
    check_disappears,
    check_exists,
    check_not_recreated,
    check_remote_attr,
    check_tracked_attr,
    compose,
)
from apigw_authorizer_conformance.exceptions import (
    AttributeMismatchError,
    RemoteNotFoundError,
    StateInconsistencyError,
)
from apigw_authorizer_conformance.expectations import Count, Exact
from apigw_authorizer_conformance.resource_spec import ResourceSpec
from apigw_authorizer_conformance.schemas.authorizer_vars import AuthorizerType
from apigw_authorizer_conformance.state import TrackedResource, TrackedState

ADDRESS = "acctest"
ARNS = ["arn:aws:cognito-idp:eu-west-1:123456789012:userpool/eu-west-1_a"]


def state_with(authorizer_id: str, **attributes) -> TrackedState:
    resource = TrackedResource(ADDRESS, AUTHORIZER_TYPE_NAME, authorizer_id, {"rest_api_id": "api123", **attributes})
    return TrackedState(stack_name="stack", resources={ADDRESS: resource})


@pytest.fixture
def step(context, fake_authorizers) -> StepContext:
    """Returns a step context with one authorizer known remotely."""
    fake_authorizers.remote["auth1"] = {"rest_api_id": "api123", "name": "remote-name", "provider_arns": tuple(ARNS)}
    return StepContext(context=context, state=state_with("auth1", name="tracked-name", provider_arns=ARNS))


# pylint: disable=redefined-outer-name
def test_check_exists(step):
    """Test if an existing authorizer passes."""
    check_exists(ADDRESS)(step)


# pylint: disable=redefined-outer-name
def test_check_exists_not_found(step, fake_authorizers):
    """Test if a missing authorizer fails."""
    fake_authorizers.remote.clear()

    with pytest.raises(RemoteNotFoundError):
        check_exists(ADDRESS)(step)


def test_check_exists_without_id(context):
    """Test if a tracked resource without id fails."""
    step = StepContext(context=context, state=state_with(""))

    with pytest.raises(StateInconsistencyError, match="No AWS::ApiGateway::Authorizer ID is set for acctest"):
        check_exists(ADDRESS)(step)


def test_check_unknown_address(context):
    """Test if a check on an address missing from state fails."""
    step = StepContext(context=context, state=TrackedState(stack_name="stack"))

    with pytest.raises(StateInconsistencyError, match="Not found: acctest"):
        check_exists(ADDRESS)(step)


# pylint: disable=redefined-outer-name
def test_remote_and_tracked_attributes_are_read_separately(step):
    """Test if remote checks read the API and tracked checks read the state."""
    check_remote_attr(ADDRESS, "name", Exact("remote-name"))(step)
    check_tracked_attr(ADDRESS, "name", Exact("tracked-name"))(step)

    with pytest.raises(AttributeMismatchError) as error:
        check_tracked_attr(ADDRESS, "name", Exact("remote-name"))(step)
    assert error.value.source == "tracked"


# pylint: disable=redefined-outer-name
def test_check_attr_counts_list(step):
    """Test if list attributes can be counted on both sides."""
    for check in check_attr(ADDRESS, "provider_arns", Count(1)):
        check(step)


def test_check_not_recreated(context):
    """Test if a changed id is reported."""
    step = StepContext(context=context, state=state_with("auth2"), previous_state=state_with("auth1"))

    with pytest.raises(AttributeMismatchError, match="'id' didn't match"):
        check_not_recreated(ADDRESS)(step)

    unchanged = StepContext(context=context, state=state_with("auth1"), previous_state=step.previous_state)
    check_not_recreated(ADDRESS)(unchanged)


def test_check_not_recreated_without_previous_state(context):
    """Test if the first step can't check for recreation."""
    with pytest.raises(StateInconsistencyError, match="No previous state"):
        check_not_recreated(ADDRESS)(StepContext(context=context, state=state_with("auth1")))


# pylint: disable=redefined-outer-name
def test_check_disappears(step, fake_authorizers):
    """Test if the authorizer is deleted directly."""
    check_disappears(ADDRESS)(step)

    assert fake_authorizers.deleted == ["auth1"]
    assert "auth1" not in fake_authorizers.remote


def test_compose_flattens_in_order():
    """Test if single checks and lists of checks are flattened in order."""
    first, second, third = check_exists("a"), check_exists("b"), check_exists("c")

    assert compose(first, [second, third]) == (first, second, third)


def test_resource_spec_checks():
    """Test if a spec yields an existence check plus two checks per attribute."""
    spec = ResourceSpec(
        name=ADDRESS,
        type=AuthorizerType.TOKEN,
        expected={"name": Exact("authorizer"), "type": Exact("TOKEN")},
    )

    assert len(spec.checks()) == 5


def test_resource_spec_unknown_attribute():
    """Test if unknown attribute names are rejected."""
    with pytest.raises(ValueError, match="unknown authorizer attributes: ttl"):
        ResourceSpec(name=ADDRESS, type=AuthorizerType.TOKEN, expected={"ttl": Exact(300)})


def test_resource_spec_is_read_only():
    """Test if the expected attributes can't be changed after creation."""
    spec = ResourceSpec(name=ADDRESS, type=AuthorizerType.TOKEN, expected={"name": Exact("authorizer")})

    with pytest.raises(TypeError):
        spec.expected["type"] = Exact("TOKEN")


def test_resource_spec_checks_type():
    """Test if the type of the spec is checked when expected doesn't name it."""
    spec = ResourceSpec(name=ADDRESS, type=AuthorizerType.TOKEN, expected={"name": Exact("authorizer")})

    assert len(spec.checks()) == 5


def test_resource_spec_type_mismatch(context, fake_authorizers):
    """Test if a remote authorizer of another type fails the spec."""
    fake_authorizers.remote["auth1"] = {"rest_api_id": "api123", "name": "authorizer", "type": "REQUEST"}
    step = StepContext(context=context, state=state_with("auth1", name="authorizer", type="TOKEN"))
    spec = ResourceSpec(name=ADDRESS, type=AuthorizerType.TOKEN, expected={"name": Exact("authorizer")})

    with pytest.raises(AttributeMismatchError) as error:
        for check in spec.checks():
            check(step)

    assert error.value.field == "type"
    assert error.value.source == "remote"
