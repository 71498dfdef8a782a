"""Configuration documents for every authorizer scenario.

Each scenario is an AuthorizerStack synthesized to a CloudFormation
template. Update scenarios reuse the companion objects of their base
scenario, so applying them modifies the authorizer in place.
"""

from __future__ import annotations

import json
import logging
import threading

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum, auto
from functools import partial

import aws_cdk as cdk

from typeguard import typechecked

from apigw_authorizer_conformance.schemas.authorizer_vars import AuthorizerType
from apigw_authorizer_conformance.stacks.authorizer_stack import AuthorizerStack
from apigw_authorizer_conformance.utils import random_with_prefix

LOGGER = logging.getLogger(__name__)

# The jsii kernel behind aws-cdk-lib serves one request at a time over a single pipe.
SYNTH_LOCK = threading.Lock()


class Scenario(StrEnum):
    """Configuration variants of the authorizer under test."""

    LAMBDA = auto()
    LAMBDA_UPDATE = auto()
    LAMBDA_NO_CACHE = auto()
    COGNITO = auto()
    COGNITO_UPDATE = auto()
    INVALID_DEFAULT_TOKEN = auto()
    INVALID_REQUEST = auto()
    INVALID_COGNITO = auto()


@dataclass(frozen=True, slots=True)
class NameSeeds:
    """Names of the objects created by one case.

    They must be unique per run, cases share one AWS account.
    """

    api_name: str
    authorizer_name: str
    lambda_name: str
    cognito_name: str

    @classmethod
    def random(cls, prefix: str = "acctest") -> NameSeeds:
        return cls(
            api_name=random_with_prefix(f"{prefix}-apigw"),
            authorizer_name=random_with_prefix(f"{prefix}-igw-authorizer"),
            lambda_name=random_with_prefix(f"{prefix}-igw-auth-lambda"),
            cognito_name=random_with_prefix(f"{prefix}-cognito-user-pool"),
        )


@dataclass(frozen=True, slots=True)
class ConfigDocument:
    """A synthesized configuration.

    Attributes:
        scenario: Scenario the document was generated for.
        template: The CloudFormation template.
    """

    scenario: Scenario
    template: dict

    @property
    def body(self) -> str:
        return json.dumps(self.template)


def _lambda_stack(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    stack.add_lambda_backend(api_name=seeds.api_name, lambda_name=seeds.lambda_name)


def _build_lambda(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    _lambda_stack(stack, seeds)
    stack.add_authorizer(
        name=seeds.authorizer_name,
        authorizer_uri=stack.invoke_arn,
        authorizer_credentials=stack.invocation_role.role_arn,
    )


def _build_lambda_update(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    _lambda_stack(stack, seeds)
    stack.add_authorizer(
        name=f"{seeds.authorizer_name}_modified",
        authorizer_uri=stack.invoke_arn,
        authorizer_credentials=stack.invocation_role.role_arn,
        authorizer_result_ttl_in_seconds=360,
        identity_validation_expression=".*",
    )


def _build_lambda_no_cache(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    _lambda_stack(stack, seeds)
    stack.add_authorizer(
        name=f"{seeds.authorizer_name}_modified",
        authorizer_uri=stack.invoke_arn,
        authorizer_credentials=stack.invocation_role.role_arn,
        authorizer_result_ttl_in_seconds=0,
        identity_validation_expression=".*",
    )


def _build_cognito(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    pools = stack.add_user_pools("UserPool", [f"{seeds.cognito_name}-{index}" for index in range(2)])
    stack.add_authorizer(
        name=f"{seeds.authorizer_name}-cognito",
        type=AuthorizerType.COGNITO_USER_POOLS,
        provider_arns=[pool.attr_arn for pool in pools],
    )


def _build_cognito_update(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    pools = stack.add_user_pools("UserPoolUpdate", [f"{seeds.cognito_name}-{index}-update" for index in range(3)])
    stack.add_authorizer(
        name=f"{seeds.authorizer_name}-cognito-update",
        type=AuthorizerType.COGNITO_USER_POOLS,
        provider_arns=[pool.attr_arn for pool in pools],
    )


def _build_invalid_default_token(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    _lambda_stack(stack, seeds)
    stack.add_authorizer(name=seeds.authorizer_name, authorizer_credentials=stack.invocation_role.role_arn)


def _build_invalid_request(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    _lambda_stack(stack, seeds)
    stack.add_authorizer(
        name=seeds.authorizer_name,
        type=AuthorizerType.REQUEST,
        authorizer_credentials=stack.invocation_role.role_arn,
    )


def _build_invalid_cognito(stack: AuthorizerStack, seeds: NameSeeds) -> None:
    stack.add_user_pools("UserPool", [f"{seeds.cognito_name}-{index}" for index in range(2)])
    stack.add_authorizer(name=f"{seeds.authorizer_name}-cognito", type=AuthorizerType.COGNITO_USER_POOLS)


SCENARIO_BUILDERS: dict[Scenario, Callable[[AuthorizerStack, NameSeeds], None]] = {
    Scenario.LAMBDA: _build_lambda,
    Scenario.LAMBDA_UPDATE: _build_lambda_update,
    Scenario.LAMBDA_NO_CACHE: _build_lambda_no_cache,
    Scenario.COGNITO: _build_cognito,
    Scenario.COGNITO_UPDATE: _build_cognito_update,
    Scenario.INVALID_DEFAULT_TOKEN: _build_invalid_default_token,
    Scenario.INVALID_REQUEST: _build_invalid_request,
    Scenario.INVALID_COGNITO: _build_invalid_cognito,
}


def build_stack(
    app: cdk.App, scenario: Scenario, seeds: NameSeeds, stack_id: str = "AuthorizerStack"
) -> AuthorizerStack:
    """Builds the stack of a scenario inside the given app.

    Parameters:

    - app: The CDK app.
    - scenario: Scenario to build.
    - seeds: Unique names of the case.
    - stack_id: ID for the stack construct.

    Returns: The AuthorizerStack.

    Raises ConfigurationValidationError for the invalid scenarios.
    """

    stack = AuthorizerStack(app, stack_id, api_name=seeds.api_name)
    SCENARIO_BUILDERS[scenario](stack, seeds)
    return stack


@typechecked
def generate_config(scenario: Scenario, seeds: NameSeeds) -> ConfigDocument:
    """Synthesizes the configuration document of a scenario.

    Parameters:

    - scenario: Scenario to generate.
    - seeds: Unique names of the case.

    Returns: The ConfigDocument.
    """

    with SYNTH_LOCK:
        app = cdk.App(analytics_reporting=False)
        stack = build_stack(app, scenario, seeds)
        template = app.synth().get_stack_by_name(stack.stack_name).template
    LOGGER.debug("Generated %s configuration with %d resources", scenario, len(template.get("Resources", {})))
    return ConfigDocument(scenario=scenario, template=template)


def config_for(scenario: Scenario, seeds: NameSeeds) -> Callable[[], ConfigDocument]:
    """Returns a deferred generator of the scenario, evaluated when the step is applied."""
    return partial(generate_config, scenario, seeds)
