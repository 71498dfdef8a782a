"""Acceptance cases for the API Gateway authorizer."""

from __future__ import annotations

import re

from collections.abc import Callable

from apigw_authorizer_conformance.checks import (
    check_attr,
    check_disappears,
    check_exists,
    check_not_recreated,
    compose,
)
from apigw_authorizer_conformance.expectations import Absent, Count, Exact, Pattern
from apigw_authorizer_conformance.generator import NameSeeds, Scenario, config_for
from apigw_authorizer_conformance.resource_spec import ResourceSpec
from apigw_authorizer_conformance.schemas.authorizer_vars import (
    DEFAULT_AUTHORIZER_TTL,
    DEFAULT_IDENTITY_SOURCE,
    AuthorizerType,
    ConformanceVars,
)
from apigw_authorizer_conformance.stacks.authorizer_stack import AUTHORIZER_LOGICAL_ID
from apigw_authorizer_conformance.utils import stack_name_for
from apigw_authorizer_conformance.verifier import ConformanceCase, LifecycleStep

ADDRESS = AUTHORIZER_LOGICAL_ID


def expected_authorizer_uri(seeds: NameSeeds) -> Pattern:
    return Pattern(
        "arn:aws:apigateway:[a-z0-9-]+:lambda:path/2015-03-31/functions/"
        f"arn:aws:lambda:[a-z0-9-]+:[0-9]{{12}}:function:{re.escape(seeds.lambda_name)}/invocations"
    )


def expected_credentials(seeds: NameSeeds) -> Pattern:
    return Pattern(f"arn:aws:iam::[0-9]{{12}}:role/{re.escape(seeds.api_name)}_auth_invocation_role")


def import_step() -> LifecycleStep:
    return LifecycleStep(import_state=True, resource_address=ADDRESS)


def lambda_spec(seeds: NameSeeds) -> ResourceSpec:
    return ResourceSpec(
        name=ADDRESS,
        type=AuthorizerType.TOKEN,
        expected={
            "authorizer_uri": expected_authorizer_uri(seeds),
            "identity_source": Exact(DEFAULT_IDENTITY_SOURCE),
            "name": Exact(seeds.authorizer_name),
            "authorizer_credentials": expected_credentials(seeds),
            "authorizer_result_ttl_in_seconds": Exact(DEFAULT_AUTHORIZER_TTL),
            "identity_validation_expression": Absent(),
        },
    )


def lambda_update_spec(seeds: NameSeeds) -> ResourceSpec:
    return ResourceSpec(
        name=ADDRESS,
        type=AuthorizerType.TOKEN,
        expected={
            "authorizer_uri": expected_authorizer_uri(seeds),
            "identity_source": Exact(DEFAULT_IDENTITY_SOURCE),
            "name": Exact(f"{seeds.authorizer_name}_modified"),
            "authorizer_credentials": expected_credentials(seeds),
            "authorizer_result_ttl_in_seconds": Exact(360),
            "identity_validation_expression": Exact(".*"),
        },
    )


def basic_case(seeds: NameSeeds, stack_name: str) -> ConformanceCase:
    """Create, import and update a lambda TOKEN authorizer, checking every field."""
    return ConformanceCase(
        name="basic",
        stack_name=stack_name,
        steps=[
            LifecycleStep(config=config_for(Scenario.LAMBDA, seeds), checks=tuple(lambda_spec(seeds).checks())),
            import_step(),
            LifecycleStep(
                config=config_for(Scenario.LAMBDA_UPDATE, seeds),
                checks=compose(lambda_update_spec(seeds).checks(), check_not_recreated(ADDRESS)),
            ),
        ],
    )


def cognito_case(seeds: NameSeeds, stack_name: str) -> ConformanceCase:
    """Cognito authorizer with two user pools, updated to three."""
    return ConformanceCase(
        name="cognito",
        stack_name=stack_name,
        steps=[
            LifecycleStep(
                config=config_for(Scenario.COGNITO, seeds),
                checks=compose(
                    check_attr(ADDRESS, "name", Exact(f"{seeds.authorizer_name}-cognito")),
                    check_attr(ADDRESS, "provider_arns", Count(2)),
                ),
            ),
            import_step(),
            LifecycleStep(
                config=config_for(Scenario.COGNITO_UPDATE, seeds),
                checks=compose(
                    check_attr(ADDRESS, "name", Exact(f"{seeds.authorizer_name}-cognito-update")),
                    check_attr(ADDRESS, "provider_arns", Count(3)),
                    check_not_recreated(ADDRESS),
                ),
            ),
        ],
    )


def switch_auth_type_case(seeds: NameSeeds, stack_name: str) -> ConformanceCase:
    """TOKEN to COGNITO_USER_POOLS and back, fields of the other type are dropped each time."""
    return ConformanceCase(
        name="switch_auth_type",
        stack_name=stack_name,
        steps=[
            LifecycleStep(
                config=config_for(Scenario.LAMBDA, seeds),
                checks=compose(
                    check_attr(ADDRESS, "name", Exact(seeds.authorizer_name)),
                    check_attr(ADDRESS, "type", Exact("TOKEN")),
                    check_attr(ADDRESS, "authorizer_uri", expected_authorizer_uri(seeds)),
                    check_attr(ADDRESS, "authorizer_credentials", expected_credentials(seeds)),
                ),
            ),
            import_step(),
            LifecycleStep(
                config=config_for(Scenario.COGNITO, seeds),
                checks=compose(
                    check_attr(ADDRESS, "name", Exact(f"{seeds.authorizer_name}-cognito")),
                    check_attr(ADDRESS, "type", Exact("COGNITO_USER_POOLS")),
                    check_attr(ADDRESS, "provider_arns", Count(2)),
                    check_attr(ADDRESS, "authorizer_uri", Absent()),
                ),
            ),
            LifecycleStep(
                config=config_for(Scenario.LAMBDA_UPDATE, seeds),
                checks=compose(
                    check_attr(ADDRESS, "name", Exact(f"{seeds.authorizer_name}_modified")),
                    check_attr(ADDRESS, "type", Exact("TOKEN")),
                    check_attr(ADDRESS, "authorizer_uri", expected_authorizer_uri(seeds)),
                    check_attr(ADDRESS, "authorizer_credentials", expected_credentials(seeds)),
                ),
            ),
        ],
    )


def switch_authorizer_ttl_case(seeds: NameSeeds, stack_name: str) -> ConformanceCase:
    """Default TTL, explicit TTL, zero TTL and back to the default."""

    def ttl_step(scenario: Scenario, ttl: int) -> LifecycleStep:
        return LifecycleStep(
            config=config_for(scenario, seeds),
            checks=compose(check_exists(ADDRESS), check_attr(ADDRESS, "authorizer_result_ttl_in_seconds", Exact(ttl))),
        )

    return ConformanceCase(
        name="switch_authorizer_ttl",
        stack_name=stack_name,
        steps=[
            ttl_step(Scenario.LAMBDA, DEFAULT_AUTHORIZER_TTL),
            import_step(),
            ttl_step(Scenario.LAMBDA_UPDATE, 360),
            ttl_step(Scenario.LAMBDA_NO_CACHE, 0),
            ttl_step(Scenario.LAMBDA, DEFAULT_AUTHORIZER_TTL),
        ],
    )


def auth_type_validation_case(seeds: NameSeeds, stack_name: str) -> ConformanceCase:
    """Configurations missing the field their type requires are rejected."""
    return ConformanceCase(
        name="auth_type_validation",
        stack_name=stack_name,
        steps=[
            LifecycleStep(
                config=config_for(Scenario.INVALID_DEFAULT_TOKEN, seeds),
                expect_error=r"authorizer_uri must be set non-empty when authorizer type is TOKEN",
            ),
            LifecycleStep(
                config=config_for(Scenario.INVALID_REQUEST, seeds),
                expect_error=r"authorizer_uri must be set non-empty when authorizer type is REQUEST",
            ),
            LifecycleStep(
                config=config_for(Scenario.INVALID_COGNITO, seeds),
                expect_error=r"provider_arns must be set non-empty when authorizer type is COGNITO_USER_POOLS",
            ),
        ],
    )


def disappears_case(seeds: NameSeeds, stack_name: str) -> ConformanceCase:
    """An authorizer deleted out of band shows up in the next plan."""
    return ConformanceCase(
        name="disappears",
        stack_name=stack_name,
        steps=[
            LifecycleStep(
                config=config_for(Scenario.LAMBDA, seeds),
                checks=(check_exists(ADDRESS), check_disappears(ADDRESS)),
                expect_non_empty_plan=True,
                expect_planned_changes=((ADDRESS, "create"),),
            ),
        ],
    )


CASES: dict[str, Callable[[NameSeeds, str], ConformanceCase]] = {
    "basic": basic_case,
    "cognito": cognito_case,
    "switch_auth_type": switch_auth_type_case,
    "switch_authorizer_ttl": switch_authorizer_ttl_case,
    "auth_type_validation": auth_type_validation_case,
    "disappears": disappears_case,
}


def build_case(name: str, conformance_vars: ConformanceVars) -> ConformanceCase:
    """Builds a case with fresh unique names.

    Parameters:
        name: Key of the case in CASES.
        conformance_vars: The validated configuration.

    Returns:
        The ConformanceCase.
    """

    seeds = NameSeeds.random(conformance_vars.name_prefix)
    return CASES[name](seeds, stack_name_for(conformance_vars.stack_prefix, name))
