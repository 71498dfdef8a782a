"""Clients shared by the steps of one case.

Every case gets its own context, built from its own boto3 session, so
cases can run in parallel without hidden shared state.
"""

from __future__ import annotations

import logging

from collections.abc import Iterable
from dataclasses import dataclass, field

import boto3

from botocore.config import Config

from apigw_authorizer_conformance.engine import CloudFormationEngine, DeclarativeEngine
from apigw_authorizer_conformance.exceptions import StateInconsistencyError
from apigw_authorizer_conformance.remote import AuthorizerResourceType, RemoteResourceType
from apigw_authorizer_conformance.schemas.authorizer_vars import ConformanceVars

LOGGER = logging.getLogger(__name__)


@dataclass
class ConformanceContext:
    """Engine and remote resource types used by a case.

    Attributes:
        engine: The declarative engine.
        resource_types: Remote capability per CloudFormation type name.
        sts: Optional STS client used by the pre-check.
    """

    engine: DeclarativeEngine
    resource_types: dict[str, RemoteResourceType] = field(default_factory=dict)
    sts: object | None = None

    @classmethod
    def create(cls, engine: DeclarativeEngine, resource_types: Iterable[RemoteResourceType], sts=None):
        return cls(engine=engine, resource_types={rt.type_name: rt for rt in resource_types}, sts=sts)

    @classmethod
    def from_vars(cls, conformance_vars: ConformanceVars) -> ConformanceContext:
        """Builds a context talking to AWS.

        Parameters:

        - conformance_vars: The validated configuration.

        Returns: The ConformanceContext with fresh clients.
        """

        session = boto3.session.Session(region_name=conformance_vars.region)
        boto3_config = Config(region_name=conformance_vars.region)
        engine = CloudFormationEngine(
            cloudformation=session.client("cloudformation", config=boto3_config),
            cloudcontrol=session.client("cloudcontrol", config=boto3_config),
            stack_timeout_minutes=conformance_vars.stack_timeout_minutes,
            drift_timeout_seconds=conformance_vars.drift_timeout_seconds,
        )
        return cls.create(
            engine=engine,
            resource_types=[AuthorizerResourceType(session.client("apigateway", config=boto3_config))],
            sts=session.client("sts", config=boto3_config),
        )

    def resource_type(self, type_name: str) -> RemoteResourceType:
        try:
            return self.resource_types[type_name]
        except KeyError:
            raise StateInconsistencyError(f"No remote capability registered for {type_name}") from None

    def pre_check(self) -> None:
        """Fails early when no usable credentials are configured."""
        if self.sts is None:
            return
        identity = self.sts.get_caller_identity()
        LOGGER.info("Running as %s in account %s", identity["Arn"], identity["Account"])
