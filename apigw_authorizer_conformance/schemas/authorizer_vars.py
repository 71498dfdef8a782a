"""Validate variables against pydantic models."""

from enum import StrEnum
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt, model_validator

DEFAULT_AUTHORIZER_TTL = 300
DEFAULT_IDENTITY_SOURCE = "method.request.header.Authorization"


class AuthorizerType(StrEnum):
    """Authorizer types supported by API Gateway REST APIs."""

    TOKEN = "TOKEN"
    REQUEST = "REQUEST"
    COGNITO_USER_POOLS = "COGNITO_USER_POOLS"


class AuthorizerProps(BaseModel):
    """Defines the AuthorizerProps model.

    Attributes:

      - name (str): Name of the authorizer.

      - rest_api_id (str): Id (or CDK token) of the REST API the authorizer belongs to.

      - type (AuthorizerType): Authorizer type, TOKEN when not set.

      - authorizer_uri (str | None): Invoke URI of the backing function.
      required for TOKEN and REQUEST authorizers.

      - authorizer_credentials (str | None): Role API Gateway assumes to invoke the function.

      - identity_source (str): Request mapping expression of the identity.

      - authorizer_result_ttl_in_seconds (int): Cache TTL, 0 disables caching.

      - identity_validation_expression (str | None): Optional regular expression the
      incoming token has to match.

      - provider_arns (list[str]): Cognito user pool ARNs.
      required for COGNITO_USER_POOLS authorizers.

    Functionality:

      - Fills in the defaults API Gateway applies (type, identity source, ttl),
      so tracked state records them explicitly.
      - Rejects a function-backed authorizer without an URI and a Cognito authorizer
      without user pools.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    rest_api_id: str = Field(min_length=1)
    type: AuthorizerType = AuthorizerType.TOKEN
    authorizer_uri: str | None = None
    authorizer_credentials: str | None = None
    identity_source: str = DEFAULT_IDENTITY_SOURCE
    authorizer_result_ttl_in_seconds: NonNegativeInt = Field(default=DEFAULT_AUTHORIZER_TTL, le=3600)
    identity_validation_expression: str | None = None
    provider_arns: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_type_requirements(self) -> Self:
        if self.type in (AuthorizerType.TOKEN, AuthorizerType.REQUEST) and not self.authorizer_uri:
            raise ValueError(f"authorizer_uri must be set non-empty when authorizer type is {self.type}")
        if self.type == AuthorizerType.COGNITO_USER_POOLS and not self.provider_arns:
            raise ValueError(f"provider_arns must be set non-empty when authorizer type is {self.type}")
        return self


class ConformanceVars(BaseModel):
    """Defines the ConformanceVars model.

    Attributes:

      - region (str): AWS region the cases run in.

      - stack_prefix (str): Prefix of the CloudFormation stack created per case.

      - name_prefix (str): Prefix of the generated resource names.

      - stack_timeout_minutes (PositiveInt): How long to wait for a stack operation.

      - drift_timeout_seconds (PositiveInt): How long to wait for drift detection.

      - log_level (Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]):
        The log level to use.
    """

    region: str = Field(min_length=1)
    stack_prefix: str = Field(default="authorizer-conformance", pattern=r"^[A-Za-z][A-Za-z0-9-]*$")
    name_prefix: str = Field(default="acctest", pattern=r"^[A-Za-z][A-Za-z0-9-]*$")
    stack_timeout_minutes: PositiveInt = 30
    drift_timeout_seconds: PositiveInt = 300
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
