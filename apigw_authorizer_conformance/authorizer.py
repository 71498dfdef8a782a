"""Opinionated CDK construct to create an API Gateway authorizer.

Defaults API Gateway would apply silently are written into the template
and the tracked state output.
"""

import aws_cdk as cdk
import aws_cdk.aws_apigateway as apigw

from constructs import Construct
from pydantic import ValidationError

from apigw_authorizer_conformance.exceptions import ConfigurationValidationError
from apigw_authorizer_conformance.schemas.authorizer_vars import AuthorizerProps, AuthorizerType

AUTHORIZER_TYPE_NAME = "AWS::ApiGateway::Authorizer"
TRACKED_STATE_OUTPUT_SUFFIX = "TrackedState"


def validate_authorizer_props(**props) -> AuthorizerProps:
    """Validates authorizer properties.

    Parameters:

    - props: Keyword arguments accepted by AuthorizerProps.

    Returns: The validated AuthorizerProps.

    Raises ConfigurationValidationError carrying the validation messages
    without pydantic's "Value error, " prefix.
    """

    try:
        return AuthorizerProps(**props)
    except ValidationError as exc:
        messages = [str(error["msg"]).removeprefix("Value error, ") for error in exc.errors()]
        raise ConfigurationValidationError("; ".join(messages)) from exc


class APIGatewayAuthorizer(Construct):
    """CDK API Gateway authorizer construct."""

    def __init__(self, scope: Construct, id: str):  # noqa: A002
        super().__init__(scope, id)

    def create_authorizer(self, logical_id: str, **kwargs) -> apigw.CfnAuthorizer:
        """Creates an API Gateway authorizer with explicit defaults.

        Parameters:

        - logical_id: Logical id of the authorizer in the template. It stays the
          same between configurations so the authorizer is updated in place.

        - kwargs: AuthorizerProps fields (name, rest_api_id, type, authorizer_uri,
          authorizer_credentials, identity_source, authorizer_result_ttl_in_seconds,
          identity_validation_expression, provider_arns).

        Returns: The created CfnAuthorizer.

        It validates the properties before touching the construct tree, so an
        invalid configuration never produces a template.

        It adds a stack output holding the tracked attributes as a JSON object.
        """

        props = validate_authorizer_props(**kwargs)
        is_cognito = props.type == AuthorizerType.COGNITO_USER_POOLS

        authorizer = apigw.CfnAuthorizer(
            self,
            id=logical_id,
            name=props.name,
            rest_api_id=props.rest_api_id,
            type=props.type.value,
            authorizer_uri=None if is_cognito else props.authorizer_uri,
            authorizer_credentials=None if is_cognito else props.authorizer_credentials,
            identity_source=props.identity_source,
            authorizer_result_ttl_in_seconds=props.authorizer_result_ttl_in_seconds,
            identity_validation_expression=props.identity_validation_expression,
            provider_arns=props.provider_arns if is_cognito else None,
        )
        authorizer.override_logical_id(logical_id)

        self.create_tracked_state_output(authorizer, logical_id, props)

        return authorizer

    def create_tracked_state_output(
        self, authorizer: apigw.CfnAuthorizer, logical_id: str, props: AuthorizerProps
    ) -> cdk.CfnOutput:
        """Exports the tracked attributes of the authorizer.

        Parameters:

        - authorizer: The authorizer to export.
        - logical_id: Its logical id.
        - props: The validated properties it was created with.

        Returns: The CfnOutput object.

        Unset optional fields are left out of the JSON document, so they read
        back as absent rather than as empty strings.
        """

        is_cognito = props.type == AuthorizerType.COGNITO_USER_POOLS
        attributes = {
            "address": logical_id,
            "type_name": AUTHORIZER_TYPE_NAME,
            "id": authorizer.ref,
            "rest_api_id": props.rest_api_id,
            "name": props.name,
            "type": props.type.value,
            "identity_source": props.identity_source,
            "authorizer_result_ttl_in_seconds": props.authorizer_result_ttl_in_seconds,
        }
        if props.authorizer_uri and not is_cognito:
            attributes["authorizer_uri"] = props.authorizer_uri
        if props.authorizer_credentials and not is_cognito:
            attributes["authorizer_credentials"] = props.authorizer_credentials
        if props.identity_validation_expression is not None:
            attributes["identity_validation_expression"] = props.identity_validation_expression
        if is_cognito:
            attributes["provider_arns"] = props.provider_arns

        output = cdk.CfnOutput(
            self,
            id=f"{logical_id}-tracked-state",
            value=cdk.Stack.of(self).to_json_string(attributes),
        )
        output.override_logical_id(f"{logical_id}{TRACKED_STATE_OUTPUT_SUFFIX}")
        return output
