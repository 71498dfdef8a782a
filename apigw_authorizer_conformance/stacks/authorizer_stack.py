"""Stacks holding an authorizer and the objects it depends on."""

import aws_cdk as cdk
import aws_cdk.aws_apigateway as apigw
import aws_cdk.aws_cognito as cognito
import aws_cdk.aws_iam as iam
import aws_cdk.aws_lambda as lmb

from constructs import Construct

from apigw_authorizer_conformance.authorizer import APIGatewayAuthorizer

AUTHORIZER_LOGICAL_ID = "acctest"

AUTHORIZER_FUNCTION_CODE = """\
def handler(event, context):
    return {
        "principalId": "user",
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [{"Action": "execute-api:Invoke", "Effect": "Allow", "Resource": event["methodArn"]}],
        },
    }
"""


class AuthorizerStack(cdk.Stack):
    """Stack with a REST API and a single authorizer attached to it.

    The REST API and the authorizer always get the same logical ids, so
    deploying another configuration of this stack modifies them in place.

    Parameters:

    - scope: The CDK scope constructing this stack.
    - construct_id: ID for the stack construct.
    - api_name: Name of the REST API.
    - **kwargs: Additional stack options.
    """

    def __init__(self, scope: Construct, construct_id: str, api_name: str, **kwargs) -> None:
        kwargs.setdefault("synthesizer", cdk.BootstraplessSynthesizer())
        super().__init__(scope, construct_id, **kwargs)

        self.rest_api = apigw.CfnRestApi(self, "RestApi", name=api_name)
        self.rest_api.override_logical_id("RestApi")
        self.authorizer_construct = APIGatewayAuthorizer(self, id="authorizer")

    def add_lambda_backend(self, api_name: str, lambda_name: str) -> lmb.Function:
        """Adds the function backing a TOKEN or REQUEST authorizer.

        Parameters:

        - api_name: Name of the REST API, used to name the IAM roles.
        - lambda_name: Name of the authorizer function.

        Returns: The authorizer function.

        It creates the role API Gateway assumes to invoke the function, its
        invocation policy, the function execution role and the function.
        """

        self.invocation_role = iam.Role(
            self,
            "InvocationRole",
            role_name=f"{api_name}_auth_invocation_role",
            path="/",
            assumed_by=iam.ServicePrincipal("apigateway.amazonaws.com"),  # type: ignore
        )
        lambda_role = iam.Role(
            self,
            "LambdaRole",
            role_name=f"{api_name}_authorizer_lambda",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),  # type: ignore
        )
        self.function = lmb.Function(
            self,
            "AuthorizerFunction",
            function_name=lambda_name,
            role=lambda_role,  # type: ignore
            handler="index.handler",
            runtime=lmb.Runtime.PYTHON_3_13,  # type: ignore
            code=lmb.Code.from_inline(AUTHORIZER_FUNCTION_CODE),
        )
        iam.Policy(
            self,
            "InvocationPolicy",
            policy_name="default",
            roles=[self.invocation_role],  # type: ignore
            statements=[
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["lambda:InvokeFunction"],
                    resources=[self.function.function_arn],
                )
            ],
        )
        return self.function

    def add_user_pools(self, construct_prefix: str, names: list[str]) -> list[cognito.CfnUserPool]:
        """Adds Cognito user pools.

        Parameters:

        - construct_prefix: Prefix of the pool construct ids.
        - names: Pool names, one pool per name.

        Returns: The created user pools.
        """

        return [
            cognito.CfnUserPool(self, f"{construct_prefix}{index}", user_pool_name=name)
            for index, name in enumerate(names)
        ]

    @property
    def invoke_arn(self) -> str:
        """Invoke URI of the authorizer function."""
        return (
            f"arn:{cdk.Aws.PARTITION}:apigateway:{cdk.Aws.REGION}:lambda:path/2015-03-31/functions/"
            f"{self.function.function_arn}/invocations"
        )

    def add_authorizer(self, **kwargs) -> apigw.CfnAuthorizer:
        """Adds the authorizer under test to the REST API."""
        return self.authorizer_construct.create_authorizer(
            AUTHORIZER_LOGICAL_ID, rest_api_id=self.rest_api.ref, **kwargs
        )
