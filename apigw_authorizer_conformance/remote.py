"""Direct access to remote objects, bypassing the declarative engine.

Every fetch goes to the API, nothing is cached.
"""

from __future__ import annotations

import logging

from dataclasses import dataclass
from typing import Any, Protocol

from botocore.exceptions import ClientError

from apigw_authorizer_conformance.authorizer import AUTHORIZER_TYPE_NAME
from apigw_authorizer_conformance.exceptions import RemoteNotFoundError, StateInconsistencyError
from apigw_authorizer_conformance.state import TrackedResource

LOGGER = logging.getLogger(__name__)

NOT_FOUND_ERROR_CODE = "NotFoundException"


class RemoteObject(Protocol):
    def attribute(self, name: str) -> Any: ...


class RemoteResourceType(Protocol):
    """Fetch and delete capability for one resource type."""

    type_name: str

    def fetch(self, tracked: TrackedResource) -> RemoteObject: ...

    def delete(self, tracked: TrackedResource) -> None: ...

    def import_id(self, tracked: TrackedResource) -> str: ...


@dataclass(frozen=True, slots=True)
class RemoteAuthorizer:
    """An authorizer as returned by API Gateway GetAuthorizer."""

    id: str
    name: str | None = None
    type: str | None = None
    authorizer_uri: str | None = None
    authorizer_credentials: str | None = None
    identity_source: str | None = None
    authorizer_result_ttl_in_seconds: int | None = None
    identity_validation_expression: str | None = None
    provider_arns: tuple[str, ...] | None = None
    auth_type: str | None = None

    @classmethod
    def from_response(cls, response: dict) -> RemoteAuthorizer:
        provider_arns = response.get("providerARNs")
        return cls(
            id=response["id"],
            name=response.get("name"),
            type=response.get("type"),
            authorizer_uri=response.get("authorizerUri"),
            authorizer_credentials=response.get("authorizerCredentials"),
            identity_source=response.get("identitySource"),
            authorizer_result_ttl_in_seconds=response.get("authorizerResultTtlInSeconds"),
            identity_validation_expression=response.get("identityValidationExpression"),
            provider_arns=tuple(provider_arns) if provider_arns is not None else None,
            auth_type=response.get("authType"),
        )

    def attribute(self, name: str) -> Any:
        return getattr(self, name)


def is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == NOT_FOUND_ERROR_CODE


class AuthorizerResourceType:
    """API Gateway authorizers, addressed by REST API id and authorizer id."""

    type_name = AUTHORIZER_TYPE_NAME

    def __init__(self, client):
        self.client = client

    @staticmethod
    def _key(tracked: TrackedResource) -> tuple[str, str]:
        authorizer_id = tracked.require_id()
        rest_api_id = tracked.attribute("rest_api_id")
        if not rest_api_id:
            raise StateInconsistencyError(f"No rest_api_id is set for {tracked.address}")
        return rest_api_id, authorizer_id

    def get(self, rest_api_id: str, authorizer_id: str) -> RemoteAuthorizer:
        """Fetches an authorizer, raising RemoteNotFoundError when it doesn't exist."""
        try:
            response = self.client.get_authorizer(restApiId=rest_api_id, authorizerId=authorizer_id)
        except ClientError as exc:
            if is_not_found(exc):
                raise RemoteNotFoundError(self.type_name, f"{rest_api_id}/{authorizer_id}") from exc
            raise
        return RemoteAuthorizer.from_response(response)

    def fetch(self, tracked: TrackedResource) -> RemoteAuthorizer:
        return self.get(*self._key(tracked))

    def delete(self, tracked: TrackedResource) -> None:
        rest_api_id, authorizer_id = self._key(tracked)
        LOGGER.info("Deleting authorizer %s of REST API %s out of band", authorizer_id, rest_api_id)
        self.client.delete_authorizer(restApiId=rest_api_id, authorizerId=authorizer_id)

    def import_id(self, tracked: TrackedResource) -> str:
        return "/".join(self._key(tracked))
