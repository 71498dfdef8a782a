"""CloudFormation as the declarative engine.

Apply creates or updates a stack, import reads a single resource through
the Cloud Control API, plan runs drift detection and destroy deletes the
stack.
"""

from __future__ import annotations

import json
import logging

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from botocore.exceptions import ClientError, WaiterError
from tenacity import retry, retry_if_result, stop_after_delay, wait_fixed

from apigw_authorizer_conformance.authorizer import AUTHORIZER_TYPE_NAME, TRACKED_STATE_OUTPUT_SUFFIX
from apigw_authorizer_conformance.exceptions import EngineError
from apigw_authorizer_conformance.state import Plan, ResourceChange, TrackedResource, TrackedState

if TYPE_CHECKING:
    from apigw_authorizer_conformance.generator import ConfigDocument

LOGGER = logging.getLogger(__name__)

CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]
NO_UPDATES_MESSAGE = "No updates are to be performed"
FAILED_EVENT_STATUSES = ("CREATE_FAILED", "UPDATE_FAILED", "DELETE_FAILED")
OPERATION_START_STATUSES = ("CREATE_IN_PROGRESS", "UPDATE_IN_PROGRESS", "DELETE_IN_PROGRESS")
STACK_RESOURCE_TYPE = "AWS::CloudFormation::Stack"
DRIFTED_STATUSES = {"DELETED": "create", "MODIFIED": "update"}


class DeclarativeEngine(Protocol):
    """What the verifier needs from a declarative engine."""

    def apply(self, stack_name: str, document: ConfigDocument) -> TrackedState: ...

    def state(self, stack_name: str) -> TrackedState: ...

    def import_state(self, type_name: str, import_id: str) -> TrackedResource: ...

    def plan(self, stack_name: str) -> Plan: ...

    def destroy(self, stack_name: str) -> None: ...


def _authorizer_identifier(import_id: str) -> str:
    rest_api_id, sep, authorizer_id = import_id.partition("/")
    if not sep or not rest_api_id or not authorizer_id:
        raise EngineError(f"Unexpected format of ID ({import_id!r}), expected REST-API-ID/AUTHORIZER-ID")
    return f"{rest_api_id}|{authorizer_id}"


def _authorizer_attributes(properties: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": properties.get("AuthorizerId"),
        "rest_api_id": properties.get("RestApiId"),
        "name": properties.get("Name"),
        "type": properties.get("Type"),
        "authorizer_uri": properties.get("AuthorizerUri"),
        "authorizer_credentials": properties.get("AuthorizerCredentials"),
        "identity_source": properties.get("IdentitySource"),
        "authorizer_result_ttl_in_seconds": properties.get("AuthorizerResultTtlInSeconds"),
        "identity_validation_expression": properties.get("IdentityValidationExpression"),
        "provider_arns": properties.get("ProviderARNs"),
    }


# Cloud Control identifier format and property mapping per importable type.
IMPORTERS: dict[str, tuple[Callable[[str], str], Callable[[Mapping[str, Any]], dict[str, Any]]]] = {
    AUTHORIZER_TYPE_NAME: (_authorizer_identifier, _authorizer_attributes),
}


class CloudFormationEngine:
    """Declarative engine backed by CloudFormation stacks.

    Parameters:
        cloudformation: boto3 CloudFormation client.
        cloudcontrol: boto3 Cloud Control API client.
        stack_timeout_minutes: Upper bound for stack create, update and delete.
        drift_timeout_seconds: Upper bound for drift detection.
    """

    def __init__(
        self, cloudformation, cloudcontrol, stack_timeout_minutes: int = 30, drift_timeout_seconds: int = 300
    ):
        self.cloudformation = cloudformation
        self.cloudcontrol = cloudcontrol
        self.stack_timeout_minutes = stack_timeout_minutes
        self.drift_timeout_seconds = drift_timeout_seconds

    def _waiter_config(self) -> dict[str, int]:
        delay = 10
        return {"Delay": delay, "MaxAttempts": max(1, self.stack_timeout_minutes * 60 // delay)}

    def stack_exists(self, stack_name: str) -> bool:
        try:
            stacks = self.cloudformation.describe_stacks(StackName=stack_name)["Stacks"]
        except ClientError as exc:
            if "does not exist" in exc.response.get("Error", {}).get("Message", ""):
                return False
            raise
        return any(stack["StackStatus"] != "DELETE_COMPLETE" for stack in stacks)

    def failure_reason(self, stack_name: str) -> str:
        """Returns the reason of the earliest failed event of the most recent stack operation.

        Events are listed newest first, so the scan stops at the stack event
        that started the operation. Later failures are usually cancellations
        caused by the earliest one.
        """
        reason = "unknown failure"
        events = self.cloudformation.describe_stack_events(StackName=stack_name)["StackEvents"]
        for event in events:
            if (
                event.get("ResourceType") == STACK_RESOURCE_TYPE
                and event.get("LogicalResourceId") == stack_name
                and event.get("ResourceStatus") in OPERATION_START_STATUSES
            ):
                break
            if event.get("ResourceStatus") in FAILED_EVENT_STATUSES and event.get("ResourceStatusReason"):
                reason = f"{event['LogicalResourceId']}: {event['ResourceStatusReason']}"
        return reason

    def apply(self, stack_name: str, document: ConfigDocument) -> TrackedState:
        """Creates the stack or updates it to the given document.

        Parameters:
            stack_name: Name of the stack.
            document: Configuration to converge to.

        Returns:
            TrackedState read back after the operation completed.

        Raises:
            EngineError: If CloudFormation rejects the template or the stack
            operation fails. The message carries the failed resource and reason.
        """

        arguments = {"StackName": stack_name, "TemplateBody": document.body, "Capabilities": CAPABILITIES}
        exists = self.stack_exists(stack_name)
        action = "Updating" if exists else "Creating"
        LOGGER.info("%s stack %s with %s configuration", action, stack_name, document.scenario)

        try:
            if exists:
                self.cloudformation.update_stack(**arguments)
            else:
                self.cloudformation.create_stack(**arguments)
        except ClientError as exc:
            message = exc.response.get("Error", {}).get("Message", str(exc))
            if exists and NO_UPDATES_MESSAGE in message:
                LOGGER.info("Stack %s is already up to date", stack_name)
                return self.state(stack_name)
            raise EngineError(message, stack_name=stack_name) from exc

        waiter_name = "stack_update_complete" if exists else "stack_create_complete"
        try:
            self.cloudformation.get_waiter(waiter_name).wait(StackName=stack_name, WaiterConfig=self._waiter_config())
        except WaiterError as exc:
            raise EngineError(self.failure_reason(stack_name), stack_name=stack_name) from exc

        return self.state(stack_name)

    def state(self, stack_name: str) -> TrackedState:
        """Reads the tracked state of a stack.

        Resource ids come from the stack resources. Attributes come from the
        tracked state outputs written by the constructs.
        """

        stack = self.cloudformation.describe_stacks(StackName=stack_name)["Stacks"][0]
        attributes_by_address: dict[str, dict[str, Any]] = {}
        for output in stack.get("Outputs", []):
            if output["OutputKey"].endswith(TRACKED_STATE_OUTPUT_SUFFIX):
                attributes = json.loads(output["OutputValue"])
                attributes_by_address[attributes.pop("address")] = attributes

        resources = {}
        stack_resources = self.cloudformation.describe_stack_resources(StackName=stack_name)["StackResources"]
        for stack_resource in stack_resources:
            address = stack_resource["LogicalResourceId"]
            attributes = attributes_by_address.get(address, {})
            attributes.pop("type_name", None)
            attributes.pop("id", None)
            resources[address] = TrackedResource(
                address=address,
                type_name=stack_resource["ResourceType"],
                id=stack_resource.get("PhysicalResourceId", ""),
                attributes=attributes,
            )
        return TrackedState(stack_name=stack_name, resources=resources)

    def import_state(self, type_name: str, import_id: str) -> TrackedResource:
        """Reads a resource by its import id into a fresh tracked resource.

        Parameters:
            type_name: CloudFormation type name of the resource.
            import_id: Composite id, e.g. ``<rest_api_id>/<authorizer_id>``.

        Returns:
            TrackedResource built only from what the API reports.
        """

        try:
            to_identifier, to_attributes = IMPORTERS[type_name]
        except KeyError:
            raise EngineError(f"Import of {type_name} is not supported") from None

        identifier = to_identifier(import_id)
        LOGGER.info("Importing %s %s", type_name, import_id)
        try:
            response = self.cloudcontrol.get_resource(TypeName=type_name, Identifier=identifier)
        except ClientError as exc:
            raise EngineError(exc.response.get("Error", {}).get("Message", str(exc))) from exc

        properties = json.loads(response["ResourceDescription"]["Properties"])
        attributes = to_attributes(properties)
        return TrackedResource(
            address=f"import.{type_name}",
            type_name=type_name,
            id=attributes.pop("id") or "",
            attributes=attributes,
        )

    def plan(self, stack_name: str) -> Plan:
        """Computes the difference between tracked and actual state.

        A resource deleted behind the engine's back shows up as a change with
        action ``create``, a modified one as ``update``.
        """

        detection_id = self.cloudformation.detect_stack_drift(StackName=stack_name)["StackDriftDetectionId"]
        status = self._wait_for_drift_detection(detection_id)
        if status["DetectionStatus"] == "DETECTION_FAILED":
            raise EngineError(status.get("DetectionStatusReason", "drift detection failed"), stack_name=stack_name)

        drifts = self.cloudformation.describe_stack_resource_drifts(
            StackName=stack_name,
            StackResourceDriftStatusFilters=list(DRIFTED_STATUSES),
        )["StackResourceDrifts"]
        changes = tuple(
            ResourceChange(
                address=drift["LogicalResourceId"],
                type_name=drift["ResourceType"],
                action=DRIFTED_STATUSES[drift["StackResourceDriftStatus"]],
            )
            for drift in drifts
        )
        LOGGER.info("Plan for %s has %d change(s)", stack_name, len(changes))
        return Plan(stack_name=stack_name, changes=changes)

    def _wait_for_drift_detection(self, detection_id: str) -> dict:
        @retry(
            stop=stop_after_delay(self.drift_timeout_seconds),
            wait=wait_fixed(5),
            retry=retry_if_result(lambda status: status["DetectionStatus"] == "DETECTION_IN_PROGRESS"),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        def describe_status() -> dict:
            return self.cloudformation.describe_stack_drift_detection_status(StackDriftDetectionId=detection_id)

        status = describe_status()
        if status["DetectionStatus"] == "DETECTION_IN_PROGRESS":
            raise EngineError(f"Drift detection {detection_id} did not finish in {self.drift_timeout_seconds}s")
        return status

    def destroy(self, stack_name: str) -> None:
        """Deletes the stack, doing nothing when it doesn't exist."""
        if not self.stack_exists(stack_name):
            LOGGER.info("Stack %s does not exist, nothing to destroy", stack_name)
            return

        LOGGER.info("Destroying stack %s", stack_name)
        self.cloudformation.delete_stack(StackName=stack_name)
        try:
            self.cloudformation.get_waiter("stack_delete_complete").wait(
                StackName=stack_name, WaiterConfig=self._waiter_config()
            )
        except WaiterError as exc:
            raise EngineError(self.failure_reason(stack_name), stack_name=stack_name) from exc
