"""Checks run after a lifecycle step.

A check is a callable taking the StepContext. It raises a
ConformanceError on failure and returns None otherwise.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from apigw_authorizer_conformance.context import ConformanceContext
from apigw_authorizer_conformance.exceptions import AttributeMismatchError, StateInconsistencyError
from apigw_authorizer_conformance.expectations import Matcher, check_value
from apigw_authorizer_conformance.remote import RemoteObject
from apigw_authorizer_conformance.state import TrackedResource, TrackedState


@dataclass(frozen=True, slots=True)
class StepContext:
    """What a check can see.

    Attributes:
        context: Clients of the running case.
        state: Tracked state after the step was applied.
        previous_state: Tracked state after the previous applied step, if any.
    """

    context: ConformanceContext
    state: TrackedState
    previous_state: TrackedState | None = None

    def tracked(self, address: str) -> TrackedResource:
        return self.state.resource(address)


Check = Callable[[StepContext], None]


def fetch_remote(step: StepContext, address: str) -> RemoteObject:
    """Fetches the remote object behind a tracked resource, fresh on every call."""
    tracked = step.tracked(address)
    tracked.require_id()
    return step.context.resource_type(tracked.type_name).fetch(tracked)


def check_exists(address: str) -> Check:
    """Fails if the resource has no tracked id or the remote fetch fails."""

    def check(step: StepContext) -> None:
        fetch_remote(step, address)

    return check


def check_remote_attr(address: str, field: str, matcher: Matcher) -> Check:
    """Compares one attribute of the remote object."""

    def check(step: StepContext) -> None:
        check_value(field, matcher, fetch_remote(step, address).attribute(field), source="remote")

    return check


def check_tracked_attr(address: str, field: str, matcher: Matcher) -> Check:
    """Compares one attribute kept in tracked state."""

    def check(step: StepContext) -> None:
        check_value(field, matcher, step.tracked(address).attribute(field), source="tracked")

    return check


def check_attr(address: str, field: str, matcher: Matcher) -> list[Check]:
    """Compares one attribute in both remote and tracked state."""
    return [check_remote_attr(address, field, matcher), check_tracked_attr(address, field, matcher)]


def check_attrs(address: str, expected: Mapping[str, Matcher]) -> list[Check]:
    checks: list[Check] = [check_exists(address)]
    for field, matcher in expected.items():
        checks.extend(check_attr(address, field, matcher))
    return checks


def check_not_recreated(address: str) -> Check:
    """Fails if the resource got a new id since the previous step."""

    def check(step: StepContext) -> None:
        if step.previous_state is None:
            raise StateInconsistencyError(f"No previous state to compare the id of {address} with")
        before = step.previous_state.resource(address).require_id()
        after = step.tracked(address).require_id()
        if before != after:
            raise AttributeMismatchError("id", repr(before), after, source="tracked")

    return check


def check_disappears(address: str) -> Check:
    """Deletes the remote object behind the engine's back.

    The step holding this check has to expect a non-empty plan.
    """

    def check(step: StepContext) -> None:
        tracked = step.tracked(address)
        tracked.require_id()
        step.context.resource_type(tracked.type_name).delete(tracked)

    return check


def compose(*checks: Check | Iterable[Check]) -> tuple[Check, ...]:
    """Flattens checks and lists of checks into one ordered tuple."""
    flat: list[Check] = []
    for item in checks:
        if callable(item):
            flat.append(item)
        else:
            flat.extend(item)
    return tuple(flat)
