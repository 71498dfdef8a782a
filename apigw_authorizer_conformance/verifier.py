"""Lifecycle verifier.

Runs the steps of a case strictly in order against a live backend:

    INIT -> (apply, check)* -> [import, check] -> (apply, check)* -> DESTROY-CHECK

The first failing step ends the case, the remaining steps are skipped.
Cleanup (destroy and destroy check) runs in every case.
"""

from __future__ import annotations

import logging
import re

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from apigw_authorizer_conformance.authorizer import AUTHORIZER_TYPE_NAME
from apigw_authorizer_conformance.checks import Check, StepContext
from apigw_authorizer_conformance.context import ConformanceContext
from apigw_authorizer_conformance.exceptions import (
    ConfigurationValidationError,
    ConformanceError,
    DestroyCheckError,
    EngineError,
    ExpectedErrorMismatch,
    PlanError,
    RemoteNotFoundError,
    StateInconsistencyError,
)
from apigw_authorizer_conformance.expectations import Absent, Exact, check_value
from apigw_authorizer_conformance.state import TrackedResource, TrackedState

if TYPE_CHECKING:
    from apigw_authorizer_conformance.generator import ConfigDocument

LOGGER = logging.getLogger(__name__)


class CaseStatus(StrEnum):
    PASSED = auto()
    FAILED = auto()


@dataclass(frozen=True, slots=True)
class LifecycleStep:
    """One transition of a case.

    Attributes:
        config: Deferred configuration to apply. Not used by import steps.
        checks: Checks run after a successful apply.
        expect_error: Pattern the apply error has to match. The step fails
            if the apply succeeds or fails with another message.
        import_state: Re-import ``resource_address`` and compare it with
            the tracked state instead of applying anything.
        resource_address: Address to import.
        import_verify_ignore: Attributes left out of the import comparison.
        expect_non_empty_plan: Require the plan after the checks to report
            changes, e.g. after an out-of-band deletion.
        expect_planned_changes: (address, action) pairs the plan has to
            contain, e.g. ("acctest", "create") for a deleted authorizer.
    """

    config: Callable[[], ConfigDocument] | None = None
    checks: tuple[Check, ...] = ()
    expect_error: str | None = None
    import_state: bool = False
    resource_address: str | None = None
    import_verify_ignore: tuple[str, ...] = ()
    expect_non_empty_plan: bool = False
    expect_planned_changes: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        if self.import_state:
            if not self.resource_address:
                raise ValueError("an import step needs a resource_address")
            if self.config is not None or self.expect_error is not None:
                raise ValueError("an import step doesn't apply a configuration")
        elif self.config is None:
            raise ValueError("a step needs either a config or import_state")
        if self.expect_planned_changes and not self.expect_non_empty_plan:
            raise ValueError("expect_planned_changes requires expect_non_empty_plan")

    @property
    def kind(self) -> str:
        if self.import_state:
            return "import"
        return "expect-error" if self.expect_error is not None else "apply"


@dataclass(frozen=True, slots=True)
class ConformanceCase:
    """A named, ordered list of steps run against one stack.

    Attributes:
        name: Case name.
        stack_name: Unique stack name, cases share one account.
        steps: Steps in the order they run.
        destroy_check_type: Tracked resources of this type must be gone after destroy.
    """

    name: str
    stack_name: str
    steps: Sequence[LifecycleStep]
    destroy_check_type: str = AUTHORIZER_TYPE_NAME


@dataclass
class CaseResult:
    """Outcome of a case.

    Attributes:
        name: Case name.
        status: PASSED or FAILED.
        steps_run: Number of steps that completed.
        failure: First error that ended the case.
        cleanup_error: Error raised by the cleanup after a failure.
    """

    name: str
    status: CaseStatus = CaseStatus.PASSED
    steps_run: int = 0
    failure: Exception | None = None
    cleanup_error: Exception | None = field(default=None)

    @property
    def passed(self) -> bool:
        return self.status == CaseStatus.PASSED

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure


class LifecycleVerifier:
    """Runs cases against the engine and remote API held by a context."""

    def __init__(self, context: ConformanceContext):
        self.context = context
        self.last_state: TrackedState | None = None

    def run(self, case: ConformanceCase) -> CaseResult:
        """Runs all steps of a case, then destroys and verifies the destroy.

        Parameters:
            case: The case to run.

        Returns:
            CaseResult, FAILED with the first error if any step, check or the
            destroy check failed.
        """

        result = CaseResult(name=case.name)
        self.last_state = None
        LOGGER.info("Running case %s on stack %s", case.name, case.stack_name)

        try:
            self.context.pre_check()
            for index, step in enumerate(case.steps, start=1):
                LOGGER.info("Case %s step %d/%d (%s)", case.name, index, len(case.steps), step.kind)
                if step.import_state:
                    self.import_and_verify(step, self.last_state)
                else:
                    self.apply_and_check(case.stack_name, step, self.last_state)
                result.steps_run = index
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Case %s failed at step %d: %s", case.name, result.steps_run + 1, exc)
            result.status = CaseStatus.FAILED
            result.failure = exc

        try:
            self.context.engine.destroy(case.stack_name)
            self.check_destroyed(self.last_state, case.destroy_check_type)
        except Exception as exc:  # noqa: BLE001
            if result.failure is None:
                LOGGER.error("Destroy check of case %s failed: %s", case.name, exc)
                result.status = CaseStatus.FAILED
                result.failure = exc
            else:
                LOGGER.error("Cleanup of failed case %s also failed: %s", case.name, exc)
                result.cleanup_error = exc

        LOGGER.info("Case %s %s", case.name, result.status.upper())
        return result

    def apply_and_check(
        self, stack_name: str, step: LifecycleStep, state: TrackedState | None
    ) -> TrackedState | None:
        """Applies the configuration of a step and runs its checks.

        Parameters:
            stack_name: Stack of the case.
            step: The step to run.
            state: Tracked state after the previous apply, if any.

        Returns:
            The new tracked state, or the unchanged one for an expect-error step.

        Raises:
            ExpectedErrorMismatch: If an expect-error step didn't fail as expected.
            ConformanceError: If a check failed or the engine reported an unexpected error.
        """

        error: ConformanceError | None = None
        new_state = state
        try:
            document = step.config()
            new_state = self.context.engine.apply(stack_name, document)
            self.last_state = new_state
        except (ConfigurationValidationError, EngineError) as exc:
            if step.expect_error is None:
                raise
            error = exc

        if step.expect_error is not None:
            if error is None or not re.search(step.expect_error, str(error)):
                raise ExpectedErrorMismatch(step.expect_error, error)
            LOGGER.info("Got the expected error: %s", error)
            return state

        step_context = StepContext(context=self.context, state=new_state, previous_state=state)
        for check in step.checks:
            check(step_context)

        if step.expect_non_empty_plan:
            plan = self.context.engine.plan(stack_name)
            if plan.is_empty:
                raise PlanError("Expected a non-empty plan, but got an empty plan")
            planned = ", ".join(f"{c.action} {c.address}" for c in plan.changes)
            LOGGER.info("Plan reports %s", planned)
            actual = {(c.address, c.action) for c in plan.changes}
            for address, action in step.expect_planned_changes:
                if (address, action) not in actual:
                    raise PlanError(f"Expected the plan to {action} {address}, but it reports: {planned}")

        return new_state

    def import_and_verify(self, step: LifecycleStep, state: TrackedState | None) -> TrackedResource:
        """Re-imports a resource by its composite id and compares it with tracked state.

        Parameters:
            step: The import step.
            state: Tracked state after the previous apply.

        Returns:
            The imported resource.

        Raises:
            StateInconsistencyError: If nothing was applied yet or the resource has no id.
            AttributeMismatchError: If any attribute differs between import and apply.
        """

        if state is None:
            raise StateInconsistencyError("Cannot import before any configuration was applied")

        tracked = state.resource(step.resource_address)
        import_id = self.context.resource_type(tracked.type_name).import_id(tracked)
        imported = self.context.engine.import_state(tracked.type_name, import_id)

        check_value("id", Exact(tracked.require_id()), imported.id, source="imported")
        ignored = set(step.import_verify_ignore)
        for name in sorted((set(tracked.attributes) | set(imported.attributes)) - ignored):
            expected = tracked.attribute(name)
            matcher = Exact(expected) if expected is not None else Absent()
            check_value(name, matcher, imported.attribute(name), source="imported")

        imported = replace(imported, address=tracked.address)
        if step.checks:
            imported_state = TrackedState(
                stack_name=state.stack_name, resources={**state.resources, tracked.address: imported}
            )
            step_context = StepContext(context=self.context, state=imported_state, previous_state=state)
            for check in step.checks:
                check(step_context)
        return imported

    def check_destroyed(self, state: TrackedState | None, type_name: str) -> None:
        """Requires every tracked resource of ``type_name`` to be gone.

        Only a not-found error counts as destroyed. Any other error is raised
        as is, so an unrelated fault never passes the check.
        """

        if state is None:
            return

        resource_type = self.context.resource_type(type_name)
        for tracked in state.of_type(type_name):
            try:
                resource_type.fetch(tracked)
            except RemoteNotFoundError:
                LOGGER.info("%s %s is destroyed", type_name, tracked.id)
                continue
            raise DestroyCheckError(f"{type_name} {tracked.id} still exists")
