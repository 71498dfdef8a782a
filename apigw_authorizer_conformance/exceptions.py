"""Errors raised while verifying a resource lifecycle.

Every failure bubbles up to the case boundary, there is no local
recovery. The verifier turns the first one into a FAILED case result.
"""

from typing import Any


class ConformanceError(Exception):
    """Base class for everything the conformance harness raises."""


class ConfigurationValidationError(ConformanceError):
    """A configuration was rejected before any remote call was made."""


class EngineError(ConformanceError):
    """The declarative engine reported an error while applying or planning.

    Attributes:
        stack_name: Name of the stack the engine was working on.
    """

    def __init__(self, message: str, stack_name: str | None = None):
        super().__init__(message)
        self.stack_name = stack_name


class RemoteNotFoundError(ConformanceError):
    """The remote API reported that the object does not exist."""

    def __init__(self, type_name: str, identifier: str):
        super().__init__(f"{type_name} {identifier} not found")
        self.type_name = type_name
        self.identifier = identifier


class StateInconsistencyError(ConformanceError):
    """Tracked state is missing something the verifier needs, e.g. an id."""


class AttributeMismatchError(ConformanceError):
    """An actual attribute diverges from the expected one.

    Attributes:
        field: Attribute name.
        expected: Human-readable description of the expectation.
        actual: The value that was observed.
        source: Where the value was read from ("remote" or "tracked").
    """

    def __init__(self, field: str, expected: str, actual: Any, source: str = "remote"):
        super().__init__(f"{source} attribute {field!r} didn't match. Expected: {expected}, Given: {actual!r}")
        self.field = field
        self.expected = expected
        self.actual = actual
        self.source = source


class ExpectedErrorMismatch(ConformanceError):
    """A step flagged as expect-error succeeded or failed with another message."""

    def __init__(self, pattern: str, error: Exception | None):
        if error is None:
            message = f"Expected an error matching {pattern!r}, got none"
        else:
            message = f"Expected an error matching {pattern!r}, got: {error}"
        super().__init__(message)
        self.pattern = pattern
        self.error = error


class DestroyCheckError(ConformanceError):
    """A tracked object is still reachable after the engine destroyed it."""


class PlanError(ConformanceError):
    """The plan after a step did not have the expected shape."""
