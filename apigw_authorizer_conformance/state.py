"""Tracked state as reported by the declarative engine."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from apigw_authorizer_conformance.exceptions import StateInconsistencyError


def freeze_attributes(attributes: Mapping[str, Any]) -> Mapping[str, Any]:
    """Returns a read-only copy of the attributes with lists turned into tuples and None values dropped."""
    return MappingProxyType(
        {
            key: tuple(value) if isinstance(value, list) else value
            for key, value in attributes.items()
            if value is not None
        }
    )


@dataclass(frozen=True, slots=True)
class TrackedResource:
    """One resource recorded by the engine.

    Attributes:
        address: Logical id of the resource in the configuration.
        type_name: CloudFormation type name.
        id: Physical id, empty when the engine didn't record one.
        attributes: Tracked attributes, absent values are left out.
    """

    address: str
    type_name: str
    id: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "attributes", freeze_attributes(self.attributes))

    def attribute(self, name: str) -> Any:
        return self.attributes.get(name)

    def require_id(self) -> str:
        if not self.id:
            raise StateInconsistencyError(f"No {self.type_name} ID is set for {self.address}")
        return self.id


@dataclass(frozen=True, slots=True)
class TrackedState:
    """All resources of one stack, keyed by address."""

    stack_name: str
    resources: Mapping[str, TrackedResource] = field(default_factory=dict)

    def __iter__(self) -> Iterator[TrackedResource]:
        return iter(self.resources.values())

    def resource(self, address: str) -> TrackedResource:
        try:
            return self.resources[address]
        except KeyError:
            raise StateInconsistencyError(f"Not found: {address}") from None

    def of_type(self, type_name: str) -> list[TrackedResource]:
        return [resource for resource in self if resource.type_name == type_name]


@dataclass(frozen=True, slots=True)
class ResourceChange:
    """A difference between tracked and actual state found by a plan."""

    address: str
    type_name: str
    action: str


@dataclass(frozen=True, slots=True)
class Plan:
    """Outcome of a plan, empty when nothing would change."""

    stack_name: str
    changes: tuple[ResourceChange, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.changes
