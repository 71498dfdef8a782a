# -*- coding: utf-8 -*-
"""Shared fixtures: an in-memory engine and authorizer API."""
import itertools

from dataclasses import dataclass, field

import pytest

from apigw_authorizer_conformance.authorizer import AUTHORIZER_TYPE_NAME
from apigw_authorizer_conformance.context import ConformanceContext
from apigw_authorizer_conformance.exceptions import EngineError, RemoteNotFoundError
from apigw_authorizer_conformance.state import Plan, ResourceChange, TrackedResource, TrackedState
from apigw_authorizer_conformance.verifier import LifecycleVerifier

ADDRESS = "acctest"
REST_API_ID = "a1b2c3d4e5"


@dataclass
class FakeDocument:
    """Stands in for a synthesized configuration."""

    attributes: dict
    error: str | None = None
    recreate: bool = False
    scenario: str = "fake"


@dataclass
class FakeRemoteAuthorizer:
    attributes: dict = field(default_factory=dict)

    def attribute(self, name):
        return self.attributes.get(name)


class FakeAuthorizers:
    """Remote capability backed by a dict of authorizer id to attributes."""

    type_name = AUTHORIZER_TYPE_NAME

    def __init__(self):
        self.remote: dict[str, dict] = {}
        self.fetch_error: Exception | None = None
        self.deleted: list[str] = []

    def fetch(self, tracked: TrackedResource) -> FakeRemoteAuthorizer:
        if self.fetch_error is not None:
            raise self.fetch_error
        if tracked.id not in self.remote:
            raise RemoteNotFoundError(self.type_name, f"{REST_API_ID}/{tracked.id}")
        return FakeRemoteAuthorizer(dict(self.remote[tracked.id]))

    def delete(self, tracked: TrackedResource) -> None:
        self.deleted.append(tracked.id)
        del self.remote[tracked.id]

    def import_id(self, tracked: TrackedResource) -> str:
        return f"{tracked.attribute('rest_api_id')}/{tracked.require_id()}"


class FakeEngine:
    """Declarative engine keeping one authorizer per stack in memory."""

    def __init__(self, authorizers: FakeAuthorizers):
        self.authorizers = authorizers
        self.stacks: dict[str, TrackedState] = {}
        self.applied: list[FakeDocument] = []
        self.destroyed: list[str] = []
        self.keep_on_destroy = False
        self.destroy_error: Exception | None = None
        self.extra_changes: list[ResourceChange] = []
        self._ids = itertools.count(1)

    def apply(self, stack_name: str, document: FakeDocument) -> TrackedState:
        self.applied.append(document)
        if document.error is not None:
            raise EngineError(document.error, stack_name=stack_name)

        previous = self.stacks.get(stack_name)
        if previous is not None and not document.recreate:
            authorizer_id = previous.resource(ADDRESS).id
        else:
            authorizer_id = f"auth{next(self._ids)}"

        attributes = {"rest_api_id": REST_API_ID, **document.attributes}
        self.authorizers.remote[authorizer_id] = dict(attributes)
        state = TrackedState(
            stack_name=stack_name,
            resources={ADDRESS: TrackedResource(ADDRESS, AUTHORIZER_TYPE_NAME, authorizer_id, attributes)},
        )
        self.stacks[stack_name] = state
        return state

    def state(self, stack_name: str) -> TrackedState:
        return self.stacks[stack_name]

    def import_state(self, type_name: str, import_id: str) -> TrackedResource:
        _, _, authorizer_id = import_id.partition("/")
        if authorizer_id not in self.authorizers.remote:
            raise EngineError(f"Cannot import non-existent remote object {import_id}")
        return TrackedResource(
            f"import.{type_name}", type_name, authorizer_id, self.authorizers.remote[authorizer_id]
        )

    def plan(self, stack_name: str) -> Plan:
        changes = tuple(
            ResourceChange(resource.address, resource.type_name, "create")
            for resource in self.stacks[stack_name]
            if resource.id not in self.authorizers.remote
        ) + tuple(self.extra_changes)
        return Plan(stack_name=stack_name, changes=changes)

    def destroy(self, stack_name: str) -> None:
        self.destroyed.append(stack_name)
        if self.destroy_error is not None:
            raise self.destroy_error
        state = self.stacks.pop(stack_name, None)
        if state is None or self.keep_on_destroy:
            return
        for resource in state:
            self.authorizers.remote.pop(resource.id, None)


@pytest.fixture
def fake_authorizers() -> FakeAuthorizers:
    """Returns an empty in-memory authorizer API."""
    return FakeAuthorizers()


# pylint: disable=redefined-outer-name
@pytest.fixture
def fake_engine(fake_authorizers) -> FakeEngine:
    """Returns an in-memory engine sharing the authorizer API."""
    return FakeEngine(fake_authorizers)


# pylint: disable=redefined-outer-name
@pytest.fixture
def context(fake_engine, fake_authorizers) -> ConformanceContext:
    """Returns a context without STS pre-check."""
    return ConformanceContext.create(engine=fake_engine, resource_types=[fake_authorizers])


# pylint: disable=redefined-outer-name
@pytest.fixture
def verifier(context) -> LifecycleVerifier:
    """Returns a verifier running against the in-memory backend."""
    return LifecycleVerifier(context)


@pytest.fixture
def make_config():
    """Returns a factory of deferred fake configurations."""

    def factory(error=None, recreate=False, **attributes):
        return lambda: FakeDocument(attributes=attributes, error=error, recreate=recreate)

    return factory
