"""Matchers for expected attribute values.

A value in an expectation is one of three things: an exact value, a
pattern, or absent. "Absent" and "empty string" are different
expectations and never match each other.
"""

from __future__ import annotations

import re

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from apigw_authorizer_conformance.exceptions import AttributeMismatchError


class Matcher(ABC):
    """Expectation for a single attribute value."""

    @abstractmethod
    def matches(self, actual: Any) -> bool:
        """Returns True when the actual value satisfies this expectation."""

    @abstractmethod
    def describe(self) -> str:
        """Short description used in mismatch messages."""

    def __repr__(self) -> str:
        return self.describe()


class Exact(Matcher):
    """Matches one exact value.

    Numbers and their string rendering compare equal, so ``Exact(0)`` matches
    both the ``0`` read from the API and a ``"0"`` kept in tracked state.
    A missing value never matches, not even ``Exact("")``.
    """

    def __init__(self, value: Any):
        if value is None:
            raise ValueError("use Absent() to expect a missing value")
        self.value = _normalize(value)

    def matches(self, actual: Any) -> bool:
        if actual is None:
            return False
        actual = _normalize(actual)
        if actual == self.value:
            return True
        if isinstance(self.value, int | str) and isinstance(actual, int | str) and not isinstance(actual, bool):
            return str(actual) == str(self.value)
        return False

    def describe(self) -> str:
        return repr(self.value)


class Pattern(Matcher):
    """Matches strings containing a match of the regular expression."""

    def __init__(self, pattern: str | re.Pattern):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def matches(self, actual: Any) -> bool:
        return isinstance(actual, str) and self.pattern.search(actual) is not None

    def describe(self) -> str:
        return f"/{self.pattern.pattern}/"


class Absent(Matcher):
    """Matches only a missing value."""

    def matches(self, actual: Any) -> bool:
        return actual is None

    def describe(self) -> str:
        return "<absent>"


class Count(Matcher):
    """Matches a sequence with the given number of items."""

    def __init__(self, count: int):
        self.count = count

    def matches(self, actual: Any) -> bool:
        if actual is None or isinstance(actual, str):
            return False
        return isinstance(actual, Sequence) and len(actual) == self.count

    def describe(self) -> str:
        return f"<{self.count} items>"


ExpectedAttributes = Mapping[str, Matcher]


def _normalize(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(value)
    return value


def check_value(field: str, matcher: Matcher, actual: Any, source: str = "remote") -> None:
    """Raises AttributeMismatchError unless ``actual`` satisfies ``matcher``."""
    if not matcher.matches(actual):
        raise AttributeMismatchError(field, matcher.describe(), actual, source=source)
