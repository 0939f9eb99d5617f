"""Ref selection: which refs on a remote a watcher tracks.

A watch can name a single ref exactly, match refs by regular expression, or
supply an arbitrary predicate.  All three are resolved once, before polling
starts, into a plain ``str -> bool`` callable.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Union

from pydantic import BaseModel, ConfigDict

RefPredicate = Callable[[str], bool]


class ExactRef(BaseModel):
    """Track exactly one ref, e.g. ``refs/heads/master``."""

    model_config = ConfigDict(frozen=True)

    name: str

    def matches(self, ref: str) -> bool:
        return ref == self.name


class PatternRef(BaseModel):
    """Track every ref whose full name matches ``pattern``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pattern: re.Pattern[str]

    def matches(self, ref: str) -> bool:
        return self.pattern.fullmatch(ref) is not None


class CustomRef(BaseModel):
    """Track refs accepted by a caller-supplied predicate."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    predicate: Callable[[str], bool]

    def matches(self, ref: str) -> bool:
        return bool(self.predicate(ref))


RefSpec = Union[ExactRef, PatternRef, CustomRef]


def match_ref(name: str) -> RefPredicate:
    """Predicate matching a single ref name exactly."""
    return ExactRef(name=name).matches


def match_ref_by_regex(pattern: str | re.Pattern[str]) -> RefPredicate:
    """Predicate matching ref names against a regex (whole-name match)."""
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    return PatternRef(pattern=pattern).matches


def to_ref_spec(spec: str | re.Pattern[str] | RefSpec | Callable[[str], bool]) -> RefSpec:
    """Normalize the accepted ways of naming refs into a ``RefSpec``."""
    if isinstance(spec, (ExactRef, PatternRef, CustomRef)):
        return spec
    if isinstance(spec, str):
        return ExactRef(name=spec)
    if isinstance(spec, re.Pattern):
        return PatternRef(pattern=spec)
    if callable(spec):
        return CustomRef(predicate=spec)
    raise TypeError(f"Unsupported ref specification: {spec!r}")


def to_ref_predicate(
    spec: str | re.Pattern[str] | RefSpec | Callable[[str], bool],
) -> RefPredicate:
    """Resolve a ref specification into the predicate the poller uses."""
    return to_ref_spec(spec).matches
