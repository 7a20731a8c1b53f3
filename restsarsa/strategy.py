"""
Strategy Dials for Request Fuzzing

This module defines the closed, ordered choice sets the agent turns "dials" on
(HTTP verb, target resource, field focus, mutation strategy, intensity) and the
pending request that accumulates those choices across steps until
the request is executed.

Every enumeration carries explicit integer values. Index 0 is always the
"unset" sentinel, and the values double as observation features and as the
basis of the action table, so they must only change together with
``state.FEATURE_COUNT`` and ``actions.ACTION_COUNT``.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional


logger = logging.getLogger(__name__)


class HttpVerb(IntEnum):
    """HTTP operation of the pending request."""
    NONE = 0
    GET = 1        # GET single entity
    GET_ALL = 2    # GET collection
    POST = 3
    PUT = 4
    PATCH = 5
    DELETE = 6

    @property
    def method(self) -> str:
        """Wire-level HTTP method."""
        return 'GET' if self in (HttpVerb.GET, HttpVerb.GET_ALL) else self.name

    @property
    def needs_identifier(self) -> bool:
        return self in (HttpVerb.GET, HttpVerb.PUT, HttpVerb.PATCH, HttpVerb.DELETE)

    @property
    def has_body(self) -> bool:
        return self in (HttpVerb.POST, HttpVerb.PUT, HttpVerb.PATCH)

    @property
    def method_bucket(self) -> int:
        """Small-integer bucket used for the last-method observation."""
        return _METHOD_BUCKETS[self]


_METHOD_BUCKETS = {
    HttpVerb.NONE: 0,
    HttpVerb.GET: 0,
    HttpVerb.GET_ALL: 0,
    HttpVerb.POST: 1,
    HttpVerb.PUT: 2,
    HttpVerb.DELETE: 3,
    HttpVerb.PATCH: 4,
}


class Resource(IntEnum):
    """Record collections exposed by the service under test."""
    NONE = 0
    ITEMS = 1
    PRICES = 2
    DISCOUNTS = 3
    POINTS = 4

    @property
    def path(self) -> str:
        return self.name.lower()


class Field(IntEnum):
    """Attribute(s) a mutation strategy concentrates on."""
    NONE = 0
    NAME = 1
    QUANTITY = 2
    DESCRIPTION = 3
    PRICE = 4
    ITEM_ID = 5
    DISCOUNT_ID = 6
    DISCOUNT = 7
    POINTS_ID = 8
    POINTS = 9
    ALL = 10
    UNKNOWN = 11   # add unknown/extra attributes


class MutationStrategy(IntEnum):
    """How the request body is mutated."""
    NONE = 0
    VALID = 1
    NULL_INJECT = 2
    NEGATIVE = 3
    BOUNDARY = 4
    STRUCTURE = 5
    INJECTION = 6
    TYPE_CONFUSE = 7
    ENCODING = 8


class Intensity(IntEnum):
    """How far mutations stray from valid values."""
    NONE = 0
    MILD = 1
    MODERATE = 2
    AGGRESSIVE = 3


def enum_span(enum_cls) -> int:
    """Divisor that maps the largest member of ``enum_cls`` to 1.0."""
    return len(enum_cls) - 1


@dataclass
class StrategyState:
    """
    The pending request ("dials").

    Dial-turn actions mutate it; only an explicit ``reset()`` after an
    execution restores the defaults.
    """
    verb: HttpVerb = HttpVerb.NONE
    resource: Resource = Resource.NONE
    field: Field = Field.ALL
    strategy: MutationStrategy = MutationStrategy.VALID
    intensity: Intensity = Intensity.MILD

    def reset(self) -> None:
        """Restore defaults (episode start and after every execute)."""
        self.verb = HttpVerb.NONE
        self.resource = Resource.NONE
        self.field = Field.ALL
        self.strategy = MutationStrategy.VALID
        self.intensity = Intensity.MILD

    def is_ready(self) -> bool:
        """A request can be fired once a verb has been chosen."""
        return self.verb != HttpVerb.NONE

    @property
    def effective_resource(self) -> Resource:
        return Resource.ITEMS if self.resource == Resource.NONE else self.resource

    @property
    def effective_field(self) -> Field:
        return Field.ALL if self.field == Field.NONE else self.field

    @property
    def effective_strategy(self) -> MutationStrategy:
        if self.strategy == MutationStrategy.NONE:
            return MutationStrategy.VALID
        return self.strategy

    @property
    def effective_intensity(self) -> Intensity:
        return Intensity.MILD if self.intensity == Intensity.NONE else self.intensity

    def dials(self) -> Dict[str, str]:
        """Effective dial settings by name."""
        return {
            'verb': self.verb.name,
            'resource': self.effective_resource.name,
            'field': self.effective_field.name,
            'strategy': self.effective_strategy.name,
            'intensity': self.effective_intensity.name,
        }

    def describe(self) -> Optional[str]:
        """Combination label used for bug bookkeeping, None when not ready."""
        if not self.is_ready():
            return None
        return (f"{self.verb.name}+{self.effective_resource.name}+"
                f"{self.effective_strategy.name}+{self.effective_field.name}")

    def __str__(self) -> str:
        return (f"StrategyState(verb={self.verb.name}, resource={self.effective_resource.name}, "
                f"field={self.effective_field.name}, strategy={self.effective_strategy.name}, "
                f"intensity={self.effective_intensity.name})")
