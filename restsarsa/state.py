"""
Observation Record and State Encoding

The observation is a small record of non-negative integers describing what the
agent knows about the service (which identifiers it holds, the last response)
and how the pending request dials are currently set. ``encode`` turns it into
the fixed-length feature vector consumed by the Q-network.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict

import numpy as np

from .strategy import HttpVerb, Resource, Field, MutationStrategy, Intensity, enum_span


logger = logging.getLogger(__name__)


# Resources with an identifier-readiness flag, in feature order
TRACKED_RESOURCES = (Resource.ITEMS, Resource.PRICES, Resource.DISCOUNTS, Resource.POINTS)

STEPS_SINCE_EXECUTE_CAP = 10

# 4 readiness flags + any-items + status + last method + 5 dials + steps + ready
FEATURE_COUNT = len(TRACKED_RESOURCES) + 10

_STATUS_BUCKETS = {2: 0.25, 3: 0.50, 4: 0.75, 5: 1.00}
_METHOD_SPAN = 4


def _empty_ready_flags() -> Dict[Resource, int]:
    return {resource: 0 for resource in TRACKED_RESOURCES}


@dataclass
class Observation:
    """Mutable observation record mirrored from the environment."""
    ready_flags: Dict[Resource, int] = field(default_factory=_empty_ready_flags)
    has_any_items: int = 0
    last_status: int = 0          # 0 = no response yet
    last_method: int = 0          # HttpVerb.method_bucket

    # Pending request dials (0 = unset)
    current_verb: int = 0
    current_resource: int = 0
    current_field: int = 0
    current_strategy: int = 0
    current_intensity: int = 0

    steps_since_execute: int = 0
    ready_to_execute: int = 0

    def has_identifier(self, resource: Resource) -> bool:
        return self.ready_flags.get(resource, 0) == 1

    def tick(self, cap: int = STEPS_SINCE_EXECUTE_CAP) -> None:
        """Count one dial-turn step, saturating at ``cap``."""
        self.steps_since_execute = min(self.steps_since_execute + 1, cap)

    def reset_after_execute(self) -> None:
        """Clear the dial mirror once the pending request has been fired."""
        self.current_verb = 0
        self.current_resource = 0
        self.current_field = 0
        self.current_strategy = 0
        self.current_intensity = 0
        self.steps_since_execute = 0
        self.ready_to_execute = 0


def normalize_status(code: int) -> float:
    """Bucket an HTTP status code by its leading digit."""
    if code == 0:
        return 0.0
    return _STATUS_BUCKETS.get(code // 100, 0.0)


def encode(observation: Observation, steps_cap: int = STEPS_SINCE_EXECUTE_CAP) -> np.ndarray:
    """
    Scale an observation into a feature vector in [0, 1]^FEATURE_COUNT.

    Enumerated values are divided by (member count - 1) so the largest valid
    index maps to exactly 1.0.
    """
    features = np.zeros(FEATURE_COUNT, dtype=np.float64)

    for i, resource in enumerate(TRACKED_RESOURCES):
        features[i] = 1.0 if observation.ready_flags.get(resource, 0) else 0.0

    i = len(TRACKED_RESOURCES)
    features[i] = 1.0 if observation.has_any_items else 0.0
    features[i + 1] = normalize_status(observation.last_status)
    features[i + 2] = observation.last_method / _METHOD_SPAN

    features[i + 3] = observation.current_verb / enum_span(HttpVerb)
    features[i + 4] = observation.current_resource / enum_span(Resource)
    features[i + 5] = observation.current_field / enum_span(Field)
    features[i + 6] = observation.current_strategy / enum_span(MutationStrategy)
    features[i + 7] = observation.current_intensity / enum_span(Intensity)

    features[i + 8] = min(observation.steps_since_execute, steps_cap) / steps_cap
    features[i + 9] = 1.0 if observation.ready_to_execute else 0.0

    return features
