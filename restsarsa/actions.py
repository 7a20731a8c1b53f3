"""
Action Space and Masking

Each discrete action either turns one dial of the pending request (verb,
resource, field focus, mutation strategy, intensity) or fires the request
(EXECUTE). Action values are the Q-network output indices; the dial each
action turns is listed explicitly in ``ACTION_DIALS`` rather than derived
from declaration order.
"""

import logging
from enum import IntEnum
from typing import Dict, List, Tuple

import numpy as np

from .strategy import (HttpVerb, Resource, Field, MutationStrategy, Intensity,
                       StrategyState)
from .state import Observation


logger = logging.getLogger(__name__)


class Action(IntEnum):
    # Verb selection (GET_ALL is the list/inspect call)
    EXPLORE_GET = 0
    EXPLORE_GET_ALL = 1
    EXPLORE_POST = 2
    EXPLORE_PUT = 3
    EXPLORE_PATCH = 4
    EXPLORE_DELETE = 5

    # Resource selection
    TARGET_ITEMS = 6
    TARGET_PRICES = 7
    TARGET_DISCOUNTS = 8
    TARGET_POINTS = 9

    # Field focus
    FOCUS_NAME = 10
    FOCUS_QUANTITY = 11
    FOCUS_DESCRIPTION = 12
    FOCUS_PRICE = 13
    FOCUS_ITEM_ID = 14
    FOCUS_DISCOUNT_ID = 15
    FOCUS_DISCOUNT = 16
    FOCUS_POINTS_ID = 17
    FOCUS_POINTS = 18
    FOCUS_ALL = 19
    FOCUS_UNKNOWN = 20

    # Mutation strategy
    STRATEGY_VALID = 21
    STRATEGY_NULL_INJECT = 22
    STRATEGY_NEGATIVE = 23
    STRATEGY_BOUNDARY = 24
    STRATEGY_STRUCTURE = 25
    STRATEGY_INJECTION = 26
    STRATEGY_TYPE_CONFUSE = 27
    STRATEGY_ENCODING = 28

    # Intensity
    CONSERVE = 29
    MODERATE = 30
    INTENSIFY = 31

    EXECUTE = 32

    @property
    def requires_id(self) -> bool:
        """Verb selections that address a single existing entity."""
        dial = ACTION_DIALS.get(self)
        return dial is not None and dial[0] == 'verb' and dial[1].needs_identifier

    @property
    def is_execute(self) -> bool:
        return self is Action.EXECUTE


# action -> (StrategyState attribute, value); EXECUTE turns no dial
ACTION_DIALS: Dict[Action, Tuple[str, IntEnum]] = {
    Action.EXPLORE_GET: ('verb', HttpVerb.GET),
    Action.EXPLORE_GET_ALL: ('verb', HttpVerb.GET_ALL),
    Action.EXPLORE_POST: ('verb', HttpVerb.POST),
    Action.EXPLORE_PUT: ('verb', HttpVerb.PUT),
    Action.EXPLORE_PATCH: ('verb', HttpVerb.PATCH),
    Action.EXPLORE_DELETE: ('verb', HttpVerb.DELETE),

    Action.TARGET_ITEMS: ('resource', Resource.ITEMS),
    Action.TARGET_PRICES: ('resource', Resource.PRICES),
    Action.TARGET_DISCOUNTS: ('resource', Resource.DISCOUNTS),
    Action.TARGET_POINTS: ('resource', Resource.POINTS),

    Action.FOCUS_NAME: ('field', Field.NAME),
    Action.FOCUS_QUANTITY: ('field', Field.QUANTITY),
    Action.FOCUS_DESCRIPTION: ('field', Field.DESCRIPTION),
    Action.FOCUS_PRICE: ('field', Field.PRICE),
    Action.FOCUS_ITEM_ID: ('field', Field.ITEM_ID),
    Action.FOCUS_DISCOUNT_ID: ('field', Field.DISCOUNT_ID),
    Action.FOCUS_DISCOUNT: ('field', Field.DISCOUNT),
    Action.FOCUS_POINTS_ID: ('field', Field.POINTS_ID),
    Action.FOCUS_POINTS: ('field', Field.POINTS),
    Action.FOCUS_ALL: ('field', Field.ALL),
    Action.FOCUS_UNKNOWN: ('field', Field.UNKNOWN),

    Action.STRATEGY_VALID: ('strategy', MutationStrategy.VALID),
    Action.STRATEGY_NULL_INJECT: ('strategy', MutationStrategy.NULL_INJECT),
    Action.STRATEGY_NEGATIVE: ('strategy', MutationStrategy.NEGATIVE),
    Action.STRATEGY_BOUNDARY: ('strategy', MutationStrategy.BOUNDARY),
    Action.STRATEGY_STRUCTURE: ('strategy', MutationStrategy.STRUCTURE),
    Action.STRATEGY_INJECTION: ('strategy', MutationStrategy.INJECTION),
    Action.STRATEGY_TYPE_CONFUSE: ('strategy', MutationStrategy.TYPE_CONFUSE),
    Action.STRATEGY_ENCODING: ('strategy', MutationStrategy.ENCODING),

    Action.CONSERVE: ('intensity', Intensity.MILD),
    Action.MODERATE: ('intensity', Intensity.MODERATE),
    Action.INTENSIFY: ('intensity', Intensity.AGGRESSIVE),
}

# StrategyState attribute -> mirrored Observation attribute
_OBSERVATION_MIRROR = {
    'verb': 'current_verb',
    'resource': 'current_resource',
    'field': 'current_field',
    'strategy': 'current_strategy',
    'intensity': 'current_intensity',
}

ACTION_COUNT = len(Action)
EXECUTE_INDEX = int(Action.EXECUTE)


def to_action(index: int) -> Action:
    """Map a network output index to its action, failing on bad indices."""
    if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
        raise ValueError(f"Action index must be an integer, got {index!r}")
    if not 0 <= index < ACTION_COUNT:
        raise ValueError(f"Invalid action index: {index}")
    return Action(int(index))


def apply_action(index: int, strategy: StrategyState, observation: Observation) -> Observation:
    """
    Turn the dial selected by ``index`` on both the pending request and the
    observation mirror. EXECUTE is a no-op here; firing the request is the
    environment's job.
    """
    action = to_action(index)
    if action.is_execute:
        return observation

    attribute, value = ACTION_DIALS[action]
    setattr(strategy, attribute, value)
    setattr(observation, _OBSERVATION_MIRROR[attribute], int(value))
    if attribute == 'verb':
        observation.ready_to_execute = 1
    return observation


def compute_mask(observation: Observation, strategy: StrategyState) -> np.ndarray:
    """
    Legal-action mask for the current state.

    Identifier-dependent verb selections need the readiness flag of the
    currently targeted resource. EXECUTE needs a chosen verb. Any other dial
    turn is always legal.
    """
    has_id = observation.has_identifier(strategy.effective_resource)
    mask = np.ones(ACTION_COUNT, dtype=bool)
    for action in Action:
        if action.requires_id:
            mask[action] = has_id
        elif action.is_execute:
            mask[action] = strategy.is_ready()
    return mask


def describe_actions() -> List[Dict[str, object]]:
    """Index table of the action space (for the CLI and logs)."""
    table = []
    for action in Action:
        dial = ACTION_DIALS.get(action)
        table.append({
            'index': int(action),
            'name': action.name,
            'dial': dial[0] if dial else 'execute',
            'value': dial[1].name if dial else None,
            'requires_id': action.requires_id,
        })
    return table
