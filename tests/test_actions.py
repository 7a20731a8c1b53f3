import numpy as np
import pytest

from restsarsa.actions import (ACTION_COUNT, ACTION_DIALS, EXECUTE_INDEX, Action, apply_action,
                               compute_mask, describe_actions, to_action)
from restsarsa.state import TRACKED_RESOURCES, Observation
from restsarsa.strategy import HttpVerb, Resource, Field, Intensity, StrategyState


ID_ACTIONS = [Action.EXPLORE_GET, Action.EXPLORE_PUT, Action.EXPLORE_PATCH, Action.EXPLORE_DELETE]


def test_action_table_is_complete():
    assert ACTION_COUNT == 33
    assert EXECUTE_INDEX == ACTION_COUNT - 1
    for action in Action:
        assert action.is_execute or action in ACTION_DIALS


def test_requires_id_actions():
    assert [a for a in Action if a.requires_id] == ID_ACTIONS
    assert not Action.EXPLORE_GET_ALL.requires_id
    assert not Action.EXPLORE_POST.requires_id


def test_initial_mask():
    mask = compute_mask(Observation(), StrategyState())
    assert mask.dtype == bool
    assert mask.shape == (ACTION_COUNT,)
    for action in ID_ACTIONS:
        assert not mask[action]
    assert not mask[Action.EXECUTE]
    assert mask[Action.EXPLORE_POST]
    assert mask[Action.EXPLORE_GET_ALL]
    assert mask[Action.TARGET_POINTS]


def test_mask_follows_targeted_resource():
    observation = Observation()
    strategy = StrategyState()
    observation.ready_flags[Resource.ITEMS] = 1

    # Unset resource dial targets items
    assert all(compute_mask(observation, strategy)[a] for a in ID_ACTIONS)

    apply_action(Action.TARGET_PRICES, strategy, observation)
    assert not any(compute_mask(observation, strategy)[a] for a in ID_ACTIONS)


def test_execute_legal_once_verb_chosen():
    observation = Observation()
    strategy = StrategyState()
    apply_action(Action.EXPLORE_POST, strategy, observation)
    assert strategy.verb == HttpVerb.POST
    assert observation.current_verb == int(HttpVerb.POST)
    assert observation.ready_to_execute == 1
    assert compute_mask(observation, strategy)[Action.EXECUTE]


def test_apply_action_sets_dial_and_mirror():
    observation = Observation()
    strategy = StrategyState()
    apply_action(Action.FOCUS_QUANTITY, strategy, observation)
    apply_action(Action.INTENSIFY, strategy, observation)
    assert strategy.field == Field.QUANTITY
    assert strategy.intensity == Intensity.AGGRESSIVE
    assert observation.current_field == int(Field.QUANTITY)
    assert observation.current_intensity == int(Intensity.AGGRESSIVE)
    # Non-verb dials do not make the request ready
    assert observation.ready_to_execute == 0


def test_apply_execute_is_noop():
    observation = Observation()
    strategy = StrategyState()
    apply_action(EXECUTE_INDEX, strategy, observation)
    assert strategy == StrategyState()
    assert observation == Observation()


def test_mask_always_has_a_legal_action():
    rng = np.random.default_rng(3)
    for _ in range(200):
        observation = Observation()
        strategy = StrategyState()
        for resource in TRACKED_RESOURCES:
            observation.ready_flags[resource] = int(rng.integers(2))
        for index in rng.integers(ACTION_COUNT - 1, size=int(rng.integers(6))):
            mask = compute_mask(observation, strategy)
            if mask[index]:
                apply_action(int(index), strategy, observation)
        assert compute_mask(observation, strategy).any()


@pytest.mark.parametrize("index", [-1, ACTION_COUNT, 2.0, None, False])
def test_to_action_rejects_bad_index(index):
    with pytest.raises(ValueError):
        to_action(index)


def test_describe_actions():
    table = describe_actions()
    assert len(table) == ACTION_COUNT
    assert table[0] == {'index': 0, 'name': 'EXPLORE_GET', 'dial': 'verb',
                        'value': 'GET', 'requires_id': True}
    assert table[-1]['dial'] == 'execute'
    assert table[-1]['value'] is None
