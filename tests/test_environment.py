import numpy as np
import pytest

from restsarsa.actions import ACTION_COUNT, Action
from restsarsa.environment import FuzzEnvironment
from restsarsa.payloads import PayloadGenerator
from restsarsa.state import FEATURE_COUNT
from restsarsa.strategy import HttpVerb, Resource

from conftest import StubClient, make_response


ITEMS_FLAG = 0
ID_ACTIONS = [Action.EXPLORE_GET, Action.EXPLORE_PUT, Action.EXPLORE_PATCH, Action.EXPLORE_DELETE]


def fire(env, *actions):
    """Turn the given dials, then execute; returns the execute step's result."""
    for action in actions:
        env.step(action)
    return env.step(Action.EXECUTE)


def test_spaces(environment):
    assert environment.action_space.n == ACTION_COUNT
    assert environment.observation_space.shape == (FEATURE_COUNT,)


def test_reset_returns_features_and_mask(environment):
    features, info = environment.reset()
    assert features.shape == (FEATURE_COUNT,)
    assert np.all(features == 0.0)
    assert info['action_mask'].shape == (ACTION_COUNT,)
    assert not info['action_mask'][Action.EXECUTE]


def test_dial_turn_reward_is_zero(environment):
    environment.reset()
    _, reward, terminated, truncated, info = environment.step(Action.EXPLORE_POST)
    assert reward == 0.0
    assert not terminated and not truncated
    assert info['executed'] is None
    assert info['action_mask'][Action.EXECUTE]


def test_illegal_action_raises(environment):
    environment.reset()
    with pytest.raises(ValueError):
        environment.step(Action.EXPLORE_GET)
    with pytest.raises(ValueError):
        environment.step(Action.EXECUTE)


def test_create_then_read_keeps_identifier():
    client = StubClient(queue=[
        make_response(201, {'id': 7}, 'POST'),
        make_response(200, {'id': 7}, 'GET'),
    ])
    env = FuzzEnvironment(client, PayloadGenerator(seed=1))
    env.reset()

    features, reward, _, _, info = fire(env, Action.EXPLORE_POST)
    assert reward == 0.0
    assert info['status_code'] == 201
    assert features[ITEMS_FLAG] == 1.0
    assert env.identifiers[Resource.ITEMS] == '7'
    assert all(info['action_mask'][a] for a in ID_ACTIONS)

    features, reward, _, _, info = fire(env, Action.EXPLORE_GET)
    assert info['status_code'] == 200
    assert features[ITEMS_FLAG] == 1.0
    assert client.calls[-1][:3] == (HttpVerb.GET, Resource.ITEMS, '7')


def test_blank_created_identifier_is_ignored():
    client = StubClient(queue=[make_response(201, {'id': ' '}, 'POST')])
    env = FuzzEnvironment(client, PayloadGenerator(seed=1))
    env.reset()

    features, _, _, _, info = fire(env, Action.EXPLORE_POST)
    assert env.identifiers[Resource.ITEMS] is None
    assert features[ITEMS_FLAG] == 0.0
    assert not any(info['action_mask'][a] for a in ID_ACTIONS)


def test_delete_clears_identifier_and_masks_id_actions():
    client = StubClient(queue=[
        make_response(201, {'id': 7}, 'POST'),
        make_response(204, None, 'DELETE'),
    ])
    env = FuzzEnvironment(client, PayloadGenerator(seed=1))
    env.reset()
    fire(env, Action.EXPLORE_POST)

    features, _, _, _, info = fire(env, Action.EXPLORE_DELETE)
    assert client.calls[-1][:3] == (HttpVerb.DELETE, Resource.ITEMS, '7')
    assert features[ITEMS_FLAG] == 0.0
    assert env.identifiers[Resource.ITEMS] is None
    assert not any(info['action_mask'][a] for a in ID_ACTIONS)


def test_failed_delete_keeps_identifier():
    client = StubClient(queue=[
        make_response(201, {'id': 7}, 'POST'),
        make_response(404, {'error': 'Not Found'}, 'DELETE'),
    ])
    env = FuzzEnvironment(client, PayloadGenerator(seed=1))
    env.reset()
    fire(env, Action.EXPLORE_POST)
    features, _, _, _, _ = fire(env, Action.EXPLORE_DELETE)
    assert features[ITEMS_FLAG] == 1.0


def test_no_response_is_penalized_and_loop_continues():
    env = FuzzEnvironment(StubClient(queue=[None]), PayloadGenerator(seed=1))
    env.reset()

    _, reward, _, _, info = fire(env, Action.EXPLORE_GET_ALL)
    assert reward == pytest.approx(-0.15)
    assert info['status_code'] is None

    # Next request reaches the in-memory service
    _, reward, _, _, info = fire(env, Action.EXPLORE_POST)
    assert reward == 0.0
    assert info['status_code'] == 201


def test_server_error_is_rewarded():
    env = FuzzEnvironment(StubClient(), PayloadGenerator(seed=1))
    env.reset()
    # Truncated JSON body crashes the stub service
    _, reward, _, _, info = fire(env, Action.EXPLORE_POST, Action.FOCUS_NAME,
                                 Action.STRATEGY_STRUCTURE, Action.INTENSIFY)
    assert info['status_code'] == 500
    assert reward == 10.0
    assert info['executed'] == "POST+ITEMS+STRUCTURE+NAME"
    assert env.oracle.unique_bug_combos == {"POST+ITEMS+STRUCTURE+NAME"}


def test_execute_resets_dials(environment):
    environment.reset()
    features, _, _, _, info = fire(environment, Action.EXPLORE_POST, Action.TARGET_ITEMS,
                                   Action.MODERATE)
    assert info['dials'] == {'verb': 'POST', 'resource': 'ITEMS', 'field': 'ALL',
                             'strategy': 'VALID', 'intensity': 'MODERATE'}
    assert not environment.strategy.is_ready()
    assert environment.observation.current_verb == 0
    assert environment.observation.steps_since_execute == 0
    # Dial mirror, steps counter and ready flag are all back to zero
    assert np.all(features[7:] == 0.0)


def test_execute_without_identifier_sends_nothing():
    client = StubClient(queue=[make_response(201, {'id': 3}, 'POST')])
    env = FuzzEnvironment(client, PayloadGenerator(seed=1))
    env.reset()
    fire(env, Action.EXPLORE_POST)
    sent = len(client.calls)

    # GET chosen for items, then the resource dial moves to prices
    env.step(Action.EXPLORE_GET)
    _, reward, _, _, info = fire(env, Action.TARGET_PRICES)
    assert len(client.calls) == sent
    assert reward == pytest.approx(-0.15)
    assert info['status_code'] is None


def test_listing_learns_first_identifier():
    client = StubClient(queue=[make_response(200, [{'id': 11}, {'id': 12}], 'GET')])
    env = FuzzEnvironment(client, PayloadGenerator(seed=1))
    env.reset()
    features, _, _, _, _ = fire(env, Action.EXPLORE_GET_ALL)
    assert env.identifiers[Resource.ITEMS] == '11'
    assert features[ITEMS_FLAG] == 1.0
    assert env.observation.has_any_items == 1


def test_identifiers_persist_across_episodes(environment):
    environment.reset()
    fire(environment, Action.TARGET_DISCOUNTS, Action.EXPLORE_POST)
    assert environment.identifiers[Resource.DISCOUNTS] is not None

    features, info = environment.reset()
    assert features[2] == 1.0
    assert environment.observation.has_identifier(Resource.DISCOUNTS)
    # Items are still unknown, so single-entity verbs stay masked for the default target
    assert not info['action_mask'][Action.EXPLORE_GET]


def test_child_records_link_to_known_parent(environment, stub_client):
    environment.reset()
    fire(environment, Action.EXPLORE_POST)
    fire(environment, Action.EXPLORE_POST, Action.TARGET_PRICES)
    _, _, _, body = stub_client.calls[-1]
    assert '"item": {"id": 1}' in body


def test_truncation_at_step_budget(stub_client):
    env = FuzzEnvironment(stub_client, PayloadGenerator(seed=1), max_steps=3)
    env.reset()
    assert not env.step(Action.TARGET_ITEMS)[3]
    assert not env.step(Action.TARGET_PRICES)[3]
    assert env.step(Action.TARGET_POINTS)[3]


def test_steps_since_execute_saturates(stub_client):
    env = FuzzEnvironment(stub_client, PayloadGenerator(seed=1), steps_cap=4)
    features, _ = env.reset()
    for _ in range(9):
        features, _, _, _, _ = env.step(Action.FOCUS_NAME)
    assert env.observation.steps_since_execute == 4
    assert features[12] == 1.0


@pytest.mark.parametrize("kwargs", [{'max_steps': 0}, {'steps_cap': 0}])
def test_invalid_construction(stub_client, kwargs):
    with pytest.raises(ValueError):
        FuzzEnvironment(stub_client, PayloadGenerator(seed=1), **kwargs)
