"""
Dial-then-Execute Fuzzing Environment

Gymnasium environment in which most actions only turn a dial of the pending
request, and the EXECUTE action fires that request against the service under
test. The environment owns the identifier bookkeeping: identifiers are learned
from successful creates and listings, dropped after successful deletes, and
never guessed.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .actions import ACTION_COUNT, apply_action, compute_mask, to_action
from .client import ApiResponse, ServiceClient, extract_id
from .payloads import PayloadGenerator
from .reward import RewardOracle
from .state import FEATURE_COUNT, STEPS_SINCE_EXECUTE_CAP, TRACKED_RESOURCES, Observation, encode
from .strategy import HttpVerb, Resource, StrategyState


logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 35


class FuzzEnvironment(gym.Env):
    """Environment over the CRUD endpoints of the service under test."""

    metadata = {'render_modes': []}

    def __init__(self, client: ServiceClient, payload_generator: PayloadGenerator,
                 oracle: Optional[RewardOracle] = None, max_steps: int = DEFAULT_MAX_STEPS,
                 steps_cap: int = STEPS_SINCE_EXECUTE_CAP, dial_turn_reward: float = 0.0):
        super().__init__()
        if max_steps <= 0:
            raise ValueError(f"max_steps must be > 0, got {max_steps}")
        if steps_cap <= 0:
            raise ValueError(f"steps_cap must be > 0, got {steps_cap}")

        self.client = client
        self.payload_generator = payload_generator
        self.oracle = oracle or RewardOracle()
        self.max_steps = max_steps
        self.steps_cap = steps_cap
        self.dial_turn_reward = dial_turn_reward

        self.action_space = spaces.Discrete(ACTION_COUNT)
        self.observation_space = spaces.Box(low=0.0, high=1.0, shape=(FEATURE_COUNT,), dtype=np.float64)

        # Live identifiers persist across episodes
        self.identifiers: Dict[Resource, Optional[str]] = {r: None for r in TRACKED_RESOURCES}

        self.strategy = StrategyState()
        self.observation = Observation()
        self.step_count = 0

    def reset(self, seed=None, options=None) -> Tuple[np.ndarray, Dict[str, Any]]:
        """Start an episode: default dials, readiness flags mirroring held identifiers."""
        super().reset(seed=seed)

        self.strategy.reset()
        self.observation = Observation()
        for resource, identifier in self.identifiers.items():
            self.observation.ready_flags[resource] = 1 if identifier is not None else 0
        self.step_count = 0

        return self._features(), {'action_mask': self.action_mask()}

    def step(self, action: int):
        """
        Apply one action.

        Returns:
            (features, reward, terminated, truncated, info); ``truncated`` marks
            the last step of the step budget
        """
        chosen = to_action(action)
        if not self.action_mask()[chosen]:
            raise ValueError(f"Action {chosen.name} is not legal in the current state")

        self.step_count += 1
        executed = None
        dials = None
        response = None

        if chosen.is_execute:
            executed = self.strategy.describe()
            dials = self.strategy.dials()
            response = self._execute()
            self.strategy.reset()
            self.observation.reset_after_execute()
            reward = self.oracle.score(response, executed)
        else:
            apply_action(chosen, self.strategy, self.observation)
            self.observation.tick(self.steps_cap)
            reward = self.dial_turn_reward

        truncated = self.step_count >= self.max_steps
        info = {
            'action_mask': self.action_mask(),
            'action': chosen.name,
            'executed': executed,
            'dials': dials,
            'status_code': response.status_code if response is not None else None,
        }
        return self._features(), reward, False, truncated, info

    def action_mask(self) -> np.ndarray:
        return compute_mask(self.observation, self.strategy)

    def _features(self) -> np.ndarray:
        return encode(self.observation, self.steps_cap)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self) -> Optional[ApiResponse]:
        verb = self.strategy.verb
        resource = self.strategy.effective_resource
        identifier = self.identifiers.get(resource)

        if verb.needs_identifier and identifier is None:
            # Resource dial changed after the verb was chosen
            logger.debug(f"No {resource.name} identifier held for {verb.name}, request not sent")
            return None

        body = None
        if verb.has_body:
            body = self.payload_generator.generate(
                resource,
                self.strategy.effective_field,
                self.strategy.effective_strategy,
                self.strategy.effective_intensity,
            )

        response = self.client.send(verb, resource, identifier, body)
        if response is not None:
            self._update_from_response(verb, resource, response)
        return response

    def _update_from_response(self, verb: HttpVerb, resource: Resource, response: ApiResponse) -> None:
        status = response.status_code
        self.observation.last_status = status
        self.observation.last_method = verb.method_bucket

        if verb == HttpVerb.POST and status == 201:
            created_id = extract_id(response.body)
            if created_id is not None:
                self._set_identifier(resource, created_id)
                if resource == Resource.ITEMS:
                    self.observation.has_any_items = 1
            else:
                logger.debug(f"POST {resource.path} returned 201 without an id")

        elif verb == HttpVerb.DELETE and status in (200, 204):
            self._set_identifier(resource, None)

        elif verb == HttpVerb.GET_ALL and status == 200:
            listed = isinstance(response.body, list) and len(response.body) > 0
            if self.identifiers.get(resource) is None:
                listed_id = extract_id(response.body)
                if listed_id is not None:
                    self._set_identifier(resource, listed_id)
            if resource == Resource.ITEMS:
                self.observation.has_any_items = 1 if listed else 0

    def _set_identifier(self, resource: Resource, identifier: Optional[str]) -> None:
        self.identifiers[resource] = identifier
        self.observation.ready_flags[resource] = 1 if identifier is not None else 0
        self.payload_generator.bind_identifier(resource, identifier)
        logger.debug(f"{resource.name} identifier -> {identifier}")
