"""
SARSA Agent for REST API Fuzzing

This module implements the episodic, on-policy temporal-difference control loop
that learns which dial combinations make the service under test fail. Every
step picks an action with a masked epsilon-greedy policy over the Q-network,
applies it to the environment, picks the next action with the same policy and
updates Q(s, a) towards r + gamma * Q(s', a').

Each step is published as a ``Transition`` to registered listeners (for
example ``TrainingStats``) instead of mutating global counters.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

from .actions import ACTION_COUNT, Action
from .client import ServiceClient
from .config import TesterConfig
from .environment import FuzzEnvironment
from .payloads import PayloadGenerator
from .policy import epsilon_greedy_masked
from .q_network import QNetwork
from .reward import BUG_STATUS, RewardOracle
from .state import FEATURE_COUNT
from .stats import TrainingStats


logger = logging.getLogger(__name__)


@dataclass
class Transition:
    """
    One (s, a, r, s') step of an episode, as seen by listeners.

    ``state`` holds the features the action was chosen from, ``next_state``
    the features observed after it.
    """
    episode: int
    step: int
    action: int
    action_name: str
    reward: float
    td_error: float
    terminal: bool
    executed: Optional[str] = None
    dials: Optional[Dict[str, str]] = None
    status_code: Optional[int] = None
    state: Optional[np.ndarray] = None
    next_state: Optional[np.ndarray] = None


@dataclass
class EpisodeResult:
    """Aggregate outcome of one episode."""
    episode: int
    total_reward: float
    bugs_found: int
    executions: int
    steps: int
    bug_combos: List[str] = field(default_factory=list)


class SarsaAgent:
    """Masked epsilon-greedy SARSA control over a ``FuzzEnvironment``."""

    def __init__(self, env: FuzzEnvironment, network: QNetwork, config: TesterConfig,
                 rng: np.random.Generator, stats: Optional[TrainingStats] = None):
        if network.input_dim != FEATURE_COUNT or network.action_count != ACTION_COUNT:
            raise ValueError(
                f"Q-network shape {network.input_dim}x{network.action_count} does not match "
                f"the observation/action space {FEATURE_COUNT}x{ACTION_COUNT}"
            )
        self.env = env
        self.network = network
        self.config = config
        self.rng = rng
        self.stats = stats
        self.listeners: List[Callable[[Transition], None]] = []
        if stats is not None:
            self.listeners.append(stats)
        self.episodes_run = 0

    def add_listener(self, listener: Callable[[Transition], None]) -> None:
        self.listeners.append(listener)

    def select_action(self, state: np.ndarray, mask: np.ndarray, epsilon: Optional[float] = None) -> int:
        eps = self.config.epsilon if epsilon is None else epsilon
        return epsilon_greedy_masked(self.network, state, eps, mask, self.rng)

    def run_episode(self, learn: bool = True, epsilon: Optional[float] = None) -> EpisodeResult:
        """
        Run one fixed-length episode.

        Args:
            learn: Apply SARSA updates (False for evaluation)
            epsilon: Exploration rate override (defaults to the configured one)

        Returns:
            Aggregate episode outcome
        """
        self.episodes_run += 1
        episode = self.episodes_run
        cfg = self.config

        state, info = self.env.reset()
        action = self.select_action(state, info['action_mask'], epsilon)

        result = EpisodeResult(episode=episode, total_reward=0.0, bugs_found=0, executions=0, steps=0)

        for step in range(cfg.step_limit):
            next_state, reward, terminated, truncated, info = self.env.step(action)
            next_action = self.select_action(next_state, info['action_mask'], epsilon)

            terminal = terminated or truncated or step == cfg.step_limit - 1
            td_error = 0.0
            if learn:
                td_error = self.network.sarsa_update(
                    state, action, reward, next_state, next_action, terminal, cfg.alpha, cfg.gamma
                )

            transition = Transition(
                episode=episode,
                step=step,
                action=action,
                action_name=Action(action).name,
                reward=reward,
                td_error=td_error,
                terminal=terminal,
                executed=info['executed'],
                dials=info['dials'],
                status_code=info['status_code'],
                state=state,
                next_state=next_state,
            )
            self._publish(transition)

            result.total_reward += reward
            result.steps += 1
            if info['executed'] is not None:
                result.executions += 1
            if info['status_code'] == BUG_STATUS:
                result.bugs_found += 1
                result.bug_combos.append(info['executed'])

            state, action = next_state, next_action
            if terminal:
                break

        if self.stats is not None:
            self.stats.end_episode()
        return result

    def train(self, episodes: Optional[int] = None,
              progress: Optional[Callable[[EpisodeResult], None]] = None) -> List[EpisodeResult]:
        """Run ``episodes`` learning episodes (defaults to the configured count)."""
        episodes = self.config.episodes if episodes is None else episodes
        logger.info(f"Starting SARSA training for {episodes} episodes...")

        results = []
        for _ in range(episodes):
            result = self.run_episode(learn=True)
            results.append(result)
            if progress is not None:
                progress(result)
            if self.stats is not None and result.episode % self.config.log_every == 0:
                self.stats.log_window(result.episode)

        logger.info("Training completed!")
        return results

    def evaluate(self, episodes: int,
                 progress: Optional[Callable[[EpisodeResult], None]] = None) -> List[EpisodeResult]:
        """Greedy episodes without weight updates."""
        results = []
        for _ in range(episodes):
            result = self.run_episode(learn=False, epsilon=0.0)
            results.append(result)
            if progress is not None:
                progress(result)
        return results

    def _publish(self, transition: Transition) -> None:
        for listener in self.listeners:
            listener(transition)


def build_agent(config: TesterConfig, client: Optional[ServiceClient] = None,
                network: Optional[QNetwork] = None,
                stats: Optional[TrainingStats] = None) -> SarsaAgent:
    """
    Wire network, payload generator, environment and agent around one shared
    seeded random source (consumed in a fixed order: weight init, then
    exploration and payload draws as the episodes unfold).
    """
    config.validate()
    rng = np.random.default_rng(config.seed)

    if network is None:
        network = QNetwork(FEATURE_COUNT, config.hidden_units, ACTION_COUNT, rng=rng,
                           error_clip=config.error_clip)
    if client is None:
        client = ServiceClient(config.base_url, timeout=config.request_timeout)

    env = FuzzEnvironment(
        client,
        PayloadGenerator(rng=rng),
        oracle=RewardOracle(config.no_response_penalty, config.bug_reward),
        max_steps=config.step_limit,
        steps_cap=config.steps_since_execute_cap,
        dial_turn_reward=config.dial_turn_reward,
    )
    return SarsaAgent(env, network, config, rng, stats=stats)
