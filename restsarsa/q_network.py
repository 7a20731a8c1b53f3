"""
Tiny Q-Network Value Function

A shallow feed-forward approximator for SARSA / Q-learning:

    input[D] -> tanh hidden[H] -> Q-values[A] (linear, one per action)

Gradients are computed analytically for this fixed two-layer shape, so the
semi-gradient TD update is a handful of numpy outer products rather than an
autodiff graph. The network knows nothing about HTTP; states are plain float
vectors and actions are integers in [0, A).
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np


logger = logging.getLogger(__name__)

DEFAULT_ERROR_CLIP = 10.0


class QNetwork:
    """One-hidden-layer action-value approximator with manual backpropagation."""

    def __init__(self, input_dim: int, hidden_units: int, action_count: int,
                 rng: Optional[np.random.Generator] = None, seed: Optional[int] = None,
                 error_clip: float = DEFAULT_ERROR_CLIP):
        if input_dim <= 0 or hidden_units <= 0 or action_count <= 0:
            raise ValueError(
                f"All dimensions must be > 0 (got input_dim={input_dim}, "
                f"hidden_units={hidden_units}, action_count={action_count})"
            )
        if error_clip <= 0:
            raise ValueError(f"error_clip must be > 0, got {error_clip}")

        self.input_dim = input_dim
        self.hidden_units = hidden_units
        self.action_count = action_count
        self.error_clip = error_clip
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        # Trunk: hidden = tanh(W_ih @ x + b_h)
        limit_ih = np.sqrt(6.0 / (input_dim + hidden_units))
        self.w_input_hidden = self.rng.uniform(-limit_ih, limit_ih, size=(hidden_units, input_dim))
        self.b_hidden = np.zeros(hidden_units)

        # Head: Q = W_hq @ hidden + b_q
        limit_hq = np.sqrt(6.0 / (hidden_units + action_count))
        self.w_hidden_q = self.rng.uniform(-limit_hq, limit_hq, size=(action_count, hidden_units))
        self.b_q = np.zeros(action_count)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def estimate(self, state: np.ndarray, action: int) -> float:
        """Q(s, a) for a single action."""
        self._check_action(action)
        hidden = self._hidden(self._check_state(state))
        return float(self.w_hidden_q[action] @ hidden + self.b_q[action])

    def estimate_all(self, state: np.ndarray) -> np.ndarray:
        """Q(s, .) for every action, as a fresh array."""
        hidden = self._hidden(self._check_state(state))
        return self.w_hidden_q @ hidden + self.b_q

    def best_action(self, state: np.ndarray) -> int:
        """Greedy action; ties go to the lowest index."""
        return int(np.argmax(self.estimate_all(state)))

    def max_value(self, state: np.ndarray) -> float:
        return float(np.max(self.estimate_all(state)))

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def update(self, state: np.ndarray, action: int, error: float, learning_rate: float) -> None:
        """
        Semi-gradient step: w += alpha * clip(error) * dQ(s, a)/dw.

        Only the chosen action's head row receives a gradient, while every
        hidden unit of the trunk does (scaled by that row's weight and the tanh
        derivative). The TD target inside ``error`` is treated as a constant.

        Args:
            state: Features of the state the action was taken in
            action: Action index
            error: TD error, e.g. r + gamma * Q(s', a') - Q(s, a)
            learning_rate: Step size alpha
        """
        self._check_action(action)
        x = self._check_state(state)
        hidden = self._hidden(x)

        step = learning_rate * float(np.clip(error, -self.error_clip, self.error_clip))
        if step == 0.0:
            return

        # dQ[a]/dhidden uses the head weights from before this step
        head_row = self.w_hidden_q[action].copy()

        self.w_hidden_q[action] += step * hidden
        self.b_q[action] += step

        chain = step * head_row * (1.0 - hidden * hidden)
        self.w_input_hidden += np.outer(chain, x)
        self.b_hidden += chain

    def sarsa_update(self, state: np.ndarray, action: int, reward: float,
                     next_state: np.ndarray, next_action: int, terminal: bool,
                     learning_rate: float, gamma: float) -> float:
        """
        On-policy update bootstrapping from the action actually chosen next.

        Returns:
            The unclipped TD error (useful for logging)
        """
        q_sa = self.estimate(state, action)
        q_next = 0.0 if terminal else self.estimate(next_state, next_action)
        error = reward + gamma * q_next - q_sa
        self.update(state, action, error, learning_rate)
        return error

    def q_learning_update(self, state: np.ndarray, action: int, reward: float,
                          next_state: np.ndarray, terminal: bool,
                          learning_rate: float, gamma: float) -> float:
        """Off-policy variant bootstrapping from max_a' Q(s', a')."""
        q_sa = self.estimate(state, action)
        q_next = 0.0 if terminal else self.max_value(next_state)
        error = reward + gamma * q_next - q_sa
        self.update(state, action, error, learning_rate)
        return error

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Save weights to a numpy ``.npz`` archive."""
        np.savez(
            path,
            w_input_hidden=self.w_input_hidden,
            b_hidden=self.b_hidden,
            w_hidden_q=self.w_hidden_q,
            b_q=self.b_q,
            error_clip=np.array(self.error_clip),
        )
        logger.info(f"Q-network saved to {path}")

    @classmethod
    def load(cls, path: Union[str, Path], rng: Optional[np.random.Generator] = None) -> 'QNetwork':
        """Restore a network saved with ``save``."""
        with np.load(path) as archive:
            w_input_hidden = archive['w_input_hidden']
            hidden_units, input_dim = w_input_hidden.shape
            action_count = archive['w_hidden_q'].shape[0]

            network = cls(input_dim, hidden_units, action_count, rng=rng,
                          error_clip=float(archive['error_clip']))
            network.w_input_hidden = w_input_hidden.copy()
            network.b_hidden = archive['b_hidden'].copy()
            network.w_hidden_q = archive['w_hidden_q'].copy()
            network.b_q = archive['b_q'].copy()

        logger.info(f"Q-network loaded from {path} ({input_dim}x{hidden_units}x{action_count})")
        return network

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _hidden(self, x: np.ndarray) -> np.ndarray:
        return np.tanh(self.w_input_hidden @ x + self.b_hidden)

    def _check_state(self, state) -> np.ndarray:
        x = np.asarray(state, dtype=np.float64)
        if x.shape != (self.input_dim,):
            raise ValueError(f"State must have shape ({self.input_dim},), got {x.shape}")
        return x

    def _check_action(self, action: int) -> None:
        if isinstance(action, bool) or not isinstance(action, (int, np.integer)):
            raise ValueError(f"Action index must be an integer, got {action!r}")
        if not 0 <= action < self.action_count:
            raise ValueError(f"Action index {action} out of range [0, {self.action_count})")
