"""
Masked epsilon-greedy action selection over a Q-network.
"""

import numpy as np

from .q_network import QNetwork


def epsilon_greedy_masked(network: QNetwork, state: np.ndarray, epsilon: float,
                          mask: np.ndarray, rng: np.random.Generator) -> int:
    """
    With probability ``epsilon`` pick uniformly among legal actions, otherwise
    the legal action with the highest estimate (ties go to the lowest index).

    Raises:
        ValueError: If the mask has the wrong length or allows no action
    """
    mask = np.asarray(mask, dtype=bool)
    if mask.shape != (network.action_count,):
        raise ValueError(f"Mask must have shape ({network.action_count},), got {mask.shape}")

    legal = np.flatnonzero(mask)
    if legal.size == 0:
        raise ValueError("No valid actions available")

    if rng.random() < epsilon:
        return int(legal[rng.integers(legal.size)])

    q_values = network.estimate_all(state)
    masked = np.where(mask, q_values, -np.inf)
    return int(np.argmax(masked))
