"""
Reward Oracle

An HTTP 500 from the service under test counts as a confirmed defect. A
request that produced no response at all is penalized as a wasted execution;
every other outcome scores zero.
"""

import logging
from collections import Counter
from typing import Optional, Set

from .client import ApiResponse


logger = logging.getLogger(__name__)

NO_RESPONSE_PENALTY = -0.15
BUG_REWARD = 10.0
BUG_STATUS = 500


class RewardOracle:
    """Scores executed requests and keeps novelty bookkeeping of bug combos."""

    def __init__(self, no_response_penalty: float = NO_RESPONSE_PENALTY,
                 bug_reward: float = BUG_REWARD):
        self.no_response_penalty = no_response_penalty
        self.bug_reward = bug_reward
        self.unique_bug_combos: Set[str] = set()
        self.bug_counts: Counter = Counter()

    def score(self, response: Optional[ApiResponse], executed_combo: Optional[str] = None) -> float:
        """
        Reward for one execution.

        Args:
            response: Response of the executed request, None if none was obtained
            executed_combo: Label of the executed dial combination

        Returns:
            Scalar reward
        """
        if response is None:
            return self.no_response_penalty
        if response.status_code != BUG_STATUS:
            return 0.0

        if executed_combo is not None:
            self.bug_counts[executed_combo] += 1
            if executed_combo not in self.unique_bug_combos:
                self.unique_bug_combos.add(executed_combo)
                logger.info(f"🐛 New bug combination: {executed_combo}")
        return self.bug_reward

    def is_known_bug(self, executed_combo: str) -> bool:
        return executed_combo in self.unique_bug_combos
