"""
Training Statistics

Windowed counters fed from the agent's transition stream: how often each
action was taken, how executed requests were distributed over the dials, and
which dial combinations provoked server errors.
"""

import time
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from .reward import BUG_STATUS


logger = logging.getLogger(__name__)


@dataclass
class WindowSummary:
    """Snapshot of one reporting window."""
    episodes: int
    average_reward: float
    execute_ratio: float
    executes: int
    dial_turns: int
    unique_bug_combos: int
    top_bug_combos: List[Tuple[str, int]]
    distributions: Dict[str, Dict[str, int]]
    action_counts: Dict[int, int]
    elapsed: float


@dataclass
class TrainingStats:
    """Transition listener accumulating windowed and run-wide statistics."""
    top_n: int = 5

    action_counts: Counter = field(default_factory=Counter)
    distributions: Dict[str, Counter] = field(default_factory=dict)
    bug_counts: Counter = field(default_factory=Counter)
    unique_bug_combos: Set[str] = field(default_factory=set)
    executes: int = 0
    dial_turns: int = 0
    window_reward: float = 0.0
    window_episodes: int = 0
    window_start: float = field(default_factory=time.time)

    def __call__(self, transition) -> None:
        self.record(transition)

    def record(self, transition) -> None:
        self.action_counts[transition.action] += 1
        self.window_reward += transition.reward

        if transition.executed is None:
            self.dial_turns += 1
            return

        self.executes += 1
        for dial, value in (transition.dials or {}).items():
            self.distributions.setdefault(dial, Counter())[value] += 1

        if transition.status_code == BUG_STATUS:
            self.bug_counts[transition.executed] += 1
            self.unique_bug_combos.add(transition.executed)

    def end_episode(self) -> None:
        self.window_episodes += 1

    def summary(self) -> WindowSummary:
        total_steps = self.executes + self.dial_turns
        return WindowSummary(
            episodes=self.window_episodes,
            average_reward=self.window_reward / self.window_episodes if self.window_episodes else 0.0,
            execute_ratio=self.executes / total_steps if total_steps else 0.0,
            executes=self.executes,
            dial_turns=self.dial_turns,
            unique_bug_combos=len(self.unique_bug_combos),
            top_bug_combos=self.bug_counts.most_common(self.top_n),
            distributions={dial: dict(counts) for dial, counts in self.distributions.items()},
            action_counts=dict(sorted(self.action_counts.items())),
            elapsed=time.time() - self.window_start,
        )

    def reset_window(self) -> None:
        """Clear windowed counters; the unique bug set is kept for the whole run."""
        self.action_counts.clear()
        self.distributions.clear()
        self.bug_counts.clear()
        self.executes = 0
        self.dial_turns = 0
        self.window_reward = 0.0
        self.window_episodes = 0
        self.window_start = time.time()

    def log_window(self, episode: int) -> WindowSummary:
        """Log the current window at INFO and start a new one."""
        summary = self.summary()
        logger.info(
            f"Episode {episode:,} | Avg Reward: {summary.average_reward:.3f} | "
            f"Unique Bug Combos: {summary.unique_bug_combos} | Time: {summary.elapsed:.1f}s"
        )
        logger.info(
            f"Execute ratio: {summary.execute_ratio * 100:.1f}% "
            f"({summary.executes} executes, {summary.dial_turns} dial-turners)"
        )
        for dial, counts in summary.distributions.items():
            rendered = ', '.join(f"{k}={v}" for k, v in sorted(counts.items()))
            logger.info(f"  {dial}: {rendered}")
        for combo, count in summary.top_bug_combos:
            logger.info(f"  bug {combo}: {count} times")
        self.reset_window()
        return summary

