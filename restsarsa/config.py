"""
Run configuration: hyperparameters and service settings, fixed for a run.
"""

import logging
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from .q_network import DEFAULT_ERROR_CLIP
from .reward import BUG_REWARD, NO_RESPONSE_PENALTY
from .state import STEPS_SINCE_EXECUTE_CAP


logger = logging.getLogger(__name__)


@dataclass
class TesterConfig:
    # ----- Training schedule -----
    episodes: int = 200_000
    step_limit: int = 35
    log_every: int = 10_000
    seed: int = 1234

    # ----- SARSA hparams -----
    epsilon: float = 0.01
    alpha: float = 0.01
    gamma: float = 1.0
    hidden_units: int = 8
    error_clip: float = DEFAULT_ERROR_CLIP

    # ----- Reward -----
    no_response_penalty: float = NO_RESPONSE_PENALTY
    bug_reward: float = BUG_REWARD
    dial_turn_reward: float = 0.0

    # ----- Observation -----
    steps_since_execute_cap: int = STEPS_SINCE_EXECUTE_CAP

    # ----- Service under test -----
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_TIMEOUT

    def validate(self) -> 'TesterConfig':
        """Raise ValueError on out-of-range values; returns self for chaining."""
        for name in ('episodes', 'step_limit', 'log_every', 'hidden_units', 'steps_since_execute_cap'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        if not 0.0 <= self.epsilon <= 1.0:
            raise ValueError(f"epsilon must be in [0, 1], got {self.epsilon}")
        if self.alpha <= 0.0:
            raise ValueError(f"alpha must be > 0, got {self.alpha}")
        if not 0.0 <= self.gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")
        if self.error_clip <= 0.0:
            raise ValueError(f"error_clip must be > 0, got {self.error_clip}")
        if self.request_timeout <= 0.0:
            raise ValueError(f"request_timeout must be > 0, got {self.request_timeout}")
        if not self.base_url.startswith(('http://', 'https://')):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TesterConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data).validate()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'TesterConfig':
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        logger.info(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    def with_overrides(self, **overrides: Any) -> 'TesterConfig':
        """Copy with the given values replaced; None values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
