"""
SARSA REST API Fuzz Tester

Learns, by trial and error against a running HTTP service, which combinations
of request method, resource, field focus, mutation strategy and intensity make
the service fail with an HTTP 500.
"""

__version__ = "1.0.0"
__author__ = "restsarsa developers"
__description__ = "SARSA-driven fuzz tester for CRUD REST services"

from .strategy import HttpVerb, Resource, Field, MutationStrategy, Intensity, StrategyState
from .state import Observation, encode, FEATURE_COUNT
from .actions import Action, ACTION_COUNT, apply_action, compute_mask
from .q_network import QNetwork
from .policy import epsilon_greedy_masked
from .reward import RewardOracle
from .client import ApiResponse, ServiceClient
from .payloads import PayloadGenerator
from .environment import FuzzEnvironment
from .config import TesterConfig
from .stats import TrainingStats
from .agent import SarsaAgent, Transition, EpisodeResult, build_agent

__all__ = [
    # Core classes
    'QNetwork',
    'SarsaAgent',
    'FuzzEnvironment',
    'ServiceClient',
    'PayloadGenerator',
    'RewardOracle',
    'TrainingStats',
    'TesterConfig',

    # Data classes and enumerations
    'StrategyState',
    'Observation',
    'ApiResponse',
    'Transition',
    'EpisodeResult',
    'HttpVerb',
    'Resource',
    'Field',
    'MutationStrategy',
    'Intensity',
    'Action',

    # Functions
    'encode',
    'apply_action',
    'compute_mask',
    'epsilon_greedy_masked',
    'build_agent',

    # Constants
    'FEATURE_COUNT',
    'ACTION_COUNT',
]
