"""
AI Module
=========
Pluggable strategies and learning policies for the redirection loop.

- Redirectors: per-tick redirection (null, steer-to-center, action-driven, planned)
- Resetters: reset maneuvers (null, 2:1 turn)
- Agents: policies for the grid RL environment
"""

from typing import Dict, Optional, Type, Union

from .redirectors import (
    Redirector,
    RedirectionGains,
    NullRedirector,
    SteerToCenterRedirector,
    ActionRedirector,
    PlannedRedirector
)

from .resetters import (
    Resetter,
    NullResetter,
    TwoOneTurnResetter
)

from .planning import PlanningTask

from .agents import (
    EnvironmentParameters,
    Policy,
    RandomPolicy,
    QLearningAgent
)

REDIRECTORS: Dict[str, Type[Redirector]] = {
    cls.name: cls for cls in (NullRedirector, SteerToCenterRedirector, ActionRedirector, PlannedRedirector)
}

RESETTERS: Dict[str, Type[Resetter]] = {
    cls.name: cls for cls in (NullResetter, TwoOneTurnResetter)
}


def resolve_strategy(kind: Union[str, type, None], registry: Dict[str, type]) -> Optional[type]:
    """Map a registry name (or class, or None) to a strategy class"""
    if kind is None or isinstance(kind, type):
        return kind
    try:
        return registry[kind]
    except KeyError:
        raise KeyError(f"Unknown strategy '{kind}'. Available: {sorted(registry)}") from None


__all__ = [
    'Redirector',
    'RedirectionGains',
    'NullRedirector',
    'SteerToCenterRedirector',
    'ActionRedirector',
    'PlannedRedirector',
    'Resetter',
    'NullResetter',
    'TwoOneTurnResetter',
    'PlanningTask',
    'EnvironmentParameters',
    'Policy',
    'RandomPolicy',
    'QLearningAgent',
    'REDIRECTORS',
    'RESETTERS',
    'resolve_strategy',
]
