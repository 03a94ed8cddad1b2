"""
Simulation Configuration
========================
Default parameters, optionally overridden by a YAML file.

Only the keys present in the file are overridden; nested sections are
merged recursively, so a file may contain just:

    room:
      width: 6.0
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Optional, Union

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "simulation_params.yaml"


def default_config() -> Dict:
    """Default configuration if no file provided"""
    return {
        'room': {
            'width': 10.0,      # m - x extent
            'depth': 10.0       # m - z extent
        },
        'gains': {
            'max_trans_gain': 0.26,
            'min_trans_gain': -0.14,
            'max_rot_gain': 0.49,
            'min_rot_gain': -0.2,
            'curvature_radius': 7.5
        },
        'simulation': {
            'use_manual_time': True,
            'target_fps': 60.0,
            'duration': 60.0     # s - demo run length
        },
        'walker': {
            'speed': 1.0,
            'angular_speed': 90.0,
            'waypoint_distance': 6.0,
            'seed': None
        },
        'strategies': {
            'redirector': 's2c',
            'resetter': 'two_one_turn'
        },
        'reset': {
            'trigger_buffer': 0.5
        },
        'training': {
            'grid_size': 4,
            'max_steps': 100,
            'wait_time': 0.5,    # s of simulated time per decision
            'terminate_on_reset': False,
            'episodes': 200,
            'learning_rate': 0.1,
            'discount': 0.95,
            'epsilon': 0.1,
            'seed': None
        }
    }


def _merge(base: Dict, override: Dict) -> Dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: Optional[Union[str, Path]] = None) -> Dict:
    """
    Load configuration, layering the YAML file over the defaults.

    With no path, config/simulation_params.yaml is used if it exists.
    """
    config = copy.deepcopy(default_config())

    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return config
        path = DEFAULT_CONFIG_PATH

    with open(path, 'r') as f:
        overrides = yaml.safe_load(f) or {}
    if not isinstance(overrides, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(overrides).__name__}")

    return _merge(config, overrides)
