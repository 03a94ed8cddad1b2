"""Grid RDW Training Module"""
from .grid_env import GridEnvironment, EpisodeEnd, EpisodeState, EpisodeSummary
from .train_qlearning import train_qlearning

__all__ = ['GridEnvironment', 'EpisodeEnd', 'EpisodeState', 'EpisodeSummary', 'train_qlearning']
