"""
Learning Agents
===============
Policies that drive the GridEnvironment.

A policy is built from the environment's EnvironmentParameters and then
exchanges one observation/action/reward per decision:

    action = policy.select_action(observation)
    policy.receive_reward(reward, next_observation, done)

- RandomPolicy: uniform random actions (baseline)
- QLearningAgent: tabular epsilon-greedy Q-learning over the grid cells
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class EnvironmentParameters:
    """Declarative description of a discrete RL environment"""
    observation_size: int
    state_size: int
    action_size: int
    action_descriptions: Tuple[str, ...]
    env_name: str = "GridRW"
    state_space_type: str = "discrete"
    action_space_type: str = "discrete"
    num_agents: int = 1

    def __post_init__(self):
        if len(self.action_descriptions) != self.action_size:
            raise ValueError(
                f"{self.action_size} actions declared but "
                f"{len(self.action_descriptions)} descriptions given"
            )


class Policy:
    """Base policy; subclasses pick actions and may learn from rewards"""

    def __init__(self, params: EnvironmentParameters, seed: Optional[int] = None):
        self.params = params
        self.rng = np.random.default_rng(seed)

    def select_action(self, observation: Sequence[float]) -> int:
        raise NotImplementedError

    def receive_reward(self, reward: float, next_observation: Sequence[float], done: bool):
        pass


class RandomPolicy(Policy):
    """Uniformly random actions"""

    def select_action(self, observation: Sequence[float]) -> int:
        return int(self.rng.integers(self.params.action_size))


class QLearningAgent(Policy):
    """
    Tabular Q-learning.

    The observation is a single discrete cell index; the Q-table is
    sized state_size x action_size from the environment parameters.
    """

    def __init__(self,
                 params: EnvironmentParameters,
                 learning_rate: float = 0.1,
                 discount: float = 0.95,
                 epsilon: float = 0.1,
                 seed: Optional[int] = None):
        super().__init__(params, seed)
        if params.state_space_type != "discrete" or params.action_space_type != "discrete":
            raise ValueError("QLearningAgent needs discrete state and action spaces")
        self.learning_rate = learning_rate
        self.discount = discount
        self.epsilon = epsilon

        self.q_table = np.zeros((params.state_size, params.action_size))
        self._last_state: Optional[int] = None
        self._last_action: Optional[int] = None

    def _state_index(self, observation: Sequence[float]) -> int:
        state = int(observation[0])
        if not 0 <= state < self.params.state_size:
            raise ValueError(f"State {state} outside 0..{self.params.state_size - 1}")
        return state

    def select_action(self, observation: Sequence[float]) -> int:
        state = self._state_index(observation)
        if self.rng.random() < self.epsilon:
            action = int(self.rng.integers(self.params.action_size))
        else:
            row = self.q_table[state]
            # Break ties randomly so untrained states do not always pick action 0
            best = np.flatnonzero(row == row.max())
            action = int(self.rng.choice(best))
        self._last_state = state
        self._last_action = action
        return action

    def receive_reward(self, reward: float, next_observation: Sequence[float], done: bool):
        if self._last_state is None:
            return
        s, a = self._last_state, self._last_action
        target = reward
        if not done:
            target += self.discount * self.q_table[self._state_index(next_observation)].max()
        self.q_table[s, a] += self.learning_rate * (target - self.q_table[s, a])
        if done:
            self._last_state = None
            self._last_action = None

    def greedy_action(self, state: int) -> int:
        return int(np.argmax(self.q_table[state]))
