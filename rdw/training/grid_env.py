"""
Grid RDW Gym Environment
========================
Wraps RedirectionSimulation as a discrete Gymnasium environment.

Observation space: index of the grid cell the user stands in (real frame)
Action space: None, SmallLeft, LargeLeft, SmallRight, LargeRight
Rewards: action cost, dominated by a large penalty whenever a reset runs

Per decision the sequence is fixed:
    collect_state -> select_action -> middle_step (reward) -> reset if terminal
run_mdp() drives it with a Policy; step()/reset() expose the same loop
through the Gymnasium API.
"""

import logging
import time
import gymnasium as gym
from gymnasium import spaces
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..ai.agents import EnvironmentParameters, Policy
from ..ai.redirectors import ActionRedirector
from ..config import load_config
from ..main import RedirectionSimulation

logger = logging.getLogger(__name__)


class EpisodeEnd(Enum):
    """Why an episode ended"""
    TRUNCATED = "truncated"           # Step limit reached
    OUT_OF_BOUNDS = "out_of_bounds"   # Reset happened with terminate_on_reset
    EXTERNAL = "external"             # signal_terminal() from the host


@dataclass
class EpisodeState:
    """Counters for the running episode"""
    step_count: int = 0
    cumulative_reward: float = 0.0
    resets: int = 0


@dataclass
class EpisodeSummary:
    """Report of a finished episode"""
    index: int
    steps: int
    cumulative_reward: float
    resets: int
    end: EpisodeEnd


class GridEnvironment(gym.Env):
    """
    Gymnasium environment for learning redirection gains on a grid.

    The agent controls:
    - The curvature of an ActionRedirector (when that redirector is active)

    The agent observes:
    - A single cell index over a grid_size x grid_size grid spanning the room
    """

    metadata = {"render_modes": ["ansi"], "render_fps": 4}

    ACTION_NAMES = ActionRedirector.ACTION_NAMES
    ACTION_REWARDS = {0: 0.0, 1: -0.5, 2: -1.0, 3: -0.5, 4: -1.0}
    RESET_PENALTY = -100.0

    def __init__(self,
                 config_path: Optional[str] = None,
                 config: Optional[Dict] = None,
                 simulation: Optional[RedirectionSimulation] = None,
                 grid_size: Optional[int] = None,
                 max_steps: Optional[int] = None,
                 wait_time: Optional[float] = None,
                 terminate_on_reset: Optional[bool] = None,
                 render_mode: Optional[str] = None):
        super().__init__()

        if simulation is not None:
            self.sim = simulation
            self.config = simulation.config
        else:
            self.config = config if config is not None else load_config(config_path)
            self.sim = RedirectionSimulation(config=self.config, redirector="action")

        training = self.config['training']
        self.grid_size = int(grid_size if grid_size is not None else training['grid_size'])
        self.max_steps = int(max_steps if max_steps is not None else training['max_steps'])
        self.wait_time = float(wait_time if wait_time is not None else training['wait_time'])
        self.terminate_on_reset = bool(
            terminate_on_reset if terminate_on_reset is not None else training['terminate_on_reset']
        )
        if self.grid_size < 1:
            raise ValueError(f"grid_size must be at least 1, got {self.grid_size}")
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {self.max_steps}")
        if self.wait_time <= 0:
            raise ValueError(f"wait_time must be positive, got {self.wait_time}")

        self.render_mode = render_mode
        self.env_parameters = self.set_up()

        # ===== SPACES =====
        self.observation_space = spaces.Discrete(self.env_parameters.state_size)
        self.action_space = spaces.Discrete(self.env_parameters.action_size)

        self.episode = EpisodeState()
        self.episode_index = 0
        self.history: List[EpisodeSummary] = []
        self._episode_callbacks: List[Callable[[EpisodeSummary], None]] = []
        self._started = False
        self._terminal_signal = False
        self._reset_seen = False

    @property
    def manager(self):
        return self.sim.manager

    def set_up(self) -> EnvironmentParameters:
        """Declare the environment to the policy"""
        return EnvironmentParameters(
            observation_size=0,
            state_size=self.grid_size * self.grid_size,
            action_size=len(self.ACTION_NAMES),
            action_descriptions=tuple(self.ACTION_NAMES),
            env_name="GridRW",
            state_space_type="discrete",
            action_space_type="discrete",
            num_agents=1
        )

    @property
    def frames_per_decision(self) -> int:
        return max(1, int(round(self.wait_time * self.sim.clock.target_fps)))

    # =========================================================================
    # OBSERVATION
    # =========================================================================

    def cell_index(self, real_position: np.ndarray) -> int:
        """
        Grid cell of a room-relative position.

        Cells are half-open [k, k+1) on both axes; the far walls and
        anything outside the room clamp into the border cells.
        """
        room = self.manager.room
        nx = (real_position[0] + room.half_width) / room.width * self.grid_size
        ny = (real_position[1] + room.half_depth) / room.depth * self.grid_size
        col = min(max(int(np.floor(nx)), 0), self.grid_size - 1)
        row = min(max(int(np.floor(ny)), 0), self.grid_size - 1)
        return self.grid_size * row + col

    def collect_state(self) -> List[float]:
        """The user's current cell as a one-element observation"""
        return [float(self.cell_index(self.sim.real_position()))]

    # =========================================================================
    # ACTION / REWARD
    # =========================================================================

    def apply_action(self, action: int):
        redirector = self.manager.redirector
        if isinstance(redirector, ActionRedirector):
            redirector.set_action(action)

    def middle_step(self, action: int) -> float:
        """Reward for the action just taken; accumulates into the episode"""
        if action not in self.ACTION_REWARDS:
            raise ValueError(f"Unknown action {action}")
        reward = self.ACTION_REWARDS[action]

        # A reset is the worst outcome and overrides any action cost
        if self.manager.in_reset or self._reset_seen:
            reward = self.RESET_PENALTY

        self.episode.cumulative_reward += reward
        return reward

    def _advance(self):
        """Run the simulation for one decision interval"""
        resets_before = self.manager.stats.resets
        clock = self.sim.clock
        if clock.use_manual_time:
            for _ in range(self.frames_per_decision):
                self.sim.step()
        else:
            start = clock.time()
            while clock.time() - start < self.wait_time:
                self.sim.step()
                time.sleep(1.0 / clock.target_fps)
        new_resets = self.manager.stats.resets - resets_before
        self.episode.resets += new_resets
        self._reset_seen = new_resets > 0

    # =========================================================================
    # EPISODE LIFECYCLE
    # =========================================================================

    def signal_terminal(self):
        """Host-side terminal condition; ends the episode after this step"""
        self._terminal_signal = True

    def on_episode_end(self, callback: Callable[[EpisodeSummary], None]):
        """Register callback for finished episodes"""
        self._episode_callbacks.append(callback)

    def reset(self, seed: Optional[int] = None, options: Optional[Dict] = None) -> Tuple[int, Dict]:
        """Start a new episode with the user at a random spot in the room"""
        super().reset(seed=seed)
        if seed is not None:
            self.sim.walker.reseed(seed)

        self.episode = EpisodeState()
        self._terminal_signal = False
        self._reset_seen = False

        resetter = self.manager.resetter
        if resetter is not None:
            max_x, max_z = resetter.max_x, resetter.max_z
        else:
            max_x, max_z = self.manager.room.half_width, self.manager.room.half_depth
        position = np.array([
            self.np_random.uniform(-max_x, max_x),
            self.np_random.uniform(-max_z, max_z)
        ])
        self.sim.place_user(position)
        self.apply_action(0)

        self._started = True
        obs = int(self.collect_state()[0])
        return obs, self._get_info()

    def step(self, action: int) -> Tuple[int, float, bool, bool, Dict]:
        """Execute one decision"""
        assert self._started, "Must call reset() before step()"
        action = int(action)
        if not self.action_space.contains(action):
            raise ValueError(f"Action {action} outside {self.action_space}")

        self.apply_action(action)
        self._advance()
        reward = self.middle_step(action)
        self.episode.step_count += 1

        end = self._check_end()
        terminated = end in (EpisodeEnd.OUT_OF_BOUNDS, EpisodeEnd.EXTERNAL)
        truncated = end == EpisodeEnd.TRUNCATED

        obs = int(self.collect_state()[0])
        info = self._get_info()
        if end is not None:
            info['episode_end'] = end.value
            self._finish_episode(end)
        return obs, reward, terminated, truncated, info

    def _check_end(self) -> Optional[EpisodeEnd]:
        if self._terminal_signal:
            return EpisodeEnd.EXTERNAL
        if self.terminate_on_reset and self._reset_seen:
            return EpisodeEnd.OUT_OF_BOUNDS
        if self.episode.step_count >= self.max_steps:
            return EpisodeEnd.TRUNCATED
        return None

    def _finish_episode(self, end: EpisodeEnd):
        self.episode_index += 1
        summary = EpisodeSummary(
            index=self.episode_index,
            steps=self.episode.step_count,
            cumulative_reward=self.episode.cumulative_reward,
            resets=self.episode.resets,
            end=end
        )
        self.history.append(summary)
        self._started = False
        logger.info("Episode %d ended (%s) after %d steps, reward %.2f",
                    summary.index, end.value, summary.steps, summary.cumulative_reward)
        for callback in self._episode_callbacks:
            callback(summary)

    def run_mdp(self, policy: Policy) -> Tuple[float, bool]:
        """
        One decision driven by policy: observe -> act -> reward -> (reset).

        Returns (reward, done).
        """
        if not self._started:
            self.reset()

        observation = self.collect_state()
        action = policy.select_action(observation)
        _, reward, terminated, truncated, _ = self.step(action)
        done = terminated or truncated

        policy.receive_reward(reward, self.collect_state(), done)
        if done:
            self.reset()
        return reward, done

    def run_episode(self, policy: Policy) -> EpisodeSummary:
        """Run decisions until the current episode ends"""
        done = False
        while not done:
            _, done = self.run_mdp(policy)
        return self.history[-1]

    def _get_info(self) -> Dict:
        return {
            'step': self.episode.step_count,
            'cumulative_reward': self.episode.cumulative_reward,
            'in_reset': self.manager.in_reset,
            'resets': self.episode.resets,
            'position_real': self.sim.real_position().tolist()
        }

    # =========================================================================
    # RENDER
    # =========================================================================

    def render(self):
        """Text grid with the user's cell marked (row 0 at the bottom)"""
        if self.render_mode != "ansi":
            return None
        cell = self.cell_index(self.sim.real_position())
        lines = []
        for row in reversed(range(self.grid_size)):
            line = ""
            for col in range(self.grid_size):
                line += " U" if self.grid_size * row + col == cell else " ."
            lines.append(line)
        status = "RESET" if self.manager.in_reset else "ok"
        lines.append(f"step {self.episode.step_count} reward {self.episode.cumulative_reward:.1f} [{status}]")
        return "\n".join(lines)

    def close(self):
        """Clean up"""
        self.sim.close()


# Register the environment
gym.register(
    id='GridRDW-v0',
    entry_point='rdw.training.grid_env:GridEnvironment',
)
