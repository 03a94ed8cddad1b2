"""
Q-Learning Training Script for Grid RDW
=======================================
Train a tabular Q-learning agent to pick redirection curvature on the
grid environment.

The agent learns:
- Which curvature keeps the user away from the walls from each cell
- That resets (-100) cost far more than any gain change

Usage:
    python -m rdw.training.train_qlearning --episodes 200
    rdw-train --episodes 500 --grid-size 6
"""

import argparse
import logging
import numpy as np
from typing import List, Optional

from ..ai.agents import QLearningAgent, RandomPolicy
from ..config import load_config
from .grid_env import GridEnvironment


def train_qlearning(
    episodes: Optional[int] = None,
    config_path: Optional[str] = None,
    grid_size: Optional[int] = None,
    max_steps: Optional[int] = None,
    log_interval: int = 10,
    seed: Optional[int] = None,
    random_baseline: bool = False
) -> List[float]:
    """
    Train a Q-learning agent on GridEnvironment.

    Args:
        episodes: Number of training episodes (default from config)
        config_path: YAML config file
        grid_size: Cells per room side (default from config)
        max_steps: Decisions per episode (default from config)
        log_interval: Print stats every N episodes
        seed: Seed for placement, walker and exploration
        random_baseline: Use a random policy instead of learning

    Returns:
        Cumulative reward per episode
    """
    config = load_config(config_path)
    training = config['training']
    if episodes is None:
        episodes = int(training['episodes'])
    if seed is None:
        seed = training.get('seed')

    env = GridEnvironment(config=config, grid_size=grid_size, max_steps=max_steps)

    print("=" * 60)
    print("GRID RDW Q-LEARNING TRAINING")
    print("=" * 60)
    print(f"Episodes: {episodes}")
    print(f"Grid: {env.grid_size}x{env.grid_size} over "
          f"{env.manager.room.width:.1f}x{env.manager.room.depth:.1f} m")
    print(f"Steps/episode: {env.max_steps} ({env.frames_per_decision} frames each)")
    print(f"Observation space: {env.observation_space}")
    print(f"Action space: {env.action_space}")
    print("=" * 60)

    if random_baseline:
        policy = RandomPolicy(env.env_parameters, seed=seed)
        print("[!] Using random policy baseline")
    else:
        policy = QLearningAgent(
            env.env_parameters,
            learning_rate=training['learning_rate'],
            discount=training['discount'],
            epsilon=training['epsilon'],
            seed=seed
        )

    all_rewards = []
    all_resets = []
    all_lengths = []

    env.reset(seed=seed)
    try:
        for episode in range(1, episodes + 1):
            summary = env.run_episode(policy)

            all_rewards.append(summary.cumulative_reward)
            all_resets.append(summary.resets)
            all_lengths.append(summary.steps)

            if episode % log_interval == 0:
                print(f"Episode {episode:5d} | "
                      f"Reward: {np.mean(all_rewards[-log_interval:]):8.1f} | "
                      f"Resets: {np.mean(all_resets[-log_interval:]):.2f} | "
                      f"Length: {np.mean(all_lengths[-log_interval:]):.0f} | "
                      f"End: {summary.end.value}")
    finally:
        env.close()

    print("=" * 60)
    print("TRAINING COMPLETE")
    print("=" * 60)
    print(f"Total episodes: {episodes}")
    if all_rewards:
        print(f"Final avg reward: {np.mean(all_rewards[-100:]):.1f}")
        print(f"Final avg resets: {np.mean(all_resets[-100:]):.2f}")

    if isinstance(policy, QLearningAgent):
        print("\nGreedy action per cell (row 0 at the bottom):")
        names = env.env_parameters.action_descriptions
        for row in reversed(range(env.grid_size)):
            cells = [names[policy.greedy_action(env.grid_size * row + col)]
                     for col in range(env.grid_size)]
            print("  " + " ".join(f"{name:>10s}" for name in cells))

    return all_rewards


def main(argv=None):
    parser = argparse.ArgumentParser(description="Train Q-learning on the grid RDW environment")
    parser.add_argument("--episodes", type=int, default=None, help="Number of episodes")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--grid-size", type=int, default=None, help="Cells per room side")
    parser.add_argument("--steps", type=int, default=None, help="Decisions per episode")
    parser.add_argument("--log-interval", type=int, default=10, help="Log every N episodes")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--random", action="store_true", help="Random policy baseline")
    parser.add_argument("--log-level", type=str, default="WARNING")

    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    train_qlearning(
        episodes=args.episodes,
        config_path=args.config,
        grid_size=args.grid_size,
        max_steps=args.steps,
        log_interval=args.log_interval,
        seed=args.seed,
        random_baseline=args.random
    )


if __name__ == "__main__":
    main()
