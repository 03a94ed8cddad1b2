"""
Test Suite: Learning Agents
===========================
Unit tests for the policies that drive the grid environment.
"""

import numpy as np
import pytest

from rdw.ai import EnvironmentParameters, QLearningAgent, RandomPolicy


@pytest.fixture
def params():
    return EnvironmentParameters(
        observation_size=0,
        state_size=4,
        action_size=2,
        action_descriptions=("Stay", "Go")
    )


class TestEnvironmentParameters:
    """Tests for EnvironmentParameters"""

    def test_description_count_must_match(self):
        with pytest.raises(ValueError):
            EnvironmentParameters(
                observation_size=0,
                state_size=4,
                action_size=3,
                action_descriptions=("A", "B")
            )

    def test_defaults(self, params):
        assert params.env_name == "GridRW"
        assert params.state_space_type == "discrete"
        assert params.num_agents == 1


class TestRandomPolicy:
    """Tests for RandomPolicy"""

    def test_actions_in_range(self, params):
        policy = RandomPolicy(params, seed=0)
        actions = {policy.select_action([0.0]) for _ in range(50)}
        assert actions <= {0, 1}


class TestQLearningAgent:
    """Tests for tabular Q-learning"""

    @pytest.fixture
    def agent(self, params):
        return QLearningAgent(params, learning_rate=0.1, discount=0.95, epsilon=0.0, seed=0)

    def test_q_table_shape(self, agent):
        assert agent.q_table.shape == (4, 2)

    def test_terminal_update_has_no_bootstrap(self, agent):
        action = agent.select_action([1.0])
        agent.receive_reward(1.0, [2.0], done=True)

        assert agent.q_table[1, action] == pytest.approx(0.1)

    def test_update_bootstraps_from_next_state(self, agent):
        agent.q_table[2] = [0.0, 10.0]
        agent.q_table[1] = [0.0, 0.0]
        agent.q_table[1, 1] = 0.1   # make action 1 greedy in state 1

        action = agent.select_action([1.0])
        agent.receive_reward(0.0, [2.0], done=False)

        assert action == 1
        # 0.1 + 0.1 * (0 + 0.95 * 10 - 0.1)
        assert agent.q_table[1, 1] == pytest.approx(1.04)

    def test_greedy_action(self, agent):
        agent.q_table[3] = [-1.0, 2.0]
        assert agent.greedy_action(3) == 1

    def test_state_out_of_range(self, agent):
        with pytest.raises(ValueError):
            agent.select_action([4.0])

    def test_reward_without_action_ignored(self, agent):
        agent.receive_reward(5.0, [0.0], done=False)
        np.testing.assert_array_equal(agent.q_table, np.zeros((4, 2)))

    def test_continuous_spaces_rejected(self):
        params = EnvironmentParameters(
            observation_size=3,
            state_size=0,
            action_size=1,
            action_descriptions=("Steer",),
            state_space_type="continuous"
        )
        with pytest.raises(ValueError):
            QLearningAgent(params)
