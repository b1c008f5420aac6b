import gymnasium as gym
import numpy as np
import pytest

import mdp_rl  # noqa: F401  registers the grid world
from mdp_rl.agents_rl import PassiveTDAgent
from mdp_rl.environment import GRID_ENV_ID, MDPEnv, turn_left, turn_right
from mdp_rl.mdp import MDP


def test_turns():
    east, north, west, south = (1, 0), (0, 1), (-1, 0), (0, -1)
    assert turn_left(east) == north
    assert turn_right(east) == south
    assert turn_right(west) == north
    assert turn_left(south) == east


def test_grid_4x3_layout(grid_mdp_4x3):
    assert len(grid_mdp_4x3.states) == 11
    assert (1, 1) not in grid_mdp_4x3.states
    assert grid_mdp_4x3.terminal_states == {(3, 2), (3, 1)}
    assert grid_mdp_4x3.reward((3, 2)) == 1.0
    assert grid_mdp_4x3.reward((0, 0)) == -0.04


def test_grid_transitions(grid_mdp_4x3):
    for (state, action), dist in grid_mdp_4x3.transitions.items():
        assert sum(dist.values()) == pytest.approx(1.0)

    west = (-1, 0)
    outcomes = dict((s, p) for p, s in grid_mdp_4x3.transition_model((0, 0), west))
    assert outcomes == pytest.approx({(0, 0): 0.9, (0, 1): 0.1})
    assert grid_mdp_4x3.transition_model((3, 2), (1, 0)) == []


def test_registered_environment():
    env = gym.make(GRID_ENV_ID, step_reward=-0.04, gamma=0.9)
    observation, info = env.reset(seed=1)

    assert env.observation_space.contains(observation)
    assert info["state"] == (0, 0)
    assert info["reward"] == -0.04
    assert env.unwrapped.mdp.gamma == 0.9

    observation, reward, terminated, truncated, info = env.step(
        env.unwrapped.action_index((0, 1))
    )
    assert info["state"] in {(0, 0), (0, 1), (1, 0)}
    assert reward == -0.04
    assert not terminated and not truncated
    env.close()


def test_step_follows_transition_model(choice_mdp):
    env = MDPEnv(choice_mdp)
    env.reset(seed=0)

    observation, reward, terminated, truncated, info = env.step(env.action_index("good"))

    assert info["state"] == "win"
    assert reward == 1.0
    assert terminated

    with pytest.raises(RuntimeError):
        env.step(env.action_index("good"))


def test_seeded_episodes_are_reproducible(grid_mdp_4x3):
    def trajectory(seed):
        env = MDPEnv(grid_mdp_4x3)
        env.reset(seed=seed)
        states = []
        for _ in range(20):
            _, _, terminated, _, info = env.step(env.action_index((0, 1)))
            states.append(info["state"])
            if terminated:
                break
        return states

    assert trajectory(3) == trajectory(3)


def test_run_trial_clears_episode_on_truncation():
    loop = MDP(
        "s",
        ["stay"],
        [],
        gamma=0.5,
        transitions={("s", "stay"): {"s": 1.0}},
        reward={"s": -1.0},
    )
    env = MDPEnv(loop)
    env.reset(seed=0)
    agent = PassiveTDAgent({"s": "stay"}, loop)

    total = agent.run_trial(env, max_steps=5)

    assert total == -5.0
    assert agent.state is None
    assert agent.N_s["s"] == 4


def test_train_on_grid_world(grid_mdp_4x3):
    env = gym.make(GRID_ENV_ID)
    env.reset(seed=7)
    pi = {(0, 0): (0, 1), (0, 1): (0, 1), (0, 2): (1, 0), (1, 2): (1, 0), (2, 2): (1, 0),
          (1, 0): (-1, 0), (2, 0): (0, 1), (2, 1): (0, 1), (3, 0): (-1, 0)}
    agent = PassiveTDAgent(pi, env.unwrapped.mdp)

    rewards = agent.train(env, n_episodes=20, max_steps=200, verbose=False)

    assert rewards.shape == (20,)
    assert all(np.isfinite(value) for value in agent.utilities().values())
    env.close()
