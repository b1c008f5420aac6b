import pytest

from mdp_rl.environment import grid_4x3_mdp
from mdp_rl.mdp import MDP


@pytest.fixture
def chain_mdp() -> MDP:
    """Deterministic chain s0 -> s1 -> goal under the single action 'go'."""
    return MDP(
        initial="s0",
        actions=["go"],
        terminal_states={"goal"},
        gamma=0.9,
        transitions={
            ("s0", "go"): {"s1": 1.0},
            ("s1", "go"): {"goal": 1.0},
        },
        reward={"s0": -0.1, "s1": -0.1, "goal": 1.0},
    )


@pytest.fixture
def chain_policy() -> dict:
    return {"s0": "go", "s1": "go"}


@pytest.fixture
def choice_mdp() -> MDP:
    """One decision: 'good' leads to +1, 'bad' to -1."""
    return MDP(
        initial="start",
        actions=["bad", "good"],
        terminal_states={"win", "lose"},
        gamma=0.9,
        transitions={
            ("start", "good"): {"win": 1.0},
            ("start", "bad"): {"lose": 1.0},
        },
        reward={"start": -0.04, "win": 1.0, "lose": -1.0},
    )


@pytest.fixture
def grid_mdp_4x3() -> MDP:
    return grid_4x3_mdp()
