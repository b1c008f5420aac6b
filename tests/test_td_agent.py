import pytest

from mdp_rl.agents_rl import PassiveTDAgent, constant_learning_rate
from mdp_rl.mdp import NO_ACTION
from mdp_rl.policy_evaluation import solve_policy_utilities


def test_td_update_arithmetic(chain_mdp, chain_policy):
    agent = PassiveTDAgent(chain_policy, chain_mdp, alpha=lambda n: 0.5)

    agent.execute(("s0", 1.0))
    agent.U["s0"] = 0.0
    agent.execute(("s1", 2.0))

    assert agent.U["s1"] == 2.0
    assert agent.N_s["s0"] == 1
    assert agent.U["s0"] == pytest.approx(0.0 + 0.5 * (1.0 + 0.9 * 2.0 - 0.0))
    assert agent.U["s0"] == pytest.approx(1.4)


def test_default_learning_rate_is_harmonic(chain_mdp, chain_policy):
    agent = PassiveTDAgent(chain_policy, chain_mdp)
    assert agent.alpha(1) == 0.5
    assert agent.alpha(3) == 0.25


def test_first_visit_captures_reward_once(chain_mdp, chain_policy):
    agent = PassiveTDAgent(chain_policy, chain_mdp)

    agent.execute(("s0", -0.1))
    assert agent.U["s0"] == -0.1

    agent.execute(("s1", -0.1))
    updated = agent.U["s0"]
    assert updated != -0.1

    agent.execute(("goal", 1.0))
    agent.execute(("s0", -0.1))
    assert agent.U["s0"] == updated


def test_episode_boundary(chain_mdp, chain_policy):
    agent = PassiveTDAgent(chain_policy, chain_mdp)

    assert agent.execute(("s0", -0.1)) == "go"
    assert agent.execute(("s1", -0.1)) == "go"
    assert agent.execute(("goal", 1.0)) is NO_ACTION
    assert (agent.state, agent.action, agent.reward) == (None, None, None)

    counts = dict(agent.N_s)
    assert agent.execute(("s0", -0.1)) == "go"
    assert dict(agent.N_s) == counts


def test_converges_with_constant_learning_rate(chain_mdp, chain_policy):
    agent = PassiveTDAgent(chain_policy, chain_mdp, alpha=constant_learning_rate(0.5))
    exact = solve_policy_utilities(chain_policy, chain_mdp)

    for _ in range(200):
        for state in ["s0", "s1", "goal"]:
            agent.execute((state, chain_mdp.reward(state)))

    for state, value in exact.items():
        assert agent.U[state] == pytest.approx(value, abs=1e-3)


def test_converges_with_harmonic_learning_rate(chain_mdp, chain_policy):
    agent = PassiveTDAgent(chain_policy, chain_mdp)
    exact = solve_policy_utilities(chain_policy, chain_mdp)

    for _ in range(2000):
        for state in ["s0", "s1", "goal"]:
            agent.execute((state, chain_mdp.reward(state)))

    for state, value in exact.items():
        assert agent.U[state] == pytest.approx(value, abs=1e-2)


def test_constant_learning_rate_must_be_positive():
    with pytest.raises(ValueError):
        constant_learning_rate(0.0)
