import pytest

from mdp_rl.agents_rl import PassiveADPAgent
from mdp_rl.mdp import MDP, NO_ACTION
from mdp_rl.policy_evaluation import solve_policy_utilities


@pytest.fixture
def branching_mdp() -> MDP:
    return MDP(
        initial="s",
        actions=["go"],
        terminal_states={"A", "B"},
        gamma=0.9,
        transitions={("s", "go"): {"A": 0.75, "B": 0.25}},
        reward={"s": 0.0, "A": 1.0, "B": -1.0},
    )


def test_maximum_likelihood_transitions(branching_mdp):
    agent = PassiveADPAgent({"s": "go"}, branching_mdp)

    for outcome in ["A", "A", "B", "A"]:
        assert agent.execute(("s", 0.0)) == "go"
        assert agent.execute((outcome, 1.0 if outcome == "A" else -1.0)) is NO_ACTION

    assert agent.transition_estimates("s", "go") == {"A": 0.75, "B": 0.25}
    assert agent.N_sa[("s", "go")] == 4
    assert agent.N_s_prime_sa[("A", "s", "go")] == 3
    assert agent.N_s_prime_sa[("B", "s", "go")] == 1


def test_first_visit_captures_reward(chain_mdp, chain_policy):
    agent = PassiveADPAgent(chain_policy, chain_mdp)

    agent.execute(("s0", 5.0))
    assert agent.U["s0"] == 5.0
    assert agent.mdp.reward("s0") == 5.0

    agent.execute(("s0", 7.0))
    assert agent.mdp.reward("s0") == 5.0


def test_model_only_knows_observed_states(chain_mdp, chain_policy):
    agent = PassiveADPAgent(chain_policy, chain_mdp)
    agent.execute(("s0", -0.1))
    assert agent.mdp.states == {"s0"}


def test_episode_boundary(chain_mdp, chain_policy):
    agent = PassiveADPAgent(chain_policy, chain_mdp)

    assert agent.execute(("s0", -0.1)) == "go"
    assert agent.execute(("s1", -0.1)) == "go"
    assert agent.execute(("goal", 1.0)) is NO_ACTION
    assert agent.state is None
    assert agent.action is None

    counts = dict(agent.N_sa)
    assert agent.execute(("s0", -0.1)) == "go"
    assert dict(agent.N_sa) == counts


def test_missing_policy_entry_raises(chain_mdp):
    agent = PassiveADPAgent({"s0": "go"}, chain_mdp)
    agent.execute(("s0", -0.1))
    with pytest.raises(KeyError):
        agent.execute(("s1", -0.1))


def test_converges_to_exact_utilities(chain_mdp, chain_policy):
    agent = PassiveADPAgent(chain_policy, chain_mdp, k=100)
    exact = solve_policy_utilities(chain_policy, chain_mdp)

    for _ in range(3):
        for state in ["s0", "s1", "goal"]:
            agent.execute((state, chain_mdp.reward(state)))

    for state, value in exact.items():
        assert agent.U[state] == pytest.approx(value, abs=1e-3)


def test_save_and_load_tables(tmp_path, branching_mdp):
    agent = PassiveADPAgent({"s": "go"}, branching_mdp)
    agent.execute(("s", 0.0))
    agent.execute(("A", 1.0))
    agent.save(tmp_path / "tables.pkl")

    restored = PassiveADPAgent({"s": "go"}, branching_mdp)
    restored.load_tables(tmp_path / "tables.pkl")

    assert restored.utilities() == agent.utilities()
    assert restored.transition_estimates("s", "go") == {"A": 1.0}
    assert restored.mdp.states == {"s", "A"}
