from collections import defaultdict
from typing import Any, Dict

from ..mdp import MDP, NO_ACTION, Action, LearnedMDP, State
from ..policy_evaluation import policy_evaluation
from .base import BaseRLAgent, Percept


class PassiveADPAgent(BaseRLAgent):
    """
    Passive agent based on adaptive dynamic programming.

    It follows a fixed policy, learns a maximum-likelihood model of the
    environment from the transitions it observes and re-solves that model with
    policy evaluation after every step.

    Key characteristics:
    - Model-based: keeps transition counts and the rewards of visited states
    - Transition estimates are recomputed from the counts at every step
    - Utilities come from `k` Bellman backups on the learned model
    """

    def __init__(self, pi: Dict[State, Action], mdp: MDP, k: int = 20):
        """
        :param pi: Fixed policy mapping non-terminal states to actions
        :param mdp: Problem whose shape (actions, terminals, discount) the model copies
        :param k: Bellman backups per policy evaluation
        """
        super().__init__(mdp)
        self.pi = pi
        self.k = k
        self.mdp = LearnedMDP.from_mdp(mdp)
        self.U: Dict[State, float] = {}
        self.N_sa: Dict[tuple, int] = defaultdict(int)
        self.N_s_prime_sa: Dict[tuple, int] = defaultdict(int)

    def _update_model(self, s_prime: State) -> None:
        """Count the transition (state, action) -> s' and refresh its distribution."""
        sa = (self.state, self.action)

        # Counts go up before the estimate is recomputed, so N_sa is never zero here
        self.N_sa[sa] += 1
        self.N_s_prime_sa[(s_prime, *sa)] += 1

        for (result, state, action), occurrences in self.N_s_prime_sa.items():
            if (state, action) == sa and occurrences != 0:
                self.mdp.set_transition_probability(
                    state, action, result, occurrences / self.N_sa[sa]
                )

    def execute(self, percept: Percept) -> Action:
        s_prime, r_prime = percept

        self.mdp.add_state(s_prime)
        if not self.mdp.has_reward(s_prime):
            self.mdp.record_reward(s_prime, r_prime)
            self.U[s_prime] = r_prime

        if self.state is not None:
            self._update_model(s_prime)

        self.U = policy_evaluation(self.pi, self.U, self.mdp, k=self.k)

        if self._is_terminal(s_prime):
            self.end_episode()
            return NO_ACTION

        self.state = s_prime
        self.action = self.pi[s_prime]
        return self.action

    def transition_estimates(self, state: State, action: Action) -> Dict[State, float]:
        """Learned distribution P(s' | state, action)."""
        return dict(self.mdp.transitions.get((state, action), {}))

    def utilities(self) -> Dict[State, float]:
        return dict(self.U)

    def tables(self) -> Dict[str, Any]:
        return {
            "U": dict(self.U),
            "N_sa": dict(self.N_sa),
            "N_s_prime_sa": dict(self.N_s_prime_sa),
            "reward": dict(self.mdp.reward_table),
            "transitions": {key: dict(dist) for key, dist in self.mdp.transitions.items()},
        }

    def _restore_tables(self, tables: Dict[str, Any]) -> None:
        self.U = dict(tables["U"])
        self.N_sa = defaultdict(int, tables["N_sa"])
        self.N_s_prime_sa = defaultdict(int, tables["N_s_prime_sa"])
        self.mdp.reward_table = dict(tables["reward"])
        self.mdp.transitions = {key: dict(dist) for key, dist in tables["transitions"].items()}
        self.mdp.states = set(self.mdp.reward_table)
