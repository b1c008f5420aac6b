from collections import defaultdict
from typing import Any, Dict

from ..mdp import NO_ACTION, Action, DecisionProcess, State
from .base import BaseRLAgent, LearningRate, Percept, harmonic_learning_rate


class PassiveTDAgent(BaseRLAgent):
    """
    Passive agent learning utilities with temporal differences.

    Model-free: it never estimates transitions, it only moves the utility of
    the previous state towards the observed sample.

    U(s) := U(s) + α(N(s))·[r + γ·U(s') - U(s)]
    """

    def __init__(
        self,
        pi: Dict[State, Action],
        mdp: DecisionProcess,
        alpha: LearningRate = harmonic_learning_rate,
    ):
        """
        :param pi: Fixed policy mapping non-terminal states to actions
        :param mdp: Problem providing the discount factor and terminal states
        :param alpha: Learning-rate schedule, called with the visit count of the updated state
        """
        super().__init__(mdp)
        self.pi = pi
        self.alpha = alpha
        self.U: Dict[State, float] = defaultdict(float)
        self.N_s: Dict[State, int] = defaultdict(int)

    def execute(self, percept: Percept) -> Action:
        s_prime, r_prime = percept

        if s_prime not in self.N_s:
            self.U[s_prime] = r_prime

        if self.state is not None:
            s = self.state
            self.N_s[s] += 1
            td_target = self.reward + self.gamma * self.U[s_prime]
            self.U[s] += self.alpha(self.N_s[s]) * (td_target - self.U[s])

        if self._is_terminal(s_prime):
            self.end_episode()
            return NO_ACTION

        self.state = s_prime
        self.action = self.pi[s_prime]
        self.reward = r_prime
        return self.action

    def utilities(self) -> Dict[State, float]:
        return dict(self.U)

    def tables(self) -> Dict[str, Any]:
        return {"U": dict(self.U), "N_s": dict(self.N_s)}

    def _restore_tables(self, tables: Dict[str, Any]) -> None:
        self.U = defaultdict(float, tables["U"])
        self.N_s = defaultdict(int, tables["N_s"])
