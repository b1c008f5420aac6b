from collections import defaultdict
from typing import Any, Callable, Dict, Sequence, Tuple

from ..mdp import NO_ACTION, Action, DecisionProcess, State
from .base import BaseRLAgent, LearningRate, Percept, harmonic_learning_rate


def argmax(actions: Sequence[Action], key: Callable[[Action], float]) -> Action:
    """
    Action with the highest key; the first one wins ties.

    :raises ValueError: If there is no action to choose from
    """
    if not actions:
        raise ValueError("Cannot choose an action from an empty action set")
    best_action = actions[0]
    best_value = key(best_action)
    for action in actions[1:]:
        value = key(action)
        if value > best_value:
            best_action, best_value = action, value
    return best_action


class QLearningAgent(BaseRLAgent):
    """
    Active Q-Learning agent with an optimistic exploration function.

    Q-Learning is a TD(0) off-policy algorithm that learns the optimal action-value
    function by taking the maximum Q-value over all possible next actions.

    Key characteristics:
    - Updates after each step (not at episode end)
    - Off-policy: learns the greedy policy while exploring
    - Explores by treating every (s, a) tried fewer than N_e times as worth R_plus
    """

    def __init__(
        self,
        mdp: DecisionProcess,
        N_e: int,
        R_plus: float,
        alpha: LearningRate = harmonic_learning_rate,
    ):
        """
        :param mdp: Problem providing the discount factor, actions and terminal states
        :param N_e: Number of times each (state, action) pair is tried before trusting its Q-value
        :param R_plus: Optimistic estimate of the best reward obtainable in any state
        :param alpha: Learning-rate schedule, called with the visit count of the updated pair
        """
        super().__init__(mdp)
        self.actions: Tuple[Action, ...] = tuple(mdp.actions)
        self.N_e = N_e
        self.R_plus = R_plus
        self.alpha = alpha
        self.Q: Dict[Tuple[State, Action], float] = defaultdict(float)
        self.N_sa: Dict[Tuple[State, Action], int] = defaultdict(int)

    def exploration_function(self, u: float, n: int) -> float:
        """Optimistic value R_plus while a pair has been tried fewer than N_e times."""
        if n < self.N_e:
            return self.R_plus
        return u

    def actions_in_state(self, state: State) -> Tuple[Action, ...]:
        if self._is_terminal(state):
            return (NO_ACTION,)
        return self.actions

    def _explore(self, state: State) -> Action:
        return argmax(
            self.actions_in_state(state),
            key=lambda a: self.exploration_function(
                self.Q[(state, a)], self.N_sa[(state, a)]
            ),
        )

    def _start(self, s_prime: State, r_prime: float) -> Action:
        self.state = s_prime
        self.action = self._explore(s_prime)
        self.reward = r_prime
        return self.action

    def update_q_value(self, s_prime: State) -> None:
        """
        Update Q(s,a) for the previous state and action.

        Q(s,a) := Q(s,a) + α(N(s,a))·[r + γ·max(Q(s',a')) - Q(s,a)]
        """
        sa = (self.state, self.action)
        max_next_q = max(self.Q[(s_prime, a)] for a in self.actions_in_state(s_prime))

        td_target = self.reward + self.gamma * max_next_q
        td_error = td_target - self.Q[sa]
        self.Q[sa] += self.alpha(self.N_sa[sa]) * td_error

    def execute(self, percept: Percept) -> Action:
        s_prime, r_prime = percept

        if self.state is None:
            return self._start(s_prime, r_prime)

        if self._is_terminal(self.state):
            # A terminal state's value is its reward; nothing follows it to bootstrap from
            self.Q[(self.state, NO_ACTION)] = self.reward
            self.N_sa[(self.state, NO_ACTION)] += 1
            self.end_episode()
            return self._start(s_prime, r_prime)

        self.N_sa[(self.state, self.action)] += 1
        self.update_q_value(s_prime)
        return self._start(s_prime, r_prime)

    def get_policy(self) -> Dict[State, Action]:
        """
        Extract the greedy policy from the Q-table.

        :return: Best known action for every state seen so far
        """
        states = {state for state, _ in self.Q} | {state for state, _ in self.N_sa}
        return {
            state: argmax(self.actions_in_state(state), key=lambda a: self.Q[(state, a)])
            for state in states
        }

    def utilities(self) -> Dict[State, float]:
        """U(s) = max_a Q(s, a) for every state seen so far."""
        states = {state for state, _ in self.Q} | {state for state, _ in self.N_sa}
        return {
            state: max(self.Q[(state, a)] for a in self.actions_in_state(state))
            for state in states
        }

    def tables(self) -> Dict[str, Any]:
        return {"Q": dict(self.Q), "N_sa": dict(self.N_sa)}

    def _restore_tables(self, tables: Dict[str, Any]) -> None:
        self.Q = defaultdict(float, tables["Q"])
        self.N_sa = defaultdict(int, tables["N_sa"])
