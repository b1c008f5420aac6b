"""
Planning routines over a known (or partially learned) MDP.

- policy_evaluation: modified policy iteration, `k` Bellman backups of a fixed policy.
- value_iteration / best_policy: optimal utilities and the greedy policy they induce.
- solve_policy_utilities: exact utilities of a policy by solving the linear Bellman system.
"""

from typing import Dict, List

import numpy as np

from .mdp import MDP, NO_ACTION, Action, State


def _policy_action(pi: Dict[State, Action], mdp: MDP, state: State) -> Action:
    """Action the policy prescribes; terminal states need no policy entry."""
    if mdp.is_terminal(state):
        return NO_ACTION
    return pi[state]


def expected_utility(
    mdp: MDP, state: State, action: Action, U: Dict[State, float]
) -> float:
    """Expected utility of the successors of (state, action) under `U`."""
    return sum(
        p * U.get(s_prime, 0.0) for p, s_prime in mdp.transition_model(state, action)
    )


def policy_evaluation(
    pi: Dict[State, Action], U: Dict[State, float], mdp: MDP, k: int = 20
) -> Dict[State, float]:
    """
    Update the utilities of every known state with `k` Bellman backups of policy `pi`.

    U(s) := R(s) + γ·Σ P(s'|s,π(s))·U(s')

    Each sweep reads the utilities produced by the previous sweep, so the result
    does not depend on the order in which states are visited. There is no
    convergence test: `k` is a fixed budget.

    :param pi: Policy mapping non-terminal states to actions
    :param U: Utility table, updated in place
    :param mdp: Model providing rewards and transitions
    :param k: Number of sweeps
    :return: The updated utility table
    """
    states = list(mdp.states)
    for _ in range(k):
        previous = dict(U)
        for state in states:
            action = _policy_action(pi, mdp, state)
            U[state] = mdp.reward(state) + mdp.gamma * expected_utility(
                mdp, state, action, previous
            )
    return U


def value_iteration(mdp: MDP, epsilon: float = 0.001) -> Dict[State, float]:
    """
    Solve the Bellman optimality equations by value iteration.

    Stops once the largest change in a sweep guarantees an error below `epsilon`.

    :param mdp: Fully specified MDP
    :param epsilon: Maximum error allowed in the utility of any state
    :return: Utility of every state
    """
    U = {state: 0.0 for state in mdp.states}
    threshold = epsilon * (1 - mdp.gamma) / mdp.gamma if mdp.gamma > 0 else 0.0

    while True:
        previous = dict(U)
        delta = 0.0
        for state in mdp.states:
            U[state] = mdp.reward(state) + mdp.gamma * max(
                expected_utility(mdp, state, action, previous)
                for action in mdp.applicable_actions(state)
            )
            delta = max(delta, abs(U[state] - previous[state]))
        if delta <= threshold:
            return U


def best_policy(mdp: MDP, U: Dict[State, float]) -> Dict[State, Action]:
    """
    Greedy policy with respect to `U`.

    Ties are broken in favour of the first action in the MDP's action order.
    """
    pi = {}
    for state in mdp.states:
        actions = mdp.applicable_actions(state)
        pi[state] = max(actions, key=lambda a: expected_utility(mdp, state, a, U))
    return pi


def solve_policy_utilities(
    pi: Dict[State, Action], mdp: MDP
) -> Dict[State, float]:
    """
    Exact utilities of policy `pi` by solving (I - γ·P_π)·U = R.

    :param pi: Policy mapping non-terminal states to actions
    :param mdp: Fully specified MDP
    :return: Utility of every state of the MDP
    """
    states: List[State] = list(mdp.states)
    index = {state: i for i, state in enumerate(states)}
    n = len(states)

    P = np.zeros((n, n))
    R = np.zeros(n)
    for state, i in index.items():
        R[i] = mdp.reward(state)
        action = _policy_action(pi, mdp, state)
        for p, s_prime in mdp.transition_model(state, action):
            P[i, index[s_prime]] += p

    utilities = np.linalg.solve(np.eye(n) - mdp.gamma * P, R)
    return {state: float(utilities[i]) for state, i in index.items()}


def rms_error(U: Dict[State, float], U_true: Dict[State, float]) -> float:
    """Root-mean-square error of `U` over the states of `U_true` (missing states count as 0.0)."""
    errors = np.array([U.get(state, 0.0) - value for state, value in U_true.items()])
    return float(np.sqrt(np.mean(errors**2)))
