"""
Tabular reinforcement learning over finite Markov Decision Processes.

Agents are driven by an external loop that feeds them one percept
(next_state, reward) per step through `execute` and receives the next action,
or `NO_ACTION` once a terminal state has been reached.
"""

from .agents_rl import (BaseRLAgent, PassiveADPAgent, PassiveTDAgent,
                        QLearningAgent, constant_learning_rate,
                        harmonic_learning_rate)
from .environment import (GRID_ENV_ID, GridWorld4x3Env, MDPEnv, grid_4x3_mdp,
                          grid_mdp, register_environments)
from .mdp import MDP, NO_ACTION, DecisionProcess, LearnedMDP
from .policy_evaluation import (best_policy, policy_evaluation, rms_error,
                                solve_policy_utilities, value_iteration)

register_environments()

__all__ = [
    "BaseRLAgent",
    "DecisionProcess",
    "GRID_ENV_ID",
    "GridWorld4x3Env",
    "LearnedMDP",
    "MDP",
    "MDPEnv",
    "NO_ACTION",
    "PassiveADPAgent",
    "PassiveTDAgent",
    "QLearningAgent",
    "best_policy",
    "constant_learning_rate",
    "grid_4x3_mdp",
    "grid_mdp",
    "harmonic_learning_rate",
    "policy_evaluation",
    "register_environments",
    "rms_error",
    "solve_policy_utilities",
    "value_iteration",
]
