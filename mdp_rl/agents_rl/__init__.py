"""
RL Agents Package

This package contains tabular reinforcement learning agents driven one percept at a time:
- Passive ADP (model-based, fixed policy):
    Learns a maximum-likelihood transition model from counts and re-solves it with policy evaluation.
    Updates utilities using: U(s) := R(s) + γ·Σ P(s'|s,π(s))·U(s')
- Passive TD (model-free, fixed policy):
    Moves the utility of the previous state towards the observed sample.
    Updates utilities using: U(s) := U(s) + α(N(s))·[r + γ·U(s') - U(s)]
- Q-Learning (model-free, active):
    Learns action values off-policy and explores with an optimistic exploration function.
    Updates Q-values using: Q(s,a) := Q(s,a) + α(N(s,a))·[r + γ·max(Q(s',a')) - Q(s,a)]

All agents inherit from BaseRLAgent and share common functionality.
"""

from .adp_agent import PassiveADPAgent
from .base import (BaseRLAgent, constant_learning_rate,
                   harmonic_learning_rate)
from .q_agent import QLearningAgent, argmax
from .td_agent import PassiveTDAgent

__all__ = [
    "BaseRLAgent",
    "PassiveADPAgent",
    "PassiveTDAgent",
    "QLearningAgent",
    "argmax",
    "constant_learning_rate",
    "harmonic_learning_rate",
]
