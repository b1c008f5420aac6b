from typing import (Dict, FrozenSet, Hashable, Iterable, List, Optional,
                    Protocol, Set, Tuple)

import numpy as np

State = Hashable
Action = Hashable

# Terminal marker: the only action applicable in a terminal state and the value
# agents return when an episode ends.
NO_ACTION = None


class DecisionProcess(Protocol):
    """What an agent needs to know about the problem it is learning."""

    @property
    def gamma(self) -> float: ...

    @property
    def terminal_states(self) -> FrozenSet[State]: ...

    @property
    def actions(self) -> Tuple[Action, ...]: ...


class MDP:
    """
    Finite Markov Decision Process.

    Transitions are stored as ``{(s, a): {s': P(s' | s, a)}}`` and rewards as
    ``{s: R(s)}``. The action set keeps the order it was given in, which is the
    order used to break ties when agents pick the best action.
    """

    def __init__(
        self,
        initial: State,
        actions: Iterable[Action],
        terminal_states: Iterable[State],
        gamma: float = 0.9,
        states: Optional[Iterable[State]] = None,
        transitions: Optional[Dict[Tuple[State, Action], Dict[State, float]]] = None,
        reward: Optional[Dict[State, float]] = None,
    ):
        """
        :param initial: State every episode starts from
        :param actions: Global action set (also the legal actions of every non-terminal state)
        :param terminal_states: States that end an episode
        :param gamma: Discount factor in [0, 1)
        :param states: Known states (defaults to the states mentioned by the other tables)
        :param transitions: Mapping (state, action) -> {next_state: probability}
        :param reward: Mapping state -> reward
        """
        if not 0.0 <= gamma < 1.0:
            raise ValueError(f"gamma must be in [0, 1), got {gamma}")

        self.initial = initial
        self._actions = tuple(dict.fromkeys(actions))
        if NO_ACTION in self._actions:
            raise ValueError("NO_ACTION is reserved for terminal states")
        self._terminal_states = frozenset(terminal_states)
        self._gamma = float(gamma)
        self.transitions: Dict[Tuple[State, Action], Dict[State, float]] = {
            key: dict(dist) for key, dist in (transitions or {}).items()
        }
        self.reward_table: Dict[State, float] = dict(reward or {})

        for (state, action), dist in self.transitions.items():
            total = sum(dist.values())
            if not np.isclose(total, 1.0):
                raise ValueError(
                    f"Transition probabilities for {(state, action)!r} sum to {total}, expected 1.0"
                )

        if states is None:
            states = {initial} | set(self.reward_table) | self._terminal_states
            for (state, _), dist in self.transitions.items():
                states.add(state)
                states.update(dist)
        self.states: Set[State] = set(states)

    @property
    def gamma(self) -> float:
        return self._gamma

    @property
    def actions(self) -> Tuple[Action, ...]:
        return self._actions

    @property
    def terminal_states(self) -> FrozenSet[State]:
        return self._terminal_states

    def is_terminal(self, state: State) -> bool:
        return state in self._terminal_states

    def reward(self, state: State) -> float:
        """
        Return R(state).

        :raises KeyError: If no reward has been recorded for the state
        """
        try:
            return self.reward_table[state]
        except KeyError:
            raise KeyError(f"No reward recorded for state {state!r}") from None

    def transition_model(
        self, state: State, action: Action
    ) -> List[Tuple[float, State]]:
        """
        Return the (P(s' | s, a), s') pairs for the given state and action.

        Unknown (state, action) pairs have no successors.
        """
        return [(p, s_prime) for s_prime, p in self.transitions.get((state, action), {}).items()]

    def applicable_actions(self, state: State) -> Tuple[Action, ...]:
        """
        Actions available in a state.

        Terminal states only allow ``NO_ACTION``; every other state is assumed to
        allow the whole global action set.
        """
        if self.is_terminal(state):
            return (NO_ACTION,)
        return self._actions

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(states={len(self.states)}, actions={len(self._actions)}, "
            f"terminals={len(self._terminal_states)}, gamma={self._gamma})"
        )


class LearnedMDP(MDP):
    """
    MDP whose transition and reward tables are estimated from experience.

    It shares the shape of the problem being learned (initial state, actions,
    terminal states and discount) but starts without known states, rewards or
    transitions.
    """

    def __init__(
        self,
        initial: State,
        actions: Iterable[Action],
        terminal_states: Iterable[State],
        gamma: float = 0.9,
    ):
        super().__init__(initial, actions, terminal_states, gamma=gamma, states=())

    @classmethod
    def from_mdp(cls, mdp: "MDP") -> "LearnedMDP":
        """Create an empty model with the same shape as `mdp`."""
        return cls(mdp.initial, mdp.actions, mdp.terminal_states, gamma=mdp.gamma)

    def add_state(self, state: State) -> None:
        self.states.add(state)

    def has_reward(self, state: State) -> bool:
        return state in self.reward_table

    def record_reward(self, state: State, reward: float) -> None:
        self.reward_table[state] = float(reward)

    def set_transition_probability(
        self, state: State, action: Action, next_state: State, probability: float
    ) -> None:
        self.transitions.setdefault((state, action), {})[next_state] = probability
