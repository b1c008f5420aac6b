from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from .mdp import MDP, Action, State

GRID_ENV_ID = "mdp_rl/GridWorld4x3-v0"

# East, north, west, south
ORIENTATIONS = ((1, 0), (0, 1), (-1, 0), (0, -1))


def turn_right(heading: Tuple[int, int]) -> Tuple[int, int]:
    return ORIENTATIONS[(ORIENTATIONS.index(heading) - 1) % len(ORIENTATIONS)]


def turn_left(heading: Tuple[int, int]) -> Tuple[int, int]:
    return ORIENTATIONS[(ORIENTATIONS.index(heading) + 1) % len(ORIENTATIONS)]


def grid_mdp(
    grid: List[List[Optional[float]]],
    terminals: Iterable[Tuple[int, int]],
    initial: Tuple[int, int] = (0, 0),
    gamma: float = 0.9,
) -> MDP:
    """
    Build a grid-world MDP.

    The grid is given top row first; ``None`` marks an obstacle. States are
    (x, y) cells with y = 0 at the bottom. An action moves in the intended
    direction with probability 0.8 and at right angles with probability 0.1
    each; moving into a wall or obstacle leaves the agent where it was.

    :param grid: Rows of rewards (top row first)
    :param terminals: Cells that end an episode
    :param initial: Starting cell
    :param gamma: Discount factor
    :return: Fully specified MDP
    """
    terminals = set(terminals)
    rows = list(reversed(grid))

    reward = {}
    for y, row in enumerate(rows):
        for x, value in enumerate(row):
            if value is not None:
                reward[(x, y)] = value

    def go(state, direction):
        target = (state[0] + direction[0], state[1] + direction[1])
        return target if target in reward else state

    transitions = {}
    for state in reward:
        if state in terminals:
            continue
        for action in ORIENTATIONS:
            dist = defaultdict(float)
            for p, heading in ((0.8, action), (0.1, turn_right(action)), (0.1, turn_left(action))):
                dist[go(state, heading)] += p
            transitions[(state, action)] = dict(dist)

    return MDP(
        initial,
        ORIENTATIONS,
        terminals,
        gamma=gamma,
        states=set(reward),
        transitions=transitions,
        reward=reward,
    )


def grid_4x3_mdp(step_reward: float = -0.04, gamma: float = 0.9) -> MDP:
    """The 4x3 world of Russell & Norvig (Fig. 17.1): +1 at (3, 2), -1 at (3, 1)."""
    grid = [
        [step_reward, step_reward, step_reward, +1.0],
        [step_reward, None, step_reward, -1.0],
        [step_reward, step_reward, step_reward, step_reward],
    ]
    return grid_mdp(grid, terminals=[(3, 2), (3, 1)], initial=(0, 0), gamma=gamma)


class MDPEnv(gym.Env):
    """
    Gymnasium environment simulating a fully specified MDP.

    Observations and actions are indices into the MDP's states and actions; the
    opaque state and its reward are also reported in `info` so percept-driven
    agents can consume them directly. The reward of a step is R(s') of the
    state reached.
    """

    metadata = {"render_modes": ["ansi"]}

    def __init__(self, mdp: MDP, render_mode: Optional[str] = None):
        """
        :param mdp: MDP with a transition model for every non-terminal (state, action)
        :param render_mode: Optional render mode ('ansi')
        """
        self.mdp = mdp
        self.render_mode = render_mode
        self.state_list: List[State] = sorted(mdp.states, key=repr)
        self._state_index = {state: i for i, state in enumerate(self.state_list)}
        self._action_index = {action: i for i, action in enumerate(mdp.actions)}

        self.observation_space = spaces.Discrete(len(self.state_list))
        self.action_space = spaces.Discrete(len(mdp.actions))
        self._state: State = mdp.initial

    def action_index(self, action: Action) -> int:
        """Index of an MDP action in the action space."""
        return self._action_index[action]

    def _get_info(self) -> Dict[str, Any]:
        return {"state": self._state, "reward": self.mdp.reward(self._state)}

    def reset(
        self, *, seed: Optional[int] = None, options: Optional[dict] = None
    ) -> Tuple[int, Dict[str, Any]]:
        super().reset(seed=seed)
        self._state = self.mdp.initial
        return self._state_index[self._state], self._get_info()

    def step(self, action: int):
        if self.mdp.is_terminal(self._state):
            raise RuntimeError("Episode has terminated; call reset() first")

        mdp_action = self.mdp.actions[int(action)]
        outcomes = self.mdp.transition_model(self._state, mdp_action)
        if not outcomes:
            raise ValueError(
                f"No transition model for state {self._state!r} and action {mdp_action!r}"
            )

        probabilities = np.array([p for p, _ in outcomes], dtype=float)
        choice = self.np_random.choice(len(outcomes), p=probabilities / probabilities.sum())
        self._state = outcomes[choice][1]

        reward = float(self.mdp.reward(self._state))
        terminated = bool(self.mdp.is_terminal(self._state))
        return self._state_index[self._state], reward, terminated, False, self._get_info()

    def render(self):
        if self.render_mode == "ansi":
            return f"state={self._state!r} reward={self.mdp.reward(self._state)}"
        return None


class GridWorld4x3Env(MDPEnv):
    """`MDPEnv` over the 4x3 grid world, registered as ``mdp_rl/GridWorld4x3-v0``."""

    def __init__(
        self,
        step_reward: float = -0.04,
        gamma: float = 0.9,
        render_mode: Optional[str] = None,
    ):
        super().__init__(grid_4x3_mdp(step_reward=step_reward, gamma=gamma), render_mode)


def register_environments() -> None:
    if GRID_ENV_ID not in gym.registry:
        gym.register(id=GRID_ENV_ID, entry_point=GridWorld4x3Env)
