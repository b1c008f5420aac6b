import pickle
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import gymnasium as gym
import numpy as np
from tqdm import tqdm

from ..mdp import NO_ACTION, Action, DecisionProcess, State

Percept = Tuple[State, float]
LearningRate = Callable[[int], float]


def harmonic_learning_rate(n: int) -> float:
    """
    Default learning-rate schedule: α(n) = 1 / (n + 1).

    Its sum diverges while the sum of its squares converges, which is what
    tabular TD and Q-learning need to converge.
    """
    return 1.0 / (n + 1)


def constant_learning_rate(value: float) -> LearningRate:
    """Learning-rate schedule that ignores the visit count."""
    if value <= 0:
        raise ValueError(f"Learning rate must be positive, got {value}")

    def alpha(n: int) -> float:
        return value

    return alpha


class BaseRLAgent(ABC):
    """
    Base class for tabular agents driven one percept at a time.

    Every call to `execute` receives the percept (next_state, reward) observed
    by the environment and returns the next action, or ``NO_ACTION`` once the
    episode has reached a terminal state.
    """

    def __init__(self, mdp: DecisionProcess):
        """
        :param mdp: Problem description providing the discount factor and terminal states
        """
        self.gamma = mdp.gamma
        self.terminal_states = frozenset(mdp.terminal_states)

        # Transient per-episode state
        self.state: Optional[State] = None
        self.action: Optional[Action] = None
        self.reward: Optional[float] = None

    def _is_terminal(self, state: State) -> bool:
        return state in self.terminal_states

    def end_episode(self) -> None:
        """Forget the transient episode state, as if a terminal state had been reached."""
        self.state = None
        self.action = None
        self.reward = None

    @abstractmethod
    def execute(self, percept: Percept) -> Action:
        """
        Process one percept and choose the next action.

        :param percept: Tuple (next_state, reward)
        :return: Action to perform, or NO_ACTION when the episode has ended
        """
        pass

    @abstractmethod
    def utilities(self) -> Dict[State, float]:
        """Current utility estimate of every state the agent knows about."""
        pass

    @abstractmethod
    def tables(self) -> Dict[str, Any]:
        """Learned tables, keyed by name, as stored by `save`."""
        pass

    @abstractmethod
    def _restore_tables(self, tables: Dict[str, Any]) -> None:
        pass

    def run_trial(self, env: gym.Env, max_steps: int = 100) -> float:
        """
        Run one episode in `env`, feeding the agent one percept per step.

        If the step budget runs out before a terminal state, the episode state
        is cleared so the next trial starts fresh.

        :param env: Environment exposing the observed state and its reward in `info`
        :param max_steps: Maximum steps per episode
        :return: Total reward collected in the episode
        """
        observation, info = env.reset()
        state, reward = info["state"], info["reward"]

        episode_reward = 0.0
        for step in range(max_steps):
            action = self.execute((state, reward))
            episode_reward += reward

            if action is NO_ACTION:
                return episode_reward

            observation, reward, terminated, truncated, info = env.step(
                env.unwrapped.action_index(action)
            )
            state = info["state"]

        self.end_episode()
        return episode_reward

    def train(
        self, env: gym.Env, n_episodes: int, max_steps: int = 100, verbose: bool = True
    ) -> np.ndarray:
        """
        Train the agent.

        :param env: Environment to learn from
        :param n_episodes: Number of training episodes
        :param max_steps: Maximum steps per episode
        :param verbose: Whether to show progress bar
        :return: Array of episode rewards
        """
        episode_rewards = []

        iterator = (
            tqdm(range(n_episodes), desc=f"Training {self.__class__.__name__}")
            if verbose
            else range(n_episodes)
        )

        for episode in iterator:
            episode_reward = self.run_trial(env, max_steps)
            episode_rewards.append(episode_reward)

            if verbose and episode > 0 and episode % 100 == 0:
                recent_avg = np.mean(episode_rewards[-100:])
                iterator.set_postfix({"avg_reward_100": f"{recent_avg:.2f}"})

        return np.array(episode_rewards)

    def save(self, filepath: Union[str, Path]) -> None:
        """
        Save the learned tables to a file.

        :param filepath: Path to save the tables
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "wb") as f:
            pickle.dump(self.tables(), f)

        print(f"Learned tables saved to {filepath}")

    def load_tables(self, filepath: Union[str, Path]) -> None:
        """
        Replace the learned tables with the ones stored by `save`.

        :param filepath: Path to a pickled tables file
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Tables file not found: {filepath}")

        with open(filepath, "rb") as f:
            tables = pickle.load(f)

        if not isinstance(tables, dict):
            raise ValueError(f"Invalid tables format in {filepath}")

        self._restore_tables(tables)
        self.end_episode()

    def print_statistics(self) -> None:
        """Print statistics about the utility estimates."""
        values = np.array(list(self.utilities().values()), dtype=float)

        print("\n" + "=" * 50)
        print(f"{self.__class__.__name__} UTILITY STATISTICS")
        print("=" * 50)
        print(f"Known states: {values.size}")
        if values.size:
            print(f"Utility mean: {np.mean(values):.4f}")
            print(f"Utility std: {np.std(values):.4f}")
            print(f"Utility min: {np.min(values):.4f}")
            print(f"Utility max: {np.max(values):.4f}")
        print("=" * 50 + "\n")
