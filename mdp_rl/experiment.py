import random
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

import gymnasium as gym
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from tqdm import tqdm

from .agents_rl import (BaseRLAgent, PassiveADPAgent, PassiveTDAgent,
                        QLearningAgent)
from .config_exp import ExperimentConfig, RLAlgMethod
from .mdp import NO_ACTION, Action, State
from .policy_evaluation import (best_policy, rms_error, solve_policy_utilities,
                                value_iteration)


def evaluate_policy(
    env: gym.Env,
    pi: Dict[State, Action],
    n_episodes: int = 100,
    max_steps: int = 100,
    verbose: bool = True,
) -> Tuple[float, float, np.ndarray]:
    """
    Evaluate a fixed policy by running it in the environment.

    :param env: Environment whose `info` reports the current state
    :param pi: Policy to follow; states missing from it end the episode
    :param n_episodes: Number of evaluation episodes
    :param max_steps: Maximum steps per episode
    :param verbose: Whether to show progress bar
    :return: Tuple of (mean_reward, std_reward, episode_rewards)
    """
    episode_rewards = []

    iterator = (
        tqdm(range(n_episodes), desc="Evaluating") if verbose else range(n_episodes)
    )

    for episode in iterator:
        observation, info = env.reset()
        episode_reward = info["reward"]

        for step in range(max_steps):
            action = pi.get(info["state"], NO_ACTION)
            if action is NO_ACTION:
                break

            observation, reward, terminated, truncated, info = env.step(
                env.unwrapped.action_index(action)
            )
            episode_reward += reward

            if terminated or truncated:
                break

        episode_rewards.append(episode_reward)

    episode_rewards = np.array(episode_rewards)
    return float(np.mean(episode_rewards)), float(np.std(episode_rewards)), episode_rewards


class ReinforcementLearningExperiment:
    """
    Trains one percept-driven agent in an MDP environment and stores the results.

    Passive agents follow the optimal policy of the environment's MDP (found by
    value iteration) and are scored by the RMS error of their utilities against
    the exact utilities of that policy. The Q-learning agent is scored by the
    rewards its greedy policy collects.
    """

    def __init__(self, config: ExperimentConfig):
        """
        :param config: Experiment configuration object containing all settings for the experiment
        """
        self.config = config
        self.env = gym.make(self.config.environment_name, **self.config.env_kwargs)
        self.mdp = self.env.unwrapped.mdp
        self.exp_dir: Optional[Path] = None
        self.agent: Optional[BaseRLAgent] = None
        self.policy: Optional[Dict[State, Action]] = None

        seed = self.config.algorithm.random_seed
        if seed is not None:
            random.seed(seed)
            np.random.seed(seed)
            self.env.reset(seed=seed)

    def _setup_experiment_dir(self) -> Path:
        """Creates and returns the experiment directory."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        exp_dir = (
            self.config.experiments_dir
            / self.config.environment_name.replace("/", "_")
            / f"{self.config.algorithm.algorithm.value}_{timestamp}"
        )
        exp_dir.mkdir(parents=True, exist_ok=True)
        return exp_dir

    def _save_experiment_config(self) -> None:
        self.config.save_json(self.exp_dir / "config.json")
        self.config.save_yaml(self.exp_dir / "config.yaml")

    def create_agent(self) -> BaseRLAgent:
        """Builds the agent selected by the configuration."""
        algorithm_config = self.config.algorithm
        method = algorithm_config.algorithm

        if method in (RLAlgMethod.PASSIVE_ADP, RLAlgMethod.PASSIVE_TD):
            self.policy = best_policy(self.mdp, value_iteration(self.mdp))
            if method == RLAlgMethod.PASSIVE_ADP:
                return PassiveADPAgent(
                    self.policy, self.mdp, k=algorithm_config.evaluation_sweeps
                )
            return PassiveTDAgent(
                self.policy, self.mdp, alpha=algorithm_config.get_learning_rate()
            )
        elif method == RLAlgMethod.Q_LEARNING:
            return QLearningAgent(
                self.mdp,
                N_e=algorithm_config.n_e,
                R_plus=algorithm_config.r_plus,
                alpha=algorithm_config.get_learning_rate(),
            )
        raise ValueError(f"Unsupported algorithm: {method}")

    def plot_training_results(
        self, episode_rewards: np.ndarray, window_size: int = 100
    ) -> None:
        """
        Plot training results with moving average.

        :param episode_rewards: Array of rewards per episode
        :param window_size: Window size for moving average
        """
        fig, (ax_progress, ax_hist) = plt.subplots(1, 2, figsize=(12, 5))

        ax_progress.plot(episode_rewards, alpha=0.3, label="Episode Reward")
        if len(episode_rewards) >= window_size:
            moving_avg = np.convolve(
                episode_rewards, np.ones(window_size) / window_size, mode="valid"
            )
            ax_progress.plot(
                range(window_size - 1, len(episode_rewards)),
                moving_avg,
                label=f"{window_size}-Episode Moving Average",
                linewidth=2,
            )
        ax_progress.set_xlabel("Episode")
        ax_progress.set_ylabel("Reward")
        ax_progress.set_title("Training Progress")
        ax_progress.legend()
        ax_progress.grid(True, alpha=0.3)

        ax_hist.hist(episode_rewards, bins=50, edgecolor="black", alpha=0.7)
        ax_hist.set_xlabel("Reward")
        ax_hist.set_ylabel("Frequency")
        ax_hist.set_title("Reward Distribution")
        ax_hist.grid(True, alpha=0.3)

        fig.tight_layout()
        fig.savefig(self.exp_dir / "training_results.png", dpi=150, bbox_inches="tight")
        plt.close(fig)

    def save_training_logs(
        self, episode_rewards: np.ndarray, window_size: int = 100
    ) -> None:
        """
        Saves the mean, median and standard deviation of every block of `window_size` episodes to CSV.

        :param episode_rewards: Array of rewards per episode
        :param window_size: Number of episodes per logging block
        """
        rewards = np.asarray(episode_rewards, dtype=float)
        metrics_data = []

        for end_episode in range(window_size, len(rewards) + 1, window_size):
            block_rewards = rewards[end_episode - window_size : end_episode]
            metrics_data.append(
                {
                    "iteration": end_episode,
                    "window_start": end_episode - window_size + 1,
                    "window_end": end_episode,
                    "mean": float(np.mean(block_rewards)),
                    "median": float(np.median(block_rewards)),
                    "std": float(np.std(block_rewards)),
                }
            )

        pd.DataFrame(
            metrics_data,
            columns=["iteration", "window_start", "window_end", "mean", "median", "std"],
        ).to_csv(self.exp_dir / "training_logs.csv", index=False)

    def save_utilities(self, true_utilities: Optional[Dict[State, float]] = None) -> None:
        """Writes the learned utility of every known state (and its exact value when known) to CSV."""
        learned = self.agent.utilities()
        rows = [
            {
                "state": repr(state),
                "utility": value,
                "true_utility": None if true_utilities is None else true_utilities.get(state),
            }
            for state, value in learned.items()
        ]
        pd.DataFrame(rows, columns=["state", "utility", "true_utility"]).to_csv(
            self.exp_dir / "utilities.csv", index=False
        )

    def run(self) -> dict:
        """
        Runs the reinforcement learning experiment.

        :return: Dictionary containing results and metrics from the experiment
        """
        algorithm_config = self.config.algorithm
        self.exp_dir = self._setup_experiment_dir()

        print("=" * 80)
        print(f"EXPERIMENT: {self.exp_dir.name}")
        print("=" * 80)

        if algorithm_config.random_seed is not None:
            print(f"Seed: {algorithm_config.random_seed}")

        self._save_experiment_config()

        print(f"STARTING TRAINING - {self.config.environment_name}")
        print("-" * 70)
        print(f"Algorithm: {algorithm_config.algorithm.value}")
        print(f"Environment kwargs: {self.config.env_kwargs}")
        print(f"Training episodes: {algorithm_config.n_training_episodes}")
        print(f"Gamma: {self.mdp.gamma}")
        print(f"Learning rate: {algorithm_config.learning_rate_schedule.value}")
        if algorithm_config.algorithm == RLAlgMethod.Q_LEARNING:
            print(f"Exploration: N_e={algorithm_config.n_e}, R+={algorithm_config.r_plus}")
        print(f"MDP: {self.mdp}")
        print("=" * 70 + "\n")

        self.agent = self.create_agent()

        start = time.time()
        episode_rewards = self.agent.train(
            self.env,
            n_episodes=algorithm_config.n_training_episodes,
            max_steps=algorithm_config.max_steps,
            verbose=True,
        )
        elapsed = time.time() - start
        print(f"\nTraining completed in {elapsed:.2f} seconds")

        self.agent.print_statistics()

        results = {
            "experiment_dir": str(self.exp_dir),
            "training_time": elapsed,
            "mean_training_reward": float(np.mean(episode_rewards)) if len(episode_rewards) else 0.0,
        }

        true_utilities = None
        if self.policy is not None:
            true_utilities = solve_policy_utilities(self.policy, self.mdp)
            results["rms_error"] = rms_error(self.agent.utilities(), true_utilities)

            print("=" * 70)
            print("UTILITY ESTIMATES")
            print("=" * 70)
            print(f"RMS error against exact policy utilities: {results['rms_error']:.4f}")
            print("=" * 70 + "\n")
        else:
            print("Starting evaluation...\n")
            mean_reward, std_reward, eval_rewards = evaluate_policy(
                self.env,
                self.agent.get_policy(),
                n_episodes=algorithm_config.n_eval_episodes,
                max_steps=algorithm_config.max_steps,
                verbose=True,
            )
            results["mean_eval_reward"] = mean_reward
            results["std_eval_reward"] = std_reward

            print("\n" + "=" * 70)
            print("EVALUATION RESULTS")
            print("=" * 70)
            print(f"Mean reward: {mean_reward:.2f} +/- {std_reward:.2f}")
            print(f"Min reward: {np.min(eval_rewards):.2f}")
            print(f"Max reward: {np.max(eval_rewards):.2f}")
            print("=" * 70 + "\n")

        print("Generating training visualization...")
        window_size = min(100, max(1, len(episode_rewards)))
        self.plot_training_results(episode_rewards, window_size=window_size)
        self.save_training_logs(episode_rewards, window_size=window_size)
        self.save_utilities(true_utilities)
        self.agent.save(self.exp_dir / "tables.pkl")

        return results
