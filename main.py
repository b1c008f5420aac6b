import sys

from mdp_rl.config_exp import (ExperimentConfig, LearningRateSchedule,
                               RLAlgMethod, RLConfig)
from mdp_rl.environment import GRID_ENV_ID
from mdp_rl.experiment import ReinforcementLearningExperiment


def main(config: ExperimentConfig) -> dict:
    """Runs one experiment and returns its results."""
    experiment = ReinforcementLearningExperiment(config)
    try:
        return experiment.run()
    finally:
        experiment.env.close()


if __name__ == "__main__":
    if len(sys.argv) > 1:
        # Path to a config.yaml / config.json written by a previous experiment
        path = sys.argv[1]
        if path.endswith((".yaml", ".yml")):
            config = ExperimentConfig.load_yaml(path)
        else:
            config = ExperimentConfig.load_json(path)
    else:
        ALGORITHM = RLAlgMethod.PASSIVE_ADP  # Options: PASSIVE_ADP, PASSIVE_TD, Q_LEARNING
        ENV_KWARGS = {
            "step_reward": -0.04,
            "gamma": 0.9,
        }

        config = ExperimentConfig(
            environment_name=GRID_ENV_ID,
            env_kwargs=ENV_KWARGS,
            algorithm=RLConfig(
                algorithm=ALGORITHM,
                n_training_episodes=200,  # Number of training trials
                max_steps=100,  # Max steps per trial
                evaluation_sweeps=20,  # Bellman backups per percept (passive ADP)
                n_e=5,  # Tries per (state, action) before trusting Q (Q-learning)
                r_plus=2.0,  # Optimistic reward for under-explored pairs (Q-learning)
                learning_rate_schedule=LearningRateSchedule.HARMONIC,
                n_eval_episodes=100,
                random_seed=42,
            ),
        )

    main(config)
