import pytest

from mdp_rl.config_exp import ExperimentConfig, RLAlgMethod, RLConfig
from mdp_rl.experiment import ReinforcementLearningExperiment, evaluate_policy


def make_config(tmp_path, algorithm) -> ExperimentConfig:
    return ExperimentConfig(
        algorithm=RLConfig(
            algorithm=algorithm,
            n_training_episodes=10,
            max_steps=50,
            evaluation_sweeps=5,
            n_eval_episodes=3,
            random_seed=0,
        ),
        experiments_dir=tmp_path,
    )


@pytest.mark.parametrize("algorithm", [RLAlgMethod.PASSIVE_ADP, RLAlgMethod.PASSIVE_TD])
def test_passive_experiment(tmp_path, algorithm):
    experiment = ReinforcementLearningExperiment(make_config(tmp_path, algorithm))
    results = experiment.run()
    experiment.env.close()

    assert results["rms_error"] >= 0.0
    assert experiment.policy is not None
    for name in ["config.json", "config.yaml", "training_results.png",
                 "training_logs.csv", "utilities.csv", "tables.pkl"]:
        assert (experiment.exp_dir / name).exists()


def test_q_learning_experiment(tmp_path):
    experiment = ReinforcementLearningExperiment(make_config(tmp_path, RLAlgMethod.Q_LEARNING))
    results = experiment.run()
    experiment.env.close()

    assert "mean_eval_reward" in results
    assert "rms_error" not in results
    assert (experiment.exp_dir / "tables.pkl").exists()


def test_evaluate_policy(tmp_path):
    experiment = ReinforcementLearningExperiment(make_config(tmp_path, RLAlgMethod.PASSIVE_TD))
    experiment.create_agent()

    mean_reward, std_reward, rewards = evaluate_policy(
        experiment.env, experiment.policy, n_episodes=5, max_steps=100, verbose=False
    )

    assert rewards.shape == (5,)
    assert std_reward >= 0.0
    assert mean_reward <= 1.0
    experiment.env.close()
