import json
import random

import pytest

from snake_qlearning.config import EPSILON_SAMPLE_EVERY
from snake_qlearning.qlearn import QLearningAgent
from snake_qlearning.train import TrainingStats, train_batch, train, main, load_stats, save_stats


def test_stats_record_episode():
    stats = TrainingStats()
    for score in range(1, EPSILON_SAMPLE_EVERY + 1):
        stats.record_episode(score, epsilon=0.5)

    assert stats.episodes == EPSILON_SAMPLE_EVERY
    assert stats.best_score == EPSILON_SAMPLE_EVERY
    assert list(stats.epsilon_history) == [0.5]
    assert stats.avg_score_last_100 == round(sum(range(1, EPSILON_SAMPLE_EVERY + 1)) / EPSILON_SAMPLE_EVERY, 2)


def test_stats_average_uses_last_100():
    stats = TrainingStats()
    for _ in range(100):
        stats.record_episode(0, 1.0)
    for _ in range(100):
        stats.record_episode(4, 1.0)
    assert stats.avg_score_last_100 == 4.0


def test_stats_level_success_rate():
    stats = TrainingStats()
    assert stats.level_success_rate == 0.0
    stats.level_clears = 1
    for _ in range(4):
        stats.record_episode(1, 1.0)
    assert stats.level_success_rate == 25.0


def test_stats_round_trip(tmp_path):
    stats = TrainingStats(level_clears=2)
    for score in (3, 5, 1):
        stats.record_episode(score, 0.9)
    path = tmp_path / "training.json"
    save_stats(stats, path)

    restored = load_stats(path)
    assert restored.to_dict() == stats.to_dict()


def test_load_stats_from_bad_file(tmp_path):
    path = tmp_path / "training.json"
    path.write_text("[1, 2]")
    assert load_stats(path).episodes == 0


@pytest.mark.parametrize("payload", [
    {"score_history": "abc"},
    {"score_history": [1, "2", 3]},
    {"epsilon_history": [0.5, None]},
    {"episodes": "12"},
    {"episodes": 3.5},
    {"best_score": -1},
    {"level_clears": True},
])
def test_load_stats_rejects_bad_fields(tmp_path, payload):
    path = tmp_path / "training.json"
    path.write_text(json.dumps(payload))

    stats = load_stats(path)

    assert stats.episodes == 0
    assert list(stats.score_history) == []
    assert list(stats.epsilon_history) == []
    assert stats.avg_score_last_100 == 0.0


def test_train_batch_resets_finished_episodes():
    agent = QLearningAgent(epsilon=0.0, rng=random.Random(3))
    agent.env.state.game_over = True
    agent.env.state.score = 6
    stats = TrainingStats()

    finished = train_batch(agent, stats, 1)

    assert finished == 1
    assert stats.episodes == 1
    assert stats.best_score == 6
    assert agent.total_steps == 1


def test_train_batch_counts_level_clears():
    agent = QLearningAgent(epsilon=0.0, rng=random.Random(3))
    agent.env.state.portal_open = True
    agent.env.state.portal_point = (15, 14)
    stats = TrainingStats()

    train_batch(agent, stats, 1)

    assert agent.env.state.level == 2
    assert stats.level_clears == 1


def test_train_batch_runs_many_decisions():
    agent = QLearningAgent(rng=random.Random(11))
    stats = TrainingStats()
    finished = train_batch(agent, stats, 3000)

    assert agent.total_steps == 3000
    assert finished == stats.episodes
    assert stats.episodes > 0
    assert len(agent.Q) > 0


def test_train_writes_checkpoints(tmp_path, capsys):
    qtable = tmp_path / "qtable.json"
    stats_file = tmp_path / "training.json"

    agent, stats = train(ticks=2, batch_size=200, qtable_file=str(qtable),
                         stats_file=str(stats_file), save_every=1, seed=0, resume=False)

    assert qtable.exists()
    assert stats_file.exists()
    saved = json.loads(qtable.read_text())
    assert saved['total_steps'] == agent.total_steps
    assert json.loads(stats_file.read_text())['episodes'] == stats.episodes
    assert "TRAINING COMPLETE" in capsys.readouterr().out


def test_train_resumes_from_checkpoint(tmp_path):
    qtable = str(tmp_path / "qtable.json")
    stats_file = str(tmp_path / "training.json")

    first, first_stats = train(ticks=1, batch_size=300, qtable_file=qtable,
                               stats_file=stats_file, save_every=1, seed=1, resume=False)
    second, second_stats = train(ticks=1, batch_size=300, qtable_file=qtable,
                                 stats_file=stats_file, save_every=1, seed=2, resume=True)

    assert second.total_steps > first.total_steps
    assert second_stats.episodes >= first_stats.episodes
    assert len(second.Q) >= len(first.Q)


def test_main_parses_arguments(tmp_path):
    qtable = tmp_path / "q.json"
    stats_file = tmp_path / "s.json"
    main(["--ticks", "1", "--batch-size", "50", "--qtable", str(qtable),
          "--stats", str(stats_file), "--seed", "4", "--no-resume"])
    assert qtable.exists()
    assert stats_file.exists()
