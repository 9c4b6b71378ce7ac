"""
Per-message trajectory: message scores, emotion bands, direction,
significance, and the analyzer CLI trajectory/pattern emits.
"""
import pytest
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.mood import TrajectoryPoint
from mood_engine.analyzer.main import run
from mood_engine.analyzer.trajectory import (
    build_trajectory,
    emotions_for_score,
    message_mood_score,
    signed_table,
    trajectory_direction,
    trajectory_significance,
)
from mood_engine.emotion.lexicon import load_lexicon
from tests._helpers.conversations import T0, make_conversation


@pytest.fixture(scope="module")
def table():
    return signed_table(load_lexicon())


def _points(scores):
    return [TrajectoryPoint(timestamp=T0 + timedelta(minutes=i), mood_score=s) for i, s in enumerate(scores)]


def test_message_scores(table):
    assert message_mood_score("happy", table) == pytest.approx(9.0)
    assert message_mood_score("sad", table) == pytest.approx(1.5)
    assert message_mood_score("the table", table) == 5.0


def test_emotion_bands():
    assert emotions_for_score(9.0) == ["joyful", "positive"]
    assert emotions_for_score(5.0) == ["concerned", "uncertain"]
    assert emotions_for_score(1.5) == ["distressed", "struggling"]


@pytest.mark.parametrize("scores,direction", [
    ([5.0, 5.0, 6.5, 6.5], "improving"),
    ([6.5, 6.5, 5.0, 5.0], "declining"),
    ([1.0, 9.0, 1.0, 9.0], "volatile"),
    ([5.0, 5.2], "stable"),
    ([5.0], "stable"),
])
def test_direction(scores, direction):
    assert trajectory_direction(_points(scores)) == direction


def test_significance_bounds():
    assert trajectory_significance([], 0) == 0.0
    assert trajectory_significance(_points([5.0, 5.0]), 0) == 0.0
    assert trajectory_significance(_points([0.0, 10.0]), 2) == pytest.approx(1.0)


def test_build_trajectory():
    conv = make_conversation(["sad", "sad", "happy", "happy"], gap_seconds=600)
    trajectory = build_trajectory(conv)
    assert [p.mood_score for p in trajectory.points] == pytest.approx([1.5, 1.5, 9.0, 9.0])
    assert [p.message_id for p in trajectory.points] == [m.id for m in conv.messages]
    assert trajectory.points[0].context.startswith("message 0 by alice")
    assert trajectory.direction == "volatile"
    assert trajectory.significance >= 0.6


def test_empty_conversation_trajectory():
    trajectory = build_trajectory(make_conversation([]))
    assert trajectory.points == []
    assert trajectory.significance == 0.0
    assert trajectory.turning_points == []


def test_run_emits_trajectory_and_patterns():
    conv = make_conversation(["I feel so sad", "It's getting better", "I'm really happy now"])
    res = run({"data": {"conversation": conv.model_dump(mode="json")}}, {"trajectory": True})
    assert len(res["emits"]["trajectory"]["points"]) == 3
    assert isinstance(res["emits"]["patterns"], list)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
