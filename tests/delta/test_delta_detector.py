"""
DeltaDetector

Classification of conversation-level changes, extraction triggers,
turning points, velocity / plateau / sudden-transition helpers.
"""
import pytest
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.mood import EmotionalTrajectory, MoodDelta, TrajectoryPoint
from mood_engine.delta.main import DeltaDetector
from tests._helpers.conversations import T0, make_result


@pytest.fixture
def detector():
    return DeltaDetector()


def _points(scores, minutes=60, contexts=None):
    contexts = contexts or [None] * len(scores)
    return [
        TrajectoryPoint(timestamp=T0 + timedelta(minutes=minutes * i), mood_score=s, context=c)
        for i, (s, c) in enumerate(zip(scores, contexts))
    ]


def test_mood_repair_detected_and_triggers(detector):
    """3.0 -> 7.5 is a repair worth extracting."""
    delta = detector.detect_mood_delta(make_result(7.5), make_result(3.0))
    assert delta is not None
    assert delta.magnitude == pytest.approx(4.5)
    assert delta.direction == "positive"
    assert delta.type == "mood_repair"
    assert delta.confidence >= 0.9
    assert detector.should_trigger_extraction(delta)


def test_small_change_returns_none(detector):
    assert detector.detect_mood_delta(make_result(5.5), make_result(5.0)) is None


def test_delta_is_symmetric(detector):
    up = detector.detect_mood_delta(make_result(7.0), make_result(4.0))
    down = detector.detect_mood_delta(make_result(4.0), make_result(7.0))
    assert up.magnitude == pytest.approx(down.magnitude)
    assert up.direction == "positive"
    assert down.direction == "negative"


def test_decline_classification(detector):
    delta = detector.detect_mood_delta(make_result(3.0), make_result(6.5))
    assert delta.type == "decline"
    assert detector.should_trigger_extraction(delta)


def test_celebration_threshold(detector):
    small = detector.detect_mood_delta(make_result(8.7), make_result(6.5))
    assert small.type == "celebration"
    assert not detector.should_trigger_extraction(small)


def test_healing_descriptor_repair(detector):
    current = make_result(5.2, descriptors=["neutral", "processing"])
    delta = detector.detect_mood_delta(current, make_result(3.0))
    assert delta.type == "mood_repair"


def test_descriptor_factors_reported(detector):
    current = make_result(8.0, descriptors=["joyful", "uplifted"])
    previous = make_result(5.0, descriptors=["neutral"])
    delta = detector.detect_mood_delta(current, previous)
    assert any(f.startswith("New emotional expressions") for f in delta.factors)


def test_conversational_deltas_tag_position(detector):
    analyses = [make_result(3.0), make_result(7.0), make_result(7.2), make_result(3.5)]
    deltas = detector.detect_conversational_deltas(analyses)
    assert len(deltas) == 2
    assert "Early conversation shift" in deltas[0].factors
    assert "Conversation conclusion shift" in deltas[1].factors


def test_turning_point_breakthrough(detector):
    trajectory = EmotionalTrajectory(points=_points([3.0, 2.0, 7.0]))
    tps = detector.identify_turning_points(trajectory)
    assert len(tps) == 1
    assert tps[0].type == "breakthrough"
    assert tps[0].magnitude == pytest.approx(6.0)


def test_turning_points_need_three_points(detector):
    assert detector.identify_turning_points(EmotionalTrajectory(points=_points([2.0, 8.0]))) == []


def test_velocity_per_hour(detector):
    points = _points([4.0, 5.0, 6.0], minutes=30)
    assert detector.calculate_mood_velocity(points) == pytest.approx(2.0)
    assert detector.calculate_mood_velocity(points[:1]) == 0.0


def test_plateau(detector):
    flat = detector.detect_emotional_plateau(_points([5.0, 5.2, 4.9, 5.1]))
    assert flat.is_plateau
    assert flat.duration == timedelta(hours=3)
    assert not detector.detect_emotional_plateau(_points([2.0, 8.0, 3.0])).is_plateau


def test_same_type_turning_points_merge_factors(detector):
    """Two realizations a minute apart: the stronger one stays, factors of both survive."""
    points = [
        TrajectoryPoint(timestamp=T0 + timedelta(minutes=i), mood_score=s, emotions=e)
        for i, (s, e) in enumerate([
            (3.0, []), (2.0, []), (7.0, []), (1.0, ["anger"]), (8.0, ["joy"]),
        ])
    ]
    tps = detector.identify_turning_points(EmotionalTrajectory(points=points))
    assert [tp.type for tp in tps] == ["breakthrough", "realization"]

    realization = tps[1]
    assert realization.magnitude == pytest.approx(13.0)
    assert realization.timestamp == T0 + timedelta(minutes=3)
    assert "New emotions: joy" in realization.factors
    assert "New emotions: anger" in realization.factors
    assert realization.factors.count("Total mood change: 1.0 points") == 1


def test_turning_points_outside_window_kept(detector):
    tps = detector.identify_turning_points(EmotionalTrajectory(points=_points([3.0, 2.0, 7.0, 1.0, 8.0])))
    assert [tp.type for tp in tps] == ["breakthrough", "realization", "realization"]


@pytest.mark.parametrize("scores,expected", [
    ([5.0, 5.5, 8.0], "breakthrough"),
    ([5.0, 4.5, 2.0], "setback"),
])
def test_acceleration_turning_point(detector, scores, expected):
    """No direction flip, but the second step is far steeper than the first."""
    tps = detector.identify_turning_points(EmotionalTrajectory(points=_points(scores)))
    assert len(tps) == 1
    assert tps[0].type == expected
    assert tps[0].magnitude == pytest.approx(3.0)


def test_steady_slope_is_not_turning_point(detector):
    assert detector.identify_turning_points(EmotionalTrajectory(points=_points([2.0, 4.0, 6.0]))) == []


def test_velocity_window(detector):
    points = _points([4.0, 5.0, 6.0, 9.0], minutes=30)
    assert detector.calculate_mood_velocity(points) == pytest.approx(10.0 / 3)
    assert detector.calculate_mood_velocity(points, window=timedelta(hours=1)) == pytest.approx(4.0)
    assert detector.calculate_mood_velocity(points, window=timedelta(minutes=10)) == 0.0


def test_delta_magnitude_is_confidence_weighted():
    delta = MoodDelta(magnitude=4.0, direction="positive", type="mood_repair", confidence=0.75)
    assert DeltaDetector.calculate_delta_magnitude(delta) == pytest.approx(3.0)


def test_sudden_transition(detector):
    transitions = detector.detect_sudden_transitions(_points([2.0, 8.0], minutes=5))
    assert len(transitions) == 1
    assert transitions[0].type == "sudden"
    assert transitions[0].direction == "positive"
    assert transitions[0].velocity == pytest.approx(72.0)


@pytest.mark.parametrize("scores,expected,direction", [
    ([5.0, 7.5], "gradual", "positive"),
    ([2.0, 3.5, 6.0], "recovery", "positive"),
    ([8.0, 6.5, 4.0], "decline", "negative"),
])
def test_transition_types(detector, scores, expected, direction):
    """Hourly points: too slow to be sudden, classified over the window ending at the jump."""
    transitions = detector.detect_sudden_transitions(_points(scores))
    assert len(transitions) == 1
    assert transitions[0].type == expected
    assert transitions[0].direction == direction
    assert transitions[0].velocity == pytest.approx(2.5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
