"""
PatternRecognizer

Template matching on conversations, trajectory patterns,
evidence minimums, related-pattern merging.
"""
import pytest
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.mood import EmotionalPattern, EmotionalTrajectory, TrajectoryPoint, TurningPoint
from mood_engine.patterns.main import PatternRecognizer
from tests._helpers.conversations import T0, make_conversation, make_result


@pytest.fixture
def recognizer():
    return PatternRecognizer()


def test_celebration_pattern(recognizer):
    conv = make_conversation(["I'm so excited, I achieved my goal!", "Great news, such a success"])
    mood = make_result(8.5, descriptors=["joyful", "excited", "positive"])
    patterns = recognizer.recognize_patterns(conv, mood)
    types = [p.type for p in patterns]
    assert "celebration" in types
    celebration = patterns[types.index("celebration")]
    assert celebration.confidence >= 0.9
    assert any("Celebration sharing" in e for e in celebration.evidence)


def test_support_seeking_pattern(recognizer):
    conv = make_conversation(["I'm struggling and need help", "It's been a hard time"])
    mood = make_result(3.5, descriptors=["concerned", "unsettled"])
    patterns = recognizer.recognize_patterns(conv, mood)
    assert "support_seeking" in [p.type for p in patterns]


def test_patterns_sorted_by_significance(recognizer):
    conv = make_conversation(["I'm so excited, I achieved my goal!", "Great news, such a success"])
    patterns = recognizer.recognize_patterns(conv, make_result(8.5, descriptors=["joyful", "excited", "positive"]))
    sig = [p.significance for p in patterns]
    assert sig == sorted(sig, reverse=True)


def test_no_pattern_without_evidence(recognizer):
    conv = make_conversation(["ok"])
    assert recognizer.recognize_patterns(conv, make_result(5.5)) == []


def test_trajectory_repair_and_growth(recognizer):
    points = [
        TrajectoryPoint(timestamp=T0 + timedelta(minutes=10 * i), mood_score=s)
        for i, s in enumerate([2.0, 7.5, 8.0])
    ]
    trajectory = EmotionalTrajectory(
        points=points,
        direction="improving",
        significance=0.7,
        turning_points=[TurningPoint(timestamp=points[1].timestamp, type="breakthrough", magnitude=5.5)],
    )
    patterns = {p.type: p for p in recognizer.analyze_trajectory_patterns(trajectory)}
    assert set(patterns) == {"growth", "mood_repair"}
    assert patterns["mood_repair"].confidence == pytest.approx(0.9)
    assert patterns["mood_repair"].significance == 0.9
    assert patterns["growth"].significance == 0.7


def test_merge_complementary_patterns(recognizer):
    a = EmotionalPattern(type="vulnerability", confidence=0.8, evidence=["x"], significance=0.6)
    b = EmotionalPattern(type="support_seeking", confidence=0.6, evidence=["y"], significance=0.7)
    c = EmotionalPattern(type="celebration", confidence=0.9, evidence=["z"], significance=0.5)

    merged = recognizer.merge_related_patterns([a, b, c])
    assert len(merged) == 2
    combined = merged[0]
    assert combined.type == "support_seeking"
    assert combined.confidence == pytest.approx(0.7)
    assert combined.significance == 0.7
    assert combined.evidence == ["x", "y"]
    assert combined.description.startswith("Combined pattern")
    assert merged[1] == c


def test_pattern_strength():
    p = EmotionalPattern(type="growth", confidence=1.0, evidence=list("abcde"), significance=1.0)
    assert PatternRecognizer.calculate_pattern_strength(p) == pytest.approx(1.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
