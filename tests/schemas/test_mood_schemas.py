"""
Schema invariants: descriptor dedupe/cap, evidence cap, frozen results,
conversation helpers, ScoredConversation accessors.
"""
import pytest
import sys
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.conversation import ConversationData
from schemas.mood import MoodAnalysisResult, MoodFactor
from schemas.validation import HumanValidationRecord
from tests._helpers.conversations import T0, make_conversation, make_result, make_scored


def test_descriptors_deduplicated_and_capped():
    result = MoodAnalysisResult(
        score=6.0,
        confidence=0.5,
        descriptors=["calm", "calm", "content", "hopeful", "warm", "steady", "open"],
    )
    assert result.descriptors == ["calm", "content", "hopeful", "warm", "steady"]


def test_evidence_capped_at_five():
    factor = MoodFactor(type="sentiment_analysis", weight=0.35, evidence=[str(i) for i in range(8)])
    assert factor.evidence == ["0", "1", "2", "3", "4"]


@pytest.mark.parametrize("score", [-0.1, 10.1])
def test_score_out_of_range_rejected(score):
    with pytest.raises(ValidationError):
        MoodAnalysisResult(score=score, confidence=0.5)


def test_result_is_frozen():
    result = make_result(5.0)
    with pytest.raises(ValidationError):
        result.score = 7.0


def test_factor_lookup_and_evidence_count():
    result = make_result(6.0, evidence_per_factor=2)
    assert result.factor("relationship_context").score == 6.0
    assert result.factor("language_sentiment") is None
    assert result.evidence_count == 10
    assert not result.is_enriched


def test_conversation_helpers():
    conv = make_conversation(["Hello THERE", "Bye"], gap_seconds=60, relationship_type="friend")
    assert conv.full_text == "hello there bye"
    assert conv.start_time == T0
    assert conv.end_time == T0 + timedelta(seconds=60)
    assert conv.relationship_type == "friend"
    assert ConversationData(id="x").relationship_type == "unknown"


def test_scored_conversation_accessors():
    scored = make_scored(7.5, conv_id="abc", timestamp=T0)
    assert scored.id == "abc"
    assert scored.score == 7.5
    assert scored.timestamp == T0


def test_human_score_bounds():
    with pytest.raises(ValidationError):
        HumanValidationRecord(conversation_id="c", validator_id="v", human_mood_score=11.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
