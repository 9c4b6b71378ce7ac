"""
EdgeCaseHandler

Complexity / uncertainty / interpretation reports, edge-case
classification order, cultural register, ambiguity, mixed emotions,
sarcasm and extreme states. Reports only; nothing alters a score.
"""
import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.edge_cases import EmotionalComplexityAssessment, InterpretationOption
from mood_engine.edge_cases.main import EdgeCaseHandler, _Signal
from tests._helpers.conversations import make_conversation, make_result

PLAIN = [
    "We met for lunch yesterday and talked for a while about the weekend plans",
    "Sounds like a solid plan to me, see you there on Saturday",
]
EXTREME = ["I am ABSOLUTELY DEVASTATED!!! This is the WORST THING THAT HAS EVER HAPPENED!!!"]
SARCASTIC = ["Oh fantastic, this is absolutely the worst day. Perfect, just perfect, my plans are ruined."]
UNDERSTATED = ["Well, perhaps it was somewhat challenging, one mustn't complain. I suppose these things happen."]
VAGUE = ["It was fine, okay, whatever."]


@pytest.fixture(scope="module")
def handler():
    return EdgeCaseHandler()


# -------------------- Complexity -------------------- #
def test_plain_conversation_is_standard(handler):
    assessment = handler.assess_emotional_complexity(make_conversation(PLAIN))
    assert assessment.complexity_score == 0.0
    assert assessment.complexity_types == []
    assert assessment.assessment_confidence == pytest.approx(0.9)
    assert assessment.recommended_approach == "standard_analysis"


def test_mixed_emotions_raise_complexity(handler):
    conv = make_conversation(["I'm so excited about the new job but also terrified"])
    assessment = handler.assess_emotional_complexity(conv)
    assert [t.type for t in assessment.complexity_types] == ["mixed_emotions"]
    assert assessment.complexity_score == pytest.approx(0.3)
    assert assessment.recommended_approach == "multi_interpretation"
    assert assessment.complexity_types[0].evidence == ["excited", "terrified"]


def test_signal_evidence_default_is_immutable():
    first = _Signal(False)
    assert first.evidence == ()
    assert isinstance(first.evidence, tuple)


def test_temporal_inconsistency(handler):
    conv = make_conversation([
        "Things have been really positive lately",
        "Now I'm in a dark place and nothing seems to matter",
    ])
    assessment = handler.assess_emotional_complexity(conv)
    kinds = {t.type: t for t in assessment.complexity_types}
    assert "temporal_inconsistency" in kinds
    assert kinds["temporal_inconsistency"].severity == "high"


# -------------------- Uncertainty -------------------- #
def test_short_context_widens_interval(handler):
    uq = handler.quantify_uncertainty(make_conversation(VAGUE), 5.0)
    assert [s.source for s in uq.uncertainty_sources] == ["insufficient_context"]
    assert uq.uncertainty_level == pytest.approx(0.92)
    assert uq.confidence_interval.low < 5.0 < uq.confidence_interval.high
    assert uq.confidence_interval.confidence == pytest.approx(0.1)


def test_clear_context_has_no_uncertainty(handler):
    uq = handler.quantify_uncertainty(make_conversation(PLAIN), 6.0)
    assert uq.uncertainty_level == 0.0
    assert uq.confidence_interval.low == uq.confidence_interval.high == 6.0
    assert uq.reliability_score == 1.0


# -------------------- Interpretations -------------------- #
def test_neutral_alternative_when_nothing_detected(handler):
    options = handler.generate_multiple_interpretations(make_conversation(PLAIN))
    assert options.primary_interpretation.mood_score == 5.0
    assert len(options.alternative_interpretations) == 1
    neutral = options.alternative_interpretations[0]
    assert neutral.mood_score == 5.0
    assert neutral.confidence == 0.4


def test_sarcasm_alternative_mirrors_primary(handler):
    options = handler.generate_multiple_interpretations(make_conversation(SARCASTIC))
    primary = options.primary_interpretation
    sarcastic = options.alternative_interpretations[0]
    assert sarcastic.rationale.startswith("Interpretation accounting for detected sarcasm")
    assert sarcastic.mood_score == pytest.approx(10 - primary.mood_score)


@pytest.mark.parametrize("primary,alternative,action", [
    (6.0, 5.0, "use_primary"),
    (6.0, 3.0, "weighted_average"),
    (8.0, 2.0, "flag_for_review"),
])
def test_interpretation_consensus(primary, alternative, action):
    p = InterpretationOption(mood_score=primary, confidence=0.5, rationale="primary")
    a = InterpretationOption(mood_score=alternative, confidence=0.5, rationale="alt")
    consensus = EdgeCaseHandler.interpretation_consensus(p, [a])
    assert consensus.recommended_action == action
    assert consensus.divergence == pytest.approx(abs(primary - alternative) / 10)


def test_consensus_without_alternatives():
    p = InterpretationOption(mood_score=7.0, confidence=0.5, rationale="primary")
    consensus = EdgeCaseHandler.interpretation_consensus(p, [])
    assert consensus.agreement == 1.0
    assert consensus.recommended_action == "use_primary"


# -------------------- Edge-case detection -------------------- #
def test_extreme_emotion_is_critical(handler):
    detection = handler.detect_edge_cases(make_conversation(EXTREME))
    assert detection.is_edge_case
    assert detection.edge_case_type == "extreme_emotion"
    assert detection.severity == "critical"
    assert detection.handling_strategy == "human_escalation"
    assert detection.detection_confidence == pytest.approx(12.6 / 15)


def test_sarcasm_heavy(handler):
    detection = handler.detect_edge_cases(make_conversation(SARCASTIC))
    assert detection.edge_case_type == "sarcasm_heavy"
    assert detection.severity == "high"
    assert detection.handling_strategy == "enhanced_analysis"


def test_cultural_specific(handler):
    detection = handler.detect_edge_cases(make_conversation(UNDERSTATED))
    assert detection.edge_case_type == "cultural_specific"
    assert detection.severity == "high"
    assert detection.detection_confidence == pytest.approx(0.9)


def test_ambiguous_context(handler):
    detection = handler.detect_edge_cases(make_conversation(VAGUE))
    assert detection.edge_case_type == "ambiguous_context"
    assert detection.handling_strategy == "uncertainty_flagging"


def test_plain_is_not_edge_case(handler):
    detection = handler.detect_edge_cases(make_conversation(PLAIN))
    assert detection.is_edge_case is False
    assert detection.edge_case_type is None


# -------------------- Cultural context -------------------- #
def test_high_context_register(handler):
    conv = make_conversation(["Well, you know, perhaps we might, if possible, and one could wait."])
    analysis = handler.analyze_cultural_context(conv)
    assert analysis.cultural_context == "high_context"
    aspects = [c.aspect for c in analysis.cultural_considerations]
    assert aspects == ["indirect_communication", "indirect_expression"]
    assert analysis.communication_style_indicators.implicitness == pytest.approx(0.9)


def test_low_context_register(handler):
    conv = make_conversation(["I'll say it directly, clearly and specifically, exactly what I mean."])
    analysis = handler.analyze_cultural_context(conv)
    assert analysis.cultural_context == "low_context"
    assert analysis.cultural_considerations == []


# -------------------- Ambiguity -------------------- #
def test_ambiguity_sources_and_strategies(handler):
    detection = handler.detect_ambiguity(make_conversation(VAGUE))
    assert [s.source for s in detection.ambiguity_sources] == ["linguistic", "contextual"]
    assert detection.resolution_strategies == [
        "multiple_interpretation_analysis",
        "context_clarification_request",
    ]
    assert detection.ambiguity_level == pytest.approx((0.3 + 0.92) / 3)
    assert detection.analysis_impact.recommended_action == "proceed_with_caution"


def test_no_ambiguity(handler):
    detection = handler.detect_ambiguity(make_conversation(PLAIN))
    assert detection.ambiguity_level == 0.0
    assert detection.resolution_strategies == ["standard_analysis_proceed"]


# -------------------- Mixed emotions -------------------- #
def test_conflicting_emotions_weighted(handler):
    handling = handler.handle_mixed_emotions(
        make_conversation(["I'm excited and happy but also worried and nervous"])
    )
    assert {e.emotion for e in handling.detected_emotions} == {"joy", "anxiety"}
    assert handling.resolution_strategy == "contextual_priority_assessment"
    assert handling.adjusted_mood_score == pytest.approx(25.8 / 4.6)
    assert 0.0 < handling.uncertainty <= 1.0


def test_single_emotion_uses_primary(handler):
    handling = handler.handle_mixed_emotions(make_conversation(["I'm so happy"]))
    assert handling.emotional_conflict == 0.0
    assert handling.resolution_strategy == "primary_emotion_focus"
    assert handling.adjusted_mood_score == 8.0


def test_no_emotions_is_neutral(handler):
    handling = handler.handle_mixed_emotions(make_conversation(PLAIN))
    assert handling.detected_emotions == []
    assert handling.adjusted_mood_score == 5.0


# -------------------- Sarcasm / extreme -------------------- #
def test_sarcasm_report(handler):
    report = handler.analyze_sarcasm(make_conversation(SARCASTIC))
    assert report.sarcasm_detected
    assert report.sarcasm_confidence == 1.0
    assert report.irony_detected
    assert "tone_contradiction" in report.contextual_clues
    assert report.adjustment_recommendation == "reverse_sentiment_polarity"


def test_sarcasm_clues_from_emoji():
    clues = EdgeCaseHandler.sarcasm_clues("Thrilled to wait 3 hours \U0001F644")
    assert clues == ["eye_roll_emoji", "exaggerated_enthusiasm"]
    assert EdgeCaseHandler.sarcasm_score("thrilled to wait 3 hours") == pytest.approx(0.35)


def test_extreme_state(handler):
    state = handler.analyze_extreme_state(make_conversation(EXTREME))
    assert state.extreme_emotion_detected
    assert state.emotion_type == "extreme_distress"
    assert state.intensity_level == pytest.approx(12.6)
    assert state.handling_approach == "human_review_required"
    assert state.confidence_adjustment == pytest.approx(0.3)
    assert state.stability_assessment == 0.5


def test_minor_trigger_extreme_response_is_unstable(handler):
    conv = make_conversation(["The coffee was cold", "I am DEVASTATED"])
    assert handler.analyze_extreme_state(conv).stability_assessment == 0.2


# -------------------- Complexity handling -------------------- #
def test_complexity_handling_on_plain_conversation(handler):
    validation = handler.validate_complexity_handling(make_conversation(PLAIN), make_result(5.0))
    assert validation.improvement_detected is False
    assert validation.accuracy_improvement == 0.0
    assert validation.handling_effectiveness == pytest.approx(0.54)


def test_complexity_handling_when_complex(handler):
    complexity = EmotionalComplexityAssessment(
        complexity_score=0.7,
        assessment_confidence=0.5,
        recommended_approach="uncertainty_flagging",
    )
    validation = handler.validate_complexity_handling(
        make_conversation(PLAIN), make_result(5.0, confidence=0.6), complexity
    )
    assert validation.improvement_detected
    assert validation.accuracy_improvement == pytest.approx(0.28)
    assert validation.confidence_improvement == 0.2
    assert validation.handling_effectiveness == pytest.approx(0.4)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
