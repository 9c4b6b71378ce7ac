"""
ValidationFramework

Algorithm vs expert agreement, systematic bias, rule-based bias
attribution, rater consistency, credentials gate, run() payload.
"""
import math

import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mood_engine.errors import InvalidCredentialsError, NoMatchedPairsError
from mood_engine.validation.main import (
    ValidationConfig,
    ValidationFramework,
    average_ranks,
    concordance_level,
    pearson,
    run,
    spearman,
)
from tests._helpers.conversations import make_batch, make_record, make_scored

MINIMIZING = ("It's just a bit stressful, nothing major",)


@pytest.fixture
def framework():
    return ValidationFramework()


# -------------------- Statistics -------------------- #
def test_average_ranks_share_ties():
    assert average_ranks([10, 20, 20, 30]) == [1.0, 2.5, 2.5, 4.0]


def test_spearman_is_rank_based():
    assert spearman([1, 2, 3, 4], [1, 4, 9, 16]) == pytest.approx(1.0)


@pytest.mark.parametrize("x,y", [([5.0], [5.0]), ([5.0, 5.0, 5.0], [1.0, 2.0, 3.0]), ([1.0, 2.0], [1.0])])
def test_pearson_degenerate_inputs(x, y):
    assert pearson(x, y) == 0.0


@pytest.mark.parametrize("r,mae,level", [
    (0.85, 0.5, "high"),
    (0.7, 1.0, "moderate"),
    (0.9, 2.0, "low"),
])
def test_concordance_levels(r, mae, level):
    assert concordance_level(r, mae) == level


# -------------------- Agreement -------------------- #
def test_identical_scores_agree_perfectly(framework):
    scored, records = make_batch([2.0, 4.0, 5.0, 7.0, 9.0], [2.0, 4.0, 5.0, 7.0, 9.0])
    result = framework.validate_mood_score(scored, records, session_id="s1")
    m = result.overall_metrics
    assert m.pearson_correlation == pytest.approx(1.0)
    assert m.spearman_correlation == pytest.approx(1.0)
    assert m.mean_absolute_error == 0.0
    assert m.agreement_percentage == 100.0
    assert m.concordance_level == "high"
    assert m.statistical_significance.is_significant
    assert m.statistical_significance.confidence_interval == pytest.approx((0.9, 1.0))

    assert result.discrepancy_analysis.systematic_bias == "no_systematic_bias"
    assert result.bias_analysis.bias_detected is False
    assert result.recommendations == []
    assert result.session_id == "s1"
    assert result.session_metadata.total_validators == 1
    assert result.session_metadata.average_validator_experience == 5.0
    assert all(a.discrepancy_type == "close_agreement" for a in result.individual_analyses)


def test_systematic_over_estimation(framework):
    """Algorithm +2 on every conversation."""
    scored, records = make_batch([4.0, 5.0, 6.0, 7.0, 8.0], [2.0, 3.0, 4.0, 5.0, 6.0])
    result = framework.validate_mood_score(scored, records)

    d = result.discrepancy_analysis
    assert d.systematic_bias == "algorithmic_over_estimation"
    assert d.bias_pattern.magnitude == pytest.approx(2.0)
    assert d.bias_pattern.direction == "positive"
    assert d.bias_pattern.consistency == pytest.approx(1.0)
    assert d.discrepancy_distribution.large == 5
    assert "neutral_surface_bias" in d.common_discrepancy_types

    b = result.bias_analysis
    assert b.bias_detected
    assert b.detection_confidence == 0.95
    assert b.statistical_evidence.p_value == 0.005
    assert b.statistical_evidence.test_statistic == pytest.approx(2 * math.sqrt(5))
    assert b.statistical_evidence.effect_size == pytest.approx(20.0)
    assert [t.type for t in b.bias_types] == ["emotional_complexity"]
    assert b.bias_types[0].severity == "medium"

    assert result.overall_metrics.concordance_level == "low"
    categories = [r.category for r in result.recommendations]
    assert categories == [
        "systematic_bias_correction",
        "bias_mitigation",
        "algorithm_enhancement",
        "accuracy_improvement",
    ]


def test_under_estimation_direction(framework):
    scored, records = make_batch([3.0, 3.0, 3.0], [6.0, 6.0, 6.0])
    d = framework.validate_mood_score(scored, records).discrepancy_analysis
    assert d.systematic_bias == "algorithmic_under_estimation"
    assert d.bias_pattern.direction == "negative"


def test_no_matched_pairs(framework):
    scored = [make_scored(5.0, conv_id="c1")]
    with pytest.raises(NoMatchedPairsError):
        framework.validate_mood_score(scored, [make_record("other", 5.0)])


def test_first_record_per_conversation_is_paired():
    scored = [make_scored(6.0, conv_id="c1")]
    records = [make_record("c1", 6.0, validator_id="v1"), make_record("c1", 2.0, validator_id="v2")]
    pairs = ValidationFramework.match_pairs(scored, records)
    assert len(pairs) == 1
    assert pairs[0][1].validator_id == "v1"


# -------------------- Bias rules -------------------- #
def test_minimization_rule_focuses_recommendations(framework):
    scored, records = make_batch(
        [7.0] * 5, [3.0] * 5, texts=MINIMIZING, factors=("emotional minimization",)
    )
    result = framework.validate_mood_score(scored, records)

    types = result.bias_analysis.bias_types
    assert [t.type for t in types] == ["emotional_minimization"]
    assert types[0].severity == "high"
    assert types[0].affected_samples == 5

    recs = result.recommendations
    assert [r.category for r in recs] == [
        "algorithm_enhancement",
        "training_data_enhancement",
        "validation_process_improvement",
    ]
    assert [r.priority for r in recs] == ["high", "medium", "medium"]
    assert recs[0].description.endswith("to address emotional_minimization")

    individual = result.individual_analyses[0]
    assert individual.discrepancy_factors == ["emotional_minimization", "contextual_nuance_missed"]
    assert individual.recommended_improvement == ["Implement advanced minimization language detection algorithms"]


def test_rule_needs_human_corroboration(framework):
    scored, records = make_batch([7.0] * 5, [3.0] * 5, texts=MINIMIZING)
    types = framework.validate_mood_score(scored, records).bias_analysis.bias_types
    assert [t.type for t in types] == ["emotional_complexity"]


def test_mixed_descriptor_rule(framework):
    scored, records = make_batch(
        [7.0, 7.5], [4.0, 4.0], descriptors=["mixed", "uncertain"], factors=("emotional conflict",)
    )
    individual = framework.analyze_individual(ValidationFramework.match_pairs(scored, records))
    assert individual[0].discrepancy_factors == [
        "mixed_emotion_oversimplification",
        "mixed_emotion_complexity",
        "contextual_nuance_missed",
    ]
    assert "enhanced_mixed_emotion_analysis" in individual[0].recommended_improvement


def test_custom_rule_list_is_used():
    framework = ValidationFramework(bias_rules=[])
    scored, records = make_batch(
        [7.0] * 5, [3.0] * 5, texts=MINIMIZING, factors=("emotional minimization",)
    )
    types = framework.validate_mood_score(scored, records).bias_analysis.bias_types
    assert [t.type for t in types] == ["emotional_complexity"]


# -------------------- Rater consistency -------------------- #
def test_raters_in_agreement(framework):
    records = [
        make_record("c1", 6.0, validator_id="v1"),
        make_record("c1", 6.0, validator_id="v2"),
        make_record("c2", 4.0, validator_id="v1"),
        make_record("c2", 4.0, validator_id="v2"),
    ]
    consistency = framework.analyze_validator_consistency(records, {"c1": 7.0, "c2": 3.0})
    assert consistency.inter_rater_reliability == 1.0
    assert consistency.consensus_level == "high"
    assert consistency.outlier_validations == []

    v1 = consistency.validator_metrics["v1"]
    assert v1.average_correlation_with_algorithm == pytest.approx(1.0)
    assert v1.average_correlation_with_peers == pytest.approx(1.0)
    assert v1.consistency_score == 1.0
    assert v1.validation_count == 2


def test_outlier_rater_flagged(framework):
    records = [
        make_record("c1", 5.0, validator_id="v1"),
        make_record("c1", 5.0, validator_id="v2"),
        make_record("c1", 9.0, validator_id="v3"),
    ]
    consistency = framework.analyze_validator_consistency(records)
    assert [o.validator_id for o in consistency.outlier_validations] == ["v3"]
    assert consistency.outlier_validations[0].deviation_magnitude == pytest.approx(8 / 3)
    assert consistency.consensus_level == "low"
    assert consistency.validator_metrics["v3"].consistency_score < consistency.validator_metrics["v1"].consistency_score


# -------------------- Credentials -------------------- #
def test_credentials_gate():
    framework = ValidationFramework(ValidationConfig(
        minimum_validator_experience=3,
        required_specializations=["clinical_psychology"],
    ))
    framework.validate_validator_credentials(make_record("c1", 5.0))

    with pytest.raises(InvalidCredentialsError, match="minimum experience"):
        framework.validate_validator_credentials(make_record("c1", 5.0, years=1))
    with pytest.raises(InvalidCredentialsError, match="specialization"):
        framework.validate_validator_credentials(make_record("c1", 5.0, specializations=("linguistics",)))


# -------------------- CLI -------------------- #
def test_run_payload():
    scored, records = make_batch([2.0, 4.0, 5.0, 7.0, 9.0], [2.0, 4.0, 5.0, 7.0, 9.0])
    payload = {"data": {
        "scored": [s.model_dump(mode="json") for s in scored],
        "human_records": [r.model_dump(mode="json") for r in records],
    }}
    res = run(payload, {"explain_verbose": True, "session_id": "s2"})
    assert res["ok"] is True
    assert res["checks"]["CHK-VALID-01"]["pass"] is True
    assert res["checks"]["CHK-VALID-02"]["pass"] is True
    assert res["emits"]["validation"]["session_id"] == "s2"
    assert res["rationales"][0]["detail"]["concordance"] == "high"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
