"""
CalibrationManager

Adjustment generation from validation results, deterministic apply
through ParameterStore, effectiveness check with revert, drift stats.
"""
import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.calibration import CalibrationAdjustment, ParameterAdjustment
from mood_engine.calibration.main import (
    CalibrationConfig,
    CalibrationManager,
    calculate_statistics,
    correction_factor,
    detect_drift,
    run,
)
from mood_engine.analyzer.main import MoodAnalyzer
from mood_engine.config import ParameterStore
from mood_engine.validation.main import ValidationFramework
from tests._helpers.conversations import make_batch, make_conversation

MINIMIZING = ("It's just a bit stressful, nothing major",)
MIXED = make_conversation(["I'm so grateful and happy but also overwhelmed and anxious"])


def _validate(*batch):
    return ValidationFramework().validate_mood_score(*batch, session_id="sess")


@pytest.fixture
def biased_result():
    """Overconfident +4 over-estimation, minimization corroborated by raters."""
    return _validate(*make_batch(
        [7.0] * 5, [3.0] * 5, texts=MINIMIZING, factors=("emotional minimization",), confidence=0.9
    ))


@pytest.fixture
def store():
    return ParameterStore()


@pytest.fixture
def manager(store):
    return CalibrationManager(store)


def _adjustment(*params, calibration_id="manual"):
    return CalibrationAdjustment(
        calibration_id=calibration_id,
        source_validation_id="sess",
        adjustment_type="threshold_adjustment",
        target_component="confidence_calculator",
        parameter_adjustments=[
            ParameterAdjustment(parameter_name=name, current_value=cur, recommended_value=rec)
            for name, cur, rec in params
        ],
    )


# -------------------- Generation -------------------- #
def test_generates_weight_threshold_and_bias(manager, biased_result):
    adjustments = manager.generate_adjustments(biased_result)
    assert [a.adjustment_type for a in adjustments] == [
        "weight_adjustment",
        "threshold_adjustment",
        "bias_correction",
    ]
    assert all(a.status == "pending" for a in adjustments)
    assert all(a.source_validation_id == "sess" for a in adjustments)

    weight, threshold, bias = (a.parameter_adjustments[0] for a in adjustments)
    assert weight.parameter_name == "sentiment_weight"
    assert weight.current_value == pytest.approx(0.35)
    assert weight.recommended_value == pytest.approx(0.30)
    assert threshold.recommended_value == pytest.approx(0.85)
    assert bias.parameter_name == "emotional_minimization_correction_factor"
    assert bias.current_value == 1.0
    assert bias.recommended_value == pytest.approx(1.5)
    assert adjustments[2].target_component == "sentiment_analysis"


def test_under_estimation_correction_lifts_scores(manager, store):
    """Raters 3.5 above the algorithm: the correction factor drops below 1."""
    result = _validate(*make_batch([4.0] * 5, [7.5] * 5))
    bias = next(a for a in manager.generate_adjustments(result) if a.adjustment_type == "bias_correction")
    change = bias.parameter_adjustments[0]
    assert change.parameter_name == "emotional_complexity_correction_factor"
    assert change.recommended_value == pytest.approx(1 / 1.5)
    assert "under estimation" in change.reason

    plain = MoodAnalyzer().analyze(MIXED)
    manager.apply_adjustments([bias])
    corrected = MoodAnalyzer(parameters=store).analyze(MIXED)
    assert "mixed" in plain.descriptors
    assert corrected.factor("sentiment_analysis").score > plain.factor("sentiment_analysis").score
    assert corrected.score > plain.score


def test_adjustments_capped_per_session(store, biased_result):
    manager = CalibrationManager(store, CalibrationConfig(max_calibrations_per_session=1))
    adjustments = manager.generate_adjustments(biased_result)
    assert [a.adjustment_type for a in adjustments] == ["weight_adjustment"]


def test_small_sample_generates_nothing(manager):
    result = _validate(*make_batch([7.0] * 3, [3.0] * 3))
    assert manager.generate_adjustments(result) == []


def test_accurate_scores_generate_nothing(manager):
    result = _validate(*make_batch([2.0, 4.0, 5.0, 7.0, 9.0], [2.0, 4.0, 5.0, 7.0, 9.0]))
    assert manager.generate_adjustments(result) == []


# -------------------- Apply -------------------- #
def test_apply_publishes_versions(manager, store, biased_result):
    applied, rejected = manager.apply_adjustments(manager.generate_adjustments(biased_result))
    assert rejected == []
    assert [a.applied_parameters_version for a in applied] == [2, 3, 4]
    assert all(a.status == "applied" for a in applied)
    assert len(manager.active) == 3

    params = store.snapshot()
    assert params.version == 4
    assert params.weights["sentiment_analysis"] == pytest.approx(0.30)
    assert sum(params.weights.values()) == pytest.approx(1.0)
    assert params.confidence_threshold_high == pytest.approx(0.85)
    assert params.correction_factors == {"emotional_minimization": pytest.approx(1.5)}


def test_invalid_adjustment_rolls_back(manager, store):
    bad = _adjustment(
        ("sentiment_weight", 0.35, 0.4),
        ("confidence_threshold_high", 0.8, 1.5),
        calibration_id="bad",
    )
    good = _adjustment(("confidence_threshold_high", 0.8, 0.9), calibration_id="good")

    applied, rejected = manager.apply_adjustments([bad, good])
    assert [a.calibration_id for a in rejected] == ["bad"]
    assert bad.status == "rejected"
    assert bad.applied_parameters_version is None
    assert [a.calibration_id for a in applied] == ["good"]

    params = store.snapshot()
    assert params.weights["sentiment_analysis"] == 0.35
    assert params.confidence_threshold_high == 0.9
    assert params.version == 4


def test_unknown_parameter_rejected(manager, store):
    applied, rejected = manager.apply_adjustments([_adjustment(("no_such_knob", 0.0, 1.0))])
    assert applied == []
    assert len(rejected) == 1
    assert store.version == 1


# -------------------- Effectiveness -------------------- #
def test_effective_adjustment_is_validated(manager, biased_result):
    adjustment = manager.generate_adjustments(biased_result)[0]
    manager.apply_adjustments([adjustment])

    after = _validate(*make_batch([2.0, 4.0, 5.0, 7.0, 9.0], [2.0, 4.0, 5.0, 7.0, 9.0]))
    manager.validate_effectiveness(adjustment, after)

    assert adjustment.status == "validated"
    assert adjustment.validation_results.actual_accuracy_improvement == pytest.approx(1.5)
    assert manager.active == []

    summary = manager.performance_summary()
    assert summary.total_calibrations == 1
    assert summary.successful_calibrations == 1
    assert summary.overall_correlation_improvement == pytest.approx(0.4)
    assert summary.overall_accuracy_improvement == pytest.approx(1.5)
    assert len(summary.improvement_trend) == 1


def test_ineffective_adjustment_is_reverted(manager, store, biased_result):
    adjustment = manager.generate_adjustments(biased_result)[0]
    manager.apply_adjustments([adjustment])
    assert store.snapshot().weights["sentiment_analysis"] == pytest.approx(0.30)

    worse = _validate(*make_batch([4.0, 5.0, 6.0, 7.0, 8.0], [2.0, 3.0, 4.0, 5.0, 6.0]))
    manager.validate_effectiveness(adjustment, worse)

    assert adjustment.status == "rejected"
    assert adjustment.reverted_to_version == 3
    params = store.snapshot()
    assert params.weights["sentiment_analysis"] == pytest.approx(0.35)
    assert sum(params.weights.values()) == pytest.approx(1.0)

    summary = manager.performance_summary()
    assert summary.total_calibrations == 1
    assert summary.successful_calibrations == 0
    assert summary.improvement_trend == []


@pytest.mark.parametrize("severity,samples,expected", [
    ("high", 5, 1.5),
    ("low", 10, 1.05 * 1.3),
    ("unknown", 2, 1.05 * 1.1),
])
def test_correction_factor(severity, samples, expected):
    assert correction_factor(severity, samples) == pytest.approx(expected)
    assert correction_factor(severity, samples, "algorithmic_under_estimation") == pytest.approx(1 / expected)


# -------------------- Drift -------------------- #
def test_calculate_statistics():
    stats = calculate_statistics([1.0, 2.0, 3.0, 4.0])
    assert stats["mean"] == 2.5
    assert stats["median"] == 2.5
    assert stats["std"] == 1.118
    assert (stats["min"], stats["max"]) == (1.0, 4.0)
    assert calculate_statistics([])["mean"] == 0.0


def test_drift_up():
    drift = detect_drift([7.0] * 5, [5.0] * 10)
    assert drift["drift_detected"] is True
    assert drift["drift_direction"] == "up"
    assert drift["drift_magnitude"] == 2.0
    assert drift["confidence"] == 1.0


def test_small_shift_is_not_drift():
    drift = detect_drift([5.2] * 3, [5.0] * 5)
    assert drift["drift_detected"] is False
    assert drift["drift_direction"] == "none"
    assert drift["confidence"] == 0.28


def test_drift_uses_recent_window():
    drift = detect_drift([5.0] * 5, [9.0] * 5 + [5.0] * 20, window_size=20)
    assert drift["drift_detected"] is False


def test_drift_without_data():
    assert detect_drift([], [5.0])["drift_detected"] is False


# -------------------- CLI -------------------- #
def _payload(historical):
    scored, records = make_batch(
        [7.0] * 5, [3.0] * 5, texts=MINIMIZING, factors=("emotional minimization",), confidence=0.9
    )
    return {"data": {
        "scored": [s.model_dump(mode="json") for s in scored],
        "human_records": [r.model_dump(mode="json") for r in records],
        "historical_scores": historical,
    }}


def test_run_applies_and_flags_drift():
    res = run(_payload([3.0] * 10), {"apply": True, "session_id": "cal-1", "explain_verbose": True})
    emits = res["emits"]
    assert len(emits["applied"]) == 3
    assert emits["parameters"]["version"] == 4
    assert emits["calibration_status"] == "drift_detected"
    assert emits["recommendations"][-1].startswith("Score drift detected (up)")
    assert res["checks"]["CHK-CALIBRATION-01"]["pass"] is False
    assert res["checks"]["CHK-CALIBRATION-02"]["pass"] is True
    assert res["rationales"][0]["detail"]["adjustments"] == [
        "weight_adjustment", "threshold_adjustment", "bias_correction",
    ]


def test_run_without_apply_leaves_parameters():
    res = run(_payload([7.0] * 10), {})
    assert res["emits"]["applied"] == []
    assert res["emits"]["parameters"]["version"] == 1
    assert res["emits"]["calibration_status"] == "ok"
    assert res["checks"]["CHK-CALIBRATION-01"]["pass"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
