#!/usr/bin/env python3
"""
CalibrationManager - tunes scoring parameters from validation results
and tracks whether each change actually helped.

- generate_adjustments: weight / threshold / bias-correction proposals
- apply_adjustments: published through ParameterStore, checked one by one
- validate_effectiveness: keep or revert against a follow-up validation
- calculate_statistics / detect_drift: score drift between runs
"""
import sys
import uuid
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from schemas.calibration import (
    CalibrationAdjustment,
    EffectivenessResults,
    ParameterAdjustment,
    PerformanceSummary,
    PredictedImprovements,
    TrendPoint,
)
from schemas.validation import StatisticalSignificance, ValidationMetrics, ValidationResult
from mood_engine.analyzer.main import BIAS_TARGETS
from mood_engine.cli import base_parser, run_agent
from mood_engine.config import CFG, WEIGHT_BOUNDS, THRESHOLD_BOUNDS, CORRECTION_BOUNDS, ParameterStore
from mood_engine.errors import CalibrationError
from mood_engine.logs import get_logger
from mood_engine.validation.main import ValidationFramework, parse_batch

logger = get_logger(__name__)

AGENT_VERSION = "1.0.0"
AGENT_ID = "mood_calibration"

WEIGHT_STEP = 0.05
WEIGHT_BIAS_MAGNITUDE = 1.0
THRESHOLD_STEP = 0.05
OVERCONFIDENT_SCORE = 0.8
OVERCONFIDENT_ERROR = 1.5
OVERCONFIDENT_SHARE = 0.3
BIAS_MIN_SAMPLES = 3
SEVERITY_MULTIPLIER = {"high": 1.2, "medium": 1.1, "low": 1.05}


class CalibrationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_calibrations_per_session: int = Field(default=CFG["MAX_CALIBRATIONS_PER_SESSION"], ge=1)
    min_validation_sample_size: int = Field(default=CFG["MIN_VALIDATION_SAMPLE_SIZE"], ge=1)
    calibration_confidence_threshold: float = Field(
        default=CFG["CALIBRATION_CONFIDENCE_THRESHOLD"], ge=0.0, le=1.0
    )
    auto_apply_calibrations: bool = CFG["AUTO_APPLY_CALIBRATIONS"]
    min_improvement_threshold: float = Field(default=CFG["MIN_IMPROVEMENT_THRESHOLD"], ge=0.0)


def default_baseline_metrics() -> ValidationMetrics:
    """Reference point used until a real baseline validation is supplied."""
    return ValidationMetrics(
        pearson_correlation=0.6,
        spearman_correlation=0.6,
        mean_absolute_error=1.5,
        root_mean_square_error=2.0,
        agreement_percentage=60.0,
        concordance_level="moderate",
        statistical_significance=StatisticalSignificance(
            p_value=0.1, is_significant=False, confidence_interval=(0.4, 0.8)
        ),
        sample_size=0,
    )


def bias_level(metrics: ValidationMetrics) -> float:
    return 1 - metrics.pearson_correlation * (1 - metrics.mean_absolute_error / 10)


def correction_factor(
    severity: str, affected_samples: int, systematic_bias: str = "algorithmic_over_estimation"
) -> float:
    """
    Sub-score divisor for a bias type.

    Over-estimation gets a factor above 1. Under-estimation gets its
    reciprocal, so the corrected sub-score moves up toward the raters.
    """
    multiplier = SEVERITY_MULTIPLIER.get(severity, 1.05)
    factor = multiplier * min(1.3, 1 + affected_samples * 0.05)
    if systematic_bias == "algorithmic_under_estimation":
        return 1 / factor
    return factor


def _calibration_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# -------------------- Drift -------------------- #
def calculate_statistics(values: List[float]) -> Dict[str, float]:
    """Mean, std, min, max and median, rounded to 3 decimals."""
    if not values:
        return {"mean": 0.0, "std": 0.0, "min": 0.0, "max": 0.0, "median": 0.0}

    sorted_vals = sorted(values)
    n = len(values)
    mean = sum(values) / n

    variance = sum((x - mean) ** 2 for x in values) / n
    std = variance ** 0.5

    median = sorted_vals[n // 2] if n % 2 == 1 else (sorted_vals[n // 2 - 1] + sorted_vals[n // 2]) / 2

    return {
        "mean": round(mean, 3),
        "std": round(std, 3),
        "min": round(min(values), 3),
        "max": round(max(values), 3),
        "median": round(median, 3),
    }


def detect_drift(
    current_values: List[float],
    historical_values: List[float],
    window_size: int = 20,
    threshold: float = 0.5,
) -> Dict[str, Any]:
    """Compare the current mean against the last `window_size` historical values."""
    if not current_values or not historical_values:
        return {
            "drift_detected": False,
            "drift_magnitude": 0.0,
            "drift_direction": "none",
            "confidence": 0.0,
        }

    current_stats = calculate_statistics(current_values)
    historical_stats = calculate_statistics(historical_values[-window_size:])

    mean_diff = abs(current_stats["mean"] - historical_stats["mean"])
    drift_detected = mean_diff > threshold

    drift_direction = "none"
    if drift_detected:
        drift_direction = "up" if current_stats["mean"] > historical_stats["mean"] else "down"

    confidence = min(1.0, mean_diff / threshold) if threshold > 0 else 1.0
    if len(current_values) < 5:
        confidence *= 0.7

    return {
        "drift_detected": drift_detected,
        "drift_magnitude": round(mean_diff, 3),
        "drift_direction": drift_direction,
        "confidence": round(confidence, 2),
        "current_stats": current_stats,
        "historical_stats": historical_stats,
    }


# -------------------- Manager -------------------- #
class CalibrationManager:
    """Owns the adjustment lifecycle: pending -> applied|rejected -> validated|rejected."""

    def __init__(
        self,
        parameter_store: ParameterStore,
        config: Optional[CalibrationConfig] = None,
        baseline_metrics: Optional[ValidationMetrics] = None,
    ):
        self.store = parameter_store
        self.config = config or CalibrationConfig()
        self.baseline_metrics = baseline_metrics or default_baseline_metrics()
        self.current_metrics = self.baseline_metrics
        self.active: List[CalibrationAdjustment] = []
        self.history: List[CalibrationAdjustment] = []
        self.trend: List[TrendPoint] = []

    # ---- proposals ----

    def generate_adjustments(
        self, result: ValidationResult, session_id: Optional[str] = None
    ) -> List[CalibrationAdjustment]:
        session_id = session_id or result.session_id or _calibration_id("session")
        sample_size = result.overall_metrics.sample_size
        if sample_size < self.config.min_validation_sample_size:
            logger.warning(
                "Insufficient validation sample size for calibration",
                extra={"sample_size": sample_size, "required": self.config.min_validation_sample_size},
            )
            return []

        adjustments = (
            self._weight_adjustments(result, session_id)
            + self._threshold_adjustments(result, session_id)
            + self._bias_corrections(result, session_id)
        )
        limited = adjustments[: self.config.max_calibrations_per_session]
        logger.debug(
            "Generated calibration adjustments",
            extra={"session_id": session_id, "generated": len(adjustments), "kept": len(limited)},
        )
        return limited

    def _weight_adjustments(self, result: ValidationResult, session_id: str) -> List[CalibrationAdjustment]:
        discrepancy = result.discrepancy_analysis
        magnitude = discrepancy.bias_pattern.magnitude
        if discrepancy.systematic_bias == "no_systematic_bias" or magnitude <= WEIGHT_BIAS_MAGNITUDE:
            return []

        params = self.store.snapshot()
        current = params.value_of("sentiment_weight")
        step = -WEIGHT_STEP if discrepancy.systematic_bias == "algorithmic_over_estimation" else WEIGHT_STEP
        lo, hi = WEIGHT_BOUNDS
        recommended = max(lo, min(hi, current + step))

        return [CalibrationAdjustment(
            calibration_id=_calibration_id("weight-adj"),
            source_validation_id=session_id,
            adjustment_type="weight_adjustment",
            target_component="sentiment_analysis",
            parameter_adjustments=[ParameterAdjustment(
                parameter_name="sentiment_weight",
                current_value=current,
                recommended_value=recommended,
                reason=f"Address {discrepancy.systematic_bias} with magnitude {magnitude:.2f}",
                expected_impact=f"Reduce systematic bias by {abs(step * 10):.1f}%",
            )],
            predicted_improvements=PredictedImprovements(
                correlation_improvement=0.05,
                bias_reduction=abs(step),
                accuracy_improvement=magnitude * 0.3,
            ),
        )]

    def _threshold_adjustments(self, result: ValidationResult, session_id: str) -> List[CalibrationAdjustment]:
        analyses = result.individual_analyses
        overconfident = [
            a for a in analyses
            if a.algorithmic_confidence > OVERCONFIDENT_SCORE and a.absolute_error > OVERCONFIDENT_ERROR
        ]
        if not analyses or len(overconfident) <= len(analyses) * OVERCONFIDENT_SHARE:
            return []

        current = self.store.snapshot().value_of("confidence_threshold_high")
        recommended = min(THRESHOLD_BOUNDS[1], current + THRESHOLD_STEP)
        return [CalibrationAdjustment(
            calibration_id=_calibration_id("threshold-adj"),
            source_validation_id=session_id,
            adjustment_type="threshold_adjustment",
            target_component="confidence_calculator",
            parameter_adjustments=[ParameterAdjustment(
                parameter_name="confidence_threshold_high",
                current_value=current,
                recommended_value=recommended,
                reason=f"Reduce overconfidence: {len(overconfident)} cases with high confidence but high error",
                expected_impact="Improve confidence calibration accuracy by 10-15%",
            )],
            predicted_improvements=PredictedImprovements(
                correlation_improvement=0.02, bias_reduction=0.1, accuracy_improvement=0.2
            ),
        )]

    def _bias_corrections(self, result: ValidationResult, session_id: str) -> List[CalibrationAdjustment]:
        params = self.store.snapshot()
        direction = result.discrepancy_analysis.systematic_bias
        out: List[CalibrationAdjustment] = []
        for bt in result.bias_analysis.bias_types:
            if bt.severity != "high" or bt.affected_samples < BIAS_MIN_SAMPLES:
                continue
            name = f"{bt.type}_correction_factor"
            lo, hi = CORRECTION_BOUNDS
            out.append(CalibrationAdjustment(
                calibration_id=_calibration_id("bias-correction"),
                source_validation_id=session_id,
                adjustment_type="bias_correction",
                target_component=BIAS_TARGETS.get(bt.type, "sentiment_analysis"),
                parameter_adjustments=[ParameterAdjustment(
                    parameter_name=name,
                    current_value=params.value_of(name),
                    recommended_value=max(lo, min(hi, correction_factor(bt.severity, bt.affected_samples, direction))),
                    reason=f"{bt.description} ({direction.replace('_', ' ')})",
                    expected_impact=bt.correction_recommendation,
                )],
                predicted_improvements=PredictedImprovements(
                    correlation_improvement=0.08, bias_reduction=0.3, accuracy_improvement=0.4
                ),
            ))
        return out

    # ---- lifecycle ----

    def apply_adjustments(
        self, adjustments: List[CalibrationAdjustment]
    ) -> Tuple[List[CalibrationAdjustment], List[CalibrationAdjustment]]:
        """
        Apply each adjustment on its own.

        An adjustment whose parameters fail validation is rejected and leaves the
        store at the version it found; its earlier parameters are rolled back.
        """
        applied: List[CalibrationAdjustment] = []
        rejected: List[CalibrationAdjustment] = []

        for adjustment in adjustments:
            start_version = self.store.version
            try:
                for p in adjustment.parameter_adjustments:
                    self.store.apply(p.parameter_name, p.recommended_value)
            except CalibrationError as e:
                if self.store.version != start_version:
                    self.store.revert(start_version)
                adjustment.status = "rejected"
                rejected.append(adjustment)
                logger.warning(
                    "Rejected calibration adjustment",
                    extra={"calibration_id": adjustment.calibration_id, "error": str(e)},
                )
                continue

            adjustment.status = "applied"
            adjustment.applied_parameters_version = self.store.version
            applied.append(adjustment)
            self.active.append(adjustment)
            logger.info(
                "Applied calibration adjustment",
                extra={
                    "calibration_id": adjustment.calibration_id,
                    "adjustment_type": adjustment.adjustment_type,
                    "target_component": adjustment.target_component,
                    "version": self.store.version,
                },
            )

        return applied, rejected

    def validate_effectiveness(
        self, adjustment: CalibrationAdjustment, after_result: ValidationResult
    ) -> CalibrationAdjustment:
        before = self.current_metrics
        after = after_result.overall_metrics

        correlation_gain = after.pearson_correlation - before.pearson_correlation
        accuracy_gain = before.mean_absolute_error - after.mean_absolute_error
        adjustment.validation_results = EffectivenessResults(
            actual_correlation_improvement=correlation_gain,
            actual_bias_reduction=max(0.0, bias_level(before) - bias_level(after)),
            actual_accuracy_improvement=accuracy_gain,
        )

        threshold = self.config.min_improvement_threshold
        successful = correlation_gain >= -threshold and accuracy_gain >= threshold

        if successful:
            adjustment.status = "validated"
            self.current_metrics = after
            self.trend.append(TrendPoint(
                correlation_score=after.pearson_correlation,
                bias_level=1 - after.pearson_correlation,
                accuracy_score=1 - after.mean_absolute_error / 10,
            ))
            logger.info(
                "Calibration validated",
                extra={
                    "calibration_id": adjustment.calibration_id,
                    "correlation_improvement": round(correlation_gain, 3),
                    "accuracy_improvement": round(accuracy_gain, 3),
                },
            )
        else:
            adjustment.status = "rejected"
            if adjustment.applied_parameters_version is not None:
                self._revert(adjustment)
            logger.warning(
                "Calibration rejected after validation",
                extra={
                    "calibration_id": adjustment.calibration_id,
                    "correlation_improvement": round(correlation_gain, 3),
                    "accuracy_improvement": round(accuracy_gain, 3),
                },
            )

        self.history.append(adjustment)
        self.active = [a for a in self.active if a.calibration_id != adjustment.calibration_id]
        return adjustment

    def _revert(self, adjustment: CalibrationAdjustment) -> None:
        """Restore each parameter's pre-adjustment value; later unrelated changes stay."""
        for p in reversed(adjustment.parameter_adjustments):
            self.store.apply(p.parameter_name, p.current_value)
        adjustment.reverted_to_version = self.store.version
        logger.info(
            "Reverted calibration adjustment",
            extra={"calibration_id": adjustment.calibration_id, "version": self.store.version},
        )

    def performance_summary(self) -> PerformanceSummary:
        return PerformanceSummary(
            total_calibrations=len(self.history),
            successful_calibrations=sum(1 for c in self.history if c.status == "validated"),
            overall_correlation_improvement=(
                self.current_metrics.pearson_correlation - self.baseline_metrics.pearson_correlation
            ),
            overall_accuracy_improvement=(
                self.baseline_metrics.mean_absolute_error - self.current_metrics.mean_absolute_error
            ),
            improvement_trend=list(self.trend),
        )


# -------------------- Core -------------------- #
def _numbers(values: List[Union[int, float, Any]]) -> List[float]:
    return [float(v) for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]


def run(payload: Dict[str, Any], meta: Dict[str, Any]) -> Dict[str, Any]:
    data = payload.get("data", {}) or {}
    scored, records = parse_batch(data)

    window_size = meta.get("window_size", 20)
    threshold = meta.get("threshold", 0.5)

    result = ValidationFramework().validate_mood_score(scored, records, session_id=meta.get("session_id"))
    store = ParameterStore()
    manager = CalibrationManager(store)
    adjustments = manager.generate_adjustments(result, meta.get("session_id"))

    applied: List[CalibrationAdjustment] = []
    rejected: List[CalibrationAdjustment] = []
    if manager.config.auto_apply_calibrations or meta.get("apply"):
        applied, rejected = manager.apply_adjustments(adjustments)

    current_values = [s.score for s in scored]
    historical_values = _numbers(data.get("historical_scores", []) or [])
    drift = detect_drift(current_values, historical_values, window_size, threshold)

    recommendations = [r.description for r in result.recommendations]
    if drift["drift_detected"]:
        recommendations.append(
            f"Score drift detected ({drift['drift_direction']}): review parameters against recent validations."
        )

    emits = {
        "adjustments": [a.model_dump(mode="json") for a in adjustments],
        "applied": [a.calibration_id for a in applied],
        "rejected": [a.calibration_id for a in rejected],
        "parameters": store.snapshot().model_dump(mode="json"),
        "drift_detection": drift,
        "recommendations": recommendations,
        "calibration_status": "drift_detected" if drift["drift_detected"] else "ok",
    }
    checks = {
        "CHK-CALIBRATION-01": {
            "pass": not drift["drift_detected"],
            "reason": "No drift detected" if not drift["drift_detected"] else "Drift detected",
        },
        "CHK-CALIBRATION-02": {
            "pass": result.overall_metrics.sample_size >= manager.config.min_validation_sample_size,
            "reason": f"{result.overall_metrics.sample_size} matched pairs analysed",
        },
    }
    res = {"ok": True, "emits": emits, "checks": checks}
    if meta.get("explain_verbose"):
        res["rationales"] = [{
            "cue": "calibration",
            "detail": {
                "drift_detected": drift["drift_detected"],
                "drift_magnitude": drift["drift_magnitude"],
                "adjustments": [a.adjustment_type for a in adjustments],
            },
        }]
    return res


# -------------------- Main -------------------- #
def main() -> None:
    parser = base_parser("MoodCalibration - parameter adjustments and score drift from validation data.")
    parser.add_argument("--window-size", type=int, default=None, help="Historical window for drift detection")
    parser.add_argument("--threshold", type=float, default=None, help="Mean shift that counts as drift")
    parser.add_argument("--session-id", type=str, default=None)
    parser.add_argument("--apply", action="store_true", help="Apply generated adjustments")
    run_agent(AGENT_ID, AGENT_VERSION, parser, run, sys.argv[1:])


if __name__ == "__main__":
    main()
