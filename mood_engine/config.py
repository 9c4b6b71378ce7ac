#!/usr/bin/env python3
"""
Mood Engine configuration.

Two layers:
- CFG: process-wide thresholds with ENV overrides (MOOD_*), read once at import.
- ScoringParameters: the versioned parameter set the analyzer scores with and the
  calibration manager tunes. ParameterStore holds the live version and publishes
  a new immutable version for every change.
"""
import os
import threading
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mood_engine.errors import CalibrationError
from mood_engine.logs import get_logger

logger = get_logger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# --- Configuration (ENV overrides) ---

CFG = {
    # Baseline manager
    "MIN_DATA_POINTS": int(os.getenv("MOOD_MIN_DATA_POINTS", "5")),
    "BASELINE_UPDATE_THRESHOLD": float(os.getenv("MOOD_BASELINE_UPDATE_THRESHOLD", "0.3")),
    "HISTORICAL_DEPTH": int(os.getenv("MOOD_HISTORICAL_DEPTH", "30")),

    # Delta detector
    "DELTA_MIN_MAGNITUDE": float(os.getenv("MOOD_DELTA_MIN_MAGNITUDE", "1.5")),
    "DELTA_SIGNIFICANT_MAGNITUDE": float(os.getenv("MOOD_DELTA_SIGNIFICANT_MAGNITUDE", "2.0")),
    "DELTA_TIME_WINDOW_MIN": float(os.getenv("MOOD_DELTA_TIME_WINDOW_MIN", "60")),
    "DELTA_CONFIDENCE_THRESHOLD": float(os.getenv("MOOD_DELTA_CONFIDENCE_THRESHOLD", "0.7")),
    "CELEBRATION_THRESHOLD": float(os.getenv("MOOD_CELEBRATION_THRESHOLD", "3.0")),
    "DECLINE_THRESHOLD": float(os.getenv("MOOD_DECLINE_THRESHOLD", "2.5")),
    "PLATEAU_VARIANCE_THRESHOLD": float(os.getenv("MOOD_PLATEAU_VARIANCE_THRESHOLD", "0.5")),
    "TURNING_POINT_MERGE_MIN": float(os.getenv("MOOD_TURNING_POINT_MERGE_MIN", "30")),
    "SUDDEN_VELOCITY_PER_HOUR": float(os.getenv("MOOD_SUDDEN_VELOCITY_PER_HOUR", "20")),

    # Pattern recognizer
    "PATTERN_MIN_EVIDENCE": int(os.getenv("MOOD_PATTERN_MIN_EVIDENCE", "2")),
    "PATTERN_MIN_CONFIDENCE": float(os.getenv("MOOD_PATTERN_MIN_CONFIDENCE", "0.6")),

    # Validation framework
    "CORRELATION_THRESHOLD": float(os.getenv("MOOD_CORRELATION_THRESHOLD", "0.8")),
    "SIGNIFICANCE_LEVEL": float(os.getenv("MOOD_SIGNIFICANCE_LEVEL", "0.05")),
    "BIAS_SENSITIVITY": float(os.getenv("MOOD_BIAS_SENSITIVITY", "0.15")),
    "MIN_VALIDATOR_EXPERIENCE": float(os.getenv("MOOD_MIN_VALIDATOR_EXPERIENCE", "3")),
    "REQUIRED_VALIDATOR_COUNT": int(os.getenv("MOOD_REQUIRED_VALIDATOR_COUNT", "1")),
    "REQUIRED_SPECIALIZATIONS": [
        s.strip() for s in os.getenv("MOOD_REQUIRED_SPECIALIZATIONS", "").split(",") if s.strip()
    ],

    # Calibration manager
    "MAX_CALIBRATIONS_PER_SESSION": int(os.getenv("MOOD_MAX_CALIBRATIONS_PER_SESSION", "3")),
    "MIN_VALIDATION_SAMPLE_SIZE": int(os.getenv("MOOD_MIN_VALIDATION_SAMPLE_SIZE", "5")),
    "CALIBRATION_CONFIDENCE_THRESHOLD": float(os.getenv("MOOD_CALIBRATION_CONFIDENCE_THRESHOLD", "0.7")),
    "AUTO_APPLY_CALIBRATIONS": _env_bool("MOOD_AUTO_APPLY_CALIBRATIONS", "false"),
    "MIN_IMPROVEMENT_THRESHOLD": float(os.getenv("MOOD_MIN_IMPROVEMENT_THRESHOLD", "0.05")),
}


# --- Scoring parameters ---

DEFAULT_WEIGHTS: Dict[str, float] = {
    "sentiment_analysis": 0.35,
    "psychological_indicators": 0.25,
    "relationship_context": 0.20,
    "conversational_flow": 0.15,
    "historical_baseline": 0.05,
}

# (min magnitude of avg positive/negative intensity, multiplier), checked top-down
DEFAULT_BOOST_TABLE: List[Tuple[float, float]] = [
    (0.8, 1.6),
    (0.6, 1.4),
    (0.4, 1.25),
    (0.2, 1.1),
    (0.0, 1.0),
]

WEIGHT_BOUNDS = (0.1, 0.6)
THRESHOLD_BOUNDS = (0.5, 0.99)
CORRECTION_BOUNDS = (0.5, 2.0)
WEIGHT_PARAMS = {f"{k.split('_')[0]}_weight": k for k in DEFAULT_WEIGHTS}


class ScoringParameters(BaseModel):
    """Versioned, immutable parameter set for the analyzer."""

    model_config = ConfigDict(frozen=True)

    version: int = Field(default=1, ge=1)
    weights: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    sentiment_boost_table: List[Tuple[float, float]] = Field(
        default_factory=lambda: list(DEFAULT_BOOST_TABLE)
    )
    sentiment_evidence_threshold: float = Field(default=0.05, ge=0.0, le=1.0)
    ambiguity_floor: float = Field(default=4.1, ge=0.0, le=10.0)
    contradiction_score_penalty: float = Field(default=0.05, ge=0.0, le=1.0)
    contradiction_confidence_penalty: float = Field(default=0.25, ge=0.0, le=1.0)
    psychological_contradiction_penalty: float = Field(default=1.5, ge=0.0, le=5.0)
    evidence_ceiling: int = Field(default=15, ge=1)
    confidence_high_band: float = Field(default=0.8, ge=0.0, le=1.0)
    confidence_threshold_high: float = Field(
        default=0.8, ge=0.0, le=1.0,
        description="Minimum factor agreement required to report confidence above the high band"
    )
    correction_factors: Dict[str, float] = Field(
        default_factory=dict,
        description="Bias type -> divisor for the target sub-score when that bias cue fires; "
                    ">1 lowers an over-estimate, <1 raises an under-estimate"
    )

    @model_validator(mode="after")
    def _check_weights(self) -> "ScoringParameters":
        missing = set(DEFAULT_WEIGHTS) - set(self.weights)
        if missing:
            raise ValueError(f"missing factor weights: {sorted(missing)}")
        total = sum(self.weights[k] for k in DEFAULT_WEIGHTS)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"factor weights must sum to 1.0, got {total:.6f}")
        return self

    def boost_for(self, magnitude: float) -> float:
        for threshold, multiplier in self.sentiment_boost_table:
            if magnitude >= threshold:
                return multiplier
        return 1.0

    def value_of(self, name: str) -> float:
        """Current value of a tunable parameter, by calibration name."""
        if name in WEIGHT_PARAMS:
            return self.weights[WEIGHT_PARAMS[name]]
        if name == "confidence_threshold_high":
            return self.confidence_threshold_high
        if name.endswith("_correction_factor"):
            return self.correction_factors.get(name[: -len("_correction_factor")], 1.0)
        raise CalibrationError(f"Unknown parameter '{name}'")

    @classmethod
    def from_env(cls) -> "ScoringParameters":
        weights = dict(DEFAULT_WEIGHTS)
        for factor in DEFAULT_WEIGHTS:
            raw = os.getenv(f"MOOD_WEIGHT_{factor.upper()}")
            if raw:
                weights[factor] = float(raw)
        return cls(
            weights=weights,
            ambiguity_floor=float(os.getenv("MOOD_AMBIGUITY_FLOOR", "4.1")),
            evidence_ceiling=int(os.getenv("MOOD_EVIDENCE_CEILING", "15")),
        )


def rebalance_weights(weights: Dict[str, float], factor: str, value: float) -> Dict[str, float]:
    """Set one weight and rescale the others so the five still sum to 1.0."""
    others = {k: v for k, v in weights.items() if k != factor}
    rest = sum(others.values())
    if rest <= 0:
        raise CalibrationError("Cannot rebalance weights: remaining weights are zero")
    scale = (1.0 - value) / rest
    out = {k: v * scale for k, v in others.items()}
    out[factor] = value
    # absorb float drift into the largest other weight
    drift = 1.0 - sum(out.values())
    biggest = max(others, key=lambda k: out[k])
    out[biggest] += drift
    return {k: out[k] for k in weights}


class ParameterStore:
    """
    Live ScoringParameters holder.

    Readers take `snapshot()` (an immutable version) without locking. Writers go
    through `apply()`, which validates the change in isolation and publishes a
    new version; nothing is half-applied on failure.
    """

    def __init__(self, parameters: Optional[ScoringParameters] = None):
        self._lock = threading.RLock()
        self._current = parameters or ScoringParameters()
        self._history: List[ScoringParameters] = [self._current]

    def snapshot(self) -> ScoringParameters:
        return self._current

    @property
    def version(self) -> int:
        return self._current.version

    @property
    def history(self) -> List[ScoringParameters]:
        return list(self._history)

    def get(self, version: int) -> ScoringParameters:
        for p in self._history:
            if p.version == version:
                return p
        raise KeyError(version)

    def revert(self, version: int) -> ScoringParameters:
        """Republish the values of an earlier version under a new version number."""
        with self._lock:
            old = self.get(version)
            new = old.model_copy(update={"version": self._current.version + 1})
            self._current = new
            self._history.append(new)
            logger.info("Scoring parameters reverted", extra={"to_version": version, "version": new.version})
            return new

    def apply(self, name: str, value: float) -> ScoringParameters:
        """
        Set a tunable parameter and publish a new version.

        Args:
            name: calibration name, e.g. 'sentiment_weight', 'confidence_threshold_high',
                  'emotional_minimization_correction_factor'
            value: new value (bounds-checked)

        Returns:
            The newly published ScoringParameters.

        Raises:
            CalibrationError: unknown parameter, out-of-bounds value, or a
                change that would break the weight invariant.
        """
        with self._lock:
            cur = self._current
            update: Dict[str, object] = {}
            if name in WEIGHT_PARAMS:
                lo, hi = WEIGHT_BOUNDS
                if not lo <= value <= hi:
                    raise CalibrationError(f"{name}={value} outside [{lo}, {hi}]")
                update["weights"] = rebalance_weights(cur.weights, WEIGHT_PARAMS[name], value)
            elif name == "confidence_threshold_high":
                lo, hi = THRESHOLD_BOUNDS
                if not lo <= value <= hi:
                    raise CalibrationError(f"{name}={value} outside [{lo}, {hi}]")
                update["confidence_threshold_high"] = value
            elif name.endswith("_correction_factor"):
                lo, hi = CORRECTION_BOUNDS
                if not lo <= value <= hi:
                    raise CalibrationError(f"{name}={value} outside [{lo}, {hi}]")
                factors = dict(cur.correction_factors)
                bias = name[: -len("_correction_factor")]
                if value == 1.0:
                    factors.pop(bias, None)
                else:
                    factors[bias] = value
                update["correction_factors"] = factors
            else:
                raise CalibrationError(f"Unknown parameter '{name}'")

            update["version"] = cur.version + 1
            try:
                new = ScoringParameters(**{**cur.model_dump(), **update})
            except ValueError as e:
                raise CalibrationError(str(e)) from e

            self._current = new
            self._history.append(new)
            logger.info(
                "Scoring parameter updated",
                extra={"parameter": name, "value": value, "version": new.version},
            )
            return new
