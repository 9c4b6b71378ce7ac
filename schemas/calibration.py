"""
Calibration Schema
Mood Scoring Engine - Parameter adjustments proposed from validation results

Lifecycle: pending -> applied | rejected -> validated | rejected.
CalibrationAdjustment is the one mutable record in the data model; status
transitions are made by the calibration manager only.
"""
from pydantic import BaseModel, Field
from typing import Literal, List, Optional
from datetime import datetime, timezone


AdjustmentType = Literal["weight_adjustment", "threshold_adjustment", "bias_correction"]
AdjustmentStatus = Literal["pending", "applied", "rejected", "validated"]


class ParameterAdjustment(BaseModel):
    parameter_name: str
    current_value: float
    recommended_value: float
    reason: str = ""
    expected_impact: str = ""


class PredictedImprovements(BaseModel):
    correlation_improvement: float = 0.0
    bias_reduction: float = 0.0
    accuracy_improvement: float = 0.0


class EffectivenessResults(BaseModel):
    actual_correlation_improvement: float
    actual_bias_reduction: float
    actual_accuracy_improvement: float
    validation_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CalibrationAdjustment(BaseModel):
    calibration_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source_validation_id: str
    adjustment_type: AdjustmentType
    target_component: str
    parameter_adjustments: List[ParameterAdjustment] = Field(default_factory=list)
    predicted_improvements: PredictedImprovements = Field(default_factory=PredictedImprovements)
    status: AdjustmentStatus = "pending"
    validation_results: Optional[EffectivenessResults] = None
    applied_parameters_version: Optional[int] = Field(
        default=None, description="ScoringParameters version produced by applying this adjustment"
    )
    reverted_to_version: Optional[int] = None


class TrendPoint(BaseModel):
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_score: float
    bias_level: float
    accuracy_score: float


class PerformanceSummary(BaseModel):
    total_calibrations: int
    successful_calibrations: int
    overall_correlation_improvement: float
    overall_accuracy_improvement: float
    improvement_trend: List[TrendPoint] = Field(default_factory=list)
