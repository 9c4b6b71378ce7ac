"""
Validation Schema
Mood Scoring Engine - Human validation records and agreement reports

HumanValidationRecord is external input; ValidationResult is a report object
computed from matched (conversation, human record) pairs.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Dict, List, Optional, Tuple
from datetime import datetime, timezone


Level = Literal["high", "moderate", "low"]


class ValidatorCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    years_experience: float = Field(default=0.0, ge=0.0)
    specializations: List[str] = Field(default_factory=list)


class HumanValidationRecord(BaseModel):
    """One expert rating of one conversation."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str
    validator_id: str
    validator_credentials: ValidatorCredentials = Field(default_factory=ValidatorCredentials)
    human_mood_score: float = Field(..., ge=0.0, le=10.0)
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    rationale: str = Field(default="")
    emotional_factors: List[str] = Field(
        default_factory=list,
        description="Free-text factor tags, e.g. 'emotional_minimization', 'sarcasm'"
    )


class StatisticalSignificance(BaseModel):
    model_config = ConfigDict(frozen=True)

    p_value: float
    is_significant: bool
    confidence_interval: Tuple[float, float]


class ValidationMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    pearson_correlation: float = Field(..., ge=-1.0, le=1.0)
    spearman_correlation: float = Field(..., ge=-1.0, le=1.0)
    mean_absolute_error: float = Field(..., ge=0.0)
    root_mean_square_error: float = Field(..., ge=0.0)
    agreement_percentage: float = Field(..., ge=0.0, le=100.0)
    concordance_level: Level
    statistical_significance: StatisticalSignificance
    sample_size: int = Field(..., ge=0)


class BiasPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    magnitude: float = Field(..., ge=0.0)
    consistency: float = Field(..., ge=0.0, le=1.0)
    direction: Literal["positive", "negative", "mixed"]


class DiscrepancyDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    small: int = 0
    medium: int = 0
    large: int = 0


SystematicBias = Literal[
    "no_systematic_bias", "algorithmic_over_estimation", "algorithmic_under_estimation"
]


class DiscrepancyAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    systematic_bias: SystematicBias
    bias_pattern: BiasPattern
    common_discrepancy_types: List[str] = Field(default_factory=list)
    problematic_contexts: List[str] = Field(default_factory=list)
    improvement_recommendations: List[str] = Field(default_factory=list)
    discrepancy_distribution: DiscrepancyDistribution


class IndividualValidationAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    conversation_id: str
    algorithmic_score: float
    human_score: float
    absolute_error: float = Field(..., ge=0.0)
    discrepancy_type: Literal[
        "close_agreement", "algorithmic_over_estimation", "algorithmic_under_estimation"
    ]
    discrepancy_factors: List[str] = Field(default_factory=list)
    human_rationale: str = ""
    algorithmic_confidence: float = Field(..., ge=0.0, le=1.0)
    human_confidence: float = Field(..., ge=0.0, le=1.0)
    recommended_improvement: List[str] = Field(default_factory=list)


class OutlierValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    validator_id: str
    conversation_id: str
    deviation_magnitude: float
    flag_reason: str = "significant_deviation"


class ValidatorMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_correlation_with_algorithm: float
    average_correlation_with_peers: float
    consistency_score: float = Field(..., ge=0.0, le=1.0)
    validation_count: int = Field(..., ge=0)


class ValidatorConsistency(BaseModel):
    model_config = ConfigDict(frozen=True)

    inter_rater_reliability: float = Field(..., ge=0.0, le=1.0)
    average_variance: float = Field(..., ge=0.0)
    consensus_level: Level
    outlier_validations: List[OutlierValidation] = Field(default_factory=list)
    validator_metrics: Dict[str, ValidatorMetrics] = Field(default_factory=dict)


class BiasType(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    severity: Literal["high", "medium", "low"]
    description: str
    affected_samples: int = Field(..., ge=0)
    correction_recommendation: str


class StatisticalEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_statistic: float
    p_value: float
    effect_size: float


class BiasAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    bias_detected: bool
    bias_types: List[BiasType] = Field(default_factory=list)
    detection_confidence: float = Field(..., ge=0.0, le=1.0)
    statistical_evidence: StatisticalEvidence


class ValidationRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority: Literal["high", "medium", "low"]
    category: str
    description: str
    expected_impact: str


class SessionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    validation_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_conversations: int = 0
    total_validators: int = 0
    average_validator_experience: float = 0.0


class ValidationResult(BaseModel):
    """Algorithm-vs-human agreement report for one validation session."""

    model_config = ConfigDict(frozen=True)

    overall_metrics: ValidationMetrics
    discrepancy_analysis: DiscrepancyAnalysis
    individual_analyses: List[IndividualValidationAnalysis] = Field(default_factory=list)
    validator_consistency: ValidatorConsistency
    bias_analysis: BiasAnalysis
    recommendations: List[ValidationRecommendation] = Field(default_factory=list)
    session_metadata: SessionMetadata = Field(default_factory=SessionMetadata)
    session_id: Optional[str] = None
