"""
Edge Case Schema
Mood Scoring Engine - Complexity, uncertainty and interpretation reports

Outputs of the edge-case handler. None of these change a mood score on their
own; they tell the caller when a score should not be taken at face value.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, List, Optional


Severity = Literal["low", "medium", "high"]


class ComplexityType(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal[
        "mixed_emotions",
        "contradictory_signals",
        "temporal_inconsistency",
        "contextual_ambiguity",
        "cultural_nuance",
    ]
    severity: Severity
    confidence: float = Field(..., ge=0.0, le=1.0)
    description: str
    evidence: List[str] = Field(default_factory=list)


class EmotionalComplexityAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    complexity_score: float = Field(..., ge=0.0, le=1.0)
    complexity_types: List[ComplexityType] = Field(default_factory=list)
    assessment_confidence: float = Field(..., ge=0.0, le=1.0)
    recommended_approach: Literal[
        "standard_analysis", "multi_interpretation", "uncertainty_flagging", "human_review"
    ]


class UncertaintySource(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal[
        "insufficient_context",
        "conflicting_signals",
        "cultural_ambiguity",
        "temporal_inconsistency",
        "extreme_emotional_state",
    ]
    impact: float = Field(..., ge=0.0, le=1.0)
    description: str
    mitigation_suggestions: List[str] = Field(default_factory=list)


class ConfidenceInterval(BaseModel):
    model_config = ConfigDict(frozen=True)

    low: float = Field(..., ge=0.0, le=10.0)
    high: float = Field(..., ge=0.0, le=10.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class UncertaintyQuantification(BaseModel):
    model_config = ConfigDict(frozen=True)

    uncertainty_level: float = Field(..., ge=0.0, le=1.0)
    uncertainty_sources: List[UncertaintySource] = Field(default_factory=list)
    confidence_interval: ConfidenceInterval
    reliability_score: float = Field(..., ge=0.0, le=1.0)


class InterpretationOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    mood_score: float = Field(..., ge=0.0, le=10.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    rationale: str
    supporting_evidence: List[str] = Field(default_factory=list)
    probability_weight: float = Field(default=1.0, ge=0.0, le=1.0)


class InterpretationConsensus(BaseModel):
    model_config = ConfigDict(frozen=True)

    agreement: float = Field(..., ge=0.0, le=1.0)
    divergence: float = Field(..., ge=0.0, le=1.0)
    recommended_action: Literal["use_primary", "weighted_average", "flag_for_review"]


class MultipleInterpretationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_interpretation: InterpretationOption
    alternative_interpretations: List[InterpretationOption] = Field(default_factory=list)
    interpretation_consensus: InterpretationConsensus


class EdgeCaseDetection(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_edge_case: bool
    edge_case_type: Optional[Literal[
        "extreme_emotion",
        "mixed_complex",
        "cultural_specific",
        "sarcasm_heavy",
        "ambiguous_context",
        "contradictory_signals",
    ]] = None
    severity: Optional[Literal["low", "medium", "high", "critical"]] = None
    detection_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    handling_strategy: Optional[Literal[
        "enhanced_analysis", "multi_interpretation", "uncertainty_flagging", "human_escalation"
    ]] = None
    additional_context_needed: List[str] = Field(default_factory=list)


class CulturalConsideration(BaseModel):
    model_config = ConfigDict(frozen=True)

    aspect: str
    impact: Severity
    description: str
    adjustment_recommendation: str


class CommunicationStyleIndicators(BaseModel):
    model_config = ConfigDict(frozen=True)

    directness: float = Field(..., ge=0.0, le=1.0)
    emotional_expressiveness: float = Field(..., ge=0.0, le=1.0)
    implicitness: float = Field(..., ge=0.0, le=1.0)
    formality_level: float = Field(..., ge=0.0, le=1.0)


class CulturalContextAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    cultural_context: Literal[
        "western_direct", "eastern_indirect", "high_context", "low_context", "mixed", "unknown"
    ]
    cultural_confidence: float = Field(..., ge=0.0, le=1.0)
    cultural_considerations: List[CulturalConsideration] = Field(default_factory=list)
    communication_style_indicators: CommunicationStyleIndicators


class AmbiguitySource(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["linguistic", "contextual", "emotional", "temporal", "relational"]
    severity: float = Field(..., ge=0.0, le=1.0)
    description: str
    clarification_needed: List[str] = Field(default_factory=list)


class AnalysisImpact(BaseModel):
    model_config = ConfigDict(frozen=True)

    confidence_reduction: float = Field(..., ge=0.0, le=1.0)
    score_uncertainty: float = Field(..., ge=0.0)
    recommended_action: str


class AmbiguityDetection(BaseModel):
    model_config = ConfigDict(frozen=True)

    ambiguity_level: float = Field(..., ge=0.0, le=1.0)
    ambiguity_sources: List[AmbiguitySource] = Field(default_factory=list)
    resolution_strategies: List[str] = Field(default_factory=list)
    analysis_impact: AnalysisImpact


class DetectedEmotion(BaseModel):
    model_config = ConfigDict(frozen=True)

    emotion: str
    intensity: float = Field(..., ge=0.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class MixedEmotionHandling(BaseModel):
    model_config = ConfigDict(frozen=True)

    detected_emotions: List[DetectedEmotion] = Field(default_factory=list)
    emotional_conflict: float = Field(..., ge=0.0, le=1.0)
    resolution_strategy: Literal[
        "primary_emotion_focus", "weighted_emotional_average", "contextual_priority_assessment"
    ]
    adjusted_mood_score: float = Field(..., ge=0.0, le=10.0)
    uncertainty: float = Field(..., ge=0.0, le=1.0)


class SarcasmAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    sarcasm_detected: bool
    sarcasm_confidence: float = Field(..., ge=0.0, le=1.0)
    irony_detected: bool
    irony_confidence: float = Field(..., ge=0.0, le=1.0)
    contextual_clues: List[str] = Field(default_factory=list)
    adjustment_recommendation: Literal["reverse_sentiment_polarity", "no_adjustment_needed"]


class ExtremeStateAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    extreme_emotion_detected: bool
    emotion_type: Literal["extreme_distress", "extreme_joy", "extreme_anger", "extreme_general"]
    intensity_level: float = Field(..., ge=0.0, le=15.0)
    stability_assessment: float = Field(..., ge=0.0, le=1.0)
    handling_approach: Literal["human_review_required", "careful_analysis"]
    confidence_adjustment: float = Field(..., ge=0.0, le=1.0)


class ComplexityHandlingValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    improvement_detected: bool
    accuracy_improvement: float = Field(..., ge=0.0)
    confidence_improvement: float = Field(..., ge=0.0)
    handling_effectiveness: float = Field(..., ge=0.0, le=1.0)
