"""
Emotional Baseline Schema
Mood Scoring Engine - Per-subject baseline

A baseline is a versioned, immutable snapshot. Updates produce a new
EmotionalBaseline with version + 1.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Dict, List, Optional
from datetime import datetime, timezone


class MoodRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0.0, le=10.0)
    max: float = Field(..., ge=0.0, le=10.0)
    spread: float = Field(..., ge=0.0, le=10.0)


class VariationPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    volatility: float = Field(..., ge=0.0, description="Population std of scores")
    cyclical_tendency: Literal["low", "medium", "high"] = Field(default="low")


class TemporalPatterns(BaseModel):
    model_config = ConfigDict(frozen=True)

    time_of_day: Dict[str, float] = Field(
        default_factory=dict,
        description="Average mood per morning/afternoon/evening/night (UTC hours)"
    )
    weekly: Dict[str, float] = Field(
        default_factory=dict,
        description="Average mood per weekday (monday..sunday)"
    )


class RelationshipPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_mood: float = Field(..., ge=0.0, le=10.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    data_points: int = Field(..., ge=0)


class EmotionalBaseline(BaseModel):
    """Statistical mood profile for one subject."""

    model_config = ConfigDict(frozen=True)

    subject_id: str = Field(..., description="Subject (user) ID")
    average_mood: float = Field(..., ge=0.0, le=10.0)
    mood_range: MoodRange
    data_points: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    variation_pattern: VariationPattern
    temporal_patterns: TemporalPatterns = Field(default_factory=TemporalPatterns)
    relationship_patterns: Dict[str, RelationshipPattern] = Field(default_factory=dict)
    version: int = Field(default=1, ge=1)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    update_reason: Optional[Literal["routine_update", "significant_shift", "major_shift", "re_established"]] = Field(
        default=None, description="Set on versions produced by an update"
    )


class SustainabilityAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    likely_sustainable: bool
    factors: List[str] = Field(default_factory=list)


class BaselineDeviation(BaseModel):
    """How a single scored conversation deviates from a subject's baseline."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    conversation_id: str
    baseline_version: int
    baseline_mood: float
    current_mood: float
    deviation_magnitude: float = Field(..., ge=0.0)
    deviation_direction: Literal["positive", "negative", "neutral"]
    z_score: float
    percentile_rank: float = Field(..., ge=1.0, le=99.0)
    deviation_type: Literal["normal_variation", "significant_elevation", "significant_decline"]
    contextual_significance: Literal["low", "medium", "high"]
    recommended_actions: List[str] = Field(default_factory=list)
    potential_triggers: List[str] = Field(default_factory=list)
    sustainability: Optional[SustainabilityAssessment] = None
