"""
Mood Analysis Schema
Mood Scoring Engine - Analyzer output and derived signals

MoodAnalysisResult is the unit consumed by the delta detector, the pattern
recognizer, the baseline manager and the validation framework. It is frozen;
enrichment returns a new instance.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Dict, Any, List, Optional
from datetime import datetime

from schemas.baseline import EmotionalBaseline
from schemas.conversation import ConversationData


FactorType = Literal[
    "sentiment_analysis",
    "psychological_indicators",
    "relationship_context",
    "conversational_flow",
    "historical_baseline",
    # legacy four-factor analyzer
    "language_sentiment",
    "emotional_words",
    "context_clues",
    "interaction_pattern",
]

PRIMARY_FACTOR_TYPES = (
    "sentiment_analysis",
    "psychological_indicators",
    "relationship_context",
    "conversational_flow",
    "historical_baseline",
)

MAX_EVIDENCE = 5
MAX_DESCRIPTORS = 5


class MoodFactor(BaseModel):
    """One weighted dimension of a mood analysis."""

    model_config = ConfigDict(frozen=True)

    type: FactorType
    weight: float = Field(..., ge=0.0, le=1.0)
    description: str = Field(default="")
    evidence: List[str] = Field(default_factory=list, description="Short evidence strings (max 5)")
    score: float = Field(default=5.0, ge=0.0, le=10.0, description="Internal sub-score")

    @field_validator("evidence")
    @classmethod
    def _cap_evidence(cls, v: List[str]) -> List[str]:
        return list(v)[:MAX_EVIDENCE]


class MoodDelta(BaseModel):
    model_config = ConfigDict(frozen=True)

    magnitude: float = Field(..., ge=0.0)
    direction: Literal["positive", "negative", "neutral"]
    type: Literal["mood_repair", "celebration", "decline", "plateau"]
    confidence: float = Field(..., ge=0.0, le=1.0)
    factors: List[str] = Field(default_factory=list)


class TrajectoryPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    mood_score: float = Field(..., ge=0.0, le=10.0)
    message_id: Optional[str] = None
    emotions: List[str] = Field(default_factory=list)
    context: Optional[str] = None


class TurningPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    type: Literal["breakthrough", "setback", "realization", "support_received"]
    magnitude: float = Field(..., ge=0.0)
    description: str = ""
    factors: List[str] = Field(default_factory=list)


class EmotionalTrajectory(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: List[TrajectoryPoint] = Field(default_factory=list)
    direction: Literal["improving", "declining", "stable", "volatile"] = "stable"
    significance: float = Field(default=0.0, ge=0.0, le=1.0)
    turning_points: List[TurningPoint] = Field(default_factory=list)


PatternType = Literal["support_seeking", "mood_repair", "celebration", "vulnerability", "growth"]


class EmotionalPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: PatternType
    confidence: float = Field(..., ge=0.0, le=1.0)
    description: str = ""
    evidence: List[str] = Field(default_factory=list)
    significance: float = Field(..., ge=0.0, le=1.0)


Level = Literal["high", "medium", "low"]


class EmotionalSafety(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: Level
    acceptance_level: Level
    judgment_risk: Level
    validation_present: bool


class ParticipantDynamics(BaseModel):
    model_config = ConfigDict(frozen=True)

    emotional_leader: Optional[str] = None
    primary_supporter: Optional[str] = None
    vulnerability_exhibitor: Optional[str] = None
    support_balance: Literal["unidirectional", "bidirectional", "balanced"] = "unidirectional"
    mutual_vulnerability: bool = False


class RelationshipDynamics(BaseModel):
    """Relationship-level reading of a conversation (enrichment)."""

    model_config = ConfigDict(frozen=True)

    type: Literal[
        "romantic", "family", "close_friend", "friend", "colleague",
        "acquaintance", "professional", "therapeutic",
    ]
    support_level: Literal["high", "medium", "low", "negative"]
    intimacy_level: Level
    trust_level: Level
    conflict_level: Literal["high", "medium", "low", "none"]
    conflict_present: bool
    communication_style: Literal["reflective", "supportive", "directive", "conflicting", "professional"]
    communication_details: Dict[str, Any] = Field(default_factory=dict)
    participant_dynamics: ParticipantDynamics = Field(default_factory=ParticipantDynamics)
    emotional_safety: EmotionalSafety


class StressFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    accumulation_pattern: Literal["escalating", "stable", "decreasing"] = "stable"
    duration_impact: Literal["significant", "moderate", "minimal"] = "minimal"
    fatigue_indicators: List[str] = Field(default_factory=list)
    coping_mechanisms: List[str] = Field(default_factory=list)


class LifeEventFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_type: Literal["major_transition", "minor_change", "crisis", "celebration"] = "minor_change"
    emotional_impact: Level = "low"
    support_need: Literal["elevated", "normal", "minimal"] = "normal"
    adaptation_challenges: List[str] = Field(default_factory=list)


class AvoidanceFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic_avoidance: Literal["active", "passive", "none"] = "none"
    emotional_withdrawal: Literal["significant", "moderate", "minimal"] = "minimal"
    deflection_strategies: List[str] = Field(default_factory=list)
    underlying_concerns: List[str] = Field(default_factory=list)


class ContextSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    dominant_context: str = "general_conversation"
    secondary_contexts: List[str] = Field(default_factory=list)
    emotional_climate: Literal["supportive", "tense", "neutral"] = "neutral"
    risk_factors: List[str] = Field(default_factory=list)
    supportive_elements: List[str] = Field(default_factory=list)
    recommended_mood_adjustments: List[str] = Field(default_factory=list)


class ContextualFactors(BaseModel):
    """Conversation context summary (enrichment)."""

    model_config = ConfigDict(frozen=True)

    relationship_type: str = "unknown"
    conversation_type: Optional[str] = None
    participant_count: int = Field(default=0, ge=0)
    message_count: int = Field(default=0, ge=0)
    duration_minutes: float = Field(default=0.0, ge=0.0)
    themes: List[str] = Field(default_factory=list)
    primary_triggers: List[str] = Field(default_factory=list)
    contextual_significance: Level = "low"
    primary_context_type: Literal[
        "relationship_focused", "temporal_focused", "stress_focused", "general"
    ] = "general"
    stress_factors: Optional[StressFactors] = None
    life_event_factors: Optional[LifeEventFactors] = None
    avoidance_factors: Optional[AvoidanceFactors] = None
    summary: ContextSummary = Field(default_factory=ContextSummary)
    confidence: float = Field(default=0.7, ge=0.0, le=0.95)


class MoodAnalysisResult(BaseModel):
    """Score, confidence and evidence for one conversation."""

    model_config = ConfigDict(frozen=True)

    conversation_id: Optional[str] = Field(default=None)
    score: float = Field(..., ge=0.0, le=10.0, description="Mood score (0-10, not rounded)")
    descriptors: List[str] = Field(default_factory=list, description="Deduplicated, max 5")
    confidence: float = Field(..., ge=0.0, le=1.0)
    factors: List[MoodFactor] = Field(default_factory=list)
    parameters_version: int = Field(default=1, ge=1, description="ScoringParameters version used")

    # Optional enrichment
    delta: Optional[MoodDelta] = None
    relationship_dynamics: Optional[RelationshipDynamics] = None
    contextual_factors: Optional[ContextualFactors] = None
    emotional_baseline: Optional[EmotionalBaseline] = None

    @field_validator("descriptors")
    @classmethod
    def _dedupe_descriptors(cls, v: List[str]) -> List[str]:
        seen: List[str] = []
        for d in v:
            if d not in seen:
                seen.append(d)
        return seen[:MAX_DESCRIPTORS]

    def factor(self, factor_type: str) -> Optional[MoodFactor]:
        for f in self.factors:
            if f.type == factor_type:
                return f
        return None

    @property
    def evidence_count(self) -> int:
        return sum(len(f.evidence) for f in self.factors)

    @property
    def is_enriched(self) -> bool:
        return any(
            x is not None
            for x in (self.relationship_dynamics, self.contextual_factors, self.emotional_baseline)
        )


class ScoredConversation(BaseModel):
    """A conversation paired with its mood analysis."""

    model_config = ConfigDict(frozen=True)

    conversation: ConversationData
    analysis: MoodAnalysisResult

    @property
    def id(self) -> str:
        return self.conversation.id

    @property
    def score(self) -> float:
        return self.analysis.score

    @property
    def timestamp(self) -> datetime:
        return self.conversation.timestamp
