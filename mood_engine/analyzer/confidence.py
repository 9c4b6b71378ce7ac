#!/usr/bin/env python3
"""
Confidence Calculator
Reliability of a mood analysis from four signals:

- evidence strength   (quantity * 0.6 + quality * 0.4, weight-normalized)
- factor agreement    (1 - variance of sub-scores / 25)
- temporal consistency with the last 5 analyses (0.7 when no history)
- context reliability (evidence depth in the lexical/interaction/context factors)
"""
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from schemas.mood import MoodAnalysisResult, MoodFactor
from mood_engine.emotion.text_utils import clamp, pvariance
from mood_engine.logs import get_logger

logger = get_logger(__name__)

COMBINE_WEIGHTS = {
    "evidence_strength": 0.35,
    "factor_agreement": 0.25,
    "temporal_consistency": 0.2,
    "context_reliability": 0.2,
}

EVIDENCE_QUALITY = {
    "emotional_words": 0.9,
    "sentiment_analysis": 0.85,
    "language_sentiment": 0.8,
    "psychological_indicators": 0.75,
    "interaction_pattern": 0.7,
    "relationship_context": 0.7,
    "conversational_flow": 0.65,
    "context_clues": 0.6,
}

LEXICAL_TYPES = ("sentiment_analysis", "emotional_words")
INTERACTION_TYPES = ("conversational_flow", "interaction_pattern")
CONTEXT_TYPES = ("relationship_context", "context_clues")

HISTORY_WINDOW = 5
NO_HISTORY_CONSISTENCY = 0.7


class ConfidenceFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    evidence_strength: float = Field(..., ge=0.0, le=1.0)
    factor_agreement: float = Field(..., ge=0.0, le=1.0)
    temporal_consistency: float = Field(..., ge=0.0, le=1.0)
    context_reliability: float = Field(..., ge=0.0, le=1.0)


class ValidatedConfidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    adjusted_confidence: float
    reason: Optional[str] = None


def _jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    s1, s2 = set(a), set(b)
    union = s1 | s2
    return len(s1 & s2) / len(union) if union else 0.0


class ConfidenceCalculator:
    """Assesses the reliability of mood analysis results."""

    def calculate_confidence(
        self,
        analysis: MoodAnalysisResult,
        previous: Optional[List[MoodAnalysisResult]] = None,
    ) -> float:
        factors = self.assess_confidence_factors(analysis, previous)
        confidence = self.combine(factors)
        logger.debug(
            "Confidence calculation complete",
            extra={"conversation_id": analysis.conversation_id, "confidence": confidence, **factors.model_dump()},
        )
        return confidence

    def assess_confidence_factors(
        self,
        analysis: MoodAnalysisResult,
        previous: Optional[List[MoodAnalysisResult]] = None,
    ) -> ConfidenceFactors:
        return ConfidenceFactors(
            evidence_strength=self.evidence_strength(analysis.factors),
            factor_agreement=self.factor_agreement(analysis.factors),
            temporal_consistency=(
                self.temporal_consistency(analysis, previous) if previous else NO_HISTORY_CONSISTENCY
            ),
            context_reliability=self.context_reliability(analysis),
        )

    def evidence_strength(self, factors: List[MoodFactor]) -> float:
        if not factors:
            return 0.0
        total_weight = sum(f.weight for f in factors)
        if total_weight <= 0:
            return 0.0
        strength = 0.0
        for f in factors:
            quantity = min(len(f.evidence) / 5, 1.0)
            strength += (quantity * 0.6 + self.evidence_quality(f) * 0.4) * f.weight
        return clamp(strength / total_weight)

    @staticmethod
    def evidence_quality(factor: MoodFactor) -> float:
        quality = EVIDENCE_QUALITY.get(factor.type, 0.5)
        if any('"' in e or "detected" in e or "indicates" in e for e in factor.evidence):
            quality += 0.1
        return min(1.0, quality)

    @staticmethod
    def factor_agreement(factors: List[MoodFactor]) -> float:
        if len(factors) <= 1:
            return 1.0
        return max(0.0, 1 - pvariance(f.score for f in factors) / 25)

    def temporal_consistency(self, current: MoodAnalysisResult, previous: List[MoodAnalysisResult]) -> float:
        if not previous:
            return 1.0
        recent = previous[-HISTORY_WINDOW:]
        scores = [a.score for a in recent] + [current.score]
        score_consistency = max(0.0, 1 - pvariance(scores) / 25)
        descriptor_consistency = self.descriptor_consistency(current.descriptors, [a.descriptors for a in recent])
        return clamp(score_consistency * 0.7 + descriptor_consistency * 0.3)

    @staticmethod
    def descriptor_consistency(current: List[str], previous: List[List[str]]) -> float:
        if not previous:
            return 1.0
        overlap = sum(_jaccard(current, p) for p in previous) / len(previous)
        # some drift is expected, so full overlap saturates early
        if overlap > 0.7:
            return 1.0
        if overlap > 0.3:
            return 0.8 + (overlap - 0.3) * 0.5
        return overlap * 2.67

    @staticmethod
    def context_reliability(analysis: MoodAnalysisResult) -> float:
        by_type: Dict[str, MoodFactor] = {f.type: f for f in analysis.factors}

        def evidence(types) -> int:
            return max((len(by_type[t].evidence) for t in types if t in by_type), default=0)

        reliability = 0.5
        if evidence(LEXICAL_TYPES) > 3:
            reliability += 0.2
        if evidence(INTERACTION_TYPES) > 0:
            reliability += 0.15
        if evidence(CONTEXT_TYPES) > 2:
            reliability += 0.15
        return min(1.0, reliability)

    @staticmethod
    def validate_confidence(confidence: float) -> ValidatedConfidence:
        if confidence < 0 or confidence > 1:
            return ValidatedConfidence(
                is_valid=False, adjusted_confidence=clamp(confidence), reason="Confidence out of bounds"
            )
        if confidence > 0.9:
            return ValidatedConfidence(
                is_valid=True, adjusted_confidence=confidence * 0.95,
                reason="Very high confidence adjusted for caution",
            )
        if confidence < 0.3:
            return ValidatedConfidence(
                is_valid=True, adjusted_confidence=0.3, reason="Minimum confidence threshold applied"
            )
        return ValidatedConfidence(is_valid=True, adjusted_confidence=confidence)

    def combine(self, factors: ConfidenceFactors) -> float:
        values = factors.model_dump()
        raw = sum(values[k] * w for k, w in COMBINE_WEIGHTS.items()) / sum(COMBINE_WEIGHTS.values())
        return round(self.validate_confidence(raw).adjusted_confidence, 2)
