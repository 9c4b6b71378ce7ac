#!/usr/bin/env python3
"""
Psychological Indicator Analyzer
Coping, resilience, stress, support and growth signals over a text.

Each detector returns structured indicators; `profile()` bundles them and
`sub_score()` folds a profile into the 0-10 psychological factor score:
neutral 5.0, fixed increments per category present, -1.5 on contradiction.
"""
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from mood_engine.emotion.lexicon import Lexicon, load_lexicon
from mood_engine.emotion.text_utils import clamp, contains_phrase, find_phrases
from mood_engine.logs import get_logger

logger = get_logger(__name__)

EMOTIONAL_IMPACT_WORDS = [
    "feel", "emotion", "heart", "peace", "calm", "relief", "comfort",
    "healing", "processing", "acceptance",
]
STRESS_CONTEXT_WORDS = [
    "stress", "stressed", "overwhelmed", "difficult", "challenge", "problem",
    "struggle", "struggling", "hard", "tough", "crisis", "need to", "have to",
]

# Score increments per category
COPING_BONUS = 0.8
RESILIENCE_BONUS = 0.8
RESILIENCE_NEGATIVE_PENALTY = 0.8
STRESS_PENALTY = 1.0
STRESS_PENALTY_CAP = 2.5
SUPPORT_BONUS = 0.8
RECIPROCITY_BONUS = 0.2
GROWTH_BONUS = 0.7


class CopingIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["problem_focused", "emotion_focused", "meaning_focused"]
    strength: float = Field(..., ge=0.0, le=1.0)
    effectiveness: float = Field(..., ge=0.0, le=1.0)
    emotional_impact: float = Field(..., ge=0.0, le=1.0)
    contextual_relevance: float = Field(..., ge=0.0, le=1.0)
    evidence: List[str] = Field(default_factory=list)


class ResilienceScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: float = Field(..., ge=0.0, le=1.0)
    recovery_capacity: float = Field(..., ge=0.0, le=1.0)
    adaptive_flexibility: float = Field(..., ge=0.0, le=1.0)
    support_utilization: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    negative_signals: List[str] = Field(default_factory=list)


class StressIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["physiological", "emotional", "cognitive", "behavioral"]
    intensity: float = Field(..., ge=0.0, le=1.0)
    description: str
    evidence: List[str] = Field(default_factory=list)


class SupportIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["emotional", "informational", "instrumental", "appraisal"]
    quality: float = Field(..., ge=0.0, le=1.0)
    reciprocity: float = Field(..., ge=0.0, le=1.0)
    effectiveness: float = Field(..., ge=0.0, le=1.0)
    evidence: List[str] = Field(default_factory=list)


class GrowthIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["emotional_maturity", "self_awareness", "relationship_skills", "resilience_building"]
    strength: float = Field(..., ge=0.0, le=1.0)
    direction: Literal["positive", "negative", "stable"]
    evidence: List[str] = Field(default_factory=list)


class PsychologicalProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    coping: List[CopingIndicator] = Field(default_factory=list)
    resilience: ResilienceScore
    stress: List[StressIndicator] = Field(default_factory=list)
    support: List[SupportIndicator] = Field(default_factory=list)
    growth: List[GrowthIndicator] = Field(default_factory=list)
    contradiction: bool = False


class PsychologicalIndicatorAnalyzer:
    """Keyword-table detectors for psychological patterns."""

    def __init__(self, lexicon: Optional[Lexicon] = None):
        self.lexicon = lexicon or load_lexicon()

    # ---- detectors ----

    def analyze_coping_mechanisms(self, content: str) -> List[CopingIndicator]:
        text = (content or "").lower()
        out: List[CopingIndicator] = []
        effectiveness = clamp(0.5 + 0.15 * len(find_phrases(text, self.lexicon.coping_effectiveness)))
        relevance = clamp(0.5 + 0.2 * len(find_phrases(text, STRESS_CONTEXT_WORDS)))
        impact_hits = len(find_phrases(text, EMOTIONAL_IMPACT_WORDS))

        for ctype in ("problem_focused", "emotion_focused", "meaning_focused"):
            hits = find_phrases(text, self.lexicon.coping.get(ctype, []))
            strength = clamp(0.3 * len(hits))
            if strength <= 0.25:
                continue
            base_impact = 0.75 if ctype == "emotion_focused" else 0.6
            out.append(CopingIndicator(
                type=ctype,
                strength=strength,
                effectiveness=effectiveness,
                emotional_impact=clamp(base_impact + 0.08 * impact_hits),
                contextual_relevance=relevance,
                evidence=hits,
            ))

        logger.debug("Analyzed coping mechanisms", extra={"types": [c.type for c in out]})
        return out

    def assess_resilience(self, content: str) -> ResilienceScore:
        text = (content or "").lower()
        recovery = find_phrases(text, self.lexicon.resilience.get("recovery", []))
        adaptive = find_phrases(text, self.lexicon.resilience.get("adaptive", []))
        support = find_phrases(text, self.lexicon.resilience.get("support", []))
        negative = find_phrases(text, self.lexicon.resilience.get("negative", []))

        recovery_capacity = clamp(0.25 * len(recovery) - 0.2 * len(negative))
        adaptive_flexibility = clamp(0.25 * len(adaptive))
        support_utilization = clamp(0.25 * len(support))
        overall = recovery_capacity * 0.4 + adaptive_flexibility * 0.35 + support_utilization * 0.25

        signals = len(recovery) + len(adaptive) + len(support) + len(negative)
        confidence = clamp(0.4 + 0.1 * signals) if signals else 0.3

        return ResilienceScore(
            overall=clamp(overall),
            recovery_capacity=recovery_capacity,
            adaptive_flexibility=adaptive_flexibility,
            support_utilization=support_utilization,
            confidence=confidence,
            negative_signals=negative,
        )

    def identify_stress_markers(self, content: str) -> List[StressIndicator]:
        text = (content or "").lower()
        out: List[StressIndicator] = []
        for stype in ("physiological", "emotional", "cognitive", "behavioral"):
            table: Dict[str, float] = self.lexicon.stress.get(stype, {})
            hits = [p for p in table if contains_phrase(text, p)]
            if not hits:
                continue
            intensity = clamp(max(table[h] for h in hits) + 0.05 * (len(hits) - 1))
            out.append(StressIndicator(
                type=stype,
                intensity=intensity,
                description=f"{stype.capitalize()} stress markers",
                evidence=hits,
            ))

        logger.debug("Identified stress markers", extra={"types": [s.type for s in out]})
        return out

    def evaluate_support_patterns(self, content: str) -> List[SupportIndicator]:
        text = (content or "").lower()
        reciprocity = clamp(0.3 + 0.35 * len(find_phrases(text, self.lexicon.support.get("reciprocity", []))))
        out: List[SupportIndicator] = []
        for stype in ("emotional", "informational", "instrumental", "appraisal"):
            hits = find_phrases(text, self.lexicon.support.get(stype, []))
            quality = clamp(0.35 * len(hits))
            if quality <= 0.3:
                continue
            out.append(SupportIndicator(
                type=stype,
                quality=quality,
                reciprocity=reciprocity,
                effectiveness=clamp(0.5 + 0.1 * len(hits)),
                evidence=hits,
            ))
        return out

    def identify_growth_patterns(self, content: str) -> List[GrowthIndicator]:
        text = (content or "").lower()
        regression = find_phrases(text, self.lexicon.growth.get("regression", []))
        out: List[GrowthIndicator] = []
        for gtype in ("emotional_maturity", "self_awareness", "relationship_skills", "resilience_building"):
            hits = find_phrases(text, self.lexicon.growth.get(gtype, []))
            strength = clamp(0.35 * len(hits))
            if strength <= 0.3:
                continue
            if len(regression) > len(hits):
                direction = "negative"
            elif regression:
                direction = "stable"
            else:
                direction = "positive"
            out.append(GrowthIndicator(type=gtype, strength=strength, direction=direction, evidence=hits))
        return out

    def has_contradiction(self, content: str) -> bool:
        """Contradiction markers or a known conflicting word pair."""
        text = (content or "").lower()
        if find_phrases(text, self.lexicon.contradiction_markers):
            return True
        return any(contains_phrase(text, a) and contains_phrase(text, b)
                   for a, b in self.lexicon.contradiction_pairs)

    # ---- aggregate ----

    def profile(self, content: str) -> PsychologicalProfile:
        return PsychologicalProfile(
            coping=self.analyze_coping_mechanisms(content),
            resilience=self.assess_resilience(content),
            stress=self.identify_stress_markers(content),
            support=self.evaluate_support_patterns(content),
            growth=self.identify_growth_patterns(content),
            contradiction=self.has_contradiction(content),
        )

    @staticmethod
    def sub_score(profile: PsychologicalProfile, contradiction_penalty: float = 1.5) -> Tuple[float, List[str]]:
        """
        Fold a profile into the psychological factor score.

        Returns:
            (score, evidence) where score starts at 5.0 and is clamped to [0, 10]
        """
        score = 5.0
        evidence: List[str] = []

        for c in profile.coping:
            score += COPING_BONUS * c.effectiveness
            evidence.append(f"coping: {c.type.replace('_', '-')} ({', '.join(c.evidence[:2])})")

        r = profile.resilience
        if r.overall > 0.1:
            score += RESILIENCE_BONUS * min(1.0, r.overall * 2)
            evidence.append(f"resilience: {r.overall:.2f}")
        if r.negative_signals:
            score -= RESILIENCE_NEGATIVE_PENALTY
            evidence.append(f"low resilience: {r.negative_signals[0]}")

        stress_penalty = 0.0
        for s in profile.stress:
            stress_penalty += STRESS_PENALTY * s.intensity
            evidence.append(f"stress: {s.type} ({', '.join(s.evidence[:2])})")
        score -= min(STRESS_PENALTY_CAP, stress_penalty)

        if profile.support:
            score += SUPPORT_BONUS
            if any(s.reciprocity > 0.5 for s in profile.support):
                score += RECIPROCITY_BONUS
            evidence.append("support: " + ", ".join(s.type for s in profile.support))

        for g in profile.growth:
            if g.direction == "positive":
                score += GROWTH_BONUS
            elif g.direction == "negative":
                score -= GROWTH_BONUS
            evidence.append(f"growth: {g.type} ({g.direction})")

        if profile.contradiction:
            score -= contradiction_penalty
            evidence.append("contradiction markers present")

        return clamp(score, 0.0, 10.0), evidence
