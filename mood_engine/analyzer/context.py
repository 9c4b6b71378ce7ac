#!/usr/bin/env python3
"""
Emotional Context Builder
Identifies the contextual factors that shape how a conversation's mood should be read.

- primary triggers (vulnerability, support seeking, conflict, achievement,
  insight, late-night, stress, life transition, overwhelm, avoidance)
- stress / life-event / avoidance factor groups, present only when their cues fire
- contextual significance, primary context type, summary and confidence

Keyword hits are substring matches over the lower-cased conversation text.
"""
from datetime import timezone
from typing import List, Optional

from schemas.conversation import ConversationData
from schemas.mood import (
    AvoidanceFactors,
    ContextSummary,
    LifeEventFactors,
    MoodAnalysisResult,
    RelationshipDynamics,
    StressFactors,
)

# trigger -> phrases, checked in order
TRIGGER_PHRASES = [
    ("vulnerability_expression", ["struggling", "scared", "vulnerable", "living a lie"]),
    ("support_seeking", ["don't know who else to talk to", "need help"]),
    ("conflict_escalation", ["dismissing", "invalidating", "can't believe"]),
    ("defensive_response", ["being way too sensitive", "not that big of a deal", "done trying"]),
    ("achievement_recognition", ["got the promotion", "can't believe it actually happened", "incredible"]),
    ("positive_reinforcement", ["proud of you", "deserved this", "believing in me"]),
    ("insight_moment", ["now that you ask", "connects to my childhood", "pattern"]),
    ("pattern_recognition", ["same argument", "themes come up", "pattern recognition"]),
    ("stress_accumulation", ["crushing", "drowning", "affecting everything"]),
    ("life_transition_stress", ["moving across the country", "leaving everything", "unknowns"]),
    ("emotional_overwhelm", ["screaming inside", "trapped", "glass box"]),
    ("avoidance_behavior", ["anyway, did you see", "what are your plans", "i'm fine, really"]),
]

VULNERABILITY_TRIGGERS = {"vulnerability_expression", "support_seeking", "emotional_overwhelm", "temporal_vulnerability"}
THERAPEUTIC_TRIGGERS = {"insight_moment", "pattern_recognition"}
ACHIEVEMENT_TRIGGERS = {"achievement_recognition", "positive_reinforcement"}
RELATIONSHIP_ROLES = {"emotional_leader", "supporter"}

STRESS_CUES = ["overwhelming", "crushing", "drowning"]
LIFE_EVENT_CUES = ["moving", "transition", "leaving"]
AVOIDANCE_CUES = ["anyway", "what are your plans", "i'm fine"]

BASE_CONFIDENCE = 0.7
MAX_CONFIDENCE = 0.95


def _any(text: str, phrases: List[str]) -> bool:
    return any(p in text for p in phrases)


def _late_night(conversation: ConversationData) -> bool:
    ts = conversation.start_time
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.hour >= 22 or ts.hour <= 5


def identify_triggers(conversation: ConversationData) -> List[str]:
    text = conversation.full_text
    expressions = [e.lower() for p in conversation.participants for e in p.emotional_expressions]

    triggers: List[str] = []
    for name, phrases in TRIGGER_PHRASES:
        if _any(text, phrases) or (name == "support_seeking" and "scared" in expressions):
            triggers.append(name)
    if _late_night(conversation):
        triggers.append("temporal_vulnerability")
    if len(conversation.messages) >= 6 and "urgent" in expressions:
        triggers.append("emotional_urgency")
    return triggers


def stress_factors(conversation: ConversationData) -> Optional[StressFactors]:
    text = conversation.full_text
    if not _any(text, STRESS_CUES):
        return None
    return StressFactors(
        accumulation_pattern="escalating" if _any(text, ["months now", "affecting everything"]) else "stable",
        duration_impact="significant" if _any(text, ["affecting everything", "drowning"]) else "minimal",
        fatigue_indicators=["cognitive_overload"] if _any(text, ["overwhelming", "can't keep up"]) else [],
        coping_mechanisms=["withdrawal_tendency"] if len(conversation.messages) <= 3 else [],
    )


def life_event_factors(conversation: ConversationData) -> Optional[LifeEventFactors]:
    text = conversation.full_text
    if not _any(text, LIFE_EVENT_CUES):
        return None
    return LifeEventFactors(
        event_type="major_transition" if _any(text, ["moving across the country", "leaving everything"]) else "minor_change",
        emotional_impact="high" if _any(text, ["terrifying", "unknowns"]) else "low",
        support_need="elevated" if _any(text, ["leaving everything", "scared"]) else "normal",
        adaptation_challenges=["uncertainty_management"] if _any(text, ["unknowns", "what if"]) else [],
    )


def avoidance_factors(conversation: ConversationData) -> Optional[AvoidanceFactors]:
    text = conversation.full_text
    if not _any(text, AVOIDANCE_CUES):
        return None
    withdrawn = "i'm fine, really" in text or len(conversation.messages) <= 4
    concerns = ["fear_of_vulnerability"] if "worried about you" in text and "i'm fine" in text else []
    return AvoidanceFactors(
        topic_avoidance="active" if _any(text, ["anyway, did you see", "what are your plans"]) else "none",
        emotional_withdrawal="moderate" if withdrawn else "minimal",
        deflection_strategies=["subject_change"] if _any(text, ["anyway", "what are your plans"]) else [],
        underlying_concerns=concerns,
    )


def contextual_significance(
    conversation: ConversationData, triggers: List[str], base: Optional[MoodAnalysisResult] = None
) -> str:
    roles = {p.role for p in conversation.participants}
    therapeutic = "listener" in roles and any("pattern" in m.content.lower() for m in conversation.messages)
    score = base.score if base is not None else None

    if (
        VULNERABILITY_TRIGGERS.intersection(triggers)
        or THERAPEUTIC_TRIGGERS.intersection(triggers)
        or ACHIEVEMENT_TRIGGERS.intersection(triggers)
        or therapeutic
        or len(triggers) >= 3
        or (score is not None and (score <= 3.5 or score >= 8.5))
    ):
        return "high"
    if triggers or (score is not None and (score <= 4.5 or score >= 7.5)):
        return "medium"
    return "low"


def primary_context_type(conversation: ConversationData, triggers: List[str]) -> str:
    if RELATIONSHIP_ROLES.intersection(p.role for p in conversation.participants):
        return "relationship_focused"
    if "temporal_vulnerability" in triggers:
        return "temporal_focused"
    if "stress_accumulation" in triggers:
        return "stress_focused"
    return "general"


def context_summary(
    conversation: ConversationData, triggers: List[str], dynamics: Optional[RelationshipDynamics] = None
) -> ContextSummary:
    text = conversation.full_text
    expressions = [e.lower() for p in conversation.participants for e in p.emotional_expressions]
    support = dynamics.support_level if dynamics is not None else None
    high_conflict = dynamics is not None and dynamics.conflict_level == "high"

    secondary: List[str] = []
    if (
        "vulnerability_expression" in triggers
        or "vulnerable" in expressions
        or _any(text, ["therapy", "scary but liberating"])
    ):
        secondary.append("vulnerability_sharing")

    if support == "high":
        climate = "supportive"
    elif high_conflict:
        climate = "tense"
    else:
        climate = "neutral"

    risks: List[str] = []
    if (
        "emotional_overwhelm" in triggers
        or _any(text, ["intense", "scary but liberating"])
        or "uncertain" in expressions
    ):
        risks.append("emotional_overwhelm")

    adjustments: List[str] = []
    if support == "high" or ("vulnerability_expression" in triggers and support != "negative"):
        adjustments.append("baseline_elevation")

    return ContextSummary(
        dominant_context="emotional_support" if "support_seeking" in triggers or support == "high"
        else "general_conversation",
        secondary_contexts=secondary,
        emotional_climate=climate,
        risk_factors=risks,
        supportive_elements=["active_listening"] if support == "high" else [],
        recommended_mood_adjustments=adjustments,
    )


def context_confidence(
    conversation: ConversationData, triggers: List[str], base: Optional[MoodAnalysisResult] = None
) -> float:
    confidence = BASE_CONFIDENCE
    if len(triggers) >= 2:
        confidence += 0.1
    if base is not None and base.confidence >= 0.85:
        confidence += 0.1
    if len(conversation.messages) >= 3:
        confidence += 0.05
    return min(MAX_CONFIDENCE, confidence)
