#!/usr/bin/env python3
"""
Pattern Recognizer
Matches scored conversations and trajectories against named emotional patterns:
support_seeking, mood_repair, celebration, vulnerability, growth.

Each template contributes confidence from four sources (mood range 0.3,
keywords up to 0.3, behavioral indicators up to 0.4, descriptor overlap 0.2);
a match needs at least `minimum_evidence` evidence items and is reported only
above `minimum_confidence`.
"""
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from schemas.conversation import ConversationData
from schemas.mood import EmotionalPattern, EmotionalTrajectory, MoodAnalysisResult, TrajectoryPoint
from mood_engine.config import CFG
from mood_engine.emotion.text_utils import clamp
from mood_engine.logs import get_logger

logger = get_logger(__name__)


class PatternTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    keywords: List[str] = Field(default_factory=list)
    behavioral_indicators: List[str] = Field(default_factory=list)
    mood_min: Optional[float] = None
    mood_max: Optional[float] = None
    typical_descriptors: List[str] = Field(default_factory=list)


DEFAULT_TEMPLATES: Dict[str, PatternTemplate] = {
    "support_seeking": PatternTemplate(
        description="Seeking emotional support or guidance",
        keywords=["help", "advice", "struggling", "difficult", "hard time", "need", "support"],
        behavioral_indicators=["extended_conversation", "emotional_disclosure"],
        mood_max=5.0,
        typical_descriptors=["concerned", "unsettled", "vulnerable"],
    ),
    "mood_repair": PatternTemplate(
        description="Active emotional recovery and coping",
        keywords=["better", "improving", "helped", "grateful", "relief", "progress"],
        behavioral_indicators=["support_exchange", "emotional_disclosure"],
        mood_min=4.0,
        typical_descriptors=["recovering", "hopeful", "supported"],
    ),
    "celebration": PatternTemplate(
        description="Sharing positive experiences or achievements",
        keywords=["excited", "happy", "achieved", "success", "wonderful", "great news"],
        behavioral_indicators=["celebration_sharing"],
        mood_min=7.0,
        typical_descriptors=["joyful", "excited", "positive"],
    ),
    "vulnerability": PatternTemplate(
        description="Expressing emotional vulnerability or openness",
        keywords=["scared", "worried", "anxious", "vulnerable", "honest", "admit"],
        behavioral_indicators=["emotional_disclosure", "extended_conversation"],
        typical_descriptors=["open", "vulnerable", "honest"],
    ),
    "growth": PatternTemplate(
        description="Personal growth and emotional development",
        keywords=["learned", "realized", "understand", "growth", "change", "better"],
        behavioral_indicators=["extended_conversation"],
        mood_min=5.0,
        typical_descriptors=["reflective", "growing", "insightful"],
    ),
}

TYPE_SIGNIFICANCE = {
    "support_seeking": 0.8,
    "mood_repair": 0.9,
    "celebration": 0.7,
    "vulnerability": 0.8,
    "growth": 0.85,
}

# indicator -> (words, evidence text)
BEHAVIORAL_INDICATORS: Dict[str, Tuple[List[str], str]] = {
    "emotional_disclosure": (
        ["feel", "felt", "feeling", "emotion", "afraid", "scared", "happy", "sad"],
        "Emotional disclosure detected",
    ),
    "support_exchange": (
        ["thank", "help", "support", "there for", "appreciate"],
        "Support exchange identified",
    ),
    "celebration_sharing": (
        ["congratulations", "proud", "achievement", "success", "excited"],
        "Celebration sharing detected",
    ),
}
EXTENDED_CONVERSATION_MESSAGES = 10

COMPLEMENTARY_TYPES = [
    ("vulnerability", "support_seeking"),
    ("support_seeking", "mood_repair"),
    ("growth", "celebration"),
]

LOW_MOOD = 4.0
HIGH_MOOD = 6.0


class PatternRecognizerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    minimum_confidence: float = Field(default=CFG["PATTERN_MIN_CONFIDENCE"], ge=0.0, le=1.0)
    minimum_evidence: int = Field(default=CFG["PATTERN_MIN_EVIDENCE"], ge=0)
    templates: Dict[str, PatternTemplate] = Field(default_factory=lambda: dict(DEFAULT_TEMPLATES))


class PatternRecognizer:
    def __init__(self, config: Optional[PatternRecognizerConfig] = None):
        self.config = config or PatternRecognizerConfig()

    # ---- conversation patterns ----

    def recognize_patterns(self, conversation: ConversationData, mood: MoodAnalysisResult) -> List[EmotionalPattern]:
        patterns: List[EmotionalPattern] = []
        for ptype, template in self.config.templates.items():
            pattern = self._evaluate(ptype, template, conversation, mood)
            if pattern and pattern.confidence >= self.config.minimum_confidence:
                patterns.append(pattern)

        patterns.sort(key=lambda p: p.significance, reverse=True)
        logger.info(
            "Pattern recognition complete",
            extra={"conversation_id": conversation.id, "patterns": [p.type for p in patterns]},
        )
        return patterns

    def _evaluate(
        self,
        ptype: str,
        template: PatternTemplate,
        conversation: ConversationData,
        mood: MoodAnalysisResult,
    ) -> Optional[EmotionalPattern]:
        evidence: List[str] = []
        confidence = 0.0

        if template.mood_min is not None or template.mood_max is not None:
            if self._mood_matches(mood.score, template):
                confidence += 0.3
                evidence.append(f"Mood score {mood.score:.1f} matches {ptype} pattern")

        text = conversation.full_text
        keywords = [f'Keyword "{k}" found in conversation' for k in template.keywords if k.lower() in text]
        if keywords:
            confidence += min(len(keywords) * 0.1, 0.3)
            evidence.extend(keywords[:3])

        indicators = self._behavioral_indicators(conversation, template.behavioral_indicators)
        if indicators:
            confidence += min(len(indicators) * 0.15, 0.4)
            evidence.extend(indicators)

        overlap = self._descriptor_overlap(mood.descriptors, template.typical_descriptors)
        if overlap > 0.5:
            confidence += overlap * 0.2
            evidence.append(f"Emotional descriptors align with {ptype} pattern")

        if len(evidence) < self.config.minimum_evidence:
            return None

        confidence = min(1.0, confidence)
        return EmotionalPattern(
            type=ptype,
            confidence=confidence,
            description=template.description,
            evidence=evidence,
            significance=self._significance(ptype, confidence, len(evidence)),
        )

    @staticmethod
    def _mood_matches(score: float, template: PatternTemplate) -> bool:
        if template.mood_min is not None and score < template.mood_min:
            return False
        if template.mood_max is not None and score > template.mood_max:
            return False
        return True

    @staticmethod
    def _behavioral_indicators(conversation: ConversationData, wanted: List[str]) -> List[str]:
        found: List[str] = []
        contents = [m.content.lower() for m in conversation.messages]
        for indicator in wanted:
            if indicator == "extended_conversation":
                if len(conversation.messages) > EXTENDED_CONVERSATION_MESSAGES:
                    found.append("Extended conversation indicates deep engagement")
                continue
            words, label = BEHAVIORAL_INDICATORS.get(indicator, ([], ""))
            if any(w in c for c in contents for w in words):
                found.append(label)
        return found

    @staticmethod
    def _descriptor_overlap(actual: List[str], expected: List[str]) -> float:
        if not expected:
            return 0.0
        return sum(1 for d in actual if d in expected) / len(expected)

    @staticmethod
    def _significance(ptype: str, confidence: float, evidence_count: int) -> float:
        base = TYPE_SIGNIFICANCE.get(ptype, 0.5)
        evidence_factor = min(evidence_count / 5, 1.0)
        return clamp(base * confidence * (0.7 + evidence_factor * 0.3))

    # ---- trajectory patterns ----

    def analyze_trajectory_patterns(self, trajectory: EmotionalTrajectory) -> List[EmotionalPattern]:
        candidates = [
            self._growth(trajectory),
            self._vulnerability(trajectory),
            self._mood_repair(trajectory),
        ]
        return [p for p in candidates if p and p.confidence >= self.config.minimum_confidence]

    def _growth(self, trajectory: EmotionalTrajectory) -> Optional[EmotionalPattern]:
        if trajectory.direction != "improving":
            return None
        evidence: List[str] = []
        confidence = 0.5
        points = trajectory.points
        if len(points) >= 3 and _count_rises(points, 0.0) > len(points) * 0.6:
            confidence += 0.3
            evidence.append("Consistent mood improvement over time")
        breakthroughs = [tp for tp in trajectory.turning_points if tp.type == "breakthrough"]
        if breakthroughs:
            confidence += 0.2
            evidence.append(f"{len(breakthroughs)} breakthrough moment(s) identified")
        if len(evidence) < self.config.minimum_evidence:
            return None
        return EmotionalPattern(
            type="growth",
            confidence=clamp(confidence),
            description="Pattern of emotional growth and positive development",
            evidence=evidence,
            significance=trajectory.significance,
        )

    def _vulnerability(self, trajectory: EmotionalTrajectory) -> Optional[EmotionalPattern]:
        evidence: List[str] = []
        confidence = 0.4
        points = trajectory.points
        if trajectory.direction == "volatile":
            confidence += 0.2
            evidence.append("Emotional volatility indicates vulnerability")
        low = [p for p in points if p.mood_score < LOW_MOOD]
        if len(low) > len(points) * 0.3:
            confidence += 0.3
            evidence.append("Extended periods of low mood")
        if any(p.context and ("support" in p.context.lower() or "help" in p.context.lower()) for p in points):
            confidence += 0.2
            evidence.append("Context indicates support-seeking behavior")
        if len(evidence) < self.config.minimum_evidence:
            return None
        return EmotionalPattern(
            type="vulnerability",
            confidence=clamp(confidence),
            description="Pattern of emotional vulnerability and openness",
            evidence=evidence,
            significance=TYPE_SIGNIFICANCE["vulnerability"],
        )

    def _mood_repair(self, trajectory: EmotionalTrajectory) -> Optional[EmotionalPattern]:
        evidence: List[str] = []
        confidence = 0.3
        points = trajectory.points
        repairs = [
            tp for tp in trajectory.turning_points
            if tp.type == "support_received" or (tp.type == "breakthrough" and tp.magnitude > 2)
        ]
        if repairs:
            confidence += 0.4
            evidence.append(f"{len(repairs)} mood repair moment(s) detected")
        if any(a.mood_score < LOW_MOOD and b.mood_score > HIGH_MOOD for a, b in zip(points, points[1:])):
            confidence += 0.2
            evidence.append("Significant mood improvement after low period")
        if _count_rises(points, 1.0) > len(points) * 0.4:
            confidence += 0.1
            evidence.append("Multiple positive mood shifts indicate active coping")
        if len(evidence) < self.config.minimum_evidence:
            return None
        return EmotionalPattern(
            type="mood_repair",
            confidence=clamp(confidence),
            description="Pattern of emotional recovery and mood repair",
            evidence=evidence,
            significance=TYPE_SIGNIFICANCE["mood_repair"],
        )

    # ---- strength / merging ----

    @staticmethod
    def calculate_pattern_strength(pattern: EmotionalPattern) -> float:
        evidence_score = min(len(pattern.evidence) / 5, 1.0)
        return evidence_score * 0.3 + pattern.confidence * 0.4 + pattern.significance * 0.3

    def merge_related_patterns(self, patterns: List[EmotionalPattern]) -> List[EmotionalPattern]:
        """Greedy grouping: each pattern absorbs later ones sharing evidence or a complementary type."""
        if len(patterns) <= 1:
            return list(patterns)
        merged: List[EmotionalPattern] = []
        used = set()
        for i, current in enumerate(patterns):
            if i in used:
                continue
            group = [current]
            for j in range(i + 1, len(patterns)):
                if j not in used and self.are_related(current, patterns[j]):
                    group.append(patterns[j])
                    used.add(j)
            merged.append(self._merge(group) if len(group) > 1 else current)
        return merged

    @staticmethod
    def are_related(a: EmotionalPattern, b: EmotionalPattern) -> bool:
        if any(e in b.evidence for e in a.evidence):
            return True
        return any({a.type, b.type} == {t1, t2} for t1, t2 in COMPLEMENTARY_TYPES)

    @staticmethod
    def _merge(group: List[EmotionalPattern]) -> EmotionalPattern:
        base = max(group, key=lambda p: p.significance)
        evidence: List[str] = []
        for p in group:
            for e in p.evidence:
                if e not in evidence:
                    evidence.append(e)
        return base.model_copy(update={
            "confidence": sum(p.confidence for p in group) / len(group),
            "significance": max(p.significance for p in group),
            "evidence": evidence,
            "description": "Combined pattern: " + " and ".join(p.type for p in group),
        })


def _count_rises(points: List[TrajectoryPoint], min_step: float) -> int:
    return sum(1 for a, b in zip(points, points[1:]) if b.mood_score - a.mood_score > min_step)
