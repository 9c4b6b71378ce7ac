#!/usr/bin/env python3
"""
Edge-Case Handler
Flags conversations whose mood score should not be taken at face value.

Complexity, uncertainty, alternative interpretations, edge-case detection,
cultural register, ambiguity, mixed emotions, sarcasm and extreme states.
Nothing here changes a MoodAnalysisResult; every method returns a report.

Keyword checks are substring matches, as in the relationship analyzer.
"""
import re
from typing import Iterable, List, NamedTuple, Optional, Tuple

from schemas.conversation import ConversationData
from schemas.edge_cases import (
    AmbiguityDetection,
    AmbiguitySource,
    AnalysisImpact,
    CommunicationStyleIndicators,
    ComplexityHandlingValidation,
    ComplexityType,
    ConfidenceInterval,
    CulturalConsideration,
    CulturalContextAnalysis,
    DetectedEmotion,
    EdgeCaseDetection,
    EmotionalComplexityAssessment,
    ExtremeStateAnalysis,
    InterpretationConsensus,
    InterpretationOption,
    MixedEmotionHandling,
    MultipleInterpretationOptions,
    SarcasmAnalysis,
    UncertaintyQuantification,
    UncertaintySource,
)
from schemas.mood import MoodAnalysisResult
from mood_engine.emotion.text_utils import clamp
from mood_engine.logs import get_logger

logger = get_logger(__name__)

CULTURAL_PATTERNS = {
    "british_understatement": (0.2, [
        "somewhat challenging", "one manages", "doesn't one", "one mustn't complain",
        "these things happen", "i suppose",
    ]),
    "japanese_indirect": (0.25, [
        "shoganai", "perhaps", "if it's not too much trouble", "one might consider", "you understand",
    ]),
    "high_context": (0.1, ["perhaps", "might", "one could", "if possible", "you know", "well"]),
}
SARCASM_INDICATORS = [
    "fantastic", "perfect", "brilliant", "wonderful", "great", "thrilled", "absolutely",
    "just what i needed", "best use of time",
]
EXTREME_INDICATORS = [
    "absolutely", "completely", "totally", "entirely", "utterly", "literally",
    "worst thing ever", "best thing ever", "ruined my entire", "history of the world",
]
# phrases that add on top of the per-indicator score when written in capitals
EXTREME_PHRASE_BONUS = {
    "WORST THING THAT HAS EVER HAPPENED": 3.0,
    "HISTORY OF THE WORLD": 2.0,
    "LITERALLY RUINED MY ENTIRE EXISTENCE": 3.0,
}
AMBIGUOUS_TERMS = ["interesting", "fine", "okay", "whatever", "sure", "great", "nice", "different"]
VAGUE_PHRASES = ["you know", "these things", "what happened", "after everything"]

MIXED_POSITIVE = ["excited", "happy", "joy", "celebrate", "good", "great", "wonderful"]
MIXED_NEGATIVE = ["terrified", "anxious", "worried", "scared", "bad", "terrible", "awful", "sad"]
CONTRADICTORY_PHRASES = [
    "everything is fine", "really great actually", "fantastic",
    "worst day of my life but hey", "no no, i'm fantastic",
]
DARK_SHIFT_PHRASES = ["dark place", "nothing seems to matter"]

INTERPRETATION_POSITIVE = ["good", "great", "happy", "excited", "wonderful", "fantastic"]
INTERPRETATION_NEGATIVE = ["bad", "terrible", "sad", "angry", "frustrated", "worst"]

DIRECT_WORDS = ["directly", "clearly", "explicitly", "exactly", "specifically", "obviously"]
INDIRECT_WORDS = ["perhaps", "maybe", "possibly", "might", "could", "somewhat"]
FORMAL_WORDS = ["furthermore", "consequently", "therefore", "respectively", "indeed"]
INFORMAL_WORDS = ["yeah", "gonna", "wanna", "kinda", "sorta"]
EXPRESSIVE_WORDS = ["amazing", "terrible", "wonderful", "awful", "fantastic", "horrible"]
NEUTRAL_WORDS = ["okay", "fine", "alright", "decent", "average"]

# emotion -> (keywords, intensity per hit, mood value)
EMOTION_PATTERNS = {
    "joy": (["excited", "happy", "celebrate", "thrilled"], 1.2, 8.0),
    "anxiety": (["terrified", "worried", "scared", "nervous"], 1.1, 3.0),
    "sadness": (["sad", "depressed", "down", "blue"], 1.0, 2.0),
    "anger": (["angry", "mad", "furious", "annoyed"], 1.3, 2.5),
}

MINOR_TRIGGERS = ["coffee was cold", "meeting"]
EXTREME_RESPONSES = ["DEVASTATED", "RUINED MY ENTIRE EXISTENCE"]

COMPLEXITY_WEIGHTS = {
    "mixed_emotions": 0.3,
    "contradictory_signals": 0.25,
    "temporal_inconsistency": 0.2,
    "cultural_nuance": 0.15,
    "contextual_ambiguity": 0.1,
}

EXTREME_DETECTION = 8.0
EXTREME_HIGH = 10.0
EXTREME_CRITICAL = 12.0
EXTREME_REVIEW = 9.0
EXTREME_MAX = 15.0
SARCASM_DETECTION = 0.7
IRONY_DETECTION = 0.6
INTERVAL_HALF_WIDTH = 3.0
MIN_CONTEXT_WORDS = 20


class _Signal(NamedTuple):
    detected: bool
    severity: str = "low"
    confidence: float = 0.0
    description: str = ""
    evidence: Tuple[str, ...] = ()


class _Source(NamedTuple):
    detected: bool
    impact: float
    description: str
    suggestions: List[str]


def _present(text: str, terms: Iterable[str]) -> List[str]:
    return [t for t in terms if t in text]


def _lower_text(conversation: ConversationData) -> str:
    return conversation.full_text


def _raw_text(conversation: ConversationData) -> str:
    return " ".join(m.content for m in conversation.messages)


def _balance(text: str, plus: List[str], minus: List[str]) -> float:
    return clamp(0.5 + (len(_present(text, plus)) - len(_present(text, minus))) * 0.1)


class EdgeCaseHandler:
    """Reports on complexity and reliability; never alters scores."""

    # ---- complexity ----

    def assess_emotional_complexity(self, conversation: ConversationData) -> EmotionalComplexityAssessment:
        signals = {
            "mixed_emotions": self._mixed_emotions(conversation),
            "contradictory_signals": self._contradictory_signals(conversation),
            "temporal_inconsistency": self._temporal_inconsistency(conversation),
            "cultural_nuance": self._cultural_complexity(conversation),
            "contextual_ambiguity": self._contextual_ambiguity(conversation),
        }

        types: List[ComplexityType] = []
        total = 0.0
        for kind, sig in signals.items():
            if not sig.detected:
                continue
            types.append(ComplexityType(
                type=kind,
                severity=sig.severity,
                confidence=sig.confidence,
                description=sig.description,
                evidence=list(sig.evidence),
            ))
            total += COMPLEXITY_WEIGHTS[kind]

        score = min(1.0, total)
        if types:
            avg = sum(t.confidence for t in types) / len(types)
            assessment_confidence = max(0.3, avg - len(types) * 0.1)
        else:
            assessment_confidence = 0.9

        if score < 0.3:
            approach = "standard_analysis"
        elif score < 0.6:
            approach = "multi_interpretation"
        elif score < 0.8:
            approach = "uncertainty_flagging"
        else:
            approach = "human_review"

        logger.debug(
            "Complexity assessed",
            extra={"conversation_id": conversation.id, "complexity_score": score, "approach": approach},
        )
        return EmotionalComplexityAssessment(
            complexity_score=score,
            complexity_types=types,
            assessment_confidence=clamp(assessment_confidence),
            recommended_approach=approach,
        )

    # ---- uncertainty ----

    def quantify_uncertainty(self, conversation: ConversationData, mood_score: float) -> UncertaintyQuantification:
        sources: List[UncertaintySource] = []
        total = 0.0

        candidates = [
            ("insufficient_context", self._context_sufficiency(conversation)),
            ("conflicting_signals", self._source_from(
                self._contradictory_signals(conversation), 0.4,
                ["Analyze context more carefully", "Consider sarcasm or irony"],
            )),
            ("cultural_ambiguity", self._source_from(
                self._cultural_complexity(conversation), 0.3,
                ["Consider cultural communication patterns", "Adjust interpretation for cultural context"],
            )),
            ("temporal_inconsistency", self._source_from(
                self._temporal_inconsistency(conversation), 0.35,
                ["Analyze temporal emotional patterns", "Consider mood volatility"],
            )),
            ("extreme_emotional_state", self._extreme_state_source(conversation)),
        ]
        for name, src in candidates:
            if not src.detected:
                continue
            sources.append(UncertaintySource(
                source=name,
                impact=clamp(src.impact),
                description=src.description,
                mitigation_suggestions=src.suggestions,
            ))
            total += src.impact

        level = min(1.0, total)
        half_width = level * INTERVAL_HALF_WIDTH
        interval = ConfidenceInterval(
            low=clamp(mood_score - half_width, 0.0, 10.0),
            high=clamp(mood_score + half_width, 0.0, 10.0),
            confidence=max(0.1, 1 - level),
        )

        logger.debug(
            "Uncertainty quantified",
            extra={"conversation_id": conversation.id, "uncertainty_level": level, "sources": len(sources)},
        )
        return UncertaintyQuantification(
            uncertainty_level=level,
            uncertainty_sources=sources,
            confidence_interval=interval,
            reliability_score=max(0.0, 1 - level),
        )

    # ---- interpretations ----

    def generate_multiple_interpretations(self, conversation: ConversationData) -> MultipleInterpretationOptions:
        primary = self._primary_interpretation(conversation)
        alternatives: List[InterpretationOption] = []

        sarcasm = self.analyze_sarcasm(conversation)
        if sarcasm.sarcasm_detected:
            alternatives.append(InterpretationOption(
                mood_score=clamp(10 - primary.mood_score, 0.0, 10.0),
                confidence=sarcasm.sarcasm_confidence,
                rationale="Interpretation accounting for detected sarcasm",
                supporting_evidence=sarcasm.contextual_clues,
                probability_weight=0.3,
            ))

        cultural = self.analyze_cultural_context(conversation)
        if cultural.cultural_context == "high_context":
            alternatives.append(InterpretationOption(
                mood_score=primary.mood_score * 0.8,
                confidence=cultural.cultural_confidence,
                rationale="Interpretation adjusted for high-context cultural communication",
                supporting_evidence=[c.aspect for c in cultural.cultural_considerations],
                probability_weight=0.25,
            ))

        if not alternatives:
            alternatives.append(InterpretationOption(
                mood_score=5.0,
                confidence=0.4,
                rationale="Neutral interpretation due to ambiguous signals",
                supporting_evidence=["contextual_ambiguity"],
                probability_weight=0.2,
            ))

        return MultipleInterpretationOptions(
            primary_interpretation=primary,
            alternative_interpretations=alternatives,
            interpretation_consensus=self.interpretation_consensus(primary, alternatives),
        )

    @staticmethod
    def interpretation_consensus(
        primary: InterpretationOption, alternatives: List[InterpretationOption]
    ) -> InterpretationConsensus:
        if not alternatives:
            return InterpretationConsensus(agreement=1.0, divergence=0.0, recommended_action="use_primary")
        scores = [primary.mood_score] + [a.mood_score for a in alternatives]
        spread = max(scores) - min(scores)
        agreement = max(0.0, 1 - spread / 10)
        if agreement > 0.8:
            action = "use_primary"
        elif agreement > 0.5:
            action = "weighted_average"
        else:
            action = "flag_for_review"
        return InterpretationConsensus(agreement=agreement, divergence=clamp(spread / 10), recommended_action=action)

    def _primary_interpretation(self, conversation: ConversationData) -> InterpretationOption:
        text = _lower_text(conversation)
        pos = _present(text, INTERPRETATION_POSITIVE)
        neg = _present(text, INTERPRETATION_NEGATIVE)
        diff = len(pos) - len(neg)
        return InterpretationOption(
            mood_score=clamp(5 + diff * 0.5, 0.0, 10.0),
            confidence=min(0.9, 0.5 + abs(diff) * 0.1),
            rationale=f"Analysis based on {len(pos)} positive and {len(neg)} negative indicators",
            supporting_evidence=pos + neg,
        )

    # ---- edge-case detection ----

    def detect_edge_cases(self, conversation: ConversationData) -> EdgeCaseDetection:
        """First matching class wins: extreme, sarcasm, cultural, contradictory, ambiguous."""
        extreme = self.extreme_emotion_score(_raw_text(conversation))
        if extreme > EXTREME_DETECTION:
            severity = "critical" if extreme > EXTREME_CRITICAL else "high" if extreme > EXTREME_HIGH else "medium"
            return EdgeCaseDetection(
                is_edge_case=True,
                edge_case_type="extreme_emotion",
                severity=severity,
                detection_confidence=min(0.95, extreme / EXTREME_MAX),
                handling_strategy="human_escalation" if severity == "critical" else "enhanced_analysis",
                additional_context_needed=["emotional_stability_history", "trigger_events"],
            )

        sarcasm = self.sarcasm_score(_lower_text(conversation))
        if sarcasm > SARCASM_DETECTION:
            return EdgeCaseDetection(
                is_edge_case=True,
                edge_case_type="sarcasm_heavy",
                severity="high" if sarcasm > 0.9 else "medium",
                detection_confidence=sarcasm,
                handling_strategy="enhanced_analysis",
                additional_context_needed=["tone_indicators", "relationship_context"],
            )

        checks = [
            ("cultural_specific", self._cultural_complexity(conversation), "enhanced_analysis",
             ["cultural_background", "communication_style_preferences"]),
            ("contradictory_signals", self._contradictory_signals(conversation), "multi_interpretation",
             ["context_clarification", "emotional_state_history"]),
            ("ambiguous_context", self._contextual_ambiguity(conversation), "uncertainty_flagging",
             ["background_information", "previous_conversations"]),
        ]
        for edge_type, sig, strategy, needed in checks:
            if sig.detected:
                return EdgeCaseDetection(
                    is_edge_case=True,
                    edge_case_type=edge_type,
                    severity=sig.severity,
                    detection_confidence=sig.confidence,
                    handling_strategy=strategy,
                    additional_context_needed=needed,
                )

        return EdgeCaseDetection(is_edge_case=False)

    # ---- cultural context ----

    def analyze_cultural_context(self, conversation: ConversationData) -> CulturalContextAnalysis:
        text = _lower_text(conversation)
        high_context = min(1.0, 0.15 * len(_present(text, CULTURAL_PATTERNS["high_context"][1])))
        directness = _balance(text, DIRECT_WORDS, INDIRECT_WORDS)
        formality = _balance(text, FORMAL_WORDS, INFORMAL_WORDS)
        expressiveness = _balance(text, EXPRESSIVE_WORDS, NEUTRAL_WORDS)

        if high_context > 0.7:
            context = "high_context"
        elif directness > 0.8:
            context = "low_context"
        elif directness > 0.6:
            context = "western_direct"
        elif high_context > 0.4:
            context = "eastern_indirect"
        else:
            context = "mixed"

        consistency = 1 - abs(high_context - (1 - directness))
        confidence = max(0.3, consistency * 0.8 + formality * 0.2)

        considerations: List[CulturalConsideration] = []
        if context == "high_context":
            considerations.append(CulturalConsideration(
                aspect="indirect_communication",
                impact="high",
                description="Communication relies heavily on implied meaning",
                adjustment_recommendation="Look for subtle emotional cues and context",
            ))
        if directness < 0.4:
            considerations.append(CulturalConsideration(
                aspect="indirect_expression",
                impact="medium",
                description="Emotions may be expressed indirectly",
                adjustment_recommendation="Consider underlying emotional states beyond explicit words",
            ))

        return CulturalContextAnalysis(
            cultural_context=context,
            cultural_confidence=clamp(confidence),
            cultural_considerations=considerations,
            communication_style_indicators=CommunicationStyleIndicators(
                directness=directness,
                emotional_expressiveness=expressiveness,
                implicitness=high_context,
                formality_level=formality,
            ),
        )

    # ---- ambiguity ----

    def detect_ambiguity(self, conversation: ConversationData) -> AmbiguityDetection:
        text = _lower_text(conversation)
        sources: List[AmbiguitySource] = []

        ambiguous = _present(text, AMBIGUOUS_TERMS)
        if len(ambiguous) > 1:
            sources.append(AmbiguitySource(
                source="linguistic",
                severity=clamp(len(ambiguous) / 10),
                description="Ambiguous terms detected in conversation",
                clarification_needed=["Define ambiguous terms", "Request specific examples"],
            ))

        sufficiency = self._context_sufficiency(conversation)
        if sufficiency.detected:
            sources.append(AmbiguitySource(
                source="contextual",
                severity=clamp(sufficiency.impact),
                description=sufficiency.description,
                clarification_needed=["background information", "situational context"],
            ))

        mixed = self._mixed_emotions(conversation)
        if mixed.detected:
            sources.append(AmbiguitySource(
                source="emotional",
                severity=mixed.confidence,
                description=mixed.description,
                clarification_needed=["emotional context", "feeling prioritization"],
            ))

        level = min(1.0, sum(s.severity for s in sources) / 3)

        strategies: List[str] = []
        kinds = {s.source for s in sources}
        if "linguistic" in kinds:
            strategies.append("multiple_interpretation_analysis")
        if "contextual" in kinds:
            strategies.append("context_clarification_request")
        if "emotional" in kinds:
            strategies.append("emotional_state_verification")
        if not strategies:
            strategies.append("standard_analysis_proceed")

        if level > 0.7:
            action = "request_clarification"
        elif level > 0.5:
            action = "multi_interpretation_analysis"
        else:
            action = "proceed_with_caution"

        return AmbiguityDetection(
            ambiguity_level=level,
            ambiguity_sources=sources,
            resolution_strategies=strategies,
            analysis_impact=AnalysisImpact(
                confidence_reduction=level * 0.5,
                score_uncertainty=level * 2,
                recommended_action=action,
            ),
        )

    # ---- mixed emotions ----

    def handle_mixed_emotions(self, conversation: ConversationData) -> MixedEmotionHandling:
        text = _lower_text(conversation)
        emotions: List[DetectedEmotion] = []
        for emotion, (keywords, per_hit, _) in EMOTION_PATTERNS.items():
            hits = len(_present(text, keywords))
            if hits:
                emotions.append(DetectedEmotion(
                    emotion=emotion,
                    intensity=hits * per_hit,
                    confidence=min(0.9, hits * 0.3),
                ))

        conflict = 0.0
        if len(emotions) >= 2:
            total = sum(e.intensity for e in emotions)
            peak = max(e.intensity for e in emotions)
            conflict = min(1.0, (total - peak) / peak)

        if conflict < 0.3:
            strategy = "primary_emotion_focus"
        elif conflict < 0.6:
            strategy = "weighted_emotional_average"
        else:
            strategy = "contextual_priority_assessment"

        return MixedEmotionHandling(
            detected_emotions=emotions,
            emotional_conflict=conflict,
            resolution_strategy=strategy,
            adjusted_mood_score=self._adjusted_mood_score(emotions, strategy),
            uncertainty=min(1.0, conflict * 0.8),
        )

    @staticmethod
    def _adjusted_mood_score(emotions: List[DetectedEmotion], strategy: str) -> float:
        if not emotions:
            return 5.0
        values = {name: pattern[2] for name, pattern in EMOTION_PATTERNS.items()}
        if strategy == "primary_emotion_focus":
            primary = max(emotions, key=lambda e: e.intensity)
            return values.get(primary.emotion, 5.0)
        weight = sum(e.intensity * e.confidence for e in emotions)
        if weight == 0:
            return 5.0
        weighted = sum(values.get(e.emotion, 5.0) * e.intensity * e.confidence for e in emotions)
        return clamp(weighted / weight, 0.0, 10.0)

    # ---- sarcasm ----

    def analyze_sarcasm(self, conversation: ConversationData) -> SarcasmAnalysis:
        """Report only; polarity reversal is a recommendation, never applied here."""
        raw = _raw_text(conversation)
        score = self.sarcasm_score(raw.lower())
        detected = score > SARCASM_DETECTION
        return SarcasmAnalysis(
            sarcasm_detected=detected,
            sarcasm_confidence=score,
            irony_detected=score > IRONY_DETECTION,
            irony_confidence=score * 0.9,
            contextual_clues=self.sarcasm_clues(raw),
            adjustment_recommendation="reverse_sentiment_polarity" if detected else "no_adjustment_needed",
        )

    @staticmethod
    def sarcasm_score(text: str) -> float:
        score = 0.15 * len(_present(text, SARCASM_INDICATORS))
        if "fantastic" in text and "worst" in text:
            score += 0.3
        if "perfect" in text and "ruined" in text:
            score += 0.3
        if "thrilled" in text and "3 hours" in text:
            score += 0.2
        if "absolutely" in text and ("worst" in text or "ruined" in text):
            score += 0.2
        return min(1.0, score)

    @staticmethod
    def sarcasm_clues(raw: str) -> List[str]:
        lower = raw.lower()
        clues: List[str] = []
        if "\U0001F644" in raw:
            clues.append("eye_roll_emoji")
        if "\U0001F44F" in raw:
            clues.append("clapping_emoji")
        if "fantastic" in lower and "worst" in lower:
            clues.append("tone_contradiction")
        if "thrilled" in lower and "3 hours" in lower:
            clues.append("exaggerated_enthusiasm")
        return clues

    # ---- extreme states ----

    def analyze_extreme_state(self, conversation: ConversationData) -> ExtremeStateAnalysis:
        raw = _raw_text(conversation)
        intensity = self.extreme_emotion_score(raw)
        return ExtremeStateAnalysis(
            extreme_emotion_detected=intensity > EXTREME_DETECTION,
            emotion_type=self._extreme_type(raw),
            intensity_level=intensity,
            stability_assessment=self._stability(conversation),
            handling_approach="human_review_required" if intensity > EXTREME_REVIEW else "careful_analysis",
            confidence_adjustment=max(0.3, 1 - intensity / EXTREME_MAX),
        )

    @staticmethod
    def extreme_emotion_score(raw: str) -> float:
        """Capitalised intensifiers, capital letters and exclamation marks, capped at 15."""
        score = 1.5 * sum(1 for ind in EXTREME_INDICATORS if ind.upper() in raw)
        score += len(re.findall(r"[A-Z]", raw)) * 0.1
        score += raw.count("!") * 0.5
        for phrase, bonus in EXTREME_PHRASE_BONUS.items():
            if phrase in raw:
                score += bonus
        return min(EXTREME_MAX, score)

    @staticmethod
    def _extreme_type(raw: str) -> str:
        if "DEVASTATED" in raw or "WORST" in raw:
            return "extreme_distress"
        if "THRILLED" in raw or "BEST" in raw:
            return "extreme_joy"
        if "FURIOUS" in raw or "ANGRY" in raw:
            return "extreme_anger"
        return "extreme_general"

    @staticmethod
    def _stability(conversation: ConversationData) -> float:
        contents = [m.content for m in conversation.messages]
        if len(contents) < 2:
            return 0.5
        minor = any(_present(c.lower(), MINOR_TRIGGERS) for c in contents)
        extreme = any(_present(c, EXTREME_RESPONSES) for c in contents)
        return 0.2 if minor and extreme else 0.7

    # ---- validation ----

    def validate_complexity_handling(
        self,
        conversation: ConversationData,
        mood: MoodAnalysisResult,
        complexity: Optional[EmotionalComplexityAssessment] = None,
    ) -> ComplexityHandlingValidation:
        complexity = complexity or self.assess_emotional_complexity(conversation)
        improved = complexity.complexity_score > 0.5
        accuracy = min(0.3, complexity.complexity_score * 0.4) if improved else 0.0
        confidence = (0.2 if mood.confidence < 0.8 else 0.05) if improved else 0.0
        effectiveness = complexity.assessment_confidence * (
            0.6 if complexity.recommended_approach == "standard_analysis" else 0.8
        )
        return ComplexityHandlingValidation(
            improvement_detected=improved,
            accuracy_improvement=accuracy,
            confidence_improvement=confidence,
            handling_effectiveness=effectiveness,
        )

    # ---- signal helpers ----

    def _mixed_emotions(self, conversation: ConversationData) -> _Signal:
        text = _lower_text(conversation)
        pos = _present(text, MIXED_POSITIVE)
        neg = _present(text, MIXED_NEGATIVE)
        if not (pos and neg):
            return _Signal(False, description="No mixed emotions detected")
        n = len(pos) + len(neg)
        return _Signal(
            True,
            severity="high" if n > 3 else "medium",
            confidence=min(0.9, n * 0.15),
            description="Multiple competing emotions detected in conversation",
            evidence=pos + neg,
        )

    def _contradictory_signals(self, conversation: ConversationData) -> _Signal:
        raw = _raw_text(conversation)
        text = raw.lower()
        found = _present(text, CONTRADICTORY_PHRASES)
        smiling_worst = "\U0001F60A" in raw and "worst" in text
        if not (found or smiling_worst):
            return _Signal(False, severity="medium", description="No contradictions detected")
        return _Signal(
            True,
            severity="high" if len(found) > 1 else "medium",
            confidence=0.8,
            description="Contradictory emotional signals detected",
            evidence=found,
        )

    def _temporal_inconsistency(self, conversation: ConversationData) -> _Signal:
        contents = [m.content.lower() for m in conversation.messages]
        shifted = any(
            "positive" in prev and _present(curr, DARK_SHIFT_PHRASES)
            for prev, curr in zip(contents, contents[1:])
        )
        if not shifted:
            return _Signal(False, description="No temporal inconsistencies")
        return _Signal(
            True,
            severity="high",
            confidence=0.85,
            description="Temporal emotional inconsistency detected",
            evidence=["timeline_emotional_shift"],
        )

    def _cultural_complexity(self, conversation: ConversationData) -> _Signal:
        text = _lower_text(conversation)
        score = 0.0
        evidence: List[str] = []
        for family, (weight, patterns) in CULTURAL_PATTERNS.items():
            for p in _present(text, patterns):
                score += weight
                evidence.append(f"{family}: {p}")
        detected = score > 0.2
        severity = "high" if score > 0.5 else "medium" if score > 0.3 else "low"
        return _Signal(
            detected,
            severity=severity,
            confidence=min(0.9, score * 2),
            description="Cultural communication patterns detected" if detected else "No cultural complexity detected",
            evidence=evidence,
        )

    def _contextual_ambiguity(self, conversation: ConversationData) -> _Signal:
        text = _lower_text(conversation)
        ambiguous = _present(text, AMBIGUOUS_TERMS)
        vague = _present(text, VAGUE_PHRASES)
        if not (len(ambiguous) > 2 or len(vague) > 1):
            return _Signal(False, severity="medium", description="Context is clear")
        return _Signal(
            True,
            severity="high" if len(ambiguous) + len(vague) > 4 else "medium",
            confidence=0.7,
            description="Contextual ambiguity detected",
            evidence=ambiguous + vague,
        )

    @staticmethod
    def _context_sufficiency(conversation: ConversationData) -> _Source:
        words = sum(len(m.content.split(" ")) for m in conversation.messages)
        insufficient = words < MIN_CONTEXT_WORDS or len(conversation.messages) < 2
        if not insufficient:
            return _Source(False, 0.0, "Adequate context available", [])
        return _Source(
            True,
            max(0.3, 1 - words / 50),
            "Insufficient context for reliable mood analysis",
            ["Request additional context", "Ask clarifying questions"],
        )

    @staticmethod
    def _source_from(sig: _Signal, impact: float, suggestions: List[str]) -> _Source:
        if not sig.detected:
            return _Source(False, 0.0, sig.description, [])
        return _Source(True, impact, sig.description, suggestions)

    @staticmethod
    def _extreme_state_source(conversation: ConversationData) -> _Source:
        upper = _raw_text(conversation).upper()
        indicator_words = sum(
            1 for word in upper.split(" ") if any(ind.upper() in word for ind in EXTREME_INDICATORS)
        )
        raw = _raw_text(conversation)
        caps = len(re.findall(r"[A-Z]", raw))
        detected = indicator_words > 2 or caps > 50 or raw.count("!") > 3
        if not detected:
            return _Source(False, 0.0, "Normal emotional expression", [])
        return _Source(
            True,
            0.4,
            "Extreme emotional state indicators detected",
            ["Use conservative confidence levels", "Consider emotional volatility"],
        )
