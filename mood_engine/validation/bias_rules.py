#!/usr/bin/env python3
"""
Bias attribution rules.

A rule fires on a (conversation, human record) pair only when its text cue
fires on the conversation AND the human rater tagged a corroborating factor.
Rules are evaluated in order; each firing adds the pair to that bias type.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from schemas.mood import ScoredConversation
from schemas.validation import HumanValidationRecord
from mood_engine.emotion.cues import detect_defensive, detect_minimization, detect_repetition, detect_sarcasm

FALLBACK_BIAS = "emotional_complexity"
FALLBACK_DESCRIPTION = "Algorithm shows systematic bias in handling emotional complexity"
FALLBACK_RECOMMENDATION = "Enhance mixed-emotion processing capabilities"


@dataclass(frozen=True)
class BiasRule:
    bias_type: str
    # fires on message text; None means the rule looks at the analysis instead
    text_detector: Optional[Callable[[str], bool]]
    human_tags: Tuple[str, ...]
    description: str
    recommendation: str
    algorithm_enhancement: str = "Enhance emotional complexity processing"
    training_data: str = "Enhance training data with emotional complexity examples"
    validation_process: str = "Improve emotional pattern validation"
    descriptor: Optional[str] = field(default=None)

    def algorithmic_cue(self, scored: ScoredConversation) -> bool:
        if self.descriptor is not None and self.descriptor in scored.analysis.descriptors:
            return True
        if self.text_detector is None:
            return False
        return any(self.text_detector(m.content) for m in scored.conversation.messages)

    def human_tag(self, record: HumanValidationRecord) -> bool:
        """Substring match of any tag against the rater's factor list."""
        return any(tag in f.lower() for f in record.emotional_factors for tag in self.human_tags)

    def fires(self, scored: ScoredConversation, record: HumanValidationRecord) -> bool:
        return self.algorithmic_cue(scored) and self.human_tag(record)


DEFAULT_BIAS_RULES: List[BiasRule] = [
    BiasRule(
        bias_type="emotional_minimization",
        text_detector=detect_minimization,
        human_tags=("minimization", "suppression"),
        description="Algorithm fails to detect underlying distress when users minimize their emotions",
        recommendation=(
            "Implement minimization language detection algorithms and weight minimizing phrases "
            "as emotional suppression indicators"
        ),
        algorithm_enhancement="Implement advanced minimization language detection algorithms",
        training_data=(
            "Expand training dataset with minimization language examples and emotional suppression patterns"
        ),
        validation_process="Enhance minimization pattern detection and emotional suppression assessment",
    ),
    BiasRule(
        bias_type="sarcasm_detection_failure",
        text_detector=detect_sarcasm,
        human_tags=("sarcasm", "masking"),
        description="Algorithm misinterprets sarcastic expressions as neutral or positive sentiment",
        recommendation=(
            "Develop contextual sarcasm detection using sentiment-context mismatch analysis "
            "and cultural linguistic patterns"
        ),
        algorithm_enhancement="Develop contextual sarcasm detection with sentiment-context mismatch analysis",
        training_data="Include sarcasm detection examples with cultural and contextual variations",
        validation_process="Improve sarcasm identification and sentiment-context mismatch validation",
    ),
    BiasRule(
        bias_type="repetitive_pattern_blindness",
        text_detector=detect_repetition,
        human_tags=("repetitive", "denial"),
        description="Algorithm misses emotional distress indicators in repetitive reassurance-seeking language",
        recommendation=(
            "Add repetitive language pattern recognition to identify emotional overwhelm "
            "through linguistic repetition analysis"
        ),
        algorithm_enhancement="Add repetitive language pattern recognition systems",
        training_data="Add repetitive reassurance-seeking patterns and emotional overwhelm examples",
        validation_process="Strengthen repetitive language analysis and emotional overwhelm indicators",
    ),
    BiasRule(
        bias_type="mixed_emotion_oversimplification",
        text_detector=None,
        descriptor="mixed",
        human_tags=("conflict", "complex"),
        description="Algorithm oversimplifies complex mixed emotional states into single emotions",
        recommendation=(
            "Enhance mixed-emotion processing with conflict detection algorithms "
            "and multi-dimensional emotion scoring"
        ),
        algorithm_enhancement="Enhance mixed-emotion processing with conflict detection algorithms",
        training_data="Include complex mixed-emotion scenarios with conflict overlays",
        validation_process="Develop complex emotion conflict validation and multi-dimensional assessment",
    ),
    BiasRule(
        bias_type="defensive_language_blindness",
        text_detector=detect_defensive,
        human_tags=("defensive", "resistance"),
        description="Algorithm fails to recognize defensive language as indicator of emotional overwhelm",
        recommendation=(
            "Implement defensive language detection patterns and weight independence assertions "
            "as emotional isolation indicators"
        ),
        algorithm_enhancement=(
            "Implement defensive language detection patterns and emotional isolation indicators"
        ),
        training_data="Add defense mechanism examples with resistance patterns and emotional masking",
        validation_process="Enhance defensive pattern detection and isolation tendency assessment",
    ),
]
