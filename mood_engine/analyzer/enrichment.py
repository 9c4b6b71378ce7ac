#!/usr/bin/env python3
"""
Optional enrichment of a base MoodAnalysisResult.

enrich() is pure: it never changes the score, the confidence or the factors,
and returns a new result with relationship dynamics, contextual factors
(triggers, significance, stress / life-event / avoidance groups, summary) and,
when given, the subject's baseline snapshot attached.
"""
from typing import List, Optional

from schemas.baseline import EmotionalBaseline
from schemas.conversation import ConversationData
from schemas.mood import ContextualFactors, MoodAnalysisResult, RelationshipDynamics
from mood_engine.analyzer import context
from mood_engine.analyzer.relationship import RelationshipContextAnalyzer
from mood_engine.emotion.lexicon import Lexicon, load_lexicon
from mood_engine.emotion.text_utils import find_phrases, tokenize
from mood_engine.logs import get_logger

logger = get_logger(__name__)

MAX_THEMES = 5


def detect_themes(conversation: ConversationData, lexicon: Lexicon) -> List[str]:
    """Emotion labels, then "group:category" labels (e.g. "stress:emotional") found in the text."""
    text = conversation.full_text
    themes = lexicon.emotions_in(tokenize(text))
    groups = {
        "coping": lexicon.coping,
        "stress": {k: list(v) for k, v in lexicon.stress.items()},
        "support": lexicon.support,
        "growth": lexicon.growth,
    }
    for group, categories in groups.items():
        for category, phrases in categories.items():
            if find_phrases(text, phrases):
                themes.append(f"{group}:{category}")
    return themes[:MAX_THEMES]


def contextual_factors(
    conversation: ConversationData,
    lexicon: Optional[Lexicon] = None,
    base: Optional[MoodAnalysisResult] = None,
    dynamics: Optional[RelationshipDynamics] = None,
) -> ContextualFactors:
    """
    Context summary for one conversation.

    `base` adds the score-driven significance rules and the confidence boost;
    `dynamics` feeds the summary's climate and supportive elements.
    """
    lexicon = lexicon or load_lexicon()
    authors = {m.author_id for m in conversation.messages}
    span = (conversation.end_time - conversation.start_time).total_seconds() / 60
    triggers = context.identify_triggers(conversation)
    significance = context.contextual_significance(conversation, triggers, base)

    logger.debug(
        "Contextual factors identified",
        extra={"conversation_id": conversation.id, "triggers": triggers, "significance": significance},
    )
    return ContextualFactors(
        relationship_type=conversation.relationship_type,
        conversation_type=conversation.context.conversation_type if conversation.context else None,
        participant_count=max(len(conversation.participants), len(authors)),
        message_count=len(conversation.messages),
        duration_minutes=max(0.0, span),
        themes=detect_themes(conversation, lexicon),
        primary_triggers=triggers,
        contextual_significance=significance,
        primary_context_type=context.primary_context_type(conversation, triggers),
        stress_factors=context.stress_factors(conversation),
        life_event_factors=context.life_event_factors(conversation),
        avoidance_factors=context.avoidance_factors(conversation),
        summary=context.context_summary(conversation, triggers, dynamics),
        confidence=context.context_confidence(conversation, triggers, base),
    )


def enrich(
    base: MoodAnalysisResult,
    conversation: ConversationData,
    baseline: Optional[EmotionalBaseline] = None,
    lexicon: Optional[Lexicon] = None,
    relationship_analyzer: Optional[RelationshipContextAnalyzer] = None,
) -> MoodAnalysisResult:
    """Return `base` with relationship dynamics, contextual factors and baseline attached."""
    relationship_analyzer = relationship_analyzer or RelationshipContextAnalyzer()
    dynamics = relationship_analyzer.analyze_relationship_dynamics(conversation)
    update = {
        "relationship_dynamics": dynamics,
        "contextual_factors": contextual_factors(conversation, lexicon, base, dynamics),
    }
    if baseline is not None:
        update["emotional_baseline"] = baseline

    logger.debug("Enriched analysis", extra={"conversation_id": conversation.id, "with_baseline": baseline is not None})
    return base.model_copy(update=update)
