#!/usr/bin/env python3
"""
Relationship Context Analyzer
Reads relationship dynamics (type, support, intimacy, trust, conflict,
communication style, participant roles, emotional safety) from a conversation.

Keyword hits are substring matches over the lower-cased conversation text.
"""
from typing import Any, Dict, Iterable, List

from schemas.conversation import ConversationData
from schemas.mood import EmotionalSafety, ParticipantDynamics, RelationshipDynamics
from mood_engine.logs import get_logger

logger = get_logger(__name__)

INTIMACY_KEYWORDS = ["love", "scared", "vulnerable", "personal", "trust", "safe space", "mean everything"]
PROFESSIONAL_KEYWORDS = ["project", "timeline", "update", "review", "follow up"]
VULNERABLE_EMOTIONS = ["scared", "vulnerable", "trusting", "loved", "ashamed"]

SUPPORT_KEYWORDS = ["here for you", "trust me", "listening", "helps", "support", "been there for me", "helping me"]
SUPPORT_CONFLICT_KEYWORDS = ["overreacting", "dismiss", "can't believe"]
THERAPEUTIC_SUPPORT_KEYWORDS = ["tell me more", "what these thoughts"]
ACHIEVEMENT_KEYWORDS = ["proud of you", "deserved this", "believing in me", "incredible", "promotion"]

STRONG_TRUST_KEYWORDS = ["trust", "safe", "love you", "nothing will change", "trusting me"]
MODERATE_TRUST_KEYWORDS = ["confidence", "reliable", "listening", "here for you"]
DISTRUST_KEYWORDS = ["judge", "questionable", "react"]
CAUTION_KEYWORDS = ["questionable choices", "not sure how you'll react", "isn't the right time"]

HIGH_CONFLICT_KEYWORDS = ["can't believe", "overreacting", "dismiss", "done trying", "invalidating", "frustrated", "angry"]
MEDIUM_CONFLICT_KEYWORDS = ["disagree", "argue", "upset", "annoyed"]

THERAPEUTIC_TYPE_KEYWORDS = ["tell me more", "thoughts", "process", "realize", "pattern"]
PROFESSIONAL_TYPE_KEYWORDS = ["project", "timeline", "update", "review"]
ROMANTIC_KEYWORDS = ["love you", "mean everything"]

STYLE_VULNERABILITY = ["scared", "ashamed", "mistake", "struggling"]
STYLE_SUPPORT = ["listening", "courage", "here for you", "hear you", "takes courage"]
STYLE_CONFLICT = ["dismiss", "overreacting", "defensive"]
STYLE_THERAPEUTIC = ["tell me more", "realize", "pattern"]

SAFETY_KEYWORDS = ["love you", "nothing will change", "trust", "safe", "we all make mistakes", "how we learn and grow"]
JUDGMENT_KEYWORDS = ["judge", "questionable", "overreacting"]
VALIDATION_KEYWORDS = ["courage", "hear you", "understand", "trusting me", "takes courage"]
SAFETY_SUPPORT_KEYWORDS = ["here for you", "proud of you", "believing in me", "means everything", "support"]
TRUST_ASSURANCE_KEYWORDS = ["trust me with whatever", "can trust me", "trust me", "nothing will change"]

SUPPORTIVE_ROLES = ("supporter", "emotional_leader")


def _hits(text: str, keywords: Iterable[str]) -> int:
    return sum(1 for k in keywords if k in text)


def _level(score: int, high: int, medium: int) -> str:
    if score >= high:
        return "high"
    if score >= medium:
        return "medium"
    return "low"


class RelationshipContextAnalyzer:
    """Relationship dynamics over the whole conversation."""

    def analyze_relationship_dynamics(self, conversation: ConversationData) -> RelationshipDynamics:
        logger.debug(
            "Analyzing relationship dynamics",
            extra={
                "conversation_id": conversation.id,
                "participant_count": len(conversation.participants),
                "message_count": len(conversation.messages),
            },
        )
        text = conversation.full_text
        intimacy = self.assess_intimacy_level(conversation, text)
        conflict = self.assess_conflict_level(text)
        details = self.analyze_communication_style(text)

        return RelationshipDynamics(
            type=self.identify_relationship_type(text, intimacy),
            support_level=self.assess_support_level(text),
            intimacy_level=intimacy,
            trust_level=self.assess_trust_level(text),
            conflict_level=conflict,
            conflict_present=conflict != "none",
            communication_style=self.communication_style_summary(details),
            communication_details=details,
            participant_dynamics=self.analyze_participant_dynamics(conversation),
            emotional_safety=self.assess_emotional_safety(conversation, text),
        )

    def assess_intimacy_level(self, conversation: ConversationData, text: str) -> str:
        emotions = [e for p in conversation.participants for e in p.emotional_expressions]
        intimacy = _hits(text, INTIMACY_KEYWORDS)
        professional = _hits(text, PROFESSIONAL_KEYWORDS)
        vulnerable = sum(1 for e in emotions if e in VULNERABLE_EMOTIONS)

        if intimacy >= 3 or vulnerable >= 2:
            return "high"
        if professional >= 2:
            return "low"
        return "medium"

    def assess_support_level(self, text: str) -> str:
        support = _hits(text, SUPPORT_KEYWORDS)
        conflict = _hits(text, SUPPORT_CONFLICT_KEYWORDS)
        therapeutic = _hits(text, THERAPEUTIC_SUPPORT_KEYWORDS)
        achievement = _hits(text, ACHIEVEMENT_KEYWORDS)

        if conflict > support:
            return "negative"
        if support >= 2 or therapeutic >= 1 or achievement >= 2:
            return "high"
        if support >= 1 or achievement >= 1:
            return "medium"
        return "low"

    def assess_trust_level(self, text: str) -> str:
        strong = _hits(text, STRONG_TRUST_KEYWORDS)
        moderate = _hits(text, MODERATE_TRUST_KEYWORDS)
        distrust = _hits(text, DISTRUST_KEYWORDS)
        caution = _hits(text, CAUTION_KEYWORDS)

        # strong trust overrides distrust
        if strong >= 2:
            return "high"
        if caution >= 1 or distrust >= 1:
            return "medium" if (strong >= 1 or moderate >= 1) else "low"
        if strong >= 1 or moderate >= 2:
            return "high"
        return "medium"

    def assess_conflict_level(self, text: str) -> str:
        high = _hits(text, HIGH_CONFLICT_KEYWORDS)
        medium = _hits(text, MEDIUM_CONFLICT_KEYWORDS)

        if high >= 2 or (high >= 1 and medium >= 1):
            return "high"
        if high >= 1 or medium >= 2:
            return "medium"
        if medium >= 1:
            return "low"
        return "none"

    def identify_relationship_type(self, text: str, intimacy: str) -> str:
        if _hits(text, THERAPEUTIC_TYPE_KEYWORDS):
            return "therapeutic"
        if _hits(text, PROFESSIONAL_TYPE_KEYWORDS):
            return "professional"
        if _hits(text, ROMANTIC_KEYWORDS):
            return "romantic"
        return {"high": "close_friend", "medium": "friend"}.get(intimacy, "acquaintance")

    def analyze_communication_style(self, text: str) -> Dict[str, Any]:
        vulnerability = _hits(text, STYLE_VULNERABILITY)
        support = _hits(text, STYLE_SUPPORT)
        conflict = _hits(text, STYLE_CONFLICT)
        therapeutic = _hits(text, STYLE_THERAPEUTIC)

        if conflict > 0:
            safety = "low"
        elif support >= 1:
            safety = "high"
        else:
            safety = "medium"

        return {
            "vulnerability_level": _level(vulnerability, 2, 1),
            "emotional_safety": safety,
            "support_patterns": ["active_listening", "validation"] if support else [],
            "conflict_patterns": ["dismissal", "defensiveness"] if conflict else [],
            "professional_boundaries": therapeutic > 0,
            "guidance_patterns": ["reflective_questioning"] if therapeutic else [],
            "therapeutic_elements": ["insight_facilitation"] if therapeutic else [],
        }

    @staticmethod
    def communication_style_summary(details: Dict[str, Any]) -> str:
        if "reflective_questioning" in details.get("guidance_patterns", []) or details.get("therapeutic_elements"):
            return "reflective"
        if details.get("conflict_patterns"):
            return "conflicting"
        if details.get("professional_boundaries"):
            return "professional"
        return "supportive"

    def analyze_participant_dynamics(self, conversation: ConversationData) -> ParticipantDynamics:
        participants = conversation.participants
        supporter = next((p for p in participants if p.role in SUPPORTIVE_ROLES), None)
        vulnerable = next((p for p in participants if p.role == "vulnerable_sharer"), None)
        mutual = sum(1 for p in participants if p.role == "supporter") > 1

        return ParticipantDynamics(
            emotional_leader=supporter.id if supporter else None,
            primary_supporter=supporter.id if supporter else None,
            vulnerability_exhibitor=vulnerable.id if vulnerable else None,
            support_balance="bidirectional" if mutual else "unidirectional",
            mutual_vulnerability=mutual,
        )

    def assess_emotional_safety(self, conversation: ConversationData, text: str) -> EmotionalSafety:
        safety = _hits(text, SAFETY_KEYWORDS)
        judgment = _hits(text, JUDGMENT_KEYWORDS)
        validation = _hits(text, VALIDATION_KEYWORDS)
        support = _hits(text, SAFETY_SUPPORT_KEYWORDS)
        assurance = _hits(text, TRUST_ASSURANCE_KEYWORDS)
        total = safety + support + validation + assurance * 2

        roles: List[str] = [p.role for p in conversation.participants]
        vulnerable_supported = (
            "vulnerable_sharer" in roles
            and any(r in SUPPORTIVE_ROLES for r in roles)
            and (support > 0 or assurance > 0)
        )

        if vulnerable_supported or total >= 3:
            overall = "high"
        elif judgment > 0 or total >= 1:
            overall = "medium"
        else:
            overall = "low"

        return EmotionalSafety(
            overall=overall,
            acceptance_level=_level(total, 2, 1),
            judgment_risk=_level(judgment, 2, 1),
            validation_present=validation > 0 or support > 0 or assurance > 0,
        )
