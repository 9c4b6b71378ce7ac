"""
Test builders for conversations, analyses and human ratings.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.conversation import ConversationContext, ConversationData, ConversationMessage, Participant
from schemas.mood import MoodAnalysisResult, MoodFactor, PRIMARY_FACTOR_TYPES, ScoredConversation
from schemas.validation import HumanValidationRecord, ValidatorCredentials
from mood_engine.config import DEFAULT_WEIGHTS

T0 = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)  # a Monday morning


def make_conversation(
    texts: Sequence[str],
    conv_id: str = "conv-1",
    authors: Sequence[str] = ("alice", "bob"),
    start: datetime = T0,
    gap_seconds: float = 30,
    relationship_type: Optional[str] = None,
    conversation_type: Optional[str] = None,
    roles: Optional[dict] = None,
) -> ConversationData:
    """Messages alternate between `authors`, `gap_seconds` apart."""
    messages = [
        ConversationMessage(
            id=f"{conv_id}-m{i}",
            author_id=authors[i % len(authors)],
            content=text,
            timestamp=start + timedelta(seconds=gap_seconds * i),
        )
        for i, text in enumerate(texts)
    ]
    roles = roles or {}
    participants = [Participant(id=a, role=roles.get(a, "author")) for a in authors]
    context = None
    if relationship_type or conversation_type:
        context = ConversationContext(relationship_type=relationship_type, conversation_type=conversation_type)
    return ConversationData(
        id=conv_id,
        messages=messages,
        participants=participants,
        context=context,
        timestamp=start,
    )


def make_result(
    score: float,
    conv_id: str = "conv-1",
    confidence: float = 0.8,
    descriptors: Optional[List[str]] = None,
    evidence_per_factor: int = 1,
) -> MoodAnalysisResult:
    factors = [
        MoodFactor(
            type=t,
            weight=DEFAULT_WEIGHTS[t],
            evidence=[f"{t} evidence {i}" for i in range(evidence_per_factor)],
            score=score,
        )
        for t in PRIMARY_FACTOR_TYPES
    ]
    return MoodAnalysisResult(
        conversation_id=conv_id,
        score=score,
        descriptors=descriptors or [],
        confidence=confidence,
        factors=factors,
    )


def make_scored(
    score: float,
    conv_id: str = "conv-1",
    texts: Sequence[str] = ("hello there",),
    timestamp: datetime = T0,
    relationship_type: Optional[str] = None,
    confidence: float = 0.8,
    descriptors: Optional[List[str]] = None,
) -> ScoredConversation:
    conversation = make_conversation(texts, conv_id=conv_id, start=timestamp, relationship_type=relationship_type)
    return ScoredConversation(
        conversation=conversation,
        analysis=make_result(score, conv_id=conv_id, confidence=confidence, descriptors=descriptors),
    )


def make_history(scores: Sequence[float], start: datetime = T0, step: timedelta = timedelta(days=1),
                 relationship_type: Optional[str] = None) -> List[ScoredConversation]:
    return [
        make_scored(s, conv_id=f"conv-{i}", timestamp=start + step * i, relationship_type=relationship_type)
        for i, s in enumerate(scores)
    ]


def make_batch(
    algo: Sequence[float],
    human: Sequence[float],
    texts: Sequence[str] = ("hello there",),
    descriptors: Optional[List[str]] = None,
    factors: Sequence[str] = (),
    confidence: float = 0.8,
) -> Tuple[List[ScoredConversation], List[HumanValidationRecord]]:
    """Scored conversations c0..cN with one expert rating each."""
    scored = [
        make_scored(a, conv_id=f"c{i}", texts=texts, descriptors=descriptors, confidence=confidence)
        for i, a in enumerate(algo)
    ]
    records = [make_record(f"c{i}", h, factors=factors) for i, h in enumerate(human)]
    return scored, records


def make_record(
    conv_id: str,
    score: float,
    validator_id: str = "v1",
    years: float = 5.0,
    specializations: Sequence[str] = ("clinical_psychology",),
    factors: Sequence[str] = (),
    confidence: float = 0.8,
) -> HumanValidationRecord:
    return HumanValidationRecord(
        conversation_id=conv_id,
        validator_id=validator_id,
        validator_credentials=ValidatorCredentials(years_experience=years, specializations=list(specializations)),
        human_mood_score=score,
        confidence=confidence,
        rationale="expert rating",
        emotional_factors=list(factors),
    )
