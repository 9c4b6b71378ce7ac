#!/usr/bin/env python3
"""
Trajectory building: per-message mood points for one conversation.
"""
from typing import Dict, List, Optional, Tuple

from schemas.conversation import ConversationData
from schemas.mood import EmotionalTrajectory, TrajectoryPoint
from mood_engine.delta.main import DeltaDetector
from mood_engine.emotion.lexicon import Lexicon, load_lexicon
from mood_engine.emotion.text_utils import clamp, find_phrases, mean, pvariance, tokenize

NEUTRAL = 5.0

EMOTION_BANDS: List[Tuple[float, List[str]]] = [
    (8.5, ["joyful", "positive"]),
    (7.5, ["excited", "enthusiastic"]),
    (6.5, ["content", "satisfied"]),
    (5.5, ["neutral", "calm"]),
    (4.5, ["concerned", "uncertain"]),
    (3.5, ["frustrated", "troubled"]),
    (2.5, ["sad", "disappointed"]),
]


def signed_table(lexicon: Lexicon) -> Dict[str, Tuple[float, float]]:
    """word -> (signed valence, intensity); legacy entries win over polarity tables."""
    table: Dict[str, Tuple[float, float]] = {}
    for w, (v, i) in lexicon.negative.items():
        table[w] = (-v, i)
    for w, (v, i) in lexicon.positive.items():
        table[w] = (v, i)
    table.update(lexicon.legacy_emotions)
    return table


def message_mood_score(content: str, table: Dict[str, Tuple[float, float]]) -> float:
    """Intensity-weighted valence mapped from [-1, 1] to [0, 10]; 5.0 with no hits."""
    total_valence = 0.0
    total_intensity = 0.0
    for word in tokenize(content):
        entry = table.get(word)
        if entry:
            total_valence += entry[0] * entry[1]
            total_intensity += entry[1]
    if total_intensity == 0:
        return NEUTRAL
    return clamp((total_valence / total_intensity + 1) * 5, 0.0, 10.0)


def emotions_for_score(score: float) -> List[str]:
    for threshold, labels in EMOTION_BANDS:
        if score >= threshold:
            return list(labels)
    return ["distressed", "struggling"]


def trajectory_direction(points: List[TrajectoryPoint]) -> str:
    if len(points) < 2:
        return "stable"
    half = len(points) // 2
    scores = [p.mood_score for p in points]
    difference = mean(scores[half:]) - mean(scores[:half])
    if pvariance(scores) > 2:
        return "volatile"
    if difference > 1:
        return "improving"
    if difference < -1:
        return "declining"
    return "stable"


def trajectory_significance(points: List[TrajectoryPoint], turning_point_count: int) -> float:
    if not points:
        return 0.0
    scores = [p.mood_score for p in points]
    range_factor = min((max(scores) - min(scores)) / 10, 1.0)
    volatility_factor = min(pvariance(scores) / 5, 1.0)
    turning_factor = min(turning_point_count / len(points), 1.0)
    return clamp(range_factor * 0.4 + volatility_factor * 0.3 + turning_factor * 0.3)


def build_trajectory(
    conversation: ConversationData,
    lexicon: Optional[Lexicon] = None,
    detector: Optional[DeltaDetector] = None,
) -> EmotionalTrajectory:
    """Score every message and derive direction, significance and turning points."""
    lexicon = lexicon or load_lexicon()
    detector = detector or DeltaDetector()
    table = signed_table(lexicon)
    supportive = [p for p, v in lexicon.contextual_factors.items() if v > 0]

    points: List[TrajectoryPoint] = []
    for i, msg in enumerate(conversation.messages):
        score = message_mood_score(msg.content, table)
        context = f"message {i} by {msg.author_id}"
        if find_phrases(msg.content.lower(), supportive):
            context += " (support)"
        points.append(TrajectoryPoint(
            timestamp=msg.timestamp,
            mood_score=score,
            message_id=msg.id,
            emotions=emotions_for_score(score),
            context=context,
        ))

    draft = EmotionalTrajectory(points=points, direction=trajectory_direction(points))
    turning_points = detector.identify_turning_points(draft)

    return draft.model_copy(update={
        "significance": trajectory_significance(points, len(turning_points)),
        "turning_points": turning_points,
    })
