#!/usr/bin/env python3
"""
Emotional Baseline Manager
Per-subject statistical mood profile built from scored conversation history.

- establish_baseline: mean / range / volatility, time-of-day, weekday and
  relationship sub-profiles (needs MIN_DATA_POINTS conversations)
- analyze_deviation: how far a new score sits from the subject's normal
- should_update / update_baseline: count-weighted merge of a new batch,
  producing a new immutable version
"""
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.baseline import (
    BaselineDeviation,
    EmotionalBaseline,
    MoodRange,
    RelationshipPattern,
    SustainabilityAssessment,
    TemporalPatterns,
    VariationPattern,
)
from schemas.mood import ScoredConversation
from mood_engine.baseline.store import BaselineStore, InMemoryBaselineStore
from mood_engine.config import CFG
from mood_engine.emotion.text_utils import clamp, mean, pvariance
from mood_engine.errors import InsufficientDataError, NoBaselineError
from mood_engine.logs import get_logger

logger = get_logger(__name__)

NEUTRAL = 5.0
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

SIGNIFICANT_DEVIATION = 2.0
MEDIUM_DEVIATION = 1.0
SUSTAINABLE_ELEVATION = 3.0
MIN_VOLATILITY = 0.5
MAX_CONFIDENCE = 0.95
UPDATE_CONFIDENCE_STEP = 0.05

RECOMMENDED_ACTIONS = {
    "significant_decline": ["monitor", "check_for_triggers", "consider_support"],
    "significant_elevation": ["celebrate", "identify_positive_factors", "assess_sustainability"],
    "normal_variation": ["continue_monitoring"],
}
POTENTIAL_TRIGGERS = ["relationship_changes", "life_events", "environmental_factors"]
SUSTAINABILITY_FACTORS = ["baseline_consistency", "support_systems", "coping_mechanisms"]


class BaselineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    minimum_data_points: int = Field(default=CFG["MIN_DATA_POINTS"], ge=1)
    baseline_update_threshold: float = Field(default=CFG["BASELINE_UPDATE_THRESHOLD"], ge=0.0)
    historical_depth: int = Field(default=CFG["HISTORICAL_DEPTH"], ge=1)


def cyclical_tendency(volatility: float) -> str:
    if volatility > 2.0:
        return "high"
    if volatility > 1.0:
        return "medium"
    return "low"


def time_of_day(ts: datetime) -> str:
    """UTC hour bucket: morning 6-12, afternoon 12-18, evening 18-22, else night."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    hour = ts.hour
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return "night"


def _avg_or_neutral(scores: List[float]) -> float:
    return mean(scores) if scores else NEUTRAL


class BaselineManager:
    """Baselines live in the injected store; each update writes a new version."""

    def __init__(self, store: Optional[BaselineStore] = None, config: Optional[BaselineConfig] = None):
        self.store = store if store is not None else InMemoryBaselineStore()
        self.config = config or BaselineConfig()

    def get_baseline(self, subject_id: str) -> Optional[EmotionalBaseline]:
        return self.store.get(subject_id)

    def establish_baseline(self, subject_id: str, history: List[ScoredConversation]) -> EmotionalBaseline:
        required = self.config.minimum_data_points
        if len(history) < required:
            raise InsufficientDataError(
                "Insufficient data points for baseline establishment",
                required=required,
                available=len(history),
            )

        scores = [h.score for h in history]
        average = mean(scores)
        volatility = math.sqrt(pvariance(scores))
        confidence = min(MAX_CONFIDENCE, 0.5 + len(history) / 20) * max(0.3, 1 - volatility / 5)

        baseline = EmotionalBaseline(
            subject_id=subject_id,
            average_mood=average,
            mood_range=MoodRange(min=min(scores), max=max(scores), spread=max(scores) - min(scores)),
            data_points=len(history),
            confidence=clamp(confidence),
            variation_pattern=VariationPattern(volatility=volatility, cyclical_tendency=cyclical_tendency(volatility)),
            temporal_patterns=self.temporal_patterns(history),
            relationship_patterns=self.relationship_patterns(history),
        )

        with self.store.lock(subject_id):
            current = self.store.get(subject_id)
            if current is not None:
                # versions only move forward
                baseline = baseline.model_copy(update={
                    "version": current.version + 1,
                    "update_reason": "re_established",
                })
            self.store.put(baseline)

        logger.info(
            "Baseline established",
            extra={
                "subject_id": subject_id,
                "version": baseline.version,
                "average_mood": round(average, 3),
                "volatility": round(volatility, 3),
                "data_points": len(history),
            },
        )
        return baseline

    def analyze_deviation(self, subject_id: str, scored: ScoredConversation) -> BaselineDeviation:
        baseline = self.store.get(subject_id)
        if baseline is None:
            raise NoBaselineError(subject_id)

        current = scored.score
        reference = baseline.average_mood
        relationship = scored.conversation.context.relationship_type if scored.conversation.context else None
        if relationship and relationship in baseline.relationship_patterns:
            reference = baseline.relationship_patterns[relationship].average_mood
            logger.debug(
                "Using relationship-specific baseline",
                extra={"subject_id": subject_id, "relationship_type": relationship},
            )

        signed = current - reference
        magnitude = abs(signed)
        z_score = signed / max(MIN_VOLATILITY, baseline.variation_pattern.volatility)
        percentile = clamp(50 + z_score / 4 * 50, 1.0, 99.0)

        if magnitude >= SIGNIFICANT_DEVIATION:
            deviation_type = "significant_elevation" if signed > 0 else "significant_decline"
        else:
            deviation_type = "normal_variation"

        if magnitude >= SIGNIFICANT_DEVIATION:
            significance = "high"
        elif magnitude >= MEDIUM_DEVIATION:
            significance = "medium"
        else:
            significance = "low"

        if signed > 0:
            direction = "positive"
        elif signed < 0:
            direction = "negative"
        else:
            direction = "neutral"

        sustainability = None
        if deviation_type == "significant_elevation":
            sustainability = SustainabilityAssessment(
                likely_sustainable=magnitude < SUSTAINABLE_ELEVATION,
                factors=list(SUSTAINABILITY_FACTORS),
            )

        return BaselineDeviation(
            subject_id=subject_id,
            conversation_id=scored.id,
            baseline_version=baseline.version,
            baseline_mood=reference,
            current_mood=current,
            deviation_magnitude=magnitude,
            deviation_direction=direction,
            z_score=z_score,
            percentile_rank=percentile,
            deviation_type=deviation_type,
            contextual_significance=significance,
            recommended_actions=list(RECOMMENDED_ACTIONS[deviation_type]),
            potential_triggers=list(POTENTIAL_TRIGGERS) if deviation_type != "normal_variation" else [],
            sustainability=sustainability,
        )

    def should_update(self, subject_id: str, batch: List[ScoredConversation]) -> bool:
        baseline = self.store.get(subject_id)
        if baseline is None or not batch:
            return False
        shift = abs(mean(s.score for s in batch) - baseline.average_mood)
        return shift >= self.config.baseline_update_threshold

    def update_baseline(self, subject_id: str, batch: List[ScoredConversation]) -> EmotionalBaseline:
        if not batch:
            raise InsufficientDataError("Cannot update baseline from an empty batch", required=1, available=0)

        with self.store.lock(subject_id):
            current = self.store.get(subject_id)
            if current is None:
                raise NoBaselineError(subject_id)

            scores = [s.score for s in batch]
            new_avg = mean(scores)
            old_n = current.data_points
            new_n = len(scores)
            total = old_n + new_n

            merged_avg = (current.average_mood * old_n + new_avg * new_n) / total
            lo = min(current.mood_range.min, *scores)
            hi = max(current.mood_range.max, *scores)
            variance = (current.variation_pattern.volatility ** 2 * old_n + pvariance(scores) * new_n) / total
            volatility = math.sqrt(variance)

            shift = abs(new_avg - current.average_mood)
            if shift >= 2.0:
                reason = "major_shift"
            elif shift >= 1.0:
                reason = "significant_shift"
            else:
                reason = "routine_update"

            updated = current.model_copy(update={
                "average_mood": merged_avg,
                "mood_range": MoodRange(min=lo, max=hi, spread=hi - lo),
                "data_points": total,
                "confidence": min(MAX_CONFIDENCE, current.confidence + UPDATE_CONFIDENCE_STEP),
                "variation_pattern": VariationPattern(
                    volatility=volatility, cyclical_tendency=cyclical_tendency(volatility)
                ),
                "version": current.version + 1,
                "last_updated": datetime.now(timezone.utc),
                "update_reason": reason,
            })
            self.store.put(updated)

        logger.info(
            "Baseline updated",
            extra={
                "subject_id": subject_id,
                "version": updated.version,
                "update_reason": reason,
                "average_mood": round(merged_avg, 3),
            },
        )
        return updated

    # ---- sub-profiles ----

    @staticmethod
    def temporal_patterns(history: List[ScoredConversation]) -> TemporalPatterns:
        by_time: Dict[str, List[float]] = {k: [] for k in ("morning", "afternoon", "evening", "night")}
        by_day: Dict[str, List[float]] = {d: [] for d in WEEKDAYS}
        for h in history:
            by_time[time_of_day(h.timestamp)].append(h.score)
            ts = h.timestamp.astimezone(timezone.utc) if h.timestamp.tzinfo else h.timestamp
            by_day[WEEKDAYS[ts.weekday()]].append(h.score)
        return TemporalPatterns(
            time_of_day={k: _avg_or_neutral(v) for k, v in by_time.items()},
            weekly={k: _avg_or_neutral(v) for k, v in by_day.items()},
        )

    @staticmethod
    def relationship_patterns(history: List[ScoredConversation]) -> Dict[str, RelationshipPattern]:
        groups: Dict[str, List[float]] = {}
        for h in history:
            groups.setdefault(h.conversation.relationship_type, []).append(h.score)
        return {
            rel: RelationshipPattern(
                average_mood=mean(scores),
                confidence=min(0.9, 0.3 + len(scores) / 10),
                data_points=len(scores),
            )
            for rel, scores in groups.items()
        }
