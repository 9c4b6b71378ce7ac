#!/usr/bin/env python3
"""
Delta Detector
Mood changes between scored conversations and inside trajectories.

- detect_mood_delta: classify a change (mood_repair / celebration / decline / plateau)
- should_trigger_extraction: is the change significant enough to act on
- identify_turning_points: direction flips and accelerations in a trajectory
- velocity, plateau and sudden-transition helpers over trajectory points
"""
from datetime import datetime, timedelta
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from schemas.mood import (
    EmotionalTrajectory,
    MoodAnalysisResult,
    MoodDelta,
    MoodFactor,
    TrajectoryPoint,
    TurningPoint,
)
from mood_engine.config import CFG
from mood_engine.emotion.text_utils import mean, pvariance
from mood_engine.logs import get_logger

logger = get_logger(__name__)

HEALING_DESCRIPTORS = ("processing", "understood", "accepted", "comforted", "healing")
DIRECTION_DEAD_ZONE = 0.5
SECONDS_PER_HOUR = 3600.0


class DeltaDetectorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    minimum_magnitude: float = Field(default=CFG["DELTA_MIN_MAGNITUDE"], ge=0.0)
    significant_magnitude: float = Field(default=CFG["DELTA_SIGNIFICANT_MAGNITUDE"], ge=0.0)
    time_window_minutes: float = Field(default=CFG["DELTA_TIME_WINDOW_MIN"], gt=0.0)
    confidence_threshold: float = Field(default=CFG["DELTA_CONFIDENCE_THRESHOLD"], ge=0.0, le=1.0)
    celebration_threshold: float = Field(default=CFG["CELEBRATION_THRESHOLD"], ge=0.0)
    decline_threshold: float = Field(default=CFG["DECLINE_THRESHOLD"], ge=0.0)
    plateau_variance_threshold: float = Field(default=CFG["PLATEAU_VARIANCE_THRESHOLD"], ge=0.0)
    turning_point_merge_minutes: float = Field(default=CFG["TURNING_POINT_MERGE_MIN"], ge=0.0)
    sudden_velocity_per_hour: float = Field(default=CFG["SUDDEN_VELOCITY_PER_HOUR"], gt=0.0)


class PlateauResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_plateau: bool
    duration: timedelta = timedelta(0)
    average_score: float = 0.0


class MoodTransition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["sudden", "gradual", "recovery", "decline"]
    magnitude: float = Field(..., ge=0.0)
    velocity: float = Field(..., ge=0.0, description="Absolute mood points per hour")
    timestamp: datetime
    direction: Literal["positive", "negative"]


def _dominant(factors: Sequence[MoodFactor]) -> Optional[MoodFactor]:
    if not factors:
        return None
    return max(factors, key=lambda f: f.weight)


def _fmt(x: float) -> str:
    return f"{x:.1f}"


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


class DeltaDetector:
    """Identifies mood changes and decides when they should trigger extraction."""

    def __init__(self, config: Optional[DeltaDetectorConfig] = None):
        self.config = config or DeltaDetectorConfig()

    # ---- conversation-level deltas ----

    def detect_mood_delta(self, current: MoodAnalysisResult, previous: MoodAnalysisResult) -> Optional[MoodDelta]:
        """
        Compare two analyses.

        Returns:
            MoodDelta, or None when the change is below the minimum magnitude.
        """
        diff = current.score - previous.score
        magnitude = abs(diff)
        if magnitude < self.config.minimum_magnitude:
            return None

        factors = self._delta_factors(current, previous)

        if diff > DIRECTION_DEAD_ZONE:
            direction = "positive"
        elif diff < -DIRECTION_DEAD_ZONE:
            direction = "negative"
        else:
            direction = "neutral"

        dtype = self._classify(direction, magnitude, current, previous)

        confidence = 0.8
        if dtype == "mood_repair":
            if magnitude >= 3.5:
                confidence += 0.1
            if current.confidence > 0.9:
                confidence += 0.05
            if len(factors) >= 2:
                confidence += 0.05
        elif dtype == "celebration":
            if current.score > 8.0:
                confidence += 0.05
            if magnitude >= 3.0:
                confidence += 0.05

        return MoodDelta(
            magnitude=magnitude,
            direction=direction,
            type=dtype,
            confidence=min(1.0, confidence),
            factors=factors or ["Basic delta detected"],
        )

    def _classify(self, direction: str, magnitude: float, current: MoodAnalysisResult,
                  previous: MoodAnalysisResult) -> str:
        significant = self.config.significant_magnitude
        if direction == "positive" and magnitude >= significant:
            # low -> good recovery
            if previous.score < 4 and current.score > 6:
                return "mood_repair"
            # distressed -> supported
            if previous.score < 4.5 and current.score > 5.5 and magnitude >= 2.5:
                return "mood_repair"
            # processing-based repair
            if previous.score < 3.5 and any(d in HEALING_DESCRIPTORS for d in current.descriptors):
                return "mood_repair"
            if previous.score > 6 and current.score > 7:
                return "celebration"
        elif direction == "negative" and magnitude >= significant:
            return "decline"
        return "plateau"

    @staticmethod
    def _delta_factors(current: MoodAnalysisResult, previous: MoodAnalysisResult) -> List[str]:
        factors: List[str] = []

        new_descriptors = [d for d in current.descriptors if d not in previous.descriptors]
        if new_descriptors:
            factors.append(f"New emotional expressions: {', '.join(new_descriptors)}")

        cur_dom, prev_dom = _dominant(current.factors), _dominant(previous.factors)
        if cur_dom and prev_dom and cur_dom.type != prev_dom.type:
            factors.append(f"Shift from {prev_dom.type} to {cur_dom.type}")

        if current.evidence_count > previous.evidence_count * 1.5:
            factors.append("Increased emotional expressiveness")

        return factors

    def detect_conversational_deltas(self, analyses: List[MoodAnalysisResult]) -> List[MoodDelta]:
        """Deltas between consecutive analyses, tagged with their position."""
        deltas: List[MoodDelta] = []
        total = len(analyses)
        for i in range(1, total):
            delta = self.detect_mood_delta(analyses[i], analyses[i - 1])
            if delta is None:
                continue
            factors = list(delta.factors)
            if i == 1:
                factors.append("Early conversation shift")
            elif i == total - 1:
                factors.append("Conversation conclusion shift")
            deltas.append(delta.model_copy(update={
                "factors": factors,
                "confidence": min(1.0, delta.confidence * 1.1),
            }))
        return deltas

    def should_trigger_extraction(self, delta: MoodDelta) -> bool:
        if delta.type == "mood_repair":
            return True
        if delta.type == "celebration" and delta.magnitude >= self.config.celebration_threshold:
            return True
        if delta.type == "decline" and delta.magnitude >= self.config.decline_threshold:
            return True
        return False

    @staticmethod
    def calculate_delta_magnitude(delta: MoodDelta) -> float:
        """Confidence-weighted magnitude."""
        return delta.magnitude * delta.confidence

    # ---- trajectory-level ----

    def identify_turning_points(self, trajectory: EmotionalTrajectory) -> List[TurningPoint]:
        points = trajectory.points
        if len(points) < 3:
            return []

        found: List[TurningPoint] = []
        for i in range(1, len(points) - 1):
            prev, curr, nxt = points[i - 1], points[i], points[i + 1]
            prev_diff = curr.mood_score - prev.mood_score
            next_diff = nxt.mood_score - curr.mood_score

            if prev_diff * next_diff < 0:
                magnitude = abs(prev_diff) + abs(next_diff)
                if magnitude < 2:
                    continue
                tp_type = self._turning_point_type(prev, curr, nxt)
            elif prev_diff != 0 and next_diff != 0:
                acceleration = abs(next_diff / prev_diff - 1)
                magnitude = abs(prev_diff) + abs(next_diff)
                if not (acceleration > 1.0 and magnitude > 2.0):
                    continue
                if prev_diff > 0 and next_diff > 0:
                    tp_type = "breakthrough"
                elif prev_diff < 0 and next_diff < 0:
                    tp_type = "setback"
                else:
                    tp_type = "realization"
            else:
                continue

            found.append(TurningPoint(
                timestamp=curr.timestamp,
                type=tp_type,
                magnitude=magnitude,
                description=self._describe(tp_type, curr),
                factors=self._turning_point_factors(prev, curr, nxt),
            ))

        return self._coalesce(found)

    def _coalesce(self, points: List[TurningPoint]) -> List[TurningPoint]:
        """
        Merge same-type turning points closer than the merge window.

        The stronger point is kept and the factors of both are combined.
        """
        window = timedelta(minutes=self.config.turning_point_merge_minutes)
        merged: List[TurningPoint] = []
        for tp in points:
            last = next((m for m in reversed(merged) if m.type == tp.type), None)
            if last is not None and tp.timestamp - last.timestamp < window:
                winner, other = (tp, last) if tp.magnitude > last.magnitude else (last, tp)
                merged[merged.index(last)] = winner.model_copy(update={
                    "factors": _unique(winner.factors + other.factors),
                })
                continue
            merged.append(tp)
        return merged

    @staticmethod
    def _turning_point_type(prev: TrajectoryPoint, curr: TrajectoryPoint, nxt: TrajectoryPoint) -> str:
        improving = nxt.mood_score > prev.mood_score
        if improving and prev.mood_score < 4 and nxt.mood_score > 6:
            return "breakthrough"
        if not improving and prev.mood_score > 6 and nxt.mood_score < 4:
            return "setback"
        if improving and curr.context and "support" in curr.context:
            return "support_received"
        return "realization"

    @staticmethod
    def _describe(tp_type: str, point: TrajectoryPoint) -> str:
        score = _fmt(point.mood_score)
        return {
            "breakthrough": f"Emotional breakthrough with mood improving to {score}",
            "setback": f"Emotional setback with mood declining to {score}",
            "realization": f"Emotional shift at mood level {score}",
            "support_received": f"Support received leading to mood improvement to {score}",
        }[tp_type]

    @staticmethod
    def _turning_point_factors(prev: TrajectoryPoint, curr: TrajectoryPoint, nxt: TrajectoryPoint) -> List[str]:
        factors: List[str] = []
        new_emotions = [e for e in nxt.emotions if e not in prev.emotions]
        if new_emotions:
            factors.append(f"New emotions: {', '.join(new_emotions)}")
        if curr.context and curr.context != prev.context:
            factors.append(f"Context shift: {curr.context}")
        factors.append(f"Total mood change: {_fmt(abs(nxt.mood_score - prev.mood_score))} points")
        return factors

    def calculate_mood_velocity(self, points: List[TrajectoryPoint], window: Optional[timedelta] = None) -> float:
        """
        Mood points per hour between the first and last point.

        With `window`, only points within that span of the last point are used.
        """
        if window is not None and points:
            cutoff = points[-1].timestamp - window
            points = [p for p in points if p.timestamp >= cutoff]
        if len(points) < 2:
            return 0.0
        seconds = (points[-1].timestamp - points[0].timestamp).total_seconds()
        if seconds == 0:
            return 0.0
        return (points[-1].mood_score - points[0].mood_score) / seconds * SECONDS_PER_HOUR

    def detect_emotional_plateau(self, points: List[TrajectoryPoint]) -> PlateauResult:
        if len(points) < 3:
            return PlateauResult(is_plateau=False)
        scores = [p.mood_score for p in points]
        is_plateau = pvariance(scores) < self.config.plateau_variance_threshold
        duration = points[-1].timestamp - points[0].timestamp if is_plateau else timedelta(0)
        return PlateauResult(is_plateau=is_plateau, duration=duration, average_score=mean(scores))

    def detect_sudden_transitions(self, points: List[TrajectoryPoint]) -> List[MoodTransition]:
        out: List[MoodTransition] = []
        for i in range(1, len(points)):
            prev, curr = points[i - 1], points[i]
            magnitude = abs(curr.mood_score - prev.mood_score)
            if magnitude < self.config.significant_magnitude:
                continue
            seconds = (curr.timestamp - prev.timestamp).total_seconds()
            velocity = (curr.mood_score - prev.mood_score) / seconds * SECONDS_PER_HOUR if seconds > 0 else 0.0
            out.append(MoodTransition(
                type=self.classify_transition_type(velocity, points[max(0, i - 2):i + 1]),
                magnitude=magnitude,
                velocity=abs(velocity),
                timestamp=curr.timestamp,
                direction="positive" if curr.mood_score > prev.mood_score else "negative",
            ))
        return out

    def classify_transition_type(self, velocity: float, points: List[TrajectoryPoint]) -> str:
        if abs(velocity) >= self.config.sudden_velocity_per_hour:
            return "sudden"
        if len(points) >= 3:
            scores = [p.mood_score for p in points]
            if min(scores) < 4.0 and scores[-1] > scores[0] + 2.0:
                return "recovery"
            if max(scores) > 6.0 and scores[-1] < scores[0] - 2.0:
                return "decline"
        return "gradual"
