#!/usr/bin/env python3
"""
Mood Analyzer v1.0
Multi-dimensional weighted mood scoring for a conversation.

Five sub-analyses, each a MoodFactor with a 0-10 sub-score:
- sentiment_analysis        lexicon polarity through a non-linear boost table
- psychological_indicators  coping / resilience / stress / support / growth
- relationship_context      roles, disclosure, relational content, participation balance
- conversational_flow       pacing, questions, first-half vs second-half trend
- historical_baseline       temporal-comparison language, extreme affect

Scores combine by the weights of the active ScoringParameters version.
Analysis never raises on malformed content; an empty conversation scores 5.0
with near-zero confidence.
"""
import sys
from typing import Any, Dict, List, Optional, Tuple, Union

from schemas.conversation import ConversationData
from schemas.mood import MoodAnalysisResult, MoodFactor
from mood_engine.analyzer.trajectory import build_trajectory, message_mood_score, signed_table
from mood_engine.cli import base_parser, run_agent
from mood_engine.config import ParameterStore, ScoringParameters
from mood_engine.emotion.cues import BIAS_CUES
from mood_engine.emotion.lexicon import Lexicon, load_lexicon
from mood_engine.emotion.psychological import PsychologicalIndicatorAnalyzer
from mood_engine.emotion.sentiment import SentimentProcessor
from mood_engine.emotion.text_utils import clamp, clamp_scores, find_phrases, mean, pvariance, tokenize
from mood_engine.logs import dlog, get_logger
from mood_engine.patterns.main import PatternRecognizer

logger = get_logger(__name__)

AGENT_VERSION = "1.0.0"
AGENT_ID = "mood_analyzer"

NEUTRAL = 5.0

# bias type -> factor its correction factor acts on
BIAS_TARGETS = {
    "emotional_minimization": "sentiment_analysis",
    "sarcasm_detection_failure": "sentiment_analysis",
    "mixed_emotion_oversimplification": "sentiment_analysis",
    "repetitive_pattern_blindness": "psychological_indicators",
    "defensive_language_blindness": "psychological_indicators",
    "emotional_complexity": "sentiment_analysis",
}

SCORE_BANDS: List[Tuple[float, List[str]]] = [
    (8.0, ["joyful", "uplifted"]),
    (6.5, ["positive", "content"]),
    (4.5, ["neutral", "balanced"]),
    (3.0, ["concerned", "unsettled"]),
]
LOW_BAND = ["distressed", "struggling"]

# (max evidence count, confidence multiplier), first match wins
LOW_EVIDENCE_PENALTIES = [(0, 0.005), (1, 0.3), (2, 0.6), (3, 0.8)]

SUPPORTIVE_ROLE_BONUS = 1.0
DISCLOSURE_BONUS = 0.5
POSITIVE_CONTENT_BONUS = 1.5
NEGATIVE_CONTEXT_PENALTY = 0.8
NEGATIVE_CONTEXT_CAP = 2.0
BALANCE_BONUS = 0.5
DIRECT_BONUS = 0.2

RAPID_GAP_SECONDS = 60
REFLECTIVE_GAP_SECONDS = 600
QUESTION_RATIO = 0.3
TREND_THRESHOLD = 1.0

TEMPORAL_STEP = 0.8
TEMPORAL_CAP = 1.5
EXTREME_STEP = 0.5
EXTREME_CAP = 1.0


def _unique(items: List[str]) -> List[str]:
    out: List[str] = []
    for i in items:
        if i not in out:
            out.append(i)
    return out


class MoodAnalyzer:
    """
    Scores conversations with an injected lexicon and parameter set.

    `parameters` may be a ScoringParameters (fixed) or a ParameterStore (live;
    every analysis reads one immutable snapshot, so calibration never changes
    parameters mid-analysis).
    """

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        parameters: Union[ScoringParameters, ParameterStore, None] = None,
    ):
        self.lexicon = lexicon or load_lexicon()
        if isinstance(parameters, ParameterStore):
            self.store = parameters
        else:
            self.store = ParameterStore(parameters or ScoringParameters())
        self.sentiment = SentimentProcessor(self.lexicon)
        self.psychological = PsychologicalIndicatorAnalyzer(self.lexicon)
        self._signed = signed_table(self.lexicon)

    @property
    def parameters(self) -> ScoringParameters:
        return self.store.snapshot()

    # ---- public API ----

    def analyze(self, conversation: ConversationData) -> MoodAnalysisResult:
        params = self.store.snapshot()
        messages = [m for m in conversation.messages if m.content and m.content.strip()]

        if not messages:
            logger.debug("Empty conversation, neutral result", extra={"conversation_id": conversation.id})
            return self._neutral(conversation, params)

        text = " ".join(m.content.lower() for m in messages)

        sentiment_score, sentiment_ev, sentiment_desc, mixed = self._sentiment_factor(messages, params)
        profile = self.psychological.profile(text)
        psych_score, psych_ev = self.psychological.sub_score(profile, params.psychological_contradiction_penalty)
        rel_score, rel_ev = self._relationship_factor(conversation, text)
        flow_score, flow_ev = self._flow_factor(messages)
        hist_score, hist_ev = self._historical_factor(messages, text)

        sub_scores = {
            "sentiment_analysis": sentiment_score,
            "psychological_indicators": psych_score,
            "relationship_context": rel_score,
            "conversational_flow": flow_score,
            "historical_baseline": hist_score,
        }
        evidence = {
            "sentiment_analysis": sentiment_ev,
            "psychological_indicators": psych_ev,
            "relationship_context": rel_ev,
            "conversational_flow": flow_ev,
            "historical_baseline": hist_ev,
        }
        descriptions = {
            "sentiment_analysis": sentiment_desc,
            "psychological_indicators": "Coping, resilience, stress, support and growth indicators",
            "relationship_context": "Participant roles, disclosure and relational content",
            "conversational_flow": "Pacing, questions and in-conversation trend",
            "historical_baseline": "Temporal comparison language and extreme affect",
        }

        sub_scores = clamp_scores(sub_scores, 0.0, 10.0)
        corrections = self._bias_corrections(messages, mixed, params)
        for bias, factor in corrections:
            target = BIAS_TARGETS[bias]
            sub_scores[target] = sub_scores[target] / factor
            evidence[target] = evidence[target] + [f"{bias} correction x{factor:.2f}"]

        sub_scores = clamp_scores(sub_scores, 0.0, 10.0)

        factors = [
            MoodFactor(
                type=ftype,
                weight=params.weights[ftype],
                description=descriptions[ftype],
                evidence=_unique(evidence[ftype]),
                score=sub_scores[ftype],
            )
            for ftype in sub_scores
        ]

        combined = sum(params.weights[t] * s for t, s in sub_scores.items())
        if not sentiment_ev:
            combined = max(combined, params.ambiguity_floor)

        contradiction = profile.contradiction
        if contradiction:
            combined *= 1 - params.contradiction_score_penalty

        score = clamp(combined, 0.0, 10.0)
        confidence = self._confidence(factors, contradiction, params)
        descriptors = self._descriptors(score, text, mixed)

        dlog({
            "conversation_id": conversation.id,
            "sub_scores": {k: round(v, 3) for k, v in sub_scores.items()},
            "combined": round(score, 3),
            "confidence": round(confidence, 3),
            "corrections": corrections,
        })
        logger.info(
            "Mood analysis complete",
            extra={
                "conversation_id": conversation.id,
                "score": round(score, 3),
                "confidence": round(confidence, 3),
                "parameters_version": params.version,
            },
        )

        return MoodAnalysisResult(
            conversation_id=conversation.id,
            score=score,
            descriptors=descriptors,
            confidence=confidence,
            factors=factors,
            parameters_version=params.version,
        )

    def analyze_many(self, conversations: List[ConversationData]) -> List[MoodAnalysisResult]:
        return [self.analyze(c) for c in conversations]

    # ---- factors ----

    def _sentiment_factor(self, messages, params: ScoringParameters) -> Tuple[float, List[str], str, bool]:
        threshold = params.sentiment_evidence_threshold
        pos_scores: List[float] = []
        neg_scores: List[float] = []
        evidence: List[str] = []

        for m in messages:
            pos = self.sentiment.analyze_positive(m.content)
            neg = self.sentiment.analyze_negative(m.content)
            evidence.extend(f'positive: "{w}"' for w in pos.matched_words)
            evidence.extend(f'negative: "{w}"' for w in neg.matched_words)
            if pos.score > threshold or neg.score > threshold:
                pos_scores.append(pos.score)
                neg_scores.append(neg.score)

        avg_pos = mean(pos_scores)
        avg_neg = mean(neg_scores)
        delta = avg_pos - avg_neg
        multiplier = params.boost_for(max(avg_pos, avg_neg))
        # may overshoot [0, 10] here; clamped with the other sub-scores
        score = NEUTRAL + delta * 5 * multiplier

        evidence = _unique(evidence)
        if abs(delta) < 0.1 and len(evidence) <= 1:
            score = max(score, params.ambiguity_floor)

        mixed = avg_pos > 0.3 and avg_neg > 0.3
        description = (
            f"Positive {avg_pos:.2f} / negative {avg_neg:.2f} across {len(pos_scores)} "
            f"of {len(messages)} messages (boost x{multiplier:.2f})"
        )
        return score, evidence, description, mixed

    def _relationship_factor(self, conversation: ConversationData, text: str) -> Tuple[float, List[str]]:
        score = NEUTRAL
        evidence: List[str] = []
        participants = conversation.participants

        supportive = [p for p in participants if p.role in self.lexicon.supportive_roles]
        if supportive:
            score += SUPPORTIVE_ROLE_BONUS
            evidence.append(f"supportive role: {supportive[0].role} ({supportive[0].id})")

        vulnerable = [p for p in participants if p.role in self.lexicon.vulnerable_roles]
        disclosures = find_phrases(text, self.lexicon.disclosure)
        if vulnerable or disclosures:
            score += DISCLOSURE_BONUS
            evidence.append(f"vulnerability disclosure: {(disclosures or [vulnerable[0].role])[0]}")

        positive_ctx = [p for p, v in self.lexicon.contextual_factors.items() if v > 0 and p in text]
        negative_ctx = [p for p, v in self.lexicon.contextual_factors.items() if v < 0 and find_phrases(text, [p])]
        tokens = tokenize(text)
        pos_hits = sum(1 for t in tokens if t in self.lexicon.positive)
        neg_hits = sum(1 for t in tokens if t in self.lexicon.negative)
        if pos_hits > neg_hits and (positive_ctx or pos_hits >= 2):
            score += POSITIVE_CONTENT_BONUS
            evidence.append(f"positive relational content: {', '.join((positive_ctx or ['affect'])[:2])}")
        if negative_ctx:
            score -= min(NEGATIVE_CONTEXT_CAP, NEGATIVE_CONTEXT_PENALTY * len(negative_ctx))
            evidence.append(f"relational strain: {', '.join(negative_ctx[:2])}")

        counts: Dict[str, int] = {}
        for m in conversation.messages:
            counts[m.author_id] = counts.get(m.author_id, 0) + 1
        if len(counts) >= 2 and max(counts.values()) <= 2 * min(counts.values()):
            score += BALANCE_BONUS
            evidence.append("balanced participation detected")

        if conversation.context and conversation.context.conversation_type == "direct":
            score += DIRECT_BONUS

        return score, evidence

    def _flow_factor(self, messages) -> Tuple[float, List[str]]:
        score = NEUTRAL
        evidence: List[str] = []
        if len(messages) < 2:
            return score, evidence

        gaps = [
            (b.timestamp - a.timestamp).total_seconds()
            for a, b in zip(messages, messages[1:])
        ]
        avg_gap = mean(gaps)
        if 0 <= avg_gap < RAPID_GAP_SECONDS:
            score += 0.3
            evidence.append("rapid exchange indicates engagement")
        elif avg_gap > REFLECTIVE_GAP_SECONDS:
            score += 0.2
            evidence.append("reflective pacing")

        questions = sum(1 for m in messages if "?" in m.content)
        if questions / len(messages) > QUESTION_RATIO:
            score += 0.4
            evidence.append(f"active questioning ({questions} questions)")

        per_message = [message_mood_score(m.content, self._signed) for m in messages]
        half = len(per_message) // 2
        trend = mean(per_message[half:]) - mean(per_message[:half])
        if trend > TREND_THRESHOLD:
            score += 1.0
            evidence.append(f"mood improving across conversation (+{trend:.1f})")
        elif trend < -TREND_THRESHOLD:
            score -= 1.0
            evidence.append(f"mood declining across conversation ({trend:.1f})")

        if pvariance(per_message) > 4:
            score -= 0.3
            evidence.append("volatile emotional intensity")

        return score, evidence

    def _historical_factor(self, messages, text: str) -> Tuple[float, List[str]]:
        score = NEUTRAL
        evidence: List[str] = []

        better = find_phrases(text, self.lexicon.temporal_comparison.get("positive", []))
        worse = find_phrases(text, self.lexicon.temporal_comparison.get("negative", []))
        if better:
            score += min(TEMPORAL_CAP, TEMPORAL_STEP * len(better))
            evidence.append(f"temporal comparison: {better[0]}")
        if worse:
            score -= min(TEMPORAL_CAP, TEMPORAL_STEP * len(worse))
            evidence.append(f"temporal comparison: {worse[0]}")

        shift = 0.0
        for m in messages:
            hits = find_phrases(m.content.lower(), self.lexicon.extreme_affect)
            if not hits:
                continue
            valence = message_mood_score(m.content, self._signed) - NEUTRAL
            if valence > 0:
                shift += EXTREME_STEP
            elif valence < 0:
                shift -= EXTREME_STEP
            evidence.append(f"extreme affect: {hits[0]}")
        score += max(-EXTREME_CAP, min(EXTREME_CAP, shift))

        return score, evidence

    # ---- adjustments ----

    @staticmethod
    def _bias_corrections(messages, mixed: bool, params: ScoringParameters) -> List[Tuple[str, float]]:
        """Calibrated correction factors whose cue fires on this conversation."""
        if not params.correction_factors:
            return []
        out: List[Tuple[str, float]] = []
        for bias, factor in sorted(params.correction_factors.items()):
            if bias not in BIAS_TARGETS:
                continue
            if bias in ("mixed_emotion_oversimplification", "emotional_complexity"):
                fired = mixed
            else:
                cue = BIAS_CUES[bias]
                fired = any(cue(m.content) for m in messages)
            if fired:
                out.append((bias, factor))
        return out

    @staticmethod
    def _confidence(factors: List[MoodFactor], contradiction: bool, params: ScoringParameters) -> float:
        total_evidence = sum(len(f.evidence) for f in factors)
        evidence_ratio = min(1.0, total_evidence / params.evidence_ceiling)
        scores = [f.score for f in factors]
        agreement = max(0.0, 1 - pvariance(scores) / 25)

        confidence = 0.3 + evidence_ratio * 0.4 + agreement * 0.3

        # strong agreement is expected at the extremes
        avg = mean(scores)
        if avg >= 8.5 or avg <= 1.5:
            confidence += 0.15
        elif avg >= 7.5 or avg <= 2.5:
            confidence += 0.1

        for limit, multiplier in LOW_EVIDENCE_PENALTIES:
            if total_evidence <= limit:
                confidence *= multiplier
                break

        if contradiction:
            confidence *= 1 - params.contradiction_confidence_penalty

        if confidence > params.confidence_high_band and agreement < params.confidence_threshold_high:
            confidence = params.confidence_high_band

        return clamp(confidence)

    def _descriptors(self, score: float, text: str, mixed: bool) -> List[str]:
        out: List[str] = []
        for threshold, labels in SCORE_BANDS:
            if score >= threshold:
                out.extend(labels)
                break
        else:
            out.extend(LOW_BAND)

        out.extend(find_phrases(text, self.lexicon.healing_descriptors))
        if mixed:
            out.append("mixed")
        out.extend(self.lexicon.emotions_in(tokenize(text)))
        return _unique(out)[:5]

    def _neutral(self, conversation: ConversationData, params: ScoringParameters) -> MoodAnalysisResult:
        factors = [
            MoodFactor(type=t, weight=w, description="No analyzable content", evidence=[], score=NEUTRAL)
            for t, w in params.weights.items()
        ]
        return MoodAnalysisResult(
            conversation_id=conversation.id,
            score=NEUTRAL,
            descriptors=["neutral", "balanced"],
            confidence=self._confidence(factors, False, params),
            factors=factors,
            parameters_version=params.version,
        )


# -------------------- Core -------------------- #
def run(payload: Dict[str, Any], meta: Dict[str, Any]) -> Dict[str, Any]:
    from mood_engine.analyzer.enrichment import enrich

    data = payload.get("data", {}) or {}
    conversation = ConversationData.model_validate(data.get("conversation") or {"id": "unknown"})

    analyzer = MoodAnalyzer(lexicon=load_lexicon(meta.get("lexicon_path")))
    result = analyzer.analyze(conversation)
    if meta.get("enrich", True):
        result = enrich(result, conversation)

    emits = {"mood": result.model_dump(mode="json")}
    if meta.get("trajectory"):
        trajectory = build_trajectory(conversation, analyzer.lexicon)
        recognizer = PatternRecognizer()
        patterns = recognizer.merge_related_patterns(
            recognizer.recognize_patterns(conversation, result)
            + recognizer.analyze_trajectory_patterns(trajectory)
        )
        emits["trajectory"] = trajectory.model_dump(mode="json")
        emits["patterns"] = [p.model_dump(mode="json") for p in patterns]

    checks = {
        "CHK-MOOD-01": {
            "pass": 0.0 <= result.score <= 10.0,
            "reason": f"score={result.score:.2f}",
        },
        "CHK-MOOD-02": {
            "pass": result.confidence >= 0.3,
            "reason": f"confidence={result.confidence:.2f}, evidence={result.evidence_count}",
        },
    }
    res = {"ok": True, "emits": emits, "checks": checks}
    if meta.get("explain_verbose"):
        res["rationales"] = [{
            "cue": "mood_factors",
            "detail": {f.type: {"score": round(f.score, 2), "evidence": f.evidence} for f in result.factors},
        }]
    return res


# -------------------- Main -------------------- #
def main() -> None:
    parser = base_parser("MoodAnalyzer - score a conversation (0-10) with confidence and evidence.")
    parser.add_argument("--lexicon-path", type=str, default=None)
    parser.add_argument("--trajectory", action="store_true", help="Also emit per-message trajectory and patterns")
    run_agent(AGENT_ID, AGENT_VERSION, parser, run, sys.argv[1:])


if __name__ == "__main__":
    main()
