#!/usr/bin/env python3
"""
Sentiment Processor
Positive / negative / mixed sentiment over a single text.

- Lexicon lookup per token: valence * intensity, averaged over hits
- Intensity markers multiply the average (product of 1+marker, capped at 2.0)
- Indirect register boosts negative sentiment (x1.65), direct register does not
- Mixed sentiment: complexity, dominant polarity, combined state descriptors
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mood_engine.emotion.lexicon import Lexicon, load_lexicon
from mood_engine.emotion.text_utils import clamp, contains_phrase, find_phrases, tokenize
from mood_engine.logs import get_logger

logger = get_logger(__name__)

MARKER_CAP = 2.0
INDIRECT_NEGATIVE_BOOST = 1.65
SIGNIFICANT_SCORE = 0.3

CulturalRegister = Literal["direct", "indirect", "high-context", "low-context"]

DIRECT_CUES = ["extremely", "absolutely", "hate", "love you"]
INDIRECT_CUES = ["perhaps", "maybe", "if that would be possible", "could be better", "not ideal"]
HIGH_CONTEXT_CUES = ["everyone was understanding", "everyone was"]

RELATIONSHIP_CUES = [
    ("parental", ["child", "son", "daughter"]),
    ("romantic", ["partner", "spouse", "husband", "wife"]),
    ("friendship", ["friend", "buddy"]),
    ("professional", ["colleague", "coworker", "boss"]),
]


class SentimentScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0.0, le=1.0)
    intensity: float = Field(default=0.0, ge=0.0, le=1.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    indicators: List[str] = Field(default_factory=list)
    linguistic_markers: List[str] = Field(default_factory=list)
    matched_words: List[str] = Field(default_factory=list)
    cultural_context: CulturalRegister = "low-context"


class MixedSentimentScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    positive: SentimentScore
    negative: SentimentScore
    complexity: float = Field(..., ge=0.0, le=1.0)
    dominant_sentiment: Literal["positive", "negative", "mixed", "neutral"]
    emotional_state: List[str] = Field(default_factory=list)
    relationship_context: Optional[str] = None


def _unique(items: List[str]) -> List[str]:
    out: List[str] = []
    for i in items:
        if i not in out:
            out.append(i)
    return out


class SentimentProcessor:
    """Positive, negative and mixed sentiment detection over lexicon tables."""

    def __init__(self, lexicon: Optional[Lexicon] = None):
        self.lexicon = lexicon or load_lexicon()

    # ---- public API ----

    def analyze_positive(self, content: str) -> SentimentScore:
        return self._analyze(content, positive=True)

    def analyze_negative(self, content: str) -> SentimentScore:
        return self._analyze(content, positive=False)

    def process_mixed_sentiment(self, content: str) -> MixedSentimentScore:
        positive = self.analyze_positive(content)
        negative = self.analyze_negative(content)
        complexity = self.emotional_complexity(positive, negative)

        return MixedSentimentScore(
            positive=positive,
            negative=negative,
            complexity=complexity,
            dominant_sentiment=self.dominant_sentiment(positive, negative, complexity),
            emotional_state=self.emotional_state_descriptors(positive, negative, complexity),
            relationship_context=self.relationship_context(content),
        )

    def cultural_context(self, content: str) -> CulturalRegister:
        text = (content or "").lower()
        if find_phrases(text, DIRECT_CUES):
            return "direct"
        if find_phrases(text, INDIRECT_CUES + list(self.lexicon.indirect_markers)):
            return "indirect"
        if find_phrases(text, HIGH_CONTEXT_CUES):
            return "high-context"
        return "low-context"

    @staticmethod
    def sentiment_confidence(score: float, intensity: float, n_indicators: int, n_markers: int) -> float:
        if score > 0.7:
            confidence = 0.8
        elif score > 0.4:
            confidence = 0.7
        else:
            confidence = 0.4
        confidence += min(1.0, intensity / 0.7) * 0.1
        confidence += min(0.2, n_indicators * 0.1)
        confidence += min(0.15, n_markers * 0.05)
        return clamp(confidence)

    # ---- mixed sentiment helpers ----

    @staticmethod
    def emotional_complexity(positive: SentimentScore, negative: SentimentScore) -> float:
        """0..1; high when both polarities are significant and balanced."""
        if positive.score <= SIGNIFICANT_SCORE or negative.score <= SIGNIFICANT_SCORE:
            return clamp(min(positive.score, negative.score) / SIGNIFICANT_SCORE * 0.3)

        balance = 1 - abs(positive.score - negative.score)
        intensity_sum = positive.intensity + negative.intensity
        indicator_count = len(positive.indicators) + len(negative.indicators)
        return clamp(balance * 0.5 + intensity_sum * 0.3 + min(indicator_count / 6, 1) * 0.2)

    @staticmethod
    def dominant_sentiment(positive: SentimentScore, negative: SentimentScore, complexity: float) -> str:
        threshold = 0.3
        diff = abs(positive.score - negative.score)
        if complexity > 0.6 and diff < threshold:
            return "mixed"
        if positive.score < 0.2 and negative.score < 0.2:
            return "neutral"
        if positive.score > negative.score + threshold:
            return "positive"
        if negative.score > positive.score + threshold:
            return "negative"
        return "mixed"

    @staticmethod
    def emotional_state_descriptors(positive: SentimentScore, negative: SentimentScore, complexity: float) -> List[str]:
        out: List[str] = []
        if complexity > 0.6:
            out.append("bittersweet")
        if positive.score > SIGNIFICANT_SCORE:
            out.extend(positive.indicators)
        if negative.score > SIGNIFICANT_SCORE:
            out.extend(negative.indicators)

        pos, neg = set(positive.indicators), set(negative.indicators)
        if "gratitude" in pos and ({"overwhelmed", "anxiety"} & neg):
            out.append("overwhelmed")
        if "excitement" in pos and "anxiety" in neg:
            out.append("nervous excitement")
        if "pride" in pos and "concern" in neg:
            out.append("protective concern")
        return _unique(out)

    @staticmethod
    def relationship_context(content: str) -> Optional[str]:
        text = (content or "").lower()
        for label, cues in RELATIONSHIP_CUES:
            if find_phrases(text, cues):
                return label
        return None

    # ---- internals ----

    def intensity_multiplier(self, text: str) -> tuple[float, List[str]]:
        multiplier = 1.0
        markers: List[str] = []
        for marker, boost in self.lexicon.intensity_markers.items():
            if contains_phrase(text, marker):
                multiplier *= 1 + boost
                markers.append(marker)
        return min(MARKER_CAP, multiplier), markers

    def indicators_for(self, word: str) -> List[str]:
        return [label for label, words in self.lexicon.indicators.items() if word in words]

    def _analyze(self, content: str, positive: bool) -> SentimentScore:
        table = self.lexicon.positive if positive else self.lexicon.negative
        text = (content or "").lower()
        total = 0.0
        total_intensity = 0.0
        hits: List[str] = []
        indicators: List[str] = []

        for word in tokenize(text):
            entry = table.get(word)
            if entry is None:
                continue
            valence, intensity = entry
            total += valence * intensity
            total_intensity += intensity
            hits.append(word)
            indicators.extend(self.indicators_for(word))

        multiplier, markers = self.intensity_multiplier(text)
        register = self.cultural_context(text)

        base = total / len(hits) if hits else 0.0
        adjusted = base * multiplier
        if not positive and register == "indirect" and adjusted > 0.1:
            adjusted *= INDIRECT_NEGATIVE_BOOST

        score = min(1.0, adjusted)
        avg_intensity = total_intensity / len(hits) if hits else 0.0
        indicators = _unique(indicators)
        markers = _unique(markers) if hits else []

        return SentimentScore(
            score=score,
            intensity=min(1.0, avg_intensity),
            confidence=self.sentiment_confidence(score, avg_intensity, len(indicators), len(markers)),
            indicators=indicators,
            linguistic_markers=markers,
            matched_words=hits,
            cultural_context=register,
        )
