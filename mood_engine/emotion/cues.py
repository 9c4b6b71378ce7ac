#!/usr/bin/env python3
"""
Surface cues that the lexicon scoring tends to misread.

Each detector is a pure predicate over raw message text. They are shared by
the validation bias rules (attributing discrepancies) and by the analyzer
(applying calibrated bias-correction factors).
"""
from collections import Counter
from typing import Callable, Dict

from mood_engine.emotion.text_utils import find_phrases, tokenize

MINIMIZATION_PHRASES = [
    "just a bit", "nothing major", "not a big deal", "only a little", "just slightly",
    "barely", "hardly", "not really", "kinda", "sort of",
]
SARCASM_PHRASES = [
    "oh great", "wonderful", "amazing", "perfect", "fantastic",
    "just what i needed", "exactly what i wanted", "how lovely",
]
SARCASM_CONTEXT = ["another", "really", "so"]
DEFENSIVE_PHRASES = [
    "i don't need", "i can handle", "i'm fine", "leave me alone",
    "don't worry about", "i got this", "mind your own", "back off",
]
REPETITION_MIN_COUNT = 3
REPETITION_MIN_LENGTH = 3


def detect_minimization(content: str) -> bool:
    return bool(find_phrases((content or "").lower(), MINIMIZATION_PHRASES))


def detect_sarcasm(content: str) -> bool:
    """Positive set-phrase plus an exasperation cue ('another', 'really', 'so')."""
    text = (content or "").lower()
    return bool(find_phrases(text, SARCASM_PHRASES)) and bool(find_phrases(text, SARCASM_CONTEXT))


def detect_repetition(content: str) -> bool:
    """Any word of 3+ characters used 3+ times ('fine, fine, fine')."""
    counts = Counter(w for w in tokenize(content) if len(w) >= REPETITION_MIN_LENGTH)
    return any(c >= REPETITION_MIN_COUNT for c in counts.values())


def detect_defensive(content: str) -> bool:
    return bool(find_phrases((content or "").lower(), DEFENSIVE_PHRASES))


# bias type -> text cue, for biases that have a surface signature
BIAS_CUES: Dict[str, Callable[[str], bool]] = {
    "emotional_minimization": detect_minimization,
    "sarcasm_detection_failure": detect_sarcasm,
    "repetitive_pattern_blindness": detect_repetition,
    "defensive_language_blindness": detect_defensive,
}
