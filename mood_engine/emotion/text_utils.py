#!/usr/bin/env python3
"""
Text utilities for mood scoring.
"""
import unicodedata
import re
from typing import Iterable, List

_WORD_RE = re.compile(r"[a-z0-9']+")


def normalize_text(s: str) -> str:
    """Normalize text for consistent processing."""
    if not s:
        return s

    s = s.strip()

    # Normalize unicode (NFC)
    s = unicodedata.normalize("NFC", s)

    # Curly apostrophes -> straight, so "can’t" matches "can't"
    s = s.replace("’", "'").replace("‘", "'")

    # Normalize whitespace (multiple spaces -> single space)
    s = " ".join(s.split())

    s = re.sub(r'[!]{2,}', '!', s)
    s = re.sub(r'[?]{2,}', '?', s)
    s = re.sub(r'[.]{3,}', '...', s)

    return s


def tokenize(s: str) -> List[str]:
    """Lower-cased word tokens with punctuation stripped."""
    if not s:
        return []
    return _WORD_RE.findall(normalize_text(s).lower())


def contains_phrase(text: str, phrase: str) -> bool:
    """
    Word-boundary match of a (possibly multi-word) phrase in lower-cased text.

    'sad' does not match 'saddle'; "can't" matches "can't".
    """
    if not phrase:
        return False
    pattern = r"(?<![a-z0-9'])" + re.escape(phrase.lower()) + r"(?![a-z0-9'])"
    return re.search(pattern, text) is not None


def count_phrase(text: str, phrase: str) -> int:
    pattern = r"(?<![a-z0-9'])" + re.escape(phrase.lower()) + r"(?![a-z0-9'])"
    return len(re.findall(pattern, text))


def find_phrases(text: str, phrases: Iterable[str]) -> List[str]:
    """Phrases from `phrases` present in `text`, in input order."""
    return [p for p in phrases if contains_phrase(text, p)]


def clamp(value: float, min_val: float = 0.0, max_val: float = 1.0) -> float:
    """Clamp a single value into [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def clamp_scores(score: dict, min_val: float = 0.0, max_val: float = 1.0, exclude_keys: set[str] | None = None) -> dict:
    """
    Clamp score values to prevent runaway drift.

    Args:
        score: Dictionary of metric -> float
        min_val: Minimum value (default 0.0)
        max_val: Maximum value (default 1.0)
        exclude_keys: Set of keys to exclude from clamping (default None)

    Returns:
        New dictionary with clamped values (excluded keys unchanged)
    """
    ex = exclude_keys or set()
    return {k: (v if k in ex else clamp(v, min_val, max_val)) for k, v in score.items()}


def mean(values: Iterable[float]) -> float:
    vals = list(values)
    return sum(vals) / len(vals) if vals else 0.0


def pvariance(values: Iterable[float]) -> float:
    """Population variance (0.0 for fewer than two values)."""
    vals = list(values)
    if len(vals) < 2:
        return 0.0
    m = sum(vals) / len(vals)
    return sum((x - m) ** 2 for x in vals) / len(vals)
