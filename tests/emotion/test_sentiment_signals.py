"""
Emotion layer: lexicon loading, sentiment processor, psychological
indicators and the surface cues shared by bias rules and corrections.
"""
import pytest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mood_engine.emotion.cues import detect_defensive, detect_minimization, detect_repetition, detect_sarcasm
from mood_engine.emotion.lexicon import Lexicon, load_lexicon
from mood_engine.emotion.psychological import PsychologicalIndicatorAnalyzer
from mood_engine.emotion.sentiment import SentimentProcessor
from mood_engine.emotion.text_utils import clamp_scores, contains_phrase, normalize_text, tokenize


@pytest.fixture(scope="module")
def processor():
    return SentimentProcessor()


@pytest.fixture(scope="module")
def psych():
    return PsychologicalIndicatorAnalyzer()


# -------------------- Lexicon / text -------------------- #
def test_packaged_lexicon_loads():
    lex = load_lexicon()
    assert "happy" in lex.positive
    assert "sad" in lex.negative
    assert lex.supportive_roles


def test_missing_lexicon_file_gives_empty_tables(tmp_path):
    lex = load_lexicon(str(tmp_path / "missing.json"))
    assert isinstance(lex, Lexicon)
    assert lex.positive == {}


def test_phrase_matching_respects_word_boundaries():
    assert contains_phrase("i feel sad today", "sad")
    assert not contains_phrase("a new saddle", "sad")
    assert contains_phrase("i can't cope", "can't cope")


def test_normalize_and_tokenize():
    assert normalize_text("  so   good!!!  ") == "so good!"
    assert tokenize("I can’t WAIT") == ["i", "can't", "wait"]


def test_clamp_scores_excludes_keys():
    out = clamp_scores({"a": 1.5, "b": -0.2, "c": 3.0}, exclude_keys={"c"})
    assert out == {"a": 1.0, "b": 0.0, "c": 3.0}


# -------------------- Sentiment -------------------- #
def test_positive_sentiment_detected(processor):
    s = processor.analyze_positive("I am so happy today")
    assert s.score > 0.4
    assert s.matched_words == ["happy"]
    assert "joy" in s.indicators


def test_no_substring_false_positive(processor):
    assert processor.analyze_negative("I bought a new saddle").score == 0.0


def test_intensity_marker_amplifies(processor):
    plain = processor.analyze_positive("I am happy")
    marked = processor.analyze_positive("I am very happy")
    assert marked.score > plain.score
    assert "very" in marked.linguistic_markers


def test_indirect_register_boosts_negative(processor):
    plain = processor.analyze_negative("I feel sad")
    indirect = processor.analyze_negative("Maybe I feel sad")
    assert indirect.cultural_context == "indirect"
    assert indirect.score > plain.score


def test_mixed_sentiment(processor):
    mixed = processor.process_mixed_sentiment("I'm so grateful and happy but also overwhelmed and anxious")
    assert mixed.positive.score > 0.3
    assert mixed.negative.score > 0.3
    assert mixed.dominant_sentiment in ("mixed", "positive", "negative")
    assert "overwhelmed" in mixed.emotional_state


def test_relationship_context_cue(processor):
    assert processor.relationship_context("my partner was there") == "romantic"
    assert processor.relationship_context("nothing here") is None


# -------------------- Psychological -------------------- #
def test_stress_lowers_psych_score(psych):
    calm, _ = psych.sub_score(psych.profile("we talked for a while"))
    stressed, evidence = psych.sub_score(psych.profile("I'm overwhelmed, I can't sleep and can't focus"))
    assert calm == 5.0
    assert stressed < calm
    assert any(e.startswith("stress:") for e in evidence)


def test_support_and_growth_raise_psych_score(psych):
    score, evidence = psych.sub_score(psych.profile(
        "Thank you for listening, I'm here for you too. I realize my triggers and patterns now."
    ))
    assert score > 5.0
    assert any(e.startswith("support:") for e in evidence)
    assert any(e.startswith("growth:") for e in evidence)


def test_contradiction_penalty(psych):
    profile = psych.profile("I'm grateful but overwhelmed")
    assert profile.contradiction
    penalized, _ = psych.sub_score(profile, contradiction_penalty=1.5)
    lenient, _ = psych.sub_score(profile, contradiction_penalty=0.0)
    assert lenient - penalized == pytest.approx(1.5)


# -------------------- Cues -------------------- #
@pytest.mark.parametrize("detector,text,expected", [
    (detect_minimization, "It's just a bit stressful, nothing major", True),
    (detect_minimization, "I am struggling", False),
    (detect_sarcasm, "Oh great, another Monday", True),
    (detect_sarcasm, "This is great news", False),
    (detect_repetition, "Fine, fine, fine. Whatever.", True),
    (detect_repetition, "I am fine", False),
    (detect_defensive, "I'm fine, leave me alone", True),
    (detect_defensive, "Thanks for asking", False),
])
def test_cues(detector, text, expected):
    assert detector(text) is expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
