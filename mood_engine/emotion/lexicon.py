#!/usr/bin/env python3
"""Load the mood lexicon JSON with sane defaults + caching."""
import json
import functools
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from mood_engine.logs import get_logger

logger = get_logger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parent / "lexicons" / "mood_lexicon.json"


class Lexicon(BaseModel):
    """
    Read-only keyword tables used by the analyzer.

    POSITIVE/NEGATIVE map word -> (valence magnitude, intensity), both 0..1.
    LEGACY_EMOTIONS carries signed valence for per-message trajectory scoring.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = "0"
    positive: Dict[str, Tuple[float, float]] = Field(default_factory=dict, alias="POSITIVE")
    negative: Dict[str, Tuple[float, float]] = Field(default_factory=dict, alias="NEGATIVE")
    intensity_markers: Dict[str, float] = Field(default_factory=dict, alias="INTENSITY_MARKERS")
    indicators: Dict[str, List[str]] = Field(default_factory=dict, alias="INDICATORS")
    indirect_markers: List[str] = Field(default_factory=list, alias="INDIRECT_MARKERS")
    contradiction_markers: List[str] = Field(default_factory=list, alias="CONTRADICTION_MARKERS")
    contradiction_pairs: List[Tuple[str, str]] = Field(default_factory=list, alias="CONTRADICTION_PAIRS")
    temporal_comparison: Dict[str, List[str]] = Field(default_factory=dict, alias="TEMPORAL_COMPARISON")
    extreme_affect: List[str] = Field(default_factory=list, alias="EXTREME_AFFECT")
    healing_descriptors: List[str] = Field(default_factory=list, alias="HEALING_DESCRIPTORS")
    coping: Dict[str, List[str]] = Field(default_factory=dict, alias="COPING")
    coping_effectiveness: List[str] = Field(default_factory=list, alias="COPING_EFFECTIVENESS")
    resilience: Dict[str, List[str]] = Field(default_factory=dict, alias="RESILIENCE")
    stress: Dict[str, Dict[str, float]] = Field(default_factory=dict, alias="STRESS")
    support: Dict[str, List[str]] = Field(default_factory=dict, alias="SUPPORT")
    growth: Dict[str, List[str]] = Field(default_factory=dict, alias="GROWTH")
    supportive_roles: List[str] = Field(default_factory=list, alias="RELATIONSHIP_SUPPORTIVE_ROLES")
    vulnerable_roles: List[str] = Field(default_factory=list, alias="RELATIONSHIP_VULNERABLE_ROLES")
    disclosure: List[str] = Field(default_factory=list, alias="DISCLOSURE")
    legacy_emotions: Dict[str, Tuple[float, float]] = Field(default_factory=dict, alias="LEGACY_EMOTIONS")
    contextual_factors: Dict[str, float] = Field(default_factory=dict, alias="CONTEXTUAL_FACTORS")

    def emotions_in(self, tokens: List[str]) -> List[str]:
        """Indicator labels whose words appear in `tokens`, first-seen order."""
        found: List[str] = []
        present = set(tokens)
        for label, words in self.indicators.items():
            if label not in found and any(w in present for w in words):
                found.append(label)
        return found


@functools.lru_cache(maxsize=4)
def load_lexicon(path: Optional[str] = None) -> Lexicon:
    """
    Load mood lexicon from JSON file with caching.

    Args:
        path: Optional path to lexicon file. If None, uses the packaged lexicon.

    Returns:
        Lexicon (empty tables if the file is missing)
    """
    p = DEFAULT_PATH if path is None else Path(path)

    if not p.exists():
        logger.warning("Lexicon file not found, using empty tables", extra={"path": str(p)})
        return Lexicon()

    raw = json.loads(p.read_text(encoding="utf-8"))
    lex = Lexicon.model_validate(raw)
    logger.debug("Lexicon loaded", extra={"path": str(p), "lexicon_version": lex.version})
    return lex
