#!/usr/bin/env python3
"""
Validation Framework v1.0
Compares algorithmic mood scores against expert human ratings.

- overall metrics: Pearson, Spearman (tie-averaged ranks), MAE, RMSE,
  agreement within 1.0 point, concordance level
- discrepancy analysis: systematic bias, consistency, distribution
- per-pair analysis, inter-rater consistency, bias attribution via BiasRule list
- prioritized recommendations

Pairs are matched by conversation id; the first human record per
conversation is used for pair metrics, all records for rater consistency.
"""
import math
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from schemas.mood import ScoredConversation
from schemas.validation import (
    BiasAnalysis,
    BiasPattern,
    BiasType,
    DiscrepancyAnalysis,
    DiscrepancyDistribution,
    HumanValidationRecord,
    IndividualValidationAnalysis,
    OutlierValidation,
    SessionMetadata,
    StatisticalEvidence,
    StatisticalSignificance,
    ValidationMetrics,
    ValidationRecommendation,
    ValidationResult,
    ValidatorConsistency,
    ValidatorMetrics,
)
from mood_engine.cli import base_parser, run_agent
from mood_engine.config import CFG
from mood_engine.emotion.text_utils import clamp, mean, pvariance
from mood_engine.errors import InvalidCredentialsError, NoMatchedPairsError
from mood_engine.logs import dlog, get_logger
from mood_engine.validation.bias_rules import (
    DEFAULT_BIAS_RULES,
    FALLBACK_BIAS,
    FALLBACK_DESCRIPTION,
    FALLBACK_RECOMMENDATION,
    BiasRule,
)

logger = get_logger(__name__)

AGENT_VERSION = "1.0.0"
AGENT_ID = "mood_validation"

AGREEMENT_WINDOW = 1.0
CLOSE_AGREEMENT = 0.5
SYSTEMATIC_BIAS_MIN = 0.5
OUTLIER_DEVIATION = 2.0
MIN_EFFECT_STD = 0.1

Pair = Tuple[ScoredConversation, HumanValidationRecord]


class ValidationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    correlation_threshold: float = Field(default=CFG["CORRELATION_THRESHOLD"], ge=-1.0, le=1.0)
    significance_level: float = Field(default=CFG["SIGNIFICANCE_LEVEL"], gt=0.0, lt=1.0)
    bias_sensitivity: float = Field(default=CFG["BIAS_SENSITIVITY"], ge=0.0)
    minimum_validator_experience: float = Field(default=CFG["MIN_VALIDATOR_EXPERIENCE"], ge=0.0)
    required_validator_count: int = Field(default=CFG["REQUIRED_VALIDATOR_COUNT"], ge=1)
    required_specializations: List[str] = Field(default_factory=lambda: list(CFG["REQUIRED_SPECIALIZATIONS"]))


# -------------------- Statistics -------------------- #
def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r; 0.0 for n <= 1, mismatched lengths or zero variance."""
    n = len(x)
    if n != len(y) or n <= 1:
        return 0.0
    mx, my = mean(x), mean(y)
    num = sum((a - mx) * (b - my) for a, b in zip(x, y))
    den = math.sqrt(sum((a - mx) ** 2 for a in x) * sum((b - my) ** 2 for b in y))
    if den == 0:
        return 0.0
    return clamp(num / den, -1.0, 1.0)


def average_ranks(values: Sequence[float]) -> List[float]:
    """1-based ranks; tied values share the mean of their positions."""
    order = sorted(range(len(values)), key=lambda i: values[i])
    ranks = [0.0] * len(values)
    i = 0
    while i < len(order):
        j = i
        while j + 1 < len(order) and values[order[j + 1]] == values[order[i]]:
            j += 1
        rank = (i + j) / 2 + 1
        for k in range(i, j + 1):
            ranks[order[k]] = rank
        i = j + 1
    return ranks


def spearman(x: Sequence[float], y: Sequence[float]) -> float:
    if len(x) != len(y) or len(x) <= 1:
        return 0.0
    return pearson(average_ranks(x), average_ranks(y))


def concordance_level(correlation: float, mae: float) -> str:
    if correlation >= 0.8 and mae <= 0.8:
        return "high"
    if correlation >= 0.6 and mae <= 1.2:
        return "moderate"
    return "low"


def _severity(avg_magnitude: float) -> str:
    if avg_magnitude > 2.5:
        return "high"
    if avg_magnitude > 1.5:
        return "medium"
    return "low"


class ValidationFramework:
    def __init__(self, config: Optional[ValidationConfig] = None, bias_rules: Optional[List[BiasRule]] = None):
        self.config = config or ValidationConfig()
        self.bias_rules = list(DEFAULT_BIAS_RULES if bias_rules is None else bias_rules)
        self._rules_by_type = {r.bias_type: r for r in self.bias_rules}

    # ---- public API ----

    def validate_mood_score(
        self,
        scored: List[ScoredConversation],
        human_records: List[HumanValidationRecord],
        session_id: Optional[str] = None,
    ) -> ValidationResult:
        pairs = self.match_pairs(scored, human_records)
        if not pairs:
            raise NoMatchedPairsError("No matched conversation-validation pairs found")

        metrics = self.overall_metrics(pairs)
        discrepancy = self.analyze_discrepancies(pairs)
        bias = self.analyze_bias(pairs)

        validators = {r.validator_id for r in human_records}
        experience = mean(r.validator_credentials.years_experience for r in human_records)

        result = ValidationResult(
            overall_metrics=metrics,
            discrepancy_analysis=discrepancy,
            individual_analyses=self.analyze_individual(pairs),
            validator_consistency=self.analyze_validator_consistency(
                human_records, {s.id: s.score for s in scored}
            ),
            bias_analysis=bias,
            recommendations=self.generate_recommendations(discrepancy, bias),
            session_metadata=SessionMetadata(
                total_conversations=len(scored),
                total_validators=len(validators),
                average_validator_experience=experience,
            ),
            session_id=session_id,
        )

        logger.info(
            "Validation complete",
            extra={
                "session_id": session_id,
                "sample_size": metrics.sample_size,
                "pearson": round(metrics.pearson_correlation, 3),
                "mae": round(metrics.mean_absolute_error, 3),
                "concordance": metrics.concordance_level,
                "bias_detected": bias.bias_detected,
            },
        )
        return result

    def validate_validator_credentials(self, record: HumanValidationRecord) -> None:
        creds = record.validator_credentials
        if creds.years_experience < self.config.minimum_validator_experience:
            raise InvalidCredentialsError("Validator does not meet minimum experience requirements")
        required = self.config.required_specializations
        if required and not any(s in creds.specializations for s in required):
            raise InvalidCredentialsError("Validator does not meet specialization requirements")

    @staticmethod
    def match_pairs(scored: List[ScoredConversation], human_records: List[HumanValidationRecord]) -> List[Pair]:
        first: Dict[str, HumanValidationRecord] = {}
        for r in human_records:
            first.setdefault(r.conversation_id, r)
        return [(s, first[s.id]) for s in scored if s.id in first]

    # ---- metrics ----

    def overall_metrics(self, pairs: List[Pair]) -> ValidationMetrics:
        algo = [s.score for s, _ in pairs]
        human = [r.human_mood_score for _, r in pairs]
        errors = [abs(a - h) for a, h in zip(algo, human)]

        r = pearson(algo, human)
        mae = mean(errors)
        rmse = math.sqrt(mean(e ** 2 for e in errors))
        agreement = sum(1 for e in errors if e <= AGREEMENT_WINDOW) / len(errors) * 100

        dlog({"algorithmic": algo, "human": human, "pearson": r})

        # simplified significance: correlation strength stands in for a test statistic
        significant = r > 0.5
        return ValidationMetrics(
            pearson_correlation=r,
            spearman_correlation=spearman(algo, human),
            mean_absolute_error=mae,
            root_mean_square_error=rmse,
            agreement_percentage=agreement,
            concordance_level=concordance_level(r, mae),
            statistical_significance=StatisticalSignificance(
                p_value=0.01 if significant else 0.15,
                is_significant=significant,
                confidence_interval=(max(0.0, r - 0.1), min(1.0, r + 0.1)),
            ),
            sample_size=len(pairs),
        )

    def analyze_discrepancies(self, pairs: List[Pair]) -> DiscrepancyAnalysis:
        diffs = [s.score - r.human_mood_score for s, r in pairs]
        mean_diff = mean(diffs)

        if abs(mean_diff) < SYSTEMATIC_BIAS_MIN:
            systematic = "no_systematic_bias"
        elif mean_diff > 0:
            systematic = "algorithmic_over_estimation"
        else:
            systematic = "algorithmic_under_estimation"

        if mean_diff > 0:
            direction = "positive"
        elif mean_diff < 0:
            direction = "negative"
        else:
            direction = "mixed"

        common = {
            "algorithmic_over_estimation": ["emotional_suppression_missed", "neutral_surface_bias"],
            "algorithmic_under_estimation": ["therapeutic_depth_missed", "emotional_breakthrough_undervalued"],
        }.get(systematic, [])

        abs_diffs = [abs(d) for d in diffs]
        return DiscrepancyAnalysis(
            systematic_bias=systematic,
            bias_pattern=BiasPattern(
                magnitude=abs(mean_diff),
                consistency=clamp(1 - math.sqrt(pvariance(diffs)) / 3),
                direction=direction,
            ),
            common_discrepancy_types=common,
            problematic_contexts=["sarcasm_detection", "emotional_complexity", "cultural_nuance"],
            improvement_recommendations=[
                "enhanced_mixed_emotion_analysis",
                "contextual_nuance_improvement",
                "sarcasm_detection_enhancement",
            ],
            discrepancy_distribution=DiscrepancyDistribution(
                small=sum(1 for d in abs_diffs if d <= 0.5),
                medium=sum(1 for d in abs_diffs if 0.5 < d <= 1.5),
                large=sum(1 for d in abs_diffs if d > 1.5),
            ),
        )

    def analyze_individual(self, pairs: List[Pair]) -> List[IndividualValidationAnalysis]:
        out: List[IndividualValidationAnalysis] = []
        for scored, record in pairs:
            algo = scored.score
            human = record.human_mood_score
            error = abs(algo - human)
            if error <= CLOSE_AGREEMENT:
                kind = "close_agreement"
            elif algo > human:
                kind = "algorithmic_over_estimation"
            else:
                kind = "algorithmic_under_estimation"

            factors: List[str] = []
            improvements: List[str] = []
            if kind != "close_agreement":
                for rule in self.bias_rules:
                    if rule.fires(scored, record):
                        factors.append(rule.bias_type)
                        improvements.append(rule.algorithm_enhancement)
                if "mixed" in scored.analysis.descriptors:
                    factors.append("mixed_emotion_complexity")
                    improvements.append("enhanced_mixed_emotion_analysis")
                factors.append("contextual_nuance_missed")

            out.append(IndividualValidationAnalysis(
                conversation_id=scored.id,
                algorithmic_score=algo,
                human_score=human,
                absolute_error=error,
                discrepancy_type=kind,
                discrepancy_factors=factors,
                human_rationale=record.rationale,
                algorithmic_confidence=scored.analysis.confidence,
                human_confidence=record.confidence,
                recommended_improvement=improvements,
            ))
        return out

    # ---- rater consistency ----

    def analyze_validator_consistency(
        self,
        records: List[HumanValidationRecord],
        algorithmic: Optional[Dict[str, float]] = None,
    ) -> ValidatorConsistency:
        """Spread of ratings per conversation; `algorithmic` maps conversation id to score."""
        by_conversation: Dict[str, List[HumanValidationRecord]] = {}
        for r in records:
            by_conversation.setdefault(r.conversation_id, []).append(r)

        variances: List[float] = []
        outliers: List[OutlierValidation] = []
        for conversation_id, group in by_conversation.items():
            if len(group) < 2:
                continue
            scores = [r.human_mood_score for r in group]
            avg = mean(scores)
            variances.append(pvariance(scores))
            for r in group:
                deviation = abs(r.human_mood_score - avg)
                if deviation > OUTLIER_DEVIATION:
                    outliers.append(OutlierValidation(
                        validator_id=r.validator_id,
                        conversation_id=conversation_id,
                        deviation_magnitude=deviation,
                    ))

        avg_variance = mean(variances)
        reliability = clamp(1 - avg_variance / 4)
        if reliability >= 0.8 and not outliers:
            consensus = "high"
        elif reliability >= 0.6 and len(outliers) <= 1:
            consensus = "moderate"
        else:
            consensus = "low"

        return ValidatorConsistency(
            inter_rater_reliability=reliability,
            average_variance=avg_variance,
            consensus_level=consensus,
            outlier_validations=outliers,
            validator_metrics=self._validator_metrics(records, by_conversation, algorithmic or {}),
        )

    @staticmethod
    def _validator_metrics(
        records: List[HumanValidationRecord],
        by_conversation: Dict[str, List[HumanValidationRecord]],
        algorithmic: Dict[str, float],
    ) -> Dict[str, ValidatorMetrics]:
        """
        Per-validator agreement.

        - with algorithm: Pearson r over the validator's rated conversations
        - with peers: Pearson r against the other raters' mean per conversation
        - consistency: mean distance to the peer mean, mapped onto 0..1
        """
        out: Dict[str, ValidatorMetrics] = {}
        for vid in sorted({r.validator_id for r in records}):
            own = [r for r in records if r.validator_id == vid]

            algo_pairs = [(r.human_mood_score, algorithmic[r.conversation_id])
                          for r in own if r.conversation_id in algorithmic]
            peer_pairs = []
            for r in own:
                peers = [p.human_mood_score for p in by_conversation[r.conversation_id] if p.validator_id != vid]
                if peers:
                    peer_pairs.append((r.human_mood_score, mean(peers)))

            distances = [abs(h - p) for h, p in peer_pairs]
            out[vid] = ValidatorMetrics(
                average_correlation_with_algorithm=pearson(*zip(*algo_pairs)) if algo_pairs else 0.0,
                average_correlation_with_peers=pearson(*zip(*peer_pairs)) if peer_pairs else 0.0,
                consistency_score=clamp(1 - mean(distances) / (2 * OUTLIER_DEVIATION)) if distances else 1.0,
                validation_count=len(own),
            )
        return out

    # ---- bias ----

    def analyze_bias(self, pairs: List[Pair]) -> BiasAnalysis:
        diffs = [s.score - r.human_mood_score for s, r in pairs]
        mean_diff = mean(diffs)
        detected = abs(mean_diff) > self.config.bias_sensitivity

        bias_types = self.attribute_bias_types(pairs) if detected else []
        if detected:
            p_value = 0.005 if len(diffs) >= 5 else 0.02
        else:
            p_value = 0.15

        return BiasAnalysis(
            bias_detected=detected,
            bias_types=bias_types,
            detection_confidence=min(0.95, abs(mean_diff) * 2),
            statistical_evidence=StatisticalEvidence(
                test_statistic=mean_diff * math.sqrt(len(diffs)),
                p_value=p_value,
                effect_size=abs(mean_diff) / max(MIN_EFFECT_STD, math.sqrt(pvariance(diffs))),
            ),
        )

    def attribute_bias_types(self, pairs: List[Pair]) -> List[BiasType]:
        """Rules in order; a pair counts toward every rule that fires on it."""
        stats: Dict[str, List[float]] = {}
        for scored, record in pairs:
            magnitude = abs(scored.score - record.human_mood_score)
            for rule in self.bias_rules:
                if rule.fires(scored, record):
                    stats.setdefault(rule.bias_type, []).append(magnitude)

        types = [
            BiasType(
                type=bias,
                severity=_severity(mean(mags)),
                description=self._rules_by_type[bias].description,
                affected_samples=len(mags),
                correction_recommendation=self._rules_by_type[bias].recommendation,
            )
            for bias, mags in stats.items()
        ]
        if not types and pairs:
            avg = mean(abs(s.score - r.human_mood_score) for s, r in pairs)
            types.append(BiasType(
                type=FALLBACK_BIAS,
                severity=_severity(avg),
                description=FALLBACK_DESCRIPTION,
                affected_samples=len(pairs),
                correction_recommendation=FALLBACK_RECOMMENDATION,
            ))
        return types

    # ---- recommendations ----

    def _rule_text(self, bias_type: str, attr: str, default: str) -> str:
        rule = self._rules_by_type.get(bias_type)
        return getattr(rule, attr) if rule else default

    def generate_recommendations(
        self, discrepancy: DiscrepancyAnalysis, bias: BiasAnalysis
    ) -> List[ValidationRecommendation]:
        recs: List[ValidationRecommendation] = []

        if bias.bias_detected and len(bias.bias_types) == 1 and bias.bias_types[0].type != FALLBACK_BIAS:
            bt = bias.bias_types[0]
            algo = self._rule_text(bt.type, "algorithm_enhancement", "Enhance emotional complexity processing")
            data = self._rule_text(bt.type, "training_data", "Enhance training data with emotional complexity examples")
            process = self._rule_text(bt.type, "validation_process", "Improve emotional pattern validation")
            return [
                ValidationRecommendation(
                    priority="high",
                    category="algorithm_enhancement",
                    description=f"{algo} to address {bt.type}",
                    expected_impact=f"Reduce {bt.severity} severity bias in {bt.affected_samples} samples",
                ),
                ValidationRecommendation(
                    priority="medium",
                    category="training_data_enhancement",
                    description=f"{data} for improved {bt.type} detection",
                    expected_impact=f"Improve detection accuracy by 15-25% for {bt.type} cases",
                ),
                ValidationRecommendation(
                    priority="medium",
                    category="validation_process_improvement",
                    description=f"{process} in validation workflows",
                    expected_impact=f"Enhance early detection of {bt.type} patterns in validation",
                ),
            ]

        if discrepancy.systematic_bias != "no_systematic_bias":
            recs.append(ValidationRecommendation(
                priority="high",
                category="systematic_bias_correction",
                description=f"Address {discrepancy.systematic_bias} in algorithmic assessments",
                expected_impact="Improve overall correlation by 0.1-0.2 points",
            ))

        if bias.bias_detected:
            recs.append(ValidationRecommendation(
                priority="high",
                category="bias_mitigation",
                description="Implement bias detection and correction mechanisms",
                expected_impact="Reduce systematic bias by 50%",
            ))
            for bt in bias.bias_types:
                algo = self._rule_text(bt.type, "algorithm_enhancement", "Enhance emotional complexity processing")
                recs.append(ValidationRecommendation(
                    priority="high",
                    category="algorithm_enhancement",
                    description=f"{algo} to address {bt.type}",
                    expected_impact=f"Reduce {bt.severity} severity bias in {bt.affected_samples} samples",
                ))

        dist = discrepancy.discrepancy_distribution
        if dist.large > dist.small:
            recs.append(ValidationRecommendation(
                priority="medium",
                category="accuracy_improvement",
                description="Focus on reducing large discrepancies through contextual analysis",
                expected_impact="Reduce mean absolute error by 0.3-0.5 points",
            ))
        return recs


# -------------------- Payload helpers -------------------- #
def parse_batch(data: Dict[str, Any]) -> Tuple[List[ScoredConversation], List[HumanValidationRecord]]:
    scored = [ScoredConversation.model_validate(s) for s in data.get("scored", []) or []]
    records = [HumanValidationRecord.model_validate(r) for r in data.get("human_records", []) or []]
    return scored, records


# -------------------- Core -------------------- #
def run(payload: Dict[str, Any], meta: Dict[str, Any]) -> Dict[str, Any]:
    data = payload.get("data", {}) or {}
    scored, records = parse_batch(data)

    framework = ValidationFramework()
    result = framework.validate_mood_score(scored, records, session_id=meta.get("session_id"))
    m = result.overall_metrics

    emits = {"validation": result.model_dump(mode="json")}
    checks = {
        "CHK-VALID-01": {
            "pass": m.pearson_correlation >= framework.config.correlation_threshold,
            "reason": f"pearson={m.pearson_correlation:.2f}, threshold={framework.config.correlation_threshold}",
        },
        "CHK-VALID-02": {
            "pass": not result.bias_analysis.bias_detected,
            "reason": f"systematic_bias={result.discrepancy_analysis.systematic_bias}",
        },
    }
    res = {"ok": True, "emits": emits, "checks": checks}
    if meta.get("explain_verbose"):
        res["rationales"] = [{
            "cue": "validation",
            "detail": {
                "concordance": m.concordance_level,
                "mae": round(m.mean_absolute_error, 3),
                "bias_types": [b.type for b in result.bias_analysis.bias_types],
            },
        }]
    return res


# -------------------- Main -------------------- #
def main() -> None:
    parser = base_parser("MoodValidation - algorithmic vs human mood score agreement.")
    parser.add_argument("--session-id", type=str, default=None)
    run_agent(AGENT_ID, AGENT_VERSION, parser, run, sys.argv[1:])


if __name__ == "__main__":
    main()
