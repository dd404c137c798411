"""
SEO evaluation of a canonical content record.

Pipeline: prompt -> Gemini -> JSON repair -> key normalization -> score
validation -> weighted recomputation -> priority and recommendation.
Every failure surfaces as an EvaluationError subclass; no partial result is
ever returned.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from .clients.gemini import GeminiClient
from .errors import EvaluationError, ValidationError
from .prompts import EvaluationPromptBuilder, describe_prompt
from .schemas import (
    CRITERION_WEIGHTS,
    PRIORITIES,
    SCORE_FIELDS,
    CanonicalContentRecord,
    CriterionEvaluation,
    EvaluationConfig,
    ScoredEvaluation,
    score_field,
)
from .utils import normalize_dict_keys
from .utils.json_repair import parse_model_json

logger = logging.getLogger(__name__)

HIGH_PRIORITY_BELOW = 60


def compute_overall_score(scores: Dict[str, float]) -> float:
    """Weighted sum over the fixed rubric, rounded to one decimal."""
    total = sum(weight * scores[name] for name, weight in CRITERION_WEIGHTS.items())
    return round(total, 1)


def optimization_recommendation(overall_score: float, threshold: float) -> str:
    return "Optimize" if overall_score < threshold else "Not Optimize"


def derive_priority(overall_score: float, threshold: float, reported: Any = None) -> str:
    if isinstance(reported, str) and reported.strip().lower() in PRIORITIES:
        return reported.strip().lower()
    if overall_score < HIGH_PRIORITY_BELOW:
        return "high"
    if overall_score < threshold:
        return "medium"
    return "low"


def _coerce_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip('%'))
        except ValueError:
            return None
    return None


def _criterion_payload(value: Any) -> Optional[Dict[str, Any]]:
    """Accept {"score": ..., ...} or a bare number; None when unusable."""
    if isinstance(value, dict):
        payload = dict(value)
    elif _coerce_score(value) is not None:
        payload = {"score": value}
    else:
        return None
    score = _coerce_score(payload.get("score"))
    if score is None or not 0 <= score <= 100:
        return None
    payload["score"] = score
    return payload


def validate_scores(data: Dict[str, Any]) -> Dict[str, CriterionEvaluation]:
    """
    Check that every criterion carries a usable score.

    Raises ValidationError listing every missing, null, non-numeric or
    out-of-range ``*_score`` field at once.
    """
    nested = data.get("scores")
    if isinstance(nested, dict):
        for key, value in normalize_dict_keys(nested).items():
            data.setdefault(key, value)

    criteria = {}
    offending: List[str] = []
    for field in SCORE_FIELDS:
        payload = _criterion_payload(data.get(field))
        if payload is None:
            offending.append(field)
            continue
        try:
            criteria[field] = CriterionEvaluation.model_validate(payload)
        except PydanticValidationError:
            offending.append(field)

    if offending:
        raise ValidationError(
            f"Invalid evaluation response: missing or invalid scores for {', '.join(offending)}",
            missing_fields=offending,
        )
    return criteria


def derive_priority_recommendations(data: Dict[str, Any], criteria: Dict[str, CriterionEvaluation],
                                    count: int) -> List[str]:
    reported = data.get("priority_recommendations")
    if isinstance(reported, str):
        reported = [reported]
    if isinstance(reported, list):
        items = [str(item).strip() for item in reported if item and str(item).strip()]
        if items:
            return items[:count]

    # Fall back to the recommendations of the weakest criteria, lowest score first.
    ranked: List[Tuple[float, str]] = sorted(
        ((criteria[score_field(name)].score, name) for name in CRITERION_WEIGHTS),
        key=lambda pair: pair[0],
    )
    result: List[str] = []
    for _, name in ranked:
        for recommendation in criteria[score_field(name)].recommendations:
            if recommendation not in result:
                result.append(recommendation)
            if len(result) >= count:
                return result
    return result


class SEOEvaluator:
    def __init__(self, gemini_client: GeminiClient, prompt_builder: Optional[EvaluationPromptBuilder] = None):
        self.gemini = gemini_client
        self.prompt_builder = prompt_builder or EvaluationPromptBuilder()

    async def evaluate(self, record: CanonicalContentRecord, config: EvaluationConfig) -> ScoredEvaluation:
        logger.info(f"🔍 Evaluating '{record.slug}' ({config.output_format.report_type} prompt)")
        try:
            prompt = self.prompt_builder.build(record, config)
            logger.debug(f"Prompt for '{record.slug}' ({len(prompt)} chars): {describe_prompt(prompt)}")
            raw_text = await self.gemini.generate_text(prompt)
            data = normalize_dict_keys(parse_model_json(raw_text))
            evaluation = self.score(data, config)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"Evaluation failed for '{record.slug}': {e}") from e

        logger.info(
            f"✅ '{record.slug}' scored {evaluation.overall_score} -> "
            f"{evaluation.optimization_recommendation} ({evaluation.priority} priority)"
        )
        return evaluation

    def score(self, data: Dict[str, Any], config: EvaluationConfig) -> ScoredEvaluation:
        """Turn a normalized response dict into a validated ScoredEvaluation."""
        criteria = validate_scores(data)
        scores = {name: criteria[score_field(name)].score for name in CRITERION_WEIGHTS}

        if len(set(scores.values())) == 1:
            logger.warning(
                f"⚠️ All six criteria received the same score ({next(iter(scores.values()))}); "
                "the model may not have differentiated between them"
            )

        output = config.output_format
        overall = compute_overall_score(scores)
        reported = _coerce_score(data.get("overall_score"))
        if reported is not None and abs(reported - overall) > 0.5:
            logger.info(f"Model reported overall score {reported}, recomputed {overall}")

        summary = data.get("summary")
        try:
            return ScoredEvaluation(
                **criteria,
                overall_score=overall,
                optimization_recommendation=optimization_recommendation(overall, output.optimization_threshold),
                priority=derive_priority(overall, output.optimization_threshold, data.get("priority")),
                priority_recommendations=derive_priority_recommendations(
                    data, criteria, output.priority_recommendation_count),
                summary="" if summary is None else str(summary),
                timestamp=datetime.now(timezone.utc).isoformat(),
                model=self.gemini.model,
                report_type=output.report_type,
                reported_overall_score=reported,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid evaluation response: {e}") from e
