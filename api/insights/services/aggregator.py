"""Dimension aggregation for report templates.

A template's ``dataMappings`` group questions into named dimensions. Each
dimension reduces to a number using either a built-in aggregation type or a
custom aggregator looked up by name in an :class:`AggregatorRegistry`.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .. import reporting_repo
from ..config import DEFAULT_AGGREGATOR_SETTINGS, MIN_RESPONSES
from ..schema_loader import load_draft_schema
from . import statistics as stats
from .errors import InsufficientDataError, MappingValidationError, NotFoundError
from .question_mapper import map_questions_to_data, validate_mappings

logger = logging.getLogger(__name__)

AGGREGATION_TYPES = ("average", "sum", "count", "median", "mode", "distribution", "percentage", "custom")


@dataclass
class AggregationContext:
    question_ids: list[str]
    responses: list[dict[str, Any]]
    scale: dict[str, float] | None = None
    weights: dict[str, float] | None = None
    filters: dict[str, Any] | None = None
    settings: dict[str, Any] = field(default_factory=dict)


AggregationFunction = Callable[[AggregationContext], dict[str, Any]]


class AggregatorRegistry:
    def __init__(self) -> None:
        self._functions: dict[str, AggregationFunction] = {}
        self._frozen = False

    def register(self, name: str, fn: AggregationFunction) -> None:
        if self._frozen:
            raise RuntimeError(f"Aggregator registry is frozen; cannot register {name!r}")
        self._functions[name] = fn

    def get(self, name: str | None) -> AggregationFunction | None:
        if not name:
            return None
        return self._functions.get(name)

    def has(self, name: str | None) -> bool:
        return bool(name) and name in self._functions

    def names(self) -> list[str]:
        return sorted(self._functions)

    def freeze(self) -> "AggregatorRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen


def _numeric(value: Any) -> float:
    number = stats.to_number(value)
    return 0 if number is None else number


def weighted_average_aggregator(context: AggregationContext) -> dict[str, Any]:
    default_weight = float(context.settings.get("DEFAULT_QUESTION_WEIGHT", 1.0))
    weights = context.weights or {}
    values = []
    value_weights = []
    for item in context.responses:
        values.append(_numeric(item.get("value")))
        value_weights.append(float(weights.get(item.get("questionId"), default_weight)))
    return {"value": stats.weighted_average(values, value_weights), "responses": len(context.responses)}


def flower_score_aggregator(context: AggregationContext) -> dict[str, Any]:
    """Per-question 0-100 scores, averaged into one petal value."""
    scale = context.scale or {}
    lo = scale.get("min", context.settings.get("FLOWER_SCALE_MIN", 1))
    hi = scale.get("max", context.settings.get("FLOWER_SCALE_MAX", 5))
    by_question: dict[str, list[float]] = {qid: [] for qid in context.question_ids}
    for item in context.responses:
        number = stats.to_number(item.get("value"))
        if number is None:
            continue
        by_question.setdefault(item.get("questionId"), []).append(number)

    questions: dict[str, Any] = {}
    scores = []
    for question_id, values in by_question.items():
        if not values:
            continue
        normalized = stats.normalize(values, {"min": lo, "max": hi})
        score = stats.average(normalized) * 100
        questions[question_id] = {"value": score, "responses": len(values)}
        scores.append(score)
    return {"value": stats.average(scores), "responses": len(context.responses), "questions": questions}


def default_aggregator_registry() -> AggregatorRegistry:
    registry = AggregatorRegistry()
    registry.register("weighted_average", weighted_average_aggregator)
    registry.register("flower_score", flower_score_aggregator)
    return registry


def aggregate_dimension(
    context: AggregationContext,
    aggregation_type: str | None,
    custom_aggregator: str | None = None,
    registry: AggregatorRegistry | None = None,
) -> dict[str, Any]:
    custom = registry.get(custom_aggregator) if registry else None
    if custom is not None:
        return custom(context)
    if custom_aggregator:
        logger.warning("[REPORTS] custom aggregator %r not registered; using %s", custom_aggregator, aggregation_type)

    raw_values = [item.get("value") for item in context.responses]
    values = [_numeric(v) for v in raw_values]
    distribution = None

    if aggregation_type == "sum":
        value = stats.total(values)
    elif aggregation_type == "count":
        value = stats.count(values)
    elif aggregation_type == "median":
        value = stats.median(values)
    elif aggregation_type == "mode":
        value = _numeric(stats.mode(values))
    elif aggregation_type in ("distribution", "percentage"):
        if aggregation_type == "percentage":
            distribution = stats.percentage(raw_values)
        else:
            distribution = stats.distribution(raw_values)
        value = stats.average(values)
    else:
        value = stats.average(values)

    out: dict[str, Any] = {"value": value, "responses": len(context.responses)}
    if distribution is not None:
        out["distribution"] = distribution
    return out


def _count_answered(answers: Any) -> int:
    if not isinstance(answers, dict):
        return 0
    answered = 0
    for value in answers.values():
        if value is None or value == "":
            continue
        if isinstance(value, dict):
            answered += _count_answered(value)
        else:
            answered += 1
    return answered


def completion_rate(responses: list[dict[str, Any]], total_questions: int) -> float:
    if not responses or total_questions <= 0:
        return 0
    answered = sum(_count_answered(r.get("answers")) for r in responses)
    return answered / (len(responses) * total_questions)


def overall_score(dimensions: dict[str, dict[str, Any]]) -> float:
    return stats.average([_numeric(d.get("value")) for d in dimensions.values()])


class DataAggregator:
    def __init__(self, registry: AggregatorRegistry | None = None, settings: dict[str, Any] | None = None):
        self.registry = registry if registry is not None else default_aggregator_registry().freeze()
        self.settings = dict(DEFAULT_AGGREGATOR_SETTINGS)
        self.settings.update(settings or {})

    def aggregate(self, db, questionnaire_id: str, config: dict[str, Any]) -> dict[str, Any]:
        questionnaire = reporting_repo.get_questionnaire(db, questionnaire_id)
        if not questionnaire:
            raise NotFoundError("questionnaire", questionnaire_id)
        responses = reporting_repo.list_responses(db, questionnaire_id)
        return self.aggregate_responses(load_draft_schema(questionnaire), responses, config)

    def aggregate_responses(self, schema, responses: list[dict[str, Any]], config: dict[str, Any]) -> dict[str, Any]:
        if len(responses) < MIN_RESPONSES:
            raise InsufficientDataError(len(responses))

        data_mappings = (config or {}).get("dataMappings") or {}
        validation = validate_mappings(schema, data_mappings)
        if not validation["valid"]:
            raise MappingValidationError(validation["missingQuestions"])

        mapped = map_questions_to_data(schema, responses, data_mappings)
        dimensions: dict[str, dict[str, Any]] = {}
        for dimension_key, mapping in data_mappings.items():
            context = AggregationContext(
                question_ids=list(mapping.get("questionIds") or []),
                responses=mapped.get(dimension_key, []),
                scale=mapping.get("scale"),
                weights=mapping.get("weights"),
                filters=mapping.get("filters"),
                settings=self.settings,
            )
            dimensions[dimension_key] = aggregate_dimension(
                context,
                mapping.get("aggregationType"),
                mapping.get("customAggregator"),
                self.registry,
            )

        return {
            "dimensions": dimensions,
            "overall_score": overall_score(dimensions),
            "response_count": len(responses),
            "completion_rate": completion_rate(responses, schema.total_questions()),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
