import pytest

from insights.questionnaire import parse_schema
from insights.services import aggregator as agg
from insights.services.aggregator import (
    AggregationContext,
    AggregatorRegistry,
    DataAggregator,
    aggregate_dimension,
    completion_rate,
    default_aggregator_registry,
)
from insights.services.errors import InsufficientDataError, MappingValidationError, NotFoundError

SCHEMA = parse_schema(
    {
        "sections": [
            {
                "id": "s1",
                "title": "Engagement",
                "questions": [
                    {"id": "q1", "type": "scale", "scale": {"min": 1, "max": 5}},
                    {"id": "q2", "type": "scale", "scale": {"min": 1, "max": 5}},
                ],
            },
            {"id": "s2", "title": "Voice", "questions": [{"id": "q3", "type": "free-text"}, {"id": "q4", "type": "scale"}]},
        ]
    }
)
CONFIG = {
    "dataMappings": {
        "engagement": {"questionIds": ["q1", "q2"], "aggregationType": "average"},
        "voice": {"questionIds": ["q4"], "aggregationType": "sum"},
    }
}


def _responses(n: int) -> list[dict]:
    return [
        {"participant_id": f"p{i}", "answers": {"q1": 4, "q2": 2, "q4": 1}, "metadata": {}}
        for i in range(n)
    ]


def _context(values, **kwargs) -> AggregationContext:
    return AggregationContext(
        question_ids=kwargs.pop("question_ids", ["q1"]),
        responses=[{"questionId": qid, "value": v, "participantId": "p"} for qid, v in values],
        **kwargs,
    )


@pytest.mark.parametrize("count", [0, 1, 4])
def test_below_threshold_raises_insufficient_data(count):
    with pytest.raises(InsufficientDataError) as exc:
        DataAggregator().aggregate_responses(SCHEMA, _responses(count), CONFIG)
    assert str(exc.value) == f"Need at least 5 responses, got {count}"
    assert exc.value.minimum == 5


def test_threshold_is_inclusive_at_five():
    data = DataAggregator().aggregate_responses(SCHEMA, _responses(5), CONFIG)
    assert data["response_count"] == 5
    assert data["dimensions"]["engagement"] == {"value": 3, "responses": 10}
    assert data["dimensions"]["voice"] == {"value": 5, "responses": 5}
    assert data["overall_score"] == 4
    # 3 answered out of 4 questions for every response.
    assert data["completion_rate"] == 0.75
    assert data["generated_at"]


def test_missing_questions_are_named():
    config = {"dataMappings": {"x": {"questionIds": ["q1", "nope"], "aggregationType": "average"}}}
    with pytest.raises(MappingValidationError) as exc:
        DataAggregator().aggregate_responses(SCHEMA, _responses(5), config)
    assert exc.value.missing_questions == ["nope"]
    assert str(exc.value) == "Invalid data mappings. Missing questions: nope"


def test_builtin_aggregation_types():
    values = [("q1", 1), ("q1", "3"), ("q1", 3), ("q1", "n/a")]
    assert aggregate_dimension(_context(values), "average")["value"] == 1.75
    assert aggregate_dimension(_context(values), "sum")["value"] == 7
    assert aggregate_dimension(_context(values), "count")["value"] == 4
    assert aggregate_dimension(_context(values), "median")["value"] == 2
    assert aggregate_dimension(_context(values), "mode")["value"] == 3

    dist = aggregate_dimension(_context([("q1", 1), ("q1", 2), ("q1", 2)]), "distribution")
    assert dist["distribution"] == {"1": 1, "2": 2}
    assert dist["value"] == pytest.approx(5 / 3)

    pct = aggregate_dimension(_context([("q1", "a"), ("q1", "b")]), "percentage")
    assert pct["distribution"] == {"a": 50.0, "b": 50.0}
    assert pct["value"] == 0


def test_registered_custom_aggregator_takes_precedence():
    registry = AggregatorRegistry()
    registry.register("constant", lambda ctx: {"value": 42, "responses": len(ctx.responses)})
    result = aggregate_dimension(_context([("q1", 1)]), "sum", "constant", registry)
    assert result == {"value": 42, "responses": 1}

    fallback = aggregate_dimension(_context([("q1", 1), ("q1", 3)]), "average", "unknown", registry)
    assert fallback["value"] == 2


def test_registry_is_read_only_after_freeze():
    registry = default_aggregator_registry()
    assert registry.names() == ["flower_score", "weighted_average"]
    registry.freeze()
    assert registry.frozen
    with pytest.raises(RuntimeError):
        registry.register("late", lambda ctx: {"value": 0, "responses": 0})
    assert registry.has("flower_score")
    assert not registry.has(None)


def test_weighted_average_uses_question_weights():
    ctx = _context([("q1", 5), ("q2", 1)], question_ids=["q1", "q2"], weights={"q1": 3}, settings={"DEFAULT_QUESTION_WEIGHT": 1})
    assert agg.weighted_average_aggregator(ctx)["value"] == 4


def test_flower_score_normalizes_per_question():
    ctx = _context([("q1", 5), ("q1", 3), ("q2", 1)], question_ids=["q1", "q2"], scale={"min": 1, "max": 5})
    result = agg.flower_score_aggregator(ctx)
    assert result["questions"]["q1"]["value"] == 75
    assert result["questions"]["q2"]["value"] == 0
    assert result["value"] == 37.5


def test_completion_rate_counts_nested_non_empty_leaves():
    responses = [
        {"answers": {"q1": 1, "q2": "", "s2": {"q3": "hi", "q4": None}}},
        {"answers": {"q1": [1, 2]}},
    ]
    assert completion_rate(responses, 4) == 3 / 8
    assert completion_rate([], 4) == 0
    assert completion_rate(responses, 0) == 0


def test_completion_rate_descends_every_nesting_level():
    responses = [{"answers": {"s1": {"group": {"q1": 2, "q2": ""}}, "q3": "ok"}}]
    assert completion_rate(responses, 3) == 2 / 3


def test_aggregate_loads_questionnaire_and_responses(monkeypatch):
    monkeypatch.setattr(agg.reporting_repo, "get_questionnaire", lambda db, qid: {"id": qid, "schema": {"sections": []}})
    monkeypatch.setattr(agg.reporting_repo, "list_responses", lambda db, qid: _responses(2))
    with pytest.raises(InsufficientDataError):
        DataAggregator().aggregate(object(), "q-1", CONFIG)

    monkeypatch.setattr(agg.reporting_repo, "get_questionnaire", lambda db, qid: None)
    with pytest.raises(NotFoundError):
        DataAggregator().aggregate(object(), "q-1", CONFIG)
