from insights.questionnaire import parse_schema
from insights.services.question_mapper import (
    extract_answer,
    lookup_path,
    map_questions_to_data,
    matches_filters,
    validate_mappings,
)

SCHEMA = parse_schema(
    {
        "sections": [
            {"id": "s1", "title": "Team", "questions": [{"id": "q1", "text": "Q1", "type": "scale"}]},
            {"id": "s2", "title": "Work", "questions": [{"id": "q2", "text": "Q2", "type": "scale"}]},
        ]
    }
)


def test_extract_answer_flat_then_one_level_nested():
    assert extract_answer({"answers": {"q1": 4}}, "q1") == 4
    assert extract_answer({"answers": {"s2": {"q2": 3}}}, "q2") == 3
    assert extract_answer({"answers": {"s2": {"deeper": {"q2": 3}}}}, "q2") is None
    assert extract_answer({"answers": None}, "q1") is None


def test_lookup_path_and_filters():
    response = {"metadata": {"cohort": "2024", "team": "ops"}}
    assert lookup_path(response, "metadata.cohort") == "2024"
    assert lookup_path(response, "metadata.missing.deeper") is None
    assert matches_filters(response, {"metadata.cohort": "2024"})
    assert matches_filters(response, {"metadata.team": ["ops", "hr"]})
    assert not matches_filters(response, {"metadata.team": ["hr"]})
    assert matches_filters(response, None)


def test_map_questions_to_data_skips_missing_and_filtered():
    responses = [
        {"participant_id": "p1", "answers": {"q1": 4, "q2": 2}, "metadata": {"cohort": "a"}},
        {"participant_id": "p2", "answers": {"q1": None}, "metadata": {"cohort": "a"}},
        {"participant_id": "p3", "answers": {"s1": {"q1": 5}}, "metadata": {"cohort": "b"}},
    ]
    mappings = {
        "engagement": {"questionIds": ["q1"], "aggregationType": "average"},
        "cohort_a": {"questionIds": ["q1", "q2"], "aggregationType": "average", "filters": {"metadata.cohort": "a"}},
        "nothing": {"questionIds": ["q2"], "aggregationType": "average", "filters": {"metadata.cohort": "z"}},
    }
    mapped = map_questions_to_data(SCHEMA, responses, mappings)
    assert [d["value"] for d in mapped["engagement"]] == [4, 5]
    assert mapped["engagement"][1]["participantId"] == "p3"
    assert [(d["questionId"], d["value"]) for d in mapped["cohort_a"]] == [("q1", 4), ("q2", 2)]
    assert mapped["nothing"] == []


def test_validate_mappings_reports_missing_ids_across_sections():
    ok = validate_mappings(SCHEMA, {"d": {"questionIds": ["q1", "q2"]}})
    assert ok == {"valid": True, "missingQuestions": []}
    bad = validate_mappings(SCHEMA, {"d": {"questionIds": ["q1", "q9"]}, "e": {"questionIds": ["q9", "q8"]}})
    assert bad["valid"] is False
    assert bad["missingQuestions"] == ["q9", "q8"]
