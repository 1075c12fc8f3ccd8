import pytest

from insights.services.errors import (
    ConfigurationError,
    InsufficientDataError,
    UnknownRendererError,
    UnsupportedVisualizationError,
)
from insights.services.renderers import (
    RendererKind,
    color_for_value,
    default_visualization_registry,
    format_number,
    format_percentage,
    render_report,
    validate_config,
)

DATA = {
    "dimensions": {
        "red": {"value": 20, "responses": 6},
        "green": {"value": 80, "responses": 6},
    },
    "metrics": {"nps": 12.5, "label": "ok"},
    "overall_score": 50,
    "response_count": 6,
    "completion_rate": 0.9,
    "generated_at": "2026-01-01T00:00:00Z",
}
MAPPINGS = {"red": {"questionIds": ["q1"], "aggregationType": "average"}}


def test_validate_config_requires_mappings():
    assert validate_config({"dataMappings": MAPPINGS}) == {"valid": True, "errors": []}
    assert validate_config({})["errors"] == ["Report configuration is required"]
    assert validate_config({"dataMappings": {}})["errors"] == ["Data mappings are required in configuration"]


def test_render_requires_minimum_responses():
    with pytest.raises(InsufficientDataError) as exc:
        render_report("visualization", {**DATA, "response_count": 4}, {"dataMappings": MAPPINGS, "visualization": {"type": "bar"}})
    assert str(exc.value) == "Insufficient responses for report generation (minimum 5 required)"


@pytest.mark.parametrize(
    "kind,label",
    [("visualization", "Visualization"), ("pdf", "PDF"), ("dashboard", "Dashboard")],
)
def test_each_kind_requires_its_section(kind, label):
    with pytest.raises(ConfigurationError) as exc:
        render_report(kind, DATA, {"dataMappings": MAPPINGS})
    assert str(exc.value) == f"{label} configuration is required"


def test_unknown_kind_and_visualization_type():
    with pytest.raises(UnknownRendererError):
        render_report("spreadsheet", DATA, {"dataMappings": MAPPINGS})
    with pytest.raises(UnsupportedVisualizationError):
        render_report(RendererKind.VISUALIZATION, DATA, {"dataMappings": MAPPINGS, "visualization": {"type": "sankey"}})


def test_builtin_chart_payload():
    out = render_report(
        "visualization",
        DATA,
        {"dataMappings": MAPPINGS, "visualization": {"type": "radar", "options": {"label": "Scores", "hideScales": True}}},
    )
    assert out["kind"] == "visualization"
    assert out["chartType"] == "radar"
    assert out["labels"] == ["red", "green"]
    assert out["datasets"][0]["data"] == [20, 80]
    assert out["datasets"][0]["label"] == "Scores"
    assert out["datasets"][0]["fill"] is True
    assert "scales" not in out["options"]


def test_flower_visualization_from_registry():
    registry = default_visualization_registry().freeze()
    out = render_report(
        "visualization",
        DATA,
        {"dataMappings": MAPPINGS, "visualization": {"type": "flower", "options": {"dimensions": ["green", "red", "absent"]}}},
        registry,
    )
    assert out["chartType"] == "flower"
    assert [p["dimension"] for p in out["petals"]] == ["green", "red", "absent"]
    assert [p["angle"] for p in out["petals"]] == [0, 120, 240]
    assert out["centerScore"] == pytest.approx(100 / 3)
    with pytest.raises(RuntimeError):
        registry.register("late", lambda data, options: {})


def test_pdf_and_dashboard_payloads():
    pdf = render_report("pdf", DATA, {"dataMappings": MAPPINGS, "pdf": {"template": "executive", "options": {"title": "Q1"}}})
    assert pdf["template"] == "executive"
    assert pdf["title"] == "Q1"
    assert pdf["summary"]["overallScore"] == "50.0"
    assert pdf["summary"]["completionRate"] == "90.0%"
    assert pdf["sections"][0]["rows"][1] == {"label": "green", "value": "80.0"}
    assert pdf["sections"][1]["rows"] == [{"label": "nps", "value": "12.50"}, {"label": "label", "value": "ok"}]

    dashboard = render_report(
        "dashboard",
        DATA,
        {
            "dataMappings": MAPPINGS,
            "dashboard": {
                "layout": "three-column",
                "widgets": [{"type": "metric", "dataSource": "dimensions.green.value", "options": {"title": "Green"}}],
            },
        },
    )
    assert dashboard["layout"] == "three-column"
    assert [c["title"] for c in dashboard["summaryCards"]] == ["Overall Score", "Total Responses", "Completion Rate"]
    assert dashboard["widgets"][0]["data"] == 80
    assert dashboard["widgets"][0]["title"] == "Green"


def test_formatting_helpers():
    assert format_number(3.14159) == "3.14"
    assert format_number(float("nan")) == "0"
    assert format_number("7") == "0"
    assert format_percentage(0.256) == "25.6%"
    assert format_percentage(None) == "0%"
    assert color_for_value(10) == "#ef4444"
    assert color_for_value(50) == "#f59e0b"
    assert color_for_value(90) == "#10b981"
