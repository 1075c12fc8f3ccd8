"""Turn a stored report into the document the web client draws.

Three kinds exist and the set is closed; :func:`render_report` dispatches on
:class:`RendererKind`. Every kind shares the same data and config checks.
"""
from __future__ import annotations

import math
from collections.abc import Callable
from enum import Enum
from typing import Any

from ..config import MIN_RESPONSES
from .errors import ConfigurationError, InsufficientDataError, UnknownRendererError, UnsupportedVisualizationError
from .question_mapper import lookup_path

BUILTIN_CHART_TYPES = ("bar", "line", "pie", "radar")
CHART_COLORS = (
    (59, 130, 246),
    (16, 185, 129),
    (245, 158, 11),
    (239, 68, 68),
    (139, 92, 246),
    (236, 72, 153),
)
PETAL_COLORS = ("#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899")


class RendererKind(str, Enum):
    VISUALIZATION = "visualization"
    PDF = "pdf"
    DASHBOARD = "dashboard"


def renderer_kind(value: Any) -> RendererKind:
    try:
        return RendererKind(value)
    except ValueError as exc:
        raise UnknownRendererError(value) from exc


CustomVisualization = Callable[[dict[str, Any], dict[str, Any]], dict[str, Any]]


class VisualizationRegistry:
    def __init__(self) -> None:
        self._visualizations: dict[str, CustomVisualization] = {}
        self._frozen = False

    def register(self, name: str, fn: CustomVisualization) -> None:
        if self._frozen:
            raise RuntimeError(f"Visualization registry is frozen; cannot register {name!r}")
        self._visualizations[name] = fn

    def get(self, name: str) -> CustomVisualization | None:
        return self._visualizations.get(name)

    def names(self) -> list[str]:
        return sorted(self._visualizations)

    def freeze(self) -> "VisualizationRegistry":
        self._frozen = True
        return self


def format_number(value: Any, decimals: int = 2) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return "0"
    return f"{value:.{decimals}f}"


def format_percentage(value: Any, decimals: int = 1) -> str:
    """``value`` is a fraction; 0.5 formats as ``50.0%``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return "0%"
    return f"{value * 100:.{decimals}f}%"


def color_for_value(value: float, minimum: float = 0, maximum: float = 100) -> str:
    span = maximum - minimum
    normalized = (value - minimum) / span if span else 0
    if normalized < 0.33:
        return "#ef4444"
    if normalized < 0.67:
        return "#f59e0b"
    return "#10b981"


def validate_config(config: dict[str, Any] | None) -> dict[str, Any]:
    errors: list[str] = []
    if not config:
        errors.append("Report configuration is required")
    elif not config.get("dataMappings"):
        errors.append("Data mappings are required in configuration")
    return {"valid": not errors, "errors": errors}


def validate_data(data: dict[str, Any] | None) -> None:
    if not data:
        raise ConfigurationError("Report data is required")
    response_count = data.get("response_count") or 0
    if response_count < MIN_RESPONSES:
        raise InsufficientDataError(
            response_count,
            message=f"Insufficient responses for report generation (minimum {MIN_RESPONSES} required)",
        )


def require_section(config: dict[str, Any], section: str, label: str) -> dict[str, Any]:
    value = config.get(section)
    if not isinstance(value, dict):
        raise ConfigurationError(f"{label} configuration is required")
    return value


def _dimensions(data: dict[str, Any]) -> dict[str, Any]:
    dims = data.get("dimensions")
    return dims if isinstance(dims, dict) else {}


def _dimension_value(dimension: Any) -> float:
    if isinstance(dimension, dict):
        value = dimension.get("value")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return 0


def _rgba(index: int, alpha: float) -> str:
    r, g, b = CHART_COLORS[index % len(CHART_COLORS)]
    return f"rgba({r}, {g}, {b}, {alpha})"


def _chart_options(options: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "responsive": True,
        "plugins": {
            "legend": {"position": options.get("legendPosition", "top"), "display": options.get("showLegend", True) is not False},
            "title": {"display": bool(options.get("title")), "text": options.get("title") or ""},
            "tooltip": {"enabled": options.get("showTooltip", True) is not False},
        },
    }
    if not options.get("hideScales"):
        out["scales"] = {"y": {"beginAtZero": True, "max": options.get("maxValue")}}
    out.update(options.get("chartOptions") or {})
    return out


def render_flower(data: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
    """Petal per configured dimension, sized by its 0-100 value."""
    dimensions = _dimensions(data)
    names = options.get("dimensions") or list(dimensions.keys())
    colors = options.get("colors") or PETAL_COLORS
    petals = []
    for idx, name in enumerate(names):
        value = max(0, min(100, _dimension_value(dimensions.get(name))))
        petals.append(
            {
                "dimension": name,
                "value": value,
                "angle": (idx * 360 / len(names)) if names else 0,
                "color": colors[idx % len(colors)],
            }
        )
    center = sum(p["value"] for p in petals) / len(petals) if petals else 0
    return {
        "chartType": "flower",
        "petals": petals,
        "centerScore": center,
        "width": options.get("width", 600),
        "height": options.get("height", 600),
        "showLabels": options.get("showLabels", True),
        "showValues": options.get("showValues", True),
    }


def default_visualization_registry() -> VisualizationRegistry:
    registry = VisualizationRegistry()
    registry.register("flower", render_flower)
    return registry


def _render_visualization(data, config, visualizations: VisualizationRegistry | None) -> dict[str, Any]:
    section = require_section(config, "visualization", "Visualization")
    chart_type = section.get("type")
    options = section.get("options") or {}

    custom = visualizations.get(chart_type) if visualizations and chart_type else None
    if custom is not None:
        return {"kind": RendererKind.VISUALIZATION.value, **custom(data, options)}
    if chart_type not in BUILTIN_CHART_TYPES:
        raise UnsupportedVisualizationError(chart_type)

    dimensions = _dimensions(data)
    labels = list(dimensions.keys())
    values = [_dimension_value(d) for d in dimensions.values()]
    return {
        "kind": RendererKind.VISUALIZATION.value,
        "chartType": chart_type,
        "labels": labels,
        "datasets": [
            {
                "label": options.get("label") or "Values",
                "data": values,
                "backgroundColor": [_rgba(i, 0.6) for i in range(len(values))],
                "borderColor": [_rgba(i, 1) for i in range(len(values))],
                "borderWidth": 2,
                "fill": chart_type == "radar",
            }
        ],
        "options": _chart_options(options),
    }


def _render_pdf(data, config) -> dict[str, Any]:
    section = require_section(config, "pdf", "PDF")
    options = section.get("options") or {}
    metrics = data.get("metrics") if isinstance(data.get("metrics"), dict) else {}
    sections = [
        {
            "title": "Dimensions",
            "rows": [
                {"label": key, "value": format_number(_dimension_value(dim), 1)}
                for key, dim in _dimensions(data).items()
            ],
        }
    ]
    if metrics:
        sections.append(
            {
                "title": "Metrics",
                "rows": [
                    {"label": key, "value": format_number(value, 2) if isinstance(value, (int, float)) else str(value)}
                    for key, value in metrics.items()
                ],
            }
        )
    return {
        "kind": RendererKind.PDF.value,
        "template": section.get("template") or "default",
        "title": options.get("title") or "Report",
        "summary": {
            "overallScore": format_number(data.get("overall_score"), 1),
            "responseCount": data.get("response_count"),
            "completionRate": format_percentage(data.get("completion_rate")),
            "generatedAt": data.get("generated_at"),
        },
        "sections": sections,
    }


def _render_dashboard(data, config) -> dict[str, Any]:
    section = require_section(config, "dashboard", "Dashboard")
    cards = []
    if data.get("overall_score") is not None:
        cards.append(
            {
                "title": "Overall Score",
                "value": format_number(data["overall_score"], 1),
                "color": color_for_value(data["overall_score"]),
            }
        )
    cards.append({"title": "Total Responses", "value": str(data.get("response_count", 0))})
    if data.get("completion_rate") is not None:
        cards.append({"title": "Completion Rate", "value": format_percentage(data["completion_rate"])})

    widgets = []
    for widget in section.get("widgets") or []:
        if not isinstance(widget, dict):
            continue
        source = widget.get("dataSource") or ""
        widgets.append(
            {
                "type": widget.get("type", "metric"),
                "title": (widget.get("options") or {}).get("title") or "Widget",
                "position": widget.get("position") or {},
                "dataSource": source,
                "data": lookup_path(data, source) if source else None,
            }
        )
    return {
        "kind": RendererKind.DASHBOARD.value,
        "layout": section.get("layout") or "grid",
        "summaryCards": cards,
        "widgets": widgets,
    }


def render_report(
    kind: RendererKind | str,
    data: dict[str, Any],
    config: dict[str, Any],
    visualizations: VisualizationRegistry | None = None,
) -> dict[str, Any]:
    kind = renderer_kind(kind)
    validate_data(data)
    validation = validate_config(config)
    if not validation["valid"]:
        raise ConfigurationError(validation["errors"][0], validation["errors"])

    if kind is RendererKind.VISUALIZATION:
        return _render_visualization(data, config, visualizations)
    if kind is RendererKind.PDF:
        return _render_pdf(data, config)
    return _render_dashboard(data, config)
