"""PowerPoint rendering of an ``/analytics/aggregate`` payload.

Slide order: title, then for each section (first-appearance order) a divider
followed by one slide per question.
"""
from __future__ import annotations

import io
import logging
from datetime import date
from typing import Any

from pptx import Presentation
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from ..config import EXPORT_FREE_TEXT_LIMIT, PPTX_AUTHOR, PPTX_COMPANY

logger = logging.getLogger(__name__)

PPTX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
BLANK_LAYOUT = 6
STATS_TOP = 1.5


def _background(slide, hex_color: str) -> None:
    fill = slide.background.fill
    fill.solid()
    fill.fore_color.rgb = RGBColor.from_string(hex_color)


def _text(slide, text: str, x: float, y: float, w: float, h: float, size: int, color: str,
          bold: bool = False, italic: bool = False, center: bool = False) -> None:
    box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
    frame = box.text_frame
    frame.word_wrap = True
    paragraph = frame.paragraphs[0]
    if center:
        paragraph.alignment = PP_ALIGN.CENTER
    run = paragraph.add_run()
    run.text = text
    run.font.size = Pt(size)
    run.font.bold = bold
    run.font.italic = italic
    run.font.color.rgb = RGBColor.from_string(color)


def _stat_lines(slide, heading: str, lines: list[str]) -> None:
    _text(slide, heading, 0.5, STATS_TOP, 4, 0.4, 16, "374151", bold=True)
    for idx, line in enumerate(lines):
        _text(slide, line, 0.5, STATS_TOP + 0.5 + idx * 0.35, 4, 0.3, 14, "4B5563")


def _chart(slide, title: str, labels: list[str], values: list[float], horizontal: bool) -> None:
    if not labels:
        return
    chart_data = CategoryChartData()
    chart_data.categories = labels
    chart_data.add_series(title, values)
    chart_type = XL_CHART_TYPE.BAR_CLUSTERED if horizontal else XL_CHART_TYPE.COLUMN_CLUSTERED
    frame = slide.shapes.add_chart(chart_type, Inches(5.0), Inches(1.5), Inches(4.5), Inches(3.5), chart_data)
    chart = frame.chart
    chart.has_legend = False
    chart.has_title = True
    chart.chart_title.text_frame.text = title


def _sort_key_numeric(label: str) -> tuple[int, float, str]:
    try:
        return (0, float(label), label)
    except ValueError:
        return (1, 0.0, label)


def _option_counts(question: dict[str, Any]) -> tuple[list[str], list[float]]:
    distribution = question.get("distribution") or {}
    labels = list(question.get("options") or distribution.keys())
    # Unreconciled legacy labels only exist in the distribution.
    labels.extend(k for k in distribution if k not in labels)
    return labels, [distribution.get(label, 0) for label in labels]


def _scale_slide(slide, question: dict[str, Any]) -> None:
    _stat_lines(
        slide,
        "Statistics",
        [
            f"Average: {question.get('average')}",
            f"Median: {question.get('median')}",
            f"Min: {question.get('min')} | Max: {question.get('max')}",
            f"Responses: {question.get('responseCount')}",
        ],
    )
    distribution = question.get("distribution") or {}
    labels = sorted(distribution.keys(), key=_sort_key_numeric)
    _chart(slide, "Response Distribution", labels, [distribution[k] for k in labels], horizontal=False)


def _single_choice_slide(slide, question: dict[str, Any]) -> None:
    _stat_lines(
        slide,
        "Statistics",
        [f"Responses: {question.get('responseCount')}", f"Top Answer: {question.get('topAnswer') or 'N/A'}"],
    )
    if question.get("distribution"):
        labels, values = _option_counts(question)
        _chart(slide, "Response Distribution", labels, values, horizontal=True)


def _multiple_choice_slide(slide, question: dict[str, Any]) -> None:
    _stat_lines(
        slide,
        "Statistics",
        [f"Responses: {question.get('responseCount')}", f"Total Selections: {question.get('totalSelections') or 0}"],
    )
    if question.get("distribution"):
        labels, values = _option_counts(question)
        _chart(slide, "Selection Count", labels, values, horizontal=True)


def _ranking_slide(slide, question: dict[str, Any]) -> None:
    _stat_lines(slide, "Average Ranks (lower is better)", [f"Responses: {question.get('responseCount')}"])
    average_ranks = question.get("averageRanks") or {}
    if not average_ranks:
        return
    options = list(question.get("options") or average_ranks.keys())
    # Options nobody ranked sort last and chart as 0.
    ranked = sorted(options, key=lambda o: average_ranks.get(o, float("inf")))
    _chart(slide, "Average Rank", ranked, [average_ranks.get(o, 0) for o in ranked], horizontal=True)


def _free_text_slide(slide, question: dict[str, Any]) -> None:
    responses = list(question.get("responses") or [])
    _text(slide, f"Text Responses ({question.get('responseCount', len(responses))})", 0.5, STATS_TOP, 9, 0.4, 16, "374151", bold=True)
    shown = responses[:EXPORT_FREE_TEXT_LIMIT]
    for idx, answer in enumerate(shown):
        _text(slide, f"{idx + 1}. {answer}", 0.5, STATS_TOP + 0.6 + idx * 0.35, 9, 0.3, 11, "4B5563")
    if len(responses) > EXPORT_FREE_TEXT_LIMIT:
        _text(
            slide,
            f"... and {len(responses) - EXPORT_FREE_TEXT_LIMIT} more responses",
            0.5,
            STATS_TOP + 0.6 + EXPORT_FREE_TEXT_LIMIT * 0.35,
            9,
            0.3,
            11,
            "6B7280",
            italic=True,
        )


QUESTION_SLIDES = {
    "scale": _scale_slide,
    "single-choice": _single_choice_slide,
    "multiple-choice": _multiple_choice_slide,
    "ranking": _ranking_slide,
    "free-text": _free_text_slide,
}


def group_by_section(questions: dict[str, dict[str, Any]]) -> dict[str, list[tuple[str, dict[str, Any]]]]:
    grouped: dict[str, list[tuple[str, dict[str, Any]]]] = {}
    for question_id, question in questions.items():
        grouped.setdefault(str(question.get("sectionTitle") or ""), []).append((question_id, question))
    return grouped


def build_presentation(data: dict[str, Any]) -> bytes:
    title = str(data.get("questionnaireTitle") or "Questionnaire")
    questions = data.get("questions") or {}

    prs = Presentation()
    prs.slide_width = Inches(10)
    prs.slide_height = Inches(5.625)
    prs.core_properties.author = PPTX_AUTHOR
    prs.core_properties.subject = PPTX_COMPANY
    prs.core_properties.title = f"{title} - Analytics Report"
    layout = prs.slide_layouts[BLANK_LAYOUT]

    slide = prs.slides.add_slide(layout)
    _background(slide, "1E40AF")
    _text(slide, title, 0.5, 1.5, 9, 1.2, 40, "FFFFFF", bold=True, center=True)
    _text(slide, "Analytics Report", 0.5, 2.8, 9, 0.5, 24, "E5E7EB", center=True)
    _text(slide, f"{data.get('responseCount', 0)} Responses", 0.5, 3.5, 9, 0.4, 18, "D1D5DB", center=True)
    _text(slide, date.today().isoformat(), 0.5, 4.1, 9, 0.3, 14, "D1D5DB", center=True)

    for section_title, entries in group_by_section(questions).items():
        divider = prs.slides.add_slide(layout)
        _background(divider, "F3F4F6")
        _text(divider, section_title, 0.5, 2.2, 9, 1.0, 36, "1F2937", bold=True, center=True)

        for question_id, question in entries:
            slide = prs.slides.add_slide(layout)
            _text(slide, str(question.get("questionText") or question_id), 0.5, 0.5, 9, 0.8, 20, "1F2937", bold=True)
            render = QUESTION_SLIDES.get(question.get("type"))
            if render is None:
                _text(slide, f"Responses: {question.get('responseCount', 0)}", 0.5, STATS_TOP, 4, 0.3, 14, "4B5563")
                continue
            render(slide, question)

    logger.info("[EXPORT] built presentation title=%r slides=%s", title, len(prs.slides))
    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()
