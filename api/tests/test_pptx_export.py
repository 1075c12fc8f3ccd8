import io

import pytest

pytest.importorskip("pptx")

from pptx import Presentation

from insights.services.pptx_export import build_presentation, group_by_section


def _texts(slide):
    return [shape.text_frame.text for shape in slide.shapes if shape.has_text_frame]


def _payload():
    return {
        "questionnaireTitle": "Team Pulse",
        "responseCount": 14,
        "questions": {
            "q1": {
                "questionText": "How satisfied are you?",
                "sectionTitle": "Climate",
                "type": "scale",
                "responseCount": 3,
                "average": 3.33,
                "median": 3,
                "min": 2,
                "max": 5,
                "distribution": {"10": 0, "2": 1, "3": 1, "5": 1},
            },
            "q2": {
                "questionText": "Favourite colour",
                "sectionTitle": "Preferences",
                "type": "single-choice",
                "options": ["Red", "Green"],
                "responseCount": 3,
                "distribution": {"Red": 2, "Green": 0, "Blau": 1},
                "topAnswer": "Red",
            },
            "q3": {
                "questionText": "Anything else?",
                "sectionTitle": "Climate",
                "type": "free-text",
                "responseCount": 14,
                "responses": [f"answer {i}" for i in range(14)],
            },
            "q4": {
                "questionText": "Legacy slider",
                "sectionTitle": "Preferences",
                "type": "slider",
                "responseCount": 2,
            },
        },
    }


def test_group_by_section_keeps_first_appearance_order():
    grouped = group_by_section(_payload()["questions"])
    assert list(grouped) == ["Climate", "Preferences"]
    assert [qid for qid, _ in grouped["Climate"]] == ["q1", "q3"]


def test_build_presentation_slide_layout():
    prs = Presentation(io.BytesIO(build_presentation(_payload())))
    slides = list(prs.slides)
    # title + 2 dividers + 4 questions
    assert len(slides) == 7

    title_texts = _texts(slides[0])
    assert "Team Pulse" in title_texts
    assert "Analytics Report" in title_texts
    assert "14 Responses" in title_texts

    assert "Climate" in _texts(slides[1])
    assert "How satisfied are you?" in _texts(slides[2])
    assert any(shape.has_chart for shape in slides[2].shapes)

    free_text = _texts(slides[3])
    assert "Text Responses (14)" in free_text
    assert "10. answer 9" in free_text
    assert "11. answer 10" not in free_text
    assert "... and 4 more responses" in free_text

    assert "Preferences" in _texts(slides[4])
    chart = next(shape.chart for shape in slides[5].shapes if shape.has_chart)
    assert list(chart.plots[0].categories) == ["Red", "Green", "Blau"]

    assert "Responses: 2" in _texts(slides[6])


def test_build_presentation_without_questions():
    prs = Presentation(io.BytesIO(build_presentation({"questions": {}, "responseCount": 0})))
    assert len(prs.slides) == 1
    assert "Questionnaire" in _texts(prs.slides[0])
    assert prs.core_properties.title == "Questionnaire - Analytics Report"
