from __future__ import annotations

import uuid

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import insights.config as config
import insights.main as m
import insights.reporting_repo as reporting_repo
from insights.auth.security import create_access_token
from insights.database import get_db
from insights.services.pptx_export import PPTX_CONTENT_TYPE
from insights.services.rate_limit import limiter

ORG_ID = str(uuid.uuid4())
OTHER_ORG_ID = str(uuid.uuid4())
QUESTIONNAIRE_ID = str(uuid.uuid4())
SCHEMA = {
    "sections": [
        {
            "id": "s1",
            "title": "Basics",
            "questions": [
                {"id": "mood", "text": "Mood", "type": "scale", "scale": {"min": 1, "max": 5}},
                {"id": "color", "text": "Colour", "type": "single-choice", "options": ["Red", "Green"]},
            ],
        }
    ]
}


class FakeDB:
    def commit(self):
        return None

    def rollback(self):
        return None


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(m, "wait_for_db", lambda *args, **kwargs: None)
    monkeypatch.setattr(m, "run_migrations", lambda *args, **kwargs: None)
    monkeypatch.setattr(config, "ADMIN_TOKEN", "admin-secret")
    monkeypatch.setattr(config, "JWT_SECRET", "test-secret")
    monkeypatch.setattr(
        reporting_repo,
        "get_organization_by_slug",
        lambda db, slug: {"id": ORG_ID, "slug": slug, "name": "Acme"} if slug == "acme" else None,
    )
    monkeypatch.setattr(reporting_repo, "get_member_role", lambda db, org_id, user_id: None)
    m.app.dependency_overrides[get_db] = lambda: FakeDB()
    limiter.reset()
    yield TestClient(m.app)
    m.app.dependency_overrides = {}
    limiter.reset()


def _admin() -> dict[str, str]:
    return {"X-Admin-Token": "admin-secret"}


def _questionnaire(monkeypatch, organization_id: str = ORG_ID, responses: list | None = None) -> None:
    questionnaire = {
        "id": QUESTIONNAIRE_ID,
        "organization_id": organization_id,
        "approach_questionnaire_version_id": None,
        "title": "Pulse",
        "status": "active",
        "schema": SCHEMA,
    }
    monkeypatch.setattr(reporting_repo, "get_questionnaire", lambda db, qid: questionnaire if qid == QUESTIONNAIRE_ID else None)
    monkeypatch.setattr(reporting_repo, "list_responses", lambda db, qid: list(responses or []))


def test_health_endpoints(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/_scaffold/analytics/health").json() == {"status": "ok", "module": "analytics"}
    assert client.get("/_scaffold/reports/health").json() == {"status": "ok", "module": "reports"}


def test_aggregate_requires_authentication(client):
    res = client.post("/org/acme/analytics/aggregate", json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood"]})
    assert res.status_code == 401
    assert res.json()["detail"]["message"] == "Authentication required"


def test_aggregate_rejects_bad_tokens(client):
    res = client.post(
        "/org/acme/analytics/aggregate",
        json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood"]},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert res.status_code == 401


def test_aggregate_rejects_non_members(client, monkeypatch):
    _questionnaire(monkeypatch)
    token = create_access_token(str(uuid.uuid4()), {"other-org": "admin"})
    res = client.post(
        "/org/acme/analytics/aggregate",
        json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood"]},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert res.status_code == 403


def test_aggregate_unknown_organization(client):
    res = client.post(
        "/org/nowhere/analytics/aggregate",
        json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood"]},
        headers=_admin(),
    )
    assert res.status_code == 404


def test_aggregate_missing_fields(client):
    res = client.post("/org/acme/analytics/aggregate", json={"questionnaireId": QUESTIONNAIRE_ID}, headers=_admin())
    assert res.status_code == 400
    assert res.json()["detail"] == "Missing required fields"

    res = client.post("/org/acme/analytics/aggregate", json={"questionIds": ["mood"]}, headers=_admin())
    assert res.status_code == 400


def test_aggregate_questionnaire_of_other_organization(client, monkeypatch):
    _questionnaire(monkeypatch, organization_id=OTHER_ORG_ID)
    res = client.post(
        "/org/acme/analytics/aggregate",
        json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood"]},
        headers=_admin(),
    )
    assert res.status_code == 404
    assert res.json()["detail"] == "Questionnaire not found"


def test_aggregate_zero_responses(client, monkeypatch):
    _questionnaire(monkeypatch, responses=[])
    res = client.post(
        "/org/acme/analytics/aggregate",
        json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood"]},
        headers=_admin(),
    )
    assert res.status_code == 200
    assert res.json() == {"questions": {}, "responseCount": 0, "message": "No responses available"}


def test_aggregate_for_member_token(client, monkeypatch):
    responses = [
        {"participant_id": "p1", "answers": {"mood": 4, "color": 0}, "metadata": {}},
        {"participant_id": "p2", "answers": {"mood": 2, "color": "Green"}, "metadata": {}},
    ]
    _questionnaire(monkeypatch, responses=responses)
    token = create_access_token(str(uuid.uuid4()), {"acme": "member"})
    res = client.post(
        "/org/acme/analytics/aggregate",
        json={"questionnaireId": QUESTIONNAIRE_ID, "questionIds": ["mood", "color", "ghost"]},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["responseCount"] == 2
    assert body["questionnaireTitle"] == "Pulse"
    assert set(body["questions"]) == {"mood", "color"}
    assert body["questions"]["mood"]["average"] == 3
    assert body["questions"]["color"]["distribution"] == {"Red": 1, "Green": 1}


def test_export_requires_data(client):
    res = client.post("/org/acme/analytics/export-pptx", json={"questionnaireId": QUESTIONNAIRE_ID}, headers=_admin())
    assert res.status_code == 400
    assert res.json()["detail"] == "Missing required data"


def test_export_returns_presentation(client):
    pytest.importorskip("pptx")
    data = {
        "questionnaireTitle": "Pulse",
        "responseCount": 5,
        "questions": {
            "mood": {
                "questionText": "Mood",
                "sectionTitle": "Basics",
                "type": "scale",
                "responseCount": 5,
                "average": 3,
                "distribution": {"1": 1, "3": 3, "5": 1},
            }
        },
    }
    res = client.post(
        "/org/acme/analytics/export-pptx",
        json={"questionnaireId": QUESTIONNAIRE_ID, "data": data},
        headers=_admin(),
    )
    assert res.status_code == 200
    assert res.headers["content-type"] == PPTX_CONTENT_TYPE
    disposition = res.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="analytics-')
    assert disposition.endswith('.pptx"')
    assert res.content[:2] == b"PK"


def test_export_is_rate_limited(client, monkeypatch):
    monkeypatch.setattr("insights.routes.analytics.build_presentation", lambda data: b"deck")
    body = {"questionnaireId": QUESTIONNAIRE_ID, "data": {"questions": {}}}
    statuses = [
        client.post("/org/acme/analytics/export-pptx", json=body, headers=_admin()).status_code
        for _ in range(config.RL_EXPORT_LIMIT + 1)
    ]
    assert statuses[:-1] == [200] * config.RL_EXPORT_LIMIT
    assert statuses[-1] == 429
