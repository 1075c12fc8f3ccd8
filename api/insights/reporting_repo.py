import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _row(row: Any, uuid_keys: tuple[str, ...] = ()) -> dict[str, Any] | None:
    if not row:
        return None
    item = dict(row)
    for key in ("id",) + uuid_keys:
        if item.get(key) is not None:
            item[key] = str(item[key])
    return item


def _json(value: Any) -> str:
    return json.dumps(value if value is not None else {}, default=str)


def get_organization_by_slug(db, slug: str) -> dict[str, Any] | None:
    row = db.execute(
        text("SELECT id, slug, name FROM organizations WHERE slug = :slug"),
        {"slug": slug},
    ).mappings().first()
    return _row(row)


def get_member_role(db, organization_id: str, user_id: str) -> str | None:
    row = db.execute(
        text(
            """
            SELECT role
            FROM organization_members
            WHERE organization_id = CAST(:organization_id AS uuid)
              AND user_id = CAST(:user_id AS uuid)
            """
        ),
        {"organization_id": organization_id, "user_id": user_id},
    ).mappings().first()
    return str(row["role"]) if row and row.get("role") else None


def get_questionnaire(db, questionnaire_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            """
            SELECT id, organization_id, approach_id, approach_questionnaire_version_id, title, status, schema
            FROM questionnaires
            WHERE id = CAST(:id AS uuid)
            """
        ),
        {"id": questionnaire_id},
    ).mappings().first()
    return _row(row, ("organization_id", "approach_id", "approach_questionnaire_version_id"))


def get_version(db, version_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            """
            SELECT id, version, title, description, schema, master_language, published_at
            FROM approach_questionnaire_versions
            WHERE id = CAST(:id AS uuid)
            """
        ),
        {"id": version_id},
    ).mappings().first()
    return _row(row)


def list_translations(db, version_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT language, title, description, schema
            FROM approach_questionnaire_translations
            WHERE version_id = CAST(:version_id AS uuid)
            ORDER BY language
            """
        ),
        {"version_id": version_id},
    ).mappings().all()
    return [dict(r) for r in rows]


def list_responses(db, questionnaire_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT id, questionnaire_id, participant_id, answers, metadata, submitted_at, updated_at
            FROM questionnaire_responses
            WHERE questionnaire_id = CAST(:questionnaire_id AS uuid)
            ORDER BY submitted_at ASC
            """
        ),
        {"questionnaire_id": questionnaire_id},
    ).mappings().all()
    return [_row(r, ("questionnaire_id", "participant_id")) for r in rows]


def count_responses(db, questionnaire_id: str) -> int:
    value = db.execute(
        text("SELECT COUNT(*) FROM questionnaire_responses WHERE questionnaire_id = CAST(:questionnaire_id AS uuid)"),
        {"questionnaire_id": questionnaire_id},
    ).scalar()
    return int(value or 0)


def get_template(db, template_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            """
            SELECT id, approach_id, name, slug, type, config, "order", is_active
            FROM approach_report_templates
            WHERE id = CAST(:id AS uuid)
            """
        ),
        {"id": template_id},
    ).mappings().first()
    return _row(row, ("approach_id",))


def list_active_templates(db, approach_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT id, approach_id, name, slug, type, config, "order", is_active
            FROM approach_report_templates
            WHERE approach_id = CAST(:approach_id AS uuid)
              AND is_active = true
            ORDER BY "order" ASC
            """
        ),
        {"approach_id": approach_id},
    ).mappings().all()
    return [_row(r, ("approach_id",)) for r in rows]


_REPORT_COLUMNS = """
    id, organization_id, template_id, questionnaire_id, status, computed_data,
    generated_at, error_message, response_count, created_at, updated_at
"""
_REPORT_UUIDS = ("organization_id", "template_id", "questionnaire_id")


def get_report_by_key(db, organization_id: str, template_id: str, questionnaire_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            f"""
            SELECT {_REPORT_COLUMNS}
            FROM organization_reports
            WHERE organization_id = CAST(:organization_id AS uuid)
              AND template_id = CAST(:template_id AS uuid)
              AND questionnaire_id = CAST(:questionnaire_id AS uuid)
            """
        ),
        {"organization_id": organization_id, "template_id": template_id, "questionnaire_id": questionnaire_id},
    ).mappings().first()
    return _row(row, _REPORT_UUIDS)


def get_report(db, report_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {_REPORT_COLUMNS} FROM organization_reports WHERE id = CAST(:id AS uuid)"),
        {"id": report_id},
    ).mappings().first()
    return _row(row, _REPORT_UUIDS)


def list_reports(db, questionnaire_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {_REPORT_COLUMNS}
            FROM organization_reports
            WHERE questionnaire_id = CAST(:questionnaire_id AS uuid)
            ORDER BY created_at DESC
            """
        ),
        {"questionnaire_id": questionnaire_id},
    ).mappings().all()
    return [_row(r, _REPORT_UUIDS) for r in rows]


def upsert_report_generating(db, organization_id: str, template_id: str, questionnaire_id: str) -> dict[str, Any]:
    """Insert or reset the report row for the key into ``generating``.

    Concurrent writers are not serialized; the last one to finish wins.
    """
    row = db.execute(
        text(
            f"""
            INSERT INTO organization_reports (organization_id, template_id, questionnaire_id, status, updated_at)
            VALUES (
              CAST(:organization_id AS uuid),
              CAST(:template_id AS uuid),
              CAST(:questionnaire_id AS uuid),
              'generating',
              :now
            )
            ON CONFLICT (organization_id, template_id, questionnaire_id)
            DO UPDATE SET status = 'generating',
                          computed_data = CAST('{{}}' AS jsonb),
                          response_count = 0,
                          generated_at = NULL,
                          updated_at = EXCLUDED.updated_at
            RETURNING {_REPORT_COLUMNS}
            """
        ),
        {
            "organization_id": organization_id,
            "template_id": template_id,
            "questionnaire_id": questionnaire_id,
            "now": _now_utc(),
        },
    ).mappings().first()
    db.commit()
    return _row(row, _REPORT_UUIDS)


def mark_report_ready(db, report_id: str, computed_data: dict[str, Any], response_count: int) -> dict[str, Any] | None:
    now = _now_utc()
    row = db.execute(
        text(
            f"""
            UPDATE organization_reports
            SET status = 'ready',
                computed_data = CAST(:computed_data AS jsonb),
                generated_at = :now,
                response_count = :response_count,
                error_message = NULL,
                updated_at = :now
            WHERE id = CAST(:id AS uuid)
            RETURNING {_REPORT_COLUMNS}
            """
        ),
        {"id": report_id, "computed_data": _json(computed_data), "response_count": int(response_count), "now": now},
    ).mappings().first()
    db.commit()
    return _row(row, _REPORT_UUIDS)


def mark_report_error(db, report_id: str, error_message: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            f"""
            UPDATE organization_reports
            SET status = 'error',
                error_message = :error_message,
                updated_at = :now
            WHERE id = CAST(:id AS uuid)
            RETURNING {_REPORT_COLUMNS}
            """
        ),
        {"id": report_id, "error_message": error_message, "now": _now_utc()},
    ).mappings().first()
    db.commit()
    return _row(row, _REPORT_UUIDS)


def list_reports_with_templates(db, organization_id: str, questionnaire_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT r.id, r.template_id, r.status, r.generated_at, r.error_message,
                   t.name AS template_name, t.type AS template_type
            FROM organization_reports r
            JOIN approach_report_templates t ON t.id = r.template_id
            WHERE r.questionnaire_id = CAST(:questionnaire_id AS uuid)
              AND r.organization_id = CAST(:organization_id AS uuid)
            ORDER BY r.created_at DESC
            """
        ),
        {"organization_id": organization_id, "questionnaire_id": questionnaire_id},
    ).mappings().all()
    return [_row(r, ("template_id",)) for r in rows]
