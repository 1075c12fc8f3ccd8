import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from .. import reporting_repo
from ..auth.deps import require_org_admin, require_org_member
from ..config import RL_REPORT_GENERATE_LIMIT, RL_WINDOW_SECONDS
from ..database import get_db
from ..http_helpers import http_error, parse_uuid, report_generator
from ..schemas import GenerateReportRequest
from ..services.errors import ReportingError
from ..services.rate_limit import rate_limit_dependency
from ..services.renderers import render_report

logger = logging.getLogger(__name__)

router = APIRouter()
scaffold_router = APIRouter()

RL_REPORT_GENERATE = rate_limit_dependency("report_generate", RL_REPORT_GENERATE_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def reports_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "reports"}


def _report_summary(report: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": report["id"],
        "templateId": report.get("template_id"),
        "status": report.get("status"),
        "errorMessage": report.get("error_message"),
    }


def _org_report(db, report_id: str, organization_id: str) -> dict[str, Any]:
    report = reporting_repo.get_report(db, parse_uuid(report_id, "reportId"))
    if not report or report.get("organization_id") != organization_id:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post("/org/{slug}/reports/generate", dependencies=[RL_REPORT_GENERATE])
def generate_reports(
    slug: str,
    payload: GenerateReportRequest,
    request: Request,
    access: dict[str, Any] = Depends(require_org_admin),
    db=Depends(get_db),
) -> dict[str, Any]:
    if not payload.questionnaire_id:
        raise HTTPException(status_code=400, detail="questionnaireId is required")
    questionnaire_id = parse_uuid(payload.questionnaire_id, "questionnaireId")

    questionnaire = reporting_repo.get_questionnaire(db, questionnaire_id)
    if not questionnaire or questionnaire.get("organization_id") != access["organization"]["id"]:
        raise HTTPException(status_code=404, detail="Questionnaire not found")

    generator = report_generator(request)
    try:
        if payload.template_id:
            template_id = parse_uuid(payload.template_id, "templateId")
            report = generator.generate(db, questionnaire_id, template_id, force=payload.force)
            return {"success": True, "reports": [_report_summary(report)]}
        tally = generator.generate_all(db, questionnaire_id, force=payload.force)
    except ReportingError as exc:
        raise http_error(exc)

    logger.info(
        "[REPORTS] batch org=%s questionnaire=%s generated=%s failed=%s",
        slug,
        questionnaire_id,
        tally["generated"],
        tally["failed"],
    )
    return {
        "success": True,
        "reports": [_report_summary(r) for r in tally["reports"]],
        "generated": tally["generated"],
        "failed": tally["failed"],
        "errors": tally["errors"],
    }


@router.get("/org/{slug}/reports/{report_id}")
def get_report(
    slug: str,
    report_id: str,
    access: dict[str, Any] = Depends(require_org_member),
    db=Depends(get_db),
) -> dict[str, Any]:
    report = _org_report(db, report_id, access["organization"]["id"])
    template = reporting_repo.get_template(db, report["template_id"]) or {}
    questionnaire = reporting_repo.get_questionnaire(db, report["questionnaire_id"]) or {}
    computed = report.get("computed_data") or {}
    return {
        "id": report["id"],
        "template": {
            "id": template.get("id"),
            "name": template.get("name"),
            "type": template.get("type"),
            "config": template.get("config"),
        },
        "questionnaire": {
            "id": questionnaire.get("id"),
            "title": questionnaire.get("title"),
            "status": questionnaire.get("status"),
        },
        "status": report.get("status"),
        "errorMessage": report.get("error_message"),
        "computedData": computed,
        "metadata": {
            "generatedAt": report.get("generated_at"),
            "responseCount": report.get("response_count"),
            "completionRate": computed.get("completion_rate"),
        },
    }


@router.get("/org/{slug}/reports/{report_id}/render")
def render_stored_report(
    slug: str,
    report_id: str,
    request: Request,
    access: dict[str, Any] = Depends(require_org_member),
    db=Depends(get_db),
) -> dict[str, Any]:
    report = _org_report(db, report_id, access["organization"]["id"])
    if report.get("status") != "ready":
        raise HTTPException(
            status_code=400,
            detail={"message": "Report is not ready", "status": report.get("status"), "error_message": report.get("error_message")},
        )
    template = reporting_repo.get_template(db, report["template_id"])
    if not template:
        raise HTTPException(status_code=404, detail="Report template not found")
    try:
        return render_report(
            template.get("type"),
            report.get("computed_data") or {},
            template.get("config") or {},
            request.app.state.visualization_registry,
        )
    except ReportingError as exc:
        raise http_error(exc)


@router.get("/org/{slug}/questionnaires/{questionnaire_id}/reports")
def list_questionnaire_reports(
    slug: str,
    questionnaire_id: str,
    request: Request,
    access: dict[str, Any] = Depends(require_org_member),
    db=Depends(get_db),
) -> dict[str, Any]:
    try:
        return report_generator(request).report_overview(
            db, access["organization"]["id"], parse_uuid(questionnaire_id, "questionnaireId")
        )
    except ReportingError as exc:
        raise http_error(exc)
