"""Report lifecycle on top of :class:`DataAggregator`.

One row per (organization, template, questionnaire) moves through
``pending -> generating -> ready|error``. Aggregation failures land in the
row as ``error`` with the message; ``generate`` does not raise for them.
"""
from __future__ import annotations

import logging
from typing import Any

from .. import reporting_repo
from ..config import MIN_RESPONSES
from .aggregator import DataAggregator
from .errors import NotFoundError

logger = logging.getLogger(__name__)

REPORT_STATUSES = ("pending", "generating", "ready", "error")


def transition_status(current: str, event: str) -> str:
    if event == "start":
        if current in {"pending", "ready", "error"}:
            return "generating"
        return current

    if event == "succeed":
        if current == "generating":
            return "ready"
        return current

    if event == "fail":
        if current == "generating":
            return "error"
        return current

    return current


class ReportGenerator:
    def __init__(self, aggregator: DataAggregator | None = None):
        self.aggregator = aggregator or DataAggregator()

    def generate(self, db, questionnaire_id: str, template_id: str, force: bool = False) -> dict[str, Any]:
        questionnaire = reporting_repo.get_questionnaire(db, questionnaire_id)
        if not questionnaire:
            raise NotFoundError("questionnaire", questionnaire_id)
        template = reporting_repo.get_template(db, template_id)
        if not template:
            raise NotFoundError("report template", template_id)

        organization_id = questionnaire["organization_id"]
        existing = reporting_repo.get_report_by_key(db, organization_id, template_id, questionnaire_id)
        if existing and not force:
            return existing

        report = reporting_repo.upsert_report_generating(db, organization_id, template_id, questionnaire_id)
        status = transition_status(existing["status"] if existing else "pending", "start")
        logger.info(
            "[REPORTS] %s report=%s template=%s questionnaire=%s force=%s",
            status,
            report["id"],
            template_id,
            questionnaire_id,
            force,
        )

        try:
            computed = self.aggregator.aggregate(db, questionnaire_id, template.get("config") or {})
            ready = reporting_repo.mark_report_ready(db, report["id"], computed, computed["response_count"])
        except Exception as exc:
            db.rollback()
            message = str(exc) or exc.__class__.__name__
            logger.warning(
                "[REPORTS] %s report=%s template=%s error=%s",
                transition_status(status, "fail"),
                report["id"],
                template_id,
                message,
            )
            return reporting_repo.mark_report_error(db, report["id"], message)

        logger.info("[REPORTS] %s report=%s responses=%s", transition_status(status, "succeed"), report["id"], computed["response_count"])
        return ready

    def generate_all(self, db, questionnaire_id: str, force: bool = False) -> dict[str, Any]:
        """Generate every active template of the questionnaire's approach.

        A failing template is logged and tallied; the rest still run.
        """
        questionnaire = reporting_repo.get_questionnaire(db, questionnaire_id)
        if not questionnaire:
            raise NotFoundError("questionnaire", questionnaire_id)
        approach_id = questionnaire.get("approach_id")
        if not approach_id:
            raise NotFoundError("approach for questionnaire", questionnaire_id)
        templates = reporting_repo.list_active_templates(db, approach_id)
        if not templates:
            raise NotFoundError("report templates for approach", approach_id)

        tally: dict[str, Any] = {"generated": 0, "failed": 0, "reports": [], "errors": []}
        for template in templates:
            try:
                report = self.generate(db, questionnaire_id, template["id"], force=force)
            except Exception as exc:
                db.rollback()
                logger.warning("[REPORTS] batch template=%s failed: %s", template["id"], exc)
                tally["failed"] += 1
                tally["errors"].append({"templateId": template["id"], "error": str(exc)})
                continue
            tally["reports"].append(report)
            if report.get("status") == "error":
                tally["failed"] += 1
                tally["errors"].append({"templateId": template["id"], "error": report.get("error_message")})
            else:
                tally["generated"] += 1
        return tally

    def get_report(self, db, report_id: str) -> dict[str, Any] | None:
        return reporting_repo.get_report(db, report_id)

    def list_reports(self, db, questionnaire_id: str) -> list[dict[str, Any]]:
        return reporting_repo.list_reports(db, questionnaire_id)

    def report_overview(self, db, organization_id: str, questionnaire_id: str) -> dict[str, Any]:
        questionnaire = reporting_repo.get_questionnaire(db, questionnaire_id)
        if not questionnaire or questionnaire.get("organization_id") != organization_id:
            raise NotFoundError("questionnaire", questionnaire_id)
        response_count = reporting_repo.count_responses(db, questionnaire_id)
        reports = reporting_repo.list_reports_with_templates(db, organization_id, questionnaire_id)
        return {
            "questionnaire": {
                "id": questionnaire["id"],
                "title": questionnaire.get("title"),
                "status": questionnaire.get("status"),
            },
            "availableReports": [
                {
                    "id": r["id"],
                    "templateId": r["template_id"],
                    "name": r.get("template_name"),
                    "type": r.get("template_type"),
                    "status": r.get("status"),
                    "generatedAt": r.get("generated_at"),
                }
                for r in reports
            ],
            "responseCount": response_count,
            "canGenerate": response_count >= MIN_RESPONSES,
            "minimumResponses": MIN_RESPONSES,
        }
