import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response

from .. import reporting_repo
from ..auth.deps import require_org_member
from ..config import RL_EXPORT_LIMIT, RL_WINDOW_SECONDS
from ..database import get_db
from ..http_helpers import parse_uuid
from ..schema_loader import load_translation_set
from ..schemas import AggregateRequest, ExportRequest
from ..services.pptx_export import PPTX_CONTENT_TYPE, build_presentation
from ..services.question_aggregation import aggregate_questions
from ..services.rate_limit import rate_limit_dependency

logger = logging.getLogger(__name__)

router = APIRouter()
scaffold_router = APIRouter()

RL_EXPORT = rate_limit_dependency("analytics_export", RL_EXPORT_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def analytics_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "analytics"}


@router.post("/org/{slug}/analytics/aggregate")
def aggregate_analytics(
    slug: str,
    payload: AggregateRequest,
    access: dict[str, Any] = Depends(require_org_member),
    db=Depends(get_db),
) -> dict[str, Any]:
    if not payload.questionnaire_id or not payload.question_ids:
        raise HTTPException(status_code=400, detail="Missing required fields")
    questionnaire_id = parse_uuid(payload.questionnaire_id, "questionnaireId")

    questionnaire = reporting_repo.get_questionnaire(db, questionnaire_id)
    if not questionnaire or questionnaire.get("organization_id") != access["organization"]["id"]:
        raise HTTPException(status_code=404, detail="Questionnaire not found")

    translations = load_translation_set(db, questionnaire)
    responses = reporting_repo.list_responses(db, questionnaire_id)
    result = aggregate_questions(
        translations.master_schema,
        responses,
        payload.question_ids,
        translations,
        questionnaire.get("title"),
    )
    logger.info(
        "[ANALYTICS] aggregate org=%s questionnaire=%s questions=%s responses=%s",
        slug,
        questionnaire_id,
        len(result["questions"]),
        result["responseCount"],
    )
    return result


@router.post("/org/{slug}/analytics/export-pptx", dependencies=[RL_EXPORT])
def export_pptx(
    slug: str,
    payload: ExportRequest,
    access: dict[str, Any] = Depends(require_org_member),
) -> Response:
    if payload.data is None or payload.data.questions is None:
        raise HTTPException(status_code=400, detail="Missing required data")

    content = build_presentation(payload.data.model_dump(by_alias=True))
    filename = f"analytics-{int(time.time() * 1000)}.pptx"
    logger.info("[EXPORT] org=%s questionnaire=%s bytes=%s", slug, payload.questionnaire_id, len(content))
    return Response(
        content=content,
        media_type=PPTX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
