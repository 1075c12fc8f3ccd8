import uuid
from typing import Any

from fastapi import HTTPException, Request

from .services.aggregator import DataAggregator
from .services.errors import (
    ConfigurationError,
    InsufficientDataError,
    MappingValidationError,
    NotFoundError,
    ReportingError,
    UnknownRendererError,
    UnsupportedVisualizationError,
)
from .services.report_generator import ReportGenerator


def parse_uuid(value: str | None, field: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        raise HTTPException(status_code=400, detail=f"{field} is required")
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be a valid UUID")


def http_error(exc: ReportingError) -> HTTPException:
    detail: dict[str, Any] = {"message": str(exc)}
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail={**detail, "code": "not_found"})
    if isinstance(exc, InsufficientDataError):
        detail.update({"code": "insufficient_data", "minimum_responses": exc.minimum, "response_count": exc.response_count})
    elif isinstance(exc, MappingValidationError):
        detail.update({"code": "invalid_mappings", "missing_questions": exc.missing_questions})
    elif isinstance(exc, ConfigurationError):
        detail.update({"code": "invalid_configuration", "errors": exc.errors})
    elif isinstance(exc, (UnsupportedVisualizationError, UnknownRendererError)):
        detail["code"] = "unsupported_type"
    else:
        detail["code"] = "reporting_error"
    return HTTPException(status_code=400, detail=detail)


def report_generator(request: Request) -> ReportGenerator:
    return ReportGenerator(DataAggregator(request.app.state.aggregator_registry))
