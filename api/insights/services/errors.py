from __future__ import annotations

from typing import Any

from ..config import MIN_RESPONSES


class ReportingError(Exception):
    """Base class for errors raised by the reporting pipeline."""


class InsufficientDataError(ReportingError):
    def __init__(self, response_count: int, minimum: int = MIN_RESPONSES, message: str | None = None):
        self.response_count = int(response_count)
        self.minimum = int(minimum)
        super().__init__(message or f"Need at least {self.minimum} responses, got {self.response_count}")


class MappingValidationError(ReportingError):
    def __init__(self, missing_questions: list[str]):
        self.missing_questions = list(missing_questions)
        super().__init__(f"Invalid data mappings. Missing questions: {', '.join(self.missing_questions)}")


class ConfigurationError(ReportingError):
    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [message])
        super().__init__(message)


class UnsupportedVisualizationError(ReportingError):
    def __init__(self, visualization_type: Any):
        self.visualization_type = visualization_type
        super().__init__(f"Unsupported visualization type: {visualization_type}")


class UnknownRendererError(ReportingError):
    def __init__(self, report_type: Any):
        self.report_type = report_type
        super().__init__(f"No renderer found for report type: {report_type}")


class NotFoundError(ReportingError):
    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")
