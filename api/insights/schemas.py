from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AggregateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    questionnaire_id: str | None = Field(default=None, alias="questionnaireId")
    question_ids: list[str] = Field(default_factory=list, alias="questionIds")


class ExportData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    questions: dict[str, dict[str, Any]] | None = None
    response_count: int = Field(default=0, alias="responseCount")
    questionnaire_title: str | None = Field(default=None, alias="questionnaireTitle")


class ExportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    questionnaire_id: str | None = Field(default=None, alias="questionnaireId")
    data: ExportData | None = None


class GenerateReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    questionnaire_id: str | None = Field(default=None, alias="questionnaireId")
    template_id: str | None = Field(default=None, alias="templateId")
    force: bool = False
