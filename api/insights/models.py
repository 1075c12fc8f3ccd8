import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from .database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrganizationMember(Base):
    __tablename__ = "organization_members"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    role = Column(String, nullable=False, default="member")

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_member"),
    )


class ApproachQuestionnaireVersion(Base):
    __tablename__ = "approach_questionnaire_versions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    approach_questionnaire_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    schema = Column(JSONB, nullable=False, default=dict)
    master_language = Column(String, nullable=False, default="en")
    published_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("approach_questionnaire_id", "version", name="uq_approach_questionnaire_version"),
    )


class ApproachQuestionnaireTranslation(Base):
    __tablename__ = "approach_questionnaire_translations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    version_id = Column(UUID(as_uuid=True), ForeignKey("approach_questionnaire_versions.id", ondelete="CASCADE"), nullable=False)
    language = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    schema = Column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("version_id", "language", name="uq_translation_version_language"),
        Index("idx_translation_version_id", "version_id"),
    )


class Questionnaire(Base):
    __tablename__ = "questionnaires"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    approach_id = Column(UUID(as_uuid=True), nullable=True)
    approach_questionnaire_version_id = Column(
        UUID(as_uuid=True), ForeignKey("approach_questionnaire_versions.id"), nullable=True, index=True
    )
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="draft")
    schema = Column(JSONB, nullable=False, default=dict)


class QuestionnaireResponse(Base):
    __tablename__ = "questionnaire_responses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    questionnaire_id = Column(UUID(as_uuid=True), ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(UUID(as_uuid=True), nullable=True)
    answers = Column(JSONB, nullable=False, default=dict)
    metadata_json = Column("metadata", JSONB, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_questionnaire_responses_questionnaire_id", "questionnaire_id"),
    )


class ReportTemplate(Base):
    __tablename__ = "approach_report_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    approach_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    type = Column(String, nullable=False)
    config = Column(JSONB, nullable=False, default=dict)
    order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class OrganizationReport(Base):
    __tablename__ = "organization_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    template_id = Column(UUID(as_uuid=True), ForeignKey("approach_report_templates.id", ondelete="CASCADE"), nullable=False)
    questionnaire_id = Column(UUID(as_uuid=True), ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False, default="pending")
    computed_data = Column(JSONB, nullable=False, default=dict)
    generated_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    response_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("organization_id", "template_id", "questionnaire_id", name="unique_org_template_questionnaire"),
        Index("idx_organization_reports_questionnaire_id", "questionnaire_id"),
        Index("idx_organization_reports_status", "status"),
    )
