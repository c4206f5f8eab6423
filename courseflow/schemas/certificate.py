from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class EligibilityRead(BaseModel):
    eligible: bool
    course_configured: bool
    reason: str | None = None
    missing_lessons_count: int
    missing_modules_count: int
    total_lessons_count: int
    total_modules_count: int


class CertificateRead(BaseModel):
    id: UUID
    certificate_number: str
    issued_at: datetime

    model_config = {"from_attributes": True}


class CertificateRenderPayload(BaseModel):
    """Fields handed to the external PDF renderer."""

    recipient_name: str
    course_title: str
    certificate_number: str
    issued_at: datetime


class CertificateIssueRead(BaseModel):
    certificate: CertificateRead | None = None
    course_title: str | None = None
    completion_message: str | None = None
    render: CertificateRenderPayload | None = None
