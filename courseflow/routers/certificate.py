"""Certificate routes: eligibility, issuance, public verification.

Eligibility is evaluated fresh on every call; it gates an irreversible
issuance and never goes through the cache.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.core.auth import get_current_user
from courseflow.dependencies import get_db
from courseflow.models.user import User
from courseflow.schemas.certificate import (
    CertificateIssueRead,
    CertificateRead,
    CertificateRenderPayload,
    EligibilityRead,
)
from courseflow.services import certificate_service, eligibility_service
from courseflow.services.eligibility_service import CourseNotConfigured, NotEligible

router = APIRouter(tags=["certificate"])


@router.get("/certificate/eligibility", response_model=EligibilityRead)
async def get_eligibility(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Structured shortfall counts, e.g. "2 of 10 lessons remaining"."""
    result = await eligibility_service.check_eligibility(db, user_id=current_user.id)
    counts = result.counts
    return EligibilityRead(
        eligible=result.eligible,
        course_configured=not isinstance(result, CourseNotConfigured),
        reason=result.reason.value if isinstance(result, NotEligible) else None,
        missing_lessons_count=counts.missing_lessons,
        missing_modules_count=counts.missing_modules,
        total_lessons_count=counts.total_lessons,
        total_modules_count=counts.total_modules,
    )


@router.post("/certificate", response_model=CertificateIssueRead)
async def issue_certificate(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get or create the current user's certificate. Safe to retry."""
    ip = request.client.host if request.client else None
    issue = await certificate_service.get_or_create_certificate(
        db, user_id=current_user.id, ip_address=ip
    )
    if issue.certificate is None:
        return CertificateIssueRead()

    payload = certificate_service.build_render_payload(
        issue.certificate,
        recipient_name=current_user.display_name,
        course_title=issue.course_title,
    )
    return CertificateIssueRead(
        certificate=CertificateRead.model_validate(issue.certificate),
        course_title=issue.course_title,
        completion_message=issue.completion_message,
        render=CertificateRenderPayload(**payload),
    )


@router.get("/certificates/{certificate_number}", response_model=CertificateRenderPayload)
async def verify_certificate(
    certificate_number: str,
    db: AsyncSession = Depends(get_db),
):
    """Public lookup by certificate number; no authentication required."""
    payload = await certificate_service.get_certificate_by_number(db, certificate_number)
    if payload is None:
        raise HTTPException(status_code=404, detail="Certificate not found")
    return CertificateRenderPayload(**payload)
