"""Certificate issuance: eligibility gate plus idempotent get-or-create.

At most one certificate exists per (learner, course). The storage layer
enforces this with a unique constraint; the issuer inserts inside a
SAVEPOINT and, when the insert conflicts, re-reads and returns whichever
certificate won. Repeated or concurrent calls therefore always yield the
same certificate number.

Certificate numbers look like ``COURSE-202410-3FA9``: prefix, issuance year
and month, then four uppercase hex characters from ``secrets``.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courseflow.config import settings
from courseflow.core.errors import CertificateConflictError
from courseflow.models.base import utcnow
from courseflow.models.certificate import Certificate
from courseflow.models.course import Course
from courseflow.models.user import User
from courseflow.services import audit_service, course_service, eligibility_service

logger = logging.getLogger("courseflow.certificates")


@dataclass
class CertificateIssue:
    certificate: Certificate | None = None
    course_title: str | None = None
    completion_message: str | None = None
    created: bool = False


def _issue(certificate: Certificate, course: Course, created: bool = False) -> CertificateIssue:
    return CertificateIssue(
        certificate=certificate,
        course_title=course.title,
        completion_message=course.completion_message,
        created=created,
    )


def generate_certificate_number(
    now: datetime | None = None,
    prefix: str | None = None,
) -> str:
    now = now or utcnow()
    prefix = prefix or settings.certificate_number_prefix
    token = secrets.randbelow(0x10000)
    return f"{prefix}-{now.year:04d}{now.month:02d}-{token:04X}"


async def get_certificate_for(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
) -> Certificate | None:
    result = await db.execute(
        select(Certificate).where(
            Certificate.user_id == user_id,
            Certificate.course_id == course_id,
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_certificate(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    ip_address: str | None = None,
) -> CertificateIssue:
    """Return the learner's certificate, issuing it on first eligible call.

    Ineligible learners get an empty CertificateIssue; that is the normal
    "not yet" answer, not an error.
    """
    eligibility = await eligibility_service.check_eligibility(db, user_id=user_id)
    if not eligibility.eligible:
        return CertificateIssue()

    course = await course_service.get_active_course(db)
    if course is None:
        return CertificateIssue()

    existing = await get_certificate_for(db, user_id=user_id, course_id=course.id)
    if existing is not None:
        return _issue(existing, course)

    for attempt in range(1, settings.certificate_issue_max_attempts + 1):
        certificate = Certificate(
            user_id=user_id,
            course_id=course.id,
            certificate_number=generate_certificate_number(),
            issued_at=utcnow(),
        )
        try:
            async with db.begin_nested():
                db.add(certificate)
                await db.flush()
        except IntegrityError:
            winner = await get_certificate_for(db, user_id=user_id, course_id=course.id)
            if winner is not None:
                logger.info(
                    "Certificate already issued concurrently user=%s number=%s",
                    user_id,
                    winner.certificate_number,
                )
                return _issue(winner, course)
            logger.warning(
                "Certificate number collision user=%s attempt=%d", user_id, attempt
            )
            continue

        await audit_service.log_event(
            db,
            user_id=user_id,
            event_type="certificate.issued",
            entity_type="Certificate",
            entity_id=certificate.id,
            course_id=course.id,
            action="issue",
            detail={"certificate_number": certificate.certificate_number},
            ip_address=ip_address,
        )
        logger.info(
            "Certificate issued user=%s course=%s number=%s",
            user_id,
            course.id,
            certificate.certificate_number,
        )
        return _issue(certificate, course, created=True)

    raise CertificateConflictError("Could not allocate a unique certificate number")


async def get_certificate_by_number(
    db: AsyncSession,
    certificate_number: str,
) -> dict | None:
    """Public verification view of a certificate, or None if unknown."""
    result = await db.execute(
        select(Certificate, User, Course)
        .join(User, Certificate.user_id == User.id)
        .join(Course, Certificate.course_id == Course.id)
        .where(Certificate.certificate_number == certificate_number)
    )
    row = result.first()
    if row is None:
        return None
    certificate, user, course = row
    return build_render_payload(
        certificate,
        recipient_name=user.display_name,
        course_title=course.title,
    )


def build_render_payload(
    certificate: Certificate,
    *,
    recipient_name: str,
    course_title: str,
) -> dict:
    """The fields the external PDF renderer fills into its template."""
    return {
        "recipient_name": recipient_name,
        "course_title": course_title,
        "certificate_number": certificate.certificate_number,
        "issued_at": certificate.issued_at,
    }
