"""Candidate pipeline: application intake, lookup, processing status and contact tracking."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard import models
from jobboard.pipelines.normalization import clean_text

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class ApplicationError(Exception):
    """Raised when a submitted application is invalid."""
    pass


class CandidateNotFoundError(Exception):
    """Raised when a candidate id does not exist."""

    def __init__(self, candidate_id: int):
        super().__init__(f"Candidate {candidate_id} not found")
        self.candidate_id = candidate_id


@dataclass
class CandidateStatus:
    """Background matching status for one candidate."""
    candidate_id: int
    is_processed: bool
    match_count: int

    @property
    def message(self) -> str:
        if self.is_processed:
            return f"Processing complete! Found {self.match_count} job matches."
        return "Still processing your application..."


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


async def submit_application(
    session: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    resume: str,
    phone: str | None = None,
    resume_filename: str | None = None,
) -> models.Candidate:
    """Validate and store a new candidate application.

    The candidate starts unprocessed; matching is launched separately.

    Raises:
        ApplicationError: If a required field is missing or the email is malformed
    """
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    email = (email or "").strip().lower()
    phone = (phone or "").strip() or None
    resume = clean_text(resume)

    missing = [
        name for name, value in (
            ("first_name", first_name),
            ("last_name", last_name),
            ("email", email),
            ("resume", resume),
        )
        if not value
    ]
    if missing:
        raise ApplicationError(f"Missing required fields: {', '.join(missing)}")

    if not is_valid_email(email):
        raise ApplicationError("Please enter a valid email address")

    candidate = models.Candidate(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        resume=resume,
        resume_filename=resume_filename,
        submitted_at=datetime.utcnow(),
        ai_processed=False,
    )
    session.add(candidate)
    await session.commit()

    logger.info(f"Stored application for candidate {candidate.id}: {candidate.full_name}")
    return candidate


async def get_candidate(session: AsyncSession, candidate_id: int) -> models.Candidate:
    candidate = await session.get(models.Candidate, candidate_id)
    if candidate is None:
        raise CandidateNotFoundError(candidate_id)
    return candidate


async def list_candidates(session: AsyncSession) -> list[models.Candidate]:
    result = await session.execute(
        select(models.Candidate).order_by(models.Candidate.submitted_at.desc(), models.Candidate.id.desc())
    )
    return list(result.scalars().all())


async def processing_status(session: AsyncSession, candidate_id: int) -> CandidateStatus:
    """Report whether matching has concluded and how many jobs matched."""
    candidate = await get_candidate(session, candidate_id)

    match_count = 0
    if candidate.ai_processed:
        result = await session.execute(
            select(func.count(func.distinct(models.JobMatch.job_id))).where(
                models.JobMatch.candidate_id == candidate_id
            )
        )
        match_count = result.scalar_one()

    return CandidateStatus(
        candidate_id=candidate_id,
        is_processed=candidate.ai_processed,
        match_count=match_count,
    )


async def mark_contacted(
    session: AsyncSession,
    candidate_id: int,
    notes: str | None = None,
) -> models.Candidate:
    """Record that a recruiter has contacted the candidate."""
    candidate = await get_candidate(session, candidate_id)
    candidate.contacted = True
    candidate.contacted_at = datetime.utcnow()
    candidate.contact_notes = (notes or "").strip()
    await session.commit()

    logger.info(f"Candidate {candidate_id} marked as contacted")
    return candidate


async def unmark_contacted(session: AsyncSession, candidate_id: int) -> models.Candidate:
    candidate = await get_candidate(session, candidate_id)
    candidate.contacted = False
    candidate.contacted_at = None
    candidate.contact_notes = ""
    await session.commit()

    logger.info(f"Candidate {candidate_id} contact status removed")
    return candidate
