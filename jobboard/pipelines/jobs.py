"""Job pipeline: posting, editing, deleting, ranking and processing status."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard import models
from jobboard.pipelines.normalization import clean_text

logger = logging.getLogger(__name__)


class JobValidationError(Exception):
    """Raised when job fields are missing or empty."""
    pass


class JobNotFoundError(Exception):
    """Raised when a job id does not exist."""

    def __init__(self, job_id: int):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


@dataclass
class JobStatus:
    """Background matching status for one job."""
    job_id: int
    completed: bool
    candidate_count: int

    @property
    def message(self) -> str:
        if self.completed:
            return f"AI matching completed! Found {self.candidate_count} candidate matches."
        return "AI matching in progress..."


def _validated(title: str | None, description: str | None) -> tuple[str, str]:
    title = (title or "").strip()
    description = clean_text(description)
    if not title or not description:
        raise JobValidationError("Title and description are required")
    return title, description


async def create_job(session: AsyncSession, *, title: str, description: str) -> models.Job:
    """Store a new, unprocessed job posting."""
    title, description = _validated(title, description)

    job = models.Job(title=title, description=description, ai_processed=False, matches=[])
    session.add(job)
    await session.commit()

    logger.info(f"Created job {job.id}: {title}")
    return job


async def get_job(session: AsyncSession, job_id: int) -> models.Job:
    job = await session.get(models.Job, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


async def list_jobs(session: AsyncSession) -> list[models.Job]:
    """All jobs, newest first."""
    result = await session.execute(
        select(models.Job).order_by(models.Job.created_at.desc(), models.Job.id.desc())
    )
    return list(result.scalars().all())


async def update_job(
    session: AsyncSession,
    job_id: int,
    *,
    title: str,
    description: str,
) -> models.Job:
    """Replace a job's text and reset it for re-matching.

    Existing matches are dropped and the processed flag is cleared; the
    caller is expected to launch a fresh batch.
    """
    title, description = _validated(title, description)
    job = await get_job(session, job_id)

    job.title = title
    job.description = description
    job.ai_processed = False
    job.matches.clear()
    await session.commit()

    logger.info(f"Updated job {job_id}; matches reset")
    return job


async def delete_job(session: AsyncSession, job_id: int) -> models.Job:
    job = await get_job(session, job_id)
    await session.delete(job)
    await session.commit()

    logger.info(f"Job deleted: {job_id} - {job.title}")
    return job


def ranked_matches(job: models.Job, min_percentage: int) -> list[models.JobMatch]:
    """Matches scoring strictly above ``min_percentage``, best first."""
    qualified = [m for m in job.matches if m.percentage > min_percentage]
    return sorted(qualified, key=lambda m: m.percentage, reverse=True)


async def processing_status(session: AsyncSession, job_id: int) -> JobStatus:
    job = await get_job(session, job_id)
    return JobStatus(
        job_id=job_id,
        completed=job.ai_processed,
        candidate_count=len(job.matches),
    )
