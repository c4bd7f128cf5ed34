"""Background matching: score a new candidate or job against the other side.

Each run fetches a fresh snapshot of the counterpart collection, scores it
with a ``BatchMatcher`` (no session is held while scoring), persists the
successful matches, and ends by setting ``ai_processed`` on the originating
entity so client polling terminates. The one exception is a job edited while
its batch ran: those scores are stale and the edit's own batch sets the flag.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard import models
from matcher import BatchMatcher, Counterpart, MatchResult

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


class EntityKind(str, Enum):
    """Which side initiated a matching run."""
    CANDIDATE = "candidate"
    JOB = "job"


@dataclass
class MatchingOutcome:
    """Summary of one background matching run."""
    entity_id: int
    kind: EntityKind
    attempted: int = 0
    matched: int = 0
    error: str | None = None
    processed: bool = False
    superseded: bool = False


async def _existing_ids(session: AsyncSession, model: type[models.Base], ids: list[int]) -> set[int]:
    if not ids:
        return set()
    result = await session.execute(select(model.id).where(model.id.in_(ids)))
    return set(result.scalars().all())


async def _mark_processed(
    session_factory: SessionFactory,
    model: type[models.Base],
    entity_id: int,
    *criteria,
) -> bool:
    """Set ``ai_processed`` on one row matching ``criteria``; failures are logged, not raised."""
    try:
        async with session_factory() as session:
            await session.execute(
                update(model).where(model.id == entity_id, *criteria).values(ai_processed=True)
            )
            await session.commit()
        return True
    except Exception as e:
        logger.error(f"Error updating ai_processed flag for {model.__tablename__} {entity_id}: {e}", exc_info=True)
        return False


async def _store_candidate_matches(
    session_factory: SessionFactory,
    candidate_id: int,
    results: list[MatchResult],
) -> int:
    """Push one match row per scored job, replacing earlier rows for the same pair."""
    async with session_factory() as session:
        job_ids = [r.counterpart_id for r in results]
        live = await _existing_ids(session, models.Job, job_ids)

        rows = [
            {"job_id": r.counterpart_id, "candidate_id": candidate_id, "percentage": r.percentage}
            for r in results
            if r.counterpart_id in live
        ]
        if rows:
            await session.execute(
                delete(models.JobMatch).where(
                    models.JobMatch.candidate_id == candidate_id,
                    models.JobMatch.job_id.in_(sorted(live)),
                )
            )
            await session.execute(insert(models.JobMatch), rows)
        await session.commit()
        return len(rows)


async def _store_job_matches(
    session_factory: SessionFactory,
    job_id: int,
    description: str,
    results: list[MatchResult],
) -> int | None:
    """Replace a job's match rows with ``results``.

    Returns None without writing if the job was deleted or its description
    changed since ``results`` were scored.
    """
    async with session_factory() as session:
        current = await session.scalar(select(models.Job.description).where(models.Job.id == job_id))
        if current != description:
            return None

        candidate_ids = [r.counterpart_id for r in results]
        live = await _existing_ids(session, models.Candidate, candidate_ids)

        rows = [
            {"job_id": job_id, "candidate_id": r.counterpart_id, "percentage": r.percentage}
            for r in results
            if r.counterpart_id in live
        ]
        await session.execute(delete(models.JobMatch).where(models.JobMatch.job_id == job_id))
        if rows:
            await session.execute(insert(models.JobMatch), rows)
        await session.commit()
        return len(rows)


async def process_candidate_matches(
    candidate_id: int,
    *,
    session_factory: SessionFactory,
    matcher: BatchMatcher,
) -> MatchingOutcome:
    """Score a candidate's résumé against every job and record the matches.

    Never raises; the candidate always ends up ``ai_processed``.
    """
    outcome = MatchingOutcome(entity_id=candidate_id, kind=EntityKind.CANDIDATE)
    try:
        async with session_factory() as session:
            candidate = await session.get(models.Candidate, candidate_id)
            if candidate is None:
                logger.error(f"Candidate not found for AI processing: {candidate_id}")
                return outcome
            resume = candidate.resume

            result = await session.execute(select(models.Job.id, models.Job.description).order_by(models.Job.id))
            jobs = [Counterpart(id=row.id, text=row.description) for row in result]

        outcome.attempted = len(jobs)
        logger.info(f"Processing AI matching for candidate {candidate_id} against {len(jobs)} jobs")

        results = await matcher.match_resume_to_jobs(resume, jobs)
        if results:
            outcome.matched = await _store_candidate_matches(session_factory, candidate_id, results)
            logger.info(f"Stored {outcome.matched} job matches for candidate {candidate_id}")
        else:
            logger.info(f"Candidate {candidate_id} marked as AI processed (no job matches found)")

    except Exception as e:
        outcome.error = str(e)
        logger.error(f"Error in background AI matching for candidate {candidate_id}: {e}", exc_info=True)

    finally:
        outcome.processed = await _mark_processed(session_factory, models.Candidate, candidate_id)

    return outcome


async def process_job_matches(
    job_id: int,
    *,
    session_factory: SessionFactory,
    matcher: BatchMatcher,
) -> MatchingOutcome:
    """Score a job description against every candidate and replace its matches.

    Never raises. The job ends up ``ai_processed`` unless its description was
    edited while the batch ran; the batch launched by that edit owns the
    flag and the matches then.
    """
    outcome = MatchingOutcome(entity_id=job_id, kind=EntityKind.JOB)
    description = None
    try:
        async with session_factory() as session:
            result = await session.execute(select(models.Job.description).where(models.Job.id == job_id))
            description = result.scalar_one_or_none()
            if description is None:
                logger.error(f"Job not found for AI processing: {job_id}")
                return outcome

            result = await session.execute(
                select(models.Candidate.id, models.Candidate.resume).order_by(models.Candidate.id)
            )
            candidates = [Counterpart(id=row.id, text=row.resume) for row in result]

        outcome.attempted = len(candidates)
        logger.info(f"Processing AI matching for job {job_id} against {len(candidates)} candidates")

        results = await matcher.match_job_to_candidates(description, candidates)
        stored = await _store_job_matches(session_factory, job_id, description, results)
        if stored is None:
            outcome.superseded = True
            logger.info(f"Job {job_id} changed during AI matching; discarding {len(results)} stale scores")
        elif stored:
            outcome.matched = stored
            logger.info(f"Successfully updated job {job_id} with {stored} candidate matches")
        else:
            logger.info(f"Job {job_id} marked as AI processed (no candidate matches found)")

    except Exception as e:
        outcome.error = str(e)
        logger.error(f"Error in background AI matching for job {job_id}: {e}", exc_info=True)

    finally:
        if not outcome.superseded:
            criteria = [] if description is None else [models.Job.description == description]
            outcome.processed = await _mark_processed(session_factory, models.Job, job_id, *criteria)

    return outcome
