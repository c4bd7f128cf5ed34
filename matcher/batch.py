"""Batch matching: score one subject against many counterparts, one at a time.

Calls are serialized with a fixed pause between them to stay under the
scoring provider's rate limit. A failed pair is logged and skipped; the
batch itself never raises.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Iterable, Protocol

logger = logging.getLogger(__name__)


class SubjectKind(str, Enum):
    """Which side of the résumé/job pair the batch subject text is."""
    RESUME = "resume"
    JOB = "job"


@dataclass(frozen=True)
class Counterpart:
    """One entity to score the subject against."""
    id: Hashable
    text: str


@dataclass(frozen=True)
class MatchResult:
    """Successful score for one counterpart."""
    counterpart_id: Hashable
    percentage: int


class Scorer(Protocol):
    async def score(self, resume: str, job_description: str) -> int: ...


class BatchMatcher:
    """Runs a scorer over a sequence of counterparts.

    Args:
        scorer: Anything with an async ``score(resume, job_description)``
        delay_seconds: Pause between consecutive scoring attempts
    """

    def __init__(self, scorer: Scorer, *, delay_seconds: float = 0.1):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.scorer = scorer
        self.delay_seconds = delay_seconds

    async def score_all(
        self,
        subject_text: str,
        counterparts: Iterable[Counterpart],
        *,
        subject: SubjectKind = SubjectKind.RESUME,
    ) -> list[MatchResult]:
        """Score ``subject_text`` against each counterpart in order.

        Returns:
            Results for the counterparts that scored successfully, in input order
        """
        counterparts = list(counterparts)
        if not counterparts:
            return []

        logger.info(f"Calculating matches for {subject.value} against {len(counterparts)} counterparts")

        results: list[MatchResult] = []
        for index, counterpart in enumerate(counterparts):
            if subject is SubjectKind.RESUME:
                resume, job_description = subject_text, counterpart.text
            else:
                resume, job_description = counterpart.text, subject_text

            try:
                percentage = await self.scorer.score(resume, job_description)
            except Exception as e:
                logger.error(f"Error calculating match for {counterpart.id}: {e}")
            else:
                results.append(MatchResult(counterpart_id=counterpart.id, percentage=percentage))

            if index < len(counterparts) - 1 and self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)

        logger.info(f"Completed match calculations: {len(results)} of {len(counterparts)} scored")
        return results

    async def match_resume_to_jobs(self, resume: str, jobs: Iterable[Counterpart]) -> list[MatchResult]:
        """Score one candidate's résumé against many job descriptions."""
        return await self.score_all(resume, jobs, subject=SubjectKind.RESUME)

    async def match_job_to_candidates(
        self,
        job_description: str,
        candidates: Iterable[Counterpart],
    ) -> list[MatchResult]:
        """Score one job description against many candidate résumés."""
        return await self.score_all(job_description, candidates, subject=SubjectKind.JOB)

    async def aclose(self) -> None:
        """Release the scorer's resources, if it holds any."""
        close = getattr(self.scorer, "aclose", None)
        if close is not None:
            await close()
