"""Initialize database schema for the job board.

Creates all tables needed by the API. Run this before starting the API
server, or let the server create missing tables on startup.

Usage:
    python init_db.py            # create missing tables
    python init_db.py --drop     # drop and recreate
    python init_db.py --seed     # also insert sample jobs and candidates
    python init_db.py --seed --match  # ...and score them with the scoring service
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from jobboard import models
from jobboard.config import settings
from jobboard.db import AsyncSessionMaker, init_models
from jobboard.logging_config import setup_logging
from jobboard.pipelines.matching import process_job_matches
from matcher import BatchMatcher, MatchScorer

SAMPLE_JOBS = [
    {
        "title": "Software Engineer",
        "description": (
            "We are looking for a Software Engineer to design, build and maintain web applications.\n\n"
            "Requirements:\n"
            "- 2+ years of software development experience\n"
            "- Proficiency in JavaScript, Python or Java\n"
            "- Experience with web frameworks and code review"
        ),
    },
    {
        "title": "Frontend Developer",
        "description": (
            "Build responsive user interfaces with React and TypeScript.\n\n"
            "Requirements:\n"
            "- 3+ years with React\n"
            "- Strong TypeScript, HTML and CSS\n"
            "- Familiarity with testing libraries"
        ),
    },
    {
        "title": "Marketing Manager",
        "description": (
            "Plan and run marketing campaigns across digital channels.\n\n"
            "Requirements:\n"
            "- 3+ years in marketing\n"
            "- Experience with analytics and reporting\n"
            "- Excellent written communication"
        ),
    },
]

SAMPLE_CANDIDATES = [
    {
        "first_name": "John",
        "last_name": "Smith",
        "email": "john.smith@example.com",
        "phone": "+1-555-0101",
        "resume": "Full stack developer with 5 years of React, TypeScript and Node.js experience.",
    },
    {
        "first_name": "Sarah",
        "last_name": "Johnson",
        "email": "sarah.johnson@example.com",
        "phone": "+1-555-0102",
        "resume": "Backend engineer, 4 years with Python, Django and PostgreSQL. Leads code reviews.",
    },
    {
        "first_name": "Emily",
        "last_name": "Davis",
        "email": "emily.davis@example.com",
        "phone": None,
        "resume": "Digital marketing specialist. Ran paid social campaigns and owned weekly analytics reports.",
    },
]


async def seed_database(session_factory=AsyncSessionMaker):
    """Insert sample rows, skipping jobs whose title and candidates whose email already exist."""
    async with session_factory() as session:
        titles = set((await session.execute(select(models.Job.title))).scalars().all())
        emails = set((await session.execute(select(models.Candidate.email))).scalars().all())

        new_jobs = [models.Job(**job) for job in SAMPLE_JOBS if job["title"] not in titles]
        new_candidates = [
            models.Candidate(**candidate)
            for candidate in SAMPLE_CANDIDATES
            if candidate["email"] not in emails
        ]
        session.add_all(new_jobs)
        session.add_all(new_candidates)
        await session.commit()

    print(f"✓ Inserted {len(new_jobs)} jobs and {len(new_candidates)} candidates")
    return len(new_jobs), len(new_candidates)


async def match_pending_jobs():
    """Score every unprocessed job against all candidates."""
    batch_matcher = BatchMatcher(
        MatchScorer.from_settings(settings.scoring),
        delay_seconds=settings.matching.delay_seconds,
    )
    async with AsyncSessionMaker() as session:
        result = await session.execute(select(models.Job.id).where(models.Job.ai_processed.is_(False)))
        job_ids = list(result.scalars().all())

    try:
        for job_id in job_ids:
            outcome = await process_job_matches(job_id, session_factory=AsyncSessionMaker, matcher=batch_matcher)
            print(f"✓ Job {job_id}: {outcome.matched}/{outcome.attempted} candidates scored")
    finally:
        await batch_matcher.aclose()


async def init_database(*, drop: bool = False, seed: bool = False, match: bool = False):
    """Create all database tables."""
    print(f"Initializing database: {settings.db.url}")
    print("Creating tables...")

    await init_models(drop=drop)
    if drop:
        print("✓ Dropped existing tables")
    print("✓ Created all tables")

    if seed:
        await seed_database()
    if match:
        await match_pending_jobs()

    print("\n✅ Database initialization complete!")
    print(f"Tables: {', '.join(models.Base.metadata.tables.keys())}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Initialize the job board database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    parser.add_argument("--seed", action="store_true", help="Insert sample jobs and candidates")
    parser.add_argument("--match", action="store_true", help="Score unprocessed jobs after seeding")
    args = parser.parse_args()

    setup_logging()
    try:
        asyncio.run(init_database(drop=args.drop, seed=args.seed, match=args.match))
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
