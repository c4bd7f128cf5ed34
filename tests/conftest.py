"""
Test fixtures and utilities for the job board tests
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jobboard.db import init_models


class FakeScorer:
    """Stand-in for MatchScorer driven by a ``rule(resume, job_description)``.

    The rule returns a percentage or an exception instance to raise.
    """

    def __init__(self, rule=None):
        self.rule = rule or (lambda resume, job_description: 50)
        self.calls = []

    async def score(self, resume, job_description):
        self.calls.append((resume, job_description))
        outcome = self.rule(resume, job_description)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def keyword_rule(scores, default=0):
    """Score by the first keyword found in the job description."""
    def rule(resume, job_description):
        for keyword, outcome in scores.items():
            if keyword in job_description or keyword in resume:
                return outcome
        return default
    return rule


def make_completion(content):
    """Minimal chat completion object with one choice."""
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def openai_client():
    """Mocked AsyncOpenAI client whose completions return "75"."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=make_completion("75"))
    return client


@pytest.fixture
def db_url(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    return f"sqlite+aiosqlite:///{tmp_path / 'jobboard_test.db'}"


@pytest_asyncio.fixture
async def engine(db_url):
    engine = create_async_engine(db_url)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
