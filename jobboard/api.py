"""FastAPI app: applications, jobs, recruiter views and matching status.

New applications and job postings are stored immediately; AI matching runs
afterwards on the app's ``MatchingQueue`` and clients poll the
processing-status endpoints until the entity is marked processed.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from io import BytesIO
from typing import AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from matcher import BatchMatcher, MatchScorer

from . import models
from .config import settings
from .db import AsyncSessionMaker, init_models
from .db import engine as default_engine
from .logging_config import setup_logging
from .parsers import ParseError, parse_resume
from .pipelines import candidates as candidate_pipeline
from .pipelines import jobs as job_pipeline
from .pipelines.candidates import ApplicationError, CandidateNotFoundError
from .pipelines.jobs import JobNotFoundError, JobValidationError
from .pipelines.matching import process_candidate_matches, process_job_matches
from .tasks import MatchingQueue

logger = logging.getLogger(__name__)


# Pydantic request/response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class ApplicationResponse(BaseModel):
    """Application submission response."""
    candidate_id: int
    processing: bool
    message: str


class CandidateDTO(BaseModel):
    """Candidate data transfer object."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    resume: str
    resume_filename: str | None = None
    submitted_at: datetime
    ai_processed: bool
    contacted: bool
    contacted_at: datetime | None = None
    contact_notes: str = ""


class CandidateStatusResponse(BaseModel):
    """Candidate processing status."""
    candidate_id: int
    is_processed: bool
    match_count: int
    message: str


class ContactRequest(BaseModel):
    """Mark-as-contacted request."""
    notes: str | None = Field(default=None, max_length=5000)


class ContactResponse(BaseModel):
    """Contact status change response."""
    message: str
    candidate_id: int
    contacted: bool
    contacted_at: datetime | None = None
    contact_notes: str = ""


class JobRequest(BaseModel):
    """Create/update job request."""
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)


class MatchDTO(BaseModel):
    """One candidate match on a job."""
    candidate_id: int
    percentage: int
    full_name: str
    email: str
    contacted: bool


class JobDTO(BaseModel):
    """Job data transfer object."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    ai_processed: bool
    created_at: datetime
    updated_at: datetime


class JobSummaryDTO(JobDTO):
    """Job with its qualified, ranked candidates."""
    match_count: int
    top_candidates: list[MatchDTO]


class JobDetailDTO(JobDTO):
    """Job with every stored match."""
    matches: list[MatchDTO]


class JobMutationResponse(BaseModel):
    """Create/update/delete job response."""
    job_id: int
    title: str
    message: str


class JobStatusResponse(BaseModel):
    """Job processing status."""
    job_id: int
    completed: bool
    candidate_count: int
    message: str


def _match_dto(match: models.JobMatch) -> MatchDTO:
    return MatchDTO(
        candidate_id=match.candidate_id,
        percentage=match.percentage,
        full_name=match.candidate.full_name,
        email=match.candidate.email,
        contacted=match.candidate.contacted,
    )


# Dependencies
async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Per-request session from the app's session factory."""
    async with request.app.state.session_factory() as session:
        yield session


def launch_candidate_matching(app: FastAPI, candidate_id: int) -> None:
    app.state.matching_queue.submit(
        f"match-candidate-{candidate_id}",
        process_candidate_matches(
            candidate_id,
            session_factory=app.state.session_factory,
            matcher=app.state.batch_matcher,
        ),
    )


def launch_job_matching(app: FastAPI, job_id: int) -> None:
    app.state.matching_queue.submit(
        f"match-job-{job_id}",
        process_job_matches(
            job_id,
            session_factory=app.state.session_factory,
            matcher=app.state.batch_matcher,
        ),
    )


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=settings.version)


@router.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.version,
        "endpoints": {
            "health": "/health",
            "submit_application": "/applications",
            "candidates": "/candidates",
            "candidate_status": "/candidates/{candidate_id}/processing-status",
            "contact_candidate": "/candidates/{candidate_id}/contact",
            "jobs": "/jobs",
            "job": "/jobs/{job_id}",
            "job_status": "/jobs/{job_id}/processing-status",
            "docs": "/docs",
        },
    }


@router.post(
    "/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_application(
    request: Request,
    first_name: str = Form(default=""),
    last_name: str = Form(default=""),
    email: str = Form(default=""),
    phone: str | None = Form(default=None),
    resume: str | None = Form(default=None),
    resume_file: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_session),
) -> ApplicationResponse:
    """Submit a candidate application and start AI matching against all jobs.

    The résumé comes from the ``resume`` text field or, when that is empty,
    from an uploaded ``resume_file`` (PDF or plain text).
    """
    resume_filename = None
    if not (resume and resume.strip()) and resume_file is not None and resume_file.filename:
        try:
            content = await resume_file.read()
            parsed = parse_resume(BytesIO(content), resume_file.filename)
        finally:
            await resume_file.close()
        resume = parsed.text
        resume_filename = resume_file.filename

    try:
        candidate = await candidate_pipeline.submit_application(
            session,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            resume=resume or "",
            resume_filename=resume_filename,
        )
    except ApplicationError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error storing application: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )

    launch_candidate_matching(request.app, candidate.id)

    return ApplicationResponse(
        candidate_id=candidate.id,
        processing=True,
        message="Application received. Matching against open jobs...",
    )


@router.get("/candidates", response_model=list[CandidateDTO])
async def list_candidates(session: AsyncSession = Depends(get_session)) -> list[CandidateDTO]:
    candidates = await candidate_pipeline.list_candidates(session)
    return [CandidateDTO.model_validate(c) for c in candidates]


@router.get("/candidates/{candidate_id}", response_model=CandidateDTO)
async def get_candidate(candidate_id: int, session: AsyncSession = Depends(get_session)) -> CandidateDTO:
    candidate = await candidate_pipeline.get_candidate(session, candidate_id)
    return CandidateDTO.model_validate(candidate)


@router.get("/candidates/{candidate_id}/processing-status", response_model=CandidateStatusResponse)
async def candidate_processing_status(
    candidate_id: int,
    session: AsyncSession = Depends(get_session),
) -> CandidateStatusResponse:
    """Poll target for the application page."""
    result = await candidate_pipeline.processing_status(session, candidate_id)
    return CandidateStatusResponse(
        candidate_id=result.candidate_id,
        is_processed=result.is_processed,
        match_count=result.match_count,
        message=result.message,
    )


@router.post("/candidates/{candidate_id}/contact", response_model=ContactResponse)
async def mark_candidate_contacted(
    candidate_id: int,
    body: ContactRequest | None = None,
    session: AsyncSession = Depends(get_session),
) -> ContactResponse:
    candidate = await candidate_pipeline.mark_contacted(session, candidate_id, body.notes if body else None)
    return ContactResponse(
        message="Candidate marked as contacted",
        candidate_id=candidate.id,
        contacted=candidate.contacted,
        contacted_at=candidate.contacted_at,
        contact_notes=candidate.contact_notes,
    )


@router.delete("/candidates/{candidate_id}/contact", response_model=ContactResponse)
async def unmark_candidate_contacted(
    candidate_id: int,
    session: AsyncSession = Depends(get_session),
) -> ContactResponse:
    candidate = await candidate_pipeline.unmark_contacted(session, candidate_id)
    return ContactResponse(
        message="Candidate contact status removed",
        candidate_id=candidate.id,
        contacted=candidate.contacted,
        contacted_at=candidate.contacted_at,
        contact_notes=candidate.contact_notes,
    )


@router.get("/jobs", response_model=list[JobSummaryDTO])
async def list_jobs(
    min_percentage: int | None = Query(default=None, ge=0, le=100),
    session: AsyncSession = Depends(get_session),
) -> list[JobSummaryDTO]:
    """Recruiter view: jobs newest first, each with qualified candidates best first."""
    threshold = settings.matching.min_percentage if min_percentage is None else min_percentage
    jobs = await job_pipeline.list_jobs(session)
    return [
        JobSummaryDTO(
            **JobDTO.model_validate(job).model_dump(),
            match_count=len(job.matches),
            top_candidates=[_match_dto(m) for m in job_pipeline.ranked_matches(job, threshold)],
        )
        for job in jobs
    ]


@router.post(
    "/jobs",
    response_model=JobMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_job(
    request: Request,
    body: JobRequest,
    session: AsyncSession = Depends(get_session),
) -> JobMutationResponse:
    """Post a job and start AI matching against all candidates."""
    logger.info(f"Creating job: {body.title}")

    try:
        job = await job_pipeline.create_job(session, title=body.title, description=body.description)
    except JobValidationError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating job: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )

    launch_job_matching(request.app, job.id)

    return JobMutationResponse(job_id=job.id, title=job.title, message="Job created successfully")


@router.get("/jobs/{job_id}", response_model=JobDetailDTO)
async def get_job(job_id: int, session: AsyncSession = Depends(get_session)) -> JobDetailDTO:
    job = await job_pipeline.get_job(session, job_id)
    return JobDetailDTO(
        **JobDTO.model_validate(job).model_dump(),
        matches=[_match_dto(m) for m in job.matches],
    )


@router.put("/jobs/{job_id}", response_model=JobMutationResponse)
async def update_job(
    request: Request,
    job_id: int,
    body: JobRequest,
    session: AsyncSession = Depends(get_session),
) -> JobMutationResponse:
    """Edit a job; its matches are cleared and recomputed in the background."""
    job = await job_pipeline.update_job(session, job_id, title=body.title, description=body.description)
    launch_job_matching(request.app, job.id)
    return JobMutationResponse(job_id=job.id, title=job.title, message="Job updated successfully")


@router.delete("/jobs/{job_id}", response_model=JobMutationResponse)
async def delete_job(job_id: int, session: AsyncSession = Depends(get_session)) -> JobMutationResponse:
    job = await job_pipeline.delete_job(session, job_id)
    return JobMutationResponse(job_id=job_id, title=job.title, message="Job deleted successfully")


@router.get("/jobs/{job_id}/processing-status", response_model=JobStatusResponse)
async def job_processing_status(
    job_id: int,
    session: AsyncSession = Depends(get_session),
) -> JobStatusResponse:
    result = await job_pipeline.processing_status(session, job_id)
    return JobStatusResponse(
        job_id=result.job_id,
        completed=result.completed,
        candidate_count=result.candidate_count,
        message=result.message,
    )


# Exception handlers
def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=str(exc)).model_dump(),
    )


async def parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
    """Handle résumé upload parsing errors."""
    logger.error(f"Parse error: {exc}")
    return _error(status.HTTP_400_BAD_REQUEST, "parse_error", exc)


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle invalid applications and job postings."""
    logger.warning(f"Validation error: {exc}")
    return _error(status.HTTP_400_BAD_REQUEST, "validation_error", exc)


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "not_found", exc)


def create_app(
    *,
    engine: AsyncEngine | None = None,
    batch_matcher: BatchMatcher | None = None,
    init_schema: bool = True,
) -> FastAPI:
    """Build the application.

    Args:
        engine: Async engine to use (defaults to the configured database)
        batch_matcher: Matcher used by background tasks (defaults to OpenAI scoring)
        init_schema: Create missing tables on startup
    """
    engine = engine or default_engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown logic."""
        # Startup
        setup_logging()
        if init_schema:
            await init_models(engine)
        logger.info("Application starting up")

        yield

        # Shutdown
        if app.state.matching_queue.pending:
            logger.info(f"Waiting for {app.state.matching_queue.pending} matching tasks to finish")
        await app.state.matching_queue.join()
        await app.state.batch_matcher.aclose()
        logger.info("Application shutting down")

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="Job board with AI résumé/job matching",
        lifespan=lifespan,
    )

    app.state.session_factory = (
        AsyncSessionMaker if engine is default_engine
        else async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    )
    app.state.batch_matcher = batch_matcher or BatchMatcher(
        MatchScorer.from_settings(settings.scoring),
        delay_seconds=settings.matching.delay_seconds,
    )
    app.state.matching_queue = MatchingQueue()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],  # Frontend URLs
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ParseError, parse_error_handler)
    app.add_exception_handler(ApplicationError, validation_error_handler)
    app.add_exception_handler(JobValidationError, validation_error_handler)
    app.add_exception_handler(CandidateNotFoundError, not_found_handler)
    app.add_exception_handler(JobNotFoundError, not_found_handler)

    app.include_router(router)
    return app


app = create_app()
