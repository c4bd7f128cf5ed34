"""Core SQLAlchemy models (2.x style) for the job board schema.

Jobs carry their ranked candidate matches as ``JobMatch`` rows; candidates
do not store matches of their own.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Job(Base):
    """Job postings table."""
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    ai_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    # Relationships
    matches: Mapped[list[JobMatch]] = relationship(
        "JobMatch",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="[JobMatch.percentage.desc(), JobMatch.id]",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_jobs_created_at", "created_at"),
    )


class Candidate(Base):
    """Candidates table."""
    __tablename__ = "candidates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50))
    resume: Mapped[str] = mapped_column(Text, nullable=False)
    resume_filename: Mapped[str | None] = mapped_column(String(255))
    submitted_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False, index=True)
    ai_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # Recruiter contact tracking
    contacted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    contacted_at: Mapped[datetime | None] = mapped_column()
    contact_notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_candidates_name", "first_name", "last_name"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class JobMatch(Base):
    """AI match percentage between a job and a candidate."""
    __tablename__ = "job_matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    candidate_id: Mapped[int] = mapped_column(
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    # Relationships
    job: Mapped[Job] = relationship("Job", back_populates="matches")
    candidate: Mapped[Candidate] = relationship("Candidate", lazy="selectin")

    __table_args__ = (
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_job_matches_percentage"),
        Index("ix_job_matches_job_percentage", "job_id", "percentage"),
    )
