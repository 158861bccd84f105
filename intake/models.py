from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from intake.utils import utc_now

ASSESSMENT_SELF = "SELF"
ASSESSMENT_PEER = "PEER"
ASSESSMENT_COMPLETED = "COMPLETED"
PROJECT_COMPLETED = "COMPLETED"
NOMINATION_GENERAL = "GENERAL"


class Base(DeclarativeBase):
    pass


class Collaborator(Base):
    __tablename__ = "collaborators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(300), nullable=False)
    email: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    unit: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    # True while the row only exists because another record referenced its email
    placeholder: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    memberships: Mapped[list[CycleMembership]] = relationship(back_populates="collaborator")
    allocations: Mapped[list[Allocation]] = relationship(back_populates="collaborator")


class EvaluationCycle(Base):
    __tablename__ = "evaluation_cycles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)  # IN_PROGRESS | REVIEW | EQUALIZATION | CLOSED
    in_progress_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    review_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    equalization_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    memberships: Mapped[list[CycleMembership]] = relationship(back_populates="cycle")


class CycleMembership(Base):
    __tablename__ = "cycle_memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collaborator_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    cycle_id: Mapped[int] = mapped_column(ForeignKey("evaluation_cycles.id"), nullable=False)

    collaborator: Mapped[Collaborator] = relationship(back_populates="memberships")
    cycle: Mapped[EvaluationCycle] = relationship(back_populates="memberships")


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(300), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default=PROJECT_COMPLETED, nullable=False)


class Allocation(Base):
    __tablename__ = "allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collaborator_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    exit_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    collaborator: Mapped[Collaborator] = relationship(back_populates="allocations")
    project: Mapped[Project] = relationship()


class Pairing(Base):
    __tablename__ = "pairings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collaborator_a_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)  # evaluator
    collaborator_b_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)  # evaluated
    cycle_id: Mapped[int] = mapped_column(ForeignKey("evaluation_cycles.id"), nullable=False)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False)
    days_worked_together: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Criterion(Base):
    __tablename__ = "criteria"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    pillar: Mapped[str] = mapped_column(String(30), nullable=False)


class Assessment(Base):
    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cycle_id: Mapped[int] = mapped_column(ForeignKey("evaluation_cycles.id"), nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)  # SELF | PEER
    status: Mapped[str] = mapped_column(String(30), default=ASSESSMENT_COMPLETED, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    cards: Mapped[list[SelfAssessmentCard]] = relationship(back_populates="assessment", cascade="all, delete-orphan")
    peer_summary: Mapped[PeerAssessmentSummary | None] = relationship(
        back_populates="assessment", cascade="all, delete-orphan", uselist=False,
    )


class SelfAssessmentCard(Base):
    __tablename__ = "self_assessment_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(ForeignKey("assessments.id"), nullable=False)
    criterion_name: Mapped[str] = mapped_column(ForeignKey("criteria.name"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    justification: Mapped[str] = mapped_column(Text, default="", nullable=False)

    assessment: Mapped[Assessment] = relationship(back_populates="cards")


class PeerAssessmentSummary(Base):
    __tablename__ = "peer_assessment_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(ForeignKey("assessments.id"), unique=True, nullable=False)
    overall_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    strengths: Mapped[str] = mapped_column(Text, default="", nullable=False)
    areas_to_improve: Mapped[str] = mapped_column(Text, default="", nullable=False)
    would_work_again: Mapped[str] = mapped_column(Text, default="", nullable=False)

    assessment: Mapped[Assessment] = relationship(back_populates="peer_summary")


class ReferenceNomination(Base):
    __tablename__ = "reference_nominations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cycle_id: Mapped[int] = mapped_column(ForeignKey("evaluation_cycles.id"), nullable=False)
    nominator_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    nominee_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(30), default=NOMINATION_GENERAL, nullable=False)
    justification: Mapped[str] = mapped_column(Text, default="", nullable=False)


class Equalization(Base):
    """Committee-adjusted score for a collaborator in a cycle. Written by the review tool, read here."""

    __tablename__ = "equalizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cycle_id: Mapped[int] = mapped_column(ForeignKey("evaluation_cycles.id"), nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("collaborators.id"), nullable=False)
    adjusted_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    justification: Mapped[str] = mapped_column(Text, default="", nullable=False)


Index("ix_cycle_memberships_unique", CycleMembership.collaborator_id, CycleMembership.cycle_id, unique=True)
Index("ix_allocations_unique", Allocation.collaborator_id, Allocation.project_id, unique=True)
Index("ix_pairings_unique", Pairing.collaborator_a_id, Pairing.collaborator_b_id, Pairing.cycle_id, unique=True)
Index("ix_assessments_cycle", Assessment.cycle_id, Assessment.kind)
Index("ix_equalizations_cycle_subject", Equalization.cycle_id, Equalization.subject_id)
