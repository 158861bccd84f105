"""Read side used by the cycle report export."""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from intake.models import (
    ASSESSMENT_COMPLETED,
    Assessment,
    Collaborator,
    CycleMembership,
    Equalization,
    EvaluationCycle,
)
from intake.schemas import CollaboratorDetail, CycleSummary

REPORT_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def report_filename(cycle_id: int) -> str:
    return f"report_cycle_{cycle_id}.xlsx"


def _get_cycle(session: Session, cycle_id: int) -> EvaluationCycle:
    cycle = session.get(EvaluationCycle, cycle_id)
    if cycle is None:
        raise ValueError(f"Cycle {cycle_id} not found")
    return cycle


def _count(session: Session, stmt) -> int:
    return int(session.execute(stmt).scalar_one())


def cycle_summary(session: Session, cycle_id: int) -> CycleSummary:
    cycle = _get_cycle(session, cycle_id)
    total = _count(session, select(func.count()).select_from(Assessment).where(Assessment.cycle_id == cycle_id))
    completed = _count(session, select(func.count()).select_from(Assessment).where(
        Assessment.cycle_id == cycle_id, Assessment.status == ASSESSMENT_COMPLETED,
    ))
    participants = _count(session, select(func.count()).select_from(CycleMembership).where(
        CycleMembership.cycle_id == cycle_id,
    ))
    return CycleSummary(
        cycle_id=cycle.id,
        name=cycle.name,
        start_date=cycle.start_date,
        end_date=cycle.end_date,
        status=cycle.status,
        participants=participants,
        assessments_total=total,
        assessments_completed=completed,
    )


def collaborator_details(session: Session, cycle_id: int) -> list[CollaboratorDetail]:
    """Cycle members with their committee (equalization) score, if any."""
    _get_cycle(session, cycle_id)
    members = session.execute(
        select(Collaborator)
        .join(CycleMembership, CycleMembership.collaborator_id == Collaborator.id)
        .where(CycleMembership.cycle_id == cycle_id)
        .order_by(Collaborator.full_name)
    ).scalars().all()
    equalizations = session.execute(
        select(Equalization).where(Equalization.cycle_id == cycle_id).order_by(Equalization.id)
    ).scalars().all()
    by_subject: dict[int, Equalization] = {}
    for eq in equalizations:
        by_subject.setdefault(eq.subject_id, eq)

    out: list[CollaboratorDetail] = []
    for member in members:
        eq = by_subject.get(member.id)
        out.append(CollaboratorDetail(
            full_name=member.full_name,
            email=member.email,
            committee_score=eq.adjusted_score if eq else None,
            committee_justification=eq.justification if eq else None,
        ))
    return out
