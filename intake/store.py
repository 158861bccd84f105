"""Natural-key reconciliation of imported entities.

Every function looks the row up by its natural key before creating it and
flushes, so later lookups in the same session see it. Nothing here commits.
"""
from __future__ import annotations

import re
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from intake.config import CyclePolicy
from intake.models import (
    PROJECT_COMPLETED,
    Allocation,
    Collaborator,
    Criterion,
    CycleMembership,
    EvaluationCycle,
    Pairing,
    Project,
)

PLACEHOLDER_UNIT = "Unknown"

_YEAR_RE = re.compile(r"(\d{4})")


def _require(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(f"Missing required field: {field}")
    return text


def find_collaborator(session: Session, email: str) -> Collaborator | None:
    return session.execute(
        select(Collaborator).where(Collaborator.email == email.strip())
    ).scalars().first()


def upsert_collaborator(session: Session, *, email: str, full_name: str, unit: str) -> Collaborator:
    """Create or enrich a collaborator from an authoritative profile row."""
    email = _require(email, "email")
    full_name = _require(full_name, "full_name")
    unit = _require(unit, "unit")

    collaborator = find_collaborator(session, email)
    if collaborator is None:
        collaborator = Collaborator(email=email, full_name=full_name, unit=unit, placeholder=False)
        session.add(collaborator)
    else:
        collaborator.full_name = full_name
        collaborator.unit = unit
        collaborator.placeholder = False
    session.flush()
    return collaborator


def ensure_placeholder_collaborator(session: Session, email: str, *, label: str) -> Collaborator:
    """Return the collaborator for *email*, creating a placeholder if unseen.

    Existing rows (placeholder or not) are returned untouched.
    """
    email = _require(email, "email")
    collaborator = find_collaborator(session, email)
    if collaborator is not None:
        return collaborator
    collaborator = Collaborator(
        email=email,
        full_name=f"{label} - {email}",
        unit=PLACEHOLDER_UNIT,
        placeholder=True,
    )
    session.add(collaborator)
    session.flush()
    return collaborator


def cycle_year(name: str, default: int) -> int:
    match = _YEAR_RE.search(name)
    return int(match.group(1)) if match else default


def get_or_create_cycle(session: Session, name: str, *, policy: CyclePolicy) -> EvaluationCycle:
    """Find a cycle by name or create it with the historical-import schedule.

    There is no update path: an existing cycle keeps its dates whatever the file says.
    """
    name = _require(name, "cycle name")
    cycle = session.execute(
        select(EvaluationCycle).where(EvaluationCycle.name == name)
    ).scalars().first()
    if cycle is not None:
        return cycle

    year = cycle_year(name, policy.default_year)
    cycle = EvaluationCycle(
        name=name,
        start_date=date(year, policy.start_month, policy.start_day),
        end_date=date(year, policy.end_month, policy.end_day),
        status=policy.status,
        in_progress_days=policy.in_progress_days,
        review_days=policy.review_days,
        equalization_days=policy.equalization_days,
    )
    session.add(cycle)
    session.flush()
    return cycle


def ensure_membership(session: Session, collaborator: Collaborator, cycle: EvaluationCycle) -> CycleMembership:
    membership = session.execute(
        select(CycleMembership).where(
            CycleMembership.collaborator_id == collaborator.id,
            CycleMembership.cycle_id == cycle.id,
        )
    ).scalars().first()
    if membership is None:
        membership = CycleMembership(collaborator_id=collaborator.id, cycle_id=cycle.id)
        session.add(membership)
        session.flush()
    return membership


def get_or_create_project(session: Session, name: str) -> Project:
    name = _require(name, "project name")
    project = session.execute(select(Project).where(Project.name == name)).scalars().first()
    if project is None:
        project = Project(name=name, status=PROJECT_COMPLETED)
        session.add(project)
        session.flush()
    return project


def ensure_allocation(
    session: Session,
    collaborator: Collaborator,
    project: Project,
    *,
    entry_date: date,
    exit_date: date | None,
) -> tuple[Allocation, bool]:
    """Allocate a collaborator to a project unless already allocated.

    First write wins: an existing allocation keeps its dates. Returns
    ``(allocation, created)``.
    """
    allocation = session.execute(
        select(Allocation).where(
            Allocation.collaborator_id == collaborator.id,
            Allocation.project_id == project.id,
        )
    ).scalars().first()
    if allocation is not None:
        return allocation, False
    allocation = Allocation(
        collaborator_id=collaborator.id,
        project_id=project.id,
        entry_date=entry_date,
        exit_date=exit_date,
    )
    session.add(allocation)
    session.flush()
    return allocation, True


def upsert_pairing(
    session: Session,
    *,
    evaluator: Collaborator,
    evaluated: Collaborator,
    cycle: EvaluationCycle,
    project: Project,
    days: int,
) -> Pairing:
    """Record that *evaluator* worked with *evaluated* in *cycle*.

    Keyed by the ordered triple, so (A, B) and (B, A) are distinct rows. A
    repeated triple overwrites project and day count.
    """
    pairing = session.execute(
        select(Pairing).where(
            Pairing.collaborator_a_id == evaluator.id,
            Pairing.collaborator_b_id == evaluated.id,
            Pairing.cycle_id == cycle.id,
        )
    ).scalars().first()
    if pairing is None:
        pairing = Pairing(
            collaborator_a_id=evaluator.id,
            collaborator_b_id=evaluated.id,
            cycle_id=cycle.id,
            project_id=project.id,
            days_worked_together=days,
        )
        session.add(pairing)
    else:
        pairing.project_id = project.id
        pairing.days_worked_together = days
    session.flush()
    return pairing


def find_criterion(session: Session, name: str) -> Criterion | None:
    return session.execute(select(Criterion).where(Criterion.name == name)).scalars().first()
