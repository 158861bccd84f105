"""Workbook import pipeline.

One workbook is processed start to finish in a fixed phase order:
profile -> cycle -> self assessment -> 360 assessments -> reference
nominations. Plain upserts are committed as they go; each assessment is
written in its own :func:`intake.db.atomic` scope. A bad row costs that row,
a failed assessment costs that assessment, and only a missing profile or
cycle costs the whole file.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Iterable, Sequence

from sqlalchemy.orm import Session

from intake import columns
from intake.aggregate import aggregate_peer_rows, group_by_key, parse_days, parse_int
from intake.config import CyclePolicy
from intake.criteria import CriterionRemapper
from intake.db import atomic, init_db, session_scope
from intake.models import (
    ASSESSMENT_COMPLETED,
    ASSESSMENT_PEER,
    ASSESSMENT_SELF,
    NOMINATION_GENERAL,
    Assessment,
    Collaborator,
    EvaluationCycle,
    PeerAssessmentSummary,
    ReferenceNomination,
    SelfAssessmentCard,
)
from intake.reader import Row, extract_rows, open_workbook
from intake.schemas import FileOutcome, RunSummary
from intake.store import (
    ensure_allocation,
    ensure_membership,
    ensure_placeholder_collaborator,
    find_criterion,
    get_or_create_cycle,
    get_or_create_project,
    upsert_collaborator,
    upsert_pairing,
)
from intake.utils import clean_text

log = logging.getLogger(__name__)

NO_JUSTIFICATION = "No justification provided."
EVALUATED_LABEL = "Evaluated"
NOMINEE_LABEL = "Nominee"


class MissingFieldError(ValueError):
    """A field the whole file depends on (profile identity, cycle name) is absent."""


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def _import_profile(
    session: Session, rows: Sequence[Row], policy: CyclePolicy,
) -> tuple[Collaborator, EvaluationCycle]:
    if not rows:
        raise MissingFieldError(f"Sheet '{columns.PROFILE_SHEET}' is missing or empty")
    profile = rows[0]
    email = clean_text(columns.resolve_column(profile, *columns.PROFILE_EMAIL))
    full_name = clean_text(columns.resolve_column(profile, *columns.PROFILE_NAME))
    unit = clean_text(columns.resolve_column(profile, *columns.PROFILE_UNIT))
    missing = [label for label, value in (("Email", email), ("Name", full_name), ("Unit", unit)) if not value]
    if missing:
        raise MissingFieldError(f"Profile is missing required fields: {', '.join(missing)}")
    collaborator = upsert_collaborator(session, email=email, full_name=full_name, unit=unit)
    session.commit()

    cycle_name = clean_text(columns.resolve_column(profile, *columns.PROFILE_CYCLE))
    if not cycle_name:
        raise MissingFieldError("Profile is missing the cycle name")
    cycle = get_or_create_cycle(session, cycle_name, policy=policy)
    ensure_membership(session, collaborator, cycle)
    session.commit()
    return collaborator, cycle


def _build_card(session: Session, row: Row, remapper: CriterionRemapper) -> SelfAssessmentCard | None:
    legacy_name = clean_text(columns.resolve_column(row, *columns.SELF_CRITERION))
    raw_score = columns.resolve_column(row, *columns.SELF_SCORE)
    if not legacy_name or clean_text(raw_score) == "":
        log.debug("Self-assessment row without criterion or score skipped: %s", row)
        return None

    score = parse_int(raw_score)
    if score is None:
        log.warning("Invalid score (%r) for criterion %r; card not created", raw_score, legacy_name)
        return None

    current_name = remapper.remap(legacy_name)
    if current_name is None:
        log.warning("Legacy criterion %r has no mapping; card not created", legacy_name)
        return None

    criterion = find_criterion(session, current_name)
    if criterion is None:
        log.warning(
            "Criterion %r (mapped from %r) not found in catalogue; card not created",
            current_name, legacy_name,
        )
        return None

    justification = clean_text(columns.resolve_column(row, *columns.SELF_JUSTIFICATION))
    return SelfAssessmentCard(
        criterion_name=criterion.name,
        score=score,
        justification=justification or NO_JUSTIFICATION,
    )


def _import_self_assessment(
    session: Session,
    rows: Sequence[Row],
    *,
    collaborator: Collaborator,
    cycle: EvaluationCycle,
    remapper: CriterionRemapper,
    outcome: FileOutcome,
) -> None:
    outcome.self_rows = len(rows)
    created = 0
    try:
        with atomic(session):
            assessment = Assessment(
                cycle_id=cycle.id,
                subject_id=collaborator.id,
                author_id=collaborator.id,
                kind=ASSESSMENT_SELF,
                status=ASSESSMENT_COMPLETED,
            )
            session.add(assessment)
            session.flush()
            for row in rows:
                card = _build_card(session, row, remapper)
                if card is None:
                    continue
                card.assessment_id = assessment.id
                session.add(card)
                created += 1
            session.flush()
    except Exception as exc:
        log.exception("Self assessment for %s failed; transaction rolled back", collaborator.email)
        outcome.self_assessment_failed = True
        outcome.record_error(f"self assessment: {exc}")
        return
    outcome.self_cards_created = created
    log.info("Self assessment imported with %d of %d rows", created, len(rows))


def _reconcile_peer_row(
    session: Session,
    row: Row,
    *,
    evaluator: Collaborator,
    evaluated: Collaborator,
    cycle: EvaluationCycle,
) -> tuple[int, int]:
    """Project, allocations and pairing for one 360 row. Returns (pairings, allocations) written."""
    project_name = clean_text(columns.resolve_column(row, *columns.PEER_PROJECT))
    if not project_name:
        log.debug("360 row for %s has no project; pairing skipped", evaluated.email)
        return 0, 0
    days = parse_days(columns.resolve_column(row, *columns.PEER_PERIOD))
    project = get_or_create_project(session, project_name)

    allocations = 0
    for person in (evaluator, evaluated):
        _, created = ensure_allocation(
            session, person, project, entry_date=cycle.start_date, exit_date=cycle.end_date,
        )
        allocations += int(created)
    upsert_pairing(
        session, evaluator=evaluator, evaluated=evaluated, cycle=cycle, project=project, days=days,
    )
    return 1, allocations


def _import_peer_group(
    session: Session,
    email: str,
    rows: Sequence[Row],
    *,
    evaluator: Collaborator,
    cycle: EvaluationCycle,
    outcome: FileOutcome,
) -> None:
    evaluated = ensure_placeholder_collaborator(session, email, label=EVALUATED_LABEL)
    session.commit()

    for row in rows:
        try:
            pairings, allocations = _reconcile_peer_row(
                session, row, evaluator=evaluator, evaluated=evaluated, cycle=cycle,
            )
            session.commit()
        except Exception as exc:
            session.rollback()
            log.warning("360 row for %s skipped: %s", email, exc)
            outcome.peer_rows_failed += 1
            outcome.record_error(f"360 row for {email}: {exc}")
            continue
        outcome.pairings_upserted += pairings
        outcome.allocations_created += allocations

    aggregate = aggregate_peer_rows(rows)
    with atomic(session):
        assessment = Assessment(
            cycle_id=cycle.id,
            subject_id=evaluated.id,
            author_id=evaluator.id,
            kind=ASSESSMENT_PEER,
            status=ASSESSMENT_COMPLETED,
        )
        session.add(assessment)
        session.flush()
        session.add(PeerAssessmentSummary(
            assessment_id=assessment.id,
            overall_score=aggregate.overall_score,
            strengths=aggregate.strengths,
            areas_to_improve=aggregate.areas_to_improve,
            would_work_again=aggregate.would_work_again,
        ))
        session.flush()
    outcome.peer_assessments_created += 1
    log.info("360 assessment for %s imported from %d rows", email, aggregate.rows)


def _import_peer_assessments(
    session: Session,
    rows: Sequence[Row],
    *,
    evaluator: Collaborator,
    cycle: EvaluationCycle,
    outcome: FileOutcome,
) -> None:
    groups = group_by_key(rows, lambda row: columns.resolve_column(row, *columns.PEER_EVALUATED_EMAIL))
    orphans = groups.pop(None, [])
    if orphans:
        log.warning("%d 360 rows without evaluated email ignored", len(orphans))

    for key, group in groups.items():
        email = str(key).strip()
        outcome.peer_groups += 1
        try:
            _import_peer_group(session, email, group, evaluator=evaluator, cycle=cycle, outcome=outcome)
        except Exception as exc:
            session.rollback()
            log.exception("360 assessment for %s failed", email)
            outcome.peer_groups_failed += 1
            outcome.record_error(f"360 assessment for {email}: {exc}")


def _import_references(
    session: Session,
    rows: Sequence[Row],
    *,
    nominator: Collaborator,
    cycle: EvaluationCycle,
    outcome: FileOutcome,
) -> None:
    for row in rows:
        email = clean_text(columns.resolve_column(row, *columns.REFERENCE_EMAIL))
        if not email:
            continue
        justification = clean_text(columns.resolve_column(row, *columns.REFERENCE_JUSTIFICATION))
        try:
            nominee = ensure_placeholder_collaborator(session, email, label=NOMINEE_LABEL)
            session.add(ReferenceNomination(
                cycle_id=cycle.id,
                nominator_id=nominator.id,
                nominee_id=nominee.id,
                type=NOMINATION_GENERAL,
                justification=justification or NO_JUSTIFICATION,
            ))
            session.commit()
        except Exception as exc:
            session.rollback()
            log.error("Failed to create reference nomination for %s: %s", email, exc)
            outcome.nominations_failed += 1
            outcome.record_error(f"reference nomination for {email}: {exc}")
            continue
        outcome.nominations_created += 1
    log.info("%d reference nominations imported", outcome.nominations_created)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def import_workbook(
    session: Session,
    source: str | Path | IO[bytes],
    *,
    remapper: CriterionRemapper | None = None,
    policy: CyclePolicy | None = None,
    label: str | None = None,
) -> FileOutcome:
    """Import one review workbook into the store behind *session*."""
    remapper = remapper or CriterionRemapper()
    policy = policy or CyclePolicy()
    name = label or (str(source) if isinstance(source, (str, Path)) else "<upload>")
    outcome = FileOutcome(file=name)

    with open_workbook(source) as wb:
        profile_rows = extract_rows(wb, columns.PROFILE_SHEET)
        self_rows = extract_rows(wb, columns.SELF_SHEET)
        peer_rows = extract_rows(wb, columns.PEER_SHEET)
        reference_rows = extract_rows(wb, columns.REFERENCE_SHEET)

    try:
        collaborator, cycle = _import_profile(session, profile_rows, policy)
    except MissingFieldError as exc:
        session.rollback()
        log.warning("%s: %s; file skipped", name, exc)
        outcome.status = "skipped"
        outcome.errors.append(str(exc))
        return outcome
    outcome.collaborator_email = collaborator.email
    outcome.cycle_name = cycle.name

    if self_rows:
        _import_self_assessment(
            session, self_rows, collaborator=collaborator, cycle=cycle, remapper=remapper, outcome=outcome,
        )
    if peer_rows:
        _import_peer_assessments(session, peer_rows, evaluator=collaborator, cycle=cycle, outcome=outcome)
    if reference_rows:
        _import_references(session, reference_rows, nominator=collaborator, cycle=cycle, outcome=outcome)

    log.info(
        "%s imported (%s): %d cards, %d peer assessments, %d nominations",
        name, outcome.status, outcome.self_cards_created,
        outcome.peer_assessments_created, outcome.nominations_created,
    )
    return outcome


def collect_workbooks(paths: Iterable[str | Path]) -> list[Path]:
    """Expand directories into their .xlsx files. Unknown paths raise ValueError."""
    files: list[Path] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            files.extend(sorted(
                p for p in path.iterdir()
                if p.is_file() and p.suffix.casefold() == ".xlsx" and not p.name.startswith("~$")
            ))
        elif path.is_file():
            files.append(path)
        else:
            raise ValueError(f"Path not found: {path}")
    return files


def import_paths(
    paths: Iterable[str | Path],
    *,
    db_url: str | None = None,
    remapper: CriterionRemapper | None = None,
    policy: CyclePolicy | None = None,
) -> RunSummary:
    """Import every workbook under *paths*, one file at a time.

    A file that blows up is recorded as ``failed`` and the run moves on.
    """
    files = collect_workbooks(paths)
    init_db(db_url)
    summary = RunSummary()
    for path in files:
        log.info("Processing %s", path.name)
        try:
            with session_scope(db_url) as session:
                outcome = import_workbook(session, path, remapper=remapper, policy=policy)
        except Exception as exc:
            log.exception("Import of %s failed", path.name)
            outcome = FileOutcome(file=str(path), status="failed", errors=[str(exc)])
        summary.add(outcome)
    return summary
