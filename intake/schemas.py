"""Pydantic result models for imports and cycle reports."""
from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel

FileStatus = Literal["success", "partial", "skipped", "failed"]


class FileOutcome(BaseModel):
    file: str
    status: FileStatus = "success"
    collaborator_email: str | None = None
    cycle_name: str | None = None
    self_rows: int = 0
    self_cards_created: int = 0
    self_assessment_failed: bool = False
    peer_groups: int = 0
    peer_assessments_created: int = 0
    peer_groups_failed: int = 0
    peer_rows_failed: int = 0
    pairings_upserted: int = 0
    allocations_created: int = 0
    nominations_created: int = 0
    nominations_failed: int = 0
    errors: list[str] = []

    def record_error(self, message: str) -> None:
        self.errors.append(message)
        if self.status == "success":
            self.status = "partial"


class RunSummary(BaseModel):
    files_total: int = 0
    files_succeeded: int = 0
    files_partial: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    self_cards_created: int = 0
    peer_assessments_created: int = 0
    nominations_created: int = 0
    nominations_failed: int = 0
    outcomes: list[FileOutcome] = []

    def add(self, outcome: FileOutcome) -> None:
        self.outcomes.append(outcome)
        self.files_total += 1
        if outcome.status == "success":
            self.files_succeeded += 1
        elif outcome.status == "partial":
            self.files_partial += 1
        elif outcome.status == "skipped":
            self.files_skipped += 1
        else:
            self.files_failed += 1
        self.self_cards_created += outcome.self_cards_created
        self.peer_assessments_created += outcome.peer_assessments_created
        self.nominations_created += outcome.nominations_created
        self.nominations_failed += outcome.nominations_failed


class CycleSummary(BaseModel):
    cycle_id: int
    name: str
    start_date: date
    end_date: date
    status: str
    participants: int
    assessments_total: int
    assessments_completed: int


class CollaboratorDetail(BaseModel):
    full_name: str
    email: str
    committee_score: float | None = None
    committee_justification: str | None = None
