from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler
from typer.testing import CliRunner

from conftest import SELF_HEADERS, profile_sheet
from intake.cli import app
from intake.config import get_settings
from intake.db import session_scope
from intake.models import Equalization, EvaluationCycle, SelfAssessmentCard


def _cli_handlers() -> list[logging.Handler]:
    return [
        h for h in logging.getLogger().handlers
        if isinstance(h, RichHandler) or type(h) is logging.StreamHandler
    ]


def _reset_root_logging() -> None:
    root = logging.getLogger()
    for handler in _cli_handlers():
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():
    # the CLI binds root handlers to the runner's stream, which is closed after invoke
    yield
    _reset_root_logging()


def _invoke(tmp_path, *args: str):
    runner = CliRunner()
    try:
        return runner.invoke(app, ["--project-root", str(tmp_path), *args])
    finally:
        get_settings.cache_clear()


def test_init_db_command(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    result = _invoke(tmp_path, "--json", "init-db", "--db-url", db_url)

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "ok"
    assert (tmp_path / "cli.db").exists()


def test_import_then_cycle_summary(tmp_path, monkeypatch, make_workbook) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    path = make_workbook({
        "Perfil": profile_sheet(email="a@x.com", name="Ana Souza"),
        "Autoavaliação": [SELF_HEADERS, ["Organização", "4", "Sempre organizada"], ["Qualidade", "5", "ok"]],
    })

    result = _invoke(tmp_path, "--json", "import", str(path), "--db-url", db_url)

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["files_total"] == 1
    assert payload["files_succeeded"] == 1
    assert payload["self_cards_created"] == 2
    assert payload["outcomes"][0]["collaborator_email"] == "a@x.com"

    with session_scope(db_url) as session:
        assert session.query(SelfAssessmentCard).count() == 2
        cycle = session.query(EvaluationCycle).filter_by(name="2024.1").one()
        cycle_id = cycle.id
        subject_id = cycle.memberships[0].collaborator_id
        session.add(Equalization(cycle_id=cycle_id, subject_id=subject_id, adjusted_score=4.25, justification="ok"))

    result = _invoke(tmp_path, "--json", "cycle-summary", "--cycle-id", str(cycle_id), "--db-url", db_url)

    assert result.exit_code == 0
    summary = json.loads(result.stdout)
    assert summary["name"] == "2024.1"
    assert summary["start_date"] == "2024-01-01"
    assert summary["participants"] == 1
    assert summary["assessments_total"] == 1
    assert summary["report_filename"] == f"report_cycle_{cycle_id}.xlsx"
    assert summary["collaborators"] == [{
        "full_name": "Ana Souza",
        "email": "a@x.com",
        "committee_score": 4.25,
        "committee_justification": "ok",
    }]


def test_import_aliases_file_is_applied(tmp_path, monkeypatch, make_workbook) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "criteria_aliases.yaml").write_text(
        "aliases:\n  Pontualidade: Atender aos prazos\n", encoding="utf-8",
    )
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    path = make_workbook({
        "Perfil": profile_sheet(),
        "Autoavaliação": [SELF_HEADERS, ["Pontualidade", "3", "sempre no horário"]],
    })

    result = _invoke(tmp_path, "--json", "import", str(path), "--db-url", db_url)

    assert result.exit_code == 0
    with session_scope(db_url) as session:
        cards = session.query(SelfAssessmentCard).all()
        assert [c.criterion_name for c in cards] == ["Atender aos prazos"]


def test_import_rich_output(tmp_path, monkeypatch, make_workbook) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    path = make_workbook({"Perfil": profile_sheet()}, name="perfil_ana.xlsx")

    result = _invoke(tmp_path, "import", str(path), "--db-url", db_url)

    assert result.exit_code == 0
    assert "files_succeeded" in result.stdout


def test_import_missing_path_exits_with_error(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    result = _invoke(tmp_path, "import", str(tmp_path / "nope.xlsx"), "--db-url", db_url)

    assert result.exit_code == 1


def test_cycle_summary_unknown_cycle(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    result = _invoke(tmp_path, "--json", "cycle-summary", "--cycle-id", "42", "--db-url", db_url)

    assert result.exit_code != 0


def test_log_handlers_released_after_invoke(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    result = _invoke(tmp_path, "--json", "-v", "init-db", "--db-url", db_url)
    assert result.exit_code == 0
    assert _cli_handlers()

    _reset_root_logging()
    assert _cli_handlers() == []
    logging.getLogger("intake").warning("after the runner closed its streams")
    assert "Logging error" not in capsys.readouterr().err


def test_cycle_summary_rich_output(tmp_path, monkeypatch, make_workbook) -> None:
    monkeypatch.setenv("INTAKE_HOME", str(tmp_path))
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    path = make_workbook({"Perfil": profile_sheet(email="a@x.com", name="Ana")})
    assert _invoke(tmp_path, "--json", "import", str(path), "--db-url", db_url).exit_code == 0
    with session_scope(db_url) as session:
        cycle_id = session.query(EvaluationCycle).filter_by(name="2024.1").one().id

    result = _invoke(tmp_path, "cycle-summary", "--cycle-id", str(cycle_id), "--db-url", db_url)

    assert result.exit_code == 0
    assert "participants" in result.stdout
    assert "collaborators" in result.stdout
    assert "a@x.com" in result.stdout
