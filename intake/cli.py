from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Sequence

import typer
from rich.box import ROUNDED
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from intake.config import get_settings
from intake.db import init_db, session_scope
from intake.importer import import_paths
from intake.queries import collaborator_details, cycle_summary, report_filename
from intake.schemas import CollaboratorDetail, FileOutcome

app = typer.Typer(help="Import review-cycle spreadsheets into the evaluation store")
console = Console()
log = logging.getLogger("intake")

STATUS_STYLES = {"success": "green", "partial": "yellow", "skipped": "yellow", "failed": "red"}


def _configure_logging(*, verbose: int, json_output: bool) -> None:
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handlers: list[logging.Handler]
    if json_output:
        handlers = [logging.StreamHandler()]
        fmt = "%(levelname)s: %(message)s"
    else:
        handlers = [RichHandler(console=console, show_time=False, show_path=False, markup=False)]
        fmt = "%(message)s"

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)


@app.callback()
def app_callback(
    ctx: typer.Context,
    project_root: str | None = typer.Option(
        None,
        "--project-root",
        help="Directory containing data/ and config/ (defaults to the working directory).",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON for scripting."),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity."),
) -> None:
    if project_root:
        os.environ["INTAKE_HOME"] = str(Path(project_root).expanduser().resolve())
        get_settings.cache_clear()
    ctx.obj = {"json_output": json_output, "verbose": verbose}
    _configure_logging(verbose=verbose, json_output=json_output)


def _wants_json(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json_output"))


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{value:.2f}"
    return "-" if value is None else str(value)


def _panel_table(title: str, headers: Sequence[str], rows: Iterable[Sequence[str]], *, style: str = "cyan") -> None:
    table = Table(show_header=True, header_style=f"bold {style}", box=ROUNDED)
    first, *rest = headers
    table.add_column(first, style="bold")
    for header in rest:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    console.print(Panel(table, title=title, border_style=style))


def _emit(title: str, payload: dict[str, Any], ctx: typer.Context) -> bool:
    """Print *payload* as JSON, or its scalar fields as a metrics panel. True when JSON was printed."""
    if _wants_json(ctx):
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
        return True
    metrics = [(key, _cell(value)) for key, value in payload.items() if not isinstance(value, (dict, list))]
    _panel_table(title, ("Metric", "Value"), metrics)
    return False


def _outcome_row(outcome: FileOutcome) -> tuple[str, ...]:
    style = STATUS_STYLES.get(outcome.status, "white")
    return (
        Path(outcome.file).name,
        f"[{style}]{outcome.status}[/]",
        f"{outcome.self_cards_created}/{outcome.self_rows}",
        f"{outcome.peer_assessments_created}/{outcome.peer_groups}",
        f"{outcome.nominations_created} (+{outcome.nominations_failed} failed)",
        str(len(outcome.errors)),
    )


def _detail_row(detail: CollaboratorDetail) -> tuple[str, ...]:
    return (
        detail.full_name,
        detail.email,
        _cell(detail.committee_score),
        detail.committee_justification or "-",
    )


@app.command("init-db")
def init_db_command(
    ctx: typer.Context,
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    init_db(db_url)
    _emit("init-db", {"status": "ok", "database_url_override": db_url}, ctx)


@app.command("import")
def import_command(
    ctx: typer.Context,
    paths: list[Path] = typer.Argument(..., help="Workbooks or directories of .xlsx workbooks."),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    settings = get_settings()
    try:
        summary = import_paths(
            paths,
            db_url=db_url,
            remapper=settings.criterion_remapper(),
            policy=settings.cycle_policy,
        )
    except Exception as exc:
        log.exception("Import run aborted")
        if _wants_json(ctx):
            typer.echo(json.dumps({"status": "error", "error": str(exc)}, indent=2, ensure_ascii=False))
        else:
            console.print(Panel(f"[red]{exc}[/red]", title="import failed", border_style="red"))
        logging.shutdown()
        raise typer.Exit(code=1) from exc

    if not _emit("import", summary.model_dump(mode="json"), ctx) and summary.outcomes:
        _panel_table(
            "files",
            ("File", "Status", "Cards", "360", "Nominations", "Errors"),
            (_outcome_row(o) for o in summary.outcomes),
            style="green",
        )


@app.command("cycle-summary")
def cycle_summary_command(
    ctx: typer.Context,
    cycle_id: int = typer.Option(..., help="Cycle ID."),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    init_db(db_url)
    try:
        with session_scope(db_url) as session:
            summary = cycle_summary(session, cycle_id)
            details = collaborator_details(session, cycle_id)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    payload = summary.model_dump(mode="json")
    payload["report_filename"] = report_filename(cycle_id)
    payload["collaborators"] = [d.model_dump(mode="json") for d in details]
    if not _emit("cycle-summary", payload, ctx) and details:
        _panel_table(
            "collaborators",
            ("Name", "Email", "Committee score", "Justification"),
            (_detail_row(d) for d in details),
        )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
