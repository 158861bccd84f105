from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import openpyxl
import pytest
from sqlalchemy.orm import Session

from intake.db import dispose_engines, get_session_factory, init_db

WorkbookFactory = Callable[..., Path]

PROFILE_HEADERS = ["Email", "Nome ( nome.sobrenome )", "Unidade", "Ciclo (ano.semestre)"]
SELF_HEADERS = ["CRITÉRIO", "AUTO-AVALIAÇÃO", "DADOS E FATOS DA AUTO-AVALIAÇÃO"]
PEER_HEADERS = [
    "EMAIL DO AVALIADO ( nome.sobrenome )",
    "PROJETO EM QUE ATUARAM JUNTOS",
    "PERÍODO",
    "DÊ UMA NOTA GERAL PARA O COLABORADOR",
    "PONTOS QUE FAZ BEM E DEVE EXPLORAR",
    "PONTOS QUE DEVE MELHORAR",
    "VOCÊ FICARIA MOTIVADO EM TRABALHAR NOVAMENTE COM ESTE COLABORADOR",
]
REFERENCE_HEADERS = ["EMAIL DA  REFERÊNCIA ( nome.sobrenome )", "JUSTIFICATIVA"]


@pytest.fixture()
def db_url(tmp_path: Path):
    url = f"sqlite:///{tmp_path / 'intake.db'}"
    init_db(url)
    yield url
    dispose_engines()


@pytest.fixture()
def session(db_url: str):
    sess: Session = get_session_factory(db_url)()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture()
def make_workbook(tmp_path: Path) -> WorkbookFactory:
    """Write an .xlsx file from ``{sheet_name: [header_row, *rows]}``."""
    counter = {"n": 0}

    def _make(sheets: dict[str, list[list[Any]]], name: str | None = None) -> Path:
        counter["n"] += 1
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for sheet_name, rows in sheets.items():
            ws = wb.create_sheet(sheet_name)
            for row in rows:
                ws.append(row)
        path = tmp_path / (name or f"workbook_{counter['n']}.xlsx")
        wb.save(path)
        return path

    return _make


def profile_sheet(email: str = "a@x.com", name: str = "A B", unit: str = "U1", cycle: str = "2024.1") -> list[list[Any]]:
    return [PROFILE_HEADERS, [email, name, unit, cycle]]
