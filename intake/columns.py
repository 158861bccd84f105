"""Sheet names and tolerant header lookup.

Exports from different years spell the same header differently (accents,
double spaces, suffixes such as ``( nome.sobrenome )``, English labels), so
every lookup goes through :func:`resolve_column` instead of literal keys.
"""
from __future__ import annotations

from typing import Callable, Mapping, Union

from intake.reader import CellValue
from intake.utils import fold_text

# A needle is a substring tested against the normalized header, or a
# predicate receiving the normalized header.
Needle = Union[str, Callable[[str], bool]]

PROFILE_SHEET = "Perfil"
SELF_SHEET = "Autoavaliação"
PEER_SHEET = "Avaliação 360"
REFERENCE_SHEET = "Pesquisa de Referências"


def startswith(prefix: str) -> Callable[[str], bool]:
    folded = fold_text(prefix)
    return lambda header: header.startswith(folded)


PROFILE_EMAIL: tuple[Needle, ...] = ("email",)
PROFILE_NAME: tuple[Needle, ...] = ("nome", "name")
PROFILE_UNIT: tuple[Needle, ...] = ("unidade", "unit")
PROFILE_CYCLE: tuple[Needle, ...] = ("ciclo", "cycle")

SELF_CRITERION: tuple[Needle, ...] = ("criterio", "criterion")
# "DADOS E FATOS DA AUTO-AVALIAÇÃO" also contains the score label
SELF_SCORE: tuple[Needle, ...] = (startswith("auto-avaliacao"), startswith("score"))
SELF_JUSTIFICATION: tuple[Needle, ...] = ("dados e fatos da auto-avaliacao", "justificativa", "justification")

PEER_EVALUATED_EMAIL: tuple[Needle, ...] = ("email do avaliado", "evaluated email")
PEER_PROJECT: tuple[Needle, ...] = ("projeto", "project")
PEER_PERIOD: tuple[Needle, ...] = ("periodo", "period")
PEER_SCORE: tuple[Needle, ...] = ("nota geral", "overall score")
PEER_STRENGTHS: tuple[Needle, ...] = ("pontos que faz bem", "strengths")
PEER_IMPROVEMENTS: tuple[Needle, ...] = ("pontos que deve melhorar", "improve")
PEER_WORK_AGAIN: tuple[Needle, ...] = ("trabalhar novamente", "work again")

REFERENCE_EMAIL: tuple[Needle, ...] = ("email da referencia", "reference email")
REFERENCE_JUSTIFICATION: tuple[Needle, ...] = ("justificativa", "justification")


def normalize_header(label: str) -> str:
    return fold_text(label)


def _matcher(needle: Needle) -> Callable[[str], bool] | None:
    if callable(needle):
        return needle
    target = normalize_header(needle)
    if not target:
        return None
    return lambda header: target in header


def find_column(row: Mapping[str, CellValue], needle: Needle) -> str | None:
    """Return the first header in *row* (row key order) matching *needle*."""
    matches = _matcher(needle)
    if matches is None:
        return None
    for key in row:
        if matches(normalize_header(key)):
            return key
    return None


def resolve_column(row: Mapping[str, CellValue], *needles: Needle) -> CellValue:
    """Value of the first column matching any needle, needles tried in order."""
    for needle in needles:
        key = find_column(row, needle)
        if key is not None:
            return row[key]
    return None
