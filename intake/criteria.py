"""Criterion catalogue and the legacy-to-current criterion remapping table."""
from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping


class Pillar(StrEnum):
    BEHAVIOR = "BEHAVIOR"
    EXECUTION = "EXECUTION"
    MANAGEMENT = "MANAGEMENT"


CRITERIA_CATALOGUE: Mapping[str, Pillar] = MappingProxyType({
    "Sentimento de Dono": Pillar.BEHAVIOR,
    "Resiliência nas adversidades": Pillar.BEHAVIOR,
    "Organização no Trabalho": Pillar.BEHAVIOR,
    "Capacidade de aprender": Pillar.BEHAVIOR,
    'Ser "team player"': Pillar.BEHAVIOR,
    "Entregar com qualidade": Pillar.EXECUTION,
    "Atender aos prazos": Pillar.EXECUTION,
    "Fazer mais com menos": Pillar.EXECUTION,
    "Pensar fora da caixa": Pillar.EXECUTION,
    "Gente": Pillar.MANAGEMENT,
    "Resultados": Pillar.MANAGEMENT,
    "Evolução da Rocket Corp": Pillar.MANAGEMENT,
})

# Labels used by spreadsheets exported before the current taxonomy.
# Asterisks mark management-track criteria in the old forms.
LEGACY_CRITERIA: Mapping[str, str] = MappingProxyType({
    "Organização": "Organização no Trabalho",
    "Imagem": "Atender aos prazos",
    "Iniciativa": "Sentimento de Dono",
    "Comprometimento": "Resiliência nas adversidades",
    "Flexibilidade": "Resiliência nas adversidades",
    "Aprendizagem Contínua": "Capacidade de aprender",
    "Trabalho em Equipe": 'Ser "team player"',
    "Relacionamento Inter-Pessoal": 'Ser "team player"',
    "Produtividade": "Fazer mais com menos",
    "Qualidade": "Entregar com qualidade",
    "Foco no Cliente": "Entregar com qualidade",
    "Criatividade e Inovação": "Pensar fora da caixa",
    "Gestão de Pessoas*": "Gente",
    "Gestão de Projetos*": "Resultados",
    "Gestão Organizacional*": "Evolução da Rocket Corp",
    "Novos Clientes**": "Evolução da Rocket Corp",
    "Novos Projetos**": "Evolução da Rocket Corp",
    "Novos Produtos ou Serviços**": "Evolução da Rocket Corp",
})


class CriterionRemapper:
    """Immutable lookup from legacy criterion labels to current criterion names.

    The table is closed: a label matches only as written, apart from outer
    whitespace. Extra spellings belong in ``criteria_aliases.yaml``.
    """

    __slots__ = ("_table",)

    def __init__(self, mapping: Mapping[str, str] = LEGACY_CRITERIA) -> None:
        self._table: Mapping[str, str] = MappingProxyType(
            {legacy.strip(): current for legacy, current in mapping.items()}
        )

    def remap(self, legacy_name: object) -> str | None:
        if legacy_name is None:
            return None
        return self._table.get(str(legacy_name).strip())

    def with_overrides(self, overrides: Mapping[str, str]) -> CriterionRemapper:
        """Return a new remapper with *overrides* layered over this table."""
        return CriterionRemapper({**self._table, **overrides})

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, legacy_name: object) -> bool:
        return self.remap(legacy_name) is not None

    def __repr__(self) -> str:
        return f"CriterionRemapper({len(self._table)} labels)"
