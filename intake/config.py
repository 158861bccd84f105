from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from intake.criteria import CriterionRemapper


def _resolve_project_root() -> Path:
    override = os.getenv("INTAKE_HOME", "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return Path.cwd().resolve()


class CyclePolicy(BaseModel):
    """Schedule applied to cycles created from historical imports."""

    default_year: int = 2024
    status: str = "CLOSED"
    start_month: int = 1
    start_day: int = 1
    end_month: int = 3
    end_day: int = 31
    in_progress_days: int = 30
    review_days: int = 30
    equalization_days: int = 30


class Settings(BaseModel):
    project_root: Path = Field(default_factory=_resolve_project_root)
    data_dir: Path = Field(default_factory=lambda: _resolve_project_root() / "data")
    config_dir: Path = Field(default_factory=lambda: _resolve_project_root() / "config")

    database_path: Path = Field(default_factory=lambda: _resolve_project_root() / "data" / "intake.db")

    criteria_aliases_file: Path = Field(
        default_factory=lambda: _resolve_project_root() / "config" / "criteria_aliases.yaml"
    )

    cycle_policy: CyclePolicy = Field(default_factory=CyclePolicy)

    def ensure_directories(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    def load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data

    def load_criteria_aliases(self) -> dict[str, str]:
        raw = self.load_yaml(self.criteria_aliases_file)
        payload = raw.get("aliases", {})
        if not isinstance(payload, dict):
            return {}
        out: dict[str, str] = {}
        for key, value in payload.items():
            if not isinstance(key, str) or not isinstance(value, str):
                continue
            out[key.strip()] = value.strip()
        return out

    def criterion_remapper(self) -> CriterionRemapper:
        return CriterionRemapper().with_overrides(self.load_criteria_aliases())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_directories()
    return settings
