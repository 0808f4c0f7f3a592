"""Ustawienia ze zmiennych środowiskowych (+ opcjonalny plik .env).

Każda zmienna ma prefiks TRACKER_; opcje CLI nadpisują wybór backendu
(patrz api/cli.py).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from dotenv import find_dotenv, load_dotenv

from tracker.domain.enums import DEFAULT_STATUSES, TaskStatus, parse_statuses

ENV_PREFIX = "TRACKER"

Backend = Literal["json", "sql", "memory"]
IdScheme = Literal["sequential", "counter", "uuid"]

BACKENDS = ("json", "sql", "memory")
ID_SCHEMES = ("sequential", "counter", "uuid")


def _k(suffix: str) -> str:
    """Nazwa zmiennej środowiskowej z prefiksem projektu."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    value = _env(name, default).lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of: {', '.join(choices)} (got {value!r})")
    return value


def default_data_dir() -> Path:
    return Path.home() / ".tracker"


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- Magazyn ----
    backend: Backend
    data_file: Path
    db_url: str

    # ---- Domena ----
    statuses: frozenset[TaskStatus]
    id_scheme: IdScheme
    strict_variants: bool

    # ---- Logi ----
    log_level: str
    log_file: Path | None

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.WARNING

    @staticmethod
    def from_env(*, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        data_file = _env_path(_k("DATA_FILE"), default_data_dir() / "tasks.json")
        db_url = _env(_k("DB_URL"), f"sqlite:///{data_file.with_suffix('.db')}")

        raw_statuses = os.getenv(_k("STATUSES"))
        statuses = parse_statuses(raw_statuses) if raw_statuses and raw_statuses.strip() else DEFAULT_STATUSES
        # todo jest statusem domyślnym normalizera, musi być rozpoznawany
        if TaskStatus.TODO not in statuses:
            raise ValueError(f"{_k('STATUSES')} must include 'todo'")

        log_file = os.getenv(_k("LOG_FILE"))

        return Settings(
            backend=_env_choice(_k("BACKEND"), BACKENDS, "json"),  # type: ignore[arg-type]
            data_file=data_file,
            db_url=db_url,
            statuses=statuses,
            id_scheme=_env_choice(_k("ID_SCHEME"), ID_SCHEMES, "sequential"),  # type: ignore[arg-type]
            strict_variants=_env_bool(_k("STRICT_VARIANTS"), False),
            log_level=_env(_k("LOG_LEVEL"), "WARNING"),
            log_file=Path(log_file).expanduser() if log_file and log_file.strip() else None,
        )
