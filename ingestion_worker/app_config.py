from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


# =========================
# env helpers
# =========================
def _env(key: str, default: str | None = None) -> str | None:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    return v


def _as_int(key: str, default: int, minimum: int | None = None) -> int:
    v = _env(key)
    if v is None:
        return default
    try:
        value = int(str(v).strip())
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _as_float(key: str, default: float) -> float:
    v = _env(key)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _as_delimiter(key: str, default: str = ",") -> str:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    if v in {"\\t", "tab", "TAB"}:
        return "\t"
    # csv only accepts a single-character delimiter
    return v if len(v) == 1 else default


# =========================
# Ingest Config
# =========================
@dataclass(frozen=True)
class IngestConfig:
    """
    Runtime knobs for the CSV worker.

    Everything comes from the environment (``.env`` is loaded by ``bootstrap``);
    bad values fall back to the defaults instead of blocking startup.
    Upload limits and the staging location are Django settings.
    """

    batch_size: int = 100
    max_row_errors: int = 100
    delimiter: str = ","
    max_attempts: int = 3
    time_limit: int = 3600
    retry_backoff: float = 30.0

    @property
    def soft_time_limit(self) -> int:
        # leave the task a moment to record the failure before the hard kill
        return max(1, self.time_limit - min(60, self.time_limit // 10))

    @staticmethod
    def from_env() -> "IngestConfig":
        return IngestConfig(
            batch_size=_as_int("INGEST_BATCH_SIZE", 100, minimum=1),
            max_row_errors=_as_int("INGEST_MAX_ROW_ERRORS", 100, minimum=0),
            delimiter=_as_delimiter("INGEST_CSV_DELIMITER"),
            max_attempts=_as_int("INGEST_MAX_ATTEMPTS", 3, minimum=1),
            time_limit=_as_int("INGEST_TIME_LIMIT", 3600, minimum=1),
            retry_backoff=_as_float("INGEST_RETRY_BACKOFF", 30.0),
        )


# =========================
# bootstrap / singleton
# =========================
PROJECT_ROOT = Path(__file__).resolve().parents[1]


@lru_cache(maxsize=1)
def get_config() -> IngestConfig:
    return IngestConfig.from_env()


def bootstrap(project_root: Path = PROJECT_ROOT) -> IngestConfig:
    """
    Load ``.env`` (without overriding variables already set) and build the cached config.
    """
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)

    return get_config()
