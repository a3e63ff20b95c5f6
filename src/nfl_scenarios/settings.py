from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class AppSettings:
    """Application configuration sourced from environment variables."""

    season: Optional[int]
    data_root: Path
    log_level: str
    scenario_max_evaluations: int
    scenario_time_limit: float
    espn_cache_ttl: float

    @property
    def games_dir(self) -> Path:
        return self.data_root / "games" / str(self.season or "current")

    @property
    def games_path(self) -> Path:
        return self.games_dir / "games.csv"

    @property
    def playoff_games_path(self) -> Path:
        return self.games_dir / "playoff_games.csv"


def _coerce_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Expected integer-compatible value, got: {value!r}") from None


def _coerce_float(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Expected numeric value, got: {value!r}") from None


@lru_cache(maxsize=1)
def get_settings(env_path: Optional[Path | str] = None) -> AppSettings:
    """Load settings from `.env` (if present) and environment variables."""

    env_file = Path(env_path) if env_path else Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    data_root = Path(os.getenv("DATA_ROOT", "./data")).resolve()
    max_evaluations = _coerce_int(os.getenv("SCENARIO_MAX_EVALUATIONS"))

    return AppSettings(
        season=_coerce_int(os.getenv("NFL_SEASON")),
        data_root=data_root,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        scenario_max_evaluations=max_evaluations if max_evaluations is not None else 20000,
        scenario_time_limit=_coerce_float(os.getenv("SCENARIO_TIME_LIMIT"), 0.5),
        espn_cache_ttl=_coerce_float(os.getenv("ESPN_CACHE_TTL"), 60.0),
    )


def reset_settings_cache() -> None:
    """Clear cached settings; useful for tests."""

    get_settings.cache_clear()  # type: ignore[attr-defined]
