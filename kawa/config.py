from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "KAWA_DATA_DIR"
ENV_LOG_LEVEL = "KAWA_LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "COP"
    log_level: str = "INFO"


def _default_data_dir() -> Path:
    # Not a hard-coded absolute path: uses the user's home directory.
    return Path.home() / ".kawa_backoffice"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> Path:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    # The pointer lives in the default folder so the next start can find it.
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    payload = {"data_dir": str(data_dir)}
    (default_dir / CONFIG_FILE_NAME).write_text(json.dumps(payload, indent=2), encoding="utf-8")

    get_settings.cache_clear()
    return data_dir


@lru_cache
def get_settings() -> Settings:
    # Priority order:
    # 1) Environment variable
    # 2) Persisted settings in default folder
    # 3) Default folder
    if os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
        persisted = {}
    else:
        default_dir = _default_data_dir()
        persisted = _load_persisted_settings(default_dir)
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "kawa.db"
    log_level = os.getenv(ENV_LOG_LEVEL) or persisted.get("log_level", "INFO")
    return Settings(
        data_dir=data_dir,
        db_path=db_path,
        currency=persisted.get("currency", "COP"),
        log_level=str(log_level).upper(),
    )
