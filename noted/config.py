from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .db import DEFAULT_DB_PATH

DEFAULT_CONFIG_PATH = Path("~/.config/noted/config.json").expanduser()
DEFAULT_EMBEDDING_MODEL = "BAAI/bge-small-en-v1.5"

CONFIG_ENV_OVERRIDES = {
    "db_path": "NOTED_DB",
    "embedding_disabled": "NOTED_EMBEDDING_DISABLED",
    "embedding_model": "NOTED_EMBEDDING_MODEL",
    "embedding_dims": "NOTED_EMBEDDING_DIMS",
    "recall_limit": "NOTED_RECALL_LIMIT",
    "log_level": "NOTED_LOG_LEVEL",
}

_INT_KEYS = {"embedding_dims", "recall_limit"}
_BOOL_KEYS = {"embedding_disabled"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("NOTED_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class NotedConfig:
    db_path: str = str(DEFAULT_DB_PATH)
    embedding_disabled: bool = False
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dims: int = 384
    recall_limit: int = 5
    log_level: str = "WARNING"


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> NotedConfig:
    cfg = NotedConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    return _apply_dict(cfg, get_env_overrides())


def _apply_dict(cfg: NotedConfig, data: dict[str, Any]) -> NotedConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _BOOL_KEYS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if value is not None:
            setattr(cfg, key, str(value))
    return cfg
