from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _getenv_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def _normalize_log_level(raw: str | None) -> str:
    value = (raw or "INFO").strip().upper()
    return value if value in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO"


@dataclass(frozen=True)
class Settings:
    partition_size: int
    max_workers: int
    key_separator: str
    null_label: str
    data_root: str
    log_level: str


settings = Settings(
    partition_size=_getenv_int("PIVOT_PARTITION_SIZE", 50_000),
    max_workers=_getenv_int("PIVOT_MAX_WORKERS", 1),
    key_separator=os.getenv("PIVOT_KEY_SEPARATOR", "_"),
    null_label=os.getenv("PIVOT_NULL_LABEL", "null"),
    data_root=os.getenv("PIVOT_DATA_ROOT", "."),
    log_level=_normalize_log_level(os.getenv("LOG_LEVEL")),
)

_RUNTIME_OVERRIDES: dict[str, Any] = {}


def get_settings() -> Settings:
    if not _RUNTIME_OVERRIDES:
        return settings
    base = settings
    return Settings(
        partition_size=_RUNTIME_OVERRIDES.get("partition_size", base.partition_size),
        max_workers=_RUNTIME_OVERRIDES.get("max_workers", base.max_workers),
        key_separator=_RUNTIME_OVERRIDES.get("key_separator", base.key_separator),
        null_label=_RUNTIME_OVERRIDES.get("null_label", base.null_label),
        data_root=_RUNTIME_OVERRIDES.get("data_root", base.data_root),
        log_level=_RUNTIME_OVERRIDES.get("log_level", base.log_level),
    )


def update_settings(overrides: dict[str, Any]) -> Settings:
    normalized: dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "log_level":
            normalized[key] = _normalize_log_level(str(value))
        elif key in {"partition_size", "max_workers"}:
            normalized[key] = max(1, int(value))
        else:
            normalized[key] = str(value)
    _RUNTIME_OVERRIDES.update(normalized)
    return get_settings()


def reset_settings() -> Settings:
    _RUNTIME_OVERRIDES.clear()
    return settings
