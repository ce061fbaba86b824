"""
Environment variable loading for entity_mapping.

- Loads .env from project root when available.
- Typed readers used by settings.get_settings(); empty values fall back to defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

from entity_mapping.core.exceptions import ConfigError

# Project root: config is entity_mapping/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

ENV_PREFIX = "ENTITY_MAPPING_"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def load_entity_mapping_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH, override=False)


def _raw(name: str) -> str | None:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def env_str(name: str, default: str) -> str:
    raw = _raw(name)
    return default if raw is None else raw


def env_int(name: str, default: int) -> int:
    raw = _raw(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(ENV_PREFIX + name, f"expected an integer, got {raw!r}") from None


def env_float(name: str, default: float) -> float:
    raw = _raw(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(ENV_PREFIX + name, f"expected a number, got {raw!r}") from None


def env_bool(name: str, default: bool) -> bool:
    raw = _raw(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(ENV_PREFIX + name, f"expected a boolean, got {raw!r}")


def env_path(name: str) -> Path | None:
    raw = _raw(name)
    return Path(raw) if raw is not None else None
