from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

"""Environment helper utilities.

Loads a `.env` file from the project root (via `python-dotenv`) so that
settings such as ``PHARMACY_ID`` or ``WHATSAPP_API_TOKEN`` can be kept out of
the shell, and offers typed readers used by the configuration layer.
"""

__all__ = ["load_project_dotenv", "env_str", "env_int", "env_float"]


def _find_project_root(start: Path | None = None) -> Path:
    """Walk upwards until a directory containing `pyproject.toml` is found."""
    current = start or Path(__file__).resolve().parent
    for _ in range(10):
        if (current / "pyproject.toml").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return Path(__file__).resolve().parent


def load_project_dotenv(start: Path | None = None) -> bool:
    """Load the project-level `.env` without overriding the real environment.

    Returns True when a file was found and loaded.
    """
    dotenv_path = _find_project_root(start) / ".env"
    if not dotenv_path.exists():
        return False
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return True


def env_str(name: str, default: str = "") -> str:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from e


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from e
