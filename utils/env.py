"""Environment helper utilities.

Loads a `.env` file from the project root so that forecast settings such as
``FORECAST_RESERVOIR_SIZE`` or ``FORECAST_SEED`` defined there become visible
to ``config.config.load_forecast_config``. Uses `python-dotenv`.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

__all__ = ["load_project_dotenv"]

_MAX_PARENT_LEVELS = 10


def _find_project_root(start: Path | None = None) -> Path:
    """Walk upwards from `start` to the first directory holding `pyproject.toml`."""
    current = start or Path(__file__).resolve().parent
    for _ in range(_MAX_PARENT_LEVELS):
        if (current / "pyproject.toml").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return Path(__file__).resolve().parent


def load_project_dotenv(start: Path | None = None) -> Path | None:
    """
    Load the project-level `.env` if present, never overriding variables that
    are already set. Returns the path that was loaded, or None.
    """
    dotenv_path = _find_project_root(start) / ".env"
    if not dotenv_path.exists():
        return None
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return dotenv_path
