"""
Environment + project-root helpers.

Developers often keep local overrides (log level, a self-hosted geosearch mirror)
in a repo-local `.env` file. Running the CLI or tests from different working
directories should still pick it up.

This module provides:
- `load_dotenv_if_present()`: `.env` loading that never overrides existing env vars
- `get_project_root()`: find the repo root (prefers `.env` / `.git`, falls back to `pyproject.toml`)
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


def _iter_parents(start: Path) -> list[Path]:
    start = start.resolve()
    return [start, *list(start.parents)]


def _looks_like_project_root(path: Path) -> bool:
    if (path / ".env").is_file():
        return True
    if (path / ".git").exists():
        return True
    return (path / "src").is_dir() and (path / "pyproject.toml").is_file()


@lru_cache
def get_project_root() -> Path:
    """Return the best-guess project root directory (cached)."""
    override = os.getenv("SIGHTSPOTTER_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    # If the user points directly to an env file, treat its parent as root.
    env_file = os.getenv("SIGHTSPOTTER_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    for candidate in _iter_parents(Path.cwd()):
        if _looks_like_project_root(candidate):
            return candidate

    return Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once if present; returns the loaded env path (or None)."""
    explicit = os.getenv("SIGHTSPOTTER_ENV_FILE")
    if explicit:
        env_path = Path(explicit).expanduser().resolve()
        if env_path.is_file():
            load_dotenv(dotenv_path=env_path, override=False)
            return env_path
        return None

    env_path = get_project_root() / ".env"
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path, override=False)
        return env_path
    return None
