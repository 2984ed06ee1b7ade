"""
Environment + project-root helpers.

The Google Maps key usually lives in a repo-local `.env`, and the quota counter file is
configured as a relative path. Both must resolve the same way whether the API, the CLI
or the tests are started, regardless of the working directory.

- `load_dotenv_if_present()`: load `.env` once per process (existing env vars win)
- `get_project_root()`: `FAIRMEET_PROJECT_ROOT`, else the nearest directory with a `.env`,
  `.git` or `pyproject.toml` + `src/`
- `resolve_project_path()`: anchor relative paths at the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ROOT_ENV = "FAIRMEET_PROJECT_ROOT"
ENV_FILE_ENV = "FAIRMEET_ENV_FILE"


def _is_project_root(path: Path) -> bool:
    return (
        (path / ".env").is_file()
        or (path / ".git").exists()
        or ((path / "pyproject.toml").is_file() and (path / "src").is_dir())
    )


def _search_up(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if _is_project_root(candidate):
            return candidate
    return None


def _explicit_env_file() -> Path | None:
    value = os.getenv(ENV_FILE_ENV)
    return Path(value).expanduser().resolve() if value else None


@lru_cache
def get_project_root() -> Path:
    """Return the best-guess project root directory (cached)."""
    override = os.getenv(ROOT_ENV)
    if override:
        return Path(override).expanduser().resolve()

    env_file = _explicit_env_file()
    if env_file is not None:
        return env_file.parent

    # cwd first, then the installed package location (editable installs live in the repo)
    return _search_up(Path.cwd()) or _search_up(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once; returns the file that was loaded, if any."""
    env_path = _explicit_env_file() or get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
