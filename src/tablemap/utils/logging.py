from pathlib import Path
from importlib import metadata as importlib_metadata
from typing import Any
import tomllib

DISTRIBUTION_NAME = "tablemap"

# --------------------
# Find pyproject.toml
# --------------------


def find_pyproject(start: Path, max_up: int = 5) -> Path | None:
    p = start
    for _ in range(max_up):
        candidate = p / "pyproject.toml"
        if candidate.exists():
            return candidate
        if p.parent == p:
            break
        p = p.parent
    return None


def get_pyproject_value(
    key: str,
    start: str | Path | None = None,
    max_up: int = 5,
    default: Any = None,
) -> Any:
    """
    Return the value for the dot-separated `key` ("project.version") from the
    nearest pyproject.toml above `start` (defaults to this module's folder), or
    `default` if the file is missing, unreadable, or lacks the key.
    """
    start_path = Path(start).resolve() if start is not None else Path(__file__).resolve().parent

    pyproject = find_pyproject(start=start_path, max_up=max_up)
    if not pyproject or not key:
        return default

    try:
        with pyproject.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return default

    cur = data
    for part in key.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        else:
            return default
    return cur


def get_project_name(default: str | None = DISTRIBUTION_NAME, **kwargs) -> str | None:
    return get_pyproject_value("project.name", default=default, **kwargs)


def get_project_version(default: str = "unknown", prefer_installed: bool = True, **kwargs) -> str:
    """
    The installed distribution's version, falling back to project.version of a
    source checkout's pyproject.toml, then to `default`.
    """
    if prefer_installed:
        try:
            return importlib_metadata.version(DISTRIBUTION_NAME)
        except importlib_metadata.PackageNotFoundError:
            pass

    val = get_pyproject_value("project.version", default=None, **kwargs)
    return val if val is not None else default


__all__ = [
    "find_pyproject",
    "get_pyproject_value",
    "get_project_name",
    "get_project_version",
]
