"""
Package version lookup.

An installed distribution reports its own version. A source checkout has no
distribution metadata, so the version is read from the ``pyproject.toml``
next to the package instead.
"""
import importlib.metadata
import pathlib
from typing import Optional

import tomli

DISTRIBUTION = "securenotes-sdk"
UNKNOWN_VERSION = "0.1.0"
PYPROJECT = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def read_pyproject_version(path: pathlib.Path) -> Optional[str]:
    """Return ``project.version`` from a pyproject file, or None if unreadable."""
    try:
        with path.open("rb") as f:
            project = tomli.load(f).get("project")
    except (OSError, tomli.TOMLDecodeError):
        return None
    if not isinstance(project, dict):
        return None
    version = project.get("version")
    return version if isinstance(version, str) else None


def resolve_version(pyproject: pathlib.Path = PYPROJECT) -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return read_pyproject_version(pyproject) or UNKNOWN_VERSION


__version__ = resolve_version()
