"""Attachment confinement: only files inside the project may be uploaded."""

import os
from collections.abc import Iterable
from pathlib import Path


def _real_path(path: Path) -> Path | None:
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError):
        return None


def validate_file_paths(paths: Iterable[str], project_path: Path | None) -> list[str]:
    """Return the candidates that resolve inside the project directory.

    Both sides are compared after symlink resolution. The original candidate
    strings are returned so uploads keep the caller's spelling. Without a
    project path nothing is allowed.
    """
    if project_path is None:
        return []

    project_real = _real_path(project_path) or project_path

    valid: list[str] = []
    for raw in paths:
        if not os.path.exists(raw):
            continue

        real = _real_path(Path(raw))
        if real is None:
            continue

        if real == project_real or project_real in real.parents:
            valid.append(raw)

    return valid
