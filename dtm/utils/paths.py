"""Mapping between browser-style URL paths and files under the project root.

Token sources are addressed the way the editor sees them, e.g.
``/tokens/global/alias/colors.json``. These helpers turn such paths into
absolute filesystem paths (refusing anything that escapes the root) and back.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dtm.errors import PathTraversalError


def resolve_url_path(project_root: Path, url_path: str) -> Optional[Path]:
    """Resolve a URL path to an absolute path inside ``project_root``.

    The leading slash is always stripped: these are URL paths, never
    filesystem-absolute ones. Returns ``None`` for empty input or when the
    resolved path lies outside the root.
    """
    if not url_path:
        return None
    relative = url_path.replace("\\", "/").lstrip("/")
    root = project_root.resolve()
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def require_url_path(project_root: Path, url_path: str) -> Path:
    """Like :func:`resolve_url_path` but raises ``PathTraversalError``."""
    resolved = resolve_url_path(project_root, url_path)
    if resolved is None:
        raise PathTraversalError(
            f'Path "{url_path}" resolves outside the project root. '
            "All token files must be within the project.",
            target_path=url_path,
        )
    return resolved


def to_url_path(project_root: Path, absolute: Path) -> str:
    """Inverse of :func:`resolve_url_path`: ``/tokens/global/x.json``."""
    relative = absolute.resolve().relative_to(project_root.resolve())
    return "/" + relative.as_posix()


def is_within(path: Path, directory: Path) -> bool:
    path = path.resolve()
    directory = directory.resolve()
    return path == directory or directory in path.parents
