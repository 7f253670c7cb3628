"""Writing the packed arrangement to disk.

The output file is replaced atomically: the mesh is exported to a temporary
file next to the target and moved over it with `os.replace`, so a reader
never sees a half-written STL and a failed write leaves the previous
artifact in place.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import trimesh

from .errors import PersistenceError


def _target_mode(path: Path) -> int:
    """Mode of the file being replaced, else 0o666 minus the process umask."""
    try:
        return path.stat().st_mode & 0o777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def save_mesh(path: str | Path, mesh: trimesh.Trimesh) -> Path:
    """Export `mesh` to `path` (format from the suffix, STL by default).

    Returns:
        The resolved output path.

    Raises:
        PersistenceError: If the directory is missing/unwritable or export fails.
    """
    path = Path(path)
    file_type = path.suffix.lstrip(".").lower() or "stl"

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise PersistenceError(f"cannot write {path}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            mesh.export(file_obj=f, file_type=file_type)
        # mkstemp creates 0600; give the artifact the mode a plain open() would.
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise PersistenceError(f"cannot write {path}: {exc}") from exc
    return path.resolve()
