"""Mesh loading and bounding-box helpers (trimesh-based).

Parsing is delegated to `trimesh`; this module only normalizes the result
into a single centered triangle mesh and exposes the bounding-box numbers the
setup phase needs.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import trimesh

from .errors import MeshLoadError


def load_mesh(path: str | Path) -> trimesh.Trimesh:
    """Load a mesh file as one `trimesh.Trimesh`.

    Scenes are flattened into a single mesh.

    Raises:
        MeshLoadError: If the file is missing, unreadable, or contains no triangles.
    """
    path = Path(path)
    if not path.is_file():
        raise MeshLoadError(f"{path}: no such file")
    try:
        mesh = trimesh.load(str(path), force="mesh")
    except Exception as exc:
        raise MeshLoadError(f"{path}: {exc}") from exc
    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise MeshLoadError(f"{path}: no triangles found")
    return mesh


def bounding_box_size(mesh: trimesh.Trimesh) -> np.ndarray:
    """Return the `(3,)` axis-aligned bounding-box extents of `mesh`."""
    bounds = np.asarray(mesh.bounds, dtype=float)
    return bounds[1] - bounds[0]


def bounding_box_volume(mesh: trimesh.Trimesh) -> float:
    """Volume of the axis-aligned bounding box (not the enclosed mesh volume)."""
    return float(np.prod(bounding_box_size(mesh)))


def center_mesh(mesh: trimesh.Trimesh) -> trimesh.Trimesh:
    """Translate `mesh` in place so its bounding box is centered on the origin."""
    bounds = np.asarray(mesh.bounds, dtype=float)
    mesh.apply_translation(-(bounds[0] + bounds[1]) * 0.5)
    return mesh
