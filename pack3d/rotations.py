"""Axis-aligned rotations and per-rotation bounding boxes.

Every object may take one of the 24 proper rotations that map the coordinate
axes onto themselves. Because these rotations keep boxes axis-aligned, the
AABB of a rotated mesh can be precomputed once per rotation, which is what
the annealing kernel uses as its overlap test.
"""

from __future__ import annotations

import itertools

import numpy as np


def axis_rotations() -> np.ndarray:
    """Return the `(24, 3, 3)` proper signed-permutation matrices, identity first."""
    mats = []
    for perm in itertools.permutations(range(3)):
        for signs in itertools.product((1.0, -1.0), repeat=3):
            m = np.zeros((3, 3), dtype=float)
            for row, (col, sign) in enumerate(zip(perm, signs)):
                m[row, col] = sign
            if np.linalg.det(m) > 0.0:
                mats.append(m)
    return np.stack(mats)


ROTATIONS = axis_rotations()
N_ROTATIONS = int(ROTATIONS.shape[0])


def rotated_bounds(vertices: np.ndarray) -> np.ndarray:
    """Precompute local AABBs of `vertices` under every axis rotation.

    Args:
        vertices: `(V, 3)` vertex positions in the object's local frame.

    Returns:
        `(24, 6)` array; row `r` is `[min_x, min_y, min_z, max_x, max_y, max_z]`
        for rotation `ROTATIONS[r]`.
    """
    vertices = np.asarray(vertices, dtype=float)
    # (R, V, 3): each rotation applied to every vertex.
    rotated = np.einsum("rij,vj->rvi", ROTATIONS, vertices)
    return np.concatenate([rotated.min(axis=1), rotated.max(axis=1)], axis=1)


def transform_matrix(rotation: int, translation: np.ndarray) -> np.ndarray:
    """Homogeneous `(4, 4)` matrix: rotate by `ROTATIONS[rotation]`, then translate."""
    m = np.eye(4, dtype=float)
    m[:3, :3] = ROTATIONS[int(rotation)]
    m[:3, 3] = np.asarray(translation, dtype=float)
    return m
