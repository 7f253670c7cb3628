"""Packing engine contract and the reference JAX annealing engine.

The search loop in `pack3d.search` only talks to the `PackingEngine`
protocol, so any optimizer exposing these five operations can be plugged in
(tests use a scripted stub). `AnnealingEngine` is the implementation the CLI
uses: instances are packed by their axis-aligned bounds under the 24 axis
rotations.
"""

from __future__ import annotations

import math
from typing import Any, Protocol, Sequence

import jax
import jax.numpy as jnp
import numpy as np
import trimesh

from .constants import MIN_THICKNESS, THICKNESS_FLOOR
from .objects import ObjectDescriptor
from .optimizer import run_anneal
from .rotations import N_ROTATIONS, rotated_bounds, transform_matrix


def pad_thin_axes(tables: np.ndarray, thickness: float) -> np.ndarray:
    """Widen every box axis thinner than `thickness` symmetrically about its center.

    Planar meshes otherwise have zero volume and never collide with anything.
    """
    lo, hi = tables[..., :3], tables[..., 3:]
    pad = np.maximum(thickness - (hi - lo), 0.0) * 0.5
    return np.concatenate([lo - pad, hi + pad], axis=-1)


class PackingEngine(Protocol):
    """Operations the search loop needs from a placement optimizer."""

    def configure(self, objects: Sequence[ObjectDescriptor], deviation: float) -> None:
        """Set up instances for every descriptor and place them in a random initial layout."""

    def run_annealing(self, iterations: int) -> None:
        """Run a bounded number of perturb/evaluate/accept steps in place."""

    def energy(self) -> float:
        """Compactness of the current placement; lower is better."""

    def snapshot(self) -> Any:
        """Exportable geometry of the current placement, detached from later moves."""

    def reset(self) -> None:
        """Discard the placement and start over from a fresh random layout."""


class AnnealingEngine:
    """Reference engine: JAX simulated annealing over per-instance bounding boxes.

    Args:
        seed: Seed for the host RNG driving layouts and JAX keys (None = OS entropy).
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)
        self._objects: list[ObjectDescriptor] = []
        self._deviation = 0.0
        self._owner = np.zeros((0,), dtype=np.int64)
        self._bounds = np.zeros((0, N_ROTATIONS, 6), dtype=np.float32)
        self._allowed = np.zeros((0,), dtype=bool)
        self._item_volume = 0.0
        self._cell = 0.0
        self._positions: np.ndarray | None = None
        self._rotations: np.ndarray | None = None
        self._energy = math.inf

    @property
    def deviation(self) -> float:
        return self._deviation

    @property
    def instance_count(self) -> int:
        return int(self._owner.shape[0])

    def configure(self, objects: Sequence[ObjectDescriptor], deviation: float) -> None:
        if not objects:
            raise ValueError("configure() needs at least one object")
        self._objects = list(objects)
        self._deviation = float(deviation)

        tables = np.stack([rotated_bounds(np.asarray(obj.geometry.vertices)) for obj in self._objects])
        largest = float(np.max(tables[:, :, 3:] - tables[:, :, :3]))
        tables = pad_thin_axes(tables, max(largest * THICKNESS_FLOOR, MIN_THICKNESS))
        counts = [int(obj.count) for obj in self._objects]
        self._owner = np.repeat(np.arange(len(self._objects)), counts)
        self._bounds = tables[self._owner].astype(np.float32)
        self._allowed = np.array([self._objects[j].rotation_allowed for j in self._owner], dtype=bool)

        extents = tables[:, :, 3:] - tables[:, :, :3]
        # Box volume does not depend on the axis rotation; row 0 is identity.
        self._item_volume = float(np.sum(np.prod(extents[self._owner, 0], axis=1)))
        # Slight slack so float32 rounding never makes grid neighbours overlap.
        self._cell = float(np.max(extents)) * (1.0 + 1e-3)
        self.reset()

    def reset(self) -> None:
        self._require_configured()
        self._positions, self._rotations = self._random_layout()
        self._energy = self._current_energy()

    def run_annealing(self, iterations: int) -> None:
        self._require_configured()
        iterations = int(iterations)
        if iterations <= 0:
            return
        key = jax.random.PRNGKey(int(self._rng.integers(0, 2**31 - 1)))
        best_pos, best_rot, best_energy = run_anneal(
            key,
            iterations,
            jnp.asarray(self._positions, dtype=jnp.float32),
            jnp.asarray(self._rotations, dtype=jnp.int32),
            jnp.asarray(self._bounds),
            jnp.asarray(self._allowed),
            deviation=self._deviation,
            item_volume=self._item_volume,
        )
        self._positions = np.asarray(best_pos, dtype=np.float32)
        self._rotations = np.asarray(best_rot, dtype=np.int32)
        self._energy = float(best_energy)

    def energy(self) -> float:
        return self._energy

    def snapshot(self) -> trimesh.Trimesh:
        self._require_configured()
        parts = []
        for j, pos, rot in zip(self._owner, self._positions, self._rotations):
            part = self._objects[int(j)].geometry.copy()
            part.apply_transform(transform_matrix(int(rot), pos))
            parts.append(part)
        return trimesh.util.concatenate(parts)

    def instance_boxes(self) -> np.ndarray:
        """World-space AABBs `(N, 6)` of the current placement."""
        self._require_configured()
        local = self._bounds[np.arange(self.instance_count), self._rotations]
        return local + np.concatenate([self._positions, self._positions], axis=1)

    def rotations(self) -> np.ndarray:
        """Current rotation ids `(N,)`."""
        self._require_configured()
        return np.array(self._rotations, copy=True)

    def _require_configured(self) -> None:
        if not self._objects:
            raise RuntimeError("engine is not configured; call configure() first")

    def _random_layout(self) -> tuple[np.ndarray, np.ndarray]:
        """Shuffle instances onto a cubic grid whose cells fit any instance in any rotation."""
        n = self.instance_count
        side = 1
        while side**3 < n:
            side += 1
        slots = self._rng.permutation(side**3)[:n]
        cells = np.stack(np.unravel_index(slots, (side, side, side)), axis=1).astype(float)
        positions = (cells - (side - 1) * 0.5) * self._cell

        rotations = self._rng.integers(0, N_ROTATIONS, size=n)
        rotations = np.where(self._allowed, rotations, 0)
        return positions.astype(np.float32), rotations.astype(np.int32)

    def _current_energy(self) -> float:
        boxes = self.instance_boxes()
        extent = np.max(boxes[:, 3:], axis=0) - np.min(boxes[:, :3], axis=0)
        return float(np.prod(extent) / self._item_volume)
