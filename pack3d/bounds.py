"""JAX axis-aligned box helpers for packed instances.

Boxes are `(6,)` rows `[min_x, min_y, min_z, max_x, max_y, max_z]`. The
annealing kernel uses them both as its overlap test and to score a packing.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from .constants import EPS


def boxes_for_instances(positions: jax.Array, rotations: jax.Array, bounds_table: jax.Array) -> jax.Array:
    """World-space AABBs `(N, 6)` for instances at `positions` `(N, 3)` and rotation ids `(N,)`.

    `bounds_table` is `(N, R, 6)`: local AABBs per instance and rotation.
    """
    local = bounds_table[jnp.arange(positions.shape[0]), rotations]
    return local + jnp.concatenate([positions, positions], axis=1)


def box_overlaps(box: jax.Array, boxes: jax.Array) -> jax.Array:
    """Return `(N,)` booleans: does `box` strictly overlap each row of `boxes`.

    Touching faces (within `EPS`) do not count as overlap.
    """
    return jnp.all(box[3:] - boxes[:, :3] > EPS, axis=1) & jnp.all(boxes[:, 3:] - box[:3] > EPS, axis=1)


def packing_bbox(boxes: jax.Array) -> jax.Array:
    """Global AABB `(6,)` enclosing every box."""
    return jnp.concatenate([jnp.min(boxes[:, :3], axis=0), jnp.max(boxes[:, 3:], axis=0)])


def packing_energy(boxes: jax.Array, item_volume: jax.Array | float) -> jax.Array:
    """Global AABB volume divided by the summed instance volume (1.0 is a perfect fill)."""
    bbox = packing_bbox(boxes)
    return jnp.prod(bbox[3:] - bbox[:3]) / item_volume
