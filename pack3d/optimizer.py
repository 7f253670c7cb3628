"""JAX simulated annealing kernel for the reference packing engine.

Each step moves a single instance: either a Gaussian translation scaled by the
deviation, or (when the instance allows it) a jump to a random axis rotation.
Candidates whose box overlaps another instance are rejected outright; the rest
go through a Metropolis test on the packing energy with a geometric cooling
schedule. The best feasible state seen during the run is returned.
"""

from functools import partial

import jax
import jax.numpy as jnp

from .bounds import box_overlaps, boxes_for_instances, packing_energy
from .constants import ROTATION_MOVE_PROB, T_END, T_START


@partial(jax.jit, static_argnames=["n_steps"])
def run_anneal(
    random_key,
    n_steps,
    positions,
    rotations,
    bounds_table,
    rotation_allowed,
    deviation,
    item_volume,
    t_start=T_START,
    t_end=T_END,
    rotation_prob=ROTATION_MOVE_PROB,
):
    """Run one annealing pass.

    Args:
        random_key: JAX PRNGKey.
        n_steps: Number of SA steps (static; one compilation per value).
        positions: `(N, 3)` instance centers.
        rotations: `(N,)` int32 rotation ids into the bounds table.
        bounds_table: `(N, R, 6)` local AABBs per instance and rotation.
        rotation_allowed: `(N,)` bool; False pins an instance's rotation.
        deviation: Translation step scale.
        item_volume: Summed instance box volume (energy normalizer).
        t_start: Initial temperature, relative to the starting energy.
        t_end: Final temperature, relative to the starting energy.
        rotation_prob: Probability of proposing a rotation move.

    Returns:
        Best `(positions, rotations, energy)` seen during the pass.
    """
    n = positions.shape[0]
    n_rot = bounds_table.shape[1]
    dtype = positions.dtype
    index = jnp.arange(n)

    initial_boxes = boxes_for_instances(positions, rotations, bounds_table)
    initial_energy = packing_energy(initial_boxes, item_volume)

    # Temperatures scale with the starting energy so the schedule is unit-free.
    temp_hi = jnp.asarray(t_start, dtype=dtype) * initial_energy
    temp_lo = jnp.asarray(t_end, dtype=dtype) * initial_energy

    def step_fn(i, state):
        key, pos, rot, boxes, energy, best_pos, best_rot, best_energy = state

        key, subkey_k, subkey_gate, subkey_rot, subkey_trans, subkey_accept = jax.random.split(key, 6)
        k = jax.random.randint(subkey_k, (), 0, n)

        # 1. Propose a move for instance k
        do_rot = (jax.random.uniform(subkey_gate, dtype=dtype) < rotation_prob) & rotation_allowed[k]
        rot_k = jnp.where(do_rot, jax.random.randint(subkey_rot, (), 0, n_rot), rot[k])
        offset = jax.random.normal(subkey_trans, (3,), dtype=dtype) * deviation
        pos_k = jnp.where(do_rot, pos[k], pos[k] + offset)

        # 2. Only the moved instance can introduce an overlap: one-vs-all test
        box_k = bounds_table[k, rot_k] + jnp.concatenate([pos_k, pos_k])
        colliding = jnp.any(box_overlaps(box_k, boxes) & (index != k))

        # 3. Score
        candidate_boxes = boxes.at[k].set(box_k)
        candidate_energy = packing_energy(candidate_boxes, item_volume)

        # 4. Metropolis criterion on a geometric schedule
        frac = i / n_steps
        temp = temp_hi * (temp_lo / temp_hi) ** frac
        delta = candidate_energy - energy
        r = jax.random.uniform(subkey_accept, dtype=dtype)
        accept = ((delta < 0) | (r < jnp.exp(-delta / (temp + 1e-12)))) & (~colliding)

        pos = jnp.where(accept, pos.at[k].set(pos_k), pos)
        rot = jnp.where(accept, rot.at[k].set(rot_k), rot)
        boxes = jnp.where(accept, candidate_boxes, boxes)
        energy = jnp.where(accept, candidate_energy, energy)

        improved = energy < best_energy
        best_pos = jnp.where(improved, pos, best_pos)
        best_rot = jnp.where(improved, rot, best_rot)
        best_energy = jnp.where(improved, energy, best_energy)
        return key, pos, rot, boxes, energy, best_pos, best_rot, best_energy

    init_state = (
        random_key,
        positions,
        rotations,
        initial_boxes,
        initial_energy,
        positions,
        rotations,
        initial_energy,
    )
    final_state = jax.lax.fori_loop(0, n_steps, step_fn, init_state)
    _, _, _, _, _, best_pos, best_rot, best_energy = final_state
    return best_pos, best_rot, best_energy
