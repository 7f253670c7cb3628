"""Project-wide constants.

These values centralize the search tuning knobs, the perturbation-scale rule
and the CLI defaults used throughout the codebase.
"""

from __future__ import annotations

# Numerical tolerance used by the AABB overlap test.
EPS: float = 1e-9

# Perturbation scale: cbrt(total bounding-box volume) / DEVIATION_DIVISOR.
DEVIATION_DIVISOR: float = 32.0

# Annealing steps per restart (fixed per run, not re-derived per call).
ANNEALING_ITERATIONS: int = 2_000_000

# Reference engine move mix and cooling schedule (relative to the run's initial energy).
ROTATION_MOVE_PROB: float = 0.5
T_START: float = 1.0
T_END: float = 1e-4

# Flat meshes get this fraction of the largest extent as thickness on zero-width
# axes (never below MIN_THICKNESS) so they have volume and collide.
THICKNESS_FLOOR: float = 1e-3
MIN_THICKNESS: float = 1e-6

# CLI defaults.
DEFAULT_OUTPUT_PATH: str = "packing.stl"
DEFAULT_EXEC_TIME: float = 180.0
