"""Object descriptors and the setup phase that builds them.

The setup consumes the positional CLI tokens (`[N1] mesh1 [N2] mesh2 ...`),
loads each mesh, and accumulates the total bounding-box volume into an
explicit `PackingSetup` value that is handed to the search once.
"""

from __future__ import annotations

import contextlib
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .constants import DEVIATION_DIVISOR
from .errors import ConfigurationError
from .mesh import bounding_box_size, bounding_box_volume, center_mesh, load_mesh
from .progress import timed

# Same spellings as Go's strconv.ParseBool (the `-rot` flag format).
_TRUE_TOKENS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TOKENS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass(frozen=True)
class ObjectDescriptor:
    """One distinct mesh argument: geometry, replication count, rotation policy."""

    geometry: Any
    count: int = 1
    rotation_allowed: bool = True
    name: str = ""


@dataclass
class PackingSetup:
    """Accumulated setup state: descriptors plus their summed bounding-box volume."""

    objects: list[ObjectDescriptor] = field(default_factory=list)
    total_volume: float = 0.0

    def add(self, descriptor: ObjectDescriptor, volume: float) -> None:
        self.objects.append(descriptor)
        self.total_volume += float(volume)

    @property
    def instance_count(self) -> int:
        return sum(obj.count for obj in self.objects)


def deviation_for_volume(total_volume: float) -> float:
    """Perturbation scale: `cbrt(total_volume) / 32`."""
    if total_volume < 0.0 or not math.isfinite(total_volume):
        raise ValueError(f"total_volume must be finite and >= 0, got {total_volume!r}")
    return total_volume ** (1.0 / 3.0) / DEVIATION_DIVISOR


def parse_bool(token: str) -> bool:
    """Parse a boolean in `strconv.ParseBool` syntax.

    Raises:
        ConfigurationError: For anything outside the accepted spellings.
    """
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise ConfigurationError(f"invalid rotation flag {token!r} (expected one of 1,0,t,f,true,false)")


def parse_rotation_flags(text: str | None, n_args: int) -> list[bool]:
    """Expand a comma-separated rotation list into one flag per argument position.

    Args:
        text: Raw `--rot` value such as `"1,0,1"`; empty or None means no overrides.
        n_args: Number of positional arguments (counts and meshes alike).

    Returns:
        A list of length `n_args`, True wherever no entry was given.

    Raises:
        ConfigurationError: If an entry is not a valid boolean. Entries are
            parsed until the first one past `n_args`, which is checked but ignored.
    """
    flags = [True] * int(n_args)
    if not text:
        return flags
    for i, part in enumerate(text.split(",")):
        value = parse_bool(part)
        if i >= len(flags):
            break
        flags[i] = value
    return flags


def parse_count(token: str) -> int | None:
    """Return the replication count encoded by `token`, or None for a mesh reference."""
    try:
        value = int(token, 0)
    except ValueError:
        # int(..., 0) rejects leading zeros such as "08". isdigit() alone also
        # admits characters like "²" that int() refuses.
        if not (token.isascii() and token.isdigit()):
            return None
        value = int(token, 10)
    if value < 1:
        raise ConfigurationError(f"replication count must be a positive integer, got {token!r}")
    return value


def _quiet(_name: str) -> contextlib.AbstractContextManager[None]:
    return contextlib.nullcontext()


def build_setup(
    tokens: Sequence[str],
    rotation_flags: Sequence[bool] = (),
    *,
    load: Callable[[str], Any] = load_mesh,
    verbose: bool = True,
) -> PackingSetup:
    """Turn `[N1] mesh1 [N2] mesh2 ...` tokens into a `PackingSetup`.

    A count token applies to every following mesh until the next count. The
    rotation flag of a mesh is looked up by the mesh token's index among *all*
    tokens (counts included); indices past the end of `rotation_flags`
    default to rotation allowed.

    Args:
        tokens: Positional arguments in order.
        rotation_flags: Per-position flags, usually from `parse_rotation_flags`.
        load: Mesh loader; receives the token and returns a geometry handle
            that `pack3d.mesh` helpers understand.
        verbose: Print load timings and geometry diagnostics.

    Raises:
        ConfigurationError: If no mesh token is present or a count is not positive.
        MeshLoadError: Propagated from `load`; no partial setup is returned.
    """
    phase = timed if verbose else _quiet
    setup = PackingSetup()
    count = 1
    for i, token in enumerate(tokens):
        parsed = parse_count(token)
        if parsed is not None:
            count = parsed
            continue

        rotation_allowed = bool(rotation_flags[i]) if i < len(rotation_flags) else True
        with phase(f"loading mesh {token}"):
            geometry = load(token)

        volume = bounding_box_volume(geometry)
        if verbose:
            size = bounding_box_size(geometry)
            print(f"  {len(geometry.faces)} triangles")
            print(f"  {size[0]:g} x {size[1]:g} x {size[2]:g}")

        with phase("centering mesh"):
            center_mesh(geometry)

        setup.add(
            ObjectDescriptor(geometry=geometry, count=count, rotation_allowed=rotation_allowed, name=token),
            volume,
        )

    if not setup.objects:
        raise ConfigurationError("no mesh given")
    return setup
