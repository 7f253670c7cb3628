"""Console progress helpers (phase name + elapsed time)."""

from __future__ import annotations

import contextlib
import time
from typing import Iterator


def format_elapsed(seconds: float) -> str:
    """Render a duration compactly, e.g. `850us`, `12.3ms`, `4.21s`, `3m05s`."""
    if seconds < 1e-3:
        return f"{seconds * 1e6:.0f}us"
    if seconds < 1.0:
        return f"{seconds * 1e3:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.2f}s"
    minutes, rest = divmod(seconds, 60.0)
    return f"{int(minutes)}m{rest:04.1f}s"


@contextlib.contextmanager
def timed(name: str) -> Iterator[None]:
    """Print `name... ` on entry and the elapsed time on exit.

    An empty `name` only prints the elapsed time. Nothing is printed on exit
    when the body raises, so a failed phase never looks finished.
    """
    if name:
        print(f"{name}... ", end="", flush=True)
    start = time.perf_counter()
    yield
    print(format_elapsed(time.perf_counter() - start))
