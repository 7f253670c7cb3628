"""Best-of-restarts annealing search under a wall-clock budget.

The orchestrator runs independent annealing passes back to back. After each
pass it compares the engine's energy with the best seen so far and, on a
strict improvement only, writes the engine's snapshot to the output path.
The engine is then reset to a fresh random layout; nothing but the best
energy (and the file on disk) carries over between restarts.

The deadline is only checked between restarts, so the last pass may run past
the budget by up to one pass duration.

Programmatic use:
  from pack3d.search import SearchOrchestrator
  result = SearchOrchestrator(setup, engine, output_path="out.stl", budget=60).run()
"""

from __future__ import annotations

import contextlib
import enum
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Literal

from .constants import ANNEALING_ITERATIONS, DEFAULT_EXEC_TIME, DEFAULT_OUTPUT_PATH
from .errors import PersistenceError
from .objects import PackingSetup, deviation_for_volume
from .persistence import save_mesh
from .progress import format_elapsed, timed

if TYPE_CHECKING:
    from .engine import PackingEngine

WriteErrorPolicy = Literal["raise", "warn"]


class SearchState(enum.Enum):
    SEARCHING = "searching"
    STOPPED = "stopped"


@dataclass
class Incumbent:
    """Best energy observed so far; the arrangement itself lives only on disk."""

    energy: float = math.inf
    restart: int | None = None


@dataclass(frozen=True)
class RestartOutcome:
    """What happened during one restart."""

    restart: int
    energy: float
    improved: bool
    written: bool
    elapsed: float


@dataclass(frozen=True)
class SearchResult:
    """Summary returned by `SearchOrchestrator.run()`."""

    best_energy: float
    restarts: int
    writes: int
    elapsed: float
    deviation: float
    output_path: Path


class SearchOrchestrator:
    """Incumbent-preserving restart loop around a `PackingEngine`.

    Args:
        setup: Objects to pack and their accumulated bounding-box volume.
        engine: Placement optimizer implementing the `PackingEngine` protocol.
        output_path: Single artifact overwritten on every strict improvement.
        budget: Wall-clock budget in seconds, checked between restarts.
        iterations: Annealing steps per restart.
        save: Persistence sink `(path, geometry) -> Any`; raises on failure.
        clock: Monotonic time source in seconds (injectable for tests).
        on_write_error: `"raise"` stops the search on a failed write; `"warn"`
            prints a warning and keeps going without recording the improvement.
        verbose: Print phase timings and improvements.
    """

    def __init__(
        self,
        setup: PackingSetup,
        engine: PackingEngine,
        *,
        output_path: str | Path = DEFAULT_OUTPUT_PATH,
        budget: float = DEFAULT_EXEC_TIME,
        iterations: int = ANNEALING_ITERATIONS,
        save: Callable[[Path, Any], Any] = save_mesh,
        clock: Callable[[], float] = time.monotonic,
        on_write_error: WriteErrorPolicy = "raise",
        verbose: bool = True,
    ) -> None:
        if not setup.objects:
            raise ValueError("setup has no objects")
        if budget < 0:
            raise ValueError(f"budget must be >= 0, got {budget}")
        if int(iterations) < 1:
            raise ValueError(f"iterations must be >= 1, got {iterations}")
        if on_write_error not in ("raise", "warn"):
            raise ValueError(f"on_write_error must be 'raise' or 'warn', got {on_write_error!r}")

        self.setup = setup
        self.engine = engine
        self.output_path = Path(output_path)
        self.budget = float(budget)
        self.iterations = int(iterations)
        self.on_write_error = on_write_error
        self.verbose = verbose
        self._save = save
        self._clock = clock

        self.state = SearchState.STOPPED
        self.incumbent = Incumbent()
        self.deviation: float | None = None
        self.restarts = 0
        self.writes = 0
        self._started = False
        self._start_time = 0.0

    def elapsed(self) -> float:
        return self._clock() - self._start_time

    def start(self) -> None:
        """Configure the engine once and enter the searching state."""
        if self._started:
            raise RuntimeError("search already started")
        self._started = True

        self.deviation = deviation_for_volume(self.setup.total_volume)
        self.engine.configure(self.setup.objects, self.deviation)
        self.incumbent = Incumbent()
        self._start_time = self._clock()
        self.state = SearchState.SEARCHING

        self._log(
            f"packing {self.setup.instance_count} instances of {len(self.setup.objects)} objects "
            f"(deviation {self.deviation:g}, budget {self.budget:g}s, {self.iterations} iterations/restart)"
        )

    def step(self) -> RestartOutcome:
        """Run one restart: anneal, maybe persist, reset, check the deadline."""
        if self.state is not SearchState.SEARCHING:
            raise RuntimeError(f"cannot step in state {self.state.value!r}")

        restart = self.restarts
        with self._phase("annealing"):
            self.engine.run_annealing(self.iterations)
        energy = float(self.engine.energy())

        improved = energy < self.incumbent.energy
        written = False
        if improved:
            written = self._persist()
            if written:
                self.incumbent = Incumbent(energy=energy, restart=restart)
                self.writes += 1
                self._log(f"restart {restart}: new best energy {energy:.6g}")

        self.engine.reset()
        self.restarts += 1

        elapsed = self.elapsed()
        if elapsed > self.budget:
            self.state = SearchState.STOPPED
        return RestartOutcome(restart=restart, energy=energy, improved=improved, written=written, elapsed=elapsed)

    def run(self) -> SearchResult:
        """Start, then restart until the budget is exhausted."""
        self.start()
        while self.state is SearchState.SEARCHING:
            self.step()

        elapsed = self.elapsed()
        self._log(
            f"done: {self.restarts} restarts, {self.writes} writes, "
            f"best energy {self.incumbent.energy:.6g} in {format_elapsed(elapsed)}"
        )
        return SearchResult(
            best_energy=self.incumbent.energy,
            restarts=self.restarts,
            writes=self.writes,
            elapsed=elapsed,
            deviation=float(self.deviation),
            output_path=self.output_path,
        )

    def _persist(self) -> bool:
        geometry = self.engine.snapshot()
        try:
            with self._phase("writing mesh"):
                self._save(self.output_path, geometry)
        except PersistenceError as exc:
            if self.on_write_error == "raise":
                raise
            print(f"\nwarning: {exc}; best packing not saved, continuing")
            return False
        return True

    def _phase(self, name: str):
        return timed(name) if self.verbose else contextlib.nullcontext()

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)

