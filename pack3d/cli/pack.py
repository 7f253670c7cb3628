#!/usr/bin/env python3

"""CLI: pack N copies of each mesh into as small a volume as possible.

Usage:
  pack3d --output_path=out.stl --exec_time=180 --rot=1,0 N1 mesh1.stl N2 mesh2.stl
  python -m pack3d ...
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pack3d.config import config_to_argv, default_config_path
from pack3d.constants import ANNEALING_ITERATIONS, DEFAULT_EXEC_TIME, DEFAULT_OUTPUT_PATH
from pack3d.errors import ConfigurationError, MeshLoadError, PersistenceError
from pack3d.objects import build_setup, parse_rotation_flags

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

USAGE = """\
Usage: pack3d --output_path=path/to/output.stl --exec_time=180 --rot=1,0... N1 mesh1.stl N2 mesh2.stl ...
 - Packs N copies of each mesh into as small of a volume as possible.
 - Runs for approximately exec_time seconds.
 - Rotations for each object are disabled/enabled using --rot.
 - Results are written to disk (at output_path) whenever a new best is found."""


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="pack3d",
        description="Pack N copies of one or more meshes into the smallest volume found within a time budget.",
    )
    ap.add_argument("items", nargs="*", help="Meshes, each optionally preceded by a copy count: [N1] mesh1 [N2] mesh2 ...")
    ap.add_argument(
        "--output_path",
        "--output-path",
        dest="output_path",
        type=Path,
        default=Path(DEFAULT_OUTPUT_PATH),
        help="Path to the output mesh (overwritten whenever a new best is found).",
    )
    ap.add_argument(
        "--exec_time",
        "--exec-time",
        dest="exec_time",
        type=float,
        default=DEFAULT_EXEC_TIME,
        help="Stop after approximately this many seconds (checked between restarts).",
    )
    ap.add_argument(
        "--rot",
        type=str,
        default="",
        help="Comma-separated booleans enabling/disabling rotation per argument position, e.g. --rot=1,0,1 "
        "(all enabled by default).",
    )
    ap.add_argument("--iterations", type=int, default=ANNEALING_ITERATIONS, help="Annealing steps per restart.")
    ap.add_argument("--seed", type=int, default=None, help="RNG seed (default: random).")
    ap.add_argument(
        "--on-write-error",
        type=str,
        default="raise",
        choices=["raise", "warn"],
        help="On a failed write: stop the search (raise) or warn and keep searching (warn).",
    )
    ap.add_argument("--config", type=Path, default=None, help="JSON/YAML config prepended to the command line.")
    ap.add_argument("--no-config", action="store_true", help="Ignore configs/pack3d.{json,yaml,yml}.")
    return ap


def _resolve_argv(argv: list[str]) -> list[str]:
    """Prepend config-file tokens so explicit flags win."""
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path, default=None)
    pre.add_argument("--no-config", action="store_true")
    known, _ = pre.parse_known_args(argv)

    config = known.config
    if config is None and not known.no_config:
        config = default_config_path()
    if config is None:
        return argv
    return config_to_argv(config) + argv


def _usage(message: str | None = None) -> int:
    if message:
        print(f"error: {message}")
    print(USAGE)
    return EXIT_USAGE


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load meshes, and run the restart search until the budget runs out."""
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        argv = _resolve_argv(argv)
    except ConfigurationError as exc:
        return _usage(str(exc))
    args = build_parser().parse_intermixed_args(argv)

    if args.exec_time < 0 or args.iterations < 1:
        return _usage("--exec_time must be >= 0 and --iterations >= 1")

    try:
        rotation_flags = parse_rotation_flags(args.rot, len(args.items))
        setup = build_setup(args.items, rotation_flags)
    except ConfigurationError as exc:
        return _usage(str(exc))
    except MeshLoadError as exc:
        print(f"\nerror: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    # Deferred: JAX start-up is only paid once there is something to pack.
    from pack3d.engine import AnnealingEngine
    from pack3d.search import SearchOrchestrator

    orchestrator = SearchOrchestrator(
        setup,
        AnnealingEngine(seed=args.seed),
        output_path=args.output_path,
        budget=args.exec_time,
        iterations=args.iterations,
        on_write_error=args.on_write_error,
    )
    try:
        orchestrator.run()
    except PersistenceError as exc:
        print(f"\nerror: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
