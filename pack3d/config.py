"""Config files for the `pack3d` command.

A config file holds defaults for the command-line flags, either at the top
level or under a `"pack3d"` section:

  {"pack3d": {"exec_time": 60, "rot": [1, 0], "args": [2, "part.stl"]}}

Keys are the flag names (`output_path`, `exec_time`, `rot`, `iterations`,
`seed`, `on_write_error`); `args` lists counts and meshes. The file is turned
into argv tokens that the CLI places in front of its own arguments, so
explicit flags win and config meshes come first. YAML needs `pyyaml`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

SECTION = "pack3d"
CONFIG_NAMES: tuple[str, ...] = ("pack3d.json", "pack3d.yaml", "pack3d.yml")

# Config key -> CLI flag.
FLAGS: dict[str, str] = {
    "output_path": "--output_path",
    "exec_time": "--exec_time",
    "rot": "--rot",
    "iterations": "--iterations",
    "seed": "--seed",
    "on_write_error": "--on-write-error",
}


def default_config_path(start: Path | None = None) -> Path | None:
    """Nearest `configs/pack3d.{json,yaml,yml}` from `start` (default: cwd) up to the project root."""
    here = (Path.cwd() if start is None else Path(start)).resolve()
    for directory in (here, *here.parents):
        for name in CONFIG_NAMES:
            candidate = directory / "configs" / name
            if candidate.is_file():
                return candidate
        if (directory / "pyproject.toml").is_file():
            break
    return None


def load_config(path: Path) -> dict[str, Any]:
    """Read `path` and return the mapping of flag keys (section unwrapped).

    Raises:
        ConfigurationError: Unreadable file, bad syntax, or not a mapping.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"{path}: cannot read config: {exc}") from exc

    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore[import-not-found]
        except ImportError as exc:  # pragma: no cover
            raise ConfigurationError(f"{path}: YAML config requires pyyaml") from exc
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"{path}: invalid YAML: {exc}") from exc
    else:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"{path}: invalid JSON: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping, got {type(data).__name__}")
    if SECTION in data:
        if len(data) > 1:
            others = ", ".join(sorted(str(k) for k in data if k != SECTION))
            raise ConfigurationError(f"{path}: keys outside the '{SECTION}' section: {others}")
        data = data[SECTION]
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path}: '{SECTION}' must be a mapping, got {type(data).__name__}")
    return data


def _flag_value(key: str, value: Any) -> str:
    if key == "rot" and isinstance(value, (list, tuple)):
        # `--rot` spells booleans as 1/0.
        return ",".join(("1" if v else "0") if isinstance(v, bool) else str(v) for v in value)
    if isinstance(value, (bool, dict, list, tuple)):
        raise ConfigurationError(f"'{key}' must be a number or string, got {type(value).__name__}")
    return str(value)


def config_to_argv(path: Path) -> list[str]:
    """Convert a config file into argv tokens (`--flag=value` pairs, then counts and meshes).

    Raises:
        ConfigurationError: For unknown keys, values of the wrong shape, or
            flags inside `args`.
    """
    section = load_config(path)
    unknown = sorted(str(k) for k in section if k not in FLAGS and k != "args")
    if unknown:
        raise ConfigurationError(f"{path}: unknown config keys: {', '.join(unknown)}")

    argv: list[str] = []
    for key, flag in FLAGS.items():
        value = section.get(key)
        if value is None:
            continue
        try:
            argv.append(f"{flag}={_flag_value(key, value)}")
        except ConfigurationError as exc:
            raise ConfigurationError(f"{path}: {exc}") from exc

    items = section.get("args") or []
    if not isinstance(items, list):
        raise ConfigurationError(f"{path}: 'args' must be a list of counts and meshes, got {type(items).__name__}")
    for item in items:
        token = str(item)
        if token.startswith("-"):
            raise ConfigurationError(f"{path}: 'args' holds counts and meshes only, got {token!r}")
        argv.append(token)
    return argv
