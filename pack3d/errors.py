"""Exception types raised by the library.

The library raises; only `pack3d.cli.pack` turns these into exit codes.
"""

from __future__ import annotations


class Pack3dError(Exception):
    """Base class for all pack3d errors."""


class ConfigurationError(Pack3dError, ValueError):
    """Invalid invocation: no mesh given, bad count, or malformed rotation list."""


class MeshLoadError(Pack3dError):
    """A mesh reference could not be read or is not a usable triangle mesh."""


class PersistenceError(Pack3dError, OSError):
    """Writing the output artifact failed; the previous artifact (if any) is untouched."""
