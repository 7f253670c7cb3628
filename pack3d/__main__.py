"""Single entrypoint: `python -m pack3d [options] [N1] mesh1 [N2] mesh2 ...`."""

from __future__ import annotations

from pack3d.cli.pack import main

if __name__ == "__main__":
    raise SystemExit(main())
