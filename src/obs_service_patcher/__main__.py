"""``python -m obs_service_patcher`` entry point.

Behaves exactly like the ``obs-service-patcher`` console script, e.g.
``python -m obs_service_patcher patch --no-pause``.
"""

from __future__ import annotations

import sys

from .cli import main


if __name__ == "__main__":  # pragma: no cover - exercised via python -m
    raise SystemExit(main(sys.argv[1:]))
