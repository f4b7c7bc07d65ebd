"""Common path utilities.

Experiments and the Stan model lookup need repo-level resources (`config/`,
`stan_models/`, `data/`, `results/`). These helpers locate the repo root
regardless of where the package is imported from.
"""

from __future__ import annotations

from pathlib import Path


def find_repo_root(start: Path) -> Path:
    """Find the enclosing analysis repository root.

    Strategy: walk upward from `start` until we find a directory that looks
    like the repo root (must contain `config/` and `stan_models/`).

    Returns `start` if no such parent exists.
    """
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / "config").is_dir() and (candidate / "stan_models").is_dir():
            return candidate
    return start
