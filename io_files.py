"""Helpers for writing solver outputs to disk."""

from __future__ import annotations

import os
from typing import List

from config import CFG


def _resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    """Return the absolute path where an output artifact should be written."""

    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def solutions_path(base_dir: str) -> str:
    """Return where the solutions file lives for the current configuration."""

    return _resolve_output_path(base_dir, CFG.SOLUTIONS_OUT, "solutions.txt")


def write_solutions(solutions: List[List[str]], base_dir: str) -> str:
    """Write the solutions, one block per cover, to the configured text file."""

    path = solutions_path(base_dir)
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        if not solutions:
            f.write("No solution\n")
        else:
            for n, rows in enumerate(solutions, start=1):
                f.write(f"# solution {n}\n")
                for row in rows:
                    f.write(f"{row}\n")
                f.write("\n")
    return path


__all__ = ["solutions_path", "write_solutions"]
