# solver/search.py — Algorithm X over a SparseMatrix
from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from config import CFG
from models import SENTINEL

if TYPE_CHECKING:
    from solver.matrix import SparseMatrix


def _positive_or_none(value) -> Optional[int]:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


@dataclass
class SearchBudget:
    """Optional caps for one search, plus the counters the search updates.

    Caps are only consulted between branch rows, so an exhausted budget never
    interrupts a cover/uncover pair.
    """

    max_solutions: Optional[int] = None
    node_limit: Optional[int] = None
    nodes: int = 0
    max_depth: int = 0
    stop_reason: Optional[str] = None

    def __post_init__(self) -> None:
        self.max_solutions = _positive_or_none(self.max_solutions)
        self.node_limit = _positive_or_none(self.node_limit)

    @property
    def limit_hit(self) -> bool:
        return self.stop_reason is not None

    def exhausted(self, solutions_found: int) -> bool:
        if self.stop_reason is not None:
            return True
        if self.max_solutions is not None and solutions_found >= self.max_solutions:
            self.stop_reason = "max_solutions"
        elif self.node_limit is not None and self.nodes >= self.node_limit:
            self.stop_reason = "node_limit"
        return self.stop_reason is not None


def choose_column(matrix: "SparseMatrix") -> Optional[int]:
    """Index of the live column with the fewest rows (first one wins ties)."""

    nodes = matrix.nodes
    best_col: Optional[int] = None
    best_size: Optional[int] = None
    c = nodes[SENTINEL].right
    while not matrix.is_sentinel(c):
        size = nodes[c].payload.size
        if best_size is None or size < best_size:
            best_col = c
            best_size = size
        c = nodes[c].right
    return best_col


def row_label(matrix: "SparseMatrix", r: int) -> str:
    nodes = matrix.nodes
    names = [matrix.header_of(r).name]
    j = nodes[r].right
    while j != r:
        names.append(matrix.header_of(j).name)
        j = nodes[j].right
    return " ".join(names)


def search(
    matrix: "SparseMatrix",
    level: int,
    chosen_rows: List[int],
    solutions: List[List[str]],
    budget: SearchBudget,
) -> None:
    """Depth-first exact-cover search from the current matrix state.

    ``chosen_rows`` holds the row items selected so far (``level`` of them);
    complete covers are appended to ``solutions`` as row labels.  Every column
    covered here is uncovered again before returning.
    """

    nodes = matrix.nodes
    if level > budget.max_depth:
        budget.max_depth = level

    if matrix.is_sentinel(nodes[SENTINEL].right):
        solutions.append([row_label(matrix, r) for r in chosen_rows])
        return

    c = choose_column(matrix)
    matrix.cover_index(c)

    r = nodes[c].down
    while r != c:
        if budget.exhausted(len(solutions)):
            break
        budget.nodes += 1
        chosen_rows.append(r)

        j = nodes[r].right
        while j != r:
            matrix.cover_index(nodes[j].column)
            j = nodes[j].right

        search(matrix, level + 1, chosen_rows, solutions, budget)

        chosen_rows.pop()
        j = nodes[r].left
        while j != r:
            matrix.uncover_index(nodes[j].column)
            j = nodes[j].left
        r = nodes[r].down

    matrix.uncover_index(c)


def _stack_depth() -> int:
    depth = 0
    frame = sys._getframe(1)
    while frame is not None:
        depth += 1
        frame = frame.f_back
    return depth


def _ensure_recursion_limit(columns: int, depth: Optional[int] = None) -> Tuple[int, int]:
    """Raise the recursion limit so ``columns`` more levels fit on the stack.

    Returns (previous_limit, active_limit).
    """

    try:
        headroom = int(getattr(CFG, "RECURSION_HEADROOM", 200))
    except Exception:
        headroom = 200
    if depth is None:
        depth = _stack_depth()
    needed = depth + columns + max(0, headroom)
    current = sys.getrecursionlimit()
    if current < needed:
        sys.setrecursionlimit(needed)
        return current, needed
    return current, current


def run_search(
    matrix: "SparseMatrix",
    budget: SearchBudget,
) -> Tuple[List[List[str]], Dict[str, object]]:
    """Search from level 0 with an empty row stack and collect statistics."""

    previous_limit, recursion_limit = _ensure_recursion_limit(matrix.column_count)
    solutions: List[List[str]] = []
    chosen_rows: List[int] = []

    t0 = time.time()
    try:
        search(matrix, 0, chosen_rows, solutions, budget)
    finally:
        if recursion_limit != previous_limit:
            sys.setrecursionlimit(previous_limit)
    elapsed = time.time() - t0

    stats: Dict[str, object] = {
        "columns": matrix.column_count,
        "elements": len(matrix),
        "solutions": len(solutions),
        "nodes": budget.nodes,
        "max_depth": budget.max_depth,
        "limit_hit": budget.limit_hit,
        "stop_reason": budget.stop_reason,
        "max_solutions": budget.max_solutions,
        "node_limit": budget.node_limit,
        "recursion_limit": recursion_limit,
        "elapsed": elapsed,
    }
    return solutions, stats


__all__ = ["SearchBudget", "choose_column", "row_label", "search", "run_search"]
