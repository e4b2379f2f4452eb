# Orchestrator: payload -> matrix -> Algorithm X, with progress reporting
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from problem import ProblemError, build_matrix, parse_problem
from progress import reset, set_error, solve_finished, solve_started


def solve_orchestrator(
    payload: Any,
    *,
    max_solutions: Optional[int] = None,
    node_limit: Optional[int] = None,
) -> Tuple[bool, List[List[str]], Dict[str, Any], Optional[str]]:
    """
    Solve the exact-cover problem described by ``payload``.

    Returns (ok, solutions, stats, reason).  ``ok`` is False only when the
    payload could not be turned into a matrix; an unsatisfiable problem is a
    successful run with no solutions.
    """

    reset()

    columns, rows, err = parse_problem(payload)
    if err:
        set_error(err)
        return False, [], {}, err

    try:
        matrix = build_matrix(columns, rows)
    except ProblemError as e:
        set_error(str(e))
        return False, [], {}, str(e)

    solve_started(matrix.column_count, len(matrix))
    solutions = matrix.solve(max_solutions=max_solutions, node_limit=node_limit)
    stats = dict(matrix.last_stats)
    solve_finished(stats)

    reason = None
    if not solutions:
        reason = "No exact cover exists" if not stats.get("limit_hit") else "Search limit reached"
    return True, solutions, stats, reason


__all__ = ["solve_orchestrator"]
