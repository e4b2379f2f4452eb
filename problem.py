# problem.py — exact-cover problem loader
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from solver.matrix import SparseMatrix


class ProblemError(ValueError):
    """The problem description cannot be mapped onto a matrix."""


def _as_names(val: Any) -> Optional[List[str]]:
    if isinstance(val, str):
        # "A D G" shorthand for a row
        return val.split()
    if isinstance(val, (list, tuple)):
        out: List[str] = []
        for v in val:
            # names are scalars; nested lists or objects are malformed rows
            if isinstance(v, bool) or not isinstance(v, (str, int, float)):
                return None
            out.append(str(v))
        return out
    return None


def _coerce_rows(raw: Any) -> Tuple[List[List[str]], Optional[str]]:
    if isinstance(raw, dict):
        # {label: [columns...]}: labels only matter to the caller
        raw = list(raw.values())
    if not isinstance(raw, (list, tuple)):
        return [], "rows must be a list"

    rows: List[List[str]] = []
    for n, item in enumerate(raw):
        names = _as_names(item)
        if names is None:
            return [], f"row {n} is not a list of column names"
        rows.append(names)
    return rows, None


def parse_problem(payload: Any) -> Tuple[List[str], List[List[str]], Optional[str]]:
    """
    Return (columns, rows, error_message_or_None).

    Accepts a mapping with ``rows`` (a list of column-name lists, a list of
    space separated strings, or a {label: names} mapping) and an optional
    ``columns`` list.  Without ``columns`` the column order is the order in
    which names first appear in the rows.
    """

    if not isinstance(payload, dict):
        return [], [], "expected a JSON object"
    if "rows" not in payload:
        return [], [], "missing 'rows'"

    rows, err = _coerce_rows(payload.get("rows"))
    if err:
        return [], [], err

    raw_cols = payload.get("columns")
    if raw_cols is None:
        columns: List[str] = []
        seen = set()
        for names in rows:
            for name in names:
                if name not in seen:
                    seen.add(name)
                    columns.append(name)
    else:
        columns = _as_names(raw_cols)
        if columns is None:
            return [], [], "columns must be a list of names"

    return columns, rows, None


def build_matrix(columns: Iterable[str], rows: Iterable[Sequence[str]]) -> SparseMatrix:
    """Push one header per column, then one chained row per entry of ``rows``."""

    matrix = SparseMatrix()
    heads: Dict[str, Any] = {}
    for name in columns:
        if name in heads:
            raise ProblemError(f"duplicate column {name!r}")
        heads[name] = matrix.push_head(name)

    for n, names in enumerate(rows):
        if not names:
            raise ProblemError(f"row {n} is empty")
        if len(set(names)) != len(names):
            raise ProblemError(f"row {n} names a column twice")
        prev = None
        for name in names:
            head = heads.get(name)
            if head is None:
                raise ProblemError(f"row {n} names unknown column {name!r}")
            prev = matrix.push_item(prev, head)
    return matrix


__all__ = ["ProblemError", "parse_problem", "build_matrix"]
