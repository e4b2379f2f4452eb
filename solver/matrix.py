# solver/matrix.py — toroidal sparse matrix (Dancing Links)
from __future__ import annotations

import itertools
from typing import Dict, Iterator, List, Optional, Tuple

from config import CFG
from models import (
    ColumnHeader,
    Element,
    ElementRef,
    InvalidElementError,
    MatrixBusyError,
    ROW_ITEM,
    SENTINEL,
)
from solver.search import SearchBudget, run_search

_SERIALS = itertools.count(1)


class SparseMatrix:
    """Exact-cover matrix stored as an arena of linked elements.

    Slot ``SENTINEL`` of the arena is the master header anchoring the ring of
    column headers.  Callers only ever see :class:`ElementRef` handles for
    headers and row items; neighbour lookups that would land on the sentinel
    return ``None``.
    """

    def __init__(self) -> None:
        self._serial = next(_SERIALS)
        self._nodes: List[Element] = [
            Element(SENTINEL, SENTINEL, SENTINEL, SENTINEL, SENTINEL, ColumnHeader(""))
        ]
        self._column_count = 0
        self._solving = False
        self.last_stats: Dict[str, object] = {}

    # ---------------- handles ----------------

    def _ref(self, idx: int) -> ElementRef:
        return ElementRef(self._serial, idx)

    def _resolve(self, ref: ElementRef) -> int:
        if ref is None:
            raise InvalidElementError("null element")
        if not isinstance(ref, ElementRef):
            raise TypeError(f"Not an element handle: {ref!r}")
        if ref.owner != self._serial:
            raise InvalidElementError("element belongs to a different matrix")
        if not (0 < ref.index < len(self._nodes)):
            raise InvalidElementError(f"element index out of range: {ref.index}")
        return ref.index

    def _resolve_header(self, ref: ElementRef) -> int:
        idx = self._resolve(ref)
        if not self._nodes[idx].is_header:
            raise InvalidElementError("expected a column header, got a row item")
        return idx

    def _guard_idle(self) -> None:
        if self._solving:
            raise MatrixBusyError("matrix is being solved")

    def is_sentinel(self, idx: int) -> bool:
        return idx == SENTINEL

    @property
    def nodes(self) -> List[Element]:
        return self._nodes

    @property
    def column_count(self) -> int:
        return self._column_count

    def __len__(self) -> int:
        return len(self._nodes) - 1

    # ---------------- construction ----------------

    def push_head(self, name: str) -> ElementRef:
        """Append a column header at the right end of the header ring."""

        self._guard_idle()
        if not isinstance(name, str):
            raise TypeError(f"Column name must be a string, got {type(name).__name__}")

        nodes = self._nodes
        idx = len(nodes)
        at = nodes[SENTINEL].left
        nxt = nodes[at].right
        nodes.append(Element(idx, idx, at, nxt, idx, ColumnHeader(name)))
        nodes[at].right = idx
        nodes[nxt].left = idx
        self._column_count += 1
        return self._ref(idx)

    def push_item(self, row: Optional[ElementRef], column: ElementRef) -> ElementRef:
        """Append a row item at the bottom of ``column``.

        With ``row=None`` the item starts a new row; otherwise it is linked
        immediately to the right of ``row``.
        """

        self._guard_idle()
        c = self._resolve_header(column)
        r: Optional[int] = None
        if row is not None:
            r = self._resolve(row)
            if self._nodes[r].is_header:
                raise InvalidElementError("row must be a row item, got a column header")

        nodes = self._nodes
        idx = len(nodes)
        head = nodes[c]
        above = head.up
        if r is None:
            left = right = idx
        else:
            left, right = r, nodes[r].right
        nodes.append(Element(above, c, left, right, c, ROW_ITEM))

        nodes[above].down = idx
        head.up = idx
        if r is not None:
            nodes[r].right = idx
            nodes[right].left = idx
        head.payload.size += 1
        return self._ref(idx)

    # ---------------- introspection ----------------

    def _neighbour(self, idx: int) -> Optional[ElementRef]:
        if self.is_sentinel(idx):
            return None
        return self._ref(idx)

    def head(self) -> Optional[ElementRef]:
        """Return the first live column header, or ``None`` when none remain."""
        return self._neighbour(self._nodes[SENTINEL].right)

    def up(self, ref: ElementRef) -> Optional[ElementRef]:
        return self._neighbour(self._nodes[self._resolve(ref)].up)

    def down(self, ref: ElementRef) -> Optional[ElementRef]:
        return self._neighbour(self._nodes[self._resolve(ref)].down)

    def left(self, ref: ElementRef) -> Optional[ElementRef]:
        return self._neighbour(self._nodes[self._resolve(ref)].left)

    def right(self, ref: ElementRef) -> Optional[ElementRef]:
        return self._neighbour(self._nodes[self._resolve(ref)].right)

    def column(self, ref: ElementRef) -> ElementRef:
        return self._ref(self._nodes[self._resolve(ref)].column)

    def is_header(self, ref: ElementRef) -> bool:
        return self._nodes[self._resolve(ref)].is_header

    def name(self, ref: ElementRef) -> str:
        """Name of the column ``ref`` belongs to (its own name for headers)."""
        return self.header_of(self._resolve(ref)).name

    def size(self, ref: ElementRef) -> int:
        """Live row count of the column ``ref`` belongs to."""
        return self.header_of(self._resolve(ref)).size

    def header_of(self, idx: int) -> ColumnHeader:
        return self._nodes[self._nodes[idx].column].payload

    def columns(self) -> List[str]:
        out: List[str] = []
        for idx in self._iter_live_headers():
            out.append(self._nodes[idx].payload.name)
        return out

    def _iter_live_headers(self) -> Iterator[int]:
        nodes = self._nodes
        c = nodes[SENTINEL].right
        while not self.is_sentinel(c):
            yield c
            c = nodes[c].right

    def topology(self) -> Tuple[Tuple[int, int, int, int, int, Optional[int]], ...]:
        """Snapshot of every link and column size, for structural comparisons."""

        return tuple(
            (e.up, e.down, e.left, e.right, e.column, e.payload.size if e.is_header else None)
            for e in self._nodes
        )

    def ring_violations(self) -> List[str]:
        """Return a description of every broken ring link or stale column size.

        Row rings are checked for every item (cover never touches them);
        vertical rings are checked for the live columns only, since covered
        items are deliberately left pointing at their old neighbours.
        """

        nodes = self._nodes
        problems: List[str] = []

        def _check_horizontal(idx: int) -> None:
            e = nodes[idx]
            if nodes[e.right].left != idx or nodes[e.left].right != idx:
                problems.append(f"horizontal link broken at {idx}")

        _check_horizontal(SENTINEL)
        for c in self._iter_live_headers():
            _check_horizontal(c)
            count = 0
            i = c
            while True:
                e = nodes[i]
                if nodes[e.down].up != i or nodes[e.up].down != i:
                    problems.append(f"vertical link broken at {i}")
                    break
                i = e.down
                if i == c:
                    break
                if nodes[i].column != c:
                    problems.append(f"item {i} linked under foreign column {c}")
                count += 1
            if count != nodes[c].payload.size:
                problems.append(
                    f"column {nodes[c].payload.name!r} size {nodes[c].payload.size} != {count}"
                )

        for idx, e in enumerate(nodes):
            if idx != SENTINEL and not e.is_header:
                _check_horizontal(idx)
        return problems

    # ---------------- cover / uncover ----------------

    def cover_index(self, c: int) -> None:
        nodes = self._nodes
        head = nodes[c]
        nodes[head.right].left = head.left
        nodes[head.left].right = head.right
        i = head.down
        while i != c:
            j = nodes[i].right
            while j != i:
                e = nodes[j]
                nodes[e.down].up = e.up
                nodes[e.up].down = e.down
                nodes[e.column].payload.size -= 1
                j = e.right
            i = nodes[i].down

    def uncover_index(self, c: int) -> None:
        nodes = self._nodes
        head = nodes[c]
        i = head.up
        while i != c:
            j = nodes[i].left
            while j != i:
                e = nodes[j]
                nodes[e.column].payload.size += 1
                nodes[e.down].up = j
                nodes[e.up].down = j
                j = e.left
            i = nodes[i].up
        nodes[head.right].left = c
        nodes[head.left].right = c

    def cover(self, column: ElementRef) -> None:
        """Remove ``column`` and every row intersecting it from the search space."""

        c = self._resolve_header(column)
        if self._nodes[self._nodes[c].left].right != c:
            raise InvalidElementError(f"column {self._nodes[c].payload.name!r} is already covered")
        self.cover_index(c)

    def uncover(self, column: ElementRef) -> None:
        """Restore a column removed by the most recent matching :meth:`cover`."""

        c = self._resolve_header(column)
        if self._nodes[self._nodes[c].left].right == c:
            raise InvalidElementError(f"column {self._nodes[c].payload.name!r} is not covered")
        self.uncover_index(c)

    # ---------------- solving ----------------

    def solve(
        self,
        max_solutions: Optional[int] = None,
        node_limit: Optional[int] = None,
    ) -> List[List[str]]:
        """Return every exact cover of the matrix.

        Each solution is a list of row labels; a row label is the name of the
        column the row was chosen through followed by the names of the other
        columns in that row, space separated.  The matrix is left uncovered on
        return, and statistics of the run are kept in :attr:`last_stats`.
        """

        self._guard_idle()
        if max_solutions is None:
            max_solutions = CFG.MAX_SOLUTIONS
        if node_limit is None:
            node_limit = CFG.NODE_LIMIT
        budget = SearchBudget(max_solutions=max_solutions, node_limit=node_limit)

        self._solving = True
        try:
            solutions, stats = run_search(self, budget)
        finally:
            self._solving = False
        self.last_stats = stats
        return solutions


__all__ = ["SparseMatrix"]
