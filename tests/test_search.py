import itertools
import random
import sys
from collections import Counter

import pytest

from solver import search as search_mod
from solver.matrix import SparseMatrix
from solver.search import SearchBudget, choose_column, search


def _build(columns, rows):
    m = SparseMatrix()
    heads = {name: m.push_head(name) for name in columns}
    for names in rows:
        prev = None
        for name in names:
            prev = m.push_item(prev, heads[name])
    return m, heads


KNUTH_COLUMNS = list("ABCDEFG")
KNUTH_ROWS = [
    ["C", "E", "F"],
    ["A", "D", "G"],
    ["B", "C", "F"],
    ["A", "D"],
    ["B", "G"],
    ["D", "E", "G"],
]


def _domino_problem(width, height=2):
    columns = [f"r{y}c{x}" for y in range(height) for x in range(width)]
    rows = []
    for y in range(height):
        for x in range(width):
            if x + 1 < width:
                rows.append([f"r{y}c{x}", f"r{y}c{x + 1}"])
            if y + 1 < height:
                rows.append([f"r{y}c{x}", f"r{y + 1}c{x}"])
    return columns, rows


def _as_cover(solution):
    return frozenset(frozenset(label.split()) for label in solution)


def _assert_partition(columns, solution):
    seen = [name for label in solution for name in label.split()]
    assert sorted(seen) == sorted(columns)


def test_knuth_instance_has_single_solution():
    m, _ = _build(KNUTH_COLUMNS, KNUTH_ROWS)
    solutions = m.solve()

    assert solutions == [["A D", "E F C", "B G"]]
    _assert_partition(KNUTH_COLUMNS, solutions[0])


def test_solve_leaves_matrix_uncovered():
    m, _ = _build(KNUTH_COLUMNS, KNUTH_ROWS)
    before = m.topology()
    m.solve()
    assert m.topology() == before
    assert m.ring_violations() == []


def test_resolve_returns_equal_solutions():
    m, _ = _build(KNUTH_COLUMNS, KNUTH_ROWS)
    first = m.solve()
    second = m.solve()
    assert first == second
    assert len(second) == 1


def test_empty_column_yields_no_solution():
    columns = KNUTH_COLUMNS + ["H"]
    m, _ = _build(columns, KNUTH_ROWS)
    before = m.topology()

    assert m.solve() == []
    assert m.topology() == before
    assert m.last_stats["solutions"] == 0
    assert m.last_stats["limit_hit"] is False


def test_matrix_without_columns_has_one_empty_cover():
    m = SparseMatrix()
    assert m.solve() == [[]]


@pytest.mark.parametrize("width,expected", [(1, 1), (2, 2), (3, 3), (4, 5), (6, 13)])
def test_domino_tilings_of_two_row_strip(width, expected):
    columns, rows = _domino_problem(width)
    m, _ = _build(columns, rows)
    solutions = m.solve()

    assert len(solutions) == expected
    assert len({_as_cover(s) for s in solutions}) == expected
    for s in solutions:
        _assert_partition(columns, s)


def test_domino_tilings_of_square():
    columns, rows = _domino_problem(4, height=4)
    m, _ = _build(columns, rows)
    assert len(m.solve()) == 36


def _brute_force(columns, rows):
    found = Counter()
    for k in range(len(rows) + 1):
        for combo in itertools.combinations(range(len(rows)), k):
            names = [n for i in combo for n in rows[i]]
            if sorted(names) == sorted(columns):
                found[frozenset(frozenset(rows[i]) for i in combo)] += 1
    return found


@pytest.mark.parametrize("seed", range(8))
def test_matches_brute_force_on_random_instances(seed):
    rng = random.Random(seed)
    columns = [f"c{i}" for i in range(6)]
    rows = []
    for _ in range(9):
        rows.append(sorted(rng.sample(columns, rng.randint(1, 3))))

    m, _ = _build(columns, rows)
    got = Counter(_as_cover(s) for s in m.solve())
    assert got == _brute_force(columns, rows)


def test_max_solutions_stops_early_and_restores():
    columns, rows = _domino_problem(6)
    m, _ = _build(columns, rows)
    before = m.topology()

    solutions = m.solve(max_solutions=3)

    assert len(solutions) == 3
    assert m.last_stats["limit_hit"] is True
    assert m.last_stats["stop_reason"] == "max_solutions"
    assert m.topology() == before


def test_node_limit_stops_early_and_restores():
    columns, rows = _domino_problem(6)
    m, _ = _build(columns, rows)
    before = m.topology()

    m.solve(node_limit=4)

    assert m.last_stats["nodes"] == 4
    assert m.last_stats["stop_reason"] == "node_limit"
    assert m.topology() == before
    # a later unlimited solve is unaffected
    assert len(m.solve(node_limit=0)) == 13


def test_config_limits_apply_when_not_passed(monkeypatch):
    monkeypatch.setattr(search_mod.CFG, "MAX_SOLUTIONS", 2)
    columns, rows = _domino_problem(6)
    m, _ = _build(columns, rows)
    assert len(m.solve()) == 2
    assert len(m.solve(max_solutions=0)) == 13


def test_stats_describe_the_run():
    m, _ = _build(KNUTH_COLUMNS, KNUTH_ROWS)
    m.solve()
    stats = m.last_stats
    assert stats["columns"] == 7
    assert stats["elements"] == 7 + 16
    assert stats["solutions"] == 1
    assert stats["max_depth"] == 3
    assert stats["nodes"] >= 4


def test_choose_column_prefers_smallest_then_leftmost():
    m, heads = _build(["A", "B", "C"], [["A", "B"], ["B", "C"], ["A", "C"], ["C"]])
    # sizes A=2, B=2, C=3
    assert m.nodes[choose_column(m)].payload.name == "A"

    m.cover(heads["A"])
    # B lost "A B", C lost "A C": B=1, C=2
    assert m.nodes[choose_column(m)].payload.name == "B"


def test_choose_column_on_empty_ring():
    assert choose_column(SparseMatrix()) is None


def test_search_can_be_driven_directly():
    m, _ = _build(KNUTH_COLUMNS, KNUTH_ROWS)
    chosen = []
    solutions = []
    budget = SearchBudget()

    search(m, 0, chosen, solutions, budget)

    assert chosen == []
    assert solutions == [["A D", "E F C", "B G"]]
    assert budget.max_depth == 3
    assert not budget.limit_hit


def test_budget_ignores_non_positive_caps():
    budget = SearchBudget(max_solutions=0, node_limit=-5)
    assert budget.max_solutions is None
    assert budget.node_limit is None
    assert not budget.exhausted(10 ** 6)


def test_recursion_limit_raised_for_wide_matrices(monkeypatch):
    calls = []
    monkeypatch.setattr(search_mod.CFG, "RECURSION_HEADROOM", 50)
    monkeypatch.setattr(sys, "getrecursionlimit", lambda: 100)
    monkeypatch.setattr(sys, "setrecursionlimit", calls.append)

    assert search_mod._ensure_recursion_limit(500, depth=0) == (100, 550)
    assert calls == [550]
    assert search_mod._ensure_recursion_limit(10, depth=0) == (100, 100)
    assert calls == [550]
    # frames already on the caller's stack count towards the limit
    assert search_mod._ensure_recursion_limit(10, depth=300) == (100, 360)
    assert calls == [550, 360]


def test_stack_depth_counts_caller_frames():
    def _nested(n):
        if n == 0:
            return search_mod._stack_depth()
        return _nested(n - 1)

    assert _nested(40) - _nested(0) == 40


def test_solve_from_deep_call_stack_restores_limit():
    columns = [f"c{i}" for i in range(1500)]
    m, _ = _build(columns, [[name] for name in columns])
    before = sys.getrecursionlimit()

    def _nested(n):
        if n == 0:
            return m.solve()
        return _nested(n - 1)

    sys.setrecursionlimit(1000)
    try:
        solutions = _nested(600)
        assert sys.getrecursionlimit() == 1000
    finally:
        sys.setrecursionlimit(before)

    assert len(solutions) == 1
    assert len(solutions[0]) == 1500
    assert m.last_stats["recursion_limit"] > 600 + 1500


def test_long_chain_of_forced_choices():
    # every column has a single row, so depth equals the column count
    columns = [f"c{i}" for i in range(1500)]
    m, _ = _build(columns, [[name] for name in columns])
    solutions = m.solve()
    assert len(solutions) == 1
    assert len(solutions[0]) == 1500
    assert m.last_stats["max_depth"] == 1500
