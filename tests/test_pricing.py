import itertools

import numpy as np
import pytest

from label import solve_knapsack_labeling
from patterns import Piece
from subproblem import Subproblem, greedy_knapsack, price_pattern, pricing_candidates, ratio_key
from tests.conftest import make_pieces


@pytest.fixture
def greedy_trap():
    """Greedy takes the 6 (best ratio) and misses the 5 + 5 pair worth 1.04."""
    pieces = make_pieces([6, 5, 5])
    duals = {1: 0.65, 2: 0.52, 3: 0.52}
    return pieces, duals


def brute_force(duals, pieces, capacity):
    best = 0.0
    for r in range(1, len(pieces) + 1):
        for combo in itertools.combinations(pieces, r):
            if sum(p.length for p in combo) <= capacity:
                best = max(best, sum(max(duals[p.id], 0.0) for p in combo))
    return best


def test_candidates_skip_non_positive_duals_and_long_pieces():
    pieces = make_pieces([3, 4, 20, 5])
    duals = {1: 0.5, 2: 0.0, 3: 0.9, 4: -0.1}
    assert [p.id for p in pricing_candidates(duals, pieces, 10)] == [1]


def test_ratio_key_breaks_ties_by_id():
    pieces = make_pieces([10, 5, 10])
    duals = {1: 1.0, 2: 0.5, 3: 1.0}
    assert [p.id for p in sorted(pieces, key=lambda p: ratio_key(duals, p))] == [1, 2, 3]


def test_greedy_knapsack(greedy_trap):
    pieces, duals = greedy_trap
    assert [p.id for p in greedy_knapsack(duals, pieces, 10)] == [1]


def test_gurobi_subproblem_is_exact(greedy_trap):
    pieces, duals = greedy_trap
    subproblem = Subproblem(duals, pieces, 10, col_id=4)
    subproblem.buildModel()
    subproblem.solModel()
    pattern = subproblem.getPattern()
    assert [p.id for p in pattern] == [2, 3]
    assert pattern.id == 4
    assert pattern.capacity == 10
    assert subproblem.getObjective() == pytest.approx(1.04)


def test_labeling_is_exact(greedy_trap):
    pieces, duals = greedy_trap
    selection, objective = solve_knapsack_labeling(duals, pieces, 10)
    assert [p.id for p in selection] == [2, 3]
    assert objective == pytest.approx(1.04)


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
def test_rejected_heuristic_falls_back_to_exact(greedy_trap, method):
    pieces, duals = greedy_trap
    result = price_pattern(duals, pieces, 10, col_id=4, method=method, use_heuristic=True)
    assert result.source == 'exact'
    assert result.reduced_cost == pytest.approx(-0.04)
    assert result.is_improving(1e-6)
    assert [p.id for p in result.pattern] == [2, 3]


def test_improving_heuristic_is_accepted():
    pieces = make_pieces([4] * 4)
    duals = {p.id: 1.0 for p in pieces}
    result = price_pattern(duals, pieces, 12, col_id=5)
    assert result.source == 'heuristic'
    assert [p.id for p in result.pattern] == [1, 2, 3]
    assert result.reduced_cost == pytest.approx(-2.0)


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
def test_non_improving_answer_comes_from_exact_oracle(method):
    pieces = make_pieces([110, 150, 125])
    duals = {p.id: 1.0 for p in pieces}
    result = price_pattern(duals, pieces, 150, col_id=4, method=method)
    assert result.source == 'exact'
    assert result.objective == pytest.approx(1.0)
    assert result.reduced_cost == pytest.approx(0.0)
    assert not result.is_improving(1e-6)


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
@pytest.mark.parametrize('capacity', [0, -3])
def test_non_positive_capacity_gives_empty_pattern(method, capacity):
    pieces = make_pieces([1, 2])
    result = price_pattern({1: 1.0, 2: 1.0}, pieces, capacity, col_id=3, method=method)
    assert result.pattern is None
    assert result.objective == 0.0


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
def test_no_piece_fits_gives_empty_pattern(method):
    pieces = make_pieces([20, 30])
    result = price_pattern({1: 1.0, 2: 1.0}, pieces, 10, col_id=3, method=method, use_heuristic=False)
    assert result.pattern is None
    assert result.objective == 0.0
    assert result.reduced_cost == 1.0


def test_unknown_pricing_method():
    with pytest.raises(ValueError):
        price_pattern({1: 1.0}, [Piece(1, 2)], 10, col_id=2, method='simplex', use_heuristic=False)


def test_exact_oracles_agree_with_brute_force():
    rng = np.random.default_rng(7)
    for _ in range(15):
        lengths = rng.integers(1, 40, size=8).tolist()
        pieces = make_pieces(lengths)
        duals = {p.id: float(d) for p, d in zip(pieces, rng.uniform(-0.2, 1.0, size=8))}
        capacity = int(rng.integers(10, 80))
        expected = brute_force(duals, pieces, capacity)

        labeling = price_pattern(duals, pieces, capacity, col_id=99, method='labeling', use_heuristic=False)
        gurobi = price_pattern(duals, pieces, capacity, col_id=99, method='gurobi', use_heuristic=False)

        assert labeling.objective == pytest.approx(expected, abs=1e-9)
        assert gurobi.objective == pytest.approx(expected, abs=1e-6)
        for result in (labeling, gurobi):
            if result.pattern is not None:
                assert result.pattern.total_length() <= capacity

