import pytest

from CG import CGState, ColumnGeneration, solve, solve_many
from exceptions import ModelConstructionError
from patterns import Pattern
from subproblem import price_pattern
from tests.conftest import SMALL_LENGTHS, make_pieces
from Utils.instance_reader import read_patterns, read_pieces


def test_no_pair_fits_converges_at_singletons(small_pieces):
    result = solve(small_pieces, 150, max_itr=50, deterministic=True)
    assert result.termination_state == CGState.CONVERGED
    assert result.converged
    assert result.objective_value == pytest.approx(6.0)
    assert result.num_iterations == 1
    assert len(result.patterns) == 6
    assert len(result.selected_patterns) == 6


def test_piece_longer_than_rod_fails(small_pieces):
    cg = ColumnGeneration(small_pieces, 100, max_itr=10)
    with pytest.raises(ModelConstructionError):
        cg.solve()
    assert cg.state == CGState.FAILED


def test_zero_iterations_returns_initial_relaxation(equal_pieces):
    result = solve(equal_pieces, 12, max_itr=0, deterministic=True)
    assert result.termination_state == CGState.ITERATION_LIMIT_REACHED
    assert result.objective_value == pytest.approx(6.0)
    assert result.num_iterations == 0
    assert result.lp_history == pytest.approx([6.0])
    assert result.iteration_stats == []


def test_iteration_limit_stops_after_adding_columns(equal_pieces):
    result = solve(equal_pieces, 12, max_itr=1, deterministic=True)
    assert result.termination_state == CGState.ITERATION_LIMIT_REACHED
    assert result.num_iterations == 1
    assert len(result.lp_history) == 2
    assert len(result.patterns) == 7
    assert result.objective_value == pytest.approx(result.lp_history[-1])


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
@pytest.mark.parametrize('use_heuristic', [True, False])
def test_three_per_rod(equal_pieces, method, use_heuristic):
    result = solve(equal_pieces, 12, max_itr=100, pricing_method=method, use_heuristic=use_heuristic,
                   solve_integer=True, deterministic=True)
    assert result.converged
    assert result.objective_value == pytest.approx(2.0)
    assert result.integer_objective >= 2.0 - 1e-6
    for piece in equal_pieces:
        assert any(piece in pattern for pattern in result.selected_patterns)


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
def test_pairs_on_longer_rod(small_pieces, method):
    # 150 stays alone; the other five pieces form an odd cycle of compatible pairs
    result = solve(small_pieces, 250, max_itr=100, pricing_method=method, solve_integer=True,
                   deterministic=True)
    assert result.converged
    assert result.objective_value == pytest.approx(3.5)
    assert result.integer_objective == pytest.approx(4.0)


@pytest.mark.parametrize('method', ['gurobi', 'labeling'])
def test_final_duals_admit_no_improving_pattern(small_pieces, method):
    result = solve(small_pieces, 250, max_itr=100, pricing_method=method, deterministic=True)
    assert set(result.final_duals) == {p.id for p in small_pieces}
    check = price_pattern(result.final_duals, small_pieces, 250, col_id=999, method=method,
                          use_heuristic=False)
    assert not check.is_improving(1e-6)


def test_generated_patterns_fit_and_are_unique(small_pieces):
    result = solve(small_pieces, 250, max_itr=100, deterministic=True)
    assert all(pattern.total_length() <= 250 for pattern in result.patterns)
    assert len({pattern.id for pattern in result.patterns}) == len(result.patterns)
    piece_sets = [frozenset(p.id for p in pattern) for pattern in result.patterns]
    assert len(set(piece_sets)) == len(piece_sets)


def test_lp_history_never_increases(small_pieces):
    result = solve(small_pieces, 250, max_itr=100, deterministic=True)
    history = result.lp_history
    assert history[0] == pytest.approx(6.0)
    assert all(later <= earlier + 1e-9 for earlier, later in zip(history, history[1:]))
    # One master solve per pricing round; only the iteration limit adds a final solve
    assert result.termination_state == CGState.CONVERGED
    assert len(history) == result.num_iterations


@pytest.mark.parametrize('max_itr', [-1, 2.5, '3', True, None])
def test_max_itr_must_be_non_negative_int(small_pieces, max_itr):
    with pytest.raises(ValueError):
        ColumnGeneration(small_pieces, 150, max_itr=max_itr)


def test_unknown_pricing_method(small_pieces):
    with pytest.raises(ValueError):
        ColumnGeneration(small_pieces, 150, max_itr=5, pricing_method='dantzig')


def test_initial_patterns_from_files(data_dir):
    pieces = read_pieces(data_dir / 'small_pieces.txt')
    patterns = read_patterns(data_dir / 'small_patterns.txt', pieces, 150)
    assert [p.length for p in pieces] == SMALL_LENGTHS

    result = solve(pieces, 150, patterns, max_itr=10, deterministic=True)
    assert result.converged
    assert result.objective_value == pytest.approx(6.0)


def test_initial_patterns_must_cover_all_pieces(equal_pieces):
    with pytest.raises(ModelConstructionError):
        solve(equal_pieces, 12, [], max_itr=5)


def test_initial_patterns_must_fit_the_rod():
    pieces = make_pieces([100, 100])
    cg = ColumnGeneration(pieces, 150, max_itr=10, initial_patterns=[Pattern(1, pieces, 1000)])
    with pytest.raises(ModelConstructionError, match="longer than the rod"):
        cg.solve()
    assert cg.state == CGState.FAILED
    assert cg.master is None


def test_callback_sees_every_iteration(equal_pieces):
    seen = []

    def callback(itr, cg):
        seen.append((itr, cg.state, cg.master.num_patterns))

    result = solve(equal_pieces, 12, max_itr=100, callback_after_iteration=callback, deterministic=True)
    assert [itr for itr, _, _ in seen] == list(range(1, result.num_iterations + 1))
    assert all(state == CGState.ITERATING for _, state, _ in seen)


def test_iteration_stats_and_result_dict(equal_pieces):
    cg = ColumnGeneration(equal_pieces, 12, max_itr=100, deterministic=True)
    result = cg.solve()
    assert len(result.iteration_stats) == result.num_iterations
    last = result.iteration_stats[-1]
    assert last['Column Added'] == '-'
    assert last['Reduced Cost'] >= -1e-6

    summary = result.as_dict()
    assert summary['termination_state'] == 'converged'
    assert summary['lp_obj'] == pytest.approx(2.0)
    assert summary['num_columns'] == len(result.patterns)


def test_verbose_run_prints_results(equal_pieces, capsys):
    solve(equal_pieces, 12, max_itr=100, verbose=True, deterministic=True)
    out = capsys.readouterr().out
    assert 'ITERATION STATISTICS' in out
    assert 'FINAL RESULTS' in out


def test_deterministic_runs_agree(small_pieces):
    first = solve(small_pieces, 250, max_itr=100, deterministic=True)
    second = solve(small_pieces, 250, max_itr=100, deterministic=True)
    assert first.objective_value == pytest.approx(second.objective_value)
    assert [sorted(p.id for p in k) for k in first.patterns] == [sorted(p.id for p in k) for k in second.patterns]


@pytest.mark.parametrize('processes', [1, 2])
def test_solve_many(small_pieces, equal_pieces, processes):
    instances = [(small_pieces, 150), (equal_pieces, 12), (small_pieces, 250)]
    results = solve_many(instances, max_itr=100, processes=processes, deterministic=True)
    assert [r.objective_value for r in results] == pytest.approx([6.0, 2.0, 3.5])
    assert all(r.converged for r in results)
