import multiprocessing
import time
from enum import Enum

from exceptions import CuttingStockError, ModelConstructionError
from logging_config import get_logger
from masterproblem import MasterProblem
from subproblem import price_pattern
from Utils.feasability_checker import check_cutting_plan
from Utils.initial_cg_sol import initial_cg_starting_sol, next_column_id
from Utils.Generell.plots import plot_cutting_plan, plot_lp_history
from Utils.Generell.utils import plan_to_frame, stats_to_frame

logger = get_logger(__name__)


class CGState(str, Enum):
    INITIALIZING = 'initializing'
    ITERATING = 'iterating'
    CONVERGED = 'converged'
    ITERATION_LIMIT_REACHED = 'iteration_limit_reached'
    FAILED = 'failed'


class CGResult:
    """
    Result of a column generation run.

    Attributes:
        selected_patterns: Patterns with value above the selection tolerance in the last master solve
        objective_value: LP objective of the final restricted master
        termination_state: CGState.CONVERGED or CGState.ITERATION_LIMIT_REACHED
        integer_objective: Objective of the integer master (None unless solve_integer)
        num_iterations: Pricing rounds performed
        patterns: All columns of the final master, in column order
        lp_history: LP objective after every master solve
        final_duals: Dual prices of the final LP solve
        iteration_stats: Per-iteration statistics (list of dicts)
        total_time: Runtime in seconds
    """

    def __init__(self, selected_patterns, objective_value, termination_state, integer_objective=None,
                 num_iterations=0, patterns=None, lp_history=None, final_duals=None, iteration_stats=None,
                 total_time=None, is_integral=None):
        self.selected_patterns = selected_patterns
        self.objective_value = objective_value
        self.termination_state = termination_state
        self.integer_objective = integer_objective
        self.num_iterations = num_iterations
        self.patterns = patterns or []
        self.lp_history = lp_history or []
        self.final_duals = final_duals or {}
        self.iteration_stats = iteration_stats or []
        self.total_time = total_time
        self.is_integral = is_integral

    @property
    def converged(self):
        return self.termination_state == CGState.CONVERGED

    def as_dict(self):
        return {
            'lp_obj': self.objective_value,
            'ip_obj': self.integer_objective,
            'termination_state': self.termination_state.value,
            'is_integral': self.is_integral,
            'num_iterations': self.num_iterations,
            'num_columns': len(self.patterns),
            'total_time': self.total_time,
            'selected_patterns': [[piece.id for piece in pattern] for pattern in self.selected_patterns],
        }

    def __repr__(self):
        return (f"CGResult(state={self.termination_state.value}, lp_obj={self.objective_value:.6f}, "
                f"ip_obj={self.integer_objective}, iterations={self.num_iterations}, "
                f"selected={len(self.selected_patterns)})")


class ColumnGeneration:
    """
    Column generation for the one-dimensional cutting stock problem.

    States: INITIALIZING -> ITERATING -> CONVERGED | ITERATION_LIMIT_REACHED | FAILED.
    Every iteration solves the restricted master LP, prices one pattern with the
    master duals and either stops (reduced cost >= -threshold) or adds the pattern
    as a new column. Integer rounding is a separate step (solve_integer).
    """

    def __init__(self, pieces, rod_length, max_itr, initial_patterns=None, threshold=1e-6,
                 pricing_method='gurobi', use_heuristic=True, solve_integer=False, selection_tolerance=0.01,
                 time_limit=None, show_plots=False, callback_after_iteration=None, save_lps=False,
                 verbose=False, deterministic=False, use_warmstart=True):
        """
        Initialize Column Generation solver.

        Args:
            pieces: Pieces to cut
            rod_length: Length of every rod
            max_itr: Maximum number of pricing rounds (non-negative int)
            initial_patterns: Starting columns; one singleton pattern per piece if None
            threshold: Convergence tolerance on the reduced cost
            pricing_method: Exact pricing oracle, 'gurobi' or 'labeling'
            use_heuristic: Try greedy pricing before the exact oracle
            solve_integer: Solve the master with binary variables after the LP loop
            selection_tolerance: Value above which a pattern counts as selected
            time_limit: Time limit in seconds per master and pricing solve
            show_plots: Draw convergence and cutting plan plots in finalize()
            callback_after_iteration: Called as f(itr, self) after every pricing round
            save_lps: Write the final master to Final_master.lp
            verbose: Print progress banners
            deterministic: Single-threaded Gurobi
            use_warmstart: Re-solve the master with primal simplex from the previous basis
        """
        if isinstance(max_itr, bool) or not isinstance(max_itr, int) or max_itr < 0:
            raise ValueError(f"max_itr must be a non-negative integer, got {max_itr!r}")
        if pricing_method not in ('gurobi', 'labeling'):
            raise ValueError(f"Unknown pricing method: {pricing_method}")

        self.pieces = list(pieces)
        self.rod_length = rod_length
        self.max_itr = max_itr
        self.initial_patterns = list(initial_patterns) if initial_patterns is not None else None
        self.threshold = threshold
        self.pricing_method = pricing_method
        self.use_heuristic = use_heuristic
        self.solve_integer = solve_integer
        self.selection_tolerance = selection_tolerance
        self.time_limit = time_limit
        self.show_plots = show_plots
        self.callback_after_iteration = callback_after_iteration
        self.save_lps = save_lps
        self.verbose = verbose
        self.deterministic = deterministic
        self.use_warmstart = use_warmstart

        self.state = CGState.INITIALIZING
        self.master = None
        self.iteration_stats = []
        self.lp_obj_history = []
        self.last_pricing = None
        self.final_duals = {}

        # Timing
        self.start_time = None
        self.total_time = None

        # Results
        self.lp_obj = None
        self.ip_obj = None
        self.gap = None
        self.is_integral = None
        self.selected_patterns = []
        self.plan_check = None
        self.num_iterations = 0
        self.figures = []

    def setup(self):
        """
        Build the initial columns and the restricted master.
        """
        self.state = CGState.INITIALIZING
        self.start_time = time.time()
        if self.verbose:
            logger.print("=" * 100)
            logger.print(" SETUP PHASE ".center(100, "="))
            logger.print("=" * 100)

        if self.initial_patterns is None:
            start_patterns = initial_cg_starting_sol(self.pieces, self.rod_length)
            logger.info(f"[Setup] {len(start_patterns)} singleton patterns as initial columns")
        else:
            start_patterns = self.initial_patterns
            overfull = [k.id for k in start_patterns if k.total_length() > self.rod_length]
            if overfull:
                raise ModelConstructionError(
                    f"Initial patterns {overfull} are longer than the rod length {self.rod_length}")
            logger.info(f"[Setup] {len(start_patterns)} caller supplied initial columns")

        self.master = MasterProblem(
            self.pieces, start_patterns, verbose=self.verbose, deterministic=self.deterministic,
            time_limit=self.time_limit, use_warmstart=self.use_warmstart
        )
        self.master.buildModel()

        if self.verbose:
            logger.print(f"[Setup] {len(self.pieces)} pieces, rod length {self.rod_length}, "
                         f"{self.master.num_patterns} initial columns")
            logger.print(f"[Setup] Complete! Time: {time.time() - self.start_time:.2f}s")
        self.state = CGState.ITERATING

    def solve_cg(self):
        """
        Main column generation loop.
        """
        if self.verbose:
            logger.print("=" * 100)
            logger.print(" COLUMN GENERATION ".center(100, "="))
            logger.print("=" * 100)

        itr = 0
        while True:
            iter_start_time = time.time()

            master_start_time = time.time()
            self.master.solRelModel()
            current_lp_obj = self.master.getObjective()
            master_time = time.time() - master_start_time
            self.lp_obj_history.append(current_lp_obj)

            if itr >= self.max_itr:
                self.state = CGState.ITERATION_LIMIT_REACHED
                break
            itr += 1

            duals = self.master.getDuals()
            logger.debug(f"[Itr {itr}] Duals: {duals}")

            pricing_start_time = time.time()
            result = price_pattern(
                duals, self.pieces, self.rod_length, next_column_id(self.master.patterns),
                method=self.pricing_method, use_heuristic=self.use_heuristic, threshold=self.threshold,
                time_limit=self.time_limit, deterministic=self.deterministic, verbose=self.verbose
            )
            pricing_time = time.time() - pricing_start_time
            self.last_pricing = result

            improving = result.is_improving(self.threshold)
            self.iteration_stats.append({
                'Iteration': itr,
                'LP Objective': round(current_lp_obj, 6),
                'Reduced Cost': round(result.reduced_cost, 6),
                'Pricing': result.source,
                'Column Added': str(result.pattern) if improving else '-',
                'Columns': self.master.num_patterns + (1 if improving else 0),
                'Total Time (s)': round(time.time() - iter_start_time, 4),
                'Master Time (s)': round(master_time, 4),
                'Pricing Time (s)': round(pricing_time, 4),
            })
            if self.verbose:
                logger.print(f"[Itr {itr:3d}] LP objective {current_lp_obj:.6f} | reduced cost "
                             f"{result.reduced_cost:.6f} ({result.source})")

            if self.callback_after_iteration:
                self.callback_after_iteration(itr, self)

            if not improving:
                self.state = CGState.CONVERGED
                break

            self.master.addPattern(result.pattern)
            logger.info(f"[Itr {itr}] Added column {result.pattern} (reduced cost {result.reduced_cost:.6f})")

        self.num_iterations = itr
        self.lp_obj = self.master.getObjective()
        self.final_duals = self.master.getDuals()

        if self.state == CGState.ITERATION_LIMIT_REACHED:
            logger.info(f"Column Generation terminated: Maximum iterations ({self.max_itr}) reached.")
        else:
            logger.info(f"Column Generation finished after {itr} iterations (convergence).")

    def finalize(self):
        """
        Optional integer solve over the generated columns and selection of the cutting plan.
        """
        self.is_integral, frac_info = self.master.check_fractionality()
        if frac_info is not None:
            logger.debug(f"Most fractional column: {frac_info}")

        if self.solve_integer:
            self.master.solIntModel()
            self.ip_obj = self.master.getObjective()
            self.gap = abs(self.ip_obj - self.lp_obj) / self.ip_obj if self.ip_obj > 0 else 0.0

        self.selected_patterns = self.master.getSelectedPatterns(self.selection_tolerance)
        self.plan_check = check_cutting_plan(self.selected_patterns, self.pieces, self.rod_length)
        if not self.plan_check['feasible']:
            logger.warning(f"Selected patterns do not form a feasible plan: "
                           f"uncovered={self.plan_check['uncovered']}, overfull={self.plan_check['overfull']}")

        if self.save_lps:
            self.master.writeModel('Final_master.lp')

        if self.show_plots:
            self.figures.append(plot_lp_history(self.lp_obj_history, self.ip_obj, show=True))
            self.figures.append(plot_cutting_plan(self.selected_patterns, self.rod_length, show=True))

        self.total_time = time.time() - self.start_time

    def print_statistics(self):
        """
        Print the per-iteration statistics.
        """
        print("\n" + "=" * 100)
        print(" ITERATION STATISTICS ".center(100, "="))
        print("=" * 100)

        if not self.iteration_stats:
            print("No iterations were completed.")
            return

        stats_df = stats_to_frame(self.iteration_stats)
        print(stats_df.to_string(index=False))

        total_time_cg = stats_df['Total Time (s)'].sum()
        total_master_time = stats_df['Master Time (s)'].sum()
        total_pricing_time = stats_df['Pricing Time (s)'].sum()
        print(f"\nTotal time in CG loop: {total_time_cg:.2f} s")
        if total_time_cg > 0:
            print(f"  - Time in Master Problem: {total_master_time:.2f} s ({total_master_time / total_time_cg:.1%})")
            print(f"  - Time in Pricing:        {total_pricing_time:.2f} s ({total_pricing_time / total_time_cg:.1%})")
        print(f"  - Heuristic columns: {(stats_df['Pricing'] == 'heuristic').sum()}")

    def print_results(self):
        """
        Print final results.
        """
        print("\n" + "=" * 100)
        print(" FINAL RESULTS ".center(100, "="))
        print("=" * 100)

        print(f"Total runtime: {self.total_time:.2f} seconds")
        print(f"Termination: {self.state.value} after {self.num_iterations} iterations.")
        print(f"LP relaxation value: {self.lp_obj:.5f}")
        if self.ip_obj is not None:
            print(f"Final IP value: {self.ip_obj:.5f}")
            print(f"Final Gap: {self.gap:.5f}")
        print(f"Is integral? {self.is_integral}")

        values = self.master.getValues() if self.ip_obj is None else None
        print("\n[Results] Selected patterns:")
        print(plan_to_frame(self.selected_patterns, values).to_string(index=False))
        print("\n" + "=" * 100 + "\n")

    def result(self):
        return CGResult(
            selected_patterns=self.selected_patterns,
            objective_value=self.lp_obj,
            termination_state=self.state,
            integer_objective=self.ip_obj,
            num_iterations=self.num_iterations,
            patterns=list(self.master.patterns),
            lp_history=list(self.lp_obj_history),
            final_duals=dict(self.final_duals),
            iteration_stats=list(self.iteration_stats),
            total_time=self.total_time,
            is_integral=self.is_integral,
        )

    def solve(self):
        """
        Complete solve: setup, column generation, finalize.

        Returns:
            CGResult

        Raises:
            CuttingStockError: Any construction or solver failure; the state is FAILED afterwards
        """
        try:
            self.setup()
            self.solve_cg()
            self.finalize()
        except CuttingStockError as e:
            logger.error(f"Column generation failed in state {self.state.value}: {e}")
            self.state = CGState.FAILED
            raise

        if self.verbose:
            self.print_statistics()
            self.print_results()
        return self.result()


def solve(pieces, rod_length, initial_patterns=None, *, max_itr, **options):
    """
    Solve the LP relaxation of a cutting stock instance by column generation.

    Args:
        pieces: Pieces to cut
        rod_length: Rod length
        initial_patterns: Optional starting columns
        max_itr: Maximum number of pricing rounds
        **options: Further ColumnGeneration keyword arguments

    Returns:
        CGResult with selected_patterns, objective_value and termination_state
    """
    return ColumnGeneration(pieces, rod_length, max_itr, initial_patterns=initial_patterns, **options).solve()


def solve_instance_worker(args):
    """
    Worker function: solves one instance with its own master, pricing and controller.
    """
    pieces, rod_length, initial_patterns, max_itr, options = args
    return solve(pieces, rod_length, initial_patterns, max_itr=max_itr, **options)


def solve_many(instances, max_itr, processes=None, **options):
    """
    Solve independent instances, in parallel if processes != 1.

    Args:
        instances: Iterable of (pieces, rod_length) or (pieces, rod_length, initial_patterns)
        max_itr: Maximum number of pricing rounds per instance
        processes: Pool size (None = cpu count, 1 = in this process)
        **options: ColumnGeneration keyword arguments (must be picklable)

    Returns:
        list: One CGResult per instance, in input order
    """
    tasks_args = []
    for instance in instances:
        pieces, rod_length = instance[0], instance[1]
        initial_patterns = instance[2] if len(instance) > 2 else None
        tasks_args.append((pieces, rod_length, initial_patterns, max_itr, options))

    if processes == 1 or len(tasks_args) <= 1:
        return [solve_instance_worker(args) for args in tasks_args]

    logger.info(f"Solving {len(tasks_args)} instances on {processes or multiprocessing.cpu_count()} processes")
    with multiprocessing.Pool(processes) as pool:
        return pool.map(solve_instance_worker, tasks_args)
