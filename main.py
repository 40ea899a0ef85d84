import argparse
import sys

from CG import ColumnGeneration
from exceptions import CuttingStockError
from logging_config import get_logger, setup_multi_level_logging
from Utils.compactmodel import Problem
from Utils.feasability_checker import check_cutting_plan
from Utils.Generell.utils import boxed_print, plan_to_frame
from Utils.instance_reader import read_patterns, read_pieces

logger = get_logger(__name__)


DEFAULTS = {
    'max_itr': 100,               # Maximum pricing rounds
    'threshold': 1e-6,            # Reduced cost tolerance
    'pricing_method': 'gurobi',   # 'gurobi' (knapsack MIP) or 'labeling' (dynamic programming)
    'use_heuristic': True,        # Greedy pricing before the exact oracle
    'solve_integer': False,       # Integer master over the generated columns
    'time_limit': None,           # Seconds per solve
    'show_plots': False,
    'save_lps': False,
    'verbose': False,
    'deterministic': False,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="One-dimensional cutting stock by column generation.")
    parser.add_argument('pieces', help="Piece file with 'index length' pairs")
    parser.add_argument('--rod-length', type=int, required=True, help="Length of every rod")
    parser.add_argument('--patterns', help="Optional 0/1 pattern file used as initial columns")
    parser.add_argument('--max-itr', type=int, default=DEFAULTS['max_itr'])
    parser.add_argument('--threshold', type=float, default=DEFAULTS['threshold'])
    parser.add_argument('--pricing', choices=['gurobi', 'labeling'], default=DEFAULTS['pricing_method'])
    parser.add_argument('--no-heuristic', action='store_true', help="Always solve the exact pricing problem")
    parser.add_argument('--integer', action='store_true', help="Solve the integer master after convergence")
    parser.add_argument('--compact', action='store_true', help="Also solve the compact assignment model")
    parser.add_argument('--time-limit', type=float, default=DEFAULTS['time_limit'])
    parser.add_argument('--plots', action='store_true')
    parser.add_argument('--save-lps', action='store_true')
    parser.add_argument('--deterministic', action='store_true')
    parser.add_argument('--verbose', action='store_true')
    parser.add_argument('--log-dir', default=None, help="Write one log file per level below this directory")
    parser.add_argument('--print-all-logs', action='store_true', help="Show every log level on the console")
    return parser.parse_args(argv)


def build_settings(args):
    settings = dict(DEFAULTS)
    settings.update({
        'max_itr': args.max_itr,
        'threshold': args.threshold,
        'pricing_method': args.pricing,
        'use_heuristic': not args.no_heuristic,
        'solve_integer': args.integer,
        'time_limit': args.time_limit,
        'show_plots': args.plots,
        'save_lps': args.save_lps,
        'verbose': args.verbose,
        'deterministic': args.deterministic,
    })
    return settings


def main(argv=None):
    """
    Read an instance, run column generation and print the cutting plan.

    Returns:
        int: Exit status (0 on success, 1 on any cutting stock error)
    """
    args = parse_args(argv)
    setup_multi_level_logging(base_log_dir=args.log_dir, enable_console=True, print_all_logs=args.print_all_logs)
    settings = build_settings(args)
    logger.info(f"Configuration: {settings}")

    try:
        pieces = read_pieces(args.pieces)
        initial_patterns = None
        if args.patterns:
            initial_patterns = read_patterns(args.patterns, pieces, args.rod_length)

        cg_solver = ColumnGeneration(pieces, args.rod_length, initial_patterns=initial_patterns, **settings)
        result = cg_solver.solve()

        boxed_print(f"Termination: {result.termination_state.value}",
                    f"LP relaxation: {result.objective_value:.5f}",
                    f"Integer master: {result.integer_objective}" if result.integer_objective is not None
                    else "Integer master: not solved",
                    f"Iterations: {result.num_iterations}, columns: {len(result.patterns)}")
        print(plan_to_frame(result.selected_patterns).to_string(index=False))

        check = check_cutting_plan(result.selected_patterns, pieces, args.rod_length)
        print(f"\nRods used: {check['rods']}, waste: {check['waste']}, feasible plan: {check['feasible']}")

        if args.compact:
            problem = Problem(pieces, args.rod_length, verbose=args.verbose, deterministic=args.deterministic,
                              time_limit=args.time_limit)
            problem.buildModel()
            problem.solveModel()
            print(f"\nCompact model objective: {problem.getObjective():.0f}")
            for k, rod_pieces in problem.getRods().items():
                used = sum(piece.length for piece in rod_pieces)
                print(f"Rod {k}: {' '.join(str(p) for p in rod_pieces)}  with total length: {used}")
    except CuttingStockError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
