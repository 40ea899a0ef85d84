import gurobipy as gu
import numpy as np
import pandas as pd

from exceptions import SolverError, SolverTimeout


STATUS_NAMES = {
    gu.GRB.LOADED: 'LOADED',
    gu.GRB.OPTIMAL: 'OPTIMAL',
    gu.GRB.INFEASIBLE: 'INFEASIBLE',
    gu.GRB.INF_OR_UNBD: 'INF_OR_UNBD',
    gu.GRB.UNBOUNDED: 'UNBOUNDED',
    gu.GRB.CUTOFF: 'CUTOFF',
    gu.GRB.ITERATION_LIMIT: 'ITERATION_LIMIT',
    gu.GRB.NODE_LIMIT: 'NODE_LIMIT',
    gu.GRB.TIME_LIMIT: 'TIME_LIMIT',
    gu.GRB.SOLUTION_LIMIT: 'SOLUTION_LIMIT',
    gu.GRB.INTERRUPTED: 'INTERRUPTED',
    gu.GRB.NUMERIC: 'NUMERIC',
    gu.GRB.SUBOPTIMAL: 'SUBOPTIMAL',
}


def create_model(name, deterministic=False, time_limit=None):
    """
    Create a Gurobi model with its own silent environment.

    Every master, pricing and compact model owns a separate environment, so
    independent instances never share solver state.
    """
    env = gu.Env(empty=True)
    env.setParam('OutputFlag', 0)
    env.start()
    model = gu.Model(name, env=env)
    model.Params.Seed = 0
    if deterministic:
        model.Params.Threads = 1
    if time_limit is not None:
        model.Params.TimeLimit = time_limit
    return model


def optimize_checked(model, label):
    """
    Run model.optimize() and turn every non-optimal outcome into an error.

    Raises:
        SolverTimeout: The time limit was hit
        SolverError: Any other non-optimal status or a GurobiError
    """
    try:
        model.optimize()
    except gu.GurobiError as e:
        raise SolverError(f"{label}: Gurobi failed: {e}") from e

    status = model.Status
    if status == gu.GRB.OPTIMAL:
        return
    status_name = STATUS_NAMES.get(status, str(status))
    if status == gu.GRB.TIME_LIMIT:
        raise SolverTimeout(f"{label}: time limit of {model.Params.TimeLimit}s reached", status=status_name)
    raise SolverError(f"{label}: solve ended with status {status_name}", status=status_name)


def boxed_print(*args, width=100, border='*', center=True):
    """
    Prints any number of inputs in a fixed-width box with borders.
    Automatically stringifies and wraps long lines.
    """
    text = '\n'.join(str(arg) for arg in args)
    lines = text.split('\n')

    print(border * (width + 2))
    for line in lines:
        while len(line) > width:
            part = line[:width]
            print(f"{border}{part.center(width) if center else part.ljust(width)}{border}")
            line = line[width:]
        print(f"{border}{line.center(width) if center else line.ljust(width)}{border}")
    print(border * (width + 2))


def plan_to_frame(patterns, values=None):
    """
    Tabulate a cutting plan.

    Args:
        patterns: Patterns of the plan, one row each
        values: Optional {pattern id: value} from the master solve

    Returns:
        DataFrame with columns Pattern, Pieces, Lengths, Used, Capacity, Waste (and Value)
    """
    rows = []
    for pattern in patterns:
        row = {
            'Pattern': pattern.id,
            'Pieces': [piece.id for piece in pattern],
            'Lengths': [piece.length for piece in pattern],
            'Used': pattern.total_length(),
            'Capacity': pattern.capacity,
            'Waste': pattern.waste(),
        }
        if values is not None:
            row['Value'] = round(values.get(pattern.id, 0.0), 6)
        rows.append(row)
    columns = ['Pattern', 'Pieces', 'Lengths', 'Used', 'Capacity', 'Waste']
    if values is not None:
        columns.append('Value')
    return pd.DataFrame(rows, columns=columns)


def stats_to_frame(iteration_stats):
    """Per-iteration statistics of a column generation run as a DataFrame."""
    return pd.DataFrame(iteration_stats)


def membership_matrix(patterns, pieces):
    """0/1 matrix with one row per pattern and one column per piece."""
    if not patterns:
        return np.zeros((0, len(pieces)), dtype=int)
    return np.array([pattern.membership_row(pieces) for pattern in patterns], dtype=int)
