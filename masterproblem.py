import math

import gurobipy as gu

from exceptions import ModelConstructionError, NotSolvedError, SolverError, StaleStateError
from logging_config import get_logger
from Utils.Generell.utils import create_model, optimize_checked

logger = get_logger(__name__)


class MasterProblem:
    """
    Restricted master problem of the cutting stock column generation.

        min  sum_k x_k
        s.t. sum_{k: p in pattern k} x_k >= 1   for every piece p   (cover(p))
             x_k >= 0 (relaxed) or x_k in {0, 1} (integer)

    The model is built once from the initial patterns. Later patterns enter as
    new columns on the existing cover rows (addPattern); rows are never rebuilt.

    Solution data (objective, values, duals) is cached at the end of every
    solve. Adding a pattern marks the cache stale until the next solve.
    """

    def __init__(self, pieces, patterns, verbose=False, deterministic=False, time_limit=None,
                 use_warmstart=True):
        self.pieces = list(pieces)
        self.initial_patterns = list(patterns)
        self.patterns = []
        self.verbose = verbose
        self.deterministic = deterministic
        self.use_warmstart = use_warmstart
        self.Model = create_model("MasterProblem", deterministic=deterministic, time_limit=time_limit)

        self.x = {}
        self.cons_cover = {}
        self.piece_by_id = {}
        self.pattern_by_var = {}
        self._solve_counter = 0
        self._built = False

        # Cached solution of the last solve
        self._objective = None
        self._values = None
        self._duals = None
        self._last_mode = None
        self._stale = False

    @property
    def num_patterns(self):
        return len(self.patterns)

    def buildModel(self):
        if self._built:
            raise ModelConstructionError("Master problem is already built")
        self._validate()
        self.patterns = list(self.initial_patterns)
        self.genVars()
        self.genCons()
        self.genObj()
        self.Model.update()
        self._built = True
        logger.debug(f"Master built with {len(self.patterns)} patterns and {len(self.pieces)} cover constraints")

    def _validate(self):
        piece_by_id = {}
        for piece in self.pieces:
            if piece.id in piece_by_id:
                raise ModelConstructionError(f"Duplicate piece id {piece.id}")
            piece_by_id[piece.id] = piece
        self.piece_by_id = piece_by_id

        pattern_ids = set()
        for pattern in self.initial_patterns:
            self._check_pattern(pattern, pattern_ids)
            pattern_ids.add(pattern.id)

        uncovered = [p.id for p in self.pieces if not any(k.contains(p) for k in self.initial_patterns)]
        if uncovered:
            raise ModelConstructionError(f"Pieces {uncovered} are not covered by any initial pattern")

    def _check_pattern(self, pattern, known_ids):
        if pattern.id in known_ids:
            raise ModelConstructionError(f"Duplicate pattern id {pattern.id}")
        if not pattern.is_feasible():
            raise ModelConstructionError(
                f"Pattern {pattern.id} needs {pattern.total_length()} but its capacity is {pattern.capacity}")
        unknown = [p.id for p in pattern if p.id not in self.piece_by_id]
        if unknown:
            raise ModelConstructionError(f"Pattern {pattern.id} contains unknown pieces {unknown}")

    def genVars(self):
        for pattern in self.patterns:
            name = f"x[{pattern.id}]"
            self.x[pattern.id] = self.Model.addVar(lb=0.0, vtype=gu.GRB.CONTINUOUS, name=name)
            # VarName is only readable after the next update
            self.pattern_by_var[name] = pattern

    def genCons(self):
        for piece in self.pieces:
            lhs = gu.quicksum(self.x[k.id] for k in self.patterns if k.contains(piece))
            self.cons_cover[piece.id] = self.Model.addLConstr(lhs >= 1, name=f"cover({piece.id})")

    def genObj(self):
        self.Model.setObjective(gu.quicksum(self.x.values()), sense=gu.GRB.MINIMIZE)

    def addPattern(self, pattern):
        """
        Append a pattern as a new column.

        The new variable gets coefficient 1 in the cover rows of the pattern's
        pieces and cost 1 in the objective. All other rows are left untouched.
        """
        self._check_pattern(pattern, self.x.keys())
        rows = [self.cons_cover[piece.id] for piece in pattern]
        new_col = gu.Column([1.0] * len(rows), rows)
        name = f"x[{pattern.id}]"
        self.x[pattern.id] = self.Model.addVar(lb=0.0, obj=1.0, vtype=gu.GRB.CONTINUOUS, column=new_col, name=name)
        self.Model.update()
        self.pattern_by_var[name] = pattern
        self.patterns.append(pattern)
        self._stale = True
        logger.debug(f"Added column {pattern} to the master")

    def solRelModel(self):
        """Solve the LP relaxation and cache objective, values and duals."""
        self._solve_counter += 1
        for var in self.x.values():
            var.VType = gu.GRB.CONTINUOUS
            var.LB = 0.0
            var.UB = gu.GRB.INFINITY

        # Re-solves start from the previous basis
        if self.use_warmstart and self._solve_counter > 1:
            self.Model.Params.Method = 0
        self._optimize('relaxed')

    def solIntModel(self):
        """Solve the master with binary pattern variables over the current columns."""
        self._solve_counter += 1
        for var in self.x.values():
            var.VType = gu.GRB.BINARY
            var.UB = 1.0
        self.Model.Params.MIPGap = 0.0
        self._optimize('integer')

    def _optimize(self, mode):
        self.Model.update()
        try:
            optimize_checked(self.Model, f"Master problem ({mode})")
        except SolverError:
            if self.verbose and self.Model.Status == gu.GRB.INFEASIBLE:
                self._log_iis()
            raise

        self._objective = self.Model.ObjVal
        self._values = {pid: var.X for pid, var in self.x.items()}
        if mode == 'relaxed':
            self._duals = {pid: constr.Pi for pid, constr in self.cons_cover.items()}
        else:
            self._duals = None
        self._last_mode = mode
        self._stale = False

    def _log_iis(self):
        self.Model.computeIIS()
        logger.error('The following constraints are in the IIS:')
        for c in self.Model.getConstrs():
            if c.IISConstr:
                logger.error(f'\t{c.ConstrName}: {self.Model.getRow(c)} {c.Sense} {c.RHS}')

    def _require_solution(self):
        if self._last_mode is None:
            raise NotSolvedError("Master problem has not been solved yet")
        if self._stale:
            raise StaleStateError("Master problem changed since the last solve")

    def getObjective(self):
        if self._objective is None:
            raise NotSolvedError("Master problem has not been solved yet")
        return self._objective

    def getDuals(self):
        """Dual price of every cover constraint, keyed by piece id."""
        self._require_solution()
        if self._last_mode != 'relaxed':
            raise StaleStateError("Dual prices are only available after solving the LP relaxation")
        return dict(self._duals)

    def getValues(self):
        self._require_solution()
        return dict(self._values)

    def getSelectedPatterns(self, tolerance=0.01):
        self._require_solution()
        return [pattern for pattern in self.patterns if self._values[pattern.id] > tolerance]

    def check_fractionality(self, tolerance=1e-8):
        """
        Check whether the last solution is integral and find the most fractional pattern.
        Tie-break: smallest pattern position.

        Returns:
            tuple: (all_integer: bool, most_frac_info: dict or None)
        """
        self._require_solution()
        most_frac_info = None
        for pattern in self.patterns:
            value = self._values[pattern.id]
            frac_part = min(value - math.floor(value), math.ceil(value) - value)
            if frac_part > tolerance and (most_frac_info is None or
                                          frac_part > most_frac_info['fractionality'] + 1e-10):
                most_frac_info = {'pattern': pattern.id, 'value': value, 'fractionality': frac_part}
        return most_frac_info is None, most_frac_info

    def getRow(self, piece):
        """Current left-hand side of cover(piece) as {pattern id: coefficient}."""
        self.Model.update()
        row = self.Model.getRow(self.cons_cover[piece.id])
        return {self.pattern_by_var[row.getVar(i).VarName].id: row.getCoeff(i) for i in range(row.size())}

    def writeModel(self, filename):
        self.Model.update()
        self.Model.write(filename)
        logger.info(f"Master model written to {filename}")
