import gurobipy as gu

from label import solve_knapsack_labeling
from logging_config import get_logger
from patterns import Pattern, PricingResult
from Utils.Generell.utils import create_model, optimize_checked

logger = get_logger(__name__)

# Pieces whose dual is not above this value cannot improve a pattern
DUAL_EPS = 1e-9


def pricing_candidates(duals, pieces, capacity):
    """Pieces with positive dual price that fit on an empty rod, in input order."""
    return [p for p in pieces if duals.get(p.id, 0.0) > DUAL_EPS and p.length <= capacity]


def ratio_key(duals, piece):
    """Sort key for the greedy heuristic: best dual per unit length first, then lowest id."""
    return -duals.get(piece.id, 0.0) / piece.length, piece.id


class Subproblem:
    """
    Pricing subproblem as a 0/1 knapsack MIP.

        max  sum_p dual[p] * a_p
        s.t. sum_p length[p] * a_p <= capacity
             a_p in {0, 1}

    MIPGap is 0, so the optimal selection is exact and can be used to prove that
    no improving pattern exists.

    Args:
        duals: Dual prices {piece id: value}
        pieces: Pieces of the instance
        capacity: Rod length
        col_id: Id given to the generated pattern
    """

    def __init__(self, duals, pieces, capacity, col_id, verbose=False, deterministic=False, time_limit=None):
        self.duals = duals
        self.capacity = capacity
        self.col_id = col_id
        self.verbose = verbose
        self.candidates = pricing_candidates(duals, pieces, capacity)
        self.Model = create_model("Subproblem", deterministic=deterministic, time_limit=time_limit)
        self.a = {}
        self._solved = False

    def buildModel(self):
        self.Model.Params.MIPGap = 0.0
        self.Model.Params.MIPGapAbs = 0.0
        self.genVars()
        self.genCons()
        self.genObj()
        self.Model.update()

    def genVars(self):
        for piece in self.candidates:
            self.a[piece.id] = self.Model.addVar(vtype=gu.GRB.BINARY, name=f"a[{piece.id}]")

    def genCons(self):
        self.Model.addLConstr(
            gu.quicksum(piece.length * self.a[piece.id] for piece in self.candidates) <= self.capacity,
            name="capacity")

    def genObj(self):
        self.Model.setObjective(
            gu.quicksum(self.duals[piece.id] * self.a[piece.id] for piece in self.candidates),
            sense=gu.GRB.MAXIMIZE)

    def solModel(self):
        if self.candidates:
            optimize_checked(self.Model, f"Pricing subproblem (column {self.col_id})")
        self._solved = True

    def getSelection(self):
        if not self._solved or not self.candidates:
            return []
        return [piece for piece in self.candidates if self.a[piece.id].X > 0.5]

    def getObjective(self):
        return sum(self.duals[piece.id] for piece in self.getSelection())

    def getPattern(self):
        selection = self.getSelection()
        if not selection:
            return None
        return Pattern(self.col_id, selection, self.capacity)


def greedy_knapsack(duals, pieces, capacity):
    """
    Greedy knapsack: take candidates by decreasing dual/length ratio while they fit.

    Returns:
        list: Selected pieces, in the order they were taken
    """
    selection = []
    used = 0
    for piece in sorted(pricing_candidates(duals, pieces, capacity), key=lambda p: ratio_key(duals, p)):
        if used + piece.length <= capacity:
            selection.append(piece)
            used += piece.length
    return selection


def price_pattern(duals, pieces, capacity, col_id, method='gurobi', use_heuristic=True, threshold=1e-6,
                  time_limit=None, deterministic=False, verbose=False):
    """
    Find a pattern with the most negative reduced cost 1 - sum(dual).

    With use_heuristic the greedy selection is tried first and kept only if its
    reduced cost is below -threshold. Any other outcome comes from the exact
    knapsack, so a non-improving result is always proven optimal.

    Args:
        duals: Dual prices {piece id: value}
        pieces: Pieces of the instance
        capacity: Rod length
        col_id: Id of the new pattern
        method: Exact oracle, 'gurobi' (knapsack MIP) or 'labeling' (dynamic programming)
        use_heuristic: Try the greedy heuristic first
        threshold: Reduced cost tolerance

    Returns:
        PricingResult
    """
    if capacity <= 0:
        return PricingResult(None, 0.0, source='exact')

    if use_heuristic:
        selection = greedy_knapsack(duals, pieces, capacity)
        objective = sum(duals[piece.id] for piece in selection)
        if selection and 1.0 - objective < -threshold:
            logger.debug(f"Greedy pattern accepted for column {col_id} (reduced cost {1.0 - objective:.6f})")
            return PricingResult(Pattern(col_id, selection, capacity), objective, source='heuristic')
        logger.debug(f"Greedy reduced cost {1.0 - objective:.6f} not improving, solving exact pricing")

    if method == 'gurobi':
        subproblem = Subproblem(duals, pieces, capacity, col_id, verbose=verbose, deterministic=deterministic,
                                time_limit=time_limit)
        subproblem.buildModel()
        subproblem.solModel()
        return PricingResult(subproblem.getPattern(), subproblem.getObjective(), source='exact')
    elif method == 'labeling':
        selection, objective = solve_knapsack_labeling(duals, pricing_candidates(duals, pieces, capacity), capacity)
        pattern = Pattern(col_id, selection, capacity) if selection else None
        return PricingResult(pattern, objective, source='exact')
    else:
        raise ValueError(f"Unknown pricing method: {method}")
