import time

import gurobipy as gu

from exceptions import NotSolvedError
from logging_config import get_logger
from Utils.Generell.utils import create_model, optimize_checked

logger = get_logger(__name__)


class Problem:
    """
    Compact assignment model of the cutting stock problem.

    One candidate rod per piece is enough for a feasible plan.

        min  sum_k y_k
        s.t. sum_k x_ik = 1                     for every piece i
             sum_i length_i * x_ik <= L * y_k   for every rod k
             x_ik, y_k in {0, 1}

    The LP relaxation of this model only gives the bound sum(length) / L, which
    is much weaker than the column generation relaxation.
    """

    def __init__(self, pieces, rod_length, verbose=False, deterministic=False, time_limit=None):
        self.pieces = list(pieces)
        self.rod_length = rod_length
        self.K = list(range(1, len(self.pieces) + 1))
        self.verbose = verbose
        self.Model = create_model("Compact", deterministic=deterministic, time_limit=time_limit)
        self._objective = None

    def buildModel(self):
        self.t0 = time.time()
        self.genVars()
        self.genCons()
        self.genObj()
        self.Model.update()

    def genVars(self):
        self.y = self.Model.addVars(self.K, vtype=gu.GRB.BINARY, name="y")
        self.x = self.Model.addVars([p.id for p in self.pieces], self.K, vtype=gu.GRB.BINARY, name="x")

    def genCons(self):
        for piece in self.pieces:
            self.Model.addLConstr(gu.quicksum(self.x[piece.id, k] for k in self.K) == 1, name=f"cut({piece.id})")
        for k in self.K:
            self.Model.addLConstr(
                gu.quicksum(piece.length * self.x[piece.id, k] for piece in self.pieces) <= self.rod_length * self.y[k],
                name=f"length({k})")
        # Use rods in index order
        for k in self.K[1:]:
            self.Model.addLConstr(self.y[k] <= self.y[k - 1], name=f"order({k})")

    def genObj(self):
        self.Model.setObjective(gu.quicksum(self.y[k] for k in self.K), sense=gu.GRB.MINIMIZE)

    def solveModel(self):
        for var in self.Model.getVars():
            var.VType = gu.GRB.BINARY
        self.Model.Params.MIPGap = 0.0
        optimize_checked(self.Model, "Compact model")
        self._objective = self.Model.ObjVal
        if self.verbose:
            logger.print(f"Compact model solved in {time.time() - self.t0:.2f}s with {self._objective:.0f} rods")

    def solveRelaxed(self):
        for var in self.Model.getVars():
            var.VType = gu.GRB.CONTINUOUS
        optimize_checked(self.Model, "Compact model (relaxed)")
        self._objective = self.Model.ObjVal

    def getObjective(self):
        if self._objective is None:
            raise NotSolvedError("Compact model has not been solved yet")
        return self._objective

    def getRods(self):
        """Pieces cut from every used rod, {rod index: [pieces]}."""
        if self._objective is None:
            raise NotSolvedError("Compact model has not been solved yet")
        rods = {}
        for k in self.K:
            if self.y[k].X > 0.01:
                rods[k] = [piece for piece in self.pieces if self.x[piece.id, k].X > 0.01]
        return rods
