"""
Error kinds raised by the cutting stock column generation.

None of these are retried: column generation depends on exact feedback from
every solve, so each failure is passed on to the caller of CG.solve().
"""


class CuttingStockError(Exception):
    """Base class for all cutting stock errors."""


class ParseError(CuttingStockError):
    """Malformed piece or pattern input."""

    def __init__(self, message, source=None, line=None):
        self.source = source
        self.line = line
        location = ''
        if source is not None:
            location = f'{source}'
            if line is not None:
                location += f':{line}'
            location += ': '
        super().__init__(f'{location}{message}')


class ModelConstructionError(CuttingStockError):
    """A model invariant required before solving does not hold."""


class SolverError(CuttingStockError):
    """The solver engine reported infeasibility, unboundedness or a failure."""

    def __init__(self, message, status=None):
        self.status = status
        super().__init__(message)


class SolverTimeout(SolverError):
    """A solve exceeded its time limit."""


class StaleStateError(CuttingStockError):
    """Solution data requested after the model changed without a new solve."""


class NotSolvedError(CuttingStockError):
    """Solution data requested before any solve."""
