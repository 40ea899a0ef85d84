"""
Dynamic programming pricing for the cutting stock column generation.

Exact 0/1 knapsack over integer piece lengths. Layer i of the table holds, for
every used length w, the best dual value reachable with the first i candidates;
a boolean table records which layers took their piece so the selection can be
recovered by walking back from the full rod.
"""
import numpy as np

from logging_config import get_logger

logger = get_logger(__name__)

# A piece is only taken if it improves a label by more than this
IMPROVEMENT_EPS = 1e-12


def solve_knapsack_labeling(duals, pieces, capacity):
    """
    Solve max sum(dual[p]) s.t. sum(length[p]) <= capacity exactly.

    Args:
        duals: Dual prices {piece id: value}
        pieces: Candidate pieces (positive dual, length <= capacity)
        capacity: Rod length

    Returns:
        tuple: (selected pieces in input order, objective)
    """
    if capacity <= 0 or not pieces:
        return [], 0.0

    cap = int(capacity)
    best = np.zeros(cap + 1)
    take = np.zeros((len(pieces), cap + 1), dtype=bool)

    for i, piece in enumerate(pieces):
        w = piece.length
        if w > cap:
            continue
        candidate = best[:cap + 1 - w] + duals[piece.id]
        improved = candidate > best[w:] + IMPROVEMENT_EPS
        take[i, w:] = improved
        best[w:] = np.where(improved, candidate, best[w:])

    selection = []
    remaining = cap
    for i in range(len(pieces) - 1, -1, -1):
        if take[i, remaining]:
            selection.append(pieces[i])
            remaining -= pieces[i].length
    selection.reverse()

    objective = sum(duals[piece.id] for piece in selection)
    logger.debug(f"Labeling: {len(selection)} pieces selected, objective {objective:.6f}, "
                 f"table {take.shape[0]}x{take.shape[1]}")
    return selection, objective
