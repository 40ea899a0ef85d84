from exceptions import ModelConstructionError
from patterns import Pattern


def initial_cg_starting_sol(pieces, rod_length, first_col_id=1):
    """
    Initial columns for the master: every piece alone on its own rod.

    This covers every piece regardless of the lengths, so the first restricted
    master is always feasible.

    Args:
        pieces: Pieces of the instance
        rod_length: Rod length
        first_col_id: Id of the first pattern

    Returns:
        list: One singleton pattern per piece, in piece order

    Raises:
        ModelConstructionError: A piece is longer than the rod
    """
    too_long = [piece for piece in pieces if piece.length > rod_length]
    if too_long:
        raise ModelConstructionError(
            f"Pieces {[p.id for p in too_long]} with lengths {[p.length for p in too_long]} "
            f"do not fit on a rod of length {rod_length}")

    return [Pattern(first_col_id + i, [piece], rod_length) for i, piece in enumerate(pieces)]


def next_column_id(patterns):
    """Id for the next generated column."""
    return max((pattern.id for pattern in patterns), default=0) + 1
