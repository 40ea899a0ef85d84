from collections import defaultdict


def check_cutting_plan(patterns, pieces, rod_length, verbose=False):
    """
    Check a cutting plan against the instance.

    Parameters:
    - patterns (list): Patterns of the plan (one rod each)
    - pieces (list): Pieces of the instance
    - rod_length (int): Rod length
    - verbose (bool): If True, print the findings

    Returns:
    - results (dict):
        feasible: every piece is cut and no rod is overfull
        uncovered: ids of pieces cut by no pattern
        overfull: ids of patterns longer than the rod
        duplicated: {piece id: count} for pieces cut more than once
        rods: number of rods used
        waste: total unused length
    """
    counts = defaultdict(int)
    for pattern in patterns:
        for piece in pattern:
            counts[piece.id] += 1

    uncovered = [piece.id for piece in pieces if counts[piece.id] == 0]
    overfull = [pattern.id for pattern in patterns if not pattern.is_feasible(rod_length)]
    duplicated = {pid: n for pid, n in counts.items() if n > 1}

    results = {
        'feasible': not uncovered and not overfull,
        'uncovered': uncovered,
        'overfull': overfull,
        'duplicated': duplicated,
        'rods': len(patterns),
        'waste': sum(rod_length - pattern.total_length() for pattern in patterns),
    }

    if verbose:
        print("CUTTING PLAN CHECK")
        print(f"  Rods used: {results['rods']}, total waste: {results['waste']}")
        if uncovered:
            print(f"  Uncovered pieces: {uncovered}")
        if overfull:
            print(f"  Overfull patterns: {overfull}")
        if duplicated:
            print(f"  Pieces cut more than once: {duplicated}")
        print(f"  Feasible: {results['feasible']}")

    return results
