import numbers


class Piece:
    """
    A demand item of the cutting stock problem.

    Pieces are identified by their id. Two pieces with the same length are still
    two separate demand items and must both be cut.

    Attributes:
        id: Piece index as given in the input
        length: Required length (positive integer)
    """

    def __init__(self, id, length):
        if isinstance(length, bool) or not isinstance(length, numbers.Integral):
            raise ValueError(f"Piece {id}: length must be an integer, got {length!r}")
        if length <= 0:
            raise ValueError(f"Piece {id}: length must be positive, got {length}")
        self._id = int(id)
        self._length = int(length)

    @property
    def id(self):
        return self._id

    @property
    def length(self):
        return self._length

    def __eq__(self, other):
        if not isinstance(other, Piece):
            return NotImplemented
        return self._id == other._id

    def __hash__(self):
        return hash(('Piece', self._id))

    def __repr__(self):
        return f"Piece(id={self._id}, length={self._length})"

    def __str__(self):
        return f"({self._id},{self._length})"


class Pattern:
    """
    A cutting pattern: the pieces cut from one rod.

    A pattern is a column of the master problem. It is built once (by pricing,
    initialization or input reading) and never changed afterwards.

    Attributes:
        id: Column index
        pieces: Tuple of pieces in cutting order
        capacity: Rod length the pattern was built for
    """

    def __init__(self, id, pieces, capacity):
        pieces = tuple(pieces)
        seen = set()
        for piece in pieces:
            if piece.id in seen:
                raise ValueError(f"Pattern {id}: piece {piece.id} listed more than once")
            seen.add(piece.id)
        self._id = id
        self._pieces = pieces
        self._piece_ids = frozenset(seen)
        self._capacity = capacity

    @classmethod
    def from_membership(cls, id, row, pieces, capacity):
        """Build a pattern from a 0/1 row aligned with `pieces`."""
        if len(row) != len(pieces):
            raise ValueError(f"Pattern {id}: row has {len(row)} entries for {len(pieces)} pieces")
        return cls(id, [piece for flag, piece in zip(row, pieces) if int(flag) == 1], capacity)

    @property
    def id(self):
        return self._id

    @property
    def pieces(self):
        return self._pieces

    @property
    def capacity(self):
        return self._capacity

    def total_length(self):
        return sum(piece.length for piece in self._pieces)

    def waste(self):
        return self._capacity - self.total_length()

    def is_feasible(self, capacity=None):
        if capacity is None:
            capacity = self._capacity
        return self.total_length() <= capacity

    def contains(self, piece):
        return piece.id in self._piece_ids

    def membership_row(self, pieces):
        return [1 if self.contains(piece) else 0 for piece in pieces]

    def is_empty(self):
        return not self._pieces

    def __contains__(self, piece):
        return self.contains(piece)

    def __iter__(self):
        return iter(self._pieces)

    def __len__(self):
        return len(self._pieces)

    def __eq__(self, other):
        if not isinstance(other, Pattern):
            return NotImplemented
        return self._id == other._id

    def __hash__(self):
        return hash(('Pattern', self._id))

    def __repr__(self):
        return f"Pattern(id={self._id}, lengths={[p.length for p in self._pieces]}, capacity={self._capacity})"

    def __str__(self):
        return f"{self._id}[{','.join(str(p.length) for p in self._pieces)}]"


class PricingResult:
    """
    Outcome of one pricing round.

    Attributes:
        pattern: Pattern found by pricing, or None if the selection is empty
        objective: Sum of dual prices of the selected pieces
        reduced_cost: 1 - objective (every pattern costs one rod)
        source: 'heuristic' or 'exact'
    """

    def __init__(self, pattern, objective, source='exact'):
        self.pattern = pattern
        self.objective = objective
        self.reduced_cost = 1.0 - objective
        self.source = source

    def is_improving(self, threshold):
        return self.pattern is not None and self.reduced_cost < -threshold

    def __repr__(self):
        return (f"PricingResult(pattern={self.pattern}, objective={self.objective:.6f}, "
                f"reduced_cost={self.reduced_cost:.6f}, source={self.source})")
