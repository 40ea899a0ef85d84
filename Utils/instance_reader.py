"""
Readers for piece and pattern files.

Piece file: whitespace separated "index length" pairs, any number per line.
Pattern file: one line per pattern with a 0/1 token per piece, in piece order.
"""
import io

import numpy as np
import pandas as pd

from exceptions import ParseError
from patterns import Pattern, Piece


def parse_pieces(text, source='<string>'):
    """
    Parse "index length" pairs.

    Returns:
        list: Pieces in input order

    Raises:
        ParseError: Odd number of tokens, non-integer tokens, bad lengths or duplicate ids
    """
    tokens = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        for token in line.split():
            tokens.append((token, line_no))

    if len(tokens) % 2 != 0:
        raise ParseError(f"expected index/length pairs, got {len(tokens)} tokens", source, tokens[-1][1])

    values = []
    for token, line_no in tokens:
        try:
            values.append(int(token))
        except ValueError as e:
            raise ParseError(f"non-integer token: {e}", source, line_no) from e

    pieces = []
    seen = set()
    for k, (index, length) in enumerate(zip(values[0::2], values[1::2])):
        line_no = tokens[2 * k][1]
        if index in seen:
            raise ParseError(f"duplicate piece index {index}", source, line_no)
        seen.add(index)
        try:
            pieces.append(Piece(index, length))
        except ValueError as e:
            raise ParseError(str(e), source, line_no) from e
    return pieces


def read_pieces(path):
    with open(path) as file:
        return parse_pieces(file.read(), source=str(path))


def parse_patterns(text, pieces, capacity, source='<string>'):
    """
    Parse 0/1 membership rows into patterns with ids 1, 2, ... (line order).

    Raises:
        ParseError: Row width differs from the number of pieces, or a token is not 0/1
    """
    lines = [(line_no, line) for line_no, line in enumerate(text.splitlines(), start=1) if line.strip()]
    if not lines:
        return []

    for line_no, line in lines:
        width = len(line.split())
        if width != len(pieces):
            raise ParseError(f"pattern row has {width} entries for {len(pieces)} pieces", source, line_no)

    frame = pd.read_csv(io.StringIO('\n'.join(line for _, line in lines)), sep=r'\s+', header=None, dtype=str)
    invalid = ~frame.isin(['0', '1'])
    if invalid.to_numpy().any():
        row = int(np.argmax(invalid.to_numpy().any(axis=1)))
        raise ParseError("pattern entries must be 0 or 1", source, lines[row][0])

    matrix = frame.astype(int).to_numpy()
    return [Pattern.from_membership(k + 1, row, pieces, capacity) for k, row in enumerate(matrix)]


def read_patterns(path, pieces, capacity):
    with open(path) as file:
        return parse_patterns(file.read(), pieces, capacity, source=str(path))
