import pytest

from patterns import Pattern, Piece, PricingResult
from tests.conftest import make_pieces


def test_piece_identity_is_by_id():
    a = Piece(1, 100)
    b = Piece(2, 100)
    assert a != b
    assert a == Piece(1, 100)
    assert len({a, b, Piece(1, 100)}) == 2


@pytest.mark.parametrize('length', [0, -5, 2.5, '10', True])
def test_piece_rejects_bad_lengths(length):
    with pytest.raises(ValueError):
        Piece(1, length)


def test_piece_is_read_only():
    piece = Piece(3, 40)
    with pytest.raises(AttributeError):
        piece.length = 50
    assert (piece.id, piece.length) == (3, 40)


def test_pattern_lengths_and_feasibility():
    pieces = make_pieces([60, 50, 45])
    pattern = Pattern(1, pieces[:2], 120)
    assert pattern.total_length() == 110
    assert pattern.waste() == 10
    assert pattern.is_feasible()
    assert not pattern.is_feasible(100)
    assert not Pattern(2, pieces, 120).is_feasible()


def test_pattern_containment_uses_piece_identity():
    first, twin = Piece(1, 50), Piece(2, 50)
    pattern = Pattern(1, [first], 100)
    assert pattern.contains(first)
    assert first in pattern
    assert twin not in pattern


def test_pattern_rejects_repeated_piece():
    piece = Piece(1, 10)
    with pytest.raises(ValueError):
        Pattern(1, [piece, piece], 100)


def test_pattern_equality_is_by_id():
    pieces = make_pieces([10, 20])
    assert Pattern(1, pieces[:1], 50) == Pattern(1, pieces[1:], 50)
    assert Pattern(1, pieces[:1], 50) != Pattern(2, pieces[:1], 50)


def test_membership_row_round_trip():
    pieces = make_pieces([30, 40, 50, 60, 70])
    row = [1, 0, 1, 0, 1]
    pattern = Pattern.from_membership(7, row, pieces, 200)
    assert [p.id for p in pattern] == [1, 3, 5]
    assert pattern.membership_row(pieces) == row


def test_membership_row_width_must_match():
    with pytest.raises(ValueError):
        Pattern.from_membership(1, [1, 0], make_pieces([10, 20, 30]), 100)


def test_empty_pattern():
    pattern = Pattern(1, [], 0)
    assert pattern.is_empty()
    assert pattern.total_length() == 0
    assert pattern.is_feasible()


def test_pricing_result_reduced_cost():
    pattern = Pattern(9, make_pieces([10, 20]), 40)
    result = PricingResult(pattern, 1.5)
    assert result.reduced_cost == pytest.approx(-0.5)
    assert result.is_improving(1e-6)
    assert not PricingResult(None, 0.0).is_improving(1e-6)
    assert not PricingResult(pattern, 1.0).is_improving(1e-6)
