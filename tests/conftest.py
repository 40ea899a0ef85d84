import logging
from pathlib import Path

import matplotlib
import pytest

matplotlib.use('Agg')

from patterns import Piece  # noqa: E402

DATA_DIR = Path(__file__).resolve().parent.parent / 'data'

SMALL_LENGTHS = [110, 150, 125, 140, 105, 123]


def make_pieces(lengths, first_id=1):
    return [Piece(first_id + i, length) for i, length in enumerate(lengths)]


@pytest.fixture
def small_pieces():
    """Six pieces of the small instance; no two of them fit on a rod of 150."""
    return make_pieces(SMALL_LENGTHS)


@pytest.fixture
def equal_pieces():
    """Six pieces of length 4; three fit on a rod of 12."""
    return make_pieces([4] * 6)


@pytest.fixture
def data_dir():
    return DATA_DIR


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
