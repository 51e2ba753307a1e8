from __future__ import annotations

from typing import List

import pytest

from brick_crush.game import BOARD_SIZE, Piece, PieceLibrary


def checkerboard_rows() -> List[List[int]]:
    """Cells with even x + y filled; every empty cell is isolated."""
    return [[1 if (x + y) % 2 == 0 else 0 for x in range(BOARD_SIZE)] for y in range(BOARD_SIZE)]


@pytest.fixture
def mono_only_rows() -> List[List[int]]:
    """Only a 1-cell piece fits anywhere; (0, 0) is one of the holes."""
    rows = checkerboard_rows()
    for x in range(1, BOARD_SIZE):
        rows[0][x] = 1
    for y in range(1, BOARD_SIZE):
        rows[y][0] = 1
    rows[0][0] = 0
    return rows


@pytest.fixture
def row_zero_gap_rows() -> List[List[int]]:
    """Row 0 full except (7, 0); the rest is a checkerboard of isolated holes."""
    rows = checkerboard_rows()
    rows[0] = [1] * BOARD_SIZE
    rows[0][7] = 0
    return rows


@pytest.fixture
def l_piece() -> Piece:
    # ###
    # #..
    return Piece("L", [(0, 0), (1, 0), (2, 0), (0, 1)])


@pytest.fixture
def dot_library() -> PieceLibrary:
    return PieceLibrary([Piece("DOT", [(0, 0)])], {"DOT": 1.0})


@pytest.fixture
def square_library() -> PieceLibrary:
    return PieceLibrary([Piece("SQ", [(0, 0), (1, 0), (0, 1), (1, 1)])], {"SQ": 1.0})


@pytest.fixture
def checker_rows() -> List[List[int]]:
    return checkerboard_rows()
