from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .pieces import Coordinate, Piece
from .rules import BOARD_SIZE

logger = logging.getLogger(__name__)


@dataclass
class CompletedLines:
    rows: List[int] = field(default_factory=list)
    cols: List[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows) + len(self.cols)

    def __bool__(self) -> bool:
        return self.count > 0


@dataclass
class GhostPreview:
    coords: List[Coordinate]
    valid: bool
    would_complete_rows: List[int] = field(default_factory=list)
    would_complete_cols: List[int] = field(default_factory=list)


def _fits(board: np.ndarray, piece: Piece, origin_x: int, origin_y: int) -> bool:
    if piece is None or not piece.cells:
        return False
    height, width = board.shape
    for x, y in piece.cells_at(origin_x, origin_y):
        if not (0 <= x < width and 0 <= y < height):
            return False
        if board[y, x] != 0:
            return False
    return True


def can_fit_anywhere(board: np.ndarray, piece: Piece) -> bool:
    """Exhaustive scan of every origin on `board` for `piece`."""
    height, width = board.shape
    for y in range(height):
        for x in range(width):
            if _fits(board, piece, x, y):
                return True
    return False


def _full_lines(board: np.ndarray) -> CompletedLines:
    full = board != 0
    rows = [int(r) for r in np.where(np.all(full, axis=1))[0]]
    cols = [int(c) for c in np.where(np.all(full, axis=0))[0]]
    return CompletedLines(rows=rows, cols=cols)


def format_grid(board: np.ndarray) -> str:
    return "\n".join("".join("█" if cell else "·" for cell in row) for row in board)


class BoardEngine:
    """Fixed 8x8 occupancy grid.

    Cells are 0 (empty) or 1 (occupied), indexed ``grid[y, x]``. The grid is
    only ever written by `place`, `clear_lines` and `reset`; readers get
    read-only copies from `snapshot`.
    """

    def __init__(self, size: int = BOARD_SIZE) -> None:
        self.size = int(size)
        self._grid = np.zeros((self.size, self.size), dtype=np.int8)

    @classmethod
    def from_cells(cls, rows: Sequence[Sequence[int]]) -> "BoardEngine":
        arr = np.asarray(rows, dtype=np.int8)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise ValueError(f"Board must be square, got shape {arr.shape}")
        if arr.shape[0] != BOARD_SIZE:
            raise ValueError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}, got {arr.shape}")
        if not np.isin(arr, (0, 1)).all():
            raise ValueError("Board cells must be 0 or 1")
        engine = cls(arr.shape[0])
        engine._grid = arr.copy()
        return engine

    def reset(self) -> None:
        self._grid.fill(0)

    def snapshot(self) -> np.ndarray:
        snap = self._grid.copy()
        snap.setflags(write=False)
        return snap

    def can_place(self, piece: Optional[Piece], origin_x: int, origin_y: int) -> bool:
        return _fits(self._grid, piece, origin_x, origin_y)

    def place(self, piece: Optional[Piece], origin_x: int, origin_y: int) -> bool:
        if not self.can_place(piece, origin_x, origin_y):
            return False
        for x, y in piece.cells_at(origin_x, origin_y):
            self._grid[y, x] = 1
        return True

    def detect_completed_lines(self) -> CompletedLines:
        """Report full rows and columns without clearing them.

        A cell on both a full row and a full column shows up in both lists.
        """
        return _full_lines(self._grid)

    def clear_lines(self, rows: Iterable[int], cols: Iterable[int]) -> None:
        # rows first, then columns; intersections just get written to 0 twice
        for row in rows:
            self._grid[row, :] = 0
        for col in cols:
            self._grid[:, col] = 0

    def check_potential_completion(self, piece: Optional[Piece], origin_x: int, origin_y: int) -> CompletedLines:
        if not self.can_place(piece, origin_x, origin_y):
            return CompletedLines()
        scratch = self._grid.copy()
        for x, y in piece.cells_at(origin_x, origin_y):
            scratch[y, x] = 1
        return _full_lines(scratch)

    def preview(self, piece: Optional[Piece], origin_x: int, origin_y: int) -> GhostPreview:
        coords = piece.cells_at(origin_x, origin_y) if piece is not None else []
        valid = self.can_place(piece, origin_x, origin_y)
        lines = self.check_potential_completion(piece, origin_x, origin_y)
        return GhostPreview(
            coords=coords,
            valid=valid,
            would_complete_rows=lines.rows,
            would_complete_cols=lines.cols,
        )

    def can_fit_anywhere(self, piece: Optional[Piece]) -> bool:
        if piece is None:
            return False
        return can_fit_anywhere(self._grid, piece)

    def valid_origins(self, piece: Piece) -> List[Tuple[int, int]]:
        return [
            (x, y)
            for y in range(self.size)
            for x in range(self.size)
            if self.can_place(piece, x, y)
        ]

    def is_game_over(self, bag_slots: Iterable[Optional[Piece]]) -> bool:
        """True only when no remaining piece fits at any origin.

        Must be called on a board whose detected lines have already been
        cleared; an empty bag is a waiting state, not a loss.
        """
        pieces = [p for p in bag_slots if p is not None]
        if not pieces:
            return False
        for piece in pieces:
            if self.can_fit_anywhere(piece):
                return False
        logger.debug("No placement left for %s on board:\n%s", [p.id for p in pieces], format_grid(self._grid))
        return True

    def filled_ratio(self) -> float:
        return float(np.count_nonzero(self._grid)) / float(self.size * self.size)
