from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .rng import SeededRandom


Coordinate = Tuple[int, int]

HAIL_MARY_ID = "MONO"


def normalize_cells(cells: Iterable[Coordinate]) -> List[Coordinate]:
    """Shift cells so that min x and min y are both 0."""
    cells = list(cells)
    if not cells:
        return []
    min_x = min(x for x, _ in cells)
    min_y = min(y for _, y in cells)
    return [(x - min_x, y - min_y) for x, y in cells]


@dataclass
class Piece:
    """A polyomino footprint.

    `cells` are (x, y) offsets from the piece origin, x = column, y = row.
    """

    id: str
    cells: List[Coordinate] = field(default_factory=list)

    @property
    def cell_count(self) -> int:
        return len(self.cells)

    @property
    def size(self) -> Tuple[int, int]:
        """Bounding box as (width, height)."""
        if not self.cells:
            return 0, 0
        width = max(x for x, _ in self.cells) + 1
        height = max(y for _, y in self.cells) + 1
        return width, height

    def shape(self) -> np.ndarray:
        w, h = self.size
        s = np.zeros((h, w), dtype=np.int8)
        for x, y in self.cells:
            s[y, x] = 1
        return s

    def cells_at(self, origin_x: int, origin_y: int) -> List[Coordinate]:
        return [(origin_x + x, origin_y + y) for x, y in self.cells]


def clone_piece(piece: Piece) -> Piece:
    return Piece(piece.id, [(x, y) for x, y in piece.cells])


def rotate_90_clockwise(piece: Piece) -> Piece:
    """Quarter turn clockwise on screen (y grows downward)."""
    if not piece.cells:
        return clone_piece(piece)
    cells = normalize_cells(piece.cells)
    height = max(y for _, y in cells) + 1
    rotated = [(height - 1 - y, x) for x, y in cells]
    return Piece(piece.id, normalize_cells(rotated))


def random_rotation(piece: Piece, rng: SeededRandom) -> Piece:
    turns = int(rng.next() * 4)
    rotated = clone_piece(piece)
    for _ in range(turns):
        rotated = rotate_90_clockwise(rotated)
    return rotated


def _piece(piece_id: str, rows: Sequence[str]) -> Piece:
    cells = [(x, y) for y, row in enumerate(rows) for x, ch in enumerate(row) if ch == "#"]
    return Piece(piece_id, cells)


DEFAULT_PIECES: Tuple[Piece, ...] = (
    _piece("MONO", ["#"]),
    _piece("DOMINO_H", ["##"]),
    _piece("DOMINO_V", ["#", "#"]),
    _piece("TROMINO_I", ["###"]),
    _piece("TROMINO_L", ["#.", "##"]),
    _piece("TETROMINO_I", ["####"]),
    _piece("TETROMINO_O", ["##", "##"]),
    _piece("TETROMINO_T", [".#.", "###"]),
    _piece("TETROMINO_L", ["#.", "#.", "##"]),
    _piece("TETROMINO_J", [".#", ".#", "##"]),
    _piece("TETROMINO_S", [".##", "##."]),
    _piece("TETROMINO_Z", ["##.", ".##"]),
    _piece("PENTOMINO_I", ["#####"]),
    _piece("HEXOMINO_3X2", ["###", "###"]),
    _piece("BIG_L_3X3", ["#..", "#..", "###"]),
    _piece("BIG_BLOCK_3X3", ["###", "###", "###"]),
)

# Smaller pieces are slightly more common. MONO is only ever dealt as a hail mary.
DEFAULT_WEIGHTS: Dict[str, float] = {
    "MONO": 0.0,
    "DOMINO_H": 1.8,
    "DOMINO_V": 1.8,
    "TROMINO_I": 1.5,
    "TROMINO_L": 1.5,
    "TETROMINO_I": 1.0,
    "TETROMINO_O": 1.2,
    "TETROMINO_T": 1.2,
    "TETROMINO_L": 1.0,
    "TETROMINO_J": 1.0,
    "TETROMINO_S": 1.0,
    "TETROMINO_Z": 1.0,
    "PENTOMINO_I": 0.8,
    "HEXOMINO_3X2": 0.8,
    "BIG_L_3X3": 0.8,
    "BIG_BLOCK_3X3": 0.8,
}


class PieceLibrary:
    """Immutable catalog of piece templates and their selection weights.

    Templates are never handed out directly; `get` and `selectable` callers
    receive the template objects for reading only, and anything that ends up
    in a bag goes through `clone_piece` first.
    """

    def __init__(self, pieces: Iterable[Piece], weights: Mapping[str, float]) -> None:
        self._pieces: Tuple[Piece, ...] = tuple(clone_piece(p) for p in pieces)
        ids = [p.id for p in self._pieces]
        if len(set(ids)) != len(ids):
            raise ValueError("Piece ids must be unique")
        for p in self._pieces:
            if not p.cells:
                raise ValueError(f"Piece {p.id!r} has no cells")
            if len(set(p.cells)) != len(p.cells):
                raise ValueError(f"Piece {p.id!r} has duplicate cells")
            if normalize_cells(p.cells) != p.cells:
                raise ValueError(f"Piece {p.id!r} is not origin-normalized")
        unknown = set(weights) - set(ids)
        if unknown:
            raise ValueError(f"Weights given for unknown pieces: {sorted(unknown)}")
        for piece_id, w in weights.items():
            if w < 0:
                raise ValueError(f"Negative weight for {piece_id!r}: {w}")
        self._weights: Dict[str, float] = {pid: float(weights.get(pid, 0.0)) for pid in ids}
        self._index: Dict[str, int] = {pid: i for i, pid in enumerate(ids)}

    def __len__(self) -> int:
        return len(self._pieces)

    def __iter__(self):
        return iter(self._pieces)

    def get(self, piece_id: str) -> Optional[Piece]:
        idx = self._index.get(piece_id)
        return None if idx is None else self._pieces[idx]

    def index_of(self, piece_id: str) -> int:
        return self._index[piece_id]

    def weight(self, piece_id: str) -> float:
        return self._weights.get(piece_id, 0.0)

    def selectable(self) -> List[Piece]:
        return [p for p in self._pieces if self._weights[p.id] > 0]

    def hail_mary_piece(self) -> Piece:
        template = self.get(HAIL_MARY_ID)
        if template is None:
            return Piece(HAIL_MARY_ID, [(0, 0)])
        return clone_piece(template)


DEFAULT_LIBRARY = PieceLibrary(DEFAULT_PIECES, DEFAULT_WEIGHTS)
