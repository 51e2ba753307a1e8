from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from .grid import can_fit_anywhere, format_grid
from .pieces import DEFAULT_LIBRARY, Piece, PieceLibrary, clone_piece, random_rotation
from .rng import Seed, SeededRandom, weighted_choice
from .rules import BAG_SIZE

logger = logging.getLogger(__name__)


Bag = Tuple[Optional[Piece], ...]


class BagGenerationError(RuntimeError):
    """The piece library has nothing that can be dealt."""


class BagGenerator:
    """Deals batches of pieces under size-distribution caps.

    Per bag: at most two 4-6 cell pieces, at most one 7+ cell piece and at
    most one 6+ cell piece, with no repeated ids while alternatives remain.
    """

    def __init__(self, library: PieceLibrary = DEFAULT_LIBRARY, bag_size: int = BAG_SIZE) -> None:
        self.library = library
        self.bag_size = int(bag_size)

    def _allowed(self, candidate: Piece, chosen: List[Piece], used_ids: set) -> bool:
        if self.library.weight(candidate.id) <= 0:
            return False
        if candidate.id in used_ids:
            return False
        n = candidate.cell_count
        large = sum(1 for p in chosen if 4 <= p.cell_count < 7)
        huge = sum(1 for p in chosen if p.cell_count >= 7)
        big = sum(1 for p in chosen if p.cell_count >= 6)
        if large >= 2 and 4 <= n < 7:
            return False
        if huge >= 1 and n >= 7:
            return False
        if big >= 1 and n >= 6:
            return False
        return True

    def _draw(self, rng: SeededRandom, candidates: List[Piece]) -> Piece:
        return weighted_choice(rng, candidates, lambda p: self.library.weight(p.id))

    def generate(self, rng: SeededRandom, board: Optional[np.ndarray] = None) -> List[Piece]:
        fallback = self.library.selectable()
        if not fallback:
            raise BagGenerationError("Piece library has no piece with a positive weight")

        chosen: List[Piece] = []
        used_ids: set = set()
        for _ in range(self.bag_size):
            candidates = [p for p in self.library if self._allowed(p, chosen, used_ids)]
            if candidates:
                template = self._draw(rng, candidates)
                used_ids.add(template.id)
            else:
                template = self._draw(rng, fallback)
            chosen.append(random_rotation(clone_piece(template), rng))

        if board is not None:
            self._apply_hail_mary(chosen, board)

        logger.debug("Generated bag %s", [p.id for p in chosen])
        return chosen

    def _apply_hail_mary(self, pieces: List[Piece], board: np.ndarray) -> None:
        if any(can_fit_anywhere(board, p) for p in pieces):
            return
        largest = max(range(len(pieces)), key=lambda i: pieces[i].cell_count)
        replaced = pieces[largest].id
        pieces[largest] = self.library.hail_mary_piece()
        logger.warning("No dealt piece fits; replacing %s in slot %d with %s", replaced, largest, pieces[largest].id)
        logger.debug("Board at hail mary:\n%s", format_grid(board))


class BagManager:
    """Holds the current bag and refills it once every slot has been used."""

    def __init__(
        self,
        seed: Optional[Seed] = None,
        generator: Optional[BagGenerator] = None,
        board: Optional[np.ndarray] = None,
    ) -> None:
        self.generator = generator or BagGenerator()
        self.rng = SeededRandom(seed)
        self._slots: List[Optional[Piece]] = list(self.generator.generate(self.rng, board))

    @property
    def seed(self) -> str:
        return self.rng.seed

    def get_bag(self) -> Bag:
        return tuple(None if p is None else clone_piece(p) for p in self._slots)

    def get_piece(self, index: int) -> Optional[Piece]:
        if not 0 <= index < len(self._slots):
            return None
        piece = self._slots[index]
        return None if piece is None else clone_piece(piece)

    def remaining_pieces(self) -> List[Piece]:
        return [clone_piece(p) for p in self._slots if p is not None]

    def has_pieces(self) -> bool:
        return any(p is not None for p in self._slots)

    def remove_piece(self, index: int, board: Optional[np.ndarray] = None) -> bool:
        if not 0 <= index < len(self._slots) or self._slots[index] is None:
            return False
        self._slots[index] = None
        if not self.has_pieces():
            # all-or-nothing refill
            self._slots = list(self.generator.generate(self.rng, board))
        return True

    def reset(self, seed: Optional[Seed] = None, board: Optional[np.ndarray] = None) -> None:
        if seed is not None:
            self.rng = SeededRandom(seed)
        self._slots = list(self.generator.generate(self.rng, board))
