from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .bag import Bag, BagGenerator, BagManager
from .grid import BoardEngine, CompletedLines, GhostPreview
from .pieces import DEFAULT_LIBRARY, Coordinate, PieceLibrary, normalize_cells
from .rng import Seed
from .rules import ScoringRules
from .scoring import LineClearResult, PotentialScore, ScoringEngine, ScoringState

logger = logging.getLogger(__name__)


class GamePhase(Enum):
    IDLE = "idle"
    PENDING_CLEAR = "pending_clear"
    CLEARED = "cleared"
    GAME_OVER = "game_over"


class GameEvent(Enum):
    PIECE_PLACED = "piece_placed"
    PLACEMENT_INVALID = "placement_invalid"
    LINES_CLEARED = "lines_cleared"
    BAG_EXHAUSTED = "bag_exhausted"
    GAME_OVER = "game_over"


EventListener = Callable[[GameEvent, Dict[str, Any]], None]
_Fired = Tuple[GameEvent, Dict[str, Any]]


@dataclass
class GameConfig:
    random_seed: Optional[Seed] = None
    best_score: int = 0


@dataclass
class PlacementOutcome:
    placed: bool
    lines: CompletedLines = field(default_factory=CompletedLines)
    potential: Optional[PotentialScore] = None
    game_over: bool = False
    events: List[GameEvent] = field(default_factory=list)

    @property
    def pending_clear(self) -> bool:
        return self.placed and bool(self.lines)


@dataclass
class ClearOutcome:
    lines: CompletedLines
    result: LineClearResult
    game_over: bool
    events: List[GameEvent] = field(default_factory=list)


@dataclass
class _PendingClear:
    slot: int
    lines: CompletedLines


class BrickCrushGame:
    """Drives one game: placement, line clears, scoring, bag refills.

    Placement that completes lines leaves the game in ``PENDING_CLEAR``; the
    caller runs its clear animation and then calls `resolve_clear`, which
    clears the board, scores the round, vacates the slot and only then
    checks for game over. Placement is refused while a clear is pending.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[ScoringRules] = None,
        library: PieceLibrary = DEFAULT_LIBRARY,
        listeners: Iterable[EventListener] = (),
    ) -> None:
        self.config = config or GameConfig()
        self.library = library
        self.board_engine = BoardEngine()
        self.scoring = ScoringEngine(rules)
        self.bag_manager = BagManager(self.config.random_seed, BagGenerator(library), self.board_engine.snapshot())
        self.best_score = int(self.config.best_score)
        self._listeners: List[EventListener] = list(listeners)
        self._phase = GamePhase.IDLE
        self._pending: Optional[_PendingClear] = None
        self._cleared_this_bag = False
        self.pieces_placed = 0
        logger.info("New game, seed=%s", self.bag_manager.seed)

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _record(self, fired: List[_Fired], event: GameEvent, **payload: Any) -> None:
        fired.append((event, payload))

    def _notify(self, fired: List[_Fired]) -> List[GameEvent]:
        # listeners run only once the transition is complete
        for event, payload in fired:
            for listener in self._listeners:
                listener(event, payload)
        return [event for event, _ in fired]

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def board(self) -> np.ndarray:
        return self.board_engine.snapshot()

    @property
    def bag(self) -> Bag:
        return self.bag_manager.get_bag()

    @property
    def scoring_state(self) -> ScoringState:
        return self.scoring.state

    @property
    def score(self) -> int:
        return self.scoring.total_score

    @property
    def is_game_over(self) -> bool:
        return self._phase is GamePhase.GAME_OVER

    @property
    def seed(self) -> str:
        return self.bag_manager.seed

    def new_game(self, seed: Optional[Seed] = None) -> None:
        self.board_engine.reset()
        self.scoring.reset()
        self.bag_manager.reset(seed, self.board_engine.snapshot())
        self._pending = None
        self._cleared_this_bag = False
        self._phase = GamePhase.IDLE
        self.pieces_placed = 0
        logger.info("New game, seed=%s", self.bag_manager.seed)

    def preview(self, slot: int, origin_x: int, origin_y: int) -> Tuple[Optional[GhostPreview], Optional[PotentialScore]]:
        piece = self.bag_manager.get_piece(slot)
        if piece is None:
            return None, None
        ghost = self.board_engine.preview(piece, origin_x, origin_y)
        lines = len(ghost.would_complete_rows) + len(ghost.would_complete_cols)
        return ghost, self.scoring.calculate_potential_score(lines)

    def get_valid_actions(self) -> List[Tuple[int, int, int]]:
        """Every legal (slot, x, y) placement."""
        if self._phase in (GamePhase.PENDING_CLEAR, GamePhase.GAME_OVER):
            return []
        actions: List[Tuple[int, int, int]] = []
        for slot, piece in enumerate(self.bag_manager.get_bag()):
            if piece is None:
                continue
            for x, y in self.board_engine.valid_origins(piece):
                actions.append((slot, x, y))
        return actions

    def place_piece(self, slot: int, origin_x: int, origin_y: int) -> PlacementOutcome:
        fired: List[_Fired] = []
        if self._phase in (GamePhase.PENDING_CLEAR, GamePhase.GAME_OVER):
            logger.debug("Placement refused in phase %s", self._phase.value)
            return PlacementOutcome(placed=False, game_over=self.is_game_over)

        piece = self.bag_manager.get_piece(slot)
        if piece is None:
            return PlacementOutcome(placed=False)

        if not self.board_engine.place(piece, origin_x, origin_y):
            self._record(fired, GameEvent.PLACEMENT_INVALID, slot=slot, x=origin_x, y=origin_y)
            return PlacementOutcome(placed=False, events=self._notify(fired))

        self.pieces_placed += 1
        self._record(fired, GameEvent.PIECE_PLACED, slot=slot, piece_id=piece.id, x=origin_x, y=origin_y)

        lines = self.board_engine.detect_completed_lines()
        if lines:
            self._pending = _PendingClear(slot=slot, lines=lines)
            self._phase = GamePhase.PENDING_CLEAR
            logger.debug("Lines pending: rows=%s cols=%s", lines.rows, lines.cols)
            potential = self.scoring.calculate_potential_score(lines.count)
            return PlacementOutcome(placed=True, lines=lines, potential=potential, events=self._notify(fired))

        self._consume_slot(slot, fired)
        game_over = self._check_game_over(fired, GamePhase.IDLE)
        return PlacementOutcome(placed=True, game_over=game_over, events=self._notify(fired))

    def place_at_cells(self, slot: int, target_cells: Sequence[Coordinate]) -> PlacementOutcome:
        """Place using the board cells the piece would cover instead of an origin."""
        targets = [(int(x), int(y)) for x, y in target_cells]
        piece = self.bag_manager.get_piece(slot)
        if piece is None or self._phase in (GamePhase.PENDING_CLEAR, GamePhase.GAME_OVER):
            return PlacementOutcome(placed=False, game_over=self.is_game_over)
        if not targets or sorted(normalize_cells(targets)) != sorted(piece.cells):
            fired: List[_Fired] = []
            self._record(fired, GameEvent.PLACEMENT_INVALID, slot=slot, cells=targets)
            return PlacementOutcome(placed=False, events=self._notify(fired))
        origin_x = min(x for x, _ in targets)
        origin_y = min(y for _, y in targets)
        return self.place_piece(slot, origin_x, origin_y)

    def resolve_clear(self) -> ClearOutcome:
        if self._phase is not GamePhase.PENDING_CLEAR or self._pending is None:
            raise RuntimeError(f"No line clear pending (phase={self._phase.value})")
        pending = self._pending
        self._pending = None
        fired: List[_Fired] = []

        self.board_engine.clear_lines(pending.lines.rows, pending.lines.cols)
        result = self.scoring.process_line_clear(pending.lines.rows, pending.lines.cols)
        self._cleared_this_bag = True
        self.best_score = max(self.best_score, self.scoring.total_score)
        self._record(
            fired,
            GameEvent.LINES_CLEARED,
            count=result.lines_cleared,
            rows=list(pending.lines.rows),
            cols=list(pending.lines.cols),
            score=result.final_score,
            combo=result.combo_multiplier_applied,
        )

        self._consume_slot(pending.slot, fired)
        game_over = self._check_game_over(fired, GamePhase.CLEARED)
        return ClearOutcome(lines=pending.lines, result=result, game_over=game_over, events=self._notify(fired))

    def _consume_slot(self, slot: int, fired: List[_Fired]) -> None:
        last_piece = len(self.bag_manager.remaining_pieces()) == 1
        if last_piece and not self._cleared_this_bag:
            self.scoring.process_bag_exhausted_without_clears()
        self.bag_manager.remove_piece(slot, self.board_engine.snapshot())
        if last_piece:
            self._cleared_this_bag = False
            self._record(fired, GameEvent.BAG_EXHAUSTED, bag=[p.id for p in self.bag_manager.remaining_pieces()])

    def _check_game_over(self, fired: List[_Fired], next_phase: GamePhase) -> bool:
        if self.board_engine.is_game_over(self.bag_manager.get_bag()):
            self._phase = GamePhase.GAME_OVER
            logger.info("Game over: score=%d, pieces=%d", self.scoring.total_score, self.pieces_placed)
            self._record(fired, GameEvent.GAME_OVER, score=self.scoring.total_score, best_score=self.best_score)
            return True
        self._phase = next_phase
        return False

    def get_state(self) -> Dict[str, Any]:
        return {
            "grid": self.board,
            "bag": [None if p is None else p.id for p in self.bag],
            "phase": self._phase.value,
            "score": self.scoring.total_score,
            "best_score": self.best_score,
            "combo": self.scoring.combo,
            "last_clear_score": self.scoring.last_clear_score,
            "total_lines_cleared": self.scoring.state.total_lines_cleared,
            "pieces_placed": self.pieces_placed,
            "game_over": self.is_game_over,
            "filled_ratio": self.board_engine.filled_ratio(),
        }
