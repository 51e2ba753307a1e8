"""Game module for Brick Crush.

Exports the deterministic engine:
- SeededRandom: reproducible randomness for the whole game
- Piece / PieceLibrary: polyomino templates, weights and rotation
- BagGenerator / BagManager: 3-piece deals with the hail-mary fallback
- BoardEngine: 8x8 placement and line clearing
- ScoringEngine: round scores and combo multiplier
- BrickCrushGame: the placement -> clear -> score -> game over driver
"""

from .rng import SeededRandom, weighted_choice
from .pieces import (
    DEFAULT_LIBRARY,
    Piece,
    PieceLibrary,
    clone_piece,
    random_rotation,
    rotate_90_clockwise,
)
from .grid import BoardEngine, CompletedLines, GhostPreview, can_fit_anywhere, format_grid
from .bag import BagGenerationError, BagGenerator, BagManager
from .rules import BAG_SIZE, BOARD_SIZE, ScoringRules
from .scoring import LineClearResult, PotentialScore, ScoringEngine, ScoringState
from .core import (
    BrickCrushGame,
    ClearOutcome,
    GameConfig,
    GameEvent,
    GamePhase,
    PlacementOutcome,
)

__all__ = [
    "SeededRandom",
    "weighted_choice",
    "DEFAULT_LIBRARY",
    "Piece",
    "PieceLibrary",
    "clone_piece",
    "random_rotation",
    "rotate_90_clockwise",
    "BoardEngine",
    "CompletedLines",
    "GhostPreview",
    "can_fit_anywhere",
    "format_grid",
    "BagGenerationError",
    "BagGenerator",
    "BagManager",
    "BAG_SIZE",
    "BOARD_SIZE",
    "ScoringRules",
    "LineClearResult",
    "PotentialScore",
    "ScoringEngine",
    "ScoringState",
    "BrickCrushGame",
    "ClearOutcome",
    "GameConfig",
    "GameEvent",
    "GamePhase",
    "PlacementOutcome",
]
