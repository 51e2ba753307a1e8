"""Combo scoring.

A round that clears ``n`` lines is worth ``50 + 100 + ... + 50 * 2**(n-1)``
points, multiplied by the combo in effect before the round. The combo then
goes up by one (capped at 25) and drops back to 1 when a whole bag is used
without clearing anything.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Optional

from .rules import ScoringRules

logger = logging.getLogger(__name__)


_WIRE_KEYS = {
    "combo": "combo",
    "base_score": "baseScore",
    "total_score": "totalScore",
    "last_clear_score": "lastClearScore",
    "total_lines_cleared": "totalLinesCleared",
}


@dataclass
class ScoringState:
    combo: int = 1
    base_score: int = 0
    total_score: int = 0
    last_clear_score: int = 0
    total_lines_cleared: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {wire: getattr(self, attr) for attr, wire in _WIRE_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringState":
        """Build a state from its wire form; missing keys take their defaults.

        Raises `TypeError` for non-integer values and `ValueError` for
        negative ones.
        """
        defaults = cls()
        values = {}
        for attr, wire in _WIRE_KEYS.items():
            value = data.get(wire, getattr(defaults, attr))
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{wire} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{wire} must not be negative, got {value}")
            values[attr] = value
        return cls(**values)


@dataclass
class LineClearResult:
    base_score: int
    final_score: int
    combo_multiplier_applied: int
    lines_cleared: int
    combo_increased: bool


@dataclass
class PotentialScore:
    base_score: int
    final_score: int
    combo_after: int


class ScoringEngine:
    def __init__(self, rules: Optional[ScoringRules] = None, initial_state: Optional[ScoringState] = None) -> None:
        self.rules = rules or ScoringRules()
        self._state = ScoringState(**asdict(initial_state)) if initial_state else ScoringState()
        self._clamp_combo()

    def _clamp_combo(self) -> None:
        self._state.combo = max(1, min(self._state.combo, self.rules.max_combo))

    @property
    def state(self) -> ScoringState:
        return ScoringState(**asdict(self._state))

    @property
    def combo(self) -> int:
        return self._state.combo

    @property
    def total_score(self) -> int:
        return self._state.total_score

    @property
    def last_clear_score(self) -> int:
        return self._state.last_clear_score

    def is_max_combo(self) -> bool:
        return self._state.combo == self.rules.max_combo

    def calculate_round_base_score(self, lines_cleared: int) -> int:
        return self.rules.round_base_score(lines_cleared)

    def process_line_clear(self, cleared_rows: Iterable[int], cleared_cols: Iterable[int]) -> LineClearResult:
        lines = len(list(cleared_rows)) + len(list(cleared_cols))
        if lines == 0:
            return LineClearResult(0, 0, self._state.combo, 0, False)

        applied = self._state.combo
        base = self.calculate_round_base_score(lines)
        final = base * applied
        increased = applied < self.rules.max_combo
        if increased:
            self._state.combo = applied + 1

        self._state.base_score += base
        self._state.total_score += final
        self._state.last_clear_score = final
        self._state.total_lines_cleared += lines
        logger.debug("Cleared %d line(s): %d x%d = %d", lines, base, applied, final)
        return LineClearResult(
            base_score=base,
            final_score=final,
            combo_multiplier_applied=applied,
            lines_cleared=lines,
            combo_increased=increased,
        )

    def process_bag_exhausted_without_clears(self) -> None:
        if self._state.combo != 1:
            logger.debug("Combo x%d broken", self._state.combo)
        self._state.combo = 1

    def calculate_potential_score(self, lines_cleared: int) -> PotentialScore:
        combo = self._state.combo
        if lines_cleared <= 0:
            return PotentialScore(0, 0, combo)
        base = self.calculate_round_base_score(lines_cleared)
        return PotentialScore(base, base * combo, min(combo + 1, self.rules.max_combo))

    def combo_display_text(self) -> str:
        if self._state.combo == 1:
            return ""
        return f"{self._state.combo}x COMBO!"

    def reset(self) -> None:
        self._state = ScoringState()

    def serialize(self) -> str:
        return json.dumps(self._state.to_dict())

    def deserialize(self, data: str) -> None:
        """Restore state from `serialize` output; anything unreadable resets it."""
        try:
            parsed = json.loads(data)
            if not isinstance(parsed, dict):
                raise TypeError(f"expected a JSON object, got {type(parsed).__name__}")
            self._state = ScoringState.from_dict(parsed)
        except (TypeError, ValueError, RecursionError) as e:
            logger.warning("Failed to deserialize scoring state, resetting: %s", e)
            self.reset()
            return
        self._clamp_combo()
