from __future__ import annotations

from dataclasses import dataclass


BOARD_SIZE = 8
BAG_SIZE = 3


@dataclass
class ScoringRules:
    base_line_score: int = 50
    max_combo: int = 25

    def round_base_score(self, lines: int) -> int:
        """Points for `lines` cleared in one round, before the combo multiplier.

        Each extra line in the same round is worth double the previous one:
        50, 50+100, 50+100+200, ...
        """
        if lines <= 0:
            return 0
        return sum(self.base_line_score * (2 ** i) for i in range(lines))
