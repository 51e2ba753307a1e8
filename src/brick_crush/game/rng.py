from __future__ import annotations

import random
import time
from typing import Callable, List, MutableSequence, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

Seed = Union[str, int, float]


class SeededRandom:
    """Reproducible PRNG for the whole engine.

    Every derived draw goes through `next()`, so one seed replays a full game.
    """

    def __init__(self, seed: Optional[Seed] = None) -> None:
        self._seed = ""
        self._rng = random.Random()
        self.set_seed(seed)

    @property
    def seed(self) -> str:
        return self._seed

    def set_seed(self, seed: Optional[Seed] = None) -> None:
        if seed is None:
            seed = time.time_ns()
        self._seed = str(seed)
        self._rng = random.Random(self._seed)

    def next(self) -> float:
        return self._rng.random()

    def next_int(self, low: int, high: int) -> int:
        """Integer in [low, high)."""
        return int(self.next() * (high - low)) + low

    def next_int_max(self, high: int) -> int:
        return self.next_int(0, high)

    def next_float(self, low: float = 0.0, high: float = 1.0) -> float:
        return self.next() * (high - low) + low

    def choice(self, items: Sequence[T]) -> T:
        if len(items) == 0:
            raise IndexError("Cannot choose from an empty sequence")
        return items[self.next_int_max(len(items))]

    def shuffle_in_place(self, items: MutableSequence[T]) -> MutableSequence[T]:
        # Fisher-Yates
        for i in range(len(items) - 1, 0, -1):
            j = self.next_int_max(i + 1)
            items[i], items[j] = items[j], items[i]
        return items

    def shuffle(self, items: Sequence[T]) -> List[T]:
        result = list(items)
        self.shuffle_in_place(result)
        return result

    def sample(self, items: Sequence[T], count: int) -> List[T]:
        shuffled = self.shuffle(items)
        if count >= len(shuffled):
            return shuffled
        return shuffled[: max(0, count)]


def weighted_choice(rng: SeededRandom, items: Sequence[T], weight_fn: Callable[[T], float]) -> T:
    """Cumulative-weight draw over `items`; non-positive weights are never picked."""
    selectable = [(item, float(weight_fn(item))) for item in items]
    selectable = [(item, w) for item, w in selectable if w > 0]
    if not selectable:
        raise ValueError("No item with a positive weight to choose from")

    total = sum(w for _, w in selectable)
    remaining = rng.next() * total
    for item, w in selectable:
        remaining -= w
        if remaining <= 0:
            return item
    # float leftovers
    return selectable[-1][0]
