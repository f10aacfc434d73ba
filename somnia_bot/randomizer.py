"""Random parameter helpers for transaction counts, amounts and pauses."""

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


class Randomizer:
    """Uniform random draws from inclusive ranges."""

    @staticmethod
    def random_int(min_val: int, max_val: int) -> int:
        """Random integer in [min_val, max_val]."""
        return random.randint(int(min_val), int(max_val))

    @staticmethod
    def random_float(min_val: float, max_val: float) -> float:
        """Random real number in [min_val, max_val]."""
        return random.uniform(min_val, max_val)

    @staticmethod
    def random_percent() -> float:
        """Probability draw in [0, 100)."""
        return random.random() * 100

    @staticmethod
    def coin_flip() -> bool:
        return random.random() > 0.5

    @staticmethod
    def random_choice(items: Sequence[T]) -> T:
        """Uniform pick from a non-empty sequence."""
        return items[random.randint(0, len(items) - 1)]

    @staticmethod
    def random_pause(pause_range: Sequence[float]) -> float:
        """Pause in seconds between actions inside a sequence."""
        return random.uniform(pause_range[0], pause_range[1])

    @staticmethod
    def random_attempt_pause(pause_range: Sequence[int]) -> int:
        """Whole-second pause after a failure or between loops."""
        return random.randint(int(pause_range[0]), int(pause_range[1]))
