"""Random values used to build generated SQL statements."""

from __future__ import annotations

import random
import secrets
import string
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

CHARSET = string.digits + string.ascii_uppercase + string.ascii_lowercase


class PsRandom:
    """A random generator seeded from the system, or from a fixed seed."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = secrets.randbits(64) if seed is None else seed
        self._rng = random.Random(self.seed)

    def random_string(self, min_length: int, max_length: int) -> str:
        """Alphanumeric string with a length in ``[min_length, max_length]``."""
        length = self.random_int(min_length, max_length)
        return "".join(self._rng.choices(CHARSET, k=length))

    def random_int(self, low: int, high: int) -> int:
        """Integer in the closed range ``[low, high]``."""
        if low > high:
            raise ValueError(f"empty range [{low}, {high}]")
        return self._rng.randint(low, high)

    def random_float(self, low: float, high: float) -> float:
        """Float drawn uniformly between ``low`` and ``high``."""
        if low > high:
            raise ValueError(f"empty range [{low}, {high}]")
        return self._rng.uniform(low, high)

    def random_uint64(self) -> int:
        """Integer covering the whole unsigned 64-bit range."""
        return self._rng.getrandbits(64)

    def choice(self, items: Sequence[T]) -> T:
        """One element of ``items``; raises IndexError if it is empty."""
        return self._rng.choice(items)