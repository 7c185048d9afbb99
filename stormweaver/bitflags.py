"""Helpers for combinations of :class:`enum.Flag` members."""

from __future__ import annotations

import enum
import operator
from functools import reduce
from typing import TypeVar

F = TypeVar("F", bound=enum.Flag)


def flag_members(value: F) -> list[F]:
    """Named members of ``value``'s type that are fully set in ``value``.

    Members come back in definition order; the empty member is never listed.
    """
    return [member for member in type(value) if member.value and member in value]


def all_flags(flag_type: type[F]) -> F:
    """The combination of every member of ``flag_type``."""
    return reduce(operator.or_, flag_type, flag_type(0))


def flag_bits(value: enum.Flag | int, width: int) -> str:
    """Render ``value`` as a zero-padded binary string of ``width`` bits."""
    if width <= 0:
        raise ValueError(f"bit width must be positive, got {width}")
    raw = value.value if isinstance(value, enum.Enum) else int(value)
    return format(raw & ((1 << width) - 1), f"0{width}b")