"""Base class of generated SQL actions and their configuration."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field

from stormweaver.metadata import Metadata, Table
from stormweaver.randomness import PsRandom
from stormweaver.sql_generic import LoggedSQL


@dataclass
class DdlConfig:
    """Limits for generated DDL statements."""

    min_table_count: int = 3
    max_table_count: int = 10
    max_column_count: int = 20
    max_alter_clauses: int = 5
    access_methods: list[str] = field(default_factory=lambda: ["heap", "tde_heap"])


@dataclass
class DmlConfig:
    """Limits for generated DML statements."""

    delete_min: int = 1
    delete_max: int = 100


@dataclass
class CustomConfig:
    """Settings for user supplied SQL actions (none yet)."""


@dataclass
class AllConfig:
    ddl: DdlConfig = field(default_factory=DdlConfig)
    dml: DmlConfig = field(default_factory=DmlConfig)
    custom: CustomConfig = field(default_factory=CustomConfig)


class Action(abc.ABC):
    """One SQL statement that may change the tracked metadata.

    Actions hold no state between runs, so the same action can be executed
    any number of times.
    """

    @abc.abstractmethod
    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        """Build the statement, run it on ``connection`` and update ``meta``."""


def _random_table(meta: Metadata, rand: PsRandom) -> Table | None:
    """A random table from ``meta``, or None if it holds no tables."""
    while True:
        size = len(meta)
        if size == 0:
            return None
        table = meta[rand.random_int(0, size - 1)]
        if table is not None:
            return table