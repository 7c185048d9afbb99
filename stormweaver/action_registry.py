"""Named, weighted factories of actions, and the default set of them."""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable
from dataclasses import dataclass

from stormweaver.action import Action, AllConfig
from stormweaver.bitflags import all_flags
from stormweaver.custom import CustomSql
from stormweaver.ddl import AlterSubcommand, AlterTable, CreateTable, DropTable
from stormweaver.dml import DeleteData, InsertData, UpdateOneRow
from stormweaver.metadata import TableType


class ActionException(Exception):
    """Raised on invalid registry operations."""


ActionBuilder = Callable[[AllConfig], Action]


@dataclass
class ActionFactory:
    """Builds one kind of action; ``weight`` sets how often it is picked."""

    name: str
    builder: ActionBuilder
    weight: int


class ActionRegistry:
    """Thread-safe ordered collection of uniquely named action factories."""

    def __init__(self) -> None:
        self._factories: list[ActionFactory] = []
        self._lock = threading.Lock()

    def _snapshot(self) -> list[ActionFactory]:
        with self._lock:
            return [dataclasses.replace(f) for f in self._factories]

    def _find(self, name: str) -> ActionFactory:
        for factory in self._factories:
            if factory.name == name:
                return factory
        raise ActionException(f"Action {name} does not exists in this registy")

    def insert(self, factory: ActionFactory) -> int:
        """Add ``factory`` and return its position."""
        with self._lock:
            if any(f.name == factory.name for f in self._factories):
                raise ActionException(
                    f"Action {factory.name} already exists in this registy"
                )
            self._factories.append(factory)
            return len(self._factories) - 1

    def remove(self, name: str) -> None:
        with self._lock:
            self._factories.remove(self._find(name))

    def __getitem__(self, name: str) -> ActionFactory:
        """A copy of the named factory."""
        with self._lock:
            return dataclasses.replace(self._find(name))

    def get(self, name: str) -> ActionFactory:
        """The named factory itself, so that its weight can be changed."""
        with self._lock:
            return self._find(name)

    def make_custom_sql_action(self, name: str, sql: str, weight: int) -> None:
        """Register an action that runs ``sql`` as it is."""

        def build(config: AllConfig) -> Action:
            return CustomSql(config.custom, sql, ())

        self.insert(ActionFactory(name, build, weight))

    def make_custom_table_sql_action(self, name: str, sql: str, weight: int) -> None:
        """Register an action that runs ``sql`` with ``{table}`` filled in."""

        def build(config: AllConfig) -> Action:
            return CustomSql(config.custom, sql, ("table",))

        self.insert(ActionFactory(name, build, weight))

    def use(self, other: ActionRegistry) -> None:
        """Replace the contents of this registry with a copy of ``other``'s."""
        factories = other._snapshot()
        with self._lock:
            self._factories = factories

    def copy(self) -> ActionRegistry:
        """An independent registry holding copies of the factories."""
        result = ActionRegistry()
        result._factories = self._snapshot()
        return result

    def __len__(self) -> int:
        with self._lock:
            return len(self._factories)

    def total_weight(self) -> int:
        with self._lock:
            return sum(f.weight for f in self._factories)

    def has(self, name: str) -> bool:
        with self._lock:
            return any(f.name == name for f in self._factories)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def lookup_by_weight_offset(self, offset: int) -> ActionFactory:
        """The first factory whose cumulative weight reaches ``offset``."""
        with self._lock:
            accum = 0
            for factory in self._factories:
                accum += factory.weight
                if accum >= offset:
                    return factory
        raise ActionException(f"Weight offset {offset} is outside of this registy")


def _build_default_registry() -> ActionRegistry:
    registry = ActionRegistry()
    registry.insert(
        ActionFactory(
            "create_normal_table",
            lambda config: CreateTable(config.ddl, TableType.NORMAL),
            100,
        )
    )
    registry.insert(
        ActionFactory("drop_table", lambda config: DropTable(config.ddl), 100)
    )
    registry.insert(
        ActionFactory(
            "alter_table",
            lambda config: AlterTable(config.ddl, all_flags(AlterSubcommand)),
            100,
        )
    )
    registry.insert(
        ActionFactory(
            "insert_some_data", lambda config: InsertData(config.dml, 10), 1000
        )
    )
    registry.insert(
        ActionFactory("delete_some_data", lambda config: DeleteData(config.dml), 1000)
    )
    registry.insert(
        ActionFactory("update_one_row", lambda config: UpdateOneRow(config.dml), 1000)
    )
    return registry


_DEFAULT_REGISTRY = _build_default_registry()


def default_registry() -> ActionRegistry:
    """The shared registry of built-in actions."""
    return _DEFAULT_REGISTRY