"""Thread-safe bookkeeping of the tables known to exist in the database.

DDL statements update this metadata after they succeed on the server. Tables
live in a fixed number of slots that are kept free of holes: a dropped table's
slot is refilled with the last table. Every slot has its own lock, so
concurrent ALTER/DROP/CREATE only ever wait on the slots they touch.

A change is made through a :class:`Reservation`. CREATE reserves space up
front and picks its slot on completion; ALTER and DROP lock their slot until
the reservation is completed or cancelled.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType

MAXIMUM_TABLE_COUNT = 200
OPTIMIZED_COLUMN_COUNT = 32
OPTIMIZED_INDEX_COLUMN_COUNT = 10
OPTIMIZED_INDEX_COUNT = 16


class MetadataException(Exception):
    """Raised when a reservation is misused."""


class ColumnType(Enum):
    INT = "INT"
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"
    REAL = "REAL"
    BOOL = "BOOL"
    BYTEA = "BYTEA"
    TEXT = "TEXT"


class Generated(Enum):
    NOT_GENERATED = "notGenerated"
    STORED = "stored"
    VIRTUAL = "virt"


@dataclass
class Column:
    name: str = ""
    type: ColumnType = ColumnType.INT
    length: int = 0
    default_value: str = ""
    generated: Generated = Generated.NOT_GENERATED
    nullable: bool = False
    primary_key: bool = False
    auto_increment: bool = False
    compressed: bool = False


class IndexOrdering(Enum):
    DEFAULT = "default"
    ASC = "asc"
    DESC = "desc"


@dataclass
class IndexColumn:
    column_name: str = ""


@dataclass
class Index:
    name: str = ""
    fields: list[str] = field(default_factory=list)


class TableType(Enum):
    NORMAL = "normal"
    PARTITIONED = "partitioned"
    TEMPORARY = "temporary"


@dataclass
class Table:
    name: str = ""
    engine: str = ""
    mysql_row_format: str = ""
    tablespace: str = ""
    mysql_key_block_size: int = 0
    mysql_compression: bool = False
    encryption: bool = False
    columns: list[Column] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)


class Reservation:
    """A pending change to one table slot of a :class:`Metadata`.

    An index of ``None`` means a CREATE that has not been placed yet. Used as
    a context manager, the reservation is completed on normal exit and
    cancelled when the block raises.
    """

    def __init__(
        self,
        storage: Metadata | None = None,
        table: Table | None = None,
        drop: bool = False,
        index: int | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        self._storage = storage
        self._table = table
        self._drop = drop
        self._index = index
        # A lock handed over here is already held by this reservation.
        self._lock = lock

    def _release(self) -> None:
        if self._lock is not None:
            lock, self._lock = self._lock, None
            lock.release()

    def complete(self) -> None:
        """Write the change back into the metadata and release the slot."""
        storage = self._storage
        if storage is None:
            raise MetadataException("Complete on invalid reservation")
        if self._lock is None and self._index is not None:
            raise MetadataException("Double complete not allowed")
        if self._index is not None:
            if self._drop:
                self._complete_drop(storage)
            else:
                storage._tables[self._index] = self._table
                self._release()
        else:
            self._complete_create(storage)

    def _complete_drop(self, storage: Metadata) -> None:
        index = self._index
        assert index is not None
        while True:
            if index == len(storage) - 1:
                storage._tables[index] = None
                storage._shrink()
                storage._moved_to[index] = None
                self._release()
                return
            last_index = len(storage) - 1
            with storage._locks[last_index]:
                if (
                    storage._tables[last_index] is not None
                    and last_index == len(storage) - 1
                ):
                    storage._tables[index] = storage._tables[last_index]
                    self._release()
                    storage._shrink()
                    storage._tables[last_index] = None
                    storage._moved_to[last_index] = index
                    return
            # Another CREATE or DROP changed the end of the array; retry.

    def _complete_create(self, storage: Metadata) -> None:
        while True:
            next_index = len(storage)
            outer: threading.Lock | None = None
            if next_index != 0:
                outer = storage._locks[next_index - 1]
                outer.acquire()
                if (
                    storage._tables[next_index - 1] is None
                    or next_index != len(storage)
                ):
                    outer.release()
                    continue
            try:
                with storage._locks[next_index]:
                    storage._tables[next_index] = self._table
                    storage._grow()
            finally:
                if outer is not None:
                    outer.release()
            self._index = next_index
            return

    def cancel(self) -> None:
        """Drop the change and release whatever the reservation holds."""
        if self._index is None and self._storage is not None:
            self._storage._unreserve()
        self._storage = None
        self._table = None
        self._index = None
        self._release()

    def is_open(self) -> bool:
        """Whether the reservation can still be completed."""
        return self._storage is not None and (
            self._lock is not None or self._index is None
        )

    def index(self) -> int | None:
        """Slot of the table, or None for an unplaced or invalid reservation."""
        return self._index

    def table(self) -> Table | None:
        """The table object this reservation modifies."""
        return self._table

    def __enter__(self) -> Reservation:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if self.is_open():
            if exc_type is None:
                self.complete()
            else:
                self.cancel()
        return False


class Metadata:
    """Fixed-capacity, hole-free array of tables with per-slot locking."""

    def __init__(self) -> None:
        self._tables: list[Table | None] = [None] * MAXIMUM_TABLE_COUNT
        self._locks = [threading.Lock() for _ in range(MAXIMUM_TABLE_COUNT)]
        self._moved_to: list[int | None] = [None] * MAXIMUM_TABLE_COUNT
        self._counter_lock = threading.Lock()
        self._table_count = 0
        self._reserved_size = 0

    def _grow(self) -> None:
        with self._counter_lock:
            self._table_count += 1

    def _shrink(self) -> None:
        with self._counter_lock:
            self._table_count -= 1
            self._reserved_size -= 1

    def _unreserve(self) -> None:
        with self._counter_lock:
            self._reserved_size -= 1

    @staticmethod
    def _check_index(idx: int) -> None:
        if not 0 <= idx < MAXIMUM_TABLE_COUNT:
            raise IndexError(f"table index {idx} out of range")

    def create_table(self) -> Reservation:
        """Reserve space for a new table; the reservation is closed if full."""
        with self._counter_lock:
            if self._reserved_size >= MAXIMUM_TABLE_COUNT:
                return Reservation()
            self._reserved_size += 1
        return Reservation(self, Table(), False, None, None)

    def alter_table(self, idx: int) -> Reservation:
        """Lock slot ``idx`` and hand out a private copy of its table."""
        self._check_index(idx)
        lock = self._locks[idx]
        lock.acquire()
        table = self._tables[idx]
        if table is None:
            lock.release()
            return Reservation()
        return Reservation(self, copy.deepcopy(table), False, idx, lock)

    def drop_table(self, idx: int) -> Reservation:
        """Lock slot ``idx`` for removal of its table."""
        self._check_index(idx)
        lock = self._locks[idx]
        lock.acquire()
        table = self._tables[idx]
        if table is None:
            lock.release()
            return Reservation()
        return Reservation(self, table, True, idx, lock)

    def __len__(self) -> int:
        return self._table_count

    def __getitem__(self, idx: int) -> Table | None:
        """Table in slot ``idx``; may be None if the slot emptied meanwhile."""
        self._check_index(idx)
        return self._tables[idx]