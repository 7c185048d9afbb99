"""Random INSERT, DELETE and UPDATE actions."""

from __future__ import annotations

from stormweaver.action import Action, DmlConfig, _random_table
from stormweaver.metadata import Column, ColumnType, Metadata, Table
from stormweaver.randomness import PsRandom
from stormweaver.sql_generic import LoggedSQL


def generate_value(col: Column, rand: PsRandom) -> str:
    """A random SQL literal suitable for ``col``."""
    column_type = col.type
    if column_type is ColumnType.INT:
        return str(rand.random_int(1, 1000000))
    if column_type is ColumnType.REAL:
        return f"{rand.random_float(1.0, 1000000.0):f}"
    if column_type in (ColumnType.VARCHAR, ColumnType.CHAR):
        return f"'{rand.random_string(0, col.length)}'"
    if column_type in (ColumnType.BYTEA, ColumnType.TEXT):
        return f"'{rand.random_string(50, 1000)}'"
    if column_type is ColumnType.BOOL:
        return "true" if rand.random_int(0, 1) == 1 else "false"
    return ""


def _writable_columns(table: Table) -> list[Column]:
    return [col for col in table.columns if not col.auto_increment]


class InsertData(Action):
    """Inserts ``rows`` random rows into a given or a random table."""

    def __init__(self, config: DmlConfig, rows: int, table: Table | None = None) -> None:
        self.config = config
        self.rows = rows
        self.table = table

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        if len(meta) == 0:
            return
        table = self.table if self.table is not None else _random_table(meta, rand)
        if table is None:
            return
        columns = _writable_columns(table)
        names = ", ".join(col.name for col in columns)
        values = ", ".join(
            "(" + ", ".join(generate_value(col, rand) for col in columns) + ")"
            for _ in range(self.rows)
        )
        connection.execute_query(
            f"INSERT INTO {table.name} ({names} ) VALUES {values};"
        ).maybe_throw()


class DeleteData(Action):
    """Deletes a random number of random rows from a random table."""

    def __init__(self, config: DmlConfig) -> None:
        self.config = config

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        table = _random_table(meta, rand)
        if table is None:
            return
        # The first column is always the single-column primary key.
        pk = table.columns[0].name
        rows = rand.random_int(self.config.delete_min, self.config.delete_max)
        connection.execute_query(
            f"DELETE FROM {table.name} WHERE {pk} IN "
            f"(SELECT {pk} FROM {table.name} ORDER BY random() LIMIT {rows});"
        ).maybe_throw()


class UpdateOneRow(Action):
    """Sets every writable column of one random row to new random values."""

    def __init__(self, config: DmlConfig) -> None:
        self.config = config

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        table = _random_table(meta, rand)
        if table is None:
            return
        pk = table.columns[0].name
        assignments = ", ".join(
            f"{col.name} = {generate_value(col, rand)}" for col in _writable_columns(table)
        )
        connection.execute_query(
            f"UPDATE {table.name} SET {assignments} WHERE {pk} IN "
            f"(SELECT {pk} FROM {table.name} ORDER BY random() LIMIT 1);"
        ).maybe_throw()