"""Random CREATE, DROP and ALTER TABLE actions."""

from __future__ import annotations

import enum

from stormweaver.action import Action, DdlConfig
from stormweaver.bitflags import flag_members
from stormweaver.metadata import Column, ColumnType, Metadata, TableType
from stormweaver.randomness import PsRandom
from stormweaver.sql_generic import LoggedSQL


class AlterSubcommand(enum.Flag):
    ADD_COLUMN = 1 << 0
    DROP_COLUMN = 1 << 1
    CHANGE_COLUMN = 1 << 2
    CHANGE_ACCESS_METHOD = 1 << 3


_COLUMN_TYPES = list(ColumnType)
_SIZED_TYPES = frozenset({ColumnType.CHAR, ColumnType.VARCHAR})
_NUMERIC_TYPES = frozenset({ColumnType.INT, ColumnType.REAL})


def _random_column_length(rand: PsRandom, column_type: ColumnType) -> int:
    if column_type in _SIZED_TYPES:
        return rand.random_int(1, 100)
    return 0


def random_column(rand: PsRandom, force_serial: bool = False) -> Column:
    """A column with a random name; a serial primary key if ``force_serial``."""
    col = Column(name=f"col{rand.random_uint64()}")
    if force_serial:
        col.type = ColumnType.INT
        col.primary_key = True
        col.auto_increment = True
    else:
        col.type = rand.choice(_COLUMN_TYPES)
        col.length = _random_column_length(rand, col.type)
    return col


def column_definition(col: Column) -> str:
    """The column's definition as used in CREATE and ALTER TABLE."""
    if col.auto_increment:
        return f"{col.name} SERIAL"
    definition = f"{col.name} {col.type.value}"
    if col.length > 0:
        definition += f"({col.length})"
    return definition


class CreateTable(Action):
    """Creates a table with random columns and a serial primary key."""

    def __init__(self, config: DdlConfig, table_type: TableType = TableType.NORMAL) -> None:
        self.config = config
        self.table_type = table_type

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        if len(meta) >= self.config.max_table_count:
            return
        reservation = meta.create_table()
        if not reservation.is_open():
            return
        with reservation:
            table = reservation.table()
            assert table is not None
            table.name = f"foo{rand.random_int(1, 1000000)}"
            column_count = rand.random_int(2, self.config.max_column_count)
            table.columns.extend(
                random_column(rand, idx == 0) for idx in range(column_count)
            )

            definitions = [column_definition(col) for col in table.columns]
            pk_columns = [col.name for col in table.columns if col.primary_key]
            if pk_columns:
                definitions.append(f"PRIMARY KEY ({', '.join(pk_columns)})")

            body = ",\n".join(definitions)
            connection.execute_query(f"CREATE TABLE {table.name} ({body});").maybe_throw()
            reservation.complete()


class DropTable(Action):
    """Drops a random table while more than the minimum remain."""

    def __init__(self, config: DdlConfig) -> None:
        self.config = config

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        if len(meta) <= self.config.min_table_count:
            return
        idx = rand.random_int(0, len(meta) - 1)
        reservation = meta.drop_table(idx)
        if not reservation.is_open():
            return
        with reservation:
            table = reservation.table()
            assert table is not None
            connection.execute_query(f"DROP TABLE {table.name};").maybe_throw()
            reservation.complete()


class AlterTable(Action):
    """Alters a random table with a random list of the allowed subcommands."""

    def __init__(self, config: DdlConfig, possible_commands: AlterSubcommand) -> None:
        if not flag_members(possible_commands):
            raise ValueError("At least one ALTER subcommand must be allowed")
        self.config = config
        self.possible_commands = possible_commands

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        if len(meta) == 0:
            return
        idx = rand.random_int(0, len(meta) - 1)
        reservation = meta.alter_table(idx)
        if not reservation.is_open():
            return
        with reservation:
            table = reservation.table()
            assert table is not None
            commands = flag_members(self.possible_commands)
            clause_count = rand.random_int(1, self.config.max_alter_clauses)

            subcommands: list[str] = []
            new_columns: list[Column] = []
            changing_am = False

            for _ in range(clause_count):
                command = rand.choice(commands)
                if command is AlterSubcommand.ADD_COLUMN:
                    column = random_column(rand)
                    subcommands.append(f"ADD COLUMN {column_definition(column)}")
                    # New columns are not touched by later clauses of this statement.
                    new_columns.append(column)
                elif command is AlterSubcommand.DROP_COLUMN:
                    if len(table.columns) < 3:
                        continue
                    column_index = rand.random_int(1, len(table.columns) - 1)
                    subcommands.append(f"DROP COLUMN {table.columns[column_index].name}")
                    del table.columns[column_index]
                elif command is AlterSubcommand.CHANGE_COLUMN:
                    numeric = next(
                        (col for col in table.columns if col.type in _NUMERIC_TYPES),
                        None,
                    )
                    if numeric is not None:
                        subcommands.append(
                            f"ALTER COLUMN {numeric.name} TYPE VARCHAR(32)"
                        )
                elif command is AlterSubcommand.CHANGE_ACCESS_METHOD:
                    if changing_am:
                        continue
                    method = rand.choice(self.config.access_methods)
                    subcommands.append(f"SET ACCESS METHOD {method}")
                    changing_am = True

            table.columns.extend(new_columns)

            body = ",\n".join(subcommands)
            connection.execute_query(f"ALTER TABLE {table.name} \n {body};").maybe_throw()
            reservation.complete()