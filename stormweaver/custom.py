"""Actions that run a user supplied SQL statement."""

from __future__ import annotations

from collections.abc import Iterable

from stormweaver.action import Action, CustomConfig, _random_table
from stormweaver.metadata import Metadata
from stormweaver.randomness import PsRandom
from stormweaver.sql_generic import LoggedSQL

_SUPPORTED_INJECTIONS = frozenset({"table"})


class CustomSql(Action):
    """Runs a fixed statement, filling ``{name}`` placeholders before each run.

    Only ``{table}`` is supported: it is replaced by the name of a random
    table known to the metadata.
    """

    def __init__(
        self,
        config: CustomConfig,
        sql_statement: str,
        inject_parameters: Iterable[str] = (),
    ) -> None:
        self.config = config
        self.sql_statement = sql_statement
        self.inject_parameters = tuple(sorted(set(inject_parameters)))
        for inject in self.inject_parameters:
            if inject not in _SUPPORTED_INJECTIONS:
                raise ValueError(
                    "For now only table name can be injected to custom queries"
                )

    def execute(self, meta: Metadata, rand: PsRandom, connection: LoggedSQL) -> None:
        statement = self.sql_statement
        for inject in self.inject_parameters:
            statement = statement.replace(
                "{" + inject + "}", self._inject(meta, rand, inject)
            )
        connection.execute_query(statement).maybe_throw()

    @staticmethod
    def _inject(meta: Metadata, rand: PsRandom, injection_point: str) -> str:
        if injection_point == "table":
            table = _random_table(meta, rand)
            if table is None:
                raise RuntimeError("No table available for injection")
            return table.name
        raise ValueError(f"Unknown injection point: {injection_point}")