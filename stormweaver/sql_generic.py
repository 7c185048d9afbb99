"""Database-independent connection interface and query results."""

from __future__ import annotations

import abc
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import TextIO

_LOG_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"


class Flavor(Enum):
    ANY_MYSQL = "any_mysql"
    ANY_PG = "any_pg"
    PS = "ps"
    PXC = "pxc"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    PPG = "ppg"


_MYSQL_LIKE = frozenset({Flavor.PS, Flavor.PXC, Flavor.MYSQL, Flavor.ANY_MYSQL})
_PG_LIKE = frozenset({Flavor.POSTGRES, Flavor.PPG, Flavor.ANY_PG})


@dataclass(frozen=True)
class ServerInfo:
    """Server flavor and numeric version (major * 10000 + minor * 100 + patch)."""

    flavor: Flavor
    version: int

    def is_mysql_like(self) -> bool:
        return self.flavor in _MYSQL_LIKE

    def is_pg_like(self) -> bool:
        return self.flavor in _PG_LIKE

    def matching_any(self, flav: Flavor) -> bool:
        if flav is Flavor.ANY_MYSQL and self.is_mysql_like():
            return True
        if flav is Flavor.ANY_PG and self.is_pg_like():
            return True
        return flav is self.flavor

    def after_or_is(self, flav: Flavor, ver: int) -> bool:
        return self.matching_any(flav) and self.version >= ver

    def before(self, flav: Flavor, ver: int) -> bool:
        return self.matching_any(flav) and self.version < ver

    def between(self, flav: Flavor, ver_min: int, ver_max: int) -> bool:
        return self.matching_any(flav) and ver_min <= self.version <= ver_max


@dataclass
class ServerParams:
    database: str = ""
    address: str = ""
    socket: str = ""
    username: str = ""
    password: str = ""
    maxpacket: int = 0
    port: int = 0


class SqlException(Exception):
    """Raised when a connection or a statement fails."""


class SqlStatus(Enum):
    SUCCESS = "success"
    ERROR = "error"
    SERVER_GONE = "serverGone"


@dataclass
class ErrorInfo:
    error_code: str = ""
    error_message: str = ""
    error_status: SqlStatus = SqlStatus.SUCCESS

    def success(self) -> bool:
        return self.error_status is SqlStatus.SUCCESS

    def server_gone(self) -> bool:
        return self.error_status is SqlStatus.SERVER_GONE


Row = tuple["str | None", ...]


@dataclass
class QueryResult:
    """Outcome of one statement.

    ``rows`` is None when the statement produced no result set; values are
    text, or None for SQL NULL. Times are in seconds.
    """

    query: str = ""
    executed_at: float = 0.0
    execution_time: float = 0.0
    error_info: ErrorInfo = field(default_factory=ErrorInfo)
    affected_rows: int = 0
    field_count: int = 0
    rows: list[Row] | None = None

    def __bool__(self) -> bool:
        return self.success()

    def success(self) -> bool:
        return self.error_info.success()

    def maybe_throw(self) -> None:
        """Raise :class:`SqlException` if the statement failed."""
        if not self.success():
            raise SqlException(
                f"Error while executing query: {self.error_info.error_code} "
                f"{self.error_info.error_message}"
            )


class GenericSQL(abc.ABC):
    """A connection to one database server."""

    def __init__(self) -> None:
        self._server_info: ServerInfo | None = None

    @abc.abstractmethod
    def log_error(self, stream: TextIO) -> None:
        """Write the last error of the connection to ``stream``."""

    @abc.abstractmethod
    def execute_query(self, query: str) -> QueryResult:
        """Run ``query``; failures are reported in the result, not raised."""

    @abc.abstractmethod
    def server_info_string(self) -> str:
        """Human readable server version description."""

    def server_info(self) -> ServerInfo:
        if self._server_info is None:
            raise SqlException("Server information is not available")
        return self._server_info

    @abc.abstractmethod
    def host_info(self) -> str:
        """Description of how the connection reaches the server."""

    @abc.abstractmethod
    def reconnect(self) -> None:
        """Replace the underlying connection with a fresh one."""

    def close(self) -> None:
        """Release the connection; the default has nothing to release."""


class LoggedSQL:
    """Wraps a connection and writes every statement to a per-connection log."""

    def __init__(self, sql: GenericSQL, log_name: str, log_dir: str | Path = "logs") -> None:
        self._sql = sql
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        self.log_path = directory / f"sql-conn-{log_name}.log"
        self._handler = logging.FileHandler(self.log_path, encoding="utf-8")
        self._handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        self.logger = logging.Logger(f"sql-conn-{log_name}", logging.DEBUG)
        self.logger.addHandler(self._handler)

    def server_info(self) -> ServerInfo:
        return self._sql.server_info()

    def execute_query(self, query: str) -> QueryResult:
        self.logger.info("Statement: %s", query)
        result = self._sql.execute_query(query)
        if not result.success():
            self.logger.error(
                "Error while executing SQL statement: %s %s",
                result.error_info.error_code,
                result.error_info.error_message,
            )
        return result

    def query_single_value(self, query: str) -> str | None:
        """First column of the first row, or None on error or empty result."""
        result = self.execute_query(query)
        if not result.success():
            return None
        if not result.rows or result.field_count < 1:
            self.logger.error("Received no data from the server")
            return None
        return result.rows[0][0]

    def reconnect(self) -> None:
        self._sql.reconnect()

    def close(self) -> None:
        """Close the log file and the underlying connection."""
        self.logger.removeHandler(self._handler)
        self._handler.close()
        self._sql.close()

    def __enter__(self) -> LoggedSQL:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()