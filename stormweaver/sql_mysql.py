"""MySQL-family connection built on pymysql."""

from __future__ import annotations

import re
import time
from typing import Any, TextIO

import pymysql

from stormweaver.sql_generic import (
    ErrorInfo,
    Flavor,
    GenericSQL,
    QueryResult,
    ServerInfo,
    ServerParams,
    SqlException,
    SqlStatus,
)

MAX_PACKET_DEFAULT = 67108864
DEFAULT_PORT = 3306

CR_SERVER_GONE_ERROR = 2006
CR_SERVER_LOST = 2013

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(text: str, version_info: str) -> int:
    match = _LEADING_INT.match(text)
    if match is None:
        raise SqlException(f"Invalid server version: {version_info}")
    return int(match.group(1))


def parse_version(version_info: str) -> int:
    """Numeric version of a server version string such as ``8.0.36-28``.

    The result is ``major * 10000 + minor * 100 + patch``; text after the
    digits of each part is ignored.
    """
    parts = version_info.split(".", 3)
    numbers = [_leading_int(part, version_info) for part in parts[:3]]
    numbers += [0] * (3 - len(numbers))
    major, minor, patch = numbers
    return major * 10000 + minor * 100 + patch


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "replace")
    return str(value)


def _error_parts(err: pymysql.err.MySQLError) -> tuple[int, str]:
    args = err.args
    if len(args) >= 2 and isinstance(args[0], int):
        return args[0], str(args[1])
    return 0, str(err)


class MySQL(GenericSQL):
    """A connection to MySQL, Percona Server or Percona XtraDB Cluster."""

    def __init__(self, params: ServerParams) -> None:
        super().__init__()
        self._params = params
        self._last_error: tuple[int, str] = (0, "")
        self._connection = self._connect()
        self._server_info = self._calculate_server_info()

    def _connect(self) -> Any:
        params = self._params
        options: dict[str, Any] = {
            "host": params.address or None,
            "user": params.username or None,
            "password": params.password,
            "database": params.database or None,
            "port": params.port or DEFAULT_PORT,
            "unix_socket": params.socket or None,
            "autocommit": True,
        }
        if params.maxpacket and params.maxpacket != MAX_PACKET_DEFAULT:
            options["max_allowed_packet"] = params.maxpacket
        try:
            return pymysql.connect(**options)
        except pymysql.err.MySQLError as err:
            self._last_error = _error_parts(err)
            code, message = self._last_error
            raise SqlException(f"{code}: {message}") from err

    def _calculate_server_info(self) -> ServerInfo:
        version_info = self._connection.get_server_info()
        version = parse_version(version_info)
        result = self.execute_query("SHOW VARIABLES LIKE '%wsrep%';")
        if result.success() and result.rows:
            flavor = Flavor.PXC
        elif "-" in version_info:
            flavor = Flavor.PS
        else:
            flavor = Flavor.MYSQL
        return ServerInfo(flavor, version)

    def log_error(self, stream: TextIO) -> None:
        code, message = self._last_error
        stream.write(f"{code}: {message}")

    def execute_query(self, query: str) -> QueryResult:
        executed_at = time.time()
        started = time.perf_counter()
        try:
            with self._connection.cursor() as cursor:
                affected = cursor.execute(query)
                description = cursor.description
                rows = (
                    [tuple(_to_text(value) for value in row) for row in cursor.fetchall()]
                    if description
                    else None
                )
        except pymysql.err.MySQLError as err:
            elapsed = time.perf_counter() - started
            code, message = _error_parts(err)
            self._last_error = (code, message)
            status = (
                SqlStatus.SERVER_GONE
                if code in (CR_SERVER_GONE_ERROR, CR_SERVER_LOST)
                else SqlStatus.ERROR
            )
            return QueryResult(
                query=query,
                executed_at=executed_at,
                execution_time=elapsed,
                error_info=ErrorInfo(str(code), message, status),
            )
        elapsed = time.perf_counter() - started
        self._last_error = (0, "")
        return QueryResult(
            query=query,
            executed_at=executed_at,
            execution_time=elapsed,
            error_info=ErrorInfo("0", "", SqlStatus.SUCCESS),
            affected_rows=affected or 0,
            field_count=len(description) if description else 0,
            rows=rows,
        )

    def server_info_string(self) -> str:
        """Server version, followed by the version comment when available."""
        info = self._connection.get_server_info()
        result = self.execute_query("select @@version_comment limit 1")
        if result.success() and result.rows and result.rows[0][0] is not None:
            info = f"{info} {result.rows[0][0]}"
        return info

    def host_info(self) -> str:
        return self._connection.host_info

    def reconnect(self) -> None:
        self.close()
        self._connection = self._connect()

    def close(self) -> None:
        """Close the connection if it is still open."""
        connection = self._connection
        if connection is not None and connection.open:
            connection.close()