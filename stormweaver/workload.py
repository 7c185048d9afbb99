"""Workers that run random actions against a server, and their setup."""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from stormweaver.action import AllConfig
from stormweaver.action_registry import ActionRegistry, default_registry
from stormweaver.ddl import CreateTable
from stormweaver.dml import InsertData
from stormweaver.metadata import Metadata, TableType
from stormweaver.randomness import PsRandom
from stormweaver.sql_generic import GenericSQL, LoggedSQL, ServerParams
from stormweaver.sql_mysql import MySQL

log = logging.getLogger(__name__)

INITIAL_INSERT_BATCHES = 10
INITIAL_INSERT_ROWS = 100


@dataclass
class WorkloadParams:
    duration_in_seconds: int
    repeat_times: int
    number_of_workers: int


class Worker:
    """One connection with its own random generator and configuration."""

    def __init__(
        self, name: str, sql_conn: LoggedSQL, config: AllConfig, metadata: Metadata
    ) -> None:
        self.name = name
        self._sql_conn = sql_conn
        self.config = copy.deepcopy(config)
        self.metadata = metadata
        self.rand = PsRandom()
        self.logger = logging.getLogger(f"{__name__}.worker-{name}")

    def create_random_tables(self, count: int) -> None:
        for _ in range(count):
            CreateTable(self.config.ddl, TableType.NORMAL).execute(
                self.metadata, self.rand, self._sql_conn
            )

    def generate_initial_data(self) -> None:
        """Insert a batch of rows into every known table."""
        for idx in range(len(self.metadata)):
            table = self.metadata[idx]
            if table is None:
                continue
            for _ in range(INITIAL_INSERT_BATCHES):
                InsertData(self.config.dml, INITIAL_INSERT_ROWS, table).execute(
                    self.metadata, self.rand, self._sql_conn
                )

    def sql_connection(self) -> LoggedSQL:
        return self._sql_conn

    def reconnect(self) -> None:
        self._sql_conn.reconnect()


class RandomWorker(Worker):
    """A worker that runs weighted random actions in a background thread."""

    def __init__(
        self,
        name: str,
        sql_conn: LoggedSQL,
        config: AllConfig,
        metadata: Metadata,
        actions: ActionRegistry,
    ) -> None:
        super().__init__(name, sql_conn, config, metadata)
        self._actions = actions.copy()
        self._thread: threading.Thread | None = None
        self.successful_actions = 0
        self.failed_actions = 0

    def run_thread(self, duration_in_seconds: int) -> None:
        """Start running random actions for ``duration_in_seconds``."""
        log.info("Worker %s starting, resetting statistics", self.name)
        self.successful_actions = 0
        self.failed_actions = 0
        if self._thread is not None and self._thread.is_alive():
            log.error("Error: thread is already running")
            return
        self._thread = threading.Thread(
            target=self._run, args=(duration_in_seconds,), name=self.name, daemon=True
        )
        self._thread.start()

    def _run(self, duration_in_seconds: int) -> None:
        begin = time.monotonic()
        while time.monotonic() - begin < duration_in_seconds:
            offset = self.rand.random_int(0, self._actions.total_weight())
            action = self._actions.lookup_by_weight_offset(offset).builder(self.config)
            try:
                action.execute(self.metadata, self.rand, self._sql_conn)
                self.successful_actions += 1
            except Exception as err:
                self.failed_actions += 1
                self.logger.warning("Worker %s Action failed: %s", self.name, err)
        log.info(
            "Worker %s exiting. Success: %s, failure: %s",
            self.name,
            self.successful_actions,
            self.failed_actions,
        )

    def join(self) -> None:
        if self._thread is not None:
            self._thread.join()
        self._thread = None

    def possible_actions(self) -> ActionRegistry:
        return self._actions


ConnectCallback = Callable[[LoggedSQL], None]


class SqlFactory:
    """Opens logged connections to one server."""

    def __init__(
        self,
        params: ServerParams,
        backend: Callable[[ServerParams], GenericSQL] = MySQL,
        connection_callback: ConnectCallback | None = None,
        log_dir: str | Path = "logs",
    ) -> None:
        self._params = params
        self._backend = backend
        self._connection_callback = connection_callback
        self._log_dir = log_dir

    def connect(self, connection_name: str) -> LoggedSQL:
        conn = LoggedSQL(self._backend(self._params), connection_name, self._log_dir)
        if self._connection_callback is not None:
            self._connection_callback(conn)
        return conn

    def params(self) -> ServerParams:
        return self._params


class Workload:
    """A set of random workers sharing one metadata."""

    def __init__(
        self,
        params: WorkloadParams,
        sql_factory: SqlFactory,
        default_config: AllConfig,
        metadata: Metadata,
        actions: ActionRegistry,
    ) -> None:
        self.duration_in_seconds = params.duration_in_seconds
        self.repeat_times = params.repeat_times
        self._actions = actions.copy()
        self._workers: list[RandomWorker] = []
        if self.repeat_times == 0:
            return
        for idx in range(params.number_of_workers):
            name = f"Worker {idx + 1}"
            self._workers.append(
                RandomWorker(
                    name, sql_factory.connect(name), default_config, metadata, actions
                )
            )

    def run(self) -> None:
        for worker in self._workers:
            worker.run_thread(self.duration_in_seconds)

    def wait_completion(self) -> None:
        for worker in self._workers:
            worker.join()

    def worker(self, idx: int) -> RandomWorker:
        """The worker at 1-based position ``idx``."""
        if idx < 1 or idx > len(self._workers):
            raise IndexError(
                f"No such worker {idx}, maximum is {len(self._workers)}"
            )
        return self._workers[idx - 1]

    def worker_count(self) -> int:
        return len(self._workers)

    def reconnect_workers(self) -> None:
        for worker in self._workers:
            worker.reconnect()


class Node:
    """One database server: its connections, metadata and actions."""

    def __init__(self, sql_factory: SqlFactory) -> None:
        self._sql_factory = sql_factory
        self.default_config = AllConfig()
        self.metadata = Metadata()
        self._actions = default_registry().copy()

    def init_random_workload(self, params: WorkloadParams) -> Workload:
        return Workload(
            params, self._sql_factory, self.default_config, self.metadata, self._actions
        )

    def make_worker(self, name: str) -> Worker:
        return Worker(
            name, self._sql_factory.connect(name), self.default_config, self.metadata
        )

    def possible_actions(self) -> ActionRegistry:
        return self._actions

    def sql_params(self) -> ServerParams:
        return self._sql_factory.params()