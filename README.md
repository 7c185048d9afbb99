# stormweaver

A library for generating concurrent, randomized SQL workloads against a
database server. These workloads include DDL that changes the schema while
other workers keep reading and writing it.

stormweaver does not ask the server which tables exist before every
statement. It keeps its own record of the schema in a thread-safe `Metadata`
store. Every successful `CREATE`, `ALTER` or `DROP` updates that store. As a
result, workers keep producing mostly valid SQL while still running into each
other's schema changes.

## Installation

```
pip install stormweaver
```

To run the test suite:

```
pip install "stormweaver[test]"
pytest
```

## Modules

- `stormweaver.metadata`: the `Metadata` store.
  - It holds up to 200 `Table` descriptions, each made of `Column` and `Index` entries.
  - The slots stay free of holes: when a table is dropped, the last table moves into its slot.
  - Changes go through a `Reservation`, which you get from `Metadata.create_table()`, `Metadata.alter_table(idx)` or `Metadata.drop_table(idx)`.
  - Call `complete()` on a reservation to publish the change, or `cancel()` to discard it.
  - A reservation is also a context manager. It completes on normal exit and cancels when the block raises.
  - `create_table()` returns a closed reservation (`is_open()` is false) when the store is full.
  - Misuse raises `MetadataException`. Examples are completing a reservation twice, or completing one after cancelling it.
- `stormweaver.randomness`: `PsRandom`.
  - It is a random generator seeded from the system, or from the `seed` you pass.
  - It provides `random_int`, `random_float`, `random_uint64`, `random_string` (alphanumeric) and `choice`.
- `stormweaver.bitflags`: helpers for `enum.Flag` values.
  - `flag_members` lists the members set in a value.
  - `all_flags` combines every member of a flag type.
  - `flag_bits` renders a value as a fixed-width binary string.
- `stormweaver.sql_generic`: the connection interface and its result types.
  - `GenericSQL` is the abstract connection.
  - `LoggedSQL` wraps a connection and writes every statement, and every error, to `sql-conn-<name>.log` in a log directory (`logs` by default).
  - `QueryResult` reports failures instead of raising them. `maybe_throw()` turns a failure into `SqlException`.
  - `ServerInfo` compares server flavors and versions.
- `stormweaver.sql_mysql`: `MySQL`, a `GenericSQL` built on pymysql.
  - It detects MySQL, Percona Server and Percona XtraDB Cluster.
  - `parse_version` turns a version string such as `8.0.36-28` into `major * 10000 + minor * 100 + patch`.
- `stormweaver.action`: the `Action` base class and the configuration dataclasses `DdlConfig`, `DmlConfig`, `CustomConfig` and `AllConfig`.
- `stormweaver.ddl`: `CreateTable`, `DropTable` and `AlterTable`.
  - `AlterTable` takes an `AlterSubcommand` flag combination.
  - The helpers `random_column` and `column_definition` are also available.
- `stormweaver.dml`: `InsertData`, `DeleteData`, `UpdateOneRow` and `generate_value`.
- `stormweaver.custom`: `CustomSql`, which runs a fixed statement. `{table}` in the statement is replaced by the name of a random known table.
- `stormweaver.action_registry`: `ActionRegistry`, a thread-safe ordered set of named, weighted `ActionFactory` entries.
  - `default_registry()` returns the built-in set: create, drop and alter table with weight 100 each, and insert, delete and update with weight 1000 each.
  - `make_custom_sql_action` and `make_custom_table_sql_action` add your own statements.
  - `get(name)` returns the factory itself, so you can change its `weight`.
  - `use(other)` replaces the registry's contents with a copy of another registry's.
- `stormweaver.workload`: `Node`, `SqlFactory`, `Worker`, `RandomWorker`, `Workload` and `WorkloadParams`.
  - A `RandomWorker` runs weighted random actions in a background thread for a fixed number of seconds.
  - It counts successes in `successful_actions` and failures in `failed_actions`.

## Example

```python
from stormweaver.metadata import Metadata

meta = Metadata()
with meta.create_table() as res:
    res.table().name = "foo"

print(len(meta), meta[0].name)  # 1 foo
```

Driving a server:

```python
from stormweaver.sql_generic import ServerParams
from stormweaver.workload import Node, SqlFactory, WorkloadParams

password = "password"
params = ServerParams(database="stormweaver", address="localhost",
                      username="root", password=password, port=3306)
node = Node(SqlFactory(params))

init = node.make_worker("Initialization")
init.create_random_tables(5)
init.generate_initial_data()

workload = node.init_random_workload(
    WorkloadParams(duration_in_seconds=10, repeat_times=1, number_of_workers=5)
)
workload.run()
workload.wait_completion()
print(workload.worker(1).successful_actions, workload.worker(1).failed_actions)
```

By default, `SqlFactory` opens `MySQL` connections. Pass another callable as
`backend` to use a different `GenericSQL` implementation. Pass
`connection_callback` to run setup on every new `LoggedSQL`.

## What it does not do

- **No command-line program or scenario scripting.** You drive stormweaver
  from your own Python code.
- **One connection backend only.** The only connection backend included is
  `MySQL`. For any other server you must write a `GenericSQL` subclass yourself.
- **Some generated statements use PostgreSQL-style syntax.** Examples are
  `SERIAL` columns, `ORDER BY random()` and `SET ACCESS METHOD`. Statements
  that a server rejects are logged and counted as failed actions.
- **No server process management.** stormweaver does not start, stop, kill
  or initialize database servers.