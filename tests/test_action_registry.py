import pytest

from stormweaver.action import AllConfig
from stormweaver.action_registry import (
    ActionException,
    ActionFactory,
    ActionRegistry,
    default_registry,
)
from stormweaver.bitflags import all_flags
from stormweaver.custom import CustomSql
from stormweaver.ddl import AlterSubcommand, AlterTable, CreateTable
from stormweaver.dml import InsertData
from stormweaver.metadata import Metadata, TableType
from stormweaver.randomness import PsRandom
from stormweaver.sql_generic import GenericSQL, LoggedSQL, QueryResult

DEFAULT_NAMES = [
    "create_normal_table",
    "drop_table",
    "alter_table",
    "insert_some_data",
    "delete_some_data",
    "update_one_row",
]


class RecordingSQL(GenericSQL):
    def __init__(self):
        super().__init__()
        self.queries = []

    def log_error(self, stream):
        stream.write("")

    def execute_query(self, query):
        self.queries.append(query)
        return QueryResult(query=query)

    def server_info_string(self):
        return ""

    def host_info(self):
        return ""

    def reconnect(self):
        pass


@pytest.fixture
def connection(tmp_path):
    sql = RecordingSQL()
    logged = LoggedSQL(sql, "registry", tmp_path)
    yield sql, logged
    logged.close()


def _noop_builder(config):
    return CustomSql(config.custom, "SELECT 1;", ())


def _registry(*pairs):
    registry = ActionRegistry()
    for name, weight in pairs:
        registry.insert(ActionFactory(name, _noop_builder, weight))
    return registry


def test_default_registry_contents():
    registry = default_registry()
    assert len(registry) == len(DEFAULT_NAMES)
    for name in DEFAULT_NAMES:
        assert registry.has(name)
        assert name in registry
    assert registry["create_normal_table"].weight == 100
    assert registry["insert_some_data"].weight == 1000
    assert registry.total_weight() == sum(registry[n].weight for n in DEFAULT_NAMES)


def test_default_builders_configure_actions():
    registry = default_registry()
    config = AllConfig()
    create = registry["create_normal_table"].builder(config)
    assert isinstance(create, CreateTable)
    assert create.table_type is TableType.NORMAL
    alter = registry["alter_table"].builder(config)
    assert isinstance(alter, AlterTable)
    assert alter.possible_commands == all_flags(AlterSubcommand)
    insert = registry["insert_some_data"].builder(config)
    assert isinstance(insert, InsertData)
    assert insert.rows == 10
    assert insert.table is None


def test_insert_returns_position_and_rejects_duplicates():
    registry = ActionRegistry()
    assert registry.insert(ActionFactory("a", _noop_builder, 1)) == 0
    assert registry.insert(ActionFactory("b", _noop_builder, 1)) == 1
    with pytest.raises(ActionException, match="already exists"):
        registry.insert(ActionFactory("a", _noop_builder, 5))
    assert len(registry) == 2


def test_remove_and_missing_names():
    registry = _registry(("a", 1), ("b", 2))
    registry.remove("a")
    assert not registry.has("a")
    assert len(registry) == 1
    with pytest.raises(ActionException, match="does not exists"):
        registry.remove("a")
    with pytest.raises(ActionException):
        registry["a"]
    with pytest.raises(ActionException):
        registry.get("a")


def test_getitem_returns_copy_and_get_returns_reference():
    registry = _registry(("a", 3), ("b", 4))
    copied = registry["a"]
    copied.weight = 100
    assert registry.total_weight() == 7
    registry.get("a").weight = 10
    assert registry["a"].weight == 10
    assert registry.total_weight() == 14


def test_lookup_by_weight_offset():
    registry = _registry(("a", 10), ("b", 5))
    assert registry.lookup_by_weight_offset(0).name == "a"
    assert registry.lookup_by_weight_offset(10).name == "a"
    assert registry.lookup_by_weight_offset(11).name == "b"
    assert registry.lookup_by_weight_offset(15).name == "b"
    with pytest.raises(ActionException, match="outside"):
        registry.lookup_by_weight_offset(16)


def test_lookup_in_empty_registry_fails():
    with pytest.raises(ActionException):
        ActionRegistry().lookup_by_weight_offset(0)


def test_copy_is_independent():
    original = _registry(("a", 1))
    duplicate = original.copy()
    duplicate.get("a").weight = 50
    duplicate.insert(ActionFactory("b", _noop_builder, 2))
    assert original.total_weight() == 1
    assert not original.has("b")
    assert duplicate.total_weight() == 52


def test_use_replaces_contents():
    target = _registry(("x", 9))
    source = _registry(("a", 1), ("b", 2))
    target.use(source)
    assert not target.has("x")
    assert target.has("a") and target.has("b")
    target.get("a").weight = 40
    assert source["a"].weight == 1


def test_custom_sql_action_runs_statement(connection):
    sql, logged = connection
    registry = ActionRegistry()
    registry.make_custom_sql_action("ping", "SELECT 1;", 7)
    factory = registry["ping"]
    assert factory.weight == 7
    factory.builder(AllConfig()).execute(Metadata(), PsRandom(1), logged)
    assert sql.queries == ["SELECT 1;"]


def test_custom_table_sql_action_injects_table(connection):
    sql, logged = connection
    meta = Metadata()
    with meta.create_table() as reservation:
        reservation.table().name = "alpha"
    registry = ActionRegistry()
    registry.make_custom_table_sql_action("analyze", "ANALYZE {table};", 3)
    registry["analyze"].builder(AllConfig()).execute(meta, PsRandom(2), logged)
    assert sql.queries == ["ANALYZE alpha;"]


def test_custom_action_name_must_be_unique():
    registry = ActionRegistry()
    registry.make_custom_sql_action("ping", "SELECT 1;", 1)
    with pytest.raises(ActionException):
        registry.make_custom_table_sql_action("ping", "SELECT 2;", 1)