import threading
import time

import pytest

from stormweaver.metadata import (
    MAXIMUM_TABLE_COUNT,
    Column,
    ColumnType,
    Metadata,
    MetadataException,
    Reservation,
)


def insert4tables(meta):
    for name in ("foo", "bar", "moo", "boo"):
        reservation = meta.create_table()
        reservation.table().name = name
        reservation.complete()


def names(meta):
    return [meta[i].name for i in range(len(meta))]


@pytest.fixture
def meta():
    m = Metadata()
    insert4tables(m)
    return m


def test_empty_metadata_is_sane():
    m = Metadata()
    assert len(m) == 0
    assert m[0] is None


def test_out_of_range_index_raises():
    m = Metadata()
    with pytest.raises(IndexError):
        m[MAXIMUM_TABLE_COUNT]
    with pytest.raises(IndexError):
        m.alter_table(-1)


def test_table_can_be_inserted():
    m = Metadata()
    reservation = m.create_table()
    assert reservation.is_open()
    reservation.table().name = "foo"
    reservation.complete()
    assert len(m) == 1
    assert m[0].name == "foo"
    assert reservation.index() == 0
    assert not reservation.is_open()


def test_double_complete_not_allowed():
    m = Metadata()
    reservation = m.create_table()
    assert reservation.is_open()
    reservation.table().name = "foo"
    reservation.complete()
    with pytest.raises(MetadataException, match="Double complete not allowed"):
        reservation.complete()
    assert len(m) == 1
    assert m[0].name == "foo"


def test_complete_not_allowed_after_cancel():
    m = Metadata()
    reservation = m.create_table()
    assert reservation.is_open()
    reservation.table().name = "foo"
    reservation.cancel()
    with pytest.raises(MetadataException, match="Complete on invalid reservation"):
        reservation.complete()
    assert len(m) == 0
    assert m[0] is None


def test_insertion_can_be_cancelled():
    m = Metadata()
    reservation = m.create_table()
    reservation.table().name = "foo"
    reservation.cancel()
    assert len(m) == 0
    assert m[0] is None


def test_complete_on_default_reservation():
    with pytest.raises(MetadataException, match="Complete on invalid reservation"):
        Reservation().complete()


def test_multiple_tables_inserted(meta):
    assert len(meta) == 4
    assert names(meta) == ["foo", "bar", "moo", "boo"]


def test_tables_inserted_in_parallel():
    m = Metadata()
    r1 = m.create_table()
    r1.table().name = "foo"
    r2 = m.create_table()
    r2.table().name = "bar"
    r3 = m.create_table()
    r3.table().name = "moo"
    r2.complete()
    r4 = m.create_table()
    r4.table().name = "boo"
    r4.complete()
    r1.complete()
    r3.complete()
    assert len(m) == 4
    assert names(m) == ["bar", "boo", "foo", "moo"]


def test_insertion_fails_over_limit():
    m = Metadata()
    reservation_count = 3
    for i in range(MAXIMUM_TABLE_COUNT - reservation_count):
        reservation = m.create_table()
        reservation.table().name = f"foo{i}"
        reservation.complete()

    reserves = []
    for _ in range(reservation_count):
        reserv = m.create_table()
        assert reserv.is_open()
        reserves.append(reserv)

    assert not m.create_table().is_open()
    reserves[2].cancel()
    assert m.create_table().is_open()


def test_single_alter(meta):
    reservation = meta.alter_table(1)
    reservation.table().name = "barbar"
    reservation.complete()
    assert names(meta) == ["foo", "barbar", "moo", "boo"]


def test_alter_works_on_copy_until_complete(meta):
    reservation = meta.alter_table(1)
    reservation.table().columns.append(Column(name="c", type=ColumnType.TEXT))
    reservation.table().name = "changed"
    assert meta[1].name == "bar"
    assert meta[1].columns == []
    reservation.complete()
    assert meta[1].columns == [Column(name="c", type=ColumnType.TEXT)]


def test_alters_interleaved(meta):
    reservation = meta.alter_table(1)
    reservation.table().name = "bar"
    reservation2 = meta.alter_table(2)
    reservation2.table().name = "moobar"
    reservation2.complete()
    reservation.complete()
    assert names(meta) == ["foo", "bar", "moobar", "boo"]


def test_alters_can_be_cancelled(meta):
    reservation = meta.alter_table(1)
    reservation.table().name = "barbar"
    reservation.cancel()
    assert names(meta) == ["foo", "bar", "moo", "boo"]


def test_double_alter_blocks_and_is_up_to_date(meta):
    res1 = meta.alter_table(2)
    created = threading.Event()
    seen = []

    def do_alter():
        res2 = meta.alter_table(2)
        created.set()
        seen.append(res2.table().name)
        res2.table().name = "moobarbar"
        res2.complete()

    thr = threading.Thread(target=do_alter)
    thr.start()
    time.sleep(0.1)
    assert not created.is_set()
    res1.table().name = "moobar"
    res1.complete()
    thr.join(timeout=5)
    assert created.is_set()
    assert seen == ["moobar"]
    assert len(meta) == 4
    assert names(meta) == ["foo", "bar", "moobarbar", "boo"]


def test_alter_empty_slot_is_closed():
    m = Metadata()
    res = m.alter_table(0)
    assert not res.is_open()
    assert res.index() is None


def test_drop_in_middle(meta):
    meta.drop_table(1).complete()
    assert len(meta) == 3
    assert names(meta) == ["foo", "boo", "moo"]


def test_drop_at_start(meta):
    meta.drop_table(0).complete()
    assert len(meta) == 3
    assert names(meta) == ["boo", "bar", "moo"]


def test_drop_at_end(meta):
    meta.drop_table(3).complete()
    assert len(meta) == 3
    assert names(meta) == ["foo", "bar", "moo"]
    assert meta[3] is None


def test_interleaved_deletes_dont_conflict(meta):
    res1 = meta.drop_table(2)
    res2 = meta.drop_table(1)
    res2.complete()
    res1.complete()
    assert len(meta) == 2
    assert names(meta) == ["foo", "boo"]


def test_interleaved_deletes_at_end(meta):
    res1 = meta.drop_table(3)
    done = threading.Event()

    def do_drop():
        res2 = meta.drop_table(2)
        res2.complete()
        done.set()

    thr = threading.Thread(target=do_drop)
    thr.start()
    time.sleep(0.1)
    assert res1.is_open()
    res1.complete()
    thr.join(timeout=5)
    assert done.is_set()
    assert not res1.is_open()
    assert len(meta) == 2
    assert names(meta) == ["foo", "bar"]


def test_interleaved_deletes_at_end_other_direction(meta):
    res1 = meta.drop_table(3)
    res2 = meta.drop_table(2)
    res1.complete()
    res2.complete()
    assert names(meta) == ["foo", "bar"]


def test_deletes_can_be_cancelled(meta):
    res = meta.drop_table(3)
    res.cancel()
    assert len(meta) == 4
    assert names(meta) == ["foo", "bar", "moo", "boo"]


def test_double_delete_second_blocks_and_is_invalid(meta):
    res1 = meta.drop_table(3)
    result = []
    done = threading.Event()

    def do_drop():
        result.append(meta.drop_table(3))
        done.set()

    thr = threading.Thread(target=do_drop)
    thr.start()
    time.sleep(0.1)
    assert not done.is_set()
    res1.complete()
    thr.join(timeout=5)
    assert done.is_set()
    assert not result[0].is_open()
    assert len(meta) == 3
    assert names(meta) == ["foo", "bar", "moo"]


def test_drop_middle_then_create(meta):
    delete_r = meta.drop_table(1)
    create_r = meta.create_table()
    create_r.table().name = "foofoo"
    delete_r.complete()
    create_r.complete()
    assert len(meta) == 4
    assert names(meta) == ["foo", "boo", "moo", "foofoo"]


def test_create_then_drop_middle(meta):
    delete_r = meta.drop_table(1)
    create_r = meta.create_table()
    create_r.table().name = "foofoo"
    create_r.complete()
    delete_r.complete()
    assert len(meta) == 4
    assert names(meta) == ["foo", "foofoo", "moo", "boo"]


def test_drop_end_then_create(meta):
    delete_r = meta.drop_table(3)
    create_r = meta.create_table()
    create_r.table().name = "foofoo"
    delete_r.complete()
    create_r.complete()
    assert len(meta) == 4
    assert names(meta) == ["foo", "bar", "moo", "foofoo"]


def test_create_blocks_on_drop_at_end(meta):
    delete_r = meta.drop_table(3)
    holder = {}
    done = threading.Event()
    reserved = threading.Event()

    def do_create():
        create_r = meta.create_table()
        holder["r"] = create_r
        create_r.table().name = "foofoo"
        reserved.set()
        create_r.complete()
        done.set()

    thr = threading.Thread(target=do_create)
    thr.start()
    assert reserved.wait(timeout=5)
    time.sleep(0.1)
    assert not done.is_set()
    assert len(meta) == 4
    assert holder["r"].is_open()
    delete_r.complete()
    thr.join(timeout=5)
    assert done.is_set()
    assert not holder["r"].is_open()
    assert len(meta) == 4
    assert names(meta) == ["foo", "bar", "moo", "foofoo"]


def test_context_manager_completes():
    m = Metadata()
    with m.create_table() as res:
        res.table().name = "foo"
    assert len(m) == 1
    assert m[0].name == "foo"


def test_context_manager_cancels_on_error(meta):
    with pytest.raises(RuntimeError):
        with meta.alter_table(0) as res:
            res.table().name = "changed"
            raise RuntimeError("boom")
    assert meta[0].name == "foo"
    # slot lock was released: a new alter succeeds
    res = meta.alter_table(0)
    assert res.is_open()
    res.cancel()