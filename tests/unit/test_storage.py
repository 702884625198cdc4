"""
Unit tests for the storage gateway.
"""

import itertools
import sqlite3
import threading
from pathlib import Path

import pytest

from guestbook.storage import Entry, StorageError, StorageGateway


def make_entry(name="ada", message="hi", domain="https://ada.dev", color="#ff0000") -> Entry:
    return Entry(name=name, domain=domain, message=message, color=color)


class TestSchema:

    def test_initialize_is_idempotent(self, tmp_path: Path):
        path = tmp_path / "entries.db"

        gateway = StorageGateway(path)
        gateway.initialize_schema()
        gateway.insert_entry(make_entry())
        gateway.increment_visitor_count()
        gateway.initialize_schema()

        assert len(gateway.list_public_entries()) == 1
        assert gateway.read_visitor_count() == 1
        gateway.close()

    def test_data_survives_reopen(self, tmp_path: Path):
        path = tmp_path / "entries.db"

        with StorageGateway(path) as gateway:
            gateway.insert_entry(make_entry(name="persisted"))
            gateway.increment_visitor_count()

        with StorageGateway(path) as gateway:
            assert [e.name for e in gateway.list_public_entries()] == ["persisted"]
            assert gateway.read_visitor_count() == 1

    def test_creates_parent_directory(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "entries.db"
        with StorageGateway(path):
            pass
        assert path.is_file()

    def test_table_layout(self, tmp_path: Path):
        path = tmp_path / "entries.db"
        with StorageGateway(path):
            pass

        conn = sqlite3.connect(str(path))
        try:
            columns = [row[1] for row in conn.execute("PRAGMA table_info(entries)")]
            counter = conn.execute("SELECT id, count FROM visitor_count").fetchall()
        finally:
            conn.close()

        assert columns == ["name", "domain", "message", "color", "time", "public"]
        assert counter == [(1, 0)]

    def test_counter_table_skipped_when_disabled(self, tmp_path: Path):
        path = tmp_path / "entries.db"
        with StorageGateway(path, visitor_count=False):
            pass

        conn = sqlite3.connect(str(path))
        try:
            tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        finally:
            conn.close()

        assert tables == {"entries"}

    def test_unopenable_store_raises(self, tmp_path: Path):
        # A directory where the database file should be
        path = tmp_path / "entries.db"
        path.mkdir()

        with pytest.raises(StorageError):
            StorageGateway(path).initialize_schema()

    def test_operations_before_initialize_raise(self):
        gateway = StorageGateway(":memory:")
        with pytest.raises(StorageError):
            gateway.list_public_entries()
        with pytest.raises(StorageError):
            gateway.insert_entry(make_entry())

    def test_close_is_idempotent(self, storage: StorageGateway):
        storage.close()
        storage.close()
        with pytest.raises(StorageError):
            storage.read_visitor_count()


class TestEntries:

    def test_insert_stamps_time_and_public(self):
        clock = itertools.count(1000)
        gateway = StorageGateway(":memory:", clock=lambda: next(clock))
        gateway.initialize_schema()

        stored = gateway.insert_entry(make_entry())

        assert stored.time == 1000
        assert stored.public is True
        assert gateway.list_public_entries() == [stored]

    def test_client_time_is_ignored(self):
        gateway = StorageGateway(":memory:", clock=lambda: 5.9)
        gateway.initialize_schema()

        stored = gateway.insert_entry(Entry(name="a", domain="https://a", message="m", color="#000000", time=1))

        assert stored.time == 5

    def test_list_in_insertion_order(self, storage: StorageGateway):
        for name in ["one", "two", "three"]:
            storage.insert_entry(make_entry(name=name))

        assert [e.name for e in storage.list_public_entries()] == ["one", "two", "three"]

    def test_time_non_decreasing_in_insertion_order(self, storage: StorageGateway):
        for i in range(20):
            storage.insert_entry(make_entry(name=str(i)))

        times = [e.time for e in storage.list_public_entries()]
        assert times == sorted(times)

    def test_private_rows_are_not_listed(self, tmp_path: Path):
        path = tmp_path / "entries.db"
        with StorageGateway(path) as gateway:
            gateway.insert_entry(make_entry(name="visible"))

        conn = sqlite3.connect(str(path))
        conn.execute(
            "INSERT INTO entries VALUES ('hidden', 'https://x', 'm', '#000000', 1, 0)"
        )
        conn.commit()
        conn.close()

        with StorageGateway(path) as gateway:
            assert [e.name for e in gateway.list_public_entries()] == ["visible"]

    def test_unicode_and_markup_stored_verbatim(self, storage: StorageGateway):
        storage.insert_entry(make_entry(name="Zoë <b>", message="日本語 & 'quotes'"))

        entry = storage.list_public_entries()[0]
        assert entry.name == "Zoë <b>"
        assert entry.message == "日本語 & 'quotes'"

    @pytest.mark.parametrize("bad", [
        "not an entry",
        {"name": "a"},
        Entry(name=None, domain="https://a", message="m", color="#000000"),
        Entry(name="a", domain="https://a", message=42, color="#000000"),
    ])
    def test_malformed_entry_raises(self, storage: StorageGateway, bad):
        with pytest.raises(StorageError):
            storage.insert_entry(bad)
        assert storage.list_public_entries() == []

    def test_concurrent_inserts_are_not_interleaved(self, tmp_path: Path):
        """N threads inserting at once produce exactly N intact rows."""
        gateway = StorageGateway(tmp_path / "entries.db")
        gateway.initialize_schema()

        threads_count = 8
        per_thread = 25
        barrier = threading.Barrier(threads_count)
        errors = []

        def writer(thread_id: int):
            barrier.wait()
            for i in range(per_thread):
                tag = f"t{thread_id}-{i}"
                try:
                    gateway.insert_entry(make_entry(name=tag, message=f"msg-{tag}", domain=f"https://{tag}.dev"))
                except StorageError as e:
                    errors.append(e)

        threads = [threading.Thread(target=writer, args=(t,)) for t in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        entries = gateway.list_public_entries()
        gateway.close()

        assert errors == []
        assert len(entries) == threads_count * per_thread
        assert len({e.name for e in entries}) == threads_count * per_thread
        for entry in entries:
            assert entry.message == f"msg-{entry.name}"
            assert entry.domain == f"https://{entry.name}.dev"

    def test_read_is_a_consistent_snapshot(self, storage: StorageGateway):
        """Readers racing writers only ever see whole rows."""
        stop = threading.Event()

        def writer():
            i = 0
            while not stop.is_set():
                storage.insert_entry(make_entry(name=f"n{i}", message=f"m{i}"))
                i += 1

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(50):
                for entry in storage.list_public_entries():
                    assert entry.message == "m" + entry.name[1:]
        finally:
            stop.set()
            thread.join(timeout=10)


class TestVisitorCounter:

    def test_starts_at_zero(self, storage: StorageGateway):
        assert storage.read_visitor_count() == 0

    def test_increment_returns_new_value(self, storage: StorageGateway):
        assert storage.increment_visitor_count() == 1
        assert storage.increment_visitor_count() == 2
        assert storage.read_visitor_count() == 2

    def test_concurrent_increments(self, tmp_path: Path):
        gateway = StorageGateway(tmp_path / "entries.db")
        gateway.initialize_schema()

        def bump():
            for _ in range(50):
                gateway.increment_visitor_count()

        threads = [threading.Thread(target=bump) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert gateway.read_visitor_count() == 300
        gateway.close()

    def test_disabled_counter_raises(self):
        gateway = StorageGateway(":memory:", visitor_count=False)
        gateway.initialize_schema()

        assert gateway.visitor_count_enabled is False
        with pytest.raises(StorageError):
            gateway.read_visitor_count()
        with pytest.raises(StorageError):
            gateway.increment_visitor_count()
        gateway.close()
