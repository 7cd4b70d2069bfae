"""Tests for rblink-store implementations."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from rblink_store.gist import GistStore
from rblink_store.models import BuildRecord, OutcomeRecord
from rblink_store.noop import NoOpStore
from rblink_store.sqlite import SQLiteStore


def _make_record(job="nightly", number=1, key="ABC-1", review_id=42, succeeded=True):
    return BuildRecord(
        job=job,
        number=number,
        built_at=f"2024-06-{number:02d}T12:00:00+00:00",
        succeeded=succeeded,
        outcomes=[
            OutcomeRecord(
                external_id=key,
                change_number=1000 + number,
                review_id=review_id,
                author="jdoe",
                description=f"{key} Fix the frobnicator",
            ),
        ],
    )


# ---------------------------------------------------------------------------
# NoOpStore
# ---------------------------------------------------------------------------


class TestNoOpStore:
    def test_save_does_not_raise(self):
        store = NoOpStore()
        store.save(_make_record())  # must not raise

    def test_list_builds_returns_empty(self):
        store = NoOpStore()
        store.save(_make_record())
        assert store.list_builds("nightly") == []

    def test_prune_and_close_are_safe(self):
        store = NoOpStore()
        store.prune("nightly", 1)
        store.close()


# ---------------------------------------------------------------------------
# SQLiteStore
# ---------------------------------------------------------------------------


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteStore(db_path=str(tmp_path / "test.db"))
    yield store
    store.close()


class TestSQLiteStore:
    def test_save_and_list(self, sqlite_store):
        sqlite_store.save(_make_record())
        results = sqlite_store.list_builds("nightly")
        assert len(results) == 1
        assert results[0].number == 1
        assert results[0].succeeded is True

    def test_outcomes_roundtrip(self, sqlite_store):
        record = _make_record()
        sqlite_store.save(record)
        assert sqlite_store.list_builds("nightly")[0].outcomes == record.outcomes

    def test_builds_ordered_oldest_first(self, sqlite_store):
        for number in (3, 1, 2):
            sqlite_store.save(_make_record(number=number))
        assert [b.number for b in sqlite_store.list_builds("nightly")] == [1, 2, 3]

    def test_different_job_isolated(self, sqlite_store):
        sqlite_store.save(_make_record(job="nightly"))
        sqlite_store.save(_make_record(job="release"))
        assert len(sqlite_store.list_builds("nightly")) == 1

    def test_empty_job_returns_empty_list(self, sqlite_store):
        assert sqlite_store.list_builds("nightly") == []

    def test_save_replaces_same_build(self, sqlite_store):
        sqlite_store.save(_make_record(number=1, review_id=42))
        sqlite_store.save(_make_record(number=1, review_id=43, succeeded=False))
        results = sqlite_store.list_builds("nightly")
        assert len(results) == 1
        assert results[0].outcomes[0].review_id == 43
        assert results[0].succeeded is False

    def test_prune_keeps_most_recent(self, sqlite_store):
        for number in range(1, 6):
            sqlite_store.save(_make_record(number=number))
        sqlite_store.save(_make_record(job="release", number=1))

        sqlite_store.prune("nightly", 2)

        assert [b.number for b in sqlite_store.list_builds("nightly")] == [4, 5]
        assert len(sqlite_store.list_builds("release")) == 1

    def test_persists_across_connections(self, tmp_path):
        """Data written by one SQLiteStore instance must be readable by another."""
        db_path = str(tmp_path / "test.db")
        store_a = SQLiteStore(db_path=db_path)
        store_a.save(_make_record())
        store_a.close()

        store_b = SQLiteStore(db_path=db_path)
        results = store_b.list_builds("nightly")
        assert len(results) == 1
        store_b.close()


# ---------------------------------------------------------------------------
# GistStore
# ---------------------------------------------------------------------------


def _make_gist_mock(existing_records: list[dict] | None = None):
    """Return a mock Gist object with rblink_history.json pre-populated."""
    gist = MagicMock()
    if existing_records is None:
        gist.files = {}
    else:
        file_mock = MagicMock()
        file_mock.content = json.dumps(existing_records)
        gist.files = {"rblink_history.json": file_mock}
    return gist


def _make_gist_store():
    """Return a GistStore with a mocked Github client."""
    store = object.__new__(GistStore)
    store._gist_id = "abc123"
    store._gh = MagicMock()
    return store


def _written(gist) -> list[dict]:
    return json.loads(gist.edit.call_args[1]["files"]["rblink_history.json"]["content"])


@pytest.fixture
def input_file_content():
    with patch("github.InputFileContent", side_effect=lambda content: {"content": content}) as mock:
        yield mock


class TestGistStore:
    def test_save_appends_record(self, input_file_content):
        store = _make_gist_store()
        gist = _make_gist_mock(existing_records=[])
        store._gh.get_gist.return_value = gist

        store.save(_make_record())

        gist.edit.assert_called_once()
        content = _written(gist)
        assert len(content) == 1
        assert content[0]["job"] == "nightly"
        assert content[0]["outcomes"][0]["review_id"] == 42

    def test_save_creates_missing_file(self, input_file_content):
        store = _make_gist_store()
        gist = _make_gist_mock(existing_records=None)
        store._gh.get_gist.return_value = gist

        store.save(_make_record())

        assert len(_written(gist)) == 1

    def test_save_appends_to_existing_records(self, input_file_content):
        existing = [GistStore._to_dict(_make_record(number=1))]
        store = _make_gist_store()
        gist = _make_gist_mock(existing_records=existing)
        store._gh.get_gist.return_value = gist

        store.save(_make_record(number=2))

        assert len(_written(gist)) == 2

    def test_save_replaces_same_build(self, input_file_content):
        existing = [GistStore._to_dict(_make_record(number=1, review_id=42))]
        store = _make_gist_store()
        gist = _make_gist_mock(existing_records=existing)
        store._gh.get_gist.return_value = gist

        store.save(_make_record(number=1, review_id=43))

        content = _written(gist)
        assert len(content) == 1
        assert content[0]["outcomes"][0]["review_id"] == 43

    def test_save_does_not_raise_on_exception(self, capsys):
        store = _make_gist_store()
        store._gh.get_gist.side_effect = Exception("network error")

        store.save(_make_record())  # must not raise

        captured = capsys.readouterr()
        assert "Warning" in captured.out

    def test_list_builds_returns_matching_job_sorted(self):
        records = [
            GistStore._to_dict(_make_record(job="nightly", number=2)),
            GistStore._to_dict(_make_record(job="release", number=1)),
            GistStore._to_dict(_make_record(job="nightly", number=1)),
        ]
        store = _make_gist_store()
        store._gh.get_gist.return_value = _make_gist_mock(existing_records=records)

        results = store.list_builds("nightly")

        assert [r.number for r in results] == [1, 2]
        assert all(r.job == "nightly" for r in results)

    def test_list_builds_returns_empty_on_exception(self):
        store = _make_gist_store()
        store._gh.get_gist.side_effect = Exception("network error")
        assert store.list_builds("nightly") == []

    def test_list_builds_handles_missing_file(self):
        store = _make_gist_store()
        store._gh.get_gist.return_value = _make_gist_mock(existing_records=None)
        assert store.list_builds("nightly") == []

    def test_prune_keeps_most_recent(self, input_file_content):
        records = [GistStore._to_dict(_make_record(number=n)) for n in range(1, 5)]
        records.append(GistStore._to_dict(_make_record(job="release", number=1)))
        store = _make_gist_store()
        gist = _make_gist_mock(existing_records=records)
        store._gh.get_gist.return_value = gist

        store.prune("nightly", 2)

        kept = [(r["job"], r["number"]) for r in _written(gist)]
        assert kept == [("nightly", 3), ("nightly", 4), ("release", 1)]

    def test_prune_without_excess_does_not_write(self):
        store = _make_gist_store()
        gist = _make_gist_mock(existing_records=[GistStore._to_dict(_make_record())])
        store._gh.get_gist.return_value = gist

        store.prune("nightly", 5)

        gist.edit.assert_not_called()

    def test_to_dict_from_dict_roundtrip(self):
        record = _make_record()
        assert GistStore._from_dict(GistStore._to_dict(record)) == record
