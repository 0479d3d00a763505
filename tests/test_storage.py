import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from evidence.storage import (
    FileStorage,
    LocalStorage,
    MemoryStorage,
    ResultStore,
    StorageError,
    open_storage,
)


class StepClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


class FailingStorage(MemoryStorage):
    def getItem(self, key):
        raise StorageError("disk gone")

    def setItem(self, key, value):
        raise StorageError("quota exceeded")

    def removeItem(self, key):
        raise StorageError("disk gone")


def test_identity_is_namespaced_and_timestamped() -> None:
    backend = MemoryStorage()
    store = ResultStore(backend, clock=StepClock())
    assert not store.is_registered()

    saved = store.save_identity({"name": "Ana", "email": "ana@example.com", "location": "Recife"})
    assert saved["registered_at"] == "2024-01-01T00:01:00+00:00"
    assert store.is_registered()
    assert json.loads(backend.items["evidence_user"])["name"] == "Ana"

    store.save_identity({"name": "Bia"})
    assert store.get_identity()["name"] == "Bia"
    assert "email" not in store.get_identity()


def test_history_is_capped_most_recent_first() -> None:
    store = ResultStore(MemoryStorage(), clock=StepClock())
    for idx in range(51):
        store.append_result({"title": f"Result {idx}"})

    history = store.get_history()
    assert len(history) == 50
    assert history[0]["title"] == "Result 50"
    assert history[-1]["title"] == "Result 1"
    assert history[0]["completed_at"] > history[1]["completed_at"]


def test_history_limit_is_configurable() -> None:
    store = ResultStore(MemoryStorage(), history_limit=2)
    for idx in range(3):
        store.append_result({"title": str(idx)})
    assert [entry["title"] for entry in store.get_history()] == ["2", "1"]


def test_clear_removes_identity_and_history() -> None:
    backend = MemoryStorage({"language": "en"})
    store = ResultStore(backend)
    store.save_identity({"name": "Ana"})
    store.append_result({"title": "Athena"})

    assert store.clear()
    assert not store.is_registered()
    assert store.get_history() == []
    assert backend.items == {"language": "en"}


def test_export_import_round_trip_skips_cap() -> None:
    source = ResultStore(MemoryStorage())
    source.save_identity({"name": "Ana"})
    source.append_result({"title": "Hermes"})
    exported = source.export_data()
    assert exported["version"] == "1.0"
    assert exported["identity"]["name"] == "Ana"
    assert exported["exported_at"]

    exported["history"] = [{"title": f"Old {idx}"} for idx in range(60)]
    target = ResultStore(MemoryStorage())
    target.append_result({"title": "Replaced"})
    assert target.import_data(exported)

    assert target.get_identity()["name"] == "Ana"
    assert len(target.get_history()) == 60
    assert target.get_history()[0]["title"] == "Old 0"


def test_import_accepts_legacy_user_key_and_partial_documents() -> None:
    store = ResultStore(MemoryStorage())
    store.append_result({"title": "Kept"})

    assert store.import_data({"user": {"name": "Legacy"}})
    assert store.get_identity()["name"] == "Legacy"
    assert store.get_history()[0]["title"] == "Kept"

    assert store.import_data({"history": []})
    assert store.get_history() == []


def test_import_rejects_non_objects(caplog) -> None:
    store = ResultStore(MemoryStorage())
    with caplog.at_level(logging.ERROR, logger="evidence.storage"):
        assert not store.import_data(["not", "a", "doc"])
        assert not store.import_data({"history": "nope"})
    assert "Import rejected" in caplog.text
    assert store.get_history() == []


def test_backend_failures_degrade_to_noops(caplog) -> None:
    store = ResultStore(FailingStorage())
    with caplog.at_level(logging.ERROR, logger="evidence.storage"):
        assert store.save_identity({"name": "Ana"}) is None
        assert store.append_result({"title": "Ares"}) is None
        assert store.get_identity() is None
        assert not store.is_registered()
        assert store.get_history() == []
        assert not store.clear()
    assert "quota exceeded" in caplog.text


def test_corrupt_values_read_as_missing() -> None:
    backend = MemoryStorage({"evidence_history": "{not json", "evidence_user": "[1, 2]"})
    store = ResultStore(backend)
    assert store.get_history() == []
    assert store.get_identity() is None


def test_unserializable_record_is_not_saved() -> None:
    store = ResultStore(MemoryStorage())
    assert store.append_result({"title": object()}) is None
    assert store.get_history() == []


def test_file_storage_persists_between_instances(tmp_path: Path) -> None:
    first = ResultStore(FileStorage(tmp_path / "data"))
    first.save_identity({"name": "Ana"})
    first.append_result({"title": "Athena"})

    second = ResultStore(FileStorage(tmp_path / "data"))
    assert second.is_registered()
    assert second.get_history()[0]["title"] == "Athena"
    assert (tmp_path / "data" / "evidence_history.json").exists()

    assert second.clear()
    assert not (tmp_path / "data" / "evidence_user.json").exists()
    assert second.clear()


def test_file_storage_rejects_empty_keys(tmp_path: Path) -> None:
    backend = FileStorage(tmp_path)
    with pytest.raises(StorageError):
        backend.setItem("../", "x")


def test_local_storage_wraps_browser_errors() -> None:
    class QuotaStorage:
        def getItem(self, key):
            return None

        def setItem(self, key, value):
            raise RuntimeError("QuotaExceededError")

        def removeItem(self, key):
            return None

    backend = LocalStorage(QuotaStorage())
    assert backend.getItem("x") is None
    with pytest.raises(StorageError, match="QuotaExceededError"):
        backend.setItem("x", "1")
    assert ResultStore(backend).append_result({"title": "Ares"}) is None


def test_open_storage_picks_file_backend_off_web(tmp_path: Path, caplog) -> None:
    backend = open_storage(tmp_path, web=False)
    assert isinstance(backend, FileStorage)
    assert backend.base_path == tmp_path

    with caplog.at_level(logging.WARNING, logger="evidence.storage"):
        fallback = open_storage(tmp_path, web=True)
    assert isinstance(fallback, FileStorage)
    assert "localStorage unavailable" in caplog.text
