"""Tests for the draft storage media and their selection from settings."""
from __future__ import annotations

from pathlib import Path

import pytest

from harmonik import firestore as firestore_module
from harmonik.config import ConfigError, Settings, load_settings
from harmonik.drafts import (
    DraftStore,
    FileStorage,
    FirestoreStorage,
    MemoryStorage,
    StorageQuotaError,
    build_storage,
)
from harmonik.drafts import storage as storage_module


class FakeDocument:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    @property
    def exists(self):
        return self.id in self._collection.docs

    def get(self):
        return self

    def to_dict(self):
        data = self._collection.docs.get(self.id)
        return dict(data) if data is not None else None

    def set(self, data):
        self._collection.docs[self.id] = dict(data)

    def delete(self):
        self._collection.docs.pop(self.id, None)


class FakeCollection:
    def __init__(self):
        self.docs = {}

    def document(self, doc_id):
        return FakeDocument(self, doc_id)

    def stream(self):
        return [FakeDocument(self, doc_id) for doc_id in list(self.docs)]


class FakeFirestore:
    """Just enough of the Firestore client surface for FirestoreStorage."""

    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())


# =============================================================================
# MemoryStorage
# =============================================================================

class TestMemoryStorage:

    def test_set_get_remove(self):
        storage = MemoryStorage()
        storage.set_item("a", "1")

        assert storage.get_item("a") == "1"
        assert storage.keys() == ["a"]

        storage.remove_item("a")
        storage.remove_item("a")

        assert storage.get_item("a") is None

    def test_quota_counts_other_entries(self):
        storage = MemoryStorage(quota_bytes=10)
        storage.set_item("a", "1234")

        with pytest.raises(StorageQuotaError):
            storage.set_item("b", "123456")

        storage.set_item("a", "123456789")
        assert storage.get_item("a") == "123456789"


# =============================================================================
# FileStorage
# =============================================================================

class TestFileStorage:

    def test_missing_directory_reads_empty(self, tmp_path):
        storage = FileStorage(tmp_path / "nowhere")

        assert storage.keys() == []
        assert storage.get_item("a") is None

    def test_round_trip_odd_keys(self, tmp_path):
        storage = FileStorage(tmp_path / "drafts")
        odd_keys = ["harmonik_draft_space/42", "harmonik_draft_a b%c", "harmonik_draft_ünïcode"]

        for index, key in enumerate(odd_keys):
            storage.set_item(key, str(index))

        assert sorted(storage.keys()) == sorted(odd_keys)
        assert storage.get_item("harmonik_draft_space/42") == "0"

    def test_one_file_per_key(self, tmp_path):
        directory = tmp_path / "drafts"
        storage = FileStorage(directory)

        storage.set_item("harmonik_draft_create-event", "{}")

        assert (directory / "harmonik_draft_create-event.json").read_text(encoding="utf-8") == "{}"

    def test_remove_missing_is_noop(self, tmp_path):
        storage = FileStorage(tmp_path)

        storage.remove_item("nothing")

    def test_failed_write_keeps_previous_value(self, tmp_path, monkeypatch):
        storage = FileStorage(tmp_path)
        storage.set_item("harmonik_draft_form", "first")

        def _crash(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(storage_module.os, "replace", _crash)

        with pytest.raises(OSError):
            storage.set_item("harmonik_draft_form", "second")

        assert storage.get_item("harmonik_draft_form") == "first"
        assert sorted(path.name for path in tmp_path.iterdir()) == ["harmonik_draft_form.json"]

    def test_quota(self, tmp_path):
        storage = FileStorage(tmp_path, quota_bytes=20)
        storage.set_item("k1", "0123456789")

        with pytest.raises(StorageQuotaError):
            storage.set_item("k2", "0123456789")

        assert storage.keys() == ["k1"]

    def test_store_survives_restart(self, tmp_path):
        DraftStore(FileStorage(tmp_path)).save("create-space", {"name": "Loft"})

        reopened = DraftStore(FileStorage(tmp_path))

        assert reopened.load("create-space") == {"name": "Loft"}


# =============================================================================
# FirestoreStorage
# =============================================================================

class TestFirestoreStorage:

    def test_documents_hold_key_and_value(self):
        db = FakeFirestore()
        storage = FirestoreStorage(db, "form_drafts")

        storage.set_item("harmonik_draft_space/1", "payload")

        docs = db.collection("form_drafts").docs
        assert docs == {
            "harmonik_draft_space%2F1": {"key": "harmonik_draft_space/1", "value": "payload"}
        }
        assert storage.get_item("harmonik_draft_space/1") == "payload"
        assert storage.keys() == ["harmonik_draft_space/1"]

    def test_remove(self):
        storage = FirestoreStorage(FakeFirestore())
        storage.set_item("a", "1")

        storage.remove_item("a")

        assert storage.get_item("a") is None
        assert storage.keys() == []

    def test_draft_store_over_firestore(self):
        store = DraftStore(FirestoreStorage(FakeFirestore()))

        store.save("create-event", {"title": "Choir"}, user_id="u9")

        assert store.load("create-event", "u9") == {"title": "Choir"}
        assert store.cleanup_expired() == 0


# =============================================================================
# Settings and backend selection
# =============================================================================

class TestSettings:

    def test_defaults(self, monkeypatch):
        for var in (
            "HARMONIK_DRAFT_BACKEND",
            "HARMONIK_DRAFT_DIR",
            "HARMONIK_DRAFT_QUOTA_BYTES",
            "HARMONIK_DRAFT_COLLECTION",
        ):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setattr("harmonik.config.load_dotenv", lambda: False)

        settings = load_settings()

        assert settings.backend == "file"
        assert settings.collection == "form_drafts"
        assert settings.quota_bytes is None
        assert settings.draft_dir.name == "draft_store"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HARMONIK_DRAFT_BACKEND", "Memory")
        monkeypatch.setenv("HARMONIK_DRAFT_DIR", str(tmp_path))
        monkeypatch.setenv("HARMONIK_DRAFT_QUOTA_BYTES", "5000")
        monkeypatch.setenv("HARMONIK_ENV", "staging")

        settings = load_settings()

        assert settings.backend == "memory"
        assert settings.draft_dir == tmp_path
        assert settings.quota_bytes == 5000
        assert settings.environment == "staging"

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("HARMONIK_DRAFT_BACKEND", "redis")

        with pytest.raises(ConfigError):
            load_settings()

    def test_bad_quota(self, monkeypatch):
        monkeypatch.setenv("HARMONIK_DRAFT_BACKEND", "file")
        monkeypatch.setenv("HARMONIK_DRAFT_QUOTA_BYTES", "lots")

        with pytest.raises(ConfigError):
            load_settings()


class TestBuildStorage:

    def test_memory(self):
        storage = build_storage(Settings(backend="memory", quota_bytes=10))

        assert isinstance(storage, MemoryStorage)
        assert storage.quota_bytes == 10

    def test_file(self, tmp_path):
        storage = build_storage(Settings(backend="file", draft_dir=tmp_path))

        assert isinstance(storage, FileStorage)
        assert storage.directory == tmp_path

    def test_firestore(self, monkeypatch):
        db = FakeFirestore()
        monkeypatch.setattr(storage_module, "get_firestore_client", lambda credentials=None: db)

        storage = build_storage(Settings(backend="firestore", collection="drafts_test"))

        assert isinstance(storage, FirestoreStorage)
        assert storage.db is db
        assert storage.collection == "drafts_test"

    def test_firestore_failure_falls_back_to_files(self, tmp_path, monkeypatch):
        def _unavailable(credentials=None):
            raise RuntimeError("no credentials")

        monkeypatch.setattr(storage_module, "get_firestore_client", _unavailable)

        storage = build_storage(Settings(backend="firestore", draft_dir=tmp_path))

        assert isinstance(storage, FileStorage)
        assert storage.directory == Path(tmp_path)

    def test_cached_firestore_client_is_reused(self, monkeypatch):
        sentinel = object()
        monkeypatch.setattr(firestore_module, "_firestore_client", sentinel)

        assert firestore_module.get_firestore_client() is sentinel

        firestore_module.reset_firestore_client()
        assert firestore_module._firestore_client is None
