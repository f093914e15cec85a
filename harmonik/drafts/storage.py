"""Key-value media that drafts are persisted into.

Every medium speaks the same small vocabulary as browser local storage:
string keys mapped to string values, with enumeration of all keys.

File Storage:
    {draft_dir}/{percent-encoded key}.json

Firestore Structure:
    {collection}/{percent-encoded key} -> {"key": key, "value": value}
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote, unquote

from ..config import Settings
from ..firestore import get_firestore_client

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".json"
TMP_SUFFIX = ".tmp"


class StorageQuotaError(RuntimeError):
    """Raised when a write would push a medium past its byte quota."""


class DraftStorage(Protocol):
    """Minimal key-value medium used by the draft store."""

    name: str

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def keys(self) -> List[str]:
        ...


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


def _encode_key(key: str) -> str:
    return quote(key, safe="")


def _decode_key(name: str) -> str:
    return unquote(name)


class MemoryStorage:
    """Process-local dict medium, mostly for tests and ephemeral servers."""

    name = "memory"

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(
                _entry_size(k, v) for k, v in self._items.items() if k != key
            )
            if used + _entry_size(key, value) > self.quota_bytes:
                raise StorageQuotaError(
                    f"Writing {key!r} would exceed the {self.quota_bytes} byte quota"
                )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class FileStorage:
    """Durable local medium storing one file per key."""

    name = "file"

    def __init__(self, directory: Path, quota_bytes: Optional[int] = None) -> None:
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{_encode_key(key)}{FILE_SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = 0
            for existing in self.keys():
                if existing == key:
                    continue
                stored = self.get_item(existing)
                if stored is not None:
                    used += _entry_size(existing, stored)
            if used + _entry_size(key, value) > self.quota_bytes:
                raise StorageQuotaError(
                    f"Writing {key!r} would exceed the {self.quota_bytes} byte quota"
                )
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # Write beside the target then swap in, so a crash never truncates a draft.
        tmp_path = path.with_name(path.name + TMP_SUFFIX)
        try:
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(
            _decode_key(path.name[: -len(FILE_SUFFIX)])
            for path in self.directory.glob(f"*{FILE_SUFFIX}")
        )


class FirestoreStorage:
    """Firestore collection used as a key-value medium."""

    name = "firestore"

    def __init__(self, db: Any, collection: str = "form_drafts") -> None:
        self.db = db
        self.collection = collection

    def _doc(self, key: str):
        return self.db.collection(self.collection).document(_encode_key(key))

    def get_item(self, key: str) -> Optional[str]:
        doc = self._doc(key).get()
        if not doc.exists:
            return None
        return (doc.to_dict() or {}).get("value")

    def set_item(self, key: str, value: str) -> None:
        self._doc(key).set({"key": key, "value": value})

    def remove_item(self, key: str) -> None:
        self._doc(key).delete()

    def keys(self) -> List[str]:
        keys = []
        for doc in self.db.collection(self.collection).stream():
            data = doc.to_dict() or {}
            keys.append(data.get("key") or _decode_key(doc.id))
        return keys


def build_storage(settings: Settings) -> DraftStorage:
    """Create the medium selected by the settings.

    A Firestore backend that cannot be initialised falls back to file storage.
    """
    if settings.backend == "memory":
        return MemoryStorage(quota_bytes=settings.quota_bytes)

    if settings.backend == "firestore":
        try:
            db = get_firestore_client(settings.firebase_credentials)
            return FirestoreStorage(db, settings.collection)
        except Exception as exc:
            logger.warning(
                f"[Draft] Firestore unavailable, falling back to local files: {exc}"
            )

    return FileStorage(settings.draft_dir, quota_bytes=settings.quota_bytes)
