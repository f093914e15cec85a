"""Expiring, user-scoped form draft storage.

Drafts are snapshots of in-progress form input. Each one is written under
``harmonik_draft_<key>`` in a key-value medium as::

    {"data": <payload>, "metadata": {"timestamp": ms, "expiresAt": ms, "userId": str}}

Saving is best-effort: no failure in this module ever reaches the caller.
Expired drafts are evicted lazily when read, and ``cleanup_expired`` sweeps
the whole namespace once at startup.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from ..config import load_settings
from .storage import DraftStorage, build_storage

logger = logging.getLogger(__name__)

T = TypeVar("T")

DRAFT_PREFIX = "harmonik_draft_"
DRAFT_EXPIRY_DAYS = 7
DRAFT_TTL_MS = DRAFT_EXPIRY_DAYS * 24 * 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class DraftMetadata:
    """Bookkeeping stored next to every draft payload."""

    timestamp: int
    expires_at: int
    user_id: Optional[str] = None

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "expiresAt": self.expires_at,
        }
        if self.user_id is not None:
            data["userId"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftMetadata":
        user_id = data.get("userId")
        if user_id is not None and not isinstance(user_id, str):
            raise ValueError(f"draft owner must be a string, got {user_id!r}")
        return cls(
            timestamp=int(data["timestamp"]),
            expires_at=int(data["expiresAt"]),
            user_id=user_id,
        )


class DraftMiss(str, Enum):
    """Why a draft operation produced nothing."""

    MISSING = "missing"
    CORRUPT = "corrupt"
    EXPIRED = "expired"
    USER_MISMATCH = "user_mismatch"
    STORAGE_ERROR = "storage_error"


@dataclass(slots=True)
class DraftResult(Generic[T]):
    """Explicit outcome of a store operation.

    The public API collapses every miss to ``None``/``False``; this type keeps
    the reason around for callers (and tests) that care.
    """

    ok: bool
    value: Optional[T] = None
    metadata: Optional[DraftMetadata] = None
    miss: Optional[DraftMiss] = None
    error: Optional[Exception] = None

    @classmethod
    def hit(cls, value: Optional[T] = None, metadata: Optional[DraftMetadata] = None) -> "DraftResult[T]":
        return cls(ok=True, value=value, metadata=metadata)

    @classmethod
    def missed(cls, miss: DraftMiss, error: Optional[Exception] = None) -> "DraftResult[T]":
        return cls(ok=False, miss=miss, error=error)


def _decode(raw: str) -> Tuple[Any, DraftMetadata]:
    """Parse a stored record. Raises when the record is corrupt."""
    record = json.loads(raw)
    if not isinstance(record, dict) or not isinstance(record.get("metadata"), dict):
        raise ValueError("draft record is missing its metadata")
    return record.get("data"), DraftMetadata.from_dict(record["metadata"])


class DraftStore:
    """Namespaced, expiring draft storage over a key-value medium."""

    def __init__(
        self,
        storage: DraftStorage,
        *,
        prefix: str = DRAFT_PREFIX,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.storage = storage
        self.prefix = prefix
        self.clock = clock

    def _storage_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    # --- explicit outcomes ---

    def write(self, key: str, data: T, user_id: Optional[str] = None) -> DraftResult[T]:
        """Serialize and store a draft, overwriting any previous one."""
        timestamp = self.clock()
        metadata = DraftMetadata(
            timestamp=timestamp,
            expires_at=timestamp + DRAFT_TTL_MS,
            user_id=user_id,
        )
        try:
            raw = json.dumps({"data": data, "metadata": metadata.to_dict()})
            self.storage.set_item(self._storage_key(key), raw)
        except Exception as exc:
            return DraftResult.missed(DraftMiss.STORAGE_ERROR, exc)
        return DraftResult.hit(data, metadata)

    def read(self, key: str, user_id: Optional[str] = None) -> DraftResult[Any]:
        """Fetch a draft, evicting it if it has expired."""
        try:
            raw = self.storage.get_item(self._storage_key(key))
        except Exception as exc:
            return DraftResult.missed(DraftMiss.STORAGE_ERROR, exc)
        if not raw:
            return DraftResult.missed(DraftMiss.MISSING)

        # Overflow and nesting-depth errors count as corrupt too.
        try:
            data, metadata = _decode(raw)
        except Exception as exc:
            return DraftResult.missed(DraftMiss.CORRUPT, exc)

        if metadata.is_expired(self.clock()):
            self.delete(key)
            return DraftResult.missed(DraftMiss.EXPIRED)

        # A scoped read only sees drafts owned by that same user.
        if user_id and metadata.user_id != user_id:
            return DraftResult.missed(DraftMiss.USER_MISMATCH)

        return DraftResult.hit(data, metadata)

    # --- best-effort public API ---

    def save(self, key: str, data: T, user_id: Optional[str] = None) -> None:
        """Save form data as a draft. Failures are logged, never raised."""
        result = self.write(key, data, user_id)
        if not result.ok:
            logger.warning(f"Failed to save draft {key!r}: {result.error}")

    def load(self, key: str, user_id: Optional[str] = None) -> Optional[Any]:
        """Return the draft payload, or None if absent, expired or not visible."""
        result = self.read(key, user_id)
        if result.miss in (DraftMiss.CORRUPT, DraftMiss.STORAGE_ERROR):
            logger.warning(f"Failed to load draft {key!r}: {result.error}")
        return result.value if result.ok else None

    def delete(self, key: str) -> None:
        """Remove a draft; missing drafts are ignored."""
        try:
            self.storage.remove_item(self._storage_key(key))
        except Exception as exc:
            logger.warning(f"Failed to delete draft {key!r}: {exc}")

    def has(self, key: str) -> bool:
        """Check whether a live draft exists, ignoring ownership."""
        try:
            raw = self.storage.get_item(self._storage_key(key))
            if not raw:
                return False
            _, metadata = _decode(raw)
        except Exception:
            return False

        if metadata.is_expired(self.clock()):
            self.delete(key)
            return False
        return True

    def get_metadata(self, key: str) -> Optional[DraftMetadata]:
        """Return stored metadata without checking expiry."""
        try:
            raw = self.storage.get_item(self._storage_key(key))
            if not raw:
                return None
            _, metadata = _decode(raw)
        except Exception:
            return None
        return metadata

    def keys(self) -> List[str]:
        """Caller keys of every draft in the namespace, live or not."""
        return [
            key[len(self.prefix):]
            for key in self.storage.keys()
            if key.startswith(self.prefix)
        ]

    def list_drafts(self, user_id: Optional[str] = None) -> List[Tuple[str, DraftMetadata]]:
        """List live drafts, newest first, optionally only those owned by ``user_id``.

        Expired and corrupt entries are skipped but left for the sweep.
        """
        now = self.clock()
        drafts = []
        for key in self.keys():
            metadata = self.get_metadata(key)
            if metadata is None or metadata.is_expired(now):
                continue
            if user_id and metadata.user_id != user_id:
                continue
            drafts.append((key, metadata))
        drafts.sort(key=lambda item: item[1].timestamp, reverse=True)
        return drafts

    def cleanup_expired(self) -> int:
        """Remove expired and unreadable drafts. Returns how many were removed."""
        removed = 0
        try:
            now = self.clock()
            for storage_key in self.storage.keys():
                if not storage_key.startswith(self.prefix):
                    continue
                try:
                    raw = self.storage.get_item(storage_key)
                    if not raw:
                        continue
                    _, metadata = _decode(raw)
                    if not metadata.is_expired(now):
                        continue
                except Exception as exc:
                    # Unreadable drafts are dropped rather than kept.
                    logger.debug(f"Dropping unreadable draft {storage_key!r}: {exc}")
                try:
                    self.storage.remove_item(storage_key)
                except Exception as exc:
                    logger.warning(f"Failed to remove draft {storage_key!r}: {exc}")
                    continue
                removed += 1
        except Exception as exc:
            logger.warning(f"Failed to cleanup drafts: {exc}")
        if removed:
            logger.info(f"Removed {removed} expired draft(s)")
        return removed

    def form_draft(self, key: str, user_id: Optional[str] = None) -> "FormDraft[Any]":
        return FormDraft(self, key, user_id)


class FormDraft(Generic[T]):
    """A draft handle bound to one form key and (optionally) one user.

    Forms typically ``load()`` once on mount, ``save()`` on a debounce while
    the user edits and ``delete()`` after a successful submit.
    """

    def __init__(self, store: DraftStore, key: str, user_id: Optional[str] = None) -> None:
        self.store = store
        self.key = key
        self.user_id = user_id

    def save(self, data: T) -> None:
        self.store.save(self.key, data, self.user_id)

    def load(self) -> Optional[T]:
        return self.store.load(self.key, self.user_id)

    def delete(self) -> None:
        self.store.delete(self.key)

    def has(self) -> bool:
        return self.store.has(self.key)

    def get_metadata(self) -> Optional[DraftMetadata]:
        return self.store.get_metadata(self.key)


# =============================================================================
# Default store
# =============================================================================

@lru_cache
def get_draft_store() -> DraftStore:
    """Return the process-wide store built from the environment settings."""
    settings = load_settings()
    storage = build_storage(settings)
    logger.debug(f"Draft store using {storage.name} storage")
    return DraftStore(storage)


def init_drafts() -> int:
    """Sweep expired drafts once; call during application startup."""
    return get_draft_store().cleanup_expired()


def save_draft(key: str, data: Any, user_id: Optional[str] = None) -> None:
    get_draft_store().save(key, data, user_id)


def load_draft(key: str, user_id: Optional[str] = None) -> Optional[Any]:
    return get_draft_store().load(key, user_id)


def delete_draft(key: str) -> None:
    get_draft_store().delete(key)


def has_draft(key: str) -> bool:
    return get_draft_store().has(key)


def get_draft_metadata(key: str) -> Optional[DraftMetadata]:
    return get_draft_store().get_metadata(key)


def cleanup_expired_drafts() -> int:
    return get_draft_store().cleanup_expired()


def form_draft(key: str, user_id: Optional[str] = None) -> FormDraft[Any]:
    return get_draft_store().form_draft(key, user_id)
