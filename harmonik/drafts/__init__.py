"""Form draft storage package."""

from .storage import (
    DraftStorage,
    FileStorage,
    FirestoreStorage,
    MemoryStorage,
    StorageQuotaError,
    build_storage,
)
from .store import (
    DRAFT_PREFIX,
    DRAFT_TTL_MS,
    DraftMetadata,
    DraftMiss,
    DraftResult,
    DraftStore,
    FormDraft,
    cleanup_expired_drafts,
    delete_draft,
    form_draft,
    get_draft_metadata,
    get_draft_store,
    has_draft,
    init_drafts,
    load_draft,
    save_draft,
)

__all__ = [
    "DRAFT_PREFIX",
    "DRAFT_TTL_MS",
    "DraftMetadata",
    "DraftMiss",
    "DraftResult",
    "DraftStorage",
    "DraftStore",
    "FileStorage",
    "FirestoreStorage",
    "FormDraft",
    "MemoryStorage",
    "StorageQuotaError",
    "build_storage",
    "cleanup_expired_drafts",
    "delete_draft",
    "form_draft",
    "get_draft_metadata",
    "get_draft_store",
    "has_draft",
    "init_drafts",
    "load_draft",
    "save_draft",
]
