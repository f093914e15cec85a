"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_user_id, get_store, serialize_metadata
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from fastapi import Header

from harmonik.config import Settings, load_settings
from harmonik.drafts import DraftMetadata, DraftStore, get_draft_store


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    os.getenv("HARMONIK_ALLOWED_FRONTEND", "").strip(),
]


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


def get_store() -> DraftStore:
    return get_draft_store()


def get_user_id(
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> Optional[str]:
    """Return the user a draft request is scoped to, if the client sent one.

    The header only narrows which drafts are visible; it is not authentication.
    """
    if user_id is None:
        return None
    return user_id.strip() or None


# =============================================================================
# Serialization Helpers
# =============================================================================

def serialize_metadata(metadata: DraftMetadata) -> dict:
    """Serialize draft metadata to API response format."""
    return {
        "timestamp": metadata.timestamp,
        "expiresAt": metadata.expires_at,
        "userId": metadata.user_id,
    }
