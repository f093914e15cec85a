"""Drafts Router - form draft persistence for the web client.

Forms load a draft once on mount, save it on a debounce while the user edits
and delete it after a successful submit.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.dependencies import get_store, get_user_id, serialize_metadata
from harmonik.drafts import DraftStore

logger = logging.getLogger(__name__)

router = APIRouter()


class DraftSaveRequest(BaseModel):
    """Request body for saving a draft."""
    data: Any = None


@router.post("/cleanup")
def cleanup_drafts(store: DraftStore = Depends(get_store)) -> dict:
    """Sweep expired and unreadable drafts."""
    removed = store.cleanup_expired()
    return {"removed": removed}


@router.put("/{key}")
def save_draft(
    key: str,
    request: DraftSaveRequest,
    user_id: Optional[str] = Depends(get_user_id),
    store: DraftStore = Depends(get_store),
) -> dict:
    """Save (overwrite) the draft for a form key."""
    result = store.write(key, request.data, user_id)
    if not result.ok:
        logger.warning(f"Failed to save draft {key!r}: {result.error}")
        raise HTTPException(status_code=507, detail="Draft could not be saved.")
    return {"saved": True, "key": key}


@router.get("/{key}")
def get_draft(
    key: str,
    user_id: Optional[str] = Depends(get_user_id),
    store: DraftStore = Depends(get_store),
) -> dict:
    """Load the draft for a form key."""
    result = store.read(key, user_id)
    if not result.ok:
        logger.debug(f"Draft {key!r} not served: {result.miss}")
        raise HTTPException(status_code=404, detail="Draft not found.")
    return {
        "key": key,
        "data": result.value,
        "metadata": serialize_metadata(result.metadata),
    }


@router.get("/{key}/exists")
def draft_exists(key: str, store: DraftStore = Depends(get_store)) -> dict:
    return {"key": key, "exists": store.has(key)}


@router.get("/{key}/metadata")
def get_draft_metadata(key: str, store: DraftStore = Depends(get_store)) -> dict:
    metadata = store.get_metadata(key)
    if metadata is None:
        raise HTTPException(status_code=404, detail="Draft not found.")
    return serialize_metadata(metadata)


@router.delete("/{key}")
def delete_draft(key: str, store: DraftStore = Depends(get_store)) -> dict:
    store.delete(key)
    return {"deleted": True, "key": key}
