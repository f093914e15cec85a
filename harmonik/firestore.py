"""Shared Firestore client helper."""
from __future__ import annotations

from typing import Optional

_firestore_client = None


def get_firestore_client(credentials_path: Optional[str] = None):
    """Return a cached Firestore client instance.

    Args:
        credentials_path: Optional service-account JSON file. When omitted the
            application default credentials are used.
    """

    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client

    import firebase_admin
    from firebase_admin import credentials, firestore

    if not firebase_admin._apps:
        if credentials_path:
            firebase_admin.initialize_app(credentials.Certificate(credentials_path))
        else:
            firebase_admin.initialize_app()
    _firestore_client = firestore.client()
    return _firestore_client


def reset_firestore_client() -> None:
    """Forget the cached client (used when settings change)."""
    global _firestore_client
    _firestore_client = None
