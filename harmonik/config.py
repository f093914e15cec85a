"""Configuration helpers for the Harmonik draft service."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BACKENDS = ("file", "memory", "firestore")


class ConfigError(RuntimeError):
    """Raised when the draft configuration is invalid."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the draft store, API and CLI."""

    backend: str = "file"
    draft_dir: Path = Path(__file__).resolve().parents[1] / "draft_store"
    collection: str = "form_drafts"
    quota_bytes: Optional[int] = None
    environment: str = "local"
    log_level: str = "INFO"
    firebase_credentials: Optional[str] = None


def load_settings() -> Settings:
    """Load settings from the environment (and a local .env file).

    Returns:
        Settings with the resolved backend and storage locations.

    Raises:
        ConfigError: if the backend is unknown or the quota is not an integer.
    """

    load_dotenv()

    backend = os.getenv("HARMONIK_DRAFT_BACKEND", "file").strip().lower() or "file"
    if backend not in BACKENDS:
        raise ConfigError(
            f"Unknown draft backend {backend!r}. "
            f"Set HARMONIK_DRAFT_BACKEND to one of: {', '.join(BACKENDS)}."
        )

    quota_raw = os.getenv("HARMONIK_DRAFT_QUOTA_BYTES", "").strip()
    quota_bytes: Optional[int] = None
    if quota_raw:
        try:
            quota_bytes = int(quota_raw)
        except ValueError as exc:
            raise ConfigError(
                f"HARMONIK_DRAFT_QUOTA_BYTES must be an integer, got {quota_raw!r}."
            ) from exc

    settings = Settings(
        backend=backend,
        collection=os.getenv("HARMONIK_DRAFT_COLLECTION", "form_drafts"),
        quota_bytes=quota_bytes,
        environment=os.getenv("HARMONIK_ENV", "local"),
        log_level=os.getenv("HARMONIK_LOG_LEVEL", "INFO").upper(),
        firebase_credentials=os.getenv("HARMONIK_FIREBASE_CREDENTIALS") or None,
    )
    draft_dir = os.getenv("HARMONIK_DRAFT_DIR", "").strip()
    if draft_dir:
        settings.draft_dir = Path(draft_dir)
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Apply a basic console logging setup at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
