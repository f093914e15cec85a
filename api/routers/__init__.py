"""API Routers Package.

Usage in main.py:
    from api.routers import drafts_router

    app.include_router(drafts_router, prefix="/drafts", tags=["drafts"])
"""

from .drafts import router as drafts_router

__all__ = ["drafts_router"]
