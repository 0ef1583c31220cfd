"""
Classroom dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Request

from .repository import Store


def get_store(request: Request) -> Store:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Store is not initialized. It is created in the app lifespan.")
    return store
