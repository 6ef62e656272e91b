"""Relational store adapters."""

from .base import RelationalStore, Row
from .memory import InMemoryStore
from .sql import SQLAlchemyStore

MEMORY_URL_PREFIX = "memory://"


def create_store(url: str, page_size: int = 1000) -> RelationalStore:
    """
    Create a store for the given URL.

    ``memory://`` selects the in-process store; anything else is handed to
    SQLAlchemy.
    """
    if url.startswith(MEMORY_URL_PREFIX):
        return InMemoryStore()
    return SQLAlchemyStore(url, page_size=page_size)


__all__ = ["InMemoryStore", "RelationalStore", "Row", "SQLAlchemyStore", "create_store"]
