"""Persistence backends for the manuscript pipeline."""

from __future__ import annotations

from ..config import PipelineSettings
from .base import PipelineStore
from .memory import InMemoryStore
from .objects import LocalObjectStore, ObjectStore, S3ObjectStore, build_object_store
from .postgres import PostgresStore


def build_store(settings: PipelineSettings) -> PipelineStore:
    """Return the store selected by ``DATABASE_URL``.

    ``memory://`` yields an :class:`InMemoryStore`; anything else is treated
    as a PostgreSQL connection URL.
    """

    if settings.uses_memory_store:
        return InMemoryStore()

    store = PostgresStore(settings.pg_conninfo)
    store.initialise_schema()
    store.purge_expired_sessions()
    return store


__all__ = [
    "PipelineStore",
    "InMemoryStore",
    "PostgresStore",
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
    "build_store",
    "build_object_store",
]
