"""Artifact store port and reference implementations."""

from artifact_ingestion.store.base import ArtifactStore
from artifact_ingestion.store.memory import InMemoryArtifactStore
from artifact_ingestion.store.sql_store import (
    SqlArtifactStore,
    create_tables,
    get_session_factory,
    init_engine,
    seed_catalog,
)

__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "SqlArtifactStore",
    "create_tables",
    "get_session_factory",
    "init_engine",
    "seed_catalog",
]
