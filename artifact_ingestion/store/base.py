"""
Artifact store port.

The ingestion engine consumes this interface; it never implements the
production store. Reference implementations live next to it
(memory.InMemoryArtifactStore, sql_store.SqlArtifactStore).
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from artifact_ingestion.domain.types import (
    AssembledAttribute,
    AttributeType,
    RecordOwner,
    RecordType,
    StoredRecord,
)


@runtime_checkable
class ArtifactStore(Protocol):
    """Type registry plus record sink."""

    def resolve_record_type(self, name: str) -> RecordType:
        """Raises RecordTypeNotFoundError."""
        ...

    def resolve_attribute_type(self, name: str) -> AttributeType:
        """Raises AttributeTypeNotFoundError."""
        ...

    def register_record_type(self, name: str, description: str) -> RecordType:
        """Idempotent: an existing name returns the existing type."""
        ...

    def create_record(
        self,
        record_type: RecordType,
        owner: RecordOwner,
        attributes: Sequence[AssembledAttribute],
    ) -> StoredRecord:
        """Raises RecordCreateError."""
        ...

    def post_batch(self, records: Sequence[StoredRecord], source_module_name: str) -> None:
        """Raises StorePostError."""
        ...
