"""In-memory artifact store, used by tests and store-less CLI runs."""

from __future__ import annotations

from typing import Iterable, Sequence
from uuid import uuid4

from artifact_ingestion.domain.types import (
    AssembledAttribute,
    AttributeType,
    RecordOwner,
    RecordType,
    StoredRecord,
    ValueKind,
)
from artifact_ingestion.exceptions import (
    AttributeTypeNotFoundError,
    RecordCreateError,
    RecordTypeNotFoundError,
    StorePostError,
)
from artifact_ingestion.store.catalog import STANDARD_ATTRIBUTE_TYPES, STANDARD_RECORD_TYPES


class InMemoryArtifactStore:
    """Dict-backed ArtifactStore. Posted batches are kept for inspection."""

    def __init__(
        self,
        record_types: Iterable[tuple[str, str]] = STANDARD_RECORD_TYPES,
        attribute_types: Iterable[tuple[str, ValueKind, str]] = STANDARD_ATTRIBUTE_TYPES,
    ):
        self._record_types: dict[str, RecordType] = {}
        self._attribute_types: dict[str, AttributeType] = {}
        self.records: list[StoredRecord] = []
        self.posted_batches: list[tuple[tuple[StoredRecord, ...], str]] = []
        for name, description in record_types:
            self.register_record_type(name, description)
        for name, kind, display_name in attribute_types:
            self.add_attribute_type(name, kind, display_name)

    # -- type registry --------------------------------------------------------

    def resolve_record_type(self, name: str) -> RecordType:
        try:
            return self._record_types[name]
        except KeyError:
            raise RecordTypeNotFoundError(name) from None

    def resolve_attribute_type(self, name: str) -> AttributeType:
        try:
            return self._attribute_types[name]
        except KeyError:
            raise AttributeTypeNotFoundError(name) from None

    def register_record_type(self, name: str, description: str) -> RecordType:
        existing = self._record_types.get(name)
        if existing is not None:
            return existing
        record_type = RecordType(type_id=len(self._record_types) + 1, name=name, description=description)
        self._record_types[name] = record_type
        return record_type

    def add_attribute_type(self, name: str, value_kind: ValueKind, display_name: str = "") -> AttributeType:
        existing = self._attribute_types.get(name)
        if existing is not None:
            return existing
        attribute_type = AttributeType(
            type_id=len(self._attribute_types) + 1,
            name=name,
            value_kind=value_kind,
            display_name=display_name,
        )
        self._attribute_types[name] = attribute_type
        return attribute_type

    @property
    def record_type_names(self) -> tuple[str, ...]:
        return tuple(self._record_types)

    # -- records --------------------------------------------------------------

    def create_record(
        self,
        record_type: RecordType,
        owner: RecordOwner,
        attributes: Sequence[AssembledAttribute],
    ) -> StoredRecord:
        if self._record_types.get(record_type.name) != record_type:
            raise RecordCreateError(record_type.name, "record type is not registered")
        record = StoredRecord(
            record_id=uuid4(),
            record_type=record_type,
            owner=owner,
            attributes=tuple(attributes),
        )
        self.records.append(record)
        return record

    def post_batch(self, records: Sequence[StoredRecord], source_module_name: str) -> None:
        if not records:
            raise StorePostError(0, "empty batch")
        self.posted_batches.append((tuple(records), source_module_name))

    @property
    def posted_records(self) -> list[StoredRecord]:
        return [r for batch, _ in self.posted_batches for r in batch]
