"""
artifact_ingestion.domain -- Pure types and value objects for ingestion.

ZERO I/O.
"""

from artifact_ingestion.domain.network import extract_domain
from artifact_ingestion.domain.types import (
    AssembledAttribute,
    AssembledRecord,
    AttributeMapping,
    AttributeType,
    ColumnIndex,
    FileIngestResult,
    FileMapping,
    IngestionPassResult,
    MappingTables,
    OwnerKind,
    PassStatus,
    RecordOwner,
    RecordType,
    RecordTypeMapping,
    SourceRow,
    StoredRecord,
    TypedValue,
    ValidationError,
    ValueKind,
)

__all__ = [
    "AssembledAttribute",
    "AssembledRecord",
    "AttributeMapping",
    "AttributeType",
    "ColumnIndex",
    "FileIngestResult",
    "FileMapping",
    "IngestionPassResult",
    "MappingTables",
    "OwnerKind",
    "PassStatus",
    "RecordOwner",
    "RecordType",
    "RecordTypeMapping",
    "SourceRow",
    "StoredRecord",
    "TypedValue",
    "ValidationError",
    "ValueKind",
    "extract_domain",
]
