"""
artifact_ingestion.domain.types -- Pure frozen dataclasses for the ingestion engine.

ZERO I/O. Nothing here talks to the filesystem or the artifact store.

Contents:
    - Registry entries (RecordType, AttributeType) and the ValueKind enum.
    - Mapping tables built from the mapping document (FileMapping,
      RecordTypeMapping, AttributeMapping, MappingTables).
    - Row and record values flowing through the pipeline (SourceRow,
      TypedValue, AssembledAttribute, AssembledRecord, StoredRecord).
    - ValidationError, the typed issue value for recoverable row problems.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID


# =============================================================================
# Value kinds and registry entries
# =============================================================================


class ValueKind(str, Enum):
    """Storage kind of an attribute type's value."""

    STRING = "string"
    JSON = "json"
    INTEGER = "integer"
    LONG = "long"
    DOUBLE = "double"
    BYTE = "byte"
    DATETIME = "datetime"


@dataclass(frozen=True)
class RecordType:
    """A named structured-record schema known to the store."""

    type_id: int
    name: str
    description: str


@dataclass(frozen=True)
class AttributeType:
    """A named, typed field definition known to the store."""

    type_id: int
    name: str
    value_kind: ValueKind
    display_name: str = ""


class OwnerKind(str, Enum):
    """What a created record is attached to."""

    FILE = "file"  # A specific source file handed to the external tool
    DATA_SOURCE = "data_source"  # The root of a whole content tree


@dataclass(frozen=True)
class RecordOwner:
    """Identity attached to every record created in one pass."""

    owner_id: str
    kind: OwnerKind
    name: str = ""


# =============================================================================
# Validation issue
# =============================================================================


@dataclass(frozen=True)
class ValidationError:
    """A single recoverable problem found while reading or assembling a row."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


# =============================================================================
# Mapping tables
# =============================================================================


@dataclass(frozen=True)
class FileMapping:
    """One known output file name (lower-cased) and its description."""

    file_name: str
    description: str


@dataclass(frozen=True)
class RecordTypeMapping:
    """The record type a file produces, plus an optional fixed comment."""

    file_name: str
    record_type: RecordType
    comment: str | None = None


@dataclass(frozen=True)
class AttributeMapping:
    """Column -> attribute binding. attribute_type None means the column is ignored."""

    file_name: str
    attribute_type_name: str | None
    column_name: str  # Trimmed, lower-cased
    required: bool = False
    attribute_type: AttributeType | None = None

    @property
    def is_ignored(self) -> bool:
        return self.attribute_type is None


@dataclass(frozen=True)
class MappingTables:
    """The three mapping tables, keyed by lower-cased file name. Read-only after load."""

    file_mappings: Mapping[str, FileMapping] = field(default_factory=dict)
    record_type_mappings: Mapping[str, RecordTypeMapping] = field(default_factory=dict)
    attribute_mappings: Mapping[str, tuple[AttributeMapping, ...]] = field(default_factory=dict)
    comment_attribute_type: AttributeType | None = None
    source: str | None = None  # Where the tables were loaded from

    def __post_init__(self) -> None:
        object.__setattr__(self, "file_mappings", MappingProxyType(dict(self.file_mappings)))
        object.__setattr__(
            self, "record_type_mappings", MappingProxyType(dict(self.record_type_mappings))
        )
        object.__setattr__(
            self,
            "attribute_mappings",
            MappingProxyType({k: tuple(v) for k, v in self.attribute_mappings.items()}),
        )

    def is_known_file(self, file_name: str) -> bool:
        return file_name.lower() in self.file_mappings

    def record_type_for(self, file_name: str) -> RecordTypeMapping | None:
        return self.record_type_mappings.get(file_name.lower())

    def attributes_for(self, file_name: str) -> tuple[AttributeMapping, ...] | None:
        return self.attribute_mappings.get(file_name.lower())


# =============================================================================
# Rows and records
# =============================================================================


ColumnIndex = Mapping[str, int]


@dataclass(frozen=True)
class SourceRow:
    """Immutable snapshot of one data row read from a delimited file."""

    line_number: int  # 1-based; header is line 1
    cells: tuple[str, ...]
    column_index: ColumnIndex
    error: ValidationError | None = None  # Set when the row must not be assembled

    @property
    def is_rejected(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class TypedValue:
    """A coerced cell value tagged with its kind. DATETIME is epoch seconds."""

    kind: ValueKind
    value: Any


@dataclass(frozen=True)
class AssembledAttribute:
    """One (attribute type, value) pair of an assembled record."""

    attribute_type: AttributeType
    value: TypedValue
    source: str = ""  # Module name that produced the value


@dataclass(frozen=True)
class AssembledRecord:
    """Ordered attributes produced from one valid row."""

    attributes: tuple[AssembledAttribute, ...]
    source_file: str = ""
    line_number: int = 0

    def value_of(self, attribute_name: str) -> Any:
        """Return the first value for attribute_name, or None."""
        for attr in self.attributes:
            if attr.attribute_type.name == attribute_name:
                return attr.value.value
        return None


@dataclass(frozen=True)
class StoredRecord:
    """A record as created in the artifact store."""

    record_id: UUID
    record_type: RecordType
    owner: RecordOwner
    attributes: tuple[AssembledAttribute, ...]


# =============================================================================
# Pass results
# =============================================================================


class PassStatus(str, Enum):
    """Outcome of one ingestion pass."""

    COMPLETED = "completed"  # Every matched file was visited
    CANCELLED = "cancelled"  # Stopped between files on request
    FAILED = "failed"  # Output directory could not be walked


@dataclass(frozen=True)
class FileIngestResult:
    """Counters for one processed file."""

    file_name: str
    rows_read: int = 0
    rows_rejected: int = 0
    rows_empty: int = 0
    records_created: int = 0
    records_failed: int = 0
    omitted_columns: tuple[str, ...] = ()
    read_error: str | None = None  # set when reading stopped part way


@dataclass(frozen=True)
class IngestionPassResult:
    """Immutable summary of one pass over a tool output directory."""

    pass_id: UUID
    status: PassStatus
    owner: RecordOwner
    files_matched: int = 0
    files_processed: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    rows_read: int = 0
    rows_rejected: int = 0
    rows_empty: int = 0
    records_created: int = 0
    records_carried_over: int = 0
    records_posted: int = 0
    batches_posted: int = 0
    files: tuple[FileIngestResult, ...] = ()
    errors: tuple[ValidationError, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass_id": str(self.pass_id),
            "status": self.status.value,
            "owner": {
                "owner_id": self.owner.owner_id,
                "kind": self.owner.kind.value,
                "name": self.owner.name,
            },
            "files_matched": self.files_matched,
            "files_processed": self.files_processed,
            "files_skipped": self.files_skipped,
            "files_failed": self.files_failed,
            "rows_read": self.rows_read,
            "rows_rejected": self.rows_rejected,
            "rows_empty": self.rows_empty,
            "records_created": self.records_created,
            "records_carried_over": self.records_carried_over,
            "records_posted": self.records_posted,
            "batches_posted": self.batches_posted,
            "files": [
                {
                    "file_name": f.file_name,
                    "rows_read": f.rows_read,
                    "rows_rejected": f.rows_rejected,
                    "rows_empty": f.rows_empty,
                    "records_created": f.records_created,
                    "records_failed": f.records_failed,
                    "omitted_columns": list(f.omitted_columns),
                    "read_error": f.read_error,
                }
                for f in self.files
            ],
            "errors": [
                {"code": e.code, "message": e.message, "field": e.field, "details": e.details}
                for e in self.errors
            ],
        }
