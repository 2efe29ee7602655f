"""Mapping: document loading, value coercion and record assembly."""

from artifact_ingestion.mapping.assembler import AssemblyResult, AssemblyStatus, assemble_record
from artifact_ingestion.mapping.coercion import (
    COERCION_RULES,
    CoercionResult,
    CoercionRule,
    coerce_value,
    strip_non_printable,
)
from artifact_ingestion.mapping.document import (
    MappingDocumentLoader,
    load_mapping_document,
    register_custom_record_types,
)

__all__ = [
    "AssemblyResult",
    "AssemblyStatus",
    "COERCION_RULES",
    "CoercionResult",
    "CoercionRule",
    "MappingDocumentLoader",
    "assemble_record",
    "coerce_value",
    "load_mapping_document",
    "register_custom_record_types",
    "strip_non_printable",
]
