"""
Typed exception hierarchy for artifact ingestion.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from IngestionError:

    IngestionError (base)
    |
    +-- ConfigParseError
    |
    +-- TypeResolutionError
    |   +-- RecordTypeNotFoundError
    |   +-- AttributeTypeNotFoundError
    |
    +-- FileAccessError
    |
    +-- StoreError
        +-- RecordCreateError
        +-- StorePostError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Config          | CONFIG_PARSE_ERROR          | Mapping document or config unreadable
----------------|-----------------------------|-----------------------------------------
Type registry   | RECORD_TYPE_NOT_FOUND       | Unknown record type name
                | ATTRIBUTE_TYPE_NOT_FOUND    | Unknown attribute type name
----------------|-----------------------------|-----------------------------------------
File access     | FILE_ACCESS_ERROR           | Output directory cannot be walked
----------------|-----------------------------|-----------------------------------------
Store           | RECORD_CREATE_ERROR         | Store refused to create a record
                | STORE_POST_ERROR            | Store refused a posted batch

Row-level conditions (column count mismatch, missing column, unresolvable
value) are NOT exceptions. They travel as ValidationError values inside
SourceRow / AssemblyResult so that a bad row never shares a channel with a
fatal fault.
"""

from __future__ import annotations


class IngestionError(Exception):
    """
    Base exception for all ingestion errors.

    All subclasses carry a `code` class attribute for machine-readable
    identification.
    """

    code: str = "INGESTION_ERROR"


# Configuration


class ConfigParseError(IngestionError):
    """Mapping document or engine configuration is malformed or unreadable."""

    code: str = "CONFIG_PARSE_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load configuration from {source}: {reason}")


# Type registry


class TypeResolutionError(IngestionError):
    """Base exception for type registry lookups."""

    code: str = "TYPE_RESOLUTION_ERROR"


class RecordTypeNotFoundError(TypeResolutionError):
    """Record type name is not known to the store."""

    code: str = "RECORD_TYPE_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Record type not found: {name}")


class AttributeTypeNotFoundError(TypeResolutionError):
    """Attribute type name is not known to the store."""

    code: str = "ATTRIBUTE_TYPE_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Attribute type not found: {name}")


# File access


class FileAccessError(IngestionError):
    """Tool output directory or file could not be read."""

    code: str = "FILE_ACCESS_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


# Store


class StoreError(IngestionError):
    """Base exception for artifact store failures."""

    code: str = "STORE_ERROR"


class RecordCreateError(StoreError):
    """The store could not create a record."""

    code: str = "RECORD_CREATE_ERROR"

    def __init__(self, record_type: str, reason: str):
        self.record_type = record_type
        self.reason = reason
        super().__init__(f"Cannot create {record_type} record: {reason}")


class StorePostError(StoreError):
    """The store rejected a posted batch."""

    code: str = "STORE_POST_ERROR"

    def __init__(self, batch_size: int, reason: str):
        self.batch_size = batch_size
        self.reason = reason
        super().__init__(f"Cannot post batch of {batch_size} records: {reason}")
