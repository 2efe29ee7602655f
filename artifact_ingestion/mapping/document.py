"""
Mapping document loader: XML -> MappingTables.

Document shape::

    <Root>
      <FileName filename="..." description="...">
        <ArtifactName artifactname="..." comment="...">
          <AttributeName attributename="..." columnName="..." required="yes|no"/>
        </ArtifactName>
      </FileName>
    </Root>

Only an unreadable or malformed document (including a missing mandatory XML
attribute) is fatal. Unknown type names, bad `required` flags and suspicious
column names are logged and loading continues.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping
from xml.etree import ElementTree as ET

from artifact_ingestion.config import DEFAULT_CONFIG, IngestionConfig
from artifact_ingestion.domain.types import (
    AttributeMapping,
    AttributeType,
    FileMapping,
    MappingTables,
    RecordTypeMapping,
)
from artifact_ingestion.exceptions import (
    AttributeTypeNotFoundError,
    ConfigParseError,
    RecordTypeNotFoundError,
    StoreError,
)
from artifact_ingestion.logging_config import get_logger
from artifact_ingestion.store.base import ArtifactStore

logger = get_logger("mapping.document")

FILE_TAG = "FileName"
RECORD_TYPE_TAG = "ArtifactName"
ATTRIBUTE_TAG = "AttributeName"

NULL_MARKER = "null"

# Any whitespace other than a plain space
_INVALID_COLUMN_CHARS_RE = re.compile(r"[^\S ]")


def _is_null_marker(value: str | None) -> bool:
    return value is not None and value.strip().lower() == NULL_MARKER


def _required_attr(element: ET.Element, name: str, source: str) -> str:
    value = element.get(name)
    if value is None:
        raise ConfigParseError(source, f"<{element.tag}> is missing the {name!r} attribute")
    return value


def register_custom_record_types(store: ArtifactStore, custom: Mapping[str, str]) -> None:
    """Register configured custom record types. Idempotent; failures are logged."""
    for name, description in custom.items():
        try:
            store.register_record_type(name, description)
        except StoreError:
            logger.warning(
                "Failed to create custom record type %s.",
                name,
                exc_info=True,
                extra={"record_type": name},
            )


class MappingDocumentLoader:
    """Builds MappingTables from a mapping document, resolving names against the store."""

    def __init__(self, store: ArtifactStore, config: IngestionConfig | None = None):
        self._store = store
        self._config = config or DEFAULT_CONFIG

    def load(self, path: Path) -> MappingTables:
        """Parse the document at path. Raises ConfigParseError if unreadable or malformed."""
        path = Path(path)
        try:
            root = ET.parse(path).getroot()
        except OSError as exc:
            raise ConfigParseError(str(path), f"cannot read mapping document: {exc}") from exc
        except ET.ParseError as exc:
            raise ConfigParseError(str(path), f"cannot parse mapping document: {exc}") from exc
        return self._build(root, str(path))

    def load_string(self, text: str, source: str = "<string>") -> MappingTables:
        """Parse a mapping document held in memory."""
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ConfigParseError(source, f"cannot parse mapping document: {exc}") from exc
        return self._build(root, source)

    # -------------------------------------------------------------------------

    def _build(self, root: ET.Element, source: str) -> MappingTables:
        register_custom_record_types(self._store, self._config.custom_record_types)

        file_mappings: dict[str, FileMapping] = {}
        record_type_mappings: dict[str, RecordTypeMapping] = {}
        attribute_mappings: dict[str, list[AttributeMapping]] = {}

        file_elements = [root] if root.tag == FILE_TAG else list(root.iter(FILE_TAG))
        for file_el in file_elements:
            raw_name = _required_attr(file_el, "filename", source)
            description = _required_attr(file_el, "description", source)
            file_name = raw_name.strip().lower()
            file_mappings[file_name] = FileMapping(file_name=file_name, description=description)

            for record_el in file_el.findall(RECORD_TYPE_TAG):
                mapping = self._record_type_mapping(record_el, file_name, source)
                if mapping is not None:
                    record_type_mappings[file_name] = mapping

                for attr_el in record_el.findall(ATTRIBUTE_TAG):
                    attribute = self._attribute_mapping(attr_el, file_name, source)
                    if attribute is not None:
                        attribute_mappings.setdefault(file_name, []).append(attribute)

        tables = MappingTables(
            file_mappings=file_mappings,
            record_type_mappings=record_type_mappings,
            attribute_mappings=attribute_mappings,
            comment_attribute_type=self._comment_attribute_type(),
            source=source,
        )
        logger.info(
            "mapping_document_loaded",
            extra={
                "mapping_source": source,
                "file_count": len(file_mappings),
                "record_type_count": len(record_type_mappings),
                "attribute_count": sum(len(v) for v in attribute_mappings.values()),
            },
        )
        return tables

    def _record_type_mapping(
        self,
        element: ET.Element,
        file_name: str,
        source: str,
    ) -> RecordTypeMapping | None:
        name = _required_attr(element, "artifactname", source)
        comment = element.get("comment")
        try:
            record_type = self._store.resolve_record_type(name)
        except RecordTypeNotFoundError:
            logger.error(
                "No known record type mapping found for [record type: %s, file: %s, filename: %s]",
                name,
                source,
                file_name,
                extra={"record_type": name, "file_name": file_name, "mapping_source": source},
            )
            return None
        return RecordTypeMapping(
            file_name=file_name,
            record_type=record_type,
            comment=None if comment is None or _is_null_marker(comment) else comment,
        )

    def _attribute_mapping(
        self,
        element: ET.Element,
        file_name: str,
        source: str,
    ) -> AttributeMapping | None:
        attribute_name = _required_attr(element, "attributename", source)
        column_name = element.get("columnName")
        required = element.get("required")
        ident = f"attribute: {attribute_name} file: {source}, filename: {file_name}"

        if _is_null_marker(attribute_name):
            return AttributeMapping(
                file_name=file_name,
                attribute_type_name=None,
                column_name=(column_name or "").strip().lower(),
                required=(required or "").strip().lower() == "yes",
            )

        attribute_type: AttributeType | None = None
        try:
            attribute_type = self._store.resolve_attribute_type(attribute_name.upper())
        except AttributeTypeNotFoundError:
            logger.error(
                "No known attribute mapping found for [%s]",
                ident,
                extra={"attribute_type": attribute_name, "file_name": file_name},
            )

        if required is None or required.lower() not in ("yes", "no"):
            logger.error(
                "Required value %s did not match 'yes' or 'no' for [%s]",
                required,
                ident,
                extra={"attribute_type": attribute_name, "file_name": file_name},
            )

        if column_name is None:
            logger.error(
                "No column name provided for [%s]",
                ident,
                extra={"attribute_type": attribute_name, "file_name": file_name},
            )
            return None
        if column_name.strip() != column_name:
            logger.error(
                "Column name '%s' starts or ends with whitespace for [%s]",
                column_name,
                ident,
                extra={"column_name": column_name, "file_name": file_name},
            )
        elif _INVALID_COLUMN_CHARS_RE.search(column_name):
            logger.error(
                "Column name '%s' contains invalid characters [%s]",
                column_name,
                ident,
                extra={"column_name": column_name, "file_name": file_name},
            )

        return AttributeMapping(
            file_name=file_name,
            attribute_type_name=attribute_name.upper(),
            column_name=column_name.strip().lower(),
            required=(required or "").lower() == "yes",
            attribute_type=attribute_type,
        )

    def _comment_attribute_type(self) -> AttributeType | None:
        name = self._config.comment_attribute_type
        try:
            return self._store.resolve_attribute_type(name)
        except AttributeTypeNotFoundError:
            logger.error(
                "Comment attribute type %s is unknown; file comments are disabled.",
                name,
                extra={"attribute_type": name},
            )
            return None


def load_mapping_document(
    path: Path,
    store: ArtifactStore,
    config: IngestionConfig | None = None,
) -> MappingTables:
    """Convenience wrapper around MappingDocumentLoader.load()."""
    return MappingDocumentLoader(store, config).load(path)
