"""
Record assembly: one SourceRow + the file's attribute mappings -> AssembledRecord.

Pure apart from logging. Two failure granularities:
    - A configured column absent from the header omits that attribute only.
    - A cell that cannot be obtained or coerced rejects the whole row.
A row is never returned as a partial record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from artifact_ingestion.config import DEFAULT_CONFIG, IngestionConfig
from artifact_ingestion.domain.types import (
    AssembledAttribute,
    AssembledRecord,
    AttributeMapping,
    AttributeType,
    SourceRow,
    TypedValue,
    ValidationError,
    ValueKind,
)
from artifact_ingestion.logging_config import get_logger
from artifact_ingestion.mapping.coercion import coerce_value

logger = get_logger("mapping.assembler")


class AssemblyStatus(str, Enum):
    """Outcome of assembling one row."""

    ASSEMBLED = "assembled"  # Record produced
    REJECTED = "rejected"  # Row dropped; errors say why
    EMPTY = "empty"  # Nothing to record (all columns ignored or omitted)


@dataclass(frozen=True)
class AssemblyResult:
    """Result of assembling one row."""

    status: AssemblyStatus
    record: AssembledRecord | None = None
    errors: tuple[ValidationError, ...] = ()
    omitted: tuple[str, ...] = ()  # Column names configured but absent from the header

    @property
    def success(self) -> bool:
        return self.status is AssemblyStatus.ASSEMBLED


def _rejected(error: ValidationError, omitted: list[str]) -> AssemblyResult:
    return AssemblyResult(status=AssemblyStatus.REJECTED, errors=(error,), omitted=tuple(omitted))


def assemble_record(
    row: SourceRow,
    attribute_mappings: Sequence[AttributeMapping],
    *,
    file_name: str,
    comment: str | None = None,
    comment_attribute_type: AttributeType | None = None,
    config: IngestionConfig | None = None,
) -> AssemblyResult:
    """
    Build the record for one row, or reject it.

    For each mapping in order: skip ignored columns, omit columns missing from
    the header (or reject, for required columns when enforce_required is set),
    reject the row when a located cell is unobtainable or fails coercion.
    The file's fixed comment, if any, is appended last.
    """
    config = config or DEFAULT_CONFIG
    column_index = row.column_index
    cells = row.cells
    line_number = row.line_number

    if not column_index or not cells:
        return AssemblyResult(
            status=AssemblyStatus.REJECTED,
            errors=(ValidationError(code="EMPTY_ROW", message="Row or header is empty"),),
        )
    if len(cells) != len(column_index):
        logger.warning(
            "Row at line number %d in file %s has %d columns when %d were expected based on the header row.",
            line_number,
            file_name,
            len(cells),
            len(column_index),
            extra={"file_name": file_name, "line_number": line_number},
        )
        return AssemblyResult(
            status=AssemblyStatus.REJECTED,
            errors=(ValidationError(
                code="ROW_SCHEMA_MISMATCH",
                message=f"{len(cells)} cells for {len(column_index)} header columns",
                details={"line_number": line_number, "expected": len(column_index), "actual": len(cells)},
            ),),
        )

    attributes: list[AssembledAttribute] = []
    omitted: list[str] = []

    for mapping in attribute_mappings:
        attribute_type = mapping.attribute_type
        if attribute_type is None:
            continue

        column_name = mapping.column_name
        position = column_index.get(column_name)
        if position is None:
            if config.enforce_required and mapping.required:
                logger.warning(
                    "Required column %s missing from file %s.  Omitting row.",
                    column_name,
                    file_name,
                    extra={"file_name": file_name, "column_name": column_name, "line_number": line_number},
                )
                return _rejected(
                    ValidationError(
                        code="REQUIRED_COLUMN_MISSING",
                        message=f"Required column {column_name!r} is not in the header",
                        field=column_name,
                    ),
                    omitted + [column_name],
                )
            logger.warning(
                "No column mapping found for %s in file %s.  Omitting column.",
                column_name,
                file_name,
                extra={"file_name": file_name, "column_name": column_name},
            )
            omitted.append(column_name)
            continue

        value = cells[position] if 0 <= position < len(cells) else None
        if value is None:
            logger.warning(
                "No value found for column %s at line %d in file %s.  Omitting row.",
                column_name,
                line_number,
                file_name,
                extra={"file_name": file_name, "column_name": column_name, "line_number": line_number},
            )
            return _rejected(
                ValidationError(
                    code="VALUE_UNRESOLVABLE",
                    message=f"No value for column {column_name!r}",
                    field=column_name,
                    details={"line_number": line_number},
                ),
                omitted,
            )

        coerced = coerce_value(value, attribute_type, file_name=file_name, config=config)
        if not coerced.success:
            logger.warning(
                "Attribute could not be parsed column %s at line %d in file %s.  Omitting row.",
                column_name,
                line_number,
                file_name,
                extra={
                    "file_name": file_name,
                    "column_name": column_name,
                    "line_number": line_number,
                    "reason_code": coerced.error.code if coerced.error else None,
                },
            )
            error = coerced.error or ValidationError(code="VALUE_UNRESOLVABLE", message="No value")
            return _rejected(
                ValidationError(
                    code="VALUE_UNRESOLVABLE",
                    message=error.message,
                    field=column_name,
                    details={"line_number": line_number, "cause": error.code},
                ),
                omitted,
            )

        attributes.append(AssembledAttribute(
            attribute_type=attribute_type,
            value=coerced.value,
            source=config.module_name,
        ))

    if comment is not None and comment_attribute_type is not None:
        attributes.append(AssembledAttribute(
            attribute_type=comment_attribute_type,
            value=TypedValue(kind=ValueKind.STRING, value=comment),
            source=config.module_name,
        ))

    if not attributes:
        return AssemblyResult(status=AssemblyStatus.EMPTY, omitted=tuple(omitted))

    return AssemblyResult(
        status=AssemblyStatus.ASSEMBLED,
        record=AssembledRecord(
            attributes=tuple(attributes),
            source_file=file_name,
            line_number=line_number,
        ),
        omitted=tuple(omitted),
    )
