"""
TSV source adapter: header-addressed streaming reader for tool output files.

Uses csv.reader with a tab delimiter. The first row is the header and becomes
the ColumnIndex (lower-cased, trimmed names; the first occurrence of a
duplicate name wins). Every later row is yielded as an immutable SourceRow.
Rows whose cell count differs from the header carry a ROW_SCHEMA_MISMATCH
error and must not be assembled. Blank lines are skipped silently.
"""

from __future__ import annotations

import csv
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Sequence

from artifact_ingestion.adapters.base import SourceProbe
from artifact_ingestion.domain.types import ColumnIndex, SourceRow, ValidationError
from artifact_ingestion.logging_config import get_logger

logger = get_logger("adapters.tsv")

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "none": csv.QUOTE_NONE,
}

_SAMPLE_SIZE = 5


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _is_blank(cells: Sequence[str]) -> bool:
    return not cells or (len(cells) == 1 and cells[0] == "")


def build_column_index(header: Sequence[str], file_name: str = "") -> ColumnIndex:
    """Map lower-cased, trimmed header names to positions. First occurrence wins."""
    index: dict[str, int] = {}
    for position, name in enumerate(header):
        key = (name or "").strip().lower()
        if key in index:
            logger.warning(
                "Duplicate column %r in header of %s; using first occurrence at index %d.",
                key,
                file_name,
                index[key],
                extra={"file_name": file_name, "column_name": key},
            )
            continue
        index[key] = position
    return MappingProxyType(index)


def check_row_shape(
    cells: Sequence[str],
    expected: int,
    file_name: str,
    line_number: int,
) -> ValidationError | None:
    """Return a ROW_SCHEMA_MISMATCH error when the row's width differs from the header."""
    if len(cells) == expected:
        return None
    return ValidationError(
        code="ROW_SCHEMA_MISMATCH",
        message=(
            f"Row at line number {line_number} in file {file_name} has {len(cells)} columns "
            f"when {expected} were expected based on the header row."
        ),
        details={"line_number": line_number, "expected": expected, "actual": len(cells)},
    )


class TsvSourceAdapter:
    """Read TSV files as one SourceRow per data row. Streams; does not load entire file."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[SourceRow]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", "\t")
        quoting = _get_quoting(options)
        file_name = options.get("file_name") or source_path.name

        with source_path.open("r", encoding=encoding, newline="") as f:
            reader = csv.reader(f, delimiter=delimiter, quoting=quoting)
            header = next(reader, None)
            if header is None:
                return
            column_index = build_column_index(header, file_name)
            expected = len(header)

            line_number = 1
            for cells in reader:
                line_number += 1
                if _is_blank(cells):
                    continue
                error = check_row_shape(cells, expected, file_name, line_number)
                if error is not None:
                    logger.warning(error.message, extra={"file_name": file_name, **error.details})
                yield SourceRow(
                    line_number=line_number,
                    cells=tuple(cells),
                    column_index=column_index,
                    error=error,
                )

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", "\t")
        quoting = _get_quoting(options)

        with source_path.open("r", encoding=encoding, newline="") as f:
            reader = csv.reader(f, delimiter=delimiter, quoting=quoting)
            header = next(reader, None)
            if header is None:
                return SourceProbe(
                    row_count=0,
                    columns=(),
                    sample_rows=(),
                    encoding=encoding,
                    detected_delimiter=delimiter,
                )
            sample: list[tuple[str, ...]] = []
            count = 0
            for cells in reader:
                if _is_blank(cells):
                    continue
                count += 1
                if len(sample) < _SAMPLE_SIZE:
                    sample.append(tuple(cells))

        return SourceProbe(
            row_count=count,
            columns=tuple(header),
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=delimiter,
        )
