"""
Source adapter protocol and probe DTO.

Contract:
    SourceAdapter.read() yields one SourceRow per data row (streaming).
    SourceAdapter.probe() returns a quick snapshot: row count, columns, sample rows.

Architecture: artifact_ingestion/adapters. File I/O only, no store imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable

from artifact_ingestion.domain.types import SourceRow


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading header-addressed delimited files into rows."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[SourceRow]:
        """Yield one SourceRow per data row. Streams; does not load entire file."""
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SourceProbe":
        """Quick probe: row count, detected columns, sample rows."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Result of probing a source file (row count, columns, first N rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[tuple[str, ...], ...]  # First 5 data rows; do not mutate
    encoding: str | None = None
    detected_delimiter: str | None = None
