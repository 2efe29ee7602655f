"""Source adapters for tool output files (file I/O only, no store)."""

from artifact_ingestion.adapters.base import SourceAdapter, SourceProbe
from artifact_ingestion.adapters.tsv_adapter import (
    TsvSourceAdapter,
    build_column_index,
    check_row_shape,
)

__all__ = [
    "SourceAdapter",
    "SourceProbe",
    "TsvSourceAdapter",
    "build_column_index",
    "check_row_shape",
]
