"""
IngestionService -- Orchestrates one ingestion pass over a tool output directory.

Flow:
    1. Discover matching files under the output directory (recursive walk).
    2. For each file with both a record type and attribute mappings:
       stream rows via the source adapter, assemble each row, and create
       one record per assembled row in the artifact store.
    3. Accumulate created records across all files and post them as one
       batch at the end (or early, when max_batch_size is reached).

Per-row problems travel as typed results and only ever drop the row.
Per-file read errors stop that file; rows read before the error still count. A directory walk failure ends the pass
with status FAILED. Store post failures are logged; the pass still completes.
"""

from __future__ import annotations

import csv
import os
from collections.abc import Callable
from pathlib import Path
from uuid import UUID, uuid4

from artifact_ingestion.adapters.base import SourceAdapter
from artifact_ingestion.adapters.tsv_adapter import TsvSourceAdapter
from artifact_ingestion.config import DEFAULT_CONFIG, IngestionConfig
from artifact_ingestion.domain.types import (
    FileIngestResult,
    IngestionPassResult,
    MappingTables,
    OwnerKind,
    PassStatus,
    RecordOwner,
    StoredRecord,
    ValidationError,
)
from artifact_ingestion.exceptions import FileAccessError, RecordCreateError, StorePostError
from artifact_ingestion.logging_config import LogContext, get_logger
from artifact_ingestion.mapping.assembler import AssemblyStatus, assemble_record
from artifact_ingestion.store.base import ArtifactStore

logger = get_logger("services.ingestion_service")


class _PassState:
    """Mutable counters and the pending batch for one pass."""

    def __init__(self, pass_id: UUID) -> None:
        self.pass_id = pass_id
        self.pending: list[StoredRecord] = []
        self.records_carried_over = 0
        self.records_posted = 0
        self.batches_posted = 0
        self.files: list[FileIngestResult] = []
        self.files_skipped = 0
        self.files_failed = 0
        self.errors: list[ValidationError] = []


class IngestionService:
    """
    Drives ingestion passes against an artifact store.

    Holds no per-pass state between calls; each ingest_* call is an
    independent pass with its own pass_id and batch.
    Records left pending by direct process_file calls join the next pass.
    """

    def __init__(
        self,
        store: ArtifactStore,
        tables: MappingTables,
        config: IngestionConfig | None = None,
        should_cancel: Callable[[], bool] | None = None,
        adapter: SourceAdapter | None = None,
    ):
        self._store = store
        self._tables = tables
        self._config = config or DEFAULT_CONFIG
        self._should_cancel = should_cancel or (lambda: False)
        self._adapter = adapter or TsvSourceAdapter()
        # Records created by process_file calls not yet handed to a pass batch
        self._created: list[StoredRecord] = []

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def discover_files(self, output_dir: Path) -> list[Path]:
        """Return matching files under output_dir, sorted. Raises FileAccessError."""
        output_dir = Path(output_dir)
        if not output_dir.is_dir():
            raise FileAccessError(str(output_dir), "output directory does not exist")

        def _on_error(exc: OSError) -> None:
            raise FileAccessError(exc.filename or str(output_dir), exc.strerror or str(exc)) from exc

        extension = self._config.file_extension.lower()
        matched: list[Path] = []
        for dirpath, _dirnames, filenames in os.walk(output_dir, onerror=_on_error):
            for name in filenames:
                if not name.lower().endswith(extension):
                    continue
                if not self._tables.is_known_file(name):
                    continue
                matched.append(Path(dirpath) / name)
        matched.sort()
        return matched

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def ingest_file_output(self, output_dir: Path, source: str) -> IngestionPassResult:
        """Run a pass whose records are attached to a single source file."""
        owner = RecordOwner(owner_id=source, kind=OwnerKind.FILE, name=Path(source).name)
        return self._run_pass(Path(output_dir), owner)

    def ingest_data_source(self, output_dir: Path, data_source: str) -> IngestionPassResult:
        """Run a pass whose records are attached to a whole data source."""
        owner = RecordOwner(owner_id=data_source, kind=OwnerKind.DATA_SOURCE, name=data_source)
        return self._run_pass(Path(output_dir), owner)

    # -------------------------------------------------------------------------
    # Pass
    # -------------------------------------------------------------------------

    def _run_pass(self, output_dir: Path, owner: RecordOwner) -> IngestionPassResult:
        state = _PassState(uuid4())

        with LogContext.bind(
            pass_id=str(state.pass_id),
            module_name=self._config.module_name,
            owner_id=owner.owner_id,
        ):
            logger.info(
                "ingestion_pass_started",
                extra={"output_dir": str(output_dir), "owner_kind": owner.kind.value},
            )
            if self._created:
                # Left by direct process_file calls; they belong to this batch now
                logger.warning(
                    "Carrying %d uncollected records into pass %s",
                    len(self._created),
                    state.pass_id,
                    extra={"records_carried_over": len(self._created)},
                )
                state.records_carried_over = len(self._created)
                state.pending.extend(self._created)
                self._created = []

            try:
                files = self.discover_files(output_dir)
            except FileAccessError as exc:
                logger.error(
                    "ingestion_pass_failed",
                    extra={"output_dir": str(output_dir), "error_code": exc.code, "reason": exc.reason},
                )
                state.errors.append(ValidationError(
                    code=exc.code,
                    message=str(exc),
                    details={"path": exc.path},
                ))
                self._flush(state)
                return self._result(state, PassStatus.FAILED, owner, files_matched=0)

            status = PassStatus.COMPLETED
            for path in files:
                if self._should_cancel():
                    logger.info(
                        "ingestion_pass_cancelled",
                        extra={"next_file": path.name},
                    )
                    status = PassStatus.CANCELLED
                    break
                self._ingest_one(path, owner, state)

            self._flush(state)

            result = self._result(state, status, owner, files_matched=len(files))
            logger.info(
                "ingestion_pass_finished",
                extra={
                    "status": result.status.value,
                    "files_matched": result.files_matched,
                    "files_processed": result.files_processed,
                    "records_created": result.records_created,
                    "records_posted": result.records_posted,
                },
            )
            return result

    def _ingest_one(self, path: Path, owner: RecordOwner, state: _PassState) -> None:
        file_name = path.name.lower()
        if self._tables.record_type_for(file_name) is None or not self._tables.attributes_for(file_name):
            logger.debug("file_skipped_unmapped", extra={"source_file": file_name})
            state.files_skipped += 1
            return

        file_result, exc = self._process(path, file_name, owner)
        state.files.append(file_result)
        if exc is not None:
            logger.error(
                "Unable to read file %s: %s",
                path,
                exc,
                extra={"source_file": file_name, "error_type": type(exc).__name__},
            )
            state.files_failed += 1
            state.errors.append(ValidationError(
                code=FileAccessError.code,
                message=f"Unable to read file {path}: {exc}",
                field=file_name,
                details={"rows_read": file_result.rows_read},
            ))
        self._collect(state)

    def _collect(self, state: _PassState) -> None:
        state.pending.extend(self._created)
        self._created = []
        limit = self._config.max_batch_size
        while limit is not None and len(state.pending) >= limit:
            batch, state.pending = state.pending[:limit], state.pending[limit:]
            self._post(batch, state)

    def _flush(self, state: _PassState) -> None:
        if state.pending:
            batch, state.pending = state.pending, []
            self._post(batch, state)

    def _post(self, batch: list[StoredRecord], state: _PassState) -> None:
        try:
            self._store.post_batch(batch, self._config.module_name)
        except StorePostError as exc:
            logger.error(
                "Failed to post %d records: %s",
                len(batch),
                exc.reason,
                extra={"batch_size": len(batch), "error_code": exc.code},
            )
            state.errors.append(ValidationError(
                code=exc.code,
                message=str(exc),
                details={"batch_size": len(batch)},
            ))
            return
        state.records_posted += len(batch)
        state.batches_posted += 1
        logger.info("batch_posted", extra={"batch_size": len(batch)})

    def _result(
        self,
        state: _PassState,
        status: PassStatus,
        owner: RecordOwner,
        files_matched: int,
    ) -> IngestionPassResult:
        return IngestionPassResult(
            pass_id=state.pass_id,
            status=status,
            owner=owner,
            files_matched=files_matched,
            files_processed=sum(1 for f in state.files if f.read_error is None),
            files_skipped=state.files_skipped,
            files_failed=state.files_failed,
            rows_read=sum(f.rows_read for f in state.files),
            rows_rejected=sum(f.rows_rejected for f in state.files),
            rows_empty=sum(f.rows_empty for f in state.files),
            records_created=sum(f.records_created for f in state.files),
            records_carried_over=state.records_carried_over,
            records_posted=state.records_posted,
            batches_posted=state.batches_posted,
            files=tuple(state.files),
            errors=tuple(state.errors),
        )

    # -------------------------------------------------------------------------
    # Single file
    # -------------------------------------------------------------------------

    def process_file(self, path: Path, file_name: str, owner: RecordOwner) -> FileIngestResult:
        """
        Create one record per assembled row of a single file.

        Created records are held by the service until the surrounding pass
        collects them; use pending_records() when driving files directly.
        Read errors (OSError, UnicodeDecodeError, csv.Error) propagate; records
        created before the error stay pending.
        """
        result, exc = self._process(path, file_name, owner)
        if exc is not None:
            raise exc
        return result

    def _process(
        self, path: Path, file_name: str, owner: RecordOwner
    ) -> tuple[FileIngestResult, Exception | None]:
        file_name = file_name.lower()
        record_mapping = self._tables.record_type_for(file_name)
        attribute_mappings = self._tables.attributes_for(file_name)
        if record_mapping is None or not attribute_mappings:
            logger.debug("file_skipped_unmapped", extra={"source_file": file_name})
            return FileIngestResult(file_name=file_name), None

        record_type = record_mapping.record_type
        rows_read = rows_rejected = rows_empty = created = failed = 0
        omitted: set[str] = set()
        read_error: Exception | None = None

        options = {**self._config.source_options, "file_name": file_name}

        with LogContext.bind(source_file=file_name, record_type=record_type.name):
            logger.debug("file_processing_started", extra={"path": str(path)})

            try:
                for row in self._adapter.read(Path(path), options):
                    rows_read += 1
                    if row.is_rejected:
                        rows_rejected += 1
                        continue

                    assembly = assemble_record(
                        row,
                        attribute_mappings,
                        file_name=file_name,
                        comment=record_mapping.comment,
                        comment_attribute_type=self._tables.comment_attribute_type,
                        config=self._config,
                    )
                    omitted.update(assembly.omitted)

                    if assembly.status is AssemblyStatus.REJECTED:
                        rows_rejected += 1
                        continue
                    if assembly.status is AssemblyStatus.EMPTY:
                        rows_empty += 1
                        continue

                    try:
                        stored = self._store.create_record(record_type, owner, assembly.record.attributes)
                    except RecordCreateError as exc:
                        logger.warning(
                            "Failed to create record of type %s from line %d of %s: %s",
                            record_type.name,
                            row.line_number,
                            file_name,
                            exc.reason,
                            extra={"line_number": row.line_number, "error_code": exc.code},
                        )
                        failed += 1
                        continue

                    self._created.append(stored)
                    created += 1
                    logger.debug(
                        "record_created",
                        extra={"record_id": str(stored.record_id), "line_number": row.line_number},
                    )
            except (OSError, UnicodeDecodeError, csv.Error) as exc:
                read_error = exc

            result = FileIngestResult(
                file_name=file_name,
                rows_read=rows_read,
                rows_rejected=rows_rejected,
                rows_empty=rows_empty,
                records_created=created,
                records_failed=failed,
                omitted_columns=tuple(sorted(omitted)),
                read_error=str(read_error) if read_error is not None else None,
            )
            logger.info(
                "file_processed",
                extra={
                    "rows_read": rows_read,
                    "rows_rejected": rows_rejected,
                    "rows_empty": rows_empty,
                    "records_created": created,
                    "records_failed": failed,
                    "read_failed": read_error is not None,
                },
            )
            return result, read_error

    def pending_records(self) -> list[StoredRecord]:
        """Hand over records created by process_file since the last pass or call."""
        records, self._created = self._created, []
        return records
