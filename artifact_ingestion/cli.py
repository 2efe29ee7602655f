"""
Run one ingestion pass over a tool output directory.

Loads the mapping document, walks the output directory for known files,
creates one record per valid row and posts the batch to the artifact store.
Without --db-url (or database_url in the config file) records go to an
in-memory store and only the pass summary is kept.

Usage:
    artifact-ingest --mapping <xml> --output-dir <dir> (--source NAME | --data-source NAME) [options]

Examples:
    # Attach records to one source file, persist to SQLite
    artifact-ingest --mapping mapping.xml --output-dir out/ --source image.dd \\
        --db-url sqlite:///artifacts.db

    # Attach records to a whole data source, settings from YAML
    artifact-ingest --config ingest.yaml --output-dir out/ --data-source case-01

    # Probe matched files (row count, columns, sample) without ingesting
    artifact-ingest --mapping mapping.xml --output-dir out/ --probe
"""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

from artifact_ingestion.adapters.tsv_adapter import TsvSourceAdapter
from artifact_ingestion.config import DEFAULT_CONFIG, IngestionConfig, load_config
from artifact_ingestion.domain.types import PassStatus
from artifact_ingestion.exceptions import ConfigParseError, FileAccessError, StoreError
from artifact_ingestion.logging_config import configure_logging, get_logger
from artifact_ingestion.mapping.document import MappingDocumentLoader
from artifact_ingestion.services.ingestion_service import IngestionService
from artifact_ingestion.store.memory import InMemoryArtifactStore
from artifact_ingestion.store.sql_store import (
    SqlArtifactStore,
    create_tables,
    get_session_factory,
    init_engine,
    seed_catalog,
)

logger = get_logger("cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="artifact-ingest",
        description="Ingest tabular tool output into an artifact store using an XML mapping document.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--mapping",
        type=Path,
        default=None,
        help="Mapping document (XML). Required unless mapping_document is set in --config.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML engine configuration.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory the external tool wrote its output to.",
    )
    owner = parser.add_mutually_exclusive_group()
    owner.add_argument(
        "--source",
        default=None,
        help="Attach records to this single source file.",
    )
    owner.add_argument(
        "--data-source",
        default=None,
        help="Attach records to this whole data source.",
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="SQLAlchemy database URL. Default: in-memory store.",
    )
    parser.add_argument(
        "--probe",
        action="store_true",
        help="Print row count, columns and sample rows for every matched file and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: config log_level, else INFO).",
    )
    return parser.parse_args(argv)


@contextmanager
def _open_store(database_url: str | None):
    if not database_url:
        yield InMemoryArtifactStore()
        return
    engine = init_engine(database_url)
    create_tables(engine)
    session = get_session_factory(engine)()
    try:
        seed_catalog(session)
        yield SqlArtifactStore(session)
    finally:
        session.close()
        engine.dispose()


def _probe(service: IngestionService, output_dir: Path, config: IngestionConfig) -> int:
    adapter = TsvSourceAdapter()
    try:
        files = service.discover_files(output_dir)
    except FileAccessError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILED

    report = []
    for path in files:
        probe = adapter.probe(path, config.source_options)
        report.append({
            "path": str(path),
            "rows": probe.row_count,
            "columns": list(probe.columns),
            "sample": [list(row) for row in probe.sample_rows],
        })
    print(json.dumps(report, indent=2))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
    except ConfigParseError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    if args.mapping is not None:
        config = replace(config, mapping_document=args.mapping)
    if args.db_url is not None:
        config = replace(config, database_url=args.db_url)

    configure_logging(level=args.log_level or config.log_level)

    if config.mapping_document is None:
        print("ERROR: No mapping document given (--mapping or mapping_document in --config).", file=sys.stderr)
        return EXIT_CONFIG
    if not args.probe and args.source is None and args.data_source is None:
        print("ERROR: One of --source or --data-source is required.", file=sys.stderr)
        return EXIT_CONFIG

    with _open_store(config.database_url) as store:
        try:
            tables = MappingDocumentLoader(store, config).load(config.mapping_document)
        except ConfigParseError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return EXIT_CONFIG
        except StoreError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return EXIT_FAILED

        service = IngestionService(store, tables, config)

        if args.probe:
            return _probe(service, args.output_dir, config)

        if args.source is not None:
            result = service.ingest_file_output(args.output_dir, args.source)
        else:
            result = service.ingest_data_source(args.output_dir, args.data_source)

    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_FAILED if result.status is PassStatus.FAILED else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
