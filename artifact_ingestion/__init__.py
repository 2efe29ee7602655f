"""
artifact_ingestion -- Mapping-driven ingestion of tabular tool output.

Reads tab-separated files written by an external analysis tool, maps their
columns to typed attributes through an XML mapping document, and creates
structured records in an artifact store.

Architecture:
    domain/    pure types, no I/O
    adapters/  row readers (TSV)
    mapping/   mapping document loader, value coercion, record assembly
    store/     artifact store port plus in-memory and SQLAlchemy stores
    services/  the ingestion pass driver
    cli.py     the artifact-ingest console script
"""
