"""Ingestion services."""

from artifact_ingestion.services.ingestion_service import IngestionService

__all__ = ["IngestionService"]
