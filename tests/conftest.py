"""
Pytest fixtures for the artifact ingestion test suite.

Provides:
- A fresh in-memory artifact store per test
- Writers for TSV output files and XML mapping documents under tmp_path
- Logging reset so caplog sees records from the artifact_ingestion loggers
"""

from pathlib import Path
from typing import Callable, Sequence

import pytest

from artifact_ingestion.logging_config import LogContext, reset_logging
from artifact_ingestion.store.memory import InMemoryArtifactStore


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def write_tsv(tmp_path: Path) -> Callable[..., Path]:
    """Write a TSV file from a header and rows; returns its path."""

    def _write(name: str, header: Sequence[str], rows: Sequence[Sequence[str]], subdir: str = "") -> Path:
        directory = tmp_path / "output" / subdir if subdir else tmp_path / "output"
        directory.mkdir(parents=True, exist_ok=True)
        lines = ["\t".join(header)] + ["\t".join(row) for row in rows]
        path = directory / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


def mapping_xml(*files: str) -> str:
    """Wrap <FileName> fragments in a mapping document root."""
    return "<Root>\n" + "\n".join(files) + "\n</Root>\n"


def file_element(
    filename: str,
    artifactname: str,
    attributes: Sequence[tuple[str, str, str]],
    comment: str = "null",
    description: str = "Test output",
) -> str:
    """One <FileName> element; attributes are (attributename, columnName, required)."""
    attrs = "\n".join(
        f'      <AttributeName attributename="{name}" columnName="{column}" required="{required}"/>'
        for name, column, required in attributes
    )
    return (
        f'  <FileName filename="{filename}" description="{description}">\n'
        f'    <ArtifactName artifactname="{artifactname}" comment="{comment}">\n'
        f"{attrs}\n"
        f"    </ArtifactName>\n"
        f"  </FileName>"
    )


@pytest.fixture(name="mapping_xml")
def mapping_xml_fixture() -> Callable[..., str]:
    return mapping_xml


@pytest.fixture(name="file_element")
def file_element_fixture() -> Callable[..., str]:
    return file_element
