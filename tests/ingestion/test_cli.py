"""Tests for the artifact-ingest console script (artifact_ingestion/cli.py)."""

import json

import pytest
from sqlalchemy import create_engine, text

from artifact_ingestion.cli import EXIT_CONFIG, EXIT_FAILED, EXIT_OK, main


@pytest.fixture
def mapping_path(tmp_path, mapping_xml, file_element):
    path = tmp_path / "mapping.xml"
    path.write_text(mapping_xml(
        file_element("accounts.tsv", "TSK_SERVICE_ACCOUNT", [
            ("TSK_USER_NAME", "name", "yes"),
            ("TSK_DATETIME", "time", "yes"),
        ]),
    ), encoding="utf-8")
    return path


@pytest.fixture
def output_dir(write_tsv, tmp_path):
    write_tsv("accounts.tsv", ["name", "time"], [
        ["Alice", "2020-01-15 13:45:00"],
        ["Bob", "bad time"],
    ])
    return tmp_path / "output"


def _run(capsys, *argv):
    code = main(list(argv))
    return code, capsys.readouterr()


class TestIngestCommand:
    def test_data_source_pass(self, capsys, mapping_path, output_dir):
        code, out = _run(
            capsys,
            "--mapping", str(mapping_path),
            "--output-dir", str(output_dir),
            "--data-source", "case-01",
        )
        assert code == EXIT_OK
        summary = json.loads(out.out)
        assert summary["status"] == "completed"
        assert summary["owner"] == {"owner_id": "case-01", "kind": "data_source", "name": "case-01"}
        assert summary["records_created"] == 1
        assert summary["rows_rejected"] == 1
        assert summary["files"][0]["file_name"] == "accounts.tsv"

    def test_sql_store(self, capsys, tmp_path, mapping_path, output_dir):
        db_path = tmp_path / "artifacts.db"
        code, _ = _run(
            capsys,
            "--mapping", str(mapping_path),
            "--output-dir", str(output_dir),
            "--source", "image.dd",
            "--db-url", f"sqlite:///{db_path}",
        )
        assert code == EXIT_OK
        engine = create_engine(f"sqlite:///{db_path}")
        with engine.connect() as conn:
            rows = conn.execute(text("SELECT owner_kind, posted_by FROM records")).all()
        engine.dispose()
        assert rows == [("file", "artifact_ingestion")]

    def test_config_file_supplies_mapping(self, capsys, tmp_path, mapping_path, output_dir):
        config_path = tmp_path / "ingest.yaml"
        config_path.write_text("mapping_document: mapping.xml\nmodule_name: tool_x\n", encoding="utf-8")
        code, out = _run(
            capsys,
            "--config", str(config_path),
            "--output-dir", str(output_dir),
            "--data-source", "ds",
        )
        assert code == EXIT_OK
        assert json.loads(out.out)["records_posted"] == 1

    def test_missing_output_dir_fails(self, capsys, tmp_path, mapping_path):
        code, out = _run(
            capsys,
            "--mapping", str(mapping_path),
            "--output-dir", str(tmp_path / "nope"),
            "--data-source", "ds",
        )
        assert code == EXIT_FAILED
        assert json.loads(out.out)["status"] == "failed"


class TestProbe:
    def test_probe_lists_matched_files(self, capsys, mapping_path, output_dir):
        code, out = _run(capsys, "--mapping", str(mapping_path), "--output-dir", str(output_dir), "--probe")
        assert code == EXIT_OK
        report = json.loads(out.out)
        assert len(report) == 1
        assert report[0]["rows"] == 2
        assert report[0]["columns"] == ["name", "time"]


class TestConfigurationErrors:
    def test_owner_required(self, capsys, mapping_path, output_dir):
        code, out = _run(capsys, "--mapping", str(mapping_path), "--output-dir", str(output_dir))
        assert code == EXIT_CONFIG
        assert "--source or --data-source" in out.err

    def test_mapping_required(self, capsys, output_dir):
        code, out = _run(capsys, "--output-dir", str(output_dir), "--data-source", "ds")
        assert code == EXIT_CONFIG
        assert "No mapping document" in out.err

    def test_unreadable_mapping(self, capsys, tmp_path, output_dir):
        code, _ = _run(
            capsys,
            "--mapping", str(tmp_path / "absent.xml"),
            "--output-dir", str(output_dir),
            "--data-source", "ds",
        )
        assert code == EXIT_CONFIG

    def test_invalid_config(self, capsys, tmp_path, output_dir):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("no_such_setting: 1\n", encoding="utf-8")
        code, out = _run(
            capsys,
            "--config", str(config_path),
            "--output-dir", str(output_dir),
            "--data-source", "ds",
        )
        assert code == EXIT_CONFIG
        assert "no_such_setting" in out.err

    def test_source_and_data_source_exclusive(self, capsys, mapping_path, output_dir):
        with pytest.raises(SystemExit) as exc_info:
            main([
                "--mapping", str(mapping_path),
                "--output-dir", str(output_dir),
                "--source", "a",
                "--data-source", "b",
            ])
        assert exc_info.value.code == 2
