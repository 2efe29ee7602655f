"""Tests for the ingestion pass driver (artifact_ingestion/services/ingestion_service.py)."""

import json
import logging
from dataclasses import replace
from io import StringIO

import pytest

from artifact_ingestion.config import DEFAULT_CONFIG
from artifact_ingestion.domain.types import OwnerKind, PassStatus, RecordOwner
from artifact_ingestion.exceptions import FileAccessError, RecordCreateError, StorePostError
from artifact_ingestion.logging_config import StructuredFormatter, configure_logging
from artifact_ingestion.mapping import MappingDocumentLoader
from artifact_ingestion.services import IngestionService
from artifact_ingestion.store.memory import InMemoryArtifactStore


@pytest.fixture
def tables(store, mapping_xml, file_element):
    return MappingDocumentLoader(store).load_string(mapping_xml(
        file_element(
            "Accounts.tsv",
            "TSK_SERVICE_ACCOUNT",
            [("TSK_USER_NAME", "name", "yes"), ("TSK_DATETIME", "time", "yes")],
        ),
        file_element(
            "history.tsv",
            "TSK_WEB_HISTORY",
            [("TSK_URL", "url", "yes"), ("TSK_DOMAIN", "url", "no"), ("TSK_SIZE", "count", "no")],
            comment="Browser history",
        ),
        file_element("unknown_type.tsv", "TSK_NO_SUCH_TYPE", [("TSK_NAME", "name", "no")]),
    ))


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "output"


def _service(store, tables, **kwargs):
    return IngestionService(store, tables, **kwargs)


def _write_accounts_with_bad_tail(write_tsv, row_count=3000):
    """Valid rows spanning several read chunks, then bytes that are not UTF-8."""
    rows = [[f"user{i}", "2020-01-15 13:45:00"] for i in range(row_count)]
    path = write_tsv("accounts.tsv", ["name", "time"], rows)
    with path.open("ab") as handle:
        handle.write(b"\xff\xfe\n")
    return path


class TestDiscoverFiles:
    def test_matches_known_names_recursively(self, store, tables, write_tsv, output_dir):
        write_tsv("accounts.tsv", ["name"], [["a"]])
        write_tsv("HISTORY.TSV", ["url"], [["u"]], subdir="nested/deeper")
        write_tsv("other.tsv", ["x"], [["1"]])
        write_tsv("accounts.txt", ["x"], [["1"]])

        files = _service(store, tables).discover_files(output_dir)

        assert [p.name for p in files] == ["accounts.tsv", "HISTORY.TSV"]

    def test_missing_directory_raises(self, store, tables, tmp_path):
        with pytest.raises(FileAccessError) as exc_info:
            _service(store, tables).discover_files(tmp_path / "nope")
        assert exc_info.value.code == "FILE_ACCESS_ERROR"

    def test_configured_extension(self, store, tables, output_dir):
        output_dir.mkdir()
        (output_dir / "accounts.tsv").write_text("name\nx\n", encoding="utf-8")
        config = replace(DEFAULT_CONFIG, file_extension=".out")
        assert _service(store, tables, config=config).discover_files(output_dir) == []


class TestIngestionPass:
    def test_records_created_and_posted_once(self, store, tables, write_tsv, output_dir):
        write_tsv("Accounts.tsv", ["name", "time"], [
            ["Alice", "2020-01-15 13:45:00"],
            ["Bob", "2020-01-15 13:46:00"],
        ])
        write_tsv("history.tsv", ["url", "count"], [["https://www.example.com/x", "3"]])

        result = _service(store, tables).ingest_data_source(output_dir, "case-01")

        assert result.status is PassStatus.COMPLETED
        assert result.files_matched == 2
        assert result.files_processed == 2
        assert result.rows_read == 3
        assert result.records_created == 3
        assert result.records_posted == 3
        assert result.batches_posted == 1
        assert len(store.posted_batches) == 1
        batch, module_name = store.posted_batches[0]
        assert module_name == DEFAULT_CONFIG.module_name
        assert len(batch) == 3

        alice = next(r for r in batch if r.record_type.name == "TSK_SERVICE_ACCOUNT")
        assert [a.attribute_type.name for a in alice.attributes] == ["TSK_USER_NAME", "TSK_DATETIME"]
        assert alice.attributes[1].value.value == 1579095900
        assert alice.owner == RecordOwner(owner_id="case-01", kind=OwnerKind.DATA_SOURCE, name="case-01")

    def test_file_owner(self, store, tables, write_tsv, output_dir):
        write_tsv("accounts.tsv", ["name", "time"], [["Alice", "2020-01-15 13:45:00"]])
        result = _service(store, tables).ingest_file_output(output_dir, "/evidence/image.dd")
        assert result.owner.kind is OwnerKind.FILE
        assert store.posted_records[0].owner.owner_id == "/evidence/image.dd"
        assert store.posted_records[0].owner.name == "image.dd"

    def test_comment_and_domain(self, store, tables, write_tsv, output_dir):
        write_tsv("history.tsv", ["url", "count"], [["https://www.example.com/x", "3"]])
        _service(store, tables).ingest_data_source(output_dir, "ds")
        record = store.posted_records[0]
        values = [(a.attribute_type.name, a.value.value) for a in record.attributes]
        assert values == [
            ("TSK_URL", "https://www.example.com/x"),
            ("TSK_DOMAIN", "www.example.com"),
            ("TSK_SIZE", 3),
            ("TSK_COMMENT", "Browser history"),
        ]

    def test_rejected_rows_do_not_stop_the_file(self, store, tables, write_tsv, output_dir):
        write_tsv("accounts.tsv", ["name", "time"], [
            ["Alice", "Bob", "2020-01-15 13:45:00"],
            ["Carol", "not a time"],
            ["Dave", "2020-01-15 13:45:00"],
        ])
        result = _service(store, tables).ingest_data_source(output_dir, "ds")
        assert result.rows_read == 3
        assert result.rows_rejected == 2
        assert result.records_created == 1
        assert [r.attributes[0].value.value for r in store.posted_records] == ["Dave"]

    def test_zero_like_value_drops_row(self, store, tables, write_tsv, output_dir):
        write_tsv("history.tsv", ["url", "count"], [["http://a.example.com", "0.00"]])
        result = _service(store, tables).ingest_data_source(output_dir, "ds")
        assert result.rows_rejected == 1
        assert result.records_created == 0

    def test_missing_column_omitted(self, store, tables, write_tsv, output_dir):
        write_tsv("history.tsv", ["url"], [["http://a.example.com"]])
        result = _service(store, tables).ingest_data_source(output_dir, "ds")
        assert result.records_created == 1
        assert result.files[0].omitted_columns == ("count",)
        names = [a.attribute_type.name for a in store.posted_records[0].attributes]
        assert "TSK_SIZE" not in names

    def test_unknown_record_type_skips_file(self, store, tables, write_tsv, output_dir):
        write_tsv("unknown_type.tsv", ["name"], [["x"], ["y"]])
        result = _service(store, tables).ingest_data_source(output_dir, "ds")
        assert result.files_matched == 1
        assert result.files_skipped == 1
        assert result.files_processed == 0
        assert store.records == []

    def test_empty_batch_makes_no_store_call(self, store, tables, output_dir):
        output_dir.mkdir()
        result = _service(store, tables).ingest_data_source(output_dir, "ds")
        assert result.status is PassStatus.COMPLETED
        assert result.batches_posted == 0
        assert store.posted_batches == []


class TestBatching:
    def test_max_batch_size_splits_posts(self, store, tables, write_tsv, output_dir):
        rows = [[f"user{i}", "2020-01-15 13:45:00"] for i in range(5)]
        write_tsv("accounts.tsv", ["name", "time"], rows)
        config = replace(DEFAULT_CONFIG, max_batch_size=2)

        result = _service(store, tables, config=config).ingest_data_source(output_dir, "ds")

        assert [len(batch) for batch, _ in store.posted_batches] == [2, 2, 1]
        assert result.batches_posted == 3
        assert result.records_posted == 5


class TestFailures:
    def test_missing_output_dir_fails_pass(self, store, tables, tmp_path):
        result = _service(store, tables).ingest_file_output(tmp_path / "nope", "src")
        assert result.status is PassStatus.FAILED
        assert result.errors[0].code == "FILE_ACCESS_ERROR"
        assert store.posted_batches == []

    def test_unreadable_file_skipped(self, store, tables, write_tsv, output_dir, caplog):
        write_tsv("history.tsv", ["url"], [["http://a.example.com"]])
        (output_dir / "accounts.tsv").write_bytes(b"name\ttime\n\xff\xfe\x00bad\n")

        with caplog.at_level(logging.ERROR, logger="artifact_ingestion"):
            result = _service(store, tables).ingest_data_source(output_dir, "ds")

        assert result.status is PassStatus.COMPLETED
        assert result.files_failed == 1
        assert result.files_processed == 1
        assert result.records_posted == 1
        assert "Unable to read file" in caplog.text

    def test_partly_read_file_counted(self, store, tables, write_tsv, output_dir, caplog):
        _write_accounts_with_bad_tail(write_tsv)

        with caplog.at_level(logging.ERROR, logger="artifact_ingestion"):
            result = _service(store, tables).ingest_data_source(output_dir, "ds")

        assert result.files_failed == 1
        assert result.files_processed == 0
        assert 0 < result.records_created < 3000
        assert result.records_posted == result.records_created
        assert result.rows_read == result.records_created
        failed = result.files[0]
        assert failed.file_name == "accounts.tsv"
        assert failed.read_error is not None
        assert result.errors[0].details == {"rows_read": failed.rows_read}
        assert result.to_dict()["files"][0]["read_error"] == failed.read_error

    def test_store_post_error_logged_and_pass_completes(self, write_tsv, output_dir, caplog):
        class FailingPostStore(InMemoryArtifactStore):
            def post_batch(self, records, source_module_name):
                raise StorePostError(len(records), "store offline")

        store = FailingPostStore()
        loader_tables = MappingDocumentLoader(store).load_string(
            "<Root>"
            '<FileName filename="accounts.tsv" description="A">'
            '<ArtifactName artifactname="TSK_SERVICE_ACCOUNT" comment="null">'
            '<AttributeName attributename="TSK_USER_NAME" columnName="name" required="yes"/>'
            "</ArtifactName></FileName></Root>"
        )
        write_tsv("accounts.tsv", ["name"], [["Alice"]])

        with caplog.at_level(logging.ERROR, logger="artifact_ingestion"):
            result = _service(store, loader_tables).ingest_data_source(output_dir, "ds")

        assert result.status is PassStatus.COMPLETED
        assert result.records_created == 1
        assert result.records_posted == 0
        assert result.errors[0].code == "STORE_POST_ERROR"
        assert "store offline" in caplog.text

    def test_record_create_error_counted(self, write_tsv, output_dir, caplog):
        class PickyStore(InMemoryArtifactStore):
            def create_record(self, record_type, owner, attributes):
                if attributes[0].value.value == "Mallory":
                    raise RecordCreateError(record_type.name, "rejected")
                return super().create_record(record_type, owner, attributes)

        store = PickyStore()
        tables = MappingDocumentLoader(store).load_string(
            "<Root>"
            '<FileName filename="accounts.tsv" description="A">'
            '<ArtifactName artifactname="TSK_SERVICE_ACCOUNT" comment="null">'
            '<AttributeName attributename="TSK_USER_NAME" columnName="name" required="yes"/>'
            "</ArtifactName></FileName></Root>"
        )
        write_tsv("accounts.tsv", ["name"], [["Alice"], ["Mallory"], ["Bob"]])

        with caplog.at_level(logging.WARNING, logger="artifact_ingestion"):
            result = _service(store, tables).ingest_data_source(output_dir, "ds")

        assert result.records_created == 2
        assert result.files[0].records_failed == 1
        assert result.records_posted == 2
        assert "Failed to create record of type TSK_SERVICE_ACCOUNT from line 3" in caplog.text


class TestCancellation:
    def test_cancel_between_files_posts_accumulated(self, store, tables, write_tsv, output_dir):
        write_tsv("accounts.tsv", ["name", "time"], [["Alice", "2020-01-15 13:45:00"]])
        write_tsv("history.tsv", ["url"], [["http://a.example.com"]])
        calls = []

        def should_cancel():
            calls.append(1)
            return len(calls) > 1

        result = _service(store, tables, should_cancel=should_cancel).ingest_data_source(output_dir, "ds")

        assert result.status is PassStatus.CANCELLED
        assert result.files_matched == 2
        assert result.files_processed == 1
        assert result.records_posted == 1
        assert store.posted_records[0].record_type.name == "TSK_SERVICE_ACCOUNT"

    def test_cancel_before_first_file(self, store, tables, write_tsv, output_dir):
        write_tsv("accounts.tsv", ["name", "time"], [["Alice", "2020-01-15 13:45:00"]])
        result = _service(store, tables, should_cancel=lambda: True).ingest_data_source(output_dir, "ds")
        assert result.status is PassStatus.CANCELLED
        assert result.files_processed == 0
        assert store.posted_batches == []


class TestProcessFile:
    def test_single_file(self, store, tables, write_tsv):
        path = write_tsv("accounts.tsv", ["name", "time"], [["Alice", "2020-01-15 13:45:00"]])
        service = _service(store, tables)
        owner = RecordOwner(owner_id="f", kind=OwnerKind.FILE)

        result = service.process_file(path, "Accounts.tsv", owner)

        assert result.file_name == "accounts.tsv"
        assert result.records_created == 1
        pending = service.pending_records()
        assert len(pending) == 1
        assert service.pending_records() == []
        assert store.posted_batches == []

    def test_read_error_propagates(self, store, tables, tmp_path):
        service = _service(store, tables)
        with pytest.raises(OSError):
            service.process_file(tmp_path / "accounts.tsv", "accounts.tsv", RecordOwner("f", OwnerKind.FILE))

    def test_read_error_keeps_created_records_pending(self, store, tables, write_tsv):
        path = _write_accounts_with_bad_tail(write_tsv)
        service = _service(store, tables)

        with pytest.raises(UnicodeDecodeError):
            service.process_file(path, "accounts.tsv", RecordOwner("f", OwnerKind.FILE))

        assert 0 < len(service.pending_records()) < 3000

    def test_uncollected_records_join_next_pass(self, store, tables, write_tsv, output_dir, caplog):
        path = write_tsv("accounts.tsv", ["name", "time"], [["Alice", "2020-01-15 13:45:00"]])
        service = _service(store, tables)
        service.process_file(path, "accounts.tsv", RecordOwner("f", OwnerKind.FILE))

        with caplog.at_level(logging.WARNING, logger="artifact_ingestion"):
            result = service.ingest_data_source(output_dir, "ds")

        assert result.records_carried_over == 1
        assert result.records_created == 1
        assert result.records_posted == 2
        assert len(store.posted_records) == 2
        assert "Carrying 1 uncollected records" in caplog.text
        assert service.pending_records() == []


class TestPassLogging:
    def test_log_lines_carry_pass_context(self, store, tables, write_tsv, output_dir):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        configure_logging(level="DEBUG", handler=handler)
        write_tsv("accounts.tsv", ["name", "time"], [["Alice", "2020-01-15 13:45:00"]])

        result = _service(store, tables).ingest_data_source(output_dir, "case-9")

        lines = [json.loads(line) for line in stream.getvalue().splitlines() if line]
        created = next(line for line in lines if line["message"] == "record_created")
        assert created["pass_id"] == str(result.pass_id)
        assert created["module_name"] == DEFAULT_CONFIG.module_name
        assert created["source_file"] == "accounts.tsv"
        assert created["record_type"] == "TSK_SERVICE_ACCOUNT"
        assert created["owner_id"] == "case-9"
        assert any(line["message"] == "ingestion_pass_finished" for line in lines)
