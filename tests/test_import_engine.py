"""Tests for the batch import engine."""

import json
import logging
from unittest.mock import MagicMock

import pytest
from battlelog_migration.errors import ImportFormatError, RecordStoreError
from battlelog_migration.import_engine import BatchImporter, IdGenerator, chunked, collect_ids

CSV_HEADER = "date,battleType,rank,groupName,myDeckId,turn,result,opponentDeckId"
VALID_ROW = "2025-01-02,ランクマッチ,サファイア,A,1,先攻,勝ち,2"
INVALID_ROW = "2025-01-02,フリー,サファイア,A,1,先攻,勝ち,2"


class TestIdGenerator:
    """Tests for generated ids."""

    def test_format(self):
        """Test prefix, epoch milliseconds and index."""
        generate = IdGenerator(clock=lambda: 1700000000.123)

        assert generate(0) == "log_import_1700000000123_0"
        assert generate(7) == "log_import_1700000000123_7"

    def test_custom_prefix(self):
        """Test a custom prefix."""
        assert IdGenerator("deck", clock=lambda: 1.0)(2) == "deck_1000_2"


class TestHelpers:
    """Tests for chunking and id collection."""

    def test_chunked(self):
        """Test chunks cover every item in order."""
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]

    def test_chunked_rejects_zero(self):
        """Test a zero chunk size is refused."""
        with pytest.raises(ValueError):
            list(chunked([1], 0))

    def test_collect_ids(self):
        """Test only non-empty string ids are collected, once each."""
        records = [{"id": "a"}, {"id": ""}, {}, {"id": 3}, {"id": "a"}, "x", {"id": "b"}]

        assert collect_ids(records) == ["a", "b"]


class TestImportRecords:
    """Tests for the core import algorithm."""

    def test_imports_valid_records(self, record_store, battle_log, fixed_ids, fetch_rows):
        """Test valid records are written with generated ids."""
        importer = BatchImporter(record_store, id_generator=fixed_ids)
        result = importer.import_records([battle_log, battle_log], "battle_logs")

        assert (result.imported, result.skipped, result.errors) == (2, 0, [])
        ids = {row["id"] for row in fetch_rows(record_store, "battle_logs")}
        assert ids == {"log_import_1700000000000_0", "log_import_1700000000000_1"}

    def test_errors_and_line_numbers(self, record_store, battle_log):
        """Test JSON element at index 2 reports line 3, one entry per field."""
        bad = {**battle_log, "turn": "x", "result": "WIN"}
        result = BatchImporter(record_store).import_records(
            [battle_log, battle_log, bad], "battle_logs"
        )

        assert result.imported == 2
        assert result.error_count == 2
        assert [(e.line, e.field) for e in result.errors] == [(3, "turn"), (3, "result")]
        assert result.rejected_lines == [3]

    def test_rejected_records_logged(self, record_store, battle_log, caplog):
        """Test the summary line counts rejected records, not field errors."""
        bad = {**battle_log, "turn": "x", "result": "WIN"}

        with caplog.at_level(logging.INFO, logger="battlelog_migration.import_engine"):
            BatchImporter(record_store).import_records([battle_log, bad], "battle_logs")

        summary = caplog.records[-1]
        assert (summary.errors, summary.rejected_records) == (2, 1)

    def test_existing_ids_skipped(self, record_store, battle_log):
        """Test ids already in the store are skipped, not errors."""
        importer = BatchImporter(record_store)
        importer.import_records([{**battle_log, "id": "a"}], "battle_logs")

        result = importer.import_records(
            [{**battle_log, "id": "a"}, {**battle_log, "id": "b"}], "battle_logs"
        )

        assert (result.imported, result.skipped, result.error_count) == (1, 1, 0)

    def test_reimport_idempotent(self, record_store, battle_log):
        """Test importing one id twice yields one insert and one skip."""
        importer = BatchImporter(record_store)
        first = importer.import_records([{**battle_log, "id": "same"}], "battle_logs")
        second = importer.import_records([{**battle_log, "id": "same"}], "battle_logs")

        assert first.imported + second.imported == 1
        assert first.skipped + second.skipped == 1
        assert record_store.count("battle_logs") == 1

    def test_duplicate_within_payload_skipped(self, record_store, battle_log):
        """Test a repeated id in one payload is skipped."""
        records = [{**battle_log, "id": "dup"}, {**battle_log, "id": "dup"}]
        result = BatchImporter(record_store).import_records(records, "battle_logs")

        assert (result.imported, result.skipped) == (1, 1)

    def test_insert_failure_counts_as_skipped(self, battle_log):
        """Test store-level insert failures are skipped, not errors."""
        store = MagicMock(max_parameters=999)
        store.find_existing_ids.return_value = set()
        store.insert.side_effect = [None, RecordStoreError("UNIQUE constraint failed")]

        result = BatchImporter(store).import_records([battle_log, battle_log], "battle_logs")

        assert (result.imported, result.skipped, result.error_count) == (1, 1, 0)

    def test_no_lookup_without_ids(self, battle_log):
        """Test the existence lookup is skipped when no record has an id."""
        store = MagicMock(max_parameters=999)

        BatchImporter(store).import_records([battle_log], "battle_logs")

        store.find_existing_ids.assert_not_called()

    @pytest.mark.parametrize("count,expected_calls", [(100, 1), (101, 2), (250, 3)])
    def test_chunked_lookups(self, record_store, battle_log, count, expected_calls):
        """Test ceil(N / 100) lookups whose results are unioned."""
        record_store.insert("battle_logs", {**battle_log, "id": "id_0"})
        record_store.insert("battle_logs", {**battle_log, "id": f"id_{count - 1}"})
        spy = MagicMock(wraps=record_store)
        spy.max_parameters = record_store.max_parameters

        records = [{**battle_log, "id": f"id_{i}"} for i in range(count)]
        result = BatchImporter(spy).import_records(records, "battle_logs", dry_run=True)

        assert spy.find_existing_ids.call_count == expected_calls
        assert all(len(c.args[1]) <= 100 for c in spy.find_existing_ids.call_args_list)
        assert result.skipped == 2
        assert result.imported == count - 2

    def test_chunk_size_above_store_limit(self, record_store):
        """Test the chunk size must fit the store's parameter ceiling."""
        with pytest.raises(ValueError):
            BatchImporter(record_store, chunk_size=1000)

    def test_invariant_imported_plus_skipped(self, record_store, battle_log):
        """Test imported + skipped never exceeds total."""
        records = [
            {**battle_log, "id": "a"},
            {**battle_log, "id": "a"},
            {**battle_log, "rank": "ゴールド"},
            "not a record",
        ]
        result = BatchImporter(record_store).import_records(records, "battle_logs")

        assert result.imported + result.skipped <= result.total == 4
        assert (result.imported, result.skipped, result.error_count) == (1, 1, 2)

    def test_user_id_applied(self, record_store, battle_log, fetch_rows):
        """Test the owner is stored on imported rows."""
        BatchImporter(record_store).import_records([battle_log], "battle_logs", user_id="u1")

        assert fetch_rows(record_store, "battle_logs")[0]["user_id"] == "u1"

    def test_batch_progress(self, record_store, battle_log):
        """Test on_batch fires per batch and once at the end."""
        calls = []
        BatchImporter(record_store).import_records(
            [battle_log] * 5, "battle_logs", batch_size=2, on_batch=lambda p, t: calls.append((p, t))
        )

        assert calls == [(2, 5), (4, 5), (5, 5)]


class TestDryRun:
    """Tests for dry-run behavior."""

    def test_dry_run_matches_committed_count(self, record_store, battle_log):
        """Test dry-run imports equal committed imports with zero inserts."""
        records = [
            {**battle_log, "id": "a"},
            {**battle_log, "id": "a"},
            battle_log,
            {**battle_log, "turn": "?"},
        ]
        spy = MagicMock(wraps=record_store)
        spy.max_parameters = record_store.max_parameters

        dry = BatchImporter(spy).import_records(records, "battle_logs", dry_run=True)
        spy.insert.assert_not_called()
        committed = BatchImporter(spy).import_records(records, "battle_logs")

        assert dry.imported == committed.imported == 2
        assert dry.skipped == committed.skipped == 1
        assert spy.insert.call_count == 2


class TestImportPayloads:
    """Tests for JSON and CSV entry points."""

    def test_import_json(self, record_store, battle_log):
        """Test a JSON array payload."""
        payload = json.dumps([battle_log, {**battle_log, "date": "2025/01/20"}], ensure_ascii=False)
        result = BatchImporter(record_store).import_json(payload)

        assert result.to_dict() == {"imported": 2, "skipped": 0, "errors": 0, "details": {}}

    def test_import_json_format_error(self, record_store):
        """Test malformed JSON fails without a partial result."""
        with pytest.raises(ImportFormatError):
            BatchImporter(record_store).import_json("{")

    def test_import_csv_line_numbers(self, record_store):
        """Test CSV row at index 2 reports line 4."""
        payload = "\n".join([CSV_HEADER, VALID_ROW, VALID_ROW, INVALID_ROW])
        result = BatchImporter(record_store).import_csv(payload)

        assert result.imported == 2
        assert result.to_dict()["details"]["errorDetails"] == [
            {
                "line": 4,
                "field": "battleType",
                "message": "Invalid value for battleType: must be one of ランクマッチ, 対戦台, ロビー大会",
            }
        ]

    def test_import_csv_dropped_rows_not_counted(self, record_store):
        """Test malformed rows never reach the counters."""
        payload = "\n".join([CSV_HEADER, VALID_ROW, "2025-01-02,short"])
        result = BatchImporter(record_store).import_csv(payload)

        assert (result.imported, result.skipped, result.error_count, result.total) == (1, 0, 0, 1)

    def test_import_payload_dispatch(self, record_store):
        """Test format dispatch and unknown formats."""
        importer = BatchImporter(record_store)
        result = importer.import_payload(
            "className,deckName,sortOrder\nエルフ,テンポ,1", "csv", "deck_master"
        )

        assert result.imported == 1
        with pytest.raises(ValueError, match="Unsupported import format"):
            importer.import_payload("[]", "xml")
