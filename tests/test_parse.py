"""Tests for JSON and CSV payload parsing."""

import pytest
from battlelog_migration.errors import ImportFormatError
from battlelog_migration.transform.parse import parse_csv, parse_json

HEADER = "date,battleType,rank,groupName,myDeckId,turn,result,opponentDeckId"


class TestParseJson:
    """Tests for JSON payloads."""

    def test_array_normalized(self):
        """Test elements are normalized."""
        records = parse_json('[{"date": "2025/01/02", "group": "A"}]')

        assert records == [{"date": "2025-01-02", "groupName": "A", "userId": None}]

    def test_empty_array(self):
        """Test an empty array parses to no records."""
        assert parse_json("[]") == []

    def test_invalid_json(self):
        """Test syntax errors fail the call."""
        with pytest.raises(ImportFormatError, match="Invalid JSON payload"):
            parse_json("[{")

    @pytest.mark.parametrize("payload", ['{"a": 1}', '"text"', "3", "null"])
    def test_not_an_array(self, payload):
        """Test non-array JSON fails the call."""
        with pytest.raises(ImportFormatError, match="must be an array"):
            parse_json(payload)

    def test_non_object_elements_kept(self):
        """Test odd elements reach the validator untouched."""
        assert parse_json('[1, "x"]') == [1, "x"]


class TestParseCsv:
    """Tests for CSV payloads."""

    def test_rows_parsed(self):
        """Test a header and two rows."""
        payload = "\n".join([
            HEADER + ",season",
            "2025/01/02,ランクマッチ,サファイア,A,1,先攻,勝ち,2,3",
            "2025-01-03,対戦台,-,B,2,後攻,負け,1,",
        ])
        records = parse_csv(payload)

        assert len(records) == 2
        assert records[0]["date"] == "2025-01-02"
        assert records[0]["season"] == 3
        assert "season" not in records[1]

    def test_group_alias(self):
        """Test group header is accepted for groupName."""
        payload = HEADER.replace("groupName", "group") + "\n2025-01-02,対戦台,-,A,1,先攻,勝ち,2"
        records = parse_csv(payload)

        assert records[0]["groupName"] == "A"

    def test_byte_order_mark_stripped(self):
        """Test a BOM written by spreadsheet exports does not hide the first header."""
        payload = "\ufeff" + HEADER + "\n2025/01/02,ランクマッチ,サファイア,A,1,先攻,勝ち,2"
        records = parse_csv(payload)

        assert len(records) == 1
        assert records[0]["date"] == "2025-01-02"

    def test_missing_headers_named(self):
        """Test missing headers are listed."""
        with pytest.raises(ImportFormatError) as exc_info:
            parse_csv("date,battleType,rank\n2025-01-02,対戦台,-")

        assert str(exc_info.value) == (
            "Missing required headers: groupName, myDeckId, turn, result, opponentDeckId"
        )

    @pytest.mark.parametrize("payload", ["", "   \n  \n", None])
    def test_empty_payload(self, payload):
        """Test empty input fails the call."""
        with pytest.raises(ImportFormatError, match="CSV payload is empty"):
            parse_csv(payload)

    def test_blank_lines_ignored(self):
        """Test blank lines between rows."""
        payload = HEADER + "\n\n2025-01-02,対戦台,-,A,1,先攻,勝ち,2\n\n"

        assert len(parse_csv(payload)) == 1

    def test_mismatched_rows_dropped(self):
        """Test rows with the wrong column count are dropped silently."""
        payload = "\n".join([
            HEADER,
            "2025-01-02,対戦台,-,A,1,先攻,勝ち,2",
            "2025-01-02,対戦台,-,A",
            "2025-01-02,対戦台,-,A,1,先攻,勝ち,2,extra",
            "2025-01-04,対戦台,-,C,1,先攻,勝ち,2",
        ])
        records = parse_csv(payload)

        assert [r["groupName"] for r in records] == ["A", "C"]

    def test_quoted_values(self):
        """Test quoted cells containing commas."""
        payload = "className,deckName,sortOrder\nエルフ,\"A, B\",2"
        records = parse_csv(payload, "deck_master")

        assert records == [{"className": "エルフ", "deckName": "A, B", "sortOrder": 2}]

    def test_required_empty_cell_kept(self):
        """Test empty required cells stay for the validator."""
        records = parse_csv("deckId,deckName\n,メイン", "my_decks")

        assert records[0]["deckId"] == ""
