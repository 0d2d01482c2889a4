"""Pytest configuration and fixtures."""

import io
import json
import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from battlelog_migration.clients.object_store import ObjectStoreClient
from battlelog_migration.clients.record_store import TABLES, RecordStore
from battlelog_migration.import_engine import IdGenerator


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo setup_logging calls made by a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def record_store():
    """In-memory SQLite record store with the schema created."""
    store = RecordStore("sqlite://")
    store.create_schema()
    return store


@pytest.fixture
def fetch_rows():
    """Read every row of a table as column dicts."""
    def fetch(store, table_name: str) -> list[dict]:
        with store.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(select(TABLES[table_name]))]
    return fetch


@pytest.fixture
def fixed_ids():
    """Id generator with a frozen clock."""
    return IdGenerator(clock=lambda: 1700000000.0)


@pytest.fixture
def sleeps():
    """Collects backoff delays instead of sleeping."""
    return []


@pytest.fixture
def mock_s3():
    """MagicMock standing in for a boto3 S3 client."""
    return MagicMock()


@pytest.fixture
def object_store(mock_s3, sleeps):
    """Object store client over the mock S3 client."""
    return ObjectStoreClient(bucket="legacy-bucket", s3_client=mock_s3, sleep=sleeps.append)


@pytest.fixture
def s3_body():
    """Build a get_object response carrying ``data`` as JSON."""
    def build(data) -> dict:
        return {"Body": io.BytesIO(json.dumps(data, ensure_ascii=False).encode("utf-8"))}
    return build


@pytest.fixture
def legacy_deck_master():
    """Legacy deck master documents."""
    return [
        {"id": "1", "className": "エルフ", "deckName": "テンポエルフ", "sortOrder": 1},
        {"id": "2", "className": "ロイヤル", "deckName": "連携ロイヤル", "sortOrder": 2},
        {"id": "3", "className": "ウィッチ", "deckName": "スペルウィッチ", "sortOrder": 3},
    ]


@pytest.fixture
def legacy_battle_logs():
    """Legacy battle logs: slash dates, ``group``, string season."""
    return [
        {
            "id": "log_1",
            "date": "2025/08/07",
            "battleType": "ランクマッチ",
            "rank": "サファイア",
            "group": "A",
            "myDeckId": "1",
            "turn": "後攻",
            "result": "WIN",
            "opponentDeckId": "3",
            "season": "12",
        },
        {
            "id": "log_2",
            "date": "2025/08/08",
            "battleType": "対戦台",
            "rank": "-",
            "group": "B",
            "myDeckId": "2",
            "turn": "先攻",
            "result": "負け",
            "opponentDeckId": "1",
        },
    ]


@pytest.fixture
def legacy_my_decks():
    """Legacy my decks; ``isActive`` may be missing."""
    return [
        {"id": "md_1", "deckId": "1", "deckCode": "abc", "deckName": "メイン"},
        {"id": "md_2", "deckId": "2", "deckCode": "", "deckName": "サブ", "isActive": False},
    ]


@pytest.fixture
def legacy_records(legacy_deck_master, legacy_battle_logs, legacy_my_decks):
    """All three legacy record types keyed by record type."""
    return {
        "deck_master": legacy_deck_master,
        "battle_logs": legacy_battle_logs,
        "my_decks": legacy_my_decks,
    }


@pytest.fixture
def battle_log():
    """A battle log that passes the strict import rules."""
    return {
        "date": "2025-01-15",
        "battleType": "ランクマッチ",
        "rank": "ダイアモンド",
        "groupName": "AA",
        "myDeckId": "1",
        "turn": "先攻",
        "result": "勝ち",
        "opponentDeckId": "2",
    }
