"""Relational store for normalized records, built on SQLAlchemy Core."""

import logging
import os
from typing import Iterable, Optional, Union

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from battlelog_migration.errors import ParameterLimitError, RecordStoreError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///battlelog.db"

# SQLITE_MAX_VARIABLE_NUMBER on older builds
MAX_BOUND_PARAMETERS = 999

metadata = MetaData()

deck_master = Table(
    "deck_master",
    metadata,
    Column("id", String, primary_key=True),
    Column("class_name", String, nullable=False),
    Column("deck_name", String, nullable=False),
    Column("sort_order", Integer, nullable=False, default=0),
    Column("created_at", Text, server_default=func.current_timestamp()),
)

battle_logs = Table(
    "battle_logs",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, index=True),
    Column("date", String, nullable=False),
    Column("battle_type", String, nullable=False),
    Column("rank", String, nullable=False),
    Column("group_name", String, nullable=False),
    Column("my_deck_id", String, nullable=False),
    Column("turn", String, nullable=False),
    Column("result", String, nullable=False),
    Column("opponent_deck_id", String, nullable=False),
    Column("season", Integer),
    Column("created_at", Text, server_default=func.current_timestamp()),
)

my_decks = Table(
    "my_decks",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, index=True),
    Column("deck_id", String, nullable=False, index=True),
    Column("deck_code", String, nullable=False, default=""),
    Column("deck_name", String, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", Text, server_default=func.current_timestamp()),
)

TABLES = {
    "deck_master": deck_master,
    "battle_logs": battle_logs,
    "my_decks": my_decks,
}

# Record field -> column name, per table
COLUMN_MAPS = {
    "deck_master": {
        "id": "id",
        "className": "class_name",
        "deckName": "deck_name",
        "sortOrder": "sort_order",
    },
    "battle_logs": {
        "id": "id",
        "userId": "user_id",
        "date": "date",
        "battleType": "battle_type",
        "rank": "rank",
        "groupName": "group_name",
        "myDeckId": "my_deck_id",
        "turn": "turn",
        "result": "result",
        "opponentDeckId": "opponent_deck_id",
        "season": "season",
    },
    "my_decks": {
        "id": "id",
        "userId": "user_id",
        "deckId": "deck_id",
        "deckCode": "deck_code",
        "deckName": "deck_name",
        "isActive": "is_active",
        "createdAt": "created_at",
    },
}


def to_row(table_name: str, record: dict) -> dict:
    """Map a normalized record to column values, ignoring unknown fields."""
    columns = COLUMN_MAPS[table_name]
    return {columns[key]: value for key, value in record.items() if key in columns}


class RecordStore:
    """Relational store holding deck master, battle log and my deck rows.

    Provides the three operations the engine needs (batched id lookup,
    single-row insert, delete-all) plus schema setup and counts.
    """

    def __init__(
        self,
        database_url: Optional[Union[str, Engine]] = None,
        max_parameters: int = MAX_BOUND_PARAMETERS,
        echo: bool = False,
    ):
        """Initialize the record store.

        Args:
            database_url: SQLAlchemy URL or engine (or from env: DATABASE_URL)
            max_parameters: Bound-parameter ceiling for one statement
            echo: Log emitted SQL
        """
        if isinstance(database_url, Engine):
            self.engine = database_url
        else:
            url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
            self.engine = create_engine(url, echo=echo)
        self.max_parameters = max_parameters

    def _table(self, table_name: str) -> Table:
        try:
            return TABLES[table_name]
        except KeyError:
            raise ValueError(f"Unknown table: {table_name}")

    def create_schema(self) -> None:
        """Create the target tables if they do not exist."""
        metadata.create_all(self.engine)
        logger.info("Record store schema ready", extra={"tables": list(TABLES)})

    def find_existing_ids(self, table_name: str, ids: Iterable[str]) -> set[str]:
        """Return the subset of ``ids`` already present in a table.

        Raises:
            ParameterLimitError: If ``ids`` exceeds ``max_parameters``
            RecordStoreError: On any database error
        """
        ids = list(ids)
        if not ids:
            return set()
        if len(ids) > self.max_parameters:
            raise ParameterLimitError(
                f"Lookup of {len(ids)} ids exceeds the limit of {self.max_parameters} parameters"
            )

        table = self._table(table_name)
        statement = select(table.c.id).where(table.c.id.in_(ids))

        try:
            with self.engine.connect() as conn:
                return {row.id for row in conn.execute(statement)}
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Lookup on {table_name} failed: {e}") from e

    def insert(self, table_name: str, record: dict) -> None:
        """Insert one normalized record.

        Raises:
            RecordStoreError: If the row is rejected (e.g. duplicate key)
        """
        table = self._table(table_name)
        row = to_row(table_name, record)

        try:
            with self.engine.begin() as conn:
                conn.execute(insert(table).values(**row))
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Insert into {table_name} failed: {e}") from e

    def delete_all(self, table_name: str) -> int:
        """Delete every row of a table and return the number deleted."""
        table = self._table(table_name)

        try:
            with self.engine.begin() as conn:
                result = conn.execute(delete(table))
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Delete from {table_name} failed: {e}") from e

    def count(self, table_name: str) -> int:
        """Count rows in a table."""
        table = self._table(table_name)
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()
