"""PostgreSQL sink for exporting ledger state."""

import logging
from dataclasses import is_dataclass
from enum import Enum
from typing import Any

import psycopg

from invest_ledger.exceptions import SinkError

logger = logging.getLogger(__name__)

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL,
    principal NUMERIC(15, 2) NOT NULL CHECK (principal >= 0),
    accrued_yield NUMERIC(15, 2) NOT NULL CHECK (accrued_yield >= 0),
    first_qualifying_deposit_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS pix_charges (
    charge_id TEXT PRIMARY KEY,
    account_id TEXT NOT NULL REFERENCES accounts (account_id),
    amount NUMERIC(15, 2) NOT NULL CHECK (amount > 0),
    status TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL,
    txid TEXT NOT NULL,
    pix_string TEXT NOT NULL,
    confirmed_at TIMESTAMPTZ,
    movement_id TEXT
);

CREATE TABLE IF NOT EXISTS movements (
    movement_id TEXT PRIMARY KEY,
    account_id TEXT NOT NULL REFERENCES accounts (account_id),
    movement_type TEXT NOT NULL,
    amount NUMERIC(15, 2) NOT NULL CHECK (amount > 0),
    created_at TIMESTAMPTZ NOT NULL,
    description TEXT NOT NULL,
    correlation_id TEXT,
    sequence BIGINT NOT NULL,
    UNIQUE (account_id, correlation_id)
);
"""


class PostgresSink:
    """Write ledger entities to PostgreSQL.

    Movements are immutable, so re-exporting them is a no-op; accounts and
    charges are upserted with their latest state.
    """

    TABLE_COLUMNS = {
        "accounts": [
            "account_id",
            "owner_id",
            "created_at",
            "principal",
            "accrued_yield",
            "first_qualifying_deposit_at",
            "updated_at",
        ],
        "pix_charges": [
            "charge_id",
            "account_id",
            "amount",
            "status",
            "created_at",
            "expires_at",
            "txid",
            "pix_string",
            "confirmed_at",
            "movement_id",
        ],
        "movements": [
            "movement_id",
            "account_id",
            "movement_type",
            "amount",
            "created_at",
            "description",
            "correlation_id",
            "sequence",
        ],
    }

    PRIMARY_KEYS = {
        "accounts": "account_id",
        "pix_charges": "charge_id",
        "movements": "movement_id",
    }

    # Columns refreshed on conflict; movements are never updated
    UPDATE_COLUMNS = {
        "accounts": ["principal", "accrued_yield", "first_qualifying_deposit_at", "updated_at"],
        "pix_charges": ["status", "confirmed_at", "movement_id"],
        "movements": [],
    }

    # Insert order respecting foreign keys
    ENTITY_ORDER = ["accounts", "pix_charges", "movements"]

    def __init__(self, connection_string: str) -> None:
        """Open the connection.

        Parameters
        ----------
        connection_string : str
            libpq connection string or URL.
        """
        try:
            self.conn = psycopg.connect(connection_string)
        except psycopg.Error as exc:
            raise SinkError(f"Failed to connect to PostgreSQL: {exc}") from exc
        self._counts: dict[str, int] = {}

    def create_schema(self) -> None:
        """Create the ledger tables if they do not exist."""
        with self.conn.cursor() as cur:
            cur.execute(SCHEMA_DDL)
        self.conn.commit()

    def _build_insert(self, entity_type: str) -> str:
        columns = self.TABLE_COLUMNS[entity_type]
        placeholders = ", ".join(["%s"] * len(columns))
        key = self.PRIMARY_KEYS[entity_type]
        updates = self.UPDATE_COLUMNS[entity_type]
        if updates:
            assignments = ", ".join(f"{col} = EXCLUDED.{col}" for col in updates)
            conflict = f"ON CONFLICT ({key}) DO UPDATE SET {assignments}"
        else:
            conflict = f"ON CONFLICT ({key}) DO NOTHING"
        return (
            f"INSERT INTO {entity_type} ({', '.join(columns)}) "  # noqa: S608
            f"VALUES ({placeholders}) {conflict}"
        )

    @staticmethod
    def _to_row(record: Any, columns: list[str]) -> tuple:
        if is_dataclass(record):
            values = [getattr(record, col, None) for col in columns]
        else:
            values = [record.get(col) for col in columns]
        return tuple(v.value if isinstance(v, Enum) else v for v in values)

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to the matching table."""
        if not records:
            return
        if entity_type not in self.TABLE_COLUMNS:
            logger.warning("Unknown entity type for PostgreSQL: %s", entity_type)
            return

        columns = self.TABLE_COLUMNS[entity_type]
        rows = [self._to_row(record, columns) for record in records]
        try:
            with self.conn.cursor() as cur:
                cur.executemany(self._build_insert(entity_type), rows)
            self.conn.commit()
        except psycopg.Error as exc:
            self.conn.rollback()
            raise SinkError(f"Failed to write {entity_type}: {exc}") from exc

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(rows)
        logger.info("Wrote %d %s to PostgreSQL", len(rows), entity_type)

    def write_all(self, batches: dict[str, list[Any]]) -> None:
        """Write several entity batches in foreign-key order."""
        for entity_type in self.ENTITY_ORDER:
            if entity_type in batches:
                self.write_batch(entity_type, batches[entity_type])

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()
        for entity_type, count in self._counts.items():
            logger.info("  %s: %d rows", entity_type, count)
