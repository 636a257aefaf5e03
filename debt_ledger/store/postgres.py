"""PostgreSQL debtor repository."""

import logging
from datetime import date
from typing import Any

import psycopg
from psycopg.errors import UniqueViolation

from debt_ledger.exceptions import (
    DuplicateDebtorError,
    EntityNotFoundError,
    InternalError,
    ValidationError,
)
from debt_ledger.models import Debtor

logger = logging.getLogger(__name__)


class PostgresDebtorStore:
    """Debtor records on PostgreSQL.

    The ``UNIQUE (contract_id, due_date)`` constraint is the safety net for
    concurrent materializer runs that both observe a missing record.
    """

    COLUMNS = [
        "debtor_id",
        "contract_id",
        "debt_amount",
        "due_date",
        "overdue_days",
        "created_by",
        "created_at",
        "updated_at",
    ]

    DDL = """
        CREATE TABLE IF NOT EXISTS debtors (
            debtor_id    TEXT PRIMARY KEY,
            contract_id  TEXT NOT NULL,
            debt_amount  NUMERIC(18, 2) NOT NULL,
            due_date     DATE NOT NULL,
            overdue_days INTEGER NOT NULL CHECK (overdue_days >= 0),
            created_by   TEXT,
            created_at   TIMESTAMPTZ,
            updated_at   TIMESTAMPTZ,
            CONSTRAINT debtors_contract_due_key UNIQUE (contract_id, due_date)
        )
    """

    def __init__(self, connection_string: str) -> None:
        """Open a connection.

        Parameters
        ----------
        connection_string : str
            PostgreSQL connection string.
        """
        try:
            self.conn = psycopg.connect(connection_string)
        except psycopg.Error as e:
            raise InternalError("Could not connect to the debtor database", cause=e) from e

    def create_tables(self) -> None:
        """Create the debtors table if it does not exist."""
        with self.conn.cursor() as cur:
            cur.execute(self.DDL)
        self.conn.commit()
        logger.info("Debtor table ready")

    def add_debtor(self, debtor: Debtor) -> None:
        """Insert a debtor; a (contract, due date) conflict raises ``DuplicateDebtorError``."""
        columns = ", ".join(self.COLUMNS)
        placeholders = ", ".join(["%s"] * len(self.COLUMNS))
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO debtors ({columns}) VALUES ({placeholders})",  # noqa: S608
                    self._to_row(debtor),
                )
            self.conn.commit()
        except UniqueViolation as e:
            self.conn.rollback()
            raise DuplicateDebtorError(
                f"Debtor for contract {debtor.contract_id} due {debtor.due_date} already exists"
            ) from e
        except psycopg.Error as e:
            self.conn.rollback()
            raise InternalError("Failed to insert debtor", cause=e) from e

    def save_debtor(self, debtor: Debtor) -> None:
        """Overwrite the mutable fields of an existing debtor."""
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "UPDATE debtors SET debt_amount = %s, overdue_days = %s, updated_at = %s "
                    "WHERE debtor_id = %s",
                    (debtor.debt_amount, debtor.overdue_days, debtor.updated_at, debtor.debtor_id),
                )
                updated = cur.rowcount
            self.conn.commit()
        except psycopg.Error as e:
            self.conn.rollback()
            raise InternalError("Failed to update debtor", cause=e) from e
        if updated == 0:
            raise EntityNotFoundError(f"Debtor {debtor.debtor_id} not found")

    def upsert_debtor(self, debtor: Debtor) -> None:
        """Insert a debtor or refresh ``overdue_days`` on the existing one."""
        columns = ", ".join(self.COLUMNS)
        placeholders = ", ".join(["%s"] * len(self.COLUMNS))
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO debtors ({columns}) VALUES ({placeholders}) "  # noqa: S608
                    "ON CONFLICT (contract_id, due_date) DO UPDATE "
                    "SET overdue_days = EXCLUDED.overdue_days, updated_at = EXCLUDED.updated_at",
                    self._to_row(debtor),
                )
            self.conn.commit()
        except psycopg.Error as e:
            self.conn.rollback()
            raise InternalError("Failed to upsert debtor", cause=e) from e

    def find_debtor(self, contract_id: str, due_date: date) -> Debtor | None:
        rows = self._select("contract_id = %s AND due_date = %s", (contract_id, due_date))
        return rows[0] if rows else None

    def find_debtors(self, **filters: Any) -> list[Debtor]:
        """Find debtors by column equality."""
        unknown = set(filters) - set(self.COLUMNS)
        if unknown:
            raise ValidationError(f"Unknown debtor columns: {sorted(unknown)}")
        where = " AND ".join(f"{name} = %s" for name in filters) or "TRUE"
        return self._select(where, tuple(filters.values()))

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()

    def _select(self, where: str, params: tuple) -> list[Debtor]:
        columns = ", ".join(self.COLUMNS)
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    f"SELECT {columns} FROM debtors WHERE {where} ORDER BY due_date",  # noqa: S608
                    params,
                )
                rows = cur.fetchall()
        except psycopg.Error as e:
            self.conn.rollback()
            raise InternalError("Failed to read debtors", cause=e) from e
        return [Debtor(**dict(zip(self.COLUMNS, row))) for row in rows]

    @staticmethod
    def _to_row(debtor: Debtor) -> tuple:
        return (
            debtor.debtor_id,
            debtor.contract_id,
            debtor.debt_amount,
            debtor.due_date,
            debtor.overdue_days,
            debtor.created_by,
            debtor.created_at,
            debtor.updated_at,
        )
