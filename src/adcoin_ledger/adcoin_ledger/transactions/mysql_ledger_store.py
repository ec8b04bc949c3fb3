from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from ..core.exceptions import StorageError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_transaction, fetchone
from ..participants.model import Participant, StaffUser, Student
from ..participants.mysql_participant_repository import STAFF_COLUMNS, STUDENT_COLUMNS, row_to_staff, row_to_student
from .model import Transaction
from .mysql_transaction_repository import TRANSACTION_COLUMNS, row_to_transaction, transaction_to_params
from .repository import LedgerSession, LedgerStore


class MySQLLedgerSession(LedgerSession):
    """Ledger unit of work bound to one open MySQL transaction."""

    def __init__(self, cur):
        self._cur = cur

    def get_student(self, student_id: str) -> Optional[Student]:
        self._cur.execute(f"SELECT {STUDENT_COLUMNS} FROM students WHERE id=%s FOR UPDATE", (student_id,))
        row = fetchone(self._cur)
        return row_to_student(row) if row else None

    def get_staff(self, staff_id: str) -> Optional[StaffUser]:
        self._cur.execute(f"SELECT {STAFF_COLUMNS} FROM staff_users WHERE id=%s", (staff_id,))
        row = fetchone(self._cur)
        return row_to_staff(row) if row else None

    def _one_transaction(self, where: str, params: tuple, *, lock: bool = False) -> Optional[Transaction]:
        sql = f"SELECT {TRANSACTION_COLUMNS} FROM adcoin_transactions WHERE {where} LIMIT 1"
        if lock:
            sql += " FOR UPDATE"
        self._cur.execute(sql, params)
        row = fetchone(self._cur)
        return row_to_transaction(row) if row else None

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        # Locks the original so two concurrent refunds of it serialize.
        return self._one_transaction("id=%s", (transaction_id,), lock=True)

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Transaction]:
        return self._one_transaction("idempotency_key=%s", (idempotency_key,))

    def find_refund_of(self, transaction_id: str) -> Optional[Transaction]:
        return self._one_transaction("type='refunded' AND related_transaction_id=%s", (transaction_id,))

    def write_balance(self, participant: Participant, new_balance: int) -> None:
        if not participant.tracks_balance:
            return
        if new_balance < 0:
            raise StorageError(f"Refusing to store negative balance for {participant.participant_id}")

        self._cur.execute(
            "UPDATE students SET adcoin_balance=%s WHERE id=%s AND adcoin_balance=%s",
            (int(new_balance), participant.participant_id, int(participant.balance)),
        )
        if self._cur.rowcount != 1:
            raise StorageError(f"Balance of {participant.participant_id} changed concurrently")

    def insert_transaction(self, transaction: Transaction) -> None:
        self._cur.execute(
            f"""
            INSERT INTO adcoin_transactions({TRANSACTION_COLUMNS})
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            transaction_to_params(transaction),
        )


class MySQLLedgerStore(LedgerStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def unit_of_work(self) -> Iterator[MySQLLedgerSession]:
        with db_transaction(self._conn_factory) as (_, cur):
            yield MySQLLedgerSession(cur)
