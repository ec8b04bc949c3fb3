from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import ParticipantKind, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..participants.model import ParticipantRef
from .model import Transaction, direction_from_refs
from .repository import TransactionRepository

TRANSACTION_COLUMNS = (
    "id, type, sender_id, sender_kind, receiver_id, receiver_kind, amount, "
    "description, verified_by, related_transaction_id, idempotency_key, created_at"
)
NEWEST_FIRST = "ORDER BY created_at DESC, seq DESC"


def _ref(participant_id: Optional[str], kind: Optional[str]) -> Optional[ParticipantRef]:
    if not participant_id:
        return None
    return ParticipantRef(str(participant_id), ParticipantKind(kind or ParticipantKind.STUDENT.value))


def row_to_transaction(r: Dict[str, Any]) -> Transaction:
    return Transaction(
        transaction_id=str(r["id"]),
        type=TransactionType(r["type"]),
        direction=direction_from_refs(
            _ref(r.get("sender_id"), r.get("sender_kind")),
            _ref(r.get("receiver_id"), r.get("receiver_kind")),
        ),
        amount=int(r["amount"]),
        created_at=r["created_at"],
        description=r.get("description"),
        verified_by=r.get("verified_by"),
        related_transaction_id=r.get("related_transaction_id"),
        idempotency_key=r.get("idempotency_key"),
    )


def transaction_to_params(tx: Transaction) -> tuple:
    sender, receiver = tx.sender, tx.receiver
    return (
        tx.transaction_id,
        tx.type.value,
        sender.participant_id if sender else None,
        sender.kind.value if sender else None,
        receiver.participant_id if receiver else None,
        receiver.kind.value if receiver else None,
        int(tx.amount),
        tx.description,
        tx.verified_by,
        tx.related_transaction_id,
        tx.idempotency_key,
        tx.created_at,
    )


class MySQLTransactionRepository(TransactionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        sql = f"SELECT {TRANSACTION_COLUMNS} FROM adcoin_transactions WHERE {where} {NEWEST_FIRST}"
        if limit is not None:
            sql += " LIMIT %s"
            params = params + (int(limit),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [row_to_transaction(r) for r in fetchall(cur)]

    def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {TRANSACTION_COLUMNS} FROM adcoin_transactions WHERE id=%s", (transaction_id,))
            row = fetchone(cur)
            return row_to_transaction(row) if row else None

    def list_for_participant(self, participant_id: str, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        return self._select("sender_id=%s OR receiver_id=%s", (participant_id, participant_id), limit=limit)

    def list_by_type(self, tx_type: TransactionType, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        return self._select("type=%s", (tx_type.value,), limit=limit)

    def list_by_date_range(self, start: datetime, end: datetime) -> Sequence[Transaction]:
        return self._select("created_at BETWEEN %s AND %s", (start, end))

    def list_recent(self, limit: int) -> Sequence[Transaction]:
        return self._select("1=1", (), limit=limit)
