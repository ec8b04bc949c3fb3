from __future__ import annotations

from datetime import datetime
from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import TransactionType
from ..participants.model import Participant
from ..participants.repository import ParticipantLookup
from .model import Transaction


class TransactionRepository(Protocol):
    """Read-only access to the append-only ledger.

    Every list is ordered newest first (created_at desc, insertion order as
    tie-breaker). There is deliberately no update or delete method.
    """

    def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        raise NotImplementedError

    def list_for_participant(self, participant_id: str, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        """Transactions where the participant is the sender or the receiver."""

        raise NotImplementedError

    def list_by_type(self, tx_type: TransactionType, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        raise NotImplementedError

    def list_by_date_range(self, start: datetime, end: datetime) -> Sequence[Transaction]:
        """Inclusive on both ends."""

        raise NotImplementedError

    def list_recent(self, limit: int) -> Sequence[Transaction]:
        raise NotImplementedError


class LedgerSession(ParticipantLookup, Protocol):
    """One open unit of work.

    Student lookups made through the session hold that student's balance
    row until the unit of work ends, so a balance read here cannot go stale.
    """

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        raise NotImplementedError

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Transaction]:
        raise NotImplementedError

    def find_refund_of(self, transaction_id: str) -> Optional[Transaction]:
        raise NotImplementedError

    def write_balance(self, participant: Participant, new_balance: int) -> None:
        """Persist ``new_balance`` if ``participant`` still holds the balance it was read with."""

        raise NotImplementedError

    def insert_transaction(self, transaction: Transaction) -> None:
        raise NotImplementedError


class LedgerStore(Protocol):
    def unit_of_work(self) -> ContextManager[LedgerSession]:
        """Commit everything done in the block atomically, or nothing on error."""

        raise NotImplementedError
