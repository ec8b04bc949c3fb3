from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import end_of_day, start_of_day
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_RECENT_LIMIT, MAX_PAGE_LIMIT
from ..core.enums import TransactionType
from ..core.exceptions import NotFoundError, ValidationError
from .model import Transaction
from .repository import TransactionRepository


class TransactionHistoryService:
    """Use case: browse the audit log. Read-only by construction."""

    def __init__(self, transactions: TransactionRepository):
        self._transactions = transactions

    @staticmethod
    def _limit(limit: Optional[int]) -> Optional[int]:
        if limit is None:
            return None
        if int(limit) <= 0:
            raise ValidationError("Limit must be greater than 0")
        return min(int(limit), MAX_PAGE_LIMIT)

    def get(self, transaction_id: str) -> Transaction:
        tx = self._transactions.get_by_id(require_non_empty(transaction_id, "Transaction id"))
        if not tx:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return tx

    def for_participant(self, participant_id: str, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        participant_id = require_non_empty(participant_id, "Participant id")
        return self._transactions.list_for_participant(participant_id, limit=self._limit(limit))

    def by_type(self, tx_type: TransactionType | str, *, limit: Optional[int] = None) -> Sequence[Transaction]:
        try:
            tx_type = TransactionType(tx_type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {tx_type!r}")
        return self._transactions.list_by_type(tx_type, limit=self._limit(limit))

    def by_date_range(self, start: date | datetime, end: date | datetime) -> Sequence[Transaction]:
        # Whole days are inclusive: 2026-01-01..2026-01-31 covers all of the 31st.
        start_dt = start if isinstance(start, datetime) else start_of_day(start)
        end_dt = end if isinstance(end, datetime) else end_of_day(end)
        if end_dt < start_dt:
            raise ValidationError("End date must be on or after start date")
        return self._transactions.list_by_date_range(start_dt, end_dt)

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> Sequence[Transaction]:
        return self._transactions.list_recent(self._limit(limit) or DEFAULT_RECENT_LIMIT)
