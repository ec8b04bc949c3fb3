from __future__ import annotations

import logging
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Hashable, Optional, Sequence, TypeVar

from ..common.cache import TTLCache
from ..common.datetime_utils import end_of_day, start_of_day
from ..common.retry import with_retry
from ..common.validators import require_non_empty
from ..core.constants import (
    DEFAULT_ADCOIN_TO_RM_RATE,
    DEFAULT_FEED_LIMIT,
    DEFAULT_POOL_LIMIT,
    DEFAULT_RANKING_LIMIT,
    DEFAULT_READ_RETRIES,
    DEFAULT_READ_RETRY_DELAY_SECONDS,
    MAX_PAGE_LIMIT,
)
from ..core.enums import ParticipantKind, TransactionType
from ..core.exceptions import NotFoundError, ValidationError
from ..participants.model import ParticipantRef, StaffUser, Student
from ..participants.repository import ParticipantRepository
from ..transactions.repository import TransactionRepository
from .calculator.base import LevelCalculator
from .calculator.step_calculator import StepLevelCalculator
from .model import (
    CENTS,
    BranchPool,
    FeedEntry,
    FeedParty,
    LedgerStats,
    ParticipantSummary,
    Progress,
    RankingRow,
)

T = TypeVar("T")

log = logging.getLogger("adcoin_ledger.views")


class LedgerViewService:
    """Read-only aggregates over students and the transaction log.

    Nothing here is a source of truth: every result is recomputed from the
    repositories (optionally served from a short-lived cache) and transient
    storage failures are retried a few times before surfacing.
    """

    def __init__(
        self,
        participants: ParticipantRepository,
        transactions: TransactionRepository,
        *,
        calculator: Optional[LevelCalculator] = None,
        adcoin_to_rm_rate: Decimal = Decimal(DEFAULT_ADCOIN_TO_RM_RATE),
        pool_limit: int = DEFAULT_POOL_LIMIT,
        cache: Optional[TTLCache] = None,
        read_retries: int = DEFAULT_READ_RETRIES,
        retry_delay: float = DEFAULT_READ_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._participants = participants
        self._transactions = transactions
        self._calculator = calculator or StepLevelCalculator()
        self._rate = Decimal(adcoin_to_rm_rate)
        self._pool_limit = int(pool_limit)
        self._cache = cache or TTLCache(0)
        self._read_retries = read_retries
        self._retry_delay = retry_delay
        self._sleep = sleep

    def _read(self, fn: Callable[[], T]) -> T:
        return with_retry(fn, retries=self._read_retries, delay=self._retry_delay, sleep=self._sleep)

    def _cached(self, key: Hashable, fn: Callable[[], T]) -> T:
        def load() -> T:
            log.debug("Recomputing ledger view %s", key)
            return self._read(fn)

        return self._cache.get_or_compute(key, load)

    @staticmethod
    def _limit(limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        if int(limit) <= 0:
            raise ValidationError("Limit must be greater than 0")
        return min(int(limit), MAX_PAGE_LIMIT)

    # -------- ranking / pools / progress --------
    def ranking(self, *, branch_id: Optional[str] = None, limit: Optional[int] = DEFAULT_RANKING_LIMIT) -> list[RankingRow]:
        limit = self._limit(limit, DEFAULT_RANKING_LIMIT)

        def compute() -> list[RankingRow]:
            students = self._participants.list_active_students(branch_id=branch_id)
            # Stable sort: equal balances keep the repository's creation order.
            ordered = sorted(students, key=lambda s: (-int(s.adcoin_balance), s.created_at or datetime.min))
            return [
                RankingRow(
                    rank=position,
                    student_id=s.student_id,
                    name=s.name,
                    photo=s.photo,
                    branch_id=s.branch_id,
                    balance=int(s.adcoin_balance),
                    level=self._calculator.level(s.adcoin_balance),
                    stars=self._calculator.stars(s.adcoin_balance),
                )
                for position, s in enumerate(ordered[:limit], start=1)
            ]

        return self._cached(("ranking", branch_id, limit), compute)

    def branch_pools(self, *, branch_id: Optional[str] = None) -> list[BranchPool]:
        def compute() -> list[BranchPool]:
            branches = self._participants.list_active_branches(branch_id=branch_id)
            students = self._participants.list_active_students(branch_id=branch_id)

            totals: Dict[str, list[int]] = {b.branch_id: [0, 0] for b in branches}
            for s in students:
                bucket = totals.get(s.branch_id) if s.branch_id else None
                if bucket is None:
                    continue
                bucket[0] += 1
                bucket[1] += int(s.adcoin_balance)

            pools = [
                BranchPool(
                    branch_id=b.branch_id,
                    name=b.name,
                    student_count=totals[b.branch_id][0],
                    total_adcoins=totals[b.branch_id][1],
                    total_rm=(Decimal(totals[b.branch_id][1]) * self._rate).quantize(CENTS),
                )
                for b in branches
            ]
            pools.sort(key=lambda p: (-p.total_adcoins, p.name))
            return pools

        return self._cached(("pools", branch_id), compute)

    def progress(self, *, branch_id: Optional[str] = None) -> Progress:
        def compute() -> Progress:
            total = sum(int(s.adcoin_balance) for s in self._participants.list_active_students(branch_id=branch_id))
            limit = self._pool_limit
            percent = round(total * 100 / limit, 2) if limit > 0 else 0.0
            return Progress(current_total=total, limit=limit, remaining=max(limit - total, 0), percent=percent)

        return self._cached(("progress", branch_id), compute)

    # -------- feed --------
    def transaction_feed(self, *, limit: Optional[int] = DEFAULT_FEED_LIMIT) -> list[FeedEntry]:
        limit = self._limit(limit, DEFAULT_FEED_LIMIT)

        def compute() -> list[FeedEntry]:
            txs = self._transactions.list_recent(limit)

            student_ids: set[str] = set()
            staff_ids: set[str] = set()
            for tx in txs:
                for ref in (tx.sender, tx.receiver):
                    if ref is None:
                        continue
                    (student_ids if ref.kind == ParticipantKind.STUDENT else staff_ids).add(ref.participant_id)

            students = {s.student_id: s for s in self._participants.get_students_by_ids(student_ids)} if student_ids else {}
            staff = {u.staff_id: u for u in self._participants.get_staff_by_ids(staff_ids)} if staff_ids else {}

            entries = []
            for tx in txs:
                sender = self._party(tx.sender, students, staff)
                receiver = self._party(tx.receiver, students, staff)
                entries.append(
                    FeedEntry(
                        transaction=tx,
                        sender=sender,
                        receiver=receiver,
                        branch_id=self._feed_branch(tx.receiver, students, staff)
                        or self._feed_branch(tx.sender, students, staff),
                    )
                )
            return entries

        return self._cached(("feed", limit), compute)

    def _party(
        self,
        ref: Optional[ParticipantRef],
        students: Dict[str, Student],
        staff: Dict[str, StaffUser],
    ) -> Optional[FeedParty]:
        if ref is None:
            return None
        if ref.kind == ParticipantKind.STUDENT:
            s = students.get(ref.participant_id)
            if s:
                return FeedParty(s.student_id, ref.kind.value, s.name, s.photo, self._calculator.level(s.adcoin_balance))
        else:
            u = staff.get(ref.participant_id)
            if u:
                return FeedParty(u.staff_id, ref.kind.value, u.name, u.photo, 1)
        return FeedParty(ref.participant_id, ref.kind.value, "Unknown", None, 1)

    @staticmethod
    def _feed_branch(
        ref: Optional[ParticipantRef],
        students: Dict[str, Student],
        staff: Dict[str, StaffUser],
    ) -> Optional[str]:
        if ref is None:
            return None
        record = students.get(ref.participant_id) if ref.kind == ParticipantKind.STUDENT else staff.get(ref.participant_id)
        return record.branch_id if record else None

    # -------- per-student / period aggregates --------
    def student_summary(self, student_id: str) -> ParticipantSummary:
        student_id = require_non_empty(student_id, "Student id")

        def compute() -> ParticipantSummary:
            student = self._participants.get_student(student_id)
            if not student:
                raise NotFoundError(f"Student not found: {student_id}")
            txs = self._transactions.list_for_participant(student_id)

            earned = spent = transferred_out = 0
            for tx in txs:
                incoming = tx.receiver is not None and tx.receiver.participant_id == student_id
                outgoing = tx.sender is not None and tx.sender.participant_id == student_id
                if tx.type in (TransactionType.EARNED, TransactionType.REFUNDED):
                    earned += tx.amount
                elif tx.type == TransactionType.SPENT:
                    spent += tx.amount
                elif tx.type == TransactionType.TRANSFERRED:
                    if incoming:
                        earned += tx.amount
                    if outgoing:
                        transferred_out += tx.amount
                elif tx.type == TransactionType.ADJUSTED:
                    if incoming:
                        earned += tx.amount
                    elif outgoing:
                        spent += tx.amount

            return ParticipantSummary(
                student_id=student.student_id,
                name=student.name,
                balance=int(student.adcoin_balance),
                level=self._calculator.level(student.adcoin_balance),
                total_earned=earned,
                total_spent=spent,
                total_transferred_out=transferred_out,
                transaction_count=len(txs),
            )

        return self._read(compute)

    def stats(self, start: date | datetime, end: date | datetime) -> LedgerStats:
        start_dt = start if isinstance(start, datetime) else start_of_day(start)
        end_dt = end if isinstance(end, datetime) else end_of_day(end)
        if end_dt < start_dt:
            raise ValidationError("End date must be on or after start date")

        def compute() -> LedgerStats:
            txs: Sequence = self._transactions.list_by_date_range(start_dt, end_dt)
            by_type: Dict[TransactionType, int] = {}
            for tx in txs:
                by_type[tx.type] = by_type.get(tx.type, 0) + tx.amount
            return LedgerStats(
                start=start_dt,
                end=end_dt,
                total_earned=by_type.get(TransactionType.EARNED, 0) + by_type.get(TransactionType.REFUNDED, 0),
                total_spent=by_type.get(TransactionType.SPENT, 0),
                total_transferred=by_type.get(TransactionType.TRANSFERRED, 0),
                transaction_count=len(txs),
            )

        return self._read(compute)

