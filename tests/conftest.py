from __future__ import annotations

import itertools
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

import pytest
from werkzeug.security import generate_password_hash

from src.adcoin_ledger.adcoin_ledger.core.enums import Role, TransactionType
from src.adcoin_ledger.adcoin_ledger.core.exceptions import StorageError
from src.adcoin_ledger.adcoin_ledger.ledger.engine import TransactionEngine
from src.adcoin_ledger.adcoin_ledger.participants.model import Branch, Participant, StaffUser, Student
from src.adcoin_ledger.adcoin_ledger.transactions.model import Transaction


class InMemorySession:
    """Buffers writes; the owning ledger applies them only on a clean exit."""

    def __init__(self, ledger: "InMemoryLedger"):
        self._ledger = ledger
        self._balances: dict[str, int] = {}
        self._inserted: list[Transaction] = []

    def get_student(self, student_id: str) -> Optional[Student]:
        self._ledger.lookups.append(("student", student_id))
        student = self._ledger.students.get(student_id)
        if student and student_id in self._balances:
            student = replace(student, adcoin_balance=self._balances[student_id])
        hook, self._ledger.after_student_read = self._ledger.after_student_read, None
        if hook:
            hook(student_id)
        return student

    def get_staff(self, staff_id: str) -> Optional[StaffUser]:
        self._ledger.lookups.append(("staff", staff_id))
        return self._ledger.staff.get(staff_id)

    def _all(self) -> list[Transaction]:
        return self._ledger.transactions + self._inserted

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._all() if t.transaction_id == transaction_id), None)

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Transaction]:
        return next((t for t in self._all() if t.idempotency_key == idempotency_key), None)

    def find_refund_of(self, transaction_id: str) -> Optional[Transaction]:
        return next(
            (
                t
                for t in self._all()
                if t.type == TransactionType.REFUNDED and t.related_transaction_id == transaction_id
            ),
            None,
        )

    def write_balance(self, participant: Participant, new_balance: int) -> None:
        if not participant.tracks_balance:
            return
        if self._ledger.fail_on_balance_write:
            raise StorageError("simulated balance write failure")
        if new_balance < 0:
            raise StorageError("negative balance")
        pid = participant.participant_id
        current = self._balances.get(pid, self._ledger.students[pid].adcoin_balance)
        if current != participant.balance:
            raise StorageError(f"Balance of {pid} changed concurrently")
        self._balances[pid] = new_balance

    def insert_transaction(self, transaction: Transaction) -> None:
        if self._ledger.fail_on_insert:
            raise StorageError("simulated insert failure")
        if transaction.idempotency_key and self.find_by_idempotency_key(transaction.idempotency_key):
            raise StorageError("duplicate idempotency key")
        self._inserted.append(transaction)

    def commit(self) -> None:
        for pid, balance in self._balances.items():
            self._ledger.students[pid] = replace(self._ledger.students[pid], adcoin_balance=balance)
        self._ledger.transactions.extend(self._inserted)


class InMemoryLedger:
    """Participant repository, transaction repository and ledger store in one."""

    def __init__(self):
        self.students: dict[str, Student] = {}
        self.staff: dict[str, StaffUser] = {}
        self.branches: dict[str, Branch] = {}
        self.transactions: list[Transaction] = []

        self.fail_on_insert = False
        self.fail_on_balance_write = False
        self.fail_reads = 0
        # Runs once, right after the next locked student read.
        self.after_student_read: Optional[Callable[[str], None]] = None
        self.units_of_work = 0
        self.lookups: list[tuple[str, str]] = []
        self._created = itertools.count(1)

    # -------- seeding --------
    def add_branch(self, branch_id: str, name: Optional[str] = None, *, is_active: bool = True) -> Branch:
        branch = Branch(branch_id=branch_id, name=name or branch_id, is_active=is_active)
        self.branches[branch_id] = branch
        return branch

    def add_student(
        self,
        student_id: str,
        balance: int = 0,
        *,
        name: Optional[str] = None,
        branch_id: Optional[str] = "br-1",
        is_active: bool = True,
        photo: Optional[str] = None,
    ) -> Student:
        student = Student(
            student_id=student_id,
            name=name or student_id.upper(),
            branch_id=branch_id,
            adcoin_balance=balance,
            photo=photo,
            is_active=is_active,
            created_at=datetime(2026, 1, 1) + timedelta(minutes=next(self._created)),
        )
        self.students[student_id] = student
        return student

    def add_staff(
        self,
        staff_id: str,
        *,
        username: Optional[str] = None,
        password: str = "secret",
        name: Optional[str] = None,
        role: Role = Role.STAFF,
        branch_id: Optional[str] = None,
        is_active: bool = True,
    ) -> StaffUser:
        staff = StaffUser(
            staff_id=staff_id,
            name=name or staff_id.upper(),
            username=username or staff_id,
            password_hash=generate_password_hash(password),
            role=role,
            branch_id=branch_id,
            is_active=is_active,
        )
        self.staff[staff_id] = staff
        return staff

    def balance(self, student_id: str) -> int:
        return self.students[student_id].adcoin_balance

    def _maybe_fail_read(self) -> None:
        if self.fail_reads > 0:
            self.fail_reads -= 1
            raise StorageError("simulated read failure")

    # -------- ParticipantRepository --------
    def get_student(self, student_id: str) -> Optional[Student]:
        self._maybe_fail_read()
        return self.students.get(student_id)

    def get_staff(self, staff_id: str) -> Optional[StaffUser]:
        return self.staff.get(staff_id)

    def get_staff_by_username(self, username: str) -> Optional[StaffUser]:
        return next((s for s in self.staff.values() if s.username == username), None)

    def get_students_by_ids(self, student_ids: Iterable[str]) -> list[Student]:
        return [self.students[i] for i in student_ids if i in self.students]

    def get_staff_by_ids(self, staff_ids: Iterable[str]) -> list[StaffUser]:
        return [self.staff[i] for i in staff_ids if i in self.staff]

    def list_active_students(self, *, branch_id: Optional[str] = None) -> list[Student]:
        self._maybe_fail_read()
        rows = [
            s
            for s in self.students.values()
            if s.is_active and (branch_id is None or s.branch_id == branch_id)
        ]
        return sorted(rows, key=lambda s: (-s.adcoin_balance, s.created_at))

    def list_active_branches(self, *, branch_id: Optional[str] = None) -> list[Branch]:
        rows = [
            b
            for b in self.branches.values()
            if b.is_active and (branch_id is None or b.branch_id == branch_id)
        ]
        return sorted(rows, key=lambda b: b.name)

    # -------- TransactionRepository --------
    def _newest_first(self, txs: Iterable[tuple[int, Transaction]], limit: Optional[int] = None) -> list[Transaction]:
        ordered = [t for _, t in sorted(txs, key=lambda p: (p[1].created_at, p[0]), reverse=True)]
        return ordered[:limit] if limit else ordered

    def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.transaction_id == transaction_id), None)

    def list_for_participant(self, participant_id: str, *, limit: Optional[int] = None) -> list[Transaction]:
        self._maybe_fail_read()
        return self._newest_first(
            ((i, t) for i, t in enumerate(self.transactions) if t.involves(participant_id)), limit
        )

    def list_by_type(self, tx_type: TransactionType, *, limit: Optional[int] = None) -> list[Transaction]:
        return self._newest_first(((i, t) for i, t in enumerate(self.transactions) if t.type == tx_type), limit)

    def list_by_date_range(self, start: datetime, end: datetime) -> list[Transaction]:
        return self._newest_first(
            (i, t) for i, t in enumerate(self.transactions) if start <= t.created_at <= end
        )

    def list_recent(self, limit: int) -> list[Transaction]:
        self._maybe_fail_read()
        return self._newest_first(enumerate(self.transactions), limit)

    # -------- LedgerStore --------
    @contextmanager
    def unit_of_work(self):
        self.units_of_work += 1
        session = InMemorySession(self)
        yield session
        session.commit()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def ticking_clock(fixed_now):
    """Each call is one second later than the previous one."""
    ticks = itertools.count()
    return lambda: fixed_now + timedelta(seconds=next(ticks))


@pytest.fixture
def ledger() -> InMemoryLedger:
    ledger = InMemoryLedger()
    ledger.add_branch("br-1", "Central")
    ledger.add_branch("br-2", "North")
    ledger.add_staff("op-1", username="admin", password="admin123", name="Admin", role=Role.ADMIN)
    return ledger


@pytest.fixture
def engine(ledger, ticking_clock) -> TransactionEngine:
    ids = itertools.count(1)
    return TransactionEngine(ledger, clock=ticking_clock, id_factory=lambda: f"tx-{next(ids)}")
