from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ParticipantKind, Role
from ..core.constants import MAX_AMOUNT
from ..core.exceptions import InsufficientBalanceError, ValidationError


@dataclass(frozen=True)
class Branch:
    branch_id: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class Student:
    """Domain entity: a student record as stored.

    Note: plain data object; ``adcoin_balance`` is only ever changed by the
    transaction engine.
    """

    student_id: str
    name: str
    branch_id: Optional[str]
    adcoin_balance: int
    photo: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class StaffUser:
    """Domain entity: a staff account (dashboard operator)."""

    staff_id: str
    name: str
    username: str
    password_hash: str
    role: Role
    branch_id: Optional[str] = None
    photo: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class ParticipantRef:
    participant_id: str
    kind: ParticipantKind

    def to_dict(self) -> dict:
        return {"id": self.participant_id, "kind": self.kind.value}


class Participant(ABC):
    """Uniform view of anything that can be named on a transaction.

    ``try_debit``/``credit``/``debit_floored`` return the balance the
    participant would have afterwards; they never write anything.
    """

    def __init__(self, *, participant_id: str, display_name: str, is_active: bool):
        self.participant_id = participant_id
        self.display_name = display_name
        self.is_active = is_active

    @property
    @abstractmethod
    def kind(self) -> ParticipantKind:
        raise NotImplementedError

    @property
    @abstractmethod
    def balance(self) -> int:
        raise NotImplementedError

    @property
    @abstractmethod
    def tracks_balance(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def try_debit(self, amount: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def credit(self, amount: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def debit_floored(self, amount: int) -> int:
        raise NotImplementedError

    @property
    def ref(self) -> ParticipantRef:
        return ParticipantRef(self.participant_id, self.kind)

    def to_dict(self) -> dict:
        return {
            "id": self.participant_id,
            "name": self.display_name,
            "kind": self.kind.value,
            "balance": self.balance,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.participant_id!r}, balance={self.balance})"


class StudentParticipant(Participant):
    def __init__(self, student: Student):
        super().__init__(
            participant_id=student.student_id,
            display_name=student.name,
            is_active=student.is_active,
        )
        self.student = student

    @property
    def kind(self) -> ParticipantKind:
        return ParticipantKind.STUDENT

    @property
    def balance(self) -> int:
        return int(self.student.adcoin_balance)

    @property
    def tracks_balance(self) -> bool:
        return True

    def try_debit(self, amount: int) -> int:
        if self.balance < amount:
            raise InsufficientBalanceError(self.balance, amount)
        return self.balance - amount

    def credit(self, amount: int) -> int:
        if self.balance + amount > MAX_AMOUNT:
            raise ValidationError(f"Balance of {self.display_name} cannot exceed {MAX_AMOUNT}")
        return self.balance + amount

    def debit_floored(self, amount: int) -> int:
        return max(0, self.balance - amount)


class StaffParticipant(Participant):
    """Staff carry no balance: every debit and credit succeeds and leaves 0."""

    def __init__(self, staff: StaffUser):
        super().__init__(
            participant_id=staff.staff_id,
            display_name=staff.name,
            is_active=staff.is_active,
        )
        self.staff = staff

    @property
    def kind(self) -> ParticipantKind:
        return ParticipantKind.STAFF

    @property
    def balance(self) -> int:
        return 0

    @property
    def tracks_balance(self) -> bool:
        return False

    def try_debit(self, amount: int) -> int:
        return 0

    def credit(self, amount: int) -> int:
        return 0

    def debit_floored(self, amount: int) -> int:
        return 0
