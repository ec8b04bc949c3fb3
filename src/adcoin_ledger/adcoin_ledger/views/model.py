from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..common.datetime_utils import isoformat
from ..transactions.model import Transaction

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class RankingRow:
    rank: int
    student_id: str
    name: str
    photo: Optional[str]
    branch_id: Optional[str]
    balance: int
    level: int
    stars: int

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "id": self.student_id,
            "name": self.name,
            "photo": self.photo,
            "branch_id": self.branch_id,
            "balance": self.balance,
            "level": self.level,
            "stars": self.stars,
        }


@dataclass(frozen=True)
class BranchPool:
    branch_id: str
    name: str
    student_count: int
    total_adcoins: int
    total_rm: Decimal

    def to_dict(self) -> dict:
        return {
            "branch_id": self.branch_id,
            "name": self.name,
            "student_count": self.student_count,
            "total_adcoins": self.total_adcoins,
            "total_rm": str(self.total_rm.quantize(CENTS)),
        }


@dataclass(frozen=True)
class Progress:
    """Display-only comparison of the circulating total against a ceiling."""

    current_total: int
    limit: int
    remaining: int
    percent: float

    def to_dict(self) -> dict:
        return {
            "current_total": self.current_total,
            "limit": self.limit,
            "remaining": self.remaining,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class FeedParty:
    participant_id: str
    kind: str
    name: str
    photo: Optional[str]
    level: int

    def to_dict(self) -> dict:
        return {
            "id": self.participant_id,
            "kind": self.kind,
            "name": self.name,
            "photo": self.photo,
            "level": self.level,
        }


@dataclass(frozen=True)
class FeedEntry:
    transaction: Transaction
    sender: Optional[FeedParty]
    receiver: Optional[FeedParty]
    branch_id: Optional[str]

    def to_dict(self) -> dict:
        data = self.transaction.to_dict()
        data["sender"] = self.sender.to_dict() if self.sender else None
        data["receiver"] = self.receiver.to_dict() if self.receiver else None
        data["branch_id"] = self.branch_id
        return data


@dataclass(frozen=True)
class ParticipantSummary:
    student_id: str
    name: str
    balance: int
    level: int
    total_earned: int
    total_spent: int
    total_transferred_out: int
    transaction_count: int

    def to_dict(self) -> dict:
        return {
            "id": self.student_id,
            "name": self.name,
            "balance": self.balance,
            "level": self.level,
            "total_earned": self.total_earned,
            "total_spent": self.total_spent,
            "total_transferred_out": self.total_transferred_out,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class LedgerStats:
    start: datetime
    end: datetime
    total_earned: int
    total_spent: int
    total_transferred: int
    transaction_count: int

    def to_dict(self) -> dict:
        return {
            "start": isoformat(self.start),
            "end": isoformat(self.end),
            "total_earned": self.total_earned,
            "total_spent": self.total_spent,
            "total_transferred": self.total_transferred,
            "transaction_count": self.transaction_count,
        }
