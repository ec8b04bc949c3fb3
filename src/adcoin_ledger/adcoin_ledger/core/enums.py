from __future__ import annotations

from enum import Enum

from .exceptions import ValidationError


class Role(str, Enum):
    """Staff roles allowed to operate the dashboard."""

    ADMIN = "admin"
    STAFF = "staff"


class ParticipantKind(str, Enum):
    """Which lookup table a participant id belongs to."""

    STUDENT = "student"
    STAFF = "staff"

    @classmethod
    def parse(cls, value: "ParticipantKind | str") -> "ParticipantKind":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        # "user" is what the dashboard historically sends for staff accounts.
        if raw == "user":
            return cls.STAFF
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError(f"Unknown participant type: {value!r}")


class TransactionType(str, Enum):
    """Adcoin transaction types stored in the ledger."""

    EARNED = "earned"
    SPENT = "spent"
    TRANSFERRED = "transferred"
    ADJUSTED = "adjusted"
    REFUNDED = "refunded"
