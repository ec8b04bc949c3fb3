from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple, Type, Union

from ..common.datetime_utils import isoformat
from ..core.enums import TransactionType
from ..core.exceptions import ValidationError
from ..participants.model import ParticipantRef


@dataclass(frozen=True)
class SystemToParticipant:
    """Value created by the system and credited to ``receiver``."""

    receiver: ParticipantRef

    @property
    def sender(self) -> None:
        return None


@dataclass(frozen=True)
class ParticipantToSystem:
    """Value debited from ``sender`` and handed back to the system/shop."""

    sender: ParticipantRef

    @property
    def receiver(self) -> None:
        return None


@dataclass(frozen=True)
class ParticipantToParticipant:
    sender: ParticipantRef
    receiver: ParticipantRef


TransactionDirection = Union[SystemToParticipant, ParticipantToSystem, ParticipantToParticipant]


ALLOWED_DIRECTIONS: Dict[TransactionType, Tuple[Type, ...]] = {
    TransactionType.EARNED: (SystemToParticipant,),
    TransactionType.SPENT: (ParticipantToSystem,),
    TransactionType.TRANSFERRED: (ParticipantToParticipant,),
    TransactionType.ADJUSTED: (SystemToParticipant, ParticipantToSystem),
    TransactionType.REFUNDED: (SystemToParticipant,),
}


def direction_from_refs(sender: Optional[ParticipantRef], receiver: Optional[ParticipantRef]) -> TransactionDirection:
    """Rebuild the direction from the nullable sender/receiver storage columns."""
    if sender and receiver:
        return ParticipantToParticipant(sender=sender, receiver=receiver)
    if receiver:
        return SystemToParticipant(receiver=receiver)
    if sender:
        return ParticipantToSystem(sender=sender)
    raise ValidationError("A transaction needs a sender, a receiver, or both")


@dataclass(frozen=True)
class Transaction:
    """Domain entity: one immutable ledger record.

    ``amount`` is always a positive magnitude; which way value moved is
    carried by ``direction`` together with ``type``.
    """

    transaction_id: str
    type: TransactionType
    direction: TransactionDirection
    amount: int
    created_at: datetime
    description: Optional[str] = None
    verified_by: Optional[str] = None
    related_transaction_id: Optional[str] = None
    idempotency_key: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise ValidationError("Transaction amount must be a positive whole number")
        allowed = ALLOWED_DIRECTIONS[self.type]
        if not isinstance(self.direction, allowed):
            raise ValidationError(f"{type(self.direction).__name__} is not valid for {self.type.value} transactions")

    @property
    def sender(self) -> Optional[ParticipantRef]:
        return self.direction.sender

    @property
    def receiver(self) -> Optional[ParticipantRef]:
        return self.direction.receiver

    def involves(self, participant_id: str) -> bool:
        return any(ref is not None and ref.participant_id == participant_id for ref in (self.sender, self.receiver))

    def to_dict(self) -> dict:
        sender, receiver = self.sender, self.receiver
        return {
            "id": self.transaction_id,
            "type": self.type.value,
            "sender_id": sender.participant_id if sender else None,
            "sender_kind": sender.kind.value if sender else None,
            "receiver_id": receiver.participant_id if receiver else None,
            "receiver_kind": receiver.kind.value if receiver else None,
            "amount": self.amount,
            "description": self.description,
            "verified_by": self.verified_by,
            "related_transaction_id": self.related_transaction_id,
            "idempotency_key": self.idempotency_key,
            "created_at": isoformat(self.created_at),
        }
