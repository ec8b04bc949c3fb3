from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_utc
from ..common.validators import (
    clean_optional_text,
    require_non_empty,
    require_non_zero_int,
    require_positive_int,
)
from ..core.enums import ParticipantKind, TransactionType
from ..core.exceptions import DomainError, InvalidStateError, NotFoundError, StorageError, ValidationError
from ..participants.model import Participant
from ..participants.resolver import ParticipantResolver
from ..transactions.model import (
    ParticipantToParticipant,
    ParticipantToSystem,
    SystemToParticipant,
    Transaction,
    TransactionDirection,
)
from ..transactions.repository import LedgerSession, LedgerStore

log = logging.getLogger("adcoin_ledger.engine")


def _new_transaction_id() -> str:
    return str(uuid.uuid4())


class TransactionEngine:
    """The only writer of adcoin balances.

    Each operation runs as one unit of work: the transaction record and every
    balance it touches are committed together or not at all. Operator
    credentials are checked upstream (AuthorizationGate); the engine only
    insists that the verifying operator id is present.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        clock: Callable[[], datetime] = now_utc,
        id_factory: Callable[[], str] = _new_transaction_id,
    ):
        self._store = store
        self._clock = clock
        self._id_factory = id_factory

    # -------- shared helpers --------
    @staticmethod
    def _require_operator(verified_by: Optional[str]) -> str:
        if verified_by is None or not str(verified_by).strip():
            raise ValidationError("A verifying operator is required")
        return str(verified_by).strip()

    @staticmethod
    def _require_active(participant: Participant) -> None:
        if not participant.is_active:
            raise InvalidStateError(f"{participant.display_name} is inactive")

    def _record(
        self,
        session: LedgerSession,
        *,
        tx_type: TransactionType,
        direction: TransactionDirection,
        amount: int,
        description: Optional[str],
        verified_by: str,
        idempotency_key: Optional[str],
        related_transaction_id: Optional[str] = None,
    ) -> Transaction:
        tx = Transaction(
            transaction_id=self._id_factory(),
            type=tx_type,
            direction=direction,
            amount=amount,
            created_at=self._clock(),
            description=description,
            verified_by=verified_by,
            related_transaction_id=related_transaction_id,
            idempotency_key=idempotency_key,
        )
        session.insert_transaction(tx)
        return tx

    def _execute(
        self,
        operation: str,
        tx_type: TransactionType,
        idempotency_key: Optional[str],
        work: Callable[[LedgerSession], Transaction],
    ) -> Transaction:
        replayed = False
        try:
            with self._store.unit_of_work() as session:
                tx = None
                if idempotency_key:
                    tx = session.find_by_idempotency_key(idempotency_key)
                    if tx and tx.type != tx_type:
                        raise InvalidStateError("Idempotency key was already used for a different operation")
                    replayed = tx is not None
                if tx is None:
                    tx = work(session)
        except StorageError:
            log.error("adcoin %s failed in storage; nothing was written", operation, exc_info=True)
            raise
        except DomainError as exc:
            log.warning("adcoin %s rejected: %s", operation, exc)
            raise

        if replayed:
            log.info("adcoin %s replayed for idempotency key %s -> %s", operation, idempotency_key, tx.transaction_id)
        else:
            log.info(
                "adcoin %s committed id=%s amount=%d sender=%s receiver=%s verified_by=%s",
                operation,
                tx.transaction_id,
                tx.amount,
                tx.sender.participant_id if tx.sender else "-",
                tx.receiver.participant_id if tx.receiver else "-",
                tx.verified_by,
            )
        return tx

    # -------- operations --------
    def transfer(
        self,
        *,
        sender_id: str,
        sender_kind: ParticipantKind | str,
        receiver_id: str,
        receiver_kind: ParticipantKind | str,
        amount: int,
        verified_by: Optional[str],
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        sender_id = require_non_empty(sender_id, "Sender")
        receiver_id = require_non_empty(receiver_id, "Receiver")
        if sender_id == receiver_id:
            raise ValidationError("Sender and receiver cannot be the same person")
        sender_kind = ParticipantKind.parse(sender_kind)
        receiver_kind = ParticipantKind.parse(receiver_kind)
        amount = require_positive_int(amount, "Amount")
        verified_by = self._require_operator(verified_by)
        description = clean_optional_text(description)
        idempotency_key = clean_optional_text(idempotency_key)

        def work(session: LedgerSession) -> Transaction:
            resolver = ParticipantResolver(session)
            # Resolve (and so lock) in a fixed order so that A->B and B->A
            # running together cannot deadlock.
            wanted = {"sender": (sender_kind, sender_id), "receiver": (receiver_kind, receiver_id)}
            resolved: dict[str, Participant] = {}
            for role, (kind, pid) in sorted(wanted.items(), key=lambda item: (item[1][0].value, item[1][1])):
                resolved[role] = resolver.resolve(pid, kind)
            sender, receiver = resolved["sender"], resolved["receiver"]
            self._require_active(sender)
            self._require_active(receiver)

            sender_after = sender.try_debit(amount)
            receiver_after = receiver.credit(amount)

            tx = self._record(
                session,
                tx_type=TransactionType.TRANSFERRED,
                direction=ParticipantToParticipant(sender=sender.ref, receiver=receiver.ref),
                amount=amount,
                description=description or f"Transfer from {sender.display_name} to {receiver.display_name}",
                verified_by=verified_by,
                idempotency_key=idempotency_key,
            )
            session.write_balance(sender, sender_after)
            session.write_balance(receiver, receiver_after)
            return tx

        return self._execute("transfer", TransactionType.TRANSFERRED, idempotency_key, work)

    def award(
        self,
        *,
        receiver_id: str,
        receiver_kind: ParticipantKind | str,
        amount: int,
        verified_by: Optional[str],
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        receiver_id = require_non_empty(receiver_id, "Receiver")
        receiver_kind = ParticipantKind.parse(receiver_kind)
        amount = require_positive_int(amount, "Amount")
        verified_by = self._require_operator(verified_by)
        description = clean_optional_text(description)
        idempotency_key = clean_optional_text(idempotency_key)

        def work(session: LedgerSession) -> Transaction:
            receiver = ParticipantResolver(session).resolve(receiver_id, receiver_kind)
            self._require_active(receiver)
            receiver_after = receiver.credit(amount)

            tx = self._record(
                session,
                tx_type=TransactionType.EARNED,
                direction=SystemToParticipant(receiver=receiver.ref),
                amount=amount,
                description=description,
                verified_by=verified_by,
                idempotency_key=idempotency_key,
            )
            session.write_balance(receiver, receiver_after)
            return tx

        return self._execute("award", TransactionType.EARNED, idempotency_key, work)

    def adjust(
        self,
        *,
        participant_id: str,
        participant_kind: ParticipantKind | str,
        amount: int,
        verified_by: Optional[str],
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        """Signed correction. Debits floor the balance at 0 instead of failing."""
        participant_id = require_non_empty(participant_id, "Participant")
        participant_kind = ParticipantKind.parse(participant_kind)
        amount = require_non_zero_int(amount, "Amount")
        verified_by = self._require_operator(verified_by)
        description = clean_optional_text(description)
        idempotency_key = clean_optional_text(idempotency_key)
        magnitude = abs(amount)

        def work(session: LedgerSession) -> Transaction:
            participant = ParticipantResolver(session).resolve(participant_id, participant_kind)
            self._require_active(participant)

            direction: TransactionDirection
            if amount > 0:
                balance_after = participant.credit(magnitude)
                direction = SystemToParticipant(receiver=participant.ref)
            else:
                balance_after = participant.debit_floored(magnitude)
                direction = ParticipantToSystem(sender=participant.ref)

            tx = self._record(
                session,
                tx_type=TransactionType.ADJUSTED,
                direction=direction,
                amount=magnitude,
                description=description or f"Manual adjustment: {'+' if amount > 0 else ''}{amount}",
                verified_by=verified_by,
                idempotency_key=idempotency_key,
            )
            session.write_balance(participant, balance_after)
            return tx

        return self._execute("adjust", TransactionType.ADJUSTED, idempotency_key, work)

    def spend(
        self,
        *,
        student_id: str,
        amount: int,
        verified_by: Optional[str],
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        student_id = require_non_empty(student_id, "Student")
        amount = require_positive_int(amount, "Amount")
        verified_by = self._require_operator(verified_by)
        description = clean_optional_text(description)
        idempotency_key = clean_optional_text(idempotency_key)

        def work(session: LedgerSession) -> Transaction:
            student = ParticipantResolver(session).resolve(student_id, ParticipantKind.STUDENT)
            self._require_active(student)
            balance_after = student.try_debit(amount)

            tx = self._record(
                session,
                tx_type=TransactionType.SPENT,
                direction=ParticipantToSystem(sender=student.ref),
                amount=amount,
                description=description,
                verified_by=verified_by,
                idempotency_key=idempotency_key,
            )
            session.write_balance(student, balance_after)
            return tx

        return self._execute("spend", TransactionType.SPENT, idempotency_key, work)

    def refund(
        self,
        *,
        original_transaction_id: str,
        verified_by: Optional[str],
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        original_transaction_id = require_non_empty(original_transaction_id, "Transaction id")
        verified_by = self._require_operator(verified_by)
        description = clean_optional_text(description)
        idempotency_key = clean_optional_text(idempotency_key)

        def work(session: LedgerSession) -> Transaction:
            original = session.get_transaction(original_transaction_id)
            if not original:
                raise NotFoundError(f"Transaction not found: {original_transaction_id}")
            if (
                original.type != TransactionType.SPENT
                or original.sender is None
                or original.sender.kind != ParticipantKind.STUDENT
            ):
                raise InvalidStateError("Only a student's spent transaction can be refunded")
            if session.find_refund_of(original.transaction_id):
                raise InvalidStateError(f"Transaction {original.transaction_id} was already refunded")

            student = ParticipantResolver(session).resolve(original.sender.participant_id, ParticipantKind.STUDENT)
            self._require_active(student)
            balance_after = student.credit(original.amount)

            tx = self._record(
                session,
                tx_type=TransactionType.REFUNDED,
                direction=SystemToParticipant(receiver=student.ref),
                amount=original.amount,
                description=description or f"Refund for transaction {original.transaction_id}",
                verified_by=verified_by,
                idempotency_key=idempotency_key,
                related_transaction_id=original.transaction_id,
            )
            session.write_balance(student, balance_after)
            return tx

        return self._execute("refund", TransactionType.REFUNDED, idempotency_key, work)
