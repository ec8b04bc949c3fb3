from __future__ import annotations

import pytest

from src.adcoin_ledger.adcoin_ledger.core.constants import MAX_AMOUNT
from src.adcoin_ledger.adcoin_ledger.core.enums import ParticipantKind, TransactionType
from src.adcoin_ledger.adcoin_ledger.core.exceptions import (
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.adcoin_ledger.adcoin_ledger.transactions.model import (
    ParticipantToParticipant,
    ParticipantToSystem,
    SystemToParticipant,
)


def test_transfer_moves_balance_between_students(ledger, engine):
    ledger.add_student("a", 100)
    ledger.add_student("b", 7)

    tx = engine.transfer(
        sender_id="a", sender_kind="student", receiver_id="b", receiver_kind="student", amount=30, verified_by="op-1"
    )

    assert ledger.balance("a") == 70
    assert ledger.balance("b") == 37
    assert ledger.transactions == [tx]
    assert tx.type == TransactionType.TRANSFERRED
    assert tx.amount == 30
    assert isinstance(tx.direction, ParticipantToParticipant)
    assert tx.verified_by == "op-1"
    assert tx.description == "Transfer from A to B"


def test_award_credits_from_the_system(ledger, engine):
    ledger.add_student("c", 0)

    tx = engine.award(receiver_id="c", receiver_kind="student", amount=50, verified_by="op-1", description="quiz bonus")

    assert ledger.balance("c") == 50
    assert tx.type == TransactionType.EARNED
    assert tx.sender is None
    assert tx.receiver.participant_id == "c"
    assert tx.description == "quiz bonus"
    assert len(ledger.transactions) == 1


def test_transfer_with_insufficient_balance_changes_nothing(ledger, engine):
    ledger.add_student("d", 5)
    ledger.add_student("e", 0)

    with pytest.raises(InsufficientBalanceError) as exc:
        engine.transfer(
            sender_id="d", sender_kind="student", receiver_id="e", receiver_kind="student", amount=10, verified_by="op-1"
        )

    assert exc.value.balance == 5
    assert exc.value.amount == 10
    assert ledger.balance("d") == 5
    assert ledger.balance("e") == 0
    assert ledger.transactions == []


def test_negative_adjust_floors_balance_at_zero(ledger, engine):
    ledger.add_student("f", 20)

    tx = engine.adjust(participant_id="f", participant_kind="student", amount=-100, verified_by="op-1")

    assert ledger.balance("f") == 0
    assert tx.type == TransactionType.ADJUSTED
    assert tx.amount == 100
    assert isinstance(tx.direction, ParticipantToSystem)
    assert tx.description == "Manual adjustment: -100"


def test_positive_adjust_is_a_credit(ledger, engine):
    ledger.add_student("f", 20)

    tx = engine.adjust(participant_id="f", participant_kind="student", amount=15, verified_by="op-1")

    assert ledger.balance("f") == 35
    assert isinstance(tx.direction, SystemToParticipant)
    assert tx.description == "Manual adjustment: +15"


def test_adjust_by_zero_is_rejected(ledger, engine):
    ledger.add_student("f", 20)

    with pytest.raises(ValidationError):
        engine.adjust(participant_id="f", participant_kind="student", amount=0, verified_by="op-1")
    assert ledger.transactions == []


def test_refund_restores_a_spent_amount(ledger, engine):
    ledger.add_student("g", 30)
    spent = engine.spend(student_id="g", amount=15, verified_by="op-1", description="pencil case")
    assert ledger.balance("g") == 15

    refund = engine.refund(original_transaction_id=spent.transaction_id, verified_by="op-1")

    assert ledger.balance("g") == 30
    assert refund.type == TransactionType.REFUNDED
    assert refund.amount == 15
    assert refund.receiver.participant_id == "g"
    assert refund.related_transaction_id == spent.transaction_id
    assert refund.description == f"Refund for transaction {spent.transaction_id}"


def test_transfer_to_self_is_rejected_before_any_lookup(ledger, engine):
    ledger.add_student("a", 100)

    with pytest.raises(ValidationError):
        engine.transfer(
            sender_id="a", sender_kind="student", receiver_id="a", receiver_kind="student", amount=10, verified_by="op-1"
        )

    assert ledger.lookups == []
    assert ledger.units_of_work == 0
    assert ledger.balance("a") == 100


@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, 2.5])
def test_transfer_rejects_non_positive_or_non_integer_amounts(ledger, engine, amount):
    ledger.add_student("a", 100)
    ledger.add_student("b", 0)

    with pytest.raises(ValidationError):
        engine.transfer(
            sender_id="a", sender_kind="student", receiver_id="b", receiver_kind="student", amount=amount, verified_by="op-1"
        )
    assert ledger.transactions == []


@pytest.mark.parametrize("verified_by", [None, "", "   "])
def test_engine_refuses_to_run_without_an_operator(ledger, engine, verified_by):
    ledger.add_student("c", 0)

    with pytest.raises(ValidationError):
        engine.award(receiver_id="c", receiver_kind="student", amount=5, verified_by=verified_by)
    assert ledger.balance("c") == 0
    assert ledger.units_of_work == 0


def test_unknown_participant_is_not_found(ledger, engine):
    ledger.add_student("a", 100)

    with pytest.raises(NotFoundError):
        engine.transfer(
            sender_id="a", sender_kind="student", receiver_id="ghost", receiver_kind="student", amount=10, verified_by="op-1"
        )
    assert ledger.balance("a") == 100
    assert ledger.transactions == []


def test_resolution_is_scoped_to_the_given_kind(ledger, engine):
    ledger.add_student("s1", 10)

    with pytest.raises(NotFoundError):
        engine.award(receiver_id="s1", receiver_kind="staff", amount=5, verified_by="op-1")


def test_transfer_locks_participants_in_a_fixed_order(ledger, engine):
    ledger.add_student("zed", 50)
    ledger.add_student("amy", 50)

    engine.transfer(
        sender_id="zed", sender_kind="student", receiver_id="amy", receiver_kind="student", amount=5, verified_by="op-1"
    )
    engine.transfer(
        sender_id="amy", sender_kind="student", receiver_id="zed", receiver_kind="student", amount=5, verified_by="op-1"
    )

    assert ledger.lookups == [("student", "amy"), ("student", "zed")] * 2


class TestStaffParticipants:
    def test_staff_sender_is_never_debited(self, ledger, engine):
        ledger.add_staff("t1")
        ledger.add_student("s1", 0)

        tx = engine.transfer(
            sender_id="t1", sender_kind="staff", receiver_id="s1", receiver_kind="student", amount=40, verified_by="op-1"
        )

        assert ledger.balance("s1") == 40
        assert tx.sender.kind == ParticipantKind.STAFF

    def test_staff_receiver_balance_is_not_tracked(self, ledger, engine):
        ledger.add_staff("t1")
        ledger.add_student("s1", 25)

        engine.transfer(
            sender_id="s1", sender_kind="student", receiver_id="t1", receiver_kind="user", amount=25, verified_by="op-1"
        )

        assert ledger.balance("s1") == 0
        assert len(ledger.transactions) == 1

    def test_staff_award_records_a_transaction_only(self, ledger, engine):
        ledger.add_staff("t1")

        tx = engine.award(receiver_id="t1", receiver_kind="staff", amount=10, verified_by="op-1")

        assert tx.receiver.kind == ParticipantKind.STAFF
        assert ledger.transactions == [tx]

    def test_staff_to_staff_transfer_is_logged_without_balance_changes(self, ledger, engine):
        ledger.add_staff("t1")
        ledger.add_staff("t2")
        ledger.add_student("s1", 12)

        tx = engine.transfer(
            sender_id="t1", sender_kind="staff", receiver_id="t2", receiver_kind="staff", amount=30, verified_by="op-1"
        )

        assert ledger.transactions == [tx]
        assert tx.type == TransactionType.TRANSFERRED
        assert tx.sender.kind == ParticipantKind.STAFF
        assert tx.receiver.kind == ParticipantKind.STAFF
        assert {sid: s.adcoin_balance for sid, s in ledger.students.items()} == {"s1": 12}

    def test_staff_cannot_spend(self, ledger, engine):
        ledger.add_staff("t1")

        with pytest.raises(NotFoundError):
            engine.spend(student_id="t1", amount=10, verified_by="op-1")


class TestInactiveParticipants:
    def test_inactive_student_cannot_receive(self, ledger, engine):
        ledger.add_student("a", 100)
        ledger.add_student("gone", 0, is_active=False)

        with pytest.raises(InvalidStateError):
            engine.transfer(
                sender_id="a", sender_kind="student", receiver_id="gone", receiver_kind="student", amount=10, verified_by="op-1"
            )
        assert ledger.balance("a") == 100
        assert ledger.transactions == []

    def test_inactive_staff_cannot_send(self, ledger, engine):
        ledger.add_staff("t1", is_active=False)
        ledger.add_student("s1", 0)

        with pytest.raises(InvalidStateError):
            engine.transfer(
                sender_id="t1", sender_kind="staff", receiver_id="s1", receiver_kind="student", amount=10, verified_by="op-1"
            )


class TestSpend:
    def test_spend_debits_to_the_system(self, ledger, engine):
        ledger.add_student("g", 30)

        tx = engine.spend(student_id="g", amount=12, verified_by="op-1")

        assert ledger.balance("g") == 18
        assert tx.type == TransactionType.SPENT
        assert tx.receiver is None

    def test_spend_requires_funds(self, ledger, engine):
        ledger.add_student("g", 3)

        with pytest.raises(InsufficientBalanceError):
            engine.spend(student_id="g", amount=4, verified_by="op-1")
        assert ledger.balance("g") == 3
        assert ledger.transactions == []


class TestAmountCeiling:
    def test_amount_above_the_column_range_is_a_validation_error(self, ledger, engine):
        ledger.add_student("a", 0)

        with pytest.raises(ValidationError):
            engine.award(receiver_id="a", receiver_kind="student", amount=MAX_AMOUNT + 1, verified_by="op-1")
        assert ledger.units_of_work == 0

    def test_negative_adjustment_beyond_the_range_is_rejected(self, ledger, engine):
        ledger.add_student("a", 10)

        with pytest.raises(ValidationError):
            engine.adjust(participant_id="a", participant_kind="student", amount=-(MAX_AMOUNT + 1), verified_by="op-1")
        assert ledger.balance("a") == 10

    def test_credit_that_would_overflow_the_balance_changes_nothing(self, ledger, engine):
        ledger.add_student("a", MAX_AMOUNT - 5)
        ledger.add_student("b", 10)

        with pytest.raises(ValidationError):
            engine.transfer(
                sender_id="b", sender_kind="student", receiver_id="a", receiver_kind="student", amount=10, verified_by="op-1"
            )

        assert ledger.balance("a") == MAX_AMOUNT - 5
        assert ledger.balance("b") == 10
        assert ledger.transactions == []

    def test_balance_may_reach_the_ceiling_exactly(self, ledger, engine):
        ledger.add_student("a", MAX_AMOUNT - 5)

        engine.award(receiver_id="a", receiver_kind="student", amount=5, verified_by="op-1")

        assert ledger.balance("a") == MAX_AMOUNT
