from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.adcoin_ledger.adcoin_ledger.common.cache import TTLCache
from src.adcoin_ledger.adcoin_ledger.core.exceptions import NotFoundError, StorageError, ValidationError
from src.adcoin_ledger.adcoin_ledger.views.service import LedgerViewService


def _views(ledger, **kwargs) -> LedgerViewService:
    kwargs.setdefault("retry_delay", 0)
    kwargs.setdefault("sleep", lambda _: None)
    return LedgerViewService(ledger, ledger, **kwargs)


class TestRanking:
    def test_sorted_by_balance_with_creation_order_tie_break(self, ledger):
        ledger.add_student("early", 300)
        ledger.add_student("top", 1200)
        ledger.add_student("late", 300)
        ledger.add_student("hidden", 5000, is_active=False)

        rows = _views(ledger).ranking()

        assert [(r.rank, r.student_id) for r in rows] == [(1, "top"), (2, "early"), (3, "late")]
        assert rows[0].level == 3
        assert rows[0].stars == 1

    def test_branch_filter_and_limit(self, ledger):
        ledger.add_student("a", 10, branch_id="br-1")
        ledger.add_student("b", 20, branch_id="br-2")
        ledger.add_student("c", 30, branch_id="br-1")

        rows = _views(ledger).ranking(branch_id="br-1", limit=1)

        assert [r.student_id for r in rows] == ["c"]

    def test_limit_must_be_positive(self, ledger):
        with pytest.raises(ValidationError):
            _views(ledger).ranking(limit=0)


def test_branch_pools_sum_active_balances_and_convert(ledger):
    ledger.add_student("a", 1234, branch_id="br-1")
    ledger.add_student("b", 66, branch_id="br-1")
    ledger.add_student("c", 50, branch_id="br-2")
    ledger.add_student("d", 999, branch_id="br-2", is_active=False)
    ledger.add_student("e", 70, branch_id=None)

    pools = _views(ledger, adcoin_to_rm_rate=Decimal("0.01")).branch_pools()

    assert [(p.branch_id, p.student_count, p.total_adcoins) for p in pools] == [("br-1", 2, 1300), ("br-2", 1, 50)]
    assert pools[0].total_rm == Decimal("13.00")
    assert pools[1].to_dict()["total_rm"] == "0.50"


def test_progress_against_the_configured_limit(ledger):
    ledger.add_student("a", 600)
    ledger.add_student("b", 400)

    progress = _views(ledger, pool_limit=4000).progress()

    assert progress.current_total == 1000
    assert progress.remaining == 3000
    assert progress.percent == 25.0


def test_progress_past_the_limit_is_display_only(ledger):
    ledger.add_student("a", 150)

    progress = _views(ledger, pool_limit=100).progress()

    assert progress.remaining == 0
    assert progress.percent == 150.0


def test_feed_is_enriched_with_names_levels_and_branch(ledger, engine):
    ledger.add_student("a", 600, name="Aisyah", branch_id="br-2", photo="a.png")
    ledger.add_student("b", 0, name="Ben")
    engine.transfer(
        sender_id="a", sender_kind="student", receiver_id="b", receiver_kind="student", amount=100, verified_by="op-1"
    )
    engine.award(receiver_id="op-1", receiver_kind="staff", amount=5, verified_by="op-1")

    feed = _views(ledger).transaction_feed(limit=10)

    staff_award, transfer = feed
    assert staff_award.receiver.name == "Admin"
    assert staff_award.receiver.level == 1
    assert staff_award.sender is None
    assert transfer.sender.name == "Aisyah"
    assert transfer.sender.photo == "a.png"
    assert transfer.sender.level == 2
    assert transfer.receiver.name == "Ben"
    assert transfer.branch_id == "br-1"
    assert transfer.to_dict()["receiver"]["name"] == "Ben"


def test_student_summary_totals(ledger, engine):
    ledger.add_student("a", 100)
    ledger.add_student("b", 0)
    engine.award(receiver_id="a", receiver_kind="student", amount=50, verified_by="op-1")
    engine.transfer(
        sender_id="a", sender_kind="student", receiver_id="b", receiver_kind="student", amount=30, verified_by="op-1"
    )
    engine.transfer(
        sender_id="b", sender_kind="student", receiver_id="a", receiver_kind="student", amount=10, verified_by="op-1"
    )
    spent = engine.spend(student_id="a", amount=20, verified_by="op-1")
    engine.refund(original_transaction_id=spent.transaction_id, verified_by="op-1")
    engine.adjust(participant_id="a", participant_kind="student", amount=-5, verified_by="op-1")

    summary = _views(ledger).student_summary("a")

    assert summary.balance == 125
    assert summary.total_earned == 50 + 10 + 20
    assert summary.total_spent == 20 + 5
    assert summary.total_transferred_out == 30
    assert summary.transaction_count == 6


def test_student_summary_unknown_student(ledger):
    with pytest.raises(NotFoundError):
        _views(ledger).student_summary("ghost")


def test_stats_for_a_period(ledger, engine, fixed_now):
    ledger.add_student("a", 100)
    ledger.add_student("b", 0)
    engine.award(receiver_id="b", receiver_kind="student", amount=40, verified_by="op-1")
    engine.transfer(
        sender_id="a", sender_kind="student", receiver_id="b", receiver_kind="student", amount=25, verified_by="op-1"
    )
    spent = engine.spend(student_id="a", amount=10, verified_by="op-1")
    engine.refund(original_transaction_id=spent.transaction_id, verified_by="op-1")

    stats = _views(ledger).stats(fixed_now.date(), fixed_now.date())

    assert stats.total_earned == 50
    assert stats.total_spent == 10
    assert stats.total_transferred == 25
    assert stats.transaction_count == 4
    assert _views(ledger).stats(date(2026, 1, 1), date(2026, 1, 2)).transaction_count == 0


class TestCachingAndRetries:
    def test_views_are_served_from_cache_until_the_ttl_expires(self, ledger):
        now = [0.0]
        ledger.add_student("a", 100)
        views = _views(ledger, cache=TTLCache(60, clock=lambda: now[0]))

        assert views.progress().current_total == 100
        ledger.add_student("b", 50)
        assert views.progress().current_total == 100

        now[0] = 61.0
        assert views.progress().current_total == 150

    def test_transient_read_failures_are_retried(self, ledger):
        ledger.add_student("a", 100)
        ledger.fail_reads = 2
        sleeps = []

        rows = _views(ledger, read_retries=3, retry_delay=0.5, sleep=sleeps.append).ranking()

        assert [r.student_id for r in rows] == ["a"]
        assert sleeps == [0.5, 1.0]

    def test_persistent_read_failure_surfaces(self, ledger):
        ledger.fail_reads = 5

        with pytest.raises(StorageError):
            _views(ledger, read_retries=3).ranking()
