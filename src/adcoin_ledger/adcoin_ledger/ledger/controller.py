from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_error
from ..common.validators import clamp_limit, clean_optional_text, require_non_empty, require_positive_int
from ..core.constants import DEFAULT_FEED_LIMIT, DEFAULT_RANKING_LIMIT, DEFAULT_RECENT_LIMIT, MAX_PAGE_LIMIT
from ..core.enums import ParticipantKind, TransactionType
from ..core.exceptions import ValidationError
from ..container import Container

# transactionType values accepted by the transfer form.
FORM_TRANSACTION_TYPES = ("transfer", "earned", "adjusted")


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(value) -> Optional[str]:
    return clean_optional_text(None if value is None else str(value))


def _date_arg(name: str) -> Optional[date]:
    raw = _text(request.args.get(name))
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "operator_id" not in session:
                return json_error("Unauthorized", 401)
            return view(*args, **kwargs)

        return wrapper

    def verify_operator(data: dict):
        return container.authorization_gate.verify(session.get("operator_id"), data.get("password"))

    def transaction_response(tx):
        return jsonify({"success": True, "transaction": tx.to_dict()})

    # -------- mutations --------
    @app.route("/adcoin/transfer", methods=["POST"], endpoint="adcoin_transfer")
    @login_required
    def adcoin_transfer():
        data = _payload()

        tx_type = (_text(data.get("transactionType")) or "transfer").lower()
        if tx_type not in FORM_TRANSACTION_TYPES:
            raise ValidationError(f"transactionType must be one of: {', '.join(FORM_TRANSACTION_TYPES)}")

        sender_id = _text(data.get("senderId"))
        receiver_id = _text(data.get("receiverId"))
        if not receiver_id:
            raise ValidationError("receiverId is required")
        if tx_type == "transfer" and not sender_id:
            raise ValidationError("senderId is required")
        if sender_id and sender_id == receiver_id:
            raise ValidationError("Sender and receiver cannot be the same person")

        amount = require_positive_int(data.get("amount"), "Amount")
        sender_kind = ParticipantKind.parse(data.get("senderType") or ParticipantKind.STUDENT.value)
        receiver_kind = ParticipantKind.parse(data.get("receiverType") or ParticipantKind.STUDENT.value)
        message = _text(data.get("message"))
        idempotency_key = _text(data.get("idempotencyKey"))

        operator = verify_operator(data)

        if tx_type == "transfer":
            tx = container.engine.transfer(
                sender_id=sender_id,
                sender_kind=sender_kind,
                receiver_id=receiver_id,
                receiver_kind=receiver_kind,
                amount=amount,
                verified_by=operator.staff_id,
                description=message,
                idempotency_key=idempotency_key,
            )
        elif tx_type == "earned":
            tx = container.engine.award(
                receiver_id=receiver_id,
                receiver_kind=receiver_kind,
                amount=amount,
                verified_by=operator.staff_id,
                description=message or f"Awarded by {operator.name}",
                idempotency_key=idempotency_key,
            )
        else:
            tx = container.engine.adjust(
                participant_id=receiver_id,
                participant_kind=receiver_kind,
                amount=amount,
                verified_by=operator.staff_id,
                description=message,
                idempotency_key=idempotency_key,
            )
        return transaction_response(tx)

    @app.route("/adcoin/adjust", methods=["POST"], endpoint="adcoin_adjust")
    @login_required
    def adcoin_adjust():
        data = _payload()
        participant_id = require_non_empty(_text(data.get("participantId")), "participantId")
        participant_kind = ParticipantKind.parse(data.get("participantType") or ParticipantKind.STUDENT.value)
        amount = data.get("amount")
        if amount is None:
            raise ValidationError("Amount is required")

        operator = verify_operator(data)
        tx = container.engine.adjust(
            participant_id=participant_id,
            participant_kind=participant_kind,
            amount=amount,
            verified_by=operator.staff_id,
            description=_text(data.get("message")),
            idempotency_key=_text(data.get("idempotencyKey")),
        )
        return transaction_response(tx)

    @app.route("/adcoin/spend", methods=["POST"], endpoint="adcoin_spend")
    @login_required
    def adcoin_spend():
        data = _payload()
        student_id = require_non_empty(_text(data.get("studentId")), "studentId")
        amount = require_positive_int(data.get("amount"), "Amount")

        operator = verify_operator(data)
        tx = container.engine.spend(
            student_id=student_id,
            amount=amount,
            verified_by=operator.staff_id,
            description=_text(data.get("message")),
            idempotency_key=_text(data.get("idempotencyKey")),
        )
        return transaction_response(tx)

    @app.route("/adcoin/refund", methods=["POST"], endpoint="adcoin_refund")
    @login_required
    def adcoin_refund():
        data = _payload()
        transaction_id = require_non_empty(_text(data.get("transactionId")), "transactionId")

        operator = verify_operator(data)
        tx = container.engine.refund(
            original_transaction_id=transaction_id,
            verified_by=operator.staff_id,
            description=_text(data.get("message")),
            idempotency_key=_text(data.get("idempotencyKey")),
        )
        return transaction_response(tx)

    # -------- history --------
    @app.route("/adcoin/transactions", methods=["GET"], endpoint="adcoin_transactions")
    @login_required
    def adcoin_transactions():
        participant_id = _text(request.args.get("participantId"))
        tx_type = _text(request.args.get("type"))
        if tx_type:
            try:
                tx_type = TransactionType(tx_type.lower())
            except ValueError:
                raise ValidationError(f"Unknown transaction type: {tx_type!r}")
        start = _date_arg("start")
        end = _date_arg("end")
        limit = clamp_limit(request.args.get("limit"), default=DEFAULT_RECENT_LIMIT, maximum=MAX_PAGE_LIMIT)
        history = container.history_service

        if (start is None) != (end is None):
            raise ValidationError("start and end must be given together")

        if participant_id:
            txs = history.for_participant(participant_id)
        elif tx_type:
            txs = history.by_type(tx_type)
        elif start and end:
            txs = history.by_date_range(start, end)
        else:
            txs = history.recent(limit)

        # Narrow further when several filters are combined.
        if tx_type:
            txs = [t for t in txs if t.type == tx_type]
        if start and end:
            txs = [t for t in txs if start <= t.created_at.date() <= end]

        return jsonify({"transactions": [t.to_dict() for t in list(txs)[:limit]]})

    @app.route("/adcoin/transactions/<transaction_id>", methods=["GET"], endpoint="adcoin_transaction_detail")
    @login_required
    def adcoin_transaction_detail(transaction_id: str):
        return jsonify({"transaction": container.history_service.get(transaction_id).to_dict()})

    # -------- derived views --------
    @app.route("/adcoin/ranking", methods=["GET"], endpoint="adcoin_ranking")
    @login_required
    def adcoin_ranking():
        limit = clamp_limit(request.args.get("limit"), default=DEFAULT_RANKING_LIMIT, maximum=MAX_PAGE_LIMIT)
        rows = container.view_service.ranking(branch_id=_text(request.args.get("branchId")), limit=limit)
        return jsonify({"ranking": [r.to_dict() for r in rows]})

    @app.route("/adcoin/pools", methods=["GET"], endpoint="adcoin_pools")
    @login_required
    def adcoin_pools():
        pools = container.view_service.branch_pools(branch_id=_text(request.args.get("branchId")))
        return jsonify({"pools": [p.to_dict() for p in pools]})

    @app.route("/adcoin/progress", methods=["GET"], endpoint="adcoin_progress")
    @login_required
    def adcoin_progress():
        progress = container.view_service.progress(branch_id=_text(request.args.get("branchId")))
        return jsonify({"progress": progress.to_dict()})

    @app.route("/adcoin/feed", methods=["GET"], endpoint="adcoin_feed")
    @login_required
    def adcoin_feed():
        limit = clamp_limit(request.args.get("limit"), default=DEFAULT_FEED_LIMIT, maximum=MAX_PAGE_LIMIT)
        entries = container.view_service.transaction_feed(limit=limit)
        return jsonify({"feed": [e.to_dict() for e in entries]})

    @app.route("/adcoin/students/<student_id>/summary", methods=["GET"], endpoint="adcoin_student_summary")
    @login_required
    def adcoin_student_summary(student_id: str):
        return jsonify({"summary": container.view_service.student_summary(student_id).to_dict()})

    @app.route("/adcoin/stats", methods=["GET"], endpoint="adcoin_stats")
    @login_required
    def adcoin_stats():
        start = _date_arg("start")
        end = _date_arg("end")
        if not start or not end:
            raise ValidationError("start and end are required")
        return jsonify({"stats": container.view_service.stats(start, end).to_dict()})
