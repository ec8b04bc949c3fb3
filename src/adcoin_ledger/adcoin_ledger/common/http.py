from __future__ import annotations

import logging

from flask import Flask, jsonify

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)

log = logging.getLogger("adcoin_ledger.http")

# First match wins, so subclasses come before their bases.
STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (InsufficientBalanceError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (StorageError, 503),
)


def json_error(message: str, status: int, **extra):
    body = {"error": message}
    body.update(extra)
    return jsonify(body), status


def status_for(exc: DomainError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = status_for(exc)
        if isinstance(exc, StorageError):
            return json_error(str(exc), status, retryable=True)
        return json_error(str(exc), status)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        # Let Flask render its own 404/405 etc.
        code = getattr(exc, "code", None)
        if isinstance(code, int) and code < 500:
            return json_error(getattr(exc, "description", str(exc)), code)

        log.exception("Unhandled error while serving request")
        if bool(app.config.get("DEBUG", False)):
            return json_error("Internal server error", 500, details=str(exc))
        return json_error("Internal server error", 500)
