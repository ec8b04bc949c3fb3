from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, UnauthorizedError, ValidationError
from ..participants.model import StaffUser
from ..participants.repository import ParticipantRepository

log = logging.getLogger("adcoin_ledger.auth")


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (ValueError, TypeError):
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


@dataclass(frozen=True)
class SessionOperator:
    """What we store into Flask session after login."""

    operator_id: str
    name: str
    username: str
    role: Role
    branch_id: Optional[str]

    def to_dict(self) -> dict:
        return {
            "id": self.operator_id,
            "name": self.name,
            "username": self.username,
            "role": self.role.value,
            "branch_id": self.branch_id,
        }


class AuthService:
    """Use case: authenticate an operator (login)."""

    def __init__(self, participants: ParticipantRepository):
        self._participants = participants

    def authenticate(self, username: str, password: str) -> SessionOperator:
        try:
            username = require_non_empty(username, "Username")
            password = require_non_empty(password, "Password")
        except ValidationError:
            raise AuthenticationError("Invalid username or password")

        staff = self._participants.get_staff_by_username(username)
        if not staff or not staff.is_active or not _password_matches(staff.password_hash, password):
            log.warning("Failed login for %r", username)
            raise AuthenticationError("Invalid username or password")

        log.info("Operator %s logged in", staff.staff_id)
        return SessionOperator(
            operator_id=staff.staff_id,
            name=staff.name,
            username=staff.username,
            role=staff.role,
            branch_id=staff.branch_id,
        )


class AuthorizationGate:
    """Re-checks the acting operator's password before every ledger mutation."""

    def __init__(self, participants: ParticipantRepository):
        self._participants = participants

    def verify(self, operator_id: Optional[str], password: Optional[str]) -> StaffUser:
        if not operator_id:
            raise UnauthorizedError("Unauthorized")

        staff = self._participants.get_staff(str(operator_id))
        if not staff or not staff.is_active:
            log.warning("Mutation attempted by unknown or inactive operator %s", operator_id)
            raise UnauthorizedError("Unauthorized")

        if not password or not _password_matches(staff.password_hash, password):
            log.warning("Password re-check failed for operator %s", operator_id)
            raise UnauthorizedError("Invalid password")
        return staff
