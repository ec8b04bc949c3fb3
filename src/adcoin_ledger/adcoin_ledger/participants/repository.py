from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import Branch, StaffUser, Student


class ParticipantLookup(Protocol):
    """The two lookups the resolver needs.

    Implemented both by the read repository and by a ledger unit of work
    (where student reads lock the row).
    """

    def get_student(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def get_staff(self, staff_id: str) -> Optional[StaffUser]:
        raise NotImplementedError


class ParticipantRepository(ParticipantLookup, Protocol):
    """Read-side repository over students, staff and branches.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_staff_by_username(self, username: str) -> Optional[StaffUser]:
        raise NotImplementedError

    def get_students_by_ids(self, student_ids: Iterable[str]) -> Sequence[Student]:
        raise NotImplementedError

    def get_staff_by_ids(self, staff_ids: Iterable[str]) -> Sequence[StaffUser]:
        raise NotImplementedError

    def list_active_students(self, *, branch_id: Optional[str] = None) -> Sequence[Student]:
        """Active students ordered by balance desc, then creation order."""

        raise NotImplementedError

    def list_active_branches(self, *, branch_id: Optional[str] = None) -> Sequence[Branch]:
        raise NotImplementedError
